from __future__ import annotations

from pathlib import Path

import pytest

from tagrel.core.config import BuildConfig
from tagrel.core.project import RunPaths
from tagrel.core.result import Err, Ok
from tagrel.output.console import MockConsole
from tagrel.platform.detection import Arch, Platform, PlatformInfo
from tagrel.platform.process import ProcessError, ProcessOutput
from tagrel.services.release import builder
from tagrel.services.release.artifacts import ArtifactStore
from tagrel.services.release.model import PlatformTarget

LINUX_HOST = PlatformInfo(platform=Platform.LINUX, arch=Arch.X64)
MACOS_HOST = PlatformInfo(platform=Platform.MACOS, arch=Arch.ARM64)


def _which(*available: str):
    def which(name: str) -> str | None:
        return f"/usr/bin/{name}" if name in available else None

    return which


def test_targets_follow_config_order() -> None:
    assert builder.targets_for(("linux", "macos")) == [
        PlatformTarget(platform="linux", index=0),
        PlatformTarget(platform="macos", index=1),
    ]


class TestBuildEnv:
    def test_defaults_provision_rust_in_linux_containers(self) -> None:
        env = builder.build_env(BuildConfig(), base={"PATH": "/bin"})

        assert env["PATH"] == "/bin"
        assert "rustup" in env["CIBW_BEFORE_ALL_LINUX"]
        assert env["CIBW_ENVIRONMENT_LINUX"] == "PATH=$HOME/.cargo/bin:$PATH"
        assert "cp38-*" in env["CIBW_SKIP"].split()

    def test_extra_env_wins(self) -> None:
        cfg = BuildConfig(skip=(), env=(("CIBW_BUILD", "cp312-*"), ("CIBW_SKIP", "pp*")))
        env = builder.build_env(cfg, base={})
        assert env["CIBW_BUILD"] == "cp312-*"
        assert env["CIBW_SKIP"] == "pp*"

    def test_empty_skip_is_not_exported(self) -> None:
        env = builder.build_env(BuildConfig(skip=()), base={})
        assert "CIBW_SKIP" not in env


class TestHostChecks:
    def test_macos_needs_macos_host(self) -> None:
        target = PlatformTarget(platform="macos", index=1)
        result = builder.check_host(target, LINUX_HOST, _which("docker"))
        assert isinstance(result, Err)
        assert result.error.kind == "platform_unavailable"
        assert builder.check_host(target, MACOS_HOST, _which()) == Ok(None)

    @pytest.mark.parametrize("engine", ["docker", "podman"])
    def test_linux_needs_container_engine(self, engine: str) -> None:
        target = PlatformTarget(platform="linux", index=0)
        assert builder.check_host(target, MACOS_HOST, _which(engine)) == Ok(None)

    def test_linux_without_engine(self) -> None:
        target = PlatformTarget(platform="linux", index=0)
        result = builder.check_host(target, LINUX_HOST, _which())
        assert isinstance(result, Err)
        assert result.error.kind == "platform_unavailable"

    def test_tool_missing(self) -> None:
        result = builder.check_tool("cibuildwheel", _which())
        assert isinstance(result, Err)
        assert result.error.kind == "tool_missing"


class TestBuildPlatform:
    @pytest.fixture
    def run(self, tmp_path: Path) -> RunPaths:
        return RunPaths(root=tmp_path / "run")

    def _build(
        self,
        tmp_path: Path,
        run: RunPaths,
        console: MockConsole,
        *,
        dry_run: bool = False,
        which=None,
    ):
        store = ArtifactStore(run.artifacts_dir)
        outcome = builder.build_platform(
            project_root=tmp_path,
            target=PlatformTarget(platform="linux", index=0),
            config=BuildConfig(),
            prefix="wheels",
            run=run,
            store=store,
            host=LINUX_HOST,
            console=console,
            dry_run=dry_run,
            which=which or _which("cibuildwheel", "docker"),
        )
        return outcome, store

    def test_success_uploads_wheels(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, run: RunPaths
    ) -> None:
        seen: dict[str, object] = {}

        def fake_run_combined(cmd, cwd, env=None, *, timeout=None):
            seen["cmd"] = cmd
            seen["env"] = env
            out = Path(cmd[cmd.index("--output-dir") + 1])
            (out / "pkg-0.1.0-cp312-cp312-manylinux_2_17_x86_64.whl").write_bytes(b"w")
            return Ok(ProcessOutput(returncode=0, output="Built 1 wheel\n"))

        monkeypatch.setattr(builder, "run_combined", fake_run_combined)
        console = MockConsole()

        outcome, store = self._build(tmp_path, run, console)

        assert outcome.ok
        assert outcome.artifact == "wheels-linux-0"
        assert outcome.wheels == ("pkg-0.1.0-cp312-cp312-manylinux_2_17_x86_64.whl",)
        assert store.names() == ["wheels-linux-0"]
        assert seen["cmd"][:3] == ["cibuildwheel", "--platform", "linux"]
        assert isinstance(seen["env"], dict)
        assert "CIBW_BEFORE_ALL_LINUX" in seen["env"]
        assert outcome.log_path is not None
        assert outcome.log_path.read_text(encoding="utf-8") == "Built 1 wheel\n"
        assert console.has_success()

    def test_failure_keeps_transcript(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, run: RunPaths
    ) -> None:
        def fake_run_combined(cmd, cwd, env=None, *, timeout=None):
            return Err(
                ProcessError(
                    command=tuple(cmd),
                    returncode=1,
                    stdout="error: linker `cc` not found",
                    stderr="",
                )
            )

        monkeypatch.setattr(builder, "run_combined", fake_run_combined)
        console = MockConsole()

        outcome, store = self._build(tmp_path, run, console)

        assert not outcome.ok
        assert outcome.error is not None
        assert outcome.error.kind == "build_failed"
        assert outcome.log_path is not None
        assert "linker" in outcome.log_path.read_text(encoding="utf-8")
        assert store.names() == []
        assert console.has_error()

    def test_no_wheels(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, run: RunPaths
    ) -> None:
        def fake_run_combined(cmd, cwd, env=None, *, timeout=None):
            return Ok(ProcessOutput(returncode=0, output="nothing to build\n"))

        monkeypatch.setattr(builder, "run_combined", fake_run_combined)

        outcome, store = self._build(tmp_path, run, MockConsole())

        assert outcome.error is not None
        assert outcome.error.kind == "no_wheels"
        assert store.names() == []

    def test_missing_tool_skips_build(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, run: RunPaths
    ) -> None:
        def fail_run_combined(*args: object, **kwargs: object):
            raise AssertionError("build must not run")

        monkeypatch.setattr(builder, "run_combined", fail_run_combined)

        outcome, _ = self._build(tmp_path, run, MockConsole(), which=_which("docker"))

        assert outcome.error is not None
        assert outcome.error.kind == "tool_missing"

    def test_dry_run_only_prints(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, run: RunPaths
    ) -> None:
        def fail_run_combined(*args: object, **kwargs: object):
            raise AssertionError("build must not run")

        monkeypatch.setattr(builder, "run_combined", fail_run_combined)
        console = MockConsole()

        outcome, store = self._build(tmp_path, run, console, dry_run=True, which=_which())

        assert outcome.ok
        assert outcome.wheels == ()
        assert store.names() == []
        assert console.find("CIBW_BEFORE_ALL_LINUX=")
        assert not run.root.exists()

    def test_unwritable_output_dir_is_a_failed_outcome(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, run: RunPaths
    ) -> None:
        def fail_run_combined(*args: object, **kwargs: object):
            raise AssertionError("build must not run")

        monkeypatch.setattr(builder, "run_combined", fail_run_combined)
        run.build_dir.parent.mkdir(parents=True, exist_ok=True)
        run.build_dir.write_text("not a directory", encoding="utf-8")
        console = MockConsole()

        outcome, _ = self._build(tmp_path, run, console)

        assert outcome.error is not None
        assert outcome.error.kind == "state_failed"
        assert "build output directory" in outcome.error.message
        assert console.has_error()
