"""Typed configuration loading and access.

Configuration lives either in ``tagrel.toml`` at the project root or in the
``[tool.tagrel]`` table of ``pyproject.toml``. Every key is optional; missing
keys fall back to the defaults below, which reproduce the stock
setuptools-rust + cibuildwheel release recipe.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, TypeVar

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_int,
    get_str,
    get_str_list,
    get_str_table,
    get_table,
)

__all__ = [
    "ArtifactsConfig",
    "BuildConfig",
    "ChangelogBackend",
    "ChangelogConfig",
    "ConfigError",
    "RepositoryConfig",
    "TagrelConfig",
    "TriggerConfig",
    "CONFIG_FILENAME",
    "KNOWN_PLATFORMS",
    "load_config",
    "load_config_or_default",
    "load_project_config",
]

CONFIG_FILENAME = "tagrel.toml"
PYPROJECT_FILENAME = "pyproject.toml"

KNOWN_PLATFORMS: tuple[str, ...] = ("linux", "macos", "windows")

DEFAULT_MARKER = ".github/template.yml"
DEFAULT_BEFORE_ALL_LINUX = "curl -sSf https://sh.rustup.rs | sh -s -- -y"
DEFAULT_ENVIRONMENT_LINUX = "PATH=$HOME/.cargo/bin:$PATH"
DEFAULT_SKIP: tuple[str, ...] = (
    "cp36-*",
    "cp37-*",
    "cp38-*",
    "pp*",
    "*-win32",
    "*_i686",
    "*-musllinux_*",
)
DEFAULT_CONVENTIONAL_CHANGELOG = ("conventional-changelog", "-p", "angular", "-r", "2")

ChangelogBackend = Literal["git", "conventional-changelog"]


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class RepositoryConfig:
    """Identity of the template the project was instantiated from."""

    template: str | None = None
    marker: str = DEFAULT_MARKER
    default_branch: str = "main"


@dataclass(frozen=True, slots=True)
class TriggerConfig:
    require_default_branch: bool = True


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """Fan-out build settings.

    ``before_all_linux`` provisions the Rust toolchain inside the Linux build
    containers; ``environment_linux`` makes it discoverable on ``PATH``.
    """

    platforms: tuple[str, ...] = KNOWN_PLATFORMS
    tool: str = "cibuildwheel"
    before_all_linux: str = DEFAULT_BEFORE_ALL_LINUX
    environment_linux: str = DEFAULT_ENVIRONMENT_LINUX
    skip: tuple[str, ...] = DEFAULT_SKIP
    env: tuple[tuple[str, str], ...] = ()
    max_workers: int | None = None
    timeout_seconds: float | None = None


@dataclass(frozen=True, slots=True)
class ArtifactsConfig:
    prefix: str = "wheels"


@dataclass(frozen=True, slots=True)
class ChangelogConfig:
    backend: ChangelogBackend = "git"
    command: tuple[str, ...] = DEFAULT_CONVENTIONAL_CHANGELOG
    preamble_lines: int = 1


@dataclass(frozen=True, slots=True)
class TagrelConfig:
    """Main configuration container."""

    repository: RepositoryConfig = field(default_factory=RepositoryConfig)
    trigger: TriggerConfig = field(default_factory=TriggerConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    artifacts: ArtifactsConfig = field(default_factory=ArtifactsConfig)
    changelog: ChangelogConfig = field(default_factory=ChangelogConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> TagrelConfig:
        """Create config from a mapping (parsed TOML).

        Absent keys take their defaults. A key that is present with the wrong
        type is an error, never a silent default.

        Raises:
            ValueError: On mistyped values and on values that parse but make
                no sense (unknown or repeated platform, unknown changelog
                backend, negative counts).
        """
        repository = _section(data, "repository")
        trigger = _section(data, "trigger")
        build = _section(data, "build")
        artifacts = _section(data, "artifacts")
        changelog = _section(data, "changelog")

        def text(table: StrDict, section: str, key: str) -> str | None:
            return _typed(table, section, key, get_str(table, key), "a string")

        def strings(table: StrDict, section: str, key: str) -> list[str] | None:
            return _typed(table, section, key, get_str_list(table, key), "an array of strings")

        def integer(table: StrDict, section: str, key: str) -> int | None:
            return _typed(table, section, key, get_int(table, key), "an integer")

        platforms = strings(build, "build", "platforms")
        if platforms is not None:
            unknown = [p for p in platforms if p not in KNOWN_PLATFORMS]
            if unknown:
                raise ValueError(f"unknown build platform(s): {', '.join(unknown)}")
            if not platforms:
                raise ValueError("build.platforms must not be empty")
            repeated = sorted({p for p in platforms if platforms.count(p) > 1})
            if repeated:
                raise ValueError(f"build.platforms lists {', '.join(repeated)} more than once")

        skip = strings(build, "build", "skip")
        env = _typed(build, "build", "env", get_str_table(build, "env"), "a table of strings")

        max_workers = integer(build, "build", "max_workers")
        if max_workers is not None and max_workers < 1:
            raise ValueError("build.max_workers must be >= 1")

        timeout_seconds: float | None = None
        match build.get("timeout_seconds"):
            case None:
                pass
            case bool():
                raise ValueError("build.timeout_seconds must be a number")
            case int() | float() as timeout if timeout > 0:
                timeout_seconds = float(timeout)
            case int() | float():
                raise ValueError("build.timeout_seconds must be > 0")
            case _:
                raise ValueError("build.timeout_seconds must be a number")

        backend = text(changelog, "changelog", "backend") or "git"
        if backend not in ("git", "conventional-changelog"):
            raise ValueError(f"unknown changelog backend: {backend}")

        command = strings(changelog, "changelog", "command")
        preamble = integer(changelog, "changelog", "preamble_lines")
        if preamble is not None and preamble < 0:
            raise ValueError("changelog.preamble_lines must be >= 0")

        require_branch = _typed(
            trigger,
            "trigger",
            "require_default_branch",
            get_bool(trigger, "require_default_branch"),
            "a boolean",
        )

        return cls(
            repository=RepositoryConfig(
                template=text(repository, "repository", "template"),
                marker=text(repository, "repository", "marker") or DEFAULT_MARKER,
                default_branch=text(repository, "repository", "default_branch") or "main",
            ),
            trigger=TriggerConfig(
                require_default_branch=True if require_branch is None else require_branch,
            ),
            build=BuildConfig(
                platforms=tuple(platforms) if platforms is not None else KNOWN_PLATFORMS,
                tool=text(build, "build", "tool") or "cibuildwheel",
                before_all_linux=text(build, "build", "before_all_linux")
                or DEFAULT_BEFORE_ALL_LINUX,
                environment_linux=text(build, "build", "environment_linux")
                or DEFAULT_ENVIRONMENT_LINUX,
                skip=tuple(skip) if skip is not None else DEFAULT_SKIP,
                env=tuple(sorted((env or {}).items())),
                max_workers=max_workers,
                timeout_seconds=timeout_seconds,
            ),
            artifacts=ArtifactsConfig(
                prefix=text(artifacts, "artifacts", "prefix") or "wheels",
            ),
            changelog=ChangelogConfig(
                backend="git" if backend == "git" else "conventional-changelog",
                command=tuple(command) if command else DEFAULT_CONVENTIONAL_CHANGELOG,
                preamble_lines=1 if preamble is None else preamble,
            ),
        )


def _section(data: Mapping[str, object], name: str) -> StrDict:
    if name not in data:
        return {}
    table = get_table(data, name)
    if table is None:
        raise ValueError(f"[{name}] must be a table")
    return table


T = TypeVar("T")


def _typed(table: StrDict, section: str, key: str, value: T | None, expected: str) -> T | None:
    """Return ``value``, raising when the key is present but did not narrow.

    A blank string reads as absent, so ``marker = ""`` keeps the default.
    """
    if value is not None or key not in table:
        return value
    raw = table[key]
    if isinstance(raw, str) and not raw.strip():
        return None
    raise ValueError(f"{section}.{key} must be {expected}")


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def _build(data: Mapping[str, object], path: Path) -> Result[TagrelConfig, ConfigError]:
    try:
        return Ok(TagrelConfig.from_dict(data))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config(path: Path) -> Result[TagrelConfig, ConfigError]:
    """Load configuration from a ``tagrel.toml`` file."""
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result
    return _build(result.value, path)


def load_pyproject_config(path: Path) -> Result[TagrelConfig | None, ConfigError]:
    """Load ``[tool.tagrel]`` from a pyproject.toml; Ok(None) if the table is absent."""
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    tool = get_table(result.value, "tool") or {}
    table = get_table(tool, "tagrel")
    if table is None:
        return Ok(None)
    return _build(table, path)


def load_project_config(project_root: Path) -> Result[TagrelConfig, ConfigError]:
    """Resolve configuration for a project root.

    Precedence: ``tagrel.toml``, then ``[tool.tagrel]`` in ``pyproject.toml``,
    then defaults.
    """
    dedicated = project_root / CONFIG_FILENAME
    if dedicated.is_file():
        return load_config(dedicated)

    pyproject = project_root / PYPROJECT_FILENAME
    if pyproject.is_file():
        loaded = load_pyproject_config(pyproject)
        if isinstance(loaded, Err):
            return loaded
        if loaded.value is not None:
            return Ok(loaded.value)

    return Ok(TagrelConfig())


def load_config_or_default(path: Path) -> TagrelConfig:
    """Load config from file, or return defaults if it cannot be loaded."""
    result = load_config(path)
    if isinstance(result, Ok):
        return result.value
    return TagrelConfig()
