"""Tests for git/repository.py."""

from __future__ import annotations

from pathlib import Path

import pytest

from tagrel.core.result import Err, Ok, Result
from tagrel.git import repository as repo_mod
from tagrel.git.repository import Repository, parse_remote_slug
from tagrel.platform.process import ProcessError
from tagrel.test.conftest import GitRepo


@pytest.mark.parametrize(
    ("url", "slug"),
    [
        ("https://github.com/acme/widgets.git", "acme/widgets"),
        ("https://github.com/acme/widgets", "acme/widgets"),
        ("git@github.com:acme/widgets.git", "acme/widgets"),
        ("ssh://git@github.com/acme/widgets.git", "acme/widgets"),
        ("https://gitlab.com/acme/widgets.git", None),
    ],
)
def test_parse_remote_slug(url: str, slug: str | None) -> None:
    assert parse_remote_slug(url) == slug


class TestMockedGit:
    def test_is_ancestor_exit_one_means_no(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def fake_run(
            cmd: list[str], *, cwd: Path, timeout: float | None = None
        ) -> Result[str, ProcessError]:
            return Err(ProcessError(command=tuple(cmd), returncode=1, stdout="", stderr=""))

        monkeypatch.setattr(repo_mod, "run_process", fake_run)
        assert Repository(tmp_path).is_ancestor("abc", "main") == Ok(False)

    def test_is_ancestor_other_failure_is_error(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def fake_run(
            cmd: list[str], *, cwd: Path, timeout: float | None = None
        ) -> Result[str, ProcessError]:
            return Err(
                ProcessError(
                    command=tuple(cmd), returncode=128, stdout="", stderr="fatal: bad object"
                )
            )

        monkeypatch.setattr(repo_mod, "run_process", fake_run)
        result = Repository(tmp_path).is_ancestor("abc", "main")
        assert isinstance(result, Err)
        assert result.error.message == "fatal: bad object"
        assert result.error.returncode == 128

    def test_log_parsing_keeps_odd_subjects(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        out = (
            "a" * 40 + "\x1fAda\x1ffeat: tabs\tinside\x1e\n"
            + "b" * 40 + "\x1fBob\x1ffix(core): colon: twice\x1e\n"
        )

        def fake_run(
            cmd: list[str], *, cwd: Path, timeout: float | None = None
        ) -> Result[str, ProcessError]:
            assert "v0.1.0..v0.2.0" in cmd
            return Ok(out)

        monkeypatch.setattr(repo_mod, "run_process", fake_run)
        result = Repository(tmp_path).log_range("v0.1.0", "v0.2.0")
        assert isinstance(result, Ok)
        subjects = [c.subject for c in result.value]
        assert subjects == ["feat: tabs\tinside", "fix(core): colon: twice"]
        assert result.value[0].short_sha == "aaaaaaa"
        assert result.value[1].author == "Bob"


class TestRealGit:
    def test_tags_and_ranges(self, git_repo: GitRepo) -> None:
        first = git_repo.commit("chore: init")
        git_repo.tag("v0.1.0")
        second = git_repo.commit("feat: add parser")
        git_repo.tag("v0.2.0")

        repo = Repository(git_repo.root)
        assert repo.tags("v*") == Ok(["v0.1.0", "v0.2.0"])
        assert repo.tag_exists("v0.2.0")
        assert not repo.tag_exists("v9.9.9")
        assert repo.resolve_commit("v0.1.0") == Ok(first)
        assert repo.is_ancestor("v0.1.0", "main") == Ok(True)
        assert repo.is_ancestor("v0.2.0", "v0.1.0") == Ok(False)

        ranged = repo.log_range("v0.1.0", "v0.2.0")
        assert isinstance(ranged, Ok)
        assert [c.sha for c in ranged.value] == [second]

        everything = repo.log_range(None, "v0.2.0")
        assert isinstance(everything, Ok)
        assert [c.sha for c in everything.value] == [second, first]

    def test_remote_url(self, git_repo: GitRepo) -> None:
        repo = Repository(git_repo.root)
        assert repo.remote_url() is None
        git_repo.git("remote", "add", "origin", "git@github.com:acme/widgets.git")
        assert repo.remote_url() == "git@github.com:acme/widgets.git"
