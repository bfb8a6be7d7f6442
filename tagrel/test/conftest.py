from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Iterator
from pathlib import Path

import pytest

from tagrel.core.project import PROJECT_ENV_VAR

_GIT_ENV = {
    "GIT_AUTHOR_NAME": "Release Bot",
    "GIT_AUTHOR_EMAIL": "bot@example.invalid",
    "GIT_COMMITTER_NAME": "Release Bot",
    "GIT_COMMITTER_EMAIL": "bot@example.invalid",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def _git_base_env() -> dict[str, str]:
    return {k: v for k, v in os.environ.items() if not k.startswith("GIT_")}


class GitRepo:
    """Throwaway git repository for tests that need real history."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def git(self, *args: str) -> str:
        proc = subprocess.run(
            [
                "git",
                "-c",
                "commit.gpgsign=false",
                "-c",
                "tag.gpgsign=false",
                "-c",
                "init.defaultBranch=main",
                *args,
            ],
            cwd=self.root,
            env={**_git_base_env(), **_GIT_ENV},
            capture_output=True,
            text=True,
            check=True,
        )
        return proc.stdout

    def commit(self, subject: str) -> str:
        marker = self.root / "history.txt"
        with marker.open("a", encoding="utf-8") as f:
            f.write(subject + "\n")
        self.git("add", "history.txt")
        self.git("commit", "-q", "-m", subject)
        return self.git("rev-parse", "HEAD").strip()

    def tag(self, name: str) -> None:
        self.git("tag", name)


@pytest.fixture
def git_repo(tmp_path: Path) -> Iterator[GitRepo]:
    if shutil.which("git") is None:
        pytest.skip("git not available")
    root = tmp_path / "project"
    root.mkdir()
    repo = GitRepo(root)
    repo.git("init", "-q")
    repo.git("checkout", "-q", "-B", "main")
    yield repo


@pytest.fixture(autouse=True)
def _isolated_ci_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Tests never see the CI variables of the machine running them."""
    for name in (
        "GITHUB_REF",
        "GITHUB_REPOSITORY",
        "GITHUB_OUTPUT",
        "GH_TOKEN",
        "GITHUB_TOKEN",
        PROJECT_ENV_VAR,
    ):
        monkeypatch.delenv(name, raising=False)
