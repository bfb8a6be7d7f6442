from __future__ import annotations

from pathlib import Path

import pytest

from tagrel.core.project import PROJECT_ENV_VAR, Project, detect_project, find_project_upward
from tagrel.core.result import Err, Ok


def _checkout(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    (path / ".git").mkdir()
    return path


def test_find_project_upward_from_subdir(tmp_path: Path) -> None:
    root = _checkout(tmp_path / "proj")
    nested = root / "src" / "pkg"
    nested.mkdir(parents=True)
    assert find_project_upward(nested) == root


def test_worktree_git_file_counts(tmp_path: Path) -> None:
    root = tmp_path / "wt"
    root.mkdir()
    (root / ".git").write_text("gitdir: ../main/.git/worktrees/wt\n", encoding="utf-8")
    assert find_project_upward(root) == root


def test_detect_project_from_start_dir(tmp_path: Path) -> None:
    root = _checkout(tmp_path / "proj")
    result = detect_project(start_dir=root)
    assert result == Ok(Project(root=root.resolve()))


def test_detect_project_env_var_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_root = _checkout(tmp_path / "from-env")
    other = _checkout(tmp_path / "other")
    monkeypatch.setenv(PROJECT_ENV_VAR, str(env_root))
    result = detect_project(start_dir=other)
    assert isinstance(result, Ok)
    assert result.value.root == env_root.resolve()


def test_detect_project_invalid_env_var(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(PROJECT_ENV_VAR, str(tmp_path / "missing"))
    result = detect_project(start_dir=tmp_path)
    assert isinstance(result, Err)
    assert PROJECT_ENV_VAR in result.error.message


def test_run_paths_layout(tmp_path: Path) -> None:
    run = Project(root=tmp_path).run_paths("v1.2.3")
    assert run.root == tmp_path / ".tagrel" / "runs" / "v1.2.3"
    assert run.record_path.name == "run.json"
    assert run.dist_dir == run.release_dir / "dist"
    assert run.notes_path.parent == run.release_dir
    assert run.manifest_path.name == "manifest.json"
