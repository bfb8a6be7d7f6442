"""Run-scoped artifact store.

Each fan-out task uploads its wheels under one name
(``<prefix>-<platform>-<index>``); the release stage downloads every artifact
into a single flat directory. Artifacts are immutable: a name can be uploaded
once per run.

Layout:

    <run>/artifacts/<name>/<file>...
"""

from __future__ import annotations

import shutil
import threading
from dataclasses import dataclass
from pathlib import Path

from tagrel.core.result import Err, Ok, Result
from tagrel.platform.files import atomic_write_json, sha256_file
from tagrel.services.release.errors import ReleaseError


@dataclass(frozen=True, slots=True)
class StoredFile:
    artifact: str
    filename: str
    size: int
    sha256: str


class ArtifactStore:
    def __init__(self, root: Path) -> None:
        self.root = root
        self._lock = threading.Lock()

    def path_for(self, name: str) -> Path:
        return self.root / name

    def upload(self, name: str, files: list[Path]) -> Result[Path, ReleaseError]:
        if not files:
            return Err(
                ReleaseError(kind="invalid_input", message=f"nothing to upload for artifact {name}")
            )

        with self._lock:
            dest = self.path_for(name)
            if dest.exists():
                return Err(
                    ReleaseError(
                        kind="artifact_exists",
                        message=f"artifact already uploaded: {name}",
                        hint="Artifact names must be unique per platform and job index.",
                    )
                )

            staging = self.root / f".{name}.partial"
            try:
                if staging.exists():
                    shutil.rmtree(staging)
                staging.mkdir(parents=True)
                for src in files:
                    shutil.copy2(src, staging / src.name)
                staging.rename(dest)
            except OSError as e:
                shutil.rmtree(staging, ignore_errors=True)
                return Err(
                    ReleaseError(
                        kind="state_failed",
                        message=f"failed to upload artifact {name}: {e}",
                        hint=str(dest),
                    )
                )
        return Ok(dest)

    def names(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            p.name for p in self.root.iterdir() if p.is_dir() and not p.name.startswith(".")
        )

    def files(self, name: str) -> list[Path]:
        base = self.path_for(name)
        if not base.is_dir():
            return []
        return sorted(p for p in base.iterdir() if p.is_file())

    def download_all(self, dest: Path) -> Result[list[Path], ReleaseError]:
        """Copy every artifact's files into one flat directory.

        Two artifacts providing the same file name is a conflict: the release
        would silently lose one of them.
        """
        owners: dict[str, str] = {}
        planned: list[tuple[Path, str]] = []
        for name in self.names():
            for src in self.files(name):
                prev = owners.get(src.name)
                if prev is not None:
                    return Err(
                        ReleaseError(
                            kind="artifact_conflict",
                            message=f"{src.name} is provided by both {prev} and {name}",
                        )
                    )
                owners[src.name] = name
                planned.append((src, src.name))

        try:
            if dest.exists():
                shutil.rmtree(dest)
            dest.mkdir(parents=True)
            for src, filename in planned:
                shutil.copy2(src, dest / filename)
        except OSError as e:
            return Err(
                ReleaseError(
                    kind="state_failed",
                    message=f"failed to download artifacts: {e}",
                    hint=str(dest),
                )
            )

        return Ok(sorted(dest / filename for _, filename in planned))

    def describe(self) -> list[StoredFile]:
        out: list[StoredFile] = []
        for name in self.names():
            for p in self.files(name):
                out.append(
                    StoredFile(
                        artifact=name,
                        filename=p.name,
                        size=p.stat().st_size,
                        sha256=sha256_file(p),
                    )
                )
        return out


def write_manifest(
    *, out_path: Path, tag: str, files: list[StoredFile]
) -> Result[Path, ReleaseError]:
    manifest = {
        "schema": 1,
        "tag": tag,
        "assets": [
            {
                "artifact": f.artifact,
                "filename": f.filename,
                "size": f.size,
                "sha256": f.sha256,
            }
            for f in files
        ],
    }
    try:
        atomic_write_json(out_path, manifest, sort_keys=True)
    except OSError as e:
        return Err(
            ReleaseError(
                kind="state_failed",
                message=f"failed to write manifest: {e}",
                hint=str(out_path),
            )
        )
    return Ok(out_path)
