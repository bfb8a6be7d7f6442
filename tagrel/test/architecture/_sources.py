from __future__ import annotations

import ast
from dataclasses import dataclass
from functools import cache
from pathlib import Path

PACKAGE_ROOT = Path(__file__).resolve().parents[2]


@dataclass(frozen=True, slots=True)
class SourceFile:
    rel: str
    imports: tuple[tuple[str, int], ...]

    @property
    def layer(self) -> str:
        return self.rel.split("/", 1)[0]


def _absolute_imports(tree: ast.AST) -> list[tuple[str, int]]:
    found: list[tuple[str, int]] = []
    for node in ast.walk(tree):
        match node:
            case ast.Import(names=names):
                found.extend((alias.name, node.lineno) for alias in names)
            case ast.ImportFrom(module=str(module), level=0):
                found.append((module, node.lineno))
    return found


@cache
def package_sources() -> tuple[SourceFile, ...]:
    """All non-test modules of the package, parsed once per session."""
    files: list[SourceFile] = []
    for path in sorted(PACKAGE_ROOT.rglob("*.py")):
        rel = path.relative_to(PACKAGE_ROOT)
        if rel.parts[0] == "test" or "__pycache__" in rel.parts:
            continue
        tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
        files.append(SourceFile(rel=rel.as_posix(), imports=tuple(_absolute_imports(tree))))
    return tuple(files)


def imports_any(module: str, prefixes: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(p + ".") for p in prefixes)
