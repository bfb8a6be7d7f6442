"""Build host detection.

cibuildwheel builds macOS wheels only on macOS and Windows wheels only on
Windows; Linux wheels are built in containers from any host.
"""

from __future__ import annotations

import os
import platform as _platform
import sys
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

__all__ = ["Arch", "Platform", "PlatformInfo", "detect"]


class Platform(Enum):
    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value

    @property
    def wheel_platform(self) -> str | None:
        """The ``cibuildwheel --platform`` value native to this OS."""
        return None if self is Platform.UNKNOWN else self.value


class Arch(Enum):
    X64 = "x64"
    ARM64 = "arm64"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class PlatformInfo:
    platform: Platform
    arch: Arch

    def can_build_natively(self, wheel_platform: str) -> bool:
        return self.platform.wheel_platform == wheel_platform

    def __str__(self) -> str:
        return f"{self.platform}-{self.arch}"


def _platform_from(name: str) -> Platform:
    if name.startswith("linux"):
        return Platform.LINUX
    if name == "darwin":
        return Platform.MACOS
    if name in ("win32", "cygwin", "msys"):
        return Platform.WINDOWS
    return Platform.UNKNOWN


def _arch_from(machine: str) -> Arch:
    match machine.lower():
        case "x86_64" | "amd64":
            return Arch.X64
        case "aarch64" | "arm64":
            return Arch.ARM64
        case _:
            return Arch.UNKNOWN


@lru_cache(maxsize=1)
def detect() -> PlatformInfo:
    """Detect the host once per process."""
    host = _platform_from(sys.platform)
    # platform.machine() reports the emulated arch under WOW64.
    machine = (
        os.environ.get("PROCESSOR_ARCHITEW6432", "") or _platform.machine()
        if host is Platform.WINDOWS
        else _platform.machine()
    )
    return PlatformInfo(platform=host, arch=_arch_from(machine))
