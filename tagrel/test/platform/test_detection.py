from __future__ import annotations

import pytest

from tagrel.platform import detection
from tagrel.platform.detection import Arch, Platform, PlatformInfo, detect


def test_wheel_platform_mapping() -> None:
    assert Platform.LINUX.wheel_platform == "linux"
    assert Platform.MACOS.wheel_platform == "macos"
    assert Platform.WINDOWS.wheel_platform == "windows"
    assert Platform.UNKNOWN.wheel_platform is None


def test_native_builds() -> None:
    info = PlatformInfo(platform=Platform.MACOS, arch=Arch.ARM64)
    assert info.can_build_natively("macos")
    assert not info.can_build_natively("windows")
    assert str(info) == "macos-arm64"


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("linux", Platform.LINUX),
        ("darwin", Platform.MACOS),
        ("win32", Platform.WINDOWS),
        ("freebsd14", Platform.UNKNOWN),
    ],
)
def test_platform_from_sys_platform(name: str, expected: Platform) -> None:
    assert detection._platform_from(name) == expected  # pyright: ignore[reportPrivateUsage]


@pytest.mark.parametrize(
    ("machine", "expected"),
    [("x86_64", Arch.X64), ("AMD64", Arch.X64), ("arm64", Arch.ARM64), ("riscv64", Arch.UNKNOWN)],
)
def test_arch_from_machine(machine: str, expected: Arch) -> None:
    assert detection._arch_from(machine) == expected  # pyright: ignore[reportPrivateUsage]


def test_detect_is_cached() -> None:
    assert detect() is detect()
