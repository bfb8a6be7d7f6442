"""Platform abstraction layer."""

from .detection import Arch, Platform, PlatformInfo, detect
from .files import atomic_write_json, atomic_write_text, sha256_file
from .process import ProcessError, ProcessOutput, run, run_combined

__all__ = [
    # detection
    "Arch",
    "Platform",
    "PlatformInfo",
    "detect",
    # files
    "atomic_write_json",
    "atomic_write_text",
    "sha256_file",
    # process
    "ProcessError",
    "ProcessOutput",
    "run",
    "run_combined",
]
