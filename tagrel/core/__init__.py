"""Core domain types and logic."""

from .config import ConfigError, TagrelConfig, load_config, load_project_config
from .errors import ErrorCode
from .project import Project, ProjectError, RunPaths, detect_project
from .result import Err, Ok, Result

__all__ = [
    # config
    "ConfigError",
    "TagrelConfig",
    "load_config",
    "load_project_config",
    # errors
    "ErrorCode",
    # project
    "Project",
    "ProjectError",
    "RunPaths",
    "detect_project",
    # result
    "Err",
    "Ok",
    "Result",
]
