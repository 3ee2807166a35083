"""Configuration package for DevOps Analytics."""

from .errors import ConfigurationError, EnvironmentVariableError, InvalidValueError
from .loader import ConfigLoader
from .schema import (
    API_VERSION,
    MULTI_PROJECT_PREFIX,
    TOKEN_ENV_VAR,
    AnalyzerConfig,
    CollectionOptions,
    CountLimits,
    OutputConfig,
    ProjectionSettings,
    SkipOptions,
)

__all__ = [
    "API_VERSION",
    "MULTI_PROJECT_PREFIX",
    "TOKEN_ENV_VAR",
    "AnalyzerConfig",
    "CollectionOptions",
    "ConfigLoader",
    "ConfigurationError",
    "CountLimits",
    "EnvironmentVariableError",
    "InvalidValueError",
    "OutputConfig",
    "ProjectionSettings",
    "SkipOptions",
]
