"""Configuration error types with user-facing suggestions."""

from pathlib import Path
from typing import Any, NoReturn, Optional

import yaml


class ConfigurationError(Exception):
    """Raised when the run configuration cannot be loaded or is invalid."""

    def __init__(
        self,
        message: str,
        config_path: Optional[Path] = None,
        suggestion: Optional[str] = None,
    ):
        self.message = message
        self.config_path = config_path
        self.suggestion = suggestion
        super().__init__(self._format())

    def _format(self) -> str:
        text = self.message
        if self.config_path:
            text = f"{text}\n   File: {self.config_path}"
        if self.suggestion:
            text = f"{text}\n   💡 {self.suggestion}"
        return text


class EnvironmentVariableError(ConfigurationError):
    """Raised when a ``${VAR}`` reference in the configuration is not set."""

    def __init__(self, variable: str, platform: str, config_path: Optional[Path] = None):
        self.variable = variable
        super().__init__(
            f"{platform} configuration references ${{{variable}}} but it is not set",
            config_path,
            suggestion=f"Export {variable} or add it to a .env file next to the configuration",
        )


class InvalidValueError(ConfigurationError):
    """Raised when a configuration field holds an unusable value."""

    def __init__(
        self,
        field_name: str,
        value: Any,
        reason: str,
        config_path: Optional[Path] = None,
        valid_values: Optional[list[Any]] = None,
    ):
        self.field_name = field_name
        self.value = value
        suggestion = None
        if valid_values:
            suggestion = f"Valid values: {', '.join(str(v) for v in valid_values)}"
        super().__init__(f"Invalid value for '{field_name}': {value!r} ({reason})", config_path, suggestion)


def handle_yaml_error(error: yaml.YAMLError, config_path: Path) -> NoReturn:
    """Convert a PyYAML error into a ConfigurationError with a location."""
    location = ""
    mark = getattr(error, "problem_mark", None)
    if mark is not None:
        location = f" at line {mark.line + 1}, column {mark.column + 1}"
    problem = getattr(error, "problem", None) or str(error)
    raise ConfigurationError(
        f"Invalid YAML{location}: {problem}",
        config_path,
        suggestion="Check indentation and quote values that contain ':' or '#'",
    ) from error
