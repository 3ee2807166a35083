"""YAML configuration loading, environment expansion and CLI overrides.

Precedence, lowest first: schema defaults, the optional YAML file, the
environment (``.env`` files included) and finally command-line options.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from dateutil.parser import ParserError, parse
from dotenv import load_dotenv

from ..core.repository_filter import RepositoryFilterSpec
from ..utils.date_utils import WeekRule, resolve_timezone
from .errors import (
    ConfigurationError,
    EnvironmentVariableError,
    InvalidValueError,
    handle_yaml_error,
)
from .schema import (
    TOKEN_ENV_VAR,
    AnalyzerConfig,
    CountLimits,
    OutputConfig,
    ProjectionSettings,
    SkipOptions,
)

logger = logging.getLogger(__name__)

ENV_VAR_PATTERN = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$")

# CLI option name -> (section attribute path) on AnalyzerConfig
OVERRIDE_FIELDS = {
    "collection": ("collection_url",),
    "token": ("token",),
    "verbose": ("verbose",),
    "commit_count": ("limits", "commits"),
    "push_count": ("limits", "pushes"),
    "build_count": ("limits", "builds"),
    "pull_request_count": ("limits", "pull_requests"),
    "from_date": ("from_date",),
    "output_prefix": ("output", "prefix"),
    "identifier": ("internal_identifier",),
    "skip_commits": ("skip", "commits"),
    "skip_pushes": ("skip", "pushes"),
    "skip_builds": ("skip", "builds"),
    "skip_build_artifacts": ("skip", "build_artifacts"),
    "skip_base": ("skip", "base"),
    "skip_pull_requests": ("skip", "pull_requests"),
    "branch": ("branch",),
    "no_messages": ("no_messages",),
    "timezone": ("projection", "timezone"),
    "strict": ("strict",),
}


class ConfigLoader:
    """Build an :class:`AnalyzerConfig` from YAML, environment and CLI values."""

    SUPPORTED_VERSIONS = ["1.0"]

    @classmethod
    def load(
        cls,
        config_path: Optional[Union[Path, str]] = None,
        overrides: Optional[dict[str, Any]] = None,
    ) -> AnalyzerConfig:
        """Load and validate the run configuration.

        Args:
            config_path: Optional YAML configuration file.
            overrides: Command-line values; ``None`` entries are ignored.

        Returns:
            Validated configuration.

        Raises:
            ConfigurationError: If any source is unreadable or a value is invalid.
        """
        path = Path(config_path) if config_path else None
        cls._load_environment(path)

        config = AnalyzerConfig()
        if path is not None:
            data = cls._load_yaml(path)
            cls._validate_version(data, path)
            cls._apply_yaml(config, data, path)

        if overrides:
            cls.apply_overrides(config, overrides)

        if not config.token:
            config.token = os.environ.get(TOKEN_ENV_VAR) or None

        cls.validate(config, path)
        return config

    @classmethod
    def _load_environment(cls, config_path: Optional[Path]) -> None:
        """Load ``.env`` then ``.env.local`` from the config directory and cwd."""
        search_dirs: list[Path] = []
        if config_path is not None:
            search_dirs.append(config_path.parent)
        cwd = Path.cwd()
        if cwd not in search_dirs:
            search_dirs.append(cwd)

        env_files = [d / ".env" for d in search_dirs] + [d / ".env.local" for d in search_dirs]
        for env_file in env_files:
            if env_file.exists():
                load_dotenv(env_file, override=True)
                logger.debug(f"Loaded environment variables from {env_file}")

    @classmethod
    def _load_yaml(cls, config_path: Path) -> dict[str, Any]:
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            handle_yaml_error(e, config_path)
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"Configuration file not found: {config_path}", config_path
            ) from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration file: {e}", config_path) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise InvalidValueError(
                "root",
                type(data).__name__,
                "Configuration file must contain a YAML object (key-value pairs)",
                config_path,
            )
        return data

    @classmethod
    def _validate_version(cls, data: dict[str, Any], config_path: Path) -> None:
        version = str(data.get("version", "1.0"))
        if version not in cls.SUPPORTED_VERSIONS:
            raise InvalidValueError(
                "version",
                version,
                "Unsupported configuration version",
                config_path,
                valid_values=cls.SUPPORTED_VERSIONS,
            )

    @classmethod
    def _resolve_env_var(cls, value: Any, platform: str, config_path: Optional[Path]) -> Any:
        """Expand a ``${VAR}`` value from the environment."""
        if not isinstance(value, str):
            return value
        match = ENV_VAR_PATTERN.match(value.strip())
        if not match:
            return value
        resolved = os.environ.get(match.group(1))
        if not resolved:
            raise EnvironmentVariableError(match.group(1), platform, config_path)
        return resolved

    @staticmethod
    def _split_urls(value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [str(url).strip().rstrip("/") for url in value if str(url).strip()]

    @classmethod
    def _apply_yaml(cls, config: AnalyzerConfig, data: dict[str, Any], config_path: Path) -> None:
        azure = data.get("azure_devops") or {}
        config.project_urls = cls._split_urls(azure.get("projects"))
        config.collection_url = azure.get("collection")
        config.token = cls._resolve_env_var(azure.get("token"), "Azure DevOps", config_path)
        config.timeout_seconds = float(azure.get("timeout_seconds", config.timeout_seconds))

        collection = data.get("collection") or {}
        from_date = collection.get("from_date")
        config.from_date = str(from_date) if from_date is not None else None
        config.branch = collection.get("branch")
        config.builds_per_definition = bool(
            collection.get("builds_per_definition", config.builds_per_definition)
        )
        config.limits = cls._build_section(
            CountLimits, collection.get("limits"), "collection.limits", config_path
        )
        config.skip = cls._build_section(
            SkipOptions, collection.get("skip"), "collection.skip", config_path
        )

        repositories = data.get("repositories") or {}
        patterns = repositories.get("filter")
        if isinstance(patterns, list):
            patterns = ",".join(str(p) for p in patterns)
        config.repository_filter = RepositoryFilterSpec.parse(
            patterns, exclude=bool(repositories.get("exclude", False))
        )

        output = data.get("output") or {}
        config.output = OutputConfig(
            directory=Path(output.get("directory", ".")).expanduser(),
            prefix=output.get("prefix"),
        )
        config.internal_identifier = output.get("internal_identifier")
        config.no_messages = bool(output.get("no_messages", False))
        config.projection = ProjectionSettings(
            timezone=output.get("timezone"),
            week_rule=cls._week_rule(output.get("week_rule", WeekRule.ISO.value), config_path),
        )

        config.verbose = bool(data.get("verbose", config.verbose))
        config.strict = bool(data.get("strict", config.strict))

    @staticmethod
    def _build_section(
        section_cls: type, values: Optional[dict[str, Any]], name: str, config_path: Path
    ) -> Any:
        """Instantiate a schema section, rejecting keys it does not define."""
        values = values or {}
        defaults = vars(section_cls())
        unknown = sorted(set(values) - set(defaults))
        if unknown:
            raise InvalidValueError(
                name, ", ".join(unknown), "unknown keys", config_path, valid_values=list(defaults)
            )
        return section_cls(**{**defaults, **values})

    @staticmethod
    def _week_rule(value: Any, config_path: Optional[Path]) -> WeekRule:
        try:
            return WeekRule(value)
        except ValueError as e:
            raise InvalidValueError(
                "week_rule",
                value,
                "Unknown week numbering rule",
                config_path,
                valid_values=[rule.value for rule in WeekRule],
            ) from e

    @classmethod
    def apply_overrides(cls, config: AnalyzerConfig, overrides: dict[str, Any]) -> None:
        """Apply command-line values on top of the loaded configuration."""
        if overrides.get("project"):
            config.project_urls = cls._split_urls(overrides["project"])

        for key, attribute_path in OVERRIDE_FIELDS.items():
            value = overrides.get(key)
            if value is None:
                continue
            target = config
            for attribute in attribute_path[:-1]:
                target = getattr(target, attribute)
            setattr(target, attribute_path[-1], value)

        if overrides.get("output_dir") is not None:
            config.output.directory = Path(overrides["output_dir"]).expanduser()
        if overrides.get("week_rule") is not None:
            config.projection.week_rule = cls._week_rule(overrides["week_rule"], None)
        if overrides.get("all_branches"):
            config.skip.all_branch_commits = False
        if overrides.get("latest_builds_only"):
            config.builds_per_definition = False
        if overrides.get("timeout") is not None:
            config.timeout_seconds = float(overrides["timeout"])

        if overrides.get("filter") is not None:
            config.repository_filter = RepositoryFilterSpec.parse(
                overrides["filter"], exclude=bool(overrides.get("exclusion"))
            )
        elif overrides.get("exclusion") and config.repository_filter is not None:
            config.repository_filter.exclude = True

    @classmethod
    def validate(cls, config: AnalyzerConfig, config_path: Optional[Path] = None) -> None:
        """Reject configurations that cannot produce a run.

        Raises:
            ConfigurationError: On the first problem found.
        """
        if not config.project_urls:
            raise ConfigurationError(
                "No project URL configured",
                config_path,
                suggestion="Pass --project https://dev.azure.com/<org>/<project>",
            )

        for name, value in vars(config.limits).items():
            if not isinstance(value, int) or value <= 0:
                raise InvalidValueError(f"limits.{name}", value, "must be a positive integer", config_path)

        if config.from_date:
            try:
                parse(config.from_date)
            except (ParserError, OverflowError) as e:
                raise InvalidValueError("from_date", config.from_date, "not a date", config_path) from e

        try:
            resolve_timezone(config.projection.timezone)
        except (KeyError, ValueError) as e:
            # ZoneInfoNotFoundError subclasses KeyError
            raise InvalidValueError(
                "timezone", config.projection.timezone, "unknown timezone", config_path
            ) from e

        if config.repository_filter is not None:
            try:
                config.repository_filter.compile()
            except re.error as e:
                raise InvalidValueError(
                    "repositories.filter", e.pattern, f"invalid regular expression: {e}", config_path
                ) from e

        if not config.token:
            logger.warning(
                f"No access token configured; set --token or {TOKEN_ENV_VAR} for private organizations"
            )
