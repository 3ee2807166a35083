"""Configuration schema for DevOps Analytics."""

from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from typing import Optional

from ..core.repository_filter import RepositoryFilterSpec
from ..utils.date_utils import WeekRule, resolve_timezone

API_VERSION = "7.0"
TOKEN_ENV_VAR = "AZURE_DEVOPS_TOKEN"
MULTI_PROJECT_PREFIX = "multi"


@dataclass
class CountLimits:
    """Maximum number of records requested per resource kind."""

    commits: int = 100000
    pushes: int = 100000
    builds: int = 5000
    pull_requests: int = 5000


@dataclass
class SkipOptions:
    """Per-resource skip toggles."""

    commits: bool = False
    pushes: bool = False
    builds: bool = True
    build_artifacts: bool = True
    base: bool = True
    pull_requests: bool = False
    all_branch_commits: bool = True


@dataclass
class OutputConfig:
    """Where CSV files are written and how they are named."""

    directory: Path = field(default_factory=Path.cwd)
    prefix: Optional[str] = None


@dataclass
class ProjectionSettings:
    """Pinned locale behaviour for calendar columns."""

    timezone: Optional[str] = None
    week_rule: WeekRule = WeekRule.ISO

    @property
    def tz(self) -> Optional[tzinfo]:
        return resolve_timezone(self.timezone)


@dataclass
class CollectionOptions:
    """Options the resource collector needs for building queries."""

    limits: CountLimits = field(default_factory=CountLimits)
    from_date: Optional[str] = None
    branch: Optional[str] = None
    builds_per_definition: bool = True


@dataclass
class AnalyzerConfig:
    """Complete configuration for one analyzer run."""

    project_urls: list[str] = field(default_factory=list)
    collection_url: Optional[str] = None
    token: Optional[str] = None
    verbose: bool = True
    limits: CountLimits = field(default_factory=CountLimits)
    from_date: Optional[str] = None
    output: OutputConfig = field(default_factory=OutputConfig)
    internal_identifier: Optional[str] = None
    repository_filter: Optional[RepositoryFilterSpec] = None
    skip: SkipOptions = field(default_factory=SkipOptions)
    branch: Optional[str] = None
    no_messages: bool = False
    projection: ProjectionSettings = field(default_factory=ProjectionSettings)
    builds_per_definition: bool = True
    timeout_seconds: float = 30.0
    strict: bool = False

    @property
    def effective_collection_url(self) -> Optional[str]:
        """Collection URL, derived from the first project URL when not set."""
        if self.collection_url:
            return self.collection_url.rstrip("/")
        if not self.project_urls:
            return None
        return self.project_urls[0].rstrip("/").rsplit("/", 1)[0]

    @property
    def multi_project(self) -> bool:
        return len(self.project_urls) > 1

    def collection_options(self) -> CollectionOptions:
        return CollectionOptions(
            limits=self.limits,
            from_date=self.from_date,
            branch=self.branch,
            builds_per_definition=self.builds_per_definition,
        )
