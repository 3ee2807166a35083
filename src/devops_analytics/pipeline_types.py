"""Shared result types for the DevOps Analytics pipeline."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .config.schema import MULTI_PROJECT_PREFIX


class ResourceKind(str, Enum):
    """Resource kinds collected; values are the CSV file name suffixes."""

    PROJECTS = "projects"
    TEAMS = "teams"
    TEAM_MEMBERS = "teammembers"
    REPOSITORIES = "repositories"
    AREA_PATHS = "areapaths"
    TEAM_AREA_PATHS = "teamareapaths"
    COMMITS = "commits"
    ALL_COMMITS = "allcommits"
    PUSHES = "pushes"
    BUILDS = "builds"
    BUILD_ARTIFACTS = "buildartifacts"
    PULL_REQUESTS = "pullrequests"


class FetchStatus(str, Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class FetchOutcome:
    """Result of one collection step for one scope (repository, build, team...)."""

    kind: ResourceKind
    scope: str
    status: FetchStatus
    count: int = 0
    reason: str = ""


@dataclass
class CollectionResult:
    """Records gathered for a resource kind plus the outcome of every call."""

    kind: ResourceKind
    records: list[Any] = field(default_factory=list)
    outcomes: list[FetchOutcome] = field(default_factory=list)

    def record(
        self, scope: str, status: FetchStatus, count: int = 0, reason: str = ""
    ) -> FetchOutcome:
        outcome = FetchOutcome(self.kind, scope, status, count, reason)
        self.outcomes.append(outcome)
        return outcome

    @property
    def failed(self) -> list[FetchOutcome]:
        return [o for o in self.outcomes if o.status is FetchStatus.FAILED]

    @property
    def skipped(self) -> list[FetchOutcome]:
        return [o for o in self.outcomes if o.status is FetchStatus.SKIPPED]


@dataclass
class ProjectRunContext:
    """Per-project state for one scanned project URL."""

    project_url: str
    project_name: str
    file_prefix: str
    first_project: bool

    @classmethod
    def create(
        cls,
        project_url: str,
        first_project: bool,
        multi_project: bool,
        prefix_override: str | None = None,
    ) -> ProjectRunContext:
        project_name = project_url.rstrip("/").rsplit("/", 1)[-1]
        if prefix_override:
            prefix = prefix_override
        elif multi_project:
            prefix = MULTI_PROJECT_PREFIX
        else:
            prefix = project_name
        return cls(project_url.rstrip("/"), project_name, prefix, first_project)


@dataclass
class ResourceReport:
    """What was written for one resource kind of one project."""

    project: str
    kind: ResourceKind
    rows: int = 0
    path: Path | None = None
    error: str | None = None


@dataclass
class RunSummary:
    """Outcome of a whole analyzer run."""

    reports: list[ResourceReport] = field(default_factory=list)
    outcomes: list[FetchOutcome] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    def add_collection(self, result: CollectionResult) -> None:
        self.outcomes.extend(result.outcomes)

    @property
    def write_errors(self) -> list[ResourceReport]:
        return [report for report in self.reports if report.error]

    @property
    def failure_count(self) -> int:
        failed = sum(1 for o in self.outcomes if o.status is FetchStatus.FAILED)
        return failed + len(self.write_errors)

    @property
    def has_failures(self) -> bool:
        return self.failure_count > 0

    @property
    def written_files(self) -> list[Path]:
        seen: list[Path] = []
        for report in self.reports:
            if report.path is not None and report.error is None and report.path not in seen:
                seen.append(report.path)
        return seen

    def rows_by_kind(self) -> dict[ResourceKind, int]:
        totals: Counter[ResourceKind] = Counter()
        for report in self.reports:
            totals[report.kind] += report.rows
        return dict(totals)

    def status_counts(self, kind: ResourceKind) -> Counter[FetchStatus]:
        return Counter(o.status for o in self.outcomes if o.kind is kind)
