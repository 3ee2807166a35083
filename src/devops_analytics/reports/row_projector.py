"""Projection of collected records into CSV rows.

Each ``project_<kind>`` function maps one record to the ordered cells of its
report, matching ``HEADERS[kind]``. Calendar columns are derived in the
configured reporting timezone and week rule so that output does not depend on
the host locale.
"""

import csv
import io
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..config.schema import ProjectionSettings
from ..core.area_paths import AreaPathRow
from ..models.records import (
    Build,
    BuildArtifactRecord,
    Commit,
    Project,
    PullRequest,
    Push,
    Repository,
    Team,
    TeamAreaPathRecord,
    TeamMemberRecord,
)
from ..pipeline_types import ResourceKind
from ..utils.date_utils import format_timestamp, to_local, week_of_year

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

CALENDAR_COLUMNS = ["year", "month", "day", "dayofweek", "weekofyear", "hour"]

COMMIT_HEADER = [
    "projecturl", "repository", "branch", "isinternal",
    "authordate", "authoremail", "authorname",
    "add", "delete", "edit", "commitid", "committerdate",
    *CALENDAR_COLUMNS,
    "committeremail", "committername", "remoteurl", "comment",
]

HEADERS: dict[ResourceKind, list[str]] = {
    ResourceKind.PROJECTS: ["collectionurl", "id", "name"],
    ResourceKind.TEAMS: ["collectionurl", "teamid", "teamname", "projectName"],
    ResourceKind.TEAM_MEMBERS: [
        "collectionurl", "projectName", "teamname", "isTeamAdmin", "displayName", "uniqueName",
    ],
    ResourceKind.REPOSITORIES: [
        "projecturl", "defaultBranch", "id", "name", "project",
        "remoteUrl", "sshUrl", "url", "webUrl", "size", "isDisabled",
    ],
    ResourceKind.AREA_PATHS: ["projecturl", "areapath", "name"],
    ResourceKind.TEAM_AREA_PATHS: ["projecturl", "teamname", "areapath", "includechildren"],
    ResourceKind.COMMITS: COMMIT_HEADER,
    ResourceKind.ALL_COMMITS: COMMIT_HEADER,
    ResourceKind.PUSHES: [
        "projecturl", "repository", "branch", "pushid", "pushdate",
        *CALENDAR_COLUMNS,
        "uniquename", "displayname", "remoteurl",
    ],
    ResourceKind.BUILDS: [
        "projecturl", "id", "reason", "buildNumber", "definition", "result",
        "requestedfor", "uniqueName", "repository", "starttime",
        *CALENDAR_COLUMNS,
        "finishtime", "queuetime", "totalminutes",
    ],
    ResourceKind.BUILD_ARTIFACTS: [
        "projecturl", "buildid", "buildNumber", "definition",
        "artifactid", "artifactname", "artifactsize",
    ],
    ResourceKind.PULL_REQUESTS: [
        "projecturl", "id", "repository", "targetrefname", "reviewercount",
        "mergestrategy", "creationdate", "closeddate", "createdby", "uniqueName",
        *CALENDAR_COLUMNS,
        "totalhours", "totaldays",
    ],
}


@dataclass(frozen=True)
class CalendarFields:
    """Calendar breakdown of a timestamp in the reporting timezone."""

    year: str = ""
    month: str = ""
    day: str = ""
    day_of_week: str = ""
    week_of_year: str = ""
    hour: str = ""

    @classmethod
    def from_timestamp(
        cls, value: Optional[datetime], settings: ProjectionSettings
    ) -> "CalendarFields":
        if value is None:
            return cls()
        local = to_local(value, settings.tz)
        return cls(
            year=str(local.year),
            month=str(local.month),
            day=str(local.day),
            day_of_week=DAY_NAMES[local.weekday()],
            week_of_year=str(week_of_year(local, settings.week_rule)),
            hour=str(local.hour),
        )

    def cells(self) -> list[str]:
        return [self.year, self.month, self.day, self.day_of_week, self.week_of_year, self.hour]


def is_internal(email: str, identifier: Optional[str]) -> bool:
    """Whether ``email`` belongs to the organisation named by ``identifier``.

    Without an identifier every author counts as internal.
    """
    if not identifier:
        return True
    return identifier.casefold() in (email or "").casefold()


def render_bool(value: bool) -> str:
    return "true" if value else "false"


def render_whole(value: Optional[float]) -> str:
    """Round half away from zero to a whole number, empty when missing."""
    if value is None:
        return ""
    return str(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _total(duration: Optional[timedelta], unit: timedelta) -> Optional[float]:
    if duration is None:
        return None
    return duration / unit


def to_csv_line(cells: Sequence[object]) -> str:
    """Render one CSV line (without terminator) using standard escaping."""
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(["" if c is None else c for c in cells])
    return buffer.getvalue().rstrip("\n")


# Per-kind projections


def project_project(record: Project, collection_url: str) -> list[str]:
    return [collection_url, record.id, record.name]


def project_team(record: Team, collection_url: str) -> list[str]:
    return [collection_url, record.id, record.name, record.project_name]


def project_team_member(record: TeamMemberRecord, collection_url: str) -> list[str]:
    member = record.member
    return [
        collection_url,
        record.team.project_name,
        record.team.name,
        render_bool(member.is_team_admin),
        member.display_name,
        member.unique_name,
    ]


def project_repository(record: Repository, project_url: str) -> list[str]:
    return [
        project_url,
        record.default_branch or "",
        record.id,
        record.name,
        record.project_name,
        record.remote_url,
        record.ssh_url,
        record.url,
        record.web_url,
        str(record.size),
        render_bool(record.is_disabled),
    ]


def project_area_path(record: AreaPathRow) -> list[str]:
    return [record.project_url, record.area_path, record.name]


def project_team_area_path(record: TeamAreaPathRecord, project_url: str) -> list[str]:
    return [
        project_url,
        record.team.name,
        record.field_value.value,
        render_bool(record.field_value.include_children),
    ]


def project_commit(
    record: Commit,
    project_url: str,
    settings: ProjectionSettings,
    internal_identifier: Optional[str] = None,
    no_messages: bool = False,
) -> list[str]:
    tz = settings.tz
    author = record.author
    committer = record.committer
    calendar = CalendarFields.from_timestamp(committer.date, settings)
    return [
        project_url,
        record.repository or record.repository_from_url,
        record.branch,
        render_bool(is_internal(committer.email, internal_identifier)),
        format_timestamp(author.date, tz),
        author.email,
        author.name,
        str(record.change_counts.add),
        str(record.change_counts.delete),
        str(record.change_counts.edit),
        record.commit_id,
        format_timestamp(committer.date, tz),
        *calendar.cells(),
        committer.email,
        committer.name,
        record.remote_url,
        "" if no_messages else record.comment,
    ]


def project_push(record: Push, project_url: str, settings: ProjectionSettings) -> list[str]:
    calendar = CalendarFields.from_timestamp(record.date, settings)
    return [
        project_url,
        record.repository_name,
        record.branch,
        record.push_id,
        format_timestamp(record.date, settings.tz),
        *calendar.cells(),
        record.pushed_by.unique_name,
        record.pushed_by.display_name,
        record.repository_remote_url,
    ]


def project_build(record: Build, project_url: str, settings: ProjectionSettings) -> list[str]:
    tz = settings.tz
    calendar = CalendarFields.from_timestamp(record.start_time, settings)
    return [
        project_url,
        record.id,
        record.reason,
        record.build_number,
        record.definition_name,
        record.result,
        record.requested_for.display_name,
        record.requested_for.unique_name,
        record.repository_name,
        format_timestamp(record.start_time, tz),
        *calendar.cells(),
        format_timestamp(record.finish_time, tz),
        format_timestamp(record.queue_time, tz),
        render_whole(_total(record.duration, timedelta(minutes=1))),
    ]


def project_build_artifact(record: BuildArtifactRecord, project_url: str) -> list[str]:
    build = record.build
    artifact = record.artifact
    return [
        project_url,
        build.id,
        build.build_number,
        build.definition_name,
        artifact.id,
        artifact.name,
        artifact.size,
    ]


def project_pull_request(
    record: PullRequest, project_url: str, settings: ProjectionSettings
) -> list[str]:
    tz = settings.tz
    calendar = CalendarFields.from_timestamp(record.creation_date, settings)
    return [
        project_url,
        record.pull_request_id,
        record.repository_name,
        record.target_ref_name,
        str(record.reviewer_count),
        record.merge_strategy or "",
        format_timestamp(record.creation_date, tz),
        format_timestamp(record.closed_date, tz),
        record.created_by.display_name,
        record.created_by.unique_name,
        *calendar.cells(),
        render_whole(_total(record.duration, timedelta(hours=1))),
        render_whole(_total(record.duration, timedelta(days=1))),
    ]


def project_lines(
    kind: ResourceKind,
    records: Iterable[object],
    scope_url: str,
    settings: ProjectionSettings,
    internal_identifier: Optional[str] = None,
    no_messages: bool = False,
) -> list[str]:
    """Project ``records`` of ``kind`` into escaped CSV lines.

    Args:
        scope_url: Collection URL for collection-level kinds, project URL
            otherwise.
    """
    if kind in (ResourceKind.COMMITS, ResourceKind.ALL_COMMITS):
        rows = (
            project_commit(r, scope_url, settings, internal_identifier, no_messages)
            for r in records
        )
    elif kind is ResourceKind.PUSHES:
        rows = (project_push(r, scope_url, settings) for r in records)
    elif kind is ResourceKind.BUILDS:
        rows = (project_build(r, scope_url, settings) for r in records)
    elif kind is ResourceKind.PULL_REQUESTS:
        rows = (project_pull_request(r, scope_url, settings) for r in records)
    elif kind is ResourceKind.AREA_PATHS:
        rows = (project_area_path(r) for r in records)
    else:
        projector = {
            ResourceKind.PROJECTS: project_project,
            ResourceKind.TEAMS: project_team,
            ResourceKind.TEAM_MEMBERS: project_team_member,
            ResourceKind.REPOSITORIES: project_repository,
            ResourceKind.TEAM_AREA_PATHS: project_team_area_path,
            ResourceKind.BUILD_ARTIFACTS: project_build_artifact,
        }[kind]
        rows = (projector(r, scope_url) for r in records)

    return [to_csv_line(row) for row in rows]
