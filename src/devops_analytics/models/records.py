"""Read-only snapshots of Azure DevOps REST resources.

Each record is built from the decoded JSON payload of a single API item via
``from_api``. Nested objects that the API omits map to empty values instead of
raising, so a sparse payload still yields a usable row.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from ..utils.date_utils import parse_api_datetime

REFS_HEADS = "refs/heads/"


def _section(payload: dict[str, Any], key: str) -> dict[str, Any]:
    value = payload.get(key)
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass
class IdentityRef:
    """Display identity attached to pushes, builds and pull requests."""

    display_name: str = ""
    unique_name: str = ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> IdentityRef:
        return cls(
            display_name=_text(payload.get("displayName")),
            unique_name=_text(payload.get("uniqueName")),
        )


@dataclass
class GitUserDate:
    """Author or committer of a commit."""

    name: str = ""
    email: str = ""
    date: datetime | None = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> GitUserDate:
        return cls(
            name=_text(payload.get("name")),
            email=_text(payload.get("email")),
            date=parse_api_datetime(payload.get("date")),
        )


@dataclass
class ChangeCounts:
    add: int = 0
    edit: int = 0
    delete: int = 0

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> ChangeCounts:
        return cls(
            add=int(payload.get("Add", 0) or 0),
            edit=int(payload.get("Edit", 0) or 0),
            delete=int(payload.get("Delete", 0) or 0),
        )


@dataclass
class Project:
    id: str
    name: str

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Project:
        return cls(id=_text(payload.get("id")), name=_text(payload.get("name")))


@dataclass
class Team:
    id: str
    name: str
    project_name: str = ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Team:
        return cls(
            id=_text(payload.get("id")),
            name=_text(payload.get("name")),
            project_name=_text(payload.get("projectName")),
        )


@dataclass
class TeamMember:
    is_team_admin: bool = False
    display_name: str = ""
    unique_name: str = ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> TeamMember:
        identity = IdentityRef.from_api(_section(payload, "identity"))
        return cls(
            is_team_admin=bool(payload.get("isTeamAdmin", False)),
            display_name=identity.display_name,
            unique_name=identity.unique_name,
        )


@dataclass
class TeamFieldValue:
    """One area path entry of a team's field-value settings."""

    value: str
    include_children: bool = False

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> TeamFieldValue:
        return cls(
            value=_text(payload.get("value")),
            include_children=bool(payload.get("includeChildren", False)),
        )


@dataclass
class Repository:
    """A Git repository within a project."""

    id: str
    name: str
    default_branch: str | None = None
    is_disabled: bool = False
    project_name: str = ""
    remote_url: str = ""
    ssh_url: str = ""
    url: str = ""
    web_url: str = ""
    size: int = 0

    @property
    def is_scannable(self) -> bool:
        """Whether time-series resources can be collected for this repository."""
        return bool(self.default_branch) and not self.is_disabled

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Repository:
        return cls(
            id=_text(payload.get("id")),
            name=_text(payload.get("name")),
            default_branch=payload.get("defaultBranch") or None,
            is_disabled=bool(payload.get("isDisabled", False)),
            project_name=_text(_section(payload, "project").get("name")),
            remote_url=_text(payload.get("remoteUrl")),
            ssh_url=_text(payload.get("sshUrl")),
            url=_text(payload.get("url")),
            web_url=_text(payload.get("webUrl")),
            size=int(payload.get("size", 0) or 0),
        )


@dataclass
class ClassificationNode:
    """A node of the area-path classification tree."""

    name: str
    path: str
    children: list[ClassificationNode] = field(default_factory=list)
    has_children: bool = False

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> ClassificationNode:
        children = [cls.from_api(child) for child in payload.get("children") or []]
        return cls(
            name=_text(payload.get("name")),
            path=_text(payload.get("path")),
            children=children,
            has_children=bool(payload.get("hasChildren", bool(children))),
        )


@dataclass
class Commit:
    commit_id: str
    author: GitUserDate
    committer: GitUserDate
    change_counts: ChangeCounts
    comment: str = ""
    remote_url: str = ""
    # Set by the collector; the API does not report them per commit
    repository: str = ""
    branch: str = ""

    @property
    def repository_from_url(self) -> str:
        """Repository name parsed from ``.../<project>/_git/<repository>/commit/<id>``."""
        parts = self.remote_url.split("/")
        if "_git" in parts:
            index = parts.index("_git") + 1
            if index < len(parts):
                return parts[index]
        return ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Commit:
        return cls(
            commit_id=_text(payload.get("commitId")),
            author=GitUserDate.from_api(_section(payload, "author")),
            committer=GitUserDate.from_api(_section(payload, "committer")),
            change_counts=ChangeCounts.from_api(_section(payload, "changeCounts")),
            comment=_text(payload.get("comment")),
            remote_url=_text(payload.get("remoteUrl")),
        )


@dataclass
class Push:
    push_id: str
    date: datetime | None
    pushed_by: IdentityRef
    repository_name: str = ""
    repository_remote_url: str = ""
    branch: str = ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Push:
        repository = _section(payload, "repository")
        return cls(
            push_id=_text(payload.get("pushId")),
            date=parse_api_datetime(payload.get("date")),
            pushed_by=IdentityRef.from_api(_section(payload, "pushedBy")),
            repository_name=_text(repository.get("name")),
            repository_remote_url=_text(repository.get("remoteUrl")),
        )


@dataclass
class Build:
    id: str
    build_number: str
    reason: str = ""
    result: str = ""
    definition_id: str = ""
    definition_name: str = ""
    requested_for: IdentityRef = field(default_factory=IdentityRef)
    repository_name: str = ""
    queue_time: datetime | None = None
    start_time: datetime | None = None
    finish_time: datetime | None = None

    @property
    def duration(self) -> timedelta | None:
        if self.start_time is None or self.finish_time is None:
            return None
        return self.finish_time - self.start_time

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Build:
        definition = _section(payload, "definition")
        return cls(
            id=_text(payload.get("id")),
            build_number=_text(payload.get("buildNumber")),
            reason=_text(payload.get("reason")),
            result=_text(payload.get("result")),
            definition_id=_text(definition.get("id")),
            definition_name=_text(definition.get("name")),
            requested_for=IdentityRef.from_api(_section(payload, "requestedFor")),
            repository_name=_text(_section(payload, "repository").get("name")),
            queue_time=parse_api_datetime(payload.get("queueTime")),
            start_time=parse_api_datetime(payload.get("startTime")),
            finish_time=parse_api_datetime(payload.get("finishTime")),
        )


@dataclass
class BuildArtifact:
    id: str
    name: str
    size: str = ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> BuildArtifact:
        properties = _section(_section(payload, "resource"), "properties")
        return cls(
            id=_text(payload.get("id")),
            name=_text(payload.get("name")),
            size=_text(properties.get("artifactsize")),
        )


@dataclass
class BuildArtifactRecord:
    """An artifact paired with the build that produced it."""

    build: Build
    artifact: BuildArtifact


@dataclass
class PullRequest:
    pull_request_id: str
    repository_name: str = ""
    target_ref_name: str = ""
    reviewer_count: int = 0
    merge_strategy: str | None = None
    creation_date: datetime | None = None
    closed_date: datetime | None = None
    created_by: IdentityRef = field(default_factory=IdentityRef)

    @property
    def duration(self) -> timedelta | None:
        if self.creation_date is None or self.closed_date is None:
            return None
        return self.closed_date - self.creation_date

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> PullRequest:
        completion = _section(payload, "completionOptions")
        return cls(
            pull_request_id=_text(payload.get("pullRequestId")),
            repository_name=_text(_section(payload, "repository").get("name")),
            target_ref_name=_text(payload.get("targetRefName")),
            reviewer_count=len(payload.get("reviewers") or []),
            merge_strategy=completion.get("mergeStrategy"),
            creation_date=parse_api_datetime(payload.get("creationDate")),
            closed_date=parse_api_datetime(payload.get("closedDate")),
            created_by=IdentityRef.from_api(_section(payload, "createdBy")),
        )


@dataclass
class TeamMemberRecord:
    """A member paired with the team it was listed for."""

    team: Team
    member: TeamMember


@dataclass
class TeamAreaPathRecord:
    """An area path assigned to a team."""

    team: Team
    field_value: TeamFieldValue
