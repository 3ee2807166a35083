"""Shared fixtures: Azure DevOps API payloads and record factories."""

from __future__ import annotations

from typing import Any

import pytest

from devops_analytics.config.schema import ProjectionSettings
from devops_analytics.models.records import Build, Commit, PullRequest, Push, Repository
from devops_analytics.utils.date_utils import WeekRule

PROJECT_URL = "https://dev.azure.com/contoso/Fabrikam"
COLLECTION_URL = "https://dev.azure.com/contoso"


def repository_payload(
    name: str, default_branch: str | None = "refs/heads/main", is_disabled: bool = False
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": f"id-{name}",
        "name": name,
        "project": {"name": "Fabrikam"},
        "remoteUrl": f"{PROJECT_URL}/_git/{name}",
        "sshUrl": f"git@ssh.dev.azure.com:v3/contoso/Fabrikam/{name}",
        "url": f"{PROJECT_URL}/_apis/git/repositories/id-{name}",
        "webUrl": f"{PROJECT_URL}/_git/{name}",
        "size": 2048,
        "isDisabled": is_disabled,
    }
    if default_branch is not None:
        payload["defaultBranch"] = default_branch
    return payload


def commit_payload(commit_id: str = "abc123", **overrides: Any) -> dict[str, Any]:
    payload = {
        "commitId": commit_id,
        "author": {
            "name": "Ada Lovelace",
            "email": "ada@contoso.com",
            "date": "2024-03-14T09:15:00Z",
        },
        "committer": {
            "name": "Ada Lovelace",
            "email": "ada@contoso.com",
            "date": "2024-03-14T10:30:45Z",
        },
        "changeCounts": {"Add": 3, "Edit": 2, "Delete": 1},
        "comment": "Fix parser",
        "remoteUrl": f"{PROJECT_URL}/_git/alpha-svc/commit/{commit_id}",
    }
    payload.update(overrides)
    return payload


def make_repository(name: str, default_branch: str | None = "refs/heads/main",
                    is_disabled: bool = False) -> Repository:
    return Repository.from_api(repository_payload(name, default_branch, is_disabled))


@pytest.fixture
def utc_settings() -> ProjectionSettings:
    """Projection pinned to UTC and ISO weeks."""
    return ProjectionSettings(timezone="UTC", week_rule=WeekRule.ISO)


@pytest.fixture
def commit() -> Commit:
    record = Commit.from_api(commit_payload())
    record.repository = "alpha-svc"
    record.branch = "main"
    return record


@pytest.fixture
def push() -> Push:
    return Push.from_api(
        {
            "pushId": 42,
            "date": "2024-03-15T23:59:59Z",
            "pushedBy": {"displayName": "Grace Hopper", "uniqueName": "grace@contoso.com"},
            "repository": {"name": "alpha-svc", "remoteUrl": f"{PROJECT_URL}/_git/alpha-svc"},
        }
    )


@pytest.fixture
def build() -> Build:
    return Build.from_api(
        {
            "id": 7,
            "buildNumber": "20240314.1",
            "reason": "individualCI",
            "result": "succeeded",
            "definition": {"id": 3, "name": "alpha-ci"},
            "requestedFor": {"displayName": "Grace Hopper", "uniqueName": "grace@contoso.com"},
            "repository": {"name": "alpha-svc"},
            "queueTime": "2024-03-14T10:00:00Z",
            "startTime": "2024-03-14T10:01:00Z",
            "finishTime": "2024-03-14T10:03:30Z",
        }
    )


@pytest.fixture
def pull_request() -> PullRequest:
    return PullRequest.from_api(
        {
            "pullRequestId": 101,
            "repository": {"name": "alpha-svc"},
            "targetRefName": "refs/heads/main",
            "reviewers": [{"id": "r1"}, {"id": "r2"}],
            "completionOptions": {"mergeStrategy": "squash"},
            "creationDate": "2024-03-11T08:00:00Z",
            "closedDate": "2024-03-13T02:00:00Z",
            "createdBy": {"displayName": "Ada Lovelace", "uniqueName": "ada@contoso.com"},
        }
    )


@pytest.fixture
def repository_factory():
    """Build :class:`Repository` records from names."""
    return make_repository
