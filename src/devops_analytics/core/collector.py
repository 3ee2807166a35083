"""Per-repository, per-resource-kind retrieval from Azure DevOps.

Every API call is attempted once. A failing call becomes a ``failed``
:class:`FetchOutcome` on the returned :class:`CollectionResult` and
collection moves on to the next scope, so one bad repository never aborts a
run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from requests.exceptions import RequestException

from ..config.schema import CollectionOptions
from ..integrations.azure_devops import DEFINITION_SCAN_TOP, AzureDevOpsAPIError, AzureDevOpsClient
from ..models.records import (
    REFS_HEADS,
    Build,
    BuildArtifactRecord,
    Commit,
    Repository,
    Team,
    TeamAreaPathRecord,
    TeamMemberRecord,
)
from ..pipeline_types import CollectionResult, FetchStatus, ResourceKind
from .area_paths import flatten_area_paths

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Batches larger than this are tagged on a thread pool
PARALLEL_TAG_THRESHOLD = 5000

COLLECTION_ERRORS = (AzureDevOpsAPIError, RequestException, ValueError, KeyError, TypeError)


def strip_refs_heads(branch: str) -> str:
    return branch[len(REFS_HEADS):] if branch.startswith(REFS_HEADS) else branch


def full_ref(branch: str) -> str:
    return branch if branch.startswith(REFS_HEADS) else f"{REFS_HEADS}{branch}"


def tag_commits(commits: list[Commit], repository: str, branch: str) -> None:
    """Attach the repository name and scanned branch to each commit in place."""

    def _tag(commit: Commit) -> None:
        commit.repository = repository
        commit.branch = branch

    if len(commits) > PARALLEL_TAG_THRESHOLD:
        with ThreadPoolExecutor() as executor:
            list(executor.map(_tag, commits))
    else:
        for commit in commits:
            _tag(commit)


class ResourceCollector:
    """Fetch raw records for each resource kind with failure isolation."""

    def __init__(
        self,
        client: AzureDevOpsClient,
        options: CollectionOptions,
        progress_callback: Callable[[str], None] | None = None,
        warning_callback: Callable[[str], None] | None = None,
    ) -> None:
        self.client = client
        self.options = options
        self._progress_callback = progress_callback
        self._warning_callback = warning_callback

    def _emit(self, message: str) -> None:
        logger.info(message)
        if self._progress_callback:
            self._progress_callback(message)

    def _warn(self, message: str) -> None:
        logger.warning(message)
        if self._warning_callback:
            self._warning_callback(message)

    def _fetch(
        self, result: CollectionResult, scope: str, fetch: Callable[[], list[T]]
    ) -> list[T] | None:
        """Run one API call, recording its outcome on ``result``.

        Returns:
            The fetched records, or None when the call failed.
        """
        try:
            records = fetch()
        except COLLECTION_ERRORS as e:
            self._warn(f"Unable to retrieve {result.kind.value} from {scope}: {e}")
            result.record(scope, FetchStatus.FAILED, reason=str(e))
            return None

        status = FetchStatus.SUCCESS if records else FetchStatus.EMPTY
        result.record(scope, status, count=len(records))
        return records

    def _eligible(
        self, result: CollectionResult, repositories: Iterable[Repository]
    ) -> list[Repository]:
        eligible = []
        for repository in repositories:
            if repository.is_scannable:
                eligible.append(repository)
                continue
            reason = "disabled" if repository.is_disabled else "no default branch"
            logger.debug(f"Skipping {repository.name} for {result.kind.value}: {reason}")
            result.record(repository.name, FetchStatus.SKIPPED, reason=reason)
        return eligible

    def resolve_branch(self, repository: Repository, kind: ResourceKind) -> str:
        """Branch to scan for ``repository``.

        An explicit branch override wins over the repository default. Commits
        are queried by bare branch name, pushes and pull requests by full ref.

        Raises:
            ValueError: If there is neither an override nor a default branch.
        """
        branch = self.options.branch or repository.default_branch
        if not branch:
            raise ValueError(f"No branch to scan for repository {repository.name}")
        if kind in (ResourceKind.COMMITS, ResourceKind.ALL_COMMITS):
            return strip_refs_heads(branch)
        return full_ref(branch)

    # Collection level

    def collect_projects(self, collection_url: str) -> CollectionResult:
        result = CollectionResult(ResourceKind.PROJECTS)
        self._emit(f"Retrieving Projects from {collection_url}")
        projects = self._fetch(result, collection_url, lambda: self.client.get_projects(collection_url))
        if projects:
            result.records.extend(projects)
            self._emit(f"\tRetrieved {len(projects)} projects from {collection_url}")
        return result

    def collect_teams(self, collection_url: str) -> CollectionResult:
        result = CollectionResult(ResourceKind.TEAMS)
        self._emit(f"Retrieving Teams from {collection_url}")
        teams = self._fetch(result, collection_url, lambda: self.client.get_teams(collection_url))
        if teams:
            result.records.extend(teams)
            self._emit(f"\tRetrieved {len(teams)} teams from {collection_url}")
        return result

    def collect_team_members(self, collection_url: str, teams: Iterable[Team]) -> CollectionResult:
        result = CollectionResult(ResourceKind.TEAM_MEMBERS)
        for team in teams:
            self._emit(f"Retrieving Team members for {team.name}")
            members = self._fetch(
                result,
                f"{team.project_name}/{team.name}",
                lambda team=team: self.client.get_team_members(collection_url, team),
            )
            if members:
                result.records.extend(TeamMemberRecord(team, member) for member in members)
                self._emit(
                    f"\tRetrieved {len(members)} team members from {team.name} in {team.project_name}"
                )
        return result

    # Project level

    def collect_repositories(self, project_url: str) -> CollectionResult:
        result = CollectionResult(ResourceKind.REPOSITORIES)
        repositories = self._fetch(
            result, project_url, lambda: self.client.get_repositories(project_url)
        )
        if repositories:
            result.records.extend(repositories)
        return result

    def collect_area_paths(self, project_url: str, project_name: str) -> CollectionResult:
        result = CollectionResult(ResourceKind.AREA_PATHS)
        self._emit(f"Retrieving Area Paths from {project_name}")
        rows = self._fetch(
            result,
            project_name,
            lambda: list(
                flatten_area_paths(
                    self.client.get_area_paths(project_url), project_url, project_name
                )
            ),
        )
        if rows:
            result.records.extend(rows)
        return result

    def collect_team_area_paths(self, project_url: str, teams: Iterable[Team]) -> CollectionResult:
        result = CollectionResult(ResourceKind.TEAM_AREA_PATHS)
        for team in teams:
            self._emit(f"Retrieving Area Paths for {team.name}")
            values = self._fetch(
                result,
                team.name,
                lambda team=team: self.client.get_team_field_values(project_url, team.name),
            )
            if values:
                result.records.extend(TeamAreaPathRecord(team, value) for value in values)
        return result

    def collect_commits(
        self, project_url: str, repositories: Iterable[Repository], all_branches: bool = False
    ) -> CollectionResult:
        """Collect commits of each eligible repository.

        With ``all_branches`` the branch criterion is dropped and records carry
        an empty branch tag.
        """
        kind = ResourceKind.ALL_COMMITS if all_branches else ResourceKind.COMMITS
        result = CollectionResult(kind)
        limits = self.options.limits

        for repository in self._eligible(result, repositories):
            branch = "" if all_branches else self.resolve_branch(repository, kind)
            label = branch or "all branches"
            commits = self._fetch(
                result,
                repository.name,
                lambda repository=repository, branch=branch: self.client.get_commits(
                    project_url,
                    repository.name,
                    top=limits.commits,
                    branch=branch or None,
                    from_date=self.options.from_date,
                ),
            )
            if commits is None:
                continue

            tag_commits(commits, repository.name, branch)
            result.records.extend(commits)
            self._emit(f"Retrieved {len(commits)} commits from {repository.name} ({label})")

        return result

    def collect_pushes(self, project_url: str, repositories: Iterable[Repository]) -> CollectionResult:
        result = CollectionResult(ResourceKind.PUSHES)
        limits = self.options.limits

        for repository in self._eligible(result, repositories):
            ref_name = self.resolve_branch(repository, ResourceKind.PUSHES)
            pushes = self._fetch(
                result,
                repository.name,
                lambda repository=repository, ref_name=ref_name: self.client.get_pushes(
                    project_url,
                    repository.name,
                    top=limits.pushes,
                    ref_name=ref_name,
                    from_date=self.options.from_date,
                ),
            )
            if pushes is None:
                continue

            for push in pushes:
                push.branch = ref_name
            result.records.extend(pushes)
            self._emit(f"Retrieved {len(pushes)} pushes from {repository.name} ({ref_name})")

        return result

    def collect_builds(self, project_url: str, project_name: str = "") -> CollectionResult:
        """Collect builds for the whole project.

        By default the latest run of every definition is listed first and each
        definition is then queried for its history, which reaches past the
        most-recent-per-definition snapshot.
        """
        result = CollectionResult(ResourceKind.BUILDS)
        limits = self.options.limits
        from_date = self.options.from_date
        scope = project_name or project_url

        if not self.options.builds_per_definition:
            self._emit(f"Retrieving {limits.builds} most recent Builds from {scope}")
            builds = self._fetch(
                result,
                scope,
                lambda: self.client.get_builds(project_url, top=limits.builds, from_date=from_date),
            )
            if builds:
                result.records.extend(builds)
            return result

        self._emit(f"Retrieving build definitions with runs from {scope}")
        latest = self._fetch(
            result,
            f"{scope} (latest per definition)",
            lambda: self.client.get_builds(
                project_url, top=DEFINITION_SCAN_TOP, from_date=from_date, max_per_definition=1
            ),
        )
        if not latest:
            return result

        self._emit(f"\tRetrieved {len(latest)} distinct build definition runs")
        for index, definition_run in enumerate(latest, 1):
            builds = self._fetch(
                result,
                f"definition {definition_run.definition_name}",
                lambda run=definition_run: self.client.get_builds(
                    project_url, top=limits.builds, from_date=from_date, definition_id=run.definition_id
                ),
            )
            if builds is None:
                continue
            result.records.extend(builds)
            self._emit(
                f"Retrieved {len(builds)} builds. Build Definition "
                f"{definition_run.definition_name} - {index} of {len(latest)}"
            )

        return result

    def collect_build_artifacts(self, project_url: str, builds: Iterable[Build]) -> CollectionResult:
        """Fetch the artifact list of every build (one call per build)."""
        result = CollectionResult(ResourceKind.BUILD_ARTIFACTS)
        self._emit("Iterating Build artifacts")
        for build in builds:
            artifacts = self._fetch(
                result,
                f"build {build.build_number or build.id}",
                lambda build=build: self.client.get_build_artifacts(project_url, build.id),
            )
            if artifacts:
                result.records.extend(BuildArtifactRecord(build, artifact) for artifact in artifacts)
        return result

    def collect_pull_requests(
        self, project_url: str, repositories: Iterable[Repository]
    ) -> CollectionResult:
        result = CollectionResult(ResourceKind.PULL_REQUESTS)
        limits = self.options.limits

        for repository in self._eligible(result, repositories):
            target = self.resolve_branch(repository, ResourceKind.PULL_REQUESTS)
            pull_requests = self._fetch(
                result,
                repository.name,
                lambda repository=repository, target=target: self.client.get_pull_requests(
                    project_url, repository.name, target_ref_name=target, top=limits.pull_requests
                ),
            )
            if pull_requests is None:
                continue

            result.records.extend(pull_requests)
            self._emit(f"Retrieved {len(pull_requests)} pull requests from {repository.name}")

        return result


