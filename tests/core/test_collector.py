"""Tests for the resource collector with a mocked API client."""

from unittest.mock import Mock, call

import pytest

from devops_analytics.config.schema import CollectionOptions, CountLimits
from devops_analytics.core import collector as collector_module
from devops_analytics.core.collector import ResourceCollector, tag_commits
from devops_analytics.integrations.azure_devops import (
    DEFINITION_SCAN_TOP,
    AzureDevOpsAPIError,
    AzureDevOpsClient,
    ResourceUnavailableError,
)
from devops_analytics.models.records import (
    Build,
    ClassificationNode,
    Commit,
    Team,
    TeamFieldValue,
    TeamMember,
)
from devops_analytics.pipeline_types import FetchStatus, ResourceKind

PROJECT_URL = "https://dev.azure.com/contoso/Fabrikam"


def make_commit(commit_id):
    return Commit.from_api({"commitId": commit_id})


@pytest.fixture
def client():
    return Mock(spec=AzureDevOpsClient)


@pytest.fixture
def options():
    return CollectionOptions(limits=CountLimits(commits=10, pushes=20, builds=30, pull_requests=40))


class TestResolveBranch:
    def test_commits_use_bare_default_branch(self, client, options, repository_factory):
        collector = ResourceCollector(client, options)

        assert collector.resolve_branch(repository_factory("a"), ResourceKind.COMMITS) == "main"

    def test_pushes_and_pull_requests_use_full_ref(self, client, options, repository_factory):
        collector = ResourceCollector(client, options)
        repository = repository_factory("a")

        assert collector.resolve_branch(repository, ResourceKind.PUSHES) == "refs/heads/main"
        assert collector.resolve_branch(repository, ResourceKind.PULL_REQUESTS) == "refs/heads/main"

    def test_override_wins_over_default(self, client, options, repository_factory):
        options.branch = "release"
        collector = ResourceCollector(client, options)
        repository = repository_factory("a")

        assert collector.resolve_branch(repository, ResourceKind.COMMITS) == "release"
        assert collector.resolve_branch(repository, ResourceKind.PUSHES) == "refs/heads/release"

    def test_missing_branch_is_rejected(self, client, options, repository_factory):
        collector = ResourceCollector(client, options)
        repository = repository_factory("a", default_branch=None)

        with pytest.raises(ValueError, match="No branch"):
            collector.resolve_branch(repository, ResourceKind.PUSHES)

    def test_override_covers_missing_default(self, client, options, repository_factory):
        options.branch = "refs/heads/release"
        collector = ResourceCollector(client, options)
        repository = repository_factory("a", default_branch=None)

        assert collector.resolve_branch(repository, ResourceKind.COMMITS) == "release"


class TestCollectCommits:
    def test_commits_are_tagged_with_repository_and_branch(self, client, options, repository_factory):
        client.get_commits.return_value = [make_commit("c1"), make_commit("c2")]
        collector = ResourceCollector(client, options)

        result = collector.collect_commits(PROJECT_URL, [repository_factory("alpha-svc")])

        assert [(c.repository, c.branch) for c in result.records] == [("alpha-svc", "main")] * 2
        client.get_commits.assert_called_once_with(
            PROJECT_URL, "alpha-svc", top=10, branch="main", from_date=None
        )
        assert result.outcomes[0].status is FetchStatus.SUCCESS
        assert result.outcomes[0].count == 2

    def test_all_branches_drops_branch_criterion(self, client, options, repository_factory):
        client.get_commits.return_value = [make_commit("c1")]
        collector = ResourceCollector(client, options)

        result = collector.collect_commits(PROJECT_URL, [repository_factory("a")], all_branches=True)

        assert result.kind is ResourceKind.ALL_COMMITS
        assert result.records[0].branch == ""
        assert client.get_commits.call_args.kwargs["branch"] is None

    def test_ineligible_repositories_are_skipped(self, client, options, repository_factory):
        client.get_commits.return_value = []
        repositories = [
            repository_factory("empty", default_branch=None),
            repository_factory("off", is_disabled=True),
            repository_factory("ok"),
        ]
        collector = ResourceCollector(client, options)

        result = collector.collect_commits(PROJECT_URL, repositories)

        assert client.get_commits.call_count == 1
        assert [o.scope for o in result.skipped] == ["empty", "off"]
        assert result.outcomes[-1].status is FetchStatus.EMPTY

    def test_failed_repository_does_not_stop_collection(self, client, options, repository_factory):
        client.get_commits.side_effect = [
            ResourceUnavailableError("No data returned"),
            [make_commit("c1")],
        ]
        warnings = []
        collector = ResourceCollector(client, options, warning_callback=warnings.append)

        result = collector.collect_commits(
            PROJECT_URL, [repository_factory("a"), repository_factory("b")]
        )

        assert len(result.records) == 1
        assert result.records[0].repository == "b"
        assert [o.scope for o in result.failed] == ["a"]
        assert len(warnings) == 1 and "a" in warnings[0]

    def test_large_batches_are_tagged_in_parallel(self, monkeypatch):
        monkeypatch.setattr(collector_module, "PARALLEL_TAG_THRESHOLD", 3)
        commits = [make_commit(str(i)) for i in range(10)]

        tag_commits(commits, "repo", "dev")

        assert {(c.repository, c.branch) for c in commits} == {("repo", "dev")}


class TestCollectPushesAndPullRequests:
    def test_pushes_carry_full_ref(self, client, options, repository_factory):
        push = Mock(branch="")
        client.get_pushes.return_value = [push]
        collector = ResourceCollector(client, options)

        result = collector.collect_pushes(PROJECT_URL, [repository_factory("a")])

        assert result.records == [push]
        assert push.branch == "refs/heads/main"
        client.get_pushes.assert_called_once_with(
            PROJECT_URL, "a", top=20, ref_name="refs/heads/main", from_date=None
        )

    def test_pull_requests_target_full_ref(self, client, options, repository_factory):
        client.get_pull_requests.return_value = []
        collector = ResourceCollector(client, options)

        result = collector.collect_pull_requests(PROJECT_URL, [repository_factory("a")])

        client.get_pull_requests.assert_called_once_with(
            PROJECT_URL, "a", target_ref_name="refs/heads/main", top=40
        )
        assert result.outcomes[0].status is FetchStatus.EMPTY


class TestCollectBuilds:
    def test_latest_builds_only_issues_single_query(self, client, options):
        options.builds_per_definition = False
        client.get_builds.return_value = [Build(id="1", build_number="1")]
        collector = ResourceCollector(client, options)

        result = collector.collect_builds(PROJECT_URL, "Fabrikam")

        assert len(result.records) == 1
        client.get_builds.assert_called_once_with(PROJECT_URL, top=30, from_date=None)

    def test_per_definition_queries(self, client, options):
        latest = [
            Build(id="9", build_number="9", definition_id="1", definition_name="ci"),
            Build(id="8", build_number="8", definition_id="2", definition_name="nightly"),
        ]
        client.get_builds.side_effect = [
            latest,
            [Build(id="9", build_number="9"), Build(id="5", build_number="5")],
            AzureDevOpsAPIError("timeout"),
        ]
        collector = ResourceCollector(client, options)

        result = collector.collect_builds(PROJECT_URL, "Fabrikam")

        assert [b.id for b in result.records] == ["9", "5"]
        assert client.get_builds.call_args_list == [
            call(PROJECT_URL, top=DEFINITION_SCAN_TOP, from_date=None, max_per_definition=1),
            call(PROJECT_URL, top=30, from_date=None, definition_id="1"),
            call(PROJECT_URL, top=30, from_date=None, definition_id="2"),
        ]
        assert [o.scope for o in result.failed] == ["definition nightly"]

    def test_artifacts_paired_with_builds(self, client, options):
        build = Build(id="7", build_number="20240314.1")
        artifact = Mock()
        client.get_build_artifacts.return_value = [artifact]
        collector = ResourceCollector(client, options)

        result = collector.collect_build_artifacts(PROJECT_URL, [build])

        assert result.records[0].build is build
        assert result.records[0].artifact is artifact
        client.get_build_artifacts.assert_called_once_with(PROJECT_URL, "7")


class TestCollectBaseResources:
    def test_team_members_keep_team_context(self, client, options):
        team = Team(id="t1", name="Core", project_name="Fabrikam")
        client.get_team_members.return_value = [TeamMember(True, "Ada", "ada@contoso.com")]
        collector = ResourceCollector(client, options)

        result = collector.collect_team_members("https://dev.azure.com/contoso", [team])

        assert result.records[0].team is team
        assert result.records[0].member.is_team_admin is True

    def test_area_paths_are_flattened(self, client, options):
        client.get_area_paths.return_value = ClassificationNode(
            name="Fabrikam",
            path="\\Fabrikam\\Area",
            children=[ClassificationNode(name="Web", path="\\Fabrikam\\Area\\Web")],
        )
        collector = ResourceCollector(client, options)

        result = collector.collect_area_paths(PROJECT_URL, "Fabrikam")

        assert [row.area_path for row in result.records] == ["Fabrikam", "Fabrikam\\Web"]

    def test_team_area_paths(self, client, options):
        team = Team(id="t1", name="Core", project_name="Fabrikam")
        client.get_team_field_values.return_value = [TeamFieldValue("Fabrikam\\Core", True)]
        collector = ResourceCollector(client, options)

        result = collector.collect_team_area_paths(PROJECT_URL, [team])

        client.get_team_field_values.assert_called_once_with(PROJECT_URL, "Core")
        assert result.records[0].field_value.include_children is True

    def test_projects_failure_is_recorded(self, client, options):
        client.get_projects.side_effect = AzureDevOpsAPIError("boom")
        collector = ResourceCollector(client, options)

        result = collector.collect_projects("https://dev.azure.com/contoso")

        assert result.records == []
        assert result.failed[0].reason == "boom"
