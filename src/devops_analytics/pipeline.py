"""Analyzer run: collect every enabled resource kind and write its report."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from .config.schema import AnalyzerConfig
from .core.collector import ResourceCollector
from .core.repository_filter import filter_repositories
from .integrations.azure_devops import AzureDevOpsClient
from .models.records import Build, Team
from .pipeline_types import (
    CollectionResult,
    ProjectRunContext,
    ResourceKind,
    ResourceReport,
    RunSummary,
)
from .reports.csv_writer import CSVSink
from .reports.row_projector import HEADERS, project_lines

logger = logging.getLogger(__name__)


class AnalysisRun:
    """State of one run over all configured project URLs."""

    def __init__(
        self,
        config: AnalyzerConfig,
        client: AzureDevOpsClient,
        sink: CSVSink | None = None,
        progress_callback: Callable[[str], None] | None = None,
        warning_callback: Callable[[str], None] | None = None,
    ) -> None:
        self.config = config
        self.client = client
        self.sink = sink or CSVSink(config.output.directory)
        self.collector = ResourceCollector(
            client,
            config.collection_options(),
            progress_callback=progress_callback,
            warning_callback=warning_callback,
        )
        self.summary = RunSummary()
        self._progress_callback = progress_callback
        self._warning_callback = warning_callback
        self._teams: list[Team] | None = None

    def _emit(self, message: str) -> None:
        if self._progress_callback:
            self._progress_callback(message)

    def _write(
        self, context: ProjectRunContext, result: CollectionResult, scope_url: str
    ) -> ResourceReport:
        """Project and write the records of ``result``, isolating write errors."""
        self.summary.add_collection(result)
        kind = result.kind
        report = ResourceReport(project=context.project_name, kind=kind)
        lines = project_lines(
            kind,
            result.records,
            scope_url,
            self.config.projection,
            internal_identifier=self.config.internal_identifier,
            no_messages=self.config.no_messages,
        )
        path = self.sink.output_path_for(context.file_prefix, kind)
        report.path = path
        try:
            report.rows = self.sink.write(lines, path, HEADERS[kind], context.first_project)
        except OSError as e:
            report.error = str(e)
            logger.error(f"Failed to write {path}: {e}")
            if self._warning_callback:
                self._warning_callback(f"Unable to write {path}: {e}")
        self.summary.reports.append(report)
        return report

    def _collection_base(self, context: ProjectRunContext, collection_url: str) -> None:
        """Projects, teams and team members, written once per run."""
        collector = self.collector
        self._write(context, collector.collect_projects(collection_url), collection_url)

        teams_result = collector.collect_teams(collection_url)
        self._teams = list(teams_result.records)
        self._write(context, teams_result, collection_url)

        members = collector.collect_team_members(collection_url, self._teams)
        self._write(context, members, collection_url)

    def _project_base(self, context: ProjectRunContext) -> None:
        collector = self.collector
        self._write(
            context,
            collector.collect_area_paths(context.project_url, context.project_name),
            context.project_url,
        )

        project_teams = [
            team for team in self._teams or [] if team.project_name == context.project_name
        ]
        self._write(
            context,
            collector.collect_team_area_paths(context.project_url, project_teams),
            context.project_url,
        )

    def run_project(self, context: ProjectRunContext) -> None:
        config = self.config
        skip = config.skip
        collector = self.collector
        project_url = context.project_url

        self._emit(f"Scanning project {context.project_name}")

        if not skip.base:
            collection_url = config.effective_collection_url or project_url
            if context.first_project:
                self._collection_base(context, collection_url)
            self._project_base(context)

        repositories_result = collector.collect_repositories(project_url)
        self._write(context, repositories_result, project_url)
        repositories = filter_repositories(repositories_result.records, config.repository_filter)
        self._emit(f"Analyzing {len(repositories)} repositories in {context.project_name}")

        if not skip.commits:
            self._write(context, collector.collect_commits(project_url, repositories), project_url)

        if not skip.all_branch_commits:
            self._write(
                context,
                collector.collect_commits(project_url, repositories, all_branches=True),
                project_url,
            )

        if not skip.pushes:
            self._write(context, collector.collect_pushes(project_url, repositories), project_url)

        builds: Sequence[Build] = []
        if not skip.builds or not skip.build_artifacts:
            builds_result = collector.collect_builds(project_url, context.project_name)
            builds = builds_result.records
            if not skip.builds:
                self._write(context, builds_result, project_url)
            else:
                self.summary.add_collection(builds_result)

        if not skip.build_artifacts:
            self._write(context, collector.collect_build_artifacts(project_url, builds), project_url)

        if not skip.pull_requests:
            self._write(
                context, collector.collect_pull_requests(project_url, repositories), project_url
            )

    def run(self) -> RunSummary:
        config = self.config
        started = time.monotonic()

        for index, project_url in enumerate(config.project_urls):
            context = ProjectRunContext.create(
                project_url,
                first_project=index == 0,
                multi_project=config.multi_project,
                prefix_override=config.output.prefix,
            )
            self.run_project(context)

        self.summary.elapsed_seconds = time.monotonic() - started
        return self.summary


def run_analysis(
    config: AnalyzerConfig,
    client: AzureDevOpsClient | None = None,
    progress_callback: Callable[[str], None] | None = None,
    warning_callback: Callable[[str], None] | None = None,
    sink: CSVSink | None = None,
) -> RunSummary:
    """Run the analyzer over every configured project.

    Args:
        config: Validated run configuration.
        client: API client to use; one is created (and closed) from
            ``config`` when omitted.
        progress_callback: Receives human-readable progress messages.
        warning_callback: Receives per-call failure messages.
        sink: CSV sink to write through; defaults to one on the output directory.

    Returns:
        Rows written and fetch outcomes for the whole run.
    """
    if client is not None:
        return AnalysisRun(config, client, sink, progress_callback, warning_callback).run()

    with AzureDevOpsClient(token=config.token, timeout=config.timeout_seconds) as owned_client:
        return AnalysisRun(config, owned_client, sink, progress_callback, warning_callback).run()
