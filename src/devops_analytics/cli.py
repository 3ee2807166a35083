"""Command-line interface for DevOps Analytics."""

import sys
from pathlib import Path
from typing import Any, Optional

import click

from ._version import __version__
from .cli_utils import setup_logging
from .config import ConfigLoader, ConfigurationError
from .pipeline import run_analysis
from .ui.console import ConsoleDisplay
from .utils.date_utils import WeekRule

EXIT_CONFIGURATION_ERROR = 1
EXIT_FAILURES = 2


class AnalyzeAsDefaultGroup(click.Group):
    """
    Custom Click group that routes bare options to the analyze command.
    This allows 'devops-analytics -u <url>' to work like 'devops-analytics analyze -u <url>'
    """

    def parse_args(self, ctx, args):
        if args and args[0] in self.list_commands(ctx):
            return super().parse_args(ctx, args)

        global_options = {"--version", "--help", "-h"}
        if args and args[0] in global_options:
            return super().parse_args(ctx, args)

        if args and args[0].startswith("-"):
            return super().parse_args(ctx, ["analyze"] + args)

        return super().parse_args(ctx, args)


@click.group(cls=AnalyzeAsDefaultGroup, invoke_without_command=True)
@click.version_option(version=__version__, prog_name="DevOps Analytics")
@click.help_option("-h", "--help")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """DevOps Analytics - Export Azure DevOps activity to CSV.

    If no subcommand is provided, the analyze command will be executed by default.
    You can use analysis options directly: devops-analytics -u https://dev.azure.com/org/project
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


@cli.command(name="analyze")
@click.option(
    "--project",
    "-u",
    help="Project URL(s), comma separated (e.g. https://dev.azure.com/org/project)",
)
@click.option("--collection", "-x", help="Collection URL (default: derived from the first project URL)")
@click.option("--token", "-t", help="Personal access token (default: $AZURE_DEVOPS_TOKEN)")
@click.option(
    "--verbose/--quiet", "-v", default=None, help="Print progress messages (default: verbose)"
)
@click.option("--commitcount", "-c", "commit_count", type=int, help="Maximum commits per repository")
@click.option("--pushcount", "-p", "push_count", type=int, help="Maximum pushes per repository")
@click.option("--buildcount", "-b", "build_count", type=int, help="Maximum builds per query")
@click.option(
    "--pullrequestcount", "-g", "pull_request_count", type=int,
    help="Maximum pull requests per repository",
)
@click.option("--fromdate", "-d", "from_date", help="Only fetch records on or after this date")
@click.option("--output", "-o", "output_prefix", help="File name prefix (default: project name)")
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for CSV files (default: current directory)",
)
@click.option(
    "--identifier", "-i",
    help="Substring of committer emails that marks a commit as internal",
)
@click.option("--filter", "-f", "filter_", help="Comma-separated repository name regexes")
@click.option(
    "--exclusion", "-e", is_flag=True, help="Treat --filter patterns as exclusions"
)
@click.option("--skipcommits", "-n", "skip_commits", is_flag=True, help="Skip commits")
@click.option("--skippushes", "-m", "skip_pushes", is_flag=True, help="Skip pushes")
@click.option(
    "--skipbuilds/--builds", "-s", "skip_builds", default=None,
    help="Skip builds (default: skipped)",
)
@click.option(
    "--skipbuildartifacts/--buildartifacts", "-w", "skip_build_artifacts", default=None,
    help="Skip build artifacts (default: skipped)",
)
@click.option(
    "--skipbase/--base", "-a", "skip_base", default=None,
    help="Skip projects, teams, members and area paths (default: skipped)",
)
@click.option(
    "--skippullrequests", "-k", "skip_pull_requests", is_flag=True, help="Skip pull requests"
)
@click.option("--allbranches", "all_branches", is_flag=True, help="Also export commits of all branches")
@click.option("--branch", "-r", help="Branch to scan instead of each repository's default")
@click.option(
    "--nomessages", "-l", "no_messages", is_flag=True, help="Leave commit messages out of reports"
)
@click.option("--timezone", help="Timezone for calendar columns (default: local)")
@click.option(
    "--week-rule",
    type=click.Choice([rule.value for rule in WeekRule]),
    help="Week numbering for the weekofyear column (default: iso)",
)
@click.option(
    "--latest-builds-only", is_flag=True,
    help="Fetch builds with one query instead of once per build definition",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to YAML configuration file",
)
@click.option(
    "--log",
    type=click.Choice(["none", "INFO", "DEBUG"], case_sensitive=False),
    default="none",
    help="Enable logging with specified level (default: none)",
)
@click.option("--strict", is_flag=True, help="Exit with status 2 when any call or write failed")
def analyze(
    project: Optional[str],
    collection: Optional[str],
    token: Optional[str],
    verbose: Optional[bool],
    commit_count: Optional[int],
    push_count: Optional[int],
    build_count: Optional[int],
    pull_request_count: Optional[int],
    from_date: Optional[str],
    output_prefix: Optional[str],
    output_dir: Optional[Path],
    identifier: Optional[str],
    filter_: Optional[str],
    exclusion: bool,
    skip_commits: bool,
    skip_pushes: bool,
    skip_builds: Optional[bool],
    skip_build_artifacts: Optional[bool],
    skip_base: Optional[bool],
    skip_pull_requests: bool,
    all_branches: bool,
    branch: Optional[str],
    no_messages: bool,
    timezone: Optional[str],
    week_rule: Optional[str],
    latest_builds_only: bool,
    config_path: Optional[Path],
    log: str,
    strict: bool,
) -> None:
    """Collect Azure DevOps resources and write them as CSV reports.

    \b
    EXAMPLES:
      devops-analytics analyze -u https://dev.azure.com/org/project -t <PAT>
      devops-analytics -u https://dev.azure.com/org/a,https://dev.azure.com/org/b --base
      devops-analytics --config devops.yaml --allbranches -f "^svc-" -e
    """
    logger = setup_logging(log, __name__)

    # Unset flags must not override values from the configuration file
    overrides: dict[str, Any] = {
        "project": project,
        "collection": collection,
        "token": token,
        "verbose": verbose,
        "commit_count": commit_count,
        "push_count": push_count,
        "build_count": build_count,
        "pull_request_count": pull_request_count,
        "from_date": from_date,
        "output_prefix": output_prefix,
        "output_dir": output_dir,
        "identifier": identifier,
        "filter": filter_,
        "exclusion": exclusion or None,
        "skip_commits": skip_commits or None,
        "skip_pushes": skip_pushes or None,
        "skip_builds": skip_builds,
        "skip_build_artifacts": skip_build_artifacts,
        "skip_base": skip_base,
        "skip_pull_requests": skip_pull_requests or None,
        "all_branches": all_branches or None,
        "branch": branch,
        "no_messages": no_messages or None,
        "timezone": timezone,
        "week_rule": week_rule,
        "latest_builds_only": latest_builds_only or None,
        "strict": strict or None,
    }

    try:
        config = ConfigLoader.load(config_path, overrides)
    except ConfigurationError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(EXIT_CONFIGURATION_ERROR)

    display = ConsoleDisplay(verbose=config.verbose)
    display.header(f"DevOps Analytics v{__version__}")
    display.info(f"Projects: {', '.join(config.project_urls)}")
    logger.debug(f"Writing reports to {config.output.directory}")

    summary = run_analysis(
        config,
        progress_callback=display.info,
        warning_callback=display.warning,
    )

    display.summary(summary)

    if not summary.has_failures:
        display.success(f"Wrote {len(summary.written_files)} reports")
        return

    display.warning(f"{summary.failure_count} calls or writes failed; see warnings above")
    if config.strict:
        sys.exit(EXIT_FAILURES)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
