"""Rich console output for analyzer runs.

Progress lines go through :class:`ConsoleDisplay` so that the quiet mode and
the timestamp prefix are handled in one place. Warnings are always shown.
"""

from datetime import datetime
from typing import Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..cli_utils import format_elapsed
from ..pipeline_types import FetchStatus, ResourceKind, RunSummary


class ConsoleDisplay:
    """Console wrapper honouring the verbose/quiet setting."""

    def __init__(self, verbose: bool = True, console: Optional[Console] = None):
        self.verbose = verbose
        self.console = console or Console(highlight=False)

    def _stamp(self, message: str) -> str:
        if not self.verbose:
            return message
        return f"{datetime.now():%Y-%m-%d %H:%M:%S} {message}"

    def header(self, text: str) -> None:
        self.console.print(f"\n[bold blue]{escape(text)}[/bold blue]")

    def info(self, message: str) -> None:
        if self.verbose:
            self.console.print(self._stamp(message), markup=False)

    def success(self, message: str) -> None:
        if self.verbose:
            self.console.print(f"[green]✅ {escape(self._stamp(message))}[/green]")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠️  {escape(self._stamp(message))}[/yellow]")

    def error(self, message: str) -> None:
        self.console.print(f"[red]❌ {escape(message)}[/red]")

    def summary(self, run_summary: RunSummary) -> None:
        """Print rows written and fetch outcomes per resource kind."""
        table = Table(
            title="Run summary",
            show_header=True,
            header_style="bold magenta",
            box=box.SIMPLE_HEAD,
        )
        table.add_column("Report", style="cyan", no_wrap=True)
        table.add_column("Rows", justify="right")
        table.add_column("Calls", justify="right")
        table.add_column("Skipped", justify="right")
        table.add_column("Failed", justify="right")

        rows = run_summary.rows_by_kind()
        kinds = [kind for kind in ResourceKind if kind in rows or run_summary.status_counts(kind)]
        for kind in kinds:
            counts = run_summary.status_counts(kind)
            failed = counts[FetchStatus.FAILED]
            table.add_row(
                kind.value,
                str(rows.get(kind, 0)),
                str(counts[FetchStatus.SUCCESS] + counts[FetchStatus.EMPTY] + failed),
                str(counts[FetchStatus.SKIPPED]),
                f"[red]{failed}[/red]" if failed else "0",
            )

        self.console.print(table)

        for report in run_summary.write_errors:
            self.error(f"Could not write {report.kind.value} for {report.project}: {report.error}")

        for path in run_summary.written_files:
            self.console.print(f"   📄 {path}", markup=False)

        self.console.print(f"Elapsed time: {format_elapsed(run_summary.elapsed_seconds)}")
