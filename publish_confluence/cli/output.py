"""Terminal output handling using Rich library.

This module provides the OutputHandler class for all CLI terminal output:
colored status lines, a spinner for remote calls, conversion warnings and
the publish and fetch summaries. Supports verbosity levels and the
--no-color flag.
"""

from contextlib import contextmanager
from typing import Iterator, List, Sequence

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.spinner import Spinner
from rich.table import Table

from publish_confluence.models.conversion_result import ConversionWarning
from publish_confluence.page_operations.models import FetchResult, PageAction, PageResult

_ACTION_STYLES = {
    PageAction.CREATED: ("green", "+"),
    PageAction.UPDATED: ("green", "✓"),
    PageAction.DRY_RUN: ("cyan", "○"),
    PageAction.SKIPPED: ("yellow", "⊘"),
    PageAction.FAILED: ("red", "✗"),
}


class OutputHandler:
    """Handles all terminal output using Rich library.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.success("Published 3 page(s)")
        >>> with handler.spinner("Fetching page..."):
        ...     pass
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False, stderr: bool = False):
        """Initialize output handler.

        Args:
            verbosity: Verbosity level (0=summary, 1=info, 2=debug)
            no_color: Disable color output if True
            stderr: Write to stderr, keeping stdout free for converted content
        """
        self.verbosity = verbosity
        self.console = Console(
            no_color=no_color,
            stderr=stderr,
            highlight=False,
        )

    def success(self, message: str) -> None:
        """Display success message in green."""
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def error(self, message: str) -> None:
        """Display error message in red."""
        self.console.print(f"[red]✗[/red] {escape(message)}", style="red")

    def warning(self, message: str) -> None:
        """Display warning message in yellow."""
        self.console.print(f"[yellow]⚠[/yellow] {escape(message)}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(escape(message))

    def debug(self, message: str) -> None:
        """Display debug message (only if verbosity >= 2)."""
        if self.verbosity >= 2:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    def print(self, message: str) -> None:
        """Display message without formatting."""
        self.console.print(message, markup=False)

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """Display spinner while a remote operation runs.

        Example:
            >>> with handler.spinner("Fetching page..."):
            ...     pass
        """
        spinner = Spinner("dots", text=message)
        with Live(spinner, console=self.console, refresh_per_second=10):
            yield

    def print_warnings(self, warnings: Sequence[ConversionWarning], source: str = "") -> None:
        """Display conversion warnings with the macro and argument they concern.

        Args:
            warnings: Warnings recorded during one conversion
            source: Page or file the warnings belong to
        """
        prefix = f"{source}: " if source else ""
        for warning in warnings:
            details = []
            if warning.macro:
                details.append(f"macro {warning.macro}")
            if warning.argument:
                details.append(f"argument {warning.argument}")
            suffix = f" ({', '.join(details)})" if details else ""
            self.warning(f"{prefix}[{warning.kind.value}] {warning.message}{suffix}")

    def print_publish_summary(self, results: List[PageResult], dry_run: bool = False) -> None:
        """Display one line per page and the overall publish status.

        Args:
            results: Per-page results in publish order
            dry_run: Whether the pages were only rendered
        """
        title = "Dry Run - Publish Preview" if dry_run else "Publish Summary"
        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("Page")
        table.add_column("Result")
        table.add_column("Details")
        for result in results:
            style, marker = _ACTION_STYLES[result.action]
            details = result.error or (f"page {result.page_id}" if result.page_id else "")
            if result.warnings:
                details = f"{details} {len(result.warnings)} warning(s)".strip()
            table.add_row(
                escape(result.title),
                f"[{style}]{marker} {result.action.value}[/{style}]",
                escape(details),
            )
        self.console.print(table)

        failed = [result for result in results if result.action == PageAction.FAILED]
        skipped = [result for result in results if result.action == PageAction.SKIPPED]
        if not results:
            self.console.print("\n[yellow]No pages to publish[/yellow]")
        elif failed or skipped:
            self.console.print(
                f"\n[red]Publish completed with {len(failed)} failed "
                f"and {len(skipped)} skipped page(s)[/red]"
            )
        elif dry_run:
            self.console.print(f"\n[cyan]Rendered {len(results)} page(s); nothing was published[/cyan]")
        else:
            self.console.print(f"\n[green]Published {len(results)} page(s) successfully[/green]")

    def print_fetch_summary(self, results: List[FetchResult]) -> None:
        """Display where each fetched page was written.

        Args:
            results: Per-page fetch results
        """
        self.console.print("\n[bold]Fetch Summary:[/bold]")
        for result in results:
            if result.success:
                self.console.print(
                    f"  [green]↓[/green] {escape(result.title)} → {escape(str(result.path))}"
                )
            else:
                self.console.print(f"  [red]✗[/red] {escape(result.title)}: {escape(result.error or '')}")

        failed = sum(1 for result in results if not result.success)
        if failed:
            self.console.print(f"\n[red]Fetch completed with {failed} failed page(s)[/red]")
        else:
            self.console.print(f"\n[green]Fetched {len(results)} page(s) successfully[/green]")
