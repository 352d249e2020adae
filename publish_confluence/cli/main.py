"""Main CLI entry point for the publish-confluence command.

This module provides the Typer application with four commands: ``publish``
and ``fetch`` talk to Confluence, while ``export`` and ``render`` convert
local files offline.
"""

import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from publish_confluence import __version__
from publish_confluence.cli.config import DEFAULT_CONFIG_FILE, ConfigLoader
from publish_confluence.cli.errors import CLIError, FilesystemError
from publish_confluence.cli.models import ExitCode
from publish_confluence.cli.output import OutputHandler
from publish_confluence.confluence_client.errors import (
    APIAccessError,
    APIUnreachableError,
    InvalidCredentialsError,
    PublishError,
)
from publish_confluence.content_converter.forward_converter import export_storage_to_template
from publish_confluence.content_converter.markdown_renderer import render_page_to_storage
from publish_confluence.page_operations.models import PageAction
from publish_confluence.page_operations.page_operations import PageOperations

app = typer.Typer(
    name="publish-confluence",
    help="""Publish template markdown to Confluence and export pages back to it.

QUICK START:
  publish-confluence publish                          # Publish pages in publish-confluence.yaml
  publish-confluence publish --dry-run                # Render and validate only
  publish-confluence fetch --space TEAM --title Home  # Export a page as template markdown
  publish-confluence export page.xhtml                # Storage format -> template markdown
  publish-confluence render page.md                   # Template markdown -> storage format""",
    add_completion=False,
    rich_markup_mode=None,
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

APP_LOGGER = "publish_confluence"


@dataclass
class _GlobalOptions:
    verbosity: int = 0
    no_color: bool = False
    logdir: Optional[str] = None


def _configure_logging(verbosity: int, logdir: Optional[str] = None) -> None:
    """Configure logging based on verbosity level.

    Configures only the 'publish_confluence' namespace logger to avoid
    affecting third-party libraries. The root logger is left unchanged.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG)
        logdir: Optional directory for log files (creates timestamped log file)
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    app_logger = logging.getLogger(APP_LOGGER)
    app_logger.setLevel(level)
    # Repeated invocations in one process must not stack handlers
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    date_format = "%Y-%m-%d %H:%M:%S"
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)8s] %(message)s", datefmt=date_format)
    )
    app_logger.addHandler(console_handler)

    if logdir:
        log_path = Path(logdir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"publish-confluence_{timestamp}.log"

        file_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt=date_format
        )
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        app_logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")


def _exit_code_for(error: Exception) -> ExitCode:
    """Map an error to the exit code reported for it."""
    if isinstance(error, InvalidCredentialsError):
        return ExitCode.AUTH_ERROR
    if isinstance(error, APIAccessError) and error.status_code in (401, 403):
        return ExitCode.AUTH_ERROR
    if isinstance(error, APIUnreachableError):
        return ExitCode.NETWORK_ERROR
    return ExitCode.GENERAL_ERROR


def _setup(ctx: typer.Context, stderr: bool = False) -> OutputHandler:
    options: _GlobalOptions = ctx.obj or _GlobalOptions()
    _configure_logging(options.verbosity, options.logdir)
    return OutputHandler(verbosity=options.verbosity, no_color=options.no_color, stderr=stderr)


def _fail(output: OutputHandler, message: str, error: Exception) -> None:
    logger.error(f"{message}: {error}")
    output.error(f"{message}: {error}")
    raise typer.Exit(_exit_code_for(error))


def _parse_variables(values: Optional[List[str]]) -> Dict[str, Any]:
    """Parse repeated ``--var key=value`` options."""
    variables: Dict[str, Any] = {}
    for item in values or []:
        key, separator, value = item.partition("=")
        if not separator or not key.strip():
            raise typer.BadParameter(f"Expected key=value, got '{item}'", param_hint="--var")
        variables[key.strip()] = value
    return variables


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise FilesystemError(str(path), 'read', 'File not found')
    except OSError as e:
        raise FilesystemError(str(path), 'read', str(e))


def _write_or_echo(output: OutputHandler, content: str, destination: Optional[Path]) -> None:
    if destination is None:
        typer.echo(content, nl=False)
        return
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(content, encoding="utf-8")
    except OSError as e:
        raise FilesystemError(str(destination), 'write', str(e))
    output.success(f"Wrote {destination}")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"publish-confluence version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbosity: int = typer.Option(
        0,
        "--verbosity",
        "-v",
        help="Verbosity level: 0=summary, 1=info, 2=debug",
    ),
    logdir: Optional[str] = typer.Option(
        None,
        "--logdir",
        help="Directory for log files (creates timestamped log file)",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Publish template markdown to Confluence and export pages back to it."""
    ctx.obj = _GlobalOptions(verbosity=verbosity, no_color=no_color, logdir=logdir)


@app.command()
def publish(
    ctx: typer.Context,
    config: str = typer.Option(
        DEFAULT_CONFIG_FILE,
        "--config",
        "-c",
        help="Publish configuration file",
    ),
    comment: bool = typer.Option(
        False,
        "--comment",
        help="Render macros marked comment=true",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "--dryrun",
        help="Render and validate pages without publishing them",
    ),
) -> None:
    """Render the configured templates and create or update their pages."""
    output = _setup(ctx)
    try:
        publish_config = ConfigLoader.load(config)
    except CLIError as e:
        _fail(output, "Failed to load configuration", e)

    include_comments = comment or publish_config.include_comments
    operations = PageOperations()
    try:
        with output.spinner("Publishing pages..."):
            results = operations.publish(publish_config, include_comments, dry_run)
    except PublishError as e:
        _fail(output, "Publish failed", e)

    for result in results:
        output.print_warnings(result.warnings, result.title)
        if dry_run and result.content is not None:
            output.debug(f"--- {result.title} ---\n{result.content}")
    output.print_publish_summary(results, dry_run)

    failed = [r for r in results if r.action in (PageAction.FAILED, PageAction.SKIPPED)]
    if not failed:
        raise typer.Exit(ExitCode.SUCCESS)
    if len(failed) == len(results):
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    raise typer.Exit(ExitCode.PARTIAL_FAILURE)


@app.command()
def fetch(
    ctx: typer.Context,
    space: str = typer.Option(..., "--space", "-s", help="Space key of the page"),
    title: str = typer.Option(..., "--title", "-t", help="Title of the page"),
    output_dir: str = typer.Option(".", "--output-dir", "-o", help="Directory for fetched files"),
    children: bool = typer.Option(False, "--children", help="Also fetch all descendant pages"),
    raw: bool = typer.Option(False, "--raw", help="Write storage format instead of markdown"),
) -> None:
    """Fetch pages from Confluence and save them as template markdown."""
    output = _setup(ctx)
    operations = PageOperations()
    try:
        with output.spinner(f"Fetching '{title}' from {space}..."):
            results = operations.fetch_page_tree(space, title, Path(output_dir), children, raw)
    except PublishError as e:
        _fail(output, "Fetch failed", e)

    for result in results:
        output.print_warnings(result.warnings, result.title)
    output.print_fetch_summary(results)

    failed = sum(1 for result in results if not result.success)
    if not failed:
        raise typer.Exit(ExitCode.SUCCESS)
    raise typer.Exit(ExitCode.PARTIAL_FAILURE if failed < len(results) else ExitCode.GENERAL_ERROR)


@app.command()
def export(
    ctx: typer.Context,
    input_file: Path = typer.Argument(..., metavar="INPUT", help="Storage format (XHTML) file"),
    output_file: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Markdown file to write (default: stdout)"
    ),
) -> None:
    """Convert a storage format file to template markdown."""
    output = _setup(ctx, stderr=output_file is None)
    try:
        result = export_storage_to_template(_read_text(input_file), document_key=input_file.stem)
        output.print_warnings(result.warnings, str(input_file))
        _write_or_echo(output, result.content, output_file)
    except PublishError as e:
        _fail(output, f"Export of {input_file} failed", e)
    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def render(
    ctx: typer.Context,
    template: Path = typer.Argument(..., help="Template file (.md, .hbs, .html or .xhtml)"),
    output_file: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Storage format file to write (default: stdout)"
    ),
    comment: bool = typer.Option(False, "--comment", help="Render macros marked comment=true"),
    variables: Optional[List[str]] = typer.Option(
        None, "--var", help="Template variable as key=value (can be used multiple times)"
    ),
) -> None:
    """Render a template to storage format without publishing it."""
    output = _setup(ctx, stderr=output_file is None)
    context = _parse_variables(variables)
    context.setdefault("pageTitle", template.stem)
    try:
        result = render_page_to_storage(
            _read_text(template),
            template.suffix.lstrip(".").lower(),
            variables=context,
            include_comments=comment,
            document_key=template.stem,
        )
        output.print_warnings(result.warnings, str(template))
        _write_or_echo(output, result.content, output_file)
    except PublishError as e:
        _fail(output, f"Rendering {template} failed", e)
    raise typer.Exit(ExitCode.SUCCESS)


def main() -> None:
    """Main entry point for the CLI application.

    This function is called when the module is executed directly or
    when the console script is invoked.
    """
    app()


# Allow running as: python -m publish_confluence.cli.main
if __name__ == "__main__":
    main()
