"""CLI interface for depscout: entry point for the depscout command."""

import asyncio
import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler

from depscout.config import settings
from depscout.models.errors import DepscoutError
from depscout.models.schemas import DepFilter, OutputFormat, RiskFilter, Scope, Target

app = typer.Typer(name="depscout", help="Outdated dependency report with upgrade evidence for Node.js projects")
console = Console()
err_console = Console(stderr=True)


# Lazy import to allow mocking in tests
def _get_run_analysis() -> Any:  # noqa: ANN202
    from depscout.core.analyzer import analyze as _analyze

    return _analyze


# Module-level reference that tests can patch
run_analysis = None


_ENV_TEMPLATE = """\
# depscout Configuration
# See docs for all available settings.

# npm registry used for metadata lookups
# DEPSCOUT_REGISTRY_URL=https://registry.npmjs.org

# Timeout in seconds for each registry request and link probe
# DEPSCOUT_PROBE_TIMEOUT_SECONDS=5.0

# Maximum number of candidates resolving evidence at once
# DEPSCOUT_MAX_CONCURRENT_EVIDENCE=20

# Command used to run npm-check-updates
# DEPSCOUT_NCU_COMMAND=npx --yes npm-check-updates

# Optional GitHub token sent with link probes (raises rate limits)
# DEPSCOUT_GITHUB_TOKEN=
"""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO; keep that out of verbose output.
    logging.getLogger("httpx").setLevel(logging.WARNING)


@app.command("next-updates")
def next_updates(
    project_path: str = typer.Argument(".", help="Path to the Node.js project to analyze"),
    scope: Scope = typer.Option(Scope.ALL, "--scope", "-s", help="Which manifests to scan"),
    target: Target = typer.Option(Target.LATEST, "--target", "-t", help="Highest version bump to consider"),
    dep: DepFilter = typer.Option(DepFilter.ALL, "--dep", "-d", help="Dependency groups to include"),
    risk: RiskFilter = typer.Option(RiskFilter.ALL, "--risk", "-r", help="Filter candidates by risk group"),
    output_format: OutputFormat = typer.Option(
        OutputFormat.PROMPT, "--format", "-f", help="prompt (Markdown), json, or table"
    ),
    output: str | None = typer.Option(None, "--output", "-o", help="File name to write, relative to the project"),
    debug_dir: str | None = typer.Option(None, "--debug-dir", help="Write intermediate JSON dumps here"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Report outdated dependencies with risk and upgrade evidence."""
    _configure_logging(verbose)

    path = Path(project_path)
    if not path.exists():
        err_console.print(f"[red]Error: Path '{project_path}' does not exist[/red]")
        raise typer.Exit(code=1)

    global run_analysis  # noqa: PLW0603
    if run_analysis is None:
        run_analysis = _get_run_analysis()

    try:
        result = asyncio.run(run_analysis(str(path), scope, target, dep, risk, debug_dump_dir=debug_dir))
    except DepscoutError as exc:
        err_console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(code=1) from exc

    from depscout.core.report import export_json, export_markdown, render_report, write_report_json

    if output_format == OutputFormat.JSON:
        if output or settings.report_file_name:
            out_path = write_report_json(path, output or settings.report_file_name, result)
            console.print(f"Report written to {out_path}")
        else:
            console.print(export_json(result), markup=False, highlight=False, soft_wrap=True, end="")
        return

    if output:
        out_path = (path / output).resolve()
        out_path.write_text(export_markdown(result), encoding="utf-8")
        console.print(f"Report written to {out_path}")
        return

    if output_format == OutputFormat.TABLE:
        render_report(result, console=console)
        return

    console.print(export_markdown(result), markup=False, highlight=False, soft_wrap=True, end="")


@app.command("guide")
def guide(
    project_path: str = typer.Argument(".", help="Path to the Node.js project to describe"),
    output: str | None = typer.Option(None, "--output", "-o", help="File name to write, relative to the project"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Print an agent guide for running next-updates on this project."""
    _configure_logging(verbose)

    path = Path(project_path)
    if not path.is_dir():
        err_console.print(f"[red]Error: Path '{project_path}' is not a directory[/red]")
        raise typer.Exit(code=1)

    from depscout.core.guide import build_guide_context, render_guide

    text = render_guide(build_guide_context(path))
    if output:
        out_path = (path / output).resolve()
        out_path.write_text(text, encoding="utf-8")
        console.print(f"Guide written to {out_path}")
        return

    console.print(text, markup=False, highlight=False, soft_wrap=True, end="")


@app.command()
def init() -> None:
    """Create a .env template file with depscout configuration."""
    env_path = Path(".env")
    if env_path.exists():
        console.print("[yellow].env file already exists, not overwriting[/yellow]")
        return

    env_path.write_text(_ENV_TEMPLATE)
    console.print("[green]Created .env template, edit it with your settings[/green]")


@app.command()
def serve() -> None:
    """Start the MCP server."""
    from depscout.interfaces.mcp_server import mcp

    mcp.run()
