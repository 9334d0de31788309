"""MCP server for depscout; exposes the next-updates report and agent guide via FastMCP."""

from typing import Any

from fastmcp import FastMCP

from depscout.models.schemas import DepFilter, RiskFilter, Scope, Target

mcp = FastMCP("depscout")


@mcp.tool()
async def next_updates(
    project_path: str,
    scope: Scope = Scope.ALL,
    target: Target = Target.LATEST,
    dep: DepFilter = DepFilter.ALL,
    risk: RiskFilter = RiskFilter.ALL,
) -> dict[str, Any]:
    """List outdated dependencies with risk group, installed/target versions, and evidence links."""
    from depscout.core.analyzer import analyze

    result = await analyze(project_path, scope, target, dep, risk)
    return result.model_dump(mode="json", by_alias=True)


@mcp.tool()
async def next_updates_markdown(
    project_path: str,
    scope: Scope = Scope.ALL,
    target: Target = Target.LATEST,
    dep: DepFilter = DepFilter.ALL,
    risk: RiskFilter = RiskFilter.ALL,
) -> str:
    """Same report as next_updates, formatted as grouped Markdown for a prompt."""
    from depscout.core.analyzer import analyze
    from depscout.core.report import export_markdown

    result = await analyze(project_path, scope, target, dep, risk)
    return export_markdown(result)


@mcp.tool()
def next_updates_guide(project_path: str) -> str:
    """Markdown guide telling a coding agent how to run next-updates on this project and what to ask first."""
    from depscout.core.guide import build_guide_context, render_guide

    return render_guide(build_guide_context(project_path))
