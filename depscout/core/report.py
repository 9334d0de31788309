"""Report building, rendering, and export."""

import json
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic_core import to_jsonable_python
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from depscout.core.risk import classify_risk_group
from depscout.models.schemas import (
    DEPENDENCY_TYPE_ORDER,
    Candidate,
    DependencyType,
    EnrichedCandidate,
    PackageDetails,
    PackagesMap,
    Report,
    ReportOptions,
    RiskGroup,
)

_UNKNOWN = "<unknown>"


def build_packages_from_candidates(candidates: Iterable[EnrichedCandidate]) -> PackagesMap:
    """Group candidates as packageFile -> dependencyType -> packageName; last write wins."""
    packages: PackagesMap = {}
    for c in candidates:
        group = packages.setdefault(c.package_file, {}).setdefault(c.dependency_type, {})
        group[c.package_name] = PackageDetails(
            current=c.current,
            target=c.target,
            version_window=c.version_window,
            evidence=c.evidence,
        )
    return packages


def build_packages_from_base_candidates(candidates: Iterable[Candidate]) -> PackagesMap:
    """Same grouping as above for candidates that have no evidence yet."""
    packages: PackagesMap = {}
    for c in candidates:
        group = packages.setdefault(c.package_file, {}).setdefault(c.dependency_type, {})
        group[c.package_name] = PackageDetails(current=c.current, target=c.target)
    return packages


def build_report(options: ReportOptions, candidates: Iterable[EnrichedCandidate], generated_at: str | None = None) -> Report:
    """Assemble a Report from enriched candidates."""
    return Report(
        generated_at=generated_at or datetime.now(tz=UTC).isoformat(),
        options=options,
        packages=build_packages_from_candidates(candidates),
    )


def iter_report_packages(report: Report) -> Iterable[tuple[str, DependencyType, str, PackageDetails]]:
    """Yield entries in display order: file, dependency group, package name."""
    for package_file in sorted(report.packages):
        file_group = report.packages[package_file]
        for dependency_type in DEPENDENCY_TYPE_ORDER:
            dep_group = file_group.get(dependency_type)
            if not dep_group:
                continue
            for package_name in sorted(dep_group):
                yield package_file, dependency_type, package_name, dep_group[package_name]


def render_report(report: Report, console: Console | None = None) -> None:
    """Render a report to the terminal using Rich. Never uses print()."""
    if console is None:
        console = Console()

    opts = report.options
    summary_table = Table(title="Summary", show_header=True)
    summary_table.add_column("Option", style="bold")
    summary_table.add_column("Value", justify="right")
    summary_table.add_row("Generated at", report.generated_at)
    summary_table.add_row("Scope", _scope_label(report))
    summary_table.add_row("Target", opts.target.value)
    summary_table.add_row("Dep", opts.dep.value)
    summary_table.add_row("Risk", opts.risk.value)

    console.print(Panel(summary_table, title="next-updates"))

    entries = list(iter_report_packages(report))
    if not entries:
        console.print("[green]No updates found.[/green]")
        return

    risk_styles = {
        RiskGroup.MAJOR: "bold red",
        RiskGroup.MINOR: "yellow",
        RiskGroup.PATCH: "green",
        RiskGroup.PRERELEASE: "magenta",
    }

    dep_table = Table(title="Candidate Updates", show_header=True)
    dep_table.add_column("Manifest")
    dep_table.add_column("Package", style="bold")
    dep_table.add_column("Range")
    dep_table.add_column("Installed -> Target")
    dep_table.add_column("Risk")
    dep_table.add_column("Evidence")

    for package_file, dependency_type, package_name, details in entries:
        risk = classify_risk_group(details.current.version, details.target.version)
        style = risk_styles.get(risk, "dim")
        links = details.evidence.links.model_dump(by_alias=True) if details.evidence else {}
        dep_table.add_row(
            package_file,
            package_name + _type_suffix(dependency_type),
            f"{details.current.range or _UNKNOWN} -> {details.target.range or _UNKNOWN}",
            f"{details.current.version or _UNKNOWN} -> {details.target.version or _UNKNOWN}",
            f"[{style}]{risk.value}[/]",
            ", ".join(links) or "-",
        )

    console.print(dep_table)


def export_json(report: Report) -> str:
    """Export report as a 2-space indented JSON string with a trailing newline."""
    return report.model_dump_json(by_alias=True, indent=2) + "\n"


def export_markdown(report: Report) -> str:
    """Export report as a grouped Markdown document."""
    opts = report.options
    lines: list[str] = [
        "# next-updates",
        "",
        "Candidate dependency updates (from npm-check-updates).",
        "",
        f"- Generated at: {report.generated_at}",
        f"- Scope: {_scope_label(report)}",
        f"- Target: {opts.target.value}",
        f"- Dep: {opts.dep.value}",
        f"- Risk: {opts.risk.value}",
        "",
    ]

    entries = list(iter_report_packages(report))
    if not entries:
        lines.append("No updates found.")
        return "\n".join(lines) + "\n"

    current_file: str | None = None
    for package_file, dependency_type, package_name, details in entries:
        if package_file != current_file:
            if current_file is not None:
                lines.append("")
            lines.extend([f"## {package_file}", ""])
            current_file = package_file
        lines.append(_format_package_line(package_name, dependency_type, details))
        lines.extend(_format_evidence_lines(details))
    lines.append("")

    return "\n".join(lines) + "\n"


def write_report_json(cwd: str | Path, file_name: str, report: Report) -> Path:
    """Write the JSON report to ``cwd/file_name`` and return the resolved path."""
    out_path = (Path(cwd) / file_name).resolve()
    out_path.write_text(export_json(report), encoding="utf-8")
    return out_path


def write_debug_dump(directory: str | Path, file_name: str, data: Any) -> Path:
    """Write a pretty-printed JSON snapshot of an intermediate pipeline stage."""
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / file_name
    payload = to_jsonable_python(data, by_alias=True)
    out_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return out_path


def _scope_label(report: Report) -> str:
    opts = report.options
    if opts.scope_requested == opts.scope_effective:
        return opts.scope_requested.value
    return f"{opts.scope_requested.value} (effective: {opts.scope_effective.value})"


def _type_suffix(dependency_type: DependencyType) -> str:
    return " (dev)" if dependency_type == DependencyType.DEV_DEPENDENCIES else ""


def _format_package_line(package_name: str, dependency_type: DependencyType, details: PackageDetails) -> str:
    current_range = details.current.range or _UNKNOWN
    target_range = details.target.range or _UNKNOWN
    installed = details.current.version or _UNKNOWN
    target_version = details.target.version or _UNKNOWN
    return (
        f"- `{package_name}`{_type_suffix(dependency_type)}: `{current_range}` → `{target_range}` "
        f"(installed: `{installed}`, target: `{target_version}`)"
    )


def _format_evidence_lines(details: PackageDetails) -> list[str]:
    lines: list[str] = []
    if details.version_window is not None:
        d = details.version_window.delta
        if d.major or d.minor or d.patch or d.prerelease:
            lines.append(
                f"  - versions in between: {d.major} major, {d.minor} minor, {d.patch} patch, {d.prerelease} prerelease"
            )
    if details.evidence is not None:
        links = details.evidence.links
        if links.compare:
            lines.append(f"  - compare: {links.compare}")
        if links.releases:
            lines.append(f"  - releases: {links.releases}")
        if links.changelog:
            lines.append(f"  - changelog: {links.changelog}")
        if links.npm_diff_link:
            lines.append(f"  - diff: `{links.npm_diff_link}`")
    return lines
