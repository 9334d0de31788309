"""The next-updates pipeline: suggestions -> candidates -> risk filter -> evidence -> report."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

import httpx

from depscout.core import candidates, evidence, report, risk, suggestions, workspaces
from depscout.core.lockfiles.detect import create_installed_version_lookup
from depscout.models.errors import ManifestError
from depscout.models.schemas import (
    CandidateEvidenceInput,
    DepFilter,
    EnrichedCandidate,
    Report,
    ReportOptions,
    RiskFilter,
    Scope,
    Target,
)

logger = logging.getLogger(__name__)


async def analyze(
    project_path: str | Path,
    scope: Scope = Scope.ALL,
    target: Target = Target.LATEST,
    dep: DepFilter = DepFilter.ALL,
    risk_filter: RiskFilter = RiskFilter.ALL,
    *,
    debug_dump_dir: str | Path | None = None,
    suggestion_source: suggestions.SuggestionSource | None = None,
    client: httpx.AsyncClient | None = None,
) -> Report:
    """Run the full pipeline for one project and return its report.

    Raises ManifestError when the root package.json is missing or invalid and
    SuggestionError when the suggestion source fails. Lockfile and evidence
    problems only reduce the detail of the report.
    """
    cwd = Path(project_path)
    generated_at = datetime.now(tz=UTC).isoformat()

    root_package_json = workspaces.read_root_package_json(cwd)
    if root_package_json is None:
        raise ManifestError(f"Invalid package.json at {cwd / 'package.json'}")

    scope_effective = workspaces.resolve_scope_effective(
        scope, workspaces.has_workspace_config(cwd, root_package_json)
    )
    if scope_effective != scope:
        logger.info("No workspaces configured; using scope %s instead of %s", scope_effective, scope)

    lookup = await create_installed_version_lookup(cwd)
    collector = suggestions.TargetVersionCollector()
    source = suggestion_source or suggestions.run_ncu

    raw = await source(cwd, scope_effective, target, dep, collector)
    parsed = suggestions.parse_suggestions(raw)
    if debug_dump_dir:
        report.write_debug_dump(debug_dump_dir, "00-ncu-raw.json", raw)
        report.write_debug_dump(debug_dump_dir, "01-ncu-normalized.json", suggestions.normalize_suggestions(parsed))

    base = await candidates.build_candidates(cwd, parsed, lookup, collector)
    filtered = risk.apply_risk_filter(base, risk_filter)
    logger.debug("%d candidates, %d after %s risk filter", len(base), len(filtered), risk_filter)
    if debug_dump_dir:
        report.write_debug_dump(
            debug_dump_dir, "02-candidates-with-current.json", report.build_packages_from_base_candidates(filtered)
        )

    results = await evidence.collect_candidate_evidence(
        [
            CandidateEvidenceInput(
                package_name=c.package_name,
                installed_version=c.current.version,
                target_version=c.target.version,
            )
            for c in filtered
        ],
        client=client,
    )
    enriched = [
        EnrichedCandidate(
            **c.model_dump(),
            version_window=result.version_window,
            evidence=result.evidence,
        )
        for c, result in zip(filtered, results, strict=True)
    ]

    analysis_report = report.build_report(
        options=ReportOptions(
            scope_requested=scope,
            scope_effective=scope_effective,
            target=target,
            dep=dep,
            risk=risk_filter,
        ),
        candidates=enriched,
        generated_at=generated_at,
    )
    if debug_dump_dir:
        report.write_debug_dump(debug_dump_dir, "03-candidates-with-evidence.json", analysis_report.packages)

    return analysis_report
