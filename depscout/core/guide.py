"""Agent guide for running next-updates, tailored to the detected repo layout.

The guide is Markdown meant to be pasted into a coding agent. It describes the
project as detected on disk and suggests a first run of ``depscout next-updates``
sized to the repo.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from pathlib import Path
from typing import Any

from depscout.config import settings
from depscout.core import workspaces
from depscout.core.lockfiles.detect import find_lockfile
from depscout.models.schemas import (
    DepFilter,
    GuideContext,
    GuideRecommendation,
    LockfileType,
    RepoSizeHint,
    RiskFilter,
    Scope,
    Target,
    WorkspaceEntry,
    WorkspaceGroup,
)

logger = logging.getLogger(__name__)

_SKIP_DIRS = frozenset({"node_modules", "dist", "build", "out", "coverage"})
_MAX_QUEUED_DIRS = 500
_LARGE_REPO_PATTERN_COUNT = 4
_WORKSPACE_PREVIEW = 4
_UPPERCASE_WORDS = frozenset({"api", "ui", "db", "sdk", "v0", "v1", "v2", "id"})
# Group labels that usually hold app-facing runtime code.
_FOCUS_LABELS = ("workers", "apps", "services", "api", "web", "backend")
_WORD_SPLIT_RE = re.compile(r"[\s_-]+")
_SPACES_RE = re.compile(r"\s{2,}")


# --- context detection ---


def detect_package_manager(cwd: str | Path, pkg: dict[str, Any] | None = None) -> LockfileType | None:
    """Package manager from the ``packageManager`` field, else from the first lockfile found."""
    package_json = pkg if pkg is not None else workspaces.read_root_package_json(cwd)
    declared = package_json.get("packageManager") if package_json else None
    if isinstance(declared, str):
        for manager in LockfileType:
            if declared.startswith(manager.value):
                return manager

    found = find_lockfile(cwd)
    return found[0] if found else None


def resolve_repo_size_hint(patterns: list[str]) -> RepoSizeHint | None:
    if not patterns:
        return None
    if len(patterns) >= _LARGE_REPO_PATTERN_COUNT or any("*" in pattern for pattern in patterns):
        return RepoSizeHint.LARGE
    return RepoSizeHint.SMALL


def build_guide_context(cwd: str | Path) -> GuideContext:
    """Collect the repo facts the guide is tailored to. Missing files only drop facts."""
    root = Path(cwd).resolve()
    pkg = workspaces.read_root_package_json(root)
    patterns = workspaces.detect_workspace_patterns(root, pkg)
    entries = collect_workspace_entries(root, patterns)
    context = GuideContext(
        repo_name=root.name,
        package_manager=detect_package_manager(root, pkg),
        workspaces=patterns,
        workspace_entries=entries,
        workspace_groups=build_workspace_groups(entries),
        repo_size_hint=resolve_repo_size_hint(patterns),
    )
    logger.debug(
        "Guide context for %s: manager=%s, %d workspace patterns, %d workspaces",
        root,
        context.package_manager,
        len(patterns),
        len(entries),
    )
    return context


# --- workspace resolution ---


def collect_workspace_entries(cwd: str | Path, patterns: list[str]) -> list[WorkspaceEntry]:
    """Resolve *patterns* to workspace directories and describe each one.

    A directory that only nests other workspaces is dropped unless its own
    package.json carries a description, dependencies or scripts.
    """
    root = Path(cwd)
    paths = resolve_workspace_paths(root, patterns)
    entries: list[WorkspaceEntry] = []
    for relative_path in paths:
        pkg = workspaces.read_root_package_json(root / relative_path)
        if pkg is None:
            continue
        if _has_child_workspace(relative_path, paths) and not _has_workspace_signal(pkg):
            continue
        group_key = derive_group_key(relative_path)
        entries.append(
            WorkspaceEntry(
                path=relative_path,
                label=build_workspace_label(pkg, root.name, relative_path),
                group_key=group_key,
                group_label=format_group_label(group_key),
            )
        )
    return entries


def resolve_workspace_paths(cwd: str | Path, patterns: list[str]) -> list[str]:
    """Project-relative POSIX paths of every directory with a package.json matching *patterns*."""
    root = Path(cwd)
    resolved: set[str] = set()
    for pattern in patterns:
        resolved.update(_resolve_pattern(root, pattern))
    return sorted(resolved)


def _resolve_pattern(root: Path, pattern: str) -> list[str]:
    normalized = pattern.replace("\\", "/").removeprefix("./").strip("/")
    if not normalized:
        return []
    if "*" not in normalized:
        return [normalized] if (root / normalized / "package.json").is_file() else []

    segments = [segment for segment in normalized.split("/") if segment]
    wildcard = next(index for index, segment in enumerate(segments) if "*" in segment)
    base_dir = root.joinpath(*segments[:wildcard])
    if not base_dir.is_dir():
        return []

    max_depth = max(len(segments) + 2, 4)
    matches: list[str] = []
    for directory in _walk_package_dirs(base_dir, max_depth):
        if directory == root:
            continue
        relative = directory.relative_to(root).as_posix()
        if match_workspace_glob(segments, relative.split("/")):
            matches.append(relative)
    return matches


def _walk_package_dirs(base_dir: Path, max_depth: int) -> list[Path]:
    """Breadth-first search for directories holding a package.json, bounded in depth and width."""
    found: list[Path] = []
    queue: deque[tuple[Path, int]] = deque([(base_dir, 0)])
    visited: set[Path] = set()
    while queue:
        directory, depth = queue.popleft()
        if directory in visited:
            continue
        visited.add(directory)
        if (directory / "package.json").is_file():
            found.append(directory)
        if depth == max_depth:
            continue
        for child in _child_dirs(directory):
            if len(queue) >= _MAX_QUEUED_DIRS:
                break
            if child not in visited:
                queue.append((child, depth + 1))
    return found


def _child_dirs(directory: Path) -> list[Path]:
    try:
        children = sorted(child for child in directory.iterdir() if child.is_dir())
    except OSError as exc:
        logger.debug("Cannot list %s: %s", directory, exc)
        return []
    return [child for child in children if not child.name.startswith(".") and child.name not in _SKIP_DIRS]


def match_workspace_glob(pattern_segments: list[str], path_segments: list[str]) -> bool:
    """Match path segments against glob segments; ``*`` stays within a segment, ``**`` spans any number."""
    if not pattern_segments:
        return not path_segments
    pattern, rest = pattern_segments[0], pattern_segments[1:]
    if pattern == "**":
        return any(match_workspace_glob(rest, path_segments[index:]) for index in range(len(path_segments) + 1))
    if not path_segments:
        return False
    if "*" in pattern:
        regex = "^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$"
        if not re.match(regex, path_segments[0], re.IGNORECASE):
            return False
    elif pattern != path_segments[0]:
        return False
    return match_workspace_glob(rest, path_segments[1:])


def _has_child_workspace(relative_path: str, all_paths: list[str]) -> bool:
    prefix = relative_path.rstrip("/") + "/"
    return any(candidate != relative_path and candidate.startswith(prefix) for candidate in all_paths)


def _has_workspace_signal(pkg: dict[str, Any]) -> bool:
    description = pkg.get("description")
    if isinstance(description, str) and description.strip():
        return True
    return any(
        isinstance(pkg.get(field), dict) and pkg[field]
        for field in ("dependencies", "devDependencies", "peerDependencies", "scripts")
    )


# --- grouping and labels ---


def build_workspace_groups(entries: list[WorkspaceEntry]) -> list[WorkspaceGroup]:
    """Group entries by group key; biggest groups first, then by label."""
    groups: dict[str, WorkspaceGroup] = {}
    for entry in entries:
        group = groups.get(entry.group_key)
        if group is None:
            group = groups[entry.group_key] = WorkspaceGroup(key=entry.group_key, label=entry.group_label)
        group.entries.append(entry)
    return sorted(groups.values(), key=lambda group: (-len(group.entries), group.label.casefold()))


def build_workspace_label(pkg: dict[str, Any], repo_name: str, relative_path: str) -> str:
    """Readable workspace label: the description, else the unscoped name, else the directory name."""
    description = pkg.get("description")
    if isinstance(description, str) and description:
        cleaned = _clean_label(description, repo_name)
        if cleaned:
            return _format_label_case(cleaned)

    name = pkg.get("name")
    if isinstance(name, str) and name.startswith("@"):
        name = name.partition("/")[2]
    if isinstance(name, str) and name:
        return to_title_case(name)

    fallback = relative_path.split("/")[-1]
    return to_title_case(fallback) if fallback else relative_path


def derive_group_key(relative_path: str) -> str:
    segments = [segment for segment in relative_path.replace("\\", "/").split("/") if segment]
    if not segments:
        return relative_path
    root = segments[0]
    second = segments[1] if len(segments) > 1 else ""
    if root in ("app", "apps"):
        return "apps/workers" if second in ("worker", "workers") else "apps"
    if root in ("package", "packages"):
        if second in ("db", "database"):
            return "packages/db"
        if second in ("sdk", "sdks"):
            return "packages/sdks"
        return "packages/shared"
    if root in ("service", "services"):
        return "services"
    if root in ("lib", "libs"):
        return "libs"
    return root


def format_group_label(group_key: str) -> str:
    lowered = group_key.lower()
    if lowered == "packages/shared":
        return "Shared packages"
    for needle, label in (
        ("workers", "Workers"),
        ("apps", "Apps"),
        ("services", "Services"),
        ("db", "Databases"),
        ("sdk", "SDK"),
        ("ui", "UI"),
        ("packages", "Packages"),
    ):
        if needle in lowered:
            return label
    return to_title_case(group_key.replace("/", " ", 1))


def to_title_case(text: str) -> str:
    words = [word for word in _WORD_SPLIT_RE.split(text) if word]
    return " ".join(word.upper() if word.lower() in _UPPERCASE_WORDS else word.capitalize() for word in words)


def _format_label_case(label: str) -> str:
    # Mixed case after the first letter (e.g. "GraphQL gateway") is kept as written.
    if any(char.isupper() for char in label[1:]):
        return label
    return to_title_case(label)


def _clean_label(label: str, repo_name: str) -> str:
    cleaned = label.strip()
    if repo_name:
        repo = re.escape(repo_name)
        cleaned = re.sub(rf"\s+for\s+@?{repo}\b", "", cleaned, flags=re.IGNORECASE)
        cleaned = re.sub(rf"\b@?{repo}\b", "", cleaned, flags=re.IGNORECASE)
    return _SPACES_RE.sub(" ", cleaned).strip()


# --- rendering ---


def recommend_first_run(context: GuideContext) -> GuideRecommendation:
    """Suggested first run: workspaces and majors for large monorepos, everything for small ones."""
    scope, risk = Scope.ROOT, RiskFilter.ALL
    if context.workspaces and context.repo_size_hint == RepoSizeHint.LARGE:
        scope, risk = Scope.WORKSPACES, RiskFilter.MAJOR_ONLY
    elif context.workspaces and context.repo_size_hint == RepoSizeHint.SMALL:
        scope = Scope.ALL
    return GuideRecommendation(scope=scope, target=Target.LATEST, dep=DepFilter.DEPENDENCIES, risk=risk)


def render_guide(context: GuideContext) -> str:
    """Render the agent guide as Markdown, ending with a newline."""
    command = (
        "depscout next-updates"
        f" --scope <{_choices(Scope)}>"
        f" --target <{_choices(Target)}>"
        f" --dep <{_choices(DepFilter)}>"
        f" --risk <{_choices(RiskFilter)}>"
        " --format <prompt|json>"
    )
    lines = [
        "# next-updates agent guide",
        "",
        "## How to run next-updates",
        "",
        "If you are a human:",
        "- Copy this guide into your coding agent.",
        "- Or run the report yourself:",
        "",
        "```bash",
        "depscout next-updates",
        "```",
        "",
        "If you are an agent:",
        "1. Start with a 1-2 sentence intro in plain words (what next-updates does and what you will do).",
        "2. Ask the user for options with plain meanings and a recommendation.",
        "3. Keep the questions tailored to the repo (use detected workspaces).",
        "4. Use format=prompt by default. Only ask for JSON if the user wants it.",
        "5. Before summarizing, scan the repo to confirm usage (imports, scripts, configs).",
        "6. Run next-updates with flags:",
        "",
        "```bash",
        command,
        "```",
        "",
        f"7. If format is json, read `{settings.report_file_name}` from the project root.",
        "8. Use evidence links (changelog, releases, compare) to collect facts.",
        "9. If evidence links are missing, find them via registry metadata or the repo; only ask the user if blocked.",
        "10. Summarize what to update and why in simple words. Do not change code unless asked.",
        "11. If the user asks to dig into one package, switch to a short deep-dive response (see Output rules).",
    ]

    detected = _detected_context_lines(context)
    if detected:
        lines += ["", "Detected context:", *detected]

    lines += ["", "Ask options in plain words:", *_guidance_lines(context)]

    lines += [
        "",
        "Output rules:",
        "- Keep it short and easy to read. Use simple words.",
        "- Two sections: Worth upgrading now, Can wait.",
        "- For each package, write two short lines:",
        "  - Change: include one technical term plus one plain sentence.",
        "  - Impact: why this matters for the repo, in plain words.",
        "- Write like a helpful teammate, not a template. Avoid filler.",
        "- Group related packages with the same change to avoid repetition.",
        "- Do not list evidence links unless the user asks for sources.",
        "- Do not include file paths or tool logs. Mention usage by area (API, UI, worker).",
        "- Use evidence to form your summary. If you cannot find evidence, say so.",
        "- Focus on user impact: new features, critical fixes, and new capabilities.",
        "- Mention breaking changes, deprecations, and security first.",
        "- Use repo signals to mention frameworks/ecosystems when helpful.",
        "- Do not assume a stack if it is not detected.",
        "- Do not show upgrade commands unless the user asks.",
        "- Only claim impact when usage is confirmed in the repo; otherwise say it is not detected.",
        "- Deep dive (single package):",
        "  - One-line recommendation (upgrade now / wait / try in a small area).",
        "  - Key changes: 2-3 short bullets.",
        "  - Risks/unknowns: 1-2 short bullets.",
        "  - Next step: 1 optional action (sample diff, run a check).",
        "- Output must be in English.",
    ]
    return "\n".join(lines) + "\n"


def _choices(enum_type: Any) -> str:
    return "|".join(member.value for member in enum_type)


def _detected_context_lines(context: GuideContext) -> list[str]:
    lines: list[str] = []
    if context.repo_name:
        lines.append(f"- Repo: {context.repo_name}")
    if context.package_manager:
        lines.append(f"- Package manager: {context.package_manager.value}")
    if context.workspaces:
        preview = context.workspaces[:_WORKSPACE_PREVIEW]
        extra = len(context.workspaces) - len(preview)
        text = ", ".join(preview) + (f", +{extra} more" if extra > 0 else "")
        lines.append(f"- Workspaces: {text}")
    if context.repo_size_hint:
        lines.append(f"- Repo size: {context.repo_size_hint.value}")
    return lines


def _guidance_lines(context: GuideContext) -> list[str]:
    repo_label = context.repo_name or "this repo"
    recommendation = recommend_first_run(context)
    examples = _scope_examples(context.workspace_groups)

    question = [
        "next-updates reads the repo, then summarizes upgrades that matter.",
        f"I'll scan {repo_label} and return a short guide: what to do now vs later.",
    ]
    if context.repo_size_hint == RepoSizeHint.LARGE:
        question.append("Large repo, start small.")
    elif context.repo_size_hint == RepoSizeHint.SMALL:
        question.append("Small repo, start broad.")
    question += [
        f"Recommended: {_recommendation_sentence(recommendation, repo_label, examples)}.",
        'Reply with "use recommended", or answer in plain words:',
        "",
        "1) Where should I start?",
        f"- Root tools ({repo_label}/package.json)",
        f"- Workspaces (all sub-projects{examples})",
        "- Everything (root + all workspaces)",
        "",
        "2) How aggressive? (version jump size)",
        "- Big changes only (major)",
        "- Balanced (major + minor)",
        "- Safer (minor + patch)",
        "",
        "3) Which deps?",
        "- Runtime only (dependencies)",
        "- Runtime + dev tools (dependencies + devDependencies)",
    ]
    return [
        "- Use the question below as-is:",
        "```text",
        *question,
        "```",
        "",
        "- If the user wants to tweak later, map their plain answer to flags.",
    ]


def _recommendation_sentence(recommendation: GuideRecommendation, repo_label: str, examples: str) -> str:
    if recommendation.scope == Scope.ROOT:
        scope_text = f"root tools ({repo_label}/package.json)"
    elif recommendation.scope == Scope.ALL:
        scope_text = "everything (root + all workspaces)"
    else:
        scope_text = f"workspaces (all sub-projects{examples})"

    if recommendation.risk == RiskFilter.MAJOR_ONLY:
        change_text = "big changes (major)"
    elif recommendation.target == Target.MINOR:
        change_text = "balanced (major + minor)"
    elif recommendation.target == Target.PATCH:
        change_text = "safer (minor + patch)"
    else:
        change_text = "all changes"

    dep_text = {
        DepFilter.DEPENDENCIES: "runtime deps (dependencies)",
        DepFilter.DEV_DEPENDENCIES: "dev tools (devDependencies)",
        DepFilter.ALL: "runtime + dev tools (dependencies + devDependencies)",
    }[recommendation.dep]
    return f"{scope_text}, {change_text}, {dep_text}"


def group_display_label(group: WorkspaceGroup) -> str:
    """A group holding a single workspace is shown by that workspace's label."""
    if len(group.entries) == 1:
        return group.entries[0].label
    return group.label


def pick_focus_groups(groups: list[WorkspaceGroup], limit: int = 2) -> list[str]:
    """Display labels of the groups to suggest first: app-facing groups, then the biggest."""

    def is_focus(group: WorkspaceGroup) -> bool:
        label = group_display_label(group).lower()
        return any(focus in label for focus in _FOCUS_LABELS)

    ranked = sorted(groups, key=lambda group: (not is_focus(group), -len(group.entries)))
    return [group_display_label(group) for group in ranked[:limit]]


def _scope_examples(groups: list[WorkspaceGroup]) -> str:
    examples = pick_focus_groups(groups)
    return f", like {', '.join(examples)}" if examples else ""
