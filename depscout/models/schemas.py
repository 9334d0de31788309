"""ALL Pydantic models and enums for depscout."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_serializer
from pydantic.alias_generators import to_camel

# --- Enums ---


class DependencyType(StrEnum):
    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "devDependencies"
    UNKNOWN = "unknown"


# Display and sort order for dependency groups.
DEPENDENCY_TYPE_ORDER: tuple[DependencyType, ...] = (
    DependencyType.DEPENDENCIES,
    DependencyType.DEV_DEPENDENCIES,
    DependencyType.UNKNOWN,
)


class RiskGroup(StrEnum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    PRERELEASE = "prerelease"
    NONE = "none"
    UNKNOWN = "unknown"


class RiskFilter(StrEnum):
    ALL = "all"
    MAJOR_ONLY = "major-only"
    NON_MAJOR = "non-major"
    PRERELEASE_ONLY = "prerelease-only"
    UNKNOWN_ONLY = "unknown-only"


class Scope(StrEnum):
    ALL = "all"
    ROOT = "root"
    WORKSPACES = "workspaces"


class Target(StrEnum):
    LATEST = "latest"
    MINOR = "minor"
    PATCH = "patch"


class DepFilter(StrEnum):
    ALL = "all"
    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "devDependencies"


class OutputFormat(StrEnum):
    PROMPT = "prompt"
    JSON = "json"
    TABLE = "table"


class LockfileType(StrEnum):
    PNPM = "pnpm"
    NPM = "npm"
    YARN = "yarn"
    BUN = "bun"


# --- Data Models ---


class CamelModel(BaseModel):
    """Base for models serialized into the report (camelCase keys)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VersionSpec(CamelModel):
    range: str
    version: str | None = None


class Candidate(CamelModel):
    package_file: str
    dependency_type: DependencyType
    package_name: str
    current: VersionSpec
    target: VersionSpec


class VersionDelta(CamelModel):
    major: int = 0
    minor: int = 0
    patch: int = 0
    prerelease: int = 0


class VersionWindow(CamelModel):
    delta: VersionDelta = Field(default_factory=VersionDelta)


class EvidenceLinks(CamelModel):
    compare: str | None = None
    npm_diff_link: str | None = None
    releases: str | None = None
    changelog: str | None = None

    @model_serializer(mode="wrap")
    def _drop_missing(self, handler: Any) -> dict[str, Any]:
        """Omit links that could not be established."""
        data: dict[str, Any] = handler(self)
        return {key: value for key, value in data.items() if value is not None}


class Evidence(CamelModel):
    links: EvidenceLinks


class EnrichedCandidate(Candidate):
    version_window: VersionWindow = Field(default_factory=VersionWindow)
    evidence: Evidence | None = None


class CandidateEvidenceInput(CamelModel):
    package_name: str
    installed_version: str | None = None
    target_version: str | None = None


class CandidateEvidenceResult(CamelModel):
    version_window: VersionWindow = Field(default_factory=VersionWindow)
    evidence: Evidence | None = None


class RegistryPackage(BaseModel):
    """The subset of npm registry metadata used for evidence."""

    name: str
    versions: list[str] = Field(default_factory=list)
    repository_url: str | None = None


class PackageDetails(CamelModel):
    current: VersionSpec
    target: VersionSpec
    version_window: VersionWindow | None = None
    evidence: Evidence | None = None


# packageFile -> dependencyType -> packageName -> details
PackagesMap = dict[str, dict[DependencyType, dict[str, PackageDetails]]]


class ReportOptions(CamelModel):
    scope_requested: Scope
    scope_effective: Scope
    target: Target
    dep: DepFilter
    risk: RiskFilter


class Report(CamelModel):
    generated_at: str
    options: ReportOptions
    packages: PackagesMap = Field(default_factory=dict)


# --- Suggestion source results ---


class FlatSuggestions(BaseModel):
    """Single-manifest result: packageName -> suggested range."""

    kind: Literal["flat"] = "flat"
    upgrades: dict[str, str] = Field(default_factory=dict)


class WorkspaceSuggestions(BaseModel):
    """Workspace result: packageFile -> packageName -> suggested range."""

    kind: Literal["workspaces"] = "workspaces"
    workspaces: dict[str, dict[str, str]] = Field(default_factory=dict)


SuggestionResult = Annotated[FlatSuggestions | WorkspaceSuggestions, Field(discriminator="kind")]


class NormalizedSuggestion(CamelModel):
    package_file: str
    package_name: str
    suggested_range: str


# --- Agent guide ---


class RepoSizeHint(StrEnum):
    SMALL = "small"
    LARGE = "large"


class WorkspaceEntry(CamelModel):
    path: str
    label: str
    group_key: str
    group_label: str


class WorkspaceGroup(CamelModel):
    key: str
    label: str
    entries: list[WorkspaceEntry] = Field(default_factory=list)


class GuideContext(CamelModel):
    """Repo facts used to tailor the agent guide."""

    repo_name: str | None = None
    package_manager: LockfileType | None = None
    workspaces: list[str] = Field(default_factory=list)
    workspace_entries: list[WorkspaceEntry] = Field(default_factory=list)
    workspace_groups: list[WorkspaceGroup] = Field(default_factory=list)
    repo_size_hint: RepoSizeHint | None = None


class GuideRecommendation(CamelModel):
    scope: Scope
    target: Target
    dep: DepFilter
    risk: RiskFilter
