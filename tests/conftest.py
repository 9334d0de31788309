import json
from pathlib import Path

import pytest


@pytest.fixture
def sample_project_path(tmp_path: Path) -> Path:
    """Create a minimal single-manifest Node.js project."""
    project = tmp_path / "sample-project"
    project.mkdir()
    (project / "package.json").write_text(
        json.dumps(
            {
                "name": "sample",
                "dependencies": {"lodash": "^4.17.0"},
                "devDependencies": {"vitest": "^1.0.0"},
            }
        )
    )
    return project


@pytest.fixture
def workspace_project_path(tmp_path: Path) -> Path:
    """Create a monorepo with a root manifest and one workspace package."""
    project = tmp_path / "monorepo"
    project.mkdir()
    (project / "package.json").write_text(
        json.dumps({"name": "monorepo", "workspaces": ["packages/*"], "dependencies": {"lodash": "^4.17.0"}})
    )
    app = project / "packages" / "a"
    app.mkdir(parents=True)
    (app / "package.json").write_text(json.dumps({"name": "a", "devDependencies": {"vitest": "^0.1.0"}}))
    return project
