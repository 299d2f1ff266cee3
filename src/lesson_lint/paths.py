"""Project path discovery.

The project root is the nearest directory holding a lesson-lint.toml,
a .git directory or a pyproject.toml, searching upwards from where the
command is run.
"""

from pathlib import Path

import pyrootutils

ROOT_INDICATORS = ["lesson-lint.toml", ".git", "pyproject.toml"]
CONFIG_FILENAME = "lesson-lint.toml"
ENV_FILENAME = ".env"


def find_project_root(search_from: Path | None = None) -> Path:
    """Find the project root, falling back to the search directory."""
    start = (search_from or Path.cwd()).resolve()
    try:
        return Path(pyrootutils.find_root(search_from=start, indicator=ROOT_INDICATORS))
    except FileNotFoundError:
        return start if start.is_dir() else start.parent


def config_path(root: Path) -> Path:
    """Get the lesson-lint.toml path for a project."""
    return root / CONFIG_FILENAME


def pyproject_path(root: Path) -> Path:
    return root / "pyproject.toml"


def env_path(root: Path) -> Path:
    return root / ENV_FILENAME
