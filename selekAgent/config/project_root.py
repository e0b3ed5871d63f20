"""Project root path detection - works regardless of working directory."""

from __future__ import annotations

from pathlib import Path
from functools import lru_cache


@lru_cache(maxsize=1)
def get_project_root() -> Path:
    """Get absolute path to project root directory.

    This works by finding the directory containing the 'selekAgent' package,
    regardless of the current working directory.

    Example:
        >>> root = get_project_root()
        >>> rules = root / "selekAgent" / "config" / "permission_rules.yaml"
    """
    # project_root.py -> config/ -> selekAgent/ -> project_root/
    project_root = Path(__file__).resolve().parent.parent.parent

    if not (project_root / "selekAgent").exists():
        raise RuntimeError(
            f"Could not locate project root. Expected 'selekAgent' directory at {project_root}"
        )

    return project_root


def default_permission_rules_path() -> Path:
    """Location of the bundled permission risk rules."""
    return Path(__file__).resolve().parent / "permission_rules.yaml"


__all__ = ["get_project_root", "default_permission_rules_path"]
