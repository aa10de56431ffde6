"""Detect the squad folder layout (`.squad/` or legacy `.ai-team/`)."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

SQUAD_FOLDER = ".squad"
LEGACY_SQUAD_FOLDER = ".ai-team"


def detect_squad_folder(workspace_root: Path) -> Optional[str]:
    """Return '.squad' if present, else '.ai-team' if present, else None."""
    root = Path(workspace_root)
    if (root / SQUAD_FOLDER).exists():
        return SQUAD_FOLDER
    if (root / LEGACY_SQUAD_FOLDER).exists():
        return LEGACY_SQUAD_FOLDER
    return None


def get_squad_folder_name(workspace_root: Path) -> str:
    return detect_squad_folder(workspace_root) or SQUAD_FOLDER


def get_squad_path(workspace_root: Path, relative_path: str = "") -> Path:
    folder = get_squad_folder_name(workspace_root)
    base = Path(workspace_root) / folder
    return base / relative_path if relative_path else base


def has_squad_team(workspace_root: Path) -> bool:
    """True when team.md exists in either folder layout."""
    return get_squad_path(workspace_root, "team.md").is_file()
