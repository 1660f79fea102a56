"""Platform-aware configuration path resolution.

Handles config file locations for:
- Windows: %APPDATA%\\termdeck\\config.yaml (user)
- Unix: $XDG_CONFIG_HOME/termdeck/, ~/.config/termdeck/ or ~/.termdeck/ (user)
- Project: $workspace/.termdeck/config.yaml
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
APP_NAME = "termdeck"
SHORT_NAME = ".termdeck"


def get_user_config_path() -> Path | None:
    """Get user-level config path.

    Returns:
        Path to user config file, or None if not determinable.
        The file may not exist.
    """
    if sys.platform == "win32":
        app_data = os.environ.get("APPDATA")
        if app_data:
            return Path(app_data) / APP_NAME / CONFIG_FILENAME
        return None

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME / CONFIG_FILENAME

    home = Path.home()

    # Prefer ~/.config/termdeck if ~/.config exists
    xdg_default = home / ".config"
    if xdg_default.exists():
        return xdg_default / APP_NAME / CONFIG_FILENAME

    return home / SHORT_NAME / CONFIG_FILENAME


def get_project_config_path(workspace_root: str | Path) -> Path:
    """Get project-level config path (may not exist)."""
    return Path(workspace_root) / SHORT_NAME / CONFIG_FILENAME


def get_config_paths(
    workspace_root: str | Path | None = None,
    config_file: str | Path | None = None,
) -> list[Path]:
    """Get all config paths in priority order (lowest to highest).

    Args:
        workspace_root: Optional workspace directory for project-level config.
        config_file: Optional explicit config file layered on top.

    Returns:
        List of config paths in order: user, project, explicit.
        Later paths override earlier ones when merging.
    """
    paths: list[Path] = []

    user_path = get_user_config_path()
    if user_path:
        paths.append(user_path)

    if workspace_root:
        paths.append(get_project_config_path(workspace_root))

    if config_file:
        paths.append(Path(config_file))

    return paths
