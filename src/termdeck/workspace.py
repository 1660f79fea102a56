"""Workspace root resolution."""

from __future__ import annotations

from pathlib import Path

from termdeck.errors import WorkspaceError


def resolve_location(location: str | Path, root: str | Path | None) -> Path:
    """Resolve a possibly-relative location against the workspace root.

    Absolute locations pass through unchanged (apart from normalization).
    A relative location needs a root; without one this raises.

    Args:
        location: Path from configuration, relative or absolute.
        root: The single workspace root, or None if none is open.

    Returns:
        Absolute resolved path.

    Raises:
        WorkspaceError: If ``location`` is relative and there is no root.
    """
    p = Path(location).expanduser()
    if not p.is_absolute():
        if root is None:
            raise WorkspaceError(f"No workspace root to resolve {location!r} against")
        p = Path(root) / p
    return p.resolve()
