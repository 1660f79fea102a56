"""Exception hierarchy for termdeck.

Every failure a user can cause through configuration or manifests is a
``TermdeckError``. Operations catch these at their boundary and report them
instead of letting them escape to the event loop.
"""

from __future__ import annotations

from pathlib import Path


class TermdeckError(Exception):
    """Base class for all termdeck errors."""


class ConfigurationError(TermdeckError):
    """A declared session, group or module cannot be acted on as written."""


class WorkspaceError(TermdeckError):
    """No workspace root is available to resolve a location against."""


class ManifestError(TermdeckError):
    """Base class for manifest read/validation failures."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(message)


class ManifestNotFoundError(ManifestError):
    """The manifest file does not exist or is not a regular file."""

    def __init__(self, path: Path) -> None:
        super().__init__(path, f"Manifest not found: {path}")


class ManifestParseError(ManifestError):
    """The manifest exists but could not be read or parsed."""

    def __init__(self, path: Path, cause: Exception) -> None:
        self.cause = cause
        super().__init__(path, f"Could not parse {path}: {cause}")


class ManifestShapeError(ManifestError):
    """The manifest parsed but lacks the expected field or type."""
