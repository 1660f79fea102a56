"""Manifest reading and validation.

A manifest is a small JSON (or YAML) document that supplies either a flat
``commands`` array for a session:

    {"commands": ["npm run api"]}

or a ``scripts`` name -> command mapping for a module:

    {"scripts": {"lint": "eslint .", "test": "jest"}}

Not-found, parse and shape failures raise distinct ManifestError subclasses.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from termdeck.errors import (
    ManifestNotFoundError,
    ManifestParseError,
    ManifestShapeError,
)
from termdeck.logging import get_logger

log = get_logger("manifest")

# File looked up when a module location is a directory
MODULE_MANIFEST = "package.json"

_YAML_SUFFIXES = {".yaml", ".yml"}


def read_manifest(path: Path) -> dict[str, Any]:
    """Read and parse a manifest file into a mapping.

    Args:
        path: Absolute path to the manifest.

    Returns:
        The parsed top-level mapping.

    Raises:
        ManifestNotFoundError: If the file does not exist.
        ManifestParseError: If it cannot be read or parsed.
        ManifestShapeError: If the top level is not a mapping.
    """
    if not path.is_file():
        raise ManifestNotFoundError(path)

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestParseError(path, e) from e

    try:
        if path.suffix.lower() in _YAML_SUFFIXES:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ManifestParseError(path, e) from e

    if not isinstance(data, dict):
        raise ManifestShapeError(path, f"{path}: expected a mapping at the top level")

    log.debug("Read manifest %s (%d keys)", path, len(data))
    return data


def read_commands(path: Path) -> list[str]:
    """Read the ``commands`` array of a session manifest.

    Raises:
        ManifestShapeError: If ``commands`` is missing or not a list of strings.
    """
    data = read_manifest(path)
    commands = data.get("commands")
    if not isinstance(commands, list) or not all(isinstance(c, str) for c in commands):
        raise ManifestShapeError(
            path, f"{path}: 'commands' must be an array of strings"
        )
    return list(commands)


def read_scripts(path: Path) -> dict[str, str]:
    """Read the ``scripts`` mapping of a module manifest.

    Raises:
        ManifestShapeError: If ``scripts`` is missing or not a string mapping.
    """
    data = read_manifest(path)
    scripts = data.get("scripts")
    if not isinstance(scripts, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in scripts.items()
    ):
        raise ManifestShapeError(
            path, f"{path}: 'scripts' must be a mapping of script names to commands"
        )
    return dict(scripts)


def module_manifest_path(location: Path) -> Path:
    """Manifest path for a module location (a directory or the manifest itself)."""
    if location.is_dir():
        return location / MODULE_MANIFEST
    return location
