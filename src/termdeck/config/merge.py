"""Deep merge algorithm for configuration layering.

Later layers (project, explicit file, environment) override earlier ones
(user). Lists of named entries are merged by their ``name`` key so a
project can redefine one terminal without restating the others.
"""

from __future__ import annotations

from typing import Any

# Top-level lists whose items are keyed by "name"
NAMED_LISTS = frozenset({"terminals", "modules"})


def merge_named_lists(base: list[Any], override: list[Any]) -> list[Any]:
    """Merge two lists of ``{"name": ...}`` mappings.

    Entries in ``override`` replace same-named entries in ``base`` in place;
    new names are appended in override order. Items without a name are
    kept as-is so that validation can report them later.
    """
    result = list(base)
    index = {
        item["name"]: i
        for i, item in enumerate(result)
        if isinstance(item, dict) and isinstance(item.get("name"), str)
    }

    for item in override:
        name = item.get("name") if isinstance(item, dict) else None
        if isinstance(name, str) and name in index:
            result[index[name]] = item
        else:
            if isinstance(name, str):
                index[name] = len(result)
            result.append(item)

    return result


def deep_merge(base: dict[str, Any], override: dict[str, Any], _top: bool = True) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Rules:
    - Nested dicts are recursively merged
    - Top-level named lists are merged by name
    - Other lists are replaced entirely (not concatenated)
    - None values in override do NOT override base (enables partial configs)
    - Other values are replaced

    Args:
        base: The base dictionary.
        override: The dictionary with overriding values.

    Returns:
        A new dictionary with merged values.
    """
    result = base.copy()

    for key, override_value in override.items():
        if override_value is None:
            continue

        if key not in result:
            result[key] = override_value
            continue

        base_value = result[key]
        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(base_value, override_value, _top=False)
        elif (
            _top
            and key in NAMED_LISTS
            and isinstance(base_value, list)
            and isinstance(override_value, list)
        ):
            result[key] = merge_named_lists(base_value, override_value)
        else:
            result[key] = override_value

    return result


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge multiple configs in order (later overrides earlier)."""
    result: dict[str, Any] = {}
    for config in configs:
        if config:
            result = deep_merge(result, config)
    return result
