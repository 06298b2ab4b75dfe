"""Structured document helpers for host config and translation files.

Supported formats are selected by file suffix:
- .json (read/write)
- .yaml / .yml (read/write)
- .toml (read only)
"""

from __future__ import annotations

import copy
import json
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

READABLE_SUFFIXES = (".json", ".yaml", ".yml", ".toml")
WRITABLE_SUFFIXES = (".json", ".yaml", ".yml")


class DocumentError(ValueError):
    """Raised when a document cannot be parsed or written."""

    pass


def load_document(path: Path, suffix: str | None = None) -> dict[str, Any]:
    """Load a mapping from a JSON, YAML or TOML file.

    Args:
        path: File to read.
        suffix: Format to parse as (e.g. ".json"); defaults to the file suffix.

    Returns:
        Parsed mapping (empty for an empty YAML file).

    Raises:
        DocumentError: If the suffix is unsupported or the content is invalid.
    """
    suffix = (suffix or path.suffix).lower()
    try:
        if suffix == ".json":
            data = json.loads(path.read_text(encoding="utf-8"))
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
            if data is None:
                data = {}
        elif suffix == ".toml":
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            raise DocumentError(f"Unsupported document format: {path.name}")
    except (json.JSONDecodeError, yaml.YAMLError, tomllib.TOMLDecodeError) as e:
        raise DocumentError(f"Invalid document {path}: {e}") from e

    if not isinstance(data, dict):
        raise DocumentError(f"Document root must be a mapping: {path}")
    return data


def dump_document(path: Path, data: Mapping[str, Any]) -> None:
    """Write a mapping back in the format implied by the suffix."""
    suffix = path.suffix.lower()
    if suffix == ".json":
        path.write_text(
            json.dumps(data, indent=4, ensure_ascii=False) + "\n", encoding="utf-8"
        )
    elif suffix in (".yaml", ".yml"):
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                dict(data), f, default_flow_style=False, sort_keys=False, allow_unicode=True
            )
    else:
        raise DocumentError(f"Cannot write document format: {path.name}")


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge two mappings, override values taking precedence recursively.

    Nested mappings are merged key by key; any other override value
    (scalars, lists) replaces the base value. Neither input is mutated.
    """
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def find_document(directory: Path, stem: str) -> Path | None:
    """Return the first existing <stem>.<suffix> in a directory."""
    for suffix in READABLE_SUFFIXES:
        candidate = directory / f"{stem}{suffix}"
        if candidate.is_file():
            return candidate
    return None
