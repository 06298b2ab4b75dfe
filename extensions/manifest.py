"""Extension descriptor schema.

Defines the structure and validation for extension descriptors (extension.json).
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from extensions.errors import ExtensionNotFoundError, InvalidMetadataError
from schemas.extension import ExtensionType

DESCRIPTOR_FILENAME = "extension.json"
DEFAULT_ENTRY_POINT = "ExtensionController"
DEFAULT_VERSION = "1.0.0"

_ID_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


def is_valid_id(extension_id: str) -> bool:
    """Check an extension id is kebab-case and therefore safe as a directory name."""
    return bool(_ID_PATTERN.fullmatch(extension_id))


@dataclass(frozen=True)
class ExtensionDescriptor:
    """Extension descriptor read from the package root.

    Attributes:
        id: Unique extension identifier (kebab-case).
        name: Display name.
        version: Version string (e.g., "1.0.0").
        author: Author name or organization.
        description: Short description of what the extension does.
        types: Declared capability types (plugin, theme, language-pack).
        entry_point: Name of the controller factory to instantiate.
    """

    id: str
    name: str
    version: str = DEFAULT_VERSION
    author: str | None = None
    description: str | None = None
    types: frozenset[ExtensionType] = field(
        default_factory=lambda: frozenset({ExtensionType.PLUGIN})
    )
    entry_point: str = DEFAULT_ENTRY_POINT

    def __post_init__(self) -> None:
        """Validate the descriptor after initialization."""
        if not self.id:
            raise InvalidMetadataError("Extension id is required")
        if not is_valid_id(self.id):
            raise InvalidMetadataError(
                f"Invalid extension id: {self.id}. "
                "Use lowercase letters, numbers and single hyphens.",
                self.id,
            )
        if not self.entry_point:
            raise InvalidMetadataError("Extension entry point must not be empty", self.id)

    @classmethod
    def from_path(cls, ext_dir: Path) -> ExtensionDescriptor:
        """Load the descriptor of an extension directory.

        Args:
            ext_dir: Extension root directory.

        Returns:
            Parsed ExtensionDescriptor.

        Raises:
            ExtensionNotFoundError: If the descriptor file is missing.
            InvalidMetadataError: If the descriptor is malformed.
        """
        return cls.from_json(ext_dir / DESCRIPTOR_FILENAME)

    @classmethod
    def from_json(cls, json_path: Path) -> ExtensionDescriptor:
        """Load a descriptor from an extension.json file."""
        if not json_path.is_file():
            raise ExtensionNotFoundError(f"Extension descriptor not found: {json_path}")

        try:
            data = json.loads(json_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidMetadataError(f"Invalid JSON in {json_path}: {e}")

        if not isinstance(data, dict):
            raise InvalidMetadataError(f"Descriptor must be a JSON object: {json_path}")

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtensionDescriptor:
        """Create a descriptor from a dictionary.

        Raises:
            InvalidMetadataError: If required fields are missing or invalid.
        """
        ext_id = data.get("id")
        if not isinstance(ext_id, str) or not ext_id:
            raise InvalidMetadataError("Extension descriptor is missing 'id'")

        raw_types = data.get("types") or [ExtensionType.PLUGIN.value]
        if isinstance(raw_types, str):
            raw_types = [raw_types]
        try:
            types = frozenset(ExtensionType(t) for t in raw_types)
        except (ValueError, TypeError) as e:
            raise InvalidMetadataError(f"Invalid extension type in '{ext_id}': {e}", ext_id)

        entry_point = data.get("entryPoint", data.get("controller", DEFAULT_ENTRY_POINT))

        return cls(
            id=ext_id,
            name=str(data.get("name") or ext_id),
            version=str(data.get("version") or DEFAULT_VERSION),
            author=data.get("author"),
            description=data.get("description"),
            types=types,
            entry_point=str(entry_point),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert descriptor to its extension.json representation."""
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "types": sorted(t.value for t in self.types),
        }
        if self.author:
            result["author"] = self.author
        if self.description:
            result["description"] = self.description
        if self.entry_point != DEFAULT_ENTRY_POINT:
            result["entryPoint"] = self.entry_point
        return result

    def has_type(self, ext_type: ExtensionType | str) -> bool:
        """Check if the descriptor declares a type."""
        return ExtensionType(ext_type) in self.types

    @property
    def is_theme(self) -> bool:
        return ExtensionType.THEME in self.types

    @property
    def is_language_pack(self) -> bool:
        return ExtensionType.LANGUAGE_PACK in self.types

    def __repr__(self) -> str:
        return f"ExtensionDescriptor(id={self.id!r}, version={self.version!r})"
