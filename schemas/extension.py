"""Schema for extension ledger records.

Defines the persisted state of an extension:
- Identity and descriptive metadata copied from the descriptor
- Enabled flag
- Applied migration filenames
- Translation override keys owned by the extension
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ExtensionType(str, Enum):
    """Capability type declared by an extension."""

    PLUGIN = "plugin"
    THEME = "theme"
    LANGUAGE_PACK = "language-pack"

    @property
    def label(self) -> str:
        """Human-readable label."""
        return {
            ExtensionType.PLUGIN: "Plugin",
            ExtensionType.THEME: "Theme",
            ExtensionType.LANGUAGE_PACK: "Language Pack",
        }[self]


class ExtensionRecord(BaseModel):
    """Ledger entry for an extension that has been enabled at least once."""

    identifier: str = Field(description="Unique extension id")
    name: str = Field(description="Display name")
    description: str | None = Field(default=None, description="Short description")
    version: str = Field(default="1.0.0", description="Version string")
    author: str | None = Field(default=None, description="Author name")
    types: list[ExtensionType] = Field(
        default_factory=lambda: [ExtensionType.PLUGIN],
        description="Declared extension types",
    )
    enabled: bool = Field(default=False, description="Whether the extension is enabled")
    applied_migrations: list[str] = Field(
        default_factory=list, description="Migration filenames applied, in order"
    )
    language_overrides: list[str] | None = Field(
        default=None, description="Override keys (locale/file) owned by this extension"
    )
    settings: dict[str, Any] = Field(default_factory=dict, description="Opaque settings blob")


class ExtensionStatus(BaseModel):
    """Row describing an extension found on disk, for listings."""

    id: str
    name: str
    version: str
    enabled: bool = False
    installed: bool = False
    types: list[ExtensionType] = Field(default_factory=list)

    @property
    def status(self) -> str:
        return "Enabled" if self.enabled else "Disabled"
