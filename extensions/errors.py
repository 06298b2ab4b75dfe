"""Error types raised by the extension lifecycle engine."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from extensions.overlay import OverrideConflict


class ExtensionError(Exception):
    """Base class for extension lifecycle failures."""

    def __init__(self, message: str, extension_id: str | None = None):
        super().__init__(message)
        self.extension_id = extension_id


class ExtensionNotFoundError(ExtensionError):
    """Raised when an extension directory or descriptor does not exist."""

    pass


class InvalidMetadataError(ExtensionError):
    """Raised when a descriptor cannot be parsed or lacks required fields."""

    pass


class MigrationError(ExtensionError):
    """Raised when an extension migration script fails."""

    def __init__(self, message: str, extension_id: str | None = None, script: str | None = None):
        super().__init__(message, extension_id)
        self.script = script


class PublishError(ExtensionError):
    """Raised when copying, linking or writing an artifact fails."""

    def __init__(self, message: str, extension_id: str | None = None, target: Path | None = None):
        super().__init__(message, extension_id)
        self.target = target


class OverrideConflictError(ExtensionError):
    """Raised after rollback when translation overrides collide with another extension."""

    def __init__(self, extension_id: str, conflicts: list[OverrideConflict]):
        self.conflicts = list(conflicts)
        details = ", ".join(
            f"'{c.override_key}' is already overridden by '{c.blocking_extension_name}'"
            for c in self.conflicts
        )
        super().__init__(
            f"Language pack conflict detected for '{extension_id}': {details}. "
            "Please disable the conflicting extension(s) first before enabling this extension.",
            extension_id,
        )

    @property
    def blocking_extension_ids(self) -> list[str]:
        """Ids of every extension that blocked the enable, without duplicates."""
        seen: list[str] = []
        for conflict in self.conflicts:
            if conflict.blocking_extension_id not in seen:
                seen.append(conflict.blocking_extension_id)
        return seen


class InvalidPackageError(ExtensionError):
    """Raised when an archive does not contain a usable extension."""

    pass
