"""Persistent ledger of extension state.

Stores one ExtensionRecord per extension that has ever been enabled,
in a single JSON document:

    {
      "extensions": {
        "<identifier>": { ...ExtensionRecord... }
      }
    }
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from schemas.extension import ExtensionRecord

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Raised when the ledger file cannot be read."""

    pass


@dataclass(frozen=True)
class OverrideOwner:
    """Extension currently owning a translation override key."""

    extension_id: str
    extension_name: str


class ExtensionLedger:
    """JSON-file backed store of ExtensionRecord entries.

    Every mutation is written through immediately with an atomic replace,
    so the file always reflects the last completed operation.
    """

    def __init__(self, path: Path):
        """Initialize the ledger.

        Args:
            path: Location of the ledger JSON file (created on first write).
        """
        self.path = Path(path)
        self._records: dict[str, ExtensionRecord] = {}
        if self.path.exists():
            self._load()

    def _load(self) -> None:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            entries = data.get("extensions", {}) if isinstance(data, dict) else {}
            self._records = {
                identifier: ExtensionRecord.model_validate(entry)
                for identifier, entry in entries.items()
            }
        except (json.JSONDecodeError, ValidationError, AttributeError) as e:
            raise LedgerError(f"Corrupt extension ledger {self.path}: {e}") from e

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "extensions": {
                identifier: record.model_dump(mode="json")
                for identifier, record in sorted(self._records.items())
            }
        }
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".ledger-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def reload(self) -> None:
        """Re-read the ledger from disk, discarding in-memory state."""
        self._records = {}
        if self.path.exists():
            self._load()

    def get(self, identifier: str) -> ExtensionRecord | None:
        """Get a copy of a record, or None if the extension has no record."""
        record = self._records.get(identifier)
        return record.model_copy(deep=True) if record else None

    def exists(self, identifier: str) -> bool:
        return identifier in self._records

    def is_enabled(self, identifier: str) -> bool:
        record = self._records.get(identifier)
        return bool(record and record.enabled)

    def all(self) -> list[ExtensionRecord]:
        return [r.model_copy(deep=True) for _, r in sorted(self._records.items())]

    def enabled(self) -> list[ExtensionRecord]:
        return [r for r in self.all() if r.enabled]

    def save(self, record: ExtensionRecord) -> ExtensionRecord:
        """Insert or replace a record."""
        self._records[record.identifier] = record.model_copy(deep=True)
        self._save()
        return record

    def set_enabled(self, identifier: str, enabled: bool) -> ExtensionRecord | None:
        record = self.get(identifier)
        if record is None:
            return None
        record.enabled = enabled
        return self.save(record)

    def set_language_overrides(
        self, identifier: str, overrides: list[str] | None
    ) -> ExtensionRecord | None:
        record = self.get(identifier)
        if record is None:
            return None
        record.language_overrides = sorted(set(overrides)) if overrides else None
        return self.save(record)

    def delete(self, identifier: str) -> bool:
        if identifier not in self._records:
            return False
        del self._records[identifier]
        self._save()
        return True

    def override_ownership(self, exclude: str | None = None) -> dict[str, OverrideOwner]:
        """Map each override key to the enabled extension that owns it.

        Args:
            exclude: Extension id to leave out (the one being enabled).
        """
        ownership: dict[str, OverrideOwner] = {}
        for identifier, record in sorted(self._records.items()):
            if not record.enabled or identifier == exclude:
                continue
            for key in record.language_overrides or []:
                ownership.setdefault(key, OverrideOwner(identifier, record.name))
        return ownership
