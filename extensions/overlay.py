"""Translation overlays contributed by language-pack extensions.

An extension's lang/ directory can hold three kinds of content:

    lang/<locale>/...                 locale the host lacks: linked wholesale
    lang/<locale>/...                 locale the host has: exposed as "<id>::" namespace
    lang/overrides/<locale>/<file>    merged into the host's lang/<locale>/<file>

Override keys ("<locale>/<file>") are owned by at most one enabled
extension. Ownership is the languageOverrides list of each ledger record.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from extensions.binder import ArtifactBinder
from extensions.errors import PublishError
from extensions.ledger import ExtensionLedger, OverrideOwner
from host.formats import WRITABLE_SUFFIXES, DocumentError, deep_merge, dump_document, load_document
from host.paths import HostPaths
from host.runtime import Translator

logger = logging.getLogger(__name__)

OVERRIDES_DIR = "overrides"
BACKUP_MARKER = ".backup-before-"


@dataclass(frozen=True)
class OverrideConflict:
    """An override key already owned by another enabled extension."""

    override_key: str
    blocking_extension_id: str
    blocking_extension_name: str


@dataclass(frozen=True)
class OverrideCandidate:
    """One override file an extension wants to apply."""

    key: str
    source: Path
    target: Path


@dataclass
class OverlayResult:
    """Outcome of publishing an extension's translation overlay."""

    conflicts: list[OverrideConflict] = field(default_factory=list)
    overrides: list[str] = field(default_factory=list)
    linked_locales: list[str] = field(default_factory=list)
    namespace_bound: bool = False

    @property
    def ok(self) -> bool:
        return not self.conflicts


def override_key(locale: str, filename: str) -> str:
    return f"{locale}/{filename}"


def backup_path(target: Path, extension_id: str) -> Path:
    return target.with_name(f"{target.name}{BACKUP_MARKER}{extension_id}")


def detect_conflicts(
    candidates: Iterable[str], ownership: Mapping[str, OverrideOwner]
) -> list[OverrideConflict]:
    """Compute conflicts between candidate override keys and current owners.

    Args:
        candidates: Override keys the extension wants to write.
        ownership: Key -> owner for every other enabled extension.

    Returns:
        One conflict per owned key, in candidate order.
    """
    conflicts: list[OverrideConflict] = []
    for key in dict.fromkeys(candidates):
        owner = ownership.get(key)
        if owner is not None:
            conflicts.append(OverrideConflict(key, owner.extension_id, owner.extension_name))
    return conflicts


class OverlayResolver:
    """Publish and restore translation overlays with all-or-nothing conflict handling."""

    def __init__(
        self,
        paths: HostPaths,
        ledger: ExtensionLedger,
        binder: ArtifactBinder,
        translator: Translator,
    ):
        self.paths = paths
        self.ledger = ledger
        self.binder = binder
        self.translator = translator

    def lang_dir(self, extension_id: str) -> Path:
        return self.paths.extension_dir(extension_id) / "lang"

    def locale_dirs(self, extension_id: str) -> list[Path]:
        """Locale directories of an extension, excluding overrides/."""
        lang_dir = self.lang_dir(extension_id)
        if not lang_dir.is_dir():
            return []
        return sorted(
            p for p in lang_dir.iterdir() if p.is_dir() and p.name != OVERRIDES_DIR
        )

    def new_locales(self, extension_id: str) -> list[Path]:
        """Locale directories the host does not provide itself."""
        return [
            p for p in self.locale_dirs(extension_id)
            if not self.paths.locale_dir(p.name).exists()
            or self.binder.is_link(self.paths.locale_dir(p.name), p)
        ]

    def candidates(self, extension_id: str) -> list[OverrideCandidate]:
        """Override files targeting locales the host already has."""
        overrides_dir = self.lang_dir(extension_id) / OVERRIDES_DIR
        if not overrides_dir.is_dir():
            return []

        found: list[OverrideCandidate] = []
        for locale_dir in sorted(p for p in overrides_dir.iterdir() if p.is_dir()):
            host_locale = self.paths.locale_dir(locale_dir.name)
            if not host_locale.is_dir():
                logger.debug(
                    "Skipping overrides for %s: host has no locale %s", extension_id, locale_dir.name
                )
                continue
            for source in sorted(p for p in locale_dir.iterdir() if p.is_file()):
                found.append(OverrideCandidate(
                    key=override_key(locale_dir.name, source.name),
                    source=source,
                    target=host_locale / source.name,
                ))
        return found

    def conflicts(self, extension_id: str) -> list[OverrideConflict]:
        """Conflicts enabling this extension's overrides would cause right now."""
        return detect_conflicts(
            (c.key for c in self.candidates(extension_id)),
            self.ledger.override_ownership(exclude=extension_id),
        )

    def publish(self, extension_id: str) -> OverlayResult:
        """Publish the overlay of one extension.

        Conflict detection runs over every override before anything is
        written. When any key is owned by another enabled extension, nothing
        is linked, merged or registered and the conflicts are returned.

        Raises:
            PublishError: If a link or override file cannot be written.
        """
        candidates = self.candidates(extension_id)
        result = OverlayResult(
            conflicts=detect_conflicts(
                (c.key for c in candidates),
                self.ledger.override_ownership(exclude=extension_id),
            )
        )
        if result.conflicts:
            logger.warning(
                "Overlay for %s blocked by %d conflicting override(s)",
                extension_id,
                len(result.conflicts),
            )
            return result

        for locale_dir in self.new_locales(extension_id):
            target = self.paths.locale_dir(locale_dir.name)
            try:
                self.binder.link(locale_dir, target)
            except PublishError as e:
                e.extension_id = extension_id
                raise
            result.linked_locales.append(locale_dir.name)
            logger.info("Linked new locale %s from %s", locale_dir.name, extension_id)

        try:
            for candidate in candidates:
                self._apply_override(extension_id, candidate)
                result.overrides.append(candidate.key)
        finally:
            if result.overrides:
                record = self.ledger.get(extension_id)
                owned = list(record.language_overrides or []) if record else []
                self.ledger.set_language_overrides(extension_id, owned + result.overrides)

        if self.lang_dir(extension_id).is_dir():
            self.bind_namespace(extension_id, self.lang_dir(extension_id))
            result.namespace_bound = True
        return result

    def _apply_override(self, extension_id: str, candidate: OverrideCandidate) -> None:
        target = candidate.target
        try:
            if not target.exists():
                shutil.copyfile(candidate.source, target)
                logger.debug("Created %s from %s", candidate.key, extension_id)
                return

            backup = backup_path(target, extension_id)
            if not backup.exists():
                shutil.copy2(target, backup)

            suffix = target.suffix.lower()
            if suffix in WRITABLE_SUFFIXES and candidate.source.suffix.lower() == suffix:
                merged = deep_merge(load_document(backup, suffix), load_document(candidate.source))
                dump_document(target, merged)
            else:
                shutil.copyfile(candidate.source, target)
        except (OSError, DocumentError) as e:
            raise PublishError(
                f"Failed to apply override {candidate.key} for '{extension_id}': {e}",
                extension_id,
                target,
            ) from e
        logger.debug("Merged override %s from %s", candidate.key, extension_id)

    def unpublish(self, extension_id: str) -> list[str]:
        """Restore every override key this extension owns and drop its bindings.

        Keys not tracked in the ledger are never touched.

        Returns:
            Override keys that were restored or removed.
        """
        record = self.ledger.get(extension_id)
        owned = list(record.language_overrides or []) if record else []
        restored: list[str] = []

        for key in owned:
            locale, _, filename = key.partition("/")
            target = self.paths.locale_dir(locale) / filename
            backup = backup_path(target, extension_id)
            try:
                if backup.exists():
                    os.replace(backup, target)
                elif target.exists():
                    target.unlink()
            except OSError as e:
                logger.warning("Could not restore %s for %s: %s", key, extension_id, e)
                continue
            restored.append(key)

        if record is not None and record.language_overrides is not None:
            self.ledger.set_language_overrides(extension_id, None)

        for locale_dir in self.locale_dirs(extension_id):
            target = self.paths.locale_dir(locale_dir.name)
            if self.binder.is_link(target, locale_dir) and self.binder.remove(target):
                logger.info("Removed locale link %s of %s", locale_dir.name, extension_id)

        self.translator.remove_namespace(extension_id)

        if restored:
            logger.info("Restored %d override(s) for %s", len(restored), extension_id)
        return restored

    def bind_namespace(self, extension_id: str, lang_path: Path) -> None:
        """Expose an extension's translations under "<extension_id>::"."""
        self.translator.add_namespace(extension_id, lang_path)
