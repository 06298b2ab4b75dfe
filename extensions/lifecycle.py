"""Extension lifecycle orchestration.

States per extension:

    unknown -> discovered -> enabled <-> disabled -> (uninstalled == unknown)

LifecycleManager composes the publisher, overlay resolver, ledger and
registry. Enable publishes artifacts in a fixed order and rolls everything
back when translation overrides conflict with another enabled extension.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from filelock import FileLock

from extensions.archive import export_filename, extract_archive, locate_descriptor_root, write_archive
from extensions.context import ExtensionContext
from extensions.errors import (
    ExtensionError,
    ExtensionNotFoundError,
    InvalidMetadataError,
    InvalidPackageError,
    OverrideConflictError,
    PublishError,
)
from extensions.manifest import ExtensionDescriptor, is_valid_id
from extensions.migrations import run_migrations
from extensions.overlay import OverlayResolver
from extensions.publisher import ArtifactKind, ArtifactPublisher
from extensions.registry import ExtensionRegistry
from schemas.extension import ExtensionRecord, ExtensionStatus

logger = logging.getLogger(__name__)

UNPUBLISH_ORDER = (
    ArtifactKind.ASSETS,
    ArtifactKind.VIEWS,
    ArtifactKind.COMPONENTS,
    ArtifactKind.CONFIG,
    ArtifactKind.THEME,
)


class ExtensionState(str, Enum):
    """Observable lifecycle state of an extension."""

    UNKNOWN = "unknown"
    DISCOVERED = "discovered"
    ENABLED = "enabled"
    DISABLED = "disabled"


@dataclass
class ImportResult:
    """Outcome of importing an extension archive."""

    success: bool
    message: str
    is_update: bool
    extension_id: str | None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "isUpdate": self.is_update,
            "extensionId": self.extension_id,
        }


def publish_order(descriptor: ExtensionDescriptor) -> list[ArtifactKind]:
    """Artifact kinds enable publishes, in order, before the language overlay."""
    kinds = [
        ArtifactKind.ASSETS,
        ArtifactKind.VIEWS,
        ArtifactKind.CONFIG,
        ArtifactKind.COMPONENTS,
    ]
    if descriptor.is_theme:
        kinds.append(ArtifactKind.THEME)
    return kinds


class LifecycleManager:
    """Enable, disable, uninstall, import and export extensions.

    Mutating operations hold an advisory lock on the host's extensions
    lock file for their whole duration. The lock is re-entrant, so
    uninstall can call disable and import can call uninstall and enable.

    Example:
        >>> context = ExtensionContext.from_config(get_config())
        >>> manager = LifecycleManager(context)
        >>> manager.enable("dark-theme")
        >>> manager.disable("dark-theme")
    """

    def __init__(
        self,
        context: ExtensionContext,
        registry: ExtensionRegistry | None = None,
        publisher: ArtifactPublisher | None = None,
        overlay: OverlayResolver | None = None,
    ):
        self.context = context
        self.overlay = overlay or OverlayResolver(
            context.paths, context.ledger, context.binder, context.translator
        )
        self.publisher = publisher or ArtifactPublisher(
            context.paths, context.binder, context.runtime_config
        )
        self.registry = registry or ExtensionRegistry(context, self.overlay)
        self._lock = FileLock(str(context.paths.lock_file))

    @property
    def paths(self):
        return self.context.paths

    @property
    def ledger(self):
        return self.context.ledger

    @contextmanager
    def _locked(self) -> Iterator[None]:
        self.paths.lock_file.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            # another process may have changed the ledger since we last read it
            if self._lock.lock_counter == 1:
                self.ledger.reload()
            yield

    def extension_dir(self, extension_id: str) -> Path:
        """Directory of an extension, refusing ids that are not plain kebab-case names.

        Raises:
            ExtensionNotFoundError: If the id could point outside the extensions directory.
        """
        if not is_valid_id(extension_id):
            raise ExtensionNotFoundError(f"Invalid extension id: {extension_id!r}", extension_id)
        return self.paths.extension_dir(extension_id)

    def load_descriptor(self, extension_id: str) -> ExtensionDescriptor:
        """Read the descriptor of an installed extension.

        Raises:
            ExtensionNotFoundError: If the directory or descriptor is missing.
            InvalidMetadataError: If the descriptor is malformed or its id
                does not match the directory name.
        """
        ext_dir = self.extension_dir(extension_id)
        if not ext_dir.is_dir():
            raise ExtensionNotFoundError(
                f"Extension directory not found: {extension_id}", extension_id
            )
        try:
            descriptor = ExtensionDescriptor.from_path(ext_dir)
        except ExtensionError as e:
            e.extension_id = extension_id
            raise
        if descriptor.id != extension_id:
            raise InvalidMetadataError(
                f"Descriptor id '{descriptor.id}' does not match directory '{extension_id}'",
                extension_id,
            )
        return descriptor

    def enable(self, extension_id: str) -> ExtensionRecord:
        """Enable an extension and publish its artifacts.

        Order: record upsert, migrations, assets, views, config,
        components, theme (theme type), language overlay (language-pack type).

        Returns:
            The saved ledger record.

        Raises:
            ExtensionNotFoundError: If the extension is not on disk.
            InvalidMetadataError: If its descriptor is invalid.
            MigrationError: If a migration script fails; the record stays
                enabled and nothing is published.
            PublishError: If an artifact cannot be copied, linked or written.
            OverrideConflictError: If translation overrides are owned by
                another enabled extension; everything published is rolled back.
        """
        with self._locked():
            descriptor = self.load_descriptor(extension_id)
            ext_dir = self.extension_dir(extension_id)

            record = self.ledger.get(extension_id) or ExtensionRecord(
                identifier=extension_id, name=descriptor.name
            )
            record.name = descriptor.name
            record.description = descriptor.description
            record.version = descriptor.version
            record.author = descriptor.author
            record.types = sorted(descriptor.types, key=lambda t: t.value)
            record.enabled = True
            self.ledger.save(record)

            run_migrations(
                self.context.migrations,
                extension_id,
                ext_dir / "migrations",
                record.applied_migrations,
                on_applied=lambda applied: self._record_migrations(extension_id, applied),
            )

            published: list[ArtifactKind] = []
            for kind in publish_order(descriptor):
                self.publisher.publish(kind, extension_id)
                published.append(kind)

            if descriptor.is_language_pack:
                result = self.overlay.publish(extension_id)
                if result.conflicts:
                    self._rollback(extension_id, published)
                    raise OverrideConflictError(extension_id, result.conflicts)

            self.registry.activate(descriptor, ext_dir)
            self.registry.register_all()

        logger.info("Enabled extension %s (%s)", extension_id, descriptor.version)
        return self.ledger.get(extension_id)

    def _record_migrations(self, extension_id: str, applied: list[str]) -> None:
        record = self.ledger.get(extension_id)
        if record is not None:
            record.applied_migrations = list(applied)
            self.ledger.save(record)

    def _rollback(self, extension_id: str, published: list[ArtifactKind]) -> None:
        self.ledger.set_enabled(extension_id, False)
        for kind in reversed(published):
            self.publisher.unpublish(kind, extension_id)
        logger.warning("Rolled back enable of %s", extension_id)

    def disable(self, extension_id: str) -> bool:
        """Disable an extension and unpublish its artifacts.

        Safe to repeat: absent artifacts are skipped.

        Returns:
            False if the extension has no ledger record (nothing to do).
        """
        with self._locked():
            if not self.ledger.exists(extension_id):
                return False

            active = self.registry.get(extension_id)
            if active is not None:
                active.controller.disable()

            self.ledger.set_enabled(extension_id, False)
            for kind in UNPUBLISH_ORDER:
                self.publisher.unpublish(kind, extension_id)
            self.overlay.unpublish(extension_id)
            self.registry.deactivate(extension_id)

        logger.info("Disabled extension %s", extension_id)
        return True

    def uninstall(self, extension_id: str) -> None:
        """Disable an extension, delete its directory and its ledger record.

        Applied migrations are left in place.

        Raises:
            ExtensionNotFoundError: If the extension is neither on disk nor
                in the ledger.
        """
        with self._locked():
            ext_dir = self.extension_dir(extension_id)
            record = self.ledger.get(extension_id)
            if record is None and not ext_dir.exists():
                raise ExtensionNotFoundError(f"Extension not found: {extension_id}", extension_id)

            self.disable(extension_id)

            if record is not None and record.applied_migrations:
                logger.warning(
                    "Migration rollback is not supported; %d migration(s) of %s left applied",
                    len(record.applied_migrations),
                    extension_id,
                )

            if ext_dir.is_symlink():
                ext_dir.unlink()
            elif ext_dir.is_dir():
                shutil.rmtree(ext_dir)
            self.ledger.delete(extension_id)

        logger.info("Uninstalled extension %s", extension_id)

    def import_archive(self, archive_path: Path, auto_enable: bool = False) -> ImportResult:
        """Install (or update) an extension from an archive.

        An existing extension with the same id is fully uninstalled first.
        The temporary extraction directory is always removed.

        Raises:
            InvalidPackageError: If the archive is unreadable or has no
                usable descriptor.
            PublishError: If the extension tree cannot be copied.
        """
        archive_path = Path(archive_path)
        with self._locked():
            self.paths.temp_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.TemporaryDirectory(dir=self.paths.temp_dir, prefix="import-") as tmp_dir:
                extract_archive(archive_path, Path(tmp_dir))

                root = locate_descriptor_root(Path(tmp_dir))
                if root is None:
                    raise InvalidPackageError(
                        f"extension.json not found in {archive_path.name}"
                    )
                try:
                    descriptor = ExtensionDescriptor.from_path(root)
                except ExtensionError as e:
                    raise InvalidPackageError(
                        f"Invalid extension.json in {archive_path.name}: {e}"
                    ) from e

                extension_id = descriptor.id
                target = self.extension_dir(extension_id)
                is_update = target.exists()
                if is_update:
                    self.uninstall(extension_id)

                try:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copytree(root, target)
                except (OSError, shutil.Error) as e:
                    raise PublishError(
                        f"Failed to copy extension files to {target}: {e}", extension_id, target
                    ) from e

            if auto_enable:
                self.enable(extension_id)

        message = "Extension updated successfully" if is_update else "Extension imported successfully"
        logger.info("%s: %s", message, extension_id)
        return ImportResult(
            success=True, message=message, is_update=is_update, extension_id=extension_id
        )

    def export_archive(self, extension_id: str, output_path: Path | None = None) -> Path:
        """Zip the live tree of an installed extension.

        Returns:
            Path of the written archive.
        """
        ext_dir = self.extension_dir(extension_id)
        if not ext_dir.is_dir():
            raise ExtensionNotFoundError(
                f"Extension directory not found: {extension_id}", extension_id
            )

        if output_path is None:
            output_path = self.paths.exports_dir / export_filename(extension_id)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "wb") as f:
            count = write_archive(ext_dir, f)

        logger.info("Exported %s (%d files) to %s", extension_id, count, output_path)
        return output_path

    def state(self, extension_id: str) -> ExtensionState:
        record = self.ledger.get(extension_id)
        if record is not None:
            return ExtensionState.ENABLED if record.enabled else ExtensionState.DISABLED
        try:
            self.load_descriptor(extension_id)
        except ExtensionError:
            return ExtensionState.UNKNOWN
        return ExtensionState.DISCOVERED

    def list_extensions(self) -> list[ExtensionStatus]:
        """Extensions on disk with a readable descriptor, with ledger status."""
        extensions_dir = self.paths.extensions_dir
        if not extensions_dir.is_dir():
            return []

        statuses = []
        for ext_dir in sorted(p for p in extensions_dir.iterdir() if p.is_dir()):
            try:
                descriptor = ExtensionDescriptor.from_path(ext_dir)
            except ExtensionError as e:
                logger.debug("Skipping %s: %s", ext_dir.name, e)
                continue
            record = self.ledger.get(descriptor.id)
            statuses.append(ExtensionStatus(
                id=descriptor.id,
                name=descriptor.name,
                version=descriptor.version,
                enabled=bool(record and record.enabled),
                installed=record is not None,
                types=sorted(descriptor.types, key=lambda t: t.value),
            ))
        return statuses

    def boot(self) -> ExtensionRegistry:
        """Discover, register and boot every enabled extension."""
        self.registry.boot()
        return self.registry
