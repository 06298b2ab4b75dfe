"""Artifact publishing strategies.

Maps each artifact kind an extension can contribute to publish/unpublish
steps built from ArtifactBinder primitives:

| Kind       | Publish                         | Unpublish                      |
|------------|---------------------------------|--------------------------------|
| assets     | recursive copy                  | recursive delete               |
| views      | link (replacing prior target)   | remove link or directory       |
| components | link per panel/component kind   | remove link or directory       |
| theme      | link (replacing prior target)   | remove link or directory       |
| config     | merge into runtime namespace    | nothing (no filesystem output) |
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from extensions.binder import ArtifactBinder, ArtifactBinding, BindingStrategy
from extensions.errors import PublishError
from host.formats import DocumentError, find_document, load_document
from host.paths import COMPONENT_KINDS, PANELS, HostPaths
from host.runtime import RuntimeConfig

logger = logging.getLogger(__name__)


class ArtifactKind(str, Enum):
    """Kinds of artifacts an extension can publish."""

    ASSETS = "assets"
    VIEWS = "views"
    COMPONENTS = "components"
    THEME = "theme"
    CONFIG = "config"


def has_content(directory: Path) -> bool:
    """Check if a directory exists and contains at least one entry."""
    return directory.is_dir() and any(directory.iterdir())


class ArtifactPublisher:
    """Publish and unpublish extension artifacts into host namespaces."""

    def __init__(self, paths: HostPaths, binder: ArtifactBinder, runtime_config: RuntimeConfig):
        self.paths = paths
        self.binder = binder
        self.runtime_config = runtime_config

    def bindings(self, kind: ArtifactKind, extension_id: str) -> list[ArtifactBinding]:
        """Compute the bindings needed to publish one artifact kind.

        Sources that are missing or empty produce no binding: the
        extension simply does not use that capability.
        """
        ext_dir = self.paths.extension_dir(extension_id)
        candidates: list[ArtifactBinding] = []

        if kind == ArtifactKind.ASSETS:
            candidates.append(ArtifactBinding(
                ext_dir / "public", self.paths.assets_target(extension_id), BindingStrategy.COPY
            ))
        elif kind == ArtifactKind.VIEWS:
            candidates.append(ArtifactBinding(
                ext_dir / "views", self.paths.views_target(extension_id), BindingStrategy.LINK
            ))
        elif kind == ArtifactKind.THEME:
            candidates.append(ArtifactBinding(
                ext_dir / "theme", self.paths.theme_target(extension_id), BindingStrategy.LINK
            ))
        elif kind == ArtifactKind.COMPONENTS:
            for panel in PANELS:
                for component_kind in COMPONENT_KINDS:
                    candidates.append(ArtifactBinding(
                        ext_dir / panel / component_kind,
                        self.paths.component_target(panel, component_kind, extension_id),
                        BindingStrategy.LINK,
                    ))

        return [b for b in candidates if has_content(b.source)]

    def targets(self, kind: ArtifactKind, extension_id: str) -> list[Path]:
        """Every target path a kind may have published, whether or not it exists."""
        if kind == ArtifactKind.ASSETS:
            return [self.paths.assets_target(extension_id)]
        if kind == ArtifactKind.VIEWS:
            return [self.paths.views_target(extension_id)]
        if kind == ArtifactKind.THEME:
            return [self.paths.theme_target(extension_id)]
        if kind == ArtifactKind.COMPONENTS:
            return [
                self.paths.component_target(panel, component_kind, extension_id)
                for panel in PANELS
                for component_kind in COMPONENT_KINDS
            ]
        return []

    def publish(self, kind: ArtifactKind, extension_id: str) -> list[ArtifactBinding]:
        """Publish one artifact kind.

        Returns:
            Bindings that were applied (empty when the kind is unused).

        Raises:
            PublishError: If copying, linking or loading config fails.
        """
        if kind == ArtifactKind.CONFIG:
            self._publish_config(extension_id)
            return []

        applied: list[ArtifactBinding] = []
        for binding in self.bindings(kind, extension_id):
            try:
                self.binder.apply(binding)
            except PublishError as e:
                e.extension_id = extension_id
                raise
            applied.append(binding)

        if applied:
            logger.debug("Published %s for %s (%d bindings)", kind.value, extension_id, len(applied))
        return applied

    def unpublish(self, kind: ArtifactKind, extension_id: str) -> int:
        """Unpublish one artifact kind; already-absent targets are ignored.

        Returns:
            Number of targets removed.
        """
        removed = 0
        for target in self.targets(kind, extension_id):
            if self.binder.remove(target):
                removed += 1
        if removed:
            logger.debug("Unpublished %s for %s (%d targets)", kind.value, extension_id, removed)
        return removed

    def _publish_config(self, extension_id: str) -> None:
        config_dir = self.paths.extension_dir(extension_id) / "config"
        config_file = find_document(config_dir, extension_id) if config_dir.is_dir() else None
        if config_file is None:
            return

        try:
            values = load_document(config_file)
        except DocumentError as e:
            raise PublishError(
                f"Invalid config fragment for '{extension_id}': {e}", extension_id, config_file
            ) from e

        self.runtime_config.merge(extension_id, values)
        logger.debug("Merged config namespace %s from %s", extension_id, config_file.name)
