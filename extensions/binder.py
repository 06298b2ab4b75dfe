"""Filesystem primitives used to publish extension artifacts.

Two strategies are provided:
- ArtifactBinder: recursive copies and symbolic links
- TrackedCopyBinder: recursive copies everywhere, with a manifest of
  extension-owned targets, for platforms without reliable symlinks
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from extensions.errors import PublishError

logger = logging.getLogger(__name__)


class BindingStrategy(str, Enum):
    """How a source tree is projected onto its target."""

    COPY = "copy"
    LINK = "link"
    MERGE_WRITE = "merge-write"


@dataclass(frozen=True)
class ArtifactBinding:
    """One publish step: project source onto target using a strategy."""

    source: Path
    target: Path
    strategy: BindingStrategy


def supports_symlinks(directory: Path) -> bool:
    """Probe whether directory links can be created under a directory."""
    directory.mkdir(parents=True, exist_ok=True)
    with tempfile.TemporaryDirectory(dir=directory) as tmp_dir:
        source = Path(tmp_dir) / "source"
        source.mkdir()
        try:
            (Path(tmp_dir) / "link").symlink_to(source, target_is_directory=True)
        except (OSError, NotImplementedError):
            return False
    return True


class ArtifactBinder:
    """Copy, link and remove artifact trees.

    Example:
        >>> binder = ArtifactBinder()
        >>> binder.link(Path("extensions/foo/views"), Path("resources/views/extensions/foo"))
        >>> binder.remove(Path("resources/views/extensions/foo"))
    """

    strategy_name = "link"

    def copy_directory(self, source: Path, target: Path) -> None:
        """Recursively copy a directory, merging into an existing target."""
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copytree(source, target, dirs_exist_ok=True)
        except (OSError, shutil.Error) as e:
            raise PublishError(f"Failed to copy {source} to {target}: {e}", target=target) from e
        logger.debug("Copied %s -> %s", source, target)

    def link(self, source: Path, target: Path) -> None:
        """Create target as a link to source, replacing any prior link or directory."""
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            self.remove(target)
            target.symlink_to(source.resolve(), target_is_directory=True)
        except OSError as e:
            raise PublishError(f"Failed to link {target} to {source}: {e}", target=target) from e
        logger.debug("Linked %s -> %s", target, source)

    def is_link(self, target: Path, source: Path | None = None) -> bool:
        """Check if target is a link, tolerating platforms with weak link introspection.

        Args:
            target: Path to inspect.
            source: Expected link destination; when given, only a target
                whose real path resolves to it counts.
        """
        if source is not None:
            if not target.exists() or not source.exists():
                return False
            return os.path.realpath(target) == os.path.realpath(source) and (
                os.path.abspath(target) != os.path.abspath(source)
            )
        if os.path.islink(target):
            return True
        is_junction = getattr(target, "is_junction", None)
        return is_junction is not None and is_junction()

    def remove(self, target: Path) -> bool:
        """Remove a link, directory or file.

        Returns:
            True if something was removed, False if target was already absent.
        """
        if self.is_link(target):
            try:
                target.unlink()
            except (IsADirectoryError, PermissionError):
                # Windows directory links and junctions
                os.rmdir(target)
            except FileNotFoundError:
                return False
            logger.debug("Removed link %s", target)
            return True

        try:
            if target.is_dir():
                shutil.rmtree(target)
            elif target.exists():
                target.unlink()
            else:
                return False
        except FileNotFoundError:
            return False
        logger.debug("Removed %s", target)
        return True

    def apply(self, binding: ArtifactBinding) -> None:
        """Execute a binding."""
        if binding.strategy == BindingStrategy.COPY:
            self.copy_directory(binding.source, binding.target)
        elif binding.strategy == BindingStrategy.LINK:
            self.link(binding.source, binding.target)
        else:
            raise ValueError(f"Binder cannot apply {binding.strategy.value} bindings")

    def revert(self, binding: ArtifactBinding) -> bool:
        """Undo a binding; absent targets are a successful no-op."""
        return self.remove(binding.target)


class TrackedCopyBinder(ArtifactBinder):
    """Binder that replaces links with copies recorded in a manifest.

    The manifest maps each managed target to the source it was copied
    from, so unpublish can recognise extension-owned paths without
    relying on link introspection.
    """

    strategy_name = "copy"

    def __init__(self, manifest_path: Path):
        self.manifest_path = Path(manifest_path)
        self._managed: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if not self.manifest_path.exists():
            return {}
        try:
            data = json.loads(self.manifest_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable artifact manifest %s", self.manifest_path)
            return {}
        return {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}

    def _save(self) -> None:
        self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
        self.manifest_path.write_text(json.dumps(self._managed, indent=2, sort_keys=True))

    @staticmethod
    def _key(target: Path) -> str:
        return os.path.abspath(target)

    def link(self, source: Path, target: Path) -> None:
        self.remove(target)
        self.copy_directory(source, target)
        self._managed[self._key(target)] = os.path.abspath(source)
        self._save()

    def is_link(self, target: Path, source: Path | None = None) -> bool:
        managed_source = self._managed.get(self._key(target))
        if managed_source is None:
            return False
        return source is None or managed_source == os.path.abspath(source)

    def managed_paths(self) -> list[Path]:
        return [Path(p) for p in sorted(self._managed)]

    def remove(self, target: Path) -> bool:
        key = self._key(target)
        removed = False
        try:
            if target.is_dir() and not os.path.islink(target):
                shutil.rmtree(target)
                removed = True
            elif target.exists() or os.path.islink(target):
                target.unlink()
                removed = True
        except FileNotFoundError:
            pass
        if self._managed.pop(key, None) is not None:
            self._save()
        return removed


def create_binder(strategy: str, manifest_path: Path, probe_dir: Path) -> ArtifactBinder:
    """Build the binder for a configured link strategy.

    Args:
        strategy: "link", "copy" or "auto".
        manifest_path: Where TrackedCopyBinder keeps its manifest.
        probe_dir: Directory used to test symlink support for "auto".
    """
    if strategy == "link":
        return ArtifactBinder()
    if strategy == "copy":
        return TrackedCopyBinder(manifest_path)
    if strategy == "auto":
        if supports_symlinks(probe_dir):
            return ArtifactBinder()
        logger.warning("Symbolic links unavailable under %s; using tracked copies", probe_dir)
        return TrackedCopyBinder(manifest_path)
    raise ValueError(f"Unknown link strategy: {strategy}")
