"""Explicit context passed to every lifecycle operation and controller."""

from __future__ import annotations

from dataclasses import dataclass, field

from extensions.binder import ArtifactBinder, create_binder
from extensions.controller import ControllerFactories
from extensions.ledger import ExtensionLedger
from extensions.migrations import MigrationRunner, SqliteMigrationRunner
from host.config import Config
from host.paths import HostPaths
from host.runtime import RuntimeConfig, Translator


@dataclass
class ExtensionContext:
    """Collaborators shared by the registry, publisher and lifecycle manager.

    Attributes:
        paths: Host filesystem layout.
        ledger: Persistent extension state.
        binder: Filesystem strategy for publishing artifacts.
        runtime_config: Config namespaces keyed by extension id.
        translator: Translation namespaces.
        controllers: Entry-point factory map.
        migrations: Runner for extension migration scripts.
    """

    paths: HostPaths
    ledger: ExtensionLedger
    binder: ArtifactBinder = field(default_factory=ArtifactBinder)
    runtime_config: RuntimeConfig = field(default_factory=RuntimeConfig)
    translator: Translator | None = None
    controllers: ControllerFactories = field(default_factory=ControllerFactories)
    migrations: MigrationRunner | None = None

    def __post_init__(self) -> None:
        if self.translator is None:
            self.translator = Translator(self.paths.lang_dir)
        if self.migrations is None:
            self.migrations = SqliteMigrationRunner(self.paths.database)

    @classmethod
    def from_paths(cls, paths: HostPaths, link_strategy: str = "link", **kwargs) -> ExtensionContext:
        """Build a context for a host layout with default collaborators."""
        if "binder" not in kwargs:
            kwargs["binder"] = create_binder(
                link_strategy, paths.managed_manifest, paths.storage_dir
            )
        return cls(paths=paths, ledger=ExtensionLedger(paths.ledger_file), **kwargs)

    @classmethod
    def from_config(cls, config: Config) -> ExtensionContext:
        """Build a context from loaded configuration."""
        paths = HostPaths.from_config(config)
        return cls.from_paths(
            paths,
            link_strategy=config.extensions.link_strategy,
            controllers=ControllerFactories.from_entry_points(
                config.extensions.entry_point_group
            ),
        )
