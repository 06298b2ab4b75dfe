"""Filesystem layout of the host application."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from host.config import Config

# Host surfaces that can receive UI components
PANELS = ("admin", "app", "server")
COMPONENT_KINDS = ("pages", "resources", "widgets")


@dataclass(frozen=True)
class HostPaths:
    """Resolved locations of every host directory the engine touches.

    Layout (relative to base_dir):
        extensions/<id>/                         extension packages
        public/extensions/<id>/                  published assets (copied)
        resources/views/extensions/<id>          published views (linked)
        resources/css/themes/<id>                published theme (linked)
        app/components/<panel>/<kind>/extensions/<id>   components (linked)
        lang/<locale>/<file>                     host translations
        storage/                                 ledger, lock, temp, exports
    """

    base_dir: Path
    extensions_dir: Path
    ledger_file: Path
    database: Path

    @classmethod
    def from_base(
        cls,
        base_dir: Path | str,
        extensions_dir: Path | str | None = None,
        ledger_file: Path | str | None = None,
        database: Path | str | None = None,
    ) -> HostPaths:
        base = Path(base_dir).expanduser().resolve()
        return cls(
            base_dir=base,
            extensions_dir=Path(extensions_dir).expanduser() if extensions_dir else base / "extensions",
            ledger_file=Path(ledger_file).expanduser() if ledger_file else base / "storage" / "extensions.json",
            database=Path(database).expanduser() if database else base / "storage" / "database.sqlite",
        )

    @classmethod
    def from_config(cls, config: Config) -> HostPaths:
        return cls.from_base(
            config.host.base_dir,
            extensions_dir=config.extensions.extensions_dir or None,
            ledger_file=config.storage.ledger_file or None,
            database=config.storage.database or None,
        )

    @property
    def storage_dir(self) -> Path:
        return self.base_dir / "storage"

    @property
    def temp_dir(self) -> Path:
        return self.storage_dir / "tmp"

    @property
    def exports_dir(self) -> Path:
        return self.storage_dir / "exports"

    @property
    def lock_file(self) -> Path:
        return self.storage_dir / "extensions.lock"

    @property
    def managed_manifest(self) -> Path:
        return self.storage_dir / "managed-artifacts.json"

    @property
    def lang_dir(self) -> Path:
        return self.base_dir / "lang"

    def extension_dir(self, extension_id: str) -> Path:
        return self.extensions_dir / extension_id

    def assets_target(self, extension_id: str) -> Path:
        return self.base_dir / "public" / "extensions" / extension_id

    def views_target(self, extension_id: str) -> Path:
        return self.base_dir / "resources" / "views" / "extensions" / extension_id

    def theme_target(self, extension_id: str) -> Path:
        return self.base_dir / "resources" / "css" / "themes" / extension_id

    def component_target(self, panel: str, kind: str, extension_id: str) -> Path:
        return self.base_dir / "app" / "components" / panel / kind / "extensions" / extension_id

    def locale_dir(self, locale: str) -> Path:
        return self.lang_dir / locale
