"""Schema migrations shipped with extensions.

Migrations are ordered SQL scripts under <extension>/migrations/. They are
applied in filename order and tracked by filename in the ledger record.
Reversing migrations is not supported.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Protocol

from extensions.errors import MigrationError

logger = logging.getLogger(__name__)

MIGRATION_SUFFIXES = (".sql",)


class MigrationRunner(Protocol):
    """Executes one migration script for an extension."""

    def apply(self, extension_id: str, script: Path) -> None: ...


class SqliteMigrationRunner:
    """Run SQL migration scripts against a SQLite database."""

    def __init__(self, database: Path):
        self.database = Path(database)

    def apply(self, extension_id: str, script: Path) -> None:
        self.database.parent.mkdir(parents=True, exist_ok=True)
        sql = script.read_text(encoding="utf-8")
        conn = sqlite3.connect(self.database)
        try:
            with conn:
                conn.executescript(sql)
        finally:
            conn.close()


def pending_migrations(migrations_dir: Path, applied: list[str]) -> list[Path]:
    """List migration scripts not yet applied, in filename order."""
    if not migrations_dir.is_dir():
        return []
    done = set(applied)
    return [
        path
        for path in sorted(migrations_dir.iterdir(), key=lambda p: p.name)
        if path.is_file() and path.suffix.lower() in MIGRATION_SUFFIXES and path.name not in done
    ]


def run_migrations(
    runner: MigrationRunner,
    extension_id: str,
    migrations_dir: Path,
    applied: list[str],
    on_applied=None,
) -> list[str]:
    """Apply pending migrations and return the updated applied list.

    Args:
        runner: Executes each script.
        extension_id: Owning extension.
        migrations_dir: Directory containing scripts.
        applied: Filenames already applied.
        on_applied: Called with the updated list after each successful script.

    Raises:
        MigrationError: On the first script that fails.
    """
    applied = list(applied)
    for script in pending_migrations(migrations_dir, applied):
        try:
            runner.apply(extension_id, script)
        except Exception as e:
            raise MigrationError(
                f"Migration {script.name} failed for '{extension_id}': {e}",
                extension_id,
                script=script.name,
            ) from e
        applied.append(script.name)
        logger.info("Applied migration %s for %s", script.name, extension_id)
        if on_applied is not None:
            on_applied(applied)
    return applied
