"""Tests for the lifecycle manager."""

from __future__ import annotations

import hashlib

import pytest

from extensions.controller import ExtensionController
from extensions.errors import (
    ExtensionNotFoundError,
    InvalidMetadataError,
    MigrationError,
    OverrideConflictError,
)
from extensions.lifecycle import ExtensionState, LifecycleManager
from host.paths import COMPONENT_KINDS, PANELS

GERMAN_FILES = {
    "public/flag.svg": "<svg/>",
    "lang/overrides/en/activity.json": {"events": {"login": "Eingeloggt"}},
}
PIRATE_FILES = {
    "public/skull.svg": "<svg/>",
    "views/banner.html": "<p>Arr</p>",
    "lang/overrides/en/activity.json": {"events": {"login": "Boarded"}},
}


def published_targets(host, ext_id):
    targets = [host.assets_target(ext_id), host.views_target(ext_id), host.theme_target(ext_id)]
    targets += [
        host.component_target(panel, kind, ext_id)
        for panel in PANELS
        for kind in COMPONENT_KINDS
    ]
    return targets


class TestEnable:
    def test_plugin_with_assets_only(self, manager, host, make_extension) -> None:
        make_extension("ext-a", {"public/style.css": "body {}"}, types=["plugin"])

        record = manager.enable("ext-a")

        assert record.enabled is True
        assert record.language_overrides is None
        assert (host.assets_target("ext-a") / "style.css").read_text() == "body {}"
        assert not host.theme_target("ext-a").exists()
        assert not host.views_target("ext-a").exists()
        assert manager.state("ext-a") == ExtensionState.ENABLED
        assert manager.registry.is_active("ext-a")

    def test_missing_directory(self, manager) -> None:
        with pytest.raises(ExtensionNotFoundError) as exc_info:
            manager.enable("ghost")
        assert exc_info.value.extension_id == "ghost"
        assert manager.ledger.get("ghost") is None

    def test_missing_descriptor(self, manager, host) -> None:
        (host.extensions_dir / "empty").mkdir()
        with pytest.raises(ExtensionNotFoundError):
            manager.enable("empty")

    def test_descriptor_id_must_match_directory(self, manager, make_extension) -> None:
        make_extension("ext-a", id="ext-b")
        with pytest.raises(InvalidMetadataError):
            manager.enable("ext-a")

    def test_theme_published(self, manager, host, make_extension) -> None:
        make_extension("dark", {"theme/app.css": ":root {}"}, types=["theme"])
        manager.enable("dark")
        assert (host.theme_target("dark") / "app.css").exists()

    def test_theme_dir_ignored_without_theme_type(self, manager, host, make_extension) -> None:
        make_extension("ext-a", {"theme/app.css": ":root {}"})
        manager.enable("ext-a")
        assert not host.theme_target("ext-a").exists()

    def test_record_copies_descriptor(self, manager, make_extension) -> None:
        make_extension("ext-a", name="Ext A", version="2.0.0", author="Acme",
                       description="Does things")
        record = manager.enable("ext-a")
        assert (record.name, record.version, record.author, record.description) == (
            "Ext A", "2.0.0", "Acme", "Does things"
        )

    def test_controller_registered(self, context, make_extension) -> None:
        class NavController(ExtensionController):
            def register(self, registry) -> None:
                registry.navigation_item("nav", "Nav", panels={"admin": True})

        context.controllers.register("NavController", NavController)
        make_extension("nav-ext", entryPoint="NavController")
        manager = LifecycleManager(context)

        manager.enable("nav-ext")

        assert [i.item_id for i in manager.registry.navigation_items(panel="admin")] == ["nav"]


class TestMigrations:
    def test_applied_and_tracked(self, manager, make_extension) -> None:
        make_extension("tickets", {
            "migrations/001_create.sql": "CREATE TABLE tickets (id INTEGER PRIMARY KEY);",
        })

        record = manager.enable("tickets")

        assert record.applied_migrations == ["001_create.sql"]
        manager.disable("tickets")
        assert manager.enable("tickets").applied_migrations == ["001_create.sql"]

    def test_failure_stops_publishing(self, manager, host, make_extension) -> None:
        make_extension("tickets", {
            "public/app.js": "",
            "migrations/001_broken.sql": "NOT SQL AT ALL;",
        })

        with pytest.raises(MigrationError):
            manager.enable("tickets")

        assert manager.ledger.is_enabled("tickets")
        assert manager.ledger.get("tickets").applied_migrations == []
        assert not host.assets_target("tickets").exists()


class TestDisable:
    def test_unknown_is_noop(self, manager) -> None:
        assert manager.disable("ghost") is False

    def test_idempotent(self, manager, host, make_extension) -> None:
        make_extension("ext-a", {"public/style.css": "body {}", "views/a.html": "a"})
        manager.enable("ext-a")

        assert manager.disable("ext-a") is True
        first = manager.ledger.get("ext-a")
        assert manager.disable("ext-a") is True

        assert manager.ledger.get("ext-a") == first
        assert first.enabled is False
        assert manager.state("ext-a") == ExtensionState.DISABLED

    def test_round_trip_leaves_no_artifacts(self, manager, host, make_extension) -> None:
        ext_dir = make_extension("full", {
            "public/style.css": "body {}",
            "views/page.html": "<p/>",
            "theme/app.css": ":root {}",
            "admin/pages/Dashboard.json": {},
            "server/widgets/Stats.json": {},
            "config/full.json": {"enabled": True},
        }, types=["plugin", "theme"])
        files_before = sorted(p.relative_to(ext_dir) for p in ext_dir.rglob("*"))

        manager.enable("full")
        assert host.views_target("full").is_symlink()
        manager.disable("full")

        assert not any(t.exists() or t.is_symlink() for t in published_targets(host, "full"))
        assert sorted(p.relative_to(ext_dir) for p in ext_dir.rglob("*")) == files_before
        assert not manager.registry.is_active("full")

    def test_disable_hook_runs_before_unpublish(self, context, host, make_extension) -> None:
        seen = []

        class WatchingController(ExtensionController):
            def disable(self) -> None:
                seen.append(host.assets_target(self.extension_id).exists())

        context.controllers.register("WatchingController", WatchingController)
        make_extension("watch", {"public/a.js": ""}, entryPoint="WatchingController")
        manager = LifecycleManager(context)
        manager.enable("watch")

        manager.disable("watch")

        assert seen == [True]

    def test_language_overlay_restored(self, manager, host, make_extension) -> None:
        target = host.locale_dir("en") / "activity.json"
        before = hashlib.sha256(target.read_bytes()).hexdigest()
        make_extension("german-langpack", GERMAN_FILES, types=["language-pack"])

        manager.enable("german-langpack")
        manager.disable("german-langpack")

        assert hashlib.sha256(target.read_bytes()).hexdigest() == before
        assert manager.ledger.get("german-langpack").language_overrides is None


class TestOverrideConflicts:
    @pytest.fixture
    def packs(self, make_extension):
        make_extension("german-langpack", GERMAN_FILES, types=["language-pack"], name="German")
        make_extension("pirate-langpack", PIRATE_FILES, types=["language-pack"], name="Pirate")

    def test_second_pack_is_rejected(self, manager, host, packs) -> None:
        german = manager.enable("german-langpack")
        assert german.language_overrides == ["en/activity.json"]

        with pytest.raises(OverrideConflictError) as exc_info:
            manager.enable("pirate-langpack")

        error = exc_info.value
        assert error.extension_id == "pirate-langpack"
        assert error.blocking_extension_ids == ["german-langpack"]
        assert "'en/activity.json' is already overridden by 'German'" in str(error)
        assert "disable the conflicting extension" in str(error)

        pirate = manager.ledger.get("pirate-langpack")
        assert pirate.enabled is False
        assert pirate.language_overrides is None
        assert manager.state("pirate-langpack") == ExtensionState.DISABLED

    def test_rollback_removes_published_artifacts(self, manager, host, packs) -> None:
        manager.enable("german-langpack")
        with pytest.raises(OverrideConflictError):
            manager.enable("pirate-langpack")

        assert not host.assets_target("pirate-langpack").exists()
        assert not host.views_target("pirate-langpack").exists()
        assert not manager.registry.is_active("pirate-langpack")

        assert (host.assets_target("german-langpack") / "flag.svg").exists()
        assert "Eingeloggt" in (host.locale_dir("en") / "activity.json").read_text()
        assert manager.ledger.is_enabled("german-langpack")

    def test_enable_after_blocker_disabled(self, manager, host, packs) -> None:
        manager.enable("german-langpack")
        with pytest.raises(OverrideConflictError):
            manager.enable("pirate-langpack")

        manager.disable("german-langpack")
        pirate = manager.enable("pirate-langpack")

        assert pirate.language_overrides == ["en/activity.json"]
        assert "Boarded" in (host.locale_dir("en") / "activity.json").read_text()

    def test_reenable_same_pack_is_not_a_conflict(self, manager, packs) -> None:
        manager.enable("german-langpack")
        assert manager.enable("german-langpack").language_overrides == ["en/activity.json"]


class TestUninstall:
    def test_removes_directory_and_record(self, manager, host, make_extension) -> None:
        make_extension("ext-a", {
            "public/style.css": "body {}",
            "migrations/001.sql": "CREATE TABLE a (id INTEGER);",
        })
        manager.enable("ext-a")

        manager.uninstall("ext-a")

        assert not host.extension_dir("ext-a").exists()
        assert not host.assets_target("ext-a").exists()
        assert manager.ledger.get("ext-a") is None
        assert manager.state("ext-a") == ExtensionState.UNKNOWN

    def test_never_enabled(self, manager, host, make_extension) -> None:
        make_extension("ext-a")
        assert manager.state("ext-a") == ExtensionState.DISCOVERED
        manager.uninstall("ext-a")
        assert not host.extension_dir("ext-a").exists()

    def test_unknown(self, manager) -> None:
        with pytest.raises(ExtensionNotFoundError):
            manager.uninstall("ghost")


class TestListing:
    def test_list_extensions(self, manager, host, make_extension) -> None:
        make_extension("ext-a", name="A")
        make_extension("ext-b", name="B", version="0.2.0")
        (host.extensions_dir / "junk").mkdir()
        manager.enable("ext-a")
        manager.enable("ext-b")
        manager.disable("ext-b")
        make_extension("ext-c")

        rows = {s.id: s for s in manager.list_extensions()}

        assert sorted(rows) == ["ext-a", "ext-b", "ext-c"]
        assert (rows["ext-a"].enabled, rows["ext-a"].installed) == (True, True)
        assert (rows["ext-b"].status, rows["ext-b"].version) == ("Disabled", "0.2.0")
        assert rows["ext-c"].installed is False

    def test_boot_loads_enabled_extensions(self, context, make_extension) -> None:
        make_extension("ext-a")
        LifecycleManager(context).enable("ext-a")

        fresh = LifecycleManager(context)
        registry = fresh.boot()

        assert [a.id for a in registry.active_extensions()] == ["ext-a"]


class TestExtensionIds:
    @pytest.fixture
    def outside(self, host):
        precious = host.base_dir / "precious"
        precious.mkdir()
        (precious / "data.txt").write_text("keep me")
        return precious

    @pytest.mark.parametrize("ext_id", ["../precious", "..", "a/b", "Upper", "ext-a\n"])
    def test_uninstall_rejects_path_like_ids(self, manager, outside, ext_id) -> None:
        with pytest.raises(ExtensionNotFoundError):
            manager.uninstall(ext_id)
        assert (outside / "data.txt").read_text() == "keep me"

    def test_export_rejects_path_like_ids(self, manager, outside, tmp_path) -> None:
        with pytest.raises(ExtensionNotFoundError):
            manager.export_archive("../precious", tmp_path / "out.zip")
        assert not (tmp_path / "out.zip").exists()

    def test_enable_and_state(self, manager, outside) -> None:
        with pytest.raises(ExtensionNotFoundError):
            manager.enable("../precious")
        assert manager.state("../precious") == ExtensionState.UNKNOWN
