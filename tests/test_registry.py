"""Tests for the extension registry."""

from __future__ import annotations

import pytest

from extensions.controller import ExtensionController
from extensions.registry import ExtensionRegistry
from schemas.extension import ExtensionRecord


class TicketsController(ExtensionController):
    """Controller contributing one of each capability."""

    register_calls = 0
    boot_calls = 0

    def register(self, registry) -> None:
        type(self).register_calls += 1
        registry.permissions({"ticket": ["view", "create"]})
        registry.server_permissions({"name": "tickets", "permissions": ["read"]})
        registry.server_page_restriction("TicketsPage", ["minecraft"])
        registry.navigation_item(
            "tickets", "Tickets", url="/tickets", panels={"admin": True, "app": True}
        )
        registry.user_menu_item("my-tickets", lambda: "My Tickets", panels={"app": True})
        registry.render_hook("footer", lambda: "<span>tickets</span>")

    def boot(self) -> None:
        type(self).boot_calls += 1


@pytest.fixture(autouse=True)
def reset_counters():
    TicketsController.register_calls = 0
    TicketsController.boot_calls = 0


@pytest.fixture
def registry(context) -> ExtensionRegistry:
    context.controllers.register("TicketsController", TicketsController)
    return ExtensionRegistry(context)


def enable_record(context, ext_id: str, enabled: bool = True) -> None:
    context.ledger.save(ExtensionRecord(identifier=ext_id, name=ext_id, enabled=enabled))


class TestDiscover:
    def test_loads_enabled_only(self, registry, context, make_extension) -> None:
        make_extension("tickets", entryPoint="TicketsController")
        make_extension("disabled-ext")
        make_extension("never-enabled")
        enable_record(context, "tickets")
        enable_record(context, "disabled-ext", enabled=False)

        active = registry.discover()

        assert [a.id for a in active] == ["tickets"]
        assert isinstance(active[0].controller, TicketsController)

    def test_skips_broken_descriptors(self, registry, context, host, make_extension) -> None:
        (host.extensions_dir / "no-descriptor").mkdir()
        broken = host.extensions_dir / "broken"
        broken.mkdir()
        (broken / "extension.json").write_text("{")
        make_extension("other-name", id="mismatch")
        enable_record(context, "mismatch")

        assert registry.discover() == []

    def test_unknown_entry_point_skipped(self, registry, context, make_extension) -> None:
        make_extension("mystery", entryPoint="MissingController")
        enable_record(context, "mystery")
        assert registry.discover() == []

    def test_idempotent(self, registry, context, make_extension) -> None:
        make_extension("tickets", entryPoint="TicketsController")
        enable_record(context, "tickets")

        registry.discover()
        registry.discover()

        assert len(registry.active_extensions()) == 1

    def test_creates_missing_directory(self, registry, context) -> None:
        context.paths.extensions_dir.rmdir()
        assert registry.discover() == []
        assert context.paths.extensions_dir.is_dir()


class TestRegistration:
    @pytest.fixture
    def booted(self, registry, context, make_extension) -> ExtensionRegistry:
        make_extension("tickets", {"lang/en/tickets.json": {"title": "Tickets"}},
                       entryPoint="TicketsController")
        enable_record(context, "tickets")
        registry.boot()
        return registry

    def test_register_all_is_idempotent(self, booted) -> None:
        booted.register_all()
        booted.register_all()

        assert TicketsController.register_calls == 1
        assert len(booted.navigation_items()) == 1
        assert len(booted.render_hooks("footer")) == 1
        assert len(booted.permission_grants()) == 1

    def test_contributions_are_attributed(self, booted) -> None:
        assert booted.navigation_items(extension_id="tickets")[0].item_id == "tickets"
        assert booted.navigation_items(extension_id="other") == []
        assert booted.permission_grants("tickets")[0].actions == ("view", "create")
        assert booted.server_permission_grants("tickets")[0].data["name"] == "tickets"

    def test_navigation_strips_app_panel(self, booted) -> None:
        item = booted.navigation_items()[0]
        assert item.panels == {"admin": True, "server": False}
        assert booted.navigation_items(panel="admin") == [item]
        assert booted.navigation_items(panel="app") == []
        assert item.config == {"url": "/tickets"}

    def test_user_menu_on_app_panel(self, booted) -> None:
        items = booted.user_menu_items(panel="app")
        assert [i.resolved_label for i in items] == ["My Tickets"]
        assert booted.user_menu_items(panel="admin") == []

    def test_render(self, booted) -> None:
        booted.render_hook("footer", lambda: " host")
        assert booted.render("footer") == "<span>tickets</span> host"
        assert booted.render("missing") == ""

    def test_server_page_restriction(self, booted) -> None:
        assert booted.is_server_page_allowed("TicketsPage", ["minecraft", "java"])
        assert not booted.is_server_page_allowed("TicketsPage", ["rust"])
        assert [r.page for r in booted.server_page_restrictions()] == ["TicketsPage"]
        assert booted.is_server_page_allowed("OtherPage", [])

    def test_boot_binds_namespace_once(self, booted, context) -> None:
        booted.boot_all()
        assert TicketsController.boot_calls == 1
        assert context.translator.get("tickets::tickets.title") == "Tickets"

    def test_deactivate_drops_contributions(self, booted) -> None:
        booted.render_hook("footer", lambda: "host")

        booted.deactivate("tickets")

        assert booted.get("tickets") is None
        assert booted.navigation_items() == []
        assert booted.user_menu_items() == []
        assert booted.permission_grants() == []
        assert booted.server_permission_grants() == []
        assert booted.is_server_page_allowed("TicketsPage", [])
        assert booted.render("footer") == "host"

    def test_server_permissions_need_owner(self, registry) -> None:
        with pytest.raises(ValueError):
            registry.server_permissions({"name": "x"})
        registry.server_permissions({"name": "x"}, extension_id="host")
        assert registry.server_permission_grants("host")[0].data == {"name": "x"}


class FlakyController(ExtensionController):
    """Controller whose first register() fails after contributing a hook."""

    attempts = 0

    def register(self, registry) -> None:
        type(self).attempts += 1
        registry.render_hook("footer", lambda: "flaky")
        if type(self).attempts == 1:
            raise RuntimeError("database not ready")


def test_failed_register_leaves_no_contributions(context, make_extension) -> None:
    FlakyController.attempts = 0
    context.controllers.register("FlakyController", FlakyController)
    make_extension("flaky", entryPoint="FlakyController")
    enable_record(context, "flaky")
    registry = ExtensionRegistry(context)
    registry.discover()

    with pytest.raises(RuntimeError):
        registry.register_all()
    assert registry.render_hooks("footer") == []

    registry.register_all()
    assert registry.render("footer") == "flaky"
    assert len(registry.render_hooks("footer")) == 1
