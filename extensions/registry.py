"""In-memory catalog of active extensions and their contributions.

The registry holds extensions that are present on disk and enabled in the
ledger, and every capability their controllers declare during
register_all(). Each contribution remembers the extension that made it, so
contributions can be filtered by extension or dropped in bulk when an
extension is disabled.

Host startup sequence:

    registry = ExtensionRegistry(context)
    registry.boot()    # discover -> register_all -> boot_all
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from extensions.controller import ExtensionController
from extensions.errors import ExtensionError
from extensions.manifest import ExtensionDescriptor
from extensions.overlay import OverlayResolver

if TYPE_CHECKING:
    from extensions.context import ExtensionContext

logger = logging.getLogger(__name__)

# Navigation is disabled on the app panel
NAVIGATION_PANELS = ("admin", "server")
MENU_PANELS = ("admin", "server", "app")


@dataclass(frozen=True)
class ActiveExtension:
    """An enabled extension loaded into the registry."""

    descriptor: ExtensionDescriptor
    path: Path
    controller: ExtensionController

    @property
    def id(self) -> str:
        return self.descriptor.id


@dataclass(frozen=True)
class NavigationItem:
    """Navigation entry contributed to one or more panels."""

    item_id: str
    label: str | Callable[[], str]
    extension_id: str | None
    panels: dict[str, bool] = field(default_factory=dict)
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def resolved_label(self) -> str:
        return self.label() if callable(self.label) else self.label

    def on_panel(self, panel: str) -> bool:
        return bool(self.panels.get(panel))


@dataclass(frozen=True)
class UserMenuItem(NavigationItem):
    """Entry added to the user menu of one or more panels."""


@dataclass(frozen=True)
class RenderHook:
    """Callback rendered at a named hook point."""

    hook: str
    callback: Callable[..., Any]
    extension_id: str | None
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PermissionGrant:
    """Admin permissions (model -> actions) declared by an extension."""

    model: str
    actions: tuple[str, ...]
    extension_id: str | None


@dataclass(frozen=True)
class ServerPermissionGrant:
    """Server (subuser) permission category declared by an extension.

    Data keys: name, icon, permissions, descriptions, egg_tags (optional).
    """

    extension_id: str
    data: dict[str, Any]


@dataclass(frozen=True)
class ServerPageRestriction:
    """Egg tags a server page is restricted to."""

    page: str
    egg_tags: tuple[str, ...]
    extension_id: str | None


class ExtensionRegistry:
    """Active extensions and their capability contributions."""

    def __init__(self, context: ExtensionContext, overlay: OverlayResolver | None = None):
        self.context = context
        self.overlay = overlay or OverlayResolver(
            context.paths, context.ledger, context.binder, context.translator
        )
        self._active: dict[str, ActiveExtension] = {}
        self._discovered = False
        self._registered: set[str] = set()
        self._booted: set[str] = set()
        self._current: str | None = None

        self._permissions: list[PermissionGrant] = []
        self._server_permissions: dict[str, ServerPermissionGrant] = {}
        self._page_restrictions: dict[str, ServerPageRestriction] = {}
        self._navigation: dict[str, NavigationItem] = {}
        self._user_menu: dict[str, UserMenuItem] = {}
        self._render_hooks: dict[str, list[RenderHook]] = {}

    # Active set

    def discover(self) -> list[ActiveExtension]:
        """Load every enabled extension found on disk (once per registry).

        Directories without a readable descriptor, extensions that are
        not enabled in the ledger, and descriptors naming an unknown entry
        point are skipped. Discovery never enables anything.

        Returns:
            Active extensions after discovery.
        """
        if self._discovered:
            return self.active_extensions()

        extensions_dir = self.context.paths.extensions_dir
        if not extensions_dir.is_dir():
            extensions_dir.mkdir(parents=True, exist_ok=True)
            self._discovered = True
            return []

        for ext_dir in sorted(p for p in extensions_dir.iterdir() if p.is_dir()):
            try:
                descriptor = ExtensionDescriptor.from_path(ext_dir)
            except ExtensionError as e:
                logger.debug("Skipping %s: %s", ext_dir.name, e)
                continue

            if descriptor.id != ext_dir.name:
                logger.warning(
                    "Skipping %s: descriptor id '%s' does not match directory",
                    ext_dir.name,
                    descriptor.id,
                )
                continue
            if not self.context.ledger.is_enabled(descriptor.id):
                logger.debug("Skipping %s: not enabled", descriptor.id)
                continue

            self.activate(descriptor, ext_dir)

        self._discovered = True
        logger.info("Discovered %d active extension(s)", len(self._active))
        return self.active_extensions()

    def activate(self, descriptor: ExtensionDescriptor, path: Path) -> ActiveExtension | None:
        """Add an extension to the active set.

        Returns:
            The active entry, or None if its entry point is not registered.
        """
        existing = self._active.get(descriptor.id)
        if existing is not None:
            return existing

        controller = self.context.controllers.create(self.context, descriptor)
        if controller is None:
            logger.warning(
                "Skipping %s: unknown entry point '%s'", descriptor.id, descriptor.entry_point
            )
            return None

        active = ActiveExtension(descriptor=descriptor, path=path, controller=controller)
        self._active[descriptor.id] = active
        logger.debug("Activated %s", descriptor.id)
        return active

    def deactivate(self, extension_id: str) -> ActiveExtension | None:
        """Remove an extension from the active set along with its contributions."""
        active = self._active.pop(extension_id, None)
        self.unregister_extension(extension_id)
        self._booted.discard(extension_id)
        return active

    def get(self, extension_id: str) -> ActiveExtension | None:
        return self._active.get(extension_id)

    def is_active(self, extension_id: str) -> bool:
        return extension_id in self._active

    def active_extensions(self) -> list[ActiveExtension]:
        return list(self._active.values())

    # Lifecycle hooks

    def register_all(self) -> None:
        """Run register(registry) for every active extension not yet registered."""
        for extension_id, active in list(self._active.items()):
            if extension_id in self._registered:
                continue
            self._current = extension_id
            try:
                active.controller.register(self)
            except Exception:
                # drop partial contributions so a retry starts clean
                self.unregister_extension(extension_id)
                raise
            finally:
                self._current = None
            self._registered.add(extension_id)
            logger.debug("Registered %s", extension_id)

    def boot_all(self) -> None:
        """Bind translation namespaces and run boot() for each registered extension."""
        for extension_id, active in list(self._active.items()):
            if extension_id in self._booted or extension_id not in self._registered:
                continue
            lang_path = active.path / "lang"
            if lang_path.is_dir():
                self.overlay.bind_namespace(extension_id, lang_path)
            active.controller.boot()
            self._booted.add(extension_id)

    def boot(self) -> None:
        """Initialize the registry: discover, register, then boot."""
        self.discover()
        self.register_all()
        self.boot_all()

    def unregister_extension(self, extension_id: str) -> None:
        """Drop every contribution made by one extension."""
        self._permissions = [p for p in self._permissions if p.extension_id != extension_id]
        self._server_permissions.pop(extension_id, None)
        self._page_restrictions = {
            k: v for k, v in self._page_restrictions.items() if v.extension_id != extension_id
        }
        self._navigation = {
            k: v for k, v in self._navigation.items() if v.extension_id != extension_id
        }
        self._user_menu = {
            k: v for k, v in self._user_menu.items() if v.extension_id != extension_id
        }
        for hook in list(self._render_hooks):
            kept = [c for c in self._render_hooks[hook] if c.extension_id != extension_id]
            if kept:
                self._render_hooks[hook] = kept
            else:
                del self._render_hooks[hook]
        self._registered.discard(extension_id)

    # Capability registration

    def permissions(self, permissions: Mapping[str, Iterable[str]]) -> None:
        """Register admin permissions as model -> actions.

        Example:
            >>> registry.permissions({"ticket": ["view", "create", "delete"]})
        """
        for model, actions in permissions.items():
            self._permissions = [
                p for p in self._permissions if p.model != model
            ]
            self._permissions.append(PermissionGrant(model, tuple(actions), self._current))

    def server_permissions(self, data: Mapping[str, Any], extension_id: str | None = None) -> None:
        """Register a server permission category for the current extension.

        Args:
            data: name, icon, permissions, descriptions and optional egg_tags.
            extension_id: Owner; defaults to the extension being registered.
        """
        owner = self._owner(extension_id)
        self._server_permissions[owner] = ServerPermissionGrant(owner, dict(data))

    def server_page_restriction(self, page: str, egg_tags: Iterable[str]) -> None:
        """Restrict a server page to servers whose egg has one of the tags."""
        self._page_restrictions[page] = ServerPageRestriction(
            page, tuple(egg_tags), self._current
        )

    def navigation_item(self, item_id: str, label: str | Callable[[], str], **config: Any) -> None:
        """Register a navigation item.

        Args:
            item_id: Unique item id; registering it again replaces it.
            label: Label or callable returning it.
            **config: url, icon, sort, group, visible and panels
                (e.g. panels={"admin": True}). The app panel is ignored.
        """
        panels = {p: False for p in NAVIGATION_PANELS}
        panels.update(
            {k: bool(v) for k, v in dict(config.pop("panels", {})).items() if k != "app"}
        )
        self._navigation[item_id] = NavigationItem(item_id, label, self._current, panels, config)

    def user_menu_item(self, item_id: str, label: str | Callable[[], str], **config: Any) -> None:
        """Register a user menu item; panels may include admin, server and app."""
        panels = {p: False for p in MENU_PANELS}
        panels.update({k: bool(v) for k, v in dict(config.pop("panels", {})).items()})
        self._user_menu[item_id] = UserMenuItem(item_id, label, self._current, panels, config)

    def render_hook(self, hook: str, callback: Callable[..., Any], **options: Any) -> None:
        self._render_hooks.setdefault(hook, []).append(
            RenderHook(hook, callback, self._current, options)
        )

    def _owner(self, extension_id: str | None) -> str:
        owner = extension_id or self._current
        if owner is None:
            raise ValueError("extension_id is required outside of register_all()")
        return owner

    # Accessors

    def navigation_items(
        self, panel: str | None = None, extension_id: str | None = None
    ) -> list[NavigationItem]:
        return [
            item for item in self._navigation.values()
            if (panel is None or item.on_panel(panel))
            and (extension_id is None or item.extension_id == extension_id)
        ]

    def user_menu_items(
        self, panel: str | None = None, extension_id: str | None = None
    ) -> list[UserMenuItem]:
        return [
            item for item in self._user_menu.values()
            if (panel is None or item.on_panel(panel))
            and (extension_id is None or item.extension_id == extension_id)
        ]

    def render_hooks(
        self, hook: str | None = None, extension_id: str | None = None
    ) -> list[RenderHook]:
        hooks = self._render_hooks.get(hook, []) if hook is not None else [
            h for callbacks in self._render_hooks.values() for h in callbacks
        ]
        return [h for h in hooks if extension_id is None or h.extension_id == extension_id]

    def permission_grants(self, extension_id: str | None = None) -> list[PermissionGrant]:
        return [p for p in self._permissions if extension_id is None or p.extension_id == extension_id]

    def server_permission_grants(self, extension_id: str | None = None) -> list[ServerPermissionGrant]:
        return [
            g for g in self._server_permissions.values()
            if extension_id is None or g.extension_id == extension_id
        ]

    def server_page_restrictions(self) -> list[ServerPageRestriction]:
        return list(self._page_restrictions.values())

    def is_server_page_allowed(self, page: str, egg_tags: Iterable[str]) -> bool:
        """Check a server page against its egg tag restriction.

        Pages without a restriction are always allowed; otherwise at least
        one of the server's egg tags must be listed.
        """
        restriction = self._page_restrictions.get(page)
        if restriction is None:
            return True
        return bool(set(restriction.egg_tags) & set(egg_tags))

    def render(self, hook: str, **kwargs: Any) -> str:
        """Call every callback registered for a hook and join their output."""
        parts = []
        for registered in self._render_hooks.get(hook, []):
            output = registered.callback(**kwargs)
            if output is not None:
                parts.append(str(output))
        return "".join(parts)
