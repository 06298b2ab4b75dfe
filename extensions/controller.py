"""Entry-point contract implemented by extension code.

Extensions do not get imported from their directory. Instead, each
descriptor names an entry point, and the host resolves that name through
an explicit factory map populated at startup.
"""

from __future__ import annotations

import logging
from importlib.metadata import entry_points
from typing import TYPE_CHECKING, Callable

from extensions.manifest import DEFAULT_ENTRY_POINT, ExtensionDescriptor

if TYPE_CHECKING:
    from extensions.context import ExtensionContext
    from extensions.registry import ExtensionRegistry

logger = logging.getLogger(__name__)


class ExtensionController:
    """Base controller; every hook is a no-op.

    Subclasses override the hooks they need:
    - register(registry): declare capabilities
    - boot(): post-registration setup
    - disable(): release resources before artifacts are unpublished
    """

    def __init__(self, context: ExtensionContext, descriptor: ExtensionDescriptor):
        self.context = context
        self.descriptor = descriptor

    @property
    def extension_id(self) -> str:
        return self.descriptor.id

    def register(self, registry: ExtensionRegistry) -> None:
        pass

    def boot(self) -> None:
        pass

    def disable(self) -> None:
        pass


ControllerFactory = Callable[["ExtensionContext", ExtensionDescriptor], ExtensionController]


class ControllerFactories:
    """Name -> factory map used to instantiate extension controllers.

    Example:
        >>> factories = ControllerFactories()
        >>> factories.register("DarkThemeController", DarkThemeController)
        >>> controller = factories.create(context, descriptor)
    """

    def __init__(self) -> None:
        self._factories: dict[str, ControllerFactory] = {
            DEFAULT_ENTRY_POINT: ExtensionController,
        }

    @classmethod
    def from_entry_points(cls, group: str) -> ControllerFactories:
        """Build a factory map from installed package entry points."""
        factories = cls()
        for ep in entry_points(group=group):
            try:
                factories.register(ep.name, ep.load())
            except (ImportError, AttributeError) as e:
                logger.warning("Failed to load controller entry point %s: %s", ep.name, e)
        return factories

    def register(self, name: str, factory: ControllerFactory) -> None:
        self._factories[name] = factory
        logger.debug("Registered controller factory: %s", name)

    def create(
        self, context: ExtensionContext, descriptor: ExtensionDescriptor
    ) -> ExtensionController | None:
        """Instantiate the controller named by a descriptor.

        Returns:
            Controller, or None if no factory is registered under that name.
        """
        factory = self._factories.get(descriptor.entry_point)
        if factory is None:
            return None
        return factory(context, descriptor)
