"""Extension lifecycle and artifact publishing engine.

Extensions are self-contained packages under the host's extensions/
directory. Enabling one publishes its artifacts into the host:

- assets: copied into public/extensions/<id>
- views, components, theme: linked into the host resource trees
- config: merged into the runtime config namespace <id>
- translations: new locales linked, overrides merged, the rest namespaced

Disabling reverses every step; conflicting translation overrides between
enabled extensions are refused and rolled back.
"""

from extensions.binder import ArtifactBinder, ArtifactBinding, BindingStrategy, TrackedCopyBinder
from extensions.context import ExtensionContext
from extensions.controller import ControllerFactories, ExtensionController
from extensions.errors import (
    ExtensionError,
    ExtensionNotFoundError,
    InvalidMetadataError,
    InvalidPackageError,
    MigrationError,
    OverrideConflictError,
    PublishError,
)
from extensions.ledger import ExtensionLedger
from extensions.lifecycle import ExtensionState, ImportResult, LifecycleManager
from extensions.manifest import ExtensionDescriptor
from extensions.overlay import OverlayResolver, OverrideConflict, detect_conflicts
from extensions.publisher import ArtifactKind, ArtifactPublisher
from extensions.registry import ExtensionRegistry
from schemas.extension import ExtensionRecord, ExtensionType

__all__ = [
    "ArtifactBinder",
    "ArtifactBinding",
    "ArtifactKind",
    "ArtifactPublisher",
    "BindingStrategy",
    "ControllerFactories",
    "ExtensionContext",
    "ExtensionController",
    "ExtensionDescriptor",
    "ExtensionError",
    "ExtensionLedger",
    "ExtensionNotFoundError",
    "ExtensionRecord",
    "ExtensionRegistry",
    "ExtensionState",
    "ExtensionType",
    "ImportResult",
    "InvalidMetadataError",
    "InvalidPackageError",
    "LifecycleManager",
    "MigrationError",
    "OverlayResolver",
    "OverrideConflict",
    "OverrideConflictError",
    "PublishError",
    "TrackedCopyBinder",
    "detect_conflicts",
]
