"""Host application surfaces that extensions are published into.

Provides:
- HostPaths: filesystem layout of the host application
- RuntimeConfig: in-memory configuration namespaces keyed by extension id
- Translator: translation namespaces registered by extensions
- Config loading (config.toml + environment)
"""

from host.config import Config, get_config, load_config, reload_config
from host.paths import COMPONENT_KINDS, PANELS, HostPaths
from host.runtime import RuntimeConfig, Translator

__all__ = [
    "COMPONENT_KINDS",
    "Config",
    "HostPaths",
    "PANELS",
    "RuntimeConfig",
    "Translator",
    "get_config",
    "load_config",
    "reload_config",
]
