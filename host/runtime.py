"""Runtime namespaces the host exposes to extensions.

RuntimeConfig holds configuration fragments keyed by extension id.
Translator resolves translation keys against the host locale tree and
against namespaces registered by extensions ("<namespace>::<file>.<key>").
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from host.formats import DocumentError, deep_merge, find_document, load_document

logger = logging.getLogger(__name__)

NAMESPACE_SEPARATOR = "::"


class RuntimeConfig:
    """In-memory configuration namespaces."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dotted key (e.g., "my-ext.feature.enabled")."""
        node: Any = self._values
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, namespace: str, values: Mapping[str, Any]) -> None:
        """Replace a namespace."""
        self._values[namespace] = dict(values)

    def merge(self, namespace: str, values: Mapping[str, Any]) -> None:
        """Deep-merge values into a namespace, creating it if needed."""
        current = self._values.get(namespace)
        if isinstance(current, Mapping):
            self._values[namespace] = deep_merge(current, values)
        else:
            self._values[namespace] = dict(values)

    def has(self, namespace: str) -> bool:
        return namespace in self._values


class Translator:
    """Translation lookup over the host locale tree and extension namespaces.

    Example:
        >>> translator = Translator(Path("lang"))
        >>> translator.add_namespace("my-ext", Path("extensions/my-ext/lang"))
        >>> translator.get("my-ext::messages.welcome", locale="en")
    """

    def __init__(self, lang_dir: Path, fallback_locale: str = "en") -> None:
        self.lang_dir = Path(lang_dir)
        self.fallback_locale = fallback_locale
        self._namespaces: dict[str, Path] = {}

    def add_namespace(self, namespace: str, path: Path) -> None:
        """Expose a translation directory under a namespace."""
        self._namespaces[namespace] = Path(path)
        logger.debug("Registered translation namespace %s -> %s", namespace, path)

    def remove_namespace(self, namespace: str) -> bool:
        return self._namespaces.pop(namespace, None) is not None

    def has_namespace(self, namespace: str) -> bool:
        return namespace in self._namespaces

    def get(self, key: str, locale: str | None = None, default: Any = None) -> Any:
        """Resolve a translation key.

        Args:
            key: "file.key.path" or "namespace::file.key.path".
            locale: Locale code (defaults to the fallback locale).
            default: Returned when the key cannot be resolved.
        """
        namespace = None
        if NAMESPACE_SEPARATOR in key:
            namespace, key = key.split(NAMESPACE_SEPARATOR, 1)
            root = self._namespaces.get(namespace)
            if root is None:
                return default
        else:
            root = self.lang_dir

        file_stem, _, path = key.partition(".")
        for candidate in dict.fromkeys([locale or self.fallback_locale, self.fallback_locale]):
            value = self._lookup(root / candidate, file_stem, path)
            if value is not None:
                return value
        return default

    def _lookup(self, locale_dir: Path, file_stem: str, path: str) -> Any:
        document_path = find_document(locale_dir, file_stem)
        if document_path is None:
            return None
        try:
            node: Any = load_document(document_path)
        except DocumentError as e:
            logger.warning("Skipping unreadable translation file %s: %s", document_path, e)
            return None
        if not path:
            return node
        for part in path.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return None
            node = node[part]
        return node
