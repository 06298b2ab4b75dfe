"""Shared fixtures: a throwaway host tree and helpers to write extensions."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from extensions.context import ExtensionContext
from extensions.lifecycle import LifecycleManager
from host.paths import HostPaths

HOST_ACTIVITY = {
    "title": "Activity",
    "events": {
        "login": "Logged in",
        "logout": "Logged out",
    },
}

HOST_AUTH = {"failed": "These credentials do not match our records."}


def write_tree(root: Path, files: dict[str, Any]) -> None:
    """Write files below root; dict values are dumped as JSON."""
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        elif isinstance(content, (dict, list)):
            path.write_text(json.dumps(content, indent=4))
        else:
            path.write_text(content)


@pytest.fixture
def host(tmp_path: Path) -> HostPaths:
    """Host tree with an English locale."""
    paths = HostPaths.from_base(tmp_path / "host")
    write_tree(paths.base_dir, {
        "lang/en/activity.json": HOST_ACTIVITY,
        "lang/en/auth.json": HOST_AUTH,
    })
    paths.extensions_dir.mkdir(parents=True)
    return paths


@pytest.fixture
def context(host: HostPaths) -> ExtensionContext:
    return ExtensionContext.from_paths(host, link_strategy="link")


@pytest.fixture
def manager(context: ExtensionContext) -> LifecycleManager:
    return LifecycleManager(context)


@pytest.fixture
def make_extension(host: HostPaths) -> Callable[..., Path]:
    """Factory writing an extension package into the host extensions directory."""

    def _make(
        ext_id: str,
        files: dict[str, Any] | None = None,
        types: list[str] | None = None,
        root: Path | None = None,
        **descriptor: Any,
    ) -> Path:
        ext_dir = (root or host.extensions_dir) / ext_id
        data = {
            "id": ext_id,
            "name": descriptor.pop("name", ext_id.replace("-", " ").title()),
            "version": descriptor.pop("version", "1.0.0"),
            "types": types or ["plugin"],
            **descriptor,
        }
        write_tree(ext_dir, {"extension.json": data, **(files or {})})
        return ext_dir

    return _make
