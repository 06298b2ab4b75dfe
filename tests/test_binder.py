"""Tests for the filesystem binders."""

from __future__ import annotations

import json

import pytest

from extensions.binder import (
    ArtifactBinder,
    ArtifactBinding,
    BindingStrategy,
    TrackedCopyBinder,
    create_binder,
)


@pytest.fixture
def source(tmp_path):
    src = tmp_path / "ext" / "views"
    (src / "pages").mkdir(parents=True)
    (src / "pages" / "index.html").write_text("<h1>Hi</h1>")
    return src


class TestArtifactBinder:
    def test_copy_directory_merges(self, tmp_path, source) -> None:
        target = tmp_path / "public" / "ext"
        (target / "old.txt").parent.mkdir(parents=True)
        (target / "old.txt").write_text("keep")

        ArtifactBinder().copy_directory(source, target)

        assert (target / "pages" / "index.html").read_text() == "<h1>Hi</h1>"
        assert (target / "old.txt").exists()

    def test_link_replaces_directory(self, tmp_path, source) -> None:
        target = tmp_path / "resources" / "views" / "ext"
        target.mkdir(parents=True)
        (target / "stale.html").write_text("stale")
        binder = ArtifactBinder()

        binder.link(source, target)

        assert target.is_symlink()
        assert binder.is_link(target)
        assert (target / "pages" / "index.html").exists()
        assert not (target / "stale.html").exists()

    def test_remove_link_keeps_source(self, tmp_path, source) -> None:
        target = tmp_path / "link"
        binder = ArtifactBinder()
        binder.link(source, target)

        assert binder.remove(target) is True
        assert not target.exists()
        assert (source / "pages" / "index.html").exists()

    def test_remove_absent_is_noop(self, tmp_path) -> None:
        assert ArtifactBinder().remove(tmp_path / "missing") is False

    def test_remove_directory(self, tmp_path, source) -> None:
        assert ArtifactBinder().remove(source) is True
        assert not source.exists()

    def test_is_link_plain_directory(self, source) -> None:
        assert ArtifactBinder().is_link(source) is False

    def test_apply_and_revert(self, tmp_path, source) -> None:
        binder = ArtifactBinder()
        binding = ArtifactBinding(source, tmp_path / "copy", BindingStrategy.COPY)
        binder.apply(binding)
        assert (tmp_path / "copy" / "pages" / "index.html").exists()
        assert binder.revert(binding) is True
        assert binder.revert(binding) is False

    def test_apply_rejects_merge_write(self, tmp_path, source) -> None:
        binding = ArtifactBinding(source, tmp_path / "x", BindingStrategy.MERGE_WRITE)
        with pytest.raises(ValueError):
            ArtifactBinder().apply(binding)


class TestTrackedCopyBinder:
    def test_link_copies_and_records(self, tmp_path, source) -> None:
        manifest = tmp_path / "storage" / "managed.json"
        target = tmp_path / "resources" / "views" / "ext"
        binder = TrackedCopyBinder(manifest)

        binder.link(source, target)

        assert not target.is_symlink()
        assert (target / "pages" / "index.html").exists()
        assert binder.is_link(target)
        assert binder.is_link(target, source)
        assert not binder.is_link(target, tmp_path / "other")
        assert str(target) in json.loads(manifest.read_text())

    def test_manifest_survives_new_instance(self, tmp_path, source) -> None:
        manifest = tmp_path / "managed.json"
        target = tmp_path / "target"
        TrackedCopyBinder(manifest).link(source, target)

        reloaded = TrackedCopyBinder(manifest)
        assert reloaded.managed_paths() == [target]
        assert reloaded.remove(target) is True
        assert not target.exists()
        assert reloaded.managed_paths() == []
        assert TrackedCopyBinder(manifest).managed_paths() == []

    def test_unmanaged_directory_is_not_link(self, tmp_path, source) -> None:
        assert TrackedCopyBinder(tmp_path / "m.json").is_link(source) is False


class TestCreateBinder:
    def test_link(self, tmp_path) -> None:
        binder = create_binder("link", tmp_path / "m.json", tmp_path)
        assert type(binder) is ArtifactBinder

    def test_copy(self, tmp_path) -> None:
        assert isinstance(create_binder("copy", tmp_path / "m.json", tmp_path), TrackedCopyBinder)

    def test_auto_uses_links_when_supported(self, tmp_path) -> None:
        binder = create_binder("auto", tmp_path / "m.json", tmp_path / "probe")
        assert binder.strategy_name in ("link", "copy")

    def test_unknown(self, tmp_path) -> None:
        with pytest.raises(ValueError):
            create_binder("hardlink", tmp_path / "m.json", tmp_path)


def test_is_link_to_other_source(tmp_path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    target = tmp_path / "target"
    binder = ArtifactBinder()
    binder.link(first, target)

    assert binder.is_link(target)
    assert binder.is_link(target, first)
    assert not binder.is_link(target, second)
