"""Tests for file discovery and content loading."""

import os
from pathlib import Path

from codesweep_cli.config_manager import AnalyzerSettings
from codesweep_cli.inventory import ContentStore, FileInventory


def test_collect_filters_extensions_and_skipped_dirs(make_tree):
    """Test that only supported sources outside skipped directories are found."""
    root = make_tree({
        "client/src/a.ts": "",
        "client/src/b.jsx": "",
        "client/src/types.d.ts": "",
        "client/src/style.css": "",
        "client/node_modules/lib/index.js": "",
        "client/dist/bundle.js": "",
        "server/index.js": "",
        "docs/readme.js": "",
    })
    inventory = FileInventory(root, AnalyzerSettings())

    files = inventory.collect()

    rel = [inventory.relative(f) for f in files]
    assert rel == ["client/src/a.ts", "client/src/b.jsx", "server/index.js"]
    assert len(inventory) == 3
    assert files[0] in inventory


def test_collect_tolerates_missing_context(make_tree):
    """Test that a missing context directory is skipped."""
    root = make_tree({"client/main.ts": ""})
    inventory = FileInventory(root, AnalyzerSettings())

    assert inventory.existing_contexts() == ["client"]
    assert [inventory.relative(f) for f in inventory.collect()] == ["client/main.ts"]


def test_context_of(temp_dir: Path):
    """Test mapping a path to its owning context."""
    inventory = FileInventory(temp_dir, AnalyzerSettings())

    assert inventory.context_of(os.path.join(str(temp_dir), "client", "src", "a.ts")) == "client"
    assert inventory.context_of(os.path.join(str(temp_dir), "server", "a.ts")) == "server"
    # A sibling directory sharing the prefix is not part of the context
    assert inventory.context_of(os.path.join(str(temp_dir), "client-old", "a.ts")) == "server"


def test_content_store_records_unreadable_files(make_tree):
    """Test that undecodable files are skipped and recorded."""
    root = make_tree({"client/good.ts": "export const a = 1;"})
    bad = root / "client" / "bad.ts"
    bad.write_bytes(b"\xff\xfe\x00broken")

    store = ContentStore()
    loaded = store.load([str(root / "client" / "good.ts"), str(bad)])

    assert loaded == 1
    assert store.get(str(root / "client" / "good.ts")) == "export const a = 1;"
    assert store.get(str(bad)) is None
    assert store.failures == [str(bad)]


def test_content_store_reads_once():
    """Test that preloaded content is not read again."""
    store = ContentStore.from_mapping({"/virtual/a.ts": "x"})

    assert store.load(["/virtual/a.ts"]) == 0
    assert "/virtual/a.ts" in store
    assert list(store.values()) == ["x"]
