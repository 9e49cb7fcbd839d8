"""Pytest configuration and fixtures for CodeSweep tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator

import pytest


@pytest.fixture(autouse=True)
def _isolate_user_config(monkeypatch, tmp_path):
    """Point the user-level config at an empty location.

    Without this a developer's ``~/.codesweep/config.toml`` would leak into
    every analysis run by the test suite.
    """
    monkeypatch.setattr("codesweep_cli.config.USER_CONFIG_FILE", tmp_path / "no-such-config.toml")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp.resolve()
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_monorepo_path() -> Path:
    """Get path to the sample client/server project."""
    return (Path(__file__).parent / "fixtures" / "sample_monorepo").resolve()


@pytest.fixture
def make_tree(temp_dir: Path) -> Callable[[Dict[str, str]], Path]:
    """Write ``{relative path: content}`` under a fresh root and return it."""

    def _make(files: Dict[str, str]) -> Path:
        for rel, content in files.items():
            path = temp_dir / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return temp_dir

    return _make


@pytest.fixture
def ts_grammars():
    """Skip when the tree-sitter grammar packages are not installed."""
    pytest.importorskip("tree_sitter")
    pytest.importorskip("tree_sitter_javascript")
    pytest.importorskip("tree_sitter_typescript")
