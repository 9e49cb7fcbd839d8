"""Source file discovery and the read-once content cache."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from .config_manager import AnalyzerSettings

logger = logging.getLogger(__name__)

_MAX_DETAILED_READ_ERRORS = 5


class FileInventory:
    """Enumerates candidate source files under the project's context directories."""

    def __init__(self, root: Path, settings: AnalyzerSettings) -> None:
        self.root = root.resolve()
        self.settings = settings
        self.context_dirs: Dict[str, Path] = {
            name: self.root / name for name in settings.contexts
        }
        self._files: List[str] = []
        self._file_set: Set[str] = set()

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    def existing_contexts(self) -> List[str]:
        return [name for name, path in self.context_dirs.items() if path.is_dir()]

    def collect(self) -> List[str]:
        """Walk every existing context directory and return sorted absolute paths."""
        found: Set[str] = set()
        for name, context_dir in self.context_dirs.items():
            if not context_dir.is_dir():
                logger.warning("Context directory not found: %s", context_dir)
                continue
            files = list(self.walk(context_dir))
            logger.info("Found %d %s files", len(files), name)
            found.update(files)
        self._files = sorted(found)
        self._file_set = set(self._files)
        return list(self._files)

    def walk(self, directory: Path) -> Iterator[str]:
        """Yield supported source files below *directory*, pruning skipped dirs."""
        extensions = tuple(self.settings.extensions)

        def _on_error(exc: OSError) -> None:
            logger.warning("Cannot read directory %s: %s", exc.filename, exc.strerror)

        for dirpath, dirnames, filenames in os.walk(directory, onerror=_on_error):
            dirnames[:] = sorted(d for d in dirnames if d not in self.settings.skip_dirs)
            for filename in filenames:
                if filename.endswith(extensions) and not filename.endswith(".d.ts"):
                    yield os.path.join(dirpath, filename)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def files(self) -> List[str]:
        return list(self._files)

    @property
    def file_set(self) -> Set[str]:
        return self._file_set

    def __contains__(self, path: object) -> bool:
        return path in self._file_set

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def context_of(self, path: str) -> str:
        """Return the context whose directory contains *path*.

        Files outside every context fall back to the last configured one.
        """
        best: Optional[Tuple[int, str]] = None
        for name, context_dir in self.context_dirs.items():
            prefix = str(context_dir) + os.sep
            if path.startswith(prefix) and (best is None or len(prefix) > best[0]):
                best = (len(prefix), name)
        if best is not None:
            return best[1]
        return self.settings.contexts[-1]

    def relative(self, path: str) -> str:
        return Path(os.path.relpath(path, self.root)).as_posix()


class ContentStore:
    """Reads each inventoried file once and keeps its text for the whole run."""

    def __init__(self) -> None:
        self._contents: Dict[str, str] = {}
        self.failures: List[str] = []

    def load(self, paths: Iterable[str]) -> int:
        """Read *paths* as UTF-8; unreadable files are logged and skipped."""
        loaded = 0
        for path in paths:
            if path in self._contents:
                continue
            try:
                with open(path, "r", encoding="utf-8") as handle:
                    self._contents[path] = handle.read()
                loaded += 1
            except (OSError, UnicodeDecodeError) as exc:
                self.failures.append(path)
                if len(self.failures) <= _MAX_DETAILED_READ_ERRORS:
                    logger.warning("Failed to read %s: %s", path, exc)
        if len(self.failures) > _MAX_DETAILED_READ_ERRORS:
            logger.warning("Failed to read %d files in total", len(self.failures))
        logger.info("Read %d files", loaded)
        return loaded

    def get(self, path: str) -> Optional[str]:
        return self._contents.get(path)

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self._contents.items())

    def values(self) -> Iterator[str]:
        return iter(self._contents.values())

    def __contains__(self, path: object) -> bool:
        return path in self._contents

    def __len__(self) -> int:
        return len(self._contents)

    @classmethod
    def from_mapping(cls, contents: Dict[str, str]) -> "ContentStore":
        store = cls()
        store._contents.update(contents)
        return store
