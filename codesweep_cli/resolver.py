"""Module specifier resolution against the file inventory.

The resolver never touches the file system: a candidate path only counts
when it is a member of the inventory set, which keeps resolution pure and
deterministic.
"""

from __future__ import annotations

import os
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set

from . import config

_TS_SWAPS = {".js": (".ts", ".tsx"), ".jsx": (".tsx",), ".mjs": (".mts",), ".cjs": (".cts",)}


class ImportResolver:
    """Turns ``(specifier, referencing file)`` into a concrete inventory path."""

    def __init__(
        self,
        files: Set[str],
        context_dirs: Mapping[str, str],
        context_of: Callable[[str], str],
        aliases: Optional[Mapping[str, str]] = None,
        extensions: Sequence[str] = config.SUPPORTED_EXTENSIONS,
    ) -> None:
        self.files = files
        self.context_dirs: Dict[str, str] = {k: str(v) for k, v in context_dirs.items()}
        self.context_of = context_of
        self.aliases: Dict[str, str] = dict(
            config.DEFAULT_ALIASES if aliases is None else aliases
        )
        self.extensions = tuple(extensions)
        self.index_files = tuple(f"index{ext}" for ext in self.extensions)

    def resolve(self, specifier: str, from_file: str) -> Optional[str]:
        """Resolve *specifier* as written in *from_file*; ``None`` when external."""
        if not specifier:
            return None

        if specifier.startswith("./") or specifier.startswith("../"):
            base = os.path.normpath(os.path.join(os.path.dirname(from_file), specifier))
            return self.probe(base)

        for prefix in sorted(self.aliases, key=len, reverse=True):
            if specifier.startswith(prefix):
                rest = self.aliases[prefix] + specifier[len(prefix):]
                for context_dir in self.context_dirs.values():
                    hit = self.probe(os.path.normpath(os.path.join(context_dir, rest)))
                    if hit is not None:
                        return hit
                break

        context = self.context_of(from_file)
        context_dir = self.context_dirs.get(context)
        if context_dir is None:
            return None
        return self.probe(os.path.normpath(os.path.join(context_dir, "src", specifier.lstrip("/\\"))))

    def probe(self, base: str) -> Optional[str]:
        """Return the first inventory file matching *base*.

        Tries the exact path, each extension appended, a TypeScript source
        for a ``.js``-style specifier, then ``<base>/index.<ext>``.
        """
        for candidate in self.candidates(base):
            if candidate in self.files:
                return candidate
        return None

    def candidates(self, base: str) -> List[str]:
        found: List[str] = [base]
        found.extend(base + ext for ext in self.extensions)
        stem, ext = os.path.splitext(base)
        for swap in _TS_SWAPS.get(ext, ()):
            found.append(stem + swap)
        found.extend(os.path.join(base, index) for index in self.index_files)
        return found
