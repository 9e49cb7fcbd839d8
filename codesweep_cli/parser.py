"""Tree-sitter based parsing of JavaScript / TypeScript / JSX sources.

Each file extension maps to a ladder of grammars.  The first grammar that
produces an error-free tree wins; the later rungs play the role of a
permissive retry (TypeScript or JSX syntax inside a ``.js`` file, for
instance).  When every rung reports syntax errors the file is treated as
having no syntax tree unless lenient parsing is enabled, in which case the
first rung's partial tree is kept.
"""

from __future__ import annotations

import importlib
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Grammar <-> file-extension mapping
# ---------------------------------------------------------------------------
GRAMMAR_LADDER: Dict[str, Tuple[str, ...]] = {
    ".js": ("javascript", "tsx"),
    ".mjs": ("javascript", "tsx"),
    ".cjs": ("javascript", "tsx"),
    ".jsx": ("javascript", "tsx"),
    ".ts": ("typescript", "tsx"),
    ".mts": ("typescript", "tsx"),
    ".cts": ("typescript", "tsx"),
    ".tsx": ("tsx", "typescript"),
}

# grammar name -> (module, function returning the Language capsule)
_GRAMMAR_MODULES: Dict[str, Tuple[str, str]] = {
    "javascript": ("tree_sitter_javascript", "language"),
    "typescript": ("tree_sitter_typescript", "language_typescript"),
    "tsx": ("tree_sitter_typescript", "language_tsx"),
}


@dataclass
class ParsedFile:
    path: str
    tree: Any
    grammar: str
    source: bytes
    has_error: bool = False

    @property
    def root(self) -> Any:
        return self.tree.root_node


class SourceParser:
    """Parses source text into tree-sitter syntax trees."""

    def __init__(
        self,
        grammars: Optional[Sequence[str]] = None,
        lenient: bool = False,
    ) -> None:
        self.lenient = lenient
        self._parsers: Dict[str, Any] = {}
        self._requested = list(grammars or _GRAMMAR_MODULES)
        self.failures: List[str] = []
        self._init_parsers()

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def _init_parsers(self) -> None:
        from tree_sitter import Language, Parser as TSParser

        for grammar in self._requested:
            spec = _GRAMMAR_MODULES.get(grammar)
            if spec is None:
                logger.warning("No grammar module mapped for '%s'", grammar)
                continue
            mod_name, func_name = spec
            try:
                mod = importlib.import_module(mod_name)
                ts_lang = Language(getattr(mod, func_name)())
                self._parsers[grammar] = TSParser(ts_lang)
                logger.debug("Loaded tree-sitter grammar %s", grammar)
            except ImportError:
                logger.warning(
                    "Grammar package '%s' not installed for '%s'. Install with: pip install %s",
                    mod_name, grammar, mod_name.replace("_", "-"),
                )

    def supports(self, grammar: str) -> bool:
        return grammar in self._parsers

    def ladder_for(self, path: str) -> List[str]:
        ext = os.path.splitext(path)[1].lower()
        return [g for g in GRAMMAR_LADDER.get(ext, ()) if g in self._parsers]

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, path: str, text: str) -> Optional[ParsedFile]:
        """Parse *text* for *path*; returns ``None`` when no grammar accepts it."""
        ladder = self.ladder_for(path)
        if not ladder:
            logger.warning("No grammar available for %s", path)
            self.failures.append(path)
            return None

        source = text.encode("utf-8")
        first: Optional[ParsedFile] = None
        for grammar in ladder:
            tree = self._parsers[grammar].parse(source)
            parsed = ParsedFile(path, tree, grammar, source, tree.root_node.has_error)
            if not parsed.has_error:
                if grammar != ladder[0]:
                    logger.debug("Parsed %s with fallback grammar %s", path, grammar)
                return parsed
            if first is None:
                first = parsed

        self.failures.append(path)
        if self.lenient and first is not None:
            logger.warning("Syntax errors in %s; keeping partial tree", path)
            return first
        logger.warning("Failed to parse %s: syntax errors with grammars %s", path, ", ".join(ladder))
        return None


def node_text(node: Any) -> str:
    return node.text.decode("utf-8", errors="replace")


def string_value(node: Any) -> Optional[str]:
    """Return the unquoted value of a ``string`` node, or ``None``."""
    if node is None or node.type != "string":
        return None
    raw = node_text(node)
    if len(raw) >= 2 and raw[0] in "'\"" and raw[-1] == raw[0]:
        return raw[1:-1]
    return raw


def line_of(node: Any) -> int:
    return node.start_point[0] + 1
