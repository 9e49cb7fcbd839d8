"""Entry point detection from path conventions and package manifests."""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Dict, Iterable, List, Pattern, Sequence

from . import config
from .inventory import FileInventory
from .resolver import ImportResolver

logger = logging.getLogger(__name__)

_EXT = r"(js|jsx|ts|tsx|mjs|cjs)"


def build_entry_patterns(contexts: Sequence[str], extra: Iterable[str] = ()) -> List[Pattern[str]]:
    """Compile the path conventions that mark a file as directly loaded."""
    ctx = "(" + "|".join(re.escape(c) for c in contexts) + ")"
    sources = [
        # Application bootstrap files
        rf"^{ctx}/(src/)?(index|main|app|server)\.{_EXT}$",
        rf"^({ctx}/)?src/App\.{_EXT}$",
        # Route and API handler directories
        rf"^{ctx}/(src/)?routes/.*\.{_EXT}$",
        rf"^{ctx}/(src/)?api/.*\.{_EXT}$",
        rf"^{ctx}/(src/)?pages/.*\.{_EXT}$",
        # Tests
        rf"\.(test|spec)\.{_EXT}$",
        rf"(^|/)__tests__/.*\.{_EXT}$",
        # Tool configuration
        rf"\.config\.{_EXT}$",
        rf"\.setup\.(js|ts)$",
        # Next.js app router
        rf"^{ctx}/(src/)?app/(.*/)?(page|layout|route|loading|error|not-found)\.{_EXT}$",
        # Expo router: every file under app/ is a screen or layout
        rf"^{ctx}/app/.*\.{_EXT}$",
        # Middleware
        rf"middleware\.{_EXT}$",
    ]
    sources.extend(extra)
    return [re.compile(src, re.IGNORECASE) for src in sources]


class EntryPointDetector:
    """Classifies inventory files as traversal roots.

    Detection is over-inclusive: a file loaded by a framework or a script
    runner must never be reported as unused.
    """

    def __init__(
        self,
        inventory: FileInventory,
        resolver: ImportResolver,
        extra_patterns: Iterable[str] = (),
    ) -> None:
        self.inventory = inventory
        self.resolver = resolver
        self.patterns = build_entry_patterns(inventory.settings.contexts, extra_patterns)
        self.reasons: Dict[str, str] = {}

    def detect(self) -> Dict[str, str]:
        """Return ``{path: reason}`` for every detected entry point."""
        for path in self.inventory:
            if self.matches_convention(path):
                self._add(path, "path convention")
        for manifest in self.manifest_paths():
            if manifest.is_file():
                self.scan_manifest(manifest)
        logger.info("Entry points identified: %d", len(self.reasons))
        return dict(self.reasons)

    def matches_convention(self, path: str) -> bool:
        rel = self.inventory.relative(path)
        return any(p.search(rel) for p in self.patterns)

    def manifest_paths(self) -> List[Path]:
        paths = [d / "package.json" for d in self.inventory.context_dirs.values()]
        paths.append(self.inventory.root / "package.json")
        return paths

    def scan_manifest(self, manifest: Path) -> None:
        """Add the ``main`` target and interpreter script targets of *manifest*."""
        try:
            pkg = json.loads(manifest.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Failed to read %s: %s", manifest, exc)
            return
        if not isinstance(pkg, dict):
            logger.warning("Ignoring %s: top level is not an object", manifest)
            return

        base = str(manifest.parent)
        main = pkg.get("main")
        if isinstance(main, str):
            self._add_target(base, main, f"{manifest.name} main")

        scripts = pkg.get("scripts")
        if isinstance(scripts, dict):
            for name, command in scripts.items():
                if not isinstance(command, str):
                    continue
                for target in script_targets(command):
                    self._add_target(base, target, f"{manifest.name} script '{name}'")

    def _add_target(self, base: str, target: str, reason: str) -> None:
        resolved = self.resolver.probe(os.path.normpath(os.path.join(base, target)))
        if resolved is not None:
            self._add(resolved, reason)
        else:
            logger.debug("Manifest target %s (%s) is not an inventoried file", target, reason)

    def _add(self, path: str, reason: str) -> None:
        if path not in self.reasons:
            self.reasons[path] = reason
            logger.debug("Entry point: %s (%s)", self.inventory.relative(path), reason)


_RUNNER_RE = re.compile(
    r"(?:^|[\s;&|(])(?:npx\s+)?(?:" + "|".join(re.escape(r) for r in config.SCRIPT_RUNNERS) + r")"
    r"(?:\s+watch)?((?:\s+-{1,2}[\w-]+(?:=\S+)?)*)\s+([^\s;&|]+)"
)


def script_targets(command: str) -> List[str]:
    """Return the file arguments an interpreter is invoked on in a script command."""
    targets: List[str] = []
    pos = 0
    while True:
        match = _RUNNER_RE.search(command, pos)
        if match is None:
            return targets
        target = match.group(2).strip("'\"")
        if target == "npx" or target in config.SCRIPT_RUNNERS:
            # `nodemon --exec ts-node app.ts`: rescan from the nested runner
            pos = match.start(2) - 1
            continue
        if target and not target.startswith("-"):
            targets.append(target)
        pos = match.end()
