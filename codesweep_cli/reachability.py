"""Reachability from entry points over the import graph.

Two relations drive the traversal: the structured import edges produced
by the graph builder, and a fuzzy string-reference heuristic that looks
for other files' names inside a file's raw text.  The heuristic lives in
its own class so it can be switched off and tested on its own.
"""

from __future__ import annotations

import logging
import os
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Iterable, List, Optional, Sequence, Set

from .graph_builder import ProjectGraph

logger = logging.getLogger(__name__)


class StringReferenceMatcher:
    """Finds files mentioned by name or path in another file's text.

    A candidate matches when the text contains its basename without
    extension, its path relative to the referencing file's directory, or
    its path relative to the project root.  A quoted occurrence is also a
    substring occurrence, so plain containment covers both forms.
    """

    def __init__(self, root: str, contents: Callable[[str], Optional[str]]) -> None:
        self.root = root
        self.contents = contents

    def patterns_for(self, current: str, other: str) -> List[str]:
        base = os.path.splitext(os.path.basename(other))[0]
        from_dir = os.path.relpath(other, os.path.dirname(current)).replace(os.sep, "/")
        from_root = os.path.relpath(other, self.root).replace(os.sep, "/")
        return [p for p in (from_dir, base, from_root) if p]

    def matches(self, current: str, candidates: Iterable[str]) -> List[str]:
        text = self.contents(current)
        if not text:
            return []
        found: List[str] = []
        for other in candidates:
            if other == current:
                continue
            if any(pattern in text for pattern in self.patterns_for(current, other)):
                found.append(other)
        return found


@dataclass
class ReachabilityResult:
    reachable: Set[str] = field(default_factory=set)
    via_strings: Set[str] = field(default_factory=set)
    order: List[str] = field(default_factory=list)


class ReachabilityEngine:
    """Breadth-first traversal from the entry point set."""

    def __init__(
        self,
        graph: ProjectGraph,
        matcher: Optional[StringReferenceMatcher] = None,
    ) -> None:
        self.graph = graph
        self.matcher = matcher

    def run(self, entry_points: Iterable[str]) -> ReachabilityResult:
        result = ReachabilityResult()
        universe: Sequence[str] = self.graph.files
        seen: Set[str] = set()
        queue: Deque[str] = deque()

        for entry in sorted(set(entry_points)):
            seen.add(entry)
            queue.append(entry)

        while queue:
            current = queue.popleft()
            result.order.append(current)

            for target in self.graph.targets(current):
                if target not in seen:
                    seen.add(target)
                    queue.append(target)

            if self.matcher is not None:
                unseen = [f for f in universe if f not in seen]
                for other in self.matcher.matches(current, unseen):
                    seen.add(other)
                    result.via_strings.add(other)
                    queue.append(other)

        result.reachable = set(result.order)
        logger.info(
            "Reachable files: %d/%d (%d via string references)",
            len(result.reachable), len(universe), len(result.via_strings),
        )
        return result
