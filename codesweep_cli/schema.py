"""Prisma schema parsing and model / field usage cross-referencing."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Pattern, Sequence, Tuple

from . import config
from .models import SchemaField, SchemaIssue, SchemaModel, SchemaUsage

logger = logging.getLogger(__name__)

_MODEL_OPEN_RE = re.compile(r"^model\s+(\w+)\s*\{")
_FIELD_RE = re.compile(r"^(\w+)\s+(\w+)")


def find_schema_files(
    search_dirs: Iterable[Path],
    skip_dirs: Iterable[str] = config.SKIP_DIRS,
    file_name: str = config.SCHEMA_FILE_NAME,
) -> List[Path]:
    """Return every ``schema.prisma`` below *search_dirs*, deduplicated and sorted."""
    skip = set(skip_dirs)
    found = set()
    for directory in search_dirs:
        if not directory.is_dir():
            continue
        for dirpath, dirnames, filenames in os.walk(directory):
            dirnames[:] = [d for d in dirnames if d not in skip]
            if file_name in filenames:
                found.add(Path(dirpath, file_name).resolve())
    return sorted(found)


def parse_schema(text: str, schema_file: str = "") -> List[SchemaModel]:
    """Parse ``model Name { ... }`` blocks line by line.

    Comment (``//``) and block-attribute (``@@``) lines are skipped.  A
    model still open at end of input is discarded.
    """
    models: List[SchemaModel] = []
    current: Optional[SchemaModel] = None
    for line in text.splitlines():
        stripped = line.strip()
        opened = _MODEL_OPEN_RE.match(stripped)
        if opened:
            current = SchemaModel(name=opened.group(1), schema_file=schema_file)
            if stripped[opened.end():].lstrip().startswith("}"):
                models.append(current)
                current = None
        elif stripped == "}" and current is not None:
            models.append(current)
            current = None
        elif current is not None and stripped and not stripped.startswith(("//", "@@")):
            match = _FIELD_RE.match(stripped)
            if match:
                current.fields.append(SchemaField(name=match.group(1), declared_type=match.group(2)))
    if current is not None:
        logger.warning("Unterminated model block '%s' in %s; dropped", current.name, schema_file or "schema")
    return models


def load_schema(path: Path) -> List[SchemaModel]:
    """Read and parse *path*; an unreadable file yields no models."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Error reading schema %s: %s", path, exc)
        return []
    models = parse_schema(text, str(path))
    logger.info("Found %d models in %s", len(models), path)
    return models


def _search_patterns(term: str) -> Tuple[Pattern[str], ...]:
    escaped = re.escape(term)
    return (
        re.compile(rf"\b{escaped}\b", re.IGNORECASE),
        re.compile(rf"['\"`]{escaped}['\"`]", re.IGNORECASE),
        re.compile(rf"\.{escaped}\b", re.IGNORECASE),
    )


class SchemaCrossReferencer:
    """Decides which schema models and fields are never used in code.

    Structured usage (ORM call sites, string literals, type references)
    gathered by the graph builder decides first.  Fields, and models without
    structured usage, fall back to a whole-corpus text search, since field
    access through plain object literals cannot be attributed to a model.
    """

    def __init__(
        self,
        contents: Sequence[str],
        system_fields: Iterable[str] = config.SYSTEM_FIELDS,
    ) -> None:
        self.contents = list(contents)
        self.system_fields = set(system_fields)
        self._cache: Dict[str, bool] = {}

    def search(self, term: str) -> bool:
        """True when *term* appears in any file as a word, quoted literal or property."""
        if term not in self._cache:
            patterns = _search_patterns(term)
            self._cache[term] = any(
                pattern.search(text) for text in self.contents for pattern in patterns
            )
        return self._cache[term]

    def is_system_field(self, name: str) -> bool:
        return name in self.system_fields

    def is_model_used(self, model: SchemaModel, usage: Optional[SchemaUsage]) -> bool:
        if usage is not None and not usage.is_empty:
            return True
        return self.search(model.name)

    def unused_fields(self, model: SchemaModel) -> List[SchemaField]:
        return [
            f for f in model.fields
            if not self.is_system_field(f.name) and not self.search(f.name)
        ]

    def analyze(
        self,
        models: Iterable[SchemaModel],
        usage: Dict[str, SchemaUsage],
        relative: Optional[Callable[[str], str]] = None,
    ) -> List[SchemaIssue]:
        issues: List[SchemaIssue] = []
        for model in models:
            file = relative(model.schema_file) if relative else model.schema_file
            if not self.is_model_used(model, usage.get(model.name)):
                issues.append(SchemaIssue("unused_model", model.name, file, list(model.fields)))
                continue
            dead = self.unused_fields(model)
            if dead:
                issues.append(SchemaIssue("unused_fields", model.name, file, dead))
        return issues
