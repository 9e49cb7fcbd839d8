"""Phase orchestration: inventory -> entry points -> graph -> reachability -> schema."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from .config_manager import AnalyzerSettings
from .entry_points import EntryPointDetector
from .graph_builder import GraphBuilder, ProjectGraph
from .inventory import ContentStore, FileInventory
from .models import (
    AnalysisResult,
    ContextReport,
    SchemaModel,
    UnusedFunction,
    UnusedImport,
    UnusedVariable,
)
from .parser import SourceParser
from .reachability import ReachabilityEngine, ReachabilityResult, StringReferenceMatcher
from .resolver import ImportResolver
from .schema import SchemaCrossReferencer, find_schema_files, load_schema

logger = logging.getLogger(__name__)


class AnalysisSetupError(RuntimeError):
    """Raised when the project layout cannot be analysed at all."""


class CodeSweepAnalyzer:
    """Runs every analysis phase in order over one project root."""

    def __init__(self, root: Path, settings: Optional[AnalyzerSettings] = None) -> None:
        self.root = Path(root).resolve()
        self.settings = settings or AnalyzerSettings()
        self.inventory = FileInventory(self.root, self.settings)
        self.contents = ContentStore()
        self.resolver: Optional[ImportResolver] = None
        self.entry_points: Dict[str, str] = {}
        self.models: List[SchemaModel] = []
        self.graph: Optional[ProjectGraph] = None
        self.reachability: Optional[ReachabilityResult] = None
        self.parser: Optional[SourceParser] = None

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def validate_directories(self) -> None:
        existing = self.inventory.existing_contexts()
        for name, path in self.inventory.context_dirs.items():
            if name not in existing:
                logger.warning("%s directory not found: %s", name.capitalize(), path)
        if not existing:
            raise AnalysisSetupError(
                "None of the source directories exist under "
                f"{self.root}: {', '.join(self.settings.contexts)}"
            )

    def collect(self) -> List[str]:
        files = self.inventory.collect()
        logger.info("Total files to analyze: %d", len(files))
        self.contents.load(files)
        self.resolver = ImportResolver(
            self.inventory.file_set,
            {name: str(path) for name, path in self.inventory.context_dirs.items()},
            self.inventory.context_of,
            aliases=self.settings.aliases,
            extensions=self.settings.extensions,
        )
        return files

    def detect_entry_points(self) -> Dict[str, str]:
        detector = EntryPointDetector(
            self.inventory, self.resolver, self.settings.extra_entry_patterns,
        )
        self.entry_points = detector.detect()
        return self.entry_points

    def load_models(self) -> List[SchemaModel]:
        schema_files = find_schema_files([self.root], self.settings.skip_dirs)
        if not schema_files:
            logger.warning("No Prisma schema files found")
        self.models = [model for path in schema_files for model in load_schema(path)]
        return self.models

    def build_graph(self) -> ProjectGraph:
        self.parser = SourceParser(lenient=self.settings.lenient_parse)
        builder = GraphBuilder(
            self.parser,
            self.resolver,
            self.inventory.context_of,
            orm_clients=self.settings.orm_clients,
            model_names=[m.name for m in self.models],
        )
        self.graph = builder.build(self.inventory.files, self.contents.get)
        self.graph.resolve_references(scope_aware=self.settings.scope_aware)
        return self.graph

    def compute_reachability(self) -> ReachabilityResult:
        matcher = None
        if self.settings.fuzzy_references:
            matcher = StringReferenceMatcher(str(self.root), self.contents.get)
        engine = ReachabilityEngine(self.graph, matcher)
        self.reachability = engine.run(self.entry_points)
        return self.reachability

    def run(self) -> AnalysisResult:
        logger.info("Starting code analysis of %s", self.root)
        self.validate_directories()
        self.collect()
        self.detect_entry_points()
        self.load_models()
        self.build_graph()
        self.compute_reachability()
        return self.assemble()

    # ------------------------------------------------------------------
    # Result assembly
    # ------------------------------------------------------------------

    def assemble(self) -> AnalysisResult:
        rel = self.inventory.relative
        reports: Dict[str, ContextReport] = {name: ContextReport() for name in self.settings.contexts}

        for path in self.inventory.files:
            if path not in self.reachability.reachable:
                reports[self.inventory.context_of(path)].unused_files.append(rel(path))

        seen: Set[Tuple[Any, ...]] = set()
        for symbol in self.graph.symbols:
            if symbol.is_exported or symbol.references:
                continue
            report = reports[self.inventory.context_of(symbol.file)]
            key = symbol.key
            if key in seen:
                continue
            seen.add(key)
            if symbol.is_function:
                report.unused_functions.append(UnusedFunction(symbol.name, rel(symbol.file), symbol.kind))
            elif not symbol.name.startswith("_"):
                report.unused_variables.append(UnusedVariable(symbol.name, rel(symbol.file)))

        for binding in self.graph.imports:
            if binding.references or binding.local_name.startswith("_"):
                continue
            key = (binding.file, binding.local_name, binding.source)
            if key in seen:
                continue
            seen.add(key)
            reports[self.inventory.context_of(binding.file)].unused_imports.append(UnusedImport(
                binding.local_name, binding.imported_name, binding.source, rel(binding.file),
            ))

        schema_context = self.settings.contexts[-1]
        if self.models:
            schema_context = self.inventory.context_of(self.models[0].schema_file)
            referencer = SchemaCrossReferencer(
                list(self.contents.values()),
                self.settings.system_fields,
            )
            for issue in referencer.analyze(self.models, self.graph.schema_usage, rel):
                reports[schema_context].schema_issues.append(issue)

        for report in reports.values():
            report.sort()

        return AnalysisResult(
            contexts=reports,
            total_files=len(self.inventory),
            entry_points=sorted(rel(p) for p in self.entry_points),
            reachable_files=len(self.reachability.reachable),
            edge_counts=self.graph.edge_counts(),
            parse_failures=sorted(rel(p) for p in self.parser.failures),
            read_failures=sorted(rel(p) for p in self.contents.failures),
            schema_context=schema_context,
            generated_at=datetime.now(timezone.utc).isoformat(),
        )


def analyze(root: Path, settings: Optional[AnalyzerSettings] = None) -> AnalysisResult:
    """Convenience wrapper running a full analysis of *root*."""
    return CodeSweepAnalyzer(root, settings).run()
