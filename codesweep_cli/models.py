"""Core data models shared by the inventory, graph, reachability and schema phases."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Set, Tuple

EDGE_KINDS = ("static", "require", "dynamic", "re-export", "string-literal-guess")

FUNCTION_DECLARATION = "function-declaration"
FUNCTION_EXPRESSION = "function-expression"
VARIABLE = "variable"


@dataclass(frozen=True)
class ImportEdge:
    source: str
    target: str
    kind: str


@dataclass(frozen=True)
class ExportRecord:
    file: str
    name: str


@dataclass
class SymbolRecord:
    """A declared function or variable and the files referencing its name."""
    file: str
    name: str
    kind: str
    line: int = 0
    is_exported: bool = False
    references: Set[str] = field(default_factory=set)

    @property
    def key(self) -> Tuple[str, str, int]:
        return (self.file, self.name, self.line)

    @property
    def is_function(self) -> bool:
        return self.kind in (FUNCTION_DECLARATION, FUNCTION_EXPRESSION)


@dataclass
class ImportBinding:
    """A local name bound by an import statement."""
    file: str
    local_name: str
    imported_name: str
    source: str
    line: int = 0
    references: Set[str] = field(default_factory=set)


@dataclass
class ComponentUsage:
    name: str
    files: Set[str] = field(default_factory=set)


@dataclass
class SchemaField:
    name: str
    declared_type: str


@dataclass
class SchemaModel:
    name: str
    fields: List[SchemaField] = field(default_factory=list)
    schema_file: str = ""


@dataclass
class SchemaUsage:
    queries: Set[str] = field(default_factory=set)
    string_references: Set[str] = field(default_factory=set)
    type_references: Set[str] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not (self.queries or self.string_references or self.type_references)


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------

@dataclass
class UnusedFunction:
    name: str
    file: str
    kind: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "file": self.file, "type": self.kind}


@dataclass
class UnusedVariable:
    name: str
    file: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "file": self.file}


@dataclass
class UnusedImport:
    name: str
    imported_name: str
    source: str
    file: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "importedName": self.imported_name,
            "source": self.source,
            "file": self.file,
        }


@dataclass
class SchemaIssue:
    """Either an unused model or a used model carrying unused fields."""
    issue_type: str
    model: str
    file: str
    fields: List[SchemaField] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        key = "fields" if self.issue_type == "unused_model" else "unusedFields"
        return {
            "type": self.issue_type,
            "model": self.model,
            "file": self.file,
            key: [{"name": f.name, "type": f.declared_type} for f in self.fields],
        }


@dataclass
class ContextReport:
    unused_files: List[str] = field(default_factory=list)
    unused_functions: List[UnusedFunction] = field(default_factory=list)
    unused_variables: List[UnusedVariable] = field(default_factory=list)
    unused_imports: List[UnusedImport] = field(default_factory=list)
    schema_issues: List[SchemaIssue] = field(default_factory=list)

    @property
    def total(self) -> int:
        return (
            len(self.unused_files)
            + len(self.unused_functions)
            + len(self.unused_variables)
            + len(self.unused_imports)
            + len(self.schema_issues)
        )

    def sort(self) -> None:
        self.unused_files.sort()
        self.unused_functions.sort(key=lambda f: (f.file, f.name, f.kind))
        self.unused_variables.sort(key=lambda v: (v.file, v.name))
        self.unused_imports.sort(key=lambda i: (i.file, i.name, i.source))
        self.schema_issues.sort(key=lambda s: (s.file, s.model, s.issue_type))

    def stats(self) -> Dict[str, int]:
        return {
            "unusedFiles": len(self.unused_files),
            "unusedFunctions": len(self.unused_functions),
            "unusedVariables": len(self.unused_variables),
            "unusedImports": len(self.unused_imports),
            "schemaIssues": len(self.schema_issues),
            "total": self.total,
        }

    def to_dict(self, include_schema: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "unusedFiles": list(self.unused_files),
            "unusedFunctions": [f.to_dict() for f in self.unused_functions],
            "unusedVariables": [v.to_dict() for v in self.unused_variables],
            "unusedImports": [i.to_dict() for i in self.unused_imports],
        }
        if include_schema or self.schema_issues:
            data["prismaIssues"] = [s.to_dict() for s in self.schema_issues]
        return data


@dataclass
class AnalysisResult:
    contexts: Dict[str, ContextReport]
    total_files: int
    entry_points: List[str]
    reachable_files: int
    edge_counts: Dict[str, int] = field(default_factory=dict)
    parse_failures: List[str] = field(default_factory=list)
    read_failures: List[str] = field(default_factory=list)
    schema_context: str = ""
    generated_at: str = ""

    @property
    def total_issues(self) -> int:
        return sum(report.total for report in self.contexts.values())

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for name, report in self.contexts.items():
            data[name] = report.to_dict(include_schema=name == self.schema_context)
        data["metadata"] = {
            "generatedAt": self.generated_at,
            "totalFiles": self.total_files,
            "entryPoints": list(self.entry_points),
            "reachableFiles": self.reachable_files,
            "edges": {kind: self.edge_counts.get(kind, 0) for kind in EDGE_KINDS},
            "parseFailures": list(self.parse_failures),
            "readFailures": list(self.read_failures),
            "analysis": {name: report.stats() for name, report in self.contexts.items()},
        }
        return data
