"""Cross-file import / usage graph built from tree-sitter syntax trees.

Every file is walked exactly once.  A walk only records what the file
itself contains (edges, exports, declarations, referenced names, schema
hints); matching references against declarations happens afterwards over
the whole project, so the outcome does not depend on file order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from .models import (
    FUNCTION_DECLARATION,
    FUNCTION_EXPRESSION,
    VARIABLE,
    ComponentUsage,
    ExportRecord,
    ImportBinding,
    ImportEdge,
    SchemaUsage,
    SymbolRecord,
)
from .parser import ParsedFile, SourceParser, line_of, node_text, string_value
from .resolver import ImportResolver

logger = logging.getLogger(__name__)

FUNCTION_VALUE_TYPES = {
    "arrow_function",
    "function",
    "function_expression",
    "generator_function",
}


JSX_ELEMENT_TYPES = {
    "jsx_opening_element",
    "jsx_closing_element",
    "jsx_self_closing_element",
}

# parent type -> fields (None = any position) in which an identifier is a binding
_BINDING_POSITIONS: Dict[str, Optional[Tuple[str, ...]]] = {
    "variable_declarator": ("name",),
    "function_declaration": ("name",),
    "generator_function_declaration": ("name",),
    "function_expression": ("name",),
    "function": ("name",),
    "generator_function": ("name",),
    "function_signature": ("name",),
    "class_declaration": ("name",),
    "class": ("name",),
    "enum_declaration": ("name",),
    "arrow_function": ("parameter",),
    "catch_clause": ("parameter",),
    "required_parameter": ("pattern",),
    "optional_parameter": ("pattern",),
    "assignment_pattern": ("left",),
    "pair_pattern": ("value",),
    "for_in_statement": ("left",),
    "formal_parameters": None,
    "array_pattern": None,
    "rest_pattern": None,
    "import_clause": None,
    "import_specifier": None,
    "namespace_import": None,
    "import_require_clause": None,
}

# Nodes whose `name` field declares a type rather than referencing one.
_TYPE_DECLARATIONS = frozenset({
    "interface_declaration",
    "type_alias_declaration",
    "class_declaration",
    "abstract_class_declaration",
    "type_parameter",
})


def _field_is(parent: Any, field_name: str, node: Any) -> bool:
    child = parent.child_by_field_name(field_name)
    return (
        child is not None
        and child.type == node.type
        and child.start_byte == node.start_byte
        and child.end_byte == node.end_byte
    )


def member_root(node: Any) -> Optional[str]:
    """Return ``a`` for ``a.b.c``; ``None`` when the chain starts elsewhere."""
    current = node
    while current is not None and current.type == "member_expression":
        current = current.child_by_field_name("object")
    if current is not None and current.type == "identifier":
        return node_text(current)
    return None


def model_accessor(model_name: str) -> str:
    """Prisma client property for a model: ``UserProfile`` -> ``userProfile``."""
    return model_name[:1].lower() + model_name[1:]


@dataclass
class FileFacts:
    """Everything a single file contributes to the project graph."""
    path: str
    context: str
    edges: List[ImportEdge] = field(default_factory=list)
    exports: Set[str] = field(default_factory=set)
    symbols: List[SymbolRecord] = field(default_factory=list)
    imports: List[ImportBinding] = field(default_factory=list)
    references: Set[str] = field(default_factory=set)
    components: Set[str] = field(default_factory=set)
    schema_queries: Set[str] = field(default_factory=set)
    schema_strings: Set[str] = field(default_factory=set)
    schema_types: Set[str] = field(default_factory=set)


class _FileWalker:
    """Single pass over one syntax tree, dispatching on node type."""

    def __init__(
        self,
        parsed: ParsedFile,
        facts: FileFacts,
        resolver: ImportResolver,
        orm_clients: Iterable[str],
        model_names: Set[str],
    ) -> None:
        self.parsed = parsed
        self.facts = facts
        self.resolver = resolver
        self.orm_clients = set(orm_clients)
        self.model_names = model_names
        self._accessors = {model_accessor(m): m for m in model_names}
        self._accessors.update({m: m for m in model_names})
        self._edge_keys: Set[Tuple[str, str]] = set()
        self._handlers: Dict[str, Callable[[Any], None]] = {
            "import_statement": self._on_import,
            "call_expression": self._on_call,
            "export_statement": self._on_export,
            "function_declaration": self._on_function_declaration,
            "generator_function_declaration": self._on_function_declaration,
            "variable_declarator": self._on_variable_declarator,
            "identifier": self._on_identifier,
            "shorthand_property_identifier": self._on_shorthand_property,
            "jsx_opening_element": self._on_jsx_element,
            "jsx_closing_element": self._on_jsx_element,
            "jsx_self_closing_element": self._on_jsx_element,
            "member_expression": self._on_member_expression,
            "string": self._on_string,
            "type_identifier": self._on_type_identifier,
        }

    def walk(self) -> None:
        stack = [self.parsed.root]
        while stack:
            node = stack.pop()
            handler = self._handlers.get(node.type)
            if handler is not None:
                handler(node)
            stack.extend(reversed(node.children))

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def _add_edge(self, specifier: str, kind: str) -> Optional[str]:
        target = self.resolver.resolve(specifier, self.facts.path)
        if target is None:
            return None
        if (target, kind) not in self._edge_keys:
            self._edge_keys.add((target, kind))
            self.facts.edges.append(ImportEdge(self.facts.path, target, kind))
        return target

    def _on_import(self, node: Any) -> None:
        source_node = node.child_by_field_name("source")
        kind = "static"
        require_clause = None
        if source_node is None:
            for child in node.named_children:
                if child.type == "import_require_clause":
                    require_clause = child
                    source_node = child.child_by_field_name("source")
                    kind = "require"
                    break
        source = string_value(source_node)
        if source is None:
            return
        self._add_edge(source, kind)

        line = line_of(node)
        if require_clause is not None:
            for child in require_clause.named_children:
                if child.type == "identifier":
                    self._bind_import(node_text(child), "default", source, line)
            return

        for clause in node.named_children:
            if clause.type != "import_clause":
                continue
            for child in clause.named_children:
                if child.type == "identifier":
                    self._bind_import(node_text(child), "default", source, line)
                elif child.type == "namespace_import":
                    for sub in child.named_children:
                        if sub.type == "identifier":
                            self._bind_import(node_text(sub), "*", source, line)
                elif child.type == "named_imports":
                    for spec in child.named_children:
                        if spec.type != "import_specifier":
                            continue
                        name_node = spec.child_by_field_name("name")
                        alias_node = spec.child_by_field_name("alias")
                        if name_node is None:
                            continue
                        imported = string_value(name_node) or node_text(name_node)
                        local = node_text(alias_node) if alias_node is not None else imported
                        self._bind_import(local, imported, source, line)

    def _bind_import(self, local: str, imported: str, source: str, line: int) -> None:
        self.facts.imports.append(ImportBinding(
            file=self.facts.path,
            local_name=local,
            imported_name=imported,
            source=source,
            line=line,
        ))

    def _on_call(self, node: Any) -> None:
        callee = node.child_by_field_name("function")
        if callee is None:
            return

        if callee.type == "import" or (callee.type == "identifier" and node_text(callee) == "require"):
            args = node.child_by_field_name("arguments")
            first = args.named_children[0] if args is not None and args.named_children else None
            source = string_value(first)
            if source is not None:
                self._add_edge(source, "dynamic" if callee.type == "import" else "require")
            return

        if callee.type == "member_expression" and self.model_names:
            model = self._orm_model(callee)
            if model is not None:
                self.facts.schema_queries.add(model)

    def _orm_model(self, callee: Any) -> Optional[str]:
        # prisma.user.findMany -> the member expression whose object is `prisma`
        current = callee
        while current is not None and current.type == "member_expression":
            obj = current.child_by_field_name("object")
            if obj is not None and obj.type == "identifier":
                if node_text(obj) not in self.orm_clients:
                    return None
                prop = current.child_by_field_name("property")
                return self._accessors.get(node_text(prop)) if prop is not None else None
            current = obj
        return None

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def _on_export(self, node: Any) -> None:
        exports = self.facts.exports
        source = string_value(node.child_by_field_name("source"))
        is_default = any(child.type == "default" for child in node.children)
        if is_default or any(child.type == "=" for child in node.children):
            exports.add("default")

        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            for name in self._declared_names(declaration):
                exports.add(name)

        value = node.child_by_field_name("value")
        if value is not None:
            if value.type == "identifier":
                exports.add(node_text(value))
            elif value.type in FUNCTION_VALUE_TYPES or value.type == "class":
                exports.update(self._declared_names(value))

        for child in node.named_children:
            if child.type == "export_clause":
                for spec in child.named_children:
                    if spec.type != "export_specifier":
                        continue
                    alias = spec.child_by_field_name("alias")
                    name = spec.child_by_field_name("name")
                    exported = alias if alias is not None else name
                    if exported is not None:
                        exports.add(string_value(exported) or node_text(exported))
                    # `export { x }` also keeps the local binding alive
                    if source is None and name is not None and name.type == "identifier":
                        exports.add(node_text(name))
            elif child.type == "namespace_export":
                for sub in child.named_children:
                    exports.add(string_value(sub) or node_text(sub))
            elif child.type == "identifier" and not is_default:
                # TypeScript `export = name`
                exports.add(node_text(child))

        if source is not None:
            if not any(c.type in ("export_clause", "namespace_export") for c in node.named_children):
                exports.add("*")
            self._add_edge(source, "re-export")

    @staticmethod
    def _declared_names(declaration: Any) -> List[str]:
        if declaration.type in ("lexical_declaration", "variable_declaration"):
            names = []
            for decl in declaration.named_children:
                if decl.type == "variable_declarator":
                    name = decl.child_by_field_name("name")
                    if name is not None and name.type == "identifier":
                        names.append(node_text(name))
            return names
        name = declaration.child_by_field_name("name")
        if name is not None:
            return [node_text(name)]
        return []

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _on_function_declaration(self, node: Any) -> None:
        name = node.child_by_field_name("name")
        if name is not None:
            self._declare(node_text(name), FUNCTION_DECLARATION, node)

    def _on_variable_declarator(self, node: Any) -> None:
        name = node.child_by_field_name("name")
        if name is None or name.type != "identifier":
            return
        value = node.child_by_field_name("value")
        if value is not None and value.type in FUNCTION_VALUE_TYPES:
            self._declare(node_text(name), FUNCTION_EXPRESSION, node)
        else:
            self._declare(node_text(name), VARIABLE, node)

    def _declare(self, name: str, kind: str, node: Any) -> None:
        self.facts.symbols.append(SymbolRecord(
            file=self.facts.path, name=name, kind=kind, line=line_of(node),
        ))

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def _on_identifier(self, node: Any) -> None:
        parent = node.parent
        if parent is not None:
            if parent.type in JSX_ELEMENT_TYPES:
                return
            if parent.type == "export_specifier":
                if self._is_local_export_name(parent, node):
                    self.facts.references.add(node_text(node))
                return
            fields = _BINDING_POSITIONS.get(parent.type, ())
            if fields is None:
                return
            if any(_field_is(parent, f, node) for f in fields):
                return
        self.facts.references.add(node_text(node))

    @staticmethod
    def _is_local_export_name(spec: Any, node: Any) -> bool:
        if not _field_is(spec, "name", node):
            return False
        statement = spec.parent.parent if spec.parent is not None else None
        return statement is None or statement.child_by_field_name("source") is None

    def _on_shorthand_property(self, node: Any) -> None:
        self.facts.references.add(node_text(node))

    def _on_jsx_element(self, node: Any) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None or name_node.type != "identifier":
            return
        name = node_text(name_node)
        if name[:1].isupper():
            self.facts.components.add(name)
            self.facts.references.add(name)

    def _on_member_expression(self, node: Any) -> None:
        root = member_root(node)
        if root is not None:
            self.facts.references.add(root)

    def _on_string(self, node: Any) -> None:
        if self._is_module_source(node):
            return
        value = string_value(node)
        if not value:
            return
        if "/" in value or "\\" in value or "." in value:
            self._add_edge(value, "string-literal-guess")
        if value in self.model_names:
            self.facts.schema_strings.add(value)

    @staticmethod
    def _is_module_source(node: Any) -> bool:
        parent = node.parent
        if parent is None:
            return False
        if parent.type in ("import_statement", "export_statement", "import_require_clause"):
            return _field_is(parent, "source", node)
        if parent.type == "arguments" and parent.parent is not None:
            callee = parent.parent.child_by_field_name("function")
            if callee is not None and (
                callee.type == "import"
                or (callee.type == "identifier" and node_text(callee) == "require")
            ):
                return True
        return False

    def _on_type_identifier(self, node: Any) -> None:
        name = node_text(node)
        parent = node.parent
        if not (parent is not None and parent.type in _TYPE_DECLARATIONS and _field_is(parent, "name", node)):
            self.facts.references.add(name)
        if name in self.model_names:
            self.facts.schema_types.add(name)


@dataclass
class ProjectGraph:
    """Merged per-file facts plus derived indices."""
    files: List[str]
    facts: Dict[str, FileFacts] = field(default_factory=dict)
    edges: List[ImportEdge] = field(default_factory=list)
    adjacency: Dict[str, List[str]] = field(default_factory=dict)
    exports: List[ExportRecord] = field(default_factory=list)
    symbols: List[SymbolRecord] = field(default_factory=list)
    imports: List[ImportBinding] = field(default_factory=list)
    components: Dict[str, ComponentUsage] = field(default_factory=dict)
    schema_usage: Dict[str, SchemaUsage] = field(default_factory=dict)

    def add(self, facts: FileFacts) -> None:
        """Merge one file's contributions; entries are only ever added."""
        self.facts[facts.path] = facts
        for edge in facts.edges:
            self.edges.append(edge)
            targets = self.adjacency.setdefault(edge.source, [])
            if edge.target not in targets:
                targets.append(edge.target)
        for name in sorted(facts.exports):
            self.exports.append(ExportRecord(facts.path, name))
        for symbol in facts.symbols:
            symbol.is_exported = symbol.name in facts.exports
            self.symbols.append(symbol)
        self.imports.extend(facts.imports)
        for name in facts.components:
            self.components.setdefault(name, ComponentUsage(name)).files.add(facts.path)
        for model in facts.schema_queries:
            self.schema_usage.setdefault(model, SchemaUsage()).queries.add(facts.path)
        for model in facts.schema_strings:
            self.schema_usage.setdefault(model, SchemaUsage()).string_references.add(facts.path)
        for model in facts.schema_types:
            self.schema_usage.setdefault(model, SchemaUsage()).type_references.add(facts.path)

    def targets(self, path: str) -> List[str]:
        return self.adjacency.get(path, [])

    def edge_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for edge in self.edges:
            counts[edge.kind] = counts.get(edge.kind, 0) + 1
        return counts

    # ------------------------------------------------------------------
    # Reference matching
    # ------------------------------------------------------------------

    def resolve_references(self, scope_aware: bool = False) -> None:
        """Fill the reference sets of every symbol and import binding.

        By default matching is by bare name across the whole project:
        a function counts references from files other than its own, while
        variables and import bindings count references from any file.
        With *scope_aware*, a declaration only counts references from its own
        file and from files that import its file.
        """
        referencing: Dict[str, Set[str]] = {}
        for path, facts in self.facts.items():
            for name in facts.references:
                referencing.setdefault(name, set()).add(path)

        if scope_aware:
            importers: Dict[str, Set[str]] = {}
            for edge in self.edges:
                importers.setdefault(edge.target, set()).add(edge.source)
            for symbol in self.symbols:
                allowed = {symbol.file} | importers.get(symbol.file, set())
                symbol.references = referencing.get(symbol.name, set()) & allowed
            for binding in self.imports:
                binding.references = referencing.get(binding.local_name, set()) & {binding.file}
            return

        for symbol in self.symbols:
            files = referencing.get(symbol.name, set())
            if symbol.is_function:
                symbol.references = files - {symbol.file}
            else:
                symbol.references = set(files)
        for binding in self.imports:
            binding.references = set(referencing.get(binding.local_name, set()))


class GraphBuilder:
    """Parses every file and merges the per-file facts into a :class:`ProjectGraph`."""

    def __init__(
        self,
        parser: SourceParser,
        resolver: ImportResolver,
        context_of: Callable[[str], str],
        orm_clients: Iterable[str] = (),
        model_names: Iterable[str] = (),
    ) -> None:
        self.parser = parser
        self.resolver = resolver
        self.context_of = context_of
        self.orm_clients = tuple(orm_clients)
        self.model_names = set(model_names)

    def build_file(self, path: str, text: str) -> FileFacts:
        facts = FileFacts(path=path, context=self.context_of(path))
        parsed = self.parser.parse(path, text)
        if parsed is None:
            return facts
        _FileWalker(parsed, facts, self.resolver, self.orm_clients, self.model_names).walk()
        return facts

    def build(self, files: Iterable[str], contents: Callable[[str], Optional[str]]) -> ProjectGraph:
        """Walk every readable file in *files* once and merge the results."""
        files = list(files)
        graph = ProjectGraph(files=files)
        for path in files:
            text = contents(path)
            if text is None:
                continue
            graph.add(self.build_file(path, text))
        logger.info(
            "Graph built: %d edges, %d symbols, %d import bindings",
            len(graph.edges), len(graph.symbols), len(graph.imports),
        )
        return graph
