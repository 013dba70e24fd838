"""
Graph builder - builds knowledge graph from extracted definitions and references.

This is the core component that:
1. Takes per-file extraction results from all parsers
2. Creates File and Symbol nodes with DEFINES edges
3. Resolves imports to files (IMPORTS)
4. Resolves calls and base types by name (CALLS, EXTENDS, IMPLEMENTS)

Resolution is name based, not type based. A reference resolves to a symbol
with the same name declared in the same file, or else in a file the
referencing file imports; anything else is dropped and counted as unresolved.
When several candidates qualify under the same rule the lexically closest
declaring file wins, then the first one encountered.
"""

import posixpath
from collections import defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from ..parsers.base import (
    CALLABLE_ENTITIES,
    TYPE_ENTITIES,
    Definition,
    EntityType,
    ParseResult,
    Reference,
    ReferenceType,
)
from .models import (
    SYMBOL_TYPES,
    FileNode,
    GraphNode,
    GraphRelationship,
    NodeType,
    RelationshipType,
    SymbolNode,
    create_node_id,
)
from src.logger import get_logger


logger = get_logger(__name__)

NODE_TYPE_BY_ENTITY = {
    EntityType.FUNCTION: NodeType.FUNCTION,
    EntityType.METHOD: NodeType.METHOD,
    EntityType.CLASS: NodeType.CLASS,
    EntityType.INTERFACE: NodeType.INTERFACE,
}
ENTITY_BY_NODE_TYPE = {v: k for k, v in NODE_TYPE_BY_ENTITY.items()}

JS_EXTENSIONS = ('.ts', '.tsx', '.js', '.jsx', '.mjs', '.cjs', '.mts', '.cts')
JS_RUNTIME_TO_SOURCE = {
    '.js': ('.ts', '.tsx'),
    '.jsx': ('.tsx',),
    '.mjs': ('.mts',),
    '.cjs': ('.cts',),
}

# Confidence of name-resolved edges
SAME_FILE_CONFIDENCE = 1.0
IMPORTED_FILE_CONFIDENCE = 0.8


def _submodule(module: str, member: str) -> str:
    """Dotted path of `member` inside `module` ("." + "x" -> ".x", "a" + "x" -> "a.x")."""
    if module.endswith('.'):
        return module + member
    return f"{module}.{member}"


@dataclass
class ExtractedFile:
    """One source file together with its extraction result."""
    file_path: str  # Repository-relative posix path
    language: str
    content: str
    result: ParseResult
    size_bytes: int = 0

    @property
    def line_count(self) -> int:
        if not self.content:
            return 0
        return self.content.count('\n') + (0 if self.content.endswith('\n') else 1)


@dataclass
class KnowledgeGraph:
    """
    Typed graph of files, symbols and their relationships.

    Nodes keep insertion order. Relationships are deduplicated on
    (type, source, target), except STEP_IN_PROCESS which is keyed by step.
    """
    nodes: Dict[str, GraphNode] = field(default_factory=dict)
    relationships: List[GraphRelationship] = field(default_factory=list)
    symbol_index: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    unresolved: Dict[str, int] = field(default_factory=dict)
    _keys: Set[tuple] = field(default_factory=set, repr=False)

    def add_node(self, node: GraphNode) -> None:
        self.nodes.setdefault(node.id, node)

    def add_relationship(self, rel: GraphRelationship) -> bool:
        """Append a relationship unless an identical one exists."""
        key = rel.key
        if rel.type == RelationshipType.STEP_IN_PROCESS:
            key = key + (rel.properties.get('step'),)
        if key in self._keys:
            return False
        self._keys.add(key)
        self.relationships.append(rel)
        return True

    def extend(self, nodes: Iterable[GraphNode], relationships: Iterable[GraphRelationship]) -> None:
        """Merge a derived overlay (communities, processes) into the graph."""
        for node in nodes:
            self.add_node(node)
        for rel in relationships:
            self.add_relationship(rel)

    def symbols(self) -> Iterator[SymbolNode]:
        """Symbol nodes in creation order."""
        for node in self.nodes.values():
            if node.type in SYMBOL_TYPES:
                yield node

    def files(self) -> Iterator[FileNode]:
        for node in self.nodes.values():
            if node.type == NodeType.FILE:
                yield node

    def relationships_of(self, *types: RelationshipType) -> List[GraphRelationship]:
        return [r for r in self.relationships if r.type in types]

    def nodes_of(self, node_type: NodeType) -> List[GraphNode]:
        return [n for n in self.nodes.values() if n.type == node_type]

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.relationships)

    @property
    def unresolved_total(self) -> int:
        return sum(self.unresolved.values())


@dataclass
class _FileScope:
    """Per-file lookup state used while resolving references."""
    extracted: ExtractedFile
    file_id: str
    symbols: List[Tuple[Definition, str]] = field(default_factory=list)
    imported_paths: List[str] = field(default_factory=list)


class GraphBuilder:
    """
    Builds knowledge graph from extraction results.

    Two-pass algorithm:
    1. First pass: Create File and Symbol nodes (fills the symbol index)
    2. Second pass: Resolve imports, then calls and heritage
    """

    def __init__(self, max_symbol_content: int = 4000):
        """
        Initialize graph builder.

        Args:
            max_symbol_content: Maximum characters of source kept per symbol
        """
        self.max_symbol_content = max_symbol_content

        # Temporary storage during graph building
        self.graph = KnowledgeGraph()
        self.scopes: Dict[str, _FileScope] = {}  # file_path -> scope
        self.order: Dict[str, int] = {}  # node_id -> creation index

        # Indexes for faster lookup
        self.symbols_by_name: Dict[str, List[str]] = defaultdict(list)
        self.files_by_basename: Dict[str, List[str]] = defaultdict(list)
        self.unresolved: Dict[str, int] = {kind.value: 0 for kind in ReferenceType}

    def build(self, files: List[ExtractedFile]) -> KnowledgeGraph:
        """
        Build knowledge graph from extracted files.

        Args:
            files: Extraction results, in file enumeration order

        Returns:
            KnowledgeGraph with File/Symbol nodes and resolved edges
        """
        logger.info(f"Building knowledge graph from {len(files)} files")

        # Clear temporary storage
        self.graph = KnowledgeGraph()
        self.scopes.clear()
        self.order.clear()
        self.symbols_by_name.clear()
        self.files_by_basename.clear()
        self.unresolved = {kind.value: 0 for kind in ReferenceType}

        # Pass 1: nodes
        for extracted in files:
            self._process_file(extracted)

        # Pass 2: relationships
        for scope in self.scopes.values():
            self._resolve_imports(scope)
        for scope in self.scopes.values():
            self._resolve_references(scope)

        self.graph.symbol_index = MappingProxyType(
            {name: tuple(ids) for name, ids in self.symbols_by_name.items()}
        )
        self.graph.unresolved = dict(self.unresolved)

        logger.info(
            f"Graph building complete: {self.graph.node_count} nodes, "
            f"{self.graph.edge_count} relationships, "
            f"{sum(self.unresolved.values())} unresolved references"
        )
        return self.graph

    # ------------------------------------------------------------------
    # Pass 1
    # ------------------------------------------------------------------

    def _process_file(self, extracted: ExtractedFile) -> None:
        """Create the File node and one Symbol node per definition."""
        path = extracted.file_path
        if path in self.scopes:
            logger.warning(f"Duplicate file skipped: {path}")
            return

        file_node = FileNode(
            id=create_node_id(NodeType.FILE, path),
            name=posixpath.basename(path),
            file_path=path,
            language=extracted.language,
            content=extracted.content,
            size_bytes=extracted.size_bytes or len(extracted.content.encode('utf-8')),
            line_count=extracted.line_count,
        )
        self._add_node(file_node)
        scope = _FileScope(extracted=extracted, file_id=file_node.id)
        self.scopes[path] = scope
        self.files_by_basename[posixpath.basename(path)].append(path)

        source = extracted.content.encode('utf-8')
        definitions = extracted.result.definitions
        for definition in definitions:
            node_type = NODE_TYPE_BY_ENTITY[definition.kind]
            symbol_id = create_node_id(node_type, path, definition.name, definition.start_byte)
            enclosing = None
            if definition.enclosing:
                enclosing = self._innermost(scope, definition.start_byte, definition.end_byte,
                                            TYPE_ENTITIES, exclude=definition)
            content = source[definition.start_byte:definition.end_byte].decode('utf-8', errors='replace')

            symbol = SymbolNode(
                id=symbol_id,
                name=definition.name,
                kind=node_type,
                file_path=path,
                content=content[:self.max_symbol_content],
                start_byte=definition.start_byte,
                end_byte=definition.end_byte,
                start_line=definition.start_line,
                end_line=definition.end_line,
                enclosing_id=enclosing,
            )
            if symbol_id in self.graph.nodes:
                continue
            self._add_node(symbol)
            scope.symbols.append((definition, symbol_id))
            self.symbols_by_name[definition.name].append(symbol_id)

            self.graph.add_relationship(GraphRelationship(
                type=RelationshipType.DEFINES,
                source_id=file_node.id,
                target_id=symbol_id,
            ))

    def _add_node(self, node: GraphNode) -> None:
        self.order[node.id] = len(self.order)
        self.graph.add_node(node)

    # ------------------------------------------------------------------
    # Pass 2: imports
    # ------------------------------------------------------------------

    def _resolve_imports(self, scope: _FileScope) -> None:
        """Create File IMPORTS File edges for imports that land in the repo."""
        extracted = scope.extracted
        for ref in extracted.result.references_of(ReferenceType.IMPORT):
            if extracted.language == 'python':
                targets = [self._resolve_python_import(extracted.file_path, ref.name)]
                # `from pkg import helpers` may name a submodule
                targets.extend(
                    self._resolve_python_import(extracted.file_path, _submodule(ref.name, member))
                    for member in ref.members
                )
            else:
                targets = [self._resolve_js_import(extracted.file_path, ref.name)]

            targets = [t for t in targets if t is not None]
            if not targets:
                self._unresolved(ref, extracted.file_path)
                continue

            for target in targets:
                if target == extracted.file_path:
                    continue
                if target not in scope.imported_paths:
                    scope.imported_paths.append(target)
                self.graph.add_relationship(GraphRelationship(
                    type=RelationshipType.IMPORTS,
                    source_id=scope.file_id,
                    target_id=self.scopes[target].file_id,
                ))

    def _resolve_python_import(self, importer: str, module: str) -> Optional[str]:
        """
        Resolve a Python module path to a file.

        Handles:
        - Relative imports: ".models" / "..core.utils" from the importer's package
        - Absolute imports: "app.models" -> app/models.py or app/models/__init__.py,
          also under a source root such as src/
        """
        if module.startswith('.'):
            dots = len(module) - len(module.lstrip('.'))
            base = posixpath.dirname(importer)
            for _ in range(dots - 1):
                base = posixpath.dirname(base)
            rest = module[dots:].replace('.', '/')
            if not rest:
                return self._first_existing([posixpath.join(base, '__init__.py')])
            stem = posixpath.join(base, rest)
            return self._first_existing([f"{stem}.py", f"{stem}.pyi", posixpath.join(stem, '__init__.py')])

        stem = module.replace('.', '/')
        candidates = [f"{stem}.py", f"{stem}.pyi", f"{stem}/__init__.py"]
        exact = self._first_existing(candidates)
        if exact is not None:
            return exact

        # Source-root layouts: match by path suffix
        matches = []
        for candidate in candidates:
            for path in self.files_by_basename.get(posixpath.basename(candidate), []):
                if path.endswith('/' + candidate):
                    matches.append(path)
        return self._closest(importer, matches)

    def _resolve_js_import(self, importer: str, specifier: str) -> Optional[str]:
        """
        Resolve a relative JS/TS module specifier to a file.

        Bare specifiers (packages) are external and never resolve.
        """
        if not specifier.startswith('.'):
            return None
        target = posixpath.normpath(posixpath.join(posixpath.dirname(importer), specifier))
        if target.startswith('..'):
            return None

        candidates = [target]
        stem, ext = posixpath.splitext(target)
        for source_ext in JS_RUNTIME_TO_SOURCE.get(ext, ()):
            candidates.append(stem + source_ext)
        candidates.extend(target + e for e in JS_EXTENSIONS)
        candidates.extend(posixpath.join(target, 'index' + e) for e in JS_EXTENSIONS)
        return self._first_existing(candidates)

    def _first_existing(self, candidates: List[str]) -> Optional[str]:
        for candidate in candidates:
            candidate = posixpath.normpath(candidate)
            if candidate in self.scopes:
                return candidate
        return None

    # ------------------------------------------------------------------
    # Pass 2: calls and heritage
    # ------------------------------------------------------------------

    def _resolve_references(self, scope: _FileScope) -> None:
        """Create CALLS / EXTENDS / IMPLEMENTS edges for one file."""
        for ref in scope.extracted.result.references:
            if ref.kind == ReferenceType.IMPORT:
                continue

            if ref.kind == ReferenceType.CALL:
                allowed = CALLABLE_ENTITIES
                rel_type = RelationshipType.CALLS
                source_id = self._innermost(scope, ref.start_byte, ref.end_byte, CALLABLE_ENTITIES)
                source_id = source_id or scope.file_id
            else:
                allowed = TYPE_ENTITIES
                rel_type = (RelationshipType.EXTENDS if ref.kind == ReferenceType.EXTENDS
                            else RelationshipType.IMPLEMENTS)
                source_id = self._innermost(scope, ref.start_byte, ref.end_byte, TYPE_ENTITIES)
                if source_id is None:
                    self._unresolved(ref, scope.extracted.file_path)
                    continue

            resolved = self._resolve_symbol(scope, ref.name, allowed)
            if resolved is None:
                self._unresolved(ref, scope.extracted.file_path)
                continue

            target_id, confidence = resolved
            if rel_type != RelationshipType.CALLS and target_id == source_id:
                continue
            self.graph.add_relationship(GraphRelationship(
                type=rel_type,
                source_id=source_id,
                target_id=target_id,
                confidence=confidence,
            ))

    def _resolve_symbol(
        self,
        scope: _FileScope,
        name: str,
        allowed: frozenset,
    ) -> Optional[Tuple[str, float]]:
        """
        Find the symbol a name refers to from inside one file.

        Returns:
            (symbol_id, confidence) or None if unresolved
        """
        candidates = [
            symbol_id for symbol_id in self.symbols_by_name.get(name, [])
            if self._entity_of(symbol_id) in allowed
        ]
        if not candidates:
            return None

        path = scope.extracted.file_path
        same_file = [c for c in candidates if self.graph.nodes[c].file_path == path]
        if same_file:
            return same_file[0], SAME_FILE_CONFIDENCE

        imported = set(scope.imported_paths)
        via_import = [c for c in candidates if self.graph.nodes[c].file_path in imported]
        if via_import:
            best = self._closest(path, [self.graph.nodes[c].file_path for c in via_import])
            for candidate in via_import:
                if self.graph.nodes[candidate].file_path == best:
                    return candidate, IMPORTED_FILE_CONFIDENCE
        return None

    def _entity_of(self, symbol_id: str) -> EntityType:
        return ENTITY_BY_NODE_TYPE[self.graph.nodes[symbol_id].type]

    def _innermost(
        self,
        scope: _FileScope,
        start_byte: int,
        end_byte: int,
        kinds: frozenset,
        exclude: Optional[Definition] = None,
    ) -> Optional[str]:
        """Id of the smallest definition of the given kinds enclosing a byte range."""
        best: Optional[Tuple[Definition, str]] = None
        for definition, symbol_id in scope.symbols:
            if definition.start_byte > start_byte:
                break
            if definition is exclude or definition.kind not in kinds:
                continue
            if not definition.contains(start_byte, end_byte):
                continue
            if best is None or definition.span <= best[0].span:
                best = (definition, symbol_id)
        return best[1] if best else None

    def _closest(self, from_path: str, paths: List[str]) -> Optional[str]:
        """
        Pick the lexically closest path.

        Fewest segments in the relative path from the referencing file's
        directory, then shortest path, then first-encountered.
        """
        if not paths:
            return None
        base = posixpath.dirname(from_path) or '.'

        def distance(indexed):
            index, path = indexed
            rel = posixpath.relpath(path, base)
            return (len(rel.split('/')), len(path), self.order[self.scopes[path].file_id], index)

        return min(enumerate(paths), key=distance)[1]

    def _unresolved(self, ref: Reference, file_path: str) -> None:
        self.unresolved[ref.kind.value] += 1
        logger.debug(f"Unresolved {ref.kind.value} '{ref.name}' in {file_path}:{ref.line}")
