"""
Tree-sitter based source extractor.

Parses source text with a tree-sitter grammar and runs the declarative
queries from `queries.py` to produce definitions and references.

Each worker thread gets its own tree-sitter Parser and compiled Query;
grammars are loaded once per process.
"""

import threading
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import tree_sitter_javascript
import tree_sitter_python
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Query, QueryCursor

from .base import (
    BaseParser,
    Definition,
    EntityType,
    ParseResult,
    ParsingError,
    Reference,
    ReferenceType,
    register_parser,
)
from .queries import LANGUAGE_QUERIES
from src.logger import get_logger


logger = get_logger(__name__)

_KIND_ORDER = {kind: i for i, kind in enumerate(EntityType)}
_REF_ORDER = {kind: i for i, kind in enumerate(ReferenceType)}

_grammars: Dict[str, Language] = {}
_grammar_lock = threading.Lock()


def _node_text(node: Node) -> str:
    return node.text.decode('utf-8', errors='replace')


class TreeSitterParser(BaseParser):
    """
    Generic query-driven extractor.

    Subclasses set the language name, how to load the grammar and which
    node types open a class or function scope.
    """

    language = "unknown"
    CLASS_SCOPES: frozenset = frozenset()
    FUNCTION_SCOPES: frozenset = frozenset()

    def __init__(self):
        self._local = threading.local()

    @staticmethod
    def load_grammar():
        raise NotImplementedError

    @classmethod
    def grammar(cls) -> Language:
        """Load the grammar for this language once per process."""
        with _grammar_lock:
            lang = _grammars.get(cls.language)
            if lang is None:
                lang = Language(cls.load_grammar())
                _grammars[cls.language] = lang
            return lang

    def _thread_state(self) -> Tuple[Parser, Query]:
        state = getattr(self._local, 'state', None)
        if state is None:
            lang = self.grammar()
            state = (Parser(lang), Query(lang, LANGUAGE_QUERIES[self.language]))
            self._local.state = state
        return state

    def parse_code(self, code: str, file_path: Optional[Path] = None) -> ParseResult:
        """
        Extract definitions and references from source text.

        Args:
            code: Source text
            file_path: Path used for reporting

        Returns:
            ParseResult ordered by start byte

        Raises:
            ParsingError: If the grammar fails to produce a tree
        """
        label = str(file_path) if file_path is not None else '<string>'
        source = code.encode('utf-8')
        try:
            parser, query = self._thread_state()
            tree = parser.parse(source)
        except Exception as e:
            raise ParsingError(f"Failed to parse {label}: {e}") from e
        if tree is None:
            raise ParsingError(f"Failed to parse {label}: no syntax tree")

        result = ParseResult(file_path=label, language=self.language)
        if tree.root_node.has_error:
            result.errors.append(f"Syntax errors in {label}; extraction is partial")

        definitions: Dict[tuple, Definition] = {}
        references: Dict[tuple, Reference] = {}
        members: Dict[int, Dict[int, str]] = {}  # import source start -> member start -> name

        for _, captures in QueryCursor(query).matches(tree.root_node):
            for source_node in captures.get('import.source', [])[:1]:
                for node in captures.get('import.member', []):
                    members.setdefault(source_node.start_byte, {})[node.start_byte] = _node_text(node)

            def_key = next((k for k in captures if k.startswith('definition.')), None)
            if def_key is not None:
                definition = self._make_definition(def_key, captures)
                if definition is not None:
                    key = (definition.kind, definition.name,
                           definition.start_byte, definition.end_byte)
                    definitions.setdefault(key, definition)
                continue

            for capture, kind in (('import.source', ReferenceType.IMPORT),
                                  ('call.name', ReferenceType.CALL),
                                  ('heritage.extends', ReferenceType.EXTENDS),
                                  ('heritage.implements', ReferenceType.IMPLEMENTS)):
                for node in captures.get(capture, []):
                    name = _node_text(node)
                    if kind == ReferenceType.IMPORT:
                        name = self.normalize_import(name)
                    if not name:
                        continue
                    ref = Reference(
                        kind=kind,
                        name=name,
                        start_byte=node.start_byte,
                        end_byte=node.end_byte,
                        line=node.start_point[0] + 1,
                    )
                    references.setdefault((kind, name, ref.start_byte), ref)

        for key, ref in references.items():
            found = members.get(ref.start_byte) if ref.kind == ReferenceType.IMPORT else None
            if found:
                references[key] = replace(ref, members=tuple(found[k] for k in sorted(found)))

        result.definitions = sorted(
            definitions.values(), key=lambda d: (d.start_byte, _KIND_ORDER[d.kind])
        )
        result.references = sorted(
            references.values(), key=lambda r: (r.start_byte, _REF_ORDER[r.kind])
        )
        logger.debug(
            f"{label}: {len(result.definitions)} definitions, "
            f"{len(result.references)} references"
        )
        return result

    def _make_definition(self, def_key: str, captures: Dict[str, List[Node]]) -> Optional[Definition]:
        names = captures.get('name')
        if not names:
            return None
        node = captures[def_key][0]
        kind = EntityType(def_key.split('.', 1)[1])
        enclosing = self.enclosing_class(node)
        if kind == EntityType.FUNCTION and enclosing is not None:
            kind = EntityType.METHOD
        return Definition(
            kind=kind,
            name=_node_text(names[0]),
            start_byte=node.start_byte,
            end_byte=node.end_byte,
            start_line=node.start_point[0] + 1,
            end_line=node.end_point[0] + 1,
            enclosing=enclosing,
        )

    def enclosing_class(self, node: Node) -> Optional[str]:
        """Name of the class whose body directly declares `node`, if any."""
        parent = node.parent
        while parent is not None:
            if parent.type in self.FUNCTION_SCOPES:
                return None
            if parent.type in self.CLASS_SCOPES:
                name = parent.child_by_field_name('name')
                return _node_text(name) if name is not None else None
            parent = parent.parent
        return None

    def normalize_import(self, text: str) -> str:
        return text.strip()


@register_parser('python')
class PythonParser(TreeSitterParser):
    """Python extractor. Functions declared in a class body are methods."""

    language = 'python'
    CLASS_SCOPES = frozenset({'class_definition'})
    FUNCTION_SCOPES = frozenset({'function_definition', 'lambda'})

    @staticmethod
    def load_grammar():
        return tree_sitter_python.language()


@register_parser('javascript')
class JavaScriptParser(TreeSitterParser):
    """JavaScript / JSX extractor."""

    language = 'javascript'
    CLASS_SCOPES = frozenset({'class_declaration', 'class'})
    FUNCTION_SCOPES = frozenset({
        'function_declaration',
        'generator_function_declaration',
        'function_expression',
        'arrow_function',
        'method_definition',
    })

    @staticmethod
    def load_grammar():
        return tree_sitter_javascript.language()

    def normalize_import(self, text: str) -> str:
        # String literal including its quotes
        return text.strip().strip('\'"`')


@register_parser('typescript')
class TypeScriptParser(JavaScriptParser):
    """TypeScript extractor, adds interfaces and implements clauses."""

    language = 'typescript'
    CLASS_SCOPES = frozenset({
        'class_declaration',
        'abstract_class_declaration',
        'class',
        'interface_declaration',
    })

    @staticmethod
    def load_grammar():
        return tree_sitter_typescript.language_typescript()


@register_parser('tsx')
class TsxParser(TypeScriptParser):
    """TSX extractor, TypeScript grammar with JSX."""

    language = 'tsx'

    @staticmethod
    def load_grammar():
        return tree_sitter_typescript.language_tsx()
