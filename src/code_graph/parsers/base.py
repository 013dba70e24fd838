"""
Base parser classes and types.

Defines EntityType, ReferenceType, Definition, Reference and ParseResult
used by all parsers.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple
from pathlib import Path, PurePosixPath


class EntityType(str, Enum):
    """Kinds of symbol declarations that parsers can extract."""
    FUNCTION = "function"
    METHOD = "method"
    CLASS = "class"
    INTERFACE = "interface"


class ReferenceType(str, Enum):
    """Kinds of references that parsers can extract."""
    IMPORT = "import"
    CALL = "call"
    EXTENDS = "extends"
    IMPLEMENTS = "implements"


# Type-like entities may be targets of EXTENDS / IMPLEMENTS
TYPE_ENTITIES = frozenset({EntityType.CLASS, EntityType.INTERFACE})

# Callable entities may be targets of CALLS (calling a class constructs it)
CALLABLE_ENTITIES = frozenset({EntityType.FUNCTION, EntityType.METHOD, EntityType.CLASS})

LANGUAGE_BY_EXTENSION = {
    '.py': 'python',
    '.pyi': 'python',
    '.js': 'javascript',
    '.jsx': 'javascript',
    '.mjs': 'javascript',
    '.cjs': 'javascript',
    '.ts': 'typescript',
    '.mts': 'typescript',
    '.cts': 'typescript',
    '.tsx': 'tsx',
}


def detect_language(file_path) -> Optional[str]:
    """Return the parser language for a path, or None if unsupported."""
    return LANGUAGE_BY_EXTENSION.get(PurePosixPath(str(file_path)).suffix.lower())


@dataclass(frozen=True)
class Definition:
    """
    A symbol declaration found in one file.

    `enclosing` is the name of the class a method belongs to.
    """
    kind: EntityType
    name: str
    start_byte: int
    end_byte: int
    start_line: int = 0
    end_line: int = 0
    enclosing: Optional[str] = None

    def contains(self, start_byte: int, end_byte: int) -> bool:
        """Check whether a byte range lies inside this definition."""
        return self.start_byte <= start_byte and end_byte <= self.end_byte

    @property
    def span(self) -> int:
        return self.end_byte - self.start_byte


@dataclass(frozen=True)
class Reference:
    """
    A textual reference: import source, called name or base type name.

    Only the name is captured, no argument or type information.
    `members` lists the names of a `from module import a, b` statement;
    each may itself be a submodule.
    """
    kind: ReferenceType
    name: str
    start_byte: int
    end_byte: int
    line: int = 0
    members: Tuple[str, ...] = ()


@dataclass
class ParseResult:
    """Result of extracting one file."""
    file_path: str
    language: str
    definitions: List[Definition] = field(default_factory=list)
    references: List[Reference] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def references_of(self, kind: ReferenceType) -> List[Reference]:
        """References of a single kind, in source order."""
        return [r for r in self.references if r.kind == kind]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'file_path': self.file_path,
            'language': self.language,
            'definitions': [
                {
                    'kind': d.kind.value,
                    'name': d.name,
                    'start_byte': d.start_byte,
                    'end_byte': d.end_byte,
                    'start_line': d.start_line,
                    'end_line': d.end_line,
                    'enclosing': d.enclosing,
                }
                for d in self.definitions
            ],
            'references': [
                {
                    'kind': r.kind.value,
                    'name': r.name,
                    'start_byte': r.start_byte,
                    'end_byte': r.end_byte,
                    'line': r.line,
                    'members': list(r.members),
                }
                for r in self.references
            ],
            'errors': self.errors,
        }


class ParsingError(Exception):
    """Raised when a file cannot be parsed at all."""
    pass


# Registry for parsers
_parser_registry: Dict[str, type] = {}


def register_parser(language: str):
    """Decorator to register a parser for a language."""
    def decorator(cls):
        _parser_registry[language] = cls
        return cls
    return decorator


def get_parser_for_language(language: str) -> Optional[type]:
    """Get parser class for a language."""
    return _parser_registry.get(language)


def supported_languages() -> List[str]:
    """Languages with a registered parser."""
    return sorted(_parser_registry)


class BaseParser:
    """Base class for all parsers."""

    language: str = "unknown"

    def parse_code(self, code: str, file_path: Optional[Path] = None) -> ParseResult:
        """Parse code string and extract definitions and references."""
        raise NotImplementedError
