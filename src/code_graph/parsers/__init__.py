"""
Source extractors for the supported languages.

Parsers extract structured information from code files:
- Functions, classes, methods, interfaces (definitions)
- Imports, calls and base types (references)

Available parsers:
- PythonParser: .py, .pyi
- JavaScriptParser: .js, .jsx, .mjs, .cjs
- TypeScriptParser: .ts, .mts, .cts
- TsxParser: .tsx
"""

import threading
from pathlib import Path
from typing import Dict, Optional

from .base import (
    BaseParser,
    Definition,
    EntityType,
    LANGUAGE_BY_EXTENSION,
    ParseResult,
    ParsingError,
    Reference,
    ReferenceType,
    detect_language,
    get_parser_for_language,
    register_parser,
    supported_languages,
)
from .tree_sitter_parser import (
    JavaScriptParser,
    PythonParser,
    TreeSitterParser,
    TsxParser,
    TypeScriptParser,
)

_instances: Dict[str, BaseParser] = {}
_instances_lock = threading.Lock()


def get_parser(file_path: Path, language: Optional[str] = None) -> Optional[BaseParser]:
    """
    Get the parser for a file based on its extension.

    Parser instances are shared; they keep per-thread tree-sitter state.

    Args:
        file_path: Path to the file
        language: Optional explicit language, overrides the extension

    Returns:
        Parser instance, or None for unsupported files
    """
    language = language or detect_language(file_path)
    if language is None:
        return None
    parser_cls = get_parser_for_language(language)
    if parser_cls is None:
        return None
    with _instances_lock:
        parser = _instances.get(language)
        if parser is None:
            parser = parser_cls()
            _instances[language] = parser
        return parser


def extract(source: str, language: str, file_path: Optional[str] = None) -> ParseResult:
    """
    Extract definitions and references from source text.

    Raises:
        ParsingError: If the language is unsupported or parsing fails
    """
    parser = get_parser(Path(file_path or ''), language=language)
    if parser is None:
        raise ParsingError(f"Unsupported language: {language}")
    return parser.parse_code(source, file_path)


__all__ = [
    'BaseParser',
    'Definition',
    'EntityType',
    'LANGUAGE_BY_EXTENSION',
    'ParseResult',
    'ParsingError',
    'Reference',
    'ReferenceType',
    'TreeSitterParser',
    'PythonParser',
    'JavaScriptParser',
    'TypeScriptParser',
    'TsxParser',
    'detect_language',
    'extract',
    'get_parser',
    'register_parser',
    'supported_languages',
]
