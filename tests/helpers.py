"""
Helpers shared by the test modules.
"""

from pathlib import Path

from src.code_graph.graph import ExtractedFile, KnowledgeGraph, RelationshipType, SymbolNode
from src.code_graph.parsers import get_parser


def extract_file(path: str, content: str) -> ExtractedFile:
    """Run the real extractor over an in-memory file."""
    parser = get_parser(Path(path))
    return ExtractedFile(
        file_path=path,
        language=parser.language,
        content=content,
        result=parser.parse_code(content, path),
    )


def find_symbol(graph: KnowledgeGraph, file_path: str, name: str) -> SymbolNode:
    matches = [s for s in graph.symbols() if s.file_path == file_path and s.name == name]
    assert len(matches) == 1, f"expected one {name} in {file_path}, got {len(matches)}"
    return matches[0]


def edges(graph: KnowledgeGraph, rel_type: RelationshipType):
    return [(r.source_id, r.target_id) for r in graph.relationships_of(rel_type)]
