"""
Shared fixtures for code graph tests.
"""

from typing import Dict, Iterable, Tuple

import pytest

from src.code_graph.graph import (
    GraphBuilder,
    GraphRelationship,
    KnowledgeGraph,
    NodeType,
    RelationshipType,
    SymbolNode,
)
from tests.helpers import extract_file


@pytest.fixture
def build_graph():
    """Build a KnowledgeGraph from {path: source}."""
    def _build(files: Dict[str, str]) -> KnowledgeGraph:
        return GraphBuilder().build([extract_file(p, c) for p, c in files.items()])
    return _build


@pytest.fixture
def symbol_graph():
    """
    Build a KnowledgeGraph of Function symbols and CALLS edges by hand.

    Symbols are given as (file_path, name); calls as (caller, callee) names.
    """
    def _build(symbols: Iterable[Tuple[str, str]], calls: Iterable[Tuple[str, str]]) -> KnowledgeGraph:
        graph = KnowledgeGraph()
        ids = {}
        for offset, (file_path, name) in enumerate(symbols):
            node = SymbolNode(
                id=f"Function:{file_path}:{name}@{offset}",
                name=name,
                kind=NodeType.FUNCTION,
                file_path=file_path,
                start_line=offset + 1,
            )
            graph.add_node(node)
            ids[name] = node.id
        for caller, callee in calls:
            graph.add_relationship(GraphRelationship(
                type=RelationshipType.CALLS,
                source_id=ids[caller],
                target_id=ids[callee],
            ))
        return graph
    return _build
