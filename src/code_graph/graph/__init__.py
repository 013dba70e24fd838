"""
Knowledge graph module.

This module handles:
- Graph node models (File, Function, Class, Interface, Method, Community, Process)
- Graph relationships (DEFINES, CALLS, IMPORTS, EXTENDS, IMPLEMENTS, MEMBER_OF, STEP_IN_PROCESS)
- Graph building from extraction results
- Neo4j integration
- Weaviate vector indexing
"""

from .models import (
    GraphNode, GraphRelationship,
    NodeType, RelationshipType,
    FileNode, SymbolNode, CommunityNode, ProcessNode,
    create_node_id
)
from .graph_builder import ExtractedFile, GraphBuilder, KnowledgeGraph
from .neo4j_client import Neo4jClient
from .weaviate_indexer import WeaviateIndexer
from .schema import describe_schema

__all__ = [
    # Models
    'GraphNode', 'GraphRelationship',
    'NodeType', 'RelationshipType',
    'FileNode', 'SymbolNode', 'CommunityNode', 'ProcessNode',
    'create_node_id',

    # Clients and builders
    'ExtractedFile',
    'GraphBuilder',
    'KnowledgeGraph',
    'Neo4jClient',
    'WeaviateIndexer',
    'describe_schema',
]
