"""
Graph node and relationship models.

Defines the structure of nodes and relationships in the knowledge graph:
- File and Symbol nodes owned by the graph builder
- Community and Process nodes derived by the analyzers
"""

from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field
from enum import Enum


class NodeType(str, Enum):
    """Types of nodes in the knowledge graph."""
    FILE = "File"
    FUNCTION = "Function"
    CLASS = "Class"
    INTERFACE = "Interface"
    METHOD = "Method"
    COMMUNITY = "Community"  # Functional cluster of symbols
    PROCESS = "Process"      # Execution flow from an entry point


class RelationshipType(str, Enum):
    """Types of relationships in the knowledge graph."""
    # Containment
    DEFINES = "DEFINES"    # File DEFINES Function/Class/Method/Interface

    # Code dependencies
    IMPORTS = "IMPORTS"    # File IMPORTS File
    CALLS = "CALLS"        # Symbol (or File at module level) CALLS Symbol
    EXTENDS = "EXTENDS"    # Class EXTENDS Class, Interface EXTENDS Interface
    IMPLEMENTS = "IMPLEMENTS"  # Class IMPLEMENTS Interface

    # Derived overlays
    MEMBER_OF = "MEMBER_OF"              # Symbol MEMBER_OF Community
    STEP_IN_PROCESS = "STEP_IN_PROCESS"  # Symbol STEP_IN_PROCESS Process (step payload)


SYMBOL_TYPES = frozenset({NodeType.FUNCTION, NodeType.CLASS, NodeType.INTERFACE, NodeType.METHOD})


@dataclass
class GraphNode:
    """
    Base class for all graph nodes.

    Every node in the knowledge graph extends this base class.
    """

    # Core fields
    id: str  # Unique identifier (e.g., "Function:src/app.py:main@120")
    name: str
    type: Optional[NodeType] = None

    # Additional properties (extensible)
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def label(self) -> str:
        return self.type.value if self.type else 'Unknown'

    def to_dict(self) -> Dict[str, Any]:
        """Convert node to dictionary for Neo4j."""
        return {
            'id': self.id,
            'type': self.label,
            'name': self.name,
            **self.properties
        }


@dataclass
class FileNode(GraphNode):
    """File node in the knowledge graph."""

    file_path: str = ""  # Relative posix path from repository root
    language: str = ""
    content: str = ""
    size_bytes: int = 0
    line_count: int = 0

    def __post_init__(self):
        self.type = NodeType.FILE
        self.properties.update({
            'file_path': self.file_path,
            'language': self.language,
            'content': self.content,  # Full searchable content
            'size_bytes': self.size_bytes,
            'line_count': self.line_count,
        })


@dataclass
class SymbolNode(GraphNode):
    """
    Function, Class, Interface or Method declared in one file.

    The enclosing class of a method is stored by id, not by reference.
    """

    kind: NodeType = NodeType.FUNCTION
    file_path: str = ""
    content: str = ""  # Source slice of the declaration
    start_byte: int = 0
    end_byte: int = 0
    start_line: int = 0
    end_line: int = 0
    enclosing_id: Optional[str] = None

    def __post_init__(self):
        self.type = self.kind
        self.properties.update({
            'file_path': self.file_path,
            'content': self.content,
            'start_byte': self.start_byte,
            'end_byte': self.end_byte,
            'start_line': self.start_line,
            'end_line': self.end_line,
            'enclosing_id': self.enclosing_id or '',
        })


@dataclass
class CommunityNode(GraphNode):
    """Functional cluster of symbols."""

    label_text: str = ""
    cohesion: float = 0.0
    symbol_count: int = 0

    def __post_init__(self):
        self.type = NodeType.COMMUNITY
        self.properties.update({
            'label': self.label_text,
            'cohesion': self.cohesion,
            'symbol_count': self.symbol_count,
        })


@dataclass
class ProcessNode(GraphNode):
    """Execution flow traced from an entry point."""

    label_text: str = ""
    process_type: str = "unknown"
    step_count: int = 0
    entry_point_id: str = ""
    terminal_id: str = ""

    def __post_init__(self):
        self.type = NodeType.PROCESS
        self.properties.update({
            'label': self.label_text,
            'process_type': self.process_type,
            'step_count': self.step_count,
            'entry_point_id': self.entry_point_id,
            'terminal_id': self.terminal_id,
        })


@dataclass
class GraphRelationship:
    """
    Relationship between two nodes in the knowledge graph.
    """

    type: RelationshipType
    source_id: str  # ID of source node
    target_id: str  # ID of target node

    # Optional properties (e.g. step for STEP_IN_PROCESS)
    properties: Dict[str, Any] = field(default_factory=dict)

    # Confidence score for name-resolved relationships
    confidence: float = 1.0

    @property
    def key(self) -> tuple:
        return (self.type, self.source_id, self.target_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert relationship to dictionary for Neo4j."""
        return {
            'type': self.type.value,
            'source_id': self.source_id,
            'target_id': self.target_id,
            'confidence': self.confidence,
            **self.properties
        }


def create_node_id(
    node_type: NodeType,
    file_path: Optional[str] = None,
    entity_name: Optional[str] = None,
    start_byte: Optional[int] = None,
) -> str:
    """
    Create a unique node ID.

    Examples:
        - File: "File:src/models.py"
        - Function: "Function:src/models.py:create_user@120"
        - Community: "Community:comm_3"

    Args:
        node_type: Node type, used as prefix
        file_path: Optional file path (relative to repo root)
        entity_name: Optional entity name (function, class, etc.)
        start_byte: Optional start offset, disambiguates same-name symbols

    Returns:
        Unique node ID
    """
    parts = [node_type.value]

    if file_path:
        parts.append(file_path.replace('\\', '/'))

    if entity_name:
        parts.append(entity_name if start_byte is None else f"{entity_name}@{start_byte}")

    return ':'.join(parts)
