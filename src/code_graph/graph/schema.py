"""
Static description of the graph schema.

Consumers use it to write ad-hoc Cypher queries against the store.
"""

from typing import Any, Dict

from .models import NodeType, RelationshipType


NODE_DESCRIPTIONS = {
    NodeType.FILE: "Source code file",
    NodeType.FUNCTION: "Function, arrow function or function expression",
    NodeType.CLASS: "Class definition",
    NodeType.INTERFACE: "Interface definition",
    NodeType.METHOD: "Method declared in a class body",
    NodeType.COMMUNITY: "Functional cluster (Louvain)",
    NodeType.PROCESS: "Execution flow traced from an entry point",
}

RELATIONSHIP_DESCRIPTIONS = {
    RelationshipType.CALLS: "Function/method invocation (name resolved)",
    RelationshipType.IMPORTS: "File imports file",
    RelationshipType.EXTENDS: "Class or interface inheritance",
    RelationshipType.IMPLEMENTS: "Class implements interface",
    RelationshipType.DEFINES: "File defines symbol",
    RelationshipType.MEMBER_OF: "Symbol belongs to community",
    RelationshipType.STEP_IN_PROCESS: "Symbol is step N of a process (property: step)",
}

NODE_PROPERTIES = {
    NodeType.FILE: ['id', 'name', 'file_path', 'language', 'content', 'size_bytes', 'line_count'],
    NodeType.FUNCTION: ['id', 'name', 'file_path', 'content', 'start_line', 'end_line'],
    NodeType.CLASS: ['id', 'name', 'file_path', 'content', 'start_line', 'end_line'],
    NodeType.INTERFACE: ['id', 'name', 'file_path', 'content', 'start_line', 'end_line'],
    NodeType.METHOD: ['id', 'name', 'file_path', 'content', 'start_line', 'end_line', 'enclosing_id'],
    NodeType.COMMUNITY: ['id', 'label', 'cohesion', 'symbol_count'],
    NodeType.PROCESS: ['id', 'label', 'process_type', 'step_count', 'entry_point_id', 'terminal_id'],
}

EXAMPLE_QUERIES = {
    'find_callers': (
        'MATCH (caller)-[:CALLS]->(f:Function {name: "myFunc"})\n'
        'RETURN caller.name, caller.file_path'
    ),
    'find_community_members': (
        'MATCH (s)-[:MEMBER_OF]->(c:Community)\n'
        'WHERE c.label = "Auth"\n'
        'RETURN s.name, s.type'
    ),
    'trace_process': (
        'MATCH (s)-[r:STEP_IN_PROCESS]->(p:Process)\n'
        'WHERE p.label = "login → save_session"\n'
        'RETURN s.name, r.step\n'
        'ORDER BY r.step'
    ),
}


def describe_schema() -> Dict[str, Any]:
    """
    Node and relationship types of the persisted graph.

    Every node also carries the GraphNode label and an `id` property.
    """
    return {
        'nodes': {t.value: NODE_DESCRIPTIONS[t] for t in NodeType},
        'relationships': {t.value: RELATIONSHIP_DESCRIPTIONS[t] for t in RelationshipType},
        'properties': {t.value: list(NODE_PROPERTIES[t]) for t in NodeType},
        'example_queries': dict(EXAMPLE_QUERIES),
    }
