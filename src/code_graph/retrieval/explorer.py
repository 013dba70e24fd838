"""
Graph explorer - read APIs over the persisted clusters and processes.

Lookups accept a node id ("Community:comm_3" or just "comm_3"), a label
(case-insensitive) or, for processes, the entry point's name. When several
nodes match, the largest wins, then the lowest id.
"""

from typing import Any, Dict, List

from ..errors import EntityNotFoundError
from ..graph.neo4j_client import Neo4jClient
from ..schemas import (
    ClusterDetail,
    ClusterMember,
    ClusterSummary,
    ProcessDetail,
    ProcessStep,
    ProcessSummary,
)
from src.logger import get_logger


logger = get_logger(__name__)


class GraphExplorer:
    """Cluster and process detail / listing queries."""

    def __init__(self, store: Neo4jClient):
        self.store = store

    def overview(self) -> Dict[str, int]:
        """Counts of files, symbols, clusters and processes."""
        rows = self.store.execute_cypher(
            """
            MATCH (n:GraphNode)
            RETURN
                sum(CASE WHEN n:File THEN 1 ELSE 0 END) AS files,
                sum(CASE WHEN n:Function OR n:Class OR n:Interface OR n:Method THEN 1 ELSE 0 END) AS symbols,
                sum(CASE WHEN n:Community THEN 1 ELSE 0 END) AS clusters,
                sum(CASE WHEN n:Process THEN 1 ELSE 0 END) AS processes
            """
        )
        row = rows[0] if rows else {}
        return {key: int(row.get(key) or 0) for key in ('files', 'symbols', 'clusters', 'processes')}

    # ============== CLUSTERS ==============

    def list_clusters(self, limit: int = 50) -> List[ClusterSummary]:
        """Largest communities first."""
        rows = self.store.execute_cypher(
            """
            MATCH (c:Community)
            RETURN c.id AS id, c.label AS label, c.cohesion AS cohesion, c.symbol_count AS symbol_count
            ORDER BY c.symbol_count DESC, c.id
            LIMIT $limit
            """,
            limit=limit,
        )
        return [ClusterSummary(**self._cluster_fields(row)) for row in rows]

    def get_cluster_detail(self, name: str) -> ClusterDetail:
        """
        Community with its members.

        Raises:
            EntityNotFoundError: If no community matches
        """
        rows = self.store.execute_cypher(
            """
            MATCH (c:Community)
            WHERE c.id = $name OR c.id = 'Community:' + $name OR toLower(c.label) = toLower($name)
            RETURN c.id AS id, c.label AS label, c.cohesion AS cohesion, c.symbol_count AS symbol_count
            ORDER BY c.symbol_count DESC, c.id
            LIMIT 1
            """,
            name=name,
        )
        if not rows:
            raise EntityNotFoundError("cluster", name)
        cluster = self._cluster_fields(rows[0])

        members = self.store.execute_cypher(
            """
            MATCH (s:GraphNode)-[:MEMBER_OF]->(c:Community {id: $id})
            RETURN s.id AS id, s.name AS name, s.type AS type, s.file_path AS file_path
            ORDER BY s.file_path, s.start_line, s.name
            """,
            id=cluster['id'],
        )
        return ClusterDetail(
            **cluster,
            members=[ClusterMember(**member) for member in members],
        )

    @staticmethod
    def _cluster_fields(row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'id': row['id'],
            'label': row.get('label') or row['id'],
            'cohesion': float(row.get('cohesion') or 0.0),
            'symbol_count': int(row.get('symbol_count') or 0),
        }

    # ============== PROCESSES ==============

    def list_processes(self, limit: int = 50) -> List[ProcessSummary]:
        """Longest processes first."""
        rows = self.store.execute_cypher(
            """
            MATCH (p:Process)
            RETURN p.id AS id, p.label AS label, p.process_type AS process_type, p.step_count AS step_count
            ORDER BY p.step_count DESC, p.id
            LIMIT $limit
            """,
            limit=limit,
        )
        return [ProcessSummary(**self._process_fields(row)) for row in rows]

    def get_process_detail(self, name: str) -> ProcessDetail:
        """
        Process with its ordered steps.

        Raises:
            EntityNotFoundError: If no process matches
        """
        rows = self.store.execute_cypher(
            """
            MATCH (p:Process)
            OPTIONAL MATCH (entry:GraphNode {id: p.entry_point_id})
            WITH p, entry
            WHERE p.id = $name OR p.id = 'Process:' + $name
               OR toLower(p.label) = toLower($name)
               OR toLower(entry.name) = toLower($name)
            RETURN p.id AS id, p.label AS label, p.process_type AS process_type, p.step_count AS step_count
            ORDER BY p.step_count DESC, p.id
            LIMIT 1
            """,
            name=name,
        )
        if not rows:
            raise EntityNotFoundError("process", name)
        process = self._process_fields(rows[0])

        steps = self.store.execute_cypher(
            """
            MATCH (s:GraphNode)-[r:STEP_IN_PROCESS]->(p:Process {id: $id})
            RETURN r.step AS step, s.name AS symbol_name, s.file_path AS file_path
            ORDER BY r.step
            """,
            id=process['id'],
        )
        return ProcessDetail(
            **process,
            steps=[ProcessStep(**step) for step in steps],
        )

    @staticmethod
    def _process_fields(row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'id': row['id'],
            'label': row.get('label') or row['id'],
            'process_type': row.get('process_type') or 'unknown',
            'step_count': int(row.get('step_count') or 0),
        }
