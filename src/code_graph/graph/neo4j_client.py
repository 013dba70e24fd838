"""
Neo4j client for knowledge graph operations.

Handles connection to Neo4j, atomic replacement of the persisted graph,
full-text (keyword) indexes and raw Cypher queries.
"""

import re
from typing import List, Dict, Any, Optional, Tuple, Iterable

from neo4j import GraphDatabase, Driver, Query
from neo4j.exceptions import ServiceUnavailable, AuthError, Neo4jError, DriverError

from .models import GraphNode, GraphRelationship
from ..errors import GraphStoreError, IndexQueryError
from src.logger import get_logger


logger = get_logger(__name__)

_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')
_LUCENE_SPECIAL = re.compile(r'([+\-!(){}\[\]^"~*?:\\/&|])')
_LUCENE_OPERATORS = re.compile(r'\b(AND|OR|NOT)\b')


def escape_lucene(text: str) -> str:
    """
    Escape Lucene query syntax so user text is matched literally.

    Operators are only recognised in upper case, and the analyzer
    lowercases terms anyway, so AND/OR/NOT are lowercased.
    """
    text = _LUCENE_SPECIAL.sub(r'\\\1', text)
    return _LUCENE_OPERATORS.sub(lambda m: m.group(1).lower(), text)


def _identifier(value: str) -> str:
    if not _IDENTIFIER.match(value):
        raise ValueError(f"Invalid identifier: {value!r}")
    return value


class Neo4jClient:
    """
    Client for Neo4j graph database.

    Handles connection management and graph operations.
    """

    def __init__(
        self,
        uri: str = "bolt://localhost:7687",
        user: str = "neo4j",
        password: str = "password",
        database: str = "neo4j",
        batch_size: int = 1000,
        max_connection_pool_size: int = 50,
        connection_timeout: float = 30.0,
    ):
        """
        Initialize Neo4j client.

        Args:
            uri: Neo4j connection URI
            user: Username
            password: Password
            database: Database name (default: neo4j)
            batch_size: Nodes/relationships per UNWIND statement

        Raises:
            GraphStoreError: If the server is unreachable or rejects the credentials
        """
        self.uri = uri
        self.user = user
        self.database = database
        self.batch_size = batch_size
        self._driver: Optional[Driver] = None

        try:
            self._driver = GraphDatabase.driver(
                uri,
                auth=(user, password),
                max_connection_pool_size=max_connection_pool_size,
                connection_timeout=connection_timeout,
            )
            # Test connection
            self._driver.verify_connectivity()
            logger.info(f"Connected to Neo4j at {uri}")
        except (ServiceUnavailable, AuthError) as e:
            logger.error(f"Failed to connect to Neo4j: {e}")
            raise GraphStoreError(f"Cannot connect to Neo4j at {uri}: {e}") from e

    @classmethod
    def from_config(cls, config) -> "Neo4jClient":
        """Create a client from a Neo4jConfig."""
        return cls(
            uri=config.uri,
            user=config.user,
            password=config.password,
            database=config.database,
            batch_size=config.batch_size,
            max_connection_pool_size=config.max_connection_pool_size,
            connection_timeout=config.connection_timeout,
        )

    def close(self):
        """Close Neo4j connection."""
        if self._driver:
            self._driver.close()
            logger.info("Neo4j connection closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def create_indexes(self):
        """Create indexes for better query performance."""
        with self._driver.session(database=self.database) as session:
            session.run("CREATE INDEX graph_node_id IF NOT EXISTS FOR (n:GraphNode) ON (n.id)").consume()
            session.run("CREATE INDEX graph_node_name IF NOT EXISTS FOR (n:GraphNode) ON (n.name)").consume()
            session.run("CREATE INDEX file_path IF NOT EXISTS FOR (n:File) ON (n.file_path)").consume()
            logger.info("Indexes created successfully")

    # ============== GRAPH REPLACEMENT ==============

    def replace_graph(
        self,
        nodes: Iterable[GraphNode],
        relationships: Iterable[GraphRelationship],
    ) -> Dict[str, int]:
        """
        Replace the persisted graph with the given nodes and relationships.

        Everything runs in one write transaction: the previous graph is
        deleted, then nodes and relationships are created in batches.
        Any failure rolls the whole transaction back.

        Args:
            nodes: Nodes to persist
            relationships: Relationships between those nodes

        Returns:
            Statistics dictionary with counts

        Raises:
            GraphStoreError: If the write fails
        """
        nodes_by_type: Dict[str, List[Dict[str, Any]]] = {}
        for node in nodes:
            nodes_by_type.setdefault(_identifier(node.label), []).append(node.to_dict())

        rels_by_type: Dict[str, List[Dict[str, Any]]] = {}
        for rel in relationships:
            rels_by_type.setdefault(_identifier(rel.type.value), []).append(rel.to_dict())

        try:
            self.create_indexes()
            with self._driver.session(database=self.database) as session:
                stats = session.execute_write(self._replace_graph_tx, nodes_by_type, rels_by_type)
        except (Neo4jError, DriverError) as e:
            logger.error(f"Failed to replace graph: {e}")
            raise GraphStoreError(f"Graph write failed: {e}") from e

        logger.info(
            f"Graph replaced: {stats['nodes_created']} nodes, "
            f"{stats['relationships_created']} relationships"
        )
        return stats

    def _replace_graph_tx(self, tx, nodes_by_type, rels_by_type) -> Dict[str, int]:
        deleted = tx.run(
            "MATCH (n:GraphNode) DETACH DELETE n RETURN count(n) AS deleted"
        ).single()['deleted']

        nodes_created = 0
        for node_type, node_dicts in nodes_by_type.items():
            query = f"""
            UNWIND $nodes AS node
            CREATE (n:{node_type}:GraphNode)
            SET n = node
            """
            for i in range(0, len(node_dicts), self.batch_size):
                chunk = node_dicts[i:i + self.batch_size]
                tx.run(query, nodes=chunk).consume()
                nodes_created += len(chunk)

        rels_created = 0
        for rel_type, rel_dicts in rels_by_type.items():
            query = f"""
            UNWIND $rels AS rel
            MATCH (source:GraphNode {{id: rel.source_id}})
            MATCH (target:GraphNode {{id: rel.target_id}})
            CREATE (source)-[r:{rel_type}]->(target)
            SET r = rel
            """
            for i in range(0, len(rel_dicts), self.batch_size):
                chunk = rel_dicts[i:i + self.batch_size]
                tx.run(query, rels=chunk).consume()
                rels_created += len(chunk)

        return {
            'nodes_deleted': deleted,
            'nodes_created': nodes_created,
            'relationships_created': rels_created,
        }

    # ============== KEYWORD INDEXES ==============

    def create_keyword_index(
        self,
        entity_type: str,
        index_name: str,
        fields: Tuple[str, ...] = ('name', 'content'),
    ) -> None:
        """
        Create a full-text index over the given properties of one label.

        Args:
            entity_type: Node label, e.g. "Function"
            index_name: Index name, e.g. "function_fts"
            fields: Indexed node properties
        """
        label = _identifier(entity_type)
        name = _identifier(index_name)
        props = ', '.join(f"n.{_identifier(f)}" for f in fields)
        query = f"CREATE FULLTEXT INDEX {name} IF NOT EXISTS FOR (n:{label}) ON EACH [{props}]"
        try:
            with self._driver.session(database=self.database) as session:
                session.run(query).consume()
        except (Neo4jError, DriverError) as e:
            raise GraphStoreError(f"Cannot create full-text index {index_name}: {e}") from e
        logger.info(f"Full-text index {index_name} ready on {label}({', '.join(fields)})")

    def query_keyword_index(
        self,
        entity_type: str,
        index_name: str,
        query: str,
        limit: int = 20,
        timeout: Optional[float] = None,
    ) -> List[Tuple[str, float]]:
        """
        Query a full-text index.

        Args:
            entity_type: Node label the index covers
            index_name: Full-text index name
            query: Free text, escaped before it reaches Lucene
            limit: Maximum number of hits
            timeout: Transaction timeout in seconds

        Returns:
            (file_path, score) pairs, best first

        Raises:
            IndexQueryError: If the query fails or times out
        """
        cypher = Query(
            """
            CALL db.index.fulltext.queryNodes($index, $query) YIELD node, score
            WHERE $label IN labels(node)
            RETURN node.file_path AS file_path, score
            ORDER BY score DESC
            LIMIT $limit
            """,
            timeout=timeout,
        )
        try:
            with self._driver.session(database=self.database) as session:
                # Parameters go in a dict; "query" is also Session.run's first argument
                result = session.run(cypher, {
                    'index': index_name,
                    'query': escape_lucene(query),
                    'label': entity_type,
                    'limit': limit,
                })
                return [
                    (record['file_path'], float(record['score']))
                    for record in result
                    if record['file_path']
                ]
        except (Neo4jError, DriverError) as e:
            raise IndexQueryError(index_name, str(e)) from e

    # ============== QUERIES ==============

    def execute_cypher(self, query: str, **params) -> List[Dict[str, Any]]:
        """
        Execute a raw Cypher query.

        Args:
            query: Cypher query string
            **params: Query parameters

        Returns:
            List of result records
        """
        with self._driver.session(database=self.database) as session:
            result = session.run(query, params)
            return [dict(record) for record in result]
