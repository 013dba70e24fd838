"""
Community detection - functional clusters of symbols.

Runs a deterministic Louvain (two-phase modularity maximisation) over the
symbol graph induced by CALLS edges between symbols (IMPORTS edges join
File nodes, so they never contribute symbol pairs):

1. Local moving: every symbol starts alone; symbols move to the neighbouring
   community with the best strictly positive modularity gain.
2. Aggregation: communities collapse into super-nodes and the process repeats.

Iteration follows symbol creation order and neighbour communities are
scanned in ascending id order, so identical graphs give identical partitions.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import networkx as nx

from ..graph.graph_builder import KnowledgeGraph
from ..graph.models import (
    CommunityNode,
    GraphRelationship,
    NodeType,
    RelationshipType,
    SymbolNode,
    create_node_id,
)
from .naming import dominant_file_label, most_frequent_token
from src.config import CommunityConfig
from src.logger import get_logger


logger = get_logger(__name__)

STRUCTURAL_RELATIONS = (RelationshipType.CALLS, RelationshipType.IMPORTS)


@dataclass
class CommunityResult:
    """Derived community overlay plus partition statistics."""
    nodes: List[CommunityNode] = field(default_factory=list)
    relationships: List[GraphRelationship] = field(default_factory=list)
    membership: Dict[str, str] = field(default_factory=dict)  # symbol_id -> community_id
    modularity: float = 0.0
    isolated_count: int = 0


def build_symbol_graph(graph: KnowledgeGraph, same_file_affinity: float = 0.5) -> nx.Graph:
    """
    Undirected weighted symbol graph.

    Weight of a pair = number of distinct CALLS/IMPORTS relations between
    the two symbols, plus `same_file_affinity` when both are declared in the
    same file. IMPORTS edges run File to File, so like file-level CALLS
    they have a non-symbol endpoint and add nothing.
    Isolated symbols are left out.
    """
    symbols: Dict[str, SymbolNode] = {s.id: s for s in graph.symbols()}
    weights: Dict[frozenset, float] = defaultdict(float)
    connected = set()

    for rel in graph.relationships_of(*STRUCTURAL_RELATIONS):
        if rel.source_id == rel.target_id:
            continue
        if rel.source_id not in symbols or rel.target_id not in symbols:
            continue
        weights[frozenset((rel.source_id, rel.target_id))] += 1.0
        connected.update((rel.source_id, rel.target_id))

    G = nx.Graph()
    by_file: Dict[str, List[str]] = defaultdict(list)
    for symbol_id, symbol in symbols.items():
        if symbol_id in connected:
            G.add_node(symbol_id)
            by_file[symbol.file_path].append(symbol_id)

    if same_file_affinity > 0:
        for members in by_file.values():
            for i, a in enumerate(members):
                for b in members[i + 1:]:
                    weights[frozenset((a, b))] += same_file_affinity

    # Edges in deterministic order: by the creation index of both endpoints
    order = {node: i for i, node in enumerate(G.nodes())}
    for pair in sorted(weights, key=lambda p: sorted(order[n] for n in p)):
        a, b = sorted(pair, key=order.get)
        G.add_edge(a, b, weight=weights[pair])
    return G


class CommunityDetector:
    """
    Partitions symbols into communities with a seedless Louvain.

    Produces Community nodes, MEMBER_OF edges and the final modularity.
    """

    def __init__(self, config: Optional[CommunityConfig] = None):
        self.config = config or CommunityConfig()

    def detect(self, graph: KnowledgeGraph) -> CommunityResult:
        """
        Detect communities in a knowledge graph.

        Args:
            graph: Assembled graph (not mutated)

        Returns:
            CommunityResult with nodes, MEMBER_OF edges and modularity
        """
        symbols = list(graph.symbols())
        G = build_symbol_graph(graph, self.config.same_file_affinity)
        result = CommunityResult()

        groups: List[List[str]] = []
        if G.number_of_edges() > 0:
            groups, result.modularity = self.partition(G)

        grouped = {symbol_id for group in groups for symbol_id in group}
        isolated = [s.id for s in symbols if s.id not in grouped]
        result.isolated_count = len(isolated)
        if self.config.emit_isolated:
            groups.extend([symbol_id] for symbol_id in isolated)

        # Number communities by their lowest-index member
        creation = {s.id: i for i, s in enumerate(symbols)}
        for group in groups:
            group.sort(key=creation.get)
        groups.sort(key=lambda g: creation[g[0]])

        by_id = {s.id: s for s in symbols}
        for n, members in enumerate(groups):
            community_id = create_node_id(NodeType.COMMUNITY, entity_name=f"comm_{n}")
            member_nodes = [by_id[m] for m in members]
            label = self.label_for(member_nodes)
            node = CommunityNode(
                id=community_id,
                name=label,
                label_text=label,
                cohesion=round(self.cohesion(G, members), 4),
                symbol_count=len(members),
            )
            result.nodes.append(node)
            for member in members:
                result.membership[member] = community_id
                result.relationships.append(GraphRelationship(
                    type=RelationshipType.MEMBER_OF,
                    source_id=member,
                    target_id=community_id,
                ))

        logger.info(
            f"Detected {len(result.nodes)} communities over {G.number_of_nodes()} connected symbols "
            f"({result.isolated_count} isolated), modularity={result.modularity:.4f}"
        )
        return result

    # ------------------------------------------------------------------
    # Louvain
    # ------------------------------------------------------------------

    def partition(self, G: nx.Graph) -> Tuple[List[List[str]], float]:
        """
        Run Louvain on a weighted graph.

        Returns:
            (communities as lists of node ids, modularity of the partition)
        """
        nodes = list(G.nodes())
        index = {node: i for i, node in enumerate(nodes)}
        base = nx.Graph()
        base.add_nodes_from(range(len(nodes)))
        for u, v, w in G.edges(data='weight', default=1.0):
            base.add_edge(index[u], index[v], weight=w)

        membership = list(range(len(nodes)))
        best_q = self._modularity(base, membership)
        level_graph = base

        for level in range(self.config.max_levels):
            level_partition, moved = self._local_moving(level_graph)
            if not moved:
                break
            candidate = [level_partition[c] for c in membership]
            q = self._modularity(base, candidate)
            logger.debug(f"Louvain level {level}: {max(candidate) + 1} communities, modularity={q:.4f}")
            if q <= best_q + self.config.min_modularity_gain:
                break
            membership, best_q = candidate, q
            level_graph = self._aggregate(level_graph, level_partition)

        groups: Dict[int, List[str]] = defaultdict(list)
        for i, community in enumerate(membership):
            groups[community].append(nodes[i])
        return list(groups.values()), best_q

    def _local_moving(self, G: nx.Graph) -> Tuple[List[int], bool]:
        """
        Move nodes between communities while modularity improves.

        Returns:
            (community per node renumbered by lowest node, whether anything moved)
        """
        m2 = 2.0 * G.size(weight='weight')
        community = list(range(G.number_of_nodes()))
        if m2 == 0:
            return community, False

        degree = dict(G.degree(weight='weight'))
        sum_tot = [degree[node] for node in range(len(community))]
        min_gain = self.config.min_modularity_gain
        improved = False

        for _ in range(self.config.max_passes):
            moved = False
            for node in range(len(community)):
                own = community[node]
                k_i = degree[node]

                links: Dict[int, float] = defaultdict(float)
                for neighbor, data in G[node].items():
                    if neighbor != node:
                        links[community[neighbor]] += data.get('weight', 1.0)

                sum_tot[own] -= k_i
                best_comm = own
                best_gain = links.get(own, 0.0) - sum_tot[own] * k_i / m2
                for candidate in sorted(links):
                    gain = links[candidate] - sum_tot[candidate] * k_i / m2
                    if gain > best_gain + min_gain:
                        best_comm, best_gain = candidate, gain

                sum_tot[best_comm] += k_i
                if best_comm != own:
                    community[node] = best_comm
                    moved = improved = True
            if not moved:
                break

        renumber: Dict[int, int] = {}
        for c in community:
            renumber.setdefault(c, len(renumber))
        return [renumber[c] for c in community], improved

    @staticmethod
    def _aggregate(G: nx.Graph, partition: List[int]) -> nx.Graph:
        """Collapse communities into super-nodes; intra weight becomes a self-loop."""
        agg = nx.Graph()
        agg.add_nodes_from(range(max(partition) + 1))
        for u, v, w in G.edges(data='weight', default=1.0):
            cu, cv = partition[u], partition[v]
            if agg.has_edge(cu, cv):
                agg[cu][cv]['weight'] += w
            else:
                agg.add_edge(cu, cv, weight=w)
        return agg

    @staticmethod
    def _modularity(G: nx.Graph, membership: List[int]) -> float:
        groups: Dict[int, set] = defaultdict(set)
        for node, community in enumerate(membership):
            groups[community].add(node)
        return nx.community.modularity(G, list(groups.values()), weight='weight')

    # ------------------------------------------------------------------
    # Post-processing
    # ------------------------------------------------------------------

    @staticmethod
    def cohesion(G: nx.Graph, members: List[str]) -> float:
        """Intra-community weight over total incident weight, 0 for isolated members."""
        member_set = set(members)
        intra = incident = 0.0
        for u, v, w in G.edges(members, data='weight', default=1.0):
            incident += w
            if u in member_set and v in member_set:
                intra += w
        return intra / incident if incident > 0 else 0.0

    @staticmethod
    def label_for(members: List[SymbolNode]) -> str:
        token = most_frequent_token(m.name for m in members)
        if token:
            return token
        return dominant_file_label(m.file_path for m in members)
