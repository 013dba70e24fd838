"""
Tests for Louvain community detection.
"""

from collections import Counter

import networkx as nx
import pytest

from src.code_graph.analysis import CommunityDetector, build_symbol_graph
from src.code_graph.graph import NodeType, RelationshipType
from src.config import CommunityConfig


# Two triangles joined by a single call c -> d
SYMBOLS = [
    ("auth/session.py", "open_session"),
    ("auth/session.py", "refresh_session"),
    ("auth/session.py", "close_session"),
    ("billing/invoice.py", "create_invoice"),
    ("billing/invoice.py", "send_invoice"),
    ("billing/invoice.py", "void_invoice"),
    ("misc/unused.py", "lonely"),
]
CALLS = [
    ("open_session", "refresh_session"),
    ("open_session", "close_session"),
    ("refresh_session", "close_session"),
    ("close_session", "create_invoice"),
    ("create_invoice", "send_invoice"),
    ("create_invoice", "void_invoice"),
    ("send_invoice", "void_invoice"),
]


@pytest.fixture
def graph(symbol_graph):
    return symbol_graph(SYMBOLS, CALLS)


def names_by_community(graph, result):
    groups = {}
    for symbol_id, community_id in result.membership.items():
        groups.setdefault(community_id, set()).add(graph.nodes[symbol_id].name)
    return groups


class TestCommunityDetector:

    def test_two_clusters(self, graph):
        result = CommunityDetector().detect(graph)
        groups = sorted(names_by_community(graph, result).values(), key=sorted)
        assert groups == [
            {"close_session", "open_session", "refresh_session"},
            {"create_invoice", "send_invoice", "void_invoice"},
        ]

    def test_member_of_at_most_once(self, graph):
        result = CommunityDetector().detect(graph)
        counts = Counter(
            r.source_id for r in result.relationships if r.type == RelationshipType.MEMBER_OF
        )
        for symbol in graph.symbols():
            assert counts.get(symbol.id, 0) in (0, 1)

    def test_isolated_symbol_has_no_community(self, graph):
        result = CommunityDetector().detect(graph)
        lonely = next(s for s in graph.symbols() if s.name == "lonely")
        assert lonely.id not in result.membership
        assert result.isolated_count == 1

    def test_emit_isolated(self, graph):
        result = CommunityDetector(CommunityConfig(emit_isolated=True)).detect(graph)
        lonely = next(s for s in graph.symbols() if s.name == "lonely")
        community = result.membership[lonely.id]
        node = next(n for n in result.nodes if n.id == community)
        assert node.properties["symbol_count"] == 1
        assert node.properties["cohesion"] == 0.0

    def test_communities_numbered_by_first_member(self, graph):
        result = CommunityDetector().detect(graph)
        assert [n.id for n in result.nodes] == ["Community:comm_0", "Community:comm_1"]
        first = next(s for s in graph.symbols() if s.name == "open_session")
        assert result.membership[first.id] == "Community:comm_0"

    def test_deterministic(self, graph):
        first = CommunityDetector().detect(graph)
        second = CommunityDetector().detect(graph)
        assert first.membership == second.membership
        assert [n.to_dict() for n in first.nodes] == [n.to_dict() for n in second.nodes]
        assert first.modularity == second.modularity

    def test_modularity_matches_networkx(self, graph):
        config = CommunityConfig()
        result = CommunityDetector(config).detect(graph)

        G = build_symbol_graph(graph, config.same_file_affinity)
        groups = {}
        for symbol_id, community_id in result.membership.items():
            groups.setdefault(community_id, set()).add(symbol_id)
        expected = nx.community.modularity(G, list(groups.values()), weight="weight")
        assert result.modularity == pytest.approx(expected)
        assert result.modularity > 0.3

    def test_labels_and_cohesion(self, graph):
        result = CommunityDetector().detect(graph)
        labels = {n.properties["label"] for n in result.nodes}
        assert labels == {"Session", "Invoice"}
        for node in result.nodes:
            assert node.type == NodeType.COMMUNITY
            assert 0.0 < node.properties["cohesion"] < 1.0
            assert node.properties["symbol_count"] == 3

    def test_label_falls_back_to_file(self, symbol_graph):
        graph = symbol_graph(
            [("app/payments/index.ts", "alpha"), ("app/payments/index.ts", "beta")],
            [("alpha", "beta")],
        )
        result = CommunityDetector().detect(graph)
        assert [n.properties["label"] for n in result.nodes] == ["Payments"]

    def test_no_edges_no_communities(self, symbol_graph):
        graph = symbol_graph([("a.py", "one"), ("b.py", "two")], [])
        result = CommunityDetector().detect(graph)
        assert result.nodes == []
        assert result.relationships == []
        assert result.modularity == 0.0

    def test_graph_is_not_mutated(self, graph):
        before = (graph.node_count, graph.edge_count)
        CommunityDetector().detect(graph)
        assert (graph.node_count, graph.edge_count) == before


class TestSymbolGraph:

    def test_weights(self, symbol_graph):
        graph = symbol_graph(
            [("a.py", "one"), ("a.py", "two"), ("b.py", "three")],
            [("one", "two"), ("two", "one"), ("two", "three")],
        )
        G = build_symbol_graph(graph, same_file_affinity=0.5)
        ids = {graph.nodes[n].name: n for n in G.nodes}
        # Two distinct CALLS plus same-file affinity
        assert G[ids["one"]][ids["two"]]["weight"] == pytest.approx(2.5)
        assert G[ids["two"]][ids["three"]]["weight"] == pytest.approx(1.0)

    def test_self_calls_ignored(self, symbol_graph):
        graph = symbol_graph([("a.py", "loop")], [("loop", "loop")])
        assert build_symbol_graph(graph).number_of_nodes() == 0

    def test_file_level_edges_add_no_weight(self, build_graph):
        graph = build_graph({
            "app/db.py": "def save():\n    pass\n",
            "app/api.py": "from app.db import save\n\nsave()\n\ndef handle():\n    save()\n",
        })
        assert graph.relationships_of(RelationshipType.IMPORTS)

        G = build_symbol_graph(graph, same_file_affinity=0.5)
        assert G.number_of_edges() == 1
        [(_, _, weight)] = G.edges(data="weight")
        assert weight == 1.0
