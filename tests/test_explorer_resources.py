"""
Tests for cluster/process lookups and their YAML renderings.
"""

from unittest.mock import MagicMock

import pytest
import yaml

from src.code_graph.errors import EntityNotFoundError
from src.code_graph.resources import (
    MAX_MEMBERS,
    read_resource,
    render_cluster_detail,
    render_process_detail,
)
from src.code_graph.retrieval import GraphExplorer


CLUSTER_ROW = {"id": "Community:comm_0", "label": "Auth", "cohesion": 0.75, "symbol_count": 3}
PROCESS_ROW = {"id": "Process:proc_0", "label": "login → save_session", "process_type": "http_handler", "step_count": 3}


def member(i):
    return {"id": f"Function:auth.py:f{i}@{i}", "name": f"f{i}", "type": "Function", "file_path": "auth.py"}


@pytest.fixture
def store():
    return MagicMock()


@pytest.fixture
def explorer(store):
    return GraphExplorer(store)


class TestClusters:

    def test_get_cluster_detail(self, explorer, store):
        store.execute_cypher.side_effect = [[CLUSTER_ROW], [member(0), member(1), member(2)]]
        detail = explorer.get_cluster_detail("auth")

        assert detail.label == "Auth"
        assert detail.cohesion == 0.75
        assert detail.symbol_count == 3
        assert [m.name for m in detail.members] == ["f0", "f1", "f2"]

        lookup_params = store.execute_cypher.call_args_list[0].kwargs
        assert lookup_params == {"name": "auth"}
        member_params = store.execute_cypher.call_args_list[1].kwargs
        assert member_params == {"id": "Community:comm_0"}

    def test_unknown_cluster(self, explorer, store):
        store.execute_cypher.return_value = []
        with pytest.raises(EntityNotFoundError):
            explorer.get_cluster_detail("nope")

    def test_list_clusters(self, explorer, store):
        store.execute_cypher.return_value = [CLUSTER_ROW, {"id": "Community:comm_1", "label": None,
                                                          "cohesion": None, "symbol_count": 2}]
        clusters = explorer.list_clusters(limit=10)
        assert [c.label for c in clusters] == ["Auth", "Community:comm_1"]
        assert clusters[1].cohesion == 0.0
        assert store.execute_cypher.call_args.kwargs == {"limit": 10}


class TestProcesses:

    def test_get_process_detail(self, explorer, store):
        store.execute_cypher.side_effect = [
            [PROCESS_ROW],
            [
                {"step": 1, "symbol_name": "login", "file_path": "api/auth.py"},
                {"step": 2, "symbol_name": "check_password", "file_path": "auth/hash.py"},
                {"step": 3, "symbol_name": "save_session", "file_path": "auth/session.py"},
            ],
        ]
        detail = explorer.get_process_detail("login")
        assert detail.process_type == "http_handler"
        assert [s.as_tuple() for s in detail.steps] == [
            (1, "login", "api/auth.py"),
            (2, "check_password", "auth/hash.py"),
            (3, "save_session", "auth/session.py"),
        ]

    def test_unknown_process(self, explorer, store):
        store.execute_cypher.return_value = []
        with pytest.raises(EntityNotFoundError):
            explorer.get_process_detail("missing")

    def test_overview(self, explorer, store):
        store.execute_cypher.return_value = [{"files": 3, "symbols": 12, "clusters": 2, "processes": None}]
        assert explorer.overview() == {"files": 3, "symbols": 12, "clusters": 2, "processes": 0}


class TestResources:

    def test_cluster_detail_caps_members(self, explorer, store):
        many = dict(CLUSTER_ROW, symbol_count=25)
        store.execute_cypher.side_effect = [[many], [member(i) for i in range(25)]]
        text = render_cluster_detail(explorer, "Auth")

        data = yaml.safe_load(text)
        assert data["name"] == "Auth"
        assert data["cohesion"] == "75%"
        assert len(data["members"]) == MAX_MEMBERS
        assert text.rstrip().endswith("# ... and 5 more")

    def test_cluster_not_found_renders_error(self, explorer, store):
        store.execute_cypher.return_value = []
        data = yaml.safe_load(render_cluster_detail(explorer, "nope"))
        assert data == {"error": "cluster not found: nope"}

    def test_process_trace(self, explorer, store):
        store.execute_cypher.side_effect = [
            [PROCESS_ROW],
            [
                {"step": 1, "symbol_name": "login", "file_path": "api/auth.py"},
                {"step": 2, "symbol_name": "save_session", "file_path": "auth/session.py"},
            ],
        ]
        data = yaml.safe_load(render_process_detail(explorer, "login"))
        assert data["type"] == "http_handler"
        assert data["trace"] == {1: "login (api/auth.py)", 2: "save_session (auth/session.py)"}

    def test_read_resource_routes(self, explorer, store):
        store.execute_cypher.return_value = []
        assert read_resource("codegraph://clusters", explorer).startswith("clusters: []")
        assert read_resource("codegraph://processes", explorer).startswith("processes: []")
        assert "MEMBER_OF" in read_resource("codegraph://schema", explorer)

    def test_context(self, explorer, store):
        store.execute_cypher.return_value = [{"files": 1, "symbols": 2, "clusters": 0, "processes": 0}]
        data = yaml.safe_load(read_resource("codegraph://context", explorer, project_name="demo"))
        assert data["project"] == "demo"
        assert data["stats"]["symbols"] == 2

    @pytest.mark.parametrize("uri", ["codegraph://unknown", "http://clusters"])
    def test_unknown_resource(self, explorer, uri):
        with pytest.raises(ValueError):
            read_resource(uri, explorer)
