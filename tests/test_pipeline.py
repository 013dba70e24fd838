"""
End-to-end pipeline tests with real extraction and a mocked store.
"""

from unittest.mock import MagicMock

import pytest

from src.code_graph import CodeGraphPipeline, RepoFile
from src.code_graph.errors import FatalIngestionError, GraphStoreError
from src.code_graph.graph import NodeType, RelationshipType
from src.config import IngestionConfig


REPO = {
    "app/main.py": "from app.service import start\n\ndef main():\n    start()\n",
    "app/service.py": (
        "from app.db import save_record, load_record\n\n"
        "def start():\n    record = load_record()\n    save_record(record)\n\n"
        "def stop():\n    save_record(None)\n"
    ),
    "app/db.py": (
        "def save_record(r):\n    _write(r)\n\n"
        "def load_record():\n    return _read()\n\n"
        "def _write(r):\n    pass\n\n"
        "def _read():\n    pass\n"
    ),
}


@pytest.fixture
def repo_files():
    return [RepoFile(path=path, content=content) for path, content in REPO.items()]


@pytest.fixture
def store():
    store = MagicMock()
    store.replace_graph.return_value = {"nodes_deleted": 0, "nodes_created": 0, "relationships_created": 0}
    return store


def snapshot(result):
    graph = result.graph
    return (
        list(graph.nodes),
        [r.to_dict() for r in graph.relationships],
        result.communities.membership,
        [p.steps for p in result.processes.processes],
    )


class TestBuild:

    def test_build_graph(self, repo_files):
        result = CodeGraphPipeline().build(repo_files)
        stats = result.stats

        assert stats.files_total == 3
        assert stats.files_extracted == 3
        assert stats.files_skipped == 0
        assert stats.node_count == result.graph.node_count
        assert stats.edge_count == result.graph.edge_count
        assert stats.process_count == 2
        assert stats.community_count >= 1

        labels = {p.label for p in result.processes.processes}
        assert labels == {"main → _write", "stop → _write"}

    def test_overlays_are_merged(self, repo_files):
        result = CodeGraphPipeline().build(repo_files)
        graph = result.graph
        assert graph.nodes_of(NodeType.COMMUNITY)
        assert graph.nodes_of(NodeType.PROCESS)
        assert graph.relationships_of(RelationshipType.MEMBER_OF)
        assert graph.relationships_of(RelationshipType.STEP_IN_PROCESS)

    def test_idempotent(self, repo_files):
        pipeline = CodeGraphPipeline()
        assert snapshot(pipeline.build(repo_files)) == snapshot(pipeline.build(repo_files))

    def test_worker_count_does_not_change_result(self, repo_files):
        single = IngestionConfig.from_dict({"extraction": {"max_workers": 1}})
        assert snapshot(CodeGraphPipeline(config=single).build(repo_files)) == \
            snapshot(CodeGraphPipeline().build(repo_files))

    def test_unsupported_files_are_skipped(self, repo_files):
        repo_files.append(RepoFile(path="README.md", content="# readme"))
        stats = CodeGraphPipeline().build(repo_files).stats
        assert stats.files_total == 4
        assert stats.files_skipped == 1

    def test_unresolved_references_are_counted(self):
        files = [RepoFile(path="a.py", content="import requests\n\ndef go():\n    requests.get()\n")]
        stats = CodeGraphPipeline().build(files).stats
        assert stats.unresolved_references["import"] == 1
        assert stats.unresolved_references["call"] == 1

    def test_nothing_extracted_is_fatal(self):
        with pytest.raises(FatalIngestionError):
            CodeGraphPipeline().build([RepoFile(path="notes.txt", content="hello")])
        with pytest.raises(FatalIngestionError):
            CodeGraphPipeline().build([])


class TestIngest:

    def test_ingest_replaces_graph_and_creates_indexes(self, store, repo_files):
        stats = CodeGraphPipeline(store=store).ingest(repo_files)

        store.replace_graph.assert_called_once()
        nodes, relationships = store.replace_graph.call_args.args
        assert len(list(nodes)) == stats.node_count
        assert len(relationships) == stats.edge_count

        indexes = [call.args[1] for call in store.create_keyword_index.call_args_list]
        assert indexes == ["file_fts", "function_fts", "class_fts", "method_fts"]

    def test_store_failure_is_fatal(self, store, repo_files):
        store.replace_graph.side_effect = GraphStoreError("write failed")
        with pytest.raises(FatalIngestionError):
            CodeGraphPipeline(store=store).ingest(repo_files)
        store.create_keyword_index.assert_not_called()

    def test_missing_store_is_fatal(self, repo_files):
        with pytest.raises(FatalIngestionError):
            CodeGraphPipeline().ingest(repo_files)

    def test_index_failure_is_not_fatal(self, store, repo_files):
        store.create_keyword_index.side_effect = GraphStoreError("no fulltext support")
        stats = CodeGraphPipeline(store=store).ingest(repo_files)
        assert stats.files_extracted == 3

    def test_embeddings_indexed_when_enabled(self, store, repo_files):
        semantic = MagicMock()
        config = IngestionConfig(index_embeddings=True)
        CodeGraphPipeline(store=store, semantic=semantic, config=config).ingest(repo_files)
        semantic.index_symbols.assert_called_once()

    def test_embeddings_skipped_by_default(self, store, repo_files):
        semantic = MagicMock()
        CodeGraphPipeline(store=store, semantic=semantic).ingest(repo_files)
        semantic.index_symbols.assert_not_called()

    def test_ingest_directory(self, store, tmp_path):
        for path, content in REPO.items():
            target = tmp_path / path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        (tmp_path / "node_modules").mkdir()
        (tmp_path / "node_modules" / "lib.js").write_text("function vendored() {}\n")

        stats = CodeGraphPipeline(store=store).ingest_directory(tmp_path)
        assert stats.files_total == 3
        assert stats.process_count == 2

    def test_unreadable_files_are_counted_as_skipped(self, store, tmp_path):
        for path, content in REPO.items():
            target = tmp_path / path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        (tmp_path / "app" / "legacy.py").write_bytes(b"# caf\xe9\ndef old():\n    pass\n")

        stats = CodeGraphPipeline(store=store).ingest_directory(tmp_path)
        assert stats.files_total == 4
        assert stats.files_extracted == 3
        assert stats.files_skipped == 1
