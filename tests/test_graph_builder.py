"""
Tests for graph assembly and name-based reference resolution.
"""

import pytest

from src.code_graph.graph import NodeType, RelationshipType, create_node_id
from src.code_graph.graph.graph_builder import IMPORTED_FILE_CONFIDENCE, SAME_FILE_CONFIDENCE

from tests.helpers import edges, find_symbol


class TestNodesAndDefines:

    def test_file_and_symbol_nodes(self, build_graph):
        graph = build_graph({
            "app/models.py": "class User:\n    def save(self):\n        pass\n",
        })
        assert create_node_id(NodeType.FILE, "app/models.py") in graph.nodes

        user = find_symbol(graph, "app/models.py", "User")
        save = find_symbol(graph, "app/models.py", "save")
        assert user.type == NodeType.CLASS
        assert save.type == NodeType.METHOD
        assert save.enclosing_id == user.id

    def test_every_symbol_has_one_defines_edge(self, build_graph):
        graph = build_graph({
            "a.py": "def one():\n    pass\n\ndef two():\n    one()\n",
            "b.py": "class Thing:\n    pass\n",
        })
        defines = edges(graph, RelationshipType.DEFINES)
        targets = [target for _, target in defines]
        assert sorted(targets) == sorted(s.id for s in graph.symbols())

        file_id = create_node_id(NodeType.FILE, "a.py")
        assert (file_id, find_symbol(graph, "a.py", "two").id) in defines

    def test_symbol_content_is_source_slice(self, build_graph):
        graph = build_graph({"a.py": "def one():\n    return 1\n"})
        assert find_symbol(graph, "a.py", "one").content == "def one():\n    return 1"

    def test_file_properties(self, build_graph):
        graph = build_graph({"a.py": "x = 1\ny = 2\n"})
        node = graph.nodes[create_node_id(NodeType.FILE, "a.py")]
        assert node.properties["language"] == "python"
        assert node.properties["line_count"] == 2


class TestCallResolution:
    """Same file first, then imported files; everything else is dropped."""

    def test_same_file_wins_over_unimported_file(self, build_graph):
        graph = build_graph({
            "a.py": "def foo():\n    pass\n\ndef main():\n    foo()\n",
            "b.py": "def foo():\n    pass\n",
        })
        main = find_symbol(graph, "a.py", "main")
        local_foo = find_symbol(graph, "a.py", "foo")

        calls = graph.relationships_of(RelationshipType.CALLS)
        assert [(r.source_id, r.target_id) for r in calls] == [(main.id, local_foo.id)]
        assert calls[0].confidence == SAME_FILE_CONFIDENCE

    def test_same_file_wins_over_imported_file(self, build_graph):
        graph = build_graph({
            "a.py": "import b\n\ndef foo():\n    pass\n\ndef main():\n    foo()\n",
            "b.py": "def foo():\n    pass\n",
        })
        main = find_symbol(graph, "a.py", "main")
        assert (main.id, find_symbol(graph, "a.py", "foo").id) in edges(graph, RelationshipType.CALLS)
        assert (main.id, find_symbol(graph, "b.py", "foo").id) not in edges(graph, RelationshipType.CALLS)

    def test_imported_file_resolves(self, build_graph):
        graph = build_graph({
            "a.py": "import b\n\ndef main():\n    helper()\n",
            "b.py": "def helper():\n    pass\n",
        })
        calls = graph.relationships_of(RelationshipType.CALLS)
        assert len(calls) == 1
        assert calls[0].source_id == find_symbol(graph, "a.py", "main").id
        assert calls[0].target_id == find_symbol(graph, "b.py", "helper").id
        assert calls[0].confidence == IMPORTED_FILE_CONFIDENCE

    def test_unimported_file_is_dropped(self, build_graph):
        graph = build_graph({
            "a.py": "def main():\n    helper()\n",
            "b.py": "def helper():\n    pass\n",
        })
        assert graph.relationships_of(RelationshipType.CALLS) == []
        assert graph.unresolved["call"] == 1

    def test_module_level_call_comes_from_file(self, build_graph):
        graph = build_graph({"a.py": "def main():\n    pass\n\nmain()\n"})
        file_id = create_node_id(NodeType.FILE, "a.py")
        assert edges(graph, RelationshipType.CALLS) == [(file_id, find_symbol(graph, "a.py", "main").id)]

    def test_method_call_is_attributed_to_method(self, build_graph):
        graph = build_graph({
            "a.py": "def util():\n    pass\n\nclass Job:\n    def run(self):\n        util()\n",
        })
        run = find_symbol(graph, "a.py", "run")
        assert edges(graph, RelationshipType.CALLS) == [(run.id, find_symbol(graph, "a.py", "util").id)]

    def test_duplicate_calls_collapse(self, build_graph):
        graph = build_graph({
            "a.py": "def foo():\n    pass\n\ndef main():\n    foo()\n    foo()\n",
        })
        assert len(graph.relationships_of(RelationshipType.CALLS)) == 1

    def test_closest_imported_file_wins(self, build_graph):
        graph = build_graph({
            "pkg/app.py": "import pkg.util\nimport other.deep.util\n\ndef main():\n    helper()\n",
            "pkg/util.py": "def helper():\n    pass\n",
            "other/deep/util.py": "def helper():\n    pass\n",
        })
        main = find_symbol(graph, "pkg/app.py", "main")
        assert edges(graph, RelationshipType.CALLS) == [
            (main.id, find_symbol(graph, "pkg/util.py", "helper").id)
        ]


class TestImportResolution:

    def test_python_relative_import(self, build_graph):
        graph = build_graph({
            "pkg/service.py": "from .models import User\n",
            "pkg/models.py": "class User:\n    pass\n",
        })
        assert edges(graph, RelationshipType.IMPORTS) == [
            (create_node_id(NodeType.FILE, "pkg/service.py"), create_node_id(NodeType.FILE, "pkg/models.py"))
        ]

    def test_python_package_import(self, build_graph):
        graph = build_graph({
            "main.py": "import app.core\n",
            "app/core/__init__.py": "def boot():\n    pass\n",
        })
        assert edges(graph, RelationshipType.IMPORTS) == [
            (create_node_id(NodeType.FILE, "main.py"), create_node_id(NodeType.FILE, "app/core/__init__.py"))
        ]

    def test_python_submodule_from_package_import(self, build_graph):
        graph = build_graph({
            "app/__init__.py": "",
            "app/main.py": "from . import helpers\n\ndef start():\n    helpers.run_job()\n",
            "app/helpers.py": "def run_job():\n    pass\n",
        })
        main_id = create_node_id(NodeType.FILE, "app/main.py")
        assert edges(graph, RelationshipType.IMPORTS) == [
            (main_id, create_node_id(NodeType.FILE, "app/__init__.py")),
            (main_id, create_node_id(NodeType.FILE, "app/helpers.py")),
        ]

        start = find_symbol(graph, "app/main.py", "start")
        run_job = find_symbol(graph, "app/helpers.py", "run_job")
        assert edges(graph, RelationshipType.CALLS) == [(start.id, run_job.id)]
        assert graph.unresolved["call"] == 0

    def test_absolute_submodule_without_package_init(self, build_graph):
        graph = build_graph({
            "main.py": "from app import db\n\ndef go():\n    db.save()\n",
            "app/db.py": "def save():\n    pass\n",
        })
        assert edges(graph, RelationshipType.IMPORTS) == [
            (create_node_id(NodeType.FILE, "main.py"), create_node_id(NodeType.FILE, "app/db.py"))
        ]
        assert graph.unresolved["import"] == 0
        assert len(edges(graph, RelationshipType.CALLS)) == 1

    def test_imported_symbol_name_adds_no_edge(self, build_graph):
        graph = build_graph({
            "pkg/service.py": "from .models import User\n",
            "pkg/models.py": "class User:\n    pass\n",
        })
        assert len(edges(graph, RelationshipType.IMPORTS)) == 1
        assert graph.unresolved["import"] == 0

    def test_python_source_root_import(self, build_graph):
        graph = build_graph({
            "src/app/main.py": "import app.models\n",
            "src/app/models.py": "class User:\n    pass\n",
        })
        assert len(edges(graph, RelationshipType.IMPORTS)) == 1

    def test_external_import_is_unresolved(self, build_graph):
        graph = build_graph({"a.py": "import requests\n"})
        assert edges(graph, RelationshipType.IMPORTS) == []
        assert graph.unresolved["import"] == 1

    def test_typescript_relative_import_and_call(self, build_graph):
        graph = build_graph({
            "src/app.ts": "import { util } from './lib/util';\nimport React from 'react';\n\nexport function main() { util(); }\n",
            "src/lib/util.ts": "export function util() {}\n",
        })
        assert edges(graph, RelationshipType.IMPORTS) == [
            (create_node_id(NodeType.FILE, "src/app.ts"), create_node_id(NodeType.FILE, "src/lib/util.ts"))
        ]
        assert edges(graph, RelationshipType.CALLS) == [
            (find_symbol(graph, "src/app.ts", "main").id, find_symbol(graph, "src/lib/util.ts", "util").id)
        ]
        assert graph.unresolved["import"] == 1

    def test_javascript_index_file(self, build_graph):
        graph = build_graph({
            "web/main.js": "import { api } from './api';\n",
            "web/api/index.js": "export function api() {}\n",
        })
        assert edges(graph, RelationshipType.IMPORTS) == [
            (create_node_id(NodeType.FILE, "web/main.js"), create_node_id(NodeType.FILE, "web/api/index.js"))
        ]

    def test_runtime_extension_maps_to_source(self, build_graph):
        graph = build_graph({
            "src/a.ts": "import { b } from './b.js';\n",
            "src/b.ts": "export function b() {}\n",
        })
        assert len(edges(graph, RelationshipType.IMPORTS)) == 1


class TestHeritage:

    def test_python_extends(self, build_graph):
        graph = build_graph({"a.py": "class Base:\n    pass\n\nclass Child(Base):\n    pass\n"})
        assert edges(graph, RelationshipType.EXTENDS) == [
            (find_symbol(graph, "a.py", "Child").id, find_symbol(graph, "a.py", "Base").id)
        ]

    def test_typescript_implements(self, build_graph):
        graph = build_graph({
            "src/shape.ts": "export interface Shape { area(): number; }\n",
            "src/circle.ts": (
                "import { Shape } from './shape';\n"
                "export class Circle implements Shape {\n"
                "  area(): number { return 1; }\n"
                "}\n"
            ),
        })
        assert edges(graph, RelationshipType.IMPLEMENTS) == [
            (find_symbol(graph, "src/circle.ts", "Circle").id, find_symbol(graph, "src/shape.ts", "Shape").id)
        ]

    def test_unknown_base_is_unresolved(self, build_graph):
        graph = build_graph({"a.py": "class Child(Exception):\n    pass\n"})
        assert edges(graph, RelationshipType.EXTENDS) == []
        assert graph.unresolved["extends"] == 1


class TestDeterminism:

    FILES = {
        "a.py": "import b\n\ndef main():\n    helper()\n    other()\n\ndef other():\n    pass\n",
        "b.py": "def helper():\n    pass\n",
    }

    def test_identical_input_identical_graph(self, build_graph):
        first = build_graph(self.FILES)
        second = build_graph(self.FILES)
        assert list(first.nodes) == list(second.nodes)
        assert [r.to_dict() for r in first.relationships] == [r.to_dict() for r in second.relationships]

    def test_symbol_index(self, build_graph):
        graph = build_graph(self.FILES)
        assert graph.symbol_index["helper"] == (find_symbol(graph, "b.py", "helper").id,)
        with pytest.raises(TypeError):
            graph.symbol_index["helper"] = ()
