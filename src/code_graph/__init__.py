"""
Code Graph - knowledge graph of a source repository.

This package contains modules for:
- Extracting definitions and references with tree-sitter (parsers)
- Assembling the typed graph and persisting it (graph)
- Community detection and process extraction (analysis)
- Hybrid keyword + semantic search and graph exploration (retrieval)
"""

from .pipeline import CodeGraphPipeline, PipelineResult
from .repo_loader import RepoFile, RepositoryLoader
from .graph.schema import describe_schema

__version__ = "0.1.0"

__all__ = [
    'CodeGraphPipeline',
    'PipelineResult',
    'RepoFile',
    'RepositoryLoader',
    'describe_schema',
]
