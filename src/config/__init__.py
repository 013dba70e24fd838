"""
Unified configuration module for the code graph.

All configuration classes in one place:
- IngestionConfig: Extraction, community detection and process tracing
- SearchConfig: Hybrid search and rank fusion
- Neo4jConfig: Graph store connection
- WeaviateConfig: Vector store connection

Usage:
    from src.config import SearchConfig, IngestionConfig

    config = SearchConfig(top_k=20, fusion_method="weighted")
"""

import os
from pathlib import Path

from .base import BaseConfig
from .search import SearchConfig, FusionMethod
from .ingestion import IngestionConfig, ExtractionConfig, CommunityConfig, ProcessConfig
from .database import Neo4jConfig, WeaviateConfig

# =============================================================================
# Path constants
# =============================================================================
PROJECT_ROOT = Path(__file__).parent.parent.parent
OUTPUTS_DIR = Path(os.environ.get("CODEGRAPH_OUTPUTS_DIR", PROJECT_ROOT / "outputs"))

# Directories are created lazily by setup_logging()

__all__ = [
    # Config classes
    'BaseConfig',
    'SearchConfig',
    'FusionMethod',
    'IngestionConfig',
    'ExtractionConfig',
    'CommunityConfig',
    'ProcessConfig',
    'Neo4jConfig',
    'WeaviateConfig',
    # Path constants
    'PROJECT_ROOT',
    'OUTPUTS_DIR',
]
