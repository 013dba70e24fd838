"""
Ingestion configuration: extraction, community detection and process tracing.
"""

from dataclasses import dataclass, field, fields, is_dataclass
from typing import Dict, Any, List

from .base import BaseConfig


@dataclass
class ExtractionConfig(BaseConfig):
    """
    Source extraction settings.

    Attributes:
        max_workers: Threads used to extract files in parallel
        max_file_size: Files larger than this (bytes) are skipped
        max_symbol_content: Characters of source kept on a symbol for keyword search
        extensions: File extensions considered source code
    """
    max_workers: int = 8
    max_file_size: int = 512 * 1024
    max_symbol_content: int = 4000
    extensions: List[str] = field(default_factory=lambda: [
        '.py', '.pyi',
        '.js', '.jsx', '.mjs', '.cjs',
        '.ts', '.mts', '.cts', '.tsx',
    ])


@dataclass
class CommunityConfig(BaseConfig):
    """
    Louvain community detection settings.

    Attributes:
        same_file_affinity: Extra weight between connected symbols of one file
        max_passes: Local-moving passes per level
        max_levels: Aggregation levels
        min_modularity_gain: Smallest modularity improvement that counts
        emit_isolated: Persist singleton communities for isolated symbols
    """
    same_file_affinity: float = 0.5
    max_passes: int = 20
    max_levels: int = 10
    min_modularity_gain: float = 1e-7
    emit_isolated: bool = False


@dataclass
class ProcessConfig(BaseConfig):
    """
    Execution-flow tracing settings.

    Attributes:
        max_depth: Maximum call depth followed from an entry point
        max_steps: Maximum steps in one process
        max_processes: Maximum processes emitted per run (0 = unlimited)
    """
    max_depth: int = 10
    max_steps: int = 30
    max_processes: int = 0


@dataclass
class IngestionConfig(BaseConfig):
    """Top-level ingestion settings."""
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    community: CommunityConfig = field(default_factory=CommunityConfig)
    process: ProcessConfig = field(default_factory=ProcessConfig)
    create_keyword_indexes: bool = True
    index_embeddings: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IngestionConfig':
        """Create config from a (possibly nested) dictionary."""
        kwargs = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            default = f.default_factory() if callable(f.default_factory) else None
            if is_dataclass(default) and isinstance(value, dict):
                value = type(default).from_dict(value)
            kwargs[f.name] = value
        return cls(**kwargs)

    @classmethod
    def from_env(cls, prefix: str = "CODEGRAPH_") -> 'IngestionConfig':
        """
        Load from prefixed environment variables.

        Sections use their own prefix (CODEGRAPH_PROCESS_MAX_DEPTH), top-level
        flags the bare one (CODEGRAPH_INDEX_EMBEDDINGS).
        """
        sections = {
            'extraction': ExtractionConfig.from_env(f"{prefix}EXTRACTION_"),
            'community': CommunityConfig.from_env(f"{prefix}COMMUNITY_"),
            'process': ProcessConfig.from_env(f"{prefix}PROCESS_"),
        }
        return cls(**sections, **cls.env_values(prefix, exclude=sections))
