"""
Pydantic models for results exposed by the code graph.

These models define the shape of ingestion stats, cluster/process
details and search hits returned to consumers.
"""

from typing import List, Dict, Tuple
from pydantic import BaseModel, Field


# ============================================================================
# Ingestion
# ============================================================================

class IngestStats(BaseModel):
    """Summary of one ingestion run."""

    node_count: int = Field(..., description="Nodes in the persisted graph")
    edge_count: int = Field(..., description="Relationships in the persisted graph")
    community_count: int = Field(default=0, description="Community nodes")
    process_count: int = Field(default=0, description="Process nodes")
    files_total: int = Field(default=0, description="Files handed to the pipeline")
    files_extracted: int = Field(default=0, description="Files parsed successfully")
    files_skipped: int = Field(default=0, description="Files that failed to parse")
    unresolved_references: Dict[str, int] = Field(
        default_factory=dict,
        description="Dropped references by kind (import, call, extends, implements)"
    )
    modularity: float = Field(default=0.0, description="Modularity of the community partition")

    class Config:
        json_schema_extra = {
            "example": {
                "node_count": 412,
                "edge_count": 1290,
                "community_count": 18,
                "process_count": 25,
                "files_total": 60,
                "files_extracted": 59,
                "files_skipped": 1,
                "unresolved_references": {"import": 40, "call": 310, "extends": 2, "implements": 0},
                "modularity": 0.61
            }
        }


# ============================================================================
# Clusters
# ============================================================================

class ClusterMember(BaseModel):
    """Symbol belonging to a community."""

    id: str
    name: str
    type: str = Field(..., description="Function, Class, Interface or Method")
    file_path: str


class ClusterSummary(BaseModel):
    """Community as listed in an overview."""

    id: str
    label: str
    cohesion: float = Field(..., ge=0.0, le=1.0)
    symbol_count: int


class ClusterDetail(BaseModel):
    """Community with its members."""

    id: str
    label: str
    cohesion: float = Field(..., ge=0.0, le=1.0)
    symbol_count: int
    members: List[ClusterMember] = Field(default_factory=list)


# ============================================================================
# Processes
# ============================================================================

class ProcessStep(BaseModel):
    """One step of an execution flow."""

    step: int = Field(..., ge=1)
    symbol_name: str
    file_path: str

    def as_tuple(self) -> Tuple[int, str, str]:
        return self.step, self.symbol_name, self.file_path


class ProcessSummary(BaseModel):
    """Process as listed in an overview."""

    id: str
    label: str
    process_type: str
    step_count: int


class ProcessDetail(BaseModel):
    """Process with its ordered steps."""

    id: str
    label: str
    process_type: str
    step_count: int
    steps: List[ProcessStep] = Field(default_factory=list)


# ============================================================================
# Search
# ============================================================================

class SearchHit(BaseModel):
    """Single ranked search result."""

    file_path: str = Field(..., description="Repository-relative file path")
    score: float = Field(..., description="Fused relevance score")
    rank: int = Field(..., ge=1, description="Position, 1 is best")

    class Config:
        json_schema_extra = {
            "example": {
                "file_path": "src/auth/session.py",
                "score": 0.0325,
                "rank": 1
            }
        }
