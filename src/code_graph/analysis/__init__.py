"""
Graph analyzers.

Derived overlays computed from the assembled graph:
- CommunityDetector: functional clusters (Community nodes, MEMBER_OF)
- ProcessExtractor: execution flows (Process nodes, STEP_IN_PROCESS)
"""

from .community_detector import CommunityDetector, CommunityResult, build_symbol_graph
from .process_extractor import (
    ProcessExtractor,
    ProcessResult,
    ProcessType,
    TracedProcess,
    classify_entry_point,
)

__all__ = [
    'CommunityDetector',
    'CommunityResult',
    'build_symbol_graph',
    'ProcessExtractor',
    'ProcessResult',
    'ProcessType',
    'TracedProcess',
    'classify_entry_point',
]
