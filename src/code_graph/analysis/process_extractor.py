"""
Process extraction - execution flows traced from entry points.

An entry point is a symbol that nothing else in the repository calls but
that calls at least one other symbol. From each entry point an iterative
depth-first walk follows outgoing CALLS edges; every visited symbol becomes
a numbered step of the flow.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..graph.graph_builder import KnowledgeGraph
from ..graph.models import (
    GraphRelationship,
    NodeType,
    ProcessNode,
    RelationshipType,
    SymbolNode,
    create_node_id,
)
from .naming import split_identifier
from src.config import ProcessConfig
from src.logger import get_logger


logger = get_logger(__name__)

HTTP_TOKENS = frozenset({'route', 'router', 'handler', 'endpoint', 'controller', 'view', 'api'})
HTTP_VERBS = frozenset({'get', 'post', 'put', 'patch', 'delete'})


class ProcessType:
    HTTP_HANDLER = "http_handler"
    CLI_COMMAND = "cli_command"
    EVENT_LISTENER = "event_listener"
    UNKNOWN = "unknown"


def classify_entry_point(name: str) -> str:
    """
    Guess what kind of entry point a symbol is from its name.

    Examples:
        - "user_route", "OrderController", "post_comment", "handleLoginRequest" -> http_handler
        - "main", "cli", "migrate_command", "cmd_sync", "run_export" -> cli_command
        - "onClick", "on_message", "UserListener", "order_event", "subscribeAll" -> event_listener
    """
    tokens = split_identifier(name)
    if not tokens:
        return ProcessType.UNKNOWN
    first, last = tokens[0], tokens[-1]

    if HTTP_TOKENS.intersection(tokens):
        return ProcessType.HTTP_HANDLER
    if first in HTTP_VERBS and len(tokens) > 1:
        return ProcessType.HTTP_HANDLER
    if first == 'handle' and last == 'request':
        return ProcessType.HTTP_HANDLER

    if name.lower() in ('main', 'cli'):
        return ProcessType.CLI_COMMAND
    if last == 'command' or (first in ('cmd', 'run') and len(tokens) > 1):
        return ProcessType.CLI_COMMAND

    if first == 'on' and len(tokens) > 1:
        return ProcessType.EVENT_LISTENER
    if last in ('listener', 'event') or first.startswith('subscribe'):
        return ProcessType.EVENT_LISTENER

    return ProcessType.UNKNOWN


@dataclass
class TracedProcess:
    """One traced flow: ordered symbol ids starting at the entry point."""
    process_id: str
    label: str
    process_type: str
    steps: List[str]

    @property
    def entry_point_id(self) -> str:
        return self.steps[0]

    @property
    def terminal_id(self) -> str:
        return self.steps[-1]


@dataclass
class ProcessResult:
    """Derived process overlay."""
    nodes: List[ProcessNode] = field(default_factory=list)
    relationships: List[GraphRelationship] = field(default_factory=list)
    processes: List[TracedProcess] = field(default_factory=list)
    entry_point_count: int = 0


class ProcessExtractor:
    """Finds entry points and traces bounded execution flows from them."""

    def __init__(self, config: Optional[ProcessConfig] = None):
        self.config = config or ProcessConfig()

    def extract(self, graph: KnowledgeGraph) -> ProcessResult:
        """
        Extract processes from a knowledge graph.

        Args:
            graph: Assembled graph (not mutated)

        Returns:
            ProcessResult with Process nodes and STEP_IN_PROCESS edges
        """
        symbols: Dict[str, SymbolNode] = {s.id: s for s in graph.symbols()}

        # Call graph between symbols, edges in creation order
        outgoing: Dict[str, List[str]] = defaultdict(list)
        called = set()
        for rel in graph.relationships_of(RelationshipType.CALLS):
            if rel.source_id not in symbols or rel.target_id not in symbols:
                continue
            if rel.source_id == rel.target_id:
                continue
            outgoing[rel.source_id].append(rel.target_id)
            called.add(rel.target_id)

        entry_points = [
            symbol_id for symbol_id in symbols
            if symbol_id not in called and outgoing.get(symbol_id)
        ]

        result = ProcessResult(entry_point_count=len(entry_points))
        for entry in entry_points:
            if self.config.max_processes and len(result.processes) >= self.config.max_processes:
                logger.info(f"Process cap reached ({self.config.max_processes}), "
                            f"{len(entry_points) - len(result.processes)} entry points skipped")
                break

            steps = self.trace(entry, outgoing)
            process_id = create_node_id(NodeType.PROCESS, entity_name=f"proc_{len(result.processes)}")
            entry_name = symbols[entry].name
            if len(steps) > 1:
                label = f"{entry_name} → {symbols[steps[-1]].name}"
            else:
                label = entry_name

            process = TracedProcess(
                process_id=process_id,
                label=label,
                process_type=classify_entry_point(entry_name),
                steps=steps,
            )
            result.processes.append(process)
            result.nodes.append(ProcessNode(
                id=process_id,
                name=label,
                label_text=label,
                process_type=process.process_type,
                step_count=len(steps),
                entry_point_id=process.entry_point_id,
                terminal_id=process.terminal_id,
            ))
            for step, symbol_id in enumerate(steps, start=1):
                result.relationships.append(GraphRelationship(
                    type=RelationshipType.STEP_IN_PROCESS,
                    source_id=symbol_id,
                    target_id=process_id,
                    properties={'step': step},
                ))

        logger.info(
            f"Extracted {len(result.processes)} processes from {len(entry_points)} entry points"
        )
        return result

    def trace(self, entry: str, outgoing: Dict[str, List[str]]) -> List[str]:
        """
        Depth-first walk from an entry point with an explicit stack.

        Each symbol is visited at most once per walk, so cycles end the
        branch. The walk stops at `max_steps` steps and does not expand
        symbols at depth `max_depth` (the entry point has depth 1).

        Returns:
            Symbol ids in visit order
        """
        steps: List[str] = []
        visited = set()
        stack = [(entry, 1)]

        while stack and len(steps) < self.config.max_steps:
            node, depth = stack.pop()
            if node in visited:
                continue
            visited.add(node)
            steps.append(node)

            if depth >= self.config.max_depth:
                continue
            # Reversed so the first outgoing call is visited first
            for target in reversed(outgoing.get(node, [])):
                if target not in visited:
                    stack.append((target, depth + 1))

        return steps
