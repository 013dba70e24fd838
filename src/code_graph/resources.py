"""
YAML renderings of the read APIs.

Lightweight text views for agents:
- codegraph://context          overview stats
- codegraph://clusters         all clusters
- codegraph://processes        all processes
- codegraph://schema           node/edge schema
- codegraph://cluster/{name}   cluster detail
- codegraph://process/{name}   process trace
"""

from typing import Any, Dict, List

import yaml

from .errors import EntityNotFoundError
from .graph.schema import describe_schema
from .retrieval.explorer import GraphExplorer
from src.logger import get_logger


logger = get_logger(__name__)

URI_PREFIX = "codegraph://"
MAX_MEMBERS = 20
LIST_LIMIT = 50


def _dump(data: Any) -> str:
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False).rstrip('\n')


def _percent(value: float) -> str:
    return f"{value * 100:.0f}%"


def render_context(explorer: GraphExplorer, project_name: str) -> str:
    """Codebase overview."""
    stats = explorer.overview()
    return _dump({
        'project': project_name,
        'stats': stats,
        'resources_available': [
            f"{URI_PREFIX}clusters: All clusters",
            f"{URI_PREFIX}processes: All processes",
            f"{URI_PREFIX}schema: Graph schema",
            f"{URI_PREFIX}cluster/{{name}}: Cluster details",
            f"{URI_PREFIX}process/{{name}}: Process trace",
        ],
    })


def render_clusters(explorer: GraphExplorer, limit: int = LIST_LIMIT) -> str:
    clusters = explorer.list_clusters(limit=limit)
    if not clusters:
        return "clusters: []\n# No clusters detected"
    entries: List[Dict[str, Any]] = []
    for cluster in clusters:
        entry: Dict[str, Any] = {'name': cluster.label, 'symbols': cluster.symbol_count}
        if cluster.cohesion:
            entry['cohesion'] = _percent(cluster.cohesion)
        entries.append(entry)
    return _dump({'clusters': entries})


def render_processes(explorer: GraphExplorer, limit: int = LIST_LIMIT) -> str:
    processes = explorer.list_processes(limit=limit)
    if not processes:
        return "processes: []\n# No processes detected"
    return _dump({'processes': [
        {'name': p.label, 'type': p.process_type, 'steps': p.step_count}
        for p in processes
    ]})


def render_schema() -> str:
    return "# Code graph schema\n\n" + _dump(describe_schema())


def render_cluster_detail(explorer: GraphExplorer, name: str) -> str:
    """Cluster detail; members capped at MAX_MEMBERS."""
    try:
        cluster = explorer.get_cluster_detail(name)
    except EntityNotFoundError as e:
        return _dump({'error': str(e)})

    data: Dict[str, Any] = {'name': cluster.label, 'symbols': cluster.symbol_count}
    if cluster.cohesion:
        data['cohesion'] = _percent(cluster.cohesion)
    if cluster.members:
        data['members'] = [
            {'name': m.name, 'type': m.type, 'file': m.file_path}
            for m in cluster.members[:MAX_MEMBERS]
        ]
    text = _dump(data)
    if len(cluster.members) > MAX_MEMBERS:
        text += f"\n  # ... and {len(cluster.members) - MAX_MEMBERS} more"
    return text


def render_process_detail(explorer: GraphExplorer, name: str) -> str:
    """Process trace, one line per step."""
    try:
        process = explorer.get_process_detail(name)
    except EntityNotFoundError as e:
        return _dump({'error': str(e)})

    data: Dict[str, Any] = {
        'name': process.label,
        'type': process.process_type,
        'step_count': process.step_count,
    }
    if process.steps:
        data['trace'] = {s.step: f"{s.symbol_name} ({s.file_path})" for s in process.steps}
    return _dump(data)


def read_resource(uri: str, explorer: GraphExplorer, project_name: str = "repository") -> str:
    """
    Render a resource by URI.

    Raises:
        ValueError: For an unknown URI
    """
    if not uri.startswith(URI_PREFIX):
        raise ValueError(f"Unknown resource: {uri}")
    path = uri[len(URI_PREFIX):]

    if path == 'context':
        return render_context(explorer, project_name)
    if path == 'clusters':
        return render_clusters(explorer)
    if path == 'processes':
        return render_processes(explorer)
    if path == 'schema':
        return render_schema()
    if path.startswith('cluster/'):
        return render_cluster_detail(explorer, path[len('cluster/'):])
    if path.startswith('process/'):
        return render_process_detail(explorer, path[len('process/'):])
    raise ValueError(f"Unknown resource: {uri}")
