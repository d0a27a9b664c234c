"""layerflow: stable-id graph container and layered preflow max-flow.

layerflow provides a directed multigraph whose node and arc ids survive
deletions (`GraphNetwork`) and Karzanov's layered preflow algorithm for
maximum flow on top of it.

Primary API:
    GraphNetwork - Directed multigraph with tombstone deletion and lazy traversal
    KarzanovNode, KarzanovArc - Payloads carrying max-flow state
    maxflow() - Compute a maximum flow in place
    flow_value(), flow_summary() - Read results back

Example:
    from layerflow import GraphNetwork, KarzanovArc, KarzanovNode, flow_value, maxflow

    net = GraphNetwork()
    net.add_nodes(KarzanovNode() for _ in range(3))
    net.bulk_connect([(0, 1, KarzanovArc(1)), (1, 2, KarzanovArc(2))])
    maxflow(0, 2, net)
    print(flow_value(2, net))  # 1
"""

from __future__ import annotations

from layerflow import cli, logging
from layerflow._version import __version__
from layerflow.algorithms.karzanov import (
    FlowInvariantError,
    UnsolvableNetworkError,
    flow_network_from_networkx,
    flow_summary,
    flow_value,
    maxflow,
)
from layerflow.algorithms.types import (
    FlowNetwork,
    FlowSummary,
    KarzanovArc,
    KarzanovNode,
)
from layerflow.config import MAXFLOW_CONFIG, MaxFlowConfig
from layerflow.graph.convert import NodeMap, from_networkx, to_networkx
from layerflow.graph.network import (
    ArcId,
    ArcNotFound,
    GraphNetwork,
    NodeId,
    NodeNotFound,
)

__all__ = [
    # Version
    "__version__",
    # Graph
    "GraphNetwork",
    "NodeId",
    "ArcId",
    "NodeNotFound",
    "ArcNotFound",
    # Flow
    "KarzanovNode",
    "KarzanovArc",
    "FlowNetwork",
    "FlowSummary",
    "maxflow",
    "flow_value",
    "flow_summary",
    "UnsolvableNetworkError",
    "FlowInvariantError",
    # Configuration
    "MaxFlowConfig",
    "MAXFLOW_CONFIG",
    # Library integrations (NetworkX)
    "NodeMap",
    "from_networkx",
    "to_networkx",
    "flow_network_from_networkx",
    # Utilities
    "cli",
    "logging",
]
