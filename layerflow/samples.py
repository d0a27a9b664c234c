"""Sample flow networks used by the command-line demo and the test suite.

Every builder returns ``(source, sink, network)`` with fresh payloads.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Tuple

from layerflow.algorithms.types import FlowNetwork, KarzanovArc, KarzanovNode
from layerflow.graph.network import GraphNetwork, NodeId

SampleNetwork = Tuple[NodeId, NodeId, FlowNetwork]


def build_network(
    num_nodes: int, arcs: List[Tuple[NodeId, NodeId, int]]
) -> FlowNetwork:
    """Build a flow network from a node count and ``(from, into, capacity)`` arcs."""
    network: FlowNetwork = GraphNetwork()
    network.add_nodes(KarzanovNode() for _ in range(num_nodes))
    network.bulk_connect((u, v, KarzanovArc(cap)) for u, v, cap in arcs)
    return network


def network_instance1() -> SampleNetwork:
    # Max flow 5: the arcs into 5 carry 3 + 2.
    return 0, 5, build_network(
        6,
        [
            (0, 1, 2),
            (0, 2, 3),
            (1, 3, 2),
            (2, 3, 4),
            (2, 4, 2),
            (3, 5, 3),
            (4, 5, 2),
        ],
    )


def network_instance2() -> SampleNetwork:
    # Layers: [0] [3, 1] [2, 4, 6] [5, 7] [8]; arc 3->1 stays inside layer 1.
    return 0, 8, build_network(
        9,
        [
            (0, 1, 1),
            (0, 3, 8),
            (1, 2, 2),
            (1, 4, 1),
            (2, 5, 1),
            (3, 1, 4),
            (3, 4, 2),
            (3, 6, 4),
            (4, 5, 3),
            (5, 8, 4),
            (6, 7, 2),
            (6, 5, 1),
            (7, 8, 2),
        ],
    )


def network_instance3() -> SampleNetwork:
    # 0 -[1]-> 1 -[2]-> 2
    return 0, 2, build_network(3, [(0, 1, 1), (1, 2, 2)])


def network_instance4() -> SampleNetwork:
    # 0 -[1]-> 1
    return 0, 1, build_network(2, [(0, 1, 1)])


SAMPLE_NETWORKS: Dict[int, Callable[[], SampleNetwork]] = {
    1: network_instance1,
    2: network_instance2,
    3: network_instance3,
    4: network_instance4,
}
