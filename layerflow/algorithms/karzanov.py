"""Karzanov's layered preflow maximum-flow algorithm.

The network is first split into breadth-first layers starting at the source.
The algorithm requires the last layer to consist of the sink alone. Each round
then runs two passes over the layers:

  1. ``maximize_outgoing`` pushes as much preflow as capacities allow, layer by
     layer, recording every increase on the receiving node's rollback stack.
  2. ``balance_incoming`` walks the layers backwards, cancels the most recent
     increases into every node holding excess, and closes the arcs into that
     node so later rounds cannot overfill it again.

Rounds restart one layer above the deepest node that needed balancing and stop
once no node is deficient or a round leaves every arc flow unchanged. The
resulting flows are written to the ``KarzanovArc`` payloads in place.

Example:
    >>> network = GraphNetwork()
    >>> network.add_nodes(KarzanovNode() for _ in range(3))
    [0, 1, 2]
    >>> network.bulk_connect([(0, 1, KarzanovArc(1)), (1, 2, KarzanovArc(2))])
    [0, 1]
    >>> maxflow(0, 2, network)
    >>> flow_value(2, network)
    1
"""

from __future__ import annotations

from heapq import heapify, heappop, heappush
from typing import Any, Dict, List, Optional, Tuple

from layerflow.algorithms.types import (
    FlowNetwork,
    FlowSummary,
    KarzanovArc,
    KarzanovNode,
)
from layerflow.config import MAXFLOW_CONFIG, MaxFlowConfig
from layerflow.graph.convert import NodeMap, from_networkx
from layerflow.graph.network import ArcId, GraphNetwork, NodeId, NodeNotFound
from layerflow.logging import get_logger

logger = get_logger(__name__)

Layers = List[List[NodeId]]


class UnsolvableNetworkError(ValueError):
    """The network cannot be layered so that the sink alone forms the last layer."""


class FlowInvariantError(RuntimeError):
    """The algorithm's own bookkeeping reached an impossible state."""


def reset_network(network: FlowNetwork) -> None:
    """Clear rollback stacks and layer marks, zero all flows and reopen all arcs."""
    for _, node in network.node_items():
        node.reset()
    for _, arc in network.arc_items():
        arc.reset()


def group_layers(source: NodeId, sink: NodeId, network: FlowNetwork) -> Layers:
    """Split the network into breadth-first layers starting at ``source``.

    Each layer holds the nodes reachable over one present arc from the
    previous layer that no earlier layer already took. Discovery follows layer
    order, then adjacency order. Afterwards every layer is reordered so
    that the tail of an arc between two nodes of the same layer comes before
    its head; see ``_order_layer``.

    Args:
        source: Node forming layer 0.
        sink: Node that must form the last layer on its own.
        network: Network with freshly reset node payloads.

    Returns:
        List of layers, each a list of node ids.

    Raises:
        NodeNotFound: If ``source`` or ``sink`` is absent.
        UnsolvableNetworkError: If the last layer is not exactly ``[sink]``.
    """
    if not network.is_node_in(source):
        raise NodeNotFound(source)
    if not network.is_node_in(sink):
        raise NodeNotFound(sink)

    network.node_data(source).grouped = True
    layers: Layers = [[source]]
    while True:
        next_layer: List[NodeId] = []
        for node in layers[-1]:
            for head, _ in network.from_node(node):
                head_data = network.node_data(head)
                if head_data.grouped:
                    continue
                head_data.grouped = True
                next_layer.append(head)
        if not next_layer:
            break
        layers.append(next_layer)

    if layers[-1] != [sink]:
        msg = (
            f"Cannot layer network from {source} to {sink}: "
            f"last layer is {layers[-1]}, expected [{sink}]"
        )
        logger.error(msg)
        raise UnsolvableNetworkError(msg)

    layers = [_order_layer(layer, network) for layer in layers]

    logger.debug(f"Layers from {source} to {sink}: {layers}")
    return layers


def _order_layer(layer: List[NodeId], network: FlowNetwork) -> List[NodeId]:
    """Topologically order one layer by the arcs joining its own nodes.

    Kahn's algorithm with the discovery position as priority, so nodes not
    linked by same-layer arcs keep their discovery order. When a same-layer
    cycle leaves no node free, the earliest remaining node is released.
    """
    position = {node: index for index, node in enumerate(layer)}
    successors: Dict[NodeId, List[NodeId]] = {node: [] for node in layer}
    indegree = dict.fromkeys(layer, 0)
    for node in layer:
        for head, _ in network.from_node(node):
            if head in position and head != node:
                successors[node].append(head)
                indegree[head] += 1

    ready = [position[node] for node in layer if indegree[node] == 0]
    heapify(ready)
    ordered: List[NodeId] = []
    placed = set()
    while len(ordered) < len(layer):
        if not ready:
            # cycle
            ready.append(min(position[n] for n in layer if n not in placed))
        node = layer[heappop(ready)]
        placed.add(node)
        ordered.append(node)
        for head in successors[node]:
            indegree[head] -= 1
            if indegree[head] == 0 and head not in placed:
                heappush(ready, position[head])
    return ordered


def incoming_flux(node: NodeId, network: FlowNetwork) -> int:
    """Sum of flow over the present arcs entering ``node``."""
    return sum(network.arc_data(arc).flow for _, arc in network.into_node(node))


def outgoing_flux(node: NodeId, network: FlowNetwork) -> int:
    """Sum of flow over the present arcs leaving ``node``."""
    return sum(network.arc_data(arc).flow for _, arc in network.from_node(node))


def _record_increase(
    network: FlowNetwork, head: NodeId, arc_id: ArcId, delta: int
) -> None:
    if delta > 0:
        network.node_data(head).stack.append((arc_id, delta))


def maximize_outgoing(layers: Layers, start_layer: int, network: FlowNetwork) -> None:
    """Push preflow forward from ``start_layer`` to the last layer.

    The source's outgoing arcs are saturated first, whatever ``start_layer``
    is. Then every node of the selected layers hands its incoming flux to its
    open, unsaturated outgoing arcs in adjacency order, each taking as much as
    its capacity allows. Closed and saturated arcs keep their flow and count
    against the flux. An arc left with nothing to take gets flow 0.

    Args:
        layers: Output of ``group_layers``.
        start_layer: First layer to redistribute; values below 1 mean 1.
        network: Network being solved.
    """
    source = layers[0][0]
    for head, arc_id in network.from_node(source):
        arc = network.arc_data(arc_id)
        delta = arc.capacity - arc.flow
        arc.flow = arc.capacity
        _record_increase(network, head, arc_id, delta)

    for layer in layers[max(start_layer, 1) :]:
        for node in layer:
            flux_in = incoming_flux(node, network)
            out_arcs = [
                (head, arc_id, network.arc_data(arc_id))
                for head, arc_id in network.from_node(node)
            ]

            consumed = sum(
                arc.flow for _, _, arc in out_arcs if not arc.open or arc.saturated
            )

            for head, arc_id, arc in out_arcs:
                if not arc.open or arc.saturated:
                    continue
                available = flux_in - consumed
                if available <= 0:
                    arc.flow = 0
                    continue
                preflow = min(arc.capacity, available)
                delta = preflow - arc.flow
                arc.flow = preflow
                consumed += preflow
                _record_increase(network, head, arc_id, delta)


def balance_incoming(layers: Layers, network: FlowNetwork) -> Optional[int]:
    """Cancel excess preflow, walking from the deepest inner layer to layer 1.

    The source and sink layers are not visited. A node whose incoming flux
    exceeds its outgoing flux pops its rollback stack, lowering the most
    recently raised incoming arcs until both fluxes match, and then closes all
    of its incoming arcs.

    Args:
        layers: Output of ``group_layers``.
        network: Network being solved.

    Returns:
        The layer to restart the forward pass from (one above the deepest
        deficient layer), or None if no node held excess.

    Raises:
        FlowInvariantError: If a node has less incoming than outgoing flux,
            if its stack runs out before it is balanced, or if a rollback
            would take an arc's flow below zero.
    """
    deepest_deficient: Optional[int] = None

    for depth in range(len(layers) - 2, 0, -1):
        for node in layers[depth]:
            flux_out = outgoing_flux(node, network)
            flux_in = incoming_flux(node, network)
            if flux_in == flux_out:
                continue
            if flux_in < flux_out:
                raise FlowInvariantError(
                    f"Node {node} in layer {depth} sends {flux_out} "
                    f"but receives only {flux_in}"
                )

            if deepest_deficient is None:
                deepest_deficient = depth

            stack = network.node_data(node).stack
            while flux_in > flux_out:
                if not stack:
                    raise FlowInvariantError(
                        f"Rollback stack of node {node} exhausted with "
                        f"{flux_in - flux_out} excess left"
                    )
                arc_id, delta = stack.pop()
                arc = network.arc_data(arc_id)
                decrease = min(delta, flux_in - flux_out)
                if decrease > arc.flow:
                    raise FlowInvariantError(
                        f"Rollback of {decrease} on arc {arc_id} exceeds its "
                        f"flow {arc.flow}"
                    )
                arc.flow -= decrease
                flux_in -= decrease

            for _, arc_id in network.into_node(node):
                network.arc_data(arc_id).open = False

    if deepest_deficient is None:
        return None
    return deepest_deficient - 1


def _flow_snapshot(network: FlowNetwork) -> Dict[ArcId, int]:
    return {arc_id: arc.flow for arc_id, arc in network.arc_items()}


def maxflow(
    source: NodeId,
    sink: NodeId,
    network: FlowNetwork,
    *,
    config: Optional[MaxFlowConfig] = None,
) -> None:
    """Compute a maximum flow from ``source`` to ``sink`` in place.

    All node and arc payload state is reset first. On return every arc's
    ``flow`` holds its share of the maximum flow; read the value with
    ``flow_value``. Node and arc ids are left untouched.

    Args:
        source: Source node.
        sink: Sink node.
        network: Network with ``KarzanovNode``/``KarzanovArc`` payloads.
        config: Loop settings. Defaults to ``MAXFLOW_CONFIG``.

    Raises:
        NodeNotFound: If ``source`` or ``sink`` is absent.
        UnsolvableNetworkError: If the network cannot be layered with the sink
            alone in the last layer.
        FlowInvariantError: On an internal consistency violation, or when the
            configured round cap is exceeded.
    """
    config = config or MAXFLOW_CONFIG

    reset_network(network)
    layers = group_layers(source, sink, network)

    start_layer = 0
    snapshot: Dict[ArcId, int] = {}
    rounds = 0
    while True:
        rounds += 1
        if config.exceeded(rounds):
            raise FlowInvariantError(
                f"Max flow from {source} to {sink} did not settle within "
                f"{config.max_rounds} rounds"
            )

        maximize_outgoing(layers, start_layer, network)
        restart = balance_incoming(layers, network)
        if restart is None:
            logger.debug(f"Round {rounds}: no deficient node left")
            break
        start_layer = restart

        current = _flow_snapshot(network)
        if current == snapshot:
            logger.debug(f"Round {rounds}: flows unchanged, stopping")
            break
        snapshot = current
        logger.debug(f"Round {rounds}: restarting from layer {start_layer}")

    logger.debug(
        f"Max flow from {source} to {sink}: {flow_value(sink, network)} "
        f"after {rounds} round(s)"
    )


def flow_value(sink: NodeId, network: FlowNetwork) -> int:
    """Return the total flow entering ``sink``."""
    return incoming_flux(sink, network)


def flow_summary(source: NodeId, sink: NodeId, network: FlowNetwork) -> FlowSummary:
    """Summarize the flow currently stored on the network.

    Call after ``maxflow``. Reachability is taken in the residual network:
    forward along arcs with capacity left and backward along arcs carrying
    flow. ``min_cut`` lists the saturated arcs leaving the reachable side.

    Args:
        source: Source node of the computation.
        sink: Sink node of the computation.
        network: Solved network.

    Returns:
        FlowSummary: Flow value, per-arc flow and residual, cut information.
    """
    arc_flow: Dict[ArcId, int] = {}
    residual_cap: Dict[ArcId, int] = {}
    for arc_id, _, _ in network.arcs():
        arc = network.arc_data(arc_id)
        arc_flow[arc_id] = arc.flow
        residual_cap[arc_id] = arc.residual

    reachable = set()
    stack = [source]
    while stack:
        node = stack.pop()
        if node in reachable:
            continue
        reachable.add(node)
        for head, arc_id in network.from_node(node):
            if residual_cap[arc_id] > 0 and head not in reachable:
                stack.append(head)
        for tail, arc_id in network.into_node(node):
            if arc_flow[arc_id] > 0 and tail not in reachable:
                stack.append(tail)

    min_cut = [
        arc_id
        for arc_id, from_node, into_node in network.arcs()
        if from_node in reachable
        and into_node not in reachable
        and residual_cap[arc_id] == 0
    ]

    return FlowSummary(
        total_flow=flow_value(sink, network),
        arc_flow=arc_flow,
        residual_cap=residual_cap,
        reachable=reachable,
        min_cut=min_cut,
    )


def flow_network_from_networkx(
    G: Any,
    *,
    capacity_attr: str = "capacity",
    default_capacity: int = 1,
) -> Tuple[FlowNetwork, NodeMap]:
    """Build a flow network from a NetworkX graph.

    Args:
        G: NetworkX graph; see ``layerflow.graph.convert.from_networkx``.
        capacity_attr: Edge attribute holding the capacity.
        default_capacity: Capacity for edges without ``capacity_attr``.

    Returns:
        Tuple of the network and the NodeMap from node names to ids.

    Raises:
        ValueError: If a capacity is not a whole number, such as ``2.5``.
    """

    def make_arc(u: Any, v: Any, attrs: Dict[str, Any]) -> KarzanovArc:
        capacity = attrs.get(capacity_attr, default_capacity)
        if not float(capacity).is_integer():
            raise ValueError(
                f"Capacity {capacity!r} of edge {u!r} -> {v!r} is not an integer"
            )
        return KarzanovArc(int(capacity))

    network, node_map = from_networkx(G, lambda name, attrs: KarzanovNode(), make_arc)
    return network, node_map

