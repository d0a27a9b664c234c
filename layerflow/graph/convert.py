"""Conversion between GraphNetwork and NetworkX graphs.

Only the live part of a `GraphNetwork` is exported: tombstoned nodes and arcs
that are no longer present are skipped. Importing assigns node ids in
``G.nodes()`` order and arc ids in ``G.edges()`` order, so the adjacency log
order of the result follows the NetworkX graph.

Example:
    >>> import networkx as nx
    >>> G = nx.DiGraph()
    >>> G.add_edge("s", "a", capacity=3)
    >>> network, node_map = from_networkx(G, lambda n, d: n, lambda u, v, d: d)
    >>> node_map.to_index["a"]
    1
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

import networkx as nx

from layerflow.graph.network import GraphNetwork, NodeId

AttrDict = Dict[str, Any]


@dataclass
class NodeMap:
    """Bidirectional mapping between external node names and node ids.

    Attributes:
        to_index: Maps original node names to node ids.
        to_name: Maps node ids back to original node names.
    """

    to_index: Dict[Hashable, NodeId] = field(default_factory=dict)
    to_name: Dict[NodeId, Hashable] = field(default_factory=dict)

    @classmethod
    def from_names(cls, names: List[Hashable]) -> "NodeMap":
        """Create a NodeMap from node names listed in id order."""
        to_index = {name: i for i, name in enumerate(names)}
        to_name = {i: name for i, name in enumerate(names)}
        return cls(to_index=to_index, to_name=to_name)

    def __len__(self) -> int:
        return len(self.to_index)


def _default_attr(data: Any) -> AttrDict:
    return {"data": data}


def to_networkx(
    network: GraphNetwork,
    node_attr: Optional[Callable[[Any], AttrDict]] = None,
    arc_attr: Optional[Callable[[Any], AttrDict]] = None,
) -> nx.MultiDiGraph:
    """Export the live view of a network as a NetworkX MultiDiGraph.

    Node keys are node ids and edge keys are arc ids, so results computed on
    the NetworkX side can be mapped straight back.

    Args:
        network: The network to export.
        node_attr: Turns a node payload into an attribute dict. Defaults to
            ``{"data": payload}``.
        arc_attr: Turns an arc payload into an attribute dict. Defaults to
            ``{"data": payload}``.

    Returns:
        nx.MultiDiGraph: A new graph holding live nodes and present arcs.
    """
    node_attr = node_attr or _default_attr
    arc_attr = arc_attr or _default_attr

    nx_graph = nx.MultiDiGraph()
    for node, data in network.node_items():
        nx_graph.add_node(node, **node_attr(data))
    for arc, from_node, into_node in network.arcs():
        nx_graph.add_edge(
            from_node, into_node, key=arc, **arc_attr(network.arc_data(arc))
        )
    return nx_graph


def from_networkx(
    G: Any,
    node_factory: Callable[[Hashable, AttrDict], Any],
    arc_factory: Callable[[Hashable, Hashable, AttrDict], Any],
) -> Tuple[GraphNetwork, NodeMap]:
    """Build a GraphNetwork from any NetworkX graph.

    Undirected graphs contribute one arc per direction for every edge, the
    forward arc first.

    Args:
        G: NetworkX DiGraph, MultiDiGraph, Graph or MultiGraph.
        node_factory: Called with ``(name, attrs)`` to build each node payload.
        arc_factory: Called with ``(u, v, attrs)`` to build each arc payload.

    Returns:
        Tuple of the new network and the NodeMap from names to node ids.

    Raises:
        TypeError: If G is not a NetworkX graph.
    """
    if not isinstance(G, (nx.DiGraph, nx.MultiDiGraph, nx.Graph, nx.MultiGraph)):
        raise TypeError(
            f"Expected NetworkX graph (DiGraph, MultiDiGraph, Graph, MultiGraph), "
            f"got {type(G).__name__}"
        )

    network: GraphNetwork = GraphNetwork()
    node_map = NodeMap.from_names(list(G.nodes()))
    for name, attrs in G.nodes(data=True):
        network.add_node(node_factory(name, attrs))

    directed = G.is_directed()
    for u, v, attrs in G.edges(data=True):
        src, dst = node_map.to_index[u], node_map.to_index[v]
        network.connect(src, dst, arc_factory(u, v, attrs))
        if not directed:
            network.connect(dst, src, arc_factory(v, u, attrs))
    return network, node_map
