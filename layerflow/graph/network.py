"""Directed multigraph with stable integer identifiers and tombstone deletion.

`GraphNetwork` stores caller-supplied payloads for nodes and arcs in
index-addressed slots. Identifiers are assigned sequentially at creation and
never reused: removing a node or an arc only marks its slot as vacant, so ids
held elsewhere keep their meaning. Adjacency is recorded in append-only
per-node logs of arc ids which are filtered against slot liveness whenever
they are read. ``clean()`` is the only operation that renumbers.
"""

from __future__ import annotations

from typing import (
    Dict,
    Generic,
    Iterable,
    Iterator,
    List,
    Optional,
    Tuple,
    TypeVar,
)

NodeId = int
ArcId = int

N = TypeVar("N")
A = TypeVar("A")


class NodeNotFound(ValueError):
    """Raised when a node id does not refer to a live node."""

    def __init__(self, node: NodeId) -> None:
        super().__init__(f"Node '{node}' does not exist.")
        self.node = node


class ArcNotFound(ValueError):
    """Raised when an arc id does not refer to a live arc slot."""

    def __init__(self, arc: ArcId) -> None:
        super().__init__(f"Arc '{arc}' does not exist.")
        self.arc = arc


class GraphNetwork(Generic[N, A]):
    """Directed multigraph addressed by stable integer ids.

    Storage layout:
        _node_data / _node_live: payload and liveness per node id.
        _arc_data / _arc_live: payload and liveness per arc id.
        _arc_ends: ``(from_node, into_node)`` per arc id, kept after removal.
        _arcs_from / _arcs_into: outgoing and incoming arc-id logs per node,
            in arc creation order.

    An arc is present only while its own slot and both endpoint slots are
    live. Removing a node empties the node's own logs but leaves entries that
    point at it in its neighbours' logs; readers skip those entries.
    """

    def __init__(self) -> None:
        self._node_data: List[Optional[N]] = []
        self._node_live: List[bool] = []
        self._arcs_from: List[List[ArcId]] = []
        self._arcs_into: List[List[ArcId]] = []
        self._arc_data: List[Optional[A]] = []
        self._arc_live: List[bool] = []
        self._arc_ends: List[Tuple[NodeId, NodeId]] = []

    def __contains__(self, node: NodeId) -> bool:
        return self.is_node_in(node)

    def __len__(self) -> int:
        """Return the number of live nodes."""
        return sum(self._node_live)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(nodes={len(self)}, arcs={self.num_arcs()}, "
            f"node_slots={len(self._node_live)}, arc_slots={len(self._arc_live)})"
        )

    #
    # Node management
    #
    def add_node(self, data: N) -> NodeId:
        """Add a node and return its id.

        The id equals the number of node slots before the call.

        Args:
            data: Payload stored with the node.

        Returns:
            NodeId: The id of the new node.
        """
        node = len(self._node_data)
        self._node_data.append(data)
        self._node_live.append(True)
        self._arcs_from.append([])
        self._arcs_into.append([])
        return node

    def add_nodes(self, data: Iterable[N]) -> List[NodeId]:
        """Add one node per payload, in iteration order."""
        return [self.add_node(item) for item in data]

    def remove_node(self, node: NodeId) -> Optional[N]:
        """Tombstone a node and return its payload.

        The node's own adjacency logs are emptied. Log entries in neighbouring
        nodes that refer to arcs touching this node are left in place; those
        arcs stop being present because an endpoint is dead.

        Args:
            node: The node to remove.

        Returns:
            The removed payload, or None if the node was already absent.
        """
        if not self.is_node_in(node):
            return None
        self._arcs_from[node].clear()
        self._arcs_into[node].clear()
        data = self._node_data[node]
        self._node_data[node] = None
        self._node_live[node] = False
        return data

    def is_node_in(self, node: NodeId) -> bool:
        """Return True if ``node`` refers to a live node slot."""
        return 0 <= node < len(self._node_live) and self._node_live[node]

    def node_data(self, node: NodeId) -> N:
        """Return the payload of a live node.

        Raises:
            NodeNotFound: If the node is absent or tombstoned.
        """
        if not self.is_node_in(node):
            raise NodeNotFound(node)
        return self._node_data[node]  # type: ignore[return-value]

    def nodes(self) -> Iterator[NodeId]:
        """Yield the ids of live nodes in ascending order."""
        for node, live in enumerate(self._node_live):
            if live:
                yield node

    def node_items(self) -> Iterator[Tuple[NodeId, N]]:
        """Yield ``(node, payload)`` for every live node."""
        for node in self.nodes():
            yield node, self._node_data[node]  # type: ignore[misc]

    #
    # Arc management
    #
    def connect(self, from_node: NodeId, into_node: NodeId, data: A) -> ArcId:
        """Add a directed arc from ``from_node`` to ``into_node``.

        Parallel arcs and self-loops are allowed; every call creates a new arc
        with the next free id.

        Args:
            from_node: Source node. Must be live.
            into_node: Destination node. Must be live.
            data: Payload stored with the arc.

        Returns:
            ArcId: The id of the new arc.

        Raises:
            NodeNotFound: If either endpoint is absent or tombstoned.
        """
        if not self.is_node_in(from_node):
            raise NodeNotFound(from_node)
        if not self.is_node_in(into_node):
            raise NodeNotFound(into_node)

        arc = len(self._arc_data)
        self._arc_data.append(data)
        self._arc_live.append(True)
        self._arc_ends.append((from_node, into_node))
        self._arcs_from[from_node].append(arc)
        self._arcs_into[into_node].append(arc)
        return arc

    def bulk_connect(self, arcs: Iterable[Tuple[NodeId, NodeId, A]]) -> List[ArcId]:
        """Add arcs from ``(from_node, into_node, data)`` triples, in order."""
        return [self.connect(u, v, data) for u, v, data in arcs]

    def disconnect(self, arc: ArcId) -> Optional[A]:
        """Tombstone an arc and return its payload.

        The endpoint record and the adjacency log entries are kept.

        Args:
            arc: The arc to remove.

        Returns:
            The removed payload, or None if the arc slot was already vacant.
        """
        if not (0 <= arc < len(self._arc_live)) or not self._arc_live[arc]:
            return None
        data = self._arc_data[arc]
        self._arc_data[arc] = None
        self._arc_live[arc] = False
        return data

    def has_arc(self, arc: ArcId) -> bool:
        """Return True if the arc slot is live and both endpoints are live."""
        if not (0 <= arc < len(self._arc_live)) or not self._arc_live[arc]:
            return False
        from_node, into_node = self._arc_ends[arc]
        return self._node_live[from_node] and self._node_live[into_node]

    def is_arc_in(self, from_node: NodeId, into_node: NodeId) -> bool:
        """Return True if a present arc leads from ``from_node`` to ``into_node``.

        Only the shorter of the two relevant adjacency logs is scanned.
        """
        if not self.is_node_in(from_node) or not self.is_node_in(into_node):
            return False
        outgoing = self._arcs_from[from_node]
        incoming = self._arcs_into[into_node]
        log = outgoing if len(outgoing) <= len(incoming) else incoming
        for arc in log:
            if self._arc_live[arc] and self._arc_ends[arc] == (from_node, into_node):
                return True
        return False

    def arc_data(self, arc: ArcId) -> A:
        """Return the payload of a live arc slot.

        Raises:
            ArcNotFound: If the arc slot is vacant or out of range.
        """
        if not (0 <= arc < len(self._arc_live)) or not self._arc_live[arc]:
            raise ArcNotFound(arc)
        return self._arc_data[arc]  # type: ignore[return-value]

    def arc_endpoints(self, arc: ArcId) -> Tuple[NodeId, NodeId]:
        """Return ``(from_node, into_node)`` of an arc, tombstoned or not.

        Raises:
            ArcNotFound: If the id was never assigned.
        """
        if not (0 <= arc < len(self._arc_ends)):
            raise ArcNotFound(arc)
        return self._arc_ends[arc]

    def arcs(self) -> Iterator[Tuple[ArcId, NodeId, NodeId]]:
        """Yield ``(arc, from_node, into_node)`` for every present arc."""
        for arc in range(len(self._arc_live)):
            if self.has_arc(arc):
                from_node, into_node = self._arc_ends[arc]
                yield arc, from_node, into_node

    def arc_items(self) -> Iterator[Tuple[ArcId, A]]:
        """Yield ``(arc, payload)`` for every live arc slot.

        Unlike ``arcs()``, this includes arcs whose endpoints were removed.
        """
        for arc, live in enumerate(self._arc_live):
            if live:
                yield arc, self._arc_data[arc]  # type: ignore[misc]

    def num_arcs(self) -> int:
        """Return the number of present arcs."""
        return sum(1 for _ in self.arcs())

    #
    # Traversal
    #
    def between_nodes(self, from_node: NodeId, into_node: NodeId) -> Iterator[ArcId]:
        """Return an iterator over present arcs from ``from_node`` to ``into_node``.

        Arcs are produced in creation order. Both nodes are checked when the
        method is called, not when iteration starts.

        Raises:
            NodeNotFound: If either node is absent.
        """
        if not self.is_node_in(from_node):
            raise NodeNotFound(from_node)
        if not self.is_node_in(into_node):
            raise NodeNotFound(into_node)
        return self._iter_between(from_node, into_node)

    def from_node(self, from_node: NodeId) -> Iterator[Tuple[NodeId, ArcId]]:
        """Return an iterator of ``(into_node, arc)`` over present outgoing arcs.

        Raises:
            NodeNotFound: If the node is absent.
        """
        if not self.is_node_in(from_node):
            raise NodeNotFound(from_node)
        return self._iter_log(self._arcs_from[from_node], 1)

    def into_node(self, into_node: NodeId) -> Iterator[Tuple[NodeId, ArcId]]:
        """Return an iterator of ``(from_node, arc)`` over present incoming arcs.

        Raises:
            NodeNotFound: If the node is absent.
        """
        if not self.is_node_in(into_node):
            raise NodeNotFound(into_node)
        return self._iter_log(self._arcs_into[into_node], 0)

    def _iter_between(self, from_node: NodeId, into_node: NodeId) -> Iterator[ArcId]:
        for arc in self._arcs_from[from_node]:
            if self._arc_live[arc] and self._arc_ends[arc][1] == into_node:
                yield arc

    def _iter_log(
        self, log: List[ArcId], side: int
    ) -> Iterator[Tuple[NodeId, ArcId]]:
        # side selects the neighbour end of each arc: 1 for heads, 0 for tails
        for arc in log:
            if not self._arc_live[arc]:
                continue
            neighbour = self._arc_ends[arc][side]
            if self._node_live[neighbour]:
                yield neighbour, arc

    #
    # Rebuild
    #
    def clean(self) -> GraphNetwork[N, A]:
        """Build a compacted copy holding only live nodes and present arcs.

        Nodes and arcs get contiguous ids starting at zero, in the relative
        order of their old ids. Payload objects are shared with this network,
        which is left unchanged.

        Returns:
            GraphNetwork: The rebuilt network.
        """
        rebuilt: GraphNetwork[N, A] = type(self)()
        old_to_new: Dict[NodeId, NodeId] = {}

        for old_node, data in self.node_items():
            old_to_new[old_node] = rebuilt.add_node(data)

        for old_arc, from_node, into_node in self.arcs():
            rebuilt.connect(
                old_to_new[from_node], old_to_new[into_node], self._arc_data[old_arc]
            )
        return rebuilt
