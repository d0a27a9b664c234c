"""Node/arc payloads and result types for the layered preflow algorithm."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from layerflow.graph.network import ArcId, GraphNetwork, NodeId

#: One rollback entry: the arc whose flow was raised and by how much.
StackEntry = Tuple[ArcId, int]


@dataclass
class KarzanovNode:
    """Per-node state of a max-flow run.

    Attributes:
        stack: LIFO log of ``(arc, delta)`` flow increases on arcs entering
            this node, most recent last. Balancing pops from the end.
        grouped: Set once the node has been placed in a layer.
    """

    stack: List[StackEntry] = field(default_factory=list)
    grouped: bool = False

    def reset(self) -> None:
        self.stack.clear()
        self.grouped = False


@dataclass
class KarzanovArc:
    """Per-arc state of a max-flow run.

    Attributes:
        capacity: Upper bound on ``flow``. Fixed at construction.
        flow: Current flow on the arc.
        open: While False, no pass may raise the arc's flow again.
    """

    capacity: int
    flow: int = 0
    open: bool = True

    def __post_init__(self) -> None:
        if self.capacity < 0:
            raise ValueError(f"Arc capacity must be non-negative, got {self.capacity}")

    def reset(self) -> None:
        self.flow = 0
        self.open = True

    @property
    def residual(self) -> int:
        return self.capacity - self.flow

    @property
    def saturated(self) -> bool:
        return self.flow >= self.capacity


#: Network whose payloads carry max-flow state.
FlowNetwork = GraphNetwork[KarzanovNode, KarzanovArc]


@dataclass(frozen=True)
class FlowSummary:
    """Summary of a finished max-flow computation.

    Attributes:
        total_flow: Flow arriving at the sink.
        arc_flow: Flow on each present arc, by arc id.
        residual_cap: Capacity left on each present arc, by arc id.
        reachable: Nodes reachable from the source over arcs with residual
            capacity.
        min_cut: Saturated arcs leading from ``reachable`` to the other nodes.
    """

    total_flow: int
    arc_flow: Dict[ArcId, int]
    residual_cap: Dict[ArcId, int]
    reachable: Set[NodeId]
    min_cut: List[ArcId]
