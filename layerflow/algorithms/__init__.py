"""Max-flow algorithms over `GraphNetwork`."""

from layerflow.algorithms.karzanov import (
    FlowInvariantError,
    UnsolvableNetworkError,
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

__all__ = [
    "FlowInvariantError",
    "FlowNetwork",
    "FlowSummary",
    "KarzanovArc",
    "KarzanovNode",
    "UnsolvableNetworkError",
    "flow_summary",
    "flow_value",
    "maxflow",
]
