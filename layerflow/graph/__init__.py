"""Graph primitives and helpers.

This package provides the stable-id directed multigraph `GraphNetwork` and a
conversion module (`convert`) for NetworkX interoperability.
"""

from layerflow.graph.network import (
    ArcId,
    ArcNotFound,
    GraphNetwork,
    NodeId,
    NodeNotFound,
)

__all__ = ["ArcId", "ArcNotFound", "GraphNetwork", "NodeId", "NodeNotFound"]
