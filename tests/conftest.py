"""Global pytest configuration and shared network fixtures."""

from __future__ import annotations

import pytest

from layerflow.graph.network import GraphNetwork
from layerflow.samples import (
    build_network,
    network_instance1,
    network_instance2,
    network_instance3,
    network_instance4,
)


@pytest.fixture
def labelled_network():
    # Node payloads are their original ids, arc payloads their capacities.
    # Node 6 has no arcs.
    network = GraphNetwork()
    network.add_nodes(range(7))
    network.bulk_connect(
        [
            (0, 1, 2),  # 0
            (0, 2, 3),  # 1
            (1, 3, 2),  # 2
            (1, 4, 0),  # 3
            (2, 3, 4),  # 4
            (2, 4, 2),  # 5
            (3, 5, 3),  # 6
            (4, 5, 2),  # 7
        ]
    )
    return network


@pytest.fixture
def instance1():
    return network_instance1()


@pytest.fixture
def instance2():
    return network_instance2()


@pytest.fixture
def instance3():
    return network_instance3()


@pytest.fixture
def instance4():
    return network_instance4()


@pytest.fixture
def parallel_arcs():
    # 0 =[3, 3]=> 1 -[4]-> 2 (two parallel arcs out of the source)
    return 0, 2, build_network(3, [(0, 1, 3), (0, 1, 3), (1, 2, 4)])


@pytest.fixture
def same_layer_arc():
    #      [1]
    #   0 ─────► 1 ─[2]─► 3
    #   │        ▲        ▲
    #   │[2]     │[1]     │
    #   └──────► 2 ──[1]──┘
    return 0, 3, build_network(
        4, [(0, 1, 1), (0, 2, 2), (2, 1, 1), (1, 3, 2), (2, 3, 1)]
    )

