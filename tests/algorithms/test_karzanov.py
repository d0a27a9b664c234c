import logging

import networkx as nx
import pytest

from layerflow.algorithms.karzanov import (
    FlowInvariantError,
    UnsolvableNetworkError,
    balance_incoming,
    flow_network_from_networkx,
    flow_value,
    group_layers,
    incoming_flux,
    maxflow,
    maximize_outgoing,
    outgoing_flux,
    reset_network,
)
from layerflow.config import MaxFlowConfig
from layerflow.graph.network import NodeNotFound
from layerflow.samples import SAMPLE_NETWORKS, build_network


def arc_flows(network):
    return [network.arc_data(arc).flow for arc, _, _ in network.arcs()]


def reference_max_flow(source, sink, network):
    """Max-flow value computed by NetworkX on the same arcs."""
    G = nx.DiGraph()
    G.add_nodes_from(network.nodes())
    for arc, u, v in network.arcs():
        capacity = network.arc_data(arc).capacity
        if G.has_edge(u, v):
            G[u][v]["capacity"] += capacity
        else:
            G.add_edge(u, v, capacity=capacity)
    return nx.maximum_flow_value(G, source, sink)


def assert_valid_flow(source, sink, network):
    for arc, _, _ in network.arcs():
        data = network.arc_data(arc)
        assert 0 <= data.flow <= data.capacity
    for node in network.nodes():
        if node not in (source, sink):
            assert incoming_flux(node, network) == outgoing_flux(node, network)


class TestMaxFlowScenarios:
    """Known networks with hand-checked flows."""

    def test_instance1(self, instance1):
        source, sink, network = instance1
        maxflow(source, sink, network)
        assert flow_value(sink, network) == 5
        assert arc_flows(network) == [2, 3, 2, 1, 2, 3, 2]

    def test_instance2(self, instance2):
        source, sink, network = instance2
        maxflow(source, sink, network)
        assert flow_value(sink, network) == 6
        assert outgoing_flux(source, network) == 6
        assert arc_flows(network) == [1, 5, 1, 1, 1, 1, 2, 2, 3, 4, 2, 0, 2]

    def test_instance3_single_chain(self, instance3):
        source, sink, network = instance3
        maxflow(source, sink, network)
        assert arc_flows(network) == [1, 1]

    def test_instance4_single_arc(self, instance4):
        source, sink, network = instance4
        maxflow(source, sink, network)
        assert arc_flows(network) == [1]

    def test_parallel_arcs_stop_on_unchanged_flows(self, parallel_arcs, caplog):
        """The source keeps re-saturating a closed arc; the snapshot ends the loop."""
        source, sink, network = parallel_arcs
        with caplog.at_level(logging.DEBUG, logger="layerflow"):
            maxflow(source, sink, network)
        assert arc_flows(network) == [3, 1, 4]
        assert any("flows unchanged" in r.message for r in caplog.records)

    def test_same_layer_arc_processed_before_its_head(self, same_layer_arc):
        source, sink, network = same_layer_arc
        maxflow(source, sink, network)
        assert flow_value(sink, network) == 3
        assert arc_flows(network) == [1, 2, 1, 2, 1]

    def test_arc_back_into_source(self):
        """An arc returning to the source does not put it in a later layer."""
        network = build_network(3, [(0, 1, 2), (1, 0, 1), (1, 2, 1)])
        assert group_layers(0, 2, network) == [[0], [1], [2]]
        maxflow(0, 2, network)
        assert flow_value(2, network) == 1
        assert_valid_flow(0, 2, network)

    def test_zero_capacity_arc(self):
        network = build_network(3, [(0, 1, 0), (1, 2, 5)])
        maxflow(0, 2, network)
        assert arc_flows(network) == [0, 0]

    def test_source_equals_sink_without_arcs(self):
        network = build_network(1, [])
        maxflow(0, 0, network)
        assert flow_value(0, network) == 0


SAME_LAYER_NETWORKS = {
    # Layer [1, 2, 3] with 3 -> 1; node 1 only learns its full inflow after 3
    "tail_discovered_last": (
        5,
        [(0, 1, 1), (0, 2, 1), (0, 3, 5), (3, 1, 5), (1, 4, 5), (2, 4, 1)],
        4,
        6,
    ),
    # Chain 1 -> 2 -> 3 inside one layer
    "chain_in_layer": (
        5,
        [
            (0, 1, 2),
            (0, 2, 2),
            (0, 3, 2),
            (1, 2, 2),
            (2, 3, 2),
            (1, 4, 1),
            (2, 4, 1),
            (3, 4, 4),
        ],
        4,
        6,
    ),
    # Same-layer arc 4 -> 3 in the second layer
    "deeper_layer": (
        6,
        [
            (0, 1, 3),
            (0, 2, 3),
            (1, 3, 3),
            (2, 4, 3),
            (4, 3, 2),
            (3, 5, 4),
            (4, 5, 1),
        ],
        5,
        5,
    ),
    "two_node_layer": (
        4,
        [(0, 1, 1), (0, 2, 2), (2, 1, 1), (1, 3, 2), (2, 3, 1)],
        3,
        3,
    ),
}


@pytest.mark.parametrize("name", sorted(SAME_LAYER_NETWORKS))
def test_same_layer_arcs_match_networkx(name):
    num_nodes, arcs, sink, expected = SAME_LAYER_NETWORKS[name]
    network = build_network(num_nodes, arcs)
    maxflow(0, sink, network)
    assert flow_value(sink, network) == expected
    assert flow_value(sink, network) == reference_max_flow(0, sink, network)
    assert_valid_flow(0, sink, network)


@pytest.mark.parametrize("number", sorted(SAMPLE_NETWORKS))
def test_samples_match_networkx(number):
    source, sink, network = SAMPLE_NETWORKS[number]()
    maxflow(source, sink, network)
    assert flow_value(sink, network) == reference_max_flow(source, sink, network)
    assert_valid_flow(source, sink, network)

    # A further balancing pass over the solved network finds nothing to fix
    layers = group_layers(source, sink, SAMPLE_NETWORKS[number]()[2])
    assert balance_incoming(layers, network) is None


def test_rerun_resets_state(instance2):
    """Running twice gives the same flows; stale state is discarded."""
    source, sink, network = instance2
    maxflow(source, sink, network)
    first = arc_flows(network)

    for _, data in network.arc_items():
        data.flow = data.capacity
        data.open = False
    network.node_data(3).stack.append((0, 99))

    maxflow(source, sink, network)
    assert arc_flows(network) == first


def test_maxflow_keeps_ids(instance1):
    source, sink, network = instance1
    before = list(network.arcs())
    maxflow(source, sink, network)
    assert list(network.arcs()) == before


def test_maxflow_after_removal_and_clean(instance1):
    """Tombstoned arcs are ignored; a rebuilt network gives the same value."""
    source, sink, network = instance1
    network.disconnect(4)  # 2 -> 4
    maxflow(source, sink, network)
    assert flow_value(sink, network) == 3

    rebuilt = network.clean()
    maxflow(source, sink, rebuilt)
    assert flow_value(sink, rebuilt) == 3


def test_flow_network_from_networkx():
    G = nx.DiGraph()
    G.add_edge("s", "a", capacity=2)
    G.add_edge("s", "b", capacity=3)
    G.add_edge("a", "c", capacity=2)
    G.add_edge("b", "c", capacity=4)
    G.add_edge("b", "d", capacity=2)
    G.add_edge("c", "t", capacity=3)
    G.add_edge("d", "t")

    network, node_map = flow_network_from_networkx(G, default_capacity=2)
    source, sink = node_map.to_index["s"], node_map.to_index["t"]
    maxflow(source, sink, network)
    assert flow_value(sink, network) == 5
    assert nx.maximum_flow_value(G, "s", "t") == 5


def test_flow_network_from_networkx_accepts_whole_floats():
    G = nx.DiGraph()
    G.add_edge("s", "t", capacity=3.0)
    network, _ = flow_network_from_networkx(G)
    assert network.arc_data(0).capacity == 3
    assert isinstance(network.arc_data(0).capacity, int)


def test_flow_network_from_networkx_rejects_fractional_capacity():
    G = nx.DiGraph()
    G.add_edge("s", "a", capacity=2)
    G.add_edge("a", "t", capacity=2.5)
    with pytest.raises(ValueError, match=r"2\.5 of edge 'a' -> 't'"):
        flow_network_from_networkx(G)


class TestGroupLayers:
    def test_layers_instance1(self, instance1):
        source, sink, network = instance1
        assert group_layers(source, sink, network) == [[0], [1, 2], [3, 4], [5]]

    def test_layers_sorted_by_same_layer_arcs(self, instance2):
        source, sink, network = instance2
        assert group_layers(source, sink, network) == [
            [0],
            [3, 1],
            [2, 4, 6],
            [5, 7],
            [8],
        ]

    def test_same_layer_tail_moves_ahead_of_distant_head(self):
        """Discovered as [1, 2, 3] with 3 -> 1: node 3 must precede node 1."""
        num_nodes, arcs, sink, _ = SAME_LAYER_NETWORKS["tail_discovered_last"]
        network = build_network(num_nodes, arcs)
        layers = group_layers(0, sink, network)
        assert layers == [[0], [2, 3, 1], [4]]
        assert layers[1].index(3) < layers[1].index(1)

    def test_unrelated_nodes_keep_discovery_order(self):
        network = build_network(
            6,
            [(0, 1, 1), (0, 2, 1), (0, 3, 1), (0, 4, 1), (4, 2, 1)]
            + [(node, 5, 1) for node in (1, 2, 3, 4)],
        )
        assert group_layers(0, 5, network) == [[0], [1, 3, 4, 2], [5]]

    def test_same_layer_chain(self):
        num_nodes, arcs, sink, _ = SAME_LAYER_NETWORKS["chain_in_layer"]
        network = build_network(num_nodes, arcs)
        assert group_layers(0, sink, network)[1] == [1, 2, 3]

    def test_same_layer_cycle_falls_back_to_discovery_order(self):
        network = build_network(
            5,
            [(0, 1, 1), (0, 2, 1), (0, 3, 1), (2, 1, 1), (1, 2, 1), (3, 2, 1)]
            + [(node, 4, 1) for node in (1, 2, 3)],
        )
        # 3 is free first; the 1 <-> 2 cycle then releases 1 before 2
        assert group_layers(0, 4, network) == [[0], [3, 1, 2], [4]]

    def test_unequal_path_lengths_rejected(self):
        network = build_network(3, [(0, 1, 1), (1, 2, 1), (0, 2, 1)])
        with pytest.raises(UnsolvableNetworkError, match=r"last layer is \[1, 2\]"):
            maxflow(0, 2, network)

    def test_unreachable_sink_rejected(self):
        network = build_network(3, [(0, 1, 1)])
        with pytest.raises(UnsolvableNetworkError):
            maxflow(0, 2, network)

    def test_nodes_beyond_sink_rejected(self):
        network = build_network(4, [(0, 1, 1), (1, 2, 1), (2, 3, 1)])
        with pytest.raises(UnsolvableNetworkError, match=r"expected \[2\]"):
            maxflow(0, 2, network)

    def test_missing_endpoints(self):
        network = build_network(2, [(0, 1, 1)])
        with pytest.raises(NodeNotFound):
            maxflow(5, 1, network)
        network.remove_node(1)
        with pytest.raises(NodeNotFound):
            maxflow(0, 1, network)

    def test_unsolvable_is_logged(self, caplog):
        network = build_network(2, [])
        with caplog.at_level(logging.ERROR, logger="layerflow"):
            with pytest.raises(UnsolvableNetworkError):
                maxflow(0, 1, network)
        assert any("Cannot layer network" in r.message for r in caplog.records)


class TestMaximizeOutgoing:
    @pytest.fixture
    def fork(self):
        # 0 -[3]-> 1, then 1 -[2]-> 2 and 1 -[2]-> 3, both into 4
        network = build_network(
            5, [(0, 1, 3), (1, 2, 2), (1, 3, 2), (2, 4, 5), (3, 4, 5)]
        )
        return network, group_layers(0, 4, network)

    def test_first_come_first_served(self, fork):
        network, layers = fork
        maximize_outgoing(layers, 0, network)
        assert arc_flows(network) == [3, 2, 1, 2, 1]
        assert network.node_data(1).stack == [(0, 3)]
        assert network.node_data(2).stack == [(1, 2)]
        assert network.node_data(3).stack == [(2, 1)]

    def test_closed_arc_keeps_flow_and_starves_others(self, fork):
        network, layers = fork
        network.arc_data(1).flow = 2
        network.arc_data(1).open = False
        network.arc_data(2).flow = 1
        network.arc_data(0).flow = 2

        maximize_outgoing(layers, 1, network)
        # Source re-saturated to 3; arc 1 counts 2, arc 2 takes the last unit
        assert network.arc_data(1).flow == 2
        assert network.arc_data(2).flow == 1
        assert network.node_data(1).stack == [(0, 1)]

    def test_no_flux_left_zeroes_open_arc(self, fork):
        network, layers = fork
        network.arc_data(1).capacity = 3
        network.arc_data(1).flow = 3
        network.arc_data(2).flow = 1
        maximize_outgoing(layers, 1, network)
        assert network.arc_data(2).flow == 0


class TestBalanceIncoming:
    def test_balanced_network_returns_none(self, instance3):
        source, sink, network = instance3
        layers = group_layers(source, sink, network)
        maximize_outgoing(layers, 0, network)
        assert balance_incoming(layers, network) is None

    def test_deficient_node_rolls_back_and_closes(self):
        network = build_network(3, [(0, 1, 4), (1, 2, 1)])
        layers = group_layers(0, 2, network)
        maximize_outgoing(layers, 0, network)

        assert balance_incoming(layers, network) == 0
        assert arc_flows(network) == [1, 1]
        assert not network.arc_data(0).open
        assert network.arc_data(1).open
        assert network.node_data(1).stack == []

    def test_incoming_below_outgoing_is_fatal(self):
        network = build_network(3, [(0, 1, 5), (1, 2, 5)])
        layers = group_layers(0, 2, network)
        network.arc_data(0).flow = 1
        network.arc_data(1).flow = 5
        with pytest.raises(FlowInvariantError, match="receives only 1"):
            balance_incoming(layers, network)

    def test_exhausted_stack_is_fatal(self):
        network = build_network(3, [(0, 1, 5), (1, 2, 5)])
        layers = group_layers(0, 2, network)
        network.arc_data(0).flow = 5
        network.arc_data(1).flow = 1
        with pytest.raises(FlowInvariantError, match="exhausted"):
            balance_incoming(layers, network)

    def test_rollback_below_zero_is_fatal(self):
        network = build_network(3, [(0, 1, 5), (0, 1, 5), (1, 2, 5)])
        layers = group_layers(0, 2, network)
        network.arc_data(1).flow = 5
        network.node_data(1).stack.append((0, 4))
        with pytest.raises(FlowInvariantError, match="exceeds its flow"):
            balance_incoming(layers, network)


class TestConfig:
    def test_round_cap_exceeded(self, parallel_arcs):
        source, sink, network = parallel_arcs
        with pytest.raises(FlowInvariantError, match="within 1 rounds"):
            maxflow(source, sink, network, config=MaxFlowConfig(max_rounds=1))

    def test_round_cap_not_reached(self, instance4):
        source, sink, network = instance4
        maxflow(source, sink, network, config=MaxFlowConfig(max_rounds=1))
        assert flow_value(sink, network) == 1


def test_reset_network(instance1):
    source, sink, network = instance1
    maxflow(source, sink, network)
    reset_network(network)
    assert arc_flows(network) == [0] * 7
    assert all(network.arc_data(arc).open for arc, _, _ in network.arcs())
    assert all(
        not data.grouped and data.stack == [] for _, data in network.node_items()
    )
