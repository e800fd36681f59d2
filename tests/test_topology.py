"""
Tests for component identities, network preparation and graph queries.
"""

import pytest

from psres.exceptions import DataError
from psres.topology.components import Component, ComponentRef, ComponentStatus, ComponentType
from psres.topology.network import bus_demand, generator_capacity, initialize_network, load_case, shed_loads


class TestComponents:
    """Tests for ComponentRef ordering and status flags"""

    def test_refs_sort_by_precedence_then_id(self):
        refs = [ComponentRef.gen(0), ComponentRef.bus(3), ComponentRef.branch(5), ComponentRef.bus(1)]
        assert sorted(refs) == [
            ComponentRef.branch(5), ComponentRef.bus(1), ComponentRef.bus(3), ComponentRef.gen(0),
        ]

    def test_refs_are_hashable_values(self):
        assert ComponentRef.branch(2) == ComponentRef(ComponentType.BRANCH, 2)
        assert len({ComponentRef.branch(2), ComponentRef(ComponentType.BRANCH, 2)}) == 1
        assert str(ComponentRef.gen(4)) == "gen:4"

    def test_outaged_statuses(self):
        outaged = {s for s in ComponentStatus if s.outaged}
        assert outaged == {ComponentStatus.DAMAGED, ComponentStatus.DISCONNECTED, ComponentStatus.ACTIVE}
        assert ComponentStatus.RESTORED.in_service

    def test_negative_repair_time_rejected(self):
        with pytest.raises(ValueError):
            Component(ComponentRef.bus(0), remaining_repair_time=-1.0)


class TestNetwork:
    """Tests for network initialization helpers"""

    def test_initialize_snapshots_demand(self, net):
        assert list(net["demand_init"]["p_mw"]) == [10.0, 10.0, 10.0]
        assert list(net["gen_init"]["p_mw"]) == [20.0]
        assert "q_mvar" in net.gen.columns

    def test_initialize_is_idempotent(self, net):
        net.load["p_mw"] = 0.0
        initialize_network(net)
        assert net["demand_init"]["p_mw"].sum() == pytest.approx(30.0)

    def test_bus_demand_zero_on_dead_buses(self, net):
        net.bus.at[2, "in_service"] = False
        demand = bus_demand(net)
        assert demand.loc[1, "p_mw"] == pytest.approx(10.0)
        assert demand.loc[2, "p_mw"] == 0.0
        assert demand.loc[0, "p_mw"] == 0.0

    def test_shed_loads(self, net):
        shed_loads(net, [1, 4])
        assert list(net.load["p_mw"]) == [0.0, 10.0, 0.0]

    def test_generator_capacity_uses_limit(self, net):
        assert generator_capacity(net).tolist() == [50.0]

    def test_unknown_case(self):
        with pytest.raises(DataError):
            load_case("no_such_case")


class TestNetworkGraph:
    """Tests for adjacency, neighbourhood search and islands"""

    def test_adjacency(self, graph):
        assert graph.branch_ends[1] == (1, 2)
        assert graph.bus_branches[2] == [1, 2]
        assert graph.bus_neighbours[2] == [1, 3]
        assert graph.gen_bus == {0: 3}

    def test_anchor_bus(self, graph):
        assert graph.anchor_bus(ComponentRef.branch(2)) == 2
        assert graph.anchor_bus(ComponentRef.gen(0)) == 3
        assert graph.anchor_bus(ComponentRef.bus(4)) == 4

    def test_neighbourhood_depth_two(self, graph):
        found = graph.neighbourhood(ComponentRef.branch(0), depth=2)
        assert found == [
            ComponentRef.bus(0), ComponentRef.branch(0), ComponentRef.bus(1),
            ComponentRef.branch(1), ComponentRef.bus(2),
        ]

    def test_neighbourhood_depth_three_reaches_generator(self, graph):
        found = graph.neighbourhood(ComponentRef.branch(0), depth=3)
        assert found[-3:] == [ComponentRef.branch(2), ComponentRef.gen(0), ComponentRef.bus(3)]
        assert len(found) == len(set(found))

    def test_neighbourhood_ignores_service_state(self, net, graph):
        net.line["in_service"] = False
        assert ComponentRef.bus(2) in graph.neighbourhood(ComponentRef.bus(0), depth=2)

    def test_single_island(self, graph):
        islands = graph.islands()
        assert len(islands) == 1
        assert islands[0].bus_ids == frozenset(range(5))
        assert islands[0].branch_ids == frozenset(range(4))
        assert islands[0].has_source

    def test_islands_split_on_open_branch(self, net, graph):
        net.line.at[1, "in_service"] = False
        first, second = graph.islands()
        assert first.bus_ids == {0, 1}
        assert first.ext_grid_ids == {0} and not first.gen_ids
        assert second.bus_ids == {2, 3, 4}
        assert second.gen_ids == {0}
        assert graph.islands_containing([ComponentRef.branch(3)]) == [second]

    def test_island_without_source(self, net, graph):
        net.line.at[1, "in_service"] = False
        net.gen.at[0, "in_service"] = False
        second = graph.islands()[1]
        assert not second.has_source

    def test_dead_bus_breaks_island(self, net, graph):
        net.bus.at[2, "in_service"] = False
        islands = graph.islands()
        assert [sorted(i.bus_ids) for i in islands] == [[0, 1], [3, 4]]
        assert all(1 not in i.branch_ids and 2 not in i.branch_ids for i in islands)
