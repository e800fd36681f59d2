"""
Tests for the pandapower-backed solver and island resolution on built-in cases.
"""

import numpy as np
import pandapower.networks as pn
import pytest

from psres.config import SolverSettings
from psres.recovery.islands import IslandResolver
from psres.solver import PandapowerSolver
from psres.topology.graph import NetworkGraph
from psres.topology.network import initialize_network, shed_loads


@pytest.fixture
def case9():
    return initialize_network(pn.case9())


class TestPandapowerSolver:
    """Tests for PandapowerSolver dispatch and convergence handling"""

    @pytest.mark.parametrize("mode", ["opf", "pf"])
    def test_converges_on_base_case(self, case9, mode):
        net, ok = PandapowerSolver()(case9, SolverSettings(mode=mode))
        assert ok
        assert net is case9
        assert len(net.res_bus) == len(net.bus)

    def test_copies_dispatch_into_gen_table(self, case9):
        net, ok = PandapowerSolver()(case9, SolverSettings(mode="opf"))
        assert ok
        assert np.allclose(net.gen["p_mw"], net.res_gen["p_mw"])
        assert np.allclose(net.gen["q_mvar"], net.res_gen["q_mvar"])
        assert (net.gen["q_mvar"] != 0.0).any()

    def test_default_settings_run_opf(self, case9):
        net, ok = PandapowerSolver()(case9)
        assert ok
        assert net.res_gen["p_mw"].notna().all()
        assert net.OPF_converged

    def test_opf_beyond_capacity_is_infeasible(self, case9):
        case9.load["p_mw"] *= 10.0
        case9.load["q_mvar"] *= 10.0
        _, ok = PandapowerSolver()(case9, SolverSettings(mode="opf"))
        assert not ok

    def test_power_flow_divergence_is_infeasible(self, case9):
        case9.load["p_mw"] *= 100.0
        case9.load["q_mvar"] *= 100.0
        _, ok = PandapowerSolver()(case9, SolverSettings(mode="pf"))
        assert not ok


class TestIslandResolverWithPandapower:
    """Tests for island resolution through the default solver"""

    @pytest.mark.parametrize("mode", ["opf", "pf"])
    def test_undamaged_island_restored_at_full_demand(self, case9, mode):
        graph = NetworkGraph(case9)
        resolver = IslandResolver(case9, graph, settings=SolverSettings(mode=mode))
        outcome = resolver.resolve_island(graph.islands()[0])
        assert outcome.status == "restored"
        assert resolver.load_restored
        assert outcome.served_p_mw == pytest.approx(case9["demand_init"]["p_mw"].sum())

    def test_shed_island_brought_back_to_demand(self, case9):
        demand = case9["demand_init"]["p_mw"].tolist()
        shed_loads(case9, case9.bus.index)
        graph = NetworkGraph(case9)
        resolver = IslandResolver(case9, graph, settings=SolverSettings(mode="opf"))
        outcome = resolver.resolve_island(graph.islands()[0])
        assert outcome.status == "restored"
        assert case9.load["p_mw"].tolist() == pytest.approx(demand)
        assert case9.gen["q_mvar"].notna().all()

    def test_island_keeps_parent_base(self, case9):
        case9.sn_mva = 100.0
        graph = NetworkGraph(case9)
        seen = []

        def solver(sub, settings):
            seen.append((sub.sn_mva, sub.f_hz))
            return sub, True

        IslandResolver(case9, graph, solver=solver).resolve_island(graph.islands()[0])
        assert seen == [(100.0, case9.f_hz)]
