"""
Shared fixtures: a five-bus radial feeder and deterministic stub solvers.

    ext_grid
       |
      b0 --l0-- b1 --l1-- b2 --l2-- b3 --l3-- b4
                 |         |         |         |
               load0     load1     gen0      load2
"""

import pandapower as pp
import pytest

from psres.topology.graph import NetworkGraph
from psres.topology.network import initialize_network
from psres.recovery.registry import ComponentRegistry

LINE_TYPE = "149-AL1/24-ST1A 110.0"


def build_feeder():
    net = pp.create_empty_network()
    buses = [pp.create_bus(net, vn_kv=110.0, name=f"b{i}") for i in range(5)]
    pp.create_ext_grid(net, buses[0], vm_pu=1.0)
    for f, t in zip(buses[:-1], buses[1:]):
        pp.create_line(net, f, t, length_km=10.0, std_type=LINE_TYPE)
    pp.create_gen(net, buses[3], p_mw=20.0, vm_pu=1.0, max_p_mw=50.0, min_p_mw=0.0)
    for bus in (buses[1], buses[2], buses[4]):
        pp.create_load(net, bus, p_mw=10.0, q_mvar=2.0)
    return initialize_network(net)


class AlwaysFeasible:
    """Accepts every island; records the total load it was asked to serve."""

    def __init__(self):
        self.calls = []

    def __call__(self, net, settings):
        self.calls.append(float(net.load["p_mw"].sum()))
        return net, True


class NeverFeasible(AlwaysFeasible):
    def __call__(self, net, settings):
        super().__call__(net, settings)
        return net, False


class FeasibleUpTo(AlwaysFeasible):
    """Feasible while the island's total load stays at or below a limit."""

    def __init__(self, limit_mw):
        super().__init__()
        self.limit_mw = limit_mw

    def __call__(self, net, settings):
        super().__call__(net, settings)
        return net, float(net.load["p_mw"].sum()) <= self.limit_mw + 1e-9


class FailsFirst(AlwaysFeasible):
    """Rejects only the first solve."""

    def __call__(self, net, settings):
        super().__call__(net, settings)
        return net, len(self.calls) > 1


@pytest.fixture
def net():
    return build_feeder()


@pytest.fixture
def graph(net):
    return NetworkGraph(net)


@pytest.fixture
def registry(net, graph):
    return ComponentRegistry.from_network(net, graph)
