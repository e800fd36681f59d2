"""
Resilience Indicators
=====================

Per-iteration bookkeeping of infrastructure and operational indicators:
- tl_dc / load_dc / gen_dc: outaged branch, bus and generator counts
- load_served / load_served_q: served active/reactive demand (MW / Mvar)
- gen_p / gen_q: generator output, zero when out of service
- gen_online: online generation capacity (MW) and its fraction of the total
"""

from __future__ import annotations

from typing import Dict, List

import pandas as pd
import pandapower as pp

from ..topology.components import ComponentType
from ..topology.network import bus_demand, generator_capacity
from .registry import ComponentRegistry

SUMMARY_COLUMNS = [
    "iteration", "time", "tl_dc", "load_dc", "gen_dc",
    "load_served", "load_served_q", "gen_p", "gen_q", "gen_online", "gen_online_frac",
]


def system_indicators(net: pp.pandapowerNet, registry: ComponentRegistry) -> Dict[str, float]:
    """Snapshot of the aggregate indicators for the current network state."""
    demand = bus_demand(net)
    online = net.gen["in_service"].astype(bool)
    capacity = generator_capacity(net)
    total_capacity = float(capacity.sum())
    online_capacity = float(capacity[online].sum())
    return {
        "tl_dc": registry.outaged_count(ComponentType.BRANCH),
        "load_dc": registry.outaged_count(ComponentType.BUS),
        "gen_dc": registry.outaged_count(ComponentType.GEN),
        "load_served": float(demand["p_mw"].sum()),
        "load_served_q": float(demand["q_mvar"].sum()),
        "gen_p": float(net.gen.loc[online, "p_mw"].sum()),
        "gen_q": float(net.gen.loc[online, "q_mvar"].sum()),
        "gen_online": online_capacity,
        "gen_online_frac": online_capacity / total_capacity if total_capacity > 0 else 0.0,
    }


class IndicatorRecorder:
    """
    Accumulates one indicator record per restoration iteration.

    Iteration 0 is the post-disturbance snapshot at t=0.
    """

    def __init__(self, net: pp.pandapowerNet, registry: ComponentRegistry):
        self.net = net
        self.registry = registry
        self._rows: List[Dict[str, float]] = []
        self._bus_p: List[pd.Series] = []
        self._bus_q: List[pd.Series] = []
        self._gen_p: List[pd.Series] = []
        self._gen_q: List[pd.Series] = []

    def __len__(self) -> int:
        return len(self._rows)

    def record(self, iteration: int, time: float) -> Dict[str, float]:
        row = {"iteration": iteration, "time": float(time)}
        row.update(system_indicators(self.net, self.registry))
        self._rows.append(row)

        demand = bus_demand(self.net)
        self._bus_p.append(demand["p_mw"].rename(iteration))
        self._bus_q.append(demand["q_mvar"].rename(iteration))

        online = self.net.gen["in_service"].astype(bool)
        self._gen_p.append(self.net.gen["p_mw"].where(online, 0.0).astype(float).rename(iteration))
        self._gen_q.append(self.net.gen["q_mvar"].where(online, 0.0).astype(float).rename(iteration))
        return row

    def summary(self) -> pd.DataFrame:
        """Aggregate indicators, one row per iteration."""
        return pd.DataFrame(self._rows, columns=SUMMARY_COLUMNS).set_index("iteration")

    def _stack(self, series: List[pd.Series], label: str) -> pd.DataFrame:
        if not series:
            return pd.DataFrame()
        frame = pd.concat(series, axis=1).T
        frame.index.name = "iteration"
        frame.columns.name = label
        return frame

    def bus_p(self) -> pd.DataFrame:
        """Served active demand per bus (columns) per iteration (rows)."""
        return self._stack(self._bus_p, "bus")

    def bus_q(self) -> pd.DataFrame:
        return self._stack(self._bus_q, "bus")

    def gen_p(self) -> pd.DataFrame:
        return self._stack(self._gen_p, "gen")

    def gen_q(self) -> pd.DataFrame:
        return self._stack(self._gen_q, "gen")

    def frames(self) -> Dict[str, pd.DataFrame]:
        return {
            "summary": self.summary(),
            "bus_p": self.bus_p(),
            "bus_q": self.bus_q(),
            "gen_p": self.gen_p(),
            "gen_q": self.gen_q(),
        }
