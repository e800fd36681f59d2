"""
Island Resolution
=================

After a restoration batch, every island holding a just-restored component is
extracted as a pandapower sub-network and checked for feasibility at
pre-disturbance demand. If the check fails the island's demand is ramped up
from its current level in equal steps, keeping the last feasible state.
Results are written back into the parent network's tables.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import pandas as pd
import pandapower as pp
from pandapower.toolbox import select_subnet

from ..config import SolverSettings
from ..solver import PandapowerSolver, PowerFlowSolver
from ..topology.components import ComponentRef
from ..topology.graph import Island, NetworkGraph
from ..topology.network import generator_capacity, shed_loads

logger = logging.getLogger(__name__)

LOAD_COLUMNS = ["p_mw", "q_mvar"]
WRITE_BACK_TABLES = ("bus", "line", "gen", "load")
LOCAL_COLUMNS = ("slack",)


@dataclass
class IslandOutcome:
    """
    Result of resolving one island.

    Attributes:
        island: The island that was resolved
        status: "restored" (full demand), "ramped" (every ramp step feasible),
            "partial" (rolled back mid-ramp), "infeasible" (no ramp step
            feasible) or "deenergized" (no generation source)
        ramp_steps: Number of feasible ramp steps
        served_p_mw: Active demand served in the island afterwards
    """
    island: Island
    status: str
    ramp_steps: int = 0
    served_p_mw: float = 0.0


def assign_reference(sub: pp.pandapowerNet) -> Optional[int]:
    """
    Make sure the island has exactly one reference element.

    With one in-service external grid or slack generator nothing changes.
    Otherwise every reference is demoted (external grids become PV
    generators) and the in-service generator with the largest capacity
    becomes the slack.

    Returns:
        Index of the generator made slack, or None if the reference was kept
    """
    ext = sub.ext_grid[sub.ext_grid["in_service"].astype(bool)]
    if "slack" not in sub.gen.columns:
        sub.gen["slack"] = False
    gens_online = sub.gen["in_service"].astype(bool)
    slack_gens = sub.gen.index[gens_online & sub.gen["slack"].fillna(False).astype(bool)]
    if len(ext) + len(slack_gens) == 1:
        return None

    sub.gen["slack"] = False
    for idx, row in ext.iterrows():
        kwargs = {}
        for col in ("max_p_mw", "min_p_mw", "max_q_mvar", "min_q_mvar"):
            if col in ext.columns and pd.notna(row[col]):
                kwargs[col] = row[col]
        pp.create_gen(
            sub, bus=row["bus"], p_mw=0.0, vm_pu=row["vm_pu"],
            name=f"ext_grid {idx}", controllable=True, **kwargs,
        )
        sub.ext_grid.at[idx, "in_service"] = False

    online = sub.gen["in_service"].astype(bool)
    if not online.any():
        return None
    capacity = generator_capacity(sub)[online]
    slack = int(capacity.idxmax())
    sub.gen.at[slack, "slack"] = True
    return slack


def write_back(net: pp.pandapowerNet, sub: pp.pandapowerNet, rows: Optional[Dict[str, pd.Index]] = None) -> None:
    """
    Copy the island's rows into the parent network, keeping the parent's layout.

    Args:
        net: Parent network
        sub: Solved island sub-network
        rows: {table: row ids taken from the parent}; rows added to the island
            afterwards (e.g. external grids converted to generators) are skipped
    """
    for table in WRITE_BACK_TABLES:
        ids = sub[table].index if rows is None else rows[table]
        ids = net[table].index.intersection(ids)
        cols = [c for c in net[table].columns if c in sub[table].columns and c not in LOCAL_COLUMNS]
        for col in cols:
            net[table].loc[ids, col] = sub[table].loc[ids, col].values


class IslandResolver:
    """
    Attributes:
        load_restored: Set once an island has been solved at full demand;
            afterwards islands adopt pre-disturbance demand without a solve
    """

    def __init__(
        self,
        net: pp.pandapowerNet,
        graph: NetworkGraph,
        solver: Optional[PowerFlowSolver] = None,
        settings: Optional[SolverSettings] = None,
        ramp_iterations: int = 20,
    ):
        if "demand_init" not in net:
            raise ValueError("Network is not initialized; call initialize_network first")
        self.net = net
        self.graph = graph
        self.solver = solver if solver is not None else PandapowerSolver()
        self.settings = settings or SolverSettings()
        self.ramp_iterations = ramp_iterations
        self.load_restored = False

    def resolve(self, restored: Iterable[ComponentRef]) -> List[IslandOutcome]:
        """Resolve every island touched by the given restorations."""
        outcomes = [self.resolve_island(island) for island in self.graph.islands_containing(restored)]
        for outcome in outcomes:
            logger.debug(
                "Island at bus %d: %s (%.2f MW, %d ramp steps)",
                min(outcome.island.bus_ids), outcome.status, outcome.served_p_mw, outcome.ramp_steps,
            )
        return outcomes

    def resolve_island(self, island: Island) -> IslandOutcome:
        if not island.has_source:
            shed_loads(self.net, island.bus_ids)
            return IslandOutcome(island, "deenergized")

        sub = select_subnet(self.net, sorted(island.bus_ids))
        # select_subnet starts from an empty network with its default base
        sub.sn_mva = self.net.sn_mva
        sub.f_hz = self.net.f_hz
        rows = {table: sub[table].index.copy() for table in WRITE_BACK_TABLES}
        assign_reference(sub)

        target = self.net["demand_init"].loc[sub.load.index, LOAD_COLUMNS].astype(float)

        if self.load_restored:
            sub.load.loc[:, LOAD_COLUMNS] = target.values
            return self._finish(island, sub, "restored", rows)

        trial = copy.deepcopy(sub)
        trial.load.loc[:, LOAD_COLUMNS] = target.values
        trial, ok = self.solver(trial, self.settings)
        if ok:
            self.load_restored = True
            return self._finish(island, trial, "restored", rows)

        return self._ramp(island, sub, target, rows)

    def _ramp(self, island: Island, sub: pp.pandapowerNet, target: pd.DataFrame, rows) -> IslandOutcome:
        start = sub.load[LOAD_COLUMNS].astype(float)
        step = (target - start) / self.ramp_iterations
        good = sub
        steps = 0
        for k in range(1, self.ramp_iterations + 1):
            trial = copy.deepcopy(good)
            trial.load.loc[:, LOAD_COLUMNS] = (start + step * k).values
            trial, ok = self.solver(trial, self.settings)
            if not ok:
                break
            good, steps = trial, k

        if steps == self.ramp_iterations:
            status = "ramped"
        elif steps == 0:
            status = "infeasible"
        else:
            status = "partial"
        logger.info("Island at bus %d ramped %d/%d steps", min(island.bus_ids), steps, self.ramp_iterations)
        outcome = self._finish(island, good, status, rows)
        outcome.ramp_steps = steps
        return outcome

    def _finish(self, island: Island, sub: pp.pandapowerNet, status: str, rows) -> IslandOutcome:
        write_back(self.net, sub, rows)
        served = float(sub.load.loc[sub.load["in_service"].astype(bool), "p_mw"].sum())
        return IslandOutcome(island, status, served_p_mw=served)
