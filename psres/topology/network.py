"""
Network Preparation
===================

Helpers around the pandapower network used as the authoritative component
tables during a resilience run.

Conventions:
- Branches are the rows of ``net.line``; transformers are treated as always
  in service and only contribute connectivity.
- Buses are the rows of ``net.bus``; generators are the rows of ``net.gen``.
- External grids are generation sources attached to their bus and do not fail
  on their own.
- Served demand at a bus is the sum of ``p_mw``/``q_mvar`` of its loads.
"""

from __future__ import annotations

import logging
from typing import Dict

import numpy as np
import pandas as pd
import pandapower as pp
import pandapower.networks as pn

from ..exceptions import DataError

logger = logging.getLogger(__name__)


def load_case(name: str) -> pp.pandapowerNet:
    """
    Build one of the pandapower built-in test cases by name (e.g. ``"case14"``).

    Raises:
        DataError: If pandapower has no such case
    """
    factory = getattr(pn, name, None)
    if factory is None or not callable(factory):
        raise DataError(f"Unknown pandapower test case: {name}")
    return initialize_network(factory())


def initialize_network(net: pp.pandapowerNet) -> pp.pandapowerNet:
    """
    Snapshot pre-disturbance demand and generation on the network.

    Adds:
        net.demand_init: per-load DataFrame with ``bus``, ``p_mw``, ``q_mvar``
        net.gen_init: per-generator DataFrame with ``p_mw``, ``q_mvar``
        net.gen["q_mvar"]: solved reactive output of each generator

    Calling it again on an initialized network is a no-op.
    """
    if "demand_init" in net:
        return net

    if "q_mvar" not in net.gen.columns:
        net.gen["q_mvar"] = 0.0
    net["demand_init"] = net.load[["bus", "p_mw", "q_mvar"]].copy()
    net["gen_init"] = net.gen[["p_mw", "q_mvar"]].copy()

    logger.debug(
        "Initialized network: %d branches, %d buses, %d generators, %.2f MW demand",
        len(net.line), len(net.bus), len(net.gen), net["demand_init"]["p_mw"].sum(),
    )
    return net


def bus_demand(net: pp.pandapowerNet) -> pd.DataFrame:
    """
    Served active/reactive demand per bus (zero for out-of-service buses).

    Returns:
        DataFrame indexed like ``net.bus`` with ``p_mw`` and ``q_mvar`` columns
    """
    loads = net.load[net.load["in_service"].astype(bool)]
    served = loads.groupby("bus")[["p_mw", "q_mvar"]].sum()
    served = served.reindex(net.bus.index, fill_value=0.0)
    served.loc[~net.bus["in_service"].astype(bool)] = 0.0
    return served


def generator_capacity(net: pp.pandapowerNet) -> pd.Series:
    """Active-power capacity per generator, falling back to the setpoint when no limit is given."""
    capacity = net.gen["max_p_mw"].astype(float) if "max_p_mw" in net.gen.columns else pd.Series(
        np.nan, index=net.gen.index
    )
    return capacity.fillna(net.gen["p_mw"].abs()).clip(lower=0.0)


def shed_loads(net: pp.pandapowerNet, buses) -> None:
    """Set served demand to zero for every load on the given buses."""
    mask = net.load["bus"].isin(list(buses))
    net.load.loc[mask, ["p_mw", "q_mvar"]] = 0.0


def network_summary(net: pp.pandapowerNet) -> Dict[str, float]:
    """Compact summary of the network size and pre-disturbance demand."""
    demand = net["demand_init"] if "demand_init" in net else net.load
    return {
        "n_branches": len(net.line),
        "n_buses": len(net.bus),
        "n_gens": len(net.gen),
        "n_ext_grids": len(net.ext_grid),
        "demand_p_mw": float(demand["p_mw"].sum()),
        "capacity_mw": float(generator_capacity(net).sum()),
    }
