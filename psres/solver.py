"""
Feasibility Solver
==================

A solver takes an island sub-network and settings, and returns the (possibly
updated) sub-network plus a success flag. Non-convergence is reported as
``success=False``; any other error propagates to the caller.

``PandapowerSolver`` runs pandapower's AC OPF (``runopp``) or plain power
flow (``runpp``) and copies the solved generator dispatch back into the
``gen`` table so the next solve starts from it.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Tuple

import pandapower as pp

from .config import SolverSettings

logger = logging.getLogger(__name__)


class PowerFlowSolver(Protocol):
    def __call__(self, net: pp.pandapowerNet, settings: SolverSettings) -> Tuple[pp.pandapowerNet, bool]:
        ...


class PandapowerSolver:
    """Default solver backed by pandapower."""

    def __call__(self, net: pp.pandapowerNet, settings: Optional[SolverSettings] = None) -> Tuple[pp.pandapowerNet, bool]:
        settings = settings or SolverSettings()
        try:
            if settings.mode == "opf":
                pp.runopp(
                    net,
                    init=settings.init,
                    calculate_voltage_angles=settings.calculate_voltage_angles,
                    numba=settings.numba,
                )
            else:
                pp.runpp(
                    net,
                    init=settings.init,
                    calculate_voltage_angles=settings.calculate_voltage_angles,
                    numba=settings.numba,
                )
        except (pp.OPFNotConverged, pp.LoadflowNotConverged) as e:
            logger.debug("%s did not converge: %s", settings.mode, e)
            return net, False

        online = net.gen["in_service"].astype(bool)
        if len(net.res_gen):
            net.gen.loc[online, "p_mw"] = net.res_gen.loc[online, "p_mw"]
            net.gen.loc[online, "q_mvar"] = net.res_gen.loc[online, "q_mvar"]
        return net, True
