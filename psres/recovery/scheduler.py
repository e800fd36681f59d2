"""
Restoration Scheduler
=====================

Discrete-event simulation of the restoration process. Each iteration jumps
the clock to the next repair completion (or the mass-reconnection threshold),
then:

1. Completes every repair ending at that time and reconnects disconnected
   components around each repaired one
2. Reconnects every remaining disconnected component at once when no damage
   is left or the threshold was reached (one-shot; the threshold is then
   pushed out of reach)
3. Resolves the islands touched by this iteration's restorations
4. Refills free crew slots, advances all active repairs and records the
   indicators

When damaged components wait but no crew can work on them, the clock jumps to
the threshold so the mass reconnection still happens.

The run ends when nothing is damaged or disconnected, when the iteration cap
is reached, or when damage is still waiting for a crew after the mass
reconnection. The last two mark the result as truncated.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional

import numpy as np
import pandas as pd
import pandapower as pp

from ..config import RecoverySettings, SolverSettings
from ..solver import PowerFlowSolver
from ..topology.components import ComponentRef, ComponentStatus
from ..topology.graph import NetworkGraph
from .crews import CrewPool, RepairQueue
from .indicators import IndicatorRecorder
from .islands import IslandOutcome, IslandResolver
from .reconnect import NeighborReconnector
from .registry import ComponentRegistry

logger = logging.getLogger(__name__)


class ClockState(Enum):
    RUNNING = "running"
    DRAINING = "draining"        # Mass reconnection has happened
    TERMINATED = "terminated"


@dataclass
class SimulationClock:
    """
    Attributes:
        t_prev: Time of the previous event (hours)
        t_cur: Time of the current event (hours)
        t_threshold: Time at which all disconnected components are reconnected
        t_escape: Threshold used once the mass reconnection has happened
    """
    t_threshold: float = 600.0
    t_escape: float = 100000.0
    t_prev: float = 0.0
    t_cur: float = 0.0
    state: ClockState = ClockState.RUNNING

    def advance(self, next_completion: Optional[float], waiting: bool = False) -> float:
        """
        Move ``t_cur`` to the next completion, capped at the threshold.

        With no repair under way the clock stays put, unless damage is still
        waiting for a crew; then it jumps straight to the threshold.
        """
        if next_completion is None:
            self.t_cur = self.t_threshold if waiting else self.t_prev
        else:
            self.t_cur = min(self.t_prev + next_completion, self.t_threshold)
        return self.t_cur

    @property
    def threshold_hit(self) -> bool:
        return math.isclose(self.t_cur, self.t_threshold) or self.t_cur > self.t_threshold

    def escape(self) -> None:
        self.t_threshold = self.t_escape
        self.state = ClockState.DRAINING

    def commit(self) -> float:
        """Close the iteration; returns the elapsed time."""
        dt = self.t_cur - self.t_prev
        self.t_prev = self.t_cur
        return dt


@dataclass
class RecoveryResult:
    """
    Outcome of a restoration run.

    Attributes:
        times: Event times, starting with 0 (hours since restoration began)
        iterations: Number of loop iterations executed
        truncated: True when the run stopped before everything was restored
        indicators: Indicator frames (see ``IndicatorRecorder.frames``)
        status: Final component status table
        islands: Island outcomes per iteration
    """
    times: np.ndarray
    iterations: int
    truncated: bool
    indicators: Dict[str, pd.DataFrame]
    status: pd.DataFrame
    islands: Dict[int, List[IslandOutcome]] = field(default_factory=dict)

    @property
    def total_hours(self) -> float:
        return float(self.times[-1]) if len(self.times) else 0.0

    @property
    def summary(self) -> pd.DataFrame:
        return self.indicators["summary"]


class RestorationScheduler:
    """
    Drives one restoration run over a damaged network.

    Args:
        net: Initialized network after the disturbance phase (mutated in place)
        graph: Graph built from ``net``
        registry: Status records after the disturbance phase
        durations: Repair duration (hours) of every damaged component
        settings: Crews, threshold and iteration caps
        solver: Island feasibility solver
        solver_settings: Settings passed to the solver
    """

    def __init__(
        self,
        net: pp.pandapowerNet,
        graph: NetworkGraph,
        registry: ComponentRegistry,
        durations: Mapping[ComponentRef, float],
        settings: Optional[RecoverySettings] = None,
        solver: Optional[PowerFlowSolver] = None,
        solver_settings: Optional[SolverSettings] = None,
    ):
        self.net = net
        self.graph = graph
        self.registry = registry
        self.settings = settings or RecoverySettings()
        self.clock = SimulationClock(
            t_threshold=self.settings.t_threshold_hours,
            t_escape=self.settings.t_threshold_escape_hours,
        )
        self.crews = CrewPool(self.settings.crews.capacities())
        self.queue = RepairQueue(registry, durations, self.crews)
        self.reconnector = NeighborReconnector(graph, registry, depth=self.settings.reconnect_depth)
        self.resolver = IslandResolver(
            net, graph, solver=solver, settings=solver_settings,
            ramp_iterations=self.settings.ramp_iterations,
        )
        self.recorder = IndicatorRecorder(net, registry)

    def run(self) -> RecoveryResult:
        clock, queue, registry = self.clock, self.queue, self.registry
        times = [0.0]
        island_log: Dict[int, List[IslandOutcome]] = {}
        iteration = 0
        truncated = False

        queue.admit(clock.t_prev)
        self.recorder.record(iteration, clock.t_prev)

        while queue.has_damage() or registry.disconnected():
            if iteration >= self.settings.max_iterations:
                truncated = True
                logger.warning("Restoration stopped at the iteration cap (%d)", iteration)
                break
            stalled = queue.stalled()
            if stalled and clock.state is ClockState.DRAINING:
                truncated = True
                logger.warning(
                    "Restoration stalled at t=%.2f h: %d components wait with no crew available",
                    clock.t_prev, sum(len(q) for q in queue.waiting.values()),
                )
                break

            iteration += 1
            t_prev = clock.t_prev
            t_cur = clock.advance(queue.next_completion(), waiting=stalled)

            restored: List[ComponentRef] = []
            batch = set()
            for ref in queue.due(t_prev, t_cur):
                queue.complete(ref, t_cur)
                batch.add(ref)
                restored.append(ref)
                if registry.disconnected():
                    restored.extend(self.reconnector.reconnect(ref, batch, t_cur))

            if not queue.has_damage() or clock.threshold_hit:
                forced = registry.disconnected()
                for ref in forced:
                    registry.transition(ref, ComponentStatus.RESTORED, t_cur)
                restored.extend(forced)
                if forced:
                    logger.info("t=%.2f h: reconnected %d remaining components", t_cur, len(forced))
                clock.escape()

            if restored:
                island_log[iteration] = self.resolver.resolve(restored)

            queue.admit(t_cur)
            queue.elapse(clock.commit())
            times.append(t_cur)
            self.recorder.record(iteration, t_cur)

        clock.state = ClockState.TERMINATED
        if not truncated:
            registry.settle(clock.t_prev)

        logger.info(
            "Restoration %s after %d iterations, %.2f h",
            "truncated" if truncated else "complete", iteration, clock.t_prev,
        )
        return RecoveryResult(
            times=np.asarray(times),
            iterations=iteration,
            truncated=truncated,
            indicators=self.recorder.frames(),
            status=registry.status_table(),
            islands=island_log,
        )
