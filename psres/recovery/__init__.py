"""
Restoration Layer
=================

Crew-constrained restoration of a damaged network:
- registry: component status records and validated transitions
- durations: repair-time sources (explicit or sampled)
- crews: crew pool and repair queue
- reconnect: opportunistic reconnection around repaired components
- islands: island feasibility checks with demand ramping
- indicators: per-iteration resilience indicators
- scheduler: the discrete-event restoration loop
"""

from .crews import CrewPool, RepairQueue
from .durations import ExplicitRecoveryTimes, RecoveryTimeSource, SampledRecoveryTimes, recovery_time_source
from .indicators import IndicatorRecorder, system_indicators
from .islands import IslandOutcome, IslandResolver
from .reconnect import NeighborReconnector
from .registry import ALLOWED_TRANSITIONS, ComponentRegistry
from .scheduler import ClockState, RecoveryResult, RestorationScheduler, SimulationClock

__all__ = [
    "ALLOWED_TRANSITIONS",
    "ClockState",
    "ComponentRegistry",
    "CrewPool",
    "ExplicitRecoveryTimes",
    "IndicatorRecorder",
    "IslandOutcome",
    "IslandResolver",
    "NeighborReconnector",
    "RecoveryResult",
    "RecoveryTimeSource",
    "RepairQueue",
    "RestorationScheduler",
    "SampledRecoveryTimes",
    "SimulationClock",
    "recovery_time_source",
    "system_indicators",
]
