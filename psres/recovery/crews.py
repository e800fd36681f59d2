"""
Crew Allocation
===============

Repair crews are dedicated per component type. The repair queue orders
damaged components by ascending repair duration (stable, so ties keep their
input order) and fills free crew slots type by type in the fixed precedence
Branch -> Bus -> Generator. A freed slot is refilled with the next waiting
component of the same type.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Mapping, Optional

from ..exceptions import InvalidTransitionError
from ..topology.components import ComponentRef, ComponentStatus, ComponentType
from .registry import ComponentRegistry

logger = logging.getLogger(__name__)


class CrewPool:
    """Crew capacity and occupancy per component type."""

    def __init__(self, capacity: Mapping[ComponentType, int]):
        for ctype, n in capacity.items():
            if n < 0:
                raise ValueError(f"Crew capacity for {ctype.value} must be non-negative, got {n}")
        self.capacity: Dict[ComponentType, int] = {t: int(capacity.get(t, 0)) for t in ComponentType.precedence()}
        self.active_count: Dict[ComponentType, int] = {t: 0 for t in ComponentType.precedence()}

    def free(self, ctype: ComponentType) -> int:
        return self.capacity[ctype] - self.active_count[ctype]

    def occupy(self, ctype: ComponentType) -> None:
        if self.active_count[ctype] >= self.capacity[ctype]:
            raise InvalidTransitionError(
                f"All {self.capacity[ctype]} {ctype.value} crews are already busy"
            )
        self.active_count[ctype] += 1

    def release(self, ctype: ComponentType) -> None:
        if self.active_count[ctype] == 0:
            raise InvalidTransitionError(f"No {ctype.value} crew is busy")
        self.active_count[ctype] -= 1


class RepairQueue:
    """
    Damaged components waiting for, or under, repair.

    Remaining repair time lives on the registry records; the queue keeps the
    waiting order per type and the active list in admission order.

    Attributes:
        registry: Status records of the run
        crews: Crew pool the admissions draw from
        waiting: {type: refs not yet admitted, shortest duration first}
        active: Refs under repair, in admission order
    """

    def __init__(self, registry: ComponentRegistry, durations: Mapping[ComponentRef, float], crews: CrewPool):
        self.registry = registry
        self.crews = crews
        self.active: List[ComponentRef] = []
        self.waiting: Dict[ComponentType, List[ComponentRef]] = {t: [] for t in ComponentType.precedence()}

        damaged = [ref for ref in durations if registry.status(ref) == ComponentStatus.DAMAGED]
        for ref in sorted(damaged, key=lambda r: durations[r]):
            registry.get(ref).remaining_repair_time = float(durations[ref])
            self.waiting[ref.type].append(ref)

    def has_damage(self) -> bool:
        """True while any component waits for or is under repair."""
        return bool(self.active) or any(self.waiting.values())

    def stalled(self) -> bool:
        """Components are waiting but no crew is working."""
        return not self.active and any(self.waiting.values())

    def admit(self, time: Optional[float] = None) -> List[ComponentRef]:
        """Fill free crew slots; returns the newly admitted components."""
        admitted = []
        for ctype in ComponentType.precedence():
            queue = self.waiting[ctype]
            while queue and self.crews.free(ctype) > 0:
                ref = queue.pop(0)
                self.crews.occupy(ctype)
                self.registry.transition(ref, ComponentStatus.ACTIVE, time)
                self.active.append(ref)
                admitted.append(ref)
        if admitted:
            logger.debug("t=%s admitted %s", time, ", ".join(map(str, admitted)))
        return admitted

    def remaining(self, ref: ComponentRef) -> float:
        return self.registry.get(ref).remaining_repair_time

    def next_completion(self) -> Optional[float]:
        """Shortest remaining repair time among active components."""
        if not self.active:
            return None
        return min(self.remaining(ref) for ref in self.active)

    def due(self, t_prev: float, t_cur: float) -> List[ComponentRef]:
        """Active components whose repair ends exactly at ``t_cur``, in admission order."""
        return [ref for ref in self.active if math.isclose(t_prev + self.remaining(ref), t_cur, abs_tol=1e-9)]

    def complete(self, ref: ComponentRef, time: Optional[float] = None) -> None:
        self.active.remove(ref)
        self.crews.release(ref.type)
        self.registry.transition(ref, ComponentStatus.RESTORED, time)

    def elapse(self, dt: float) -> None:
        """Advance every active repair by ``dt`` hours (never below zero)."""
        for ref in self.active:
            record = self.registry.get(ref)
            record.remaining_repair_time = max(0.0, record.remaining_repair_time - dt)
