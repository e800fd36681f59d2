"""
Component Registry
==================

Owns the status record of every branch, bus and generator for one simulation
run. Every status change goes through ``transition`` which validates it
against the allowed lifecycle and mirrors the result onto the ``in_service``
flag of the network table.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd
import pandapower as pp

from ..exceptions import InvalidTransitionError
from ..topology.components import Component, ComponentRef, ComponentStatus, ComponentType
from ..topology.graph import NetworkGraph

logger = logging.getLogger(__name__)

S = ComponentStatus

ALLOWED_TRANSITIONS = {
    S.HEALTHY: frozenset({S.DAMAGED, S.DISCONNECTED}),
    S.DAMAGED: frozenset({S.ACTIVE}),
    S.DISCONNECTED: frozenset({S.ACTIVE, S.RESTORED}),
    S.ACTIVE: frozenset({S.RESTORED}),
    S.RESTORED: frozenset({S.HEALTHY}),
}


class ComponentRegistry:
    """
    Status records keyed by component identity.

    Attributes:
        net: Network whose ``in_service`` flags mirror the records
        records: {ComponentRef: Component}
        history: (time, ref, old status, new status) for every transition
    """

    def __init__(self, net: pp.pandapowerNet, refs: Iterable[ComponentRef]):
        self.net = net
        self.records: Dict[ComponentRef, Component] = {ref: Component(ref) for ref in refs}
        self.history: List[Tuple[Optional[float], ComponentRef, ComponentStatus, ComponentStatus]] = []

    @classmethod
    def from_network(cls, net: pp.pandapowerNet, graph: Optional[NetworkGraph] = None) -> "ComponentRegistry":
        graph = graph if graph is not None else NetworkGraph(net)
        return cls(net, graph.refs())

    def __contains__(self, ref: ComponentRef) -> bool:
        return ref in self.records

    def __len__(self) -> int:
        return len(self.records)

    def get(self, ref: ComponentRef) -> Component:
        try:
            return self.records[ref]
        except KeyError:
            raise InvalidTransitionError(f"Unknown component {ref}") from None

    def status(self, ref: ComponentRef) -> ComponentStatus:
        return self.get(ref).status

    def transition(self, ref: ComponentRef, new: ComponentStatus, time: Optional[float] = None) -> None:
        """
        Move a component to a new status.

        Raises:
            InvalidTransitionError: If the lifecycle does not allow the change
        """
        record = self.get(ref)
        old = record.status
        if new not in ALLOWED_TRANSITIONS[old]:
            raise InvalidTransitionError(f"{ref}: {old.value} -> {new.value} is not allowed")
        record.status = new
        if new in (S.RESTORED, S.HEALTHY):
            record.remaining_repair_time = 0.0
        self.net[ref.type.table].at[ref.id, "in_service"] = new.in_service
        self.history.append((time, ref, old, new))
        logger.debug("t=%s %s: %s -> %s", time, ref, old.value, new.value)

    def with_status(self, *statuses: ComponentStatus, ctype: Optional[ComponentType] = None) -> List[ComponentRef]:
        """Components currently in any of ``statuses``, in precedence then id order."""
        return sorted(
            ref for ref, rec in self.records.items()
            if rec.status in statuses and (ctype is None or ref.type == ctype)
        )

    def damaged(self) -> List[ComponentRef]:
        return self.with_status(S.DAMAGED, S.ACTIVE)

    def disconnected(self) -> List[ComponentRef]:
        return self.with_status(S.DISCONNECTED)

    def outaged_count(self, ctype: ComponentType) -> int:
        return sum(1 for ref, rec in self.records.items() if ref.type == ctype and rec.status.outaged)

    def settle(self, time: Optional[float] = None) -> int:
        """Return every restored component to HEALTHY; returns how many settled."""
        restored = self.with_status(S.RESTORED)
        for ref in restored:
            self.transition(ref, S.HEALTHY, time)
        return len(restored)

    def status_table(self) -> pd.DataFrame:
        rows = [
            {
                "type": ref.type.value,
                "id": ref.id,
                "status": rec.status.value,
                "remaining_repair_time": rec.remaining_repair_time,
            }
            for ref, rec in sorted(self.records.items())
        ]
        return pd.DataFrame(rows, columns=["type", "id", "status", "remaining_repair_time"])
