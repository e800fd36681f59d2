"""
Component Identity
==================

Tagged component references and per-component status records.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class ComponentType(Enum):
    """Network element families that can fail and be repaired."""
    BRANCH = "branch"
    BUS = "bus"
    GEN = "gen"

    @property
    def table(self) -> str:
        """Name of the pandapower table holding this component type."""
        return _TABLES[self]

    @classmethod
    def precedence(cls) -> Tuple["ComponentType", ...]:
        """Fixed processing order used for contingencies and crew admission."""
        return (cls.BRANCH, cls.BUS, cls.GEN)


_TABLES = {
    ComponentType.BRANCH: "line",
    ComponentType.BUS: "bus",
    ComponentType.GEN: "gen",
}


class ComponentStatus(Enum):
    """Lifecycle of a component over one simulation run."""
    HEALTHY = "healthy"
    DAMAGED = "damaged"              # Failed by the event, needs a crew
    DISCONNECTED = "disconnected"    # Tripped, reconnect only
    ACTIVE = "active"                # Crew currently working on it
    RESTORED = "restored"

    @property
    def outaged(self) -> bool:
        return self in (ComponentStatus.DAMAGED, ComponentStatus.DISCONNECTED, ComponentStatus.ACTIVE)

    @property
    def in_service(self) -> bool:
        return not self.outaged


@dataclass(frozen=True)
class ComponentRef:
    """
    Identity of a single network component.

    Attributes:
        type: Component family
        id: Index label in the component's pandapower table
    """
    type: ComponentType
    id: int

    def __lt__(self, other: "ComponentRef") -> bool:
        order = ComponentType.precedence()
        return (order.index(self.type), self.id) < (order.index(other.type), other.id)

    def __str__(self) -> str:
        return f"{self.type.value}:{self.id}"

    @classmethod
    def branch(cls, id: int) -> "ComponentRef":
        return cls(ComponentType.BRANCH, int(id))

    @classmethod
    def bus(cls, id: int) -> "ComponentRef":
        return cls(ComponentType.BUS, int(id))

    @classmethod
    def gen(cls, id: int) -> "ComponentRef":
        return cls(ComponentType.GEN, int(id))


@dataclass
class Component:
    """
    Status record for one component.

    Attributes:
        ref: Component identity
        status: Current lifecycle status
        remaining_repair_time: Crew hours left before the repair completes
    """
    ref: ComponentRef
    status: ComponentStatus = ComponentStatus.HEALTHY
    remaining_repair_time: float = 0.0

    def __post_init__(self):
        if self.remaining_repair_time < 0:
            raise ValueError("remaining_repair_time must be non-negative")
