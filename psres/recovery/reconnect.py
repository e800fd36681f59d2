"""
Opportunistic Reconnection
==========================

When a repair completes, disconnected but undamaged equipment near the
repaired component is switched back in without crew time. The search is a
bounded breadth-first walk from the component's anchor bus (see
``NetworkGraph.neighbourhood``). Damaged components are never reconnected
this way.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Set

from ..topology.components import ComponentRef, ComponentStatus
from ..topology.graph import NetworkGraph
from .registry import ComponentRegistry

logger = logging.getLogger(__name__)


class NeighborReconnector:
    def __init__(self, graph: NetworkGraph, registry: ComponentRegistry, depth: int = 2):
        self.graph = graph
        self.registry = registry
        self.depth = depth

    def reconnect(
        self,
        ref: ComponentRef,
        batch: Optional[Set[ComponentRef]] = None,
        time: Optional[float] = None,
    ) -> List[ComponentRef]:
        """
        Restore the disconnected components around a just-repaired one.

        Args:
            ref: Component whose repair just completed
            batch: Components already restored in this iteration; updated in place
            time: Simulation time for the transition history

        Returns:
            Components reconnected by this call, in discovery order
        """
        batch = batch if batch is not None else set()
        reconnected = []
        for item in self.graph.neighbourhood(ref, self.depth):
            if item in batch or self.registry.status(item) != ComponentStatus.DISCONNECTED:
                continue
            self.registry.transition(item, ComponentStatus.RESTORED, time)
            batch.add(item)
            reconnected.append(item)
        if reconnected:
            logger.debug("t=%s %s reconnected %s", time, ref, ", ".join(map(str, reconnected)))
        return reconnected
