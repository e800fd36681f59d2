"""
Network Graph
=============

Topology query surface over a pandapower network:
- Branch endpoints and incident branches per bus
- Generator membership per bus
- Bounded-depth neighbourhood search for opportunistic reconnection
- Island partitioning through in-service branches

Adjacency is built once from ``net.line`` regardless of in-service state, so
neighbourhood queries reach de-energized equipment. Island partitioning reads
the current ``in_service`` flags every time it is called.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

import networkx as nx
import pandapower as pp

from .components import ComponentRef, ComponentType


@dataclass(frozen=True)
class Island:
    """
    Maximal connected set of energizable components.

    Attributes:
        bus_ids: In-service buses in the island
        branch_ids: In-service branches between those buses
        gen_ids: In-service generators at those buses
        ext_grid_ids: In-service external grids at those buses
    """
    bus_ids: FrozenSet[int]
    branch_ids: FrozenSet[int] = field(default_factory=frozenset)
    gen_ids: FrozenSet[int] = field(default_factory=frozenset)
    ext_grid_ids: FrozenSet[int] = field(default_factory=frozenset)

    def contains(self, ref: ComponentRef) -> bool:
        if ref.type == ComponentType.BRANCH:
            return ref.id in self.branch_ids
        if ref.type == ComponentType.BUS:
            return ref.id in self.bus_ids
        return ref.id in self.gen_ids

    @property
    def has_source(self) -> bool:
        """True when the island holds any generation that could energize it."""
        return bool(self.gen_ids) or bool(self.ext_grid_ids)


class NetworkGraph:
    """
    Prebuilt adjacency structure for a pandapower network.

    Attributes:
        net: The network the graph was built from
        branch_ends: {branch_id: (from_bus, to_bus)}
        bus_branches: {bus_id: [incident branch ids]}
        bus_neighbours: {bus_id: [adjacent bus ids]} (deduplicated, in branch order)
        bus_gens: {bus_id: [generator ids]}
        gen_bus: {gen_id: bus_id}
    """

    def __init__(self, net: pp.pandapowerNet):
        self.net = net
        self.branch_ends: Dict[int, Tuple[int, int]] = {}
        self.bus_branches: Dict[int, List[int]] = {int(b): [] for b in net.bus.index}
        self.bus_neighbours: Dict[int, List[int]] = {int(b): [] for b in net.bus.index}
        self.bus_gens: Dict[int, List[int]] = {int(b): [] for b in net.bus.index}
        self.gen_bus: Dict[int, int] = {}

        for idx, row in net.line.iterrows():
            f, t = int(row["from_bus"]), int(row["to_bus"])
            self.branch_ends[int(idx)] = (f, t)
            self.bus_branches[f].append(int(idx))
            self.bus_branches[t].append(int(idx))
            if t not in self.bus_neighbours[f]:
                self.bus_neighbours[f].append(t)
            if f not in self.bus_neighbours[t]:
                self.bus_neighbours[t].append(f)

        for idx, bus in net.gen["bus"].items():
            self.gen_bus[int(idx)] = int(bus)
            self.bus_gens[int(bus)].append(int(idx))

    def ids(self, ctype: ComponentType) -> List[int]:
        """All component ids of a type, in table order."""
        return [int(i) for i in self.net[ctype.table].index]

    def refs(self, ctype: Optional[ComponentType] = None) -> List[ComponentRef]:
        types = ComponentType.precedence() if ctype is None else (ctype,)
        return [ComponentRef(t, i) for t in types for i in self.ids(t)]

    def anchor_bus(self, ref: ComponentRef) -> int:
        """Bus a component is attached to; a branch is anchored at its "from" bus."""
        if ref.type == ComponentType.BRANCH:
            return self.branch_ends[ref.id][0]
        if ref.type == ComponentType.GEN:
            return self.gen_bus[ref.id]
        return ref.id

    def incident(self, bus: int) -> List[ComponentRef]:
        """Branches and generators directly attached to a bus."""
        return ([ComponentRef.branch(b) for b in self.bus_branches[bus]]
                + [ComponentRef.gen(g) for g in self.bus_gens[bus]])

    def neighbourhood(self, ref: ComponentRef, depth: int = 2) -> List[ComponentRef]:
        """
        Components within ``depth`` hops of a component's anchor bus.

        Every bus reached contributes its generators and itself; buses closer
        than ``depth`` also contribute their incident branches and expand to
        their neighbours.

        Args:
            ref: Starting component
            depth: Hop budget from the anchor bus

        Returns:
            Discovered components in breadth-first order, without duplicates
        """
        start = self.anchor_bus(ref)
        found: List[ComponentRef] = []
        seen: Set[ComponentRef] = set()
        visited = {start}
        queue = deque([(start, 0)])

        def add(item: ComponentRef) -> None:
            if item not in seen:
                seen.add(item)
                found.append(item)

        while queue:
            bus, hop = queue.popleft()
            for g in self.bus_gens[bus]:
                add(ComponentRef.gen(g))
            add(ComponentRef.bus(bus))
            if hop >= depth:
                continue
            for b in self.bus_branches[bus]:
                add(ComponentRef.branch(b))
            for nxt in self.bus_neighbours[bus]:
                if nxt not in visited:
                    visited.add(nxt)
                    queue.append((nxt, hop + 1))
        return found

    def islands(self) -> List[Island]:
        """
        Partition the energizable part of the network into islands.

        Nodes are in-service buses; edges are in-service branches whose
        endpoints are both in service, plus in-service transformers.
        Islands are ordered by their smallest bus id.
        """
        net = self.net
        live_buses = {int(b) for b in net.bus.index[net.bus["in_service"].astype(bool)]}
        graph = nx.Graph()
        graph.add_nodes_from(live_buses)

        live_branches: Dict[int, Tuple[int, int]] = {}
        for idx, (f, t) in self.branch_ends.items():
            if bool(net.line.at[idx, "in_service"]) and f in live_buses and t in live_buses:
                live_branches[idx] = (f, t)
                graph.add_edge(f, t)
        for _, row in net.trafo[net.trafo["in_service"].astype(bool)].iterrows():
            hv, lv = int(row["hv_bus"]), int(row["lv_bus"])
            if hv in live_buses and lv in live_buses:
                graph.add_edge(hv, lv)

        live_gens = net.gen[net.gen["in_service"].astype(bool)]
        live_ext = net.ext_grid[net.ext_grid["in_service"].astype(bool)]

        islands = []
        for component in sorted(nx.connected_components(graph), key=min):
            buses = frozenset(int(b) for b in component)
            islands.append(Island(
                bus_ids=buses,
                branch_ids=frozenset(i for i, (f, _) in live_branches.items() if f in buses),
                gen_ids=frozenset(int(g) for g in live_gens.index[live_gens["bus"].isin(buses)]),
                ext_grid_ids=frozenset(int(e) for e in live_ext.index[live_ext["bus"].isin(buses)]),
            ))
        return islands

    def islands_containing(self, refs: Iterable[ComponentRef]) -> List[Island]:
        """Islands holding at least one of the given components, each listed once."""
        refs = list(refs)
        return [island for island in self.islands() if any(island.contains(r) for r in refs)]
