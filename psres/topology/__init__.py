"""
Topology Layer
==============

Component identities and graph queries over pandapower networks:
- Tagged component references and status records
- Network initialization (pre-disturbance demand snapshot)
- Adjacency, bounded neighbourhood search, island partitioning
"""

from .components import Component, ComponentRef, ComponentStatus, ComponentType
from .graph import Island, NetworkGraph
from .network import initialize_network, load_case

__all__ = [
    "Component",
    "ComponentRef",
    "ComponentStatus",
    "ComponentType",
    "Island",
    "NetworkGraph",
    "initialize_network",
    "load_case",
]
