"""
Power System Resilience
=======================

Weather-driven contingency generation and crew-constrained restoration
simulation for pandapower networks:
- contingency/: fragility curves, stochastic failures, disturbance phase
- topology/: component identities, network preparation, graph queries
- recovery/: crew scheduling, reconnection, island feasibility, indicators
- metrics: FLEP resilience metrics
"""

__version__ = "1.0.0"
