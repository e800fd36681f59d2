"""
Contingency Generator
=====================

Turns fragility curves and an environmental-state series into the time step
at which each component fails.

For every time step, for every component type (branch, bus, generator), each
still-healthy component in the active set draws r ~ U(0, 1) and fails when r
is below its curve's probability at the nearest grid state. A component fails
at most once per draw.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import numpy as np

from ..exceptions import DataError
from ..topology.components import ComponentRef, ComponentType
from ..topology.graph import NetworkGraph
from .fragility import FragilityCurveStore

logger = logging.getLogger(__name__)


@dataclass
class ContingencySet:
    """
    Failure time index per component (0 = never failed).

    Attributes:
        ids: {type: component ids in table order}
        failure_step: {type: int array aligned with ``ids``; 1-based step of failure}
        horizon: Number of event steps the set was drawn over
    """
    ids: Dict[ComponentType, List[int]]
    failure_step: Dict[ComponentType, np.ndarray] = field(default_factory=dict)
    horizon: int = 0
    _positions: Dict[ComponentType, Dict[int, int]] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        for ctype, ids in self.ids.items():
            self.failure_step.setdefault(ctype, np.zeros(len(ids), dtype=int))
            self._positions[ctype] = {cid: pos for pos, cid in enumerate(ids)}

    @classmethod
    def from_failures(cls, graph: NetworkGraph, failures: Dict[ComponentRef, int]) -> "ContingencySet":
        """Build a set from explicit {component: failure step} pairs."""
        contingencies = cls(ids={t: graph.ids(t) for t in ComponentType.precedence()})
        for ref, step in failures.items():
            if step < 1:
                raise DataError(f"Failure step of {ref} must be >= 1, got {step}")
            if ref.id not in contingencies._positions[ref.type]:
                raise DataError(f"Component {ref} is not in the network")
            contingencies.mark(ref, int(step))
        return contingencies

    @property
    def n_steps(self) -> int:
        last = max((int(a.max()) for a in self.failure_step.values() if a.size), default=0)
        return max(self.horizon, last)

    def mark(self, ref: ComponentRef, step: int) -> bool:
        """Record a failure; returns False when the component had already failed."""
        pos = self._positions[ref.type][ref.id]
        if self.failure_step[ref.type][pos] != 0:
            return False
        self.failure_step[ref.type][pos] = step
        return True

    def step_of(self, ref: ComponentRef) -> int:
        return int(self.failure_step[ref.type][self._positions[ref.type][ref.id]])

    def failed_at(self, step: int) -> List[ComponentRef]:
        """Components that fail at ``step``, in type precedence then table order."""
        return [
            ComponentRef(ctype, self.ids[ctype][pos])
            for ctype in ComponentType.precedence() if ctype in self.ids
            for pos in np.flatnonzero(self.failure_step[ctype] == step)
        ]

    def failed(self) -> List[ComponentRef]:
        return [
            ComponentRef(ctype, self.ids[ctype][pos])
            for ctype in ComponentType.precedence() if ctype in self.ids
            for pos in np.flatnonzero(self.failure_step[ctype] > 0)
        ]

    def is_empty(self) -> bool:
        return not any(np.any(a) for a in self.failure_step.values())

    def counts(self) -> Dict[str, int]:
        return {ctype.value: int(np.count_nonzero(a)) for ctype, a in self.failure_step.items()}


def normalize_env_state(env_state) -> np.ndarray:
    """
    Coerce an environmental-state series to one row per component type.

    Accepts shape (T,) or (1, T) (broadcast to all types) and (3, T).
    """
    env = np.asarray(env_state, dtype=float)
    if env.ndim == 1:
        env = env[np.newaxis, :]
    if env.ndim != 2 or env.shape[1] == 0:
        raise DataError(f"Environmental state must be a non-empty 1-D or 2-D array, got shape {env.shape}")
    if env.shape[0] == 1:
        env = np.repeat(env, len(ComponentType.precedence()), axis=0)
    if env.shape[0] != len(ComponentType.precedence()):
        raise DataError(f"Environmental state needs 1 or 3 rows, got {env.shape[0]}")
    if not np.all(np.isfinite(env)):
        raise DataError("Environmental state contains non-finite values")
    return env


def generate_contingency(
    graph: NetworkGraph,
    curves: FragilityCurveStore,
    env_state,
    active_set: Optional[Iterable[ComponentRef]] = None,
    rng: Optional[np.random.Generator] = None,
) -> ContingencySet:
    """
    Draw a contingency set for an extreme-weather event.

    Args:
        graph: Network graph providing the component ids
        curves: Fragility curves for every in-scope component
        env_state: Environmental state per time step, shape (T,), (1, T) or (3, T)
        active_set: Components exposed to the event (default: all)
        rng: Random generator (default: fresh ``np.random.default_rng()``)

    Returns:
        ContingencySet with the 1-based failure step of every failed component
    """
    env = normalize_env_state(env_state)
    rng = rng if rng is not None else np.random.default_rng()

    contingencies = ContingencySet(
        ids={t: graph.ids(t) for t in ComponentType.precedence()}, horizon=env.shape[1]
    )

    if active_set is None:
        exposed = {t: graph.refs(t) for t in ComponentType.precedence()}
    else:
        exposed = {t: [] for t in ComponentType.precedence()}
        for ref in active_set:
            if ref.id not in contingencies._positions[ref.type]:
                raise DataError(f"Active-set component {ref} is not in the network")
            exposed[ref.type].append(ref)

    # Resolve curves up front so a missing curve fails before any draw
    exposed_curves = {t: [(ref, curves.curve_for(ref)) for ref in refs] for t, refs in exposed.items()}

    for step in range(1, env.shape[1] + 1):
        for row, ctype in enumerate(ComponentType.precedence()):
            state = env[row, step - 1]
            for ref, curve in exposed_curves[ctype]:
                if contingencies.step_of(ref) != 0:
                    continue
                if rng.random() < curve.probability_at(state):
                    contingencies.mark(ref, step)

    logger.info("Generated contingency over %d steps: %s", env.shape[1], contingencies.counts())
    return contingencies
