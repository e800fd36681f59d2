"""
Recovery Times
==============

Sources of crew repair durations (hours) for damaged components:
- ExplicitRecoveryTimes: a fixed duration per component
- SampledRecoveryTimes: uniform draws, with replacement, from a historical
  duration dataset per component type
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Protocol, Sequence

import numpy as np

from ..exceptions import DataError
from ..topology.components import ComponentRef, ComponentType
from ..topology.graph import NetworkGraph


class RecoveryTimeSource(Protocol):
    def durations(self, refs: Iterable[ComponentRef]) -> Dict[ComponentRef, float]:
        ...


def _check_values(values, label: str) -> np.ndarray:
    arr = np.asarray(list(values), dtype=float)
    if arr.ndim != 1:
        raise DataError(f"{label} recovery times must be one-dimensional")
    if np.any(~np.isfinite(arr)) or np.any(arr < 0):
        raise DataError(f"{label} recovery times must be finite and non-negative")
    return arr


class ExplicitRecoveryTimes:
    """Fixed repair duration per component."""

    def __init__(self, times: Mapping[ComponentRef, float]):
        checked = _check_values(times.values(), "Explicit")
        self.times: Dict[ComponentRef, float] = dict(zip(times.keys(), checked.tolist()))

    @classmethod
    def from_tables(cls, graph: NetworkGraph, tables: Mapping[ComponentType, Sequence[float]]) -> "ExplicitRecoveryTimes":
        """
        Build from per-type duration lists aligned with the network tables.

        Args:
            graph: Network graph providing the id order of each table
            tables: {type: durations in table order}; a type may be omitted

        Raises:
            DataError: If a list does not match its table length
        """
        times = {}
        for ctype, values in tables.items():
            ids = graph.ids(ctype)
            if len(values) == 0:
                continue
            if len(values) != len(ids):
                raise DataError(
                    f"{ctype.value} recovery times: expected {len(ids)} values, got {len(values)}"
                )
            times.update({ComponentRef(ctype, i): v for i, v in zip(ids, values)})
        return cls(times)

    def durations(self, refs: Iterable[ComponentRef]) -> Dict[ComponentRef, float]:
        out = {}
        for ref in refs:
            if ref not in self.times:
                raise DataError(f"No recovery time given for {ref}")
            out[ref] = self.times[ref]
        return out


class SampledRecoveryTimes:
    """
    Historical duration samples per component type.

    Each damaged component draws one duration uniformly, with replacement,
    from its type's dataset.
    """

    def __init__(
        self,
        samples: Mapping[ComponentType, Sequence[float]],
        rng: Optional[np.random.Generator] = None,
    ):
        self.samples = {ctype: _check_values(values, ctype.value) for ctype, values in samples.items()}
        self.rng = rng if rng is not None else np.random.default_rng()

    def durations(self, refs: Iterable[ComponentRef]) -> Dict[ComponentRef, float]:
        out = {}
        for ref in refs:
            data = self.samples.get(ref.type)
            if data is None or data.size == 0:
                raise DataError(f"Empty recovery-time dataset for {ref.type.value}")
            out[ref] = float(self.rng.choice(data))
        return out


def recovery_time_source(spec, graph: NetworkGraph, rng: Optional[np.random.Generator] = None) -> RecoveryTimeSource:
    """Build a source from a ``psres.config.RecoveryTimesSpec``."""
    tables = {
        ComponentType.BRANCH: spec.branch,
        ComponentType.BUS: spec.bus,
        ComponentType.GEN: spec.gen,
    }
    if spec.mode == "input":
        return ExplicitRecoveryTimes.from_tables(graph, tables)
    return SampledRecoveryTimes(tables, rng=rng)
