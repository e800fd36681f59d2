"""
Fragility Curves
================

Failure probability of a component as a function of an environmental state
(e.g. wind speed). Curves are sampled on a discrete state grid; lookups snap
to the nearest grid point.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import numpy as np
from scipy import stats

from ..exceptions import DataError
from ..topology.components import ComponentRef, ComponentType


@dataclass(frozen=True, eq=False)
class FragilityCurve:
    """
    Immutable (state, failure probability) curve.

    Attributes:
        states: Environmental-state grid
        probabilities: Failure probability at each grid point, in [0, 1]
    """
    states: np.ndarray
    probabilities: np.ndarray

    def __post_init__(self):
        states = np.array(self.states, dtype=float)
        probs = np.array(self.probabilities, dtype=float)
        if states.ndim != 1 or probs.ndim != 1:
            raise DataError("Fragility curve states and probabilities must be one-dimensional")
        if states.size == 0:
            raise DataError("Fragility curve is empty")
        if states.size != probs.size:
            raise DataError(
                f"Fragility curve has {states.size} states but {probs.size} probabilities"
            )
        if not (np.all(np.isfinite(states)) and np.all(np.isfinite(probs))):
            raise DataError("Fragility curve contains non-finite values")
        if np.any(probs < 0.0) or np.any(probs > 1.0):
            raise DataError("Fragility curve probabilities must lie in [0, 1]")
        states.setflags(write=False)
        probs.setflags(write=False)
        object.__setattr__(self, "states", states)
        object.__setattr__(self, "probabilities", probs)

    def nearest_index(self, state: float) -> int:
        """Grid index closest to ``state`` (first one on ties)."""
        return int(np.argmin(np.abs(self.states - state)))

    def probability_at(self, state: float) -> float:
        return float(self.probabilities[self.nearest_index(state)])

    @classmethod
    def from_points(cls, states, probabilities) -> "FragilityCurve":
        return cls(np.asarray(states, dtype=float), np.asarray(probabilities, dtype=float))

    @classmethod
    def never_fails(cls, states=(0.0,)) -> "FragilityCurve":
        states = np.asarray(states, dtype=float)
        return cls(states, np.zeros_like(states))

    @classmethod
    def from_distribution(
        cls,
        distribution: str,
        a: float,
        b: float,
        x_min: float,
        x_max: float,
        n_points: int = 100,
    ) -> "FragilityCurve":
        """
        Evaluate a parametric CDF on an evenly spaced state grid.

        Args:
            distribution: "normal" (mean a, std b), "lognormal" (log-mean a,
                log-std b) or "weibull" (scale a, shape b)
            a: First distribution parameter
            b: Second distribution parameter
            x_min: Lower end of the state grid
            x_max: Upper end of the state grid
            n_points: Number of grid points

        Returns:
            FragilityCurve sampled from the CDF
        """
        if b <= 0:
            raise DataError(f"Distribution parameter b must be positive, got {b}")
        if x_max <= x_min or n_points < 2:
            raise DataError("State grid needs x_max > x_min and at least two points")

        x = np.linspace(x_min, x_max, n_points)
        name = distribution.lower()
        if name == "normal":
            cdf = stats.norm.cdf(x, loc=a, scale=b)
        elif name == "lognormal":
            cdf = stats.lognorm.cdf(x, s=b, scale=np.exp(a))
        elif name == "weibull":
            if a <= 0:
                raise DataError(f"Weibull scale must be positive, got {a}")
            cdf = stats.weibull_min.cdf(x, c=b, scale=a)
        else:
            raise DataError(f"Unsupported fragility distribution: {distribution}")
        return cls(x, np.clip(cdf, 0.0, 1.0))


@dataclass
class FragilityCurveStore:
    """
    Per-type fragility curves with optional per-component overrides.

    Attributes:
        defaults: {ComponentType: curve used for every component of the type}
        overrides: {ComponentRef: curve for one specific component}
    """
    defaults: Dict[ComponentType, FragilityCurve] = field(default_factory=dict)
    overrides: Dict[ComponentRef, FragilityCurve] = field(default_factory=dict)

    def curve_for(self, ref: ComponentRef) -> FragilityCurve:
        curve = self.overrides.get(ref) or self.defaults.get(ref.type)
        if curve is None:
            raise DataError(f"No fragility curve for component {ref}")
        return curve

    @classmethod
    def uniform(
        cls,
        branch: FragilityCurve,
        bus: Optional[FragilityCurve] = None,
        gen: Optional[FragilityCurve] = None,
    ) -> "FragilityCurveStore":
        """One curve per type; types without a curve never fail."""
        never = FragilityCurve.never_fails(branch.states)
        return cls(defaults={
            ComponentType.BRANCH: branch,
            ComponentType.BUS: bus if bus is not None else never,
            ComponentType.GEN: gen if gen is not None else never,
        })

    @classmethod
    def from_specs(cls, specs: Mapping[ComponentType, Any]) -> "FragilityCurveStore":
        """Build from ``psres.config.FragilitySpec`` models keyed by type."""
        defaults = {}
        for ctype, spec in specs.items():
            if spec.never_fails:
                defaults[ctype] = FragilityCurve.never_fails(np.linspace(spec.x_min, spec.x_max, spec.n_points))
            elif spec.distribution is not None:
                defaults[ctype] = FragilityCurve.from_distribution(
                    spec.distribution, spec.a, spec.b, spec.x_min, spec.x_max, spec.n_points
                )
            else:
                defaults[ctype] = FragilityCurve.from_points(spec.states, spec.probabilities)
        return cls(defaults=defaults)
