from .cascade import DisturbanceResult, apply_disturbance, topological_cascade
from .fragility import FragilityCurve, FragilityCurveStore
from .generator import ContingencySet, generate_contingency, normalize_env_state

__all__ = [
    "ContingencySet",
    "DisturbanceResult",
    "FragilityCurve",
    "FragilityCurveStore",
    "apply_disturbance",
    "generate_contingency",
    "normalize_env_state",
    "topological_cascade",
]
