from __future__ import annotations

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, PositiveFloat, PositiveInt, confloat, conint, model_validator

from .topology.components import ComponentType


class CrewSpec(BaseModel):
    branch: conint(ge=0) = Field(1, description="Crews dedicated to branch repair.")
    bus: conint(ge=0) = Field(1, description="Crews dedicated to bus repair.")
    gen: conint(ge=0) = Field(1, description="Crews dedicated to generator repair.")

    def capacities(self) -> Dict[ComponentType, int]:
        return {
            ComponentType.BRANCH: int(self.branch),
            ComponentType.BUS: int(self.bus),
            ComponentType.GEN: int(self.gen),
        }


class RecoverySettings(BaseModel):
    crews: CrewSpec = Field(default_factory=CrewSpec)
    t_threshold_hours: PositiveFloat = Field(
        600.0, description="Elapsed time after which all disconnected components are reconnected at once."
    )
    t_threshold_escape_hours: PositiveFloat = Field(
        100000.0, description="Threshold value once the mass reconnection has happened (never reached)."
    )
    max_iterations: PositiveInt = Field(1000, description="Hard cap on restoration loop iterations.")
    ramp_iterations: PositiveInt = Field(20, description="Hard cap on load-ramp steps per island.")
    reconnect_depth: conint(ge=0) = Field(2, description="Hop radius for opportunistic reconnection.")

    @model_validator(mode="after")
    def _escape_beyond_threshold(self) -> "RecoverySettings":
        if self.t_threshold_escape_hours <= self.t_threshold_hours:
            raise ValueError("t_threshold_escape_hours must exceed t_threshold_hours")
        return self


class SolverSettings(BaseModel):
    mode: Literal["opf", "pf"] = Field("opf", description="AC optimal power flow or plain power flow.")
    init: Literal["flat", "results"] = Field("flat", description="Solver start point.")
    calculate_voltage_angles: bool = Field(True, description="Include voltage angles in the solution.")
    numba: bool = Field(False, description="Use numba acceleration when available.")


class FragilitySpec(BaseModel):
    """Either explicit curve points or a parametric CDF over [x_min, x_max]."""

    states: Optional[List[float]] = Field(None, description="Environmental-state grid (explicit curve).")
    probabilities: Optional[List[float]] = Field(None, description="Failure probability at each state.")
    distribution: Optional[Literal["normal", "lognormal", "weibull"]] = None
    a: Optional[float] = Field(None, description="First distribution parameter (mean / log-mean / scale).")
    b: Optional[float] = Field(None, description="Second distribution parameter (std / log-std / shape).")
    x_min: float = 0.0
    x_max: float = 100.0
    n_points: conint(ge=2) = 100
    never_fails: bool = Field(False, description="Components of this type never fail.")

    @model_validator(mode="after")
    def _one_source(self) -> "FragilitySpec":
        explicit = self.states is not None or self.probabilities is not None
        parametric = self.distribution is not None
        if sum([explicit, parametric, self.never_fails]) != 1:
            raise ValueError("Specify exactly one of explicit points, a distribution, or never_fails")
        if explicit and (self.states is None or self.probabilities is None):
            raise ValueError("Explicit curves need both states and probabilities")
        if parametric and (self.a is None or self.b is None):
            raise ValueError("Parametric curves need both a and b")
        if self.x_max <= self.x_min:
            raise ValueError("x_max must exceed x_min")
        return self


class EventSpec(BaseModel):
    env_state: Union[List[float], List[List[float]]] = Field(
        ..., description="Environmental state per time step; one row for all types or one row per type."
    )
    time_step_hours: PositiveFloat = Field(1.0, description="Duration of one event time step (hours).")
    branch: FragilitySpec
    bus: FragilitySpec = Field(default_factory=lambda: FragilitySpec(never_fails=True))
    gen: FragilitySpec = Field(default_factory=lambda: FragilitySpec(never_fails=True))
    active_set: Optional[Dict[Literal["branch", "bus", "gen"], List[int]]] = Field(
        None, description="Restrict failures to these component ids (default: all)."
    )


class RecoveryTimesSpec(BaseModel):
    mode: Literal["input", "sampled"] = "sampled"
    branch: List[float] = Field(default_factory=list)
    bus: List[float] = Field(default_factory=list)
    gen: List[float] = Field(default_factory=list)


class SimulationInputs(BaseModel):
    name: str = Field("ResilienceStudy", description="Study name.")
    case: str = Field("case14", description="pandapower.networks test case function name.")
    seed: Optional[int] = Field(None, description="Random seed; omit for a fresh draw.")
    event: EventSpec
    recovery_times: RecoveryTimesSpec = Field(default_factory=RecoveryTimesSpec)
    recovery: RecoverySettings = Field(default_factory=RecoverySettings)
    solver: SolverSettings = Field(default_factory=SolverSettings)
    quantile: confloat(gt=0, lt=100) = Field(90.0, description="Restoration quantile for the duration metric.")
