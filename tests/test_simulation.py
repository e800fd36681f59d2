"""
Tests for input models, the end-to-end pipeline and the command-line entry point.
"""

import json

import numpy as np
import pytest
from pydantic import ValidationError

from conftest import AlwaysFeasible
from psres import cli
from psres.config import CrewSpec, EventSpec, FragilitySpec, RecoverySettings, SimulationInputs
from psres.contingency.fragility import FragilityCurve, FragilityCurveStore
from psres.metrics import INDICATORS
from psres.recovery.durations import ExplicitRecoveryTimes
from psres.simulation import ResilienceEvent, run_from_inputs, run_resilience
from psres.topology.components import ComponentRef, ComponentType


def event_inputs(**overrides):
    data = {
        "name": "test",
        "case": "case14",
        "seed": 11,
        "event": {
            "env_state": [20.0],
            "branch": {"states": [0.0, 20.0], "probabilities": [0.0, 1.0]},
            "active_set": {"branch": [0]},
        },
        "recovery_times": {"mode": "sampled", "branch": [5.0]},
    }
    data.update(overrides)
    return data


class TestConfig:
    """Tests for pydantic input validation"""

    def test_defaults(self):
        settings = RecoverySettings()
        assert settings.t_threshold_hours == 600.0
        assert settings.t_threshold_escape_hours == 100000.0
        assert settings.max_iterations == 1000
        assert settings.ramp_iterations == 20
        assert settings.crews.capacities() == {t: 1 for t in ComponentType.precedence()}

    def test_escape_must_exceed_threshold(self):
        with pytest.raises(ValidationError):
            RecoverySettings(t_threshold_hours=600.0, t_threshold_escape_hours=100.0)

    def test_negative_crews_rejected(self):
        with pytest.raises(ValidationError):
            CrewSpec(branch=-1)

    @pytest.mark.parametrize("kwargs", [
        {},
        {"states": [0.0], "probabilities": [0.0], "never_fails": True},
        {"states": [0.0]},
        {"distribution": "normal", "a": 1.0},
        {"distribution": "normal", "a": 1.0, "b": 1.0, "x_min": 5.0, "x_max": 1.0},
    ])
    def test_fragility_spec_needs_one_source(self, kwargs):
        with pytest.raises(ValidationError):
            FragilitySpec(**kwargs)

    def test_event_spec_defaults(self):
        spec = EventSpec(env_state=[[1.0, 2.0]], branch=FragilitySpec(never_fails=True))
        assert spec.bus.never_fails and spec.gen.never_fails
        assert spec.time_step_hours == 1.0

    def test_simulation_inputs(self):
        inputs = SimulationInputs.model_validate(event_inputs())
        assert inputs.event.active_set == {"branch": [0]}
        assert inputs.solver.mode == "opf"
        assert inputs.quantile == 90.0


class TestRunResilience:
    """Tests for the end-to-end pipeline"""

    def test_single_branch_event(self, net):
        curve = FragilityCurve.from_points([0.0, 20.0], [0.0, 1.0])
        event = ResilienceEvent([20.0, 0.0], FragilityCurveStore.uniform(curve), active_set=[ComponentRef.branch(2)])
        solver = AlwaysFeasible()
        result = run_resilience(
            net, event, ExplicitRecoveryTimes({ComponentRef.branch(2): 4.0}),
            solver=solver, rng=np.random.default_rng(0),
        )

        assert result.disturbance.damaged == [ComponentRef.branch(2)]
        assert result.disturbance.disconnected == []
        assert result.recovery.times.tolist() == [0.0, 4.0]
        assert not result.truncated
        assert result.recovery.summary["tl_dc"].tolist() == [1, 0]
        assert list(result.metrics.index) == list(INDICATORS)
        assert result.metrics.loc["tl_dc", "L"] == pytest.approx(-1.0)
        assert len(solver.calls) == 1
        json.dumps(result.to_dict(), default=float)

    def test_event_from_spec(self):
        spec = EventSpec(
            env_state=[10.0, 30.0],
            time_step_hours=0.5,
            branch=FragilitySpec(distribution="weibull", a=25.0, b=4.0),
            active_set={"branch": [1, 2], "gen": [0]},
        )
        event = ResilienceEvent.from_spec(spec)
        assert event.time_step_hours == 0.5
        assert event.active_set == [ComponentRef.branch(1), ComponentRef.branch(2), ComponentRef.gen(0)]
        assert event.curves.curve_for(ComponentRef.gen(0)).probability_at(30.0) == 0.0

    def test_run_from_inputs(self):
        net, result = run_from_inputs(SimulationInputs.model_validate(event_inputs()), solver=AlwaysFeasible())
        assert result.disturbance.damaged == [ComponentRef.branch(0)]
        assert result.recovery.times.tolist() == [0.0, 5.0]
        assert net.line["in_service"].all()


class TestCli:
    """Tests for the psres command"""

    @pytest.fixture
    def stub_solver(self, monkeypatch):
        monkeypatch.setattr(cli, "run_from_inputs", lambda inputs: run_from_inputs(inputs, solver=AlwaysFeasible()))

    def test_missing_input_file(self, tmp_path):
        assert cli.main(["--input", str(tmp_path / "missing.json")]) == 2

    def test_invalid_input(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"event": {"env_state": [1.0]}}))
        assert cli.main(["--input", str(path)]) == 2

    def test_unknown_case(self, tmp_path):
        path = tmp_path / "case.json"
        path.write_text(json.dumps(event_inputs(case="case_missing")))
        assert cli.main(["--input", str(path)]) == 2

    def test_full_run(self, tmp_path, stub_solver):
        path = tmp_path / "in.json"
        out = tmp_path / "out.json"
        path.write_text(json.dumps(event_inputs()))

        assert cli.main(["--input", str(path), "--output", str(out), "--seed", "3"]) == 0
        written = json.loads(out.read_text())
        assert written["damaged"] == ["branch:0"]
        assert written["recovery"]["truncated"] is False
        assert set(written["metrics"]) == set(INDICATORS)

    def test_truncated_run_exit_code(self, tmp_path, stub_solver):
        path = tmp_path / "in.json"
        path.write_text(json.dumps(event_inputs(recovery={"crews": {"branch": 0}})))
        assert cli.main(["--input", str(path), "--output", str(tmp_path / "out.json")]) == 1
