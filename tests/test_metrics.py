"""
Tests for the duration metric and FLEP metrics.
"""

import pandas as pd
import pytest

from psres.metrics import INDICATORS, duration_metric, flep_metrics, resilience_metrics


class TestDurationMetric:
    """Tests for duration_metric"""

    def test_increasing_indicator(self):
        assert duration_metric(50, [0, 1, 2, 3, 4], [0, 1, 2, 3, 4]) == pytest.approx(2.5)

    def test_decreasing_indicator(self):
        # 5 outaged lines restored to 0; the 90% point falls between 1 and 0 outaged
        d = duration_metric(90, [5, 3, 1, 0], [0.0, 1.0, 3.0, 6.0])
        u = 1 / 3 + (5 + 1 / 3) * 0.1
        assert d == pytest.approx(3.0 + (1 - u) * 3.0)

    def test_repeated_values_use_first_occurrence(self):
        assert duration_metric(50, [0, 0, 2, 2, 4], [0, 1, 2, 3, 4]) == duration_metric(50, [0, 2, 4], [0, 2, 4])

    def test_single_step(self):
        assert duration_metric(90, [7, 7, 7], [0.0, 1.0, 2.0]) == 0.0

    def test_invalid_inputs(self):
        with pytest.raises(ValueError):
            duration_metric(120, [0, 1], [0, 1])
        with pytest.raises(ValueError):
            duration_metric(50, [0, 1], [0])


class TestFlepMetrics:
    """Tests for flep_metrics and resilience_metrics"""

    def test_flep_values(self):
        m = flep_metrics(100.0, [100.0, 60.0, 40.0], [0.0, 1.0, 2.0], [40.0, 40.0, 70.0, 100.0], [3.0, 4.0, 5.0, 6.0])
        assert m.L == pytest.approx(60.0)
        assert m.t_ee == pytest.approx(2.0)
        assert m.t_r == pytest.approx(5.0)
        assert m.F == pytest.approx(-30.0)
        assert m.E == pytest.approx(3.0)
        assert 5.0 < m.t_re < 6.0
        assert m.P == pytest.approx(m.L / (m.t_re - m.t_r))
        assert m.area == pytest.approx(60.0 * 2.0 / 2 + 60.0 * 3.0 + 60.0 * (m.t_re - m.t_r) / 2)

    def test_zero_spans_give_zero_rates(self):
        m = flep_metrics(0.0, [3.0], [0.0], [3.0], [1.0])
        assert m.F == 0.0
        assert m.P == 0.0
        assert m.L == pytest.approx(-3.0)

    def test_resilience_metrics_frame(self):
        event = pd.DataFrame({
            "time": [0.0, 1.0],
            "tl_dc": [1, 2], "load_dc": [0, 1], "gen_dc": [0, 0],
            "load_served": [30.0, 20.0], "gen_online": [50.0, 50.0],
        })
        recovery = pd.DataFrame({
            "time": [0.0, 2.0, 5.0],
            "tl_dc": [2, 1, 0], "load_dc": [1, 0, 0], "gen_dc": [0, 0, 0],
            "load_served": [20.0, 30.0, 30.0], "gen_online": [50.0, 50.0, 50.0],
        })
        initial = {"tl_dc": 0.0, "load_dc": 0.0, "gen_dc": 0.0, "load_served": 30.0, "gen_online": 50.0}
        frame = resilience_metrics(initial, event, recovery, outage_hours=1.0)

        assert list(frame.index) == list(INDICATORS)
        assert frame.loc["tl_dc", "L"] == pytest.approx(-2.0)
        assert frame.loc["tl_dc", "t_r"] == pytest.approx(2.0 + 2.0)
        assert frame.loc["load_served", "L"] == pytest.approx(10.0)
        assert frame.loc["gen_dc", "area"] == 0.0
