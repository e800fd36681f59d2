"""
Resilience Metrics
==================

FLEP metrics of a resilience event, computed per indicator from its
disturbance-phase and restoration-phase series:
- L: total degradation (initial minus post-disturbance value)
- F: degradation rate over the disturbance
- E: duration of the degraded state before recovery starts
- P: recovery rate up to the q-th restoration quantile
- area: linearized impact (trapezoid of degradation, plateau and recovery)

The duration metric is the time at which an indicator reaches q% of its
restoration, interpolated between restoration steps.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Dict, Sequence, Tuple

import numpy as np
import pandas as pd

INDICATORS = ("tl_dc", "load_dc", "gen_dc", "load_served", "gen_online")


def _steps(values: Sequence[float], times: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
    """Keep the first occurrence of each distinct value, in time order."""
    values = np.asarray(values, dtype=float)
    times = np.asarray(times, dtype=float)
    if values.shape != times.shape or values.ndim != 1 or values.size == 0:
        raise ValueError("values and times must be non-empty 1-D arrays of equal length")
    _, first = np.unique(values, return_index=True)
    first = np.sort(first)
    return values[first], times[first]


def duration_metric(q: float, values: Sequence[float], times: Sequence[float]) -> float:
    """
    Time at which an indicator reaches q% of its restoration.

    Args:
        q: Restoration percentage in [0, 100]
        values: Indicator value at each restoration event
        times: Time of each restoration event

    Returns:
        Interpolated time (same unit as ``times``)
    """
    if not 0 <= q <= 100:
        raise ValueError(f"q must lie in [0, 100], got {q}")
    v, t = _steps(values, times)
    if v.size < 2:
        return float(t[-1])

    n = max(v[0], v[-1])
    if v[0] > v[-1]:
        q = 100 - q
    u = min(1 / 3 + (n + 1 / 3) * q / 100, n)

    last = v.size - 1
    k = int(np.argmin(np.abs(v - u)))
    if k == 0:
        lo, hi = 0, 1
    elif k == last:
        lo, hi = last - 1, last
    elif (v[k - 1] - u) * (v[k] - u) <= 0:
        lo, hi = k - 1, k
    else:
        lo, hi = k, k + 1

    span = v[hi] - v[lo]
    frac = 0.0 if span == 0 else min(max((u - v[lo]) / span, 0.0), 1.0)
    return float((1 - frac) * t[lo] + frac * t[hi])


@dataclass
class FlepMetrics:
    L: float
    F: float
    E: float
    P: float
    area: float
    t_ee: float   # End of the disturbance for this indicator
    t_r: float    # Start of its recovery
    t_re: float   # Time of q% recovery


def flep_metrics(
    initial: float,
    event_values: Sequence[float],
    event_times: Sequence[float],
    recovery_values: Sequence[float],
    recovery_times: Sequence[float],
    q: float = 90.0,
) -> FlepMetrics:
    """
    FLEP metrics of one indicator.

    Args:
        initial: Pre-disturbance indicator value
        event_values: Indicator value at each disturbance step
        event_times: Time of each disturbance step
        recovery_values: Indicator value at each restoration event
        recovery_times: Time of each restoration event (same clock as the event)
        q: Restoration percentage for the end of recovery

    Returns:
        FlepMetrics (rates are zero when their time span is zero)
    """
    event_times = np.asarray(event_times, dtype=float)
    recovery_times = np.asarray(recovery_times, dtype=float)
    t0 = float(event_times[0])

    L = initial - float(np.asarray(event_values, dtype=float)[-1])
    _, ev_t = _steps(event_values, event_times)
    t_ee = float(ev_t[-1])

    rec_v, rec_t = _steps(recovery_values, recovery_times)
    if rec_v.size >= 2:
        t_r = float(rec_t[1])
        t_re = duration_metric(q, recovery_values, recovery_times)
    else:
        t_r = float(recovery_times[0])
        t_re = float(recovery_times[-1])

    F = 0.0 if math.isclose(t_ee, t0) else -L / (t_ee - t0)
    E = t_r - t_ee
    P = 0.0 if math.isclose(t_re, t_r) else L / (t_re - t_r)
    area = abs(L * (t_ee - t0) / 2 + L * E + L * (t_re - t_r) / 2)
    return FlepMetrics(L=L, F=F, E=E, P=P, area=area, t_ee=t_ee, t_r=t_r, t_re=t_re)


def resilience_metrics(
    initial: Dict[str, float],
    event: pd.DataFrame,
    recovery: pd.DataFrame,
    outage_hours: float = 1.0,
    q: float = 90.0,
) -> pd.DataFrame:
    """
    FLEP metrics for every indicator.

    Args:
        initial: Pre-disturbance value per indicator
        event: Disturbance indicators with a ``time`` column
        recovery: Restoration indicators with a ``time`` column (hours since
            restoration began)
        outage_hours: Gap between the end of the disturbance and the start
            of restoration
        q: Restoration percentage for the duration metric

    Returns:
        DataFrame indexed by indicator with one column per metric
    """
    t_start = float(event["time"].iloc[-1]) + outage_hours
    recovery_times = t_start + recovery["time"].to_numpy(dtype=float)
    rows = {}
    for name in INDICATORS:
        metrics = flep_metrics(
            initial[name],
            event[name].to_numpy(dtype=float),
            event["time"].to_numpy(dtype=float),
            recovery[name].to_numpy(dtype=float),
            recovery_times,
            q=q,
        )
        rows[name] = asdict(metrics)
    frame = pd.DataFrame.from_dict(rows, orient="index")
    frame.index.name = "indicator"
    return frame
