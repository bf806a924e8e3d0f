"""
Test Suite for the statistical detector (Z-score and IQR tests).

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import numpy as np
import pytest

from engine.anomaly.statistical import StatisticalDetector, iqr_anomaly, zscore_anomaly
from engine.anomaly.stats import mean_std, ols_slope, quartiles
from engine.enums import AnomalyType, Sensitivity, Severity


def test_scenario_a_constant_window_produces_nothing(make_config):
    values = np.array([10.0] * 31)
    assert StatisticalDetector().detect("cpu_usage_percent", values, make_config()) == []


@pytest.mark.parametrize("sensitivity", list(Sensitivity))
def test_scenario_b_spike_on_constant_window(make_config, sensitivity):
    values = np.array([10.0] * 30 + [50.0])
    config = make_config(sensitivity=sensitivity.value)
    found = StatisticalDetector().detect("cpu_usage_percent", values, config)

    assert [a.algorithm for a in found] == ["statistical_zscore"]
    anomaly = found[0]
    assert anomaly.severity in (Severity.high, Severity.critical)
    assert anomaly.type == AnomalyType.point
    assert anomaly.value == 50.0
    assert anomaly.anomaly_score == pytest.approx(5.477, abs=1e-3)
    assert anomaly.confidence == pytest.approx(0.95)
    assert anomaly.context["sample_count"] == 31


def test_zscore_score_equals_ratio(make_config):
    values = np.array([1, 2, 3, 4, 5, 6, 7, 8, 9, 30], dtype=float)
    mean, std = values.mean(), values.std()
    expected = abs(values[-1] - mean) / std

    anomaly = zscore_anomaly("m", values, make_config(threshold=2.0))
    assert anomaly is not None
    assert anomaly.anomaly_score == pytest.approx(expected)
    assert anomaly.predicted_value == pytest.approx(mean)

    assert zscore_anomaly("m", values, make_config(threshold=expected + 0.01)) is None


def test_zscore_never_fires_with_zero_spread(make_config):
    assert zscore_anomaly("m", np.array([7.0] * 20), make_config(threshold=0.0)) is None


def test_iqr_bounds_and_zero_iqr(make_config):
    base = [float(v) for v in range(1, 21)]
    q1, q3 = quartiles(base + [100.0])
    iqr = q3 - q1

    anomaly = iqr_anomaly("m", np.array(base + [100.0]), make_config())
    assert anomaly is not None
    assert anomaly.context["upper_bound"] == pytest.approx(q3 + 1.5 * iqr)
    assert anomaly.confidence == pytest.approx(0.8)

    assert iqr_anomaly("m", np.array(base + [15.0]), make_config()) is None
    assert iqr_anomaly("m", np.array([5.0] * 20 + [9.0]), make_config()) is None


def test_low_outlier_fires_both_tests(make_config):
    values = np.array([float(v % 5 + 50) for v in range(30)] + [0.0])
    found = StatisticalDetector().detect("m", values, make_config())
    assert {a.algorithm for a in found} == {"statistical_zscore", "statistical_iqr"}
    assert all("mean" in a.context or "q1" in a.context for a in found)


def test_suggested_actions_follow_metric(make_config):
    values = np.array([10.0] * 30 + [50.0])
    known = StatisticalDetector().detect("error_rate", values, make_config("error_rate"))[0]
    unknown = StatisticalDetector().detect("queue_depth", values, make_config("queue_depth"))[0]
    assert known.suggested_actions[0] == "Check application logs for error patterns"
    assert unknown.suggested_actions == ["Investigate the issue", "Check system logs"]


def test_numeric_helpers():
    assert mean_std([]) == (0.0, 0.0)
    assert quartiles([4.0, 1.0, 3.0, 2.0]) == (2.0, 4.0)
    assert ols_slope([3.0]) == 0.0
    assert ols_slope([1.0, 3.0, 5.0, 7.0]) == pytest.approx(2.0)
