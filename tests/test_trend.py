"""
Test Suite for the trend (time_series) detector.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import numpy as np
import pytest

from engine.anomaly.stats import residual_std, slope_standard_error
from engine.anomaly.trend import TrendDetector, moving_average_size, slope_noise, trend_deviation
from engine.enums import AnomalyType, Severity


def _linear(n):
    return [float(v) for v in range(1, n + 1)]


def test_scenario_c_continuing_trend_does_not_fire(make_config):
    values = np.array(_linear(20) + [21.0])
    config = make_config(algorithm="time_series", threshold=1.5)
    assert TrendDetector().detect("response_time_ms", values, config) == []


def test_scenario_c_breaking_trend_fires(make_config):
    values = np.array(_linear(20) + [200.0])
    config = make_config(algorithm="time_series", threshold=1.5)
    found = TrendDetector().detect("response_time_ms", values, config)

    assert len(found) == 1
    anomaly = found[0]
    assert anomaly.type == AnomalyType.trend
    assert anomaly.algorithm == "time_series_trend"
    # slope jumps by 179 * 4.5 / 82.5 against a baseline slope of 1 on a noise-free line
    assert anomaly.anomaly_score == pytest.approx(9.642, abs=1e-2)
    assert anomaly.confidence == pytest.approx(0.9)
    assert anomaly.context["baseline_trend"] == pytest.approx(1.0)
    assert "increasing" in anomaly.explanation


def test_constant_window_has_zero_deviation(make_config):
    slope, baseline, deviation = trend_deviation(np.array([4.0] * 30))
    assert (slope, baseline, deviation) == (0.0, 0.0, 0.0)
    assert TrendDetector().detect("m", np.array([4.0] * 30), make_config(threshold=0.0)) == []


def test_predicted_value_is_trailing_moving_average(make_config):
    values = np.array([10.0] * 29 + [40.0])
    found = TrendDetector().detect("m", values, make_config(threshold=1.0))
    assert len(found) == 1
    size = moving_average_size(values.size)
    assert size == 10
    assert found[0].predicted_value == pytest.approx(values[-size:].mean())


def test_short_windows_are_ignored(make_config):
    assert TrendDetector().detect("m", np.array([1.0]), make_config(threshold=0.0)) == []
    assert moving_average_size(2) == 1
    assert moving_average_size(300) == 20


def test_small_step_on_flat_series_does_not_fire(make_config):
    values = np.array([100.0] * 30 + [100.1])
    config = make_config("response_time_ms", algorithm="time_series", threshold=1.5)

    _, _, deviation = trend_deviation(values)
    assert deviation < 0.1
    assert TrendDetector().detect("response_time_ms", values, config) == []


def test_large_step_on_flat_series_still_fires(make_config):
    values = np.array([100.0] * 30 + [150.0])
    found = TrendDetector().detect("response_time_ms", values, make_config(threshold=1.5))
    assert len(found) == 1
    assert found[0].anomaly_score > 10


def test_gaussian_noise_rarely_fires_and_never_critical(make_config):
    rng = np.random.default_rng(7)
    series = 100.0 + rng.normal(0.0, 1.0, 400)
    config = make_config("response_time_ms", algorithm="time_series", sensitivity="medium", threshold=1.5)
    detector = TrendDetector()

    hits = []
    for end in range(200, 400):
        hits.extend(detector.detect("response_time_ms", series[end - 200:end], config))

    assert len(hits) <= 10
    assert all(hit.severity != Severity.critical for hit in hits)
    assert all(hit.anomaly_score < 4.0 for hit in hits)


def test_slope_noise_tracks_residual_spread():
    noisy = np.array([10.0, 12.0, 9.0, 11.0, 8.0, 12.0, 10.0, 9.0, 11.0, 10.0])
    expected = slope_standard_error(residual_std(noisy), 10)
    assert slope_noise(noisy, 10) == pytest.approx(expected)
    assert expected > slope_noise(np.array([10.0] * 10), 10)

    # a perfect line has no residuals and falls back to the level floor
    line = np.arange(1.0, 21.0)
    assert residual_std(line) == pytest.approx(0.0, abs=1e-9)
    assert slope_noise(line, 10) == pytest.approx(slope_standard_error(0.105, 10))
