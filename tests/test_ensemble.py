"""
Test Suite for ensemble voting and the detector registry.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import numpy as np
import pytest

from engine.anomaly import EnsembleDetector, get_detector, registered_algorithms
from engine.anomaly.base import Detector
from engine.enums import AnomalyType, Severity

SPIKE = np.array([10.0] * 30 + [50.0])


def test_registry_resolves_every_algorithm():
    assert registered_algorithms() == ["ensemble", "pattern", "statistical", "time_series"]
    assert get_detector("statistical").name == "statistical"
    with pytest.raises(ValueError):
        get_detector("fourier")


def test_scenario_e_two_detectors_agree_on_spike(make_config):
    ensemble = EnsembleDetector(members=("statistical", "pattern"))
    found = ensemble.detect("error_rate", SPIKE, make_config("error_rate", algorithm="ensemble"))

    assert len(found) == 1
    collective = found[0]
    assert collective.type == AnomalyType.collective
    assert collective.algorithm == "ensemble"
    assert collective.context["algorithm_count"] == 2
    assert collective.context["algorithms"] == ["statistical_zscore", "pattern_spike_pattern"]
    assert collective.anomaly_score == pytest.approx(5.477, abs=1e-3)
    assert collective.confidence == pytest.approx(0.95)
    assert collective.severity == Severity.critical
    assert collective.explanation.startswith("Ensemble detection: 2 algorithms detected anomaly")


def test_default_members_emit_one_averaged_result(make_config):
    found = EnsembleDetector().detect("error_rate", SPIKE, make_config("error_rate"))
    assert len(found) == 1
    context = found[0].context
    assert context["algorithm_count"] == 3
    assert found[0].anomaly_score == pytest.approx(np.mean(context["individual_scores"]))
    assert found[0].confidence == pytest.approx(np.mean(context["individual_confidences"]))


def test_single_vote_is_not_enough(make_config):
    rising = np.array([float(v) for v in range(1, 22)])
    ensemble = EnsembleDetector(members=("statistical", "pattern"))
    assert ensemble.detect("m", rising, make_config()) == []


def test_quiet_window_produces_nothing(make_config):
    assert EnsembleDetector().detect("m", np.array([10.0] * 31), make_config()) == []


def test_failing_member_does_not_vote(make_config, monkeypatch):
    import engine.anomaly.base as base

    class Broken(Detector):
        name = "broken"

        def detect(self, metric, values, config):
            raise RuntimeError("boom")

    monkeypatch.setitem(base._registry, "broken", Broken())
    ensemble = EnsembleDetector(members=("statistical", "broken"))
    assert ensemble.detect("m", SPIKE, make_config()) == []
    assert EnsembleDetector(members=("statistical", "broken"), min_agreement=1).detect("m", SPIKE, make_config())


def test_trend_and_statistical_votes_combine(make_config):
    ensemble = EnsembleDetector(members=("statistical", "time_series"))
    votes = ensemble.votes("response_time_ms", SPIKE, make_config("response_time_ms", threshold=1.5))
    assert [v.algorithm for v in votes] == ["statistical_zscore", "time_series_trend"]

    found = ensemble.detect("response_time_ms", SPIKE, make_config("response_time_ms", threshold=1.5))
    assert len(found) == 1
    assert found[0].context["algorithms"] == ["statistical_zscore", "time_series_trend"]
    assert found[0].anomaly_score == pytest.approx(np.mean([v.anomaly_score for v in votes]))


def test_noise_gives_trend_no_vote_on_quiet_tick(make_config):
    # flat latency with small jitter and a newest sample inside the usual range
    jitter = [100.0, 100.4, 99.7, 100.2, 99.9, 100.3, 99.6, 100.1, 99.8, 100.0]
    window = np.array(jitter * 3 + [100.2])
    ensemble = EnsembleDetector(members=("statistical", "time_series"))
    config = make_config("response_time_ms", threshold=1.5)

    assert ensemble.votes("response_time_ms", window, config) == []
    assert ensemble.detect("response_time_ms", window, config) == []
