"""
Test cases for the severity classifier and the enumerations shared by detectors and configs.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import math

import pytest

from engine.enums import Algorithm, AnomalyType, Sensitivity, Severity


@pytest.mark.parametrize(
    "sensitivity,score,expected",
    [
        (Sensitivity.low, 5.0, Severity.critical),
        (Sensitivity.low, 3.0, Severity.high),
        (Sensitivity.low, 2.0, Severity.medium),
        (Sensitivity.low, 1.99, Severity.low),
        (Sensitivity.medium, 4.0, Severity.critical),
        (Sensitivity.medium, 2.5, Severity.high),
        (Sensitivity.medium, 1.5, Severity.medium),
        (Sensitivity.medium, 1.0, Severity.low),
        (Sensitivity.high, 3.0, Severity.critical),
        (Sensitivity.high, 2.0, Severity.high),
        (Sensitivity.high, 1.0, Severity.medium),
        (Sensitivity.high, 0.5, Severity.low),
    ],
)
def test_severity_cutoffs_per_tier(sensitivity, score, expected):
    assert Severity.from_score(score, sensitivity) == expected


def test_severity_is_monotonic_in_score():
    scores = [i / 10 for i in range(0, 80)]
    for sensitivity in Sensitivity:
        weights = [Severity.from_score(s, sensitivity).weight() for s in scores]
        assert weights == sorted(weights)


def test_more_sensitive_tier_never_classifies_lower():
    for score in [0.5, 1.2, 1.7, 2.2, 2.7, 3.5, 4.5, 6.0]:
        low = Severity.from_score(score, Sensitivity.low).weight()
        medium = Severity.from_score(score, Sensitivity.medium).weight()
        high = Severity.from_score(score, Sensitivity.high).weight()
        assert low <= medium <= high


def test_severity_edge_inputs():
    assert Severity.from_score(math.nan, Sensitivity.high) == Severity.low
    assert Severity.from_score(-3.0, Sensitivity.high) == Severity.low
    assert Severity.from_score(4.0, "medium") == Severity.critical
    # unknown tier falls back to medium cutoffs
    assert Severity.from_score(2.5, "extreme") == Severity.high


def test_weights_and_enum_values():
    assert Severity.low.weight() < Severity.medium.weight() < Severity.high.weight() < Severity.critical.weight()
    assert [a.value for a in Algorithm] == ["statistical", "time_series", "pattern", "ensemble"]
    assert AnomalyType.collective.value == "collective"
