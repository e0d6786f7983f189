import datetime as dt
import itertools
import math

import pytest

from safetyband.core.config import DetectionThresholds
from safetyband.services.classifier import Severity, SignalKind, classify
from safetyband.services.metrics import compute_derived_metrics, magnitude
from safetyband.services.normalizer import normalize_sample

RECEIVED = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)
RESTING = {"x": 0, "y": 0, "z": 9.8}


def signals_for(payload, thresholds=None):
    sample = normalize_sample(payload, RECEIVED)
    metrics = compute_derived_metrics(sample)
    if thresholds is None:
        return classify(sample, metrics)
    return classify(sample, metrics, thresholds)


def kinds(signals):
    return [s.kind for s in signals]


@pytest.mark.parametrize("vec", [(3.0, 4.0, 12.0), (0.5, -2.0, 7.25), (-1.0, 0.0, 0.0)])
def test_total_acceleration_invariant_under_permutation(vec):
    values = {magnitude(p) for p in itertools.permutations(vec)}
    assert len(values) == 1


def test_magnitude_zero_only_for_zero_vector():
    assert magnitude((0.0, 0.0, 0.0)) == 0.0
    assert magnitude((0.0, 1e-6, 0.0)) > 0.0


def test_derived_metrics():
    sample = normalize_sample({"accelerometer": {"x": 3, "y": 4, "z": 12}, "gyroscope": {"x": 150, "y": 150}}, RECEIVED)
    metrics = compute_derived_metrics(sample)
    assert metrics.total_acceleration == 13.0
    assert metrics.total_rotation == pytest.approx(math.sqrt(2) * 150)


def test_resting_sample_raises_nothing():
    payload = {"accelerometer": RESTING, "heartRate": 72, "temperature": 36.6, "batteryLevel": 80}
    assert signals_for(payload) == []


def test_high_impact_is_fall_warning():
    signals = signals_for({"accelerometer": {"x": 0, "y": 0, "z": 20}})
    assert kinds(signals) == [SignalKind.FALL]
    assert signals[0].severity is Severity.WARNING
    assert signals[0].evidence["totalAcceleration"] == 20.0


def test_free_fall_is_fall():
    signals = signals_for({"accelerometer": {"x": 0, "y": 0, "z": 1}})
    assert kinds(signals) == [SignalKind.FALL]


def test_rapid_rotation_is_error():
    signals = signals_for({"accelerometer": RESTING, "gyroscope": {"x": 150, "y": 150, "z": 0}})
    assert kinds(signals) == [SignalKind.RAPID_MOTION]
    assert signals[0].severity is Severity.ERROR


@pytest.mark.parametrize(
    "heart_rate,severity",
    [(155, Severity.ERROR), (130, Severity.WARNING), (45, Severity.WARNING)],
)
def test_heart_rate_severity(heart_rate, severity):
    signals = signals_for({"accelerometer": RESTING, "heartRate": heart_rate})
    assert kinds(signals) == [SignalKind.ABNORMAL_VITALS]
    assert signals[0].severity is severity


@pytest.mark.parametrize("heart_rate", [50, 90, 120])
def test_heart_rate_bounds_inclusive(heart_rate):
    assert signals_for({"accelerometer": RESTING, "heartRate": heart_rate}) == []


@pytest.mark.parametrize("temperature", [38.5, 34.2])
def test_abnormal_temperature(temperature):
    signals = signals_for({"accelerometer": RESTING, "temperature": temperature})
    assert kinds(signals) == [SignalKind.ABNORMAL_TEMPERATURE]
    assert signals[0].severity is Severity.WARNING


@pytest.mark.parametrize("battery,severity", [(15, Severity.WARNING), (5, Severity.ERROR)])
def test_low_battery(battery, severity):
    signals = signals_for({"accelerometer": RESTING, "batteryLevel": battery})
    assert kinds(signals) == [SignalKind.LOW_BATTERY]
    assert signals[0].severity is severity


def test_all_rules_fire_in_table_order():
    payload = {
        "accelerometer": {"x": 0, "y": 0, "z": 25},
        "gyroscope": {"x": 300, "y": 0, "z": 0},
        "heartRate": 160,
        "temperature": 39.1,
        "batteryLevel": 4,
        "emergencyTriggered": True,
    }
    assert kinds(signals_for(payload)) == [
        SignalKind.FALL,
        SignalKind.RAPID_MOTION,
        SignalKind.ABNORMAL_VITALS,
        SignalKind.ABNORMAL_TEMPERATURE,
        SignalKind.LOW_BATTERY,
        SignalKind.EMERGENCY_BUTTON,
    ]


def test_emergency_button_always_reported():
    signals = signals_for({"accelerometer": RESTING, "emergencyTriggered": True})
    assert kinds(signals) == [SignalKind.EMERGENCY_BUTTON]
    assert signals[0].severity is Severity.ERROR


def test_thresholds_override():
    thresholds = DetectionThresholds(heart_rate_high=100.0)
    signals = signals_for({"accelerometer": RESTING, "heartRate": 110}, thresholds)
    assert kinds(signals) == [SignalKind.ABNORMAL_VITALS]
