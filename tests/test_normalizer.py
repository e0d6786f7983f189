import datetime as dt

from safetyband.services.normalizer import (
    Vector3,
    normalize_sample,
    parse_bool,
    parse_number,
    parse_timestamp,
)

RECEIVED = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)


def test_empty_payload_defaults():
    sample = normalize_sample({}, RECEIVED)
    assert sample.accelerometer == Vector3(0.0, 0.0, 0.0)
    assert sample.gyroscope == Vector3(0.0, 0.0, 0.0)
    assert sample.timestamp == RECEIVED
    assert sample.received_at == RECEIVED
    assert sample.heart_rate is None
    assert sample.location is None
    assert sample.emergency_triggered is False
    assert sample.fall_detected is False


def test_none_payload_is_empty():
    sample = normalize_sample(None, RECEIVED)
    assert sample.accelerometer == Vector3()
    assert sample.timestamp == RECEIVED


def test_missing_axis_becomes_zero():
    sample = normalize_sample({"accelerometer": {"x": 1.5, "z": "9.8"}, "gyroscope": [10, 20]}, RECEIVED)
    assert sample.accelerometer == Vector3(1.5, 0.0, 9.8)
    assert sample.gyroscope == Vector3(10.0, 20.0, 0.0)


def test_numeric_strings_parsed():
    payload = {
        "heartRate": "72",
        "temperature": " 36.6 ",
        "batteryLevel": "88",
        "latitude": "28.6139",
        "longitude": "77.2090",
    }
    sample = normalize_sample(payload, RECEIVED)
    assert sample.heart_rate == 72.0
    assert sample.temperature == 36.6
    assert sample.battery_level == 88.0
    assert sample.location.latitude == 28.6139
    assert sample.location.longitude == 77.209


def test_unparseable_scalars_are_absent():
    payload = {"heartRate": "fast", "temperature": {"c": 37}, "batteryLevel": None}
    sample = normalize_sample(payload, RECEIVED)
    assert sample.heart_rate is None
    assert sample.temperature is None
    assert sample.battery_level is None


def test_out_of_range_scalars_are_absent():
    sample = normalize_sample({"heartRate": -5, "batteryLevel": 140}, RECEIVED)
    assert sample.heart_rate is None
    assert sample.battery_level is None


def test_location_requires_both_coordinates():
    assert normalize_sample({"latitude": 28.6}, RECEIVED).location is None
    assert normalize_sample({"latitude": 95, "longitude": 10}, RECEIVED).location is None


def test_nested_location():
    payload = {"location": {"latitude": 19.076, "longitude": 72.8777, "accuracy": "12.5"}}
    location = normalize_sample(payload, RECEIVED).location
    assert location.latitude == 19.076
    assert location.longitude == 72.8777
    assert location.accuracy == 12.5


def test_timestamp_formats():
    millis = int(dt.datetime(2024, 4, 30, tzinfo=dt.timezone.utc).timestamp() * 1000)
    assert parse_timestamp(millis, RECEIVED) == dt.datetime(2024, 4, 30, tzinfo=dt.timezone.utc)
    assert parse_timestamp(str(millis), RECEIVED) == dt.datetime(2024, 4, 30, tzinfo=dt.timezone.utc)
    assert parse_timestamp("2024-04-30T10:00:00Z", RECEIVED) == dt.datetime(2024, 4, 30, 10, tzinfo=dt.timezone.utc)
    assert parse_timestamp("yesterday", RECEIVED) == RECEIVED
    assert parse_timestamp(None, RECEIVED) == RECEIVED


def test_device_flags():
    sample = normalize_sample({"emergencyTriggered": "true", "fallDetected": 1}, RECEIVED)
    assert sample.emergency_triggered is True
    assert sample.fall_detected is True


def test_parse_helpers():
    assert parse_number(True) is None
    assert parse_number("nan") is None
    assert parse_number("1e2") == 100.0
    assert parse_bool("off") is False
    assert parse_bool("maybe") is False
    assert parse_bool(0) is False


def test_metadata_kept_only_when_mapping():
    assert normalize_sample({"metadata": {"firmware": "1.2"}}, RECEIVED).metadata == {"firmware": "1.2"}
    assert normalize_sample({"metadata": "v1.2"}, RECEIVED).metadata == {}
