from datetime import date, datetime, timezone

from energy_insights.normalize import (
    RecordFields,
    normalize_readings,
    parse_energy,
    parse_timestamp,
)


def record(ts, appliance="TV", kwh="1.0"):
    return {"Timestamp": ts, "Appliance": appliance, "Energy Usage (kWh)": kwh}


def test_sentinel_epoch_timestamps_are_dropped():
    """Readings from the first epoch day mean 'never reported'."""
    assert normalize_readings([record("1970-01-01T00:00:00")]) == []
    assert normalize_readings([record("1970-01-01T23:59:59")]) == []
    assert normalize_readings([record(0)]) == []


def test_epoch_millisecond_sentinels_are_dropped():
    """Numeric timestamps are milliseconds, so the whole first day is 0..86_400_000."""
    assert normalize_readings([record(3_600_000)]) == []
    assert normalize_readings([record(86_399_999)]) == []
    assert normalize_readings([record(86_400)]) == []

    readings = normalize_readings([record(86_400_000)])
    assert [r.timestamp for r in readings] == [datetime(1970, 1, 2)]


def test_first_instant_after_sentinel_day_is_kept():
    readings = normalize_readings([record("1970-01-02T00:00:00")])
    assert len(readings) == 1
    assert readings[0].timestamp == datetime(1970, 1, 2)


def test_missing_or_garbage_timestamps_are_dropped():
    records = [
        {"Appliance": "TV", "Energy Usage (kWh)": "1"},
        record(None),
        record(""),
        record("not a date"),
        record("2024-03-04T10:00:00"),
    ]
    readings = normalize_readings(records)
    assert len(readings) == 1
    assert readings[0].timestamp == datetime(2024, 3, 4, 10, 0)


def test_bad_energy_values_become_zero():
    records = [
        record("2024-03-04T10:00:00", kwh="abc"),
        record("2024-03-04T11:00:00", kwh=None),
        record("2024-03-04T12:00:00", kwh="-2"),
        record("2024-03-04T13:00:00", kwh="nan"),
        record("2024-03-04T14:00:00", kwh=" 1.5 "),
    ]
    readings = normalize_readings(records)
    assert [r.energy_kwh for r in readings] == [0.0, 0.0, 0.0, 0.0, 1.5]


def test_missing_appliance_is_kept_as_none():
    readings = normalize_readings([record("2024-03-04T10:00:00", appliance=None), record("2024-03-04T10:00:00", appliance="  ")])
    assert len(readings) == 2
    assert all(r.appliance is None for r in readings)


def test_non_mapping_entries_and_empty_input():
    assert normalize_readings(None) == []
    assert normalize_readings([]) == []
    assert normalize_readings(42) == []
    readings = normalize_readings(["junk", 3, None, record("2024-03-04T10:00:00")])
    assert len(readings) == 1


def test_custom_field_names():
    fields = RecordFields(timestamp="ts", appliance="device", energy="kwh")
    readings = normalize_readings([{"ts": "2024-03-04T10:00:00", "device": "Fridge", "kwh": 2}], fields)
    assert readings[0].appliance == "Fridge"
    assert readings[0].energy_kwh == 2.0


def test_parse_timestamp_variants():
    assert parse_timestamp("2024-03-04T10:00:00Z") == datetime(2024, 3, 4, 10, 0)
    assert parse_timestamp("2024-03-04T10:00:00+04:00") == datetime(2024, 3, 4, 10, 0)
    assert parse_timestamp("2024-03-04") == datetime(2024, 3, 4)
    assert parse_timestamp(date(2024, 3, 4)) == datetime(2024, 3, 4)
    assert parse_timestamp(datetime(2024, 3, 4, 10, tzinfo=timezone.utc)) == datetime(2024, 3, 4, 10)
    # Epoch milliseconds (UTC)
    assert parse_timestamp(1709546400000) == datetime(2024, 3, 4, 10, 0)
    assert parse_timestamp(1709546400000.0) == datetime(2024, 3, 4, 10, 0)
    assert parse_timestamp(float("nan")) is None
    assert parse_timestamp(True) is None
    assert parse_timestamp(object()) is None


def test_parse_energy_variants():
    assert parse_energy("3.25") == 3.25
    assert parse_energy(2) == 2.0
    assert parse_energy("") == 0.0
    assert parse_energy(float("inf")) == 0.0
    assert parse_energy([1]) == 0.0
