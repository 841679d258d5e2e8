"""Unit tests for record classification and normalization."""

import json

from serialgate.core.models import ABSENT, IntervalField, ScalarField
from serialgate.serial.records import (
    RecordClock,
    classify_field,
    is_record,
    parse_record,
)


class TestIsRecord:
    """Tests for the well-formedness predicate."""

    def test_json_object(self):
        assert is_record('{"temp": 23.5}') is True

    def test_empty_object(self):
        assert is_record("{}") is True

    def test_plain_text(self):
        assert is_record("Booting firmware v1.2") is False

    def test_truncated_json(self):
        assert is_record('{"temp": 23.') is False

    def test_non_object_json(self):
        """Test JSON scalars and arrays are not records."""
        assert is_record("42") is False
        assert is_record("[1, 2]") is False
        assert is_record('"text"') is False

    def test_non_standard_constants(self):
        """Test NaN and Infinity lines are not records."""
        assert is_record('{"temp": NaN}') is False
        assert is_record('{"temp": Infinity}') is False
        assert is_record('{"temp": {"value": -Infinity}}') is False
        assert parse_record('{"temp": NaN}', timestamp=1) is None

    def test_out_of_range_number(self):
        """Test a number that overflows a float is not a record."""
        assert is_record('{"temp": 1e999}') is False

    def test_deeply_nested(self):
        """Test nesting too deep to decode is not a record."""
        nested = "[" * 100000 + "]" * 100000
        assert is_record('{"a": ' + nested + "}") is False


class TestClassifyField:
    """Tests for field variant selection."""

    def test_scalar(self):
        assert classify_field(23.5) == ScalarField(value=23.5)

    def test_value_object(self):
        field = classify_field({"value": 23.5, "interval": 1000})
        assert field == IntervalField(value=23.5, interval=1000)

    def test_value_object_without_interval(self):
        field = classify_field({"value": "on"})
        assert isinstance(field, IntervalField)
        assert field.interval is ABSENT

    def test_object_without_value_is_scalar(self):
        """Test an object lacking 'value' is kept whole as a scalar."""
        field = classify_field({"x": 1, "interval": 5})
        assert field == ScalarField(value={"x": 1, "interval": 5})
        assert field.interval is ABSENT


class TestParseRecord:
    """Tests for parse_record and record serialization."""

    def test_scalar_scenario(self):
        """Test {"temp":23.5} normalizes with no interval."""
        record = parse_record('{"temp":23.5}', timestamp=1700000000000)
        assert record.to_dict() == {
            "temp": {"value": 23.5, "timestamp": 1700000000000},
        }

    def test_interval_scenario(self):
        """Test interval is preserved and only timestamp is added."""
        record = parse_record('{"temp":{"value":23.5,"interval":1000}}', timestamp=5)
        assert record.to_dict() == {
            "temp": {"value": 23.5, "interval": 1000, "timestamp": 5},
        }

    def test_explicit_null_interval_kept(self):
        """Test an explicit null interval survives, unlike an absent one."""
        record = parse_record('{"a":{"value":1,"interval":null},"b":{"value":2}}', timestamp=5)
        assert record.to_dict() == {
            "a": {"value": 1, "interval": None, "timestamp": 5},
            "b": {"value": 2, "timestamp": 5},
        }
        assert '"interval":null' in record.to_json()

    def test_device_timestamp_overwritten(self):
        """Test a device-supplied timestamp is replaced by receipt time."""
        record = parse_record('{"t":{"value":1,"timestamp":3}}', timestamp=99)
        assert record.to_dict()["t"]["timestamp"] == 99

    def test_same_timestamp_for_all_fields(self):
        record = parse_record('{"a":1,"b":{"value":2},"c":"x"}', timestamp=42)
        stamps = {f["timestamp"] for f in record.to_dict().values()}
        assert stamps == {42}

    def test_malformed_returns_none(self):
        assert parse_record("not json", timestamp=1) is None
        assert parse_record("[1]", timestamp=1) is None

    def test_to_json_compact(self):
        record = parse_record('{"temp":23.5}', timestamp=7)
        text = record.to_json()
        assert " " not in text
        assert json.loads(text) == {"temp": {"value": 23.5, "timestamp": 7}}


class TestRecordClock:
    """Tests for the receipt clock."""

    def test_uses_source(self):
        clock = RecordClock(lambda: 1234)
        assert clock.now() == 1234

    def test_never_decreases(self):
        """Test a wall clock stepping backwards does not rewind stamps."""
        ticks = iter([100, 200, 150, 300])
        clock = RecordClock(lambda: next(ticks))
        assert [clock.now() for _ in range(4)] == [100, 200, 200, 300]
