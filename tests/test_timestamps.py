"""Tests for Docker timestamp utility functions."""

from datetime import datetime, timezone, timedelta

from swarm_exporter.utils.timestamps import parse_docker_timestamp, to_epoch_seconds


class TestParseDockerTimestamp:
    """Tests for parse_docker_timestamp function."""

    def test_nanosecond_precision(self):
        """Test that nanosecond fractions are truncated to microseconds."""
        result = parse_docker_timestamp("2024-01-01T12:00:00.123456789Z")
        assert result == datetime(2024, 1, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)

    def test_short_fraction(self):
        """Test fractions shorter than microseconds."""
        result = parse_docker_timestamp("2024-01-01T12:00:00.5Z")
        assert result == datetime(2024, 1, 1, 12, 0, 0, 500000, tzinfo=timezone.utc)

    def test_no_fraction(self):
        """Test timestamp without fractional seconds."""
        result = parse_docker_timestamp("2024-01-01T12:00:00Z")
        assert result == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_offset(self):
        """Test timestamp with a numeric UTC offset."""
        result = parse_docker_timestamp("2024-01-01T14:00:00.000000001+02:00")
        assert result == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert result.utcoffset() == timedelta(hours=2)

    def test_zero_time(self):
        """Test that Go's zero time is treated as missing."""
        assert parse_docker_timestamp("0001-01-01T00:00:00Z") is None

    def test_empty_and_none(self):
        """Test empty values."""
        assert parse_docker_timestamp("") is None
        assert parse_docker_timestamp(None) is None

    def test_malformed(self):
        """Test that garbage does not raise."""
        assert parse_docker_timestamp("not a timestamp") is None

    def test_naive_timestamp_rejected(self):
        """Test that timestamps without a zone are treated as missing."""
        assert parse_docker_timestamp("2024-01-01T12:00:00") is None


class TestToEpochSeconds:
    """Tests for to_epoch_seconds function."""

    def test_whole_seconds(self):
        """Test conversion of an exact second."""
        value = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
        assert to_epoch_seconds(value) == 1704067200.0

    def test_truncates_fraction(self):
        """Test that sub-second precision is dropped."""
        value = datetime(2024, 1, 1, 0, 0, 0, 999999, tzinfo=timezone.utc)
        assert to_epoch_seconds(value) == 1704067200.0

    def test_returns_float(self):
        """Test that the result is a float for gauge values."""
        value = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
        assert isinstance(to_epoch_seconds(value), float)
