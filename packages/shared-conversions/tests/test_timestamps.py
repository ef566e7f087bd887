"""Tests for conversion timestamp encoding."""

import pytest
from adsbridge.conversions.timestamps import (
    current_timestamp,
    encode_timestamp,
    is_leap_year,
)


class TestEncodeTimestamp:
    """Tests for encode_timestamp."""

    def test_epoch(self):
        """Test epoch zero encodes to the Unix epoch."""
        assert encode_timestamp(0) == "1970-01-01 00:00:00+00:00"

    def test_leap_year_march_boundary(self):
        """Test the day after February 29th in a leap year."""
        assert encode_timestamp(1709251200000) == "2024-03-01 00:00:00+00:00"

    def test_leap_day(self):
        """Test a time on February 29th."""
        assert encode_timestamp(1709210096000) == "2024-02-29 12:34:56+00:00"

    def test_last_second_of_year(self):
        """Test the last second before a new year."""
        assert encode_timestamp(1704067199000) == "2023-12-31 23:59:59+00:00"

    def test_last_day_of_leap_year(self):
        """Test day 366 of a leap year."""
        assert encode_timestamp(94608000000) == "1972-12-31 00:00:00+00:00"

    def test_milliseconds_truncated(self):
        """Test sub-second precision is dropped, not rounded."""
        assert encode_timestamp(999) == "1970-01-01 00:00:00+00:00"
        assert encode_timestamp(61_500) == "1970-01-01 00:01:01+00:00"

    def test_zero_padding(self):
        """Test single-digit components are zero-padded."""
        # 1970-02-03 04:05:06
        millis = ((31 + 2) * 86400 + 4 * 3600 + 5 * 60 + 6) * 1000
        assert encode_timestamp(millis) == "1970-02-03 04:05:06+00:00"

    def test_negative_rejected(self):
        """Test negative input raises ValueError."""
        with pytest.raises(ValueError, match="non-negative"):
            encode_timestamp(-1)


class TestLeapYear:
    """Tests for the leap-year rule."""

    @pytest.mark.parametrize("year", [1972, 2000, 2024])
    def test_divisible_by_four(self, year):
        assert is_leap_year(year) is True

    @pytest.mark.parametrize("year", [1970, 2023, 2025])
    def test_not_divisible_by_four(self, year):
        assert is_leap_year(year) is False


def test_current_timestamp_uses_clock(fixed_clock):
    """Test current_timestamp encodes the injected clock."""
    assert current_timestamp(fixed_clock) == "2024-03-01 00:00:00+00:00"
