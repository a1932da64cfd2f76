"""Unit tests for Go-style duration parsing and formatting."""

from __future__ import annotations

import pytest

from zed_go_tasks.durations import format_duration, parse_duration


class TestParseDuration:
    """Tests for parse_duration."""

    def test_seconds(self):
        assert parse_duration("30s") == 30.0

    def test_compound(self):
        """Units can be chained."""
        assert parse_duration("1m30s") == 90.0
        assert parse_duration("1h2m3s") == 3723.0

    def test_fractional_and_sub_second(self):
        assert parse_duration("1.5s") == 1.5
        assert parse_duration("250ms") == pytest.approx(0.25)

    def test_zero(self):
        assert parse_duration("0") == 0.0

    def test_sign(self):
        assert parse_duration("-5s") == -5.0
        assert parse_duration("+5s") == 5.0

    def test_surrounding_whitespace(self):
        assert parse_duration("  2m ") == 120.0

    @pytest.mark.parametrize("text", ["", "30", "s", "abc", "10x", "1m x"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_duration(text)


class TestFormatDuration:
    """Tests for format_duration."""

    def test_zero_and_negative(self):
        assert format_duration(0) == "0s"
        assert format_duration(-1) == "0s"

    def test_seconds(self):
        assert format_duration(30) == "30s"
        assert format_duration(1.5) == "1.5s"

    def test_milliseconds(self):
        assert format_duration(0.25) == "250ms"

    def test_minutes_and_hours(self):
        assert format_duration(120) == "2m0s"
        assert format_duration(90) == "1m30s"
        assert format_duration(3723) == "1h2m3s"

    def test_parse_accepts_formatted(self):
        """Formatted values are accepted by go test -timeout style parsing."""
        for seconds in (0.25, 1.5, 30, 90, 3723):
            assert parse_duration(format_duration(seconds)) == pytest.approx(seconds)
