"""Tests for formatting helpers and list projections."""

import pytest

from jenkins_tui.projections import (
    clamp_index,
    filter_by_name,
    next_match,
    page_count,
    page_of,
    paginate,
    search_lines,
)
from jenkins_tui.utils import (
    classify_log_line,
    format_age,
    format_duration,
    status_to_color,
    time_ago,
    truncate,
)

NOW = 1_700_000_000.0
NOW_MS = int(NOW * 1000)


class TestFormatAge:
    def test_none_returns_empty(self):
        assert format_age(None, now=NOW) == ""

    def test_seconds(self):
        assert format_age(NOW_MS - 30_000, now=NOW) == "30s"

    def test_minutes(self):
        assert format_age(NOW_MS - 5 * 60_000, now=NOW) == "5m"

    def test_hours(self):
        assert format_age(NOW_MS - 3 * 3_600_000, now=NOW) == "3h"

    def test_days(self):
        assert format_age(NOW_MS - 2 * 86_400_000, now=NOW) == "2d"

    def test_future(self):
        assert format_age(NOW_MS + 10_000, now=NOW) == "now"


class TestTimeAgo:
    def test_none(self):
        assert time_ago(0, now=NOW) is None

    def test_minutes(self):
        assert time_ago(NOW_MS - 5 * 60_000, now=NOW) == "5m ago"

    def test_hours_and_minutes(self):
        assert time_ago(NOW_MS - 90 * 60_000, now=NOW) == "1h 30m ago"

    def test_days(self):
        assert time_ago(NOW_MS - 26 * 3_600_000, now=NOW) == "1d 2h ago"


class TestFormatDuration:
    @pytest.mark.parametrize("millis,expected", [
        (None, "< 1s"),
        (500, "< 1s"),
        (42_000, "42s"),
        (185_000, "3m 5s"),
        (7_800_000, "2h 10m"),
    ])
    def test_format(self, millis, expected):
        assert format_duration(millis) == expected


class TestMisc:
    def test_status_to_color(self):
        assert status_to_color("FAILURE") == "red"
        assert status_to_color(None) == "notbuilt"

    def test_truncate(self):
        assert truncate("hello world", 8) == "hello..."
        assert truncate("short", 10) == "short"
        assert truncate("abcdef", 2) == "ab"
        assert truncate("abc", 0) == ""

    @pytest.mark.parametrize("line,kind", [
        ("ERROR: compilation failed", "error"),
        ("WARNING: deprecated", "warning"),
        ("Finished: SUCCESS", "success"),
        ("[Pipeline] stage", "info"),
        ("plain output", ""),
    ])
    def test_classify_log_line(self, line, kind):
        assert classify_log_line(line) == kind


class TestProjections:
    def test_filter_case_insensitive(self):
        names = ["Backend", "frontend", "docs"]
        assert filter_by_name(names, "END", str) == ["Backend", "frontend"]

    def test_empty_filter_keeps_all(self):
        assert filter_by_name(["a", "b"], "", str) == ["a", "b"]

    def test_clamp_index(self):
        assert clamp_index(5, 3) == 2
        assert clamp_index(-1, 3) == 0
        assert clamp_index(4, 0) == 0

    def test_pages(self):
        assert page_count(0) == 1
        assert page_count(20) == 1
        assert page_count(21) == 2
        assert page_of(19) == 0
        assert page_of(20) == 1

    def test_paginate(self):
        items = list(range(45))
        assert paginate(items, 0) == list(range(20))
        assert paginate(items, 2) == list(range(40, 45))
        # Out-of-range pages clamp to the last one
        assert paginate(items, 9) == list(range(40, 45))

    def test_search_lines(self):
        text = "compile\nTest passed\nlint\ntest failed"
        assert search_lines(text, "test") == [1, 3]
        assert search_lines(text, "") == []

    def test_next_match_wraps(self):
        assert next_match([1, 5, 9], 5) == 9
        assert next_match([1, 5, 9], 9) == 1
        assert next_match([1, 5, 9], 5, backwards=True) == 1
        assert next_match([1, 5, 9], 1, backwards=True) == 9
        assert next_match([], 3) is None
