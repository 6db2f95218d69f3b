"""Tests for gap-broken line building and per-window sampling."""

import asyncio
from datetime import timedelta

import pytest

from pmcharts.config import TrackConfig
from pmcharts.tracks.sampler import TrackSampler, build_lines, parse_row
from pmcharts.tracks.types import NoData, TimeWindow, WindowSample
from conftest import T0, FakeHistory, failing_history, rows_at

GAP = timedelta(minutes=2)


class TestBuildLines:

    def test_gap_breaks_line(self):
        """A 140 s gap between 20 s and 160 s splits the track in two."""
        lines = build_lines(rows_at([0, 10, 20, 160, 170]), GAP)
        assert [len(line) for line in lines] == [3, 2]

    def test_gap_equal_to_threshold_does_not_break(self):
        lines = build_lines(rows_at([0, 120, 240]), GAP)
        assert [len(line) for line in lines] == [3]

    def test_points_are_lon_lat(self):
        lines = build_lines(rows_at([0, 10], lon=-122.0, lat=37.0), GAP)
        assert len(lines) == 1
        assert lines[0][0] == [-122.0, 37.0]
        assert lines[0][1] == pytest.approx([-121.999, 37.001])

    def test_single_sample_yields_nothing(self):
        assert build_lines(rows_at([0]), GAP) == []

    def test_isolated_point_after_gap_is_dropped(self):
        lines = build_lines(rows_at([0, 10, 500]), GAP)
        assert [len(line) for line in lines] == [2]

    def test_empty(self):
        assert build_lines([], GAP) == []

    def test_invalid_rows_neither_break_nor_extend(self):
        rows = rows_at([0, 10, 20])
        ts = rows[1][0]
        rows[1:1] = [
            (ts, None),
            (ts, ["a", "b"]),
            (ts, [1.0]),
            (ts, [True, 2.0]),
            (ts, [float("nan"), 2.0]),
        ]
        lines = build_lines(rows, GAP)
        assert len(lines) == 1
        assert len(lines[0]) == 3

    def test_invalid_row_inside_gap_does_not_bridge_it(self):
        rows = rows_at([0, 10, 200, 210])
        rows.insert(2, (rows[1][0], None))
        assert [len(line) for line in build_lines(rows, GAP)] == [2, 2]

    def test_epoch_millisecond_timestamps(self):
        base = int(T0.timestamp() * 1000)
        rows = [(base, [1.0, 2.0]), (base + 10_000, [1.1, 2.1]), (base + 200_000, [1.2, 2.2])]
        assert [len(line) for line in build_lines(rows, GAP)] == [2]


class TestParseRow:

    def test_valid(self):
        sample = parse_row(("2024-01-01T00:00:10Z", [4, 5.5]))
        assert sample.lon == 4.0
        assert sample.lat == 5.5
        assert sample.ts == T0 + timedelta(seconds=10)

    def test_bad_timestamp(self):
        assert parse_row(("not a date", [1.0, 2.0])) is None

    def test_out_of_range_epoch_timestamp(self):
        assert parse_row((1e20, [1.0, 2.0])) is None

    def test_extra_row_values_are_ignored(self):
        sample = parse_row(("2024-01-01T00:00:10Z", [1.0, 2.0], 5))
        assert (sample.lon, sample.lat) == (1.0, 2.0)

    def test_short_row(self):
        assert parse_row(("2024-01-01T00:00:10Z",)) is None


class TestTrackSampler:

    def test_query_parameters(self):
        history = FakeHistory(lambda q, i: rows_at([0, 10]))
        window = TimeWindow(T0, T0 + timedelta(hours=1))
        asyncio.run(TrackSampler(history, TrackConfig()).sample(window))
        query = history.queries[0]
        assert query.start == window.start
        assert query.end == window.end
        assert query.resolution_s == 10
        assert query.path == "navigation.position"
        assert query.aggregate == "average"

    def test_point_count_is_raw_row_count(self):
        rows = rows_at([0, 10, 20]) + [(rows_at([30])[0][0], None)]
        history = FakeHistory(lambda q, i: rows)
        window = TimeWindow(T0, T0 + timedelta(hours=1))
        outcome = asyncio.run(TrackSampler(history, TrackConfig()).sample(window))
        assert isinstance(outcome, WindowSample)
        assert outcome.point_count == 4
        assert len(outcome.lines[0]) == 3

    def test_malformed_rows_do_not_escape(self):
        rows = rows_at([0, 10]) + [(1e20, [1.0, 2.0]), (rows_at([20])[0][0], [1.0, 2.0], 5)]
        history = FakeHistory(lambda q, i: rows)
        window = TimeWindow(T0, T0 + timedelta(hours=1))
        outcome = asyncio.run(TrackSampler(history, TrackConfig()).sample(window))
        assert isinstance(outcome, WindowSample)
        assert outcome.point_count == 4
        assert [len(line) for line in outcome.lines] == [3]

    def test_failure_becomes_no_data(self):
        window = TimeWindow(T0, T0 + timedelta(hours=1))
        outcome = asyncio.run(TrackSampler(failing_history("boom"), TrackConfig()).sample(window))
        assert isinstance(outcome, NoData)
        assert outcome.window == window
        assert "boom" in outcome.reason

    def test_unexpected_exception_becomes_no_data(self):
        def responder(query, index):
            raise RuntimeError("socket closed")
        window = TimeWindow(T0, T0 + timedelta(hours=1))
        outcome = asyncio.run(TrackSampler(FakeHistory(responder), TrackConfig()).sample(window))
        assert isinstance(outcome, NoData)
