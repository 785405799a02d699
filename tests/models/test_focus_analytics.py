"""Unit tests for focus statistics.

The completion rule is checked at its exact boundaries; the aggregate is
checked against a small hand-computed history.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta

import pytest

from pomodoro_cli.models.focus.analytics import (
    FocusAnalytics,
    FocusStats,
    calculate_focus_efficiency,
    calculate_session_consistency,
    calculate_stats,
    calculate_streaks,
    get_insights,
    is_session_completed,
)
from pomodoro_cli.models.focus.records import SessionRecord

MINUTE = 60_000

# Local-time anchors so "today" does not depend on the test machine's zone
TODAY_9AM = int(datetime(2026, 3, 10, 9, 0).timestamp() * 1000)
NOW = int(datetime(2026, 3, 10, 15, 0).timestamp() * 1000)


def _session(phase="focus", start=TODAY_9AM, expected=1500, actual=None, **kwargs):
    actual = expected if actual is None else actual
    return SessionRecord(
        phase=phase,
        start_time=start,
        end_time=kwargs.pop("end", start + actual * 1000),
        expected_duration=expected,
        actual_duration=actual,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Completion rule
# ---------------------------------------------------------------------------


class TestIsSessionCompleted:
    @pytest.mark.parametrize(
        "end_offset_ms, expected",
        [
            (0, True),
            (-4_999, True),
            (-5_000, False),
            (-600_000, False),
            (5_000, True),
            (5_001, False),
        ],
    )
    def test_tolerance_boundaries(self, end_offset_ms, expected):
        record = _session(end=TODAY_9AM + 1_500_000 + end_offset_ms)
        assert is_session_completed(record) is expected

    @pytest.mark.parametrize(
        "field", ["start_time", "end_time", "expected_duration"]
    )
    def test_missing_fields_are_never_completed(self, field):
        record = _session()
        data = {**record.__dict__, field: None}
        assert is_session_completed(SessionRecord(**data)) is False

    def test_stored_flag_is_ignored(self):
        record = _session(actual=60, completed=True)
        assert is_session_completed(record) is False


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------


class TestCalculateStats:
    def test_empty_history(self):
        stats = calculate_stats([], now=NOW)
        assert stats == FocusStats()
        assert stats.to_dict() == {
            "totalSessions": 0,
            "completedSessions": 0,
            "completionRate": 0,
            "totalFocusTime": 0,
            "totalBreakTime": 0,
            "avgSessionLength": 0,
            "avgBreakLength": 0,
            "currentStreak": 0,
            "longestStreak": 0,
            "todaysSessions": 0,
            "emergencyStops": 0,
            "earlyStops": 0,
            "focusEfficiency": 100,
            "sessionConsistency": 100,
        }

    def test_none_history(self):
        assert calculate_stats(None) == FocusStats()

    def test_mixed_history(self):
        sessions = [
            _session("focus", TODAY_9AM),
            _session("shortBreak", TODAY_9AM + 25 * MINUTE, expected=300),
            _session("focus", TODAY_9AM + 30 * MINUTE, actual=600),
            _session("focus", TODAY_9AM + 40 * MINUTE),
        ]

        stats = calculate_stats(sessions, now=NOW)

        assert stats.total_sessions == 4
        assert stats.completed_sessions == 3
        assert stats.completion_rate == 75
        assert stats.total_focus_time == 60
        assert stats.total_break_time == 5
        assert stats.avg_session_length == pytest.approx(16.25)
        assert stats.avg_break_length == 5
        assert stats.current_streak == 1
        assert stats.longest_streak == 1
        assert stats.todays_sessions == 4
        assert stats.early_stops == 1
        assert stats.emergency_stops == 0
        assert stats.focus_efficiency == pytest.approx(200 / 3)
        assert stats.session_consistency == 100

    def test_emergency_stops_counted_separately(self):
        sessions = [
            _session(actual=300, emergency_stop=True),
            _session(actual=60),
        ]
        stats = calculate_stats(sessions, now=NOW)
        assert stats.emergency_stops == 1
        assert stats.early_stops == 2

    def test_corrupt_durations_left_out_of_sums(self):
        sessions = [
            _session(actual=1500),
            _session(actual=99_999, end=TODAY_9AM + 1_500_000),
            _session(actual=-20, end=TODAY_9AM + 1_500_000),
        ]
        stats = calculate_stats(sessions, now=NOW)
        assert stats.total_focus_time == 25
        assert stats.avg_session_length == 25

    def test_all_values_finite(self):
        sessions = [
            _session(actual=float("nan")),
            _session("longBreak", expected=900, actual=float("inf"), end=TODAY_9AM),
        ]
        stats = calculate_stats(sessions, now=NOW)
        for value in stats.to_dict().values():
            assert math.isfinite(value)

    @pytest.mark.parametrize("start", [10**17, -(10**17)])
    def test_unrepresentable_start_time(self, start):
        sessions = [_session(start=start), _session(start=TODAY_9AM)]
        stats = calculate_stats(sessions, now=NOW)
        assert stats.total_sessions == 2
        assert stats.todays_sessions == 1
        for value in stats.to_dict().values():
            assert math.isfinite(value)

    def test_unrepresentable_now(self):
        stats = calculate_stats([_session(start=TODAY_9AM)], now=10**17)
        assert stats.todays_sessions == 0

    def test_todays_sessions_uses_local_date(self):
        yesterday = TODAY_9AM - 24 * 60 * MINUTE
        sessions = [_session(start=yesterday), _session(start=TODAY_9AM)]
        assert calculate_stats(sessions, now=NOW).todays_sessions == 1


class TestStreaks:
    def test_breaks_do_not_reset_streak(self):
        sessions = [
            _session("focus", TODAY_9AM),
            _session("shortBreak", TODAY_9AM + 25 * MINUTE, expected=300, actual=10),
            _session("focus", TODAY_9AM + 30 * MINUTE),
        ]
        assert calculate_streaks(sessions) == (2, 2)

    def test_incomplete_focus_resets_current(self):
        sessions = [
            _session("focus", TODAY_9AM),
            _session("focus", TODAY_9AM + 30 * MINUTE),
            _session("focus", TODAY_9AM + 60 * MINUTE),
            _session("focus", TODAY_9AM + 90 * MINUTE, actual=100),
        ]
        assert calculate_streaks(sessions) == (0, 3)

    def test_orders_by_start_time(self):
        sessions = [
            _session("focus", TODAY_9AM + 60 * MINUTE),
            _session("focus", TODAY_9AM, actual=100),
        ]
        assert calculate_streaks(sessions) == (1, 1)


class TestRatios:
    def test_efficiency_without_focus_sessions(self):
        assert calculate_focus_efficiency([_session("shortBreak", expected=300)]) == 100

    def test_consistency_within_tolerance(self):
        # Completed 3 s early: 1497 / 1500
        record = _session(actual=1497, end=TODAY_9AM + 1_497_000)
        assert calculate_session_consistency([record]) == pytest.approx(99.8)


class TestInsights:
    def test_no_sessions_today(self):
        assert "Start your first session today!" in get_insights(FocusStats())

    def test_low_completion_and_efficiency(self):
        stats = FocusStats(
            total_sessions=4, completion_rate=25, focus_efficiency=50, todays_sessions=4
        )
        insights = get_insights(stats)
        assert "Consider shorter sessions to improve completion rate" in insights
        assert "Try to minimize interruptions during focus sessions" in insights

    def test_streak(self):
        stats = FocusStats(current_streak=5, todays_sessions=5)
        assert get_insights(stats) == ["Great streak! Keep up the momentum"]


# ---------------------------------------------------------------------------
# Time windows
# ---------------------------------------------------------------------------


class TestFocusAnalytics:
    @pytest.fixture()
    def analytics(self):
        ten_days_ago = int((datetime(2026, 3, 10, 9, 0) - timedelta(days=10)).timestamp() * 1000)
        three_days_ago = int((datetime(2026, 3, 10, 9, 0) - timedelta(days=3)).timestamp() * 1000)
        return FocusAnalytics(
            [
                _session(start=ten_days_ago),
                _session(start=three_days_ago),
                _session(start=TODAY_9AM),
                _session("shortBreak", TODAY_9AM + 25 * MINUTE, expected=300),
            ],
            now=NOW,
        )

    def test_filter_by_timeframe(self, analytics):
        assert len(analytics.filter_sessions("today")) == 2
        assert len(analytics.filter_sessions("week")) == 3
        assert len(analytics.filter_sessions("month")) == 4
        assert len(analytics.filter_sessions("all")) == 4

    def test_unknown_timeframe(self, analytics):
        with pytest.raises(ValueError):
            analytics.filter_sessions("decade")

    def test_stats_for_timeframe(self, analytics):
        assert analytics.stats("today").total_sessions == 2

    def test_hourly_distribution(self, analytics):
        counts = analytics.hourly_distribution("today")
        assert counts[9] == 2
        assert sum(counts) == 2

    def test_phase_breakdown(self, analytics):
        assert analytics.phase_breakdown("today") == {
            "focus": 25.0,
            "shortBreak": 5.0,
            "longBreak": 0.0,
        }

    def test_focus_trend_groups_by_day(self, analytics):
        trend = analytics.focus_trend("week")
        assert list(trend.values()) == [25.0, 25.0]

    def test_unrepresentable_start_time_is_skipped(self):
        analytics = FocusAnalytics(
            [_session(start=TODAY_9AM), _session(start=10**17)], now=NOW
        )
        assert len(analytics.filter_sessions("today")) == 2
        assert sum(analytics.hourly_distribution("today")) == 1
        assert analytics.focus_trend("all") == {"2026-03": 25.0}
        assert analytics.stats("today").todays_sessions == 1

    def test_unrepresentable_now_falls_back_to_last_day(self):
        far = 10**17
        analytics = FocusAnalytics([_session(start=far - 60 * MINUTE)], now=far)
        assert len(analytics.filter_sessions("today")) == 1
