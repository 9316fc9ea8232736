from datetime import date

from routine_tracker.models import DailyStatRecord, TaskStatus
from routine_tracker import stats

from conftest import make_task


def _rec(d, completed, total, streak=0):
    return DailyStatRecord(date=d, completed_count=completed, total_count=total, streak_at_recording=streak)


def test_completion_rate_edges():
    assert stats.completion_rate([]) == 0
    assert stats.completion_rate([_rec(date(2026, 2, 16), 3, 3)]) == 100
    assert stats.completion_rate([_rec(date(2026, 2, 16), 0, 0)]) == 0


def test_completion_rate_excludes_zero_totals():
    records = [_rec(date(2026, 2, 16), 1, 2), _rec(date(2026, 2, 17), 1, 0)]
    assert stats.completion_rate(records) == 50


def test_completion_rate_sums_before_dividing():
    # 4/5 and 0/1 -> 4/6 = 66.7%
    records = [_rec(date(2026, 2, 16), 4, 5), _rec(date(2026, 2, 17), 0, 1)]
    assert stats.completion_rate(records) == 67


def test_completion_rate_rounds_half_up():
    assert stats.completion_rate([_rec(date(2026, 2, 16), 1, 8)]) == 13  # 12.5
    assert stats.completion_rate([_rec(date(2026, 2, 16), 5, 8)]) == 63  # 62.5


def test_weekly_and_monthly_rates():
    today = date(2026, 3, 4)  # Wednesday
    history = [
        _rec(date(2026, 2, 27), 0, 2),  # previous week, previous month
        _rec(date(2026, 3, 1), 1, 2),   # Sunday: previous week, this month
        _rec(date(2026, 3, 2), 2, 2),   # Monday: this week
        _rec(date(2026, 3, 3), 2, 2),
    ]
    assert stats.weekly_rate(history, today) == 100
    assert stats.monthly_rate(history, today) == 83  # 5/6


def test_rates_empty_when_nothing_in_period():
    history = [_rec(date(2026, 1, 5), 2, 2)]
    assert stats.weekly_rate(history, date(2026, 3, 4)) == 0
    assert stats.monthly_rate(history, date(2026, 3, 4)) == 0


def test_current_streak_display_uses_last_record():
    assert stats.current_streak_display([]) == 0
    history = [_rec(date(2026, 3, 1), 2, 2, 4), _rec(date(2026, 3, 2), 2, 2, 5)]
    assert stats.current_streak_display(history) == 5


def test_perfect_day_count():
    history = [
        _rec(date(2026, 3, 1), 2, 2),
        _rec(date(2026, 3, 2), 1, 2),
        _rec(date(2026, 3, 3), 0, 0),
        _rec(date(2026, 3, 4), 3, 3),
    ]
    assert stats.perfect_day_count(history) == 2


def test_category_distribution_over_live_routine():
    routine = [make_task("a", "health"), make_task("b", "work"), make_task("c", "health")]
    assert stats.category_distribution(routine) == {"health": 2, "work": 1}
    assert list(stats.category_distribution(routine)) == ["health", "work"]
    assert stats.category_distribution([]) == {}


def test_chart_series():
    history = [_rec(date(2026, 2, 3), 1, 4, 0), _rec(date(2026, 2, 4), 0, 0, 0), _rec(date(2026, 2, 5), 2, 2, 1)]
    assert stats.completion_series(history) == [("Feb 3", 25.0), ("Feb 4", 0.0), ("Feb 5", 100.0)]
    assert stats.streak_series(history) == [("Feb 3", 0), ("Feb 4", 0), ("Feb 5", 1)]


def test_today_progress_counts_scheduled_tasks_only():
    routine = [
        make_task("a", status=TaskStatus.COMPLETED),
        make_task("b", days=("sat",), status=TaskStatus.COMPLETED),
        make_task("c"),
    ]
    assert stats.today_progress(routine, date(2026, 3, 4)) == (1, 2)


def test_summarize_does_not_mutate():
    history = [_rec(date(2026, 3, 2), 2, 2, 1)]
    routine = [make_task("a")]
    s = stats.summarize(history, routine, date(2026, 3, 4))
    assert (s.weekly_rate, s.monthly_rate, s.current_streak, s.perfect_days) == (100, 100, 1, 1)
    assert s.categories == {"health": 1}
    assert history == [_rec(date(2026, 3, 2), 2, 2, 1)]
    assert routine == [make_task("a")]
