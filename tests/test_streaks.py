from datetime import date, timedelta

from hardtrack.services.streaks import build_calendar, calculate_streak

TODAY = date(2026, 3, 15)


def days_ago(*offsets):
    return [TODAY - timedelta(days=n) for n in offsets]


def test_no_completed_days():
    assert calculate_streak([], today=TODAY) == (0, 0)


def test_run_ending_today():
    streak = calculate_streak(days_ago(0, 1, 2), today=TODAY)
    assert streak.current == 3
    assert streak.longest == 3


def test_run_ending_yesterday_is_still_alive():
    assert calculate_streak(days_ago(1, 2), today=TODAY).current == 2


def test_run_broken_two_days_ago():
    streak = calculate_streak(days_ago(2, 3, 4), today=TODAY)
    assert streak.current == 0
    assert streak.longest == 3


def test_longest_run_is_kept_after_a_gap():
    streak = calculate_streak(days_ago(0, 1, 3, 4, 5, 6), today=TODAY)
    assert streak.current == 2
    assert streak.longest == 4


def test_duplicate_dates_count_once():
    streak = calculate_streak(days_ago(0, 0, 1, 1), today=TODAY)
    assert streak == (2, 2)


def test_single_day():
    assert calculate_streak(days_ago(0), today=TODAY) == (1, 1)
    assert calculate_streak(days_ago(5), today=TODAY) == (0, 1)


def test_accepts_iso_strings_in_any_order():
    streak = calculate_streak(["2026-03-13", "2026-03-15", "2026-03-14"], "2026-03-01", today=TODAY)
    assert streak == (3, 3)


def test_start_date_does_not_change_counts():
    dates = days_ago(0, 1, 3)
    without_start = calculate_streak(dates, today=TODAY)

    assert calculate_streak(dates, TODAY - timedelta(days=30), today=TODAY) == without_start
    assert calculate_streak(dates, TODAY, today=TODAY) == without_start == (2, 2)


def test_calendar_classification():
    start = TODAY - timedelta(days=2)
    days = build_calendar(start, 5, [start], today=TODAY)

    assert [d.day_number for d in days] == [1, 2, 3, 4, 5]
    assert days[0].is_completed and not days[0].is_missed
    assert days[1].is_missed
    assert days[2].is_today and not days[2].is_missed
    assert all(d.is_future for d in days[3:])
    assert days[4].date == TODAY + timedelta(days=2)


def test_calendar_today_can_be_completed():
    day = build_calendar(TODAY, 1, [TODAY], today=TODAY)[0]
    assert day.is_today
    assert day.is_completed
    assert not day.is_missed
    assert not day.is_future


def test_calendar_before_start_is_all_future():
    days = build_calendar(TODAY + timedelta(days=1), 3, [], today=TODAY)
    assert all(d.is_future and not d.is_missed for d in days)
