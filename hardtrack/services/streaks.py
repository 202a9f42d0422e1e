from datetime import date, timedelta
from typing import Iterable, List, NamedTuple, Optional

from hardtrack.schemas.progress import CalendarDay
from hardtrack.utils.dates import DateLike, to_date


class Streak(NamedTuple):
    current: int
    longest: int


def calculate_streak(
    completed_dates: Iterable[DateLike],
    start_date: Optional[DateLike] = None,
    today: Optional[date] = None,
) -> Streak:
    """Current and longest run of consecutive completed days.

    The current streak survives until the end of the day after the last
    check-in: a streak whose most recent day is yesterday is still alive.
    Duplicate dates are collapsed before counting.

    start_date is part of the public signature only. Runs are measured between
    completed days, so the challenge start never changes either count.
    """
    days = sorted({to_date(d) for d in completed_dates})
    if not days:
        return Streak(0, 0)

    today = today or date.today()

    current = 0
    if (today - days[-1]).days <= 1:
        current = 1
        for newer, older in zip(reversed(days), reversed(days[:-1])):
            if (newer - older).days != 1:
                break
            current += 1

    longest = 1
    run = 1
    for previous, day in zip(days, days[1:]):
        if (day - previous).days == 1:
            run += 1
        else:
            run = 1
        longest = max(longest, run)

    return Streak(current, longest)


def build_calendar(
    start_date: DateLike,
    duration_days: int,
    completed_dates: Iterable[DateLike],
    today: Optional[date] = None,
) -> List[CalendarDay]:
    start = to_date(start_date)
    completed = {to_date(d) for d in completed_dates}
    today = today or date.today()

    days = []
    for offset in range(duration_days):
        current = start + timedelta(days=offset)
        is_today = current == today
        is_future = current > today
        is_completed = current in completed
        days.append(
            CalendarDay(
                date=current,
                day_number=offset + 1,
                is_completed=is_completed,
                is_missed=not is_completed and not is_future and not is_today,
                is_future=is_future,
                is_today=is_today,
            )
        )
    return days
