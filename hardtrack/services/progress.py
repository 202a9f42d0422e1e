from datetime import date
from typing import Iterable, List, Optional, Sequence

from hardtrack.schemas.progress import ProgressStats, TaskStat
from hardtrack.services.streaks import calculate_streak
from hardtrack.utils.dates import DateLike, round_half_up, to_date


def get_elapsed_days(start_date: DateLike, duration_days: int, today: date) -> int:
    """Days since start including today, clamped to [0, duration]"""
    since_start = (today - to_date(start_date)).days + 1
    return min(max(since_start, 0), duration_days)


def get_missed_days(elapsed_days: int, completed_days: int, start_date: DateLike, today: date) -> int:
    # Excludes the still-open current day, except when today is the start date.
    adjustment = 0 if to_date(start_date) == today else 1
    return max(elapsed_days - completed_days - adjustment, 0)


def get_completion_percentage(completed_days: int, elapsed_days: int) -> int:
    if elapsed_days == 0:
        return 0
    return int(round_half_up(completed_days / elapsed_days * 100))


def get_task_stats(tasks: Sequence, entries: Sequence, elapsed_days: int) -> List[TaskStat]:
    stats = []
    for task in tasks:
        values = [
            completion.value
            for entry in entries
            for completion in entry.task_completions
            if completion.task_id == task.id and completion.is_completed
        ]
        total = len(values)
        average = sum(values) / total if total else 0.0
        rate = int(round_half_up(total / elapsed_days * 100)) if elapsed_days > 0 else 0
        stats.append(
            TaskStat(
                task_id=task.id,
                label=task.label,
                total_completions=total,
                average_value=average,
                completion_rate=rate,
            )
        )
    return stats


def completed_dates_of(entries: Iterable) -> List[date]:
    return [to_date(entry.date) for entry in entries if entry.is_complete]


def calculate_progress_stats(
    start_date: DateLike,
    duration_days: int,
    tasks: Sequence,
    entries: Sequence,
    today: Optional[date] = None,
) -> ProgressStats:
    """Aggregate one user's entries (with nested task_completions) over a challenge."""
    today = today or date.today()
    completed_dates = completed_dates_of(entries)

    elapsed = get_elapsed_days(start_date, duration_days, today)
    completed = len(completed_dates)
    streak = calculate_streak(completed_dates, today=today)

    return ProgressStats(
        total_days=duration_days,
        elapsed_days=elapsed,
        completed_days=completed,
        missed_days=get_missed_days(elapsed, completed, start_date, today),
        current_streak=streak.current,
        longest_streak=streak.longest,
        completion_percentage=get_completion_percentage(completed, elapsed),
        days_remaining=max(duration_days - elapsed, 0),
        task_stats=get_task_stats(tasks, entries, elapsed),
    )
