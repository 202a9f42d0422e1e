from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hardtrack.models.challenge import Task
from hardtrack.models.fitness import FitnessActivity, FitnessTaskMapping
from hardtrack.models.profile import Profile
from hardtrack.schemas.fitness import FitnessActivityResponse, FitnessMappingCreate, FitnessMetrics, TaskSuggestion
from hardtrack.services.challenges import get_owned_task
from hardtrack.utils.dates import local_day_bounds, round_half_up

KM_TO_MILES = 0.621371

# Ordered: the first keyword found in a task label wins.
# An empty type list matches every activity.
ACTIVITY_KEYWORD_RULES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("run", ("run", "running")),
    ("walk", ("walk", "walking", "hike", "hiking")),
    ("ride", ("ride", "virtualride", "ebikeride")),
    ("bike", ("ride", "virtualride", "ebikeride")),
    ("cycle", ("ride", "virtualride", "ebikeride")),
    ("swim", ("swim", "swimming")),
    ("hike", ("hike", "hiking", "walk", "walking")),
    ("workout", ("workout", "weighttraining", "crossfit", "strength")),
    ("exercise", ("workout", "weighttraining", "crossfit", "strength")),
    ("training", ("workout", "weighttraining", "crossfit", "strength")),
    ("activity", ()),
)


class UnitRule(NamedTuple):
    quantity: str
    contains: Tuple[str, ...]
    equals: Tuple[str, ...]
    places: int

    def matches(self, unit: str) -> bool:
        return unit in self.equals or any(part in unit for part in self.contains)


# Ordered: the first rule matching the task unit decides the quantity and
# the number of decimals kept.
UNIT_RULES: Tuple[UnitRule, ...] = (
    UnitRule("minutes", ("min", "minute", "time"), (), 0),
    UnitRule("kilometers", ("km", "kilometer", "distance"), (), 1),
    UnitRule("miles", ("mile",), ("mi",), 1),
    UnitRule("meters", ("meter",), ("m",), 0),
    UnitRule("steps", ("step",), (), 0),
    UnitRule("calories", ("calorie",), ("cal", "kcal"), 0),
    UnitRule("hours", ("hour",), ("hr", "hrs"), 1),
)

# Generic effort words in a unit that fall back to minutes of activity
DURATION_UNIT_WORDS = ("exercise", "workout", "training")

MINUTES_RULE = UNIT_RULES[0]

ACTIVITY_TYPE_SUGGESTIONS = [
    {"value": "run", "label": "Running", "metrics": ["distance", "duration", "calories"]},
    {"value": "walk", "label": "Walking", "metrics": ["distance", "duration", "steps", "calories"]},
    {"value": "ride", "label": "Cycling", "metrics": ["distance", "duration", "calories"]},
    {"value": "swim", "label": "Swimming", "metrics": ["distance", "duration", "calories"]},
    {"value": "hike", "label": "Hiking", "metrics": ["distance", "duration", "calories"]},
    {"value": "workout", "label": "Workout", "metrics": ["duration", "calories"]},
    {"value": "yoga", "label": "Yoga", "metrics": ["duration"]},
    {"value": "dance", "label": "Dance", "metrics": ["duration", "calories"]},
]


def aggregate_metrics(activities: Sequence) -> FitnessMetrics:
    """Sum one day's activities into a single metrics record. Missing fields count as 0."""
    metrics = FitnessMetrics(
        activities=[FitnessActivityResponse.model_validate(a) for a in activities]
    )
    for activity in activities:
        metrics.total_distance_meters += activity.distance_meters or 0
        metrics.total_duration_seconds += activity.duration_seconds or 0
        metrics.total_steps += activity.steps_count or 0
        metrics.total_calories += activity.calories_burned or 0
    return metrics


def find_unit_rule(unit: Optional[str]) -> Optional[UnitRule]:
    unit = (unit or "").strip().lower()
    if not unit:
        return None
    for rule in UNIT_RULES:
        if rule.matches(unit):
            return rule
    return None


def quantity_of(quantity: str, distance_m: float, duration_s: float, steps: float, calories: float) -> float:
    if quantity == "minutes":
        return duration_s / 60
    if quantity == "hours":
        return duration_s / 3600
    if quantity == "kilometers":
        return distance_m / 1000
    if quantity == "miles":
        return distance_m / 1000 * KM_TO_MILES
    if quantity == "meters":
        return distance_m
    if quantity == "steps":
        return steps
    if quantity == "calories":
        return calories
    raise ValueError(f"Unknown quantity: {quantity}")


def match_activity_keyword(label: str) -> Optional[Tuple[str, Tuple[str, ...]]]:
    label = (label or "").lower()
    for keyword, activity_types in ACTIVITY_KEYWORD_RULES:
        if keyword in label:
            return keyword, activity_types
    return None


def filter_matching_activities(label: str, activities: Sequence) -> List:
    match = match_activity_keyword(label)
    if match is None:
        return list(activities)
    _, activity_types = match
    if not activity_types:
        return list(activities)
    return [
        a for a in activities
        if any(t in (a.activity_type or "").lower() for t in activity_types)
    ]


def match_task_to_activities(task, activities: Sequence) -> float:
    """Heuristic value for a task from the activities whose type fits its label."""
    matching = filter_matching_activities(task.label, activities)
    if not matching:
        return 0

    # No recognised unit: generic workout wording counts minutes of activity
    rule = find_unit_rule(task.unit) or MINUTES_RULE
    total = sum(
        quantity_of(
            rule.quantity,
            a.distance_meters or 0,
            a.duration_seconds or 0,
            a.steps_count or 0,
            a.calories_burned or 0,
        )
        for a in matching
    )
    return round_half_up(total, rule.places)


def value_from_day_totals(task, metrics: FitnessMetrics) -> float:
    """Fallback: the task unit applied to the whole day's totals."""
    unit = (task.unit or "").strip().lower()
    if not unit:
        return 0
    rule = find_unit_rule(unit)
    if rule is None:
        if any(word in unit for word in DURATION_UNIT_WORDS):
            rule = MINUTES_RULE
        else:
            return 0
    total = quantity_of(
        rule.quantity,
        metrics.total_distance_meters,
        metrics.total_duration_seconds,
        metrics.total_steps,
        metrics.total_calories,
    )
    return round_half_up(total, rule.places)


def suggest_by_heuristic(tasks: Sequence, metrics: FitnessMetrics) -> List[TaskSuggestion]:
    suggestions = []
    for task in tasks:
        value = 0
        is_completed = False
        # checkbox tasks are never auto-filled
        if task.type == "number":
            value = match_task_to_activities(task, metrics.activities)
            if value == 0:
                value = value_from_day_totals(task, metrics)
            is_completed = value >= task.target_value
        suggestions.append(TaskSuggestion(task_id=task.id, value=value, is_completed=is_completed))
    return suggestions


def mapped_metric_value(metric: str, metrics: FitnessMetrics) -> float:
    if metric == "distance":
        return metrics.total_distance_meters / 1000
    if metric == "duration":
        return metrics.total_duration_seconds / 60
    if metric == "steps":
        return metrics.total_steps
    if metric == "calories":
        return metrics.total_calories
    raise ValueError(f"Unknown metric: {metric}")


def suggest_by_mapping(tasks: Sequence, metrics: FitnessMetrics, mappings: Sequence) -> List[TaskSuggestion]:
    by_task: Dict[int, object] = {m.task_id: m for m in mappings}
    suggestions = []
    for task in tasks:
        mapping = by_task.get(task.id)
        if mapping is None or task.type != "number":
            suggestions.append(TaskSuggestion(task_id=task.id, value=0, is_completed=False))
            continue
        value = round_half_up(mapped_metric_value(mapping.metric, metrics) * mapping.multiplier)
        suggestions.append(
            TaskSuggestion(task_id=task.id, value=value, is_completed=value >= task.target_value)
        )
    return suggestions


def suggest_completions(
    tasks: Sequence, metrics: FitnessMetrics, mappings: Sequence = ()
) -> Tuple[str, List[TaskSuggestion]]:
    """Explicit mappings take over the whole challenge once any exist."""
    if mappings:
        return "mapping", suggest_by_mapping(tasks, metrics, mappings)
    return "heuristic", suggest_by_heuristic(tasks, metrics)


async def get_activities_for_date(db: AsyncSession, user: Profile, day: date) -> List[FitnessActivity]:
    start, end = local_day_bounds(day, user.timezone)
    result = await db.execute(
        select(FitnessActivity)
        .where(FitnessActivity.user_id == user.id)
        .where(FitnessActivity.start_date >= start)
        .where(FitnessActivity.start_date <= end)
        .order_by(FitnessActivity.start_date)
    )
    return list(result.scalars().all())


async def get_recent_activities(db: AsyncSession, user: Profile, days: int = 30) -> List[FitnessActivity]:
    since = datetime.now(timezone.utc) - timedelta(days=days)
    result = await db.execute(
        select(FitnessActivity)
        .where(FitnessActivity.user_id == user.id)
        .where(FitnessActivity.start_date >= since)
        .order_by(FitnessActivity.start_date.desc())
    )
    return list(result.scalars().all())


async def get_metrics_for_date(db: AsyncSession, user: Profile, day: date) -> FitnessMetrics:
    activities = await get_activities_for_date(db, user, day)
    return aggregate_metrics(activities)


async def get_task_mappings(db: AsyncSession, challenge_id: int) -> List[FitnessTaskMapping]:
    result = await db.execute(
        select(FitnessTaskMapping)
        .join(Task, Task.id == FitnessTaskMapping.task_id)
        .where(Task.challenge_id == challenge_id)
    )
    return list(result.scalars().all())


async def auto_populate_task_completions(
    db: AsyncSession, user: Profile, challenge_id: int, day: date, tasks: Sequence
) -> Tuple[str, FitnessMetrics, List[TaskSuggestion]]:
    metrics = await get_metrics_for_date(db, user, day)
    mappings = await get_task_mappings(db, challenge_id)
    strategy, suggestions = suggest_completions(tasks, metrics, mappings)
    return strategy, metrics, suggestions


async def save_task_mapping(db: AsyncSession, task: Task, data: FitnessMappingCreate) -> FitnessTaskMapping:
    """One mapping per task: saving again replaces the previous one."""
    if task.type != "number":
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Only number tasks can be linked to fitness data")
    result = await db.execute(select(FitnessTaskMapping).where(FitnessTaskMapping.task_id == task.id))
    mapping = result.scalar_one_or_none()
    if mapping is None:
        mapping = FitnessTaskMapping(task_id=task.id)
        db.add(mapping)
    mapping.activity_type = data.activity_type.lower()
    mapping.metric = data.metric
    mapping.multiplier = data.multiplier
    await db.commit()
    await db.refresh(mapping)
    return mapping


async def delete_task_mapping(db: AsyncSession, mapping_id: int, user: Profile) -> None:
    result = await db.execute(select(FitnessTaskMapping).where(FitnessTaskMapping.id == mapping_id))
    mapping = result.scalar_one_or_none()
    if not mapping:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Mapping not found")
    await get_owned_task(db, mapping.task_id, user)
    await db.delete(mapping)
    await db.commit()
