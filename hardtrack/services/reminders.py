import logging
from datetime import datetime, timezone
from typing import List, Optional

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hardtrack.config import settings
from hardtrack.models.challenge import Challenge
from hardtrack.models.entry import DailyEntry
from hardtrack.models.profile import Profile
from hardtrack.schemas.fitness import ReminderSummary
from hardtrack.services.email import send_reminder_email
from hardtrack.utils.dates import local_now

logger = logging.getLogger(__name__)


def is_reminder_due(profile: Profile, now: datetime, window_minutes: Optional[int] = None) -> bool:
    """True when the user's local clock is within the window around their reminder time."""
    if not profile.reminder_enabled or not profile.reminder_time:
        return False
    window = settings.REMINDER_WINDOW_MINUTES if window_minutes is None else window_minutes
    hour, minute = (int(part) for part in profile.reminder_time.split(":"))
    local = local_now(profile.timezone, now)
    return local.hour == hour and abs(local.minute - minute) <= window


async def has_unfinished_challenge(db: AsyncSession, profile: Profile, now: datetime) -> bool:
    """Whether any owned challenge is missing a complete entry for the user's local today."""
    today = local_now(profile.timezone, now).date()
    challenges = await db.execute(select(Challenge.id).where(Challenge.user_id == profile.id))
    challenge_ids = list(challenges.scalars().all())
    if not challenge_ids:
        return False

    complete = await db.execute(
        select(DailyEntry.challenge_id)
        .where(DailyEntry.user_id == profile.id)
        .where(DailyEntry.date == today)
        .where(DailyEntry.is_complete.is_(True))
        .where(DailyEntry.challenge_id.in_(challenge_ids))
    )
    return len(set(complete.scalars().all())) < len(challenge_ids)


async def send_due_reminders(
    db: AsyncSession, client: httpx.AsyncClient, now: Optional[datetime] = None
) -> ReminderSummary:
    """Email every user whose reminder is due and who still has check-ins to do today.

    Send failures are logged and counted, never retried.
    """
    now = now or datetime.now(timezone.utc)
    result = await db.execute(select(Profile).where(Profile.reminder_enabled.is_(True)))

    due: List[Profile] = [
        p for p in result.scalars().all()
        if p.email and is_reminder_due(p, now)
    ]
    to_remind = [p for p in due if await has_unfinished_challenge(db, p, now)]

    sent = 0
    failed = 0
    for profile in to_remind:
        try:
            await send_reminder_email(client, profile.email, profile.display_name)
            sent += 1
        except (httpx.HTTPError, RuntimeError) as e:
            failed += 1
            logger.error("Reminder to %s failed: %s", profile.id, e)

    logger.info("Reminders processed: %d due, %d sent, %d failed", len(to_remind), sent, failed)
    return ReminderSummary(
        message="Reminders processed",
        checked=len(due),
        need_reminder=len(to_remind),
        sent=sent,
        failed=failed,
    )
