import httpx
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from hardtrack.config import settings
from hardtrack.database import get_db
from hardtrack.core.auth import require_cron_secret
from hardtrack.schemas.fitness import ReminderSummary, SyncSummary
from hardtrack.services import strava
from hardtrack.services.email import get_email_client
from hardtrack.services.reminders import send_due_reminders

router = APIRouter(prefix="/jobs", tags=["jobs"], dependencies=[Depends(require_cron_secret)])


@router.post("/strava-sync", response_model=SyncSummary)
async def strava_sync_all(
    db: AsyncSession = Depends(get_db),
    client: strava.StravaClient = Depends(strava.get_strava_client)
):
    """Nightly sync of every active Strava connection."""
    return await strava.sync_all_providers(db, client)


@router.post("/send-reminders", response_model=ReminderSummary)
async def send_reminders(
    db: AsyncSession = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_email_client)
):
    if not settings.email_configured:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Email delivery not configured")
    return await send_due_reminders(db, client)
