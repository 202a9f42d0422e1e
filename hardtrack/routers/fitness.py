import logging
import urllib.parse
from datetime import date
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from hardtrack.config import settings
from hardtrack.database import get_db
from hardtrack.core.auth import get_current_user
from hardtrack.schemas.fitness import (
    ActivityTypeSuggestion, AuthorizeResponse, FitnessActivityResponse, FitnessMappingCreate,
    FitnessMappingResponse, FitnessMetrics, StravaStatusResponse, SyncResult,
)
from hardtrack.services import strava
from hardtrack.services.challenges import get_owned_task, get_visible_challenge
from hardtrack.services.fitness import (
    ACTIVITY_TYPE_SUGGESTIONS, delete_task_mapping, get_activities_for_date,
    get_metrics_for_date, get_recent_activities, get_task_mappings, save_task_mapping,
)
from hardtrack.utils.tokens import create_oauth_state, read_oauth_state

logger = logging.getLogger(__name__)

router = APIRouter(tags=["fitness"])


def settings_redirect(**params) -> RedirectResponse:
    query = urllib.parse.urlencode(params)
    return RedirectResponse(f"{settings.APP_URL}/settings?{query}", status_code=status.HTTP_302_FOUND)


@router.get("/fitness/strava/authorize", response_model=AuthorizeResponse)
async def strava_authorize(
    current_user = Depends(get_current_user),
    client: strava.StravaClient = Depends(strava.get_strava_client)
):
    if not settings.strava_configured:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Strava integration not configured")
    url = client.authorization_url(settings.STRAVA_REDIRECT_URI, state=create_oauth_state(current_user.id))
    return AuthorizeResponse(auth_url=url)


@router.get("/fitness/strava/callback")
async def strava_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    client: strava.StravaClient = Depends(strava.get_strava_client)
):
    """Browser lands here after Strava consent; always redirects back to the app."""
    if error:
        return settings_redirect(strava_error=error)
    user_id = read_oauth_state(state) if state else None
    if not code or not user_id:
        return settings_redirect(strava_error="invalid_request")

    try:
        tokens = await client.exchange_code(code)
    except (HTTPException, httpx.HTTPError) as e:
        logger.error("Strava token exchange for %s failed: %s", user_id, getattr(e, "detail", e))
        return settings_redirect(strava_error="token_exchange_failed")

    provider = await strava.connect_provider(db, user_id, tokens)
    try:
        await strava.sync_provider(db, provider, client)
    except (HTTPException, httpx.HTTPError) as e:
        # connection stands even if the first sync fails; the nightly job retries
        await db.rollback()
        logger.warning("Initial Strava sync for %s failed: %s", user_id, getattr(e, "detail", e))
    return settings_redirect(strava="connected")


@router.get("/fitness/strava/status", response_model=StravaStatusResponse)
async def strava_status(
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    provider = await strava.get_provider(db, current_user.id)
    if provider is None or not provider.is_active:
        return StravaStatusResponse(connected=False)
    return StravaStatusResponse(
        connected=True,
        last_sync=provider.last_sync_at,
        athlete_id=provider.athlete_id,
    )


@router.post("/fitness/strava/sync", response_model=SyncResult)
async def strava_sync(
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user),
    client: strava.StravaClient = Depends(strava.get_strava_client)
):
    provider = await strava.get_provider(db, current_user.id)
    if provider is None or not provider.is_active:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Strava not connected")
    synced = await strava.sync_provider(db, provider, client)
    return SyncResult(user_id=current_user.id, success=True, activities_synced=synced)


@router.post("/fitness/strava/disconnect", status_code=status.HTTP_204_NO_CONTENT)
async def strava_disconnect(
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    await strava.disconnect_provider(db, current_user.id)


@router.get("/fitness/activities", response_model=List[FitnessActivityResponse])
async def list_activities(
    day: Optional[date] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    """Activities of one local calendar day, or of the last 30 days without a date."""
    if day is None:
        return await get_recent_activities(db, current_user)
    return await get_activities_for_date(db, current_user, day)


@router.get("/fitness/metrics/{day}", response_model=FitnessMetrics)
async def day_metrics(
    day: date,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await get_metrics_for_date(db, current_user, day)


@router.get("/fitness/activity-types", response_model=List[ActivityTypeSuggestion])
async def activity_types():
    return ACTIVITY_TYPE_SUGGESTIONS


@router.get("/challenges/{challenge_id}/fitness-mappings", response_model=List[FitnessMappingResponse])
async def list_mappings(
    challenge_id: int,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenge = await get_visible_challenge(db, challenge_id, current_user)
    return await get_task_mappings(db, challenge.id)


@router.post("/tasks/{task_id}/fitness-mapping", response_model=FitnessMappingResponse)
async def set_mapping(
    task_id: int,
    mapping_in: FitnessMappingCreate,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    task = await get_owned_task(db, task_id, current_user)
    return await save_task_mapping(db, task, mapping_in)


@router.delete("/fitness-mappings/{mapping_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_mapping(
    mapping_id: int,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    await delete_task_mapping(db, mapping_id, current_user)
