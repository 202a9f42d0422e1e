import asyncio
import logging
import urllib.parse
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Dict, List, Optional

import httpx
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hardtrack.config import settings
from hardtrack.models.fitness import FitnessActivity, FitnessProvider
from hardtrack.schemas.fitness import SyncResult, SyncSummary
from hardtrack.utils.dates import as_utc

logger = logging.getLogger(__name__)

PROVIDER = "strava"
SCOPE = "read,activity:read"
REFRESH_SAFETY_SECONDS = 60  # refresh 1 minute before official expiry
MAX_PER_PAGE = 200


class StravaClient:
    """Thin async wrapper over the Strava OAuth and activity endpoints."""

    def __init__(self, http: httpx.AsyncClient, client_id: Optional[str] = None, client_secret: Optional[str] = None):
        self.http = http
        self.client_id = client_id or settings.STRAVA_CLIENT_ID
        self.client_secret = client_secret or settings.STRAVA_CLIENT_SECRET

    def authorization_url(self, redirect_uri: str, state: Optional[str] = None) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "approval_prompt": "auto",
            "scope": SCOPE,
        }
        if state:
            params["state"] = state
        return f"{settings.STRAVA_AUTH_URL}?{urllib.parse.urlencode(params)}"

    async def _token_request(self, data: Dict, what: str) -> Dict:
        payload = {"client_id": self.client_id, "client_secret": self.client_secret, **data}
        resp = await self.http.post(settings.STRAVA_TOKEN_URL, json=payload)
        if resp.status_code != 200:
            raise HTTPException(
                status_code=resp.status_code,
                detail=f"Strava {what} failed: {resp.text}",
            )
        body = resp.json()
        if not body.get("access_token"):
            raise HTTPException(502, f"Strava {what} response missing access_token")
        return body

    async def exchange_code(self, code: str) -> Dict:
        return await self._token_request(
            {"code": code, "grant_type": "authorization_code", "redirect_uri": settings.STRAVA_REDIRECT_URI},
            "token exchange",
        )

    async def refresh_token(self, refresh_token: str) -> Dict:
        return await self._token_request(
            {"refresh_token": refresh_token, "grant_type": "refresh_token"},
            "token refresh",
        )

    async def get_activities(
        self,
        access_token: str,
        after: Optional[int] = None,
        before: Optional[int] = None,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> List[Dict]:
        params = {
            k: v
            for k, v in {"after": after, "before": before, "page": page, "per_page": per_page}.items()
            if v
        }
        resp = await self.http.get(
            f"{settings.STRAVA_API_BASE}/athlete/activities",
            params=params,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if resp.status_code != 200:
            raise HTTPException(502, f"Failed to fetch Strava activities: {resp.text}")
        return resp.json()


async def get_strava_client() -> AsyncGenerator[StravaClient, None]:
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as http:
        yield StravaClient(http)


def parse_timestamp(value: str) -> datetime:
    return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def expires_at_from(tokens: Dict) -> Optional[datetime]:
    if tokens.get("expires_at"):
        return datetime.fromtimestamp(int(tokens["expires_at"]), tz=timezone.utc)
    if tokens.get("expires_in"):
        return datetime.now(timezone.utc) + timedelta(seconds=int(tokens["expires_in"]))
    return None


def activity_to_row(activity: Dict, user_id: str) -> Dict:
    return {
        "user_id": user_id,
        "provider": PROVIDER,
        "provider_activity_id": str(activity["id"]),
        "activity_type": (activity.get("type") or "").lower(),
        "name": activity.get("name"),
        "start_date": parse_timestamp(activity["start_date"]),
        "duration_seconds": activity.get("elapsed_time"),
        "distance_meters": activity.get("distance"),
        "calories_burned": activity.get("calories"),
        "heart_rate_avg": activity.get("average_heartrate"),
        "heart_rate_max": activity.get("max_heartrate"),
        "raw_data": activity,
    }


async def get_provider(db: AsyncSession, user_id: str) -> Optional[FitnessProvider]:
    result = await db.execute(
        select(FitnessProvider)
        .where(FitnessProvider.user_id == user_id)
        .where(FitnessProvider.provider == PROVIDER)
    )
    return result.scalar_one_or_none()


async def connect_provider(db: AsyncSession, user_id: str, tokens: Dict) -> FitnessProvider:
    provider = await get_provider(db, user_id)
    if provider is None:
        provider = FitnessProvider(user_id=user_id, provider=PROVIDER)
        db.add(provider)
    provider.access_token = tokens["access_token"]
    provider.refresh_token = tokens.get("refresh_token")
    provider.token_expires_at = expires_at_from(tokens)
    athlete = tokens.get("athlete") or {}
    if athlete.get("id") is not None:
        provider.athlete_id = str(athlete["id"])
    provider.connected_at = datetime.now(timezone.utc)
    provider.is_active = True
    await db.commit()
    await db.refresh(provider)
    logger.info("Strava connected for %s", user_id)
    return provider


async def disconnect_provider(db: AsyncSession, user_id: str) -> None:
    provider = await get_provider(db, user_id)
    if provider is not None:
        provider.is_active = False
        await db.commit()


async def get_valid_access_token(db: AsyncSession, provider: FitnessProvider, client: StravaClient) -> str:
    """Stored access token, refreshed and persisted first when it is (nearly) expired."""
    expires_at = provider.token_expires_at
    fresh_until = datetime.now(timezone.utc) + timedelta(seconds=REFRESH_SAFETY_SECONDS)
    if provider.access_token and (expires_at is None or as_utc(expires_at) > fresh_until):
        return provider.access_token

    if not provider.refresh_token:
        raise HTTPException(503, "Strava refresh token missing, please reconnect Strava")

    tokens = await client.refresh_token(provider.refresh_token)
    provider.access_token = tokens["access_token"]
    provider.refresh_token = tokens.get("refresh_token") or provider.refresh_token
    provider.token_expires_at = expires_at_from(tokens) or provider.token_expires_at
    await db.commit()
    logger.info("Refreshed Strava token for %s", provider.user_id)
    return provider.access_token


async def upsert_activities(db: AsyncSession, user_id: str, rows: List[Dict]) -> int:
    """Insert or update activities keyed by (user, provider, provider activity id)."""
    if not rows:
        return 0
    result = await db.execute(
        select(FitnessActivity)
        .where(FitnessActivity.user_id == user_id)
        .where(FitnessActivity.provider == PROVIDER)
        .where(FitnessActivity.provider_activity_id.in_([r["provider_activity_id"] for r in rows]))
    )
    existing = {a.provider_activity_id: a for a in result.scalars().all()}
    for row in rows:
        activity = existing.get(row["provider_activity_id"])
        if activity is None:
            activity = FitnessActivity(**row)
            db.add(activity)
            existing[row["provider_activity_id"]] = activity
        else:
            for field, value in row.items():
                setattr(activity, field, value)
    return len(rows)


async def sync_provider(
    db: AsyncSession, provider: FitnessProvider, client: StravaClient, days: Optional[int] = None
) -> int:
    access_token = await get_valid_access_token(db, provider, client)
    after = datetime.now(timezone.utc) - timedelta(days=days or settings.STRAVA_SYNC_DAYS)
    activities = await client.get_activities(access_token, after=int(after.timestamp()), per_page=MAX_PER_PAGE)
    count = await upsert_activities(db, provider.user_id, [activity_to_row(a, provider.user_id) for a in activities])
    provider.last_sync_at = datetime.now(timezone.utc)
    await db.commit()
    return count


async def sync_all_providers(db: AsyncSession, client: StravaClient, pause_seconds: float = 0.1) -> SyncSummary:
    """Sync every active connection; one user's failure never stops the others."""
    result = await db.execute(
        select(FitnessProvider)
        .where(FitnessProvider.provider == PROVIDER)
        .where(FitnessProvider.is_active.is_(True))
    )
    provider_ids = [(p.id, p.user_id) for p in result.scalars().all()]

    results = []
    for provider_id, user_id in provider_ids:
        try:
            # re-read: a failed user rolls back and expires everything loaded before
            provider = await db.get(FitnessProvider, provider_id)
            synced = await sync_provider(db, provider, client)
            results.append(SyncResult(user_id=user_id, success=True, activities_synced=synced))
        except Exception as e:
            await db.rollback()
            detail = getattr(e, "detail", None) or str(e)
            logger.exception("Error syncing Strava for user %s: %s", user_id, detail)
            results.append(SyncResult(user_id=user_id, success=False, activities_synced=0, error=detail))
        if pause_seconds:
            # spread requests to stay under the provider's rate limit
            await asyncio.sleep(pause_seconds)

    successful = sum(1 for r in results if r.success)
    return SyncSummary(
        message="Strava auto-sync completed" if provider_ids else "No active Strava connections found",
        total_users=len(provider_ids),
        successful=successful,
        failed=len(results) - successful,
        total_activities_synced=sum(r.activities_synced for r in results),
        results=results,
    )
