import json
from datetime import datetime, time, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from sqlalchemy import select

from hardtrack.config import settings
from hardtrack.main import app
from hardtrack.models.fitness import FitnessActivity, FitnessProvider
from hardtrack.services import strava
from hardtrack.services.strava import StravaClient, activity_to_row, get_valid_access_token, sync_all_providers
from hardtrack.utils.dates import get_zone
from hardtrack.utils.tokens import create_oauth_state


def local_noon_utc(day):
    noon = datetime.combine(day, time(12), tzinfo=get_zone(settings.DEFAULT_TIMEZONE))
    return noon.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def strava_activity(activity_id, day, type="Run", distance=6000.0, elapsed=1800):
    return {
        "id": activity_id,
        "name": f"{type} #{activity_id}",
        "type": type,
        "start_date": local_noon_utc(day),
        "elapsed_time": elapsed,
        "distance": distance,
        "average_heartrate": 150.2,
        "max_heartrate": 181.0,
    }


class FakeStrava:
    """Records requests and answers like the Strava API."""

    def __init__(self, activities=()):
        self.activities = list(activities)
        self.requests = []
        self.token_response = {
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "expires_at": int((datetime.now(timezone.utc) + timedelta(hours=6)).timestamp()),
            "athlete": {"id": 4242},
        }
        self.rejected_tokens = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/oauth/token"):
            return httpx.Response(200, json=self.token_response)
        if request.url.path.endswith("/athlete/activities"):
            token = request.headers["Authorization"].split(" ", 1)[1]
            if token in self.rejected_tokens:
                return httpx.Response(401, json={"message": "Authorization Error"})
            return httpx.Response(200, json=self.activities)
        return httpx.Response(404)

    def client(self) -> StravaClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return StravaClient(http, client_id="cid", client_secret="csecret")


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(settings, "STRAVA_CLIENT_ID", "cid")
    monkeypatch.setattr(settings, "STRAVA_CLIENT_SECRET", "csecret")
    monkeypatch.setattr(settings, "STRAVA_REDIRECT_URI", "http://test/fitness/strava/callback")


@pytest.fixture
def fake_strava(today):
    fake = FakeStrava([strava_activity(1, today), strava_activity(2, today, type="Ride", distance=20000.0)])

    async def override():
        yield fake.client()

    app.dependency_overrides[strava.get_strava_client] = override
    yield fake
    app.dependency_overrides.pop(strava.get_strava_client, None)


def test_activity_to_row():
    row = activity_to_row(
        {"id": 99, "type": "VirtualRide", "start_date": "2026-03-15T06:30:00Z", "elapsed_time": 600, "distance": 5000.0},
        "alice",
    )
    assert row["provider_activity_id"] == "99"
    assert row["activity_type"] == "virtualride"
    assert row["start_date"] == datetime(2026, 3, 15, 6, 30, tzinfo=timezone.utc)
    assert row["duration_seconds"] == 600
    assert row["calories_burned"] is None


async def test_authorize_url_carries_a_state(client, alice, configured, fake_strava):
    resp = await client.get("/fitness/strava/authorize", headers=alice)
    assert resp.status_code == 200
    query = parse_qs(urlparse(resp.json()["auth_url"]).query)
    assert query["client_id"] == ["cid"]
    assert query["scope"] == ["read,activity:read"]
    assert query["state"]


async def test_authorize_without_configuration(client, alice, fake_strava, monkeypatch):
    monkeypatch.setattr(settings, "STRAVA_CLIENT_ID", None)
    resp = await client.get("/fitness/strava/authorize", headers=alice)
    assert resp.status_code == 503


async def test_connect_sync_and_suggest(client, make_challenge, alice, configured, fake_strava, today):
    await client.get("/profile/me", headers=alice)

    resp = await client.get(
        "/fitness/strava/callback",
        params={"code": "auth-code", "state": create_oauth_state("alice")},
    )
    assert resp.status_code == 302
    assert resp.headers["location"].endswith("/settings?strava=connected")

    exchange = json.loads(fake_strava.requests[0].content)
    assert exchange["grant_type"] == "authorization_code"
    assert exchange["code"] == "auth-code"

    resp = await client.get("/fitness/strava/status", headers=alice)
    assert resp.json()["connected"] is True
    assert resp.json()["athlete_id"] == "4242"
    assert resp.json()["last_sync"] is not None

    resp = await client.get("/fitness/activities", params={"date": str(today)}, headers=alice)
    assert sorted(a["activity_type"] for a in resp.json()) == ["ride", "run"]

    resp = await client.get(f"/fitness/metrics/{today}", headers=alice)
    assert resp.json()["total_distance_meters"] == 26000

    challenge = await make_challenge(alice, today, tasks=[
        {"label": "Run 5k", "type": "number", "target_value": 5, "unit": "km"},
        {"label": "No alcohol", "type": "checkbox"},
    ])
    run, sober = (t["id"] for t in challenge["tasks"])

    resp = await client.get(f"/challenges/{challenge['id']}/entries/{today}/suggestions", headers=alice)
    assert resp.status_code == 200
    body = resp.json()
    assert body["strategy"] == "heuristic"
    suggestions = {s["task_id"]: s for s in body["suggestions"]}
    assert suggestions[run] == {"task_id": run, "value": 6.0, "is_completed": True}
    assert suggestions[sober]["value"] == 0

    resp = await client.post(
        f"/tasks/{run}/fitness-mapping",
        json={"activity_type": "Ride", "metric": "distance", "multiplier": 0.5},
        headers=alice,
    )
    assert resp.status_code == 200
    mapping = resp.json()
    assert mapping["activity_type"] == "ride"

    resp = await client.post(
        f"/tasks/{sober}/fitness-mapping", json={"activity_type": "run", "metric": "duration"}, headers=alice
    )
    assert resp.status_code == 400

    resp = await client.get(f"/challenges/{challenge['id']}/entries/{today}/suggestions", headers=alice)
    body = resp.json()
    assert body["strategy"] == "mapping"
    assert {s["task_id"]: s["value"] for s in body["suggestions"]}[run] == 13

    resp = await client.get(f"/challenges/{challenge['id']}/fitness-mappings", headers=alice)
    assert [m["id"] for m in resp.json()] == [mapping["id"]]
    assert (await client.delete(f"/fitness-mappings/{mapping['id']}", headers=alice)).status_code == 204

    resp = await client.post("/fitness/strava/disconnect", headers=alice)
    assert resp.status_code == 204
    resp = await client.get("/fitness/strava/status", headers=alice)
    assert resp.json()["connected"] is False


async def test_callback_with_bad_state(client, configured, fake_strava):
    resp = await client.get("/fitness/strava/callback", params={"code": "c", "state": "forged"})
    assert resp.status_code == 302
    assert "strava_error=invalid_request" in resp.headers["location"]
    assert fake_strava.requests == []


async def test_callback_when_user_denies(client, configured, fake_strava):
    resp = await client.get("/fitness/strava/callback", params={"error": "access_denied"})
    assert resp.status_code == 302
    assert "strava_error=access_denied" in resp.headers["location"]


async def test_expired_token_is_refreshed_and_saved(db):
    provider = FitnessProvider(
        user_id="alice",
        provider="strava",
        access_token="stale",
        refresh_token="refresh-0",
        token_expires_at=datetime.now(timezone.utc) - timedelta(minutes=5),
        is_active=True,
    )
    db.add(provider)
    await db.commit()

    fake = FakeStrava()
    fake.token_response["refresh_token"] = "refresh-2"
    token = await get_valid_access_token(db, provider, fake.client())

    assert token == "access-1"
    sent = json.loads(fake.requests[0].content)
    assert sent["grant_type"] == "refresh_token"
    assert sent["refresh_token"] == "refresh-0"

    await db.refresh(provider)
    assert provider.access_token == "access-1"
    assert provider.refresh_token == "refresh-2"


async def test_token_close_to_expiry_is_refreshed(db):
    provider = FitnessProvider(
        user_id="alice", provider="strava", access_token="almost", refresh_token="r",
        token_expires_at=datetime.now(timezone.utc) + timedelta(seconds=30), is_active=True,
    )
    db.add(provider)
    await db.commit()

    fake = FakeStrava()
    assert await get_valid_access_token(db, provider, fake.client()) == "access-1"


async def test_fresh_token_is_used_as_is(db):
    provider = FitnessProvider(
        user_id="alice", provider="strava", access_token="fresh", refresh_token="r",
        token_expires_at=datetime.now(timezone.utc) + timedelta(hours=2), is_active=True,
    )
    db.add(provider)
    await db.commit()

    fake = FakeStrava()
    assert await get_valid_access_token(db, provider, fake.client()) == "fresh"
    assert fake.requests == []


async def test_sync_all_keeps_going_after_a_failure(db, today):
    later = datetime.now(timezone.utc) + timedelta(hours=2)
    for user_id, token in (("alice", "good"), ("bob", "revoked"), ("carol", "good-too")):
        db.add(FitnessProvider(
            user_id=user_id, provider="strava", access_token=token,
            refresh_token="r", token_expires_at=later, is_active=True,
        ))
    db.add(FitnessProvider(
        user_id="dave", provider="strava", access_token="x",
        refresh_token="r", token_expires_at=later, is_active=False,
    ))
    await db.commit()

    fake = FakeStrava([strava_activity(7, today), strava_activity(8, today)])
    fake.rejected_tokens.add("revoked")

    summary = await sync_all_providers(db, fake.client(), pause_seconds=0)

    assert summary.total_users == 3
    assert summary.successful == 2
    assert summary.failed == 1
    assert summary.total_activities_synced == 4
    failed = next(r for r in summary.results if not r.success)
    assert failed.user_id == "bob"
    assert "Failed to fetch Strava activities" in failed.error

    rows = (await db.execute(select(FitnessActivity))).scalars().all()
    assert sorted(r.user_id for r in rows) == ["alice", "alice", "carol", "carol"]


async def test_resync_updates_instead_of_duplicating(db, today):
    provider = FitnessProvider(
        user_id="alice", provider="strava", access_token="good", refresh_token="r",
        token_expires_at=datetime.now(timezone.utc) + timedelta(hours=2), is_active=True,
    )
    db.add(provider)
    await db.commit()

    fake = FakeStrava([strava_activity(7, today, distance=5000.0)])
    await strava.sync_provider(db, provider, fake.client())
    fake.activities = [strava_activity(7, today, distance=5100.0)]
    await strava.sync_provider(db, provider, fake.client())

    rows = (await db.execute(select(FitnessActivity))).scalars().all()
    assert len(rows) == 1
    assert rows[0].distance_meters == 5100.0
