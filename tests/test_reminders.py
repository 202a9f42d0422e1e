import json
from datetime import date, datetime, timezone
from types import SimpleNamespace

import httpx
import pytest

from hardtrack.config import settings
from hardtrack.main import app
from hardtrack.models.challenge import Challenge
from hardtrack.models.entry import DailyEntry
from hardtrack.models.profile import Profile
from hardtrack.services import strava
from hardtrack.services.email import get_email_client
from hardtrack.services.reminders import is_reminder_due, send_due_reminders

EVENING = datetime(2026, 10, 19, 20, 0, tzinfo=timezone.utc)


def profile(**overrides):
    values = dict(reminder_enabled=True, reminder_time="20:00", timezone="UTC")
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.mark.parametrize("now, due", [
    (datetime(2026, 10, 19, 20, 0, tzinfo=timezone.utc), True),
    (datetime(2026, 10, 19, 20, 5, tzinfo=timezone.utc), True),
    (datetime(2026, 10, 19, 20, 6, tzinfo=timezone.utc), False),
    (datetime(2026, 10, 19, 19, 58, tzinfo=timezone.utc), False),
    (datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc), False),
])
def test_reminder_window(now, due):
    assert is_reminder_due(profile(), now, window_minutes=5) is due


def test_reminder_uses_the_local_clock():
    # 20:00 in Tokyo is 11:00 UTC
    tokyo = profile(timezone="Asia/Tokyo")
    assert is_reminder_due(tokyo, datetime(2026, 10, 19, 11, 2, tzinfo=timezone.utc), window_minutes=5)
    assert not is_reminder_due(tokyo, EVENING, window_minutes=5)


def test_disabled_reminders_are_never_due():
    assert not is_reminder_due(profile(reminder_enabled=False), EVENING, window_minutes=5)


class FakeResend:
    def __init__(self, status=200):
        self.status = status
        self.sent = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.sent.append(json.loads(request.content))
        return httpx.Response(self.status, json={"id": "email-1"})

    def client(self):
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
async def users(db):
    for user_id in ("alice", "bob", "carol"):
        db.add(Profile(
            id=user_id, email=f"{user_id}@example.com", display_name=user_id.title(),
            timezone="UTC", reminder_enabled=True, reminder_time="20:00",
        ))
    db.add(Profile(id="dave", email="dave@example.com", timezone="UTC", reminder_enabled=False, reminder_time="20:00"))
    db.add(Challenge(user_id="alice", name="75", start_date=date(2026, 10, 1), duration_days=75, invite_token="tokenAlice01"))
    bob_challenge = Challenge(user_id="bob", name="75", start_date=date(2026, 10, 1), duration_days=75, invite_token="tokenBob0001")
    db.add(bob_challenge)
    await db.flush()

    db.add(DailyEntry(challenge_id=bob_challenge.id, user_id="bob", date=EVENING.date(), is_complete=True))
    await db.commit()


async def test_only_unfinished_users_are_reminded(db, users):
    resend = FakeResend()
    summary = await send_due_reminders(db, resend.client(), now=EVENING)

    assert summary.checked == 3
    assert summary.need_reminder == 1
    assert summary.sent == 1
    assert summary.failed == 0
    assert [m["to"] for m in resend.sent] == ["alice@example.com"]
    assert "Hey Alice!" in resend.sent[0]["html"]


async def test_failed_sends_are_counted(db, users):
    summary = await send_due_reminders(db, FakeResend(status=500).client(), now=EVENING)
    assert summary.sent == 0
    assert summary.failed == 1


async def test_jobs_require_the_cron_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

    assert (await client.post("/jobs/strava-sync")).status_code == 401
    resp = await client.post("/jobs/strava-sync", headers={"Authorization": "Bearer wrong"})
    assert resp.status_code == 401


async def test_strava_sync_job_without_connections(client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

    async def no_network():
        yield strava.StravaClient(httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500))))

    app.dependency_overrides[strava.get_strava_client] = no_network
    resp = await client.post("/jobs/strava-sync", headers={"Authorization": "Bearer s3cret"})
    assert resp.status_code == 200
    assert resp.json()["total_users"] == 0
    assert resp.json()["message"] == "No active Strava connections found"


async def test_reminder_job(client, users, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", None)
    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test")
    resend = FakeResend()

    async def fake_client():
        yield resend.client()

    app.dependency_overrides[get_email_client] = fake_client
    resp = await client.post("/jobs/send-reminders")
    assert resp.status_code == 200
    assert set(resp.json()) == {"message", "checked", "need_reminder", "sent", "failed"}


async def test_reminder_job_needs_email_settings(client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", None)
    monkeypatch.setattr(settings, "RESEND_API_KEY", None)
    assert (await client.post("/jobs/send-reminders")).status_code == 503
