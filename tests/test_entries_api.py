import logging
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from hardtrack.models.challenge import Challenge
from hardtrack.models.entry import DailyEntry
from hardtrack.models.profile import Profile
from hardtrack.routers import entries as entries_router
from hardtrack.schemas.entry import DailyEntrySave
from hardtrack.services import entries as entries_service

TASKS = [
    {"label": "Read", "type": "checkbox", "position": 0},
    {"label": "Drink water", "type": "number", "target_value": 2, "unit": "L", "position": 1},
    {"label": "Stretch", "type": "number", "target_value": 10, "unit": "minutes", "is_required": False, "position": 2},
]


@pytest.fixture
async def challenge(make_challenge, alice, today):
    return await make_challenge(alice, today - timedelta(days=3), tasks=TASKS)


def task_ids(challenge):
    return [t["id"] for t in challenge["tasks"]]


async def test_unsaved_day_is_an_empty_entry(client, alice, challenge, today):
    resp = await client.get(f"/challenges/{challenge['id']}/entries/{today}", headers=alice)
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] is None
    assert body["is_complete"] is False
    assert body["task_completions"] == []


async def test_check_in_completes_the_day(client, alice, challenge, today):
    read, water, stretch = task_ids(challenge)
    resp = await client.put(
        f"/challenges/{challenge['id']}/entries/{today}",
        json={
            "note": "Good day",
            "task_completions": [
                {"task_id": read, "value": 0, "is_completed": True},
                {"task_id": water, "value": 2.5, "is_completed": False},
                {"task_id": stretch, "value": 0, "is_completed": False},
            ],
        },
        headers=alice,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["id"] is not None
    assert body["note"] == "Good day"
    # the optional task does not hold the day back
    assert body["is_complete"] is True

    completions = {c["task_id"]: c for c in body["task_completions"]}
    assert completions[read]["value"] == 1
    assert completions[water]["is_completed"] is True
    assert completions[stretch]["is_completed"] is False


async def test_number_completion_follows_the_target(client, alice, challenge, today):
    read, water, _ = task_ids(challenge)
    resp = await client.put(
        f"/challenges/{challenge['id']}/entries/{today}",
        json={"task_completions": [
            {"task_id": read, "value": 1, "is_completed": True},
            {"task_id": water, "value": 1.5, "is_completed": True},
        ]},
        headers=alice,
    )
    body = resp.json()
    water_completion = next(c for c in body["task_completions"] if c["task_id"] == water)
    assert water_completion["is_completed"] is False
    assert body["is_complete"] is False


async def test_saving_again_replaces_completions(client, alice, challenge, today):
    read, water, stretch = task_ids(challenge)
    url = f"/challenges/{challenge['id']}/entries/{today}"

    first = await client.put(url, json={
        "note": "Morning",
        "task_completions": [
            {"task_id": read, "is_completed": True},
            {"task_id": water, "value": 3},
            {"task_id": stretch, "value": 15},
        ],
    }, headers=alice)
    second = await client.put(url, json={
        "task_completions": [{"task_id": water, "value": 1}],
    }, headers=alice)

    assert second.json()["id"] == first.json()["id"]
    assert [c["task_id"] for c in second.json()["task_completions"]] == [water]
    assert second.json()["is_complete"] is False
    # fields left out of the save keep their value
    assert second.json()["note"] == "Morning"

    entries = await client.get(f"/challenges/{challenge['id']}/entries", headers=alice)
    assert len(entries.json()) == 1


async def test_check_in_rejections(client, alice, challenge, today):
    cid = challenge["id"]
    start = today - timedelta(days=3)

    resp = await client.put(f"/challenges/{cid}/entries/{today + timedelta(days=1)}", json={}, headers=alice)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot check in for a future date"

    resp = await client.put(f"/challenges/{cid}/entries/{start - timedelta(days=1)}", json={}, headers=alice)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Date is outside the challenge"

    resp = await client.put(
        f"/challenges/{cid}/entries/{today}",
        json={"task_completions": [{"task_id": 9999, "value": 1}]},
        headers=alice,
    )
    assert resp.status_code == 400

    resp = await client.put(
        f"/challenges/{cid}/entries/{today}",
        json={"task_completions": [{"task_id": task_ids(challenge)[1], "value": -1}]},
        headers=alice,
    )
    assert resp.status_code == 422


async def test_entries_are_newest_first(client, alice, challenge, today):
    cid = challenge["id"]
    for offset in (3, 1, 2):
        day = today - timedelta(days=offset)
        resp = await client.put(f"/challenges/{cid}/entries/{day}", json={"note": str(offset)}, headers=alice)
        assert resp.status_code == 200

    resp = await client.get(f"/challenges/{cid}/entries", headers=alice)
    assert [e["note"] for e in resp.json()] == ["1", "2", "3"]


async def test_progress_and_calendar(client, alice, challenge, today):
    cid = challenge["id"]
    read, water, _ = task_ids(challenge)
    done = {"task_completions": [
        {"task_id": read, "is_completed": True},
        {"task_id": water, "value": 2},
    ]}
    for offset in (0, 1, 3):
        resp = await client.put(f"/challenges/{cid}/entries/{today - timedelta(days=offset)}", json=done, headers=alice)
        assert resp.json()["is_complete"] is True

    resp = await client.get(f"/challenges/{cid}/progress", headers=alice)
    stats = resp.json()
    assert stats["elapsed_days"] == 4
    assert stats["completed_days"] == 3
    assert stats["missed_days"] == 0
    assert stats["current_streak"] == 2
    assert stats["longest_streak"] == 2
    assert stats["completion_percentage"] == 75
    assert stats["days_remaining"] == 71

    resp = await client.get(f"/challenges/{cid}/calendar", headers=alice)
    days = resp.json()
    assert len(days) == 75
    assert [d["is_completed"] for d in days[:4]] == [True, False, True, True]
    assert days[1]["is_missed"] is True
    assert days[3]["is_today"] is True
    assert days[4]["is_future"] is True


async def test_image_upload_needs_storage(client, alice, challenge, today):
    resp = await client.post(
        f"/challenges/{challenge['id']}/entries/{today}/image",
        files={"image": ("progress.jpg", b"\xff\xd8\xff", "image/jpeg")},
        headers=alice,
    )
    assert resp.status_code == 503


async def test_image_for_a_rejected_date_is_never_uploaded(client, alice, challenge, today, monkeypatch):
    uploads = []

    async def record_upload(*args, **kwargs):
        uploads.append(args)
        return "https://files.test/progress.jpg"

    monkeypatch.setattr(entries_router, "upload_progress_image", record_upload)
    for day in (today + timedelta(days=1), today - timedelta(days=10)):
        resp = await client.post(
            f"/challenges/{challenge['id']}/entries/{day}/image",
            files={"image": ("progress.jpg", b"\xff\xd8\xff", "image/jpeg")},
            headers=alice,
        )
        assert resp.status_code == 400
    assert uploads == []

    resp = await client.post(
        f"/challenges/{challenge['id']}/entries/{today}/image",
        files={"image": ("progress.jpg", b"\xff\xd8\xff", "image/jpeg")},
        headers=alice,
    )
    assert resp.status_code == 200
    assert resp.json()["image_url"] == "https://files.test/progress.jpg"
    assert len(uploads) == 1


async def test_failed_save_rolls_back_and_keeps_the_error(client, db, alice, challenge, today, monkeypatch, caplog):
    row = await db.get(Challenge, challenge["id"])
    user = await db.get(Profile, "alice")
    read = task_ids(challenge)[0]

    def broken(*args):
        raise RuntimeError("disk full")

    monkeypatch.setattr(entries_service, "is_entry_complete", broken)
    data = DailyEntrySave(task_completions=[{"task_id": read, "value": 1, "is_completed": True}])
    with caplog.at_level(logging.ERROR, logger="hardtrack.services.entries"):
        with pytest.raises(RuntimeError, match="disk full"):
            await entries_service.save_entry(db, row, user, today, data, today)

    assert f"Saving entry for challenge {challenge['id']} on {today} failed" in caplog.text
    resp = await client.get(f"/challenges/{challenge['id']}/entries/{today}", headers=alice)
    assert resp.json()["id"] is None


async def test_upsert_keeps_an_entry_saved_by_another_device(client, db, alice, challenge, today):
    read = task_ids(challenge)[0]
    resp = await client.put(
        f"/challenges/{challenge['id']}/entries/{today}",
        json={"note": "from phone", "task_completions": [{"task_id": read, "is_completed": True}]},
        headers=alice,
    )
    saved_id = resp.json()["id"]

    entry = await entries_service.upsert_entry(db, challenge["id"], "alice", today)
    assert entry.id == saved_id
    assert entry.note == "from phone"

    count = await db.execute(select(func.count(DailyEntry.id)).where(DailyEntry.challenge_id == challenge["id"]))
    assert count.scalar_one() == 1
