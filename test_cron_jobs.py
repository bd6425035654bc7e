import asyncio
import json
from pathlib import Path

import pytest

from cron_dashboard.config import settings
from cron_dashboard.errors import NotFoundError, StorageError, ValidationError
from cron_dashboard.ws_manager import CronEventHub, cron_events

PING = {
    "name": "Ping",
    "schedule": {"kind": "every", "everyMs": 60000},
    "sessionTarget": "isolated",
    "payload": {"message": "ping"},
}


def stored_jobs():
    return json.loads(Path(settings.cron_jobs_file).read_text(encoding="utf-8"))["jobs"]


# ── 1. Store ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_list_without_collection_file_is_empty(store):
    assert await store.list_jobs() == {"version": 1, "jobs": []}


@pytest.mark.asyncio
async def test_create_then_list_shows_one_new_job(store):
    created = await store.create(PING)
    listed = (await store.list_jobs())["jobs"]

    assert [j["id"] for j in listed] == [created["id"]]
    assert created["createdAtMs"] == created["updatedAtMs"]
    assert created["payload"]["kind"] == "agentTurn"
    assert created["payload"]["message"] == "ping"
    assert created["schedule"]["everyMs"] == 60000
    assert created["enabled"] is True


@pytest.mark.asyncio
async def test_create_ignores_caller_identity_and_timestamps(store):
    created = await store.create({**PING, "id": "mine", "createdAtMs": 1, "updatedAtMs": 2})
    assert created["id"] != "mine"
    assert created["createdAtMs"] > 2


@pytest.mark.asyncio
async def test_create_invalid_schedule_writes_nothing(store):
    with pytest.raises(ValidationError):
        await store.create({"name": "bad", "schedule": {"kind": "every", "everyMs": 10}})
    assert not Path(settings.cron_jobs_file).exists()


@pytest.mark.asyncio
async def test_list_orders_by_updated_desc(store, write_jobs):
    write_jobs([
        {"id": "old", "updatedAtMs": 100},
        {"id": "new", "updatedAtMs": 300},
        {"id": "mid", "updatedAtMs": 200},
    ])
    assert [j["id"] for j in (await store.list_jobs())["jobs"]] == ["new", "mid", "old"]


@pytest.mark.asyncio
async def test_empty_patch_only_bumps_updated(store):
    created = await store.create(PING)
    first = await store.update(created["id"], {})
    second = await store.update(created["id"], {})

    assert second["updatedAtMs"] > first["updatedAtMs"] > created["updatedAtMs"]
    strip = lambda j: {k: v for k, v in j.items() if k != "updatedAtMs"}
    assert strip(second) == strip(first) == strip(created)


@pytest.mark.asyncio
async def test_update_schedule_keeps_payload_and_delivery(store):
    created = await store.create({
        **PING,
        "delivery": {"mode": "announce", "channel": "discord", "to": "42"},
    })
    updated = await store.update(created["id"], {"schedule": {"kind": "cron", "expr": "0 9 * * *"}})

    assert updated["schedule"] == {"kind": "cron", "expr": "0 9 * * *"}
    assert updated["payload"] == created["payload"]
    assert updated["delivery"] == created["delivery"]
    assert updated["createdAtMs"] == created["createdAtMs"]


@pytest.mark.asyncio
async def test_update_contradictory_payload_kind_follows_target(store):
    created = await store.create(PING)
    updated = await store.update(created["id"], {"payload": {"kind": "systemEvent", "text": "hi"}})
    assert updated["sessionTarget"] == "isolated"
    assert updated["payload"] == {"kind": "agentTurn", "message": "hi"}


@pytest.mark.asyncio
async def test_update_session_target_converts_stored_payload(store):
    created = await store.create(PING)
    updated = await store.update(created["id"], {"sessionTarget": "main"})

    assert updated["sessionTarget"] == "main"
    assert updated["payload"] == {"kind": "systemEvent", "text": "ping"}
    assert stored_jobs()[0]["payload"]["kind"] == "systemEvent"


@pytest.mark.asyncio
async def test_update_unknown_id(store):
    with pytest.raises(NotFoundError) as exc_info:
        await store.update("missing", {"name": "x"})
    assert exc_info.value.job_id == "missing"
    assert exc_info.value.operation == "update"


@pytest.mark.asyncio
async def test_update_preserves_runner_fields(store, write_jobs):
    write_jobs([{
        "id": "runner-job",
        "name": "nightly",
        "enabled": True,
        "schedule": {"kind": "cron", "expr": "0 3 * * *"},
        "sessionTarget": "isolated",
        "wakeMode": "now",
        "payload": {"kind": "agentTurn", "message": "go"},
        "state": {"lastRunAtMs": 123, "lastStatus": "ok"},
        "createdAtMs": 10,
        "updatedAtMs": 20,
    }])
    updated = await store.update("runner-job", {"name": "nightly v2"})

    assert updated["state"] == {"lastRunAtMs": 123, "lastStatus": "ok"}
    assert updated["agentId"] == "main"
    assert updated["createdAtMs"] == 10


@pytest.mark.asyncio
async def test_toggle_twice_restores_and_explicit_is_idempotent(store):
    created = await store.create(PING)

    once = await store.toggle(created["id"])
    twice = await store.toggle(created["id"])
    assert once["enabled"] is False
    assert twice["enabled"] is True

    assert (await store.toggle(created["id"], True))["enabled"] is True
    assert (await store.toggle(created["id"], True))["enabled"] is True


@pytest.mark.asyncio
async def test_toggle_works_on_records_that_would_not_validate(store, write_jobs):
    write_jobs([{"id": "legacy", "enabled": True, "updatedAtMs": 5}])
    toggled = await store.toggle("legacy")
    assert toggled["enabled"] is False
    assert toggled["updatedAtMs"] > 5


@pytest.mark.asyncio
async def test_toggle_unknown_id(store):
    with pytest.raises(NotFoundError):
        await store.toggle("missing")


@pytest.mark.asyncio
async def test_delete_removes_exactly_one(store):
    keep = await store.create({**PING, "name": "keep"})
    gone = await store.create({**PING, "name": "gone"})

    await store.delete(gone["id"])
    assert [j["id"] for j in stored_jobs()] == [keep["id"]]

    with pytest.raises(NotFoundError):
        await store.delete(gone["id"])


@pytest.mark.asyncio
async def test_delete_unknown_id(store):
    with pytest.raises(NotFoundError):
        await store.delete("missing")


@pytest.mark.asyncio
async def test_corrupt_collection_is_a_storage_error(store):
    Path(settings.cron_jobs_file).write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError):
        await store.list_jobs()
    with pytest.raises(StorageError):
        await store.create(PING)


@pytest.mark.asyncio
async def test_version_is_written_back_as_read(store, write_jobs):
    write_jobs([], version=3)
    await store.create(PING)
    assert json.loads(Path(settings.cron_jobs_file).read_text(encoding="utf-8"))["version"] == 3


@pytest.mark.asyncio
async def test_update_preserves_null_runner_fields(store, write_jobs):
    write_jobs([{
        "id": "r",
        "name": "n1",
        "schedule": {"kind": "every", "everyMs": 60000},
        "payload": {"kind": "agentTurn", "message": "go"},
        "deleteAfterRun": None,
        "lastError": None,
        "state": {"lastStatus": None},
    }])
    updated = await store.update("r", {"name": "n2"})

    for record in (updated, stored_jobs()[0]):
        assert record["name"] == "n2"
        assert record["deleteAfterRun"] is None
        assert record["lastError"] is None
        assert record["state"] == {"lastStatus": None}


@pytest.mark.asyncio
async def test_overlapping_mutations_are_all_kept(store):
    created = await asyncio.gather(*(store.create({**PING, "name": f"job-{i}"}) for i in range(10)))
    ids = [job["id"] for job in created]
    assert len(set(ids)) == 10

    await asyncio.gather(
        *(store.update(job_id, {"name": f"renamed-{i}"}) for i, job_id in enumerate(ids)),
        *(store.toggle(job_id) for job_id in ids[::2]),
    )

    jobs = {job["id"]: job for job in stored_jobs()}
    assert set(jobs) == set(ids)
    for i, job_id in enumerate(ids):
        assert jobs[job_id]["name"] == f"renamed-{i}"
        assert jobs[job_id]["enabled"] is (i % 2 == 1)


# ── 2. HTTP ─────────────────────────────────────────────────────────────────────

def test_api_create_and_list(client):
    res = client.post("/api/cron/jobs", json={"job": PING})
    assert res.status_code == 201, res.text
    job = res.json()["job"]

    res = client.get("/api/cron/jobs")
    assert res.status_code == 200
    body = res.json()
    assert body["version"] == 1
    assert [j["id"] for j in body["jobs"]] == [job["id"]]


@pytest.mark.parametrize("body", [None, {}, {"job": None}, {"job": {}}, {"job": "text"}])
def test_api_create_requires_job(client, body):
    res = client.post("/api/cron/jobs", json=body)
    assert res.status_code == 400
    assert res.json()["detail"] == "job is required"
    assert res.json()["error"] == "ValidationError"


def test_api_create_invalid_schedule(client):
    res = client.post("/api/cron/jobs", json={"job": {"schedule": {"kind": "sometimes"}}})
    assert res.status_code == 400
    assert res.json()["operation"] == "create"


def test_api_update(client):
    job = client.post("/api/cron/jobs", json={"job": PING}).json()["job"]

    res = client.put(f"/api/cron/jobs/{job['id']}", json={"patch": {"name": "Pong"}})
    assert res.status_code == 200
    assert res.json()["job"]["name"] == "Pong"


def test_api_update_requires_patch(client):
    job = client.post("/api/cron/jobs", json={"job": PING}).json()["job"]
    res = client.put(f"/api/cron/jobs/{job['id']}", json={})
    assert res.status_code == 400
    assert res.json()["detail"] == "patch is required"


def test_api_update_unknown_id(client):
    res = client.put("/api/cron/jobs/missing", json={"patch": {"name": "x"}})
    assert res.status_code == 404
    assert res.json() == {
        "detail": "Job not found",
        "error": "NotFoundError",
        "operation": "update",
        "job_id": "missing",
    }


def test_api_toggle(client):
    job = client.post("/api/cron/jobs", json={"job": PING}).json()["job"]

    assert client.post(f"/api/cron/jobs/{job['id']}/toggle").json()["job"]["enabled"] is False
    assert client.post(f"/api/cron/jobs/{job['id']}/toggle", json={}).json()["job"]["enabled"] is True
    res = client.post(f"/api/cron/jobs/{job['id']}/toggle", json={"enabled": True})
    assert res.json()["job"]["enabled"] is True


def test_api_delete(client):
    job = client.post("/api/cron/jobs", json={"job": PING}).json()["job"]

    res = client.delete(f"/api/cron/jobs/{job['id']}")
    assert res.status_code == 200
    assert res.json() == {"ok": True}
    assert client.delete(f"/api/cron/jobs/{job['id']}").status_code == 404


def test_api_corrupt_collection_is_500(client):
    Path(settings.cron_jobs_file).write_text("[]", encoding="utf-8")
    res = client.get("/api/cron/jobs")
    assert res.status_code == 500
    assert res.json()["error"] == "StorageError"


def test_ws_receives_job_events(client):
    with client.websocket_connect("/ws/cron") as ws:
        job = client.post("/api/cron/jobs", json={"job": PING}).json()["job"]
        event = ws.receive_json()
        assert event["event"] == "cron_created"
        assert event["jobId"] == job["id"]
        assert event["data"]["job"]["name"] == "Ping"

        client.put(f"/api/cron/jobs/{job['id']}", json={"patch": {"name": "Pong"}})
        event = ws.receive_json()
        assert event["event"] == "cron_updated"
        assert event["data"]["fields"] == ["name"]

        client.delete(f"/api/cron/jobs/{job['id']}")
        event = ws.receive_json()
        assert (event["event"], event["jobId"], event["data"]) == ("cron_deleted", job["id"], {})


@pytest.mark.asyncio
async def test_publish_rejects_unknown_event():
    with pytest.raises(ValueError):
        await CronEventHub().publish("cron_exploded", "job-1")


class FakeSocket:
    def __init__(self, hub=None, closes=None, broken=False):
        self.hub = hub
        self.closes = closes
        self.broken = broken
        self.sent: list = []

    async def accept(self):
        pass

    async def send_text(self, message):
        if self.closes is not None:
            # another client's receive loop notices its disconnect meanwhile
            self.hub.detach(self.closes)
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(message))


@pytest.mark.asyncio
async def test_publish_survives_client_detached_during_send():
    hub = CronEventHub()
    closed = FakeSocket(broken=True)
    slow = FakeSocket(hub=hub, closes=closed)
    await hub.attach(slow)
    await hub.attach(closed)

    assert await hub.publish("cron_created", "job-1") == 1
    assert [e["jobId"] for e in slow.sent] == ["job-1"]
    assert await hub.publish("cron_deleted", "job-1") == 1


@pytest.mark.asyncio
async def test_publish_drops_failing_client():
    hub = CronEventHub()
    good, bad = FakeSocket(), FakeSocket(broken=True)
    await hub.attach(good)
    await hub.attach(bad)

    assert await hub.publish("cron_toggled", "job-1", enabled=False) == 1
    assert await hub.publish("cron_toggled", "job-1", enabled=True) == 1
    assert [e["data"]["enabled"] for e in good.sent] == [False, True]


def test_api_mutation_succeeds_when_push_fails(client, monkeypatch):
    async def broken_publish(event, job_id, **data):
        raise ValueError("push failed")

    monkeypatch.setattr(cron_events, "publish", broken_publish)

    res = client.post("/api/cron/jobs", json={"job": PING})
    assert res.status_code == 201, res.text
    job_id = res.json()["job"]["id"]

    assert client.post(f"/api/cron/jobs/{job_id}/toggle").status_code == 200
    assert client.delete(f"/api/cron/jobs/{job_id}").json() == {"ok": True}
    assert stored_jobs() == []


# ── 3. Malformed requests ───────────────────────────────────────────────────────

def test_api_malformed_limit_uses_error_envelope(client):
    res = client.get("/api/cron/runs", params={"limit": "abc"})
    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "ValidationError"
    assert body["operation"] == "list_runs"
    assert "limit" in body["detail"]


def test_api_malformed_toggle_body_uses_error_envelope(client):
    res = client.post("/api/cron/jobs/job-1/toggle", json={"enabled": "maybe"})
    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "ValidationError"
    assert body["operation"] == "toggle_job"
    assert body["job_id"] == "job-1"
    assert "enabled" in body["detail"]
