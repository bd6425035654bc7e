"""Job record rules: defaults, payload derivation, timestamps and patch merge.

Pure functions only; persisting the results is the job store's business.
"""

from __future__ import annotations

import time
import uuid
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from .config import settings
from .errors import ValidationError
from .schemas.cron import SCHEDULE_KINDS, SESSION_TARGETS, WAKE_MODES, CronJob

DEFAULT_WAKE_MODE = "next-heartbeat"
DEFAULT_SESSION_TARGET = "isolated"

COMPOUND_FIELDS = ("schedule", "payload", "delivery")
IMMUTABLE_FIELDS = ("id", "createdAtMs", "updatedAtMs")


def now_ms() -> int:
    return int(time.time() * 1000)


def new_job_id() -> str:
    return str(uuid.uuid4())


def payload_kind_for(session_target: str) -> str:
    return "systemEvent" if session_target == "main" else "agentTurn"


def resolve_payload(session_target: str, payload: Any) -> dict[str, Any]:
    """Return a payload whose kind matches ``session_target``.

    A payload that already has the right kind is kept as-is; anything else is
    converted, carrying ``message``/``text`` across.
    """
    kind = payload_kind_for(session_target)
    body = dict(payload) if isinstance(payload, Mapping) else {}

    if body.get("kind") == kind:
        return body

    if kind == "systemEvent":
        return {"kind": kind, "text": body.get("text") or body.get("message") or ""}

    resolved: dict[str, Any] = {
        "kind": kind,
        "message": body.get("message") or body.get("text") or "",
    }
    if body.get("timeoutSeconds") is not None:
        resolved["timeoutSeconds"] = body["timeoutSeconds"]
    return resolved


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    return "; ".join(parts)


def normalize(raw: Any, *, operation: str = "normalize") -> CronJob:
    """Apply defaults to a raw job dict and validate it into a :class:`CronJob`."""
    if not isinstance(raw, Mapping):
        raise ValidationError("job must be an object", operation=operation)

    data = dict(raw)
    if not data.get("id"):
        data["id"] = new_job_id()

    for key, default in (
        ("enabled", True),
        ("wakeMode", DEFAULT_WAKE_MODE),
        ("agentId", settings.DEFAULT_AGENT_ID),
        ("sessionTarget", DEFAULT_SESSION_TARGET),
    ):
        if data.get(key) is None:
            data[key] = default

    job_id = str(data["id"])

    schedule = data.get("schedule")
    if not isinstance(schedule, Mapping):
        raise ValidationError("schedule is required", operation=operation, job_id=job_id)
    if schedule.get("kind") not in SCHEDULE_KINDS:
        raise ValidationError(
            f"schedule.kind must be one of {', '.join(SCHEDULE_KINDS)}, got {schedule.get('kind')!r}",
            operation=operation,
            job_id=job_id,
        )

    for key, allowed in (("sessionTarget", SESSION_TARGETS), ("wakeMode", WAKE_MODES)):
        if data[key] not in allowed:
            raise ValidationError(
                f"{key} must be one of {', '.join(allowed)}, got {data[key]!r}",
                operation=operation,
                job_id=job_id,
            )
    data["payload"] = resolve_payload(data["sessionTarget"], data.get("payload"))

    try:
        return CronJob.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(_describe(exc), operation=operation, job_id=job_id) from exc


def touch(record: Mapping[str, Any], now: Optional[int] = None) -> dict[str, Any]:
    """Copy of ``record`` with ``updatedAtMs`` bumped and ``createdAtMs`` kept."""
    stamp = now if now is not None else now_ms()
    created = record.get("createdAtMs")
    previous = record.get("updatedAtMs")

    updated = stamp
    if previous:
        updated = max(updated, previous + 1)
    if created:
        updated = max(updated, created)

    touched = dict(record)
    touched["createdAtMs"] = created or updated
    touched["updatedAtMs"] = updated
    return touched


def merge_patch(existing: Mapping[str, Any], patch: Mapping[str, Any], *, job_id: Optional[str] = None) -> dict[str, Any]:
    """Field-level override with fallback.

    Scalars present in ``patch`` replace the stored value. ``schedule``,
    ``payload`` and ``delivery`` are swapped wholesale when the patch carries a
    non-empty object and kept otherwise; they are never merged key by key.
    """
    merged = dict(existing)

    for key, value in patch.items():
        if key in IMMUTABLE_FIELDS or key in COMPOUND_FIELDS or value is None:
            continue
        merged[key] = value

    for key in COMPOUND_FIELDS:
        value = patch.get(key)
        if value is None:
            continue
        if not isinstance(value, Mapping):
            raise ValidationError(f"{key} must be an object", operation="update", job_id=job_id)
        if value:
            merged[key] = dict(value)

    return merged
