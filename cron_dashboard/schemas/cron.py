"""Cron job records, run records and request bodies (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union, get_args

from croniter import croniter
from pydantic import BaseModel, ConfigDict, Field, field_validator

SCHEDULE_KINDS = ("at", "cron", "every")
SessionTarget = Literal["isolated", "main"]
WakeMode = Literal["next-heartbeat", "now"]

SESSION_TARGETS = get_args(SessionTarget)
WAKE_MODES = get_args(WakeMode)
MIN_EVERY_MS = 1000


def parse_at(value: str) -> datetime:
    """Parse an ISO-8601 instant; a trailing ``Z`` is accepted as UTC."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


# ── Schedule ────────────────────────────────────────────────────────────────────


class AtSchedule(BaseModel):
    model_config = ConfigDict(extra="allow")

    kind: Literal["at"]
    at: str

    @field_validator("at")
    @classmethod
    def validate_at(cls, v: str) -> str:
        try:
            parsed = parse_at(v)
        except ValueError:
            raise ValueError(f"at must be an ISO-8601 timestamp, got {v!r}")
        if parsed.tzinfo is None:
            raise ValueError("at must carry an explicit UTC offset")
        return v


class CronExprSchedule(BaseModel):
    model_config = ConfigDict(extra="allow")

    kind: Literal["cron"]
    expr: str
    tz: Optional[str] = None

    @field_validator("expr")
    @classmethod
    def validate_expr(cls, v: str) -> str:
        expr = v.strip()
        if len(expr.split()) != 5 or not croniter.is_valid(expr):
            raise ValueError(f"expr must be a 5-field cron expression, got {v!r}")
        return expr


class EverySchedule(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    kind: Literal["every"]
    every_ms: int = Field(alias="everyMs", ge=MIN_EVERY_MS)


Schedule = Annotated[
    Union[AtSchedule, CronExprSchedule, EverySchedule],
    Field(discriminator="kind"),
]


# ── Payload / delivery ──────────────────────────────────────────────────────────


class AgentTurnPayload(BaseModel):
    """Prompt for an isolated agent turn."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    kind: Literal["agentTurn"]
    message: str = ""
    timeout_seconds: Optional[int] = Field(default=None, alias="timeoutSeconds", gt=0)


class SystemEventPayload(BaseModel):
    """Text injected into the main session."""

    model_config = ConfigDict(extra="allow")

    kind: Literal["systemEvent"]
    text: str = ""


Payload = Annotated[
    Union[AgentTurnPayload, SystemEventPayload],
    Field(discriminator="kind"),
]


class Delivery(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    mode: Literal["announce", "none"] = "announce"
    channel: Optional[str] = None
    to: Optional[str] = None
    best_effort: Optional[bool] = Field(default=None, alias="bestEffort")


# ── Job ─────────────────────────────────────────────────────────────────────────


class CronJob(BaseModel):
    """A persisted job definition.

    Unknown keys (runner state, ``deleteAfterRun`` …) are kept so a
    read-modify-write never drops data written by the external runner.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    name: str = ""
    description: str = ""
    enabled: bool = True
    schedule: Schedule
    agent_id: str = Field(alias="agentId")
    session_target: SessionTarget = Field(alias="sessionTarget")
    wake_mode: WakeMode = Field(alias="wakeMode")
    payload: Payload
    delivery: Optional[Delivery] = None
    created_at_ms: Optional[int] = Field(default=None, alias="createdAtMs")
    updated_at_ms: Optional[int] = Field(default=None, alias="updatedAtMs")

    def to_record(self) -> dict[str, Any]:
        """Plain dict as stored in jobs.json.

        Declared optional fields are left out when unset; extra keys are
        written back exactly as read, ``null`` values included.
        """
        record = _dump_with_extras(self)
        for key in ("schedule", "payload", "delivery"):
            nested = getattr(self, key)
            if nested is not None:
                record[key] = _dump_with_extras(nested)
        return record


def _dump_with_extras(model: BaseModel) -> dict[str, Any]:
    data = model.model_dump(by_alias=True, exclude_none=True)
    data.update(model.model_extra or {})
    return data


class JobCollection(BaseModel):
    version: int = 1
    jobs: list[dict[str, Any]] = Field(default_factory=list)


# ── Runs ────────────────────────────────────────────────────────────────────────


class RunRecord(BaseModel):
    """Latest known state of a job's execution, reduced from its run log."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    job_name: str = Field(alias="jobName")
    run_id: str = Field(default="", alias="runId")
    status: str = "unknown"
    summary: str = ""
    duration_ms: Union[int, float] = Field(default=0, alias="durationMs")
    run_at_ms: Union[int, float] = Field(alias="runAtMs")
    finished_at_ms: Union[int, float] = Field(alias="finishedAtMs")
    total_runs: Optional[int] = Field(default=None, alias="totalRuns")
    success_rate: Optional[float] = Field(default=None, alias="successRate")


# ── Requests ────────────────────────────────────────────────────────────────────


class CreateJobRequest(BaseModel):
    job: Any = None


class UpdateJobRequest(BaseModel):
    patch: Any = None


class ToggleJobRequest(BaseModel):
    enabled: Optional[bool] = None


class QuickScheduleRequest(BaseModel):
    target: Optional[str] = None
