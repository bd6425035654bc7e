"""Cron job management service: job store CRUD, run history and quick scheduling."""

import logging
from typing import Any, Optional

from ..config import settings
from ..errors import ValidationError
from ..job_model import now_ms
from ..repositories.job_repository import JobStore
from ..repositories.run_log_repository import RunLogReader
from ..ws_manager import cron_events
from .quick_schedule import build_scan_summary_job

logger = logging.getLogger("cron_dashboard.services.cron_service")


class CronService:
    def __init__(self, store: JobStore, runs: RunLogReader):
        self.store = store
        self.runs = runs

    @staticmethod
    async def _notify(event: str, job_id: str, **data: Any) -> None:
        # The mutation is already persisted; a push failure must not turn it into an error.
        try:
            await cron_events.publish(event, job_id, **data)
        except Exception:
            logger.exception("Failed to publish %s for cron job %s", event, job_id)

    async def _job_names(self) -> dict[str, str]:
        data = await self.store.list_jobs()
        return {j["id"]: j.get("name") for j in data["jobs"] if j.get("id")}

    # ── Jobs ────────────────────────────────────────────────────────────────────

    async def list_jobs(self) -> dict:
        return await self.store.list_jobs()

    async def create_job(self, job: Any) -> dict:
        if not job or not isinstance(job, dict):
            raise ValidationError("job is required", operation="create")

        created = await self.store.create(job)
        await self._notify("cron_created", created["id"], job=created)
        return {"job": created}

    async def update_job(self, job_id: str, patch: Any) -> dict:
        if patch is None or not isinstance(patch, dict):
            raise ValidationError("patch is required", operation="update", job_id=job_id)

        updated = await self.store.update(job_id, patch)
        await self._notify("cron_updated", job_id, fields=sorted(patch), job=updated)
        return {"job": updated}

    async def toggle_job(self, job_id: str, enabled: Optional[bool] = None) -> dict:
        toggled = await self.store.toggle(job_id, enabled)
        await self._notify("cron_toggled", job_id, enabled=toggled["enabled"])
        return {"job": toggled}

    async def delete_job(self, job_id: str) -> dict:
        await self.store.delete(job_id)
        await self._notify("cron_deleted", job_id)
        return {"ok": True}

    # ── Runs ────────────────────────────────────────────────────────────────────

    async def list_runs(self, limit: Optional[int] = None) -> dict:
        runs = await self.runs.latest_runs(limit, await self._job_names())
        return {"runs": [r.model_dump(by_alias=True, exclude_none=True) for r in runs]}

    async def get_job_runs(self, job_id: str, limit: Optional[int] = None) -> dict:
        runs = await self.runs.job_runs(job_id, limit, await self._job_names())
        return {"job_id": job_id, "runs": [r.model_dump(by_alias=True, exclude_none=True) for r in runs]}

    # ── Quick schedule ──────────────────────────────────────────────────────────

    async def quick_schedule(self, target: Optional[str] = None) -> dict:
        """Queue a one-shot RSS scan + Discord digest a few seconds from now."""
        resolved = (target or settings.DISCORD_DM_TARGET or "").strip()
        if not resolved:
            raise ValidationError("Discord target is required", operation="quick_schedule")

        created = await self.store.create(build_scan_summary_job(resolved, now_ms()))
        logger.info("Queued scan+summary job %s for %s", created["id"], resolved)
        await self._notify("cron_created", created["id"], job=created)
        return {"ok": True, "job": created}
