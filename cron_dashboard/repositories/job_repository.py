"""Job store: the jobs.json collection shared with the external cron runner."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from ..errors import NotFoundError, StorageError, ValidationError
from ..job_model import merge_patch, new_job_id, normalize, touch
from ..schemas.cron import JobCollection
from .storage import StorageRepository

logger = logging.getLogger("cron_dashboard.repositories.job_repository")

# One lock per collection file, shared by every store instance in the process.
_locks: Dict[str, asyncio.Lock] = {}


def _lock_for(path: str) -> asyncio.Lock:
    lock = _locks.get(path)
    if lock is None:
        lock = _locks[path] = asyncio.Lock()
    return lock


class JobStore:
    """File-backed job collection.

    Every mutation reads the whole document, transforms it in memory and
    rewrites it atomically. Concurrent writers from other processes resolve
    as last-write-wins.
    """

    def __init__(self, storage: StorageRepository, jobs_file: str):
        self.storage = storage
        self.jobs_file = jobs_file

    # ── Persistence ─────────────────────────────────────────────────────────────

    async def _read(self, operation: str) -> JobCollection:
        try:
            if not await self.storage.exists(self.jobs_file):
                return JobCollection()
            raw = await self.storage.read_text(self.jobs_file)
        except OSError as exc:
            logger.error("Failed to read %s: %s", self.jobs_file, exc)
            raise StorageError(f"Failed to read cron jobs: {exc}", operation=operation) from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Corrupt job collection %s: %s", self.jobs_file, exc)
            raise StorageError(f"Cron jobs file is not valid JSON: {exc}", operation=operation) from exc
        if not isinstance(data, dict):
            raise StorageError("Cron jobs file must hold a JSON object", operation=operation)

        jobs = data.get("jobs")
        return JobCollection(
            version=data.get("version") or 1,
            jobs=[j for j in jobs if isinstance(j, dict)] if isinstance(jobs, list) else [],
        )

    async def _write(self, collection: JobCollection, operation: str, job_id: Optional[str] = None) -> None:
        serialized = json.dumps(collection.model_dump(), indent=2, ensure_ascii=False) + "\n"
        try:
            await self.storage.write_text(self.jobs_file, serialized)
        except OSError as exc:
            logger.error("Failed to write %s during %s: %s", self.jobs_file, operation, exc)
            raise StorageError(
                f"Failed to write cron jobs: {exc}", operation=operation, job_id=job_id,
            ) from exc

    @staticmethod
    def _index_of(collection: JobCollection, job_id: str) -> int:
        for i, job in enumerate(collection.jobs):
            if job.get("id") == job_id:
                return i
        return -1

    # ── Operations ──────────────────────────────────────────────────────────────

    async def list_jobs(self) -> dict[str, Any]:
        """All jobs, most recently touched first."""
        collection = await self._read("list")
        jobs = sorted(collection.jobs, key=lambda j: j.get("updatedAtMs") or 0, reverse=True)
        return {"version": collection.version, "jobs": jobs}

    async def create(self, partial: Any) -> dict[str, Any]:
        if not isinstance(partial, dict):
            raise ValidationError("job must be an object", operation="create")

        # Identity and timestamps belong to the store, never to the caller.
        data = {k: v for k, v in partial.items() if k not in ("id", "createdAtMs", "updatedAtMs")}
        async with _lock_for(self.jobs_file):
            collection = await self._read("create")
            taken = {j.get("id") for j in collection.jobs}
            job_id = new_job_id()
            while job_id in taken:
                job_id = new_job_id()
            data["id"] = job_id

            record = touch(normalize(data, operation="create").to_record())
            collection.jobs.append(record)
            await self._write(collection, "create", job_id)

        logger.info("Created cron job %s (%s)", job_id, record.get("name", ""))
        return record

    async def update(self, job_id: str, patch: Any) -> dict[str, Any]:
        if not isinstance(patch, dict):
            raise ValidationError("patch must be an object", operation="update", job_id=job_id)

        async with _lock_for(self.jobs_file):
            collection = await self._read("update")
            index = self._index_of(collection, job_id)
            if index == -1:
                raise NotFoundError("Job not found", operation="update", job_id=job_id)

            existing = collection.jobs[index]
            merged = merge_patch(existing, patch, job_id=job_id)
            collection.jobs[index] = touch(normalize(merged, operation="update").to_record())
            await self._write(collection, "update", job_id)

        logger.info("Updated cron job %s (fields: %s)", job_id, ", ".join(sorted(patch)) or "-")
        return collection.jobs[index]

    async def toggle(self, job_id: str, enabled: Optional[bool] = None) -> dict[str, Any]:
        async with _lock_for(self.jobs_file):
            collection = await self._read("toggle")
            index = self._index_of(collection, job_id)
            if index == -1:
                raise NotFoundError("Job not found", operation="toggle", job_id=job_id)

            current = collection.jobs[index]
            next_enabled = enabled if isinstance(enabled, bool) else not bool(current.get("enabled"))
            collection.jobs[index] = touch({**current, "enabled": next_enabled})
            await self._write(collection, "toggle", job_id)

        logger.info("Toggled cron job %s -> enabled=%s", job_id, next_enabled)
        return collection.jobs[index]

    async def delete(self, job_id: str) -> None:
        async with _lock_for(self.jobs_file):
            collection = await self._read("delete")
            before = len(collection.jobs)
            collection.jobs = [j for j in collection.jobs if j.get("id") != job_id]
            if len(collection.jobs) == before:
                raise NotFoundError("Job not found", operation="delete", job_id=job_id)
            await self._write(collection, "delete", job_id)

        logger.info("Deleted cron job %s", job_id)
