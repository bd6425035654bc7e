"""Run-log reader: reduces the runner's per-job JSONL logs to run records."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from ..config import settings
from ..errors import ParseError, StorageError, ValidationError
from ..schemas.cron import RunRecord
from .storage import StorageRepository

logger = logging.getLogger("cron_dashboard.repositories.run_log_repository")

LOG_SUFFIX = ".jsonl"
UNKNOWN_JOB = "Unknown Job"
_SAFE_JOB_ID = re.compile(r"[A-Za-z0-9_.-]+")


def clamp_limit(limit: Optional[int]) -> int:
    """Missing or non-positive limits fall back to the default; the max caps the rest."""
    if not limit or limit < 1:
        limit = settings.RUNS_DEFAULT_LIMIT
    return min(limit, settings.RUNS_MAX_LIMIT)


def _non_blank_lines(content: str) -> List[str]:
    return [line for line in content.strip().splitlines() if line.strip()]


def _decode(line: str) -> Optional[dict]:
    try:
        entry = json.loads(line)
    except json.JSONDecodeError:
        return None
    return entry if isinstance(entry, dict) else None


def _to_record(
    entry: Mapping[str, Any],
    fallback_job_id: str,
    fallback_run_at_ms: float,
    job_names: Mapping[str, str],
) -> RunRecord:
    line_job_id = entry.get("jobId")
    run_at_ms = entry.get("runAtMs") or fallback_run_at_ms
    duration_ms = entry.get("durationMs") or 0
    return RunRecord(
        job_id=line_job_id or fallback_job_id,
        job_name=job_names.get(line_job_id) or line_job_id or UNKNOWN_JOB,
        run_id=entry.get("sessionId") or "",
        status=entry.get("status") or "unknown",
        summary=entry.get("summary") or "",
        duration_ms=duration_ms,
        run_at_ms=run_at_ms,
        finished_at_ms=entry.get("finishedAtMs") or run_at_ms + duration_ms,
    )


class RunLogReader:
    """Read-only view over ``<runs_dir>/<jobId>.jsonl``; never touches the files."""

    def __init__(self, storage: StorageRepository, runs_dir: str):
        self.storage = storage
        self.runs_dir = runs_dir

    async def _latest_from_file(self, filename: str, job_names: Mapping[str, str]) -> RunRecord:
        path = str(Path(self.runs_dir) / filename)
        content = await self.storage.read_text(path)
        lines = _non_blank_lines(content)
        if not lines:
            raise ParseError(f"{filename} is empty", operation="list_runs")

        last = _decode(lines[-1])
        if last is None:
            raise ParseError(f"last line of {filename} is not a JSON object", operation="list_runs")

        entries = [e for e in (_decode(line) for line in lines[:-1]) if e is not None]
        entries.append(last)
        ok_runs = sum(1 for e in entries if e.get("status") == "ok")

        try:
            record = _to_record(
                last,
                fallback_job_id=filename[: -len(LOG_SUFFIX)],
                fallback_run_at_ms=await self.storage.mtime_ms(path),
                job_names=job_names,
            )
        except (PydanticValidationError, TypeError) as exc:
            raise ParseError(f"last line of {filename} has malformed fields: {exc}", operation="list_runs") from exc

        record.total_runs = len(entries)
        record.success_rate = ok_runs / len(entries)
        return record

    async def latest_runs(self, limit: Optional[int], job_names: Mapping[str, str]) -> List[RunRecord]:
        """One record per log, from its last line, newest ``runAtMs`` first.

        A log whose last line does not decode is left out entirely; earlier
        lines are never used as a stand-in.
        """
        runs: List[RunRecord] = []
        for filename in await self.storage.list_files(self.runs_dir, suffix=LOG_SUFFIX):
            try:
                runs.append(await self._latest_from_file(filename, job_names))
            except ParseError as exc:
                logger.warning("Skipping run log: %s", exc)
            except UnicodeDecodeError as exc:
                logger.warning("Skipping run log %s: not UTF-8 (%s)", filename, exc)
            except FileNotFoundError:
                # Removed between listing and reading.
                continue
            except OSError as exc:
                logger.error("Failed to read run log %s: %s", filename, exc)
                raise StorageError(f"Failed to read run log {filename}: {exc}", operation="list_runs") from exc

        runs.sort(key=lambda r: r.run_at_ms, reverse=True)
        return runs[: clamp_limit(limit)]

    async def job_runs(self, job_id: str, limit: Optional[int], job_names: Mapping[str, str]) -> List[RunRecord]:
        """Full history of one job, newest first; undecodable lines are skipped."""
        if not _SAFE_JOB_ID.fullmatch(job_id) or job_id.startswith("."):
            raise ValidationError("invalid job id", operation="job_runs", job_id=job_id)

        path = str(Path(self.runs_dir) / f"{job_id}{LOG_SUFFIX}")
        if not await self.storage.exists(path):
            return []

        content = await self.storage.read_text(path)
        mtime = await self.storage.mtime_ms(path)
        runs: List[RunRecord] = []
        for number, line in enumerate(_non_blank_lines(content), start=1):
            entry = _decode(line)
            if entry is None:
                logger.warning("Skipping undecodable line %d of %s", number, path)
                continue
            try:
                runs.append(_to_record(entry, job_id, mtime, job_names))
            except (PydanticValidationError, TypeError):
                logger.warning("Skipping malformed line %d of %s", number, path)

        runs.sort(key=lambda r: r.run_at_ms, reverse=True)
        return runs[: clamp_limit(limit)]
