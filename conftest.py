import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from cron_dashboard.config import settings
from cron_dashboard.repositories.filesystem_storage import FileSystemStorage
from cron_dashboard.repositories.job_repository import JobStore
from cron_dashboard.repositories.run_log_repository import RunLogReader
from main import app


@pytest.fixture(autouse=True)
def data_dirs(tmp_path, monkeypatch):
    """Point every configured directory at a fresh tmp tree."""
    cron_dir = tmp_path / "cron"
    memory_dir = tmp_path / "memory"
    stickers_dir = tmp_path / "stickers"
    cron_dir.mkdir()
    memory_dir.mkdir()

    monkeypatch.setattr(settings, "CRON_DIR", str(cron_dir))
    monkeypatch.setattr(settings, "MEMORY_DIR", str(memory_dir))
    monkeypatch.setattr(settings, "DIARIES_DIR", "")
    monkeypatch.setattr(settings, "STICKERS_DIR", str(stickers_dir))
    monkeypatch.setattr(settings, "DISCORD_DM_TARGET", "")
    return tmp_path


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def storage():
    return FileSystemStorage()


@pytest.fixture
def store(storage):
    return JobStore(storage, settings.cron_jobs_file)


@pytest.fixture
def runs(storage):
    return RunLogReader(storage, settings.cron_runs_dir)


@pytest.fixture
def write_jobs():
    """Seed jobs.json with raw records, bypassing the store."""
    def _write(jobs, version=1):
        path = Path(settings.cron_jobs_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"version": version, "jobs": jobs}), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def write_run_log():
    """Write ``runs/<job_id>.jsonl``; dict lines are JSON-encoded, strings written verbatim."""
    def _write(job_id, lines):
        runs_dir = Path(settings.cron_runs_dir)
        runs_dir.mkdir(parents=True, exist_ok=True)
        body = "\n".join(json.dumps(l) if isinstance(l, dict) else l for l in lines)
        path = runs_dir / f"{job_id}.jsonl"
        path.write_text(body + "\n", encoding="utf-8")
        return path
    return _write
