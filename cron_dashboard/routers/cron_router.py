"""Cron router: job CRUD, toggle, run history and live change events."""

from __future__ import annotations

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from ..dependencies import get_cron_service
from ..schemas.cron import CreateJobRequest, ToggleJobRequest, UpdateJobRequest
from ..services.cron_service import CronService
from ..ws_manager import cron_events

logger = logging.getLogger("cron_dashboard.routers.cron_router")

router = APIRouter()


# ── Jobs ────────────────────────────────────────────────────────────────────────

@router.get("/api/cron/jobs", tags=["Cron"])
async def list_jobs(
    svc: Annotated[CronService, Depends(get_cron_service)],
):
    """List all jobs, most recently updated first."""
    return await svc.list_jobs()


@router.post("/api/cron/jobs", tags=["Cron"], status_code=201)
async def create_job(
    svc: Annotated[CronService, Depends(get_cron_service)],
    req: Optional[CreateJobRequest] = None,
):
    """Create a job from a partial record (`{"job": {...}}`)."""
    return await svc.create_job(req.job if req else None)


@router.put("/api/cron/jobs/{job_id}", tags=["Cron"])
async def update_job(
    job_id: str,
    svc: Annotated[CronService, Depends(get_cron_service)],
    req: Optional[UpdateJobRequest] = None,
):
    """Patch a job (`{"patch": {...}}`); schedule, payload and delivery are replaced wholesale."""
    return await svc.update_job(job_id, req.patch if req else None)


@router.post("/api/cron/jobs/{job_id}/toggle", tags=["Cron"])
async def toggle_job(
    job_id: str,
    svc: Annotated[CronService, Depends(get_cron_service)],
    req: Optional[ToggleJobRequest] = None,
):
    """Enable/disable a job; without `enabled` the current value is inverted."""
    return await svc.toggle_job(job_id, req.enabled if req else None)


@router.delete("/api/cron/jobs/{job_id}", tags=["Cron"])
async def delete_job(
    job_id: str,
    svc: Annotated[CronService, Depends(get_cron_service)],
):
    return await svc.delete_job(job_id)


# ── Runs ────────────────────────────────────────────────────────────────────────

@router.get("/api/cron/runs", tags=["Cron Runs"])
async def list_runs(
    svc: Annotated[CronService, Depends(get_cron_service)],
    limit: int = 20,
):
    """Latest run of every job that has a run log (at most 50)."""
    return await svc.list_runs(limit)


@router.get("/api/cron/jobs/{job_id}/runs", tags=["Cron Runs"])
async def get_job_runs(
    job_id: str,
    svc: Annotated[CronService, Depends(get_cron_service)],
    limit: int = 20,
):
    """Run history of a single job, newest first."""
    return await svc.get_job_runs(job_id, limit)


# ── Live events ─────────────────────────────────────────────────────────────────

@router.websocket("/ws/cron")
async def cron_events_socket(ws: WebSocket):
    """Push `cron_created` / `cron_updated` / `cron_toggled` / `cron_deleted` events."""
    await cron_events.attach(ws)
    try:
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        cron_events.detach(ws)
