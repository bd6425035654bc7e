"""Memory router: quests, heartbeat, karma, diary and stickers."""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from ..dependencies import get_memory_service
from ..services.memory_service import MemoryService

router = APIRouter(prefix="/api")


@router.get("/quests", tags=["Memory"])
async def get_quests(svc: Annotated[MemoryService, Depends(get_memory_service)]):
    return await svc.get_quests()


@router.get("/health", tags=["Memory"])
async def get_health(svc: Annotated[MemoryService, Depends(get_memory_service)]):
    """The agent's heartbeat state as last written to memory."""
    return await svc.get_heartbeat()


@router.get("/karma", tags=["Memory"])
async def get_karma(svc: Annotated[MemoryService, Depends(get_memory_service)]):
    return await svc.get_karma()


@router.get("/diary/dates", tags=["Diary"])
async def list_diary_dates(svc: Annotated[MemoryService, Depends(get_memory_service)]):
    return await svc.list_diary_dates()


@router.get("/diary", tags=["Diary"])
async def get_diary(
    svc: Annotated[MemoryService, Depends(get_memory_service)],
    date: Optional[str] = None,
    limit: Optional[int] = None,
):
    """Entries of `date` (default: latest diary), newest first."""
    return await svc.get_diary(date=date, limit=limit)


@router.get("/stickers", tags=["Stickers"])
async def list_stickers(svc: Annotated[MemoryService, Depends(get_memory_service)]):
    return await svc.list_stickers()
