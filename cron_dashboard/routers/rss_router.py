"""RSS router: blogwatcher feeds/articles and the scan+summary quick schedule."""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from ..dependencies import get_cron_service, get_rss_service
from ..schemas.cron import QuickScheduleRequest
from ..schemas.rss import BlogRequest, ReadAllRequest, ScanRequest
from ..services.cron_service import CronService
from ..services.rss_service import RssService

router = APIRouter(prefix="/api/rss", tags=["RSS"])


@router.get("/blogs")
async def list_blogs(svc: Annotated[RssService, Depends(get_rss_service)]):
    return await svc.list_blogs()


@router.post("/blogs")
async def add_blog(
    svc: Annotated[RssService, Depends(get_rss_service)],
    req: Optional[BlogRequest] = None,
):
    req = req or BlogRequest()
    return await svc.add_blog(req.name, req.url)


@router.put("/blogs/{name}")
async def edit_blog(
    name: str,
    svc: Annotated[RssService, Depends(get_rss_service)],
    req: Optional[BlogRequest] = None,
):
    req = req or BlogRequest()
    return await svc.edit_blog(name, req.name, req.url)


@router.delete("/blogs/{name}")
async def remove_blog(name: str, svc: Annotated[RssService, Depends(get_rss_service)]):
    return await svc.remove_blog(name)


@router.get("/articles")
async def list_articles(
    svc: Annotated[RssService, Depends(get_rss_service)],
    all: bool = False,
    blog: Optional[str] = None,
    limit: Optional[int] = None,
):
    """Unread articles, or every article with `all=true`."""
    return await svc.list_articles(include_read=all, blog=blog, limit=limit)


@router.post("/articles/{article_id}/read")
async def mark_read(article_id: int, svc: Annotated[RssService, Depends(get_rss_service)]):
    return await svc.mark_read(article_id)


@router.post("/articles/{article_id}/unread")
async def mark_unread(article_id: int, svc: Annotated[RssService, Depends(get_rss_service)]):
    return await svc.mark_unread(article_id)


@router.post("/read-all")
async def read_all(
    svc: Annotated[RssService, Depends(get_rss_service)],
    req: Optional[ReadAllRequest] = None,
):
    return await svc.read_all(req.blog if req else None)


@router.post("/scan")
async def scan(
    svc: Annotated[RssService, Depends(get_rss_service)],
    req: Optional[ScanRequest] = None,
):
    req = req or ScanRequest()
    return await svc.scan(req.blog_name, req.workers, req.silent)


@router.post("/scan-summary-discord", status_code=201)
async def scan_summary_discord(
    svc: Annotated[CronService, Depends(get_cron_service)],
    req: Optional[QuickScheduleRequest] = None,
):
    """Queue a one-shot job that scans feeds and DMs a digest to a Discord target."""
    return await svc.quick_schedule(req.target if req else None)
