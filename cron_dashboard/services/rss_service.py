"""RSS feeds managed through blogwatcher."""

import logging
from typing import Any, Optional

from ..clients.blogwatcher_client import BlogwatcherClient
from ..errors import ValidationError

logger = logging.getLogger("cron_dashboard.services.rss_service")

DEFAULT_ARTICLE_LIMIT = 200
MAX_ARTICLE_LIMIT = 1000


class RssService:
    def __init__(self, client: BlogwatcherClient):
        self.client = client

    @staticmethod
    def _require_blog_fields(name: Optional[str], url: Optional[str], operation: str) -> None:
        if not name or not url:
            raise ValidationError("name and url are required", operation=operation)

    async def list_blogs(self) -> dict:
        return {"blogs": await self.client.list_blogs()}

    async def add_blog(self, name: Optional[str], url: Optional[str]) -> dict:
        self._require_blog_fields(name, url, "add_blog")
        await self.client.add_blog(name, url)
        logger.info("Added blog %s (%s)", name, url)
        return {"ok": True}

    async def edit_blog(self, old_name: str, name: Optional[str], url: Optional[str]) -> dict:
        """blogwatcher has no edit verb: remove the old entry, add the new one."""
        self._require_blog_fields(name, url, "edit_blog")
        await self.client.remove_blog(old_name)
        await self.client.add_blog(name, url)
        logger.info("Edited blog %s -> %s (%s)", old_name, name, url)
        return {"ok": True}

    async def remove_blog(self, name: str) -> dict:
        await self.client.remove_blog(name)
        logger.info("Removed blog %s", name)
        return {"ok": True}

    async def list_articles(
        self,
        include_read: bool = False,
        blog: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> dict:
        articles = await self.client.list_articles(include_read=include_read, blog=blog)
        limit = max(1, min(limit or DEFAULT_ARTICLE_LIMIT, MAX_ARTICLE_LIMIT))
        return {"articles": articles[:limit]}

    async def mark_read(self, article_id: int) -> dict:
        await self.client.mark_read(article_id)
        return {"ok": True}

    async def mark_unread(self, article_id: int) -> dict:
        await self.client.mark_unread(article_id)
        return {"ok": True}

    async def read_all(self, blog: Optional[str] = None) -> dict:
        output = await self.client.read_all(blog)
        return {"ok": True, "output": output}

    async def scan(
        self,
        blog_name: Optional[str] = None,
        workers: Optional[Any] = None,
        silent: bool = False,
    ) -> dict:
        args: list[str] = []
        if blog_name:
            args.append(str(blog_name))
        if workers:
            args += ["--workers", str(workers)]
        if silent:
            args.append("--silent")

        output = await self.client.scan(args)
        return {"ok": True, "output": output, "command": " ".join(["blogwatcher", "scan", *args])}
