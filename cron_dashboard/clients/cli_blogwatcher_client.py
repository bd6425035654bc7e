import logging
from typing import List, Optional
from .blogwatcher_client import BlogwatcherClient
from ..blogwatcher import parse_articles, parse_blogs, run_blogwatcher

logger = logging.getLogger("cron_dashboard.clients.cli_blogwatcher_client")

class CLIBlogwatcherClient(BlogwatcherClient):
    async def list_blogs(self) -> List[dict]:
        return parse_blogs(await run_blogwatcher(["blogs"]))

    async def add_blog(self, name: str, url: str) -> None:
        await run_blogwatcher(["add", name, url])

    async def remove_blog(self, name: str) -> None:
        await run_blogwatcher(["remove", name])

    async def list_articles(self, include_read: bool = False, blog: Optional[str] = None) -> List[dict]:
        args = ["articles"]
        if include_read:
            args.append("--all")
        if blog:
            args += ["--blog", blog]
        return parse_articles(await run_blogwatcher(args))

    async def mark_read(self, article_id: int) -> None:
        await run_blogwatcher(["read", str(article_id)])

    async def mark_unread(self, article_id: int) -> None:
        await run_blogwatcher(["unread", str(article_id)])

    async def read_all(self, blog: Optional[str] = None) -> str:
        args = ["read-all", "--yes"]
        if blog:
            args += ["--blog", blog]
        return await run_blogwatcher(args)

    async def scan(self, args: List[str]) -> str:
        """``args`` are the flags after ``scan``; see :meth:`RssService.scan`."""
        return await run_blogwatcher(["scan", *args])
