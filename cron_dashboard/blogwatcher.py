"""Async wrapper around the ``blogwatcher`` CLI and parsers for its text output.

``blogwatcher`` prints human-readable listings only; the parsers below turn
them into dicts.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from typing import Any, Optional

from fastapi import HTTPException

from .config import settings

logger = logging.getLogger("cron_dashboard.blogwatcher")


async def run_blogwatcher(args: list[str]) -> str:
    """Run a ``blogwatcher`` command and return its stdout.

    Raises :class:`HTTPException` (500) when the binary is missing or the
    command exits non-zero.
    """
    cwd: Optional[str] = settings.BLOGWATCHER_CWD if os.path.isdir(settings.BLOGWATCHER_CWD) else None
    try:
        proc = await asyncio.create_subprocess_exec(
            settings.BLOGWATCHER_BIN,
            *args,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        logger.error("blogwatcher binary not found: %s", settings.BLOGWATCHER_BIN)
        raise HTTPException(
            status_code=500,
            detail={
                "error": "blogwatcher_not_found",
                "command": f"{settings.BLOGWATCHER_BIN} {' '.join(args)}",
                "message": str(exc),
            },
        ) from exc

    stdout, stderr = await proc.communicate()

    if proc.returncode != 0:
        stderr_text = stderr.decode(errors="replace").strip()
        logger.error("blogwatcher %s failed (rc=%s): %s", args, proc.returncode, stderr_text)
        raise HTTPException(
            status_code=500,
            detail={
                "error": "blogwatcher_cli_error",
                "command": f"blogwatcher {' '.join(args)}",
                "exit_code": proc.returncode,
                "stderr": stderr_text or "(no stderr output)",
            },
        )

    return stdout.decode(errors="replace")


# ── Parsers ─────────────────────────────────────────────────────────────────────

_BLOG_NAME = re.compile(r"^\s{2}(.+?)\s*$")
_BLOG_URL = re.compile(r"^\s{4}URL:\s*(.+)$")
_BLOG_FEED = re.compile(r"^\s{4}Feed:\s*(.+)$")
_BLOG_SCANNED = re.compile(r"^\s{4}Last scanned:\s*(.+)$")
_BLOG_FIELD_MARKERS = ("URL:", "Feed:", "Last scanned:")

_ARTICLE_HEAD = re.compile(r"^\s*\[(\d+)\]\s*\[(new|read)\]\s*(.+)$")
_ARTICLE_BLOG = re.compile(r"^\s*Blog:\s*(.+)$")
_ARTICLE_URL = re.compile(r"^\s*URL:\s*(.+)$")
_ARTICLE_PUBLISHED = re.compile(r"^\s*Published:\s*(.+)$")


def parse_blogs(raw: str) -> list[dict[str, str]]:
    """Parse ``blogwatcher blogs``.

    A two-space-indented line opens a blog; four-space ``URL:``, ``Feed:`` and
    ``Last scanned:`` lines fill in the current one.
    """
    blogs: list[dict[str, str]] = []
    current: Optional[dict[str, str]] = None

    for line in raw.splitlines():
        name = _BLOG_NAME.match(line)
        if name and not any(marker in line for marker in _BLOG_FIELD_MARKERS):
            if current:
                blogs.append(current)
            current = {"name": name.group(1).strip(), "url": "", "feed": "", "lastScanned": ""}
            continue

        if current is None:
            continue
        for pattern, key in ((_BLOG_URL, "url"), (_BLOG_FEED, "feed"), (_BLOG_SCANNED, "lastScanned")):
            m = pattern.match(line)
            if m:
                current[key] = m.group(1).strip()

    if current:
        blogs.append(current)
    return [b for b in blogs if b["name"]]


def parse_articles(raw: str) -> list[dict[str, Any]]:
    """Parse ``blogwatcher articles [--all]``; section headers set each article's ``mode``."""
    articles: list[dict[str, Any]] = []
    current: Optional[dict[str, Any]] = None
    mode = "unread"

    for line in raw.splitlines():
        if line.startswith("All articles"):
            mode = "all"
        if line.startswith("Unread articles"):
            mode = "unread"

        head = _ARTICLE_HEAD.match(line)
        if head:
            if current:
                articles.append(current)
            current = {
                "id": int(head.group(1)),
                "status": head.group(2),
                "title": head.group(3).strip(),
                "blog": "",
                "url": "",
                "published": "",
                "mode": mode,
            }
            continue

        if current is None:
            continue
        for pattern, key in ((_ARTICLE_BLOG, "blog"), (_ARTICLE_URL, "url"), (_ARTICLE_PUBLISHED, "published")):
            m = pattern.match(line)
            if m:
                current[key] = m.group(1).strip()

    if current:
        articles.append(current)
    return articles
