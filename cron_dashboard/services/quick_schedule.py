"""Builds ready-to-store jobs for one-off "do it now" triggers."""

from datetime import datetime, timezone
from typing import Any, Optional

from ..config import settings

SCAN_SUMMARY_MESSAGE = (
    "Run `blogwatcher scan` first. Then read latest unread items via `blogwatcher articles` "
    "and send a concise Traditional Chinese digest (5-10 bullets, grouped by topic) to the "
    "specified Discord user. Include top items and why they matter. IMPORTANT: You MUST send "
    "the message to Discord user {target} even if it is not your default channel."
)


def iso_utc(ms: int) -> str:
    """``2024-01-02T03:04:05.678Z`` for an epoch-milliseconds instant."""
    instant = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_scan_summary_job(target: str, now_ms: int, delay_seconds: Optional[int] = None) -> dict[str, Any]:
    """RSS scan + digest delivered to ``target`` on Discord, due shortly after ``now_ms``."""
    if delay_seconds is None:
        delay_seconds = settings.QUICK_SCHEDULE_DELAY_SECONDS

    return {
        "name": f"RSS scan+summary -> Discord {target}",
        "description": "Scan RSS and send digest to Discord DM",
        "enabled": True,
        "schedule": {"kind": "at", "at": iso_utc(now_ms + delay_seconds * 1000)},
        "sessionTarget": "isolated",
        "wakeMode": "now",
        "payload": {
            "kind": "agentTurn",
            "timeoutSeconds": settings.QUICK_SCHEDULE_TIMEOUT_SECONDS,
            "message": SCAN_SUMMARY_MESSAGE.format(target=target),
        },
        "delivery": {
            "mode": "announce",
            "channel": "discord",
            "to": target,
            "bestEffort": True,
        },
    }
