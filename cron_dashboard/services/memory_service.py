from __future__ import annotations
import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

from ..config import settings
from ..errors import StorageError
from ..repositories.storage import StorageRepository

logger = logging.getLogger("cron_dashboard.services.memory_service")

DIARY_FILE = re.compile(r"^\d{4}-\d{2}-\d{2}\.md$")
DIARY_ENTRY = re.compile(r"^- \*\*\d{1,2}:\d{2} (AM|PM)\*\*:")
STICKER_FILE = re.compile(r"\.(gif|png|jpg|jpeg)$", re.IGNORECASE)
MAX_DIARY_LIMIT = 500


def parse_diary_entries(raw: str) -> list[dict[str, str]]:
    """Keep ``- **9:30 AM**: text`` lines as ``{time, text}`` in file order."""
    entries = []
    for line in raw.splitlines():
        if not DIARY_ENTRY.match(line.strip()):
            continue
        clean = re.sub(r"^-\s*", "", line.strip())
        marker_end = clean.find(": ")
        if marker_end == -1:
            entries.append({"time": "N/A", "text": clean})
            continue
        entries.append({
            "time": clean[:marker_end].replace("**", ""),
            "text": clean[marker_end + 2:].strip(),
        })
    return entries


class MemoryService:
    """Read-only access to the agent's memory directory (quests, heartbeat, diaries, stickers)."""

    def __init__(self, storage: StorageRepository):
        self.storage = storage

    async def _read_memory_json(self, filename: str, operation: str) -> Any:
        path = str(Path(settings.MEMORY_DIR) / filename)
        try:
            return json.loads(await self.storage.read_text(path))
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Error reading %s: %s", filename, exc)
            raise StorageError(f"Failed to read {filename}", operation=operation) from exc

    async def get_quests(self) -> Any:
        return await self._read_memory_json("quests.json", "quests")

    async def get_heartbeat(self) -> Any:
        return await self._read_memory_json("heartbeat-state.json", "health")

    async def get_karma(self) -> dict:
        health = await self._read_memory_json("heartbeat-state.json", "karma")
        karma = health.get("last_moltbook_karma") if isinstance(health, dict) else None
        return {"karma": karma or 0}

    # ── Diary ───────────────────────────────────────────────────────────────────

    async def _diary_files(self) -> list[str]:
        try:
            files = await self.storage.list_files(settings.diaries_dir)
        except OSError as exc:
            logger.error("Error listing diaries: %s", exc)
            raise StorageError("Failed to read diary dates", operation="diary") from exc
        return sorted((f for f in files if DIARY_FILE.match(f)), reverse=True)

    async def list_diary_dates(self) -> dict:
        return {"dates": [f[: -len(".md")] for f in await self._diary_files()]}

    async def get_diary(self, date: Optional[str] = None, limit: Optional[int] = None) -> dict:
        """Entries of one day (default: latest), newest first.

        An unknown ``date`` falls back to the latest diary instead of failing.
        """
        files = await self._diary_files()
        if not files:
            return {"file": None, "date": None, "entries": [], "totalEntries": 0}

        requested = f"{date.strip()}.md" if date and date.strip() else files[0]
        target = requested if requested in files else files[0]

        try:
            raw = await self.storage.read_text(str(Path(settings.diaries_dir) / target))
        except OSError as exc:
            logger.error("Error reading diary %s: %s", target, exc)
            raise StorageError("Failed to read diary entries", operation="diary") from exc

        parsed = parse_diary_entries(raw)
        if limit is not None:
            limit = max(1, min(limit, MAX_DIARY_LIMIT))
            entries = list(reversed(parsed[-limit:]))
        else:
            entries = list(reversed(parsed))

        return {
            "file": target,
            "date": target[: -len(".md")],
            "entries": entries,
            "totalEntries": len(parsed),
        }

    # ── Stickers ────────────────────────────────────────────────────────────────

    async def list_stickers(self) -> list[dict]:
        if not await self.storage.exists(settings.STICKERS_DIR):
            raise StorageError("Failed to read stickers", operation="stickers")
        files = await self.storage.list_files(settings.STICKERS_DIR)
        stickers = [f for f in files if STICKER_FILE.search(f)]
        return [
            {
                "id": index,
                "name": Path(f).stem,
                "filename": f,
                "url": f"/stickers/{f}",
            }
            for index, f in enumerate(stickers, start=1)
        ]
