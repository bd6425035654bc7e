import asyncio
import os
import tempfile
from pathlib import Path
from typing import List, Optional
from .storage import StorageRepository

class FileSystemStorage(StorageRepository):
    async def ensure_dir(self, path: str) -> None:
        await asyncio.to_thread(os.makedirs, path, exist_ok=True)

    async def write_text(self, path: str, content: str) -> None:
        """Write to a temp file beside *path*, then rename it over *path*.

        Readers see either the previous or the new content. On failure the
        temp file is removed and *path* is left as it was.
        """
        p = Path(path)
        await self.ensure_dir(str(p.parent))

        def _write():
            fd, tmp_name = tempfile.mkstemp(dir=str(p.parent), prefix=f".{p.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, str(p))
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

        await asyncio.to_thread(_write)

    async def read_text(self, path: str) -> str:
        p = Path(path)
        if not await self.exists(path):
            raise FileNotFoundError(f"File not found: {path}")
        return await asyncio.to_thread(p.read_text, encoding="utf-8")

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(Path(path).exists)

    async def list_files(self, path: str, suffix: Optional[str] = None) -> List[str]:
        p = Path(path)
        if not await self.exists(path):
            return []
        def _list():
            return sorted(
                f.name for f in p.iterdir()
                if f.is_file() and (suffix is None or f.name.endswith(suffix))
            )
        return await asyncio.to_thread(_list)

    async def mtime_ms(self, path: str) -> float:
        stat = await asyncio.to_thread(os.stat, path)
        return stat.st_mtime_ns / 1e6
