from abc import ABC, abstractmethod
from typing import List, Optional

class StorageRepository(ABC):
    @abstractmethod
    async def ensure_dir(self, path: str) -> None:
        pass

    @abstractmethod
    async def write_text(self, path: str, content: str) -> None:
        """Replace the whole file; readers see either the old or the new content."""
        pass

    @abstractmethod
    async def read_text(self, path: str) -> str:
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    async def list_files(self, path: str, suffix: Optional[str] = None) -> List[str]:
        pass

    @abstractmethod
    async def mtime_ms(self, path: str) -> float:
        pass
