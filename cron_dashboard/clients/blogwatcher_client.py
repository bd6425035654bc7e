from abc import ABC, abstractmethod
from typing import List, Optional

class BlogwatcherClient(ABC):
    @abstractmethod
    async def list_blogs(self) -> List[dict]:
        pass

    @abstractmethod
    async def add_blog(self, name: str, url: str) -> None:
        pass

    @abstractmethod
    async def remove_blog(self, name: str) -> None:
        pass

    @abstractmethod
    async def list_articles(self, include_read: bool = False, blog: Optional[str] = None) -> List[dict]:
        pass

    @abstractmethod
    async def mark_read(self, article_id: int) -> None:
        pass

    @abstractmethod
    async def mark_unread(self, article_id: int) -> None:
        pass

    @abstractmethod
    async def read_all(self, blog: Optional[str] = None) -> str:
        pass

    @abstractmethod
    async def scan(self, args: List[str]) -> str:
        pass
