"""FastAPI dependency injection providers."""

from typing import Annotated
from fastapi import Depends

from .config import settings
from .repositories.storage import StorageRepository
from .repositories.filesystem_storage import FileSystemStorage
from .repositories.job_repository import JobStore
from .repositories.run_log_repository import RunLogReader
from .clients.blogwatcher_client import BlogwatcherClient
from .clients.cli_blogwatcher_client import CLIBlogwatcherClient
from .services.cron_service import CronService
from .services.rss_service import RssService
from .services.memory_service import MemoryService

# Singletons for storage and the blogwatcher client (can be swapped based on config)
_storage = FileSystemStorage()
_blogwatcher = CLIBlogwatcherClient()

def get_storage() -> StorageRepository:
    return _storage

def get_blogwatcher() -> BlogwatcherClient:
    return _blogwatcher

def get_job_store(
    storage: Annotated[StorageRepository, Depends(get_storage)]
) -> JobStore:
    return JobStore(storage, settings.cron_jobs_file)

def get_run_log_reader(
    storage: Annotated[StorageRepository, Depends(get_storage)]
) -> RunLogReader:
    return RunLogReader(storage, settings.cron_runs_dir)

def get_cron_service(
    store: Annotated[JobStore, Depends(get_job_store)],
    runs: Annotated[RunLogReader, Depends(get_run_log_reader)],
) -> CronService:
    return CronService(store, runs)

def get_rss_service(
    client: Annotated[BlogwatcherClient, Depends(get_blogwatcher)]
) -> RssService:
    return RssService(client)

def get_memory_service(
    storage: Annotated[StorageRepository, Depends(get_storage)]
) -> MemoryService:
    return MemoryService(storage)
