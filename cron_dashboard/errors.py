"""Error taxonomy shared by the job store, the run-log reader and the routers."""

from __future__ import annotations

from typing import Optional


class DashboardError(Exception):
    """Base error; ``status_code`` is what the HTTP layer answers with."""

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        job_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.job_id = job_id

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "error": type(self).__name__,
            "operation": self.operation,
            "job_id": self.job_id,
        }


class ValidationError(DashboardError):
    """Malformed or missing caller input."""

    status_code = 400


class NotFoundError(DashboardError):
    """The operation targets a job id that is not in the collection."""

    status_code = 404


class StorageError(DashboardError):
    """The job collection or a run log could not be read or written."""

    status_code = 500


class ParseError(DashboardError):
    """A run log's last line could not be decoded.

    Raised and caught inside the run-log reader; the offending log is skipped.
    """

    status_code = 500
