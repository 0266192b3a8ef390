"""Error taxonomy for import batches.

Batch-fatal errors (ConfigError, InputError, ResolutionError) are raised out
of the pipeline and turned into non-2xx responses by the handlers in
``app.main``. UpstreamError is raised per row by the Crew client and caught
by the pipeline, which records it on the row and moves on.
"""
from typing import Any


class BatchError(Exception):
    """Base for errors that abort a whole batch."""
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(BatchError):
    """Upstream base URL or token missing."""
    status_code = 500


class InputError(BatchError):
    """The submitted batch is unusable (no rows, too many rows, unreadable file)."""
    status_code = 400


class ResolutionError(BatchError):
    """The tenant company id could not be derived from the upstream API."""
    status_code = 502


class UpstreamError(Exception):
    """A single failed call to the Crew API, normalized to one shape.

    status_code is None for transport failures (DNS, connect, timeout).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        data: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.data = data

    def __str__(self) -> str:
        if self.status_code:
            return f"HTTP {self.status_code}: {self.message}"
        return self.message
