"""Logging setup: JSON lines in production, plain text locally.

Every record carries a ``request_id`` attribute (``-`` outside a request) so
that the rows of one import batch can be grepped together.
"""
import logging
import sys
from contextvars import ContextVar

from pythonjsonlogger import jsonlogger

from app.core.config import settings

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s [%(request_id)s] %(message)s"


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def setup_logging() -> None:
    """Install a single stdout handler on the root logger."""
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())

    if settings.APP_ENV == "production":
        handler.setFormatter(
            jsonlogger.JsonFormatter(
                LOG_FORMAT.replace("[%(request_id)s] ", "%(request_id)s "),
                rename_fields={"asctime": "timestamp", "levelname": "level"},
            )
        )
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logging.root.handlers = [handler]
    logging.root.setLevel(logging.INFO)
    # httpx logs every request at INFO; the client logs failures itself
    logging.getLogger("httpx").setLevel(logging.WARNING)
