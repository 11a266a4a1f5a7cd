"""Logging configuration for RatingMF.

Training reports carry their numbers as ``extra`` fields (trainer, epoch,
rmse) and the service logs one record per request. JSONFormatter writes each
record as a single JSON object with those fields at top level, so epoch
curves and request latencies can be pulled out of the logs without parsing
message text.
"""

import json
import logging
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PLAIN_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Every attribute a bare LogRecord has; anything else was passed as ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}


class JSONFormatter(logging.Formatter):
    """Formats log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS
        )
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Configure the root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_logs: One JSON object per line when True, otherwise the plain
            ``time - logger - level - message`` format used by the scripts.
    """
    level = getattr(logging, log_level.upper())
    if not json_logs:
        # leaves existing handlers alone
        logging.basicConfig(level=level, format=PLAIN_FORMAT, datefmt=PLAIN_DATEFMT)
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Request logs come from RequestLoggingMiddleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one record per request with its status and duration.

    The request id is also returned in the ``X-Request-ID`` header.
    """

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        request_id = str(uuid.uuid4())
        start_time = time.time()
        logger = logging.getLogger("ratingmf.api.main")
        fields = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        }

        try:
            response = await call_next(request)
        except Exception as e:
            fields["duration_ms"] = round((time.time() - start_time) * 1000, 2)
            logger.error(f"Request failed: {e}", extra=fields, exc_info=True)
            raise

        fields["status_code"] = response.status_code
        fields["duration_ms"] = round((time.time() - start_time) * 1000, 2)
        logger.info(f"{request.method} {request.url.path} -> {response.status_code}", extra=fields)

        response.headers["X-Request-ID"] = request_id
        return response
