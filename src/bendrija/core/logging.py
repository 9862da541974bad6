from __future__ import annotations

import contextvars
import json
import logging
import os
import time
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Fields stamped onto every event: request_id, user_id, and batch_id while an ingestion runs.
_bound: contextvars.ContextVar[Mapping[str, str]] = contextvars.ContextVar("log_fields", default={})

_configured = False


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``None`` fields are left out."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "ts": ts.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
        }
        event = getattr(record, "event", None)
        payload["event" if event else "message"] = event or record.getMessage()
        payload.update(getattr(record, "fields", None) or {})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging() -> None:
    global _configured  # noqa: PLW0603
    if _configured:
        return
    level = logging.getLevelNamesMapping().get(
        os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO
    )
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger("bendrija")
    root.setLevel(level)
    root.handlers = [handler]
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def bind_context(**fields: str | None) -> contextvars.Token:
    """Add fields to every event logged in the current context until the token is reset."""
    merged = dict(_bound.get())
    merged.update({k: v for k, v in fields.items() if v is not None})
    return _bound.set(merged)


def reset_context(token: contextvars.Token) -> None:
    _bound.reset(token)


def _event_fields(fields: dict[str, Any]) -> dict[str, Any]:
    payload: dict[str, Any] = dict(_bound.get())
    payload.update({k: v for k, v in fields.items() if v is not None})
    return payload


def log_event(
    logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any
) -> None:
    logger.log(level, event, extra={"event": event, "fields": _event_fields(fields)})


def log_exception(logger: logging.Logger, event: str, **fields: Any) -> None:
    logger.exception(event, extra={"event": event, "fields": _event_fields(fields)})


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        token = bind_context(request_id=request_id)
        logger = get_logger(__name__)
        t0 = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            log_exception(
                logger, "http.request.error", method=request.method, path=request.url.path
            )
            raise
        else:
            response.headers["x-request-id"] = request_id
            log_event(
                logger,
                "http.request.finish",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=monotonic_ms(t0),
            )
            return response
        finally:
            reset_context(token)


def monotonic_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
