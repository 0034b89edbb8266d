"""Logging for the helpdesk relay.

Two timed-rotating files are written under ``LOG_DIR``:

- ``app.log`` for the ``helpdesk`` logger tree (both request pipelines, the
  backend client and the pool).
- ``access.log`` for ``uvicorn.access``, one JSON line per HTTP request.

Every line carries the id of the request that produced it, taken from the
caller's ``X-Request-Id`` header or generated, so a dispatcher warning in
``app.log`` can be matched to its access line. Customer messages and manager
prompts are conversation content: when request bodies are logged only their
length is recorded.

Environment variables: LOG_DIR, LOG_LEVEL, LOG_JSON, LOG_REQUEST_BODIES,
LOG_RETENTION_DAYS, LOG_ROTATE_UTC.
"""

from __future__ import annotations

import json
import logging
import os
import time
from contextvars import ContextVar
from logging.handlers import TimedRotatingFileHandler
from typing import Any, cast
from uuid import uuid4

from fastapi import FastAPI, Request

APP_LOGGER_NAME = "helpdesk"
ACCESS_LOGGER_NAME = "uvicorn.access"

TEXT_FORMAT = "[%(asctime)s] %(levelname)s [%(request_id)s] in %(name)s: %(message)s"

# Replaced by "***" wherever they appear in headers or bodies.
SENSITIVE_FIELDS = frozenset(
    {
        "authorization",
        "apikey",
        "cookie",
        "set-cookie",
        "password",
        "token",
        "access_token",
        "refresh_token",
    }
)

# Free text written by customers and managers; logged as a length only.
CONVERSATION_FIELDS = frozenset({"message", "prompt"})

SKIP_PATHS = frozenset({"/api/health"})

NO_REQUEST = "-"

_request_id: ContextVar[str] = ContextVar("helpdesk_request_id", default=NO_REQUEST)


class RequestIdFilter(logging.Filter):
    """Stamp each record with the id of the request being handled."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line, used when LOG_JSON=true."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", NO_REQUEST),
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() == "true"


def redact(data: Any) -> Any:
    """Mask credentials and conversation text in a decoded body or headers."""

    if isinstance(data, dict):
        redacted = {}
        for key, value in data.items():
            lowered = str(key).lower()
            if lowered in SENSITIVE_FIELDS:
                redacted[key] = "***"
            elif lowered in CONVERSATION_FIELDS and isinstance(value, str):
                redacted[key] = f"<{len(value)} chars>"
            else:
                redacted[key] = redact(value)
        return redacted
    if isinstance(data, list):
        return [redact(item) for item in data]
    return data


async def _read_body(request: Request) -> Any:
    """Read the body for logging and replay it to the route."""

    body = await request.body()

    async def receive() -> dict:  # pragma: no cover - internal
        return {"type": "http.request", "body": body, "more_body": False}

    request._receive = receive  # type: ignore[attr-defined]

    if not body:
        return None
    try:
        return redact(json.loads(body))
    except ValueError:
        return f"<{len(body)} bytes, not JSON>"


def _install_access_logging(app: FastAPI) -> None:
    """Bind a request id to each request and write its access line."""

    log_bodies = _env_flag("LOG_REQUEST_BODIES")
    access_logger = logging.getLogger(ACCESS_LOGGER_NAME)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        if request.url.path in SKIP_PATHS:
            return await call_next(request)

        request_id = request.headers.get("X-Request-Id") or uuid4().hex
        request.state.request_id = request_id
        token = _request_id.set(request_id)
        start = time.perf_counter()
        try:
            body = await _read_body(request) if log_bodies else None
            response = await call_next(request)
        finally:
            _request_id.reset(token)

        client_ip = request.headers.get("X-Forwarded-For")
        if not client_ip and request.client is not None:
            client_ip = request.client.host

        entry = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            "client_ip": client_ip,
            "headers": redact(dict(request.headers)),
        }
        if body is not None:
            entry["body"] = body

        response.headers["X-Request-Id"] = request_id
        access_logger.info(json.dumps(entry, default=str))
        return response


def _attach_file_handler(
    logger: logging.Logger,
    path: str,
    formatter: logging.Formatter,
    *,
    retention_days: int,
    rotate_utc: bool,
) -> None:
    handler = TimedRotatingFileHandler(
        path, when="midnight", backupCount=retention_days, utc=rotate_utc
    )
    handler.setFormatter(formatter)
    handler.addFilter(RequestIdFilter())
    logger.addHandler(handler)


def init_logging(app: FastAPI | None = None) -> None:
    """Configure ``app.log`` and ``access.log``; install the middleware on ``app``.

    Handlers already on the ``helpdesk`` logger are kept; the access logger's
    handlers are always replaced so uvicorn's console output does not double
    up with the file.
    """

    log_dir = os.getenv("LOG_DIR", "logs")
    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    retention_days = int(os.getenv("LOG_RETENTION_DAYS", "7"))
    rotate_utc = _env_flag("LOG_ROTATE_UTC")
    formatter = JsonFormatter() if _env_flag("LOG_JSON") else logging.Formatter(TEXT_FORMAT)

    os.makedirs(log_dir, exist_ok=True)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    if not app_logger.handlers:
        _attach_file_handler(
            app_logger,
            os.path.join(log_dir, "app.log"),
            formatter,
            retention_days=retention_days,
            rotate_utc=rotate_utc,
        )
    app_logger.setLevel(level)

    access_logger = logging.getLogger(ACCESS_LOGGER_NAME)
    access_logger.handlers.clear()
    _attach_file_handler(
        access_logger,
        os.path.join(log_dir, "access.log"),
        formatter,
        retention_days=retention_days,
        rotate_utc=rotate_utc,
    )
    access_logger.setLevel(level)

    if app is not None:
        cast(Any, app).logger = app_logger
        _install_access_logging(app)
