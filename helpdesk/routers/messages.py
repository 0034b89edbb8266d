"""User-message endpoint: customer messages on tickets."""

from __future__ import annotations

import logging
import traceback
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import APIRouter
from fastapi.responses import JSONResponse, PlainTextResponse

from ..backend.client import get_backend_client
from ..core import db
from ..core.settings import get_settings
from ..tickets import schemas as ticket_schemas
from ..tickets.repository import PostgresTicketRepository
from ..tickets.service import TicketMessageService

router = APIRouter(tags=["messages"])

logger = logging.getLogger(__name__)

HANDLE_MESSAGE_PATH = "/functions/v1/handle-message"


@contextmanager
def _service_context() -> Iterator[TicketMessageService]:
    """Hold one pooled connection (and its transaction) for the whole request."""

    settings = get_settings()
    with db.connection() as conn:
        yield TicketMessageService(
            PostgresTicketRepository(conn),
            get_backend_client(),
            bot_id=settings.default_bot_id,
            timeout=settings.user_message_timeout,
        )


@router.options(HANDLE_MESSAGE_PATH)
def handle_message_preflight() -> PlainTextResponse:
    return PlainTextResponse("ok", headers=get_settings().cors_headers())


@router.post(HANDLE_MESSAGE_PATH)
def handle_message(payload: ticket_schemas.UserMessageRequest) -> JSONResponse:
    """Reply to a customer message and apply the backend's ticket actions."""

    headers = get_settings().cors_headers()
    logger.info("Handling message %s on ticket %s", payload.message_id, payload.ticket_id)
    try:
        with _service_context() as service:
            result = service.handle(payload)
    except Exception as exc:
        logger.exception("Fatal error handling message for ticket %s", payload.ticket_id)
        return JSONResponse(
            {
                "error": str(exc),
                "stack": traceback.format_exc(),
                "details": "Fatal error in edge function",
            },
            status_code=500,
            headers=headers,
        )
    return JSONResponse(result.model_dump(mode="json"), headers=headers)
