"""Manager-prompt endpoint: knowledge-base curation through the backend."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import APIRouter
from fastapi.responses import JSONResponse, PlainTextResponse

from ..backend.client import get_backend_client
from ..core import db
from ..core.settings import get_settings
from ..knowledge import schemas as knowledge_schemas
from ..knowledge.repository import PostgresKnowledgeRepository
from ..knowledge.service import ManagerPromptService

router = APIRouter(tags=["manager"])

logger = logging.getLogger(__name__)

HANDLE_MANAGER_PROMPT_PATH = "/functions/v1/handle-manager-prompt"


@contextmanager
def _service_context() -> Iterator[ManagerPromptService]:
    settings = get_settings()
    with db.connection() as conn:
        yield ManagerPromptService(
            PostgresKnowledgeRepository(conn),
            get_backend_client(),
            bot_id=settings.default_bot_id,
            timeout=settings.manager_prompt_timeout,
        )


@router.options(HANDLE_MANAGER_PROMPT_PATH)
def handle_manager_prompt_preflight() -> PlainTextResponse:
    return PlainTextResponse("ok", headers=get_settings().cors_headers())


@router.post(HANDLE_MANAGER_PROMPT_PATH)
def handle_manager_prompt(payload: knowledge_schemas.ManagerPromptRequest) -> JSONResponse:
    """Answer a manager prompt; any failure rolls back and returns 500."""

    headers = get_settings().cors_headers()
    logger.info(
        "Handling manager prompt %s in conversation %s",
        payload.prompt_id,
        payload.conversation_id,
    )
    try:
        with _service_context() as service:
            result = service.handle(payload)
    except Exception as exc:
        logger.exception(
            "Error processing manager prompt %s", payload.prompt_id
        )
        return JSONResponse(
            {"error": str(exc), "details": "Error processing request"},
            status_code=500,
            headers=headers,
        )
    return JSONResponse(result.model_dump(mode="json"), headers=headers)
