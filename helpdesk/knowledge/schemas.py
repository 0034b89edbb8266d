"""Pydantic schemas for the manager-prompt flow."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

Identifier = UUID | int | str


class ManagerPromptRequest(BaseModel):
    prompt_id: Identifier
    conversation_id: Identifier
    prompt: str
    created_at: str | None = None


class ChatHistoryEntry(BaseModel):
    message: str | None = None
    is_system_message: bool = False
    created_at: datetime | str | None = None

    def to_backend(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"created_at"})


class ManagerPromptResponse(BaseModel):
    success: bool = True
    response: str
    actions: list[dict[str, Any]] = Field(default_factory=list)
