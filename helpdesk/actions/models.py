"""Typed representation of the actions returned by the reasoning backend.

Every action arrives as a JSON object whose ``action`` field names its kind.
Only the kind is validated: each known kind maps to one pydantic model whose
payload fields accept any JSON value, and handlers check presence and coerce
what they store with :func:`as_text`. An entry with an unrecognised kind
becomes an :class:`UnknownAction`. Unknown fields are kept and echoed back to
the client unchanged.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


def as_text(value: Any) -> str | None:
    """Coerce a loosely typed payload value to the text stored in a column."""

    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


class ActionMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    category: Any = None
    priority: Any = None
    status: Any = None
    created_at: Any = None
    updated_at: Any = None
    published_at: Any = None
    created_by: Any = None


class ArticlePayload(BaseModel):
    """Full article record supplied with ``write_article``; stored verbatim."""

    model_config = ConfigDict(extra="allow")

    title: Any = None
    description: Any = None
    content: Any = None
    status: Any = None
    created_at: Any = None
    updated_at: Any = None
    published_at: Any = None
    view_count: Any = None
    is_faq: Any = None
    category: Any = None
    slug: Any = None
    created_by: Any = None


class Action(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    kind: str = Field(alias="action")

    def to_payload(self) -> dict[str, Any]:
        """Return the wire representation, omitting fields never supplied."""

        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


class _MetadataAction(Action):
    reason: Any = None
    metadata: Any = None

    @property
    def meta(self) -> ActionMetadata:
        """Metadata bag; empty when absent or not an object."""

        if isinstance(self.metadata, dict):
            return ActionMetadata.model_validate(self.metadata)
        return ActionMetadata()


class TicketRequestAction(_MetadataAction):
    kind: Literal["feature_request", "feedback"] = Field(alias="action")
    message: Any = None


class EscalateAction(_MetadataAction):
    kind: Literal["escalate"] = Field(alias="action")


class UpdateStatusAction(_MetadataAction):
    kind: Literal["update_status"] = Field(alias="action")
    status: Any = None


class AddNoteAction(_MetadataAction):
    kind: Literal["add_note"] = Field(alias="action")
    note: Any = None


class UpdateNameAction(_MetadataAction):
    kind: Literal["update_name"] = Field(alias="action")
    name: Any = None


class SearchAction(_MetadataAction):
    kind: Literal["search_kb", "search_info"] = Field(alias="action")
    query: Any = None
    results: Any = None


class WriteArticleAction(_MetadataAction):
    kind: Literal["write_article"] = Field(alias="action")
    article: Any = None

    @property
    def article_payload(self) -> ArticlePayload | None:
        if isinstance(self.article, dict):
            return ArticlePayload.model_validate(self.article)
        return None


class UpdateArticleStatusAction(_MetadataAction):
    kind: Literal["update_article_status"] = Field(alias="action")
    article_id: Any = None
    status: Any = None


class AddArticleNoteAction(_MetadataAction):
    kind: Literal["add_article_note"] = Field(alias="action")
    article_id: Any = None
    note: Any = None


class UnknownAction(Action):
    """Any payload outside the known vocabulary; dispatched to nothing."""

    kind: Any = Field(default=None, alias="action")


ACTION_MODELS: dict[str, type[Action]] = {
    "feature_request": TicketRequestAction,
    "feedback": TicketRequestAction,
    "escalate": EscalateAction,
    "update_status": UpdateStatusAction,
    "add_note": AddNoteAction,
    "update_name": UpdateNameAction,
    "search_kb": SearchAction,
    "search_info": SearchAction,
    "write_article": WriteArticleAction,
    "update_article_status": UpdateArticleStatusAction,
    "add_article_note": AddArticleNoteAction,
}


def parse_action(payload: dict[str, Any]) -> Action:
    kind = payload.get("action")
    model = ACTION_MODELS.get(kind) if isinstance(kind, str) else None
    if model is None:
        return UnknownAction.model_validate(payload)
    return model.model_validate(payload)


def parse_actions(payloads: Iterable[Any]) -> list[Action]:
    """Parse raw backend actions, dropping entries that are not objects."""

    actions: list[Action] = []
    for payload in payloads:
        if not isinstance(payload, dict):
            logger.warning("Ignoring non-object action entry: %r", payload)
            continue
        actions.append(parse_action(payload))
    return actions
