"""Mutation handlers for the knowledge-base action vocabulary."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..actions.dispatcher import SEARCH_HANDLERS, Handler
from ..actions.models import (
    AddArticleNoteAction,
    UpdateArticleStatusAction,
    WriteArticleAction,
    as_text,
)
from .repository import KnowledgeRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ArticleActionHandlers:
    """Apply article actions produced for a manager prompt."""

    def __init__(self, repository: KnowledgeRepository, *, bot_id: str) -> None:
        self._repository = repository
        self._bot_id = bot_id

    def handlers(self) -> dict[str, Handler]:
        return {
            "write_article": self.write_article,
            "update_article_status": self.update_article_status,
            "add_article_note": self.add_article_note,
            **SEARCH_HANDLERS,
        }

    def write_article(self, action: WriteArticleAction) -> None:
        article = action.article_payload
        if article is None:
            logger.error("No article data in write_article action")
            return
        article_id = self._repository.create_article(article, self._bot_id)
        logger.info("Created article %s (%s)", article_id, article.title)

    def update_article_status(self, action: UpdateArticleStatusAction) -> None:
        status = as_text(action.status)
        if action.article_id is None or not status:
            logger.warning(
                "update_article_status action needs article_id and status; ignored"
            )
            return
        meta = action.meta
        changes = [
            ("status", status),
            ("updated_at", meta.updated_at or _utcnow()),
        ]
        if meta.published_at:
            changes.append(("published_at", meta.published_at))
        try:
            row = self._repository.update_article_status(action.article_id, changes)
        except Exception:
            logger.error("Error updating article status for %s", action.article_id)
            raise
        logger.info("Updated article %s to status %s", row["id"], row["status"])

    def add_article_note(self, action: AddArticleNoteAction) -> None:
        note = as_text(action.note)
        if action.article_id is None or not note:
            logger.warning("add_article_note action needs article_id and note; ignored")
            return
        meta = action.meta
        self._repository.add_article_note(
            action.article_id,
            note,
            created_at=meta.created_at or _utcnow(),
            created_by=as_text(meta.created_by) or self._bot_id,
        )
