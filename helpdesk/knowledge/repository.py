"""Database repository for manager conversations and knowledge-base articles."""
from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from itertools import count
from typing import Any, Dict, List, Optional, Protocol, Tuple

import psycopg
from psycopg.rows import dict_row

from ..actions.dispatcher import TargetNotFoundError
from ..actions.models import ArticlePayload
from . import schemas

ARTICLE_COLUMNS = (
    "title",
    "description",
    "content",
    "status",
    "created_at",
    "updated_at",
    "published_at",
    "view_count",
    "is_faq",
    "category",
    "slug",
)

# Columns a partial status update may touch, in statement order.
ARTICLE_STATUS_COLUMNS = ("status", "updated_at", "published_at")

ArticleChanges = Sequence[Tuple[str, Any]]


class ArticleNotFoundError(TargetNotFoundError):
    """Raised when an update matches no article."""

    def __init__(self, article_id: Any) -> None:
        super().__init__(f"Article not found with ID: {article_id}")
        self.article_id = article_id


def _check_status_changes(changes: ArticleChanges) -> None:
    if not changes:
        raise ValueError("Article status update requires at least one change")
    for column, _ in changes:
        if column not in ARTICLE_STATUS_COLUMNS:
            raise ValueError(f"Column {column!r} cannot be changed by a status update")


class KnowledgeRepository(Protocol):
    """Persistence abstraction used by the manager-prompt flow."""

    def list_chat_history(
        self,
        conversation_id: schemas.Identifier,
        *,
        exclude_prompt_id: Optional[schemas.Identifier] = None,
    ) -> List[schemas.ChatHistoryEntry]: ...

    def record_response(self, prompt_id: schemas.Identifier, response: str) -> None: ...

    def create_article(self, article: ArticlePayload, bot_id: str) -> Any: ...

    def update_article_status(self, article_id: Any, changes: ArticleChanges) -> Dict[str, Any]: ...

    def add_article_note(
        self, article_id: Any, content: str, *, created_at: Any, created_by: str
    ) -> None: ...


class PostgresKnowledgeRepository:
    """PostgreSQL implementation of :class:`KnowledgeRepository`."""

    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def _cursor(self):
        return self._conn.cursor(row_factory=dict_row)

    # History -------------------------------------------------------------------
    def list_chat_history(
        self,
        conversation_id: schemas.Identifier,
        *,
        exclude_prompt_id: Optional[schemas.Identifier] = None,
    ) -> List[schemas.ChatHistoryEntry]:
        prompt_filter = ""
        params: List[Any] = [conversation_id]
        if exclude_prompt_id is not None:
            prompt_filter = " AND mp.id <> %s"
            params.append(exclude_prompt_id)
        params.append(conversation_id)
        query = f"""
            WITH conversation_messages AS (
                SELECT mp.prompt AS message, false AS is_system_message, mp.created_at
                FROM manager_prompts mp
                WHERE mp.conversation_id = %s{prompt_filter}

                UNION ALL

                SELECT mr.response AS message, true AS is_system_message, mr.created_at
                FROM manager_prompts mp
                JOIN manager_responses mr ON mr.prompt_id = mp.id
                WHERE mp.conversation_id = %s
            )
            SELECT message, is_system_message, created_at
            FROM conversation_messages
            ORDER BY created_at ASC
        """
        with self._cursor() as cur:
            cur.execute(query, params)
            rows = cur.fetchall()
        return [schemas.ChatHistoryEntry(**row) for row in rows]

    # Mutations -----------------------------------------------------------------
    def record_response(self, prompt_id: schemas.Identifier, response: str) -> None:
        with self._cursor() as cur:
            cur.execute(
                "INSERT INTO manager_responses (prompt_id, response) VALUES (%s, %s)",
                (prompt_id, response),
            )

    def create_article(self, article: ArticlePayload, bot_id: str) -> Any:
        values = [getattr(article, column) for column in ARTICLE_COLUMNS]
        with self._cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO articles ({', '.join(ARTICLE_COLUMNS)}, bot_id)
                VALUES ({', '.join(['%s'] * (len(ARTICLE_COLUMNS) + 1))})
                RETURNING id
                """,
                (*values, bot_id),
            )
            row = cur.fetchone()
        return row["id"] if row else None

    def update_article_status(self, article_id: Any, changes: ArticleChanges) -> Dict[str, Any]:
        _check_status_changes(changes)
        set_clause = ", ".join(f"{column} = %s" for column, _ in changes)
        params = [value for _, value in changes]
        params.append(article_id)
        query = (
            f"UPDATE articles SET {set_clause} WHERE id = %s "
            "RETURNING id, status, updated_at, published_at"
        )
        with self._cursor() as cur:
            cur.execute(query, params)
            row = cur.fetchone()
        if not row:
            raise ArticleNotFoundError(article_id)
        return dict(row)

    def add_article_note(
        self, article_id: Any, content: str, *, created_at: Any, created_by: str
    ) -> None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO article_notes (article_id, content, created_at, created_by)
                VALUES (%s, %s, %s, %s)
                """,
                (article_id, content, created_at, created_by),
            )


class InMemoryKnowledgeRepository:
    """Dictionary-backed repository used by tests and local experiments."""

    def __init__(self, articles: Optional[Dict[Any, Dict[str, Any]]] = None) -> None:
        self.articles: Dict[Any, Dict[str, Any]] = {
            key: dict(value) for key, value in (articles or {}).items()
        }
        self.prompts: List[Dict[str, Any]] = []
        self.responses: List[Dict[str, Any]] = []
        self.notes: List[Dict[str, Any]] = []
        self._ids = count(1)

    def seed_prompt(self, prompt_id: Any, conversation_id: Any, prompt: str, created_at: datetime) -> None:
        self.prompts.append(
            {
                "id": prompt_id,
                "conversation_id": conversation_id,
                "prompt": prompt,
                "created_at": created_at,
            }
        )

    def seed_response(self, prompt_id: Any, response: str, created_at: datetime) -> None:
        self.responses.append(
            {"prompt_id": prompt_id, "response": response, "created_at": created_at}
        )

    def list_chat_history(
        self,
        conversation_id: schemas.Identifier,
        *,
        exclude_prompt_id: Optional[schemas.Identifier] = None,
    ) -> List[schemas.ChatHistoryEntry]:
        prompts = [p for p in self.prompts if p["conversation_id"] == conversation_id]
        prompt_ids = {p["id"] for p in prompts}
        rows = [
            {"message": p["prompt"], "is_system_message": False, "created_at": p["created_at"]}
            for p in prompts
            if exclude_prompt_id is None or p["id"] != exclude_prompt_id
        ]
        rows.extend(
            {"message": r["response"], "is_system_message": True, "created_at": r["created_at"]}
            for r in self.responses
            if r["prompt_id"] in prompt_ids
        )
        rows.sort(key=lambda row: row["created_at"])
        return [schemas.ChatHistoryEntry(**row) for row in rows]

    def record_response(self, prompt_id: schemas.Identifier, response: str) -> None:
        self.seed_response(prompt_id, response, datetime.now(timezone.utc))

    def create_article(self, article: ArticlePayload, bot_id: str) -> Any:
        article_id = f"article-{next(self._ids)}"
        record = {column: getattr(article, column) for column in ARTICLE_COLUMNS}
        record["bot_id"] = bot_id
        self.articles[article_id] = record
        return article_id

    def update_article_status(self, article_id: Any, changes: ArticleChanges) -> Dict[str, Any]:
        _check_status_changes(changes)
        article = self.articles.get(article_id)
        if article is None:
            raise ArticleNotFoundError(article_id)
        article.update(dict(changes))
        return {"id": article_id, **{c: article.get(c) for c in ARTICLE_STATUS_COLUMNS}}

    def add_article_note(
        self, article_id: Any, content: str, *, created_at: Any, created_by: str
    ) -> None:
        self.notes.append(
            {
                "article_id": article_id,
                "content": content,
                "created_at": created_at,
                "created_by": created_by,
            }
        )
