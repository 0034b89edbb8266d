"""Knowledge-base flow: manager prompts that write and curate articles."""

from . import schemas
from .repository import (
    ArticleNotFoundError,
    InMemoryKnowledgeRepository,
    PostgresKnowledgeRepository,
)
from .service import ManagerPromptService

__all__ = [
    "ArticleNotFoundError",
    "InMemoryKnowledgeRepository",
    "ManagerPromptService",
    "PostgresKnowledgeRepository",
    "schemas",
]
