"""Sequential dispatch of parsed actions to mutation handlers."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from .models import Action, SearchAction, UnknownAction

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


def log_search_results(action: SearchAction) -> None:
    """Search signals change nothing; their results are only logged."""

    logger.info("Search results for %s: %s", action.kind, action.results)


# Shared by both flows.
SEARCH_HANDLERS: dict[str, Handler] = {
    "search_kb": log_search_results,
    "search_info": log_search_results,
}


class TargetNotFoundError(RuntimeError):
    """Raised when a mutation targets a ticket or article that does not exist."""


class ActionDispatcher:
    """Run each action's handler in list order.

    Kinds without a handler are logged and skipped. Handler failures are not
    caught: the first failing mutation aborts the remaining actions and the
    enclosing request.
    """

    def __init__(self, handlers: Mapping[str, Handler], *, flow: str) -> None:
        self._handlers = dict(handlers)
        self._flow = flow

    @property
    def vocabulary(self) -> frozenset[str]:
        return frozenset(self._handlers)

    def dispatch(self, actions: Iterable[Action]) -> int:
        """Apply ``actions`` and return how many reached a handler."""

        processed = 0
        for action in actions:
            handler = None
            if not isinstance(action, UnknownAction):
                handler = self._handlers.get(action.kind)
            if handler is None:
                logger.warning("Unknown action in %s flow: %r", self._flow, action.kind)
                continue
            logger.info("Processing action: %s", action.kind)
            handler(action)
            processed += 1
        return processed
