"""HTTP client for the external reasoning backend."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any
from urllib.parse import urljoin

import requests

from ..actions.models import Action, parse_actions
from ..core.settings import get_settings

USER_MESSAGE_PATH = "/api/v1/user-message"
MANAGER_PROMPT_PATH = "/api/v1/manager-prompt"


class BackendError(RuntimeError):
    """Base class for every failed call to the reasoning backend."""


class BackendAPIError(BackendError):
    """The backend answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"API responded with status: {status_code}, body: {body}")
        self.status_code = status_code
        self.body = body


class BackendTimeoutError(BackendError):
    """The backend did not answer within the configured timeout."""


class BackendUnavailableError(BackendError):
    """The backend could not be reached."""


class BackendResponseError(BackendError):
    """The backend answered successfully but the body is unusable."""


@dataclass
class BackendReply:
    text: str
    actions: list[Action] = field(default_factory=list)
    escalate: bool = False


def parse_reply(data: Any) -> BackendReply:
    """Convert a decoded backend body into a :class:`BackendReply`.

    ``actions`` defaults to an empty list when it is absent or not a list. A
    body without a ``response`` string is rejected.
    """

    if not isinstance(data, dict) or not isinstance(data.get("response"), str):
        raise BackendResponseError("Backend reply is missing a 'response' text")
    raw_actions = data.get("actions")
    if not isinstance(raw_actions, list):
        raw_actions = []
    return BackendReply(
        text=data["response"],
        actions=parse_actions(raw_actions),
        escalate=bool(data.get("escalate")),
    )


class ReasoningBackendClient:
    """Issue single, non-retried POST calls to the reasoning backend."""

    def __init__(
        self,
        base_url: str,
        *,
        session: requests.Session | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(__name__)

    def send_user_message(
        self, messages: list[dict[str, Any]], *, timeout: float
    ) -> BackendReply:
        return self._post(USER_MESSAGE_PATH, {"messages": messages}, timeout=timeout)

    def send_manager_prompt(
        self, body: dict[str, Any], *, timeout: float
    ) -> BackendReply:
        return self._post(MANAGER_PROMPT_PATH, body, timeout=timeout)

    def _post(self, path: str, body: dict[str, Any], *, timeout: float) -> BackendReply:
        url = urljoin(self.base_url, path.lstrip("/"))
        self.logger.info("Calling backend API at: %s", url)
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug("Request body: %s", json.dumps(body, indent=2))
        try:
            response = self.session.post(
                url,
                json=body,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                timeout=timeout,
            )
        except requests.Timeout as exc:
            raise BackendTimeoutError(
                f"Backend call to {path} timed out after {timeout:g}s"
            ) from exc
        except requests.RequestException as exc:
            raise BackendUnavailableError(f"Backend call to {path} failed: {exc}") from exc

        self.logger.info("API response status: %s", response.status_code)
        if not response.ok:
            self.logger.error(
                "API error response: status=%s body=%s",
                response.status_code,
                response.text,
            )
            raise BackendAPIError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as exc:
            raise BackendResponseError("Backend returned a non-JSON body") from exc
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug("API response data: %s", json.dumps(data, indent=2))
        return parse_reply(data)


@lru_cache(maxsize=1)
def get_backend_client() -> ReasoningBackendClient:
    """Process-wide client so every request reuses one HTTP session."""

    return ReasoningBackendClient(get_settings().backend_url)
