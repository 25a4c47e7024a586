"""MediaWiki Action API client used for Commons queries and page publishing.

Every request goes through a single :class:`requests.Session` carrying the
bot user agent.  Query results are consumed through :meth:`MediaWikiClient.query`
which follows ``continue`` blocks until the API reports no further pages.
Transport failures, non-success HTTP statuses, undecodable bodies and API
``error`` objects are all surfaced as :class:`ServiceError` so callers have a
single fatal error type to handle.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator

import requests

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "ProsperoBot/Collections/1.0"
COMMONS_API_URL = "https://commons.wikimedia.org/w/api.php"


class ServiceError(RuntimeError):
    """Raised when an external service fails or reports an error."""


@dataclass
class MediaWikiConfig:
    """Connection settings for one MediaWiki endpoint."""

    api_url: str
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float | None = 30.0


def build_session(user_agent: str = DEFAULT_USER_AGENT) -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent, "Accept": "application/json"})
    return session


def decode_payload(response: Any, source: str) -> Dict[str, Any]:
    """Return the JSON object carried by ``response`` or raise :class:`ServiceError`."""

    try:
        response.raise_for_status()
    except requests.RequestException as exc:
        raise ServiceError(f"{source} answered with an error status: {exc}") from exc
    try:
        payload = response.json()
    except ValueError as exc:
        raise ServiceError(f"{source} returned a non-JSON response") from exc
    if not isinstance(payload, Mapping):
        raise ServiceError(f"{source} returned an unexpected payload type {type(payload).__name__}")
    return dict(payload)


class MediaWikiClient:
    """Small client for the subset of the Action API this project needs."""

    def __init__(self, config: MediaWikiConfig, session: Any | None = None) -> None:
        self.config = config
        self.session = session if session is not None else build_session(config.user_agent)

    @property
    def api_url(self) -> str:
        return self.config.api_url

    def _request(self, method: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        request_params = {"format": "json", "formatversion": "2", **params}
        try:
            if method == "GET":
                response = self.session.get(
                    self.api_url, params=request_params, timeout=self.config.timeout
                )
            else:
                response = self.session.post(
                    self.api_url, data=request_params, timeout=self.config.timeout
                )
        except requests.RequestException as exc:
            raise ServiceError(f"Request to {self.api_url} failed: {exc}") from exc
        payload = decode_payload(response, self.api_url)
        error = payload.get("error")
        if error:
            if isinstance(error, Mapping):
                code = error.get("code", "unknown")
                info = error.get("info", "")
                raise ServiceError(f"{self.api_url} reported error '{code}': {info}")
            raise ServiceError(f"{self.api_url} reported error: {error}")
        return payload

    def get(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        return self._request("GET", params)

    def post(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        return self._request("POST", params)

    def query(
        self,
        params: Mapping[str, Any],
        *,
        checkpoint: Callable[[], None] | None = None,
    ) -> Iterator[Dict[str, Any]]:
        """Yield every result page of an ``action=query`` request.

        ``checkpoint`` runs before each outbound call and may raise to stop
        the iteration early.
        """

        base: Dict[str, Any] = {"action": "query", **params}
        base.setdefault("continue", "")
        request_params = base
        while True:
            if checkpoint is not None:
                checkpoint()
            payload = self.get(request_params)
            yield payload
            continuation = payload.get("continue")
            if not continuation:
                break
            request_params = {**base, **continuation}

    def token(self, kind: str = "csrf") -> str:
        payload = self.get({"action": "query", "meta": "tokens", "type": kind})
        tokens = (payload.get("query") or {}).get("tokens") or {}
        value = tokens.get(f"{kind}token")
        if not value:
            raise ServiceError(f"{self.api_url} did not return a {kind} token")
        return str(value)

    def login(self, username: str, password: str) -> None:
        logger.info("Will connect to %s with account %s", self.api_url, username)
        login_token = self.token("login")
        payload = self.post(
            {
                "action": "login",
                "lgname": username,
                "lgpassword": password,
                "lgtoken": login_token,
            }
        )
        result = payload.get("login") or {}
        if result.get("result") != "Success":
            reason = result.get("reason") or result.get("result") or "unknown reason"
            raise ServiceError(f"Login to {self.api_url} as {username} failed: {reason}")

    def edit_section(
        self,
        title: str,
        section: str,
        text: str,
        *,
        summary: str,
        minor: bool = False,
    ) -> Dict[str, Any]:
        """Replace one numbered section of ``title`` with ``text``."""

        params: Dict[str, Any] = {
            "action": "edit",
            "title": title,
            "section": str(section),
            "text": text,
            "summary": summary,
            "token": self.token("csrf"),
        }
        if minor:
            params["minor"] = "1"
        else:
            params["notminor"] = "1"
        payload = self.post(params)
        result = payload.get("edit") or {}
        if result.get("result") != "Success":
            raise ServiceError(f"Edit of {title} section {section} failed: {result or payload}")
        return dict(result)

    def logout(self) -> None:
        self.post({"action": "logout", "token": self.token("csrf")})


__all__ = [
    "COMMONS_API_URL",
    "DEFAULT_USER_AGENT",
    "MediaWikiClient",
    "MediaWikiConfig",
    "ServiceError",
    "build_session",
    "decode_payload",
]
