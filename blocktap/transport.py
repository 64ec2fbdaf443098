from __future__ import annotations

import json
import logging
import threading
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests

from blocktap.errors import RequestError
from blocktap.settings import ClientConfig
from blocktap.types import QueryRequest, QueryResult


log = logging.getLogger(__name__)

_BODY_EXCERPT_CHARS = 200


def _excerpt(text: str) -> str:
    text = (text or "").strip()
    if len(text) > _BODY_EXCERPT_CHARS:
        return text[:_BODY_EXCERPT_CHARS] + "..."
    return text


def decode_envelope(text: str, status_code: Optional[int] = None) -> QueryResult:
    """Parse a GraphQL response body into a QueryResult.

    Non-integer JSON numbers are decoded as Decimal so prices never pass
    through float.
    """
    try:
        body = json.loads(text, parse_float=Decimal)
    except ValueError as exc:
        raise RequestError(
            f"Response body is not valid JSON: {_excerpt(text)!r}",
            status_code=status_code,
        ) from exc
    if not isinstance(body, dict) or ("data" not in body and "errors" not in body):
        raise RequestError(
            "Response body is not a GraphQL envelope (expected 'data' or 'errors')",
            status_code=status_code,
        )
    data = body.get("data")
    errors = body.get("errors")
    if data is not None and not isinstance(data, dict):
        raise RequestError("GraphQL 'data' must be an object or null", status_code=status_code)
    if errors is not None and not isinstance(errors, list):
        raise RequestError("GraphQL 'errors' must be a list", status_code=status_code)
    return QueryResult(data=data, errors=errors)


def _graphql_error_envelope(text: str, status_code: int) -> Optional[QueryResult]:
    try:
        result = decode_envelope(text, status_code=status_code)
    except RequestError:
        return None
    return result if result.errors else None


class HttpTransport:
    """Blocking GraphQL-over-HTTP transport built on requests sessions.

    requests.Session is not safe to share between threads, so each worker
    thread gets its own session. A caller-supplied session is used as is,
    with posts serialized behind a lock.
    """

    def __init__(self, config: ClientConfig, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self._shared_session = session
        self._local = threading.local()
        self._lock = threading.Lock()
        self._owned_sessions: List[requests.Session] = []

    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = self.config.api_key
        return headers

    def _thread_session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._lock:
                self._owned_sessions.append(session)
        return session

    def _post(self, request: QueryRequest):
        kwargs = {
            "json": request.payload(),
            "headers": self.headers(),
            "timeout": self.config.timeout_s,
        }
        if self._shared_session is not None:
            with self._lock:
                return self._shared_session.post(self.config.endpoint_url, **kwargs)
        return self._thread_session().post(self.config.endpoint_url, **kwargs)

    def execute(self, request: QueryRequest) -> QueryResult:
        op = request.operation_name or "query"
        started = time.monotonic()
        try:
            resp = self._post(request)
        except requests.RequestException as exc:
            log.warning("blocktap %s failed: %s", op, exc)
            raise RequestError(f"Request to {self.config.endpoint_url} failed: {exc}") from exc

        elapsed_ms = (time.monotonic() - started) * 1000.0
        log.debug("blocktap %s -> HTTP %s in %.1f ms", op, resp.status_code, elapsed_ms)

        if not 200 <= resp.status_code < 300:
            # invalid documents come back as 400 with an errors envelope
            if resp.status_code == 400:
                envelope = _graphql_error_envelope(resp.text, resp.status_code)
                if envelope is not None:
                    return envelope
            raise RequestError(
                f"Unexpected response from {self.config.endpoint_url}: {_excerpt(resp.text)!r}",
                status_code=resp.status_code,
            )
        return decode_envelope(resp.text, status_code=resp.status_code)

    def close(self) -> None:
        with self._lock:
            sessions, self._owned_sessions = self._owned_sessions, []
        for session in sessions:
            session.close()
