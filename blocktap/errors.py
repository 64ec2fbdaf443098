from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class BlocktapError(Exception):
    """Base class for everything raised by this package."""


class RequestError(BlocktapError):
    """The request could not be completed or the server rejected it.

    Covers network failures, non-2xx responses, undecodable bodies and
    GraphQL ``errors`` seen by the typed client methods.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        errors: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors: List[Dict[str, Any]] = list(errors or [])

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class NotFoundError(RequestError):
    """A singular lookup resolved to null."""


class ValidationError(BlocktapError, ValueError):
    """Arguments rejected client-side, before any network call."""
