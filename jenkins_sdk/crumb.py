"""CSRF crumb negotiation.

Jenkins instances with CSRF protection reject mutating requests (403) that
lack a "crumb" header. The crumb is fetched lazily: nothing is asked of the
issuer until the first mutating request is refused, then the issuer is
queried exactly once per client and its answer is reused for the rest of
the session.

States:
    UNTESTED    -> no mutating request has been refused yet
    FETCHING    -> one thread is querying the issuer
    VALID       -> crumb cached, attached to every mutating request
    UNAVAILABLE -> the issuer failed; 403s are final
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from .exceptions import DecodeError, JenkinsError
from .lock_utils import ReadWriteLock, read_locked, write_locked

logger = logging.getLogger(__name__)

CRUMB_ISSUER_PATH = "/crumbIssuer/api/json"


class CrumbState(Enum):
    UNTESTED = "untested"
    FETCHING = "fetching"
    VALID = "valid"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class Crumb:
    field: str
    value: str

    @classmethod
    def from_dict(cls, data: Any) -> "Crumb":
        """Parse the issuer's ``{crumb, crumbRequestField}`` answer."""
        if not isinstance(data, dict):
            raise DecodeError(f"crumb issuer returned {type(data).__name__}, expected object")
        value = data.get("crumb")
        field = data.get("crumbRequestField")
        if not value or not field:
            raise DecodeError("crumb issuer response missing crumb or crumbRequestField")
        return cls(field=str(field), value=str(value))

    def as_header(self) -> dict[str, str]:
        return {self.field: self.value}


class CrumbNegotiator:
    """Owns the crumb cache of one client.

    Args:
        fetch_issuer: Performs the GET against the crumb issuer and returns
            the decoded JSON. Called with the deadline of the refused
            request, so the issuer call spends that request's time budget.
            It goes through the client's normal request path, so it is
            rate limited like any other call.
    """

    def __init__(self, fetch_issuer: Callable[[Optional[float]], Any]):
        self._fetch_issuer = fetch_issuer
        self._lock = ReadWriteLock()
        self._state = CrumbState.UNTESTED
        self._crumb: Crumb | None = None

    @property
    def state(self) -> CrumbState:
        with read_locked(self._lock):
            return self._state

    def header(self) -> dict[str, str]:
        """Header to attach to a mutating request (empty unless VALID)."""
        with read_locked(self._lock):
            if self._state is CrumbState.VALID and self._crumb is not None:
                return self._crumb.as_header()
            return {}

    def negotiate(self, sent_with_crumb: bool, deadline: Optional[float] = None) -> dict[str, str] | None:
        """React to a 403 on a mutating request.

        Args:
            sent_with_crumb: Whether the refused attempt already carried the
                cached crumb.
            deadline: Deadline of the refused request, handed to the issuer
                call.

        Returns:
            The header to retry with, or None when the 403 is final.
        """
        with write_locked(self._lock):
            state = self._state
            if state is CrumbState.VALID:
                if sent_with_crumb or self._crumb is None:
                    return None
                # Sent before another thread cached the crumb
                return self._crumb.as_header()
            if state is not CrumbState.UNTESTED:
                logger.debug("403 with crumb state %s, not negotiating", state.value)
                return None
            self._state = CrumbState.FETCHING

        logger.info("Mutating request refused, fetching CSRF crumb")
        try:
            crumb = Crumb.from_dict(self._fetch_issuer(deadline))
        except JenkinsError as exc:
            logger.warning("Crumb issuer unavailable: %s", exc)
            with write_locked(self._lock):
                self._state = CrumbState.UNAVAILABLE
            return None

        with write_locked(self._lock):
            self._crumb = crumb
            self._state = CrumbState.VALID
        logger.info("CSRF crumb cached (field %s)", crumb.field)
        return crumb.as_header()
