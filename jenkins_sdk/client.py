"""
Jenkins SDK Client
Authenticated, rate-limited access to the Jenkins remote API
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests

from .crumb import CRUMB_ISSUER_PATH, CrumbNegotiator
from .endpoints import BuildsAPI, JobsAPI, NodesAPI, PipelinesAPI, QueueAPI, ServerAPI, ViewsAPI
from .exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    DecodeError,
    NetworkError,
    NotFoundError,
    ProtocolError,
    RequestTimeoutError,
)
from .models import RootInfo
from .ratelimit import RateLimiter

logger = logging.getLogger(__name__)

READ_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

# Error bodies are kept for diagnostics, not for display
MAX_ERROR_BODY = 500

CONNECTION_TEST_TIMEOUT = 10.0

_CHUNK_SIZE = 8192


@dataclass(frozen=True)
class SessionConfig:
    """Connection parameters of one client; fixed for its lifetime."""

    base_url: str
    username: str
    token: str
    timeout: float = 15.0
    rate_limit_rps: float = 5.0
    verify_tls: bool = True

    def __post_init__(self) -> None:
        missing = [
            name for name in ("base_url", "username", "token")
            if not str(getattr(self, name) or "").strip()
        ]
        if missing:
            raise ConfigurationError(f"Missing connection settings: {', '.join(missing)}")
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        if self.rate_limit_rps <= 0:
            raise ConfigurationError(f"rate_limit_rps must be positive, got {self.rate_limit_rps}")
        object.__setattr__(self, "base_url", self.base_url.strip().rstrip("/"))


class JenkinsClient:
    """
    Main Jenkins API client

    Usage:
        client = JenkinsClient(
            base_url='https://jenkins.example.com',
            username='alice',
            token='api-token',
        )

        # List jobs
        jobs = client.jobs.list()

    Every attempt goes through one shared rate limiter. Mutating requests
    refused with 403 trigger a one-time CSRF crumb negotiation and are
    retried once with the crumb.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        token: str,
        timeout: float = 15.0,
        rate_limit_rps: float = 5.0,
        verify_tls: bool = True,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = SessionConfig(
            base_url=base_url,
            username=username,
            token=token,
            timeout=timeout,
            rate_limit_rps=rate_limit_rps,
            verify_tls=verify_tls,
        )
        self._clock = clock
        self.session = session if session is not None else requests.Session()
        self.session.auth = (self.config.username, self.config.token)
        self.session.verify = self.config.verify_tls
        self.session.headers['Accept'] = 'application/json'

        self.limiter = RateLimiter(self.config.rate_limit_rps, clock=clock, sleep=sleep)
        self.crumb = CrumbNegotiator(self._fetch_crumb_issuer)

        # Initialize API endpoints
        self.server = ServerAPI(self)
        self.views = ViewsAPI(self)
        self.jobs = JobsAPI(self)
        self.builds = BuildsAPI(self)
        self.queue = QueueAPI(self)
        self.nodes = NodesAPI(self)
        self.pipelines = PipelinesAPI(self)

        logger.debug(
            "Jenkins client created for %s (user %s, timeout %ss, %s req/s, verify_tls=%s)",
            self.config.base_url,
            self.config.username,
            self.config.timeout,
            self.config.rate_limit_rps,
            self.config.verify_tls,
        )

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def deadline(self, timeout: Optional[float] = None) -> float:
        """Clock value ``timeout`` seconds from now (the client default if None).

        Pass the result as ``deadline=`` to several calls to give them one
        shared time budget.
        """
        return self._clock() + (timeout if timeout is not None else self.config.timeout)

    def remaining(self, deadline: float) -> float:
        """Seconds left before ``deadline`` (negative once it has passed)."""
        return deadline - self._clock()

    def fetch_json(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
    ) -> Any:
        """Make an API call and decode its JSON body.

        Returns:
            The decoded value, or None for an empty (e.g. 204) response.

        Raises:
            DecodeError: The body is not valid JSON.
            ProtocolError: Unexpected status (or one of its subclasses).
            NetworkError: Transport failure or deadline exceeded.
        """
        response = self.request(method, path, body=body, timeout=timeout, deadline=deadline)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f'Malformed JSON from {method} {path}: {e}') from e

    def fetch_text(
        self,
        method: str,
        path: str,
        max_bytes: int,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
    ) -> str:
        """Make an API call and return at most ``max_bytes`` of its body as text."""
        response = self.request(method, path, timeout=timeout, deadline=deadline, stream=True)
        chunks: list[bytes] = []
        size = 0
        try:
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                chunk = chunk[:max_bytes - size]
                chunks.append(chunk)
                size += len(chunk)
                if size >= max_bytes:
                    break
        except requests.RequestException as e:
            raise NetworkError(f'Reading {path} failed: {e}') from e
        finally:
            response.close()

        logger.debug('Text response from %s: %d bytes', path, size)
        return b''.join(chunks).decode('utf-8', errors='replace')

    def test_connection(self) -> RootInfo:
        """Fetch the server root with a short timeout."""
        logger.info('Testing connection to %s', self.base_url)
        start = time.monotonic()
        try:
            info = self.server.info(timeout=CONNECTION_TEST_TIMEOUT)
        except Exception as e:
            logger.error('Connection test failed after %.2fs: %s', time.monotonic() - start, e)
            raise
        logger.info(
            'Connection test succeeded in %.2fs (mode=%s, executors=%s, useCrumbs=%s)',
            time.monotonic() - start,
            info.mode,
            info.num_executors,
            info.use_crumbs,
        )
        return info

    def _fetch_crumb_issuer(self, deadline: Optional[float] = None) -> Any:
        return self.fetch_json('GET', CRUMB_ISSUER_PATH, deadline=deadline)

    def request(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
        stream: bool = False,
    ) -> requests.Response:
        """Run one logical request and return the (2xx) response.

        Covers the attempt, the crumb retry for a refused mutating request
        and the status check. Everything, including the crumb issuer call,
        shares one deadline: ``deadline`` if given, else ``timeout`` (or the
        client default) from now.

        Raises:
            ProtocolError: Non-2xx status (or one of its subclasses).
            NetworkError: Transport failure or deadline exceeded.
        """
        method = method.upper()
        if deadline is None:
            deadline = self.deadline(timeout)
        mutating = method not in READ_METHODS

        headers = self.crumb.header() if mutating else {}
        response = self._attempt(method, path, body, headers, deadline, stream)

        # Crumb negotiation and the retry stay within the request's deadline
        if response.status_code == 403 and mutating and self.remaining(deadline) > 0:
            retry_headers = self.crumb.negotiate(sent_with_crumb=bool(headers), deadline=deadline)
            if retry_headers is not None:
                response.close()
                logger.info('Retrying %s %s with CSRF crumb', method, path)
                response = self._attempt(method, path, body, retry_headers, deadline, stream)

        self._check_status(response, method, path)
        return response

    def _attempt(
        self,
        method: str,
        path: str,
        body: Optional[Any],
        headers: dict[str, str],
        deadline: float,
        stream: bool,
    ) -> requests.Response:
        self.limiter.acquire(deadline)
        remaining = self.remaining(deadline)
        url = f'{self.base_url}{path}'
        if remaining <= 0:
            raise RequestTimeoutError(f'Request to {url} timed out: deadline passed')

        logger.debug('%s %s', method, url)
        try:
            return self.session.request(
                method,
                url,
                json=body,
                headers=headers or None,
                timeout=remaining,
                stream=stream,
            )
        except requests.Timeout as e:
            raise RequestTimeoutError(f'Request to {url} timed out after {remaining:.1f}s') from e
        except requests.RequestException as e:
            logger.error('%s %s failed: %s', method, url, e)
            raise NetworkError(f'Request to {url} failed: {e}') from e

    def _check_status(self, response: requests.Response, method: str, path: str) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return

        body = response.text[:MAX_ERROR_BODY]
        response.close()
        logger.error('%s %s returned %s', method, path, status)

        if status == 401:
            raise AuthenticationError('Authentication failed: invalid credentials', body=body)
        if status == 403:
            raise AuthorizationError(f'Access forbidden for {method} {path}: check permissions', body=body)
        if status == 404:
            raise NotFoundError(f'Not found: {path}', body=body)
        raise ProtocolError(f'Unexpected status {status} for {method} {path}', status_code=status, body=body)

    def close(self):
        """Close the session"""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
