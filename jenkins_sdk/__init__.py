"""
Jenkins SDK for Python

Authenticated, rate-limited access to the Jenkins remote API.

Example:
    >>> from jenkins_sdk import JenkinsClient
    >>>
    >>> client = JenkinsClient(
    ...     base_url='https://jenkins.example.com',
    ...     username='alice',
    ...     token='api-token',
    ...     rate_limit_rps=5,
    ... )
    >>>
    >>> # Check the server is reachable
    >>> info = client.test_connection()
    >>>
    >>> # Browse jobs and builds
    >>> jobs = client.jobs.list()
    >>> detail = client.jobs.get('team/app')
    >>> log = client.builds.console_log('team/app', 42, max_bytes=200_000)
"""

from .client import JenkinsClient, SessionConfig
from .crumb import CrumbState
from .exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    DecodeError,
    JenkinsError,
    NetworkError,
    NotFoundError,
    ProtocolError,
    RateLimitError,
    RequestTimeoutError,
)
from .ratelimit import RateLimiter

__version__ = "0.1.0"
__all__ = [
    "JenkinsClient",
    "SessionConfig",
    "CrumbState",
    "RateLimiter",
    "JenkinsError",
    "ConfigurationError",
    "ProtocolError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "DecodeError",
    "NetworkError",
    "RequestTimeoutError",
    "RateLimitError",
]
