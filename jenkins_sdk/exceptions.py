"""
Jenkins SDK exceptions
"""


class JenkinsError(Exception):
    """Base exception for all Jenkins SDK errors"""

    pass


class ConfigurationError(JenkinsError):
    """Raised when a client or profile is missing required settings"""

    pass


class ProtocolError(JenkinsError):
    """Raised when the server answers with an unexpected status"""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthenticationError(ProtocolError):
    """Raised when credentials are rejected (401)"""

    def __init__(self, message: str, body: str = ""):
        super().__init__(message, status_code=401, body=body)


class AuthorizationError(ProtocolError):
    """Raised when a request is forbidden (403) and no crumb can fix it"""

    def __init__(self, message: str, body: str = ""):
        super().__init__(message, status_code=403, body=body)


class NotFoundError(ProtocolError):
    """Raised when resource is not found (404)"""

    def __init__(self, message: str, body: str = ""):
        super().__init__(message, status_code=404, body=body)


class DecodeError(JenkinsError):
    """Raised when a response body is not the JSON we asked for"""

    pass


class NetworkError(JenkinsError):
    """Raised when the transport fails before a response arrives"""

    pass


class RequestTimeoutError(NetworkError, TimeoutError):
    """Raised when a request does not complete before its deadline"""

    pass


class RateLimitError(RequestTimeoutError):
    """Raised when no rate token frees up before the request deadline"""

    pass
