"""
Error taxonomy for backend calls
"""

from typing import Any, Optional


class GatewayError(Exception):
    """Base class for every failed backend call"""

    def __init__(self, message: str, path: Optional[str] = None, body: Any = None):
        super().__init__(message)
        self.path = path
        self.body = body

    def detail(self, default: str) -> str:
        """``detail`` field of the error body, as sent by the auth service"""
        if isinstance(self.body, dict) and self.body.get('detail'):
            return str(self.body['detail'])
        return default


class Unauthorized(GatewayError):
    """Credential missing, expired or rejected (HTTP 401/403)"""


class ServerError(GatewayError):
    """Non-2xx response that is not an authorization failure"""

    def __init__(self, message: str, path: Optional[str] = None, body: Any = None,
                 status: Optional[int] = None):
        super().__init__(message, path, body)
        self.status = status


class NetworkError(GatewayError):
    """Transport failure: connection refused, timeout, DNS..."""


class MalformedPayload(GatewayError):
    """2xx response whose body could not be decoded as JSON"""


class AuthExpired(Exception):
    """Raised by a poll when any source reports the session is no longer valid"""

    def __init__(self, source: str):
        super().__init__(f"Session expired (reported by '{source}')")
        self.source = source


class LoginFailed(Exception):
    """Login or signup was rejected by the auth service"""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail
