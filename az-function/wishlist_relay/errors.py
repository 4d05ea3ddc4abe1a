from typing import Any, Dict, Optional


class RelayError(Exception):
    """Base for failures that map onto a JSON error response."""

    status_code = 500
    error = "Server error"

    def __init__(self, error: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(error or self.error)
        if error:
            self.error = error
        self.reason = reason

    def public_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.reason:
            body["reason"] = self.reason
        return body


class ClientError(RelayError):
    status_code = 400
    error = "invalid_request"


class AuthorizationError(RelayError):
    status_code = 403
    error = "forbidden"


class ConfigurationError(RelayError):
    status_code = 503
    error = "server_misconfigured"


class UpstreamError(RelayError):
    """Shopify call failed. Status and body are kept for logs, never returned to callers."""

    status_code = 500
    error = "upstream_error"

    def __init__(
        self,
        cause: str,
        upstream_status: Optional[int] = None,
        upstream_body: Optional[str] = None,
        error: Optional[str] = None,
    ):
        super().__init__(error)
        self.cause = cause
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body

    def __str__(self) -> str:
        if self.upstream_status is not None:
            return f"{self.cause} (status {self.upstream_status})"
        return self.cause
