"""Errors raised by the OAuth login flow."""

from request_context import EndpointResult


class OAuthError(Exception):
    """A flow failure that maps to a 400 plain-text response."""

    status_code = 400
    default_message = "Bad Request"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def body(self) -> str:
        return self.message

    def as_result(self) -> EndpointResult:
        return EndpointResult(self.status_code, {"Content-Type": "text/plain"}, self.body)


class UnsupportedOperation(OAuthError):
    """The provider has no endpoint configured for the requested action."""

    default_message = "Method not supported."


class StateMismatch(OAuthError):
    default_message = "Invalid state."


class ProviderError(OAuthError):
    """The provider answered with an OAuth error object."""

    def __init__(self, error: str):
        self.error = error
        super().__init__(error)

    @property
    def body(self) -> str:
        return f"Error: {self.error}"


class InvalidRequest(Exception):
    """The request carries no remote address / URI metadata."""


class TransportError(Exception):
    """Talking to the provider failed (network, timeout, undecodable body)."""
