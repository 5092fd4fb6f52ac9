# mealhub/client/errors.py
"""
Client-side error taxonomy.

`classify` is the only place where raw transport / HTTP failures become one
of the errors below. The tracker and the state machine never see raw errors.
"""
import logging

import httpx

logger = logging.getLogger(__name__)

# ApiError.code for a success response whose body could not be read
INVALID_RESPONSE = "INVALID_RESPONSE"


class ApiError(Exception):
    """Non-success response from the API (HTTP error or `success: false`)."""

    def __init__(self, status_code: int, code: str | None, message: str):
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(f"{status_code} {code or ''}: {message}".strip())


class OrderClientError(Exception):
    """Base for every classified failure; `retryable` drives the retry UI."""

    retryable = False

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ValidationError(OrderClientError):
    """Bad input. Fixed by the user, never retried automatically."""


class ActionInProgress(ValidationError):
    """A mutation on this order is already in flight from this view."""


class InvalidTransitionError(OrderClientError):
    """Status change the state machine (client or server) refuses."""


class AuthorizationError(OrderClientError):
    """Not signed in, or acting on an order that is not yours."""


class NotFoundError(OrderClientError):
    """Order id does not resolve for this caller."""


class TransientError(OrderClientError):
    """Network failure, timeout or 5xx. Safe to retry."""

    retryable = True


def classify(exc: Exception) -> OrderClientError:
    """
    Map a raw failure onto the taxonomy.

      - already classified        -> unchanged
      - any httpx request failure -> TransientError
        (transport, timeout, undecodable body, redirect loop)
      - ApiError 401 / 403        -> AuthorizationError
      - ApiError 404              -> NotFoundError
      - ApiError 409              -> InvalidTransitionError
      - ApiError 400 / 422        -> ValidationError
      - ApiError 408 / 429 / 5xx  -> TransientError

    Anything else is a programming error and is re-raised.
    """
    if isinstance(exc, OrderClientError):
        return exc

    if isinstance(exc, httpx.TimeoutException):
        return TransientError("The request timed out. Please try again.")

    if isinstance(exc, httpx.TransportError):
        return TransientError("Network error. Please check your connection.")

    if isinstance(exc, httpx.RequestError):
        logger.warning("Request failed: %s", exc)
        return TransientError("The server response could not be read. Please try again.")

    if isinstance(exc, ApiError):
        code = exc.status_code
        if code in (401, 403):
            cls = AuthorizationError
        elif code == 404:
            cls = NotFoundError
        elif code == 409:
            cls = InvalidTransitionError
        elif code in (400, 422):
            cls = ValidationError
        elif code in (408, 429) or code >= 500:
            cls = TransientError
        else:
            logger.warning("Unexpected API status %s: %s", code, exc.message)
            cls = TransientError
        return cls(exc.message, status_code=code)

    raise exc
