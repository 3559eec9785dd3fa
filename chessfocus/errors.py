"""Error taxonomy shared by the fetchers, the LLM client and the routes."""
import logging

import httpx

logger = logging.getLogger(__name__)


class ChessFocusError(Exception):
    """Base class for every error surfaced to a caller."""


class InvalidInputError(ChessFocusError, ValueError):
    """Bad or empty user input. Never retried."""


class RemoteError(ChessFocusError):
    """An upstream chess platform call failed."""


class RemoteNotFound(RemoteError):
    """Upstream 404: the user or game does not exist publicly."""


class RemoteRateLimited(RemoteError):
    """Upstream 429."""


class RemoteUnavailable(RemoteError):
    """Any other non-2xx answer, network error or timeout."""


class MalformedUpstreamResponse(RemoteUnavailable):
    """Upstream answered, but not in a shape we can use."""


class NoGamesFound(ChessFocusError):
    """Upstream reachable, but the result set is empty."""


class LLMCallFailure(ChessFocusError):
    """The generation call itself failed (auth, quota, network)."""

    MISSING_KEY = "missing_key"
    INVALID_KEY = "invalid_key"
    RATE_LIMITED = "rate_limited"
    GENERIC = "generic"

    def __init__(self, message: str, reason: str = GENERIC):
        super().__init__(message)
        self.reason = reason


class LLMResponseInvalid(ChessFocusError):
    """The model replied with empty, non-JSON or schema-incomplete content."""


def check_response(response: httpx.Response, what: str) -> httpx.Response:
    """Raise the matching taxonomy error for a non-2xx response."""
    if response.is_success:
        return response

    status = response.status_code
    preview = response.text[:200] if response.text else ""
    logger.warning("%s failed with status %s: %s", what, status, preview)

    if status == 404:
        raise RemoteNotFound(f"{what}: not found (404)")
    if status == 429:
        raise RemoteRateLimited(f"{what}: rate limited (429), try again later")
    raise RemoteUnavailable(f"{what}: upstream error ({status})")


def transport_error(error: httpx.HTTPError, what: str) -> RemoteUnavailable:
    """Wrap an httpx transport failure (timeout, refused connection...)."""
    logger.warning("%s failed: %s: %s", what, type(error).__name__, error)
    if isinstance(error, httpx.TimeoutException):
        return RemoteUnavailable(f"{what}: timed out")
    return RemoteUnavailable(f"{what}: {type(error).__name__}")

