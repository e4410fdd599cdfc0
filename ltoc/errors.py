"""Exceptions raised by the request guard."""
from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Optional

if TYPE_CHECKING:  # pragma: no cover
    from ltoc.rate_limit import RateLimitDecision


class ConfigurationError(ValueError):
    """Raised when an environment value cannot be parsed."""


class SecurityRejection(RuntimeError):
    """Base class for checks that terminate a request with an HTTP error."""

    status_code = 400
    body = "Bad Request"

    def __init__(self, detail: Optional[str] = None, headers: Optional[Dict[str, str]] = None) -> None:
        super().__init__(detail or self.body)
        self.headers: Dict[str, str] = dict(headers or {})


class RateLimitExceeded(SecurityRejection):
    """The client used up its quota for the current window."""

    status_code = 429
    body = "Too Many Requests"

    def __init__(self, decision: "RateLimitDecision") -> None:
        super().__init__(
            f"rate limit of {decision.limit} exceeded, retry in {decision.retry_after}s",
            headers=decision.headers(),
        )
        self.decision = decision

    @property
    def retry_after(self) -> int:
        return self.decision.retry_after or 0


class CSRFTokenInvalid(SecurityRejection):
    """A state-changing request arrived without a matching anti-forgery token."""

    status_code = 403
    body = "Invalid CSRF token"
