"""Double-submit cookie CSRF protection."""
from __future__ import annotations

import hmac
import secrets
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Tuple

from ltoc.errors import CSRFTokenInvalid
from ltoc.utils import matches_prefix

CSRF_COOKIE_NAME = "csrf-token"
CSRF_HEADER_NAME = "x-csrf-token"
CSRF_COOKIE_MAX_AGE = 60 * 60 * 24
PROTECTED_METHODS = frozenset({"POST", "PUT", "DELETE", "PATCH"})


def generate_token() -> str:
    """Return a new unguessable token."""

    return secrets.token_urlsafe(32)


def tokens_match(supplied: Optional[str], expected: Optional[str]) -> bool:
    """Compare two tokens in constant time; missing values never match."""

    if not supplied or not expected:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


@dataclass(frozen=True)
class CookieSpec:
    """Attributes for the ``csrf-token`` cookie, in ``Response.set_cookie`` terms."""

    value: str
    secure: bool
    key: str = CSRF_COOKIE_NAME
    max_age: int = CSRF_COOKIE_MAX_AGE
    path: str = "/"
    httponly: bool = True
    samesite: str = "strict"


class CSRFGuard:
    """Issues the anti-forgery cookie and validates it on state-changing methods.

    Tokens are issued once per cookie lifetime and never rotated.
    """

    def __init__(self, excluded_paths: Iterable[str], *, secure_cookie: bool = False) -> None:
        self.excluded_paths: Tuple[str, ...] = tuple(excluded_paths)
        self.secure_cookie = secure_cookie

    def is_excluded(self, path: str) -> bool:
        return matches_prefix(path, self.excluded_paths)

    def protect(
        self,
        method: str,
        path: str,
        cookies: Mapping[str, str],
        headers: Mapping[str, str],
    ) -> Optional[CookieSpec]:
        """Check one request.

        Returns the cookie to set when the client has no token yet, ``None``
        when nothing needs to be issued. Raises :class:`CSRFTokenInvalid`
        when a protected method carries a missing or mismatched header token.
        """

        if self.is_excluded(path):
            return None

        cookie_token = cookies.get(CSRF_COOKIE_NAME)
        if not cookie_token:
            return CookieSpec(value=generate_token(), secure=self.secure_cookie)

        if method.upper() not in PROTECTED_METHODS:
            return None

        if not tokens_match(headers.get(CSRF_HEADER_NAME), cookie_token):
            raise CSRFTokenInvalid()
        return None
