"""Token cookie helpers.

The ID token issued at sign-in travels in a cookie named ``token``.
"""

from __future__ import annotations

from typing import Any
from typing import Mapping
from typing import Optional

TOKEN_COOKIE = "token"
_COOKIE_ATTRIBUTES = "SameSite=None; Secure; HttpOnly; Path=/"


def get_header(headers: Mapping[str, Any], name: str) -> str:
    """Get a header value case-insensitively."""
    for key, value in headers.items():
        if key.lower() == name.lower():
            return str(value)
    return ""


def parse_cookies(event: Mapping[str, Any]) -> dict[str, str]:
    """Parse request cookies into a name -> value map.

    Reads the ``Cookie`` header of REST API events and the ``cookies`` list
    of HTTP API (payload v2) events.
    """
    raw_cookies: list[str] = []
    cookie_header = get_header(event.get("headers") or {}, "cookie")
    if cookie_header:
        raw_cookies.extend(cookie_header.split(";"))
    for cookie in event.get("cookies") or []:
        raw_cookies.extend(str(cookie).split(";"))

    cookies: dict[str, str] = {}
    for raw in raw_cookies:
        name, sep, value = raw.strip().partition("=")
        if not sep or not name:
            continue
        cookies[name] = value
    return cookies


def extract_token(event: Mapping[str, Any]) -> Optional[str]:
    """Return the token cookie value, or None when absent or empty."""
    return parse_cookies(event).get(TOKEN_COOKIE) or None


def build_token_cookie(token: str, max_age: int) -> str:
    """Build the Set-Cookie value issued at sign-in."""
    return f"{TOKEN_COOKIE}={token}; {_COOKIE_ATTRIBUTES}; Max-Age={max_age}"


def build_expired_cookie() -> str:
    """Build the Set-Cookie value that clears the token at sign-out."""
    return (
        f"{TOKEN_COOKIE}=; {_COOKIE_ATTRIBUTES}; Max-Age=0; "
        "expires=Thu, 01 Jan 1970 00:00:00 GMT"
    )
