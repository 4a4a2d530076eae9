"""Response envelope shared by the API handlers.

Every response is JSON and carries the security headers plus CORS headers
for the calling origin. Browsers only send the token cookie cross-origin
when the response names the origin explicitly and allows credentials, so
the wildcard origin is never used.
"""

from __future__ import annotations

import json
import os
from decimal import Decimal
from typing import Any
from typing import Mapping
from typing import Optional

from games_api.api.request import http_method
from games_api.exceptions import ValidationError

JSON_CONTENT_TYPE = "application/json"

_LOCAL_ORIGINS = ("http://localhost", "http://localhost:3000")

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
}


def _header(headers: Mapping[str, Any], name: str) -> Optional[str]:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return str(value)
    return None


def validate_content_type(
    event: Mapping[str, Any],
    required_methods: tuple[str, ...] = ("POST", "PUT", "PATCH"),
) -> None:
    """Reject write requests whose body is not declared as JSON.

    Requests without a body are not checked, so a bare ``POST /auth/signout``
    still works.

    Raises:
        ValidationError: If the body has no Content-Type or a non-JSON one.
    """
    if http_method(event) not in required_methods or not event.get("body"):
        return

    content_type = _header(event.get("headers") or {}, "content-type")
    if not content_type:
        raise ValidationError(
            "Content-Type header is required for requests with a body",
            field="Content-Type",
        )
    # Parameters such as "; charset=utf-8" are allowed.
    if not content_type.strip().lower().startswith(JSON_CONTENT_TYPE):
        raise ValidationError(
            f"Content-Type must be {JSON_CONTENT_TYPE}",
            field="Content-Type",
        )


def allowed_origins() -> list[str]:
    """Origins from ``CORS_ALLOWED_ORIGINS`` (comma separated), or localhost."""
    configured = os.getenv("CORS_ALLOWED_ORIGINS", "")
    origins = [origin.strip() for origin in configured.split(",") if origin.strip()]
    return origins or list(_LOCAL_ORIGINS)


def get_cors_headers(
    event: Optional[Mapping[str, Any]] = None,
) -> dict[str, str]:
    """Build CORS headers for the request's origin.

    An origin that is not on the allow list gets the first allowed origin,
    which the browser then refuses.
    """
    origins = allowed_origins()
    request_origin = _header((event or {}).get("headers") or {}, "origin")
    allow_origin = request_origin if request_origin in origins else origins[0]

    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Headers": "Content-Type,Cookie",
        "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
    }


def json_response(
    status_code: int,
    body: Any,
    headers: Optional[dict[str, str]] = None,
    event: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Create an API Gateway proxy response.

    Args:
        status_code: HTTP status code.
        body: JSON-serializable body; DynamoDB Decimals are allowed.
        headers: Extra headers such as ``Set-Cookie``.
        event: The request event, used to pick the CORS origin.
    """
    response_headers = {"Content-Type": JSON_CONTENT_TYPE, **_SECURITY_HEADERS}
    response_headers.update(get_cors_headers(event))
    response_headers.update(headers or {})

    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": json.dumps(body, default=_json_default),
    }


def _json_default(value: Any) -> Any:
    """Encode values the json module does not handle.

    DynamoDB returns every number as Decimal; integral values are sent back
    as ints and the rest as floats. Sets (string sets) become lists.
    """
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return str(value)
