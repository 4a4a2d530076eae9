"""Lambda entrypoint for the token cookie request authorizer."""

from __future__ import annotations

from typing import Any

from games_api.api.authorizer import lambda_handler as _handler


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Delegate to the cookie authorizer."""

    return _handler(event, context)
