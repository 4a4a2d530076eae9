"""Lambda entrypoint for authentication APIs."""

from __future__ import annotations

from typing import Any
from typing import Mapping

from games_api.api.auth import lambda_handler as _handler


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Delegate to the authentication handler."""

    return _handler(event, context)
