"""Lambda entrypoint for user profile APIs."""

from __future__ import annotations

from typing import Any
from typing import Mapping

from games_api.api.profile import lambda_handler as _handler


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Delegate to the user profile handler."""

    return _handler(event, context)
