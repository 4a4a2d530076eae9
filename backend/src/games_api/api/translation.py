"""Game translation API handler.

Routes handled:
    GET /games/{userId}/{gameId}/translation?language=<name or code>
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from games_api.api.common import (
    method_not_allowed,
    require_claims,
    run_handler,
)
from games_api.api.request import http_method, parse_path, path_param, query_param, request_path
from games_api.exceptions import ValidationError
from games_api.services.container import Services
from games_api.utils import json_response
from games_api.utils.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)


def lambda_handler(
    event: Mapping[str, Any],
    context: Any,
    services: Optional[Services] = None,
) -> dict[str, Any]:
    """Serve translation requests."""
    return run_handler(event, context, lambda svc: _route(event, svc), services)


def _route(event: Mapping[str, Any], services: Services) -> dict[str, Any]:
    if http_method(event) != "GET":
        return method_not_allowed(event)

    segments = parse_path(request_path(event))
    user_id = path_param(event, "userId") or _segment(segments, 1)
    game_id = path_param(event, "gameId") or _segment(segments, 2)
    return handle_translation(event, services, user_id, game_id)


def _segment(segments: list[str], index: int) -> Optional[str]:
    return segments[index] if len(segments) > index else None


def handle_translation(
    event: Mapping[str, Any],
    services: Services,
    user_id: Optional[str],
    game_id: Optional[str],
) -> dict[str, Any]:
    """Translate a game's title, genre and description.

    The caller must present a valid token cookie; the game itself does not
    have to belong to the caller.
    """
    claims = require_claims(event, services.verifier)
    if not user_id or not game_id:
        raise ValidationError("Missing userId or gameId path parameter")

    result = services.memoizer.translate(
        user_id,
        game_id,
        query_param(event, "language"),
    )
    logger.info(
        "Translation served",
        extra={
            "user_id": user_id,
            "game_id": game_id,
            "language": result.language_code,
            "cache_used": result.cache_used,
            "caller": claims.sub,
        },
    )
    return json_response(200, result.to_dict(), event=event)
