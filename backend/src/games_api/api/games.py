"""Game catalog API handlers.

Routes handled:
    GET    /games                               - List every game
    GET    /games/{userId}                      - List a user's games
    GET    /games/{userId}/{gameId}             - Get one game
    GET    /games/{userId}/{gameId}/translation - Translate a game
    POST   /games                               - Create a game (owner)
    PUT    /games/{userId}?gameId=              - Update a game (owner)
    DELETE /games/{userId}?gameId=              - Delete a game (owner)

Reads are public. Writes require the token cookie, and the caller must own
the profile the game belongs to.
"""

from __future__ import annotations

import uuid
from typing import Any, Mapping, Optional

from games_api.api.common import (
    method_not_allowed,
    not_found,
    parse_model,
    require_claims,
    run_handler,
)
from games_api.api.request import http_method, parse_path, path_param, query_param, request_path
from games_api.api.schemas import GameCreateRequest, GameUpdateRequest
from games_api.api.translation import handle_translation
from games_api.db.filters import build_game_filter, parse_popularity
from games_api.db.models import TRANSLATABLE_FIELDS, Game
from games_api.exceptions import NotFoundError, ValidationError
from games_api.services.container import Services
from games_api.utils import json_response
from games_api.utils.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

# Changing any of these makes stored translations stale.
_MEMO_SOURCE_ATTRIBUTES = frozenset(TRANSLATABLE_FIELDS) | {"sourceLanguage"}


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def lambda_handler(
    event: Mapping[str, Any],
    context: Any,
    services: Optional[Services] = None,
) -> dict[str, Any]:
    """Route game requests."""
    return run_handler(event, context, lambda svc: _route(event, svc), services)


def _route(event: Mapping[str, Any], services: Services) -> dict[str, Any]:
    method = http_method(event)
    segments = parse_path(request_path(event))
    if segments and segments[0] != "games":
        return not_found(event)

    user_id = path_param(event, "userId") or _segment(segments, 1)
    game_id = path_param(event, "gameId") or _segment(segments, 2)
    sub_resource = _segment(segments, 3)

    if sub_resource == "translation":
        if method != "GET":
            return method_not_allowed(event)
        return handle_translation(event, services, user_id, game_id)
    if sub_resource or len(segments) > 4:
        return not_found(event)

    if user_id and game_id:
        if method == "GET":
            return _get_game(event, services, user_id, game_id)
        return method_not_allowed(event)

    if user_id:
        if method == "GET":
            return _list_user_games(event, services, user_id)
        if method == "PUT":
            return _update_game(event, services, user_id)
        if method == "DELETE":
            return _delete_game(event, services, user_id)
        return method_not_allowed(event)

    if method == "GET":
        return _list_games(event, services)
    if method == "POST":
        return _create_game(event, services)
    return method_not_allowed(event)


def _segment(segments: list[str], index: int) -> Optional[str]:
    return segments[index] if len(segments) > index else None


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def _list_games(event: Mapping[str, Any], services: Services) -> dict[str, Any]:
    games = services.games.list_all()
    return json_response(200, {"data": [game.to_item() for game in games]}, event=event)


def _list_user_games(
    event: Mapping[str, Any],
    services: Services,
    user_id: str,
) -> dict[str, Any]:
    """List a user's games.

    Query parameters:
        genre: exact genre match
        popularity: integer threshold
        filter: gt, lt or et; applied together with popularity
    """
    filter_expression = build_game_filter(
        genre=query_param(event, "genre"),
        popularity=parse_popularity(query_param(event, "popularity")),
        operator=query_param(event, "filter"),
    )
    games = services.games.list_for_user(user_id, filter_expression)
    return json_response(200, {"data": [game.to_item() for game in games]}, event=event)


def _get_game(
    event: Mapping[str, Any],
    services: Services,
    user_id: str,
    game_id: str,
) -> dict[str, Any]:
    game = services.games.get(user_id, game_id)
    if game is None:
        raise NotFoundError("Game", game_id)
    return json_response(200, {"data": game.to_item()}, event=event)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def _create_game(event: Mapping[str, Any], services: Services) -> dict[str, Any]:
    """Create a game owned by the caller's profile.

    The owner is always the caller's own profile; a ``userId`` in the body
    is rejected as an unknown field.
    """
    claims = require_claims(event, services.verifier)
    request = parse_model(event, GameCreateRequest)
    owner = services.guard.resolve_game_owner(claims)

    game = Game(
        user_id=owner.user_id,
        game_id=request.game_id or str(uuid.uuid4()),
        title=request.title,
        genre=request.genre,
        description=request.description,
        release_year=request.release_year,
        platform=request.platform,
        popularity=request.popularity,
        source_language=request.source_language,
    )
    services.games.create(game)

    logger.info(
        "Game created",
        extra={"user_id": game.user_id, "game_id": game.game_id},
    )
    return json_response(
        201,
        {"message": "Game created", "data": game.to_item()},
        event=event,
    )


def _require_game_id(event: Mapping[str, Any]) -> str:
    game_id = query_param(event, "gameId")
    if not game_id:
        raise ValidationError("Missing gameId query parameter", field="gameId")
    return game_id


def _update_game(
    event: Mapping[str, Any],
    services: Services,
    user_id: str,
) -> dict[str, Any]:
    claims = require_claims(event, services.verifier)
    game_id = _require_game_id(event)
    request = parse_model(event, GameUpdateRequest)
    services.guard.authorize_game_mutation(claims, user_id, game_id)

    fields = request.to_item_fields()
    # Stale memos are dropped before the game changes.
    if _MEMO_SOURCE_ATTRIBUTES.intersection(fields):
        services.memos.delete_for_game(game_id)
    game = services.games.update(user_id, game_id, fields)

    logger.info(
        "Game updated",
        extra={"user_id": user_id, "game_id": game_id, "fields": sorted(fields)},
    )
    return json_response(
        200,
        {"message": "Game updated", "data": game.to_item()},
        event=event,
    )


def _delete_game(
    event: Mapping[str, Any],
    services: Services,
    user_id: str,
) -> dict[str, Any]:
    claims = require_claims(event, services.verifier)
    game_id = _require_game_id(event)
    services.guard.authorize_game_mutation(claims, user_id, game_id)

    services.memos.delete_for_game(game_id)
    services.games.delete(user_id, game_id)

    logger.info("Game deleted", extra={"user_id": user_id, "game_id": game_id})
    return json_response(
        200,
        {"message": "Game deleted", "userId": user_id, "gameId": game_id},
        event=event,
    )
