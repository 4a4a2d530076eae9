"""User profile API handlers.

Routes handled:
    GET    /profile?username=                    - Get a profile by username
    POST   /profile                              - Create the caller's profile
    PUT    /profile/{userId} | /profile?userId=  - Update a profile (owner)
    DELETE /profile/{userId} | /profile?userId=  - Delete a profile and its games
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
from games_api.api.schemas import ProfileCreateRequest, ProfileUpdateRequest
from games_api.db.models import UserProfile
from games_api.exceptions import NotFoundError, ValidationError
from games_api.services.container import Services
from games_api.utils import json_response
from games_api.utils.logging import configure_logging, get_logger, mask_email

configure_logging()
logger = get_logger(__name__)


def lambda_handler(
    event: Mapping[str, Any],
    context: Any,
    services: Optional[Services] = None,
) -> dict[str, Any]:
    """Route profile requests."""
    return run_handler(event, context, lambda svc: _route(event, svc), services)


def _route(event: Mapping[str, Any], services: Services) -> dict[str, Any]:
    method = http_method(event)
    segments = parse_path(request_path(event))
    if segments and segments[0] != "profile":
        return not_found(event)
    if len(segments) > 2:
        return not_found(event)

    if method == "GET":
        return _get_profile(event, services)
    if method == "POST":
        return _create_profile(event, services)
    if method == "PUT":
        return _update_profile(event, services, _target_user_id(event, segments))
    if method == "DELETE":
        return _delete_profile(event, services, _target_user_id(event, segments))
    return method_not_allowed(event)


def _target_user_id(event: Mapping[str, Any], segments: list[str]) -> str:
    """Resolve the profile id from the path, falling back to ?userId=."""
    user_id = (
        path_param(event, "userId")
        or (segments[1] if len(segments) > 1 else None)
        or query_param(event, "userId")
    )
    if not user_id:
        raise ValidationError("Missing userId parameter", field="userId")
    return user_id


def _get_profile(event: Mapping[str, Any], services: Services) -> dict[str, Any]:
    username = query_param(event, "username")
    if not username:
        raise ValidationError("Missing username query parameter", field="username")

    profile = services.users.find_by_username(username)
    if profile is None:
        raise NotFoundError("User", username)
    return json_response(200, {"data": profile.to_item()}, event=event)


def _create_profile(event: Mapping[str, Any], services: Services) -> dict[str, Any]:
    """Create a profile for the caller.

    The email comes from the verified token, never from the body, and an
    identity may hold a single profile.
    """
    claims = require_claims(event, services.verifier)
    request = parse_model(event, ProfileCreateRequest)
    services.guard.authorize_profile_create(claims)

    profile = UserProfile(
        user_id=str(uuid.uuid4()),
        username=request.username,
        name=request.name,
        email=claims.email,
        joined_date=request.joined_date,
        favorite_genres=request.favorite_genres,
    )
    services.users.create(profile)

    logger.info(
        "Profile created",
        extra={"user_id": profile.user_id, "email": mask_email(profile.email)},
    )
    return json_response(
        201,
        {"message": "Profile created", "data": profile.to_item()},
        event=event,
    )


def _update_profile(
    event: Mapping[str, Any],
    services: Services,
    user_id: str,
) -> dict[str, Any]:
    claims = require_claims(event, services.verifier)
    request = parse_model(event, ProfileUpdateRequest)
    profile = services.guard.authorize_profile_mutation(claims, user_id)

    fields = request.to_item_fields()
    updated = services.users.update(profile, fields)

    logger.info(
        "Profile updated",
        extra={"user_id": user_id, "fields": sorted(fields)},
    )
    return json_response(
        200,
        {"message": "Profile updated", "data": updated.to_item()},
        event=event,
    )


def _delete_profile(
    event: Mapping[str, Any],
    services: Services,
    user_id: str,
) -> dict[str, Any]:
    """Delete a profile after removing every game it owns.

    Memos are removed before the games they belong to, and games before
    the profile. Whatever phase fails, the records a retry needs to find
    the rest are still there.
    """
    claims = require_claims(event, services.verifier)
    profile = services.guard.authorize_profile_mutation(claims, user_id)

    for game in services.games.list_for_user(user_id):
        services.memos.delete_for_game(game.game_id)
    game_ids = services.games.delete_all_for_user(user_id)
    services.users.delete(profile)

    logger.info(
        "Profile deleted",
        extra={"user_id": user_id, "deleted_games": len(game_ids)},
    )
    return json_response(
        200,
        {
            "message": "User and associated games deleted",
            "userId": user_id,
            "deletedGames": len(game_ids),
        },
        event=event,
    )
