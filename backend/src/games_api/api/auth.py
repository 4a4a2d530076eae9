"""Authentication API handlers.

Routes handled:
    POST     /auth/signup          - Register a user
    POST     /auth/signup/confirm  - Confirm a registration code
    POST     /auth/signin          - Sign in and receive the token cookie
    GET|POST /auth/signout         - Clear the token cookie
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from games_api.api.common import method_not_allowed, not_found, parse_model, run_handler
from games_api.api.request import http_method, parse_path, request_path
from games_api.api.schemas import ConfirmSignUpRequest, SignInRequest, SignUpRequest
from games_api.auth.cookies import build_expired_cookie, build_token_cookie
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
    """Route authentication requests."""
    return run_handler(event, context, lambda svc: _route(event, svc), services)


def _route(event: Mapping[str, Any], services: Services) -> dict[str, Any]:
    method = http_method(event)
    segments = parse_path(request_path(event))
    if segments and segments[0] == "auth":
        segments = segments[1:]
    action = "/".join(segments)

    if action == "signout":
        if method not in ("GET", "POST"):
            return method_not_allowed(event)
        return _sign_out(event)

    handlers = {
        "signup": _sign_up,
        "signup/confirm": _confirm_sign_up,
        "signin": _sign_in,
    }
    handler = handlers.get(action)
    if handler is None:
        return not_found(event)
    if method != "POST":
        return method_not_allowed(event)
    return handler(event, services)


def _sign_up(event: Mapping[str, Any], services: Services) -> dict[str, Any]:
    request = parse_model(event, SignUpRequest)
    result = services.identity_provider.sign_up(
        request.username,
        request.password,
        request.email,
    )
    logger.info(
        "User signed up",
        extra={"username": request.username, "email": mask_email(request.email)},
    )
    return json_response(
        201,
        {"message": "User signed up, confirmation code sent", "data": result},
        event=event,
    )


def _confirm_sign_up(event: Mapping[str, Any], services: Services) -> dict[str, Any]:
    request = parse_model(event, ConfirmSignUpRequest)
    services.identity_provider.confirm_sign_up(request.username, request.code)
    logger.info("User confirmed", extra={"username": request.username})
    return json_response(
        200,
        {"message": "User confirmed", "username": request.username},
        event=event,
    )


def _sign_in(event: Mapping[str, Any], services: Services) -> dict[str, Any]:
    """Exchange credentials for the ID token, delivered as an HttpOnly cookie.

    The token is not included in the body.
    """
    request = parse_model(event, SignInRequest)
    token = services.identity_provider.sign_in(request.username, request.password)
    logger.info("User signed in", extra={"username": request.username})
    return json_response(
        200,
        {"message": "Signed in successfully"},
        headers={
            "Set-Cookie": build_token_cookie(token, services.settings.token_max_age),
        },
        event=event,
    )


def _sign_out(event: Mapping[str, Any]) -> dict[str, Any]:
    return json_response(
        200,
        {"message": "Signed out successfully"},
        headers={"Set-Cookie": build_expired_cookie()},
        event=event,
    )
