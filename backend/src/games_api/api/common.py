"""Error boundary and request plumbing shared by the API handlers."""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Mapping, Optional, TypeVar

import pydantic

from games_api.api.request import http_method, parse_body, request_path
from games_api.auth.cookies import extract_token
from games_api.auth.jwt_validator import IdentityVerifier, TokenClaims
from games_api.exceptions import AppError, AuthenticationError, ValidationError
from games_api.services.container import Services, get_services
from games_api.utils import json_response
from games_api.utils.logging import (
    clear_request_context,
    get_logger,
    log_lambda_event,
    log_response,
    set_request_context,
)
from games_api.utils.responses import validate_content_type

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)
Route = Callable[[Services], dict[str, Any]]


def safe_handler(
    handler: Callable[[], dict[str, Any]],
    event: Mapping[str, Any],
) -> dict[str, Any]:
    """Execute *handler* with common error handling."""
    try:
        return handler()
    except AppError as exc:
        if exc.status_code >= 500:
            logger.error(f"Request failed: {exc.message}")
        else:
            logger.warning(
                f"Request rejected: {exc.message}",
                extra={"status_code": exc.status_code},
            )
        return json_response(exc.status_code, exc.to_dict(), event=event)
    except pydantic.ValidationError as exc:
        error = _schema_error(exc)
        logger.warning(f"Validation error: {error.message}")
        return json_response(error.status_code, error.to_dict(), event=event)
    except json.JSONDecodeError:
        return json_response(400, {"error": "Request body must be valid JSON"}, event=event)
    except Exception:
        logger.exception("Unexpected error in request handler")
        return json_response(500, {"error": "Internal server error"}, event=event)


def _schema_error(exc: pydantic.ValidationError) -> ValidationError:
    """Turn the first pydantic error into a ValidationError."""
    errors = exc.errors()
    if not errors:
        return ValidationError("Invalid request body")
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    message = str(first.get("msg", "Invalid value"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    if first.get("type") == "extra_forbidden":
        message = "Unknown field"
    elif first.get("type") == "missing":
        message = "Missing required field"
    if field:
        message = f"{message}: {field}"
    return ValidationError(message, field=field)


def run_handler(
    event: Mapping[str, Any],
    context: Any,
    route: Route,
    services: Optional[Services] = None,
) -> dict[str, Any]:
    """Run one API invocation.

    Sets the logging context, validates the Content-Type, resolves the
    service container and runs *route* inside the error boundary.

    Args:
        event: API Gateway proxy event.
        context: Lambda context object (may be None in tests).
        route: Callable that dispatches the request.
        services: Service container; the process-wide one when omitted.

    Returns:
        API Gateway response dictionary.
    """
    started = time.perf_counter()
    request_id = event.get("requestContext", {}).get("requestId", "")
    set_request_context(
        req_id=request_id,
        fn_name=getattr(context, "function_name", None),
    )
    log_lambda_event(logger, event)
    logger.info(f"API request: {http_method(event)} {request_path(event)}")

    try:
        if http_method(event) == "OPTIONS":
            response = json_response(200, {}, event=event)
        else:
            response = safe_handler(
                lambda: _dispatch(event, route, services),
                event,
            )
        log_response(
            logger,
            response["statusCode"],
            (time.perf_counter() - started) * 1000,
        )
        return response
    finally:
        clear_request_context()


def _dispatch(
    event: Mapping[str, Any],
    route: Route,
    services: Optional[Services],
) -> dict[str, Any]:
    validate_content_type(event)
    return route(services or get_services())


def parse_model(event: Mapping[str, Any], model: type[ModelT]) -> ModelT:
    """Parse and validate the JSON body against *model*."""
    return model.model_validate(parse_body(event))


def require_claims(event: Mapping[str, Any], verifier: IdentityVerifier) -> TokenClaims:
    """Verify the token cookie and return its claims.

    Raises:
        AuthenticationError: If the cookie is missing or the token does not
            verify.
    """
    token = extract_token(event)
    if not token:
        raise AuthenticationError("Unauthorized request, missing token cookie")
    claims = verifier.verify(token)
    if claims is None:
        raise AuthenticationError("Invalid or expired token, sign in again")
    return claims


def method_not_allowed(event: Mapping[str, Any]) -> dict[str, Any]:
    return json_response(405, {"error": "Method not allowed"}, event=event)


def not_found(event: Mapping[str, Any]) -> dict[str, Any]:
    return json_response(404, {"error": "Not found"}, event=event)
