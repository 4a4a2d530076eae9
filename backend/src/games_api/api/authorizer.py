"""API Gateway REQUEST authorizer for the token cookie.

The authorizer verifies the ``token`` cookie and grants access to any
signed-in user. Ownership is still checked by the handlers.

SECURITY NOTES:
- The token is verified against the user pool JWKS (RS256, issuer, expiry)
- Verification errors are never echoed back, only a reason code
"""

from __future__ import annotations

from typing import Any, Optional

from games_api.auth.cookies import extract_token
from games_api.auth.jwt_validator import IdentityVerifier, JWTValidationError
from games_api.config import IdentitySettings
from games_api.utils.logging import configure_logging, get_logger, mask_email

configure_logging()
logger = get_logger(__name__)

_verifier: Optional[IdentityVerifier] = None


def _default_verifier() -> IdentityVerifier:
    global _verifier
    if _verifier is None:
        settings = IdentitySettings.from_env()
        _verifier = IdentityVerifier(
            settings.region,
            settings.user_pool_id,
            settings.client_id,
        )
    return _verifier


def policy(
    effect: str,
    method_arn: str,
    principal_id: str,
    context: dict[str, Any],
) -> dict[str, Any]:
    """Build an IAM policy document for API Gateway.

    Allow policies cover every method of the stage so that API Gateway can
    cache one decision per token.
    """
    resource = method_arn
    if effect == "Allow":
        # arn:aws:execute-api:region:account:api-id/stage/METHOD/path
        # -> arn:aws:execute-api:region:account:api-id/stage/*
        parts = method_arn.split("/")
        if len(parts) >= 2:
            resource = "/".join(parts[:2]) + "/*"

    return {
        "principalId": principal_id,
        "policyDocument": {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Action": "execute-api:Invoke",
                    "Effect": effect,
                    "Resource": resource,
                }
            ],
        },
        "context": context,
    }


def lambda_handler(
    event: dict[str, Any],
    _context: Any,
    verifier: Optional[IdentityVerifier] = None,
) -> dict[str, Any]:
    """Authorize a request carrying the token cookie.

    Args:
        event: API Gateway REQUEST authorizer event (headers and methodArn).
        _context: Lambda context (unused).
        verifier: Token verifier; built from the environment when omitted.

    Returns:
        IAM policy document allowing or denying the request.
    """
    method_arn = event.get("methodArn", "")

    token = extract_token(event)
    if not token:
        logger.warning("Missing token cookie")
        return policy("Deny", method_arn, "anonymous", {"reason": "missing_token"})

    try:
        claims = (verifier or _default_verifier()).decode_and_verify_token(token)
    except JWTValidationError as exc:
        logger.warning(f"JWT validation failed: {exc.message} (reason: {exc.reason})")
        return policy("Deny", method_arn, "invalid", {"reason": exc.reason})
    except Exception as exc:
        logger.warning(f"Token validation failed: {type(exc).__name__}")
        return policy("Deny", method_arn, "invalid", {"reason": "invalid_token"})

    logger.info(
        f"Access granted for user {claims.sub[:8]}***",
        extra={"email": mask_email(claims.email)},
    )
    return policy(
        "Allow",
        method_arn,
        claims.sub,
        {"userSub": claims.sub, "email": claims.email},
    )
