"""JWT validation for Cognito ID tokens.

The token cookie carries the ID token issued at sign-in. It is verified
against the user pool's JWKS endpoint before any claim is trusted.

SECURITY NOTES:
- The signing key is chosen by the ``kid`` in the token header; a token
  whose ``kid`` is not in the key set is rejected
- Only RS256 is accepted
- Issuer, expiry and (when configured) audience are always checked
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from typing import Optional
from typing import Protocol

import jwt
from jwt import PyJWKClient
from jwt import PyJWKClientError

from games_api.utils.logging import get_logger

logger = get_logger(__name__)

JWKS_CACHE_TTL = 3600
ALLOWED_ALGORITHMS = ["RS256"]
REQUIRED_CLAIMS = ("sub", "iss", "exp", "token_use")

# Checked in order; InvalidSignatureError is a DecodeError subclass.
_DECODE_FAILURES = (
    (jwt.ExpiredSignatureError, "Token has expired", "token_expired"),
    (jwt.InvalidIssuerError, "Invalid token issuer", "invalid_issuer"),
    (jwt.InvalidAudienceError, "Invalid token audience", "invalid_audience"),
    (jwt.InvalidSignatureError, "Invalid token signature", "invalid_signature"),
)


@dataclass(frozen=True)
class TokenClaims:
    """Claims of an ID token that passed verification."""

    sub: str
    email: str
    exp: int
    iss: str
    token_use: str
    raw_claims: dict[str, Any]


class JWTValidationError(Exception):
    """A token was rejected; ``reason`` is reported by the authorizer."""

    def __init__(self, message: str, reason: str = "invalid_token"):
        super().__init__(message)
        self.message = message
        self.reason = reason


class SigningKeySource(Protocol):
    """Anything that resolves the signing key for a token (PyJWKClient)."""

    def get_signing_key_from_jwt(self, token: str) -> Any: ...


def issuer_url(region: str, user_pool_id: str) -> str:
    """Return the Cognito issuer URL for a user pool."""
    return f"https://cognito-idp.{region}.amazonaws.com/{user_pool_id}"


def jwks_url(region: str, user_pool_id: str) -> str:
    """Return the well-known JWKS URL for a user pool."""
    return f"{issuer_url(region, user_pool_id)}/.well-known/jwks.json"


class IdentityVerifier:
    """Verifies Cognito ID tokens for one user pool.

    Args:
        region: AWS region of the user pool.
        user_pool_id: Cognito user pool id.
        client_id: App client id. When set, the token audience must match.
        jwks_client: Optional key source; defaults to a caching PyJWKClient.
    """

    def __init__(
        self,
        region: str,
        user_pool_id: str,
        client_id: Optional[str] = None,
        jwks_client: Optional[SigningKeySource] = None,
    ):
        self._issuer = issuer_url(region, user_pool_id)
        self._client_id = client_id
        self._jwks_client = jwks_client or PyJWKClient(
            jwks_url(region, user_pool_id),
            cache_keys=True,
            lifespan=JWKS_CACHE_TTL,
        )

    @property
    def issuer(self) -> str:
        return self._issuer

    def verify(self, token: Optional[str]) -> Optional[TokenClaims]:
        """Verify a token and return its claims, or None if it is not valid.

        Network failures fetching the key set are treated like invalid
        tokens; callers respond with 401 in both cases.
        """
        if not token:
            return None
        try:
            return self.decode_and_verify_token(token)
        except JWTValidationError as exc:
            logger.warning(
                f"JWT validation failed: {exc.message}",
                extra={"reason": exc.reason},
            )
            return None

    def _signing_key(self, token: str) -> Any:
        """Look up the key named by the token's ``kid``; fails closed."""
        try:
            return self._jwks_client.get_signing_key_from_jwt(token)
        except PyJWKClientError as exc:
            raise JWTValidationError("Signing key not in key set", reason="unknown_key") from exc
        except jwt.DecodeError as exc:
            raise JWTValidationError("Malformed token header") from exc
        except Exception as exc:
            logger.warning(f"Key set lookup failed: {type(exc).__name__}")
            raise JWTValidationError(
                "Key set unavailable",
                reason="jwks_unavailable",
            ) from exc

    def decode_and_verify_token(self, token: str) -> TokenClaims:
        """Decode and verify a Cognito ID token.

        Raises:
            JWTValidationError: If any step of the validation fails.
        """
        signing_key = self._signing_key(token)

        try:
            decoded = jwt.decode(
                token,
                signing_key.key,
                algorithms=ALLOWED_ALGORITHMS,
                issuer=self._issuer,
                audience=self._client_id,
                options={
                    "verify_aud": self._client_id is not None,
                    "require": list(REQUIRED_CLAIMS),
                },
            )
        except jwt.MissingRequiredClaimError as exc:
            raise JWTValidationError(f"Missing required claim: {exc.claim}") from exc
        except jwt.InvalidTokenError as exc:
            message, reason = _decode_failure(exc)
            raise JWTValidationError(message, reason=reason) from exc

        if decoded.get("token_use") != "id":
            raise JWTValidationError(
                f"Invalid token_use: {decoded.get('token_use', '')}",
            )
        if not decoded.get("email"):
            raise JWTValidationError("Token has no email claim")

        return TokenClaims(
            sub=decoded["sub"],
            email=decoded["email"],
            exp=decoded["exp"],
            iss=decoded["iss"],
            token_use="id",
            raw_claims=decoded,
        )


def _decode_failure(exc: jwt.InvalidTokenError) -> tuple[str, str]:
    """Pick the log message and deny reason for a rejected token."""
    for error_type, message, reason in _DECODE_FAILURES:
        if isinstance(exc, error_type):
            return message, reason
    return "Failed to decode token", "invalid_token"
