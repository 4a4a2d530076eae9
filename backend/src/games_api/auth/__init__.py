"""Authentication and ownership checks for the token cookie."""

from games_api.auth.jwt_validator import (
    IdentityVerifier,
    JWTValidationError,
    TokenClaims,
)
from games_api.auth.ownership import OwnershipGuard

__all__ = [
    "IdentityVerifier",
    "JWTValidationError",
    "OwnershipGuard",
    "TokenClaims",
]
