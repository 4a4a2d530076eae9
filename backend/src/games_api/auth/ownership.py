"""Ownership checks for mutating requests.

A profile belongs to the identity whose verified email it carries; a game
belongs to whoever owns the profile referenced by the game's ``userId``.
Existence is always checked before ownership, so a missing resource is
reported as 404 and never leaks through a 403.
"""

from __future__ import annotations

from games_api.auth.jwt_validator import TokenClaims
from games_api.db.models import Game
from games_api.db.models import UserProfile
from games_api.db.models import normalize_email
from games_api.db.repositories import GameRepository
from games_api.db.repositories import UserRepository
from games_api.exceptions import AuthorizationError
from games_api.exceptions import ConflictError
from games_api.exceptions import NotFoundError
from games_api.utils.logging import get_logger
from games_api.utils.logging import mask_email

logger = get_logger(__name__)


def _same_email(left: str, right: str) -> bool:
    return bool(left) and normalize_email(left) == normalize_email(right)


class OwnershipGuard:
    """Authorizes profile and game mutations for a verified identity."""

    def __init__(self, users: UserRepository, games: GameRepository):
        self._users = users
        self._games = games

    def authorize_profile_create(self, claims: TokenClaims) -> None:
        """Allow profile creation only if the identity has no profile yet.

        Raises:
            ConflictError: If a profile already exists for the email.
        """
        if self._users.find_by_email(claims.email) is not None:
            logger.info(
                "Profile creation rejected, profile exists",
                extra={"email": mask_email(claims.email)},
            )
            raise ConflictError("You already have a user profile")

    def authorize_profile_mutation(self, claims: TokenClaims, user_id: str) -> UserProfile:
        """Return the profile if the identity owns it.

        Raises:
            NotFoundError: If no profile has this id.
            AuthorizationError: If the profile belongs to someone else.
        """
        profile = self._users.get_by_id(user_id)
        if profile is None:
            raise NotFoundError("User", user_id)
        if not _same_email(profile.email, claims.email):
            logger.warning(
                "Profile mutation denied",
                extra={"user_id": user_id, "caller": mask_email(claims.email)},
            )
            raise AuthorizationError("You are not authorized to modify this user")
        return profile

    def authorize_game_mutation(
        self,
        claims: TokenClaims,
        user_id: str,
        game_id: str,
    ) -> Game:
        """Return the game if the identity owns the profile that owns it.

        Raises:
            NotFoundError: If the game or its owner profile does not exist.
            AuthorizationError: If the owner profile belongs to someone else.
        """
        game = self._games.get(user_id, game_id)
        if game is None:
            raise NotFoundError("Game", game_id)

        owner = self._users.get_by_id(game.user_id)
        if owner is None:
            raise NotFoundError("User", game.user_id)
        if not _same_email(owner.email, claims.email):
            logger.warning(
                "Game mutation denied",
                extra={
                    "user_id": user_id,
                    "game_id": game_id,
                    "caller": mask_email(claims.email),
                },
            )
            raise AuthorizationError("You are not authorized to modify this game")
        return game

    def resolve_game_owner(self, claims: TokenClaims) -> UserProfile:
        """Return the caller's own profile, which owns any game they create.

        Raises:
            NotFoundError: If the caller has not created a profile yet.
        """
        profile = self._users.find_by_email(claims.email)
        if profile is None:
            raise NotFoundError("User profile", mask_email(claims.email))
        return profile
