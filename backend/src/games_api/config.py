"""Runtime configuration loaded from the Lambda environment.

Every value the handlers need is injected by the deployment; nothing has a
built-in default, so a missing variable fails the request with a
configuration error instead of silently talking to the wrong table.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping
from typing import Optional

from games_api.exceptions import ConfigurationError

DEFAULT_TOKEN_MAX_AGE = 3600


@dataclass(frozen=True)
class IdentitySettings:
    """The user pool settings, which is all the request authorizer needs."""

    region: str
    user_pool_id: str
    client_id: str

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "IdentitySettings":
        env = os.environ if environ is None else environ
        region = env.get("REGION") or env.get("AWS_REGION")
        if not region:
            raise ConfigurationError("REGION")
        return cls(
            region=region,
            user_pool_id=_require(env, "USER_POOL_ID"),
            client_id=_require(env, "CLIENT_ID"),
        )


@dataclass(frozen=True)
class Settings:
    """Resolved environment configuration."""

    region: str
    user_pool_id: str
    client_id: str
    game_table_name: str
    user_table_name: str
    translate_table_name: str
    token_max_age: int = DEFAULT_TOKEN_MAX_AGE

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            The resolved settings.

        Raises:
            ConfigurationError: If a required variable is missing or empty.
        """
        env = os.environ if environ is None else environ
        identity = IdentitySettings.from_env(env)

        max_age_raw = env.get("TOKEN_COOKIE_MAX_AGE")
        try:
            token_max_age = int(max_age_raw) if max_age_raw else DEFAULT_TOKEN_MAX_AGE
        except ValueError as exc:
            raise ConfigurationError("TOKEN_COOKIE_MAX_AGE") from exc

        return cls(
            region=identity.region,
            user_pool_id=identity.user_pool_id,
            client_id=identity.client_id,
            game_table_name=_require(env, "GAME_TABLE_NAME"),
            user_table_name=_require(env, "USER_TABLE_NAME"),
            translate_table_name=_require(env, "TRANSLATE_TABLE_NAME"),
            token_max_age=token_max_age,
        )


def _require(env: Mapping[str, str], name: str) -> str:
    """Return a required environment variable value."""
    value = env.get(name)
    if not value:
        raise ConfigurationError(name)
    return value
