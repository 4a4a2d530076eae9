"""Composition root for the Lambda handlers.

Components receive their collaborators through their constructors. This
module is the one place that turns configuration into live boto3 clients
and wires the components together.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from games_api.auth.jwt_validator import IdentityVerifier
from games_api.auth.ownership import OwnershipGuard
from games_api.config import Settings
from games_api.db.repositories import GameRepository
from games_api.db.repositories import TranslationMemoRepository
from games_api.db.repositories import UserRepository
from games_api.db.table import DynamoTable
from games_api.services.aws_clients import get_cognito_idp_client
from games_api.services.aws_clients import get_dynamodb_table
from games_api.services.aws_clients import get_translate_client
from games_api.services.identity_provider import CognitoIdentityProvider
from games_api.services.translation import TranslationMemoizer
from games_api.services.translator import AwsTranslator


@dataclass
class Services:
    """Everything a handler needs to serve a request."""

    settings: Settings
    verifier: IdentityVerifier
    users: UserRepository
    games: GameRepository
    memos: TranslationMemoRepository
    guard: OwnershipGuard
    memoizer: TranslationMemoizer
    identity_provider: CognitoIdentityProvider


def build_services(settings: Optional[Settings] = None) -> Services:
    """Create the AWS-backed service container.

    Args:
        settings: Resolved configuration. Read from the environment when
            omitted.

    Raises:
        ConfigurationError: If required configuration is missing.
    """
    settings = settings or Settings.from_env()
    region = settings.region

    users = UserRepository(DynamoTable(get_dynamodb_table(settings.user_table_name, region)))
    games = GameRepository(DynamoTable(get_dynamodb_table(settings.game_table_name, region)))
    memos = TranslationMemoRepository(
        DynamoTable(get_dynamodb_table(settings.translate_table_name, region))
    )

    return Services(
        settings=settings,
        verifier=IdentityVerifier(region, settings.user_pool_id, settings.client_id),
        users=users,
        games=games,
        memos=memos,
        guard=OwnershipGuard(users, games),
        memoizer=TranslationMemoizer(games, memos, AwsTranslator(get_translate_client(region))),
        identity_provider=CognitoIdentityProvider(
            get_cognito_idp_client(region),
            settings.client_id,
        ),
    )


_services: Optional[Services] = None


def get_services() -> Services:
    """Return the process-wide container, building it on first use."""
    global _services
    if _services is None:
        _services = build_services()
    return _services


def reset_services() -> None:
    """Forget the cached container (useful in tests)."""
    global _services
    _services = None
