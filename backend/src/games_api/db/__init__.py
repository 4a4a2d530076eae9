"""DynamoDB access layer: table gateway, item models and repositories."""

from games_api.db.models import Game, TranslationMemo, UserProfile
from games_api.db.table import ConditionFailedError, DynamoTable

__all__ = [
    "ConditionFailedError",
    "DynamoTable",
    "Game",
    "TranslationMemo",
    "UserProfile",
]
