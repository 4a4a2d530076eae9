"""Table-specific repositories."""

from games_api.db.repositories.base import BaseRepository
from games_api.db.repositories.game import GameRepository
from games_api.db.repositories.translation import TranslationMemoRepository
from games_api.db.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "GameRepository",
    "TranslationMemoRepository",
    "UserRepository",
]
