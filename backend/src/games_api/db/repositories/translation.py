"""Repository for translation memos, keyed by (gameId, targetLanguage)."""

from __future__ import annotations

from typing import Optional

from boto3.dynamodb.conditions import Attr
from boto3.dynamodb.conditions import Key

from games_api.db.models import TranslationMemo
from games_api.db.repositories.base import BaseRepository
from games_api.db.table import ConditionFailedError


class TranslationMemoRepository(BaseRepository):
    """Repository for TranslationMemo items."""

    def get(self, game_id: str, target_language: str) -> Optional[TranslationMemo]:
        item = self._table.get({"gameId": game_id, "targetLanguage": target_language})
        return TranslationMemo.from_item(item) if item else None

    def create(self, memo: TranslationMemo) -> bool:
        """Write a memo once.

        Returns:
            False if a memo for the same key was already stored.
        """
        try:
            self._table.put(memo.to_item(), condition=Attr("gameId").not_exists())
        except ConditionFailedError:
            return False
        return True

    def delete_for_game(self, game_id: str) -> int:
        """Drop every memo of a game. Returns the number removed."""
        items = self._table.query(Key("gameId").eq(game_id))
        return self._table.batch_delete(
            {"gameId": item["gameId"], "targetLanguage": item["targetLanguage"]}
            for item in items
        )
