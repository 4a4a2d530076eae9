"""Repository for game records.

Games are keyed by (userId, gameId); the ``GameIdIndex`` secondary index
allows lookups by game id alone and keeps game ids unique across owners.
"""

from __future__ import annotations

from typing import Any
from typing import Mapping
from typing import Optional

from boto3.dynamodb.conditions import Attr
from boto3.dynamodb.conditions import ConditionBase
from boto3.dynamodb.conditions import Key

from games_api.db.models import Game
from games_api.db.repositories.base import BaseRepository
from games_api.db.table import ConditionFailedError
from games_api.exceptions import ConflictError
from games_api.exceptions import NotFoundError

GAME_ID_INDEX = "GameIdIndex"


class GameRepository(BaseRepository):
    """Repository for Game items."""

    def get(self, user_id: str, game_id: str) -> Optional[Game]:
        item = self._table.get({"userId": user_id, "gameId": game_id})
        return Game.from_item(item) if item else None

    def list_all(self) -> list[Game]:
        """Return every game in the catalog."""
        return [Game.from_item(item) for item in self._table.scan()]

    def list_for_user(
        self,
        user_id: str,
        filter_expression: Optional[ConditionBase] = None,
    ) -> list[Game]:
        """Return a user's games, optionally narrowed by a filter."""
        items = self._table.query(
            Key("userId").eq(user_id),
            filter_expression=filter_expression,
        )
        return [Game.from_item(item) for item in items]

    def find_by_game_id(self, game_id: str) -> list[Game]:
        """Return the games with a given id across all owners."""
        items = self._table.query(
            Key("gameId").eq(game_id),
            index_name=GAME_ID_INDEX,
        )
        return [Game.from_item(item) for item in items]

    def create(self, game: Game) -> Game:
        """Insert a new game.

        Translation memos are keyed by game id alone, so an id may belong to
        one owner only.

        Raises:
            ConflictError: If any owner already has a game with this id.
        """
        if self.find_by_game_id(game.game_id):
            raise ConflictError(f"Game {game.game_id} already exists")
        try:
            self._table.put(game.to_item(), condition=Attr("gameId").not_exists())
        except ConditionFailedError as exc:
            raise ConflictError(f"Game {game.game_id} already exists") from exc
        return game

    def update(
        self,
        user_id: str,
        game_id: str,
        fields: Mapping[str, Any],
    ) -> Game:
        """Set the given attributes on an existing game.

        Raises:
            NotFoundError: If the game was removed in the meantime.
        """
        try:
            item = self._table.update(
                {"userId": user_id, "gameId": game_id},
                fields,
                condition=Attr("gameId").exists(),
            )
        except ConditionFailedError as exc:
            raise NotFoundError("Game", game_id) from exc
        return Game.from_item(item)

    def delete(self, user_id: str, game_id: str) -> None:
        self._table.delete({"userId": user_id, "gameId": game_id})

    def delete_all_for_user(self, user_id: str) -> list[str]:
        """Delete every game owned by a user.

        Deletes are independent; a failure part way leaves the remaining
        games in place and a retry picks them up.

        Returns:
            Ids of the deleted games.
        """
        items = self._table.query(Key("userId").eq(user_id))
        game_ids = [item["gameId"] for item in items]
        self._table.batch_delete(
            {"userId": user_id, "gameId": game_id} for game_id in game_ids
        )
        return game_ids
