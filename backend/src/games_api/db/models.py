"""Item models for the game, user and translation tables.

Attribute names in DynamoDB are camelCase (``userId``, ``releaseYear``);
the dataclasses expose snake_case fields and convert at the edges.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from dataclasses import field
from decimal import Decimal
from typing import Any
from typing import Mapping
from typing import Optional

TRANSLATABLE_FIELDS = ("title", "genre", "description")


def to_decimal(value: Any) -> Decimal:
    """Convert a number to Decimal, the only numeric type DynamoDB accepts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def normalize_email(email: str) -> str:
    """Emails are stored, indexed and compared in lower case."""
    return email.strip().lower()


@dataclass
class UserProfile:
    """A user profile, owned by the identity whose email it carries."""

    user_id: str
    username: str
    name: str
    email: str
    joined_date: Optional[str] = None
    favorite_genres: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.email = normalize_email(self.email)

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> "UserProfile":
        return cls(
            user_id=item["userId"],
            username=item.get("username", ""),
            name=item.get("name", ""),
            email=item.get("email", ""),
            joined_date=item.get("joinedDate"),
            favorite_genres=list(item.get("favoriteGenres") or []),
        )

    def to_item(self) -> dict[str, Any]:
        item: dict[str, Any] = {
            "userId": self.user_id,
            "username": self.username,
            "name": self.name,
            "email": self.email,
            "favoriteGenres": list(self.favorite_genres),
        }
        if self.joined_date:
            item["joinedDate"] = self.joined_date
        return item


@dataclass
class Game:
    """A catalog entry keyed by (owner user id, game id)."""

    user_id: str
    game_id: str
    title: str
    genre: str
    description: str
    release_year: int
    platform: list[str]
    popularity: Decimal
    source_language: str = "en"

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> "Game":
        return cls(
            user_id=item["userId"],
            game_id=item["gameId"],
            title=item.get("title", ""),
            genre=item.get("genre", ""),
            description=item.get("description", ""),
            release_year=int(item.get("releaseYear", 0)),
            platform=list(item.get("platform") or []),
            popularity=to_decimal(item.get("popularity", 0)),
            source_language=item.get("sourceLanguage") or "en",
        )

    def to_item(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "gameId": self.game_id,
            "title": self.title,
            "genre": self.genre,
            "description": self.description,
            "releaseYear": self.release_year,
            "platform": list(self.platform),
            "popularity": to_decimal(self.popularity),
            "sourceLanguage": self.source_language,
        }

    def translatable_fields(self) -> dict[str, str]:
        """Return the fields that are sent for translation, in order."""
        return {name: getattr(self, name) for name in TRANSLATABLE_FIELDS}


@dataclass(frozen=True)
class TranslationMemo:
    """Cached translation of a game's text fields into one language."""

    game_id: str
    target_language: str
    fields: dict[str, str]

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> "TranslationMemo":
        text = item.get("text") or "{}"
        payload = json.loads(text) if isinstance(text, str) else dict(text)
        return cls(
            game_id=item["gameId"],
            target_language=item["targetLanguage"],
            fields={name: payload.get(name, "") for name in TRANSLATABLE_FIELDS},
        )

    def to_item(self) -> dict[str, Any]:
        return {
            "gameId": self.game_id,
            "targetLanguage": self.target_language,
            "text": json.dumps(
                {name: self.fields.get(name, "") for name in TRANSLATABLE_FIELDS}
            ),
        }
