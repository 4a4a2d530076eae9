"""On-demand translation of game text with a write-once memo table.

A request moves through fixed steps, strictly in order:

1. resolve the requested language (rejected before any table access)
2. load the game; missing -> 404
3. same language as the source -> return the original text
4. memo hit -> return the memo
5. translate title, genre and description one after another
6. store the memo (write-once) and return the fresh translation

A provider failure in step 5 aborts the request before anything is
written, so a memo is always complete.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from typing import Protocol

from games_api.db.models import TranslationMemo
from games_api.db.repositories import GameRepository
from games_api.db.repositories import TranslationMemoRepository
from games_api.exceptions import DependencyError
from games_api.exceptions import NotFoundError
from games_api.exceptions import ValidationError
from games_api.services.translator import TranslationProviderError
from games_api.utils.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_LANGUAGES: dict[str, str] = {
    "English": "en",
    "French": "fr",
    "Spanish": "es",
    "German": "de",
}


class Translator(Protocol):
    def translate_text(self, text: str, source_language: str, target_language: str) -> str: ...


def resolve_language(value: str | None) -> tuple[str, str]:
    """Resolve a language name or code to (name, code).

    Names match case-insensitively ("french", "French"); the two-letter
    codes of the supported languages are accepted as well.

    Raises:
        ValidationError: If the language is missing or not supported.
    """
    if not value or not value.strip():
        raise ValidationError("Missing language parameter", field="language")

    wanted = value.strip().lower()
    for name, code in SUPPORTED_LANGUAGES.items():
        if wanted in (name.lower(), code):
            return name, code

    raise ValidationError(
        f"Unsupported translation language '{value}', expected one of "
        f"{', '.join(SUPPORTED_LANGUAGES)}",
        field="language",
    )


@dataclass(frozen=True)
class TranslationResult:
    """Translated text of one game plus how it was obtained."""

    game_id: str
    language: str
    language_code: str
    fields: dict[str, str]
    translated: bool
    cache_used: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "gameId": self.game_id,
            "language": self.language,
            "languageCode": self.language_code,
            "translated": self.translated,
            "cacheUsed": self.cache_used,
            "translatedData": dict(self.fields),
        }


class TranslationMemoizer:
    """Translates games and memoizes the result per (game, language)."""

    def __init__(
        self,
        games: GameRepository,
        memos: TranslationMemoRepository,
        translator: Translator,
    ):
        self._games = games
        self._memos = memos
        self._translator = translator

    def translate(self, user_id: str, game_id: str, language: str | None) -> TranslationResult:
        """Return the game's title, genre and description in ``language``.

        Raises:
            ValidationError: If the language is not supported.
            NotFoundError: If the game does not exist.
            DependencyError: If the translation service fails.
        """
        language_name, language_code = resolve_language(language)

        game = self._games.get(user_id, game_id)
        if game is None:
            raise NotFoundError("Game", game_id)

        if game.source_language == language_code:
            return TranslationResult(
                game_id=game_id,
                language=language_name,
                language_code=language_code,
                fields=game.translatable_fields(),
                translated=False,
                cache_used=False,
            )

        memo = self._memos.get(game_id, language_code)
        if memo is not None:
            logger.info(
                "Translation memo hit",
                extra={"game_id": game_id, "language": language_code},
            )
            return TranslationResult(
                game_id=game_id,
                language=language_name,
                language_code=language_code,
                fields=dict(memo.fields),
                translated=False,
                cache_used=True,
            )

        translated: dict[str, str] = {}
        for field_name, text in game.translatable_fields().items():
            try:
                translated[field_name] = self._translator.translate_text(
                    text,
                    game.source_language,
                    language_code,
                )
            except TranslationProviderError as exc:
                logger.error(
                    f"Translation of {field_name} failed",
                    extra={"game_id": game_id, "language": language_code},
                )
                raise DependencyError("Unable to translate the game") from exc

        stored = self._memos.create(TranslationMemo(game_id, language_code, translated))
        if not stored:
            logger.info(
                "Translation memo already written by a concurrent request",
                extra={"game_id": game_id, "language": language_code},
            )

        return TranslationResult(
            game_id=game_id,
            language=language_name,
            language_code=language_code,
            fields=translated,
            translated=True,
            cache_used=False,
        )
