"""Amazon Translate provider."""

from __future__ import annotations

from typing import Any

from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError

from games_api.utils.logging import get_logger

logger = get_logger(__name__)


class TranslationProviderError(Exception):
    """Raised when the translation service rejects or fails a request."""


class AwsTranslator:
    """Translates text with Amazon Translate.

    Args:
        client: A boto3 ``translate`` client.
    """

    def __init__(self, client: Any):
        self._client = client

    def translate_text(self, text: str, source_language: str, target_language: str) -> str:
        """Translate one piece of text.

        Empty text is returned unchanged without calling the service, which
        rejects empty input.

        Raises:
            TranslationProviderError: If the service call fails.
        """
        if not text:
            return text
        try:
            response = self._client.translate_text(
                Text=text,
                SourceLanguageCode=source_language,
                TargetLanguageCode=target_language,
            )
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "Unknown")
            logger.error(
                f"Translate call failed: {code}",
                extra={"source": source_language, "target": target_language},
            )
            raise TranslationProviderError(code) from exc
        except BotoCoreError as exc:
            logger.error(f"Translate call failed: {type(exc).__name__}")
            raise TranslationProviderError(type(exc).__name__) from exc
        return response["TranslatedText"]
