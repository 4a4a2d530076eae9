"""Pydantic schemas for request bodies.

Every body model rejects unknown fields. Attribute names are snake_case
and the JSON keys are their camelCase aliases, matching the item layout.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Any
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic import model_validator
from pydantic.alias_generators import to_camel

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_LANGUAGE_PATTERN = re.compile(r"^[a-z]{2}(-[A-Za-z]{2,4})?$")
_USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"


class RequestModel(BaseModel):
    """Base for request bodies."""

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_item_fields(self) -> dict[str, Any]:
        """Return the explicitly provided fields keyed by item attribute."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class _PartialUpdate(RequestModel):
    """An update body that changes at least one field and nulls none."""

    @model_validator(mode="after")
    def require_one_field(self) -> "_PartialUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        for name in sorted(self.model_fields_set):
            if getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self


def _check_language(value: Optional[str]) -> Optional[str]:
    """Accept ISO 639-1 codes with an optional region."""
    if value is not None and not _LANGUAGE_PATTERN.match(value):
        raise ValueError("sourceLanguage must be a language code such as 'en'")
    return value


class GameCreateRequest(RequestModel):
    """Body of POST /games."""

    game_id: Optional[str] = Field(default=None, min_length=1, max_length=128)
    title: str = Field(min_length=1, max_length=200)
    genre: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=5000)
    release_year: int = Field(ge=1900, le=2100)
    platform: List[str] = Field(min_length=1)
    popularity: Decimal = Field(ge=0)
    source_language: str = "en"

    @field_validator("source_language")
    @classmethod
    def validate_source_language(cls, value: Optional[str]) -> Optional[str]:
        return _check_language(value)


class GameUpdateRequest(_PartialUpdate):
    """Body of PUT /games/{userId}; only the fields given are changed."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    genre: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=5000)
    release_year: Optional[int] = Field(default=None, ge=1900, le=2100)
    platform: Optional[List[str]] = Field(default=None, min_length=1)
    popularity: Optional[Decimal] = Field(default=None, ge=0)
    source_language: Optional[str] = None

    @field_validator("source_language")
    @classmethod
    def validate_source_language(cls, value: Optional[str]) -> Optional[str]:
        return _check_language(value)


class ProfileCreateRequest(RequestModel):
    """Body of POST /profile.

    The email is not part of the body; it is taken from the token.
    """

    username: str = Field(min_length=3, max_length=64, pattern=_USERNAME_PATTERN)
    name: str = Field(min_length=1, max_length=200)
    joined_date: Optional[str] = None
    favorite_genres: List[str] = Field(default_factory=list)


class ProfileUpdateRequest(_PartialUpdate):
    """Body of PUT /profile/{userId}."""

    username: Optional[str] = Field(
        default=None,
        min_length=3,
        max_length=64,
        pattern=_USERNAME_PATTERN,
    )
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    joined_date: Optional[str] = None
    favorite_genres: Optional[List[str]] = None


class SignUpRequest(RequestModel):
    """Body of POST /auth/signup."""

    username: str = Field(min_length=1, max_length=128)
    password: str = Field(min_length=1)
    email: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        if not _EMAIL_PATTERN.match(value):
            raise ValueError("email must be a valid email address")
        return value


class ConfirmSignUpRequest(RequestModel):
    """Body of POST /auth/signup/confirm."""

    username: str = Field(min_length=1, max_length=128)
    code: str = Field(min_length=1, max_length=16)


class SignInRequest(RequestModel):
    """Body of POST /auth/signin."""

    username: str = Field(min_length=1, max_length=128)
    password: str = Field(min_length=1)
