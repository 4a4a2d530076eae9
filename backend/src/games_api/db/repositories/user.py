"""Repository for user profiles.

Email and username uniqueness is enforced by the table itself: next to
each profile the table holds two guard items keyed ``EMAIL#<email>`` and
``USERNAME#<username>``. Guards are written and removed in the same
transaction as the profile, each with ``attribute_not_exists(userId)``,
so two concurrent sign-ups for one email cannot both succeed.
"""

from __future__ import annotations

from typing import Any
from typing import Mapping
from typing import Optional

from boto3.dynamodb.conditions import Attr
from boto3.dynamodb.conditions import Key

from games_api.db.models import UserProfile
from games_api.db.models import normalize_email
from games_api.db.repositories.base import BaseRepository
from games_api.db.table import ConditionFailedError
from games_api.exceptions import ConflictError
from games_api.exceptions import NotFoundError

USERNAME_INDEX = "UsernameIndex"
EMAIL_INDEX = "EmailIndex"

EMAIL_GUARD_PREFIX = "EMAIL#"
USERNAME_GUARD_PREFIX = "USERNAME#"

_NOT_EXISTS = "attribute_not_exists(userId)"
_EXISTS = "attribute_exists(userId)"


def email_guard_key(email: str) -> dict[str, str]:
    return {"userId": f"{EMAIL_GUARD_PREFIX}{normalize_email(email)}"}


def username_guard_key(username: str) -> dict[str, str]:
    return {"userId": f"{USERNAME_GUARD_PREFIX}{username}"}


def is_guard_id(user_id: str) -> bool:
    return user_id.startswith((EMAIL_GUARD_PREFIX, USERNAME_GUARD_PREFIX))


class UserRepository(BaseRepository):
    """Repository for UserProfile items."""

    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        if not user_id or is_guard_id(user_id):
            return None
        item = self._table.get({"userId": user_id})
        return UserProfile.from_item(item) if item else None

    def find_by_email(self, email: str) -> Optional[UserProfile]:
        items = self._table.query(
            Key("email").eq(normalize_email(email)),
            index_name=EMAIL_INDEX,
            limit=1,
        )
        return UserProfile.from_item(items[0]) if items else None

    def find_by_username(self, username: str) -> Optional[UserProfile]:
        items = self._table.query(
            Key("username").eq(username),
            index_name=USERNAME_INDEX,
            limit=1,
        )
        return UserProfile.from_item(items[0]) if items else None

    def create(self, profile: UserProfile) -> UserProfile:
        """Insert a profile together with its email and username guards.

        Raises:
            ConflictError: If the id, email or username is already taken.
        """
        owner = {"ownerUserId": profile.user_id}
        try:
            self._table.transact_write(
                [
                    {"Put": {"Item": profile.to_item(), "ConditionExpression": _NOT_EXISTS}},
                    {
                        "Put": {
                            "Item": {**email_guard_key(profile.email), **owner},
                            "ConditionExpression": _NOT_EXISTS,
                        }
                    },
                    {
                        "Put": {
                            "Item": {**username_guard_key(profile.username), **owner},
                            "ConditionExpression": _NOT_EXISTS,
                        }
                    },
                ]
            )
        except ConditionFailedError as exc:
            raise ConflictError(
                "A profile with this email or username already exists"
            ) from exc
        return profile

    def update(
        self,
        profile: UserProfile,
        fields: Mapping[str, Any],
    ) -> UserProfile:
        """Apply attribute changes to an existing profile.

        A username change replaces the profile item and moves the username
        guard in one transaction.

        Args:
            profile: The current profile.
            fields: Item attributes to set (camelCase names).

        Raises:
            ConflictError: If the new username is taken.
            NotFoundError: If the profile was removed in the meantime.
        """
        new_username = fields.get("username")
        if new_username is None or new_username == profile.username:
            try:
                item = self._table.update(
                    {"userId": profile.user_id},
                    fields,
                    condition=Attr("userId").exists(),
                )
            except ConditionFailedError as exc:
                raise NotFoundError("User", profile.user_id) from exc
            return UserProfile.from_item(item)

        updated_item = {**profile.to_item(), **fields}
        try:
            self._table.transact_write(
                [
                    {"Put": {"Item": updated_item, "ConditionExpression": _EXISTS}},
                    {"Delete": {"Key": username_guard_key(profile.username)}},
                    {
                        "Put": {
                            "Item": {
                                **username_guard_key(new_username),
                                "ownerUserId": profile.user_id,
                            },
                            "ConditionExpression": _NOT_EXISTS,
                        }
                    },
                ]
            )
        except ConditionFailedError as exc:
            raise ConflictError(f"Username {new_username} is already taken") from exc
        return UserProfile.from_item(updated_item)

    def delete(self, profile: UserProfile) -> None:
        """Remove a profile and release its email and username."""
        self._table.transact_write(
            [
                {"Delete": {"Key": {"userId": profile.user_id}}},
                {"Delete": {"Key": email_guard_key(profile.email)}},
                {"Delete": {"Key": username_guard_key(profile.username)}},
            ]
        )
