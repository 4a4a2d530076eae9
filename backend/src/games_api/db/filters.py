"""Filter expressions for game queries."""

from __future__ import annotations

from typing import Optional

from boto3.dynamodb.conditions import Attr
from boto3.dynamodb.conditions import ConditionBase

from games_api.exceptions import ValidationError

POPULARITY_OPERATORS = ("gt", "lt", "et")


def parse_popularity(value: Optional[str]) -> Optional[int]:
    """Parse the popularity query parameter.

    Raises:
        ValidationError: If the value is not an integer.
    """
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ValidationError(
            "Invalid popularity value, it must be a number",
            field="popularity",
        ) from exc


def build_game_filter(
    genre: Optional[str] = None,
    popularity: Optional[int] = None,
    operator: Optional[str] = None,
) -> Optional[ConditionBase]:
    """Build the conjunctive filter for a user's game query.

    ``genre`` matches by equality. The popularity comparison is applied
    only when both ``popularity`` and ``operator`` are given.

    Args:
        genre: Exact genre to match.
        popularity: Popularity threshold.
        operator: ``gt`` (greater than), ``lt`` (less than) or
            ``et`` (equal to). An unknown operator is rejected even
            when no popularity is given.

    Returns:
        The combined condition, or None when no filter applies.

    Raises:
        ValidationError: If the operator is not one of gt, lt, et.
    """
    if operator and operator not in POPULARITY_OPERATORS:
        raise ValidationError(
            f"Invalid filter operator '{operator}', expected one of "
            f"{', '.join(POPULARITY_OPERATORS)}",
            field="filter",
        )

    conditions: list[ConditionBase] = []

    if genre:
        conditions.append(Attr("genre").eq(genre))

    if popularity is not None and operator:
        if operator == "gt":
            conditions.append(Attr("popularity").gt(popularity))
        elif operator == "lt":
            conditions.append(Attr("popularity").lt(popularity))
        else:
            conditions.append(Attr("popularity").eq(popularity))

    if not conditions:
        return None

    combined = conditions[0]
    for condition in conditions[1:]:
        combined = combined & condition
    return combined
