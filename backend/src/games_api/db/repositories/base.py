"""Base repository shared by the table-specific repositories."""

from __future__ import annotations

from games_api.db.table import DynamoTable


class BaseRepository:
    """Holds the table gateway a repository reads and writes through.

    Args:
        table: Gateway for the backing DynamoDB table.
    """

    def __init__(self, table: DynamoTable):
        self._table = table

    @property
    def table(self) -> DynamoTable:
        """Get the table gateway."""
        return self._table
