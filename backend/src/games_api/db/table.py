"""Thin gateway over a DynamoDB table resource.

All operations are single-item or single-partition. There is no
multi-item transaction support beyond ``transact_write``, which callers
use only for small, fixed-size groups of writes.

Store failures are logged here and surface as ``DependencyError``;
failed write conditions surface as ``ConditionFailedError`` so that
repositories can turn them into domain conflicts.
"""

from __future__ import annotations

from typing import Any
from typing import Iterable
from typing import Mapping
from typing import Optional
from typing import Sequence

from boto3.dynamodb.conditions import ConditionBase
from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError

from games_api.exceptions import DependencyError
from games_api.utils.logging import get_logger

logger = get_logger(__name__)

_CONDITION_FAILED_CODES = {"ConditionalCheckFailedException"}


class ConditionFailedError(Exception):
    """Raised when a conditional write or transaction condition fails."""


def _is_condition_failure(exc: ClientError) -> bool:
    error = exc.response.get("Error", {})
    code = error.get("Code", "")
    if code in _CONDITION_FAILED_CODES:
        return True
    if code == "TransactionCanceledException":
        reasons = exc.response.get("CancellationReasons") or []
        return any(
            (reason or {}).get("Code") == "ConditionalCheckFailed"
            for reason in reasons
        )
    return False


class DynamoTable:
    """Gateway for one DynamoDB table.

    Args:
        table: A boto3 ``dynamodb.Table`` resource (or an object with the
            same interface).
    """

    def __init__(self, table: Any):
        self._table = table

    @property
    def name(self) -> str:
        return self._table.name

    def get(self, key: Mapping[str, Any]) -> Optional[dict[str, Any]]:
        """Fetch one item by its full primary key."""
        response = self._call("get_item", Key=dict(key))
        return response.get("Item")

    def query(
        self,
        key_condition: ConditionBase,
        filter_expression: Optional[ConditionBase] = None,
        index_name: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Query one partition of the table or of a secondary index.

        Follows ``LastEvaluatedKey`` until the partition is exhausted or
        ``limit`` items have been collected.
        """
        params: dict[str, Any] = {"KeyConditionExpression": key_condition}
        if filter_expression is not None:
            params["FilterExpression"] = filter_expression
        if index_name:
            params["IndexName"] = index_name
        if limit is not None:
            params["Limit"] = limit
        return self._paginate("query", params, limit)

    def scan(
        self,
        filter_expression: Optional[ConditionBase] = None,
    ) -> list[dict[str, Any]]:
        """Read every item of the table."""
        params: dict[str, Any] = {}
        if filter_expression is not None:
            params["FilterExpression"] = filter_expression
        return self._paginate("scan", params, None)

    def put(
        self,
        item: Mapping[str, Any],
        condition: Optional[ConditionBase] = None,
    ) -> None:
        params: dict[str, Any] = {"Item": dict(item)}
        if condition is not None:
            params["ConditionExpression"] = condition
        self._call("put_item", **params)

    def update(
        self,
        key: Mapping[str, Any],
        fields: Mapping[str, Any],
        condition: Optional[ConditionBase] = None,
    ) -> dict[str, Any]:
        """SET the given attributes on an item and return the new item."""
        if not fields:
            raise ValueError("update requires at least one field")

        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        assignments: list[str] = []
        for index, (attribute, value) in enumerate(fields.items()):
            names[f"#f{index}"] = attribute
            values[f":v{index}"] = value
            assignments.append(f"#f{index} = :v{index}")

        params: dict[str, Any] = {
            "Key": dict(key),
            "UpdateExpression": "SET " + ", ".join(assignments),
            "ExpressionAttributeNames": names,
            "ExpressionAttributeValues": values,
            "ReturnValues": "ALL_NEW",
        }
        if condition is not None:
            params["ConditionExpression"] = condition
        response = self._call("update_item", **params)
        return response.get("Attributes", {})

    def delete(
        self,
        key: Mapping[str, Any],
        condition: Optional[ConditionBase] = None,
    ) -> None:
        params: dict[str, Any] = {"Key": dict(key)}
        if condition is not None:
            params["ConditionExpression"] = condition
        self._call("delete_item", **params)

    def batch_delete(self, keys: Iterable[Mapping[str, Any]]) -> int:
        """Delete many items with independent, non-atomic deletes.

        Returns:
            Number of delete requests issued.
        """
        count = 0
        try:
            with self._table.batch_writer() as batch:
                for key in keys:
                    batch.delete_item(Key=dict(key))
                    count += 1
        except (ClientError, BotoCoreError) as exc:
            logger.error(
                f"DynamoDB batch delete failed on {self.name}: {exc}",
                extra={"deleted_before_failure": count},
            )
            raise DependencyError() from exc
        return count

    def transact_write(self, actions: Sequence[Mapping[str, Mapping[str, Any]]]) -> None:
        """Apply a group of writes to this table atomically.

        Each action is ``{"Put": {...}}`` or ``{"Delete": {...}}`` in the
        TransactWriteItems format without ``TableName``. Conditions must be
        plain expression strings such as ``attribute_not_exists(userId)``.
        """
        transact_items = []
        for action in actions:
            ((kind, body),) = action.items()
            transact_items.append({kind: {**body, "TableName": self.name}})
        self._call_client("transact_write_items", TransactItems=transact_items)

    def _paginate(
        self,
        operation: str,
        params: dict[str, Any],
        limit: Optional[int],
    ) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        while True:
            response = self._call(operation, **params)
            items.extend(response.get("Items", []))
            if limit is not None and len(items) >= limit:
                return items[:limit]
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            params["ExclusiveStartKey"] = last_key

    def _call(self, operation: str, **params: Any) -> dict[str, Any]:
        return self._invoke(getattr(self._table, operation), operation, params)

    def _call_client(self, operation: str, **params: Any) -> dict[str, Any]:
        client = self._table.meta.client
        return self._invoke(getattr(client, operation), operation, params)

    def _invoke(self, method: Any, operation: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            return method(**params)
        except ClientError as exc:
            if _is_condition_failure(exc):
                raise ConditionFailedError(f"{operation} condition failed") from exc
            code = exc.response.get("Error", {}).get("Code", "Unknown")
            logger.error(
                f"DynamoDB {operation} failed on {self.name}: {code}",
                extra={"operation": operation, "table": self.name, "error_code": code},
            )
            raise DependencyError() from exc
        except BotoCoreError as exc:
            logger.error(
                f"DynamoDB {operation} failed on {self.name}: {type(exc).__name__}",
                extra={"operation": operation, "table": self.name},
            )
            raise DependencyError() from exc
