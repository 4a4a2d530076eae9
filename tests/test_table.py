"""Tests for the DynamoDB table gateway."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import EndpointConnectionError

sys.path.append(str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from conftest import FakeTable, client_error
from games_api.db.table import ConditionFailedError, DynamoTable
from games_api.exceptions import DependencyError


@pytest.fixture
def fake() -> FakeTable:
    return FakeTable('Items', ('pk', 'sk'), page_size=2)


@pytest.fixture
def table(fake) -> DynamoTable:
    return DynamoTable(fake)


class TestReads:
    """Tests for get, query and scan."""

    def test_get_missing_item(self, table) -> None:
        assert table.get({'pk': 'a', 'sk': '1'}) is None

    def test_get_existing_item(self, fake, table) -> None:
        fake.seed({'pk': 'a', 'sk': '1', 'value': 'x'})
        assert table.get({'pk': 'a', 'sk': '1'}) == {'pk': 'a', 'sk': '1', 'value': 'x'}

    def test_query_follows_pagination(self, fake, table) -> None:
        fake.seed(*({'pk': 'a', 'sk': str(i)} for i in range(5)))
        fake.seed({'pk': 'b', 'sk': '0'})
        items = table.query(Key('pk').eq('a'))
        assert [item['sk'] for item in items] == ['0', '1', '2', '3', '4']
        assert fake.calls.count('query') == 3

    def test_query_with_filter_spans_pages(self, fake, table) -> None:
        fake.seed(*({'pk': 'a', 'sk': str(i), 'even': i % 2 == 0} for i in range(5)))
        items = table.query(Key('pk').eq('a'), filter_expression=Attr('even').eq(True))
        assert [item['sk'] for item in items] == ['0', '2', '4']

    def test_query_limit(self, fake, table) -> None:
        fake.seed(*({'pk': 'a', 'sk': str(i)} for i in range(5)))
        assert len(table.query(Key('pk').eq('a'), limit=1)) == 1

    def test_scan_reads_everything(self, fake, table) -> None:
        fake.seed(*({'pk': str(i), 'sk': '0'} for i in range(3)))
        assert len(table.scan()) == 3


class TestWrites:
    """Tests for put, update, delete and batch_delete."""

    def test_conditional_put_failure(self, fake, table) -> None:
        fake.seed({'pk': 'a', 'sk': '1'})
        with pytest.raises(ConditionFailedError):
            table.put({'pk': 'a', 'sk': '1'}, condition=Attr('pk').not_exists())

    def test_update_sets_fields_and_returns_item(self, fake, table) -> None:
        fake.seed({'pk': 'a', 'sk': '1', 'title': 'Old', 'genre': 'RPG'})
        item = table.update(
            {'pk': 'a', 'sk': '1'},
            {'title': 'New', 'year': 2021},
            condition=Attr('pk').exists(),
        )
        assert item == {'pk': 'a', 'sk': '1', 'title': 'New', 'genre': 'RPG', 'year': 2021}

    def test_update_requires_fields(self, table) -> None:
        with pytest.raises(ValueError):
            table.update({'pk': 'a', 'sk': '1'}, {})

    def test_update_condition_failure(self, table) -> None:
        with pytest.raises(ConditionFailedError):
            table.update({'pk': 'a', 'sk': '1'}, {'title': 'x'}, condition=Attr('pk').exists())

    def test_delete(self, fake, table) -> None:
        fake.seed({'pk': 'a', 'sk': '1'})
        table.delete({'pk': 'a', 'sk': '1'})
        assert fake.items == {}

    def test_batch_delete_counts(self, fake, table) -> None:
        fake.seed({'pk': 'a', 'sk': '1'}, {'pk': 'a', 'sk': '2'}, {'pk': 'b', 'sk': '1'})
        count = table.batch_delete([{'pk': 'a', 'sk': '1'}, {'pk': 'a', 'sk': '2'}])
        assert count == 2
        assert list(fake.items) == [('b', '1')]

    def test_batch_delete_failure(self, fake, table) -> None:
        fake.seed({'pk': 'a', 'sk': '1'})
        fake.fail('batch_delete', client_error('ProvisionedThroughputExceededException'))
        with pytest.raises(DependencyError):
            table.batch_delete([{'pk': 'a', 'sk': '1'}])


class TestTransactions:
    """Tests for transact_write."""

    def test_applies_all_actions(self, fake, table) -> None:
        fake.seed({'pk': 'old', 'sk': '0'})
        table.transact_write(
            [
                {'Put': {'Item': {'pk': 'new', 'sk': '0'}, 'ConditionExpression': 'attribute_not_exists(pk)'}},
                {'Delete': {'Key': {'pk': 'old', 'sk': '0'}}},
            ]
        )
        assert list(fake.items) == [('new', '0')]

    def test_cancelled_transaction_changes_nothing(self, fake, table) -> None:
        fake.seed({'pk': 'taken', 'sk': '0'})
        with pytest.raises(ConditionFailedError):
            table.transact_write(
                [
                    {'Put': {'Item': {'pk': 'free', 'sk': '0'}, 'ConditionExpression': 'attribute_not_exists(pk)'}},
                    {'Put': {'Item': {'pk': 'taken', 'sk': '0'}, 'ConditionExpression': 'attribute_not_exists(pk)'}},
                ]
            )
        assert list(fake.items) == [('taken', '0')]

    def test_other_cancellation_is_dependency_error(self, fake, table) -> None:
        fake.fail(
            'transact_write_items',
            client_error(
                'TransactionCanceledException',
                CancellationReasons=[{'Code': 'TransactionConflict'}],
            ),
        )
        with pytest.raises(DependencyError):
            table.transact_write([{'Delete': {'Key': {'pk': 'a', 'sk': '0'}}}])


class TestStoreFailures:
    """Store errors surface as DependencyError."""

    def test_client_error(self, fake, table) -> None:
        fake.fail('get_item', client_error('ResourceNotFoundException'))
        with pytest.raises(DependencyError) as exc_info:
            table.get({'pk': 'a', 'sk': '1'})
        assert exc_info.value.status_code == 500
        assert 'ResourceNotFound' not in exc_info.value.message

    def test_botocore_error(self, fake, table) -> None:
        fake.fail('scan', EndpointConnectionError(endpoint_url='https://dynamodb'))
        with pytest.raises(DependencyError):
            table.scan()
