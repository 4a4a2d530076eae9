"""Pytest configuration and fixtures for backend tests.

This module provides shared fixtures for testing the backend application:
an in-memory stand-in for DynamoDB tables, RSA-signed test tokens, API
Gateway event builders and a fully wired service container.
"""

from __future__ import annotations

import copy
import json
import re
import sys
import time
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from typing import Callable
from typing import Optional
from uuid import uuid4

import jwt
import pytest
from boto3.dynamodb.conditions import AttributeBase
from botocore.exceptions import ClientError
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt import PyJWKClientError

# Add backend source to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from games_api.auth.jwt_validator import IdentityVerifier  # noqa: E402
from games_api.auth.jwt_validator import issuer_url  # noqa: E402
from games_api.auth.ownership import OwnershipGuard  # noqa: E402
from games_api.config import Settings  # noqa: E402
from games_api.db.models import Game  # noqa: E402
from games_api.db.models import UserProfile  # noqa: E402
from games_api.db.repositories import GameRepository  # noqa: E402
from games_api.db.repositories import TranslationMemoRepository  # noqa: E402
from games_api.db.repositories import UserRepository  # noqa: E402
from games_api.db.table import DynamoTable  # noqa: E402
from games_api.services.container import Services  # noqa: E402
from games_api.services.translation import TranslationMemoizer  # noqa: E402
from games_api.services.translator import TranslationProviderError  # noqa: E402

REGION = 'us-east-1'
USER_POOL_ID = 'us-east-1_TestPool'
CLIENT_ID = 'test-client-id'
KEY_ID = 'test-key'


# --- In-memory DynamoDB ---


def client_error(code: str, operation: str = 'Operation', **extra: Any) -> ClientError:
    """Build a botocore ClientError with the given error code."""
    response: dict[str, Any] = {'Error': {'Code': code, 'Message': code}}
    response.update(extra)
    return ClientError(response, operation)


_STRING_CONDITION = re.compile(r'^(attribute_not_exists|attribute_exists)\((\w+)\)$')
_MISSING = object()


def evaluate_condition(condition: Any, item: Optional[dict[str, Any]]) -> bool:
    """Evaluate a boto3 condition object (or a simple string condition)."""
    item = item or {}
    if isinstance(condition, str):
        match = _STRING_CONDITION.match(condition.strip())
        if not match:
            raise AssertionError(f'Unsupported condition string: {condition}')
        function, attribute = match.groups()
        exists = attribute in item
        return exists if function == 'attribute_exists' else not exists

    expression = condition.get_expression()
    operator = expression['operator']
    values = expression['values']

    if operator == 'AND':
        return all(evaluate_condition(value, item) for value in values)
    if operator == 'OR':
        return any(evaluate_condition(value, item) for value in values)
    if operator == 'NOT':
        return not evaluate_condition(values[0], item)
    if operator == 'attribute_exists':
        return values[0].name in item
    if operator == 'attribute_not_exists':
        return values[0].name not in item

    left = _operand(values[0], item)
    right = _operand(values[1], item)
    if left is _MISSING or right is _MISSING:
        return False
    comparisons: dict[str, Callable[[Any, Any], bool]] = {
        '=': lambda a, b: a == b,
        '<>': lambda a, b: a != b,
        '<': lambda a, b: a < b,
        '<=': lambda a, b: a <= b,
        '>': lambda a, b: a > b,
        '>=': lambda a, b: a >= b,
    }
    if operator not in comparisons:
        raise AssertionError(f'Unsupported operator: {operator}')
    return comparisons[operator](left, right)


def _operand(value: Any, item: dict[str, Any]) -> Any:
    if isinstance(value, AttributeBase):
        return item.get(value.name, _MISSING)
    return value


class FakeBatchWriter:
    """Stand-in for ``Table.batch_writer()``."""

    def __init__(self, table: 'FakeTable'):
        self._table = table

    def __enter__(self) -> 'FakeBatchWriter':
        return self

    def __exit__(self, *exc_info: Any) -> None:
        return None

    def delete_item(self, Key: dict[str, Any]) -> None:
        self._table._check_failure('batch_delete')
        self._table.items.pop(self._table._key_of(Key), None)

    def put_item(self, Item: dict[str, Any]) -> None:
        self._table.items[self._table._key_of(Item)] = copy.deepcopy(Item)


class FakeClient:
    """Stand-in for ``Table.meta.client`` (transactions only)."""

    def __init__(self, table: 'FakeTable'):
        self._table = table

    def transact_write_items(self, TransactItems: list[dict[str, Any]]) -> dict[str, Any]:
        table = self._table
        table.calls.append('transact_write_items')
        table._check_failure('transact_write_items')

        reasons = []
        for action in TransactItems:
            ((kind, body),) = action.items()
            assert body['TableName'] == table.name
            target = body['Item'] if kind == 'Put' else body['Key']
            current = table.items.get(table._key_of(target))
            condition = body.get('ConditionExpression')
            ok = condition is None or evaluate_condition(condition, current)
            reasons.append({'Code': 'None' if ok else 'ConditionalCheckFailed'})

        if any(reason['Code'] != 'None' for reason in reasons):
            raise client_error(
                'TransactionCanceledException',
                'TransactWriteItems',
                CancellationReasons=reasons,
            )

        for action in TransactItems:
            ((kind, body),) = action.items()
            if kind == 'Put':
                table.items[table._key_of(body['Item'])] = copy.deepcopy(body['Item'])
            else:
                table.items.pop(table._key_of(body['Key']), None)
        return {}


class FakeTable:
    """In-memory stand-in for a boto3 ``dynamodb.Table`` resource.

    Conditions are evaluated from the boto3 condition objects themselves,
    secondary indexes are sparse (items without the index key are left
    out) and ``page_size`` forces paginated responses.
    """

    def __init__(
        self,
        name: str,
        key_schema: tuple[str, ...],
        indexes: Optional[dict[str, str]] = None,
        page_size: Optional[int] = None,
    ):
        self.name = name
        self.key_schema = key_schema
        self.indexes = indexes or {}
        self.page_size = page_size
        self.items: dict[tuple[Any, ...], dict[str, Any]] = {}
        self.calls: list[str] = []
        self.failures: dict[str, Exception] = {}
        self.meta = SimpleNamespace(client=FakeClient(self))

    # Helpers for tests

    def seed(self, *items: dict[str, Any]) -> None:
        for item in items:
            self.items[self._key_of(item)] = copy.deepcopy(item)

    def fail(self, operation: str, exc: Exception) -> None:
        self.failures[operation] = exc

    def _check_failure(self, operation: str) -> None:
        if operation in self.failures:
            raise self.failures[operation]

    def _key_of(self, item: dict[str, Any]) -> tuple[Any, ...]:
        return tuple(item[name] for name in self.key_schema)

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        self._check_failure(operation)

    def _check(self, condition: Any, current: Optional[dict[str, Any]], operation: str) -> None:
        if condition is not None and not evaluate_condition(condition, current):
            raise client_error('ConditionalCheckFailedException', operation)

    # boto3 Table interface

    def get_item(self, Key: dict[str, Any]) -> dict[str, Any]:
        self._record('get_item')
        item = self.items.get(self._key_of(Key))
        return {'Item': copy.deepcopy(item)} if item is not None else {}

    def put_item(self, Item: dict[str, Any], ConditionExpression: Any = None) -> dict[str, Any]:
        self._record('put_item')
        key = self._key_of(Item)
        self._check(ConditionExpression, self.items.get(key), 'PutItem')
        self.items[key] = copy.deepcopy(Item)
        return {}

    def update_item(
        self,
        Key: dict[str, Any],
        UpdateExpression: str,
        ExpressionAttributeNames: dict[str, str],
        ExpressionAttributeValues: dict[str, Any],
        ReturnValues: str = 'NONE',
        ConditionExpression: Any = None,
    ) -> dict[str, Any]:
        self._record('update_item')
        key = self._key_of(Key)
        current = self.items.get(key)
        self._check(ConditionExpression, current, 'UpdateItem')

        updated = copy.deepcopy(current) if current else dict(Key)
        assert UpdateExpression.startswith('SET ')
        for assignment in UpdateExpression[4:].split(', '):
            name, value = (part.strip() for part in assignment.split('='))
            updated[ExpressionAttributeNames[name]] = copy.deepcopy(
                ExpressionAttributeValues[value]
            )
        self.items[key] = updated
        return {'Attributes': copy.deepcopy(updated)}

    def delete_item(self, Key: dict[str, Any], ConditionExpression: Any = None) -> dict[str, Any]:
        self._record('delete_item')
        key = self._key_of(Key)
        self._check(ConditionExpression, self.items.get(key), 'DeleteItem')
        self.items.pop(key, None)
        return {}

    def query(
        self,
        KeyConditionExpression: Any,
        FilterExpression: Any = None,
        IndexName: Optional[str] = None,
        Limit: Optional[int] = None,
        ExclusiveStartKey: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        self._record('query')
        candidates = list(self._sorted_items())
        if IndexName:
            index_key = self.indexes[IndexName]
            candidates = [item for item in candidates if index_key in item]
        candidates = [
            item for item in candidates if evaluate_condition(KeyConditionExpression, item)
        ]
        return self._page(candidates, FilterExpression, Limit, ExclusiveStartKey)

    def scan(
        self,
        FilterExpression: Any = None,
        ExclusiveStartKey: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        self._record('scan')
        return self._page(list(self._sorted_items()), FilterExpression, None, ExclusiveStartKey)

    def batch_writer(self) -> FakeBatchWriter:
        self.calls.append('batch_writer')
        return FakeBatchWriter(self)

    def _sorted_items(self):
        for key in sorted(self.items, key=lambda k: tuple(str(part) for part in k)):
            yield self.items[key]

    def _page(
        self,
        candidates: list[dict[str, Any]],
        filter_expression: Any,
        limit: Optional[int],
        start_key: Optional[dict[str, Any]],
    ) -> dict[str, Any]:
        if start_key:
            start = self._key_of(start_key)
            keys = [self._key_of(item) for item in candidates]
            candidates = candidates[keys.index(start) + 1:]

        page_size = min(filter(None, [limit, self.page_size]), default=None)
        page = candidates[:page_size] if page_size else candidates
        response: dict[str, Any] = {
            'Items': [
                copy.deepcopy(item)
                for item in page
                if filter_expression is None or evaluate_condition(filter_expression, item)
            ]
        }
        if page_size and len(candidates) > page_size:
            last = page[-1]
            response['LastEvaluatedKey'] = {name: last[name] for name in self.key_schema}
        return response


@pytest.fixture
def game_table() -> FakeTable:
    return FakeTable('Games', ('userId', 'gameId'), {'GameIdIndex': 'gameId'})


@pytest.fixture
def user_table() -> FakeTable:
    return FakeTable(
        'Users',
        ('userId',),
        {'UsernameIndex': 'username', 'EmailIndex': 'email'},
    )


@pytest.fixture
def translate_table() -> FakeTable:
    return FakeTable('Translations', ('gameId', 'targetLanguage'))


# --- Tokens ---


@pytest.fixture(scope='session')
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope='session')
def private_key_pem(rsa_private_key) -> bytes:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


class FakeJWKSClient:
    """Resolves the test signing key by ``kid``, like PyJWKClient."""

    def __init__(self, public_key: Any, key_id: str = KEY_ID):
        self._public_key = public_key
        self._key_id = key_id
        self.lookups = 0

    def get_signing_key_from_jwt(self, token: str) -> Any:
        self.lookups += 1
        header = jwt.get_unverified_header(token)
        if header.get('kid') != self._key_id:
            raise PyJWKClientError(f'Unable to find a signing key that matches: {header.get("kid")}')
        return SimpleNamespace(key=self._public_key)


@pytest.fixture
def jwks_client(rsa_private_key) -> FakeJWKSClient:
    return FakeJWKSClient(rsa_private_key.public_key())


@pytest.fixture
def verifier(jwks_client) -> IdentityVerifier:
    return IdentityVerifier(REGION, USER_POOL_ID, CLIENT_ID, jwks_client=jwks_client)


@pytest.fixture
def make_token(private_key_pem) -> Callable[..., str]:
    """Mint an RS256 ID token; keyword arguments override claims."""

    def _make(
        email: str = 'owner@example.com',
        key: Optional[bytes] = None,
        kid: str = KEY_ID,
        **overrides: Any,
    ) -> str:
        now = int(time.time())
        claims: dict[str, Any] = {
            'sub': str(uuid4()),
            'email': email,
            'iss': issuer_url(REGION, USER_POOL_ID),
            'aud': CLIENT_ID,
            'token_use': 'id',
            'iat': now,
            'exp': now + 3600,
        }
        claims.update(overrides)
        claims = {name: value for name, value in claims.items() if value is not None}
        return jwt.encode(
            claims,
            key or private_key_pem,
            algorithm='RS256',
            headers={'kid': kid},
        )

    return _make


# --- Services ---


class FakeTranslator:
    """Records calls and returns a tagged copy of the text."""

    def __init__(self):
        self.calls: list[tuple[str, str, str]] = []
        self.fail_on_call: Optional[int] = None

    def translate_text(self, text: str, source_language: str, target_language: str) -> str:
        self.calls.append((text, source_language, target_language))
        if self.fail_on_call is not None and len(self.calls) >= self.fail_on_call:
            raise TranslationProviderError('ServiceUnavailableException')
        return f'[{target_language}] {text}'


@pytest.fixture
def translator() -> FakeTranslator:
    return FakeTranslator()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        region=REGION,
        user_pool_id=USER_POOL_ID,
        client_id=CLIENT_ID,
        game_table_name='Games',
        user_table_name='Users',
        translate_table_name='Translations',
    )


@pytest.fixture
def services(
    mocker,
    settings,
    verifier,
    game_table,
    user_table,
    translate_table,
    translator,
) -> Services:
    users = UserRepository(DynamoTable(user_table))
    games = GameRepository(DynamoTable(game_table))
    memos = TranslationMemoRepository(DynamoTable(translate_table))
    return Services(
        settings=settings,
        verifier=verifier,
        users=users,
        games=games,
        memos=memos,
        guard=OwnershipGuard(users, games),
        memoizer=TranslationMemoizer(games, memos, translator),
        identity_provider=mocker.Mock(),
    )


# --- Sample Data ---


@pytest.fixture
def owner_profile(services) -> UserProfile:
    """A stored profile owned by owner@example.com."""
    profile = UserProfile(
        user_id='user-1',
        username='owner',
        name='Owner',
        email='owner@example.com',
        favorite_genres=['RPG'],
    )
    services.users.create(profile)
    return profile


@pytest.fixture
def other_profile(services) -> UserProfile:
    """A stored profile owned by someone else."""
    profile = UserProfile(
        user_id='user-2',
        username='other',
        name='Other',
        email='other@example.com',
    )
    services.users.create(profile)
    return profile


def make_game(user_id: str = 'user-1', game_id: str = 'G001', **overrides: Any) -> Game:
    """Create a Game with sensible defaults."""
    values: dict[str, Any] = {
        'user_id': user_id,
        'game_id': game_id,
        'title': 'Star Quest',
        'genre': 'RPG',
        'description': 'An epic journey',
        'release_year': 2020,
        'platform': ['PC'],
        'popularity': Decimal('85'),
        'source_language': 'en',
    }
    values.update(overrides)
    return Game(**values)


# --- API Event Fixtures ---


@pytest.fixture
def api_event() -> Callable[..., dict[str, Any]]:
    """Build an API Gateway REST proxy event."""

    def _make(
        method: str = 'GET',
        path: str = '/',
        body: Any = None,
        query: Optional[dict[str, str]] = None,
        path_params: Optional[dict[str, str]] = None,
        token: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        event_headers = {'origin': 'http://localhost:3000'}
        if body is not None:
            event_headers['Content-Type'] = 'application/json'
        if token is not None:
            event_headers['Cookie'] = f'token={token}'
        event_headers.update(headers or {})
        return {
            'httpMethod': method,
            'path': path,
            'queryStringParameters': query or None,
            'multiValueQueryStringParameters': None,
            'pathParameters': path_params,
            'headers': event_headers,
            'requestContext': {'requestId': str(uuid4()), 'authorizer': {}},
            'body': body if body is None or isinstance(body, str) else json.dumps(body),
            'isBase64Encoded': False,
        }

    return _make


def response_body(response: dict[str, Any]) -> Any:
    """Decode the JSON body of a handler response."""
    return json.loads(response['body'])
