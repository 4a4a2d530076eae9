"""Shared boto3 client factory with caching.

Lambda reuses the process between invocations, so clients are created once
per (service, region) and handed to components through the service
container rather than imported by them.
"""

from __future__ import annotations

from typing import Any

import boto3

_CLIENT_CACHE: dict[tuple[str, str | None], Any] = {}
_RESOURCE_CACHE: dict[tuple[str, str | None], Any] = {}


def get_client(service: str, region_name: str | None = None) -> Any:
    """Return a cached boto3 client for the given service."""
    cache_key = (service, region_name)
    if cache_key in _CLIENT_CACHE:
        return _CLIENT_CACHE[cache_key]
    client = boto3.client(  # type: ignore[call-overload]
        service,
        region_name=region_name,
    )
    _CLIENT_CACHE[cache_key] = client
    return client


def get_resource(service: str, region_name: str | None = None) -> Any:
    """Return a cached boto3 service resource."""
    cache_key = (service, region_name)
    if cache_key in _RESOURCE_CACHE:
        return _RESOURCE_CACHE[cache_key]
    resource = boto3.resource(  # type: ignore[call-overload]
        service,
        region_name=region_name,
    )
    _RESOURCE_CACHE[cache_key] = resource
    return resource


def clear_client_cache() -> None:
    """Clear cached boto3 clients and resources (useful in tests)."""
    _CLIENT_CACHE.clear()
    _RESOURCE_CACHE.clear()


def get_dynamodb_table(table_name: str, region_name: str | None = None) -> Any:
    return get_resource("dynamodb", region_name=region_name).Table(table_name)


def get_translate_client(region_name: str | None = None) -> Any:
    return get_client("translate", region_name=region_name)


def get_cognito_idp_client(region_name: str | None = None) -> Any:
    return get_client("cognito-idp", region_name=region_name)
