"""Request parsing helpers for API Gateway proxy events."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Mapping, Optional

from games_api.exceptions import ValidationError


def parse_body(event: Mapping[str, Any]) -> dict[str, Any]:
    """Parse the JSON request body into a dict."""
    raw = event.get("body") or ""
    if event.get("isBase64Encoded") and raw:
        try:
            raw = base64.b64decode(raw, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise ValidationError("Request body is not valid base64") from exc
    if not raw:
        raise ValidationError("Request body is required")
    try:
        body = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError("Request body must be valid JSON") from exc
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def parse_path(path: str) -> list[str]:
    """Split a request path into segments, dropping a v{n} prefix."""
    parts = [segment for segment in path.split("/") if segment]
    if parts and _is_version_segment(parts[0]):
        return parts[1:]
    return parts


def _is_version_segment(segment: str) -> bool:
    """Return True if the path segment matches v{number}."""
    return segment.startswith("v") and segment[1:].isdigit()


def query_params(event: Mapping[str, Any]) -> dict[str, list[str]]:
    """Merge the multi-value and single-value query parameter maps.

    REST API events carry both; a name found in the multi-value map keeps
    all of its values and is not repeated from the single-value map.
    """
    merged: dict[str, list[str]] = {}
    multi = event.get("multiValueQueryStringParameters") or {}
    for name, values in multi.items():
        kept = [value for value in values or [] if value is not None]
        if kept:
            merged[name] = kept
    single = event.get("queryStringParameters") or {}
    for name, value in single.items():
        if value is not None:
            merged.setdefault(name, [value])
    return merged


def query_param(event: Mapping[str, Any], name: str) -> Optional[str]:
    """Return the first value of a query parameter."""
    values = query_params(event).get(name)
    return values[0] if values else None


def path_param(event: Mapping[str, Any], name: str) -> Optional[str]:
    """Return a path parameter resolved by API Gateway."""
    params = event.get("pathParameters") or {}
    value = params.get(name)
    return value or None


def http_method(event: Mapping[str, Any]) -> str:
    """Return the request method for REST (v1) and HTTP API (v2) events."""
    method = event.get("httpMethod")
    if not method:
        method = event.get("requestContext", {}).get("http", {}).get("method", "")
    return str(method).upper()


def request_path(event: Mapping[str, Any]) -> str:
    """Return the request path for REST (v1) and HTTP API (v2) events."""
    return event.get("path") or event.get("rawPath") or ""
