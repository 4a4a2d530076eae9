"""Utility modules for the Lambda handlers."""

from games_api.utils.logging import configure_logging, get_logger, mask_email
from games_api.utils.responses import json_response

__all__ = [
    "configure_logging",
    "get_logger",
    "json_response",
    "mask_email",
]
