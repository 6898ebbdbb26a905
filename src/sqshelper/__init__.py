"""SQS client helpers with transparent S3 offloading of large payloads."""
from .client import LargePayloadClient
from .config import HelperSettings, get_settings, reset_settings_cache
from .messaging import (
    ActionType,
    DeleteEntry,
    OutboundMessage,
    ReceivedMessage,
    ReceiveRequest,
    format_message,
    parse_message,
)
from .session import AwsSession, create_session

__all__ = [
    "ActionType",
    "AwsSession",
    "DeleteEntry",
    "HelperSettings",
    "LargePayloadClient",
    "OutboundMessage",
    "ReceivedMessage",
    "ReceiveRequest",
    "create_session",
    "format_message",
    "get_settings",
    "parse_message",
    "reset_settings_cache",
]
