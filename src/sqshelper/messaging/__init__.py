"""Messaging building blocks: SQS and S3 adapters and the payload transformer."""
from .envelope import ActionMessage, ActionType, format_message, parse_message
from .handle import DecodedHandle, decode_handle, encode_handle, is_encoded_handle
from .models import (
    RESERVED_ATTRIBUTE_NAME,
    BatchDeleteResult,
    BatchFailure,
    DeleteEntry,
    OutboundMessage,
    PointerRecord,
    ReceivedMessage,
    ReceiveRequest,
)
from .queue import SqsQueueClient
from .size import message_size
from .store import PayloadStore, S3PayloadStore
from .transformer import PayloadTransformer

__all__ = [
    "RESERVED_ATTRIBUTE_NAME",
    "ActionMessage",
    "ActionType",
    "BatchDeleteResult",
    "BatchFailure",
    "DecodedHandle",
    "DeleteEntry",
    "OutboundMessage",
    "PayloadStore",
    "PayloadTransformer",
    "PointerRecord",
    "ReceivedMessage",
    "ReceiveRequest",
    "S3PayloadStore",
    "SqsQueueClient",
    "decode_handle",
    "encode_handle",
    "format_message",
    "is_encoded_handle",
    "message_size",
    "parse_message",
]
