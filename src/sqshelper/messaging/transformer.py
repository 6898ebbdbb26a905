"""
Large payload transformation.

Send side: bodies whose size (body plus message attributes) exceeds the
threshold are uploaded to the payload store and replaced by a pointer record;
the reserved ``SQSLargePayloadSize`` attribute marks such messages.

Receive side: marked messages are rehydrated from the store, the marker is
removed and the S3 pointer is embedded in the receipt handle.

Delete side: encoded receipt handles are decoded back to the original SQS
handle; the stored payload is deleted only when store deletion is enabled.

Inputs are never mutated; every step returns a new message.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Dict, List, Sequence, Tuple

from sqshelper.config import DEFAULT_MESSAGE_SIZE_THRESHOLD
from sqshelper.messaging.handle import decode_handle, encode_handle, is_encoded_handle
from sqshelper.messaging.models import (
    RESERVED_ATTRIBUTE_NAME,
    DeleteEntry,
    OutboundMessage,
    PointerRecord,
    ReceivedMessage,
    ReceiveRequest,
)
from sqshelper.messaging.size import byte_size, is_large
from sqshelper.messaging.store import PayloadStore
from sqshelper.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_WAIT_TIME_SECONDS = 20


class PayloadTransformer:
    """Offloads, rehydrates and cleans up large message payloads."""

    def __init__(
        self,
        store: PayloadStore,
        *,
        threshold: int = DEFAULT_MESSAGE_SIZE_THRESHOLD,
        delete_from_store: bool = False,
        wait_time_seconds: int = DEFAULT_WAIT_TIME_SECONDS,
    ) -> None:
        self._store = store
        self._threshold = threshold
        self._delete_from_store = delete_from_store
        self._wait_time_seconds = wait_time_seconds

    @property
    def delete_from_store(self) -> bool:
        return self._delete_from_store

    async def prepare_outbound(self, message: OutboundMessage) -> OutboundMessage:
        """Return ``message`` ready to send, offloading its body if too large."""
        attributes = dict(message.attributes or {})
        if attributes.pop(RESERVED_ATTRIBUTE_NAME, None) is not None:
            logger.warning(
                "reserved_attribute_dropped",
                extra={"attribute": RESERVED_ATTRIBUTE_NAME},
            )
            message = replace(message, attributes=attributes)

        if not is_large(message.body, attributes, self._threshold):
            return message

        pointer = await self._store.put(message.body)
        body_size = byte_size(message.body)
        attributes[RESERVED_ATTRIBUTE_NAME] = {
            "DataType": "Number",
            "StringValue": str(body_size),
        }
        logger.info(
            "payload_offloaded",
            extra={"bucket": pointer.bucket, "key": pointer.key, "size": body_size},
        )
        return replace(message, body=pointer.to_json(), attributes=attributes)

    def prepare_receive_request(self, request: ReceiveRequest) -> ReceiveRequest:
        """Always request the marker attribute and default to long polling."""
        names = request.message_attribute_names
        if not request.requests_attribute(RESERVED_ATTRIBUTE_NAME):
            names = tuple(names) + (RESERVED_ATTRIBUTE_NAME,)
        wait = request.wait_time_seconds
        if wait is None:
            wait = self._wait_time_seconds
        return replace(request, message_attribute_names=names, wait_time_seconds=wait)

    async def fix_inbound(self, message: ReceivedMessage) -> ReceivedMessage:
        """Rehydrate an offloaded message; other messages pass through."""
        if RESERVED_ATTRIBUTE_NAME not in (message.attributes or {}):
            return message

        pointer = PointerRecord.from_json(message.body)
        body = await self._store.get(pointer.bucket, pointer.key)
        attributes = {
            name: value
            for name, value in message.attributes.items()
            if name != RESERVED_ATTRIBUTE_NAME
        }
        logger.debug(
            "payload_rehydrated",
            extra={
                "message_id": message.message_id,
                "bucket": pointer.bucket,
                "key": pointer.key,
            },
        )
        return replace(
            message,
            body=body,
            attributes=attributes,
            receipt_handle=encode_handle(message.receipt_handle, pointer.bucket, pointer.key),
        )

    async def fix_inbound_batch(
        self, messages: Sequence[ReceivedMessage]
    ) -> List[ReceivedMessage]:
        return list(await asyncio.gather(*(self.fix_inbound(m) for m in messages)))

    async def resolve_delete(self, receipt_handle: str) -> str:
        """Return the SQS receipt handle to delete, cleaning up the store first."""
        if not is_encoded_handle(receipt_handle):
            return receipt_handle
        decoded = decode_handle(receipt_handle)
        if self._delete_from_store:
            await self._store.delete(decoded.bucket, decoded.key)
        else:
            logger.debug(
                "payload_delete_skipped",
                extra={"bucket": decoded.bucket, "key": decoded.key},
            )
        return decoded.receipt_handle

    def split_batch(
        self, entries: Sequence[DeleteEntry]
    ) -> Tuple[List[DeleteEntry], Dict[str, List[str]]]:
        """Decode every entry's handle and group offloaded keys by bucket."""
        rewritten: List[DeleteEntry] = []
        keys_by_bucket: Dict[str, List[str]] = {}
        for entry in entries:
            if is_encoded_handle(entry.receipt_handle):
                decoded = decode_handle(entry.receipt_handle)
                keys_by_bucket.setdefault(decoded.bucket, []).append(decoded.key)
                entry = replace(entry, receipt_handle=decoded.receipt_handle)
            rewritten.append(entry)
        return rewritten, keys_by_bucket

    async def delete_stored_batch(self, keys_by_bucket: Dict[str, List[str]]) -> None:
        """Issue one multi-key deletion per bucket."""
        if not keys_by_bucket:
            return
        if not self._delete_from_store:
            logger.debug(
                "payload_batch_delete_skipped",
                extra={"buckets": sorted(keys_by_bucket)},
            )
            return
        results = await asyncio.gather(
            *(self._store.delete_many(bucket, keys) for bucket, keys in keys_by_bucket.items()),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
