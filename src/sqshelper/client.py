"""
Caller-facing SQS client with transparent large payload support.

Usage::

    client = LargePayloadClient.from_settings()
    queue_url = await client.get_queue_url("orders")
    await client.send_action(queue_url, big_document, ActionType.CREATE, "r1")
    for message in await client.receive_messages(queue_url):
        ...
        await client.delete_message(queue_url, message.receipt_handle)
"""

from __future__ import annotations

import asyncio
from typing import Any, List, Sequence

from sqshelper.config import HelperSettings, get_settings
from sqshelper.messaging.envelope import ActionType, format_message
from sqshelper.messaging.models import (
    BatchDeleteResult,
    DeleteEntry,
    MessageAttributes,
    OutboundMessage,
    ReceivedMessage,
    ReceiveRequest,
)
from sqshelper.messaging.queue import MAX_BATCH_ENTRIES, SqsQueueClient
from sqshelper.messaging.store import S3PayloadStore
from sqshelper.messaging.transformer import PayloadTransformer
from sqshelper.session import AwsSession, create_session
from sqshelper.shared.exceptions import BatchDeleteError, HelperError, ValidationError
from sqshelper.shared.logging import get_logger
from sqshelper.workers.base import ConsumerLoop, MessageHandler

logger = get_logger(__name__)


class LargePayloadClient:
    """Send, receive and delete SQS messages of any size."""

    def __init__(
        self,
        queue: SqsQueueClient,
        transformer: PayloadTransformer,
        *,
        account_id: str | None = None,
        receiver_sleep_ms: int = 5000,
    ) -> None:
        self._queue = queue
        self._transformer = transformer
        self._account_id = account_id
        self._receiver_sleep_ms = receiver_sleep_ms

    @classmethod
    def from_settings(
        cls,
        settings: HelperSettings | None = None,
        session: AwsSession | None = None,
    ) -> "LargePayloadClient":
        settings = settings or get_settings()
        session = session or create_session(settings)
        transformer = PayloadTransformer(
            S3PayloadStore(session.s3, settings.payload_bucket_name),
            threshold=settings.size_threshold_bytes,
            delete_from_store=settings.delete_from_store,
            wait_time_seconds=settings.wait_time_seconds,
        )
        return cls(
            SqsQueueClient(session.sqs),
            transformer,
            account_id=session.account_id,
            receiver_sleep_ms=settings.receiver_sleep_ms,
        )

    async def get_queue_url(self, queue_name: str) -> str:
        return await self._queue.resolve_queue_url(queue_name, self._account_id)

    async def send_message(self, queue_url: str, message: OutboundMessage) -> str:
        """Send ``message``, offloading its body to S3 when too large."""
        prepared = await self._transformer.prepare_outbound(message)
        return await self._queue.send(queue_url, prepared)

    async def send_action(
        self,
        queue_url: str,
        payload: Any,
        action: ActionType | str,
        request_id: str | None = None,
        attributes: MessageAttributes | None = None,
    ) -> str:
        """Wrap ``payload`` in an action envelope and send it."""
        body = format_message(payload, action, request_id)
        return await self.send_message(
            queue_url, OutboundMessage(body=body, attributes=attributes or {})
        )

    async def receive_messages(
        self, queue_url: str, request: ReceiveRequest | None = None
    ) -> List[ReceivedMessage]:
        """Receive messages with offloaded bodies already rehydrated."""
        request = self._transformer.prepare_receive_request(request or ReceiveRequest())
        messages = await self._queue.receive(queue_url, request)
        return await self._transformer.fix_inbound_batch(messages)

    async def delete_message(self, queue_url: str, receipt_handle: str) -> None:
        handle = await self._transformer.resolve_delete(receipt_handle)
        await self._queue.delete(queue_url, handle)

    async def delete_message_batch(
        self, queue_url: str, entries: Sequence[DeleteEntry]
    ) -> BatchDeleteResult:
        """Delete up to ten messages; store and queue deletions run concurrently."""
        if not 1 <= len(entries) <= MAX_BATCH_ENTRIES:
            raise ValidationError(
                f"batch delete takes 1 to {MAX_BATCH_ENTRIES} entries, got {len(entries)}",
                field="entries",
            )
        rewritten, keys_by_bucket = self._transformer.split_batch(entries)
        store_result, queue_result = await asyncio.gather(
            self._transformer.delete_stored_batch(keys_by_bucket),
            self._queue.delete_batch(queue_url, rewritten),
            return_exceptions=True,
        )
        store_failed = isinstance(store_result, BaseException)
        queue_failed = isinstance(queue_result, BaseException)
        if store_failed and queue_failed:
            raise BatchDeleteError(store_error=store_result, queue_error=queue_result)
        if store_failed:
            logger.error(
                "payload_batch_delete_failed",
                extra={"queue_url": queue_url, "buckets": sorted(keys_by_bucket)},
            )
            if isinstance(store_result, HelperError):
                store_result.details["queue_result"] = queue_result
            raise store_result
        if queue_failed:
            raise queue_result
        return queue_result

    async def start_consumer(
        self,
        queue_url: str,
        request: ReceiveRequest | None,
        handler: MessageHandler,
        *,
        stop_event: asyncio.Event | None = None,
        max_cycles: int | None = None,
    ) -> int:
        """Consume ``queue_url`` until stopped or a handler fails."""
        loop = ConsumerLoop(
            source=self,
            queue_url=queue_url,
            request=request or ReceiveRequest(),
            handler=handler,
            idle_interval_seconds=self._receiver_sleep_ms / 1000,
        )
        logger.info("consumer_started", extra={"queue_url": queue_url})
        return await loop.run(stop_event=stop_event, max_cycles=max_cycles)
