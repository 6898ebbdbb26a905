from __future__ import annotations

import functools
from typing import Any, Dict, List, Sequence

import anyio
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from sqshelper.messaging.models import (
    BatchDeleteResult,
    BatchFailure,
    DeleteEntry,
    OutboundMessage,
    ReceivedMessage,
    ReceiveRequest,
)
from sqshelper.shared.exceptions import (
    ConfigurationError,
    NotFoundError,
    TransportError,
    ValidationError,
    aws_error_code,
    transport_error,
)
from sqshelper.shared.logging import get_logger

logger = get_logger(__name__)

MAX_BATCH_ENTRIES = 10

_MISSING_QUEUE_CODES = {"AWS.SimpleQueueService.NonExistentQueue", "QueueDoesNotExist"}


class SqsQueueClient:
    """Thin async wrapper around the boto3 SQS client."""

    def __init__(self, client: BaseClient) -> None:
        self._client = client

    async def send(self, queue_url: str, message: OutboundMessage) -> str:
        """Send the message and return the provider message id."""
        params: Dict[str, Any] = {
            "QueueUrl": queue_url,
            "MessageBody": message.body,
        }
        if message.attributes:
            params["MessageAttributes"] = dict(message.attributes)
        if message.delay_seconds is not None:
            params["DelaySeconds"] = message.delay_seconds
        if message.message_group_id:
            params["MessageGroupId"] = message.message_group_id
        if message.message_deduplication_id:
            params["MessageDeduplicationId"] = message.message_deduplication_id

        response = await self._call("send_message", **params)
        message_id = response["MessageId"]
        logger.debug(
            "sqs_message_sent",
            extra={"queue_url": queue_url, "message_id": message_id},
        )
        return message_id

    async def receive(self, queue_url: str, request: ReceiveRequest) -> List[ReceivedMessage]:
        """Receive up to ``request.max_number_of_messages`` messages."""
        params: Dict[str, Any] = {
            "QueueUrl": queue_url,
            "MaxNumberOfMessages": request.max_number_of_messages,
        }
        if request.wait_time_seconds is not None:
            params["WaitTimeSeconds"] = request.wait_time_seconds
        if request.visibility_timeout is not None:
            params["VisibilityTimeout"] = request.visibility_timeout
        if request.message_attribute_names:
            params["MessageAttributeNames"] = list(request.message_attribute_names)
        if request.attribute_names:
            params["AttributeNames"] = list(request.attribute_names)

        response = await self._call("receive_message", **params)
        received = [ReceivedMessage.from_sqs(raw) for raw in response.get("Messages", [])]
        if received:
            logger.debug(
                "sqs_messages_received",
                extra={"count": len(received), "queue_url": queue_url},
            )
        return received

    async def delete(self, queue_url: str, receipt_handle: str) -> None:
        """Delete a processed message via its receipt handle."""
        await self._call("delete_message", QueueUrl=queue_url, ReceiptHandle=receipt_handle)
        logger.debug("sqs_message_deleted", extra={"queue_url": queue_url})

    async def delete_batch(
        self, queue_url: str, entries: Sequence[DeleteEntry]
    ) -> BatchDeleteResult:
        if not 1 <= len(entries) <= MAX_BATCH_ENTRIES:
            raise ValidationError(
                f"batch delete takes 1 to {MAX_BATCH_ENTRIES} entries, got {len(entries)}",
                field="entries",
            )
        response = await self._call(
            "delete_message_batch",
            QueueUrl=queue_url,
            Entries=[{"Id": e.id, "ReceiptHandle": e.receipt_handle} for e in entries],
        )
        result = BatchDeleteResult(
            successful=tuple(item["Id"] for item in response.get("Successful", [])),
            failed=tuple(
                BatchFailure(
                    id=item["Id"],
                    code=item["Code"],
                    message=item.get("Message"),
                    sender_fault=item.get("SenderFault", False),
                )
                for item in response.get("Failed", [])
            ),
        )
        if result.failed:
            logger.warning(
                "sqs_batch_delete_partial_failure",
                extra={
                    "queue_url": queue_url,
                    "failed_ids": [f.id for f in result.failed],
                },
            )
        return result

    async def resolve_queue_url(self, queue_name: str, owner_id: str | None) -> str:
        """Resolve the absolute queue URL of ``queue_name`` owned by ``owner_id``."""
        if not owner_id:
            raise ConfigurationError("missing account id", setting="account_id")
        if not queue_name:
            raise ConfigurationError("invalid queue name", setting="queue_name")
        try:
            response = await self._call(
                "get_queue_url",
                QueueName=queue_name,
                QueueOwnerAWSAccountId=owner_id,
            )
        except TransportError as exc:
            if exc.aws_code in _MISSING_QUEUE_CODES:
                raise NotFoundError(
                    "queue",
                    queue_name,
                    service="sqs",
                    operation="get_queue_url",
                    aws_code=exc.aws_code,
                ) from exc
            raise
        logger.debug("sqs_queue_url_resolved", extra={"queue_url": response["QueueUrl"]})
        return response["QueueUrl"]

    async def _call(self, operation: str, **params: Any) -> dict[str, Any]:
        method = getattr(self._client, operation)
        try:
            return await anyio.to_thread.run_sync(functools.partial(method, **params))
        except (BotoCoreError, ClientError) as exc:
            logger.error(
                "sqs_call_failed",
                extra={
                    "operation": operation,
                    "queue_url": params.get("QueueUrl"),
                    "aws_code": aws_error_code(exc),
                },
            )
            raise transport_error(
                exc, "sqs", operation, details={"queue_url": params.get("QueueUrl")}
            ) from exc
