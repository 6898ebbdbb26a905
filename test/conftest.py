"""
Pytest configuration and fixtures.

The in-memory store and queue below stand in for S3 and SQS in transformer,
client and consumer tests; the boto3 adapters themselves are tested with
botocore's Stubber.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import boto3
import pytest

from sqshelper.client import LargePayloadClient
from sqshelper.config import reset_settings_cache
from sqshelper.messaging.models import (
    ALL_ATTRIBUTES,
    BatchDeleteResult,
    DeleteEntry,
    OutboundMessage,
    PointerRecord,
    ReceivedMessage,
    ReceiveRequest,
)
from sqshelper.messaging.transformer import PayloadTransformer
from sqshelper.shared.exceptions import NotFoundError

QUEUE_URL = "https://sqs.eu-central-1.amazonaws.com/123456789012/test-queue"


class InMemoryPayloadStore:
    """PayloadStore keeping bodies in a dict and recording every call."""

    def __init__(self, bucket: str = "payload-bucket") -> None:
        self.bucket = bucket
        self.objects: Dict[Tuple[str, str], str] = {}
        self.deleted: List[Tuple[str, str]] = []
        self.batch_deletes: List[Tuple[str, List[str]]] = []
        self.fail_with: Exception | None = None
        self._counter = 0

    async def put(self, body: str) -> PointerRecord:
        if self.fail_with:
            raise self.fail_with
        self._counter += 1
        key = f"key-{self._counter}"
        self.objects[(self.bucket, key)] = body
        return PointerRecord(bucket=self.bucket, key=key)

    async def get(self, bucket: str, key: str) -> str:
        try:
            return self.objects[(bucket, key)]
        except KeyError:
            raise NotFoundError("payload", f"s3://{bucket}/{key}") from None

    async def delete(self, bucket: str, key: str) -> None:
        if self.fail_with:
            raise self.fail_with
        self.deleted.append((bucket, key))
        self.objects.pop((bucket, key), None)

    async def delete_many(self, bucket: str, keys: Sequence[str]) -> None:
        if self.fail_with:
            raise self.fail_with
        self.batch_deletes.append((bucket, list(keys)))
        for key in keys:
            self.objects.pop((bucket, key), None)


@dataclass
class InMemoryQueue:
    """Queue adapter double mimicking SQS attribute filtering on receive."""

    messages: List[ReceivedMessage] = field(default_factory=list)
    sent: List[OutboundMessage] = field(default_factory=list)
    requests: List[ReceiveRequest] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    batch_deleted: List[List[DeleteEntry]] = field(default_factory=list)
    fail_with: Exception | None = None

    async def send(self, queue_url: str, message: OutboundMessage) -> str:
        self.sent.append(message)
        number = len(self.sent)
        self.messages.append(
            ReceivedMessage(
                message_id=f"mid-{number}",
                receipt_handle=f"AQEBnative{number}+handle/abc==",
                body=message.body,
                attributes=dict(message.attributes),
            )
        )
        return f"mid-{number}"

    async def receive(self, queue_url: str, request: ReceiveRequest) -> List[ReceivedMessage]:
        if self.fail_with:
            raise self.fail_with
        self.requests.append(request)
        batch = self.messages[: request.max_number_of_messages]
        del self.messages[: request.max_number_of_messages]
        return [self._filter(message, request) for message in batch]

    async def delete(self, queue_url: str, receipt_handle: str) -> None:
        self.deleted.append(receipt_handle)

    async def delete_batch(
        self, queue_url: str, entries: Sequence[DeleteEntry]
    ) -> BatchDeleteResult:
        if self.fail_with:
            raise self.fail_with
        self.batch_deleted.append(list(entries))
        return BatchDeleteResult(successful=tuple(e.id for e in entries))

    async def resolve_queue_url(self, queue_name: str, owner_id: str | None) -> str:
        return QUEUE_URL

    @staticmethod
    def _filter(message: ReceivedMessage, request: ReceiveRequest) -> ReceivedMessage:
        names = request.message_attribute_names
        if any(n in ALL_ATTRIBUTES for n in names):
            return message
        return ReceivedMessage(
            message_id=message.message_id,
            receipt_handle=message.receipt_handle,
            body=message.body,
            attributes={k: v for k, v in message.attributes.items() if k in names},
        )


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch):
    """Keep environment-driven settings isolated per test."""
    for name in ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_SESSION_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def store() -> InMemoryPayloadStore:
    return InMemoryPayloadStore()


@pytest.fixture
def queue() -> InMemoryQueue:
    return InMemoryQueue()


@pytest.fixture
def transformer(store: InMemoryPayloadStore) -> PayloadTransformer:
    return PayloadTransformer(store)


@pytest.fixture
def make_client(queue: InMemoryQueue, store: InMemoryPayloadStore):
    def _make(delete_from_store: bool = False, threshold: int = 256 * 1000) -> LargePayloadClient:
        transformer = PayloadTransformer(
            store, threshold=threshold, delete_from_store=delete_from_store
        )
        return LargePayloadClient(
            queue, transformer, account_id="123456789012", receiver_sleep_ms=0
        )

    return _make


@pytest.fixture
def sqs_client():
    return boto3.client(
        "sqs",
        region_name="eu-central-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="eu-central-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
