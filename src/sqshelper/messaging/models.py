from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple

from sqshelper.shared.exceptions import HandleDecodeError, ValidationError

# Reserved message attribute flagging an offloaded body. Never user-settable.
RESERVED_ATTRIBUTE_NAME = "SQSLargePayloadSize"

ALL_ATTRIBUTES = ("All", ".*")

MessageAttributes = Mapping[str, Dict[str, Any]]


@dataclass(frozen=True)
class OutboundMessage:
    """Message handed to the queue by the caller."""

    body: str
    attributes: MessageAttributes = field(default_factory=dict)
    delay_seconds: int | None = None
    message_group_id: str | None = None
    message_deduplication_id: str | None = None

    def __post_init__(self) -> None:
        if not self.body:
            raise ValidationError("message body cannot be empty", field="body")


@dataclass(frozen=True)
class ReceivedMessage:
    """Structured representation of an SQS message."""

    message_id: str
    receipt_handle: str
    body: str
    attributes: MessageAttributes = field(default_factory=dict)
    system_attributes: Mapping[str, str] = field(default_factory=dict)
    md5_of_body: str | None = None

    @staticmethod
    def from_sqs(raw: Mapping[str, Any]) -> "ReceivedMessage":
        return ReceivedMessage(
            message_id=raw["MessageId"],
            receipt_handle=raw["ReceiptHandle"],
            body=raw["Body"],
            attributes=dict(raw.get("MessageAttributes") or {}),
            system_attributes=dict(raw.get("Attributes") or {}),
            md5_of_body=raw.get("MD5OfBody"),
        )


@dataclass(frozen=True)
class ReceiveRequest:
    """Parameters of one receive call."""

    max_number_of_messages: int = 1
    wait_time_seconds: int | None = None
    visibility_timeout: int | None = None
    message_attribute_names: Tuple[str, ...] = ()
    attribute_names: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not 1 <= self.max_number_of_messages <= 10:
            raise ValidationError(
                "max_number_of_messages must be between 1 and 10",
                field="max_number_of_messages",
            )
        if self.wait_time_seconds is not None and not 0 <= self.wait_time_seconds <= 20:
            raise ValidationError(
                "wait_time_seconds must be between 0 and 20",
                field="wait_time_seconds",
            )
        if self.visibility_timeout is not None and self.visibility_timeout < 0:
            raise ValidationError(
                "visibility_timeout cannot be negative", field="visibility_timeout"
            )

    def requests_attribute(self, name: str) -> bool:
        names = self.message_attribute_names
        return name in names or any(n in ALL_ATTRIBUTES for n in names)


@dataclass(frozen=True)
class DeleteEntry:
    """One entry of a batch delete."""

    id: str
    receipt_handle: str


@dataclass(frozen=True)
class BatchFailure:
    id: str
    code: str
    message: str | None = None
    sender_fault: bool = False


@dataclass(frozen=True)
class BatchDeleteResult:
    successful: Tuple[str, ...] = ()
    failed: Tuple[BatchFailure, ...] = ()


@dataclass(frozen=True)
class PointerRecord:
    """Location of an offloaded body; serialized as the queue message body."""

    bucket: str
    key: str

    def to_json(self) -> str:
        return json.dumps({"s3BucketName": self.bucket, "s3Key": self.key})

    @staticmethod
    def from_json(body: str) -> "PointerRecord":
        try:
            data = json.loads(body)
            return PointerRecord(bucket=data["s3BucketName"], key=data["s3Key"])
        except (ValueError, TypeError, KeyError) as exc:
            raise HandleDecodeError(
                "message body is not a payload pointer record",
                details={"body": body[:200]},
            ) from exc
