"""
Receipt handle codec for offloaded messages.

The S3 location of an offloaded body travels inside the receipt handle given
to the caller, so deleting the message can also locate the stored payload.

Encoded layout::

    sqshelper:1:<len(bucket)>:<bucket><len(key)>:<key><original receipt handle>

Lengths count characters. Native SQS receipt handles are base64 text and
never contain ``:``, so they can never be mistaken for an encoded handle,
and bucket or key content cannot shift the field boundaries.

Handles written in the marker layout of the AWS extended client libraries
(``-..s3BucketName..-`` / ``-..s3Key..-``) are still decoded so messages
received by older consumers can be deleted; new handles always use the
length-prefixed layout.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqshelper.shared.exceptions import HandleDecodeError

HANDLE_PREFIX = "sqshelper:1:"
LEGACY_BUCKET_MARKER = "-..s3BucketName..-"
LEGACY_KEY_MARKER = "-..s3Key..-"


@dataclass(frozen=True)
class DecodedHandle:
    bucket: str
    key: str
    receipt_handle: str


def encode_handle(receipt_handle: str, bucket: str, key: str) -> str:
    """Embed the S3 pointer in front of ``receipt_handle``."""
    return f"{HANDLE_PREFIX}{len(bucket)}:{bucket}{len(key)}:{key}{receipt_handle}"


def is_encoded_handle(receipt_handle: str) -> bool:
    if receipt_handle.startswith(HANDLE_PREFIX):
        return True
    return LEGACY_BUCKET_MARKER in receipt_handle and LEGACY_KEY_MARKER in receipt_handle


def decode_handle(receipt_handle: str) -> DecodedHandle:
    """Recover bucket, key and the original receipt handle.

    Raises:
        HandleDecodeError: ``receipt_handle`` is not a well formed encoded handle.
    """
    if receipt_handle.startswith(HANDLE_PREFIX):
        bucket, pos = _read_field(receipt_handle, len(HANDLE_PREFIX))
        key, pos = _read_field(receipt_handle, pos)
        return DecodedHandle(bucket=bucket, key=key, receipt_handle=receipt_handle[pos:])
    if is_encoded_handle(receipt_handle):
        return _decode_legacy(receipt_handle)
    raise HandleDecodeError("receipt handle does not carry an S3 pointer")


def _read_field(text: str, pos: int) -> tuple[str, int]:
    sep = text.find(":", pos)
    length = text[pos:sep] if sep >= 0 else ""
    if not (length.isascii() and length.isdigit()):
        raise HandleDecodeError(
            "malformed encoded receipt handle", details={"offset": pos}
        )
    start = sep + 1
    end = start + int(length)
    if end > len(text):
        raise HandleDecodeError(
            "truncated encoded receipt handle", details={"offset": pos}
        )
    return text[start:end], end


def _between(text: str, marker: str) -> tuple[str, int]:
    first = text.find(marker)
    second = text.find(marker, first + len(marker))
    if first < 0 or second < 0:
        raise HandleDecodeError(
            "malformed legacy receipt handle", details={"marker": marker}
        )
    return text[first + len(marker):second], second + len(marker)


def _decode_legacy(receipt_handle: str) -> DecodedHandle:
    bucket, _ = _between(receipt_handle, LEGACY_BUCKET_MARKER)
    key, end = _between(receipt_handle, LEGACY_KEY_MARKER)
    return DecodedHandle(bucket=bucket, key=key, receipt_handle=receipt_handle[end:])
