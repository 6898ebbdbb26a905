"""
Payload store interface and S3 implementation.

Offloaded message bodies are kept as ``text/plain`` objects under a random
uuid4 key in the configured bucket.
"""

from __future__ import annotations

import functools
import uuid
from typing import Any, Protocol, Sequence

import anyio
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from sqshelper.messaging.models import PointerRecord
from sqshelper.shared.exceptions import (
    ConfigurationError,
    NotFoundError,
    TransportError,
    aws_error_code,
    transport_error,
)
from sqshelper.shared.logging import get_logger

logger = get_logger(__name__)

# S3 DeleteObjects accepts at most this many keys per request.
MAX_KEYS_PER_DELETE = 1000

_MISSING_OBJECT_CODES = {"NoSuchKey", "NoSuchBucket", "404"}


class PayloadStore(Protocol):
    """Interface for the object store holding offloaded bodies."""

    async def put(self, body: str) -> PointerRecord:
        """Store ``body`` and return where it was written."""
        ...

    async def get(self, bucket: str, key: str) -> str:
        """Fetch a stored body; raises NotFoundError when absent."""
        ...

    async def delete(self, bucket: str, key: str) -> None:
        ...

    async def delete_many(self, bucket: str, keys: Sequence[str]) -> None:
        ...


class S3PayloadStore:
    """S3 implementation of PayloadStore."""

    def __init__(self, client: BaseClient, bucket_name: str | None) -> None:
        """
        Initialize the S3 payload store.

        Args:
            client: boto3 S3 client.
            bucket_name: Bucket receiving new payloads. Reads and deletes use
                the bucket recorded in each pointer instead.
        """
        self._client = client
        self._bucket_name = bucket_name

    async def put(self, body: str) -> PointerRecord:
        if not self._bucket_name:
            raise ConfigurationError("invalid bucket name", setting="payload_bucket_name")
        key = str(uuid.uuid4())
        await self._call(
            "put_object",
            Bucket=self._bucket_name,
            Key=key,
            Body=body.encode("utf-8"),
            ContentType="text/plain",
        )
        logger.debug(
            "payload_uploaded",
            extra={"bucket": self._bucket_name, "key": key},
        )
        return PointerRecord(bucket=self._bucket_name, key=key)

    async def get(self, bucket: str, key: str) -> str:
        logger.debug("payload_fetching", extra={"bucket": bucket, "key": key})
        try:
            response = await self._call("get_object", Bucket=bucket, Key=key)
        except TransportError as exc:
            if exc.aws_code in _MISSING_OBJECT_CODES:
                raise NotFoundError(
                    "payload",
                    f"s3://{bucket}/{key}",
                    service="s3",
                    operation="get_object",
                    aws_code=exc.aws_code,
                ) from exc
            raise
        body = await anyio.to_thread.run_sync(response["Body"].read)
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning(
                "payload_not_utf8",
                extra={"bucket": bucket, "key": key, "size": len(body)},
            )
            return body.decode("utf-8", errors="replace")

    async def delete(self, bucket: str, key: str) -> None:
        await self._call("delete_object", Bucket=bucket, Key=key)
        logger.debug("payload_deleted", extra={"bucket": bucket, "key": key})

    async def delete_many(self, bucket: str, keys: Sequence[str]) -> None:
        for start in range(0, len(keys), MAX_KEYS_PER_DELETE):
            chunk = keys[start:start + MAX_KEYS_PER_DELETE]
            response = await self._call(
                "delete_objects",
                Bucket=bucket,
                Delete={"Objects": [{"Key": key} for key in chunk], "Quiet": True},
            )
            errors = response.get("Errors") or []
            if errors:
                raise TransportError(
                    f"s3 delete_objects failed for {len(errors)} key(s) in {bucket}",
                    service="s3",
                    operation="delete_objects",
                    aws_code=errors[0].get("Code"),
                    details={"bucket": bucket, "errors": errors},
                )
        logger.debug(
            "payloads_deleted",
            extra={"bucket": bucket, "count": len(keys)},
        )

    async def _call(self, operation: str, **params: Any) -> dict[str, Any]:
        method = getattr(self._client, operation)
        try:
            return await anyio.to_thread.run_sync(functools.partial(method, **params))
        except (BotoCoreError, ClientError) as exc:
            logger.error(
                "s3_call_failed",
                extra={
                    "operation": operation,
                    "bucket": params.get("Bucket"),
                    "aws_code": aws_error_code(exc),
                },
            )
            raise transport_error(
                exc, "s3", operation, details={"bucket": params.get("Bucket")}
            ) from exc
