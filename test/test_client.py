"""
End-to-end tests of LargePayloadClient over in-memory SQS and S3 doubles.
"""

import json

import pytest

from sqshelper.client import LargePayloadClient
from sqshelper.config import HelperSettings
from sqshelper.messaging.envelope import ActionType, parse_message
from sqshelper.messaging.handle import decode_handle, encode_handle, is_encoded_handle
from sqshelper.messaging.models import RESERVED_ATTRIBUTE_NAME, DeleteEntry, ReceiveRequest
from sqshelper.session import AwsSession
from sqshelper.shared.exceptions import BatchDeleteError, TransportError, ValidationError

from conftest import QUEUE_URL


@pytest.mark.asyncio
async def test_large_action_message_round_trip(make_client, queue, store):
    client = make_client()
    payload = "p" * 300_000

    await client.send_action(QUEUE_URL, payload, ActionType.CREATE, "r1")
    messages = await client.receive_messages(QUEUE_URL, ReceiveRequest(max_number_of_messages=1))

    assert len(messages) == 1
    message = messages[0]
    assert parse_message(message.body).payload == payload
    assert parse_message(message.body).request_id == "r1"
    assert RESERVED_ATTRIBUTE_NAME not in message.attributes
    assert is_encoded_handle(message.receipt_handle)
    # what went over the wire was a pointer
    assert json.loads(queue.sent[0].body)["s3BucketName"] == "payload-bucket"
    assert queue.requests[0].message_attribute_names == (RESERVED_ATTRIBUTE_NAME,)
    assert queue.requests[0].wait_time_seconds == 20

    await client.delete_message(QUEUE_URL, message.receipt_handle)

    assert queue.deleted == [decode_handle(message.receipt_handle).receipt_handle]
    assert not is_encoded_handle(queue.deleted[0])
    assert store.deleted == []


@pytest.mark.asyncio
async def test_large_message_delete_removes_payload_when_enabled(make_client, queue, store):
    client = make_client(delete_from_store=True)

    await client.send_action(QUEUE_URL, "p" * 300_000, ActionType.CREATE, "r1")
    [message] = await client.receive_messages(QUEUE_URL)
    await client.delete_message(QUEUE_URL, message.receipt_handle)

    assert store.deleted == [("payload-bucket", "key-1")]
    assert store.objects == {}
    assert queue.deleted == ["AQEBnative1+handle/abc=="]


@pytest.mark.asyncio
async def test_small_message_round_trip(make_client, queue, store):
    client = make_client()

    await client.send_action(QUEUE_URL, "10 bytes string", ActionType.UPDATE)
    [message] = await client.receive_messages(QUEUE_URL)

    assert parse_message(message.body).payload == "10 bytes string"
    assert parse_message(message.body).action is ActionType.UPDATE
    assert not is_encoded_handle(message.receipt_handle)
    assert store.objects == {}

    await client.delete_message(QUEUE_URL, message.receipt_handle)

    assert queue.deleted == [message.receipt_handle]


@pytest.mark.asyncio
async def test_invalid_action_fails_before_any_call(make_client, queue, store):
    client = make_client()

    with pytest.raises(ValidationError):
        await client.send_action(QUEUE_URL, "text", "UPSERT")
    with pytest.raises(ValidationError):
        await client.send_action(QUEUE_URL, "", ActionType.CREATE)

    assert queue.sent == []
    assert store.objects == {}


@pytest.mark.asyncio
async def test_store_failure_on_send_sends_nothing(make_client, queue, store):
    store.fail_with = TransportError("s3 down", service="s3", operation="put_object")

    with pytest.raises(TransportError):
        await make_client().send_action(QUEUE_URL, "p" * 300_000, ActionType.CREATE)

    assert queue.sent == []


@pytest.mark.asyncio
async def test_batch_delete_groups_store_deletes_by_bucket(make_client, queue, store):
    client = make_client(delete_from_store=True)
    entries = [
        DeleteEntry("1", encode_handle("rh-1", "bucket-a", "k1")),
        DeleteEntry("2", encode_handle("rh-2", "bucket-b", "k2")),
        DeleteEntry("3", "rh-3"),
        DeleteEntry("4", encode_handle("rh-4", "bucket-a", "k4")),
        DeleteEntry("5", "rh-5"),
    ]

    result = await client.delete_message_batch(QUEUE_URL, entries)

    assert sorted(store.batch_deletes) == [("bucket-a", ["k1", "k4"]), ("bucket-b", ["k2"])]
    assert len(queue.batch_deleted) == 1
    assert [e.receipt_handle for e in queue.batch_deleted[0]] == [
        "rh-1",
        "rh-2",
        "rh-3",
        "rh-4",
        "rh-5",
    ]
    assert result.successful == ("1", "2", "3", "4", "5")


@pytest.mark.asyncio
async def test_batch_delete_skips_store_when_disabled(make_client, queue, store):
    client = make_client()

    await client.delete_message_batch(
        QUEUE_URL, [DeleteEntry("1", encode_handle("rh-1", "bucket-a", "k1"))]
    )

    assert store.batch_deletes == []
    assert queue.batch_deleted[0] == [DeleteEntry("1", "rh-1")]


@pytest.mark.asyncio
async def test_batch_delete_store_failure_still_deletes_from_queue(make_client, queue, store):
    store.fail_with = TransportError("s3 down", service="s3", operation="delete_objects")
    client = make_client(delete_from_store=True)

    with pytest.raises(TransportError, match="s3 down") as exc_info:
        await client.delete_message_batch(
            QUEUE_URL, [DeleteEntry("1", encode_handle("rh-1", "bucket-a", "k1"))]
        )

    assert queue.batch_deleted == [[DeleteEntry("1", "rh-1")]]
    assert exc_info.value.details["queue_result"].successful == ("1",)


@pytest.mark.asyncio
async def test_batch_delete_queue_failure_is_surfaced(make_client, queue, store):
    queue.fail_with = TransportError("sqs down", service="sqs")
    client = make_client(delete_from_store=True)

    with pytest.raises(TransportError, match="sqs down"):
        await client.delete_message_batch(
            QUEUE_URL, [DeleteEntry("1", encode_handle("rh-1", "bucket-a", "k1"))]
        )

    assert store.batch_deletes == [("bucket-a", ["k1"])]


@pytest.mark.asyncio
async def test_batch_delete_both_failures_are_reported(make_client, queue, store):
    store.fail_with = TransportError("s3 down", service="s3")
    queue.fail_with = TransportError("sqs down", service="sqs")
    client = make_client(delete_from_store=True)

    with pytest.raises(BatchDeleteError) as exc_info:
        await client.delete_message_batch(
            QUEUE_URL, [DeleteEntry("1", encode_handle("rh-1", "bucket-a", "k1"))]
        )

    assert str(exc_info.value.store_error) == "s3 down"
    assert str(exc_info.value.queue_error) == "sqs down"


@pytest.mark.asyncio
async def test_batch_delete_validates_size_before_any_call(make_client, queue, store):
    client = make_client(delete_from_store=True)
    entries = [DeleteEntry(str(i), encode_handle(f"rh-{i}", "b", f"k{i}")) for i in range(11)]

    with pytest.raises(ValidationError):
        await client.delete_message_batch(QUEUE_URL, entries)

    assert store.batch_deletes == []
    assert queue.batch_deleted == []


@pytest.mark.asyncio
async def test_get_queue_url_uses_account_id(make_client):
    assert await make_client().get_queue_url("test-queue") == QUEUE_URL


def test_from_settings_wires_configuration(sqs_client, s3_client):
    settings = HelperSettings(
        _env_file=None,
        payload_bucket_name="payload-bucket",
        size_threshold_bytes=1000,
        delete_from_store=True,
        wait_time_seconds=5,
        receiver_sleep_ms=250,
    )
    session = AwsSession(
        sqs=sqs_client, s3=s3_client, account_id="123456789012", region_name="eu-central-1"
    )

    client = LargePayloadClient.from_settings(settings, session)

    assert client._transformer.delete_from_store is True
    assert client._receiver_sleep_ms == 250
    assert client._account_id == "123456789012"
    assert client._transformer.prepare_receive_request(ReceiveRequest()).wait_time_seconds == 5
