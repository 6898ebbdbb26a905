from __future__ import annotations

import argparse
import asyncio
import signal

from sqshelper.client import LargePayloadClient
from sqshelper.config import get_settings
from sqshelper.messaging.models import ReceiveRequest
from sqshelper.shared.logging import configure_logging, get_logger
from sqshelper.workers.base import MessageHandler, load_factory

logger = get_logger("sqshelper.workers.consumer")


def _build_handler(path: str, client: LargePayloadClient) -> MessageHandler:
    factory = load_factory(path)
    handler = factory(client)
    if not callable(handler):
        raise TypeError("Handler factory must return an async callable taking a message.")
    return handler


async def run_consumer(
    client: LargePayloadClient,
    queue_name: str,
    handler_path: str,
    request: ReceiveRequest,
    max_cycles: int | None = None,
) -> int:
    queue_url = await client.get_queue_url(queue_name)
    handler = _build_handler(handler_path, client)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(signum, stop_event.set)

    return await client.start_consumer(
        queue_url, request, handler, stop_event=stop_event, max_cycles=max_cycles
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="sqshelper-consumer",
        description="Consume an SQS queue with large payload support",
    )
    parser.add_argument("--queue-name", required=True, help="Name of the queue to consume.")
    parser.add_argument(
        "--handler",
        required=True,
        help="Import path module:attr of a factory taking the client and "
        "returning an async message handler.",
    )
    parser.add_argument(
        "--max-messages",
        type=int,
        default=5,
        help="Batch size per receive call (1-10).",
    )
    parser.add_argument(
        "--visibility-timeout",
        type=int,
        default=None,
        help="Visibility timeout in seconds for received messages.",
    )
    parser.add_argument(
        "--max-cycles",
        type=int,
        default=None,
        help="Number of polls to execute (default: infinite).",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    client = LargePayloadClient.from_settings(settings)
    request = ReceiveRequest(
        max_number_of_messages=args.max_messages,
        visibility_timeout=args.visibility_timeout,
    )
    logger.info("consumer_cli_started", extra={"queue_name": args.queue_name})
    asyncio.run(
        run_consumer(client, args.queue_name, args.handler, request, args.max_cycles)
    )
    logger.info("consumer_cli_stopped")


if __name__ == "__main__":
    main()
