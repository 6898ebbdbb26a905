from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import boto3
from botocore.client import BaseClient
from botocore.config import Config as BotoCoreConfig

from sqshelper.config import HelperSettings
from sqshelper.shared.exceptions import ConfigurationError
from sqshelper.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AwsSession:
    """AWS clients and identity, built once at startup and never mutated."""

    sqs: BaseClient
    s3: BaseClient
    account_id: str | None
    region_name: str


def create_session(
    settings: HelperSettings,
    *,
    boto_config_factory: Callable[[], BotoCoreConfig] | None = None,
) -> AwsSession:
    """Create the SQS and S3 clients from explicit or ambient credentials."""
    if bool(settings.aws_access_key_id) != bool(settings.aws_secret_access_key):
        raise ConfigurationError(
            "access key id and secret access key must be provided together",
            setting="aws_access_key_id",
        )
    if not settings.region_name:
        raise ConfigurationError("missing region", setting="region_name")

    session = boto3.session.Session(
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        aws_session_token=settings.aws_session_token,
        region_name=settings.region_name,
    )
    config = boto_config_factory() if boto_config_factory else BotoCoreConfig()
    logger.info(
        "aws_session_created",
        extra={
            "region": settings.region_name,
            "account_id": settings.account_id,
            "explicit_credentials": bool(settings.aws_access_key_id),
        },
    )
    return AwsSession(
        sqs=session.client("sqs", config=config),
        s3=session.client("s3", config=config),
        account_id=settings.account_id,
        region_name=settings.region_name,
    )
