"""
Action message envelope.

Producers wrap their payload as ``{"payload", "action", "requestId"}`` JSON
before sending, so consumers can dispatch on the action kind.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqshelper.shared.exceptions import ValidationError
from sqshelper.shared.logging import get_logger

logger = get_logger(__name__)


class ActionType(str, Enum):
    """Kinds of change a message announces."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    PATCH = "PATCH"
    DEFAULT = "DEFAULT"


@dataclass(frozen=True)
class ActionMessage:
    """Decoded action envelope."""

    payload: Any
    action: ActionType
    request_id: str | None = None


def _coerce_action(action: ActionType | str | None) -> ActionType:
    if action is None or action == "":
        logger.debug("missing action type")
        raise ValidationError("missing action type", field="action")
    try:
        return ActionType(action)
    except ValueError:
        logger.debug("invalid action type", extra={"action": str(action)})
        raise ValidationError(
            f"invalid action type '{action}'", field="action"
        ) from None


def format_message(
    payload: Any,
    action: ActionType | str | None,
    request_id: str | None = None,
) -> str:
    """Build the JSON message body for ``payload``.

    Raises:
        ValidationError: the payload is empty or not JSON serializable, or the
            action kind is missing or unknown.
    """
    if payload is None or payload == "":
        logger.debug("invalid message, message cant be blank or null")
        raise ValidationError(
            "invalid message, message cant be blank or null", field="payload"
        )
    body: dict[str, Any] = {
        "payload": payload,
        "action": _coerce_action(action).value,
    }
    if request_id:
        body["requestId"] = request_id
    try:
        return json.dumps(body)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"payload is not JSON serializable: {exc}", field="payload"
        ) from exc


def parse_message(body: str) -> ActionMessage:
    """Decode a body produced by :func:`format_message`."""
    try:
        data = json.loads(body)
    except ValueError as exc:
        raise ValidationError("message body is not valid JSON", field="body") from exc
    if not isinstance(data, dict) or "payload" not in data:
        raise ValidationError("message body is not an action envelope", field="body")
    return ActionMessage(
        payload=data["payload"],
        action=_coerce_action(data.get("action")),
        request_id=data.get("requestId"),
    )
