"""Message size evaluation used to decide whether a body is offloaded."""

from __future__ import annotations

from typing import Any, Mapping


def byte_size(value: str | bytes | bytearray) -> int:
    """Size of ``value`` in bytes; text is measured as UTF-8."""
    if isinstance(value, (bytes, bytearray)):
        return len(value)
    return len(value.encode("utf-8"))


def attributes_size(attributes: Mapping[str, Mapping[str, Any]] | None) -> int:
    """Total size of message attribute names, data types and values."""
    total = 0
    for name, value in (attributes or {}).items():
        total += byte_size(name)
        for part in ("DataType", "StringValue", "BinaryValue"):
            if value.get(part):
                total += byte_size(value[part])
    return total


def message_size(body: str, attributes: Mapping[str, Mapping[str, Any]] | None) -> int:
    return byte_size(body) + attributes_size(attributes)


def is_large(
    body: str,
    attributes: Mapping[str, Mapping[str, Any]] | None,
    threshold: int,
) -> bool:
    return message_size(body, attributes) > threshold
