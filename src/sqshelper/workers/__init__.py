"""Polling consumer machinery."""
from .base import ConsumerLoop, MessageHandler, MessageSource, load_factory

__all__ = ["ConsumerLoop", "MessageHandler", "MessageSource", "load_factory"]
