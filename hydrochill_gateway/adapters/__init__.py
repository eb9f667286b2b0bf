"""Adapter modules for external integrations."""

from .mqtt import MQTTClient, MQTTConnectionError, PublishResult
from .realtime_db import RealtimeDatabaseClient, RealtimeDatabaseError

__all__ = [
    "MQTTClient",
    "MQTTConnectionError",
    "PublishResult",
    "RealtimeDatabaseClient",
    "RealtimeDatabaseError",
]
