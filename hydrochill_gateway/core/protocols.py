"""Protocol definitions for the gateway's external collaborators."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from ..adapters.mqtt import PublishResult


class DocumentStore(Protocol):
    """Minimal contract for the persistent record store."""

    async def update(self, path: str, fields: Mapping[str, Any]) -> Any:
        """Merge ``fields`` into the record at ``path``.

        Raises on any failure to persist the update.
        """
        ...


class CommandPublisher(Protocol):
    """Minimal contract for the outbound pub/sub client."""

    def publish(
        self, topic: str, payload: bytes | str, qos: int = 0, retain: bool = False
    ) -> PublishResult:
        """Hand a message to the transport without awaiting delivery."""
        ...
