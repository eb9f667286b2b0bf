import asyncio
from typing import Any, Mapping, Optional

import pytest

from hydrochill_gateway.adapters import PublishResult, RealtimeDatabaseError


class MemoryStore:
    """In-memory stand-in for the Realtime Database with fault injection."""

    def __init__(self) -> None:
        self.records: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.fail_with: Optional[Exception] = None
        self.started = False
        self.closed = False

    async def start(self) -> None:
        self.started = True

    async def aclose(self) -> None:
        self.closed = True

    async def update(self, path: str, fields: Mapping[str, Any]) -> Any:
        self.calls.append((path, dict(fields)))
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with
        self.records.setdefault(path, {}).update(fields)
        return dict(fields)


class RecordingPublisher:
    """Captures published commands instead of talking to a broker."""

    def __init__(self, *, accepted: bool = True) -> None:
        self.accepted = accepted
        self.published: list[tuple[str, Any, int, bool]] = []

    def publish(
        self, topic: str, payload: bytes | str, qos: int = 0, retain: bool = False
    ) -> PublishResult:
        if not self.accepted:
            return PublishResult(accepted=False, rc=4)
        self.published.append((topic, payload, qos, retain))
        return PublishResult(accepted=True, rc=0, mid=len(self.published))


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def failing_store() -> MemoryStore:
    store = MemoryStore()
    store.fail_with = RealtimeDatabaseError("permission denied", status=401)
    return store


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()
