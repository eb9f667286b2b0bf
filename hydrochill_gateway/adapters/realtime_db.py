"""Firebase Realtime Database adapter speaking the REST API over aiohttp."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Mapping, Optional
from urllib.parse import quote

import aiohttp

from ..config import StoreConfig

LOGGER = logging.getLogger(__name__)


class RealtimeDatabaseError(RuntimeError):
    """Raised when a write to the Realtime Database does not succeed."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class RealtimeDatabaseClient:
    """Minimal Realtime Database client supporting field-level merge updates."""

    def __init__(
        self,
        config: StoreConfig,
        *,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.config = config
        self._base_url = config.database_url.rstrip("/")
        self._session: Optional[aiohttp.ClientSession] = session
        self._owns_session = session is None

    async def start(self) -> None:
        await self._ensure_session()

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/{quote(path.strip('/'))}.json"

    async def update(self, path: str, fields: Mapping[str, Any]) -> Any:
        """Merge ``fields`` into the record at ``path``.

        Children named in ``fields`` are overwritten, every other child of the
        record is left untouched.

        Raises:
            RealtimeDatabaseError: If the payload cannot be serialised, the
                request fails, or the database answers with a non-2xx status.
        """

        try:
            body = json.dumps(dict(fields), allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise RealtimeDatabaseError(f"Payload is not JSON serialisable: {exc}") from exc

        session = await self._ensure_session()
        url = self.url_for(path)
        params = {"auth": self.config.auth_token} if self.config.auth_token else None

        try:
            async with session.patch(
                url,
                data=body,
                params=params,
                headers={"Content-Type": "application/json"},
            ) as response:
                if response.status >= 400:
                    detail = await response.text()
                    raise RealtimeDatabaseError(
                        f"Realtime Database rejected update of {path!r} "
                        f"(status={response.status}): {detail.strip()[:200]}",
                        status=response.status,
                    )
                return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise RealtimeDatabaseError(
                f"Realtime Database update of {path!r} failed: {exc!r}"
            ) from exc

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session
