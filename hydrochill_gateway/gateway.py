"""HTTP surface bridging device telemetry and dashboard commands."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from aiohttp import web

from . import constants
from .core import (
    CommandPublisher,
    DocumentStore,
    InvalidTelemetryError,
    ServerClock,
    TelemetryReport,
    UnknownCommand,
    parse_command,
)
from .health import HealthReporter, health_handler

LOGGER = logging.getLogger(__name__)

INVALID_COMMAND = {"error": "Invalid Command"}
INVALID_TELEMETRY = {"error": "Invalid Telemetry"}
INTERNAL_ERROR = {"error": "Internal Server Error"}

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,HEAD,PUT,PATCH,POST,DELETE",
    "Access-Control-Allow-Headers": "Content-Type",
}

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def cors_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Allow the dashboard to be served from any origin."""

    if request.method == "OPTIONS":
        return web.Response(status=204, headers=_CORS_HEADERS)

    try:
        response = await handler(request)
    except web.HTTPException as exc:
        exc.headers.update(_CORS_HEADERS)
        raise

    response.headers.update(_CORS_HEADERS)
    return response


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


async def _read_json(request: web.Request) -> Any:
    text = await request.text()
    if not text.strip():
        # An empty body parses to an empty object, as express.json() does.
        return {}
    return json.loads(text, parse_constant=_reject_constant)


class GatewayHandlers:
    """Request handlers holding the store and broker clients for the process lifetime."""

    def __init__(
        self,
        store: DocumentStore,
        publisher: CommandPublisher,
        *,
        record_path: str = constants.DEFAULT_RECORD_PATH,
        command_topic: str = constants.DEFAULT_COMMAND_TOPIC,
        qos: int = 0,
        dashboard_path: Optional[Path] = None,
        clock: Optional[ServerClock] = None,
        health: Optional[HealthReporter] = None,
    ) -> None:
        self._store = store
        self._publisher = publisher
        self._health = health
        self._record_path = record_path
        self._command_topic = command_topic
        self._qos = qos
        self._clock = clock or ServerClock()
        self._dashboard_path = _resolve_dashboard(dashboard_path)

    async def handle_dashboard(self, request: web.Request) -> web.StreamResponse:
        return web.FileResponse(self._dashboard_path)

    async def handle_update(self, request: web.Request) -> web.Response:
        try:
            report = TelemetryReport.from_body(await _read_json(request))
        except (ValueError, InvalidTelemetryError) as exc:
            LOGGER.warning("Rejected telemetry update: %s", exc)
            return web.json_response(INVALID_TELEMETRY, status=400)

        record = report.stamped(self._clock.now_ms())

        try:
            await self._store.update(self._record_path, record)
        except Exception as exc:
            LOGGER.error("Realtime Database sync error: %s", exc, exc_info=True)
            await self._report_store(False, str(exc))
            return web.json_response(INTERNAL_ERROR, status=500)

        await self._report_store(True, None)
        LOGGER.info(
            "Device sync: %s °C | %s °C", report.water_temp, report.room_temp
        )
        return web.json_response({"status": "success"})

    async def handle_command(self, request: web.Request) -> web.Response:
        try:
            body = await _read_json(request)
        except ValueError:
            body = None

        command = parse_command(body)
        message = command.to_message()
        if message is None:
            rejected = command.type if isinstance(command, UnknownCommand) else None
            LOGGER.info("Ignoring invalid command type %r", rejected)
            return web.json_response(INVALID_COMMAND, status=400)

        try:
            result = self._publisher.publish(
                self._command_topic, message, qos=self._qos
            )
        except Exception as exc:
            LOGGER.error("MQTT publish of %r failed: %s", message, exc, exc_info=True)
            return web.json_response(INTERNAL_ERROR, status=500)

        if not result.accepted:
            LOGGER.error(
                "MQTT client refused command %r (rc=%s)", message, result.rc
            )
            return web.json_response(INTERNAL_ERROR, status=500)

        LOGGER.info("MQTT command dispatched: %s", message)
        return web.json_response({"success": True})

    async def _report_store(self, healthy: bool, detail: Optional[str]) -> None:
        if self._health is not None:
            await self._health.update("store", healthy, detail)


def _resolve_dashboard(path: Optional[Path]) -> Path:
    if path is None:
        return constants.DEFAULT_DASHBOARD_PATH
    if not path.is_file():
        LOGGER.warning(
            "Dashboard %s not found; serving the bundled page instead", path
        )
        return constants.DEFAULT_DASHBOARD_PATH
    return path


def create_app(
    handlers: GatewayHandlers, *, health: Optional[HealthReporter] = None
) -> web.Application:
    """Assemble the aiohttp application around already-built handlers."""

    app = web.Application(middlewares=[cors_middleware])
    app.router.add_get("/", handlers.handle_dashboard)
    app.router.add_post("/api/update", handlers.handle_update)
    app.router.add_post("/api/command", handlers.handle_command)
    if health is not None:
        app.router.add_get("/healthz", health_handler(health))
    return app
