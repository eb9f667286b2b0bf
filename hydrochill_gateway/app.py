"""Main application entry-point for hydrochill-gateway."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

from aiohttp import web

from . import constants
from .adapters import MQTTClient, MQTTConnectionError, RealtimeDatabaseClient
from .config import GatewayConfig, load_config
from .gateway import GatewayHandlers, create_app
from .health import HealthReporter
from .logging import configure_logging

LOGGER = logging.getLogger(__name__)


class GatewayApp:
    """Coordinates gateway startup and shutdown.

    The store and broker clients are created once here, handed to the
    request handlers, and held until the process stops. Either can be
    injected for testing.
    """

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        *,
        store: Optional[RealtimeDatabaseClient] = None,
        mqtt_client: Optional[MQTTClient] = None,
    ) -> None:
        self._config = config or load_config()
        self._store = store or RealtimeDatabaseClient(self._config.store)
        self._mqtt_client = mqtt_client or MQTTClient(
            self._config.mqtt,
            client_id=self._config.mqtt.client_id or _build_client_id(),
        )
        self._health = HealthReporter()
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._shutdown_event: Optional[asyncio.Event] = None

    @property
    def health(self) -> HealthReporter:
        return self._health

    @classmethod
    def start(cls, config: Optional[GatewayConfig] = None) -> None:
        instance = cls(config=config)
        configure_logging(
            instance._config.logging.level,
            log_path=instance._config.logging.path,
            log_network=instance._config.logging.log_network,
        )
        try:
            asyncio.run(instance.run())
        except KeyboardInterrupt:
            LOGGER.info("hydrochill-gateway received shutdown signal")

    async def run(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._shutdown_event = asyncio.Event()

        LOGGER.info("hydrochill-gateway starting with config: %s", self._config.path)
        await self.start_services()

        try:
            await self._shutdown_event.wait()
        except asyncio.CancelledError:
            LOGGER.info("hydrochill-gateway received shutdown signal")
            raise
        finally:
            await self.stop_services()

    def request_shutdown(self) -> None:
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    async def start_services(self) -> None:
        self._loop = asyncio.get_running_loop()

        await self._health.update("store", True, None)
        await self._health.update("mqtt", False, "initialising")

        await self._store.start()
        await self._connect_mqtt()

        mqtt_config = self._config.mqtt
        handlers = GatewayHandlers(
            self._store,
            self._mqtt_client,
            record_path=self._config.store.record_path,
            command_topic=mqtt_config.command_topic,
            qos=mqtt_config.qos,
            dashboard_path=self._config.http.dashboard_path,
            health=self._health,
        )
        app = create_app(handlers, health=self._health)

        self._runner = web.AppRunner(app)
        await self._runner.setup()
        http = self._config.http
        self._site = web.TCPSite(self._runner, http.host, http.port)
        await self._site.start()

        LOGGER.info("=" * 41)
        LOGGER.info("HYDROCHILL GATEWAY ACTIVE ON PORT %s", http.port)
        LOGGER.info("URL: http://localhost:%s", http.port)
        LOGGER.info("=" * 41)

    async def stop_services(self) -> None:
        if self._site is not None:
            await self._site.stop()
            self._site = None
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

        await self._mqtt_client.disconnect()
        await self._store.aclose()

        if self._shutdown_event is not None:
            self._shutdown_event.set()

    async def _connect_mqtt(self) -> None:
        self._mqtt_client.register_connect_handler(self._on_mqtt_connect)
        self._mqtt_client.register_disconnect_handler(self._on_mqtt_disconnect)

        try:
            await self._mqtt_client.connect(
                timeout=self._config.mqtt.connect_timeout_seconds
            )
        except MQTTConnectionError as exc:
            # Commands are refused until the broker becomes reachable.
            LOGGER.error("MQTT connection failed: %s", exc)
            await self._health.update("mqtt", False, str(exc))
        else:
            await self._health.update("mqtt", True, None)

    def _on_mqtt_connect(self, rc: int) -> None:
        self._schedule_health_update("mqtt", True, None)

    def _on_mqtt_disconnect(self, rc: int) -> None:
        self._schedule_health_update("mqtt", False, f"disconnected (rc={rc})")

    def _schedule_health_update(
        self, name: str, healthy: bool, detail: Optional[str]
    ) -> None:
        loop = self._loop
        if loop is None:
            return
        loop.create_task(self._health.update(name, healthy, detail))


def _build_client_id() -> str:
    return f"{constants.APP_NAME}-{os.getpid()}"
