"""Tests for the MQTT adapter."""

import asyncio
from types import SimpleNamespace

import pytest
import pytest_asyncio

from hydrochill_gateway.adapters import MQTTClient, MQTTConnectionError
from hydrochill_gateway.config import MqttConfig

import paho.mqtt.client as mqtt


class FakeMqttClient:
    """Minimal fake paho-mqtt client for testing."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        events: dict,
        *,
        rc_connect: int = 0,
        rc_disconnect: int = 0,
        publish_rc: int = mqtt.MQTT_ERR_SUCCESS,
        auto_connect: bool = True,
        **kwargs,
    ):
        self._loop = loop
        self._events = events
        self._rc_connect = rc_connect
        self._rc_disconnect = rc_disconnect
        self._publish_rc = publish_rc
        self._auto_connect = auto_connect
        self._events["client_kwargs"] = kwargs

        self.on_connect = None
        self.on_disconnect = None

    # paho interface -------------------------------------------------
    def enable_logger(self, logger):
        self._events.setdefault("logger_enabled", True)

    def username_pw_set(self, username, password=None):
        self._events["auth"] = (username, password)

    def connect_async(self, host, port, keepalive):
        self._events["connect_args"] = (host, port, keepalive)
        if self.on_connect and self._auto_connect:
            self._loop.call_soon(
                self.on_connect,
                self,
                None,
                None,
                self._rc_connect,
                None,
            )

    def loop_start(self):
        self._events["loop_start"] = self._events.get("loop_start", 0) + 1

    def loop_stop(self):
        self._events["loop_stop"] = self._events.get("loop_stop", 0) + 1

    def disconnect(self):
        self._events["disconnect_called"] = True
        if self.on_disconnect:
            self._loop.call_soon(
                self.on_disconnect,
                self,
                None,
                None,
                self._rc_disconnect,
                None,
            )

    def publish(self, topic, payload, qos=0, retain=False, properties=None):
        self._events.setdefault("published", []).append((topic, payload, qos, retain))
        return SimpleNamespace(rc=self._publish_rc, mid=len(self._events["published"]))


def _install_fake(monkeypatch, events: dict, **options) -> None:
    loop = asyncio.get_running_loop()

    def factory(*args, **kwargs):
        return FakeMqttClient(loop, events, **options, **kwargs)

    monkeypatch.setattr("hydrochill_gateway.adapters.mqtt.mqtt.Client", factory)


@pytest_asyncio.fixture
async def mqtt_client(monkeypatch):
    events: dict = {}
    _install_fake(monkeypatch, events)

    config = MqttConfig(
        broker_host="broker.hydrochill.dev",
        broker_port=1883,
        username="cooler",
        password="token",
    )

    client = MQTTClient(config, client_id="hydrochill-gateway-42")
    await client.connect()

    yield client, events

    await client.disconnect()


@pytest.mark.asyncio
async def test_connect_configures_client(mqtt_client):
    client, events = mqtt_client

    assert events["connect_args"] == ("broker.hydrochill.dev", 1883, 60)
    assert events["auth"] == ("cooler", "token")
    assert events["loop_start"] == 1
    assert events["client_kwargs"]["client_id"] == "hydrochill-gateway-42"
    assert (
        events["client_kwargs"]["callback_api_version"]
        == mqtt.CallbackAPIVersion.VERSION2
    )
    assert client.is_connected()


@pytest.mark.asyncio
async def test_publish_delegates_to_client(mqtt_client):
    client, events = mqtt_client

    result = client.publish("hydrochill/command", "SET:25")

    assert result.accepted is True
    assert result.mid == 1
    assert events["published"] == [("hydrochill/command", "SET:25", 0, False)]


@pytest.mark.asyncio
async def test_publish_refusal_is_reported(monkeypatch):
    events: dict = {}
    _install_fake(monkeypatch, events, publish_rc=mqtt.MQTT_ERR_NO_CONN)

    client = MQTTClient(MqttConfig(broker_host="broker.hydrochill.dev"), client_id="c1")
    await client.connect()

    result = client.publish("hydrochill/command", "MODE:TOGGLE")
    await client.disconnect()

    assert result.accepted is False
    assert result.rc == mqtt.MQTT_ERR_NO_CONN


def test_publish_before_connect_is_not_accepted():
    client = MQTTClient(MqttConfig(), client_id="c2")

    result = client.publish("hydrochill/command", "MODE:TOGGLE")

    assert result.accepted is False
    assert result.rc == mqtt.MQTT_ERR_NO_CONN


@pytest.mark.asyncio
async def test_connect_failure_raises(monkeypatch):
    events: dict = {}
    _install_fake(monkeypatch, events, rc_connect=5)

    client = MQTTClient(MqttConfig(broker_host="broker.hydrochill.dev"), client_id="c3")

    with pytest.raises(MQTTConnectionError):
        await client.connect()

    assert events["loop_stop"] == 1
    assert not client.is_connected()


@pytest.mark.asyncio
async def test_connect_timeout_keeps_network_loop(monkeypatch):
    events: dict = {}
    _install_fake(monkeypatch, events, auto_connect=False)

    client = MQTTClient(MqttConfig(broker_host="broker.hydrochill.dev"), client_id="c4")

    with pytest.raises(MQTTConnectionError):
        await client.connect(timeout=0.05)

    assert "loop_stop" not in events

    await client.disconnect()
    assert events["loop_stop"] == 1


@pytest.mark.asyncio
async def test_disconnect_handler_invoked(monkeypatch):
    events: dict = {}
    _install_fake(monkeypatch, events, rc_disconnect=1)

    client = MQTTClient(MqttConfig(broker_host="broker.hydrochill.dev"), client_id="c5")

    disconnect_event = asyncio.Event()

    def _handler(rc: int) -> None:
        events["disconnect_rc"] = rc
        disconnect_event.set()

    client.register_disconnect_handler(_handler)

    await client.connect()
    await client.disconnect()

    await asyncio.wait_for(disconnect_event.wait(), timeout=1.0)
    assert events.get("disconnect_rc") == 1
    assert not client.is_connected()


@pytest.mark.asyncio
async def test_connect_handler_invoked(monkeypatch):
    events: dict = {}
    _install_fake(monkeypatch, events)

    client = MQTTClient(MqttConfig(broker_host="broker.hydrochill.dev"), client_id="c6")
    connected = asyncio.Event()
    client.register_connect_handler(lambda rc: connected.set())

    await client.connect()
    await asyncio.wait_for(connected.wait(), timeout=1.0)
    await client.disconnect()
