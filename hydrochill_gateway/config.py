"""Configuration loader for hydrochill-gateway."""

from __future__ import annotations

from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import constants


@dataclass(slots=True)
class HttpConfig:
    host: str = constants.DEFAULT_HTTP_HOST
    port: int = constants.DEFAULT_HTTP_PORT
    dashboard_path: Path = constants.DEFAULT_DASHBOARD_PATH


@dataclass(slots=True)
class MqttConfig:
    broker_host: str = constants.DEFAULT_BROKER_HOST
    broker_port: int = constants.DEFAULT_BROKER_PORT
    username: Optional[str] = None
    password: Optional[str] = None
    client_id: Optional[str] = None
    command_topic: str = constants.DEFAULT_COMMAND_TOPIC
    qos: int = 0
    connect_timeout_seconds: float = 10.0


@dataclass(slots=True)
class StoreConfig:
    database_url: str = constants.DEFAULT_DATABASE_URL
    record_path: str = constants.DEFAULT_RECORD_PATH
    auth_token: Optional[str] = None  # Database secret or ID token, sent as ?auth=


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = None
    log_network: bool = False


@dataclass(slots=True)
class GatewayConfig:
    http: HttpConfig
    mqtt: MqttConfig
    store: StoreConfig
    logging: LoggingConfig
    raw: ConfigParser
    path: Path


def _optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_config(path: Optional[Path] = None) -> GatewayConfig:
    """Load configuration from disk, applying defaults where necessary."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = ConfigParser()
    parser.read_dict(
        {
            "http": {
                "host": constants.DEFAULT_HTTP_HOST,
                "port": str(constants.DEFAULT_HTTP_PORT),
                "dashboard_path": "",
            },
            "mqtt": {
                "broker_host": constants.DEFAULT_BROKER_HOST,
                "broker_port": str(constants.DEFAULT_BROKER_PORT),
                "command_topic": constants.DEFAULT_COMMAND_TOPIC,
                "qos": "0",
                "connect_timeout_seconds": "10.0",
            },
            "store": {
                "database_url": constants.DEFAULT_DATABASE_URL,
                "record_path": constants.DEFAULT_RECORD_PATH,
            },
            "logging": {
                "level": "INFO",
                "path": "",
                "log_network": "false",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    broker_host_value = parser.get("mqtt", "broker_host")
    broker_port_value = parser.getint(
        "mqtt", "broker_port", fallback=constants.DEFAULT_BROKER_PORT
    )

    if ":" in broker_host_value:
        host_part, port_part = broker_host_value.rsplit(":", 1)
        try:
            parsed_port = int(port_part)
        except ValueError:
            pass
        else:
            broker_host_value = host_part
            broker_port_value = parsed_port
            parser.set("mqtt", "broker_host", host_part)
            parser.set("mqtt", "broker_port", str(parsed_port))

    dashboard_value = parser.get("http", "dashboard_path", fallback="").strip()
    http = HttpConfig(
        host=parser.get("http", "host"),
        port=parser.getint("http", "port", fallback=constants.DEFAULT_HTTP_PORT),
        dashboard_path=(
            Path(dashboard_value).expanduser()
            if dashboard_value
            else constants.DEFAULT_DASHBOARD_PATH
        ),
    )

    mqtt = MqttConfig(
        broker_host=broker_host_value,
        broker_port=broker_port_value,
        username=_optional(parser.get("mqtt", "username", fallback=None)),
        password=_optional(parser.get("mqtt", "password", fallback=None)),
        client_id=_optional(parser.get("mqtt", "client_id", fallback=None)),
        command_topic=parser.get("mqtt", "command_topic"),
        qos=max(0, min(2, parser.getint("mqtt", "qos", fallback=0))),
        connect_timeout_seconds=max(
            0.0,
            parser.getfloat("mqtt", "connect_timeout_seconds", fallback=10.0),
        ),
    )

    store = StoreConfig(
        database_url=parser.get("store", "database_url").rstrip("/"),
        record_path=parser.get("store", "record_path").strip("/"),
        auth_token=_optional(parser.get("store", "auth_token", fallback=None)),
    )

    log_path_value = parser.get("logging", "path", fallback="").strip()
    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(log_path_value).expanduser() if log_path_value else None,
        log_network=parser.getboolean("logging", "log_network", fallback=False),
    )

    return GatewayConfig(
        http=http,
        mqtt=mqtt,
        store=store,
        logging=logging_config,
        raw=parser,
        path=config_path,
    )
