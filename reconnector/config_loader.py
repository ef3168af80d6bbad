"""Configuration loader for connection managers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import voluptuous as vol
import yaml

from .const import (
    BLE_CONNECTION_TIMEOUT,
    DEFAULT_DIAL_TIMEOUT,
    DEFAULT_RECONNECT_INTERVAL,
    SUPPORTED_TRANSPORTS,
    TRANSPORT_BLE,
    TRANSPORT_TCP,
)
from .domain.interfaces import ITransport
from .infrastructure.transport import BLETransport, TcpTransport

_LOGGER = logging.getLogger(__name__)

CONF_TRANSPORT = "transport"
CONF_HOST = "host"
CONF_PORT = "port"
CONF_ADDRESS = "address"
CONF_RECONNECT_INTERVAL = "reconnect_interval"
CONF_DIAL_TIMEOUT = "dial_timeout"
CONF_CONNECT_TIMEOUT = "connect_timeout"
CONF_WRITE_UUID = "write_uuid"
CONF_NOTIFY_UUID = "notify_uuid"

_SECONDS = vol.All(vol.Coerce(float), vol.Range(min=0))
_POSITIVE_SECONDS = vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))


def _require_endpoint(config: dict[str, Any]) -> dict[str, Any]:
    """Check the keys each transport needs are present."""
    if config[CONF_TRANSPORT] == TRANSPORT_TCP:
        for key in (CONF_HOST, CONF_PORT):
            if key not in config:
                raise vol.Invalid(f"tcp transport requires '{key}'", path=[key])
    elif CONF_ADDRESS not in config:
        raise vol.Invalid("ble transport requires 'address'", path=[CONF_ADDRESS])
    return config


CONFIG_SCHEMA = vol.Schema(
    vol.All(
        {
            vol.Optional(CONF_TRANSPORT, default=TRANSPORT_TCP): vol.In(
                SUPPORTED_TRANSPORTS
            ),
            vol.Optional(CONF_HOST): vol.All(str, vol.Length(min=1)),
            vol.Optional(CONF_PORT): vol.All(
                vol.Coerce(int), vol.Range(min=1, max=65535)
            ),
            vol.Optional(CONF_ADDRESS): vol.All(str, vol.Length(min=1)),
            vol.Optional(
                CONF_RECONNECT_INTERVAL, default=DEFAULT_RECONNECT_INTERVAL
            ): _SECONDS,
            vol.Optional(CONF_DIAL_TIMEOUT): _POSITIVE_SECONDS,
            vol.Optional(CONF_CONNECT_TIMEOUT): _POSITIVE_SECONDS,
            vol.Optional(CONF_WRITE_UUID): str,
            vol.Optional(CONF_NOTIFY_UUID): str,
        },
        _require_endpoint,
    )
)


@dataclass(frozen=True)
class ManagerConfig:
    """Validated connection manager configuration.

    Attributes:
        transport: "tcp" or "ble"
        host: TCP host
        port: TCP port
        address: BLE device address
        reconnect_interval: Seconds between reconnect attempts
        dial_timeout: Seconds allowed per dial (TCP dial or BLE connect)
        connect_timeout: Default bound for connect_with_timeout callers
        write_uuid: BLE characteristic used by send()
        notify_uuid: BLE characteristic to subscribe to
    """

    transport: str = TRANSPORT_TCP
    host: Optional[str] = None
    port: Optional[int] = None
    address: Optional[str] = None
    reconnect_interval: float = DEFAULT_RECONNECT_INTERVAL
    dial_timeout: Optional[float] = None
    connect_timeout: Optional[float] = None
    write_uuid: Optional[str] = None
    notify_uuid: Optional[str] = None

    @property
    def target(self) -> str:
        if self.transport == TRANSPORT_TCP:
            return f"{self.host}:{self.port}"
        return str(self.address)


def parse_manager_config(data: dict[str, Any]) -> ManagerConfig:
    """Validate a raw mapping and build a ManagerConfig.

    Args:
        data: Mapping, typically parsed from YAML

    Returns:
        Validated configuration

    Raises:
        ValueError: If the mapping does not match CONFIG_SCHEMA
    """
    if not isinstance(data, dict):
        raise ValueError(f"Configuration must be a mapping, got {type(data).__name__}")
    try:
        validated = CONFIG_SCHEMA(data)
    except vol.Invalid as err:
        raise ValueError(f"Invalid configuration: {err}") from err
    return ManagerConfig(**validated)


def load_manager_config(path: str | Path) -> ManagerConfig:
    """Load and validate manager configuration from YAML.

    Args:
        path: YAML file to read

    Returns:
        Validated configuration

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the YAML or the configuration is invalid
    """
    config_file = Path(path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    try:
        data = yaml.safe_load(config_file.read_text())
    except yaml.YAMLError as err:
        raise ValueError(f"Invalid YAML: {err}") from err

    if not data:
        raise ValueError("Configuration file is empty")

    config = parse_manager_config(data)
    _LOGGER.info(
        "Loaded %s connection config for %s (reconnect interval %.2fs)",
        config.transport,
        config.target,
        config.reconnect_interval,
    )
    return config


def build_transport(config: ManagerConfig) -> ITransport:
    """Create the transport described by config."""
    if config.transport == TRANSPORT_BLE:
        return BLETransport(
            config.address,
            write_uuid=config.write_uuid,
            notify_uuid=config.notify_uuid,
            connect_timeout=config.dial_timeout or BLE_CONNECTION_TIMEOUT,
        )
    return TcpTransport(
        config.host,
        config.port,
        dial_timeout=config.dial_timeout or DEFAULT_DIAL_TIMEOUT,
    )
