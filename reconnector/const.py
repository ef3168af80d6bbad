"""Constants for the reconnector package.

Timing values are in seconds.
"""

from __future__ import annotations

# Supervisor
DEFAULT_RECONNECT_INTERVAL = 1.0
DEFAULT_CONNECT_TIMEOUT = 10.0
CONNECT_TIMEOUT_MESSAGE = "connect timeout"
SCOPE_CANCELLED_MESSAGE = "scope cancelled"
DEADLINE_EXCEEDED_MESSAGE = "deadline exceeded"

# Transport error stream
ERROR_QUEUE_SIZE = 16

# TCP transport
DEFAULT_DIAL_TIMEOUT = 5.0
TCP_READ_SIZE = 4096
TCP_WRITE_TIMEOUT = 5.0

# BLE transport
BLE_DISCOVERY_TIMEOUT = 7.0  # Scanner may not have seen the device yet
BLE_CONNECTION_TIMEOUT = 20.0
BLE_DISCONNECT_TIMEOUT = 5.0
BLE_NOTIFY_SUBSCRIBE_TIMEOUT = 5.0
BLE_WRITE_TIMEOUT = 5.0
BLE_MAX_ATTEMPTS = 2

# Configuration
TRANSPORT_TCP = "tcp"
TRANSPORT_BLE = "ble"
SUPPORTED_TRANSPORTS = (TRANSPORT_TCP, TRANSPORT_BLE)
