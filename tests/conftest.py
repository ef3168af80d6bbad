"""Pytest configuration and fixtures for reconnector tests."""

from __future__ import annotations

import sys
from pathlib import Path

# Add parent directory to Python path so we can import reconnector and tests.doubles
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from reconnector import ConnectionManager
from tests.doubles.fake_transport import FAST_INTERVAL, FakeTransport


@pytest.fixture
def fake_transport():
    """Create fake transport with a reachable endpoint."""
    return FakeTransport()


@pytest.fixture
def manager(fake_transport):
    """Create connection manager over the fake transport."""
    return ConnectionManager(fake_transport, reconnect_interval=FAST_INTERVAL)
