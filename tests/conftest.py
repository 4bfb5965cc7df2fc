"""Shared fixtures."""

import json

import pytest

from ingestion.config import MonitorConfig

from factories import PROGRAM


@pytest.fixture
def config():
    """Config with short timers for tests."""
    return MonitorConfig(
        helius_api_key="test-key",
        feed_ws_url_override="wss://feed.test",
        rpc_http_url_override="https://rpc.test",
        program_address=PROGRAM,
        reconnect_delay_seconds=0.05,
        batch_interval_seconds=0.01,
    )


@pytest.fixture
def raw():
    """Serialize a message dict the way it arrives off the wire."""
    return json.dumps
