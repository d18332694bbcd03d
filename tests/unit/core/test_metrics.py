"""
Unit tests for core.metrics module.

Tests:
- MetricsConfig defaults and validation
- MetricsServer disabled no-op and start/stop lifecycle
"""

import pytest
from aiohttp import ClientSession
from pydantic import ValidationError as PydanticValidationError

from nostalgia.core.metrics import RELAY_OPERATIONS, MetricsConfig, MetricsServer, start_metrics_server


class TestMetricsConfig:
    """MetricsConfig."""

    def test_defaults(self):
        config = MetricsConfig()
        assert config.enabled is False
        assert config.port == 8000
        assert config.host == "127.0.0.1"
        assert config.path == "/metrics"

    def test_rejects_privileged_port(self):
        with pytest.raises(PydanticValidationError):
            MetricsConfig(port=80)


class TestMetricsServer:
    """MetricsServer."""

    async def test_disabled_is_noop(self):
        server = await start_metrics_server(MetricsConfig(enabled=False))
        assert not server.is_running
        await server.stop()

    async def test_serves_metrics(self, unused_tcp_port):
        RELAY_OPERATIONS.labels(operation="query", outcome="success").inc()
        server = MetricsServer(MetricsConfig(enabled=True, port=unused_tcp_port))
        await server.start()
        try:
            assert server.is_running
            async with ClientSession() as http:
                async with http.get(f"http://127.0.0.1:{unused_tcp_port}/metrics") as response:
                    body = await response.text()
            assert response.status == 200
            assert "nostalgia_relay_operations" in body
        finally:
            await server.stop()
        assert not server.is_running
