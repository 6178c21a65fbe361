"""Integration tests for Discovery API endpoints.

Tests the full request/response cycle for /api/v1/discovery/ endpoints.
"""

from unittest.mock import patch

import pytest
from httpx import AsyncClient


class TestDiscoveryAPI:
    """Integration tests for /api/v1/discovery/ endpoints."""

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_get_discovery_status(self, async_client: AsyncClient):
        """Verify discovery status endpoint works."""
        response = await async_client.get("/api/v1/discovery/status")

        assert response.status_code == 200
        data = response.json()
        assert data["running"] is False
        assert data["discovered"] == []

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_status_lists_discovered_printers(self, async_client: AsyncClient, test_app):
        printer = {"id": "p1", "name": "Shop", "ip": "10.0.0.8", "port": 80, "firmwareVersion": "1.2"}
        test_app.state.discovery_service.discovered["10.0.0.8:80"] = printer

        response = await async_client.get("/api/v1/discovery/status")

        assert response.json()["discovered"] == [printer]

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_start_discovery(self, async_client: AsyncClient, test_app):
        service = test_app.state.discovery_service
        with patch.object(service, "start", return_value=True) as start:
            response = await async_client.post("/api/v1/discovery/start")

        assert response.status_code == 200
        assert response.json()["started"] is True
        start.assert_called_once()

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_start_discovery_already_running(self, async_client: AsyncClient, test_app):
        service = test_app.state.discovery_service
        with patch.object(service, "start", return_value=False):
            response = await async_client.post("/api/v1/discovery/start")

        assert response.status_code == 200
        assert response.json()["started"] is False
