"""Unit tests for UDP printer discovery."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from backend.app.services.discovery import (
    DISCOVERY_MESSAGE,
    PrinterDiscoveryService,
    _DiscoveryProtocol,
    broadcast_address,
    parse_discovery_response,
)


class TestBroadcastAddress:
    def test_class_c(self):
        assert broadcast_address("192.168.1.42", "255.255.255.0") == "192.168.1.255"

    def test_wider_mask(self):
        assert broadcast_address("10.1.2.3", "255.255.0.0") == "10.1.255.255"

    def test_invalid_returns_none(self):
        assert broadcast_address("not-an-ip", "255.255.255.0") is None


class TestParseDiscoveryResponse:
    def test_valid_reply(self, sample_discovery_reply):
        result = parse_discovery_response(json.dumps(sample_discovery_reply).encode(), "192.168.1.50")

        assert result == {
            "id": "prn-0042",
            "name": "Workshop Prusa",
            "ip": "192.168.1.50",
            "port": 80,
            "firmwareVersion": "2.1.0",
        }

    def test_wrong_type_is_ignored(self, sample_discovery_reply):
        sample_discovery_reply["type"] = "SOMETHING_ELSE"
        assert parse_discovery_response(json.dumps(sample_discovery_reply).encode(), "1.2.3.4") is None

    def test_malformed_json_is_ignored(self, capture_logs):
        assert parse_discovery_response(b"{not json", "1.2.3.4") is None
        assert not capture_logs.has_errors()

    def test_non_object_is_ignored(self):
        assert parse_discovery_response(b"[1, 2, 3]", "1.2.3.4") is None

    def test_binary_garbage_is_ignored(self):
        assert parse_discovery_response(b"\xff\xfe\x00", "1.2.3.4") is None


class TestPrinterDiscoveryService:
    @pytest.fixture
    def notifier(self):
        notifier = MagicMock()
        notifier.send_printers_discovered = AsyncMock()
        return notifier

    @pytest.fixture
    def service(self, notifier):
        return PrinterDiscoveryService(notifier, port=8888, timeout=0.01)

    def test_not_running_initially(self, service):
        assert service.is_running is False
        assert service.discovered == {}

    @pytest.mark.asyncio
    async def test_handle_discovered_records_and_notifies(self, service, notifier):
        printer = {"id": "a", "name": "A", "ip": "10.0.0.2", "port": 80, "firmwareVersion": "1"}

        service.handle_discovered(printer)
        await asyncio.sleep(0)

        assert service.discovered == {"10.0.0.2:80": printer}
        notifier.send_printers_discovered.assert_awaited_once_with([printer])

    @pytest.mark.asyncio
    async def test_protocol_forwards_valid_replies(self, service, sample_discovery_reply):
        protocol = _DiscoveryProtocol(service)
        with patch.object(service, "handle_discovered") as handle:
            protocol.datagram_received(json.dumps(sample_discovery_reply).encode(), ("192.168.1.9", 8888))
            protocol.datagram_received(b"garbage", ("192.168.1.10", 8888))

        handle.assert_called_once()
        assert handle.call_args.args[0]["ip"] == "192.168.1.9"

    @pytest.mark.asyncio
    async def test_round_broadcasts_to_each_interface(self, service):
        transport = MagicMock()
        interfaces = [
            {"name": "eth0", "ip": "192.168.1.5", "netmask": "255.255.255.0", "broadcast": "192.168.1.255"},
            {"name": "wlan0", "ip": "10.0.0.5", "netmask": "255.255.0.0", "broadcast": "10.0.255.255"},
        ]
        loop = asyncio.get_running_loop()

        with (
            patch.object(loop, "create_datagram_endpoint", AsyncMock(return_value=(transport, None))),
            patch("backend.app.services.discovery.get_network_interfaces", return_value=interfaces),
        ):
            assert service.start() is True
            assert service.start() is False  # Already running
            await service._task

        transport.sendto.assert_any_call(DISCOVERY_MESSAGE, ("192.168.1.255", 8888))
        transport.sendto.assert_any_call(DISCOVERY_MESSAGE, ("10.0.255.255", 8888))
        transport.close.assert_called_once()
        assert service.is_running is False

    @pytest.mark.asyncio
    async def test_socket_error_ends_round(self, service):
        loop = asyncio.get_running_loop()
        with patch.object(loop, "create_datagram_endpoint", AsyncMock(side_effect=OSError("no network"))):
            service.start()
            await service._task

        assert service.is_running is False

    @pytest.mark.asyncio
    async def test_stop_cancels_running_round(self, notifier):
        service = PrinterDiscoveryService(notifier, timeout=60)
        transport = MagicMock()
        loop = asyncio.get_running_loop()

        with (
            patch.object(loop, "create_datagram_endpoint", AsyncMock(return_value=(transport, None))),
            patch("backend.app.services.discovery.get_network_interfaces", return_value=[]),
        ):
            service.start()
            await asyncio.sleep(0.01)
            assert service.is_running is True

            await service.stop()

        assert service.is_running is False
        transport.close.assert_called_once()
