"""UDP broadcast discovery of printers on the local network.

A discovery round sends PRINTER_DISCOVERY_REQUEST to the broadcast address of
every usable IPv4 interface and listens for JSON replies until the timeout.
Each reply is pushed to dashboards through the WebSocket fan-out; nothing is
written to the database.
"""

import asyncio
import ipaddress
import json
import logging
import socket
import struct

from backend.app.core.websocket import ConnectionManager

logger = logging.getLogger(__name__)

DISCOVERY_MESSAGE = b"PRINTER_DISCOVERY_REQUEST"
DISCOVERY_RESPONSE_TYPE = "PRINTER_DISCOVERY_RESPONSE"

# Interfaces to exclude from discovery
EXCLUDED_INTERFACE_PREFIXES = ("lo", "docker", "br-", "veth", "virbr")


def _is_excluded(name: str) -> bool:
    return any(name.startswith(prefix) for prefix in EXCLUDED_INTERFACE_PREFIXES)


def broadcast_address(ip: str, netmask: str) -> str | None:
    """Broadcast address of the network `ip` belongs to, or None if invalid."""
    try:
        network = ipaddress.IPv4Network(f"{ip}/{netmask}", strict=False)
    except ValueError:
        logger.debug("Invalid interface address %s/%s", ip, netmask)
        return None
    return str(network.broadcast_address)


def get_network_interfaces() -> list[dict]:
    """Get non-loopback IPv4 interfaces with their IPs and netmasks.

    Returns:
        List of dicts with name, ip, netmask, broadcast
    """
    interfaces = []

    try:
        import fcntl

        for _, name in socket.if_nameindex():
            if _is_excluded(name):
                continue

            try:
                with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
                    packed_name = struct.pack("256s", name[:15].encode())
                    ip = socket.inet_ntoa(fcntl.ioctl(s.fileno(), 0x8915, packed_name)[20:24])  # SIOCGIFADDR
                    netmask = socket.inet_ntoa(fcntl.ioctl(s.fileno(), 0x891B, packed_name)[20:24])  # SIOCGIFNETMASK
            except OSError:
                # Interface doesn't have an IP
                continue

            broadcast = broadcast_address(ip, netmask)
            if broadcast:
                interfaces.append({"name": name, "ip": ip, "netmask": netmask, "broadcast": broadcast})

    except ImportError:
        # fcntl not available (Windows)
        logger.warning("fcntl not available, interface detection limited")

    return interfaces


def parse_discovery_response(payload: bytes, address: str) -> dict | None:
    """Turn one UDP reply into a discovered-printer dict, or None if it isn't one."""
    try:
        response = json.loads(payload.decode())
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.debug("Ignoring malformed discovery reply from %s: %s", address, e)
        return None

    if not isinstance(response, dict) or response.get("type") != DISCOVERY_RESPONSE_TYPE:
        return None

    return {
        "id": response.get("id"),
        "name": response.get("name"),
        "ip": address,
        "port": response.get("port"),
        "firmwareVersion": response.get("firmwareVersion"),
    }


class _DiscoveryProtocol(asyncio.DatagramProtocol):
    def __init__(self, service: "PrinterDiscoveryService"):
        self.service = service

    def datagram_received(self, data: bytes, addr):
        printer = parse_discovery_response(data, addr[0])
        if printer is not None:
            self.service.handle_discovered(printer)

    def error_received(self, exc):
        logger.debug("Discovery socket error: %s", exc)


class PrinterDiscoveryService:
    def __init__(self, notifier: ConnectionManager, port: int = 8888, timeout: float = 5.0):
        self.notifier = notifier
        self.port = port
        self.timeout = timeout
        self.discovered: dict[str, dict] = {}
        self._transport: asyncio.DatagramTransport | None = None
        self._task: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def handle_discovered(self, printer: dict):
        key = f"{printer['ip']}:{printer['port']}"
        self.discovered[key] = printer
        logger.info("Discovered printer %s at %s", printer.get("name"), key)
        task = asyncio.get_running_loop().create_task(self.notifier.send_printers_discovered([printer]))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def start(self) -> bool:
        """Start a discovery round in the background. False if one is already running."""
        if self.is_running:
            return False
        self.discovered.clear()
        self._task = asyncio.get_running_loop().create_task(self._run())
        return True

    async def _run(self):
        loop = asyncio.get_running_loop()
        try:
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _DiscoveryProtocol(self),
                local_addr=("0.0.0.0", 0),
                allow_broadcast=True,
            )
        except OSError as e:
            logger.error("Could not open discovery socket: %s", e)
            return

        self._transport = transport
        try:
            targets = [iface["broadcast"] for iface in get_network_interfaces()]
            for target in targets:
                try:
                    transport.sendto(DISCOVERY_MESSAGE, (target, self.port))
                except OSError as e:
                    logger.warning("Error sending discovery request to %s: %s", target, e)
            logger.info("Sent discovery request to %d broadcast addresses", len(targets))

            await asyncio.sleep(self.timeout)
        finally:
            transport.close()
            self._transport = None

    async def stop(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
