"""UDP transport to a simulator, direct or relayed through a SOCKS5 proxy."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from .socks5_udp import Socks5UdpSocket

log = logging.getLogger(__name__)

_MIN_PACKET = 7
_RECV_SIZE = 2048


def parse_message_id(packet):
    """Return the little-endian 16-bit message id at the start of ``packet``, or None."""
    packet = bytes(packet)
    if len(packet) < 2:
        return None
    return int.from_bytes(packet[:2], "little")


def hex_ascii(data):
    """Return ``(hex, ascii)`` renderings of ``data`` for packet logging."""
    data = bytes(data)
    hex_text = " ".join(f"{b:02X}" for b in data)
    ascii_text = "".join(chr(b) if 0x20 <= b <= 0x7E else "." for b in data)
    return hex_text, ascii_text


@dataclass
class ProxyConfig:
    """Where to find the SOCKS5 proxy and whether to use it."""

    enabled: bool = False
    socks5_host: str = "127.0.0.1"
    socks5_port: int = 9061


class _DatagramQueue(asyncio.DatagramProtocol):
    def __init__(self) -> None:
        self.queue: asyncio.Queue = asyncio.Queue()

    def datagram_received(self, data, addr):
        self.queue.put_nowait((data, addr))

    def error_received(self, exc):
        self.queue.put_nowait(exc)

    def connection_lost(self, exc):
        self.queue.put_nowait(exc or ConnectionError("UDP socket closed"))


class DirectUdpSocket:
    """A plain asyncio UDP socket with the same interface as the SOCKS5 one."""

    def __init__(self, udp_transport, protocol):
        self._udp = udp_transport
        self._protocol = protocol

    @classmethod
    async def bind(cls, host="0.0.0.0", port=0):
        """Bind a UDP socket to ``(host, port)``."""
        loop = asyncio.get_running_loop()
        udp_transport, protocol = await loop.create_datagram_endpoint(
            _DatagramQueue, local_addr=(host, port)
        )
        log.debug("UDP socket bound to %s:%s", *udp_transport.get_extra_info("sockname")[:2])
        return cls(udp_transport, protocol)

    async def send_to(self, data, target):
        """Send ``data`` to ``target``; return the number of bytes handed over."""
        data = bytes(data)
        self._udp.sendto(data, (target[0], target[1]))
        return len(data)

    async def recv_from(self):
        """Wait for a datagram and return ``(data, (host, port))``."""
        item = await self._protocol.queue.get()
        if isinstance(item, BaseException):
            raise item
        data, addr = item
        return data, (addr[0], addr[1])

    def local_addr(self):
        """Return the local ``(host, port)``."""
        return tuple(self._udp.get_extra_info("sockname")[:2])

    def close(self):
        """Close the socket."""
        self._udp.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.close()


class UdpTransport:
    """Sends and receives circuit packets over a UDP-like socket."""

    def __init__(self, socket, sim_addr, initial_packet_id=1):
        self._socket = socket
        self.sim_addr = sim_addr
        self._packet_id = initial_packet_id

    @classmethod
    async def create(cls, local_port, sim_addr, proxy=None):
        """Open a transport on ``local_port``, through the proxy when it is enabled."""
        if proxy is not None and proxy.enabled:
            socket = await Socks5UdpSocket.connect(
                proxy.socks5_host, proxy.socks5_port, local_port
            )
        else:
            socket = await DirectUdpSocket.bind("0.0.0.0", local_port)
        return cls(socket, sim_addr, 1)

    def next_packet_id(self):
        """Return the next outgoing packet id and advance the counter."""
        packet_id = self._packet_id
        self._packet_id += 1
        return packet_id

    async def send_to(self, data, target):
        """Send a packet; packets shorter than a header are dropped and 0 returned."""
        data = bytes(data)
        if len(data) < _MIN_PACKET:
            log.warning("refusing to send packet of %d bytes: %s", len(data), data.hex())
            return 0
        if log.isEnabledFor(logging.DEBUG):
            hex_text, ascii_text = hex_ascii(data)
            log.debug("UDP out to %s (%d bytes)\nHEX:   %s\nASCII: %s",
                      target, len(data), hex_text, ascii_text)
        return await self._socket.send_to(data, target)

    async def recv_from(self):
        """Wait for the next datagram and return ``(data, addr)``."""
        return await self._socket.recv_from()

    async def recv_packet(self, timeout_ms):
        """Return ``(data, addr)``, or None if nothing arrives within ``timeout_ms``."""
        try:
            data, addr = await asyncio.wait_for(self._socket.recv_from(), timeout_ms / 1000)
        except asyncio.TimeoutError:
            log.debug("UDP receive timed out after %d ms", timeout_ms)
            return None
        log.debug("UDP receive returned %d bytes from %s", len(data), addr)
        return bytes(data), addr

    def local_port(self):
        """Return the local port of the socket, or 0 when it is unknown."""
        try:
            return int(self._socket.local_addr()[1])
        except (OSError, TypeError, IndexError, ValueError):
            return 0

    def close(self):
        """Close the underlying socket."""
        self._socket.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.close()