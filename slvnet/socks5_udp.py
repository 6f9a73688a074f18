"""UDP datagrams relayed through a SOCKS5 proxy (UDP ASSOCIATE)."""

from __future__ import annotations

import asyncio
import ipaddress
import logging

log = logging.getLogger(__name__)

_ATYP_IPV4 = 0x01
_ATYP_IPV6 = 0x04
_IPV4_HEADER = 10
_IPV6_HEADER = 22


class Socks5Error(OSError):
    """Raised when the SOCKS5 proxy or a relayed datagram is not usable."""


def build_udp_packet(data, dest):
    """Wrap ``data`` in a SOCKS5 UDP request header addressed to ``(host, port)``."""
    host, port = dest[0], dest[1]
    ip = ipaddress.ip_address(host)
    atyp = _ATYP_IPV4 if ip.version == 4 else _ATYP_IPV6
    return b"\x00\x00\x00" + bytes([atyp]) + ip.packed + int(port).to_bytes(2, "big") + bytes(data)


def parse_udp_packet(packet):
    """Strip the SOCKS5 UDP header; return ``(payload, (host, port))``."""
    packet = bytes(packet)
    if len(packet) < _IPV4_HEADER:
        raise Socks5Error("SOCKS5 UDP packet too short")
    if packet[2] != 0x00:
        raise Socks5Error("SOCKS5 UDP fragmentation not supported")
    atyp = packet[3]
    if atyp == _ATYP_IPV4:
        ip = ipaddress.IPv4Address(packet[4:8])
        port = int.from_bytes(packet[8:10], "big")
        header_len = _IPV4_HEADER
    elif atyp == _ATYP_IPV6:
        if len(packet) < _IPV6_HEADER:
            raise Socks5Error("SOCKS5 UDP IPv6 header too short")
        ip = ipaddress.IPv6Address(packet[4:20])
        port = int.from_bytes(packet[20:22], "big")
        header_len = _IPV6_HEADER
    else:
        raise Socks5Error("Unsupported ATYP in SOCKS5 UDP packet")
    return packet[header_len:], (str(ip), port)


class _DatagramQueue(asyncio.DatagramProtocol):
    def __init__(self) -> None:
        self.queue: asyncio.Queue = asyncio.Queue()

    def datagram_received(self, data, addr):
        self.queue.put_nowait((data, addr))

    def error_received(self, exc):
        self.queue.put_nowait(exc)

    def connection_lost(self, exc):
        self.queue.put_nowait(exc or ConnectionError("UDP socket closed"))


class Socks5UdpSocket:
    """A UDP socket whose datagrams travel through a SOCKS5 relay."""

    def __init__(self, udp_transport, protocol, relay_addr, tcp_writer):
        self._udp = udp_transport
        self._protocol = protocol
        self.relay_addr = relay_addr
        self._tcp_writer = tcp_writer

    @classmethod
    async def connect(cls, proxy_host, proxy_port, local_port=None):
        """Negotiate UDP ASSOCIATE with the proxy and bind the local UDP socket."""
        log.info("connecting to SOCKS5 proxy at %s:%s", proxy_host, proxy_port)
        reader, writer = await asyncio.open_connection(proxy_host, proxy_port)
        udp_transport = None
        try:
            writer.write(b"\x05\x01\x00")
            await writer.drain()
            if await reader.readexactly(2) != b"\x05\x00":
                raise Socks5Error("SOCKS5 handshake failed")

            loop = asyncio.get_running_loop()
            udp_transport, protocol = await loop.create_datagram_endpoint(
                _DatagramQueue, local_addr=("0.0.0.0", local_port or 0)
            )
            host, port = udp_transport.get_extra_info("sockname")[:2]
            local_ip = ipaddress.ip_address(host)
            if local_ip.version != 4:
                raise Socks5Error("IPv6 not supported")
            log.info("local UDP socket bound to %s:%s", host, port)

            writer.write(b"\x05\x03\x00\x01" + local_ip.packed + port.to_bytes(2, "big"))
            await writer.drain()
            reply = await reader.readexactly(4)
            if reply[0] != 0x05 or reply[1] != 0x00:
                raise Socks5Error("SOCKS5 UDP associate failed")
            if reply[3] != _ATYP_IPV4:
                raise Socks5Error("Unsupported ATYP in UDP associate reply")
            raw = await reader.readexactly(6)
            relay_addr = (str(ipaddress.IPv4Address(raw[:4])), int.from_bytes(raw[4:], "big"))
        except BaseException as exc:
            if udp_transport is not None:
                udp_transport.close()
            writer.close()
            if isinstance(exc, asyncio.IncompleteReadError):
                raise Socks5Error("SOCKS5 proxy closed the connection") from exc
            raise

        log.info("SOCKS5 UDP relay address: %s:%s", *relay_addr)
        return cls(udp_transport, protocol, relay_addr, writer)

    async def send_to(self, data, target):
        """Send ``data`` to ``target`` via the relay; return the bytes written."""
        packet = build_udp_packet(data, target)
        self._udp.sendto(packet, self.relay_addr)
        return len(packet)

    async def recv_from(self):
        """Wait for a relayed datagram and return ``(payload, (host, port))``."""
        item = await self._protocol.queue.get()
        if isinstance(item, BaseException):
            raise item
        data, _relay = item
        return parse_udp_packet(data)

    def local_addr(self):
        """Return the local ``(host, port)`` of the UDP socket."""
        return tuple(self._udp.get_extra_info("sockname")[:2])

    def close(self):
        """Close the UDP socket and the proxy control connection."""
        self._udp.close()
        self._tcp_writer.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.close()