import asyncio

import pytest

from slvnet.socks5_udp import (
    Socks5Error,
    Socks5UdpSocket,
    build_udp_packet,
    parse_udp_packet,
)


def test_build_ipv4_packet_matches_wire_layout():
    payload = b"\x00\x00\x00\x00\x01\x00\xff\xff\x00\x03"
    packet = build_udp_packet(payload, ("127.0.0.1", 9061))
    assert packet == bytes([0, 0, 0, 0x01, 127, 0, 0, 1]) + (9061).to_bytes(2, "big") + payload


def test_build_ipv6_packet_header():
    packet = build_udp_packet(b"data", ("::1", 9061))
    assert packet[:4] == b"\x00\x00\x00\x04"
    assert packet[4:20] == bytes(15) + b"\x01"
    assert packet[20:22] == (9061).to_bytes(2, "big")
    assert packet[22:] == b"data"


@pytest.mark.parametrize("dest", [("127.0.0.1", 9061), ("10.1.2.3", 1), ("::1", 65535)])
def test_round_trip(dest):
    data, addr = parse_udp_packet(build_udp_packet(b"hello", dest))
    assert data == b"hello"
    assert addr == dest


def test_parse_too_short():
    with pytest.raises(Socks5Error, match="too short"):
        parse_udp_packet(b"\x00\x00\x00\x01\x7f")


def test_parse_fragment_rejected():
    with pytest.raises(Socks5Error, match="fragmentation"):
        parse_udp_packet(b"\x00\x00\x01\x01\x7f\x00\x00\x01\x00\x50")


def test_parse_unknown_atyp():
    with pytest.raises(Socks5Error, match="Unsupported ATYP"):
        parse_udp_packet(b"\x00\x00\x00\x03\x7f\x00\x00\x01\x00\x50")


def test_parse_short_ipv6():
    with pytest.raises(Socks5Error, match="IPv6 header too short"):
        parse_udp_packet(b"\x00\x00\x00\x04" + bytes(10))


class _EchoRelay(asyncio.DatagramProtocol):
    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data, addr):
        self.transport.sendto(data, addr)


async def _start_proxy(handshake_reply, associate_reply=b""):
    received = []

    async def handle(reader, writer):
        received.append(await reader.readexactly(3))
        writer.write(handshake_reply)
        await writer.drain()
        if handshake_reply == b"\x05\x00":
            received.append(await reader.readexactly(10))
            writer.write(associate_reply)
            await writer.drain()
            await reader.read()
        writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    return server, server.sockets[0].getsockname()[1], received


@pytest.mark.asyncio
async def test_connect_and_relay_datagram():
    loop = asyncio.get_running_loop()
    relay, _ = await loop.create_datagram_endpoint(_EchoRelay, local_addr=("127.0.0.1", 0))
    relay_port = relay.get_extra_info("sockname")[1]
    reply = bytes([5, 0, 0, 1, 127, 0, 0, 1]) + relay_port.to_bytes(2, "big")
    server, port, received = await _start_proxy(b"\x05\x00", reply)
    try:
        sock = await Socks5UdpSocket.connect("127.0.0.1", port, None)
        try:
            assert sock.relay_addr == ("127.0.0.1", relay_port)
            local_port = sock.local_addr()[1]
            assert received[0] == b"\x05\x01\x00"
            assert received[1][:4] == b"\x05\x03\x00\x01"
            assert received[1][8:10] == local_port.to_bytes(2, "big")

            sent = await sock.send_to(b"hello world", ("10.0.0.1", 5000))
            assert sent == len(build_udp_packet(b"hello world", ("10.0.0.1", 5000)))
            data, addr = await asyncio.wait_for(sock.recv_from(), 5)
            assert data == b"hello world"
            assert addr == ("10.0.0.1", 5000)
        finally:
            sock.close()
    finally:
        relay.close()
        server.close()


@pytest.mark.asyncio
async def test_handshake_rejected():
    server, port, _ = await _start_proxy(b"\x05\xff")
    try:
        with pytest.raises(Socks5Error, match="handshake failed"):
            await Socks5UdpSocket.connect("127.0.0.1", port, None)
    finally:
        server.close()


@pytest.mark.asyncio
async def test_associate_rejected():
    server, port, _ = await _start_proxy(b"\x05\x00", b"\x05\x01\x00\x01")
    try:
        with pytest.raises(Socks5Error, match="associate failed"):
            await Socks5UdpSocket.connect("127.0.0.1", port, None)
    finally:
        server.close()


@pytest.mark.asyncio
async def test_associate_domain_reply_unsupported():
    server, port, _ = await _start_proxy(b"\x05\x00", b"\x05\x00\x00\x03")
    try:
        with pytest.raises(Socks5Error, match="Unsupported ATYP"):
            await Socks5UdpSocket.connect("127.0.0.1", port, None)
    finally:
        server.close()