# slvnet

Asyncio building blocks for clients of the LLUDP virtual-world protocol. The
package has no dependencies beyond the standard library.

## Modules

- **`slvnet.template_parser`** reads `message_template.msg` text into a
  `MessageTemplate`, which holds `MessageDefinition`s. Each of those holds
  `BlockDefinition`s, and each block holds `FieldDefinition`s.
  - `parse(content)` parses the text.
  - `MessageTemplate.find(name)` returns the first message with that name, or
    `None`.
  - The enums `Frequency`, `TrustLevel`, `Encoding` and `Cardinality` each have
    `from_name(text)`. It raises `ValueError` when it does not know the name.
  - A malformed template raises `TemplateParseError`. The error message gives the
    line number.
- **`slvnet.messages`** holds the message types.
  - `PacketHeader` has `sequence_id` and `flags`, plus `is_reliable()` and
    `has_acks()`.
  - `RegionHandshakeData` holds the parsed handshake body.
  - The frozen `Message` dataclasses are `KeepAlive`, `Logout`, `Ack`,
    `UseCircuitCode`, `UseCircuitCodeReply`, `ChatFromViewer`,
    `ChatFromSimulator`, `CompleteAgentMovement`, `AgentUpdate`,
    `AgentMovementComplete`, `RegionHandshake`, `RegionHandshakeReply`,
    `AgentThrottle`, `AgentDataUpdate` and `HealthMessage`.
- **`slvnet.region_handshake`** provides `parse_region_handshake(payload)`. It
  decodes a RegionHandshake body and raises `ValueError` when the body is
  truncated. The region name is always the placeholder `"Unknown"`.
- **`slvnet.codecs`** provides `decode(data)`, which turns a datagram into
  `(PacketHeader, Message)`.
  - It recognises RegionHandshake, KeepAlive, AgentMovementComplete,
    AgentDataUpdate, HealthMessage and ACK-flagged packets.
  - ImprovedAvatarPowers and StartPingCheck are recognised but rejected.
  - Any other packet raises `DecodeError`.
- **`slvnet.socks5_udp`** provides `Socks5UdpSocket` and two helpers.
  - `Socks5UdpSocket.connect(proxy_host, proxy_port, local_port)` negotiates a
    no-auth SOCKS5 `UDP ASSOCIATE`.
  - `send_to`, `recv_from`, `local_addr` and `close` are also available, and it
    works as an async context manager.
  - `build_udp_packet(data, dest)` builds the SOCKS5 UDP header, for IPv4 and
    IPv6.
  - `parse_udp_packet(packet)` strips that header.
  - Errors raise `Socks5Error`, which is an `OSError`.
- **`slvnet.transport`** provides the transport classes.
  - `DirectUdpSocket` is a plain UDP socket with the same interface as
    `Socks5UdpSocket`.
  - `UdpTransport.create(local_port, sim_addr, proxy)` uses a SOCKS5 relay when
    `proxy` is a `ProxyConfig` with `enabled=True`, and a direct socket
    otherwise.
  - `UdpTransport.send_to` drops packets shorter than 7 bytes and returns `0` for
    them.
  - `recv_packet(timeout_ms)` returns `None` on timeout.
  - `next_packet_id()` numbers outgoing packets starting from 1.
  - Also here: `parse_message_id(packet)` and `hex_ascii(data)`.
- **`slvnet.reliability`** handles ordering and resends.
  - `build_ack_packet(acked_sequence, sequence_id)` builds an ACK packet.
  - `parse_legacy_use_circuit_code(packet)` recognises a 46-byte raw
    UseCircuitCode packet.
  - `SequenceTracker` releases messages in sequence order. It holds early ones
    back and drops duplicates.
  - `RetransmitQueue` tracks unacknowledged messages. By default it resends after
    200 ms and gives up after 5 resends.
- **`slvnet.circuit`** provides `Circuit` on top of a `UdpTransport`.
  - `handle_datagram(data, addr)` decodes a datagram, acknowledges it and queues
    in-order messages. ACK packets clear pending resends, and KeepAlive is
    ignored.
  - `recv_message()` returns the next `(header, message, addr)`. It raises
    `BrokenPipeError` once the receive loop has stopped.
  - `run()` receives datagrams and resends overdue messages until the socket
    fails.
  - `retransmit_due()` resends overdue messages once.
  - `send_message(message, target)` sends a message reliably.
  - The module also defines `HandshakeState` and `AgentState`.
- **`slvnet.cache`** provides `AssetCache`, a small keyed store. It has
  `get`, `insert`, `in` and `len`.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

Parsing a template:

```python
from slvnet.template_parser import parse, Frequency

template = parse("""
{
    PacketAck Fixed 0xFFFFFFFB NotTrusted Unencoded
    {
        Packets Variable
        {   ID  U32 }
    }
}
""")
ack = template.find("PacketAck")
assert ack.id == 0xFFFFFFFB
assert ack.frequency is Frequency.FIXED
```

Decoding a datagram:

```python
from slvnet.codecs import decode, DecodeError

try:
    header, message = decode(datagram)
except DecodeError as exc:
    print("unsupported packet:", exc)
```

Receiving on a circuit:

```python
import asyncio
from slvnet.transport import UdpTransport
from slvnet.circuit import Circuit, AgentState

async def main():
    async with await UdpTransport.create(0, ("127.0.0.1", 9000), None) as transport:
        circuit = Circuit(transport, AgentState())
        task = asyncio.create_task(circuit.run())
        header, message, addr = await circuit.recv_message()
        print(header.sequence_id, message, addr)
        task.cancel()

asyncio.run(main())
```

## What it does not do

- **No login.** Nothing here logs in to a grid, and there is no event-queue
  polling.
- **No handshake.** Nothing builds or sends the UseCircuitCode,
  CompleteAgentMovement, RegionHandshakeReply, AgentThrottle or AgentUpdate
  packets. `Circuit.handshake_state` starts at `HandshakeState.NOT_STARTED`, and
  nothing in the package advances it. `AgentState` is only held.
- **Only ACKs can be sent.** `Circuit.send_message` can encode `Ack` only. Any
  other message raises `ValueError`. Because of this,
  `Circuit.disconnect_and_logout` sends nothing: it swallows that error.
- **No assets.** There is no asset loading and no rendering.
- **No interface.** There is no user interface and no command-line program.