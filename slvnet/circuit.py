"""A UDP circuit to a simulator: ordered delivery, acknowledgements and resends."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from enum import Enum, auto

from .codecs import DecodeError, decode
from .messages import Ack, KeepAlive, Logout, PacketHeader
from .reliability import (
    RetransmitQueue,
    SequenceTracker,
    build_ack_packet,
    parse_legacy_use_circuit_code,
)

log = logging.getLogger(__name__)

RETRANSMISSION_TIMEOUT_MS = 200
MAX_RETRANSMISSIONS = 5

_CLOSED = object()


class HandshakeState(Enum):
    """Steps of the login handshake with a region."""

    NOT_STARTED = auto()
    SENT_USE_CIRCUIT_CODE = auto()
    SENT_COMPLETE_AGENT_MOVEMENT = auto()
    RECEIVED_REGION_HANDSHAKE = auto()
    SENT_REGION_HANDSHAKE_REPLY = auto()
    SENT_AGENT_THROTTLE = auto()
    SENT_FIRST_AGENT_UPDATE = auto()
    HANDSHAKE_COMPLETE = auto()


@dataclass
class AgentState:
    """Position, camera and control flags of the agent, shared with game logic."""

    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    camera_at: tuple[float, float, float] = (0.0, 0.0, 0.0)
    camera_eye: tuple[float, float, float] = (0.0, 0.0, 0.0)
    controls: int = 0


class Circuit:
    """Sends messages reliably and delivers incoming ones in sequence order."""

    def __init__(self, transport, agent_state=None):
        self.transport = transport
        self.agent_state = agent_state if agent_state is not None else AgentState()
        self.next_sequence_number = 1
        self.tracker = SequenceTracker(1)
        self.unacked = RetransmitQueue(RETRANSMISSION_TIMEOUT_MS, MAX_RETRANSMISSIONS)
        self.handshake_state = HandshakeState.NOT_STARTED
        self.eq_polling_started = False
        self.capabilities = None
        self.udp_port = 0
        self.proxy_settings = None
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send_message(self, message, target):
        """Encode and send ``message`` reliably; return the number of bytes sent."""
        header = PacketHeader(sequence_id=self.next_sequence_number, flags=0)
        self.next_sequence_number += 1
        if isinstance(message, Ack):
            encoded = build_ack_packet(message.sequence_id, header.sequence_id)
        else:
            raise ValueError(
                f"send_message: unsupported message type for manual encoding: "
                f"{type(message).__name__}"
            )
        self.unacked.add(header.sequence_id, message, target, encoded)
        return await self.transport.send_to(encoded, target)

    async def handle_datagram(self, data, addr):
        """Process one received datagram; return the messages it made deliverable."""
        data = bytes(data)
        try:
            header, message = decode(data)
        except DecodeError:
            legacy = parse_legacy_use_circuit_code(data)
            if legacy is None:
                log.debug("failed to decode UDP packet from %s: %s", addr, data.hex())
                return []
            header, message = legacy
            log.info(
                "parsed legacy UseCircuitCode circuit_code=%d seq=%d",
                message.circuit_code,
                header.sequence_id,
            )
            item = (header, message, addr)
            await self._inbox.put(item)
            return [item]

        if isinstance(message, Ack):
            self.unacked.acknowledge(message.sequence_id)
            return []
        if isinstance(message, KeepAlive):
            return []

        ready = self.tracker.accept(header, message, addr)
        with contextlib.suppress(OSError):
            await self.transport.send_to(build_ack_packet(header.sequence_id, 0), addr)
        for item in ready:
            await self._inbox.put(item)
        return ready

    async def recv_message(self):
        """Wait for the next in-order ``(header, message, addr)``."""
        item = await self._inbox.get()
        if item is _CLOSED:
            self._inbox.put_nowait(_CLOSED)
            raise BrokenPipeError("Circuit receive channel closed")
        return item

    async def retransmit_due(self):
        """Resend overdue messages; return ``(resent, lost)`` sequence ids."""
        resend, lost = self.unacked.due()
        for seq, target, encoded in resend:
            with contextlib.suppress(OSError):
                await self.transport.send_to(encoded, target)
            log.debug("retransmitting message %d to %s", seq, target)
        return [seq for seq, _target, _encoded in resend], lost

    async def run(self):
        """Receive datagrams and resend overdue messages until the socket fails."""
        timeout = RETRANSMISSION_TIMEOUT_MS / 1000
        try:
            while True:
                try:
                    data, addr = await asyncio.wait_for(self.transport.recv_from(), timeout)
                except asyncio.TimeoutError:
                    await self.retransmit_due()
                    continue
                await self.handle_datagram(data, addr)
        except OSError as exc:
            log.warning("circuit receive loop stopped: %s", exc)
        finally:
            self._inbox.put_nowait(_CLOSED)

    async def disconnect_and_logout(self, sim_addr):
        """Try to tell the simulator that the agent is logging out."""
        with contextlib.suppress(ValueError, OSError):
            await self.send_message(Logout(), sim_addr)