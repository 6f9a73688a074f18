"""Ordering, acknowledgement and retransmission bookkeeping for a circuit."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass

from .messages import Message, PacketHeader, UseCircuitCode

log = logging.getLogger(__name__)

_ACK_MESSAGE_NUMBER = bytes([0x00, 0x00, 0x00, 0x01])
_LEGACY_UCC_ID = bytes([0xFF, 0xFF, 0x00, 0x03])
_LEGACY_UCC_LEN = 46
_RELIABLE = 0x40


def build_ack_packet(acked_sequence, sequence_id=0):
    """Build an unreliable packet acknowledging ``acked_sequence``."""
    return (
        b"\x00"
        + int(sequence_id).to_bytes(4, "big")
        + b"\x00"
        + _ACK_MESSAGE_NUMBER
        + int(acked_sequence).to_bytes(4, "big")
    )


def parse_legacy_use_circuit_code(packet):
    """Recognise a raw UseCircuitCode packet; return ``(header, message)`` or None."""
    packet = bytes(packet)
    if (
        len(packet) != _LEGACY_UCC_LEN
        or not packet[0] & _RELIABLE
        or packet[6:10] != _LEGACY_UCC_ID
    ):
        return None
    packet_id = int.from_bytes(packet[1:5], "little")
    circuit_code = int.from_bytes(packet[10:14], "little")
    session_id = uuid.UUID(bytes=packet[14:30])
    agent_id = uuid.UUID(bytes=packet[30:46])
    header = PacketHeader(sequence_id=packet_id, flags=packet[0])
    message = UseCircuitCode(
        agent_id=str(agent_id), session_id=str(session_id), circuit_code=circuit_code
    )
    return header, message


class SequenceTracker:
    """Releases incoming messages in sequence order, holding early ones back."""

    def __init__(self, first_expected=1):
        self.next_expected = first_expected
        self._held: dict[int, tuple[PacketHeader, Message, object]] = {}

    @property
    def held(self):
        """Number of messages waiting for a gap to be filled."""
        return len(self._held)

    def accept(self, header, message, addr):
        """Record a message; return the ``(header, message, addr)`` now deliverable in order."""
        seq = header.sequence_id
        if seq < self.next_expected:
            log.debug("discarding duplicate or old packet %d", seq)
            return []
        if seq > self.next_expected:
            self._held[seq] = (header, message, addr)
            return []
        ready = [(header, message, addr)]
        self.next_expected += 1
        while self.next_expected in self._held:
            ready.append(self._held.pop(self.next_expected))
            self.next_expected += 1
        return ready


@dataclass
class PendingMessage:
    """A sent reliable message waiting for its acknowledgement."""

    message: Message
    sent_at: float
    retransmissions: int
    target: tuple
    encoded: bytes


class RetransmitQueue:
    """Tracks unacknowledged messages and decides when to resend or give up."""

    def __init__(self, timeout_ms=200, max_retransmissions=5):
        self.timeout = timeout_ms / 1000
        self.max_retransmissions = max_retransmissions
        self._pending: dict[int, PendingMessage] = {}

    def add(self, sequence_id, message, target, encoded):
        """Start waiting for an acknowledgement of ``sequence_id``."""
        self._pending[sequence_id] = PendingMessage(
            message, time.monotonic(), 0, target, bytes(encoded)
        )

    def acknowledge(self, sequence_id):
        """Forget ``sequence_id``; return True if it was pending."""
        return self._pending.pop(sequence_id, None) is not None

    def due(self, now=None):
        """Return ``(resend, lost)``: ``(seq, target, encoded)`` to resend and sequence ids given up."""
        now = time.monotonic() if now is None else now
        resend = []
        lost = []
        for seq, pending in list(self._pending.items()):
            if now - pending.sent_at <= self.timeout:
                continue
            if pending.retransmissions < self.max_retransmissions:
                pending.sent_at = now
                pending.retransmissions += 1
                resend.append((seq, pending.target, pending.encoded))
            else:
                del self._pending[seq]
                lost.append(seq)
                log.warning("message %d lost after %d retransmissions", seq, self.max_retransmissions)
        return resend, lost

    def __len__(self):
        return len(self._pending)