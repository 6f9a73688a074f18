"""Decoding of incoming UDP circuit packets into messages."""

from __future__ import annotations

import logging
import uuid

from .messages import (
    Ack,
    AgentDataUpdate,
    AgentMovementComplete,
    HealthMessage,
    KeepAlive,
    Message,
    PacketHeader,
    RegionHandshake,
)
from .region_handshake import parse_region_handshake

log = logging.getLogger(__name__)

_MIN_PACKET = 7
_BODY_OFFSET = 6
_REGION_HANDSHAKE_ID = 5

_KEEP_ALIVE_ID = bytes([0xFF, 0xFF, 0xFF, 0xFB])
_AGENT_MOVEMENT_COMPLETE_ID = bytes([0xFF, 0xFF, 0x00, 0xF9])
_IMPROVED_AVATAR_POWERS_ID = bytes([0xFF, 0xFF, 0x00, 0xFA])
_START_PING_CHECK_ID = bytes([0xFF, 0xFF, 0x00, 0x01])
_AGENT_DATA_UPDATE_ID = bytes([0xFF, 0xFF, 0x01, 0x83])
_HEALTH_MESSAGE_ID = bytes([0xFF, 0xFF, 0x00, 0x8A])


class DecodeError(ValueError):
    """Raised when a packet cannot be decoded into a message."""


def _uuid_text(raw: bytes) -> str:
    return str(uuid.UUID(bytes=raw))


def _keep_alive(data: bytes) -> Message:
    return KeepAlive()


def _agent_movement_complete(data: bytes) -> Message:
    if len(data) < 42:
        raise DecodeError("Packet too short for AgentMovementComplete")
    return AgentMovementComplete(
        agent_id=_uuid_text(data[10:26]),
        session_id=_uuid_text(data[26:42]),
    )


def _improved_avatar_powers(data: bytes) -> Message:
    if len(data) < 34:
        raise DecodeError("Packet too short for ImprovedAvatarPowers")
    raise DecodeError("ImprovedAvatarPowers not fully handled")


def _start_ping_check(data: bytes) -> Message:
    if len(data) < 14:
        raise DecodeError("Packet too short for StartPingCheck")
    raise DecodeError("StartPingCheck not fully handled")


def _agent_data_update(data: bytes) -> Message:
    if len(data) < 26:
        raise DecodeError("Packet too short for AgentDataUpdate")
    return AgentDataUpdate(agent_id=_uuid_text(data[10:26]))


def _health_message(data: bytes) -> Message:
    return HealthMessage()


_HANDLERS = {
    _KEEP_ALIVE_ID: _keep_alive,
    _AGENT_MOVEMENT_COMPLETE_ID: _agent_movement_complete,
    _IMPROVED_AVATAR_POWERS_ID: _improved_avatar_powers,
    _START_PING_CHECK_ID: _start_ping_check,
    _AGENT_DATA_UPDATE_ID: _agent_data_update,
    _HEALTH_MESSAGE_ID: _health_message,
}


def decode(data):
    """Decode a packet into ``(PacketHeader, Message)``; raise DecodeError otherwise."""
    data = bytes(data)
    if len(data) < _MIN_PACKET:
        raise DecodeError("Packet too short for message ID")

    header = PacketHeader(sequence_id=int.from_bytes(data[1:5], "big"), flags=data[0])

    if data[_BODY_OFFSET] == _REGION_HANDSHAKE_ID:
        try:
            handshake = parse_region_handshake(data[_BODY_OFFSET + 1:])
        except ValueError:
            raise DecodeError("Failed to parse RegionHandshake") from None
        log.debug("decoded RegionHandshake seq=%d", header.sequence_id)
        return header, RegionHandshake(handshake)

    if len(data) >= 10:
        handler = _HANDLERS.get(data[_BODY_OFFSET:10])
        if handler is not None:
            message = handler(data)
            log.debug("decoded %s seq=%d", type(message).__name__, header.sequence_id)
            return header, message

    if header.has_acks() and len(data) >= 10:
        acked = int.from_bytes(data[_BODY_OFFSET:10], "big")
        return header, Ack(sequence_id=acked)

    log.debug("unknown packet: %s", data[:32].hex())
    raise DecodeError("Unsupported or unknown message type")