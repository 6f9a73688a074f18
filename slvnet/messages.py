"""Packet header and message types exchanged over the UDP circuit."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

RELIABLE_FLAG = 0x40
ACK_FLAG = 0x10

Vector3 = tuple[float, float, float]


def _fixed_tuple(obj, name: str, length: int) -> None:
    value = tuple(getattr(obj, name))
    if len(value) != length:
        raise ValueError(f"{name} must have {length} elements, got {len(value)}")
    object.__setattr__(obj, name, value)


@dataclass(frozen=True)
class PacketHeader:
    sequence_id: int
    flags: int

    def is_reliable(self):
        """True when the sender expects this packet to be acknowledged."""
        return bool(self.flags & RELIABLE_FLAG)

    def has_acks(self):
        """True when the packet carries acknowledgements."""
        return bool(self.flags & ACK_FLAG)


@dataclass(frozen=True)
class RegionHandshakeData:
    region_flags: int
    sim_access: int
    region_name: str
    sim_owner: uuid.UUID
    is_estate_manager: int
    water_height: float
    billable_factor: float
    cache_id: uuid.UUID
    terrain_base: tuple[uuid.UUID, ...]
    terrain_detail: tuple[uuid.UUID, ...]
    terrain_start_height: tuple[float, ...]
    terrain_height_range: tuple[float, ...]
    region_id: uuid.UUID

    def __post_init__(self) -> None:
        for name in (
            "terrain_base",
            "terrain_detail",
            "terrain_start_height",
            "terrain_height_range",
        ):
            _fixed_tuple(self, name, 4)


@dataclass(frozen=True)
class Message:
    """Base class of every circuit message."""


@dataclass(frozen=True)
class KeepAlive(Message):
    pass


@dataclass(frozen=True)
class Logout(Message):
    pass


@dataclass(frozen=True)
class Ack(Message):
    sequence_id: int


@dataclass(frozen=True)
class UseCircuitCode(Message):
    agent_id: str
    session_id: str
    circuit_code: int


@dataclass(frozen=True)
class UseCircuitCodeReply(Message):
    success: bool


@dataclass(frozen=True)
class ChatFromViewer(Message):
    message: str
    channel: str


@dataclass(frozen=True)
class ChatFromSimulator(Message):
    sender: str
    message: str
    channel: str


@dataclass(frozen=True)
class CompleteAgentMovement(Message):
    agent_id: str
    session_id: str
    circuit_code: int
    position: Vector3
    look_at: Vector3

    def __post_init__(self) -> None:
        _fixed_tuple(self, "position", 3)
        _fixed_tuple(self, "look_at", 3)


@dataclass(frozen=True)
class AgentUpdate(Message):
    agent_id: str
    session_id: str
    position: Vector3
    camera_at: Vector3
    camera_eye: Vector3
    controls: int

    def __post_init__(self) -> None:
        for name in ("position", "camera_at", "camera_eye"):
            _fixed_tuple(self, name, 3)


@dataclass(frozen=True)
class AgentMovementComplete(Message):
    agent_id: str
    session_id: str


@dataclass(frozen=True)
class RegionHandshake(Message):
    data: RegionHandshakeData


@dataclass(frozen=True)
class RegionHandshakeReply(Message):
    agent_id: str
    session_id: str
    flags: int


@dataclass(frozen=True)
class AgentThrottle(Message):
    agent_id: str
    session_id: str
    circuit_code: int
    throttle: tuple[float, ...]

    def __post_init__(self) -> None:
        _fixed_tuple(self, "throttle", 7)


@dataclass(frozen=True)
class AgentDataUpdate(Message):
    agent_id: str


@dataclass(frozen=True)
class HealthMessage(Message):
    pass