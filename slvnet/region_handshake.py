"""Decoder for the body of a RegionHandshake packet."""

from __future__ import annotations

import struct
import uuid

from .messages import RegionHandshakeData

_REGION_INFO = struct.Struct("<IB16sBff16s16s")
_TERRAIN = struct.Struct("<64s64s4f4f")
_VERSION_LEN = struct.Struct("<B")
_UUID_SIZE = 16
_PLACEHOLDER_REGION_NAME = "Unknown"


def _uuid_quad(raw: bytes) -> tuple[uuid.UUID, ...]:
    return tuple(
        uuid.UUID(bytes=raw[start:start + _UUID_SIZE])
        for start in range(0, len(raw), _UUID_SIZE)
    )


def parse_region_handshake(payload):
    """Decode a RegionHandshake body; raise ValueError when it is truncated."""
    payload = bytes(payload)
    try:
        (
            region_flags,
            sim_access,
            sim_owner,
            is_estate_manager,
            water_height,
            billable_factor,
            cache_id,
            region_id,
        ) = _REGION_INFO.unpack_from(payload, 0)
        offset = _REGION_INFO.size
        terrain_base, terrain_detail, *heights = _TERRAIN.unpack_from(payload, offset)
        offset += _TERRAIN.size
        (version_len,) = _VERSION_LEN.unpack_from(payload, offset)
        offset += _VERSION_LEN.size
    except struct.error:
        raise ValueError("RegionHandshake payload is truncated") from None

    if len(payload) < offset + version_len:
        raise ValueError("RegionHandshake simulator version is truncated")

    return RegionHandshakeData(
        region_flags=region_flags,
        sim_access=sim_access,
        region_name=_PLACEHOLDER_REGION_NAME,
        sim_owner=uuid.UUID(bytes=sim_owner),
        is_estate_manager=is_estate_manager,
        water_height=water_height,
        billable_factor=billable_factor,
        cache_id=uuid.UUID(bytes=cache_id),
        terrain_base=_uuid_quad(terrain_base),
        terrain_detail=_uuid_quad(terrain_detail),
        terrain_start_height=tuple(heights[:4]),
        terrain_height_range=tuple(heights[4:]),
        region_id=uuid.UUID(bytes=region_id),
    )