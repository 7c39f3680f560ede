"""Static configuration for upstream observation protocols."""

from __future__ import annotations

from typing import Iterable

from pipelines.proximity import AIR_TEMP_POLICY, CLOUD_POLICY, LAND_COVER_POLICY, WIND_POLICY
from pipelines.sources.globe import GlobeProtocolConfig

TARGET_PROTOCOLS: tuple[GlobeProtocolConfig, ...] = (
    GlobeProtocolConfig(
        key="air_temperature",
        protocol="air_temps",
        file_stem="globe_airtemps",
        policy=AIR_TEMP_POLICY,
    ),
    GlobeProtocolConfig(
        key="clouds",
        protocol="clouds",
        file_stem="globe_clouds",
        policy=CLOUD_POLICY,
    ),
    GlobeProtocolConfig(
        key="winds",
        protocol="winds",
        file_stem="globe_winds",
        policy=WIND_POLICY,
    ),
    GlobeProtocolConfig(
        key="land_cover",
        protocol="land_covers",
        file_stem="globe_landcovers",
        policy=LAND_COVER_POLICY,
    ),
)


def get_protocol_by_key(key: str) -> GlobeProtocolConfig | None:
    for protocol in TARGET_PROTOCOLS:
        if protocol.key == key:
            return protocol
    return None


def iter_protocols(keys: Iterable[str] | None = None) -> Iterable[GlobeProtocolConfig]:
    if keys is None:
        return TARGET_PROTOCOLS
    selected = []
    for key in keys:
        protocol = get_protocol_by_key(key)
        if protocol:
            selected.append(protocol)
    return tuple(selected)


__all__ = ["TARGET_PROTOCOLS", "get_protocol_by_key", "iter_protocols"]
