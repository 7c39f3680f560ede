"""Shared utilities for retrieving upstream payloads and reading loosely-typed fields."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, MutableMapping

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential

DEFAULT_TIMEOUT_SECONDS = 30.0
_DEFAULT_WAIT = wait_exponential(min=1, max=16)
_DEFAULT_STOP = stop_after_attempt(5)


Headers = Mapping[str, str] | None
Params = Mapping[str, Any] | None
Data = MutableMapping[str, Any] | bytes | str | None
JsonData = Any


@retry(wait=_DEFAULT_WAIT, stop=_DEFAULT_STOP, reraise=True)
async def fetch_json(
    url: str,
    *,
    headers: Headers = None,
    params: Params = None,
    method: str = "GET",
    data: Data = None,
    json: JsonData = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Any:
    """Execute an HTTP request and return the decoded JSON payload.

    Retries with exponential backoff when transient failures occur. The helper keeps
    the interface close to ``httpx.AsyncClient.request`` so source ingestors can
    forward API-specific requirements without reimplementing networking concerns.
    """

    request_method = method.upper()
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.request(
            request_method,
            url,
            headers=headers,
            params=params,
            data=data,
            json=json,
        )

    response.raise_for_status()
    return response.json()


def pick_first_key(obj: Any, keys: Iterable[str]) -> str | int | float | None:
    """Return the value of the first alias present in ``obj``, ignoring key case.

    Only ``str`` and numeric values count as present; booleans never do. The
    first such alias wins even when the caller wanted the other type, so callers
    type-check the result rather than falling through to later aliases.
    """

    if not isinstance(obj, Mapping):
        return None
    lowered = {str(key).lower(): key for key in obj}
    for alias in keys:
        real = lowered.get(alias.lower())
        if real is None:
            continue
        value = obj[real]
        if value is None or isinstance(value, bool):
            continue
        if not isinstance(value, (str, int, float)):
            continue
        return value
    return None


def pick_first_mapping(obj: Any, keys: Iterable[str]) -> Mapping[str, Any] | None:
    if not isinstance(obj, Mapping):
        return None
    lowered = {str(key).lower(): key for key in obj}
    for alias in keys:
        real = lowered.get(alias.lower())
        if real is not None and isinstance(obj[real], Mapping):
            return obj[real]
    return None


def coerce_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float)):
        return None
    numeric = float(value)
    if math.isnan(numeric) or math.isinf(numeric):
        return None
    return numeric


def payload_source(raw: Any) -> Mapping[str, Any]:
    """Pick the mapping that carries measurement fields: ``raw['data']`` if present."""

    if isinstance(raw, Mapping):
        nested = raw.get("data")
        if isinstance(nested, Mapping):
            return nested
        return raw
    return {}


def parse_timestamp(raw: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""

    if not raw or not isinstance(raw, str):
        return None
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = datetime.strptime(text, "%Y-%m-%d %H:%M:%S")
        except ValueError:
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a UTC timestamp as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""

    utc = value.astimezone(timezone.utc) if value.tzinfo else value
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def validate_coordinates(lng: Any, lat: Any) -> tuple[float, float]:
    """Return ``(lng, lat)`` as floats or raise ``ValueError`` for unusable input."""

    lng_value = coerce_number(lng)
    lat_value = coerce_number(lat)
    if lng_value is None or lat_value is None:
        raise ValueError("lng and lat are required numeric values.")
    if not -90.0 <= lat_value <= 90.0:
        raise ValueError(f"lat {lat_value} is outside [-90, 90].")
    if not -180.0 <= lng_value <= 180.0:
        raise ValueError(f"lng {lng_value} is outside [-180, 180].")
    return lng_value, lat_value


__all__ = [
    "fetch_json",
    "DEFAULT_TIMEOUT_SECONDS",
    "pick_first_key",
    "pick_first_mapping",
    "coerce_number",
    "payload_source",
    "parse_timestamp",
    "format_timestamp",
    "clamp01",
    "validate_coordinates",
]
