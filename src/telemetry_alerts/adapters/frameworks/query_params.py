"""Query parameter parsing for the ASGI adapter."""

import math

# Event levels accepted by the level filter
VALID_LEVELS = {"info", "warn", "error"}


def _first(params: dict[str, list[str]], name: str) -> str | None:
    values = params.get(name)
    return values[0] if values else None


def _parse_since_param(params: dict[str, list[str]]) -> float:
    """Parse and validate the 'since' query parameter.

    Args:
        params: Parsed query string parameters (as returned by urllib.parse.parse_qs).

    Returns:
        Timestamp as float, defaulting to 0.0 if invalid or missing.
        Negative, NaN, and infinite values also yield 0.0.
    """
    raw = _first(params, "since")
    if raw is None:
        return 0.0
    try:
        value = float(raw)
    except ValueError:
        return 0.0
    if value < 0 or not math.isfinite(value):
        return 0.0
    return value


def _parse_level_param(params: dict[str, list[str]]) -> str | None:
    """Parse the 'level' query parameter.

    Returns:
        Lowercase level, or None when missing or not one of info/warn/error.
    """
    raw = _first(params, "level")
    if raw and raw.lower() in VALID_LEVELS:
        return raw.lower()
    return None


def _parse_dimension_params(params: dict[str, list[str]]) -> dict[str, str]:
    """Parse repeated ``dimension=key:value`` parameters.

    Only the first colon separates key from value, so values may contain colons.

    Raises:
        ValueError: A dimension has no colon or an empty key.
    """
    dimensions: dict[str, str] = {}
    for raw in params.get("dimension", []):
        key, sep, value = raw.partition(":")
        if not sep or not key:
            raise ValueError(f"dimension must be key:value, got {raw!r}")
        dimensions[key] = value
    return dimensions
