"""Shared parsing helpers for CLI, environment, and config document values."""

from __future__ import annotations


_BOOLEAN_TOKENS = {
    "1": True,
    "true": True,
    "yes": True,
    "on": True,
    "0": False,
    "false": False,
    "no": False,
    "off": False,
}


def normalize_optional_string(value: object) -> str | None:
    """Return `value` as a trimmed string, or `None` when absent or blank."""

    text = "" if value is None else str(value).strip()
    return text or None


def parse_permissive_boolean(value: object) -> bool | None:
    """Parse `true/false`, `yes/no`, `on/off` or `1/0`; `None` when unrecognized."""

    if isinstance(value, bool):
        return value
    token = normalize_optional_string(value)
    if token is None:
        return None
    return _BOOLEAN_TOKENS.get(token.lower())


def parse_optional_number(value: object, field_name: str) -> float | None:
    """Parse an optional numeric document value.

    Raises:
        ValueError: If the value is present but not numeric.
    """

    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"`{field_name}` must be a number, got a boolean.")
    if isinstance(value, (int, float)):
        return float(value)
    normalized = normalize_optional_string(value)
    if normalized is None:
        return None
    try:
        return float(normalized)
    except ValueError as exc:
        raise ValueError(f"`{field_name}` must be a number, got `{normalized}`.") from exc


def parse_optional_int(value: object, field_name: str) -> int | None:
    """Parse an optional integer document value, rejecting fractional numbers."""

    number = parse_optional_number(value, field_name)
    if number is None:
        return None
    if not number.is_integer():
        raise ValueError(f"`{field_name}` must be an integer, got `{value}`.")
    return int(number)


def parse_string_list(value: object, field_name: str) -> tuple[str, ...] | None:
    """Parse a list of strings, also accepting one comma-separated string."""

    if value is None:
        return None
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple)):
        parts = [str(part) for part in value]
    else:
        raise ValueError(f"`{field_name}` must be a list of strings.")
    return tuple(part.strip() for part in parts if part.strip())
