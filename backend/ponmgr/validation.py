"""
Input constraints for values that end up inside CLI command strings.

Command catalogs interpolate these values verbatim, so every API handler
must pass operator input through here first.
"""
from __future__ import annotations

import re
from typing import Any, Iterable, List, Optional

CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
PORT_NAME = re.compile(r"^[A-Za-z0-9/_.\-]+$")
SERIAL_NUMBER = re.compile(r"^[A-Za-z0-9\-]{4,32}$")
CLI_LABEL = re.compile(r"^[A-Za-z0-9 _.\-]{1,64}$")
CLI_TOKEN = re.compile(r"^[^\s\"'\\]{1,255}$")
TRUNK_MODES = ("trunk", "access", "hybrid")


def strip_control(value: Any) -> str:
    return CONTROL_CHARS.sub("", str(value if value is not None else "")).strip()


def validate_port_name(value: Any) -> str:
    token = strip_control(value)
    if not token or not PORT_NAME.match(token):
        raise ValueError("port must contain only letters, digits, '/', '_', '.' or '-'")
    return token


def validate_serial_number(value: Any) -> str:
    token = strip_control(value).upper()
    if not SERIAL_NUMBER.match(token):
        raise ValueError("serial_number must be 4-32 letters, digits or '-'")
    return token


def validate_label(value: Any, field: str = "name") -> Optional[str]:
    if value in (None, ""):
        return None
    token = strip_control(value)
    if not CLI_LABEL.match(token):
        raise ValueError(f"{field} may contain only letters, digits, spaces, '_', '.' or '-'")
    return token


def validate_cli_token(value: Any, field: str) -> Optional[str]:
    """Values quoted on the CLI (URLs, credentials): no quotes, spaces or backslashes."""
    if value in (None, ""):
        return None
    token = strip_control(value)
    if not CLI_TOKEN.match(token):
        raise ValueError(f"{field} must not contain whitespace, quotes or backslashes")
    return token


def validate_int(value: Any, field: str, minimum: int, maximum: int) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field} must be integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be integer") from None
    if number < minimum or number > maximum:
        raise ValueError(f"{field} must be between {minimum} and {maximum}")
    return number


def optional_int(value: Any, field: str, minimum: int, maximum: int) -> Optional[int]:
    if value in (None, ""):
        return None
    return validate_int(value, field, minimum, maximum)


def validate_vlan_id(value: Any, field: str = "vlan_id") -> int:
    return validate_int(value, field, 1, 4094)


def validate_vlan_list(values: Any) -> List[int]:
    if values in (None, ""):
        return []
    if isinstance(values, str):
        values = [part for part in re.split(r"[\s,]+", values) if part]
    if not isinstance(values, Iterable):
        raise ValueError("vlan_list must be a list of VLAN ids")
    vlans: List[int] = []
    for value in values:
        vlan = validate_vlan_id(value, "vlan_list")
        if vlan not in vlans:
            vlans.append(vlan)
    return vlans


def validate_trunk_mode(value: Any) -> str:
    mode = strip_control(value or "trunk").lower()
    if mode not in TRUNK_MODES:
        raise ValueError(f"mode must be one of: {', '.join(TRUNK_MODES)}")
    return mode
