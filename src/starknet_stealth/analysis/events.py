"""Parsing of raw registry ``Announcement`` events.

Two event shapes exist on chain:

CURRENT (indexed scheme id and view tag)
    keys = [selector, scheme_id, view_tag]
    data = [ephemeral_x, ephemeral_y, stealth_address, metadata, index]

LEGACY (only the view tag indexed)
    keys = [selector, view_tag]
    data = [scheme_id, ephemeral_x, ephemeral_y, stealth_address, metadata]

The parser never raises: anything malformed comes back as None.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Any

from starknet_stealth.utils.types import Announcement, Point

logger = logging.getLogger(__name__)

MIN_DATA_LEN = 5


class EventLayout(Enum):
    CURRENT = auto()
    LEGACY = auto()


def to_int(value: Any) -> int:
    """Felt from an int or a hex/decimal string."""
    if isinstance(value, bool):
        raise TypeError("bool is not a felt")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        cleaned = value.strip().lower()
        return int(cleaned, 16) if cleaned.startswith("0x") else int(cleaned, 10)
    raise TypeError(f"Cannot read felt from {type(value).__name__}")


def detect_layout(event: Any) -> EventLayout | None:
    if not isinstance(event, dict):
        return None
    keys = event.get("keys") or []
    data = event.get("data") or []
    if not isinstance(keys, (list, tuple)) or not isinstance(data, (list, tuple)):
        return None
    if len(data) < MIN_DATA_LEN:
        return None
    if len(keys) >= 3:
        return EventLayout.CURRENT
    if len(keys) == 2:
        return EventLayout.LEGACY
    return None


def _parse_current(keys: list, data: list) -> dict:
    return {
        "scheme_id": to_int(keys[1]) % 256,
        "view_tag": to_int(keys[2]) % 256,
        "ephemeral_pubkey": Point(to_int(data[0]), to_int(data[1])),
        "stealth_address": hex(to_int(data[2])),
        "metadata": to_int(data[3] or 0),
        "index": to_int(data[4]) if data[4] is not None else None,
    }


def _parse_legacy(keys: list, data: list) -> dict:
    return {
        "scheme_id": to_int(data[0]),
        "view_tag": to_int(keys[1]) % 256,
        "ephemeral_pubkey": Point(to_int(data[1]), to_int(data[2])),
        "stealth_address": hex(to_int(data[3])),
        "metadata": to_int(data[4] or 0),
        "index": None,
    }


def parse_announcement_event(event: Any) -> Announcement | None:
    """Typed announcement from a raw event dict, or None if malformed."""
    layout = detect_layout(event)
    if layout is None:
        return None

    keys = list(event.get("keys") or [])
    data = list(event.get("data") or [])
    try:
        if layout is EventLayout.CURRENT:
            fields = _parse_current(keys, data)
        else:
            fields = _parse_legacy(keys, data)
        block_number = event.get("block_number")
        tx_hash = event.get("transaction_hash")
        return Announcement(
            block_number=to_int(block_number) if block_number is not None else None,
            tx_hash=str(tx_hash) if tx_hash is not None else None,
            **fields,
        )
    except (TypeError, ValueError, AttributeError) as exc:
        logger.debug("Skipping malformed announcement event: %s", exc)
        return None
