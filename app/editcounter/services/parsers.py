from __future__ import annotations

import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def decode_text(value) -> str:
    """Replica columns are VARBINARY; MySQL drivers hand them back as bytes."""
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def parse_mw_timestamp(value) -> datetime | None:
    text = decode_text(value).strip()
    if not text:
        return None
    if text.isdigit() and len(text) == 14:
        try:
            timestamp = datetime.strptime(text, "%Y%m%d%H%M%S")
        except ValueError:
            logger.warning("Unable to parse MediaWiki timestamp: %s", text)
            return None
        return timestamp.replace(tzinfo=timezone.utc)
    normalized = text.replace("Z", "+00:00")
    try:
        timestamp = datetime.fromisoformat(normalized)
    except ValueError:
        try:
            timestamp = datetime.fromisoformat(normalized.replace(" ", "T"))
        except ValueError:
            logger.warning("Unable to parse MediaWiki timestamp: %s", text)
            return None
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def format_mw_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y%m%d%H%M%S")


def parse_optional_int(value) -> int | None:
    try:
        if value is None:
            return None
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("ascii")
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_int(value) -> int:
    parsed = parse_optional_int(value)
    return parsed if parsed is not None else 0


def parse_bool(value) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    normalized = decode_text(value).strip().lower()
    return normalized in {"1", "true", "t", "yes", "y"}
