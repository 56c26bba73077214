"""Channel id normalization and message identity keys."""

from __future__ import annotations

_CHANNEL_PREFIX = "-100"


def normalize_channel_id(channel_id: str | int | None) -> str:
    """Reduce a provider channel id to its bare digit string.

    ``"-100123456789"``, ``"-123456789"`` and ``"123456789"`` all become
    ``"123456789"``.
    """
    if channel_id is None:
        return ""
    sid = str(channel_id).strip()
    if sid.startswith(_CHANNEL_PREFIX):
        sid = sid[len(_CHANNEL_PREFIX):]
    return sid.lstrip("+-")


def channels_equal(a: str | int | None, b: str | int | None) -> bool:
    na = normalize_channel_id(a)
    return bool(na) and na == normalize_channel_id(b)


def message_key(channel_id: str | int, message_id: int | str) -> str:
    """Composite dedup key: normalized channel + provider message id."""
    return f"{normalize_channel_id(channel_id)}:{message_id}"
