"""
Identity key resolution for per-user durable storage.
"""
import re
from typing import Optional

DEFAULT_NAMESPACE_PREFIX = "tripplanner:data"

_NON_DIGITS = re.compile(r"\D")


def resolve_namespace_key(
    user_key: Optional[str],
    prefix: str = DEFAULT_NAMESPACE_PREFIX
) -> Optional[str]:
    """
    Map a user identity to the storage key holding that user's trip data.

    Args:
        user_key: Opaque identity string, None when nobody is signed in
        prefix: Namespace prefix shared by every user's key

    Returns:
        "<prefix>:<user_key>", or None when there is no identity
    """
    if user_key is None or not user_key.strip():
        return None
    return f"{prefix}:{user_key}"


def normalize_phone_number(value: str) -> str:
    """Canonical phone identity: optional leading '+' followed by digits only."""
    trimmed = value.strip()
    if not trimmed:
        return ""
    digits = _NON_DIGITS.sub("", trimmed)
    return f"+{digits}" if trimmed.startswith("+") else digits
