import hashlib
import math
from typing import Any, Optional


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def mask_token(token: str) -> str:
    """Display-safe label: only a prefix and suffix of the secret survive."""
    token = token.strip()
    if len(token) <= 8:
        return f"{token[:2]}***"
    return f"{token[:4]}...{token[-4:]}"


def primary_key(token: str) -> str:
    """First non-blank key of a possibly newline-delimited token field."""
    for line in (token or "").splitlines():
        if line.strip():
            return line.strip()
    return ""


def coerce_token_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return max(0, int(value))


def optional_token_count(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return int(value)
