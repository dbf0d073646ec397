from typing import Optional

from .base import CamelModel


class UsageEntry(CamelModel):
    date: str
    token_hash: str
    token_label: str
    config_id: Optional[int] = None
    name: Optional[str] = None
    model: Optional[str] = None
    use_google: Optional[bool] = None
    requests: int = 0
    total_tokens: int = 0


def usage_key(token_hash: str, config_id: Optional[int]) -> str:
    return f"{token_hash}:{config_id if config_id is not None else '-'}"
