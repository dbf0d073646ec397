from __future__ import annotations

import asyncio
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from workbench.core.storage import read_json, write_json
from workbench.utils.logger import get_logger

logger = get_logger("session_store")


def _now_ms() -> int:
    return int(time.time() * 1000)


class JsonFileSessionStore:
    """
    Session records kept in memory and mirrored to one JSON file.

    Writes are debounced: the first mutation arms a one-shot timer on the
    running loop and later mutations ride along with it. Expired records are
    dropped lazily on read and always before a write.
    """

    def __init__(self, file_path: str | Path, save_delay: float = 0.2):
        self.file_path = Path(file_path)
        self.save_delay = save_delay
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self._save_handle: Optional[asyncio.TimerHandle] = None
        self._save_loop: Optional[asyncio.AbstractEventLoop] = None
        self._load()

    def get(self, sid: str) -> Optional[Dict[str, Any]]:
        record = self.sessions.get(sid)
        if not record:
            return None
        if self._is_expired(record):
            del self.sessions[sid]
            self._schedule_save()
            return None
        return record["data"]

    def set(self, sid: str, data: Dict[str, Any]) -> None:
        self.sessions[sid] = {"data": data, "expiresAt": self._get_expires_at(data)}
        self._schedule_save()

    def touch(self, sid: str, data: Dict[str, Any]) -> None:
        record = self.sessions.get(sid)
        if record:
            record["data"] = data
            record["expiresAt"] = self._get_expires_at(data)
            self._schedule_save()

    def destroy(self, sid: str) -> None:
        self.sessions.pop(sid, None)
        self._schedule_save()

    def flush(self) -> None:
        if self._save_handle is not None:
            self._save_handle.cancel()
            self._save_handle = None
        self._prune_expired()
        self._persist()

    def close(self) -> None:
        self.flush()

    def _load(self) -> None:
        if not self.file_path.exists():
            return
        try:
            parsed = read_json(self.file_path)
            for sid, record in (parsed.get("sessions") or {}).items():
                if isinstance(record, dict) and "data" in record:
                    self.sessions[sid] = record
            self._prune_expired()
        except (OSError, ValueError, AttributeError) as e:
            logger.error(f"Failed to load session store: {e}")

    def _persist(self) -> None:
        try:
            write_json(self.file_path, {"sessions": self.sessions})
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save session store: {e}")

    def _schedule_save(self) -> None:
        if self._save_handle is not None:
            # a timer armed on a loop that has since stopped will never fire
            if self._save_loop is not None and self._save_loop.is_running():
                return
            self._save_handle = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.flush()
            return
        self._save_loop = loop
        self._save_handle = loop.call_later(self.save_delay, self._on_save_timer)

    def _on_save_timer(self) -> None:
        self._save_handle = None
        self._prune_expired()
        self._persist()

    def _prune_expired(self) -> None:
        now = _now_ms()
        expired = [sid for sid, record in self.sessions.items() if self._is_expired(record, now)]
        for sid in expired:
            del self.sessions[sid]

    def _is_expired(self, record: Dict[str, Any], now: Optional[int] = None) -> bool:
        expires_at = record.get("expiresAt")
        if expires_at is None:
            return False
        return expires_at <= (now if now is not None else _now_ms())

    def _get_expires_at(self, data: Dict[str, Any]) -> Optional[int]:
        cookie = data.get("cookie") if isinstance(data, dict) else None
        if not cookie:
            return None

        expires = cookie.get("expires")
        if expires is not None:
            return _to_epoch_ms(expires)

        max_age = cookie.get("maxAge")
        if isinstance(max_age, (int, float)) and not isinstance(max_age, bool):
            return _now_ms() + int(max_age)
        return None


def _to_epoch_ms(value: Any) -> Optional[int]:
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp() * 1000)
        except ValueError:
            return None
    return None
