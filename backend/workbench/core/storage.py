from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError

from workbench.models import (
    ApiConfiguration,
    ChatMessage,
    DEFAULT_PROMPTS,
    Namespace,
    Note,
    SystemPrompt,
    UsageEntry,
    User,
    derive_title,
    resolve_title,
    usage_key,
    utcnow,
)
from workbench.utils.logger import get_logger
from workbench.utils.tokens import coerce_token_count, hash_token, mask_token

logger = get_logger("storage")

ModelT = TypeVar("ModelT", bound=BaseModel)

CONFIG_FILES = {
    Namespace.GENERIC: "api-config.json",
    Namespace.GOOGLE: "api-config-google.json",
}
PROMPTS_FILE = "prompts.json"
NOTES_FILE = "notes.json"
USAGE_FILE = os.path.join("data", "api-usage.json")
SESSIONS_FILE = os.path.join("data", "sessions.json")


def read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


def write_json(path: Path, payload: Any) -> None:
    """Whole-file overwrite through a sibling temp file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    with open(tmp_path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False)
    os.replace(tmp_path, path)


class Storage:
    """
    In-memory maps backed by JSON files.

    Every mutation updates the map first and then rewrites the owning file.
    Load and write failures are logged and never raised: a failed load starts
    from an empty collection, a failed write leaves memory ahead of disk until
    the next successful write.
    """

    def __init__(self, data_dir: str | Path, username: str = "admin", password: str = "admin"):
        self.data_dir = Path(data_dir)
        self.config_paths = {ns: self.data_dir / name for ns, name in CONFIG_FILES.items()}
        self.prompts_path = self.data_dir / PROMPTS_FILE
        self.notes_path = self.data_dir / NOTES_FILE
        self.usage_path = self.data_dir / USAGE_FILE

        self.users: Dict[int, User] = {}
        self.prompts: Dict[int, SystemPrompt] = {}
        self.messages: Dict[int, ChatMessage] = {}
        self.notes: Dict[int, Note] = {}
        self.configs: Dict[Namespace, Dict[int, ApiConfiguration]] = {ns: {} for ns in Namespace}
        self.active_config_ids: Dict[Namespace, Optional[int]] = {ns: None for ns in Namespace}
        self.usage: Dict[str, Dict[str, UsageEntry]] = {}

        self._next_ids: Dict[Any, int] = {"user": 1, "prompt": 1, "message": 1, "note": 1}
        for ns in Namespace:
            self._next_ids[ns] = 1

        self.create_user(username, password)
        self._load_prompts()
        for ns in Namespace:
            self._load_configs(ns)
        self._load_notes()
        self._load_usage()

    # ----------------------------
    # Internals
    # ----------------------------

    def _next_id(self, kind: Any) -> int:
        new_id = self._next_ids[kind]
        self._next_ids[kind] = new_id + 1
        return new_id

    def _reseed(self, kind: Any, ids) -> None:
        self._next_ids[kind] = max(ids, default=0) + 1

    def _read(self, path: Path) -> Any:
        if not path.exists():
            return None
        try:
            return read_json(path)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load {path}: {e}")
            return {}

    def _parse_list(self, path: Path, items: Any, model: Type[ModelT]) -> List[ModelT]:
        try:
            return [model.model_validate(item) for item in (items or [])]
        except (ValidationError, TypeError) as e:
            logger.error(f"Malformed records in {path}: {e}")
            return []

    def _write(self, path: Path, payload: Any) -> None:
        try:
            write_json(path, payload)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save {path}: {e}")

    # ----------------------------
    # Users
    # ----------------------------

    def create_user(self, username: str, password: str) -> User:
        user = User(id=self._next_id("user"), username=username, password=password)
        self.users[user.id] = user
        return user

    def get_user_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.username == username), None)

    # ----------------------------
    # System prompts
    # ----------------------------

    def _load_prompts(self) -> None:
        data = self._read(self.prompts_path)
        if data is None:
            for prompt in DEFAULT_PROMPTS:
                new_id = self._next_id("prompt")
                self.prompts[new_id] = SystemPrompt(id=new_id, created_at=utcnow(), **prompt)
            self._persist_prompts()
            return

        records = self._parse_list(self.prompts_path, data.get("prompts") if isinstance(data, dict) else None, SystemPrompt)
        self.prompts = {p.id: p for p in records}
        self._reseed("prompt", self.prompts.keys())

    def _persist_prompts(self) -> None:
        self._write(self.prompts_path, {"prompts": [p.to_json() for p in self.list_prompts()]})

    def list_prompts(self) -> List[SystemPrompt]:
        return sorted(self.prompts.values(), key=lambda p: (p.created_at, p.id))

    def get_prompt(self, prompt_id: int) -> Optional[SystemPrompt]:
        return self.prompts.get(prompt_id)

    def create_prompt(self, name: str, content: str) -> SystemPrompt:
        new_id = self._next_id("prompt")
        prompt = SystemPrompt(id=new_id, name=name, content=content, created_at=utcnow())
        self.prompts[new_id] = prompt
        self._persist_prompts()
        return prompt

    def update_prompt(self, prompt_id: int, **changes: Any) -> Optional[SystemPrompt]:
        existing = self.prompts.get(prompt_id)
        if not existing:
            return None
        changes = {k: v for k, v in changes.items() if v is not None}
        updated = existing.model_copy(update=changes)
        self.prompts[prompt_id] = updated
        self._persist_prompts()
        return updated

    def delete_prompt(self, prompt_id: int) -> bool:
        if self.prompts.pop(prompt_id, None) is None:
            return False
        self._persist_prompts()
        return True

    # ----------------------------
    # Chat messages (memory only)
    # ----------------------------

    def list_messages(self) -> List[ChatMessage]:
        return sorted(self.messages.values(), key=lambda m: (m.timestamp, m.id))

    def create_message(self, role: str, content: str) -> ChatMessage:
        new_id = self._next_id("message")
        message = ChatMessage(id=new_id, role=role, content=content, timestamp=utcnow())
        self.messages[new_id] = message
        return message

    def clear_messages(self) -> None:
        self.messages.clear()

    # ----------------------------
    # API configurations
    # ----------------------------

    def _load_configs(self, namespace: Namespace) -> None:
        path = self.config_paths[namespace]
        data = self._read(path)
        if not isinstance(data, dict):
            return

        use_google = namespace is Namespace.GOOGLE
        raw_configs = []
        for item in data.get("configs") or []:
            if isinstance(item, dict):
                item = {**item, "useGoogle": item.get("useGoogle", use_google)}
            raw_configs.append(item)

        records = self._parse_list(path, raw_configs, ApiConfiguration)
        self.configs[namespace] = {c.id: c for c in records}
        self._reseed(namespace, self.configs[namespace].keys())

        active_id = data.get("activeId")
        if isinstance(active_id, bool) or not isinstance(active_id, int) or active_id not in self.configs[namespace]:
            active_id = None
        self.active_config_ids[namespace] = active_id

    def _persist_configs(self, namespace: Namespace) -> None:
        payload = {
            "activeId": self.active_config_ids[namespace],
            "configs": [c.to_json() for c in self.configs[namespace].values()],
        }
        self._write(self.config_paths[namespace], payload)

    def list_configs(self, namespace: Namespace) -> List[ApiConfiguration]:
        return list(self.configs[namespace].values())

    def get_config(self, config_id: int, namespace: Namespace) -> Optional[ApiConfiguration]:
        return self.configs[namespace].get(config_id)

    def get_active_config(self, namespace: Namespace) -> Optional[ApiConfiguration]:
        active_id = self.active_config_ids[namespace]
        if active_id is None:
            return None
        return self.configs[namespace].get(active_id)

    def save_config(self, data: Dict[str, Any], namespace: Namespace) -> ApiConfiguration:
        """Insert or overwrite, then make the saved record active."""
        config_id = data.get("id")
        if config_id is None:
            config_id = self._next_id(namespace)
        elif config_id >= self._next_ids[namespace]:
            self._next_ids[namespace] = config_id + 1

        fields = {k: v for k, v in data.items() if k != "id"}
        fields["use_google"] = namespace is Namespace.GOOGLE
        config = ApiConfiguration(id=config_id, **fields)

        self.configs[namespace][config_id] = config
        self.active_config_ids[namespace] = config_id
        self._persist_configs(namespace)
        return config

    def set_active_config(self, config_id: int, namespace: Namespace) -> Optional[ApiConfiguration]:
        config = self.configs[namespace].get(config_id)
        if config:
            self.active_config_ids[namespace] = config_id
            self._persist_configs(namespace)
        return config

    def delete_config(self, config_id: int, namespace: Namespace) -> bool:
        if self.configs[namespace].pop(config_id, None) is None:
            return False
        if self.active_config_ids[namespace] == config_id:
            self.active_config_ids[namespace] = next(iter(self.configs[namespace]), None)
        self._persist_configs(namespace)
        return True

    # ----------------------------
    # Notes
    # ----------------------------

    def _load_notes(self) -> None:
        data = self._read(self.notes_path)
        if not isinstance(data, dict):
            return
        records = self._parse_list(self.notes_path, data.get("notes"), Note)
        self.notes = {n.id: n for n in records}
        self._reseed("note", self.notes.keys())

    def _persist_notes(self) -> None:
        self._write(self.notes_path, {"notes": [n.to_json() for n in self.list_notes()]})

    def list_notes(self) -> List[Note]:
        return sorted(self.notes.values(), key=lambda n: (n.updated_at, n.id))

    def get_note(self, note_id: int) -> Optional[Note]:
        return self.notes.get(note_id)

    def create_note(self, content: str = "", title: Optional[str] = None) -> Note:
        now = utcnow()
        new_id = self._next_id("note")
        note = Note(
            id=new_id,
            title=resolve_title(title, content),
            content=content,
            created_at=now,
            updated_at=now,
        )
        self.notes[new_id] = note
        self._persist_notes()
        return note

    def update_note(self, note_id: int, content: Optional[str] = None, title: Optional[str] = None) -> Optional[Note]:
        existing = self.notes.get(note_id)
        if not existing:
            return None

        changes: Dict[str, Any] = {"updated_at": utcnow()}
        if content is not None:
            changes["content"] = content
            if content != existing.content:
                changes["summary"] = None
        if title is not None:
            changes["title"] = resolve_title(title, content if content is not None else existing.content)
        elif content is not None and existing.title == derive_title(existing.content):
            # only a derived title follows the content
            changes["title"] = derive_title(content)

        updated = existing.model_copy(update=changes)
        self.notes[note_id] = updated
        self._persist_notes()
        return updated

    def set_note_summary(self, note_id: int, summary: str) -> Optional[Note]:
        existing = self.notes.get(note_id)
        if not existing:
            return None
        updated = existing.model_copy(update={"summary": summary})
        self.notes[note_id] = updated
        self._persist_notes()
        return updated

    def delete_note(self, note_id: int) -> bool:
        if self.notes.pop(note_id, None) is None:
            return False
        self._persist_notes()
        return True

    def clear_notes(self) -> None:
        self.notes.clear()
        self._persist_notes()

    # ----------------------------
    # Usage ledger
    # ----------------------------

    def _load_usage(self) -> None:
        data = self._read(self.usage_path)
        if not isinstance(data, dict):
            return
        try:
            self.usage = {
                date: {key: UsageEntry.model_validate(entry) for key, entry in (day or {}).items()}
                for date, day in (data.get("usage") or {}).items()
            }
        except (ValidationError, AttributeError, TypeError) as e:
            logger.error(f"Malformed usage ledger in {self.usage_path}: {e}")
            self.usage = {}

    def _persist_usage(self) -> None:
        payload = {
            "usage": {
                date: {key: entry.to_json() for key, entry in day.items()}
                for date, day in self.usage.items()
            }
        }
        self._write(self.usage_path, payload)

    def record_usage(
        self,
        token: str,
        config: Optional[ApiConfiguration],
        total_tokens: Any,
        at: Optional[datetime] = None,
    ) -> UsageEntry:
        date = (at or datetime.now()).strftime("%Y-%m-%d")
        token_hash = hash_token(token)
        config_id = config.id if config else None
        key = usage_key(token_hash, config_id)

        day = self.usage.setdefault(date, {})
        entry = day.get(key)
        if entry is None:
            entry = UsageEntry(
                date=date,
                token_hash=token_hash,
                token_label=mask_token(token),
                config_id=config_id,
            )
            day[key] = entry

        if config:
            entry.name = config.name
            entry.model = config.model
            entry.use_google = config.use_google
        entry.requests += 1
        entry.total_tokens += coerce_token_count(total_tokens)

        self._persist_usage()
        return entry

    def list_usage(self) -> List[UsageEntry]:
        entries = [entry for day in self.usage.values() for entry in day.values()]
        return sorted(entries, key=lambda e: (e.date, e.total_tokens), reverse=True)


def get_storage(request: Request) -> Storage:
    return request.app.state.storage
