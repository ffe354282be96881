"""Filesystem-backed chat storage."""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from .models import Chat

logger = logging.getLogger(__name__)


class ChatStore:
    """Store chats as JSON files, one per chat id."""

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._locks: Dict[str, threading.Lock] = {}
        self._global_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get(self, chat_id: str) -> Optional[Chat]:
        path = self._chat_path(chat_id)
        if path is None or not path.exists():
            return None
        data = json.loads(path.read_text(encoding="utf-8"))
        return Chat.model_validate(data)

    def save(self, chat: Chat) -> Chat:
        with self._lock_for_chat(chat.id):
            self._write_chat(chat)
        return chat

    def delete(self, chat_id: str) -> bool:
        path = self._chat_path(chat_id)
        if path is None:
            return False
        with self._lock_for_chat(chat_id):
            if not path.exists():
                return False
            path.unlink()
        with self._global_lock:
            self._locks.pop(chat_id, None)
        logger.info(f"Deleted chat {chat_id}")
        return True

    def list_for_organization(self, organization_id: str) -> List[Chat]:
        chats: List[Chat] = []
        for path in self.base_dir.glob("*.json"):
            chat = self.get(path.stem)
            if chat is not None and chat.organization_id == organization_id:
                chats.append(chat)
        return chats

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _chat_path(self, chat_id: str) -> Optional[Path]:
        # ids are uuid hex strings; anything path-like can't name a stored chat
        if not chat_id or not chat_id.isalnum():
            return None
        return self.base_dir / f"{chat_id}.json"

    def _write_chat(self, chat: Chat) -> None:
        payload = chat.model_dump(mode="json")
        path = self.base_dir / f"{chat.id}.json"
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(path)

    def _lock_for_chat(self, chat_id: str) -> threading.Lock:
        with self._global_lock:
            lock = self._locks.get(chat_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[chat_id] = lock
            return lock
