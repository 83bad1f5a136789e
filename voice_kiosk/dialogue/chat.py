# voice_kiosk/dialogue/chat.py
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List


@dataclass
class ChatMessage:
    id: str
    role: str              # user / assistant
    content: str
    is_interim: bool = False
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "is_interim": self.is_interim,
            "timestamp": self.timestamp,
        }


ChatListener = Callable[[str, Dict[str, Any]], None]


class ChatLog:
    """
    화면에 보이는 대화 기록.
    리스너는 (event, payload) 로 호출된다:
      message_added / message_updated / message_removed / typing / cleared
    """

    def __init__(self):
        self.messages: List[ChatMessage] = []
        self.is_typing = False
        self._listeners: List[ChatListener] = []

    def subscribe(self, listener: ChatListener) -> None:
        self._listeners.append(listener)

    def _emit(self, event: str, payload: Dict[str, Any]) -> None:
        for listener in self._listeners:
            listener(event, payload)

    def _add(self, role: str, content: str, is_interim: bool = False) -> str:
        msg = ChatMessage(id=uuid.uuid4().hex, role=role, content=content, is_interim=is_interim)
        self.messages.append(msg)
        self._emit("message_added", msg.to_dict())
        return msg.id

    def add_user(self, content: str, is_interim: bool = False) -> str:
        return self._add("user", content, is_interim)

    def add_assistant(self, content: str) -> str:
        return self._add("assistant", content)

    def update_message(self, message_id: str, content: str) -> bool:
        for msg in self.messages:
            if msg.id == message_id:
                msg.content = content
                self._emit("message_updated", msg.to_dict())
                return True
        return False

    def remove_message(self, message_id: str) -> None:
        before = len(self.messages)
        self.messages = [m for m in self.messages if m.id != message_id]
        if len(self.messages) != before:
            self._emit("message_removed", {"id": message_id})

    def set_typing(self, typing: bool) -> None:
        self.is_typing = typing
        self._emit("typing", {"is_typing": typing})

    def clear(self) -> None:
        self.messages = []
        self._emit("cleared", {})

    def to_list(self) -> List[Dict[str, Any]]:
        return [m.to_dict() for m in self.messages]
