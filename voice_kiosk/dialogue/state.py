# voice_kiosk/dialogue/state.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List

from voice_kiosk.nlp.resolver import MatchedOrder


class DialogueMode(Enum):
    IDLE = auto()
    AWAITING_TEMPERATURE = auto()


@dataclass
class DialogueState:
    # 온도 확인 대기열. 항상 맨 앞부터 묻는다
    pending_conflicts: List[MatchedOrder] = field(default_factory=list)
    # 대기열이 빌 때 한 번에 안내할 추가 내역
    pending_added_items: List[str] = field(default_factory=list)
    interim_message_id: str | None = None

    @property
    def mode(self) -> DialogueMode:
        if self.pending_conflicts:
            return DialogueMode.AWAITING_TEMPERATURE
        return DialogueMode.IDLE

    @property
    def head(self) -> MatchedOrder | None:
        return self.pending_conflicts[0] if self.pending_conflicts else None

    def clear(self) -> None:
        self.pending_conflicts = []
        self.pending_added_items = []
        self.interim_message_id = None
