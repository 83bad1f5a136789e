# voice_kiosk/stt/echo_filter.py
"""
키오스크가 방금 말한 TTS 문장이 마이크로 다시 들어와 STT 결과로
잡히는 경우(에코)를 걸러낸다.

판단 기준 (정규화: 소문자, 공백·문장부호 제거):
  1) STT 문장이 TTS 문장에 그대로 포함되고, 길이가 ECHO_MIN_LENGTH 이상이며,
     TTS 길이의 ECHO_SUBSTRING_RATIO 이상일 때
  2) 또는 STT가 ECHO_MIN_LENGTH 이상이고, 최장 공통 부분 문자열이
     STT 길이의 ECHO_SIMILARITY_THRESHOLD 이상일 때

TTS 재생 중이거나 재생이 끝난 뒤 ECHO_WINDOW_MS 이내일 때만 에코로 본다.
애매하면 에코가 아닌 쪽으로 판단한다.
"""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Callable

from voice_kiosk.config import (
    ECHO_MIN_LENGTH,
    ECHO_SIMILARITY_THRESHOLD,
    ECHO_SUBSTRING_RATIO,
    ECHO_WINDOW_MS,
)

logger = logging.getLogger(__name__)

_STRIP = re.compile(r"[.,!?~\s]")


def normalize(text: str | None) -> str:
    return _STRIP.sub("", (text or "").lower())


@dataclass
class EchoCheckResult:
    is_echo: bool
    reason: str | None = None
    confidence: float = 0.0


class EchoFilter:
    def __init__(self,
                 clock: Callable[[], float] = time.monotonic,
                 window_ms: int = ECHO_WINDOW_MS,
                 min_length: int = ECHO_MIN_LENGTH,
                 substring_ratio: float = ECHO_SUBSTRING_RATIO,
                 similarity_threshold: float = ECHO_SIMILARITY_THRESHOLD):
        self._clock = clock
        self.window_ms = window_ms
        self.min_length = min_length
        self.substring_ratio = substring_ratio
        self.similarity_threshold = similarity_threshold
        self.reset()

    # ── TTS 수명주기 ───────────────────────────────────────────
    def on_tts_start(self, text: str) -> None:
        self.current_text = text
        self.started_at = self._clock()
        self.ended_at = None

    def on_tts_end(self) -> None:
        if self.started_at is not None:
            self.ended_at = self._clock()

    def reset(self) -> None:
        self.current_text: str = ""
        self.started_at: float | None = None
        self.ended_at: float | None = None

    def is_active(self) -> bool:
        """TTS 재생 중이거나 종료 후 window_ms 이내. 창이 지나면 상태를 비운다."""
        if self.started_at is None:
            return False
        if self.ended_at is None:
            return True
        elapsed_ms = (self._clock() - self.ended_at) * 1000
        if elapsed_ms < self.window_ms:
            return True
        self.reset()
        return False

    # ── 판정 ──────────────────────────────────────────────────
    def check(self, transcript: str | None) -> EchoCheckResult:
        stt = normalize(transcript)
        if not stt:
            return EchoCheckResult(True, "empty", 1.0)
        if not self.is_active():
            return EchoCheckResult(False)

        tts = normalize(self.current_text)
        if not tts or len(stt) < self.min_length:
            return EchoCheckResult(False)

        if stt in tts:
            ratio = len(stt) / len(tts)
            if ratio >= self.substring_ratio:
                logger.info("[Echo] 부분 문자열 에코 제거: %s", transcript)
                return EchoCheckResult(True, "substring", min(1.0, ratio))

        match = SequenceMatcher(None, stt, tts, autojunk=False).find_longest_match(0, len(stt), 0, len(tts))
        if match.size >= self.min_length:
            similarity = match.size / len(stt)
            if similarity >= self.similarity_threshold:
                logger.info("[Echo] 유사 문장 에코 제거 (%.2f): %s", similarity, transcript)
                return EchoCheckResult(True, "similarity", similarity)

        return EchoCheckResult(False)

    def is_echo(self, transcript: str | None) -> bool:
        return self.check(transcript).is_echo
