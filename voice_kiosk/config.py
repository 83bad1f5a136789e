# voice_kiosk/config.py
from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

# ─────────────────────────────────────────────────────────────
# 외부 서비스
# ─────────────────────────────────────────────────────────────
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_PROJECT = os.getenv("OPENAI_PROJECT")
OPENAI_INTENT_MODEL = os.getenv("OPENAI_INTENT_MODEL", "gpt-4o-mini")

# 설정되어 있으면 원격 의도 분류 엔드포인트를 1순위로 사용
INTENT_ENDPOINT_URL = os.getenv("INTENT_ENDPOINT_URL")

# 클라이언트 타임아웃은 서버 타임아웃과 독립적으로 적용
INTENT_CLIENT_TIMEOUT = float(os.getenv("INTENT_CLIENT_TIMEOUT", "6.0"))
INTENT_SERVER_TIMEOUT = float(os.getenv("INTENT_SERVER_TIMEOUT", "5.0"))

MENU_CONFIG_PATH = os.getenv("MENU_CONFIG_PATH")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")

# ─────────────────────────────────────────────────────────────
# 임계값
# ─────────────────────────────────────────────────────────────
# 이 값보다 낮은 신뢰도의 분류 결과는 규칙 기반 해석으로 대체
MIN_INTENT_CONFIDENCE = 0.5

# TTS 종료 후에도 이 시간(ms) 동안은 에코로 판단할 수 있음
ECHO_WINDOW_MS = 800
# 에코 판정 대상 최소 글자 수 (정규화 후)
ECHO_MIN_LENGTH = 6
# 부분 문자열 판정: STT 길이 / TTS 길이 최소 비율
ECHO_SUBSTRING_RATIO = 0.3
# 최장 공통 부분 문자열 / STT 길이 최소 비율
ECHO_SIMILARITY_THRESHOLD = 0.7

# 퍼지 매칭 허용 편집 거리 = max(FUZZY_MIN_DISTANCE, floor(FUZZY_LENGTH_RATIO * 메뉴명 길이))
FUZZY_MIN_DISTANCE = 2
FUZZY_LENGTH_RATIO = 0.3

SESSION_TIMEOUT_SECONDS = float(os.getenv("SESSION_TIMEOUT_SECONDS", "45"))


@dataclass(frozen=True)
class EngineConfig:
    """엔진 인스턴스별 조정 값. 세션/테스트마다 따로 줄 수 있다."""
    min_intent_confidence: float = MIN_INTENT_CONFIDENCE
    echo_window_ms: int = ECHO_WINDOW_MS
    echo_min_length: int = ECHO_MIN_LENGTH
    echo_substring_ratio: float = ECHO_SUBSTRING_RATIO
    echo_similarity_threshold: float = ECHO_SIMILARITY_THRESHOLD
    fuzzy_min_distance: int = FUZZY_MIN_DISTANCE
    fuzzy_length_ratio: float = FUZZY_LENGTH_RATIO
    session_timeout_seconds: float = SESSION_TIMEOUT_SECONDS
    intent_timeout: float = INTENT_CLIENT_TIMEOUT
