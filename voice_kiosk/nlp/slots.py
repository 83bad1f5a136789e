# voice_kiosk/nlp/slots.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from voice_kiosk.menu.catalog import Temperature

# ─────────────────────────────────────────────────────────────
# 온도
# ─────────────────────────────────────────────────────────────
ICE_KEYWORDS = ["아이스", "차가운", "차갑게", "시원한", "시원하게", "얼음"]
HOT_KEYWORDS = ["핫", "따뜻한", "따뜻하게", "따듯한", "따듯하게", "뜨거운", "뜨겁게", "뜨뜻한"]

# 영문은 단어 경계로만 ('orange juice' 안의 'ice' 제외)
_ICE_EN = re.compile(r"\b(ice|iced)\b")
_HOT_EN = re.compile(r"\bhot\b")


def extract_temperature(text: str) -> Temperature | None:
    """ICE 키워드를 먼저 본다. 둘 다 있으면 ICE."""
    if not text:
        return None
    t = text.lower()
    if any(k in t for k in ICE_KEYWORDS) or _ICE_EN.search(t):
        return Temperature.ICE
    if any(k in t for k in HOT_KEYWORDS) or _HOT_EN.search(t):
        return Temperature.HOT
    return None


# ─────────────────────────────────────────────────────────────
# 수량
# ─────────────────────────────────────────────────────────────
_COUNTER = r"\s*(?:잔|개|컵)"

# 큰 수부터: '열'이 '한'보다, '다섯'이 '둘'보다 먼저 검사된다
NATIVE_NUMERALS: List[Tuple[int, str, str | None]] = [
    # (값, 관형사형, 단독형)
    (10, "열", "열"),
    (9, "아홉", "아홉"),
    (8, "여덟", "여덟"),
    (7, "일곱", "일곱"),
    (6, "여섯", "여섯"),
    (5, "다섯", "다섯"),
    (4, "네", "넷"),
    (3, "세", "셋"),
    (2, "두", "둘"),
    (1, "한", "하나"),
]

# (a) 관형사 + 단위, 그리고 '하나/둘/셋/넷' 같은 단독형
_NATIVE_PATTERNS = [
    (value, re.compile(f"{prefix}{_COUNTER}|{standalone}" if value <= 4 else f"{prefix}{_COUNTER}"))
    for value, prefix, standalone in NATIVE_NUMERALS
]
# (b) 아라비아 숫자 + 단위
_ARABIC = re.compile(r"(\d+)" + _COUNTER)
# (c) 단위 없는 단독 고유어 수사 ('하나'는 (a)에서 처리)
_STANDALONE = [
    (value, re.compile(standalone))
    for value, _, standalone in NATIVE_NUMERALS
    if value > 1
]

_ALL_QUANTITIES = re.compile(
    "|".join(
        [r"(?P<arabic>\d+)" + _COUNTER]
        + [f"(?P<n{value}>{prefix}{_COUNTER})" for value, prefix, _ in NATIVE_NUMERALS]
        + [f"(?P<s{value}>{standalone})" for value, _, standalone in NATIVE_NUMERALS]
    )
)

EACH_PATTERN = re.compile(r"각각|씩")


def extract_quantity(text: str, default: int | None = 1) -> int | None:
    """
    수량 추출. 우선순위:
      (a) 고유어 수사 10→1 + 단위 또는 단독형(하나/둘/셋/넷)
      (b) 숫자 + 단위 (2잔, 3개, 5컵)
      (c) 단위 없는 고유어 수사
    아무것도 없으면 default (수량 표현 유무를 구분하려면 default=None).
    """
    if not text:
        return default
    t = text.lower()

    for value, pat in _NATIVE_PATTERNS:
        if pat.search(t):
            return value

    m = _ARABIC.search(t)
    if m:
        return max(1, int(m.group(1)))

    for value, pat in _STANDALONE:
        if pat.search(t):
            return value

    return default


def extract_all_quantities(text: str) -> List[Tuple[int, int]]:
    """문장 안의 모든 수량을 (값, 시작 위치) 순서대로. '각각/씩' 위치 매칭용."""
    out: List[Tuple[int, int]] = []
    for m in _ALL_QUANTITIES.finditer(text or ""):
        group = m.lastgroup
        if group == "arabic":
            value = max(1, int(m.group("arabic")))
        else:
            value = int(group[1:])
        out.append((value, m.start()))
    return out


# ─────────────────────────────────────────────────────────────
# 여러 메뉴가 한 문장에 있을 때 메뉴별 온도/수량
# ─────────────────────────────────────────────────────────────
@dataclass
class ItemSlots:
    temperature: Temperature | None
    quantity: int


def scope_item_slots(text: str, spans: Sequence[Tuple[int, int]]) -> List[ItemSlots]:
    """
    spans: 메뉴별 (start, end) 위치, 시작 위치 순.

    - 메뉴가 하나면 문장 전체에서 온도/수량을 읽는다.
    - 여러 개면 온도는 앞 문맥(이전 메뉴 끝 ~ 이 메뉴 시작)에서만,
      수량은 뒤 문맥(이 메뉴 끝 ~ 다음 메뉴 시작)에서 먼저 찾는다.
      뒤 문맥에 수량 표현이 아예 없을 때만 앞 문맥의 2 이상 값을 쓴다.
    - '각각/씩'이 있으면 k번째 수량을 k번째 메뉴에 준다.
    """
    if not spans:
        return []
    if len(spans) == 1:
        return [ItemSlots(extract_temperature(text), extract_quantity(text))]

    each = bool(EACH_PATTERN.search(text))
    positional = [value for value, _ in extract_all_quantities(text)] if each else []

    out: List[ItemSlots] = []
    for i, (start, end) in enumerate(spans):
        prev_end = spans[i - 1][1] if i > 0 else 0
        next_start = spans[i + 1][0] if i + 1 < len(spans) else len(text)
        before = text[prev_end:start]
        after = text[end:next_start]

        temperature = extract_temperature(before)

        if each:
            if i < len(positional):
                quantity = positional[i]
            elif positional:
                quantity = positional[-1]
            else:
                quantity = 1
        else:
            quantity = extract_quantity(after, default=None)
            if quantity is None:
                from_before = extract_quantity(before, default=None)
                quantity = from_before if from_before and from_before > 1 else 1

        out.append(ItemSlots(temperature, quantity))
    return out
