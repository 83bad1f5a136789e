# voice_kiosk/dialogue/prompts.py
from __future__ import annotations

from typing import Iterable

from voice_kiosk.menu.catalog import MenuItem, Temperature
from voice_kiosk.nlp.resolver import ConflictReason, MatchedOrder

GREETING = "어서오세요! 주문하실 메뉴를 말씀해주세요."
ASK_MENU = "주문하실 메뉴를 말씀해주세요."
ASK_MORE = "더 필요하신 게 있으신가요?"
ASK_OTHER_MENU = "다른 메뉴를 주문하시겠어요?"
ORDER_ONLY = "저는 주문과 관련된 대화만 가능합니다. 주문과 관련된 말씀 부탁드립니다."
ORDER_COMPLETED = "주문이 완료되었습니다! 잠시만 기다려주세요."
NO_ITEMS_YET = "아직 주문 내역이 없어요. 먼저 메뉴를 선택해주세요."
ASK_TEMPERATURE_HINT = "따뜻하게 또는 차갑게라고 말씀해주세요."
CHECK_MENU_BOARD = "메뉴판을 확인해주세요."


# ─────────────────────────────────────────────────────────────
# 조사
# ─────────────────────────────────────────────────────────────
def _final_consonant(word: str) -> int | None:
    """마지막 글자의 받침 인덱스 (0 = 받침 없음). 한글이 아니면 None."""
    if not word:
        return None
    code = ord(word[-1]) - 0xAC00
    if not 0 <= code <= 11171:
        return None
    return code % 28


def topic(word: str) -> str:
    """은/는"""
    jong = _final_consonant(word)
    return f"{word}는" if jong == 0 else f"{word}은"


def subject(word: str) -> str:
    """이/가"""
    jong = _final_consonant(word)
    return f"{word}가" if jong == 0 else f"{word}이"


def direction(word: str) -> str:
    """으로/로 (받침 없거나 ㄹ 받침이면 '로')"""
    jong = _final_consonant(word)
    return f"{word}로" if jong in (0, 8) else f"{word}으로"


# ─────────────────────────────────────────────────────────────
# 문장 조립
# ─────────────────────────────────────────────────────────────
def item_label(item: MenuItem, temperature: Temperature | None, quantity: int) -> str:
    """'아이스 아메리카노 2잔', '크루아상 1개'"""
    prefix = f"{temperature.adjective} " if temperature else ""
    return f"{prefix}{item.name} {quantity}{item.counter}"


def added(labels: Iterable[str]) -> str:
    return f"{', '.join(labels)} 추가했어요."


def added_summary(labels: Iterable[str]) -> str:
    labels = list(labels)
    if not labels:
        return ASK_MORE
    return f"{added(labels)} {ASK_MORE}"


def not_found(fragments: Iterable[str]) -> str:
    """메뉴 이름 하나면 조사를 붙이고, 문장 조각이면 일반 안내."""
    fragments = [f.strip() for f in fragments if f and f.strip()]
    if len(fragments) == 1 and " " not in fragments[0]:
        return f"{topic(fragments[0])} 메뉴에 없어요. {CHECK_MENU_BOARD}"
    return f"말씀하신 메뉴를 찾지 못했어요. {CHECK_MENU_BOARD}"


def temperature_question(order: MatchedOrder) -> str:
    name = order.menu_item.name
    if order.reason is ConflictReason.UNAVAILABLE:
        req = order.requested_temperature.label
        avail = order.available_temperature.label
        return f"{topic(name)} {subject(req)} 없어요. {direction(avail)} 드릴까요?"
    qty = f" {order.quantity}{order.menu_item.counter}" if order.quantity > 1 else ""
    return f"{name}{qty} 온도를 선택해주세요. {ASK_TEMPERATURE_HINT}"


def unavailable_temperature(item: MenuItem, requested: Temperature) -> str:
    avail = "/".join(t.label for t in item.temperatures)
    only = item.temperatures[0].label
    return f"{topic(item.name)} {subject(requested.label)} 없어요. {avail}만 가능해요. {direction(only)} 드릴까요?"


def confirm_blocked(order: MatchedOrder) -> str:
    return f"먼저 {order.menu_item.name}의 온도를 선택해주세요. {ASK_TEMPERATURE_HINT}"


def still_waiting(order: MatchedOrder) -> str:
    return f"알겠어요. 그 전에 {temperature_question(order)}"


def removed_pending(order: MatchedOrder) -> str:
    return f"{topic(order.menu_item.name)} 주문에서 뺐어요."
