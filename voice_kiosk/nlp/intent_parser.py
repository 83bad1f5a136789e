# voice_kiosk/nlp/intent_parser.py
"""짧은 대답(네/아니요/온도)과 주문 확정·취소·변경 표현 감지."""
from __future__ import annotations

import re

from voice_kiosk.menu.catalog import Temperature
from voice_kiosk.nlp.slots import extract_temperature

# 한 글자 대답은 앞뒤가 한글이 아닐 때만. '네 잔'은 수량이므로 제외
_SHORT_YES = re.compile(r"(?<![가-힣])(?:네|넵|예|응|엉)(?![가-힣])(?!\s*(?:잔|개|컵))")
AFFIRMATION_KEYWORDS = [
    "좋아", "그래", "그걸로", "그렇게", "괜찮아", "맞아", "오케이",
]
REJECTION_KEYWORDS = [
    "아니", "아뇨", "싫어", "다른 거", "다른거", "다른 메뉴", "취소", "안 할래", "안할래",
    "됐어", "빼", "말래",
]

# '다 됐어' 계열은 앞 글자가 한글이 아니고 뒤에 단위가 오지 않을 때만
ORDER_CONFIRM_PATTERNS = [
    re.compile(p)
    for p in [
        r"이대로\s*(?:주문|해|할게|결제)",
        r"이걸로\s*(?:해|주문|할게)",
        r"주문\s*(?:할게|할께|해\s*줘|해\s*주세요|하겠습니다|완료|확정)",
        r"결제\s*(?:할게|할께|해\s*줘|해\s*주세요|하겠습니다)",
        r"계산\s*(?:할게|할께|해\s*줘|해\s*주세요)",
        r"끝\s*이?야",
        r"(?<![가-힣])다\s*(?:됐|했)(?:어|어요|습니다)?(?!\s*(?:잔|개|컵))",
        r"그게\s*(?:다|전부)",
        r"더\s*없어",
        r"^\s*(?:확정|완료)\s*$",
    ]
]

CLEAR_ORDER_PATTERN = re.compile(
    r"(?:전부|전체|다|모두|주문)\s*(?:취소|지워|비워|삭제)|처음부터\s*다시|싹\s*다\s*빼"
)
REMOVE_PATTERN = re.compile(r"빼\s*(?:줘|주세요|줄래|고)|빼요|삭제|취소\s*(?:해|할게)|지워")
CHANGE_PATTERN = re.compile(r"바꿔|바꾸|변경|수정")

ORDER_CUE_PATTERN = re.compile(
    r"주세요|줘|주문|시킬|시켜|드릴|먹을|마실|"
    r"\d+\s*(?:잔|개|컵)|(?:한|두|세|네|다섯|여섯|일곱|여덟|아홉|열)\s*(?:잔|개|컵)|하나"
)


def _norm(text: str) -> str:
    return (text or "").strip().lower()


def is_confirmation(text: str) -> bool:
    """네/좋아요 같은 긍정 대답."""
    t = _norm(text)
    if not t:
        return False
    if _SHORT_YES.search(t):
        return True
    return any(k in t for k in AFFIRMATION_KEYWORDS)


def is_rejection(text: str) -> bool:
    t = _norm(text)
    if not t:
        return False
    return any(k in t for k in REJECTION_KEYWORDS)


def temperature_response(text: str) -> Temperature | None:
    """온도 질문에 대한 대답 ('따뜻하게', '아이스로')."""
    return extract_temperature(text)


def is_order_confirm_intent(text: str) -> bool:
    """'이대로 주문할게', '다 됐어' 같은 주문 확정 표현."""
    t = _norm(text)
    if not t:
        return False
    return any(p.search(t) for p in ORDER_CONFIRM_PATTERNS)


def is_clear_order_request(text: str) -> bool:
    return bool(CLEAR_ORDER_PATTERN.search(_norm(text)))


def is_remove_request(text: str) -> bool:
    return bool(REMOVE_PATTERN.search(_norm(text)))


def is_change_request(text: str) -> bool:
    return bool(CHANGE_PATTERN.search(_norm(text)))


def has_order_cue(text: str) -> bool:
    """메뉴는 못 찾았어도 주문하려던 말인지 ('프라푸치노 한 잔 주세요')."""
    return bool(ORDER_CUE_PATTERN.search(_norm(text)))


def is_yes_no(text: str) -> bool:
    return is_confirmation(text) or is_rejection(text)
