# voice_kiosk/intent/llm_classifier.py
from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import List

from openai import OpenAI

from voice_kiosk.config import (
    INTENT_SERVER_TIMEOUT,
    OPENAI_API_KEY,
    OPENAI_INTENT_MODEL,
    OPENAI_PROJECT,
)
from voice_kiosk.intent.schema import CurrentItem, OrderIntent, PendingClarification
from voice_kiosk.menu.catalog import MenuCatalog, load_catalog

logger = logging.getLogger(__name__)


class IntentClassifierUnavailable(RuntimeError):
    """API 키가 없어 LLM 분류를 쓸 수 없음."""


@lru_cache(maxsize=1)
def _make_client() -> OpenAI:
    if not OPENAI_API_KEY:
        raise IntentClassifierUnavailable("OPENAI_API_KEY missing")
    if OPENAI_PROJECT:
        return OpenAI(
            api_key=OPENAI_API_KEY,
            project=OPENAI_PROJECT,
            default_headers={"OpenAI-Project": OPENAI_PROJECT},
            timeout=INTENT_SERVER_TIMEOUT,
        )
    return OpenAI(api_key=OPENAI_API_KEY, timeout=INTENT_SERVER_TIMEOUT)


def _menu_lines(catalog: MenuCatalog) -> str:
    lines = []
    for it in catalog.available_items:
        temps = "/".join(t.value for t in it.temperatures) or "온도 없음"
        lines.append(f"- {it.id}: {it.name} ({it.name_en}) - {it.price}원 [{temps}]")
    return "\n".join(lines)


def build_system_prompt(catalog: MenuCatalog | None = None) -> str:
    catalog = catalog if catalog is not None else load_catalog()
    return f"""
너는 카페 음성 키오스크의 주문 의도 분류기야.
사용자 발화를 분석해서 아래 JSON 형식으로만 답해.

[메뉴 목록]
{_menu_lines(catalog)}

[의도 종류]
- ADD_ITEM: 메뉴 추가 ("아메리카노 주세요", "라떼 두 잔")
- REMOVE_ITEM: 메뉴 삭제 ("아메리카노 빼줘")
- CHANGE_QUANTITY: 수량 변경 ("라떼 세 잔으로 바꿔줘")
- CHANGE_TEMPERATURE: 온도 변경 ("아메리카노 아이스로 바꿔줘")
- MULTI_ACTION: 여러 동작이 섞인 경우 (items마다 action 지정)
- CLEAR_ORDER: 주문 전체 취소 ("다 취소해줘", "처음부터 다시")
- CONFIRM_ORDER: 주문 확정 ("이대로 주문할게", "결제할게", "다 됐어")
- ASK_CLARIFICATION: 온도 등 추가 확인이 필요한 경우
- UNKNOWN: 주문과 관계없는 말

[온도 규칙]
- 따뜻한/뜨거운/핫 → HOT, 아이스/차가운/시원한 → ICE
- 온도를 말하지 않았으면 null (임의로 정하지 마)
- 메뉴에 없는 온도를 요청해도 사용자가 말한 온도를 그대로 넣어

[수량 규칙]
- 한/하나=1, 두/둘=2, 세/셋=3, 네/넷=4, 다섯=5 ... 열=10
- 수량을 말하지 않았으면 1
- "각각"이면 말한 순서대로 메뉴와 수량을 짝지어

[발음 보정]
- 비슷하게 들리는 말은 가장 가까운 메뉴로 매칭해 (예: 아메리카나→americano, 콜드보러→cold-brew, 라떼→cafe-latte)
- 메뉴 목록에 없는 메뉴는 items에 넣지 마

[응답 형식]
{{"type": "ADD_ITEM", "items": [{{"menuId": "americano", "menuName": "아메리카노", "temperature": "ICE", "quantity": 2, "action": "ADD"}}], "message": "안내 문장", "confidence": 0.0~1.0}}
""".strip()


FEW_SHOTS = """
예시 1)
사용자: 아이스 아메리카노 두 잔 주세요
응답: {"type": "ADD_ITEM", "items": [{"menuId": "americano", "menuName": "아메리카노", "temperature": "ICE", "quantity": 2, "action": "ADD"}], "message": "아이스 아메리카노 2잔 추가할게요.", "confidence": 0.95}

예시 2)
사용자: 라떼 빼줘
응답: {"type": "REMOVE_ITEM", "items": [{"menuId": "cafe-latte", "menuName": "카페라떼", "temperature": null, "quantity": 1, "action": "REMOVE"}], "message": "카페라떼를 뺄게요.", "confidence": 0.9}

예시 3)
사용자: 이대로 결제할게요
응답: {"type": "CONFIRM_ORDER", "items": [], "message": "주문을 확정할게요.", "confidence": 0.95}

예시 4)
사용자: 오늘 날씨 어때요
응답: {"type": "UNKNOWN", "items": [], "message": null, "confidence": 0.9}
"""


def build_context_message(current_items: List[CurrentItem],
                          pending: PendingClarification | None) -> str:
    if current_items:
        lines = []
        for it in current_items:
            temp = f" {it.temperature.value}" if it.temperature else ""
            lines.append(f"- {it.name}{temp} {it.quantity}잔")
        order_text = "\n".join(lines)
    else:
        order_text = "(비어 있음)"
    text = f"[현재 주문]\n{order_text}"
    if pending:
        text += f"\n\n[확인 대기 중]\n{pending.menu_name}: {pending.question}"
    return text


def parse_llm_response(raw: str | None) -> OrderIntent:
    """코드 블록을 벗기고 JSON 파싱. 실패하면 UNKNOWN."""
    if not raw:
        return OrderIntent.unknown()
    raw = raw.strip()
    if raw.startswith("```"):
        lines = raw.split("\n")
        raw = "\n".join(lines[1:-1]) if len(lines) > 2 else raw
        raw = raw.strip().rstrip("```").strip()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("[classify_with_llm] JSON 파싱 실패: %s", e)
        return OrderIntent.unknown()
    return OrderIntent.from_payload(data)


def classify_with_llm(transcript: str,
                      current_items: List[CurrentItem] | None = None,
                      pending: PendingClarification | None = None,
                      catalog: MenuCatalog | None = None) -> OrderIntent:
    """
    OpenAI로 발화 의도 분류.
    키가 없으면 IntentClassifierUnavailable, 네트워크 오류는 그대로 올린다.
    """
    client = _make_client()
    completion = client.chat.completions.create(
        model=OPENAI_INTENT_MODEL,
        temperature=0.1,
        max_tokens=400,
        messages=[
            {"role": "system", "content": build_system_prompt(catalog)},
            {"role": "user", "content": FEW_SHOTS},
            {"role": "user", "content": build_context_message(current_items or [], pending)},
            {"role": "user", "content": f"사용자: {transcript}\n응답:"},
        ],
    )
    raw = completion.choices[0].message.content
    logger.debug("[classify_with_llm] LLM raw 응답: %s", raw)
    return parse_llm_response(raw)
