# voice_kiosk/intent/sources.py
"""
의도 분류 전략.

모든 소스는 classify(transcript, context) -> OrderIntent | None 을 제공한다.
None 은 "지금은 쓸 수 없음"(네트워크 오류, 타임아웃, 깨진 응답)이며
CompositeIntentSource 가 같은 발화를 대체 소스로 다시 해석한다.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

import httpx
from openai import OpenAIError

from voice_kiosk.config import (
    INTENT_CLIENT_TIMEOUT,
    INTENT_ENDPOINT_URL,
    MIN_INTENT_CONFIDENCE,
    OPENAI_API_KEY,
)
from voice_kiosk.intent.llm_classifier import IntentClassifierUnavailable, classify_with_llm
from voice_kiosk.intent.schema import (
    IntentContext,
    IntentType,
    ItemAction,
    OrderIntent,
    OrderItemIntent,
)
from voice_kiosk.menu.catalog import MenuCatalog, load_catalog
from voice_kiosk.nlp.correction import SpeechCorrector, default_corrector
from voice_kiosk.nlp.intent_parser import (
    is_change_request,
    is_clear_order_request,
    is_order_confirm_intent,
    is_remove_request,
)
from voice_kiosk.nlp.resolver import MatchedOrder, match_voice_to_menu
from voice_kiosk.nlp.slots import extract_quantity, extract_temperature

logger = logging.getLogger(__name__)


class IntentSource(Protocol):
    name: str

    async def classify(self, transcript: str, context: IntentContext) -> Optional[OrderIntent]:
        ...


# ─────────────────────────────────────────────────────────────
# 규칙 기반 (항상 사용 가능)
# ─────────────────────────────────────────────────────────────
def _item_from_match(order: MatchedOrder, action: ItemAction) -> OrderItemIntent:
    temperature = order.requested_temperature if order.needs_temperature_confirm else order.temperature
    return OrderItemIntent(
        menu_id=order.menu_item.id,
        menu_name=order.menu_item.name,
        temperature=temperature,
        quantity=order.quantity,
        action=action,
    )


class RuleBasedIntentSource:
    name = "rule"

    def __init__(self, catalog: MenuCatalog | None = None, corrector: SpeechCorrector | None = None):
        self.catalog = catalog if catalog is not None else load_catalog()
        self.corrector = corrector or default_corrector()

    def classify_sync(self, transcript: str, context: IntentContext | None = None) -> OrderIntent:
        context = context or IntentContext()
        corrected = self.corrector.correct(transcript or "")
        result = match_voice_to_menu(transcript, self.catalog, self.corrector)
        matched = result.matched

        if not matched:
            if is_clear_order_request(corrected):
                return OrderIntent(type=IntentType.CLEAR_ORDER, confidence=1.0)
            if is_order_confirm_intent(corrected):
                return OrderIntent(type=IntentType.CONFIRM_ORDER, confidence=1.0)
            return OrderIntent(type=IntentType.UNKNOWN, confidence=1.0, unmatched=result.unmatched)

        if is_remove_request(corrected) or is_clear_order_request(corrected):
            return OrderIntent(
                type=IntentType.REMOVE_ITEM,
                items=[_item_from_match(o, ItemAction.REMOVE) for o in matched],
                confidence=1.0,
            )

        # 이미 주문에 있는 메뉴를 '바꿔'라고 하면 변경, 아니면 추가
        ordered_names = {it.name for it in context.current_items}
        if is_change_request(corrected) and all(o.menu_item.name in ordered_names for o in matched):
            if extract_quantity(corrected, default=None) is not None:
                return OrderIntent(
                    type=IntentType.CHANGE_QUANTITY,
                    items=[_item_from_match(o, ItemAction.CHANGE_QUANTITY) for o in matched],
                    confidence=1.0,
                )
            if extract_temperature(corrected) is not None:
                return OrderIntent(
                    type=IntentType.CHANGE_TEMPERATURE,
                    items=[_item_from_match(o, ItemAction.CHANGE_TEMPERATURE) for o in matched],
                    confidence=1.0,
                )

        return OrderIntent(
            type=IntentType.ADD_ITEM,
            items=[_item_from_match(o, ItemAction.ADD) for o in matched],
            confidence=1.0,
            unmatched=result.unmatched,
        )

    async def classify(self, transcript: str, context: IntentContext) -> Optional[OrderIntent]:
        return self.classify_sync(transcript, context)


# ─────────────────────────────────────────────────────────────
# 원격 의도 분류 엔드포인트
# ─────────────────────────────────────────────────────────────
class CloudIntentSource:
    name = "cloud"

    def __init__(self, endpoint_url: str,
                 timeout: float = INTENT_CLIENT_TIMEOUT,
                 client: httpx.AsyncClient | None = None):
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self._client = client

    async def _post(self, payload: dict) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self.endpoint_url, json=payload, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.endpoint_url, json=payload)

    async def classify(self, transcript: str, context: IntentContext) -> Optional[OrderIntent]:
        payload = {"transcript": transcript, **context.model_dump(by_alias=True, mode="json")}
        try:
            resp = await asyncio.wait_for(self._post(payload), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning("[Intent] 원격 분류 타임아웃 (%.1fs)", self.timeout)
            return None
        except httpx.HTTPError as e:
            logger.warning("[Intent] 원격 분류 요청 실패: %s", e)
            return None

        if not resp.is_success:
            logger.warning("[Intent] 원격 분류 오류 응답 %s: %s", resp.status_code, resp.text[:200])
            return None
        try:
            data = resp.json()
        except ValueError:
            logger.warning("[Intent] 원격 분류 응답이 JSON이 아님")
            return None
        if isinstance(data, dict) and data.get("error"):
            logger.warning("[Intent] 원격 분류 오류: %s", data.get("error"))
            return None
        return OrderIntent.from_payload(data)


# ─────────────────────────────────────────────────────────────
# 같은 프로세스에서 OpenAI 직접 호출
# ─────────────────────────────────────────────────────────────
class OpenAIIntentSource:
    name = "openai"

    def __init__(self, catalog: MenuCatalog | None = None, timeout: float = INTENT_CLIENT_TIMEOUT):
        self.catalog = catalog
        self.timeout = timeout

    async def classify(self, transcript: str, context: IntentContext) -> Optional[OrderIntent]:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(
                    classify_with_llm,
                    transcript,
                    context.current_items,
                    context.pending_clarification,
                    self.catalog,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("[Intent] OpenAI 분류 타임아웃 (%.1fs)", self.timeout)
        except IntentClassifierUnavailable as e:
            logger.warning("[Intent] OpenAI 분류 사용 불가: %s", e)
        except OpenAIError as e:
            logger.warning("[Intent] OpenAI 분류 오류: %s", e)
        return None


# ─────────────────────────────────────────────────────────────
# 1순위 + 대체 소스 조합
# ─────────────────────────────────────────────────────────────
class CompositeIntentSource:
    def __init__(self, primary: IntentSource, fallback: IntentSource,
                 min_confidence: float = MIN_INTENT_CONFIDENCE):
        self.primary = primary
        self.fallback = fallback
        self.min_confidence = min_confidence
        self.name = f"{primary.name}+{fallback.name}"
        self.last_source: str | None = None

    async def classify(self, transcript: str, context: IntentContext) -> Optional[OrderIntent]:
        try:
            intent = await self.primary.classify(transcript, context)
        except Exception as e:
            logger.warning("[Intent] %s 분류 중 오류: %s", self.primary.name, e)
            intent = None

        if intent is None:
            logger.warning("[Intent] %s 사용 불가 → %s 로 해석", self.primary.name, self.fallback.name)
        elif intent.confidence < self.min_confidence:
            logger.warning(
                "[Intent] %s 신뢰도 낮음 (%.2f) → %s 로 해석",
                self.primary.name, intent.confidence, self.fallback.name,
            )
        else:
            # 메뉴가 딸린 확정은 사실상 추가 주문
            if intent.type is IntentType.CONFIRM_ORDER and intent.items:
                intent = intent.model_copy(update={"type": IntentType.ADD_ITEM})
            self.last_source = self.primary.name
            return intent

        self.last_source = self.fallback.name
        return await self.fallback.classify(transcript, context)


def build_primary_source(catalog: MenuCatalog | None = None,
                         endpoint_url: str | None = INTENT_ENDPOINT_URL,
                         api_key: str | None = OPENAI_API_KEY,
                         timeout: float = INTENT_CLIENT_TIMEOUT) -> IntentSource | None:
    """설정에 따라 1순위 분류 소스 결정. 아무것도 없으면 규칙 기반만 쓴다."""
    if endpoint_url:
        return CloudIntentSource(endpoint_url, timeout)
    if api_key:
        return OpenAIIntentSource(catalog, timeout)
    return None
