# voice_kiosk/dialogue/manager.py
"""
음성 주문 대화 관리.

STT 결과(handle_speech_result)와 화면 온도 버튼(handle_temperature_select)만
입력으로 받는다. 상태는 둘 뿐이다:
  IDLE                 확인할 것이 없음
  AWAITING_TEMPERATURE 온도 확인 대기열이 비어 있지 않음 (맨 앞부터 묻는다)
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Protocol

from voice_kiosk.config import EngineConfig
from voice_kiosk.dialogue import prompts as P
from voice_kiosk.dialogue.actions import IntentExecutor, OrderActions
from voice_kiosk.dialogue.chat import ChatLog
from voice_kiosk.dialogue.state import DialogueMode, DialogueState
from voice_kiosk.intent.schema import CurrentItem, IntentContext, PendingClarification
from voice_kiosk.intent.sources import CompositeIntentSource, IntentSource, RuleBasedIntentSource
from voice_kiosk.menu.catalog import MenuCatalog, Temperature, load_catalog
from voice_kiosk.nlp.correction import SpeechCorrector, default_corrector
from voice_kiosk.nlp.intent_parser import (
    has_order_cue,
    is_clear_order_request,
    is_confirmation,
    is_order_confirm_intent,
    is_rejection,
    is_yes_no,
    temperature_response,
)
from voice_kiosk.nlp.matcher import LocatedItem, locate_menu_items, split_into_segments
from voice_kiosk.nlp.resolver import ConflictReason
from voice_kiosk.order.store import OrderItem, OrderStore
from voice_kiosk.stt.echo_filter import EchoFilter

logger = logging.getLogger(__name__)


class Speaker(Protocol):
    def speak(self, text: str) -> None:
        ...


class VoiceOrderEngine:
    def __init__(self,
                 catalog: MenuCatalog | None = None,
                 store: OrderStore | None = None,
                 speaker: Speaker | None = None,
                 primary_source: IntentSource | None = None,
                 echo_filter: EchoFilter | None = None,
                 chat: ChatLog | None = None,
                 clock: Callable[[], float] = time.monotonic,
                 config: EngineConfig | None = None,
                 on_order_confirmed: Callable[[List[OrderItem]], Any] | None = None,
                 corrector: SpeechCorrector | None = None):
        self.config = config or EngineConfig()
        self.catalog = catalog if catalog is not None else load_catalog()
        self.store = store if store is not None else OrderStore()
        self.chat = chat if chat is not None else ChatLog()
        self.speaker = speaker
        self.on_order_confirmed = on_order_confirmed
        self._clock = clock
        self.echo_filter = echo_filter or EchoFilter(
            clock=clock,
            window_ms=self.config.echo_window_ms,
            min_length=self.config.echo_min_length,
            substring_ratio=self.config.echo_substring_ratio,
            similarity_threshold=self.config.echo_similarity_threshold,
        )
        self.corrector = corrector or default_corrector()

        self.rule_source = RuleBasedIntentSource(self.catalog, self.corrector)
        if primary_source is not None:
            self.intent_source: IntentSource = CompositeIntentSource(
                primary_source, self.rule_source, self.config.min_intent_confidence
            )
        else:
            self.intent_source = self.rule_source

        self.actions = OrderActions(self.store, self.catalog)
        self.executor = IntentExecutor(self.actions)
        self.state = DialogueState()
        self.last_response: str | None = None
        self.last_activity = clock()
        self._in_flight = False

    # ── 조회 ──────────────────────────────────────────────────
    @property
    def mode(self) -> DialogueMode:
        return self.state.mode

    @property
    def is_busy(self) -> bool:
        return self._in_flight

    def snapshot(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.name,
            "pending": [
                {
                    "menu_id": o.menu_item.id,
                    "name": o.menu_item.name,
                    "quantity": o.quantity,
                    "reason": o.reason.value,
                    "requested_temperature": o.requested_temperature.value if o.requested_temperature else None,
                    "available_temperature": o.available_temperature.value if o.available_temperature else None,
                }
                for o in self.state.pending_conflicts
            ],
            "order": self.store.snapshot(),
            "chat": self.chat.to_list(),
            "last_response": self.last_response,
        }

    # ── 외부 진입점 ───────────────────────────────────────────
    def greet(self) -> str:
        self._touch()
        self._respond(P.GREETING)
        return P.GREETING

    async def handle_speech_result(self, transcript: str, is_final: bool) -> Optional[str]:
        """STT 결과 하나 처리. 말할 응답을 돌려준다 (무시했으면 None)."""
        echo = self.echo_filter.check(transcript)
        if echo.is_echo:
            if is_final:
                self._clear_interim()
            return None

        self._touch()
        if not is_final:
            self._show_interim(transcript)
            return None

        if self._in_flight:
            logger.warning("[VoiceOrder] 이전 발화 처리 중이라 무시: %s", transcript)
            return None

        self._clear_interim()
        self.chat.add_user(transcript.strip())
        self.chat.set_typing(True)
        self._in_flight = True
        try:
            response = await self._process_final(transcript)
        finally:
            self._in_flight = False
            self.chat.set_typing(False)

        if response:
            self._respond(response)
        return response

    def handle_temperature_select(self, temperature: Temperature | str) -> Optional[str]:
        """화면 온도 버튼. 음성 '따뜻하게/차갑게' 대답과 같은 처리."""
        temp = Temperature.parse(temperature)
        self._touch()
        if temp is None or self._in_flight or not self.state.pending_conflicts:
            return None
        response = self._answer_temperature(temp)
        self._respond(response)
        return response

    def on_tts_end(self) -> None:
        self.echo_filter.on_tts_end()

    def reset(self, clear_order: bool = True) -> None:
        self.state.clear()
        self.echo_filter.reset()
        self.chat.clear()
        if clear_order:
            self.store.clear_order()
        self.last_response = None
        self._touch()

    def expire_if_idle(self) -> bool:
        """마지막 발화 후 session_timeout_seconds 가 지났으면 초기화."""
        idle = self._clock() - self.last_activity
        if idle < self.config.session_timeout_seconds:
            return False
        if not (self.state.pending_conflicts or self.store.items or self.chat.messages):
            return False
        logger.info("[VoiceOrder] %.0f초 동안 입력 없음 → 세션 초기화", idle)
        self.reset()
        return True

    # ── 내부 처리 ─────────────────────────────────────────────
    def _touch(self) -> None:
        self.last_activity = self._clock()

    def _respond(self, text: str) -> None:
        self.last_response = text
        logger.info("[VoiceOrder] 응답: %s", text)
        self.chat.add_assistant(text)
        self.echo_filter.on_tts_start(text)
        if self.speaker is not None:
            self.speaker.speak(text)

    def _show_interim(self, transcript: str) -> None:
        text = (transcript or "").strip()
        if not text:
            return
        mid = self.state.interim_message_id
        if mid and self.chat.update_message(mid, text):
            return
        self.state.interim_message_id = self.chat.add_user(text, is_interim=True)

    def _clear_interim(self) -> None:
        if self.state.interim_message_id:
            self.chat.remove_message(self.state.interim_message_id)
            self.state.interim_message_id = None

    def _context(self) -> IntentContext:
        head = self.state.head
        pending = None
        if head is not None:
            pending = PendingClarification(
                menu_name=head.menu_item.name,
                question=P.temperature_question(head),
            )
        return IntentContext(
            current_items=[
                CurrentItem(name=it.name, temperature=it.temperature, quantity=it.quantity)
                for it in self.store.items
            ],
            pending_clarification=pending,
        )

    async def _process_final(self, transcript: str) -> str:
        corrected = self.corrector.correct(transcript)
        located = locate_menu_items(
            corrected, self.catalog, self.config.fuzzy_min_distance, self.config.fuzzy_length_ratio
        )

        # 메뉴 이름이 들어 있으면 확정이 아니라 주문 ('아메리카노 다섯 잔 주문할게')
        if not located and is_order_confirm_intent(corrected):
            return self._confirm_order()

        if self.state.pending_conflicts:
            return self._handle_pending_reply(transcript, corrected, located)
        return await self._handle_new_order(transcript, corrected)

    # IDLE
    async def _handle_new_order(self, transcript: str, corrected: str) -> str:
        intent = await self.intent_source.classify(transcript, self._context())
        if intent is None:
            intent = self.rule_source.classify_sync(transcript, self._context())
        logger.debug("[VoiceOrder] 의도: %s (%.2f)", intent.type.value, intent.confidence)

        outcome = self.executor.execute(intent)
        if outcome.confirm_requested:
            return self._confirm_order()

        if outcome.is_empty:
            if outcome.unmatched and has_order_cue(corrected):
                return P.not_found(outcome.unmatched)
            if is_yes_no(corrected):
                return P.ASK_MENU
            return P.ORDER_ONLY

        parts: List[str] = []
        if outcome.unmatched:
            parts.append(P.not_found(outcome.unmatched))
        parts.extend(outcome.messages)
        if outcome.pending:
            self.state.pending_added_items = self.state.pending_added_items + outcome.added
            self.state.pending_conflicts = self.state.pending_conflicts + outcome.pending
            parts.append(P.temperature_question(outcome.pending[0]))
        elif outcome.added:
            parts.append(P.added_summary(outcome.added))
        return " ".join(parts)

    # AWAITING_TEMPERATURE
    def _handle_pending_reply(self, transcript: str, corrected: str, located: List[LocatedItem]) -> str:
        head = self.state.head
        temperature = temperature_response(corrected)
        only_head = all(loc.item.id == head.menu_item.id for loc in located)

        if temperature is not None and only_head:
            return self._answer_temperature(temperature)

        if not located:
            if is_clear_order_request(corrected):
                self.state.clear()
                return self.actions.clear()
            if is_rejection(corrected):
                return self._advance(prefix=P.removed_pending(head))
            if is_confirmation(corrected):
                return self._accept_head()
            return f"{P.ORDER_ONLY} {P.temperature_question(head)}"

        # 확인 중에 새 메뉴를 말하면 대기열 뒤에 붙이고 지금 질문만 다시.
        # 대기 중인 메뉴를 다시 말한 것은 새 주문이 아니라 그 메뉴에 대한 대답이다
        intent = self.rule_source.classify_sync(transcript, self._context())
        head_id = head.menu_item.id
        head_temperature = self._head_temperature(corrected)
        if head_temperature is None:
            head_temperature = next((it.temperature for it in intent.items
                                     if it.menu_id == head_id and it.temperature is not None), None)
        others = [it for it in intent.items if it.menu_id != head_id]
        outcome = self.executor.execute(intent.model_copy(update={"items": others}))
        self.state.pending_added_items = self.state.pending_added_items + outcome.added
        self.state.pending_conflicts = self.state.pending_conflicts + outcome.pending
        if head_temperature is not None:
            return " ".join(outcome.messages + [self._answer_temperature(head_temperature)])
        return " ".join(outcome.messages + [P.still_waiting(head)])

    def _head_temperature(self, corrected: str) -> Temperature | None:
        """대기 중인 메뉴만 들어 있는 조각('카페라떼 따뜻하게')에서 온도 읽기."""
        head_id = self.state.head.menu_item.id
        for segment in split_into_segments(corrected):
            found = locate_menu_items(segment, self.catalog,
                                      self.config.fuzzy_min_distance, self.config.fuzzy_length_ratio)
            if [loc.item.id for loc in found] == [head_id]:
                return temperature_response(segment)
        return None

    def _accept_head(self) -> str:
        head = self.state.head
        if head.reason is not ConflictReason.UNAVAILABLE:
            # 온도를 아예 안 정했으면 '네'만으로는 고를 수 없다
            return P.temperature_question(head)
        return self._answer_temperature(head.available_temperature)

    def _answer_temperature(self, temperature: Temperature) -> str:
        head = self.state.head
        item = head.menu_item
        if temperature not in item.temperatures:
            return P.unavailable_temperature(item, temperature)
        label = self.actions.add(item, temperature, head.quantity)
        self.state.pending_added_items = self.state.pending_added_items + [label]
        return self._advance()

    def _advance(self, prefix: str | None = None) -> str:
        """대기열 맨 앞을 빼고 다음 질문 또는 종합 안내."""
        remaining = self.state.pending_conflicts[1:]
        self.state.pending_conflicts = remaining
        lead = f"{prefix} " if prefix else ""
        if remaining:
            return lead + P.temperature_question(remaining[0])

        added = self.state.pending_added_items
        self.state.pending_added_items = []
        if added:
            return lead + P.added_summary(added)
        if prefix:
            return lead + P.ASK_OTHER_MENU
        return P.ASK_MORE

    def _confirm_order(self) -> str:
        head = self.state.head
        if head is not None:
            return P.confirm_blocked(head)
        items = self.store.items
        if not items:
            return P.NO_ITEMS_YET
        if self.on_order_confirmed is not None:
            self.on_order_confirmed(items)
        logger.info("[VoiceOrder] 주문 확정: %d개 품목, %d원", len(items), self.store.get_total())
        self.store.clear_order()
        self.state.clear()
        self.chat.clear()
        return P.ORDER_COMPLETED
