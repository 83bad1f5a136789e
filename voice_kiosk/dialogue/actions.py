# voice_kiosk/dialogue/actions.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from voice_kiosk.dialogue import prompts as P
from voice_kiosk.intent.schema import IntentType, ItemAction, OrderIntent, OrderItemIntent
from voice_kiosk.menu.catalog import MenuCatalog, MenuItem, Temperature
from voice_kiosk.nlp.resolver import MatchedOrder, build_matched_order
from voice_kiosk.order.store import OrderItem, OrderStore

logger = logging.getLogger(__name__)

MENU_NOT_FOUND = "메뉴를 찾을 수 없습니다."
ITEM_NOT_IN_ORDER = "주문 목록에서 해당 메뉴를 찾을 수 없습니다."
ORDER_EMPTY = "주문 내역이 없습니다."
ORDER_CLEARED = "주문을 취소했습니다."


class OrderActions:
    """주문 내역 변경 명령. 응답 문장을 돌려준다."""

    def __init__(self, store: OrderStore, catalog: MenuCatalog):
        self.store = store
        self.catalog = catalog

    def lookup(self, menu_id: str | None, menu_name: str | None = None) -> MenuItem | None:
        item = self.catalog.get(menu_id) or self.catalog.find_by_name(menu_name)
        if item is None or not item.available:
            return None
        return item

    def _lines(self, menu_id: str, temperature: Temperature | None = None) -> List[OrderItem]:
        lines = self.store.find_by_menu(menu_id)
        if temperature is not None:
            same = [it for it in lines if it.temperature == temperature]
            if same:
                return same
        return lines

    def add(self, item: MenuItem, temperature: Temperature | None, quantity: int) -> str:
        for _ in range(max(1, quantity)):
            self.store.add_item(item, temperature)
        logger.info("[Order] 추가: %s %s x%d", item.id, temperature.value if temperature else "-", quantity)
        return P.item_label(item, temperature, quantity)

    def remove(self, item: MenuItem, temperature: Temperature | None = None) -> str:
        lines = self._lines(item.id, temperature)
        if not lines:
            return ITEM_NOT_IN_ORDER
        for line in lines:
            self.store.remove_item(line.id)
        return f"{item.name} 삭제했습니다."

    def change_quantity(self, item: MenuItem, quantity: int, temperature: Temperature | None = None) -> str:
        lines = self._lines(item.id, temperature)
        if not lines:
            return ITEM_NOT_IN_ORDER
        line = lines[0]
        if quantity <= 0:
            self.store.remove_item(line.id)
            return f"{item.name} 삭제했습니다."
        self.store.update_quantity(line.id, quantity)
        prefix = f"{line.temperature.adjective} " if line.temperature else ""
        return f"{prefix}{item.name} {P.direction(f'{quantity}{item.counter}')} 변경했습니다."

    def change_temperature(self, item: MenuItem, temperature: Temperature) -> str:
        if temperature not in item.temperatures:
            avail = "/".join(t.label for t in item.temperatures) or "온도 선택 없이"
            return f"{P.topic(item.name)} {P.subject(temperature.label)} 없어요. {avail}만 가능합니다."
        lines = self.store.find_by_menu(item.id)
        if not lines:
            return P.added([self.add(item, temperature, 1)])
        line = lines[0]
        if line.temperature == temperature:
            return f"이미 {temperature.adjective} {item.name}입니다."
        quantity = line.quantity
        self.store.remove_item(line.id)
        for _ in range(quantity):
            self.store.add_item(item, temperature)
        return f"{P.direction(f'{temperature.adjective} {item.name}')} 변경했습니다."

    def clear(self) -> str:
        if not self.store.items:
            return ORDER_EMPTY
        self.store.clear_order()
        return ORDER_CLEARED


@dataclass
class ExecutionOutcome:
    added: List[str] = field(default_factory=list)
    pending: List[MatchedOrder] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)
    unmatched: List[str] = field(default_factory=list)
    confirm_requested: bool = False

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.pending or self.messages or self.confirm_requested)


class IntentExecutor:
    """OrderIntent → 주문 변경. 온도 확인이 필요한 항목은 pending 으로 돌려준다."""

    def __init__(self, actions: OrderActions):
        self.actions = actions

    def execute(self, intent: OrderIntent) -> ExecutionOutcome:
        out = ExecutionOutcome(unmatched=list(intent.unmatched))
        kind = intent.type

        if kind is IntentType.CONFIRM_ORDER:
            out.confirm_requested = True
        elif kind is IntentType.CLEAR_ORDER:
            out.messages.append(self.actions.clear())
        elif kind is IntentType.UNKNOWN:
            pass
        else:
            default_action = {
                IntentType.REMOVE_ITEM: ItemAction.REMOVE,
                IntentType.CHANGE_QUANTITY: ItemAction.CHANGE_QUANTITY,
                IntentType.CHANGE_TEMPERATURE: ItemAction.CHANGE_TEMPERATURE,
            }.get(kind, ItemAction.ADD)
            for item in intent.items:
                # MULTI_ACTION 은 항목별 action 을 따른다
                action = item.action if kind is IntentType.MULTI_ACTION and item.action else default_action
                self._apply(item, action, out)
            if kind is IntentType.ASK_CLARIFICATION and not intent.items and intent.message:
                out.messages.append(intent.message)
        return out

    def _apply(self, item: OrderItemIntent, action: ItemAction, out: ExecutionOutcome) -> None:
        menu = self.actions.lookup(item.menu_id, item.menu_name)
        if menu is None:
            if item.menu_name:
                out.unmatched.append(item.menu_name)
            else:
                out.messages.append(MENU_NOT_FOUND)
            return

        if action is ItemAction.REMOVE:
            out.messages.append(self.actions.remove(menu, item.temperature))
        elif action is ItemAction.CHANGE_QUANTITY:
            out.messages.append(self.actions.change_quantity(menu, item.quantity, item.temperature))
        elif action is ItemAction.CHANGE_TEMPERATURE and item.temperature is not None:
            out.messages.append(self.actions.change_temperature(menu, item.temperature))
        else:
            order = build_matched_order(menu, item.temperature, item.quantity)
            if order.is_resolved:
                out.added.append(self.actions.add(menu, order.temperature, order.quantity))
            else:
                out.pending.append(order)
