# voice_kiosk/nlp/resolver.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from voice_kiosk.menu.catalog import MenuCatalog, MenuItem, Temperature, load_catalog
from voice_kiosk.nlp.correction import SpeechCorrector, default_corrector
from voice_kiosk.nlp.matcher import find_menu_item, locate_menu_items, split_into_segments
from voice_kiosk.nlp.slots import extract_quantity, extract_temperature, scope_item_slots


class ConflictReason(Enum):
    NONE = "none"
    NEEDS_TEMPERATURE = "needs_temperature"   # 온도를 말하지 않음 (선택지 2개)
    UNAVAILABLE = "unavailable"               # 말한 온도가 없는 메뉴


@dataclass
class MatchedOrder:
    menu_item: MenuItem
    temperature: Temperature | None
    quantity: int = 1
    needs_temperature_confirm: bool = False
    requested_temperature: Temperature | None = None
    available_temperature: Temperature | None = None

    def __post_init__(self):
        if not isinstance(self.quantity, int) or self.quantity < 1:
            self.quantity = 1

    @property
    def reason(self) -> ConflictReason:
        if self.needs_temperature_confirm:
            return ConflictReason.UNAVAILABLE
        if self.temperature is None and self.menu_item.has_temperature_choice:
            return ConflictReason.NEEDS_TEMPERATURE
        return ConflictReason.NONE

    @property
    def is_resolved(self) -> bool:
        return self.reason is ConflictReason.NONE


@dataclass
class MatchResult:
    orders: List[MatchedOrder] = field(default_factory=list)
    unmatched: List[str] = field(default_factory=list)
    temperature_conflicts: List[MatchedOrder] = field(default_factory=list)
    _sequence: List[MatchedOrder] = field(default_factory=list, repr=False)

    @property
    def resolved(self) -> List[MatchedOrder]:
        return [o for o in self.orders if o.is_resolved]

    @property
    def needs_temperature(self) -> List[MatchedOrder]:
        return [o for o in self.orders if o.reason is ConflictReason.NEEDS_TEMPERATURE]

    @property
    def matched(self) -> List[MatchedOrder]:
        """주문 + 충돌 항목을 발화 순서대로."""
        return list(self._sequence)

    @property
    def pending(self) -> List[MatchedOrder]:
        """확인이 필요한 항목 전부 (발화 순서)."""
        return [o for o in self._sequence if not o.is_resolved]

    @property
    def is_empty(self) -> bool:
        return not self._sequence

    def add(self, order: MatchedOrder) -> None:
        self._sequence.append(order)
        if order.needs_temperature_confirm:
            self.temperature_conflicts.append(order)
        else:
            self.orders.append(order)


@dataclass
class TemperatureResolution:
    temperature: Temperature | None
    substituted: bool = False
    requested: Temperature | None = None


def resolve_temperature(item: MenuItem, requested: Temperature | None) -> TemperatureResolution:
    """
    - 요청 온도가 가능하면 그대로
    - 요청 온도가 없으면 유일한/첫 번째 가능 온도로 대체 표시 (substituted)
    - 요청이 없고 선택지가 하나면 그 온도
    - 요청이 없고 선택지가 둘이면 None (확인 필요)
    - 온도 개념이 없는 메뉴는 None
    """
    temps = item.temperatures
    if not temps:
        return TemperatureResolution(None)
    if requested is not None:
        if requested in temps:
            return TemperatureResolution(requested, requested=requested)
        return TemperatureResolution(temps[0], substituted=True, requested=requested)
    if len(temps) == 1:
        return TemperatureResolution(temps[0])
    return TemperatureResolution(None)


def build_matched_order(item: MenuItem, requested: Temperature | None, quantity: int) -> MatchedOrder:
    res = resolve_temperature(item, requested)
    if res.substituted:
        return MatchedOrder(
            menu_item=item,
            temperature=None,
            quantity=quantity,
            needs_temperature_confirm=True,
            requested_temperature=res.requested,
            available_temperature=res.temperature,
        )
    return MatchedOrder(
        menu_item=item,
        temperature=res.temperature,
        quantity=quantity,
        requested_temperature=requested,
    )


def match_voice_to_menu(text: str,
                        catalog: MenuCatalog | None = None,
                        corrector: SpeechCorrector | None = None) -> MatchResult:
    """
    발화 → 메뉴별 주문/확인 필요 항목/찾지 못한 조각.
    상태를 바꾸지 않는 순수 함수. 주문 반영은 호출자가 한다.
    """
    catalog = catalog if catalog is not None else load_catalog()
    corrector = corrector or default_corrector()
    result = MatchResult()

    corrected = corrector.correct(text or "").strip()
    if not corrected:
        return result

    located = locate_menu_items(corrected, catalog)
    if located:
        slots = scope_item_slots(corrected, [(loc.start, loc.end) for loc in located])
        for loc, slot in zip(located, slots):
            result.add(build_matched_order(loc.item, slot.temperature, slot.quantity))
        return result

    # 통째로는 못 찾았으면 조각별로 다시 시도
    for segment in split_into_segments(corrected):
        if len(segment) <= 1:
            continue
        item = find_menu_item(segment, catalog)
        if item is None:
            result.unmatched.append(segment)
            continue
        result.add(build_matched_order(item, extract_temperature(segment), extract_quantity(segment)))
    return result
