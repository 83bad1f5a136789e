# voice_kiosk/order/store.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from voice_kiosk.menu.catalog import MenuItem, Temperature


@dataclass
class OrderItem:
    id: str
    menu_id: str
    name: str
    temperature: Temperature | None
    quantity: int
    unit_price: int

    @property
    def total_price(self) -> int:
        return self.unit_price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "menu_id": self.menu_id,
            "name": self.name,
            "temperature": self.temperature.value if self.temperature else None,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
        }


class OrderStore:
    """
    현재 주문 내역 (단일 원본).
    같은 메뉴+온도는 한 줄로 합쳐 수량만 늘린다.
    """

    def __init__(self):
        self._items: List[OrderItem] = []
        self._seq = 0

    @property
    def items(self) -> List[OrderItem]:
        return list(self._items)

    def add_item(self, menu_item: MenuItem, temperature: Temperature | None) -> OrderItem:
        for it in self._items:
            if it.menu_id == menu_item.id and it.temperature == temperature:
                it.quantity += 1
                return it
        self._seq += 1
        item = OrderItem(
            id=f"order-item-{self._seq}",
            menu_id=menu_item.id,
            name=menu_item.name,
            temperature=temperature,
            quantity=1,
            unit_price=menu_item.price,
        )
        self._items.append(item)
        return item

    def remove_item(self, item_id: str) -> bool:
        before = len(self._items)
        self._items = [it for it in self._items if it.id != item_id]
        return len(self._items) != before

    def update_quantity(self, item_id: str, quantity: int) -> None:
        """0 이하면 삭제."""
        if quantity <= 0:
            self.remove_item(item_id)
            return
        for it in self._items:
            if it.id == item_id:
                it.quantity = quantity
                return

    def clear_order(self) -> None:
        self._items = []

    def find_by_menu(self, menu_id: str) -> List[OrderItem]:
        return [it for it in self._items if it.menu_id == menu_id]

    def get_total(self) -> int:
        return sum(it.total_price for it in self._items)

    def get_item_count(self) -> int:
        return sum(it.quantity for it in self._items)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "items": [it.to_dict() for it in self._items],
            "total": self.get_total(),
            "count": self.get_item_count(),
        }
