# voice_kiosk/order/queue.py
from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List

from voice_kiosk.order.store import OrderItem

ORDER_NUMBER_MIN = 1001
ORDER_NUMBER_MAX = 9999


@dataclass
class QueuedOrder:
    order_number: int
    items: List[OrderItem]
    total: int
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_number": self.order_number,
            "items": [it.to_dict() for it in self.items],
            "total": self.total,
            "created_at": self.created_at,
        }


class OrderQueue:
    """확정된 주문 대기열. 주문 번호는 대기열 안에서 겹치지 않는다."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()
        self._orders: List[QueuedOrder] = []

    @property
    def orders(self) -> List[QueuedOrder]:
        return list(self._orders)

    def _next_number(self) -> int:
        used = {o.order_number for o in self._orders}
        if len(used) >= ORDER_NUMBER_MAX - ORDER_NUMBER_MIN + 1:
            raise RuntimeError("order number space exhausted")
        while True:
            n = self._rng.randint(ORDER_NUMBER_MIN, ORDER_NUMBER_MAX)
            if n not in used:
                return n

    def add_order(self, items: List[OrderItem]) -> QueuedOrder:
        order = QueuedOrder(
            order_number=self._next_number(),
            items=list(items),
            total=sum(it.total_price for it in items),
        )
        self._orders.append(order)
        return order

    def complete(self, order_number: int) -> bool:
        before = len(self._orders)
        self._orders = [o for o in self._orders if o.order_number != order_number]
        return len(self._orders) != before
