# voice_kiosk/intent/schema.py
from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from voice_kiosk.menu.catalog import Temperature


class IntentType(str, Enum):
    ADD_ITEM = "ADD_ITEM"
    REMOVE_ITEM = "REMOVE_ITEM"
    CHANGE_QUANTITY = "CHANGE_QUANTITY"
    CHANGE_TEMPERATURE = "CHANGE_TEMPERATURE"
    MULTI_ACTION = "MULTI_ACTION"
    CLEAR_ORDER = "CLEAR_ORDER"
    CONFIRM_ORDER = "CONFIRM_ORDER"
    ASK_CLARIFICATION = "ASK_CLARIFICATION"
    UNKNOWN = "UNKNOWN"


class ItemAction(str, Enum):
    ADD = "ADD"
    REMOVE = "REMOVE"
    CHANGE_QUANTITY = "CHANGE_QUANTITY"
    CHANGE_TEMPERATURE = "CHANGE_TEMPERATURE"


def _enum_or_none(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().upper())
        except ValueError:
            return None
    return None


class OrderItemIntent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    menu_id: str = Field(default="", alias="menuId")
    menu_name: str = Field(default="", alias="menuName")
    temperature: Optional[Temperature] = None
    quantity: int = 1
    action: Optional[ItemAction] = None

    @field_validator("menu_id", "menu_name", mode="before")
    @classmethod
    def _text(cls, v):
        return v if isinstance(v, str) else ""

    @field_validator("temperature", mode="before")
    @classmethod
    def _temperature(cls, v):
        return Temperature.parse(v)

    @field_validator("action", mode="before")
    @classmethod
    def _action(cls, v):
        return _enum_or_none(ItemAction, v)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, v):
        # 숫자가 아니거나 1 미만이면 1
        if isinstance(v, bool):
            return 1
        try:
            q = int(v)
        except (TypeError, ValueError):
            return 1
        return q if q >= 1 else 1


class OrderIntent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: IntentType
    items: List[OrderItemIntent] = Field(default_factory=list)
    message: Optional[str] = None
    confidence: float = 0.5
    # 규칙 기반 해석에서만 채워짐 (메뉴에서 못 찾은 조각)
    unmatched: List[str] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def _items(cls, v):
        if not isinstance(v, list):
            return []
        return [it for it in v if isinstance(it, (dict, OrderItemIntent))]

    @field_validator("message", mode="before")
    @classmethod
    def _message(cls, v):
        return v if isinstance(v, str) and v.strip() else None

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v):
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return 0.5
        return min(1.0, max(0.0, float(v)))

    @field_validator("unmatched", mode="before")
    @classmethod
    def _unmatched(cls, v):
        if not isinstance(v, list):
            return []
        return [s for s in v if isinstance(s, str)]

    @classmethod
    def unknown(cls, message: str | None = None) -> "OrderIntent":
        return cls(type=IntentType.UNKNOWN, confidence=0.0, message=message)

    @classmethod
    def from_payload(cls, data: Any) -> "OrderIntent":
        """외부 응답 JSON → OrderIntent. 형식이 깨져도 예외 대신 UNKNOWN."""
        if not isinstance(data, dict):
            return cls.unknown()
        if _enum_or_none(IntentType, data.get("type")) is None:
            return cls.unknown()
        payload = dict(data)
        payload["type"] = _enum_or_none(IntentType, data.get("type"))
        try:
            return cls.model_validate(payload)
        except ValidationError:
            return cls.unknown()


# ─────────────────────────────────────────────────────────────
# 의도 분류에 넘기는 주문 문맥
# ─────────────────────────────────────────────────────────────
class CurrentItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    temperature: Optional[Temperature] = None
    quantity: int = 1

    @field_validator("temperature", mode="before")
    @classmethod
    def _temperature(cls, v):
        return Temperature.parse(v)


class PendingClarification(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    menu_name: str = Field(alias="menuName")
    question: str = ""


class IntentContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_items: List[CurrentItem] = Field(default_factory=list, alias="currentItems")
    pending_clarification: Optional[PendingClarification] = Field(default=None, alias="pendingClarification")


class IntentRequest(IntentContext):
    transcript: str = ""
