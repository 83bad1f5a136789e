# voice_kiosk/menu/catalog.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Iterator, List, Tuple

from voice_kiosk.config import MENU_CONFIG_PATH

# ─────────────────────────────────────────────────────────────
# 설정 파일 경로
# ─────────────────────────────────────────────────────────────
_DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "data")
_MENU_JSON = os.path.abspath(os.path.join(_DATA_DIR, "menu_config.json"))


class Temperature(str, Enum):
    HOT = "HOT"
    ICE = "ICE"

    @property
    def label(self) -> str:
        """음성 응답용 한글 표기."""
        return "핫" if self is Temperature.HOT else "아이스"

    @property
    def adjective(self) -> str:
        return "따뜻한" if self is Temperature.HOT else "아이스"

    @classmethod
    def parse(cls, value: Any) -> "Temperature | None":
        """'hot', 'ICE', Temperature 등을 받아 변환. 알 수 없는 값은 None."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


@dataclass(frozen=True)
class MenuItem:
    id: str
    name: str
    name_en: str
    category: str
    price: int
    temperatures: Tuple[Temperature, ...] = ()
    available: bool = True
    description: str | None = None

    @property
    def has_temperature_choice(self) -> bool:
        return len(self.temperatures) > 1

    @property
    def counter(self) -> str:
        # 디저트는 '개', 음료는 '잔'
        return "개" if self.category == "dessert" else "잔"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "name_en": self.name_en,
            "category": self.category,
            "price": self.price,
            "temperatures": [t.value for t in self.temperatures],
            "available": self.available,
            "description": self.description,
        }


def _read_json(path: str) -> Dict[str, Any]:
    if not os.path.isfile(path):
        raise FileNotFoundError(f"menu config not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _item_from_dict(raw: Dict[str, Any]) -> MenuItem:
    temps = tuple(
        t for t in (Temperature.parse(v) for v in raw.get("temperatures") or []) if t is not None
    )
    return MenuItem(
        id=raw["id"],
        name=raw["name"],
        name_en=raw.get("name_en", ""),
        category=raw.get("category", ""),
        price=int(raw.get("price", 0)),
        temperatures=temps,
        available=bool(raw.get("available", True)),
        description=raw.get("description"),
    )


class MenuCatalog:
    """불변 메뉴 목록. 한 번 로드하면 세션 간 공유한다."""

    def __init__(self, items: List[MenuItem], categories: Dict[str, str] | None = None):
        self._items: Tuple[MenuItem, ...] = tuple(items)
        self._by_id: Dict[str, MenuItem] = {it.id: it for it in self._items}
        self.categories: Dict[str, str] = dict(categories or {})

    def __iter__(self) -> Iterator[MenuItem]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def available_items(self) -> List[MenuItem]:
        return [it for it in self._items if it.available]

    def get(self, menu_id: str | None) -> MenuItem | None:
        if not menu_id:
            return None
        return self._by_id.get(menu_id)

    def find_by_name(self, name: str | None) -> MenuItem | None:
        """한글/영문 이름 정확 일치(공백·대소문자 무시)."""
        if not name:
            return None
        key = name.replace(" ", "").lower()
        for it in self.available_items:
            if it.name.replace(" ", "").lower() == key or it.name_en.replace(" ", "").lower() == key:
                return it
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": self.categories,
            "items": [it.to_dict() for it in self._items],
        }


def load_catalog_from(path: str) -> MenuCatalog:
    data = _read_json(path)
    items = [_item_from_dict(raw) for raw in data.get("items", [])]
    return MenuCatalog(items, data.get("categories"))


@lru_cache(maxsize=1)
def load_catalog() -> MenuCatalog:
    """기본 메뉴 마스터 로드 (MENU_CONFIG_PATH 환경변수로 교체 가능)."""
    return load_catalog_from(MENU_CONFIG_PATH or _MENU_JSON)
