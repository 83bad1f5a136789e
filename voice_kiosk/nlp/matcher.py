# voice_kiosk/nlp/matcher.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Tuple

from rapidfuzz.distance import Levenshtein

from voice_kiosk.config import FUZZY_LENGTH_RATIO, FUZZY_MIN_DISTANCE
from voice_kiosk.menu.catalog import MenuCatalog, MenuItem, load_catalog

_NOISE = re.compile(r"[\s.,!?~]")
_SEGMENT_SPLIT = re.compile(r"\s*(?:하고|이랑|그리고|랑|,|(?:와|과|요)\s+)\s*")

# 토큰 단위 퍼지 매칭은 이 길이 이상만 ('밀크' → '밀크티' 같은 오탐 방지)
_MIN_FUZZY_TOKEN = 4


@dataclass(frozen=True)
class LocatedItem:
    item: MenuItem
    start: int
    end: int


def levenshtein(a: str, b: str) -> int:
    return Levenshtein.distance(a, b)


def fuzzy_threshold(name: str,
                    min_distance: int = FUZZY_MIN_DISTANCE,
                    ratio: float = FUZZY_LENGTH_RATIO) -> int:
    """이름 길이에 비례한 허용 편집 거리."""
    return max(min_distance, int(len(name) * ratio))


def _compact(text: str) -> Tuple[str, List[int]]:
    """공백을 뺀 소문자 문자열과, 각 글자의 원문 위치."""
    chars: List[str] = []
    index_map: List[int] = []
    for i, ch in enumerate(text.lower()):
        if ch.isspace():
            continue
        chars.append(ch)
        index_map.append(i)
    return "".join(chars), index_map


def fuzzy_match_menu_item(text: str,
                          catalog: MenuCatalog | None = None,
                          min_distance: int = FUZZY_MIN_DISTANCE,
                          ratio: float = FUZZY_LENGTH_RATIO) -> MenuItem | None:
    """공백/문장부호를 뺀 발화 전체와 메뉴명의 편집 거리가 가장 작은 메뉴."""
    catalog = catalog if catalog is not None else load_catalog()
    compact = _NOISE.sub("", text or "").lower()
    if not compact:
        return None

    best: MenuItem | None = None
    best_dist = None
    for item in catalog.available_items:
        name = item.name.replace(" ", "").lower()
        dist = levenshtein(compact, name)
        if dist > fuzzy_threshold(name, min_distance, ratio):
            continue
        if best_dist is None or dist < best_dist:
            best, best_dist = item, dist
    return best


def _find_span(text: str, compact: str, index_map: List[int], item: MenuItem) -> Tuple[int, int] | None:
    lowered = text.lower()
    name = item.name.lower()
    idx = lowered.find(name)
    if idx >= 0:
        return idx, idx + len(name)

    # '아메리 카노'처럼 공백이 끼어든 경우
    name_compact = name.replace(" ", "")
    idx = compact.find(name_compact)
    if idx >= 0:
        return index_map[idx], index_map[idx + len(name_compact) - 1] + 1

    if item.name_en:
        m = re.search(r"\b" + re.escape(item.name_en.lower()) + r"\b", lowered)
        if m:
            return m.start(), m.end()
    return None


def _drop_overlaps(found: List[LocatedItem]) -> List[LocatedItem]:
    # 같은 위치에서 시작하면 긴 쪽 우선, 겹치는 뒤쪽 매칭은 버린다
    ordered = sorted(found, key=lambda f: (f.start, -(f.end - f.start)))
    kept: List[LocatedItem] = []
    last_end = -1
    for f in ordered:
        if f.start < last_end:
            continue
        kept.append(f)
        last_end = f.end
    return kept


def find_exact_items(text: str, catalog: MenuCatalog | None = None) -> List[LocatedItem]:
    catalog = catalog if catalog is not None else load_catalog()
    if not text or not text.strip():
        return []
    compact, index_map = _compact(text)
    found = []
    for item in catalog.available_items:
        span = _find_span(text, compact, index_map, item)
        if span:
            found.append(LocatedItem(item, span[0], span[1]))
    return _drop_overlaps(found)


def locate_menu_items(text: str,
                      catalog: MenuCatalog | None = None,
                      min_distance: int = FUZZY_MIN_DISTANCE,
                      ratio: float = FUZZY_LENGTH_RATIO) -> List[LocatedItem]:
    """
    보정된 발화에서 메뉴 위치 찾기 (시작 위치 순).
    1) 정확/부분 문자열 매칭 (공백 포함/제외 둘 다)
    2) 하나도 없으면 발화 전체에 대한 퍼지 매칭
    """
    found = find_exact_items(text, catalog)
    if found or not text or not text.strip():
        return found
    item = fuzzy_match_menu_item(text, catalog, min_distance, ratio)
    if item is None:
        return []
    return [LocatedItem(item, 0, len(text))]


def find_menu_item(segment: str,
                   catalog: MenuCatalog | None = None,
                   min_distance: int = FUZZY_MIN_DISTANCE,
                   ratio: float = FUZZY_LENGTH_RATIO) -> MenuItem | None:
    """조각 하나에 대한 단일 메뉴 찾기. 정확 매칭 → 조각 전체 퍼지 → 긴 토큰 퍼지."""
    located = locate_menu_items(segment, catalog, min_distance, ratio)
    if located:
        return located[0].item
    for token in segment.split():
        if len(_NOISE.sub("", token)) < _MIN_FUZZY_TOKEN:
            continue
        item = fuzzy_match_menu_item(token, catalog, min_distance, ratio)
        if item:
            return item
    return None


def split_into_segments(text: str) -> List[str]:
    """'하고', '이랑', ',' 등 연결어 기준으로 주문 조각 나누기."""
    if not text:
        return []
    return [seg.strip() for seg in _SEGMENT_SPLIT.split(text) if seg and seg.strip()]
