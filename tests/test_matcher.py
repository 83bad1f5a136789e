# tests/test_matcher.py
from voice_kiosk.menu.catalog import MenuCatalog, MenuItem, Temperature
from voice_kiosk.nlp.matcher import (
    find_menu_item,
    fuzzy_match_menu_item,
    fuzzy_threshold,
    levenshtein,
    locate_menu_items,
    split_into_segments,
)


def test_levenshtein_basics():
    assert levenshtein("아메리카노", "아메리카노") == 0
    assert levenshtein("아메리카누", "아메리카노") == 1
    assert levenshtein("", "abc") == 3


def test_fuzzy_threshold_is_length_proportional():
    assert fuzzy_threshold("밀크티") == 2
    assert fuzzy_threshold("카라멜마키아토") == 2
    assert fuzzy_threshold("가" * 10) == 3


def test_locate_single_item(catalog):
    found = locate_menu_items("아이스 아메리카노 한 잔", catalog)
    assert [f.item.id for f in found] == ["americano"]
    assert (found[0].start, found[0].end) == (4, 9)


def test_locate_multiple_items_in_order(catalog):
    found = locate_menu_items("카페라떼 하나랑 아메리카노 둘", catalog)
    assert [f.item.id for f in found] == ["cafe-latte", "americano"]


def test_locate_ignores_internal_spaces(catalog):
    found = locate_menu_items("아메리 카노 주세요", catalog)
    assert [f.item.id for f in found] == ["americano"]
    assert (found[0].start, found[0].end) == (0, 6)


def test_locate_space_in_menu_name(catalog):
    found = locate_menu_items("카라멜마키아토 주세요", catalog)
    assert [f.item.id for f in found] == ["caramel-macchiato"]


def test_locate_english_name(catalog):
    found = locate_menu_items("cold brew please", catalog)
    assert [f.item.id for f in found] == ["cold-brew"]


def test_locate_fuzzy_fallback(catalog):
    found = locate_menu_items("아메리카누", catalog)
    assert [f.item.id for f in found] == ["americano"]


def test_locate_nothing(catalog):
    assert locate_menu_items("오늘 날씨 어때요?", catalog) == []
    assert locate_menu_items("", catalog) == []
    assert locate_menu_items("   ", catalog) == []


def test_overlapping_matches_keep_first():
    # 짧은 이름이 긴 이름 안에 들어 있으면 긴 쪽만
    small = MenuCatalog([
        MenuItem("latte", "라떼", "Latte", "coffee", 5000, (Temperature.HOT, Temperature.ICE)),
        MenuItem("vanilla-latte", "바닐라라떼", "Vanilla Latte", "coffee", 5500, (Temperature.HOT, Temperature.ICE)),
    ])
    found = locate_menu_items("바닐라라떼 주세요", small)
    assert [f.item.id for f in found] == ["vanilla-latte"]


def test_fuzzy_match_rejects_far_text(catalog):
    assert fuzzy_match_menu_item("안녕하세요", catalog) is None


def test_find_menu_item_uses_tokens(catalog):
    item = find_menu_item("아메리카누 주세요", catalog)
    assert item is not None and item.id == "americano"


def test_split_into_segments():
    assert split_into_segments("유자차하고 망고 스무디") == ["유자차", "망고 스무디"]
    assert split_into_segments("케이크, 쿠키") == ["케이크", "쿠키"]
    assert split_into_segments("") == []
