# tests/test_prompts.py
import pytest

from voice_kiosk.dialogue import prompts as P


@pytest.mark.parametrize("word,expected", [("유자차", "유자차는"), ("카페라떼", "카페라떼는"), ("콜드브루", "콜드브루는"), ("딸기케이크", "딸기케이크는"), ("레몬에이드", "레몬에이드는"), ("빵", "빵은")])
def test_topic_particle(word, expected):
    assert P.topic(word) == expected


def test_not_found_single_menu_name():
    assert P.not_found(["유자차"]) == "유자차는 메뉴에 없어요. 메뉴판을 확인해주세요."
    assert P.not_found(["  곡물빵 "]) == "곡물빵은 메뉴에 없어요. 메뉴판을 확인해주세요."


@pytest.mark.parametrize("fragments", [["다섯 잔 주세요"], ["유자차", "쌍화차"], []])
def test_not_found_clause_uses_plain_message(fragments):
    # 문장 조각은 메뉴 이름처럼 읽히지 않게
    assert P.not_found(fragments) == "말씀하신 메뉴를 찾지 못했어요. 메뉴판을 확인해주세요."
