# tests/test_correction.py
from voice_kiosk.nlp.correction import SpeechCorrector, correct_speech_text


def test_common_mishearings():
    assert correct_speech_text("아메리카나 주세요") == "아메리카노 주세요"
    assert correct_speech_text("콜드 보러 한 잔") == "콜드브루 한 잔"
    assert correct_speech_text("티라미슈 하나") == "티라미수 하나"


def test_bare_latte_becomes_cafe_latte():
    assert correct_speech_text("라떼 두 잔") == "카페라떼 두 잔"


def test_menu_names_are_not_rewritten():
    # '바닐라라떼' 안의 '라떼'가 '카페라떼'로 바뀌면 안 됨
    assert correct_speech_text("바닐라라떼 주세요") == "바닐라라떼 주세요"
    assert correct_speech_text("카페라떼 주세요") == "카페라떼 주세요"
    assert correct_speech_text("녹차라떼 아이스") == "녹차라떼 아이스"
    assert correct_speech_text("카라멜 마키아토") == "카라멜 마키아토"


def test_longer_pattern_wins():
    # '바닐라 라떼'(긴 패턴)가 '라떼'(짧은 패턴)보다 먼저
    assert correct_speech_text("바닐라 라떼 하나") == "바닐라라떼 하나"
    assert correct_speech_text("마끼아또") == "카라멜 마키아토"
    assert correct_speech_text("카라멜마끼아또") == "카라멜 마키아토"


def test_correction_is_idempotent():
    once = correct_speech_text("라떼랑 바닐라 라테 그리고 마키아토")
    assert correct_speech_text(once) == once


def test_case_insensitive():
    c = SpeechCorrector([("ICE AMERICANO", "아이스 아메리카노")])
    assert c.correct("ice americano 주세요") == "아이스 아메리카노 주세요"


def test_same_length_keeps_declaration_order():
    c = SpeechCorrector([("ab", "X"), ("ab", "Y")])
    assert c.correct("ab") == "X"


def test_rules_sorted_longest_first():
    c = SpeechCorrector([("가", "A"), ("가나다", "B"), ("가나", "C")])
    lengths = [len(p) for p, _ in c.rules]
    assert lengths == sorted(lengths, reverse=True)
    assert c.correct("가나다") == "B"
    assert c.correct("가나") == "C"


def test_empty_text():
    assert correct_speech_text("") == ""
