# tests/test_dialogue_flow.py
import asyncio

from voice_kiosk.dialogue import prompts as P
from voice_kiosk.dialogue.manager import VoiceOrderEngine
from voice_kiosk.dialogue.state import DialogueMode
from voice_kiosk.menu.catalog import Temperature

LATTE_QUESTION = "카페라떼 온도를 선택해주세요. 따뜻하게 또는 차갑게라고 말씀해주세요."


def say(engine, clock, text, is_final=True):
    """직전 응답의 TTS 가 끝나고 1초 뒤에 말한 것으로 처리."""
    engine.on_tts_end()
    clock.advance(1.0)
    return asyncio.run(engine.handle_speech_result(text, is_final))


def order_lines(engine):
    return [(it.menu_id, it.temperature, it.quantity) for it in engine.store.items]


# ───────────────────────────────────────────────
# 바로 담기는 주문
# ───────────────────────────────────────────────
def test_resolved_order_is_added(engine, clock, speaker):
    resp = say(engine, clock, "아이스 아메리카노 두 잔 주세요")
    assert resp == "아이스 아메리카노 2잔 추가했어요. 더 필요하신 게 있으신가요?"
    assert order_lines(engine) == [("americano", Temperature.ICE, 2)]
    assert engine.mode is DialogueMode.IDLE
    assert speaker.spoken == [resp]


# ───────────────────────────────────────────────
# 온도 확인
# ───────────────────────────────────────────────
def test_missing_temperature_then_answer(engine, clock):
    assert say(engine, clock, "카페라떼 주세요") == LATTE_QUESTION
    assert engine.mode is DialogueMode.AWAITING_TEMPERATURE
    assert engine.store.items == []
    assert engine.snapshot()["pending"][0]["reason"] == "needs_temperature"

    resp = say(engine, clock, "따뜻하게")
    assert resp == "따뜻한 카페라떼 1잔 추가했어요. 더 필요하신 게 있으신가요?"
    assert order_lines(engine) == [("cafe-latte", Temperature.HOT, 1)]
    assert engine.mode is DialogueMode.IDLE


def test_pending_items_asked_in_order(engine, clock):
    assert say(engine, clock, "카페라떼랑 녹차라떼 주세요") == LATTE_QUESTION
    assert say(engine, clock, "아이스") == "녹차라떼 온도를 선택해주세요. 따뜻하게 또는 차갑게라고 말씀해주세요."
    resp = say(engine, clock, "따뜻하게")
    assert resp == "아이스 카페라떼 1잔, 따뜻한 녹차라떼 1잔 추가했어요. 더 필요하신 게 있으신가요?"
    assert order_lines(engine) == [
        ("cafe-latte", Temperature.ICE, 1),
        ("green-tea-latte", Temperature.HOT, 1),
    ]


def test_resolved_items_reported_after_clarification(engine, clock):
    assert say(engine, clock, "아이스 아메리카노 2잔 카페라떼 1잔") == LATTE_QUESTION
    # 확인이 필요 없는 항목은 이미 담겨 있다
    assert order_lines(engine) == [("americano", Temperature.ICE, 2)]
    resp = say(engine, clock, "차갑게")
    assert resp == "아이스 아메리카노 2잔, 아이스 카페라떼 1잔 추가했어요. 더 필요하신 게 있으신가요?"


def test_new_item_during_clarification(engine, clock):
    say(engine, clock, "카페라떼 주세요")
    resp = say(engine, clock, "아이스 아메리카노도 하나 주세요")
    assert resp == f"알겠어요. 그 전에 {LATTE_QUESTION}"
    assert order_lines(engine) == [("americano", Temperature.ICE, 1)]
    assert engine.mode is DialogueMode.AWAITING_TEMPERATURE

    resp = say(engine, clock, "따뜻하게요")
    assert resp == "아이스 아메리카노 1잔, 따뜻한 카페라떼 1잔 추가했어요. 더 필요하신 게 있으신가요?"


def test_pending_item_named_again_with_new_item(engine, clock):
    say(engine, clock, "카페라떼 주세요")
    resp = say(engine, clock, "카페라떼 따뜻하게 그리고 아이스 아메리카노")
    # 카페라떼는 이 대답으로 확정되고 대기열에 다시 들어가지 않는다
    assert resp == "아이스 아메리카노 1잔, 따뜻한 카페라떼 1잔 추가했어요. 더 필요하신 게 있으신가요?"
    assert engine.snapshot()["pending"] == []
    assert engine.mode is DialogueMode.IDLE
    assert order_lines(engine) == [
        ("americano", Temperature.ICE, 1),
        ("cafe-latte", Temperature.HOT, 1),
    ]


def test_pending_item_named_again_without_temperature(engine, clock):
    say(engine, clock, "카페라떼 주세요")
    resp = say(engine, clock, "카페라떼랑 녹차라떼 주세요")
    assert resp == f"알겠어요. 그 전에 {LATTE_QUESTION}"
    assert [p["menu_id"] for p in engine.snapshot()["pending"]] == ["cafe-latte", "green-tea-latte"]
    assert engine.store.items == []

    say(engine, clock, "아이스")
    say(engine, clock, "따뜻하게")
    assert order_lines(engine) == [
        ("cafe-latte", Temperature.ICE, 1),
        ("green-tea-latte", Temperature.HOT, 1),
    ]


def test_unavailable_temperature_accept_with_yes(engine, clock):
    assert say(engine, clock, "따뜻한 콜드브루 주세요") == "콜드브루는 핫이 없어요. 아이스로 드릴까요?"
    resp = say(engine, clock, "네")
    assert resp == "아이스 콜드브루 1잔 추가했어요. 더 필요하신 게 있으신가요?"
    assert order_lines(engine) == [("cold-brew", Temperature.ICE, 1)]


def test_unavailable_temperature_rejected(engine, clock):
    say(engine, clock, "따뜻한 콜드브루 주세요")
    resp = say(engine, clock, "아니요")
    assert resp == f"콜드브루는 주문에서 뺐어요. {P.ASK_OTHER_MENU}"
    assert engine.store.items == []
    assert engine.mode is DialogueMode.IDLE


def test_temperature_button(engine, clock):
    say(engine, clock, "따뜻한 콜드브루 주세요")
    resp = engine.handle_temperature_select("HOT")
    assert resp == "콜드브루는 핫이 없어요. 아이스만 가능해요. 아이스로 드릴까요?"
    assert engine.mode is DialogueMode.AWAITING_TEMPERATURE

    resp = engine.handle_temperature_select(Temperature.ICE)
    assert resp == "아이스 콜드브루 1잔 추가했어요. 더 필요하신 게 있으신가요?"
    # 확인할 것이 없으면 버튼은 무시
    assert engine.handle_temperature_select("ICE") is None


def test_yes_alone_does_not_pick_temperature(engine, clock):
    say(engine, clock, "카페라떼 주세요")
    assert say(engine, clock, "네") == LATTE_QUESTION
    assert engine.store.items == []


def test_unrelated_reply_while_awaiting(engine, clock):
    say(engine, clock, "카페라떼 주세요")
    assert say(engine, clock, "오늘 날씨 어때요?") == f"{P.ORDER_ONLY} {LATTE_QUESTION}"


# ───────────────────────────────────────────────
# 주문과 무관한 말
# ───────────────────────────────────────────────
def test_out_of_domain(engine, clock):
    assert say(engine, clock, "오늘 날씨 어때요?") == P.ORDER_ONLY
    assert engine.store.items == []


def test_unknown_menu_with_order_cue(engine, clock):
    resp = say(engine, clock, "유자차 하나 주세요")
    assert resp == P.not_found(["유자차 하나 주세요"])
    assert engine.store.items == []


def test_bare_yes_in_idle_asks_menu(engine, clock):
    assert say(engine, clock, "네") == P.ASK_MENU


# ───────────────────────────────────────────────
# 주문 확정
# ───────────────────────────────────────────────
def test_confirm_without_items(engine, clock):
    assert say(engine, clock, "주문할게요") == P.NO_ITEMS_YET


def test_confirm_blocked_while_pending(engine, clock):
    say(engine, clock, "카페라떼 주세요")
    resp = say(engine, clock, "이대로 주문할게요")
    assert resp == "먼저 카페라떼의 온도를 선택해주세요. 따뜻하게 또는 차갑게라고 말씀해주세요."
    assert engine.mode is DialogueMode.AWAITING_TEMPERATURE


def test_confirm_order(catalog, clock, speaker):
    confirmed = []
    engine = VoiceOrderEngine(catalog=catalog, speaker=speaker, clock=clock,
                              on_order_confirmed=confirmed.append)
    say(engine, clock, "아이스 아메리카노 두 잔 주세요")
    assert say(engine, clock, "이대로 주문할게요") == P.ORDER_COMPLETED

    assert len(confirmed) == 1
    assert [(it.menu_id, it.quantity) for it in confirmed[0]] == [("americano", 2)]
    assert engine.store.items == []
    # 확정 후 대화 기록은 완료 안내만 남는다
    assert [m.content for m in engine.chat.messages] == [P.ORDER_COMPLETED]


def test_quantity_five_is_not_confirmation(engine, clock):
    resp = say(engine, clock, "아메리카노 다섯 잔 주세요")
    assert resp == "아메리카노 5잔 온도를 선택해주세요. 따뜻하게 또는 차갑게라고 말씀해주세요."


# ───────────────────────────────────────────────
# STT 입력 처리
# ───────────────────────────────────────────────
def test_interim_updates_preview_only(engine, clock):
    assert say(engine, clock, "아메리", is_final=False) is None
    assert say(engine, clock, "아메리카노 아이스", is_final=False) is None
    interim = [m for m in engine.chat.messages if m.is_interim]
    assert [m.content for m in interim] == ["아메리카노 아이스"]
    assert engine.store.items == []

    say(engine, clock, "아메리카노 아이스로 주세요")
    assert not any(m.is_interim for m in engine.chat.messages)
    assert engine.chat.messages[0].content == "아메리카노 아이스로 주세요"
    assert order_lines(engine) == [("americano", Temperature.ICE, 1)]


def test_echo_of_own_prompt_is_ignored(engine, speaker):
    engine.greet()
    resp = asyncio.run(engine.handle_speech_result("어서오세요 주문하실 메뉴를 말씀해주세요", True))
    assert resp is None
    assert speaker.spoken == [P.GREETING]
    assert [m.role for m in engine.chat.messages] == ["assistant"]


class SlowSource:
    name = "slow"

    def __init__(self):
        self.release = asyncio.Event()

    async def classify(self, transcript, context):
        await self.release.wait()
        return None


def test_speech_ignored_while_processing(catalog, clock, speaker):
    async def scenario():
        slow = SlowSource()
        engine = VoiceOrderEngine(catalog=catalog, speaker=speaker, clock=clock, primary_source=slow)
        first = asyncio.create_task(engine.handle_speech_result("아이스 아메리카노 주세요", True))
        await asyncio.sleep(0)
        assert engine.is_busy
        assert await engine.handle_speech_result("카페라떼 주세요", True) is None
        slow.release.set()
        return engine, await first

    engine, resp = asyncio.run(scenario())
    # 1순위 소스가 None 이면 규칙 기반으로 해석
    assert resp == "아이스 아메리카노 1잔 추가했어요. 더 필요하신 게 있으신가요?"
    assert not engine.is_busy
    assert order_lines(engine) == [("americano", Temperature.ICE, 1)]


# ───────────────────────────────────────────────
# 세션 초기화
# ───────────────────────────────────────────────
def test_expire_if_idle(engine, clock):
    say(engine, clock, "카페라떼 주세요")
    clock.advance(10)
    assert engine.expire_if_idle() is False
    clock.advance(40)
    assert engine.expire_if_idle() is True
    assert engine.mode is DialogueMode.IDLE
    assert engine.chat.messages == []


def test_reset_keeps_order_when_asked(engine, clock):
    say(engine, clock, "아이스 아메리카노 주세요")
    say(engine, clock, "카페라떼 주세요")
    engine.reset(clear_order=False)
    assert engine.mode is DialogueMode.IDLE
    assert order_lines(engine) == [("americano", Temperature.ICE, 1)]
