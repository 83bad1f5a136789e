# tests/test_server.py
import pytest

from voice_kiosk.dialogue import prompts as P
from voice_kiosk.intent.llm_classifier import IntentClassifierUnavailable
from voice_kiosk.intent.schema import IntentType, OrderIntent, OrderItemIntent
from voice_kiosk.menu.catalog import Temperature
from voice_kiosk.server import app as server


@pytest.fixture(autouse=True)
def rule_only(monkeypatch):
    # 테스트 세션은 외부 의도 분류 없이 규칙 기반으로만
    monkeypatch.setattr(server, "build_primary_source", lambda *a, **k: None)


def _start(client):
    r = client.post("/session/start")
    assert r.status_code == 200
    return r.json()


def _speech(client, sid, text, is_final=True):
    r = client.post("/session/speech", json={"session_id": sid, "transcript": text, "is_final": is_final})
    assert r.status_code == 200
    return r.json()


def test_session_start_greets(client):
    data = _start(client)
    assert data["session_id"]
    assert data["response_text"] == P.GREETING
    assert data["spoken"] == [P.GREETING]
    assert data["context"]["mode"] == "IDLE"


def test_speech_adds_order(client):
    sid = _start(client)["session_id"]
    data = _speech(client, sid, "아이스 아메리카노 두 잔 주세요")
    assert data["response_text"] == "아이스 아메리카노 2잔 추가했어요. 더 필요하신 게 있으신가요?"
    assert data["spoken"] == [data["response_text"]]
    order = data["context"]["order"]
    assert order["count"] == 2
    assert order["total"] == 9000


def test_interim_speech_has_no_response(client):
    sid = _start(client)["session_id"]
    data = _speech(client, sid, "아메리", is_final=False)
    assert data["response_text"] is None
    assert data["spoken"] == []


def test_temperature_button_flow(client):
    sid = _start(client)["session_id"]
    data = _speech(client, sid, "카페라떼 주세요")
    assert data["context"]["mode"] == "AWAITING_TEMPERATURE"

    r = client.post("/session/tts-end", json={"session_id": sid})
    assert r.json() == {"ok": True}

    r = client.post("/session/temperature", json={"session_id": sid, "temperature": "hot"})
    assert r.status_code == 200
    data = r.json()
    assert data["response_text"] == "따뜻한 카페라떼 1잔 추가했어요. 더 필요하신 게 있으신가요?"
    assert data["context"]["order"]["items"][0]["temperature"] == "HOT"

    state = client.get("/session/state", params={"session_id": sid}).json()
    assert state["mode"] == "IDLE"


def test_confirm_issues_order_number(client):
    sid = _start(client)["session_id"]
    _speech(client, sid, "크루아상 하나 주세요")
    data = _speech(client, sid, "이대로 주문할게요")
    assert data["response_text"] == P.ORDER_COMPLETED
    number = data["order_number"]
    assert 1001 <= number <= 9999

    orders = client.get("/orders").json()["orders"]
    assert number in [o["order_number"] for o in orders]

    assert client.post(f"/orders/{number}/complete").json() == {"ok": True}
    assert client.post(f"/orders/{number}/complete").status_code == 404


def test_reset_clears_order(client):
    sid = _start(client)["session_id"]
    _speech(client, sid, "크루아상 하나 주세요")
    r = client.post("/session/reset", json={"session_id": sid})
    assert r.status_code == 200
    assert r.json()["context"]["order"]["items"] == []


def test_unknown_session(client):
    r = client.post("/session/speech", json={"session_id": "nope", "transcript": "아메리카노"})
    assert r.status_code == 404
    assert client.get("/session/state", params={"session_id": "nope"}).status_code == 404


# ───────────────────────────────────────────────
# /api/intent
# ───────────────────────────────────────────────
def test_api_intent_requires_transcript(client):
    r = client.post("/api/intent", json={"transcript": "   "})
    assert r.status_code == 400


def test_api_intent_without_key(client, monkeypatch):
    def unavailable(*args, **kwargs):
        raise IntentClassifierUnavailable("OPENAI_API_KEY missing")

    monkeypatch.setattr(server, "classify_with_llm", unavailable)
    r = client.post("/api/intent", json={"transcript": "아메리카노 주세요"})
    assert r.status_code == 500


def test_api_intent_returns_camel_case(client, monkeypatch):
    seen = {}

    def fake_classify(transcript, current_items, pending):
        seen["transcript"] = transcript
        seen["current_items"] = current_items
        return OrderIntent(
            type=IntentType.ADD_ITEM,
            items=[OrderItemIntent(menu_id="americano", menu_name="아메리카노",
                                   temperature=Temperature.ICE, quantity=2)],
            confidence=0.9,
        )

    monkeypatch.setattr(server, "classify_with_llm", fake_classify)
    r = client.post("/api/intent", json={
        "transcript": "아이스 아메리카노 두 잔",
        "currentItems": [{"name": "카페라떼", "temperature": "HOT", "quantity": 1}],
        "pendingClarification": None,
    })
    assert r.status_code == 200
    body = r.json()
    assert body["type"] == "ADD_ITEM"
    assert body["items"][0]["menuId"] == "americano"
    assert body["items"][0]["temperature"] == "ICE"
    assert "unmatched" not in body
    assert seen["transcript"] == "아이스 아메리카노 두 잔"
    assert seen["current_items"][0].name == "카페라떼"
