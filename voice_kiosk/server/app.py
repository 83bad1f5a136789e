from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
from dataclasses import dataclass, field
from typing import Dict, List
import asyncio, logging, os, time, uuid

from openai import OpenAIError

from voice_kiosk.config import APP_VERSION, INTENT_SERVER_TIMEOUT, OPENAI_INTENT_MODEL
from voice_kiosk.dialogue.manager import VoiceOrderEngine
from voice_kiosk.intent.llm_classifier import IntentClassifierUnavailable, classify_with_llm
from voice_kiosk.intent.schema import IntentRequest
from voice_kiosk.intent.sources import build_primary_source
from voice_kiosk.logging_config import setup_logging
from voice_kiosk.menu.catalog import load_catalog
from voice_kiosk.order.queue import OrderQueue, QueuedOrder

logger = logging.getLogger(__name__)

app = FastAPI(title="Voice Kiosk Order API", version=APP_VERSION)

# ── 세션 ────────────────────────────────────────────────────────────────────────
SESSION_TTL = 600                          # 10분 지나면 세션 자체를 버림
ORDER_QUEUE = OrderQueue()


class CollectingSpeaker:
    """서버에서는 직접 말하지 않고, 말할 문장을 모아 응답으로 내려준다."""

    def __init__(self):
        self.pending: List[str] = []

    def speak(self, text: str) -> None:
        self.pending.append(text)

    def drain(self) -> List[str]:
        out, self.pending = self.pending, []
        return out


@dataclass
class Session:
    engine: VoiceOrderEngine
    speaker: CollectingSpeaker
    last_order: QueuedOrder | None = None
    last_active: float = field(default_factory=time.time)


SESSIONS: Dict[str, Session] = {}   # session_id -> Session


def _now() -> float:
    return time.time()


def _expired(sess: Session) -> bool:
    return (_now() - sess.last_active) > SESSION_TTL


def _new_session() -> Session:
    speaker = CollectingSpeaker()
    sess = Session(engine=None, speaker=speaker)  # engine 은 아래에서 연결

    def _on_confirmed(items):
        sess.last_order = ORDER_QUEUE.add_order(items)
        logger.info("[Session] 주문 번호 %d 발급", sess.last_order.order_number)

    sess.engine = VoiceOrderEngine(
        catalog=load_catalog(),
        speaker=speaker,
        primary_source=build_primary_source(load_catalog()),
        on_order_confirmed=_on_confirmed,
    )
    return sess


def _get_session(session_id: str) -> Session:
    sess = SESSIONS.get(session_id)
    if sess is None or _expired(sess):
        SESSIONS.pop(session_id, None)
        raise HTTPException(status_code=404, detail="세션 없음")
    sess.last_active = _now()
    sess.engine.expire_if_idle()
    return sess


def _session_response(sid: str, sess: Session, response_text: str | None) -> dict:
    last_order = sess.last_order
    sess.last_order = None
    return {
        "session_id": sid,
        "response_text": response_text,
        "spoken": sess.speaker.drain(),
        "order_number": last_order.order_number if last_order else None,
        "context": sess.engine.snapshot(),
    }


# ── 요청 모델 ───────────────────────────────────────────────────────────────────
class SessionIn(BaseModel):
    session_id: str


class SpeechIn(BaseModel):
    session_id: str
    transcript: str = ""
    is_final: bool = True


class TemperatureIn(BaseModel):
    session_id: str
    temperature: str


class StartOut(BaseModel):
    session_id: str
    response_text: str | None = None
    spoken: List[str] = []
    order_number: int | None = None
    context: dict | None = None


# ───────────────────────────────────────────────
# FastAPI 엔드포인트들
# ───────────────────────────────────────────────
@app.on_event("startup")
async def warmup():
    """메뉴 로드와 의도 분류 설정을 미리 확인."""
    setup_logging()
    catalog = load_catalog()
    logger.info("[Startup] 메뉴 설정 로드 완료 (메뉴 %d개)", len(catalog))
    primary = build_primary_source(catalog)
    if primary is None:
        logger.info("[Startup] 외부 의도 분류 없음 → 규칙 기반으로만 동작")
    else:
        logger.info("[Startup] 1순위 의도 분류: %s", primary.name)


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/version")
def version():
    return {"version": app.version, "intent_model": OPENAI_INTENT_MODEL}


@app.get("/config/menu")
def config_menu():
    return load_catalog().to_dict()


@app.post("/session/start", response_model=StartOut)
def session_start():
    sid = uuid.uuid4().hex
    sess = _new_session()
    SESSIONS[sid] = sess
    resp_text = sess.engine.greet()
    return _session_response(sid, sess, resp_text)


@app.post("/session/speech", response_model=StartOut)
async def session_speech(payload: SpeechIn):
    sess = _get_session(payload.session_id)
    resp_text = await sess.engine.handle_speech_result(payload.transcript, payload.is_final)
    return _session_response(payload.session_id, sess, resp_text)


@app.post("/session/temperature", response_model=StartOut)
def session_temperature(payload: TemperatureIn):
    sess = _get_session(payload.session_id)
    resp_text = sess.engine.handle_temperature_select(payload.temperature)
    return _session_response(payload.session_id, sess, resp_text)


@app.post("/session/tts-end")
def session_tts_end(payload: SessionIn):
    """프론트에서 TTS 재생이 끝났을 때 호출 (에코 판정 창 시작)."""
    sess = _get_session(payload.session_id)
    sess.engine.on_tts_end()
    return {"ok": True}


@app.post("/session/reset", response_model=StartOut)
def session_reset(payload: SessionIn):
    sess = _get_session(payload.session_id)
    sess.engine.reset()
    return _session_response(payload.session_id, sess, None)


@app.get("/session/state")
def session_state(session_id: str):
    sess = _get_session(session_id)
    return sess.engine.snapshot()


@app.get("/orders")
def orders():
    return {"orders": [o.to_dict() for o in ORDER_QUEUE.orders]}


@app.post("/orders/{order_number}/complete")
def complete_order(order_number: int):
    """픽업 완료된 주문을 대기열에서 뺀다."""
    if not ORDER_QUEUE.complete(order_number):
        raise HTTPException(status_code=404, detail="주문 없음")
    return {"ok": True}


@app.post("/api/intent")
async def api_intent(payload: IntentRequest):
    """
    서버 측 LLM 의도 분류 (API 키는 서버만 가진다).
    키오스크 클라이언트는 자체 타임아웃을 따로 건다.
    """
    transcript = (payload.transcript or "").strip()
    if not transcript:
        raise HTTPException(status_code=400, detail="transcript가 필요합니다.")
    try:
        intent = await asyncio.wait_for(
            asyncio.to_thread(
                classify_with_llm,
                transcript,
                payload.current_items,
                payload.pending_clarification,
            ),
            timeout=INTENT_SERVER_TIMEOUT,
        )
    except asyncio.TimeoutError:
        logger.warning("[api_intent] 타임아웃: %s", transcript)
        raise HTTPException(status_code=504, detail="의도 분류 시간 초과")
    except IntentClassifierUnavailable as e:
        logger.error("[api_intent] 설정 오류: %s", e)
        raise HTTPException(status_code=500, detail="의도 분류를 사용할 수 없습니다.")
    except OpenAIError as e:
        logger.error("[api_intent] 오류: %s", e)
        raise HTTPException(status_code=502, detail="의도 분류 실패")
    return intent.model_dump(by_alias=True, mode="json", exclude={"unmatched"})


def main() -> None:
    import uvicorn

    setup_logging()
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    logger.info("[Server] %s:%d 에서 시작", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
