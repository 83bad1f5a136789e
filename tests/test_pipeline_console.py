# tests/test_pipeline_console.py
import asyncio

from voice_kiosk.dialogue import prompts as P
from voice_kiosk.dialogue.manager import VoiceOrderEngine
from voice_kiosk.pipeline.pipeline_console import PrintSpeaker, run_lines


def test_run_lines(catalog, clock):
    printed = []
    engine = VoiceOrderEngine(catalog=catalog, speaker=PrintSpeaker(printed.append), clock=clock)
    lines = ["카페라떼 주세요", "/state", "/ice", "", "이대로 주문할게요", "exit", "아메리카노 주세요"]

    responses = asyncio.run(run_lines(engine, lines, out=printed.append))

    assert responses == [
        "카페라떼 온도를 선택해주세요. 따뜻하게 또는 차갑게라고 말씀해주세요.",
        "아이스 카페라떼 1잔 추가했어요. 더 필요하신 게 있으신가요?",
        P.ORDER_COMPLETED,
    ]
    assert any(line.startswith("[상태] AWAITING_TEMPERATURE") for line in printed)
    assert printed[-1] == "🛑 종료합니다."
