# voice_kiosk/pipeline/pipeline_console.py
"""
음성인식 시뮬레이터: 키보드로 입력한 문장을 STT 최종 결과처럼 엔진에 넣는다.

  /hot, /ice   화면 온도 버튼
  /state       현재 주문/대기열 출력
  exit, 종료   끝내기
"""
from __future__ import annotations

import asyncio
from typing import Callable, Iterable, List

from voice_kiosk.dialogue.manager import VoiceOrderEngine
from voice_kiosk.intent.sources import build_primary_source
from voice_kiosk.logging_config import setup_logging
from voice_kiosk.menu.catalog import Temperature, load_catalog

EXIT_WORDS = ("exit", "종료", "quit")


class PrintSpeaker:
    def __init__(self, out: Callable[[str], None] = print):
        self.out = out

    def speak(self, text: str) -> None:
        self.out(f"🤖 키오스크: {text}")


def _format_state(engine: VoiceOrderEngine) -> str:
    snap = engine.snapshot()
    lines = [f"[상태] {snap['mode']}"]
    for it in snap["order"]["items"]:
        lines.append(f"  - {it['name']} {it['temperature'] or ''} x{it['quantity']} = {it['total_price']}원")
    lines.append(f"  합계: {snap['order']['total']}원")
    for p in snap["pending"]:
        lines.append(f"  ? {p['name']} ({p['reason']})")
    return "\n".join(lines)


async def run_lines(engine: VoiceOrderEngine, lines: Iterable[str],
                    out: Callable[[str], None] = print) -> List[str]:
    """입력 줄들을 차례로 처리하고, 엔진이 말한 응답 목록을 돌려준다."""
    responses: List[str] = []
    for line in lines:
        user = line.strip()
        if not user:
            continue
        if user.lower() in EXIT_WORDS:
            out("🛑 종료합니다.")
            break

        if user in ("/hot", "/ice"):
            resp = engine.handle_temperature_select(Temperature.HOT if user == "/hot" else Temperature.ICE)
        elif user == "/state":
            out(_format_state(engine))
            continue
        else:
            resp = await engine.handle_speech_result(user, True)

        # 실제 TTS 가 없으므로 바로 재생 종료로 처리
        engine.on_tts_end()
        if resp:
            responses.append(resp)
    return responses


def _stdin_lines():
    while True:
        try:
            yield input("👤 사용자: ")
        except EOFError:
            return


def main() -> None:
    setup_logging()
    catalog = load_catalog()
    engine = VoiceOrderEngine(
        catalog=catalog,
        speaker=PrintSpeaker(),
        primary_source=build_primary_source(catalog),
    )
    print("🗣️  음성인식 시뮬레이터 (텍스트로 대화하세요)")
    print("종료하려면 'exit' 또는 '종료' 입력, 온도 버튼은 /hot /ice\n")
    engine.greet()
    asyncio.run(run_lines(engine, _stdin_lines()))


if __name__ == "__main__":
    main()
