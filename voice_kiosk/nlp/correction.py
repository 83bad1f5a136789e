# voice_kiosk/nlp/correction.py
"""
STT 오인식 보정.

(잘못 들린 표현, 정식 표현) 목록을 한 번의 치환으로 적용한다.

우선순위 규칙:
  1. 긴 패턴이 먼저 시도된다. 같은 위치에서 더 긴 표현이 이긴다.
  2. 길이가 같으면 목록에 먼저 적힌 패턴이 이긴다.
  3. 메뉴 정식 이름(보호 표현)은 자기 자신으로 치환되는 규칙으로 함께 들어간다.
     그래서 '바닐라라떼' 안의 '라떼'가 '카페라떼'로 바뀌지 않는다.
  4. 치환 결과는 다시 검사하지 않는다. 같은 문장에 두 번 적용해도 결과가 같다.
"""
from __future__ import annotations

import re
from functools import lru_cache
from typing import Dict, Iterable, List, Tuple

from voice_kiosk.menu.catalog import load_catalog

SPEECH_CORRECTIONS: List[Tuple[str, str]] = [
    # 콜드브루
    ("콜드 보러", "콜드브루"),
    ("콜드보러", "콜드브루"),
    ("콜드브로", "콜드브루"),
    ("콜드 브로", "콜드브루"),
    ("콜드 브루", "콜드브루"),
    ("콜브루", "콜드브루"),
    ("콜드 부루", "콜드브루"),
    ("콜드부루", "콜드브루"),
    ("콜브로", "콜드브루"),
    ("콜드 불루", "콜드브루"),
    # 아메리카노
    ("아메리카나", "아메리카노"),
    ("아멜리카노", "아메리카노"),
    ("아메리까노", "아메리카노"),
    ("어메리카노", "아메리카노"),
    ("아메라카노", "아메리카노"),
    # 카페라떼
    ("라떼", "카페라떼"),
    ("라테", "카페라떼"),
    ("카페라테", "카페라떼"),
    ("카폐라떼", "카페라떼"),
    ("까페라떼", "카페라떼"),
    ("카페 라떼", "카페라떼"),
    ("카페 라테", "카페라떼"),
    ("카폐라테", "카페라떼"),
    # 바닐라라떼
    ("바닐라라테", "바닐라라떼"),
    ("바닐라 라떼", "바닐라라떼"),
    ("바닐라 라테", "바닐라라떼"),
    ("바닐라떼", "바닐라라떼"),
    ("바닐라레떼", "바닐라라떼"),
    # 카라멜 마키아토
    ("카라멜마키아토", "카라멜 마키아토"),
    ("카라멜 마끼아또", "카라멜 마키아토"),
    ("카라멜마끼아또", "카라멜 마키아토"),
    ("캬라멜 마키아토", "카라멜 마키아토"),
    ("카라맬 마키아토", "카라멜 마키아토"),
    ("마끼아또", "카라멜 마키아토"),
    ("마키아토", "카라멜 마키아토"),
    ("마키아또", "카라멜 마키아토"),
    ("마끼아토", "카라멜 마키아토"),
    # 헤이즐넛라떼
    ("헤이즐넛라테", "헤이즐넛라떼"),
    ("헤이즐넛 라떼", "헤이즐넛라떼"),
    ("헤이즐렛 라떼", "헤이즐넛라떼"),
    ("헤즐넛라떼", "헤이즐넛라떼"),
    ("헤이즐럿라떼", "헤이즐넛라떼"),
    # 카푸치노
    ("카프치노", "카푸치노"),
    ("까푸치노", "카푸치노"),
    ("카푸지노", "카푸치노"),
    ("카푸찌노", "카푸치노"),
    ("카프찌노", "카푸치노"),
    # 에스프레소
    ("에스프레쏘", "에스프레소"),
    ("에스프래소", "에스프레소"),
    ("에스프레소오", "에스프레소"),
    ("엑스프레소", "에스프레소"),
    # 녹차/초코/말차/딸기/펌킨 라떼
    ("녹차라테", "녹차라떼"),
    ("녹차 라떼", "녹차라떼"),
    ("녹차 라테", "녹차라떼"),
    ("녹찰라떼", "녹차라떼"),
    ("초코라테", "초코라떼"),
    ("초코 라떼", "초코라떼"),
    ("초코 라테", "초코라떼"),
    ("초콜릿 라떼", "초코라떼"),
    ("초콜릿라떼", "초코라떼"),
    ("말차라테", "말차라떼"),
    ("말차 라떼", "말차라떼"),
    ("딸기라테", "딸기라떼"),
    ("딸기 라떼", "딸기라떼"),
    ("펌킨라테", "펌킨라떼"),
    ("펌킨 라떼", "펌킨라떼"),
    ("밀크 티", "밀크티"),
    # 메뉴에 없는 음료도 정식 이름으로 맞춰 "메뉴에 없어요" 안내에 쓴다
    ("유자 차", "유자차"),
    ("유자쨔", "유자차"),
    ("딸기스무디", "딸기 스무디"),
    ("딸기 쓰무디", "딸기 스무디"),
    ("딸기쓰무디", "딸기 스무디"),
    ("망고스무디", "망고 스무디"),
    ("망고 쓰무디", "망고 스무디"),
    ("망고쓰무디", "망고 스무디"),
    ("크로푸", "크로플"),
    ("크로풀", "크로플"),
    ("크로플르", "크로플"),
    # 디저트
    ("티라미슈", "티라미수"),
    ("티라미쑤", "티라미수"),
    ("티라미스", "티라미수"),
    ("치즈 케이크", "치즈케이크"),
    ("치즈게이크", "치즈케이크"),
    ("치즈게익", "치즈케이크"),
    ("크로와상", "크루아상"),
    ("크로아상", "크루아상"),
    ("크루아쌍", "크루아상"),
]


class SpeechCorrector:
    def __init__(
        self,
        corrections: Iterable[Tuple[str, str]] = SPEECH_CORRECTIONS,
        protected: Iterable[str] = (),
    ):
        corrections = list(corrections)
        rules: Dict[str, str] = {}
        # 보호 표현과 정식 표현은 자기 자신으로 치환
        for phrase in protected:
            rules.setdefault(phrase.lower(), phrase)
        for pattern, canonical in corrections:
            rules.setdefault(pattern.lower(), canonical)
        for _, canonical in corrections:
            rules.setdefault(canonical.lower(), canonical)

        # sorted는 안정 정렬이므로 길이가 같으면 선언 순서가 유지된다
        self.rules: List[Tuple[str, str]] = sorted(rules.items(), key=lambda kv: -len(kv[0]))
        self._lookup = dict(self.rules)
        self._pattern = re.compile(
            "|".join(re.escape(p) for p, _ in self.rules if p),
            re.IGNORECASE,
        )

    def correct(self, text: str) -> str:
        if not text:
            return ""
        return self._pattern.sub(lambda m: self._lookup[m.group(0).lower()], text)


@lru_cache(maxsize=1)
def default_corrector() -> SpeechCorrector:
    return SpeechCorrector(protected=[it.name for it in load_catalog()])


def correct_speech_text(text: str) -> str:
    """기본 메뉴 기준 보정. 원문은 호출자가 따로 보관한다."""
    return default_corrector().correct(text)
