# voice_kiosk/logging_config.py
import logging
import os
import sys

_NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def setup_logging(level: str | None = None) -> None:
    """서버/콘솔 시작 시 한 번. level 이 없으면 LOG_LEVEL 환경변수 (기본 INFO)."""
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        name, numeric = "INFO", logging.INFO

    logging.basicConfig(
        level=numeric,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("voice_kiosk").setLevel(numeric)
    # OpenAI 호출 로그는 DEBUG 에서만
    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.NOTSET if numeric <= logging.DEBUG else logging.WARNING)
    logging.getLogger(__name__).debug("[Logging] %s 레벨로 설정", name)
