import os
import sys

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

import pytest
from fastapi.testclient import TestClient

from voice_kiosk.dialogue.manager import VoiceOrderEngine
from voice_kiosk.menu.catalog import load_catalog
from voice_kiosk.server.app import app


class FakeClock:
    """테스트용 시계 (초 단위). advance 로만 흐른다."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSpeaker:
    def __init__(self):
        self.spoken = []

    def speak(self, text: str) -> None:
        self.spoken.append(text)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def catalog():
    return load_catalog()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def speaker():
    return RecordingSpeaker()


@pytest.fixture
def engine(catalog, clock, speaker):
    return VoiceOrderEngine(catalog=catalog, speaker=speaker, clock=clock)
