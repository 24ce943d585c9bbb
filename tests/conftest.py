"""
テスト設定ファイル
"""

from typing import Dict, Iterable, Optional

import pytest

from clip_translator.core.settings_manager import SettingsManager
from clip_translator.core.translate.context import TranslationContext


class FakeClock:
    """手動で進める時計"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0):
        self.now += minutes * 60 + seconds


class FakeDetector:
    """テキストと言語コードの対応表で検出結果を返す検出器"""

    def __init__(self, mapping: Optional[Dict[str, Optional[str]]] = None):
        self.mapping = dict(mapping or {})
        self.calls = []

    def detect(self, text: str, hint_languages: Optional[Iterable[str]] = None) -> Optional[str]:
        self.calls.append((text, list(hint_languages or [])))
        return self.mapping.get(text)


@pytest.fixture
def clock():
    """テスト用の時計"""
    return FakeClock()


@pytest.fixture
def context(clock):
    """母国語ru・既定外国語enのコンテキスト"""
    return TranslationContext(
        primary_language="ru",
        default_foreign_language="en",
        timeout_minutes=60,
        clock=clock,
    )


@pytest.fixture
def fake_detector():
    return FakeDetector({
        "Hello world": "en",
        "Hello": "en",
        "Guten Tag": "de",
        "Привет": "ru",
        "Привет, мир": "ru",
    })


@pytest.fixture
def settings_manager(tmp_path):
    """一時ディレクトリを使う設定マネージャー"""
    return SettingsManager(tmp_path / "clip-translator" / "settings.json")
