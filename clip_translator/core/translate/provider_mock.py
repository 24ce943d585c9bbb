"""
モック翻訳プロバイダの実装
ネットワーク不要でテスト・デモ用途に使用
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..error_handler import TranslationErrorType, TranslationProviderError
from ..models import AUTO_LANGUAGE
from .provider_base import (
    DEFAULT_LANGUAGES,
    ConnectionTestResult,
    Language,
    ProviderResult,
    TranslationProvider,
    ValidationResult,
)


@dataclass
class MockTranslateSettings:
    """モック翻訳設定"""
    delay_ms: int = 0  # 翻訳時の遅延（ミリ秒）
    add_prefix: bool = True  # 辞書にない場合に言語プレフィックスを付けるか


class MockTranslateError(TranslationProviderError):
    """モック翻訳関連エラー"""
    pass


class MockTranslateProvider(TranslationProvider):
    """モック翻訳プロバイダ（認証不要）"""

    name = "mock"

    # キーは小文字で照合する
    translation_dict = {
        "ru": {
            "hello": "Привет",
            "hello world": "Привет, мир",
            "goodbye": "До свидания",
            "thank you": "Спасибо",
            "good morning": "Доброе утро",
            "good night": "Спокойной ночи",
            "how are you?": "Как дела?",
        },
        "en": {
            "привет": "Hello",
            "привет, мир": "Hello, world",
            "до свидания": "Goodbye",
            "спасибо": "Thank you",
            "доброе утро": "Good morning",
            "спокойной ночи": "Good night",
            "как дела?": "How are you?",
            "hallo": "Hello",
            "danke": "Thank you",
            "bonjour": "Hello",
            "merci": "Thank you",
        },
        "de": {
            "hello": "Hallo",
            "thank you": "Danke",
            "привет": "Hallo",
            "спасибо": "Danke",
        },
    }

    def __init__(self, settings: Optional[MockTranslateSettings] = None):
        super().__init__()
        self.settings = settings or MockTranslateSettings()
        self.call_count = 0

    def initialize(self, api_key: Optional[str]) -> None:
        """初期化"""
        self.api_key = api_key
        self.is_initialized = True
        logging.info("モック翻訳プロバイダの初期化が完了しました")

    def translate(self, text: str, source_language: str, target_language: str) -> ProviderResult:
        """翻訳実行"""
        self._require_initialized()

        if not text or not text.strip():
            raise MockTranslateError(
                "翻訳するテキストが空です",
                TranslationErrorType.INVALID_REQUEST,
            )

        self.call_count += 1

        # 実際のAPI遅延を模擬
        if self.settings.delay_ms > 0:
            time.sleep(self.settings.delay_ms / 1000.0)

        is_auto = not source_language or source_language == AUTO_LANGUAGE
        resolved_source = self.detect_language(text) if is_auto else source_language

        translated_text = self._translate_single(text, target_language)

        return ProviderResult(
            text=translated_text,
            source_language=resolved_source,
            target_language=target_language,
            provider=self.name,
            detected_language=resolved_source if is_auto else None,
            confidence=0.9 if is_auto else None,
        )

    def _translate_single(self, text: str, target_language: str) -> str:
        """単一テキストの翻訳"""
        target_dict = self.translation_dict.get(target_language, {})
        key = text.strip().lower()

        # 辞書に完全一致があればそれを使用
        if key in target_dict:
            return target_dict[key]

        # 辞書にない場合の汎用翻訳
        if self.settings.add_prefix:
            return f"[{target_language.upper()}] {text}"
        return self._reverse_words(text)

    def _reverse_words(self, text: str) -> str:
        return " ".join(word[::-1] for word in text.split(" "))

    def detect_language(self, text: str) -> str:
        """文字種による簡易的な言語判定"""
        lowered = text.lower()

        if re.search(r"[а-яё]", lowered):
            return "ru"
        if re.search(r"[ぁ-んァ-ン]", text):
            return "ja"
        if re.search(r"[가-힣]", text):
            return "ko"
        if re.search(r"[一-龯]", text):
            return "zh"
        if re.search(r"[a-z]", lowered):
            if re.search(r"\b(der|das|die|und|hallo|danke)\b", lowered):
                return "de"
            if re.search(r"\b(le|les|une|bonjour|merci)\b", lowered):
                return "fr"
            if re.search(r"\b(el|los|una|hola|gracias)\b", lowered):
                return "es"
        return "en"

    def get_supported_languages(self) -> List[Language]:
        """サポートされている言語の一覧を取得"""
        return list(DEFAULT_LANGUAGES)

    def test_connection(self) -> ConnectionTestResult:
        if not self.api_key:
            return ConnectionTestResult(success=False, message="APIキーが指定されていません")

        return ConnectionTestResult(
            success=True,
            message="モックプロバイダは利用可能です",
            response_time_ms=self.settings.delay_ms,
            details={
                "provider": "Mock Translator",
                "mode": "test",
                "languages": len(DEFAULT_LANGUAGES),
            },
        )

    def validate_api_key(self, api_key: str) -> ValidationResult:
        # 実際の検証は行わないが、最低限の長さは確認する
        valid = bool(api_key) and len(api_key) >= 5
        return ValidationResult(
            valid=valid,
            message="APIキーは有効です" if valid else "APIキーは5文字以上で指定してください",
            details={"provider": "Mock Translator", "validation": "simulated"},
        )
