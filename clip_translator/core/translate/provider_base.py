"""
翻訳プロバイダの共通インターフェース
すべてのプロバイダはTranslationProviderを継承する
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..error_handler import TranslationErrorType, TranslationProviderError


@dataclass
class ProviderResult:
    """プロバイダの翻訳結果"""
    text: str
    source_language: str
    target_language: str
    provider: str
    detected_language: Optional[str] = None
    confidence: Optional[float] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class Language:
    """サポート言語"""
    code: str
    name: str
    native_name: Optional[str] = None
    direction: str = "ltr"


@dataclass
class ConnectionTestResult:
    """接続テスト結果"""
    success: bool
    message: str
    response_time_ms: int = 0
    details: Optional[Dict[str, Any]] = None


@dataclass
class ValidationResult:
    """APIキー検証結果"""
    valid: bool
    message: str
    details: Optional[Dict[str, Any]] = None


# プロバイダが言語一覧を取得できない場合の既定リスト
DEFAULT_LANGUAGES = [
    Language("en", "English", "English"),
    Language("ru", "Russian", "Русский"),
    Language("es", "Spanish", "Español"),
    Language("fr", "French", "Français"),
    Language("de", "German", "Deutsch"),
    Language("zh", "Chinese", "中文"),
    Language("ja", "Japanese", "日本語"),
    Language("ko", "Korean", "한국어"),
    Language("ar", "Arabic", "العربية", direction="rtl"),
    Language("pt", "Portuguese", "Português"),
    Language("it", "Italian", "Italiano"),
]


class TranslationProvider:
    """翻訳プロバイダ基底クラス"""

    name = ""

    def __init__(self):
        self.api_key: Optional[str] = None
        self.is_initialized = False

    def initialize(self, api_key: Optional[str]) -> None:
        """APIキーを設定して初期化"""
        raise NotImplementedError

    def translate(self, text: str, source_language: str, target_language: str) -> ProviderResult:
        """翻訳を実行（source_languageは'auto'も可）"""
        raise NotImplementedError

    def get_supported_languages(self) -> List[Language]:
        raise NotImplementedError

    def test_connection(self) -> ConnectionTestResult:
        raise NotImplementedError

    def validate_api_key(self, api_key: str) -> ValidationResult:
        raise NotImplementedError

    def _require_initialized(self):
        if not self.is_initialized:
            raise TranslationProviderError(
                f"プロバイダ {self.name} が初期化されていません",
                TranslationErrorType.INVALID_REQUEST,
            )
