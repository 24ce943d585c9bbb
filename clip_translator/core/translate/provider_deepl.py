"""
DeepL API プロバイダの実装
"""

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import requests

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
class DeepLSettings:
    """DeepL設定"""
    formality: Optional[str] = None  # "more" | "less" | None
    use_pro_api: bool = False  # False=Free API, True=Pro API
    timeout: float = 10.0


class DeepLError(TranslationProviderError):
    """DeepL関連エラー"""
    pass


class DeepLProvider(TranslationProvider):
    """DeepL APIプロバイダ"""

    name = "deepl"

    # フォーマリティ指定に対応する言語
    FORMALITY_LANGUAGES = {"DE", "FR", "IT", "ES", "NL", "PL", "PT-PT", "PT-BR", "RU", "JA"}

    def __init__(self, settings: Optional[DeepLSettings] = None):
        super().__init__()
        self.settings = settings or DeepLSettings()

        # API エンドポイント
        if self.settings.use_pro_api:
            self.base_url = "https://api.deepl.com/v2"
        else:
            self.base_url = "https://api-free.deepl.com/v2"

        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        self._supported_languages: Optional[List[Language]] = None

    def initialize(self, api_key: Optional[str]) -> None:
        """初期化"""
        if not api_key:
            raise DeepLError("DeepL APIキーが指定されていません", TranslationErrorType.INVALID_API_KEY)

        self.api_key = api_key.strip()
        self.session.headers["Authorization"] = f"DeepL-Auth-Key {self.api_key}"
        self.is_initialized = True
        logging.info("DeepL APIの初期化が完了しました")

    def translate(self, text: str, source_language: str, target_language: str) -> ProviderResult:
        """翻訳実行"""
        self._require_initialized()

        data = {
            "text": [text],
            "target_lang": self._convert_language_code(target_language, is_target=True),
        }
        # source_langを省略するとDeepL側で自動検出される
        if source_language and source_language != AUTO_LANGUAGE:
            data["source_lang"] = self._convert_language_code(source_language)

        # フォーマリティ設定
        if self.settings.formality and data["target_lang"] in self.FORMALITY_LANGUAGES:
            data["formality"] = self.settings.formality

        response = self._request("post", "translate", json=data)
        translations = self._json(response).get("translations", [])
        if not translations:
            raise DeepLError("DeepLから翻訳結果が返されませんでした")

        translation = translations[0]
        detected = (translation.get("detected_source_language") or "").lower() or None

        return ProviderResult(
            text=translation.get("text", ""),
            source_language=detected or source_language,
            target_language=target_language,
            provider=self.name,
            detected_language=detected,
            confidence=0.95 if detected else None,
        )

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """APIリクエストとステータスコードのエラー変換"""
        try:
            response = self.session.request(
                method,
                f"{self.base_url}/{endpoint}",
                timeout=self.settings.timeout,
                **kwargs
            )
        except requests.exceptions.ConnectionError as e:
            raise DeepLError(
                "インターネット接続を確認してください。DeepL APIサーバーに接続できません。",
                TranslationErrorType.NETWORK_ERROR,
                original_error=e
            )
        except requests.exceptions.Timeout as e:
            raise DeepLError(
                "DeepL APIのリクエストがタイムアウトしました。しばらく時間をおいて再試行してください。",
                TranslationErrorType.NETWORK_ERROR,
                original_error=e
            )

        status = response.status_code
        if status == 200:
            return response
        elif status == 400:
            raise DeepLError(
                "翻訳リクエストのパラメータが無効です。言語コードやテキストを確認してください。",
                TranslationErrorType.INVALID_REQUEST,
                status_code=400
            )
        elif status in (401, 403):
            raise DeepLError(
                "DeepL API キーが無効です。正しいAPIキーを設定してください。",
                TranslationErrorType.INVALID_API_KEY,
                status_code=status
            )
        elif status == 456:
            raise DeepLError(
                "DeepL APIの月間文字制限に達しています。制限がリセットされるまでお待ちください。",
                TranslationErrorType.QUOTA_EXCEEDED,
                status_code=456
            )
        elif status == 429:
            raise DeepLError(
                "DeepL APIのレート制限に達しました。しばらく時間をおいて再試行してください。",
                TranslationErrorType.RATE_LIMITED,
                status_code=429
            )
        else:
            raise DeepLError(
                f"DeepL APIエラー: HTTP {status}",
                TranslationErrorType.PROVIDER_ERROR,
                status_code=status
            )

    def _json(self, response: requests.Response):
        try:
            return response.json()
        except ValueError as e:
            raise DeepLError(
                "DeepL APIから不正なレスポンスが返されました",
                TranslationErrorType.PROVIDER_ERROR,
                status_code=response.status_code,
                original_error=e
            )

    def _convert_language_code(self, lang_code: str, is_target: bool = False) -> str:
        """言語コードをDeepL形式に変換"""
        conversion_map = {
            "en": "EN-US" if is_target else "EN",
            "pt": "PT-BR" if is_target else "PT",
            "no": "NB",
            "zh": "ZH",
        }
        return conversion_map.get(lang_code.lower(), lang_code.upper())

    def get_supported_languages(self) -> List[Language]:
        """サポートされている言語一覧を取得"""
        if self._supported_languages:
            return self._supported_languages

        if not self.is_initialized:
            return list(DEFAULT_LANGUAGES)

        try:
            response = self._request("get", "languages", params={"type": "target"})
            payload = self._json(response)
        except DeepLError as e:
            logging.error(f"DeepLのサポート言語取得に失敗しました: {e}")
            return list(DEFAULT_LANGUAGES)

        languages: Dict[str, Language] = {}
        for lang in payload:
            code = lang["language"].lower().split("-")[0]
            languages.setdefault(code, Language(code=code, name=lang.get("name", code)))

        self._supported_languages = sorted(languages.values(), key=lambda lang: lang.code)
        return self._supported_languages

    def test_connection(self) -> ConnectionTestResult:
        """接続テスト（使用量確認）"""
        start = time.monotonic()
        try:
            self._require_initialized()
            usage_data = self._json(self._request("get", "usage"))
        except TranslationProviderError as e:
            return ConnectionTestResult(
                success=False,
                message=str(e),
                details={"provider": "DeepL", "error": e.error_code},
            )

        character_limit = usage_data.get("character_limit", 0)
        character_count = usage_data.get("character_count", 0)
        logging.info(f"DeepL API接続成功 - 使用量: {character_count}/{character_limit}")

        if character_limit > 0 and character_count >= character_limit:
            return ConnectionTestResult(
                success=False,
                message="DeepL APIの月間文字制限に達しています。",
                response_time_ms=int((time.monotonic() - start) * 1000),
                details={"provider": "DeepL", "error": TranslationErrorType.QUOTA_EXCEEDED.value},
            )

        return ConnectionTestResult(
            success=True,
            message="DeepL APIは利用可能です",
            response_time_ms=int((time.monotonic() - start) * 1000),
            details={
                "provider": "DeepL",
                "character_count": character_count,
                "character_limit": character_limit,
            },
        )

    def validate_api_key(self, api_key: str) -> ValidationResult:
        """使用量エンドポイントでAPIキーを検証"""
        if not api_key:
            return ValidationResult(valid=False, message="APIキーが指定されていません")

        try:
            response = self.session.get(
                f"{self.base_url}/usage",
                headers={"Authorization": f"DeepL-Auth-Key {api_key.strip()}"},
                timeout=self.settings.timeout,
            )
        except requests.exceptions.RequestException as e:
            return ValidationResult(
                valid=False,
                message=f"DeepL APIに接続できません: {e}",
                details={"provider": "DeepL"},
            )

        valid = response.status_code == 200
        return ValidationResult(
            valid=valid,
            message="APIキーは有効です" if valid else f"APIキーが無効です (HTTP {response.status_code})",
            details={"provider": "DeepL", "validation": "api_call"},
        )
