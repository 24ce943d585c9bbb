"""
Yandex Cloud Translate API v2 プロバイダの実装
サービスアカウントのAPIキーで認証する
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from ..error_handler import TranslationErrorType, TranslationProviderError
from ..models import AUTO_LANGUAGE
from .provider_base import (
    ConnectionTestResult,
    Language,
    ProviderResult,
    TranslationProvider,
    ValidationResult,
)


@dataclass
class YandexSettings:
    """Yandex Translate設定"""
    folder_id: str = ""
    timeout: float = 10.0


class YandexError(TranslationProviderError):
    """Yandex Translate関連エラー"""
    pass


# 言語一覧が取得できない場合の既定リスト
YANDEX_DEFAULT_LANGUAGES = [
    Language("en", "English"),
    Language("ru", "Русский"),
    Language("es", "Spanish"),
    Language("fr", "French"),
    Language("de", "German"),
    Language("zh", "Chinese"),
    Language("tr", "Turkish"),
    Language("uk", "Ukrainian"),
    Language("kk", "Kazakh"),
]


class YandexProvider(TranslationProvider):
    """Yandex Cloud Translate プロバイダ"""

    name = "yandex"
    base_url = "https://translate.api.cloud.yandex.net/translate/v2"

    def __init__(self, settings: Optional[YandexSettings] = None):
        super().__init__()
        self.settings = settings or YandexSettings()
        self.settings.folder_id = (self.settings.folder_id or "").strip()
        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        self._supported_languages: Optional[List[Language]] = None

    def initialize(self, api_key: Optional[str]) -> None:
        """初期化"""
        if not api_key or not api_key.strip():
            raise YandexError("APIキーが指定されていません", TranslationErrorType.INVALID_API_KEY)

        self.api_key = api_key.strip()
        self.session.headers["Authorization"] = f"Api-Key {self.api_key}"

        if not self.settings.folder_id:
            logging.warning("Folder IDが設定されていません。Yandex Cloud Translateの呼び出しは失敗する可能性があります")

        # 言語一覧は初回利用時に遅延取得する
        self.is_initialized = True
        logging.info("Yandex翻訳プロバイダの初期化が完了しました")

    def translate(self, text: str, source_language: str, target_language: str) -> ProviderResult:
        """翻訳実行"""
        self._require_initialized()
        if not self.settings.folder_id:
            raise YandexError("Folder IDが設定されていません", TranslationErrorType.INVALID_REQUEST)

        body = {
            "folderId": self.settings.folder_id,
            "texts": [text],
            "targetLanguageCode": target_language,
            "format": "PLAIN_TEXT",
        }
        if source_language and source_language != AUTO_LANGUAGE:
            body["sourceLanguageCode"] = source_language

        data = self._post("translate", body)

        translations = data.get("translations") or []
        if not translations:
            raise YandexError("APIから空の翻訳結果が返されました")

        translation = translations[0]
        detected = translation.get("detectedLanguageCode") or None

        return ProviderResult(
            text=translation.get("text", ""),
            source_language=detected or source_language,
            target_language=target_language,
            provider=self.name,
            detected_language=detected,
            confidence=0.95 if detected else None,
        )

    def _post(self, endpoint: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """APIへのPOSTリクエスト"""
        try:
            response = self.session.post(
                f"{self.base_url}/{endpoint}",
                json=body,
                timeout=self.settings.timeout,
            )
        except requests.exceptions.ConnectionError as e:
            raise YandexError(
                "インターネット接続を確認してください。Yandex APIサーバーに接続できません。",
                TranslationErrorType.NETWORK_ERROR,
                original_error=e,
            )
        except requests.exceptions.Timeout as e:
            raise YandexError(
                "Yandex APIのリクエストがタイムアウトしました。",
                TranslationErrorType.NETWORK_ERROR,
                original_error=e,
            )

        if response.status_code == 200:
            try:
                return response.json()
            except ValueError as e:
                raise YandexError(
                    "Yandex APIから不正なレスポンスが返されました",
                    TranslationErrorType.PROVIDER_ERROR,
                    status_code=200,
                    original_error=e,
                )

        raise self._map_error(response)

    def _map_error(self, response: requests.Response) -> YandexError:
        """HTTPエラーをエラー分類に変換"""
        status = response.status_code
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        message = payload.get("message") or f"HTTP {status}"
        code = payload.get("code")

        if code == 16 or status == 401:
            return YandexError(
                "認証に失敗しました。APIキーとサービスアカウントの権限を確認してください。",
                TranslationErrorType.INVALID_API_KEY,
                status_code=status,
            )
        if "folder" in message.lower():
            return YandexError(
                "Folder IDが無効か、アカウントにこのフォルダへの権限がありません。",
                TranslationErrorType.INVALID_REQUEST,
                status_code=status,
            )
        if status == 403:
            return YandexError(
                "アクセスが拒否されたか、クォータを使い切りました。",
                TranslationErrorType.QUOTA_EXCEEDED,
                status_code=status,
            )
        if status == 429:
            return YandexError(
                "リクエストが多すぎます。",
                TranslationErrorType.RATE_LIMITED,
                status_code=status,
            )
        if status == 400:
            if "language" in message.lower():
                return YandexError(
                    f"サポートされていない言語です: {message}",
                    TranslationErrorType.UNSUPPORTED_LANGUAGE,
                    status_code=status,
                )
            return YandexError(
                "APIへのリクエストが無効です。",
                TranslationErrorType.INVALID_REQUEST,
                status_code=status,
            )
        return YandexError(
            f"Yandex APIエラー: {message}",
            TranslationErrorType.PROVIDER_ERROR,
            status_code=status,
        )

    def get_supported_languages(self) -> List[Language]:
        """サポートされている言語一覧を取得"""
        if self._supported_languages:
            return self._supported_languages

        if not self.api_key or not self.settings.folder_id:
            return list(YANDEX_DEFAULT_LANGUAGES)

        try:
            data = self._post("languages", {"folderId": self.settings.folder_id})
        except YandexError as e:
            logging.error(f"Yandexのサポート言語取得に失敗しました: {e}")
            return list(YANDEX_DEFAULT_LANGUAGES)

        languages = [
            Language(code=lang["code"], name=lang.get("name") or lang["code"])
            for lang in data.get("languages", [])
            if lang.get("code")
        ]
        languages.sort(key=lambda lang: lang.code)
        self._supported_languages = languages
        return languages

    def test_connection(self) -> ConnectionTestResult:
        """接続テスト（"Test"を翻訳して権限を確認）"""
        if not self.api_key or not self.settings.folder_id:
            return ConnectionTestResult(
                success=False,
                message="APIキーまたはFolder IDが設定されていません",
                details={"provider": "Yandex Translate"},
            )

        start = time.monotonic()
        try:
            self._post("translate", {
                "folderId": self.settings.folder_id,
                "texts": ["Test"],
                "targetLanguageCode": "ru",
            })
        except YandexError as e:
            return ConnectionTestResult(
                success=False,
                message=str(e),
                details={"provider": "Yandex Translate", "error": e.error_code, "status_code": e.status_code},
            )

        return ConnectionTestResult(
            success=True,
            message="Yandex Translate APIは利用可能です",
            response_time_ms=int((time.monotonic() - start) * 1000),
            details={
                "provider": "Yandex Translate",
                "folder_id": self.settings.folder_id,
                "auth_type": "Service Account API-Key",
            },
        )

    def validate_api_key(self, api_key: str) -> ValidationResult:
        # Folder IDなしでは実際の検証ができないため形式のみ確認する
        valid = bool(api_key) and len(api_key.strip()) > 20
        return ValidationResult(
            valid=valid,
            message="キーの形式は正しいです" if valid else "キーが短すぎます",
            details={"provider": "Yandex Translate", "validation": "format_check"},
        )
