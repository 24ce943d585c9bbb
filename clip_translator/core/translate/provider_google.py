"""
Google Cloud Translation API v3プロバイダの実装
"""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional

try:
    from google.api_core import exceptions as gcp_exceptions
    from google.cloud import translate_v3 as translate
    from google.oauth2 import service_account
    GOOGLE_TRANSLATE_AVAILABLE = True
except ImportError:
    GOOGLE_TRANSLATE_AVAILABLE = False
    logging.warning("Google Cloud Translate APIが利用できません。pip install google-cloud-translateでインストールしてください。")

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
class GoogleTranslateSettings:
    """Google Translate設定"""
    project_id: str = ""
    location: str = "global"
    service_account_path: Optional[str] = None
    timeout: float = 10.0
    display_language: str = "en"


class GoogleTranslateError(TranslationProviderError):
    """Google Translate関連エラー"""
    pass


class GoogleTranslateProvider(TranslationProvider):
    """Google Cloud Translation v3プロバイダ"""

    name = "google"

    def __init__(self, settings: Optional[GoogleTranslateSettings] = None):
        super().__init__()
        self.settings = settings or GoogleTranslateSettings()
        self.client = None
        self._supported_languages: Optional[List[Language]] = None

    @property
    def parent(self) -> str:
        return f"projects/{self.settings.project_id}/locations/{self.settings.location}"

    def initialize(self, api_key: Optional[str]) -> None:
        """初期化"""
        if not GOOGLE_TRANSLATE_AVAILABLE:
            raise GoogleTranslateError(
                "Google Cloud Translate APIがインストールされていません",
                TranslationErrorType.PROVIDER_ERROR,
                retryable=False,
            )

        if not self.settings.project_id:
            raise GoogleTranslateError(
                "Google CloudのプロジェクトIDが設定されていません",
                TranslationErrorType.INVALID_REQUEST,
            )

        self.api_key = api_key
        self.client = self._create_client(api_key)
        self.is_initialized = True
        logging.info("Google Cloud Translation APIの初期化が完了しました")

    def _create_client(self, api_key: Optional[str]):
        # 認証情報の設定
        if self.settings.service_account_path:
            credentials = service_account.Credentials.from_service_account_file(
                self.settings.service_account_path
            )
            return translate.TranslationServiceClient(credentials=credentials)
        if api_key:
            return translate.TranslationServiceClient(client_options={"api_key": api_key})
        # デフォルト認証（ADCなど）
        return translate.TranslationServiceClient()

    def translate(self, text: str, source_language: str, target_language: str) -> ProviderResult:
        """翻訳実行"""
        self._require_initialized()

        request = {
            "parent": self.parent,
            "contents": [text],
            "target_language_code": target_language,
            "mime_type": "text/plain",
        }
        # autoの場合はsource_language_codeを省略してサーバー側で検出させる
        if source_language and source_language != AUTO_LANGUAGE:
            request["source_language_code"] = source_language

        try:
            response = self.client.translate_text(request=request, timeout=self.settings.timeout)
        except Exception as e:
            raise self._map_error(e, target_language)

        if not response.translations:
            raise GoogleTranslateError("Google Translateから翻訳結果が返されませんでした")

        translation = response.translations[0]
        detected = translation.detected_language_code or None

        return ProviderResult(
            text=translation.translated_text,
            source_language=detected or source_language,
            target_language=target_language,
            provider=self.name,
            detected_language=detected,
            confidence=0.99 if detected else None,
        )

    def _map_error(self, error: Exception, target_language: str) -> GoogleTranslateError:
        """Google APIの例外をエラー分類に変換"""
        if isinstance(error, GoogleTranslateError):
            return error

        message = str(error)
        if isinstance(error, (gcp_exceptions.Unauthenticated, gcp_exceptions.PermissionDenied)):
            if "quota" in message.lower():
                return GoogleTranslateError(
                    "Google Cloud Translation APIのクォータを超過しました。",
                    TranslationErrorType.QUOTA_EXCEEDED,
                    original_error=error,
                )
            return GoogleTranslateError(
                "Google Cloud認証に失敗しました。APIキーまたは認証情報を確認してください。",
                TranslationErrorType.INVALID_API_KEY,
                original_error=error,
            )
        if isinstance(error, gcp_exceptions.ResourceExhausted):
            if "quota" in message.lower():
                return GoogleTranslateError(
                    "Google Cloud Translation APIのクォータを超過しました。",
                    TranslationErrorType.QUOTA_EXCEEDED,
                    original_error=error,
                )
            return GoogleTranslateError(
                "Google Cloud Translation APIのリクエスト数が上限に達しました。しばらく時間をおいてから再試行してください。",
                TranslationErrorType.RATE_LIMITED,
                original_error=error,
            )
        if isinstance(error, gcp_exceptions.InvalidArgument):
            if "language" in message.lower():
                return GoogleTranslateError(
                    f"サポートされていない言語が指定されました: {target_language}",
                    TranslationErrorType.UNSUPPORTED_LANGUAGE,
                    original_error=error,
                )
            return GoogleTranslateError(
                "翻訳パラメータが無効です。",
                TranslationErrorType.INVALID_REQUEST,
                original_error=error,
            )
        if isinstance(error, (gcp_exceptions.ServiceUnavailable, gcp_exceptions.DeadlineExceeded)):
            return GoogleTranslateError(
                "Google Cloud Translation APIに接続できません。",
                TranslationErrorType.NETWORK_ERROR,
                original_error=error,
            )
        return GoogleTranslateError(
            f"翻訳中にエラーが発生しました: {message}",
            TranslationErrorType.PROVIDER_ERROR,
            original_error=error,
        )

    def get_supported_languages(self) -> List[Language]:
        """サポートされている言語一覧を取得"""
        if self._supported_languages:
            return self._supported_languages

        if not self.is_initialized:
            return list(DEFAULT_LANGUAGES)

        try:
            response = self.client.get_supported_languages(
                parent=self.parent,
                display_language_code=self.settings.display_language,
                timeout=self.settings.timeout,
            )
        except Exception as e:
            logging.error(f"Googleのサポート言語取得に失敗しました: {e}")
            return list(DEFAULT_LANGUAGES)

        self._supported_languages = [
            Language(code=language.language_code, name=language.display_name or language.language_code)
            for language in response.languages
        ]
        return self._supported_languages

    def test_connection(self) -> ConnectionTestResult:
        """接続テスト（短いテキストを翻訳）"""
        start = time.monotonic()
        try:
            result = self.translate("Hello", "en", "ru")
        except TranslationProviderError as e:
            return ConnectionTestResult(
                success=False,
                message=str(e),
                details={"provider": "Google Cloud Translation", "error": e.error_code},
            )

        response_time_ms = int((time.monotonic() - start) * 1000)
        success = bool(result.text)
        return ConnectionTestResult(
            success=success,
            message="Google Translate APIは利用可能です" if success else "テスト翻訳に失敗しました",
            response_time_ms=response_time_ms,
            details={
                "provider": "Google Cloud Translation",
                "project_id": self.settings.project_id,
                "location": self.settings.location,
            },
        )

    def validate_api_key(self, api_key: str) -> ValidationResult:
        """サポート言語一覧の取得でAPIキーを検証"""
        if not api_key:
            return ValidationResult(valid=False, message="APIキーが指定されていません")
        if not GOOGLE_TRANSLATE_AVAILABLE:
            return ValidationResult(valid=False, message="Google Cloud Translate APIがインストールされていません")

        try:
            client = translate.TranslationServiceClient(client_options={"api_key": api_key})
            response = client.get_supported_languages(parent=self.parent, timeout=self.settings.timeout)
        except Exception as e:
            error = self._map_error(e, "")
            return ValidationResult(
                valid=False,
                message=str(error),
                details={"provider": "Google Cloud Translation", "error": error.error_code},
            )

        return ValidationResult(
            valid=True,
            message="APIキーは有効です",
            details={
                "provider": "Google Cloud Translation",
                "validation": "api_call",
                "languages": len(response.languages),
            },
        )
