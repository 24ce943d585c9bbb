"""
翻訳プロバイダーレジストリ
プロバイダー種別から生成関数への明示的な対応表を管理
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..settings_manager import ProviderSettings
from .provider_base import TranslationProvider
from .provider_deepl import DeepLProvider, DeepLSettings
from .provider_google import GoogleTranslateProvider, GoogleTranslateSettings
from .provider_mock import MockTranslateProvider, MockTranslateSettings
from .provider_yandex import YandexProvider, YandexSettings


class TranslationProviderType(Enum):
    """翻訳プロバイダータイプ"""
    MOCK = "mock"
    GOOGLE = "google"
    YANDEX = "yandex"
    DEEPL = "deepl"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "TranslationProviderType":
        """名前からプロバイダータイプを取得（未知の名前はモック）"""
        try:
            return cls((name or "").strip().lower())
        except ValueError:
            logging.warning(f"未知の翻訳プロバイダー '{name}' のためモックを使用します")
            return cls.MOCK


def _create_mock(settings: ProviderSettings) -> TranslationProvider:
    return MockTranslateProvider(MockTranslateSettings())


def _create_google(settings: ProviderSettings) -> TranslationProvider:
    return GoogleTranslateProvider(GoogleTranslateSettings(
        project_id=settings.project_id,
        location=settings.location or "global",
        service_account_path=settings.service_account_path or None,
        timeout=settings.timeout,
    ))


def _create_yandex(settings: ProviderSettings) -> TranslationProvider:
    return YandexProvider(YandexSettings(folder_id=settings.folder_id, timeout=settings.timeout))


def _create_deepl(settings: ProviderSettings) -> TranslationProvider:
    return DeepLProvider(DeepLSettings(
        formality=settings.formality or None,
        use_pro_api=settings.use_pro_api,
        timeout=settings.timeout,
    ))


PROVIDER_REGISTRY: Dict[TranslationProviderType, Callable[[ProviderSettings], TranslationProvider]] = {
    TranslationProviderType.MOCK: _create_mock,
    TranslationProviderType.GOOGLE: _create_google,
    TranslationProviderType.YANDEX: _create_yandex,
    TranslationProviderType.DEEPL: _create_deepl,
}


# UI向けのプロバイダー情報
PROVIDER_INFO: Dict[TranslationProviderType, Dict[str, Any]] = {
    TranslationProviderType.MOCK: {
        "label": "Mock Translator",
        "description": "テスト用プロバイダー（ネットワーク不要）",
        "requires_api_key": False,
        "config_fields": [],
    },
    TranslationProviderType.GOOGLE: {
        "label": "Google Translate",
        "description": "Google Cloud Translation API v3",
        "requires_api_key": True,
        "config_fields": [
            {"id": "project_id", "label": "Project ID", "required": True},
            {"id": "location", "label": "Location", "required": False, "default": "global"},
            {"id": "service_account_path", "label": "Service Account JSON", "required": False},
        ],
    },
    TranslationProviderType.YANDEX: {
        "label": "Yandex Translate",
        "description": "Yandex Cloud（サービスアカウントのAPIキーが必要）",
        "requires_api_key": True,
        "config_fields": [
            {"id": "folder_id", "label": "Folder ID", "required": True},
        ],
    },
    TranslationProviderType.DEEPL: {
        "label": "DeepL",
        "description": "DeepL API（Free / Pro）",
        "requires_api_key": True,
        "config_fields": [
            {"id": "use_pro_api", "label": "Pro API", "required": False, "default": False},
            {"id": "formality", "label": "Formality", "required": False},
        ],
    },
}


def create_provider(
    provider_type: TranslationProviderType,
    settings: Optional[ProviderSettings] = None,
) -> TranslationProvider:
    """プロバイダーのインスタンスを生成（初期化は呼び出し側で行う）"""
    factory = PROVIDER_REGISTRY.get(provider_type)
    if factory is None:
        raise ValueError(f"未対応のプロバイダータイプ: {provider_type}")

    provider = factory(settings or ProviderSettings(name=provider_type.value))
    logging.info(f"翻訳プロバイダー生成: {provider_type.value}")
    return provider


def get_available_providers() -> List[Dict[str, Any]]:
    """利用可能なプロバイダー一覧を取得"""
    return [
        dict(name=provider_type.value, **info)
        for provider_type, info in PROVIDER_INFO.items()
    ]


def get_provider_info(provider_type: TranslationProviderType) -> Dict[str, Any]:
    """特定のプロバイダー情報を取得"""
    info = PROVIDER_INFO.get(provider_type, PROVIDER_INFO[TranslationProviderType.MOCK])
    return dict(name=provider_type.value, **info)
