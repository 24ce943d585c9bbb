"""
翻訳システムの統合インターフェース
"""

from .cache import CacheEntry, HistoryEntry, TranslationCache, TranslationHistory
from .context import TranslationContext
from .language_detector import (
    LanguageDetectionError,
    LanguageDetectionResult,
    LanguageDetector,
)
from .orchestrator import TranslationOrchestrator
from .provider_base import (
    ConnectionTestResult,
    Language,
    ProviderResult,
    TranslationProvider,
    ValidationResult,
)
from .provider_deepl import DeepLError, DeepLProvider, DeepLSettings
from .provider_google import (
    GoogleTranslateError,
    GoogleTranslateProvider,
    GoogleTranslateSettings,
)
from .provider_mock import MockTranslateError, MockTranslateProvider, MockTranslateSettings
from .provider_registry import (
    TranslationProviderType,
    create_provider,
    get_available_providers,
    get_provider_info,
)
from .provider_yandex import YandexError, YandexProvider, YandexSettings

__all__ = [
    # Orchestrator
    "TranslationOrchestrator",
    "TranslationContext",
    # Registry
    "TranslationProviderType",
    "create_provider",
    "get_available_providers",
    "get_provider_info",
    # Providers
    "TranslationProvider",
    "MockTranslateProvider",
    "GoogleTranslateProvider",
    "YandexProvider",
    "DeepLProvider",
    # Settings
    "MockTranslateSettings",
    "GoogleTranslateSettings",
    "YandexSettings",
    "DeepLSettings",
    # Results
    "ProviderResult",
    "Language",
    "ConnectionTestResult",
    "ValidationResult",
    # Errors
    "MockTranslateError",
    "GoogleTranslateError",
    "YandexError",
    "DeepLError",
    # Cache
    "TranslationCache",
    "TranslationHistory",
    "CacheEntry",
    "HistoryEntry",
    # Language Detection
    "LanguageDetector",
    "LanguageDetectionResult",
    "LanguageDetectionError",
]
