"""
翻訳オーケストレーター
言語検出・翻訳コンテキスト・プロバイダ・キャッシュ・履歴をまとめ、
アプリケーションの他の部分から呼ばれる唯一の翻訳窓口を提供する
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Union

from ..error_handler import ErrorHandler, TranslationErrorType
from ..models import AUTO_LANGUAGE, LanguagePair, TranslationRequest, TranslationResponse
from ..settings_manager import AppSettings, ProviderSettings, TranslationSettings
from .cache import CacheEntry, HistoryEntry, TranslationCache, TranslationHistory, cache_stats
from .context import TranslationContext
from .language_detector import LanguageDetectionError, LanguageDetector
from .provider_base import (
    DEFAULT_LANGUAGES,
    ConnectionTestResult,
    Language,
    ProviderResult,
    TranslationProvider,
    ValidationResult,
)
from .provider_registry import (
    TranslationProviderType,
    create_provider,
    get_available_providers,
)

ProviderName = Union[TranslationProviderType, str]


def _normalize(language: Optional[str]) -> Optional[str]:
    if not isinstance(language, str):
        return None
    return language.strip().lower() or None


def _base_language(language: Optional[str]) -> Optional[str]:
    """プロバイダが返す地域付きコード（zh-CN等）を2文字の言語コードに変換"""
    language = _normalize(language)
    if language is None:
        return None
    return language.replace("_", "-").split("-")[0] or None


class TranslationOrchestrator:
    """翻訳オーケストレーター"""

    def __init__(
        self,
        context: TranslationContext,
        provider: Optional[TranslationProvider] = None,
        detector: Optional[Any] = None,
        cache: Optional[TranslationCache] = None,
        history: Optional[TranslationHistory] = None,
        smart_switch: bool = True,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self.context = context
        self.provider = provider
        self.provider_settings: Optional[ProviderSettings] = None
        self.detector = detector if detector is not None else self._create_default_detector()
        self.cache = cache if cache is not None else TranslationCache()
        self.history = history if history is not None else TranslationHistory()
        self.smart_switch = smart_switch
        self.error_handler = error_handler or ErrorHandler()

        # translate()の呼び出しを直列化する
        self._lock = threading.RLock()
        self._issued_sequence = 0
        self._last_applied_sequence = 0

    @classmethod
    def from_settings(cls, settings: AppSettings, **kwargs) -> "TranslationOrchestrator":
        """設定からコンテキストとプロバイダを構築"""
        translation = settings.translation
        context = TranslationContext(
            primary_language=translation.primary_language,
            default_foreign_language=translation.second_language,
            timeout_minutes=translation.session_timeout,
        )
        orchestrator = cls(context, smart_switch=translation.smart_switch, **kwargs)

        try:
            orchestrator.initialize_provider(
                settings.provider.name,
                settings.provider.api_key,
                settings.provider,
            )
        except Exception as e:
            # 起動時はプロバイダ設定の不備で失敗させず、初回翻訳時にモックへフォールバックする
            logging.error(f"翻訳プロバイダの初期化に失敗しました ({settings.provider.name}): {e}")

        return orchestrator

    @staticmethod
    def _create_default_detector() -> Optional[LanguageDetector]:
        try:
            return LanguageDetector()
        except LanguageDetectionError as e:
            logging.warning(f"言語検出を無効化します: {e}")
            return None

    # ------------------------------------------------------------------
    # 翻訳
    # ------------------------------------------------------------------

    def next_sequence(self) -> int:
        """新しいリクエスト番号を発行（最新のリクエストのみが有効）"""
        with self._lock:
            self._issued_sequence += 1
            return self._issued_sequence

    def translate_request(self, request: TranslationRequest) -> TranslationResponse:
        return self.translate(
            request.text,
            request.source,
            request.target,
            is_external_trigger=request.is_external_trigger,
            sequence=request.sequence,
        )

    def translate(
        self,
        text: str,
        source: Optional[str] = AUTO_LANGUAGE,
        target: Optional[str] = None,
        is_external_trigger: bool = False,
        sequence: Optional[int] = None,
    ) -> TranslationResponse:
        """
        テキストを翻訳

        Args:
            text: 翻訳対象のテキスト
            source: 翻訳元の言語コード（'auto'で自動判定）
            target: 翻訳先の言語コード（省略時はコンテキストや設定から決定）
            is_external_trigger: ホットキー等の外部入力ならTrue、入力欄の編集ならFalse
            sequence: next_sequence()で発行したリクエスト番号

        Returns:
            翻訳レスポンス（失敗時はerrorに構造化エラーを格納し、例外は送出しない）
        """
        if not text or not text.strip():
            error = self.error_handler.create_error(
                TranslationErrorType.EMPTY_INPUT,
                "翻訳するテキストが空です",
                provider=self._provider_name(),
            )
            return TranslationResponse(
                translated_text="",
                original_text=text or "",
                source_language=source or AUTO_LANGUAGE,
                target_language=target,
                provider=self._provider_name(),
                error=error,
                sequence=sequence,
            )

        with self._lock:
            if sequence is None:
                sequence = self.next_sequence()
            elif sequence > self._issued_sequence:
                self._issued_sequence = sequence

            if sequence <= self._last_applied_sequence:
                return self._stale_response(text, source, target, sequence)
            self._last_applied_sequence = sequence

            provider = self._ensure_provider()
            requested_source = _normalize(source) or AUTO_LANGUAGE
            requested_target = _normalize(target)
            use_context = self.smart_switch and requested_source == AUTO_LANGUAGE

            detected = None
            if use_context:
                pair, detected = self._resolve_with_context(text, is_external_trigger)
            else:
                pair = self._resolve_explicit(requested_source, requested_target)
                if pair.source == pair.target:
                    error = self.error_handler.create_error(
                        TranslationErrorType.INVALID_REQUEST,
                        f"翻訳元と翻訳先が同じ言語です: {pair.source}",
                        provider=provider.name,
                    )
                    return self._error_response(text, pair, provider, error, sequence)
                self._remember_explicit(pair)

            logging.debug(f"翻訳方向: {pair.source} -> {pair.target} (seq={sequence})")

            key = self.cache.make_key(provider.name, text, pair.source, pair.target)
            cached = self.cache.get(key)
            if cached is not None:
                logging.debug("キャッシュから翻訳結果を返します")
                return self._cached_response(text, cached, sequence)

            try:
                result = provider.translate(text, pair.source, pair.target)

                provider_detected = _base_language(result.detected_language)
                if use_context and provider_detected and provider_detected != pair.source:
                    if self.context.update_from_api_result(provider_detected):
                        # 想定と逆方向だったため補正したペアで再リクエストする
                        pair = self.context.get_current_pair()
                        logging.info(f"翻訳方向を補正して再翻訳: {pair.source} -> {pair.target}")

                        key = self.cache.make_key(provider.name, text, pair.source, pair.target)
                        cached = self.cache.get(key)
                        if cached is not None:
                            return self._cached_response(text, cached, sequence)

                        result = provider.translate(text, pair.source, pair.target)
            except Exception as e:
                error = self.error_handler.handle_error(
                    e,
                    provider=provider.name,
                    context={"source": pair.source, "target": pair.target},
                )
                return self._error_response(text, pair, provider, error, sequence)

            return self._store_result(text, key, pair, result, detected, provider, sequence)

    def _resolve_with_context(self, text: str, is_external_trigger: bool):
        """言語を検出してコンテキストに反映し、翻訳方向を決定"""
        self.context.check_timeout()

        hints = [self.context.primary_language, self.context.last_foreign_language]
        detected = self._detect(text, hints)

        if is_external_trigger:
            self.context.handle_external_input(detected)
        else:
            self.context.handle_input_update(detected)

        pair = self.context.get_current_pair()
        if detected is None:
            # 判定できない場合は直前の翻訳元を流用せず、プロバイダに判定させる
            pair = LanguagePair(AUTO_LANGUAGE, pair.target)
        return pair, detected

    def _resolve_explicit(self, source: str, target: Optional[str]) -> LanguagePair:
        """コンテキストを使わずに翻訳方向を決定"""
        primary = self.context.primary_language
        if not target:
            if source not in (AUTO_LANGUAGE, primary):
                target = primary
            else:
                target = self.context.last_foreign_language
        return LanguagePair(source=source, target=target)

    def _remember_explicit(self, pair: LanguagePair):
        # 将来の自動判定のために粘着外国語だけを更新する
        if pair.source not in (AUTO_LANGUAGE, self.context.primary_language):
            self.context.remember_foreign(pair.source)
        else:
            self.context.remember_foreign(pair.target)

    def _detect(self, text: str, hints: Iterable[str]) -> Optional[str]:
        if self.detector is None:
            return None
        try:
            return self.detector.detect(text, list(hints))
        except Exception as e:
            # 自動検出は最適化であり、失敗しても翻訳は続行する
            logging.warning(f"言語検出でエラーが発生したため検出なしとして扱います: {e}")
            return None

    def _ensure_provider(self) -> TranslationProvider:
        if self.provider is None:
            logging.warning("アクティブなプロバイダがないため、モックプロバイダを使用します")
            provider = create_provider(TranslationProviderType.MOCK)
            provider.initialize("mock-key")
            self.provider = provider
        return self.provider

    def _provider_name(self) -> Optional[str]:
        return self.provider.name if self.provider is not None else None

    # ------------------------------------------------------------------
    # レスポンス生成
    # ------------------------------------------------------------------

    def _store_result(
        self,
        text: str,
        key,
        pair: LanguagePair,
        result: ProviderResult,
        detected: Optional[str],
        provider: TranslationProvider,
        sequence: int,
    ) -> TranslationResponse:
        source_language = _base_language(result.source_language) or pair.source
        detected_language = _base_language(result.detected_language) or detected

        self.cache.put(key, CacheEntry(
            text=result.text,
            source_language=source_language,
            target_language=pair.target,
            provider=provider.name,
            detected_language=detected_language,
            confidence=result.confidence,
        ))

        self.history.add(HistoryEntry(
            text=text,
            source_language=source_language,
            target_language=pair.target,
            result=result.text,
            provider=provider.name,
        ))

        return TranslationResponse(
            translated_text=result.text,
            original_text=text,
            source_language=source_language,
            target_language=pair.target,
            provider=provider.name,
            detected_language=detected_language,
            confidence=result.confidence,
            sequence=sequence,
        )

    def _cached_response(self, text: str, entry: CacheEntry, sequence: int) -> TranslationResponse:
        return TranslationResponse(
            translated_text=entry.text,
            original_text=text,
            source_language=entry.source_language,
            target_language=entry.target_language,
            provider=entry.provider,
            detected_language=entry.detected_language,
            confidence=entry.confidence,
            from_cache=True,
            sequence=sequence,
        )

    def _error_response(self, text, pair, provider, error, sequence) -> TranslationResponse:
        return TranslationResponse(
            translated_text="",
            original_text=text,
            source_language=pair.source,
            target_language=pair.target,
            provider=provider.name,
            error=error,
            sequence=sequence,
        )

    def _stale_response(self, text, source, target, sequence) -> TranslationResponse:
        error = self.error_handler.create_error(
            TranslationErrorType.STALE_REQUEST,
            f"古いリクエストを破棄しました (seq={sequence}, 最新={self._last_applied_sequence})",
            provider=self._provider_name(),
        )
        return TranslationResponse(
            translated_text="",
            original_text=text,
            source_language=source or AUTO_LANGUAGE,
            target_language=target,
            provider=self._provider_name(),
            error=error,
            sequence=sequence,
            stale=True,
        )

    # ------------------------------------------------------------------
    # プロバイダ管理
    # ------------------------------------------------------------------

    def initialize_provider(
        self,
        provider_type: ProviderName,
        api_key: Optional[str] = None,
        settings: Optional[ProviderSettings] = None,
    ) -> TranslationProvider:
        """プロバイダを生成・初期化してアクティブにする（失敗時は例外）"""
        if not isinstance(provider_type, TranslationProviderType):
            provider_type = TranslationProviderType.from_name(provider_type)

        logging.info(f"翻訳プロバイダを初期化します: {provider_type.value}")
        provider = create_provider(provider_type, settings)
        provider.initialize(api_key)

        with self._lock:
            self.provider = provider
            self.provider_settings = settings
            self.cache.clear()

        logging.info(f"翻訳プロバイダを初期化しました: {provider_type.value}")
        return provider

    def switch_provider(
        self,
        provider_type: ProviderName,
        api_key: Optional[str] = None,
        settings: Optional[ProviderSettings] = None,
    ) -> bool:
        """プロバイダを切り替え（失敗時は現在のプロバイダを維持）"""
        try:
            self.initialize_provider(provider_type, api_key, settings)
            return True
        except Exception as e:
            logging.error(f"翻訳プロバイダの切り替えに失敗しました ({provider_type}): {e}")
            return False

    def test_connection(self) -> ConnectionTestResult:
        """現在のプロバイダの接続テスト"""
        if self.provider is None:
            return ConnectionTestResult(success=False, message="アクティブなプロバイダがありません")
        try:
            return self.provider.test_connection()
        except Exception as e:
            logging.error(f"接続テストに失敗しました: {e}")
            return ConnectionTestResult(success=False, message=str(e))

    def test_provider_connection(
        self,
        provider_type: ProviderName,
        api_key: Optional[str] = None,
        settings: Optional[ProviderSettings] = None,
    ) -> ConnectionTestResult:
        """一時的なプロバイダで接続テスト（アクティブなプロバイダは変更しない）"""
        if not isinstance(provider_type, TranslationProviderType):
            provider_type = TranslationProviderType.from_name(provider_type)

        try:
            provider = create_provider(provider_type, settings)
            provider.initialize(api_key)
            return provider.test_connection()
        except Exception as e:
            logging.error(f"プロバイダ {provider_type.value} の接続テストに失敗しました: {e}")
            error = self.error_handler.exception_to_error_info(e, provider_type.value)
            return ConnectionTestResult(
                success=False,
                message=str(e),
                details={"provider": provider_type.value, "error": error.type.value},
            )

    def validate_api_key(
        self,
        provider_type: ProviderName,
        api_key: str,
        settings: Optional[ProviderSettings] = None,
    ) -> ValidationResult:
        """APIキーを検証"""
        if not isinstance(provider_type, TranslationProviderType):
            provider_type = TranslationProviderType.from_name(provider_type)
        try:
            return create_provider(provider_type, settings).validate_api_key(api_key)
        except Exception as e:
            logging.error(f"APIキーの検証に失敗しました: {e}")
            return ValidationResult(valid=False, message=str(e))

    def get_supported_languages(self) -> List[Language]:
        """サポート言語一覧を取得（取得できない場合は既定リスト）"""
        if self.provider is None:
            return list(DEFAULT_LANGUAGES)
        try:
            return self.provider.get_supported_languages()
        except Exception as e:
            logging.error(f"サポート言語の取得に失敗しました: {e}")
            return list(DEFAULT_LANGUAGES)

    def get_current_provider_info(self) -> Dict[str, Any]:
        if self.provider is None:
            return {"name": "none", "initialized": False}
        return {"name": self.provider.name, "initialized": self.provider.is_initialized}

    @staticmethod
    def get_available_providers() -> List[Dict[str, Any]]:
        return get_available_providers()

    # ------------------------------------------------------------------
    # 設定・キャッシュ・履歴
    # ------------------------------------------------------------------

    def set_manual_pair(self, source: Optional[str], target: Optional[str]) -> LanguagePair:
        """言語セレクタでの明示的な指定をコンテキストに反映"""
        with self._lock:
            self.context.set_manual_pair(source, target)
            return self.context.get_current_pair()

    def apply_settings(self, translation: TranslationSettings):
        """翻訳設定をコンテキストに反映"""
        with self._lock:
            self.context.update_config(
                translation.primary_language,
                translation.second_language,
                translation.session_timeout,
            )
            self.smart_switch = translation.smart_switch

    def on_settings_changed(self, settings: AppSettings):
        """SettingsManagerの変更リスナー"""
        self.apply_settings(settings.translation)

        if settings.provider != self.provider_settings:
            if not self.switch_provider(settings.provider.name, settings.provider.api_key, settings.provider):
                logging.warning("新しいプロバイダ設定を適用できませんでした。現在のプロバイダを使用します")

    def get_translation_history(self, limit: Optional[int] = 10) -> List[HistoryEntry]:
        return self.history.get(limit)

    def clear_history(self):
        self.history.clear()
        logging.info("翻訳履歴をクリアしました")

    def clear_cache(self):
        self.cache.clear()
        logging.info("翻訳キャッシュをクリアしました")

    def get_cache_stats(self) -> Dict[str, Any]:
        return cache_stats(self.cache, self.history)
