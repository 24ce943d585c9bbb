"""
翻訳オーケストレーターの統合テスト
コンテキスト・検出器・プロバイダ・キャッシュを組み合わせて確認する
"""

from typing import List, Optional, Tuple

import pytest

from clip_translator.core.error_handler import TranslationErrorType
from clip_translator.core.models import LanguagePair, TranslationRequest
from clip_translator.core.settings_manager import AppSettings, ProviderSettings, TranslationSettings
from clip_translator.core.translate.language_detector import LanguageDetector
from clip_translator.core.translate.orchestrator import TranslationOrchestrator
from clip_translator.core.translate.provider_base import ProviderResult, TranslationProvider
from clip_translator.core.translate.provider_mock import MockTranslateProvider
from clip_translator.core.translate.provider_yandex import YandexError


class ScriptedProvider(TranslationProvider):
    """検出言語を指定できるテスト用プロバイダ"""

    name = "scripted"

    def __init__(self, detected: Optional[str] = None, error: Optional[Exception] = None):
        super().__init__()
        self.detected = detected
        self.error = error
        self.calls: List[Tuple[str, str, str]] = []

    def initialize(self, api_key):
        self.api_key = api_key
        self.is_initialized = True

    def translate(self, text, source_language, target_language):
        self.calls.append((text, source_language, target_language))
        if self.error is not None:
            raise self.error

        detected = self.detected if source_language == "auto" else None
        return ProviderResult(
            text=f"{target_language}:{text}",
            source_language=detected or source_language,
            target_language=target_language,
            provider=self.name,
            detected_language=detected,
        )


class FailingDetector:
    def detect(self, text, hint_languages=None):
        raise RuntimeError("detector crashed")


@pytest.fixture
def mock_provider():
    provider = MockTranslateProvider()
    provider.initialize("mock-key")
    return provider


@pytest.fixture
def orchestrator(context, mock_provider, fake_detector):
    return TranslationOrchestrator(context, provider=mock_provider, detector=fake_detector)


class TestEndToEnd:
    """ホットキー入力からの一連の流れ"""

    def test_foreign_then_primary(self, orchestrator, context, mock_provider, fake_detector):
        """英語→ロシア語の後、ロシア語は粘着外国語（英語）へ翻訳"""
        response = orchestrator.translate("Hello world", is_external_trigger=True)

        assert response.success
        assert response.translated_text == "Привет, мир"
        assert response.source_language == "en"
        assert response.target_language == "ru"
        assert response.detected_language == "en"
        assert context.last_foreign_language == "en"

        response = orchestrator.translate("Привет", is_external_trigger=True)

        assert response.success
        assert response.translated_text == "Hello"
        assert response.source_language == "ru"
        assert response.target_language == "en"
        assert context.get_current_pair() == LanguagePair("ru", "en")
        assert mock_provider.call_count == 2

    def test_foreign_then_primary_with_ngram_detector(self, context, mock_provider):
        """実際の言語検出器でも同じ流れになる"""
        orchestrator = TranslationOrchestrator(context, provider=mock_provider, detector=LanguageDetector())

        response = orchestrator.translate("Hello world", is_external_trigger=True)

        assert response.source_language == "en"
        assert response.target_language == "ru"
        assert response.translated_text == "Привет, мир"

        response = orchestrator.translate("Привет", is_external_trigger=True)

        assert response.source_language == "ru"
        assert response.target_language == "en"
        assert response.translated_text == "Hello"
        assert context.get_current_pair() == LanguagePair("ru", "en")

    def test_detector_receives_hints(self, orchestrator, fake_detector):
        orchestrator.translate("Guten Tag", is_external_trigger=True)
        orchestrator.translate("Привет", is_external_trigger=True)

        assert fake_detector.calls[0][1] == ["ru", "en"]
        assert fake_detector.calls[1][1] == ["ru", "de"]

    def test_live_typing_flips_direction(self, orchestrator, context):
        orchestrator.translate("Guten Tag", is_external_trigger=True)
        assert context.get_current_pair() == LanguagePair("de", "ru")

        response = orchestrator.translate("Привет", is_external_trigger=False)

        assert response.source_language == "ru"
        assert response.target_language == "de"
        assert response.translated_text == "Hallo"

    def test_translate_request_object(self, orchestrator):
        response = orchestrator.translate_request(
            TranslationRequest(text="Hello world", is_external_trigger=True)
        )

        assert response.translated_text == "Привет, мир"


class TestCache:
    """キャッシュと履歴"""

    def test_same_request_is_served_from_cache(self, orchestrator, mock_provider):
        first = orchestrator.translate("Hello world", is_external_trigger=True)
        second = orchestrator.translate("Hello world", is_external_trigger=True)

        assert first.from_cache is False
        assert second.from_cache is True
        assert second.translated_text == first.translated_text
        assert mock_provider.call_count == 1

    def test_history_records_provider_calls(self, orchestrator):
        orchestrator.translate("Hello world", is_external_trigger=True)
        orchestrator.translate("Привет", is_external_trigger=True)

        history = orchestrator.get_translation_history()

        assert [h.text for h in history] == ["Привет", "Hello world"]
        assert history[1].result == "Привет, мир"

    def test_cache_stats_and_clear(self, orchestrator, mock_provider):
        orchestrator.translate("Hello world", is_external_trigger=True)

        stats = orchestrator.get_cache_stats()
        assert stats["size"] == 1
        assert stats["history_size"] == 1

        orchestrator.clear_cache()
        orchestrator.clear_history()
        orchestrator.translate("Hello world", is_external_trigger=True)

        assert mock_provider.call_count == 2
        assert len(orchestrator.get_translation_history()) == 1


class TestDirectionCorrection:
    """プロバイダの検出結果による方向補正"""

    def test_inversion_reissues_request(self, context, fake_detector):
        """検出言語が翻訳先と一致したら補正したペアで再翻訳"""
        provider = ScriptedProvider(detected="en")
        orchestrator = TranslationOrchestrator(context, provider=provider, detector=fake_detector)

        response = orchestrator.translate("Some unknown text", is_external_trigger=True)

        assert provider.calls == [
            ("Some unknown text", "auto", "en"),
            ("Some unknown text", "en", "ru"),
        ]
        assert response.translated_text == "ru:Some unknown text"
        assert response.source_language == "en"
        assert response.target_language == "ru"
        assert context.get_current_pair() == LanguagePair("en", "ru")

    def test_undetected_text_is_cached_per_pair(self, context, fake_detector):
        """判定できないテキストは翻訳元autoのキーでキャッシュされる"""
        provider = ScriptedProvider(detected="en")
        orchestrator = TranslationOrchestrator(context, provider=provider, detector=fake_detector)
        orchestrator.translate("Some unknown text", is_external_trigger=True)

        second = orchestrator.translate("Some unknown text", is_external_trigger=True)
        third = orchestrator.translate("Some unknown text", is_external_trigger=True)

        assert second.from_cache is False
        assert provider.calls[2] == ("Some unknown text", "auto", "ru")
        assert third.from_cache is True
        assert third.translated_text == "ru:Some unknown text"
        assert len(provider.calls) == 3

    def test_undetected_input_is_sent_as_auto(self, context, mock_provider, fake_detector):
        """検出できない入力で直前の翻訳元を流用しない"""
        fake_detector.mapping["Привет"] = None
        orchestrator = TranslationOrchestrator(context, provider=mock_provider, detector=fake_detector)
        orchestrator.translate("Hello world", is_external_trigger=True)
        assert context.get_current_pair() == LanguagePair("en", "ru")

        response = orchestrator.translate("Привет", is_external_trigger=True)

        assert response.success
        assert response.source_language == "ru"
        assert response.target_language == "en"
        assert response.translated_text == "Hello"
        assert context.get_current_pair() == LanguagePair("ru", "en")

    def test_regional_detected_code_is_shortened(self, context, fake_detector):
        """zh-CNのような地域付きコードは2文字の言語コードとして扱う"""
        provider = ScriptedProvider(detected="zh-CN")
        orchestrator = TranslationOrchestrator(context, provider=provider, detector=fake_detector)

        response = orchestrator.translate("Some unknown text", is_external_trigger=True)

        assert response.source_language == "zh"
        assert response.detected_language == "zh"
        assert context.last_foreign_language == "zh"
        assert context.get_current_pair() == LanguagePair("zh", "en")

    def test_inversion_checks_cache_before_second_call(self, context, fake_detector):
        provider = ScriptedProvider(detected="en")
        orchestrator = TranslationOrchestrator(context, provider=provider, detector=fake_detector)
        orchestrator.translate("Some unknown text", source="en", target="ru")
        context.reset()

        response = orchestrator.translate("Some unknown text", is_external_trigger=True)

        assert response.from_cache is True
        assert provider.calls == [
            ("Some unknown text", "en", "ru"),
            ("Some unknown text", "auto", "en"),
        ]

    def test_other_detected_language_updates_source(self, context, fake_detector):
        provider = ScriptedProvider(detected="fr")
        orchestrator = TranslationOrchestrator(context, provider=provider, detector=fake_detector)

        response = orchestrator.translate("Some unknown text", is_external_trigger=True)

        assert len(provider.calls) == 1
        assert response.source_language == "fr"
        assert response.detected_language == "fr"
        assert context.last_foreign_language == "fr"


class TestErrors:
    """エラーレスポンス"""

    @pytest.mark.parametrize("text", ["", "   ", "\n"])
    def test_empty_input(self, orchestrator, context, clock, mock_provider, text):
        """空の入力はコンテキストを変更しない"""
        before = context.get_state()
        clock.advance(seconds=1)

        response = orchestrator.translate(text, is_external_trigger=True)

        assert not response.success
        assert response.error.type == TranslationErrorType.EMPTY_INPUT
        assert context.get_current_pair() == LanguagePair(before["current_source"], before["current_target"])
        assert context.get_state()["idle_seconds"] == 1
        assert mock_provider.call_count == 0

    def test_provider_error_becomes_response(self, context, fake_detector):
        provider = ScriptedProvider(error=YandexError("too many", TranslationErrorType.RATE_LIMITED, status_code=429))
        orchestrator = TranslationOrchestrator(context, provider=provider, detector=fake_detector)

        response = orchestrator.translate("Hello world", is_external_trigger=True)

        assert not response.success
        assert response.error.type == TranslationErrorType.RATE_LIMITED
        assert response.error.retryable is True
        assert response.error.provider == "scripted"
        assert response.display_text == "too many"
        assert len(orchestrator.cache) == 0
        assert orchestrator.get_translation_history() == []

    def test_unexpected_exception_becomes_provider_error(self, context, fake_detector):
        provider = ScriptedProvider(error=RuntimeError("boom"))
        orchestrator = TranslationOrchestrator(context, provider=provider, detector=fake_detector)

        response = orchestrator.translate("Hello world", is_external_trigger=True)

        assert response.error.type == TranslationErrorType.PROVIDER_ERROR

    def test_detector_failure_is_ignored(self, context, mock_provider):
        orchestrator = TranslationOrchestrator(context, provider=mock_provider, detector=FailingDetector())

        response = orchestrator.translate("Привет", is_external_trigger=True)

        assert response.success
        assert response.translated_text == "Hello"
        assert response.source_language == "ru"

    def test_same_explicit_languages(self, orchestrator, mock_provider):
        response = orchestrator.translate("Hello", source="en", target="en")

        assert response.error.type == TranslationErrorType.INVALID_REQUEST
        assert mock_provider.call_count == 0


class TestSequencing:
    """最新のリクエストのみを適用"""

    def test_stale_request_is_dropped(self, orchestrator, context, mock_provider):
        older = orchestrator.next_sequence()
        newer = orchestrator.next_sequence()

        response = orchestrator.translate("Hello world", is_external_trigger=True, sequence=newer)
        assert response.success
        assert response.sequence == newer
        pair = context.get_current_pair()

        stale = orchestrator.translate("Привет", is_external_trigger=True, sequence=older)

        assert stale.stale is True
        assert stale.error.type == TranslationErrorType.STALE_REQUEST
        assert context.get_current_pair() == pair
        assert mock_provider.call_count == 1

    def test_sequences_are_monotonic(self, orchestrator):
        first = orchestrator.translate("Hello world", is_external_trigger=True)
        second = orchestrator.translate("Привет", is_external_trigger=True)

        assert second.sequence > first.sequence

    def test_external_sequence_advances_counter(self, orchestrator):
        orchestrator.translate("Hello world", is_external_trigger=True, sequence=10)

        assert orchestrator.next_sequence() == 11


class TestBypassMode:
    """自動切り替えを無効にした場合"""

    @pytest.fixture
    def bypass(self, context, mock_provider, fake_detector):
        return TranslationOrchestrator(
            context, provider=mock_provider, detector=fake_detector, smart_switch=False
        )

    def test_explicit_foreign_source_targets_primary(self, bypass, context, fake_detector):
        response = bypass.translate("Guten Tag", source="de")

        assert response.source_language == "de"
        assert response.target_language == "ru"
        assert context.last_foreign_language == "de"
        assert context.get_current_pair() == LanguagePair("auto", "en")
        assert fake_detector.calls == []

    def test_auto_source_targets_sticky_foreign(self, bypass):
        bypass.translate("Guten Tag", source="de")

        response = bypass.translate("Hello", source="auto")

        assert response.target_language == "de"
        assert response.translated_text == "Hallo"

    def test_explicit_target(self, bypass):
        response = bypass.translate("Hello world", source="en", target="ru")

        assert response.translated_text == "Привет, мир"

    def test_explicit_source_in_smart_mode_skips_context(self, orchestrator, context, fake_detector):
        response = orchestrator.translate("Hello world", source="en", target="ru", is_external_trigger=True)

        assert response.translated_text == "Привет, мир"
        assert fake_detector.calls == []
        assert context.get_current_pair() == LanguagePair("auto", "en")


class TestProviderManagement:
    """プロバイダの管理"""

    def test_lazy_mock_fallback(self, context, fake_detector):
        orchestrator = TranslationOrchestrator(context, detector=fake_detector)

        response = orchestrator.translate("Hello world", is_external_trigger=True)

        assert response.success
        assert response.provider == "mock"
        assert isinstance(orchestrator.provider, MockTranslateProvider)

    def test_switch_provider_clears_cache(self, orchestrator):
        orchestrator.translate("Hello world", is_external_trigger=True)

        assert orchestrator.switch_provider("mock", "another-key")
        assert len(orchestrator.cache) == 0
        assert orchestrator.get_current_provider_info() == {"name": "mock", "initialized": True}

    def test_failed_switch_keeps_provider(self, orchestrator, mock_provider):
        assert not orchestrator.switch_provider("deepl", "")
        assert orchestrator.provider is mock_provider

    def test_initialize_provider_raises(self, orchestrator):
        with pytest.raises(YandexError):
            orchestrator.initialize_provider("yandex", "")

    def test_test_connection(self, orchestrator):
        assert orchestrator.test_connection().success

    def test_test_connection_without_provider(self, context, fake_detector):
        orchestrator = TranslationOrchestrator(context, detector=fake_detector)

        assert not orchestrator.test_connection().success

    def test_test_provider_connection_failure(self, orchestrator, mock_provider):
        result = orchestrator.test_provider_connection("deepl", "")

        assert not result.success
        assert result.details["error"] == "INVALID_API_KEY"
        assert orchestrator.provider is mock_provider

    def test_validate_api_key(self, orchestrator):
        assert orchestrator.validate_api_key("mock", "12345").valid
        assert not orchestrator.validate_api_key("mock", "123").valid

    def test_supported_languages(self, orchestrator):
        codes = [lang.code for lang in orchestrator.get_supported_languages()]

        assert "ru" in codes

    def test_available_providers(self, orchestrator):
        names = [p["name"] for p in orchestrator.get_available_providers()]

        assert names == ["mock", "google", "yandex", "deepl"]


class TestSettingsIntegration:
    """設定との連携"""

    def test_from_settings(self, fake_detector):
        settings = AppSettings(translation=TranslationSettings(
            primary_language="uk", second_language="de", session_timeout=10, smart_switch=False,
        ))

        orchestrator = TranslationOrchestrator.from_settings(settings, detector=fake_detector)

        assert orchestrator.context.primary_language == "uk"
        assert orchestrator.context.get_current_pair() == LanguagePair("auto", "de")
        assert orchestrator.context.timeout_seconds == 600
        assert orchestrator.smart_switch is False
        assert orchestrator.provider.name == "mock"

    def test_from_settings_with_broken_provider(self, fake_detector):
        """プロバイダの初期化に失敗してもモックで翻訳できる"""
        settings = AppSettings(provider=ProviderSettings(name="yandex"))

        orchestrator = TranslationOrchestrator.from_settings(settings, detector=fake_detector)
        assert orchestrator.provider is None

        response = orchestrator.translate("Hello world", is_external_trigger=True)

        assert response.provider == "mock"

    def test_settings_change_listener(self, settings_manager, fake_detector):
        orchestrator = TranslationOrchestrator.from_settings(
            settings_manager.load_settings(), detector=fake_detector
        )
        settings_manager.add_change_listener(orchestrator.on_settings_changed)
        original_provider = orchestrator.provider

        settings_manager.update_translation_settings(second_language="de", smart_switch=False)

        assert orchestrator.context.default_foreign_language == "de"
        assert orchestrator.context.get_current_pair() == LanguagePair("auto", "de")
        assert orchestrator.smart_switch is False
        # プロバイダ設定は変わっていないので再初期化しない
        assert orchestrator.provider is original_provider

    def test_provider_change_switches_provider(self, orchestrator, mock_provider):
        settings = AppSettings(provider=ProviderSettings(name="mock", api_key="new-key"))

        orchestrator.on_settings_changed(settings)

        assert orchestrator.provider is not mock_provider
        assert orchestrator.provider.api_key == "new-key"
        assert orchestrator.provider_settings == settings.provider
