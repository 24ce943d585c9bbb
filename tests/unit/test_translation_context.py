"""
翻訳コンテキストのテスト
"""

from clip_translator.core.models import AUTO_LANGUAGE, LanguagePair
from clip_translator.core.translate.context import TranslationContext


class TestInitialState:
    """初期状態のテスト"""

    def test_initial_pair(self, context):
        assert context.get_current_pair() == LanguagePair("auto", "en")
        assert context.last_foreign_language == "en"
        assert context.primary_language == "ru"

    def test_language_codes_are_normalized(self, clock):
        ctx = TranslationContext(" RU ", "En", clock=clock)

        assert ctx.primary_language == "ru"
        assert ctx.default_foreign_language == "en"
        assert ctx.current_target == "en"

    def test_timeout_in_seconds(self, clock):
        ctx = TranslationContext(timeout_minutes=5, clock=clock)

        assert ctx.timeout_seconds == 300


class TestExternalInput:
    """外部入力（ホットキー）のテスト"""

    def test_foreign_input_translates_to_primary(self, context):
        """外国語の入力は 外国語→母国語"""
        context.handle_external_input("en")

        assert context.get_current_pair() == LanguagePair("en", "ru")
        assert context.last_foreign_language == "en"

    def test_primary_input_reuses_sticky_foreign(self, context):
        """母国語の入力は粘着外国語へ翻訳"""
        context.handle_external_input("en")
        context.handle_external_input("ru")

        assert context.get_current_pair() == LanguagePair("ru", "en")
        assert context.last_foreign_language == "en"

    def test_new_foreign_language_becomes_sticky(self, context):
        context.handle_external_input("de")
        context.handle_external_input("ru")

        assert context.get_current_pair() == LanguagePair("ru", "de")
        assert context.last_foreign_language == "de"

    def test_no_detection_keeps_state(self, context):
        context.handle_external_input("de")
        context.handle_external_input(None)

        assert context.get_current_pair() == LanguagePair("de", "ru")

    def test_primary_never_becomes_sticky(self, context):
        context.handle_external_input("ru")

        assert context.last_foreign_language == "en"
        assert context.last_foreign_language != context.primary_language


class TestInputUpdate:
    """入力欄でのライブ編集のテスト"""

    def test_typing_target_language_flips_direction(self, context):
        """翻訳先の言語で入力し始めたら方向を反転"""
        context.handle_external_input("de")
        assert context.get_current_pair() == LanguagePair("de", "ru")

        context.handle_input_update("ru")

        assert context.get_current_pair() == LanguagePair("ru", "de")

    def test_typing_sticky_foreign_corrects_to_primary(self, context):
        """粘着外国語に戻ったら 外国語→母国語 に補正"""
        context.handle_external_input("de")
        context.handle_input_update("ru")
        assert context.get_current_pair() == LanguagePair("ru", "de")

        context.handle_input_update("de")

        assert context.get_current_pair() == LanguagePair("de", "ru")

    def test_flip_to_foreign_target(self, context):
        """母国語→外国語 の状態で外国語を入力"""
        context.handle_external_input("ru")
        assert context.get_current_pair() == LanguagePair("ru", "en")

        context.handle_input_update("en")

        assert context.get_current_pair() == LanguagePair("en", "ru")

    def test_unrelated_detection_is_ignored(self, context):
        """翻訳先でも粘着外国語でもない言語は無視"""
        context.handle_external_input("de")

        context.handle_input_update("fr")

        assert context.get_current_pair() == LanguagePair("de", "ru")
        assert context.last_foreign_language == "de"

    def test_sticky_foreign_already_source_is_noop(self, context):
        context.handle_external_input("de")

        context.handle_input_update("de")

        assert context.get_current_pair() == LanguagePair("de", "ru")

    def test_none_is_ignored(self, context):
        context.handle_input_update(None)

        assert context.get_current_pair() == LanguagePair("auto", "en")


class TestManualPair:
    """言語セレクタによる手動指定のテスト"""

    def test_explicit_pair(self, context):
        context.set_manual_pair("de", "ru")

        assert context.get_current_pair() == LanguagePair("de", "ru")
        assert context.last_foreign_language == "de"

    def test_foreign_target_becomes_sticky(self, context):
        context.set_manual_pair("ru", "fr")

        assert context.get_current_pair() == LanguagePair("ru", "fr")
        assert context.last_foreign_language == "fr"

    def test_auto_source(self, context):
        context.set_manual_pair("de", "ru")
        context.set_manual_pair(AUTO_LANGUAGE, "ru")

        assert context.get_current_pair() == LanguagePair("auto", "ru")

    def test_identical_pair_is_ignored(self, context):
        context.set_manual_pair("de", "de")

        assert context.get_current_pair() == LanguagePair("auto", "en")
        assert context.last_foreign_language == "en"

    def test_source_equal_to_current_target_rederives_target(self, context):
        """翻訳元と翻訳先が同じにならない"""
        context.set_manual_pair("en", None)

        assert context.get_current_pair() == LanguagePair("en", "ru")

        context.set_manual_pair("ru", None)

        assert context.get_current_pair() == LanguagePair("ru", "en")


class TestApiResult:
    """プロバイダの検出結果による補正のテスト"""

    def test_detected_equals_target_inverts(self, context):
        """検出言語が翻訳先と一致すれば反転を通知"""
        assert context.get_current_pair() == LanguagePair("auto", "en")

        inverted = context.update_from_api_result("en")

        assert inverted is True
        assert context.get_current_pair() == LanguagePair("en", "ru")
        assert context.last_foreign_language == "en"

    def test_primary_detected_as_target_inverts_to_sticky(self, context):
        context.handle_external_input("de")

        inverted = context.update_from_api_result("ru")

        assert inverted is True
        assert context.get_current_pair() == LanguagePair("ru", "de")

    def test_detected_differs_from_target_updates_source_only(self, context):
        inverted = context.update_from_api_result("de")

        assert inverted is False
        assert context.get_current_pair() == LanguagePair("de", "en")
        assert context.last_foreign_language == "de"

    def test_primary_detected_does_not_change_sticky(self, context):
        inverted = context.update_from_api_result("ru")

        assert inverted is False
        assert context.get_current_pair() == LanguagePair("ru", "en")
        assert context.last_foreign_language == "en"

    def test_empty_detection(self, context):
        assert context.update_from_api_result(None) is False
        assert context.update_from_api_result("auto") is False
        assert context.get_current_pair() == LanguagePair("auto", "en")


class TestTimeout:
    """セッションタイムアウトのテスト"""

    def test_check_timeout_without_expiry_is_noop(self, context):
        context.handle_external_input("de")

        assert context.check_timeout() is False
        assert context.check_timeout() is False
        assert context.get_current_pair() == LanguagePair("de", "ru")

    def test_check_timeout_resets_once(self, context, clock):
        """期限切れのリセットは一度だけ適用される"""
        context.handle_external_input("de")
        clock.advance(minutes=61)

        assert context.check_timeout() is True
        assert context.get_current_pair() == LanguagePair("auto", "en")
        assert context.last_foreign_language == "en"

        assert context.check_timeout() is False
        assert context.get_current_pair() == LanguagePair("auto", "en")

    def test_not_expired_at_boundary(self, context, clock):
        context.handle_external_input("de")
        clock.advance(minutes=60)

        assert context.check_timeout() is False
        assert context.last_foreign_language == "de"

    def test_mutation_after_timeout_resets_first(self, context, clock):
        """タイムアウト後の入力はリセットしてから反映"""
        context.handle_external_input("de")
        clock.advance(minutes=61)

        context.handle_external_input("ru")

        # 粘着外国語はdeではなく既定値に戻っている
        assert context.get_current_pair() == LanguagePair("ru", "en")
        assert context.last_foreign_language == "en"

    def test_activity_extends_session(self, context, clock):
        context.handle_external_input("de")
        clock.advance(minutes=50)
        context.handle_input_update(None)
        clock.advance(minutes=50)

        context.handle_external_input("ru")

        assert context.get_current_pair() == LanguagePair("ru", "de")

    def test_touch(self, context, clock):
        clock.advance(minutes=30)
        context.touch()

        assert context.last_activity == clock.now
        assert context.is_expired() is False


class TestUpdateConfig:
    """設定変更のテスト"""

    def test_new_default_applies_when_unused(self, context):
        context.update_config("ru", "de", 30)

        assert context.default_foreign_language == "de"
        assert context.last_foreign_language == "de"
        assert context.get_current_pair() == LanguagePair("auto", "de")
        assert context.timeout_seconds == 1800

    def test_session_foreign_language_is_kept(self, context):
        """セッション中に使った外国語は維持"""
        context.handle_external_input("fr")

        context.update_config("ru", "de")

        assert context.default_foreign_language == "de"
        assert context.last_foreign_language == "fr"
        assert context.get_current_pair() == LanguagePair("fr", "ru")

    def test_expired_session_takes_new_default(self, context, clock):
        context.handle_external_input("fr")
        clock.advance(minutes=61)

        context.update_config("ru", "de")

        assert context.last_foreign_language == "de"

    def test_primary_change_keeps_invariant(self, context):
        """母国語を粘着外国語と同じ言語に変更"""
        context.update_config("en", "ru")

        assert context.primary_language == "en"
        assert context.last_foreign_language == "ru"
        assert context.last_foreign_language != context.primary_language

    def test_none_values_are_ignored(self, context):
        context.update_config(None, None, None)

        assert context.primary_language == "ru"
        assert context.default_foreign_language == "en"
        assert context.timeout_seconds == 3600


class TestState:
    def test_get_state(self, context, clock):
        context.handle_external_input("de")
        clock.advance(seconds=5)

        state = context.get_state()

        assert state["current_source"] == "de"
        assert state["current_target"] == "ru"
        assert state["last_foreign_language"] == "de"
        assert state["idle_seconds"] == 5

    def test_reset(self, context):
        context.handle_external_input("de")

        context.reset()

        assert context.get_current_pair() == LanguagePair("auto", "en")
        assert context.last_foreign_language == "en"
