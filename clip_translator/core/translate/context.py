"""
翻訳セッションコンテキスト
「母国語」と「最後に使った外国語」を記憶し、入力ごとに翻訳方向を決定する
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from ..models import AUTO_LANGUAGE, LanguagePair


def _normalize(language: Any) -> Optional[str]:
    """言語コードを正規化（不正な値はNone）"""
    if not isinstance(language, str):
        return None
    language = language.strip().lower()
    return language or None


class TranslationContext:
    """翻訳セッションの状態を保持するステートマシン

    状態は current_source / current_target / last_foreign_language /
    last_activity の4項目から導出される。すべての更新系メソッドは
    最初にタイムアウト判定を行い、期限切れのセッションをリセットしてから
    新しい入力を反映する。更新系メソッドは例外を送出しない。
    """

    def __init__(
        self,
        primary_language: str = "ru",
        default_foreign_language: str = "en",
        timeout_minutes: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock

        self.primary_language = _normalize(primary_language) or "ru"
        self.default_foreign_language = _normalize(default_foreign_language) or "en"
        self.timeout_seconds = float(timeout_minutes) * 60

        # セッション状態
        self.current_source = AUTO_LANGUAGE
        self.current_target = self.default_foreign_language

        # 「粘着」外国語：最後に使用した母国語以外の言語
        self.last_foreign_language = self.default_foreign_language

        self.last_activity = self._clock()

    # ------------------------------------------------------------------
    # 入力イベント
    # ------------------------------------------------------------------

    def handle_external_input(self, detected_language: Optional[str]) -> None:
        """外部トリガー（ホットキーで取得した選択テキスト等）の入力を反映

        母国語なら 母国語→粘着外国語、外国語なら その言語→母国語 に設定し、
        粘着外国語を更新する。
        """
        self.check_timeout()
        self.touch()

        detected = _normalize(detected_language)
        if detected is None:
            return

        if detected == self.primary_language:
            self.current_source = self.primary_language
            self.current_target = self.last_foreign_language
            logging.debug(f"外部入力（母国語）: {self.current_source} -> {self.current_target}")
        else:
            self.current_source = detected
            self.current_target = self.primary_language
            self.last_foreign_language = detected
            logging.debug(
                f"外部入力（外国語）: {self.current_source} -> {self.current_target}, "
                f"粘着外国語を {detected} に更新"
            )

    def handle_input_update(self, detected_language: Optional[str]) -> None:
        """入力欄でのライブ編集を反映

        ユーザーが翻訳先の言語で入力し始めた場合は方向を反転し、
        粘着外国語に戻った場合は 外国語→母国語 に補正する。
        それ以外の検出結果は無視する（短い断片での誤検出対策）。
        """
        self.check_timeout()
        self.touch()

        detected = _normalize(detected_language)
        if detected is None:
            return

        if detected == self.current_target:
            # 例: de -> ru の状態でユーザーが ru で入力し始めた
            self.current_source = detected
            if detected == self.primary_language:
                self.current_target = self.last_foreign_language
            else:
                self.current_target = self.primary_language
            logging.debug(f"方向反転: {self.current_source} -> {self.current_target}")

        elif detected == self.last_foreign_language and self.current_source != self.last_foreign_language:
            # 例: ru -> de の状態でユーザーが de で入力し始めた
            self.current_source = self.last_foreign_language
            self.current_target = self.primary_language
            logging.debug(f"外国語へ補正: {self.current_source} -> {self.current_target}")

    def set_manual_pair(self, source: Optional[str], target: Optional[str]) -> None:
        """言語セレクタによる明示的な指定"""
        self.check_timeout()
        self.touch()

        source = _normalize(source)
        target = _normalize(target)

        if source and source != AUTO_LANGUAGE and source == target:
            logging.warning(f"同一言語のペアは無視します: {source} -> {target}")
            return

        if source:
            self.current_source = source
            if source != AUTO_LANGUAGE:
                self._remember(source)

        if target and target != AUTO_LANGUAGE:
            self.current_target = target
            self._remember(target)

        # 翻訳元と翻訳先が同じ言語にならないようにする
        if self.current_source == self.current_target:
            if self.current_source == self.primary_language:
                self.current_target = self.last_foreign_language
            else:
                self.current_target = self.primary_language

        logging.debug(f"手動指定: {self.current_source} -> {self.current_target}")

    def update_from_api_result(self, detected_language: Optional[str]) -> bool:
        """プロバイダが検出した言語でコンテキストを補正

        Returns:
            検出言語が現在の翻訳先と一致し方向を反転した場合True
            （呼び出し側は補正後のペアで再リクエストする）
        """
        self.check_timeout()
        self.touch()

        detected = _normalize(detected_language)
        if detected is None or detected == AUTO_LANGUAGE:
            return False

        if detected == self.current_target:
            self._remember(detected)
            self.current_source = detected
            if detected == self.primary_language:
                self.current_target = self.last_foreign_language
            else:
                self.current_target = self.primary_language
            logging.debug(f"API結果により方向反転: {self.current_source} -> {self.current_target}")
            return True

        self.current_source = detected
        self._remember(detected)
        return False

    def remember_foreign(self, language: Optional[str]) -> bool:
        """翻訳方向を変えずに粘着外国語だけを更新"""
        self.check_timeout()
        self.touch()
        return self._remember(_normalize(language))

    # ------------------------------------------------------------------
    # 設定・タイムアウト
    # ------------------------------------------------------------------

    def update_config(
        self,
        primary: Optional[str] = None,
        secondary: Optional[str] = None,
        timeout_minutes: Optional[float] = None,
    ) -> None:
        """設定変更をコンテキストに反映"""
        expired = self.is_expired()

        primary = _normalize(primary)
        if primary:
            self.primary_language = primary

        secondary = _normalize(secondary)
        if secondary:
            old_default = self.default_foreign_language
            self.default_foreign_language = secondary

            # セッション中に別の外国語を使っていない場合のみ新しい既定値を反映
            if self.last_foreign_language == old_default or expired:
                self.last_foreign_language = secondary
            if self.current_target == old_default or expired:
                self.current_target = secondary

        if self.last_foreign_language == self.primary_language:
            self.last_foreign_language = self.default_foreign_language
        if self.current_source == self.current_target:
            self.current_source = AUTO_LANGUAGE

        if timeout_minutes:
            self.timeout_seconds = float(timeout_minutes) * 60

        logging.info(
            f"翻訳コンテキスト設定更新: primary={self.primary_language}, "
            f"default_foreign={self.default_foreign_language}, timeout={self.timeout_seconds}s"
        )

    def check_timeout(self) -> bool:
        """タイムアウトしていればセッションをリセット

        Returns:
            リセットを行った場合True
        """
        if not self.is_expired():
            return False

        logging.info("翻訳セッションがタイムアウトしました。コンテキストを既定値に戻します")
        self.reset()
        return True

    def is_expired(self) -> bool:
        return (self._clock() - self.last_activity) > self.timeout_seconds

    def touch(self) -> None:
        self.last_activity = self._clock()

    def reset(self) -> None:
        """セッション状態を既定値に戻す"""
        self.last_foreign_language = self.default_foreign_language
        self.current_source = AUTO_LANGUAGE
        self.current_target = self.default_foreign_language
        self.touch()

    # ------------------------------------------------------------------
    # 参照
    # ------------------------------------------------------------------

    def get_current_pair(self) -> LanguagePair:
        """現在の言語ペアを取得"""
        return LanguagePair(source=self.current_source, target=self.current_target)

    def get_state(self) -> Dict[str, Any]:
        """デバッグ用の状態スナップショット"""
        return {
            "primary_language": self.primary_language,
            "default_foreign_language": self.default_foreign_language,
            "last_foreign_language": self.last_foreign_language,
            "current_source": self.current_source,
            "current_target": self.current_target,
            "timeout_seconds": self.timeout_seconds,
            "idle_seconds": self._clock() - self.last_activity,
        }

    def _remember(self, language: Optional[str]) -> bool:
        if not language or language in (AUTO_LANGUAGE, self.primary_language):
            return False
        self.last_foreign_language = language
        return True
