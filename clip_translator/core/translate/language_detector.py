"""
言語検出機能の実装
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

try:
    from langdetect.detector_factory import PROFILES_DIRECTORY, DetectorFactory
    from langdetect.lang_detect_exception import LangDetectException
    LANGDETECT_AVAILABLE = True
except ImportError:
    LANGDETECT_AVAILABLE = False


@dataclass
class LanguageDetectionResult:
    """言語検出結果"""
    language: str
    confidence: float
    alternatives: List[Dict[str, float]]


class LanguageDetectionError(Exception):
    """言語検出関連エラー"""
    pass


class LanguageDetector:
    """言語検出器（langdetectのn-gramモデルをラップ）"""

    # これ未満の文字数では検出しない
    MIN_TEXT_LENGTH = 3
    # これ未満の文字数では高い信頼度を要求する
    SHORT_TEXT_LENGTH = 10
    SHORT_TEXT_MIN_CONFIDENCE = 0.75

    # ヒントに関係なく常に候補に含める言語
    BASE_WHITELIST = ('en', 'ru', 'es', 'fr', 'de', 'zh', 'ja')

    SUPPORTED_LANGUAGES = {
        'en': 'english',
        'ru': 'russian',
        'es': 'spanish',
        'fr': 'french',
        'de': 'german',
        'zh': 'chinese',
        'ja': 'japanese',
        'ko': 'korean',
        'it': 'italian',
        'tr': 'turkish',
        'uk': 'ukrainian',
        'ar': 'arabic',
        'pt': 'portuguese',
        'nl': 'dutch',
        'pl': 'polish',
        'bg': 'bulgarian',
        'cs': 'czech',
        'da': 'danish',
        'fi': 'finnish',
        'el': 'greek',
        'hu': 'hungarian',
        'id': 'indonesian',
        'lv': 'latvian',
        'lt': 'lithuanian',
        'no': 'norwegian',
        'ro': 'romanian',
        'sk': 'slovak',
        'sl': 'slovenian',
        'sv': 'swedish',
        'th': 'thai',
        'vi': 'vietnamese',
    }

    # langdetectの言語コードから内部言語コードへのマッピング
    LANGDETECT_TO_INTERNAL = {
        'en': 'en',
        'ru': 'ru',
        'es': 'es',
        'fr': 'fr',
        'de': 'de',
        'zh-cn': 'zh',
        'zh-tw': 'zh',
        'ja': 'ja',
        'ko': 'ko',
        'it': 'it',
        'tr': 'tr',
        'uk': 'uk',
        'ar': 'ar',
        'pt': 'pt',
        'nl': 'nl',
        'pl': 'pl',
        'bg': 'bg',
        'cs': 'cs',
        'da': 'da',
        'fi': 'fi',
        'el': 'el',
        'hu': 'hu',
        'id': 'id',
        'lv': 'lv',
        'lt': 'lt',
        'no': 'no',
        'ro': 'ro',
        'sk': 'sk',
        'sl': 'sl',
        'sv': 'sv',
        'th': 'th',
        'vi': 'vi',
    }

    def __init__(self):
        if not LANGDETECT_AVAILABLE:
            raise LanguageDetectionError("langdetectパッケージがインストールされていません")

        # langdetectの設定
        DetectorFactory.seed = 0  # 一貫した結果のため

        # 事前確率を検出ごとに変えるため、専用のファクトリでプロファイルを読み込む
        self._factory = DetectorFactory()
        try:
            self._factory.load_profile(PROFILES_DIRECTORY)
        except LangDetectException as e:
            raise LanguageDetectionError(f"言語プロファイルの読み込みに失敗しました: {str(e)}") from e

    def detect(self, text: str, hint_languages: Optional[Iterable[str]] = None) -> Optional[str]:
        """
        ヒント言語を優先してテキストの言語コードを推定

        短いテキストは曖昧なため、誤った推定でコンテキストを汚さないよう
        信頼度が足りない場合はNoneを返す。検出器のエラーもNoneとして扱う。

        Args:
            text: 検出対象のテキスト
            hint_languages: 候補として優先する言語コード（母国語・粘着外国語など）

        Returns:
            2文字の言語コード、または判定できない場合None
        """
        sample = (text or "").strip()
        if len(sample) < self.MIN_TEXT_LENGTH:
            return None

        min_confidence = self.SHORT_TEXT_MIN_CONFIDENCE if len(sample) < self.SHORT_TEXT_LENGTH else 0.0

        try:
            result = self.detect_language(
                sample,
                min_confidence=min_confidence,
                whitelist=self._build_whitelist(hint_languages),
            )
        except LanguageDetectionError as e:
            logging.warning(f"言語検出に失敗したため検出なしとして扱います: {e}")
            return None

        return result.language if result else None

    def detect_language(
        self,
        text: str,
        min_confidence: float = 0.8,
        whitelist: Optional[Iterable[str]] = None,
    ) -> Optional[LanguageDetectionResult]:
        """
        テキストの言語を検出

        Args:
            text: 検出対象のテキスト
            min_confidence: 最小信頼度
            whitelist: 事前確率を与える内部言語コード（Noneなら全言語を同等に扱う）

        Returns:
            検出結果。信頼度が閾値を下回る場合や未対応の言語の場合はNone
        """
        if not text or not text.strip():
            return None

        prior_map = self._build_prior_map(whitelist) if whitelist is not None else None

        try:
            lang_probs = self._get_probabilities(text, prior_map)
        except LangDetectException as e:
            raise LanguageDetectionError(f"言語検出に失敗しました: {str(e)}") from e
        except Exception as e:
            logging.error(f"言語検出中にエラー: {e}")
            raise LanguageDetectionError(f"言語検出に失敗しました: {str(e)}") from e

        # 候補を内部言語コードに変換（マッピングのない言語は除外）
        candidates = []
        for lang_prob in lang_probs or []:
            internal_lang = self.LANGDETECT_TO_INTERNAL.get(lang_prob.lang)
            if not internal_lang:
                logging.debug(f"未対応の言語コード: {lang_prob.lang}")
                continue
            candidates.append((internal_lang, lang_prob.prob))

        if not candidates:
            return None

        top_lang, top_prob = candidates[0]

        # 信頼度チェック
        if top_prob < min_confidence:
            logging.info(f"言語検出の信頼度が低い: {top_lang} ({top_prob:.2f})")
            return None

        alternatives = [
            {'language': lang, 'confidence': prob}
            for lang, prob in candidates[1:]
        ]

        return LanguageDetectionResult(
            language=top_lang,
            confidence=top_prob,
            alternatives=alternatives
        )

    def is_language_supported(self, lang_code: str) -> bool:
        """
        言語がサポートされているかチェック
        """
        return lang_code in self.SUPPORTED_LANGUAGES

    def get_language_name(self, lang_code: str) -> str:
        """
        言語コードから言語名を取得（未知の場合は言語コードそのまま）
        """
        return self.SUPPORTED_LANGUAGES.get(lang_code, lang_code)

    def _get_probabilities(self, text: str, prior_map: Optional[Dict[str, float]] = None) -> list:
        """n-gram検出器で言語ごとの確率を計算（確率の高い順）"""
        detector = self._factory.create()
        if prior_map:
            detector.set_prior_map(prior_map)
        detector.append(text)
        return detector.get_probabilities()

    def _build_prior_map(self, whitelist: Iterable[str]) -> Dict[str, float]:
        """内部言語コードからlangdetectの事前確率マップを作成（候補外は0）"""
        allowed = set(whitelist)
        return {
            langdetect_code: 1.0
            for langdetect_code, internal_lang in self.LANGDETECT_TO_INTERNAL.items()
            if internal_lang in allowed
        }

    def _build_whitelist(self, hint_languages: Optional[Iterable[str]]) -> List[str]:
        whitelist = []
        for lang in list(hint_languages or []) + list(self.BASE_WHITELIST):
            if isinstance(lang, str) and lang in self.SUPPORTED_LANGUAGES and lang not in whitelist:
                whitelist.append(lang)
        return whitelist
