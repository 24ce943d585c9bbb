"""
データモデル定義
翻訳リクエスト・レスポンスと言語ペアの値オブジェクト
"""

import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from .error_handler import TranslationErrorInfo

# 自動検出を表す言語コード
AUTO_LANGUAGE = "auto"


@dataclass(frozen=True)
class LanguagePair:
    """翻訳元・翻訳先の言語ペア"""
    source: str
    target: str

    def to_dict(self) -> Dict[str, str]:
        """辞書形式に変換"""
        return {"source": self.source, "target": self.target}


@dataclass
class TranslationRequest:
    """翻訳リクエスト"""
    text: str
    source: str = AUTO_LANGUAGE
    target: Optional[str] = None
    is_external_trigger: bool = False  # ホットキー等の外部トリガーか、入力欄の編集か
    sequence: Optional[int] = None


@dataclass
class TranslationResponse:
    """翻訳レスポンス"""
    translated_text: str
    original_text: str
    source_language: str
    target_language: Optional[str]
    provider: Optional[str]
    detected_language: Optional[str] = None
    confidence: Optional[float] = None
    from_cache: bool = False
    error: Optional[TranslationErrorInfo] = None
    sequence: Optional[int] = None
    stale: bool = False
    timestamp: float = field(default_factory=time.time)

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def display_text(self) -> str:
        """表示用テキスト（エラー時はエラーメッセージ）"""
        if self.error is not None:
            return self.error.message
        return self.translated_text

    def to_dict(self) -> Dict[str, Any]:
        """辞書形式に変換"""
        data = asdict(self)
        data["error"] = self.error.to_dict() if self.error else None
        data["success"] = self.success
        return data
