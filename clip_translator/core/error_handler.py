"""
エラー分類とエラーハンドリング用のユーティリティ
翻訳プロバイダや入力検証のエラーを統一的な形式に変換する
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Dict, List, Optional


class TranslationErrorType(str, Enum):
    """翻訳エラーの種類"""
    EMPTY_INPUT = "EMPTY_INPUT"
    INVALID_API_KEY = "INVALID_API_KEY"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    RATE_LIMITED = "RATE_LIMITED"
    UNSUPPORTED_LANGUAGE = "UNSUPPORTED_LANGUAGE"
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    STALE_REQUEST = "STALE_REQUEST"


# 再試行で解決する可能性があるエラー
RETRYABLE_ERRORS = {
    TranslationErrorType.RATE_LIMITED,
    TranslationErrorType.PROVIDER_ERROR,
    TranslationErrorType.NETWORK_ERROR,
}


class ErrorSeverity:
    """エラー重要度の定義"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_SEVERITY_BY_TYPE = {
    TranslationErrorType.EMPTY_INPUT: ErrorSeverity.INFO,
    TranslationErrorType.STALE_REQUEST: ErrorSeverity.INFO,
    TranslationErrorType.RATE_LIMITED: ErrorSeverity.WARNING,
    TranslationErrorType.NETWORK_ERROR: ErrorSeverity.WARNING,
    TranslationErrorType.UNSUPPORTED_LANGUAGE: ErrorSeverity.WARNING,
    TranslationErrorType.INVALID_REQUEST: ErrorSeverity.WARNING,
    TranslationErrorType.INVALID_API_KEY: ErrorSeverity.ERROR,
    TranslationErrorType.QUOTA_EXCEEDED: ErrorSeverity.ERROR,
    TranslationErrorType.PROVIDER_ERROR: ErrorSeverity.ERROR,
}


def is_retryable(error_type: TranslationErrorType) -> bool:
    """エラー種別のデフォルト再試行可否"""
    return error_type in RETRYABLE_ERRORS


@dataclass
class TranslationErrorInfo:
    """レスポンスに添付される構造化エラー"""
    type: TranslationErrorType
    message: str
    retryable: bool = False
    provider: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        """辞書形式に変換"""
        return {
            "type": self.type.value,
            "message": self.message,
            "retryable": self.retryable,
            "provider": self.provider,
            "details": self.details,
            "timestamp": self.timestamp,
        }


class TranslationProviderError(Exception):
    """翻訳プロバイダ共通エラー"""

    def __init__(
        self,
        message: str,
        error_type: TranslationErrorType = TranslationErrorType.PROVIDER_ERROR,
        retryable: Optional[bool] = None,
        status_code: int = 0,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.retryable = is_retryable(error_type) if retryable is None else retryable
        self.status_code = status_code
        self.original_error = original_error

    @property
    def error_code(self) -> str:
        return self.error_type.value


class ErrorHandler:
    """エラーを分類し、ログに記録する"""

    # ユーザー向けガイダンス
    GUIDANCE = {
        TranslationErrorType.EMPTY_INPUT: "翻訳するテキストを入力してください。",
        TranslationErrorType.INVALID_API_KEY: (
            "APIキーが無効です。設定画面でAPIキーを確認してください。"
        ),
        TranslationErrorType.QUOTA_EXCEEDED: (
            "APIの利用上限に達しました。上限のリセットを待つか、別のプロバイダを選択してください。"
        ),
        TranslationErrorType.RATE_LIMITED: (
            "リクエストが多すぎます。しばらく時間をおいて再試行してください。"
        ),
        TranslationErrorType.UNSUPPORTED_LANGUAGE: (
            "この言語ペアはプロバイダでサポートされていません。"
        ),
        TranslationErrorType.NETWORK_ERROR: "インターネット接続を確認してください。",
        TranslationErrorType.INVALID_REQUEST: (
            "リクエストが無効です。言語コードとテキストを確認してください。"
        ),
        TranslationErrorType.PROVIDER_ERROR: (
            "翻訳サービスでエラーが発生しました。しばらくしてから再試行してください。"
        ),
        TranslationErrorType.STALE_REQUEST: "より新しいリクエストが処理済みです。",
    }

    def __init__(self, max_history: int = 100):
        self.logger = logging.getLogger(__name__)
        self.error_count = 0
        self.error_history: Deque[TranslationErrorInfo] = deque(maxlen=max_history)

    def handle_error(
        self,
        error: Exception,
        provider: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> TranslationErrorInfo:
        """例外をTranslationErrorInfoに変換してログに記録"""
        error_info = self.exception_to_error_info(error, provider)
        self.log_error(error_info, context)
        return error_info

    def create_error(
        self,
        error_type: TranslationErrorType,
        message: str,
        provider: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> TranslationErrorInfo:
        """例外を伴わないエラーを生成"""
        error_info = TranslationErrorInfo(
            type=error_type,
            message=message,
            retryable=is_retryable(error_type),
            provider=provider,
        )
        self.log_error(error_info, context)
        return error_info

    def exception_to_error_info(
        self, exception: Exception, provider: Optional[str] = None
    ) -> TranslationErrorInfo:
        """例外をTranslationErrorInfoオブジェクトに変換"""
        if isinstance(exception, TranslationProviderError):
            details = {"status_code": exception.status_code} if exception.status_code else None
            if exception.original_error is not None:
                details = dict(details or {})
                details["original_error"] = f"{type(exception.original_error).__name__}: {exception.original_error}"
            return TranslationErrorInfo(
                type=exception.error_type,
                message=str(exception),
                retryable=exception.retryable,
                provider=provider,
                details=details,
            )

        # 想定外の例外はプロバイダエラーとして扱う
        if isinstance(exception, (ConnectionError, TimeoutError)):
            error_type = TranslationErrorType.NETWORK_ERROR
        elif isinstance(exception, (ValueError, TypeError)):
            error_type = TranslationErrorType.INVALID_REQUEST
        else:
            error_type = TranslationErrorType.PROVIDER_ERROR

        return TranslationErrorInfo(
            type=error_type,
            message=str(exception) or type(exception).__name__,
            retryable=is_retryable(error_type),
            provider=provider,
            details={"exception": type(exception).__name__},
        )

    def log_error(self, error_info: TranslationErrorInfo, context: Optional[Dict[str, Any]] = None):
        """エラーをログに記録"""
        self.error_count += 1
        self.error_history.append(error_info)

        log_level = {
            ErrorSeverity.INFO: logging.INFO,
            ErrorSeverity.WARNING: logging.WARNING,
            ErrorSeverity.ERROR: logging.ERROR,
            ErrorSeverity.CRITICAL: logging.CRITICAL,
        }.get(_SEVERITY_BY_TYPE.get(error_info.type, ErrorSeverity.ERROR), logging.ERROR)

        log_message = f"[{error_info.type.value}] {error_info.message}"
        if error_info.provider:
            log_message += f" (プロバイダ: {error_info.provider})"
        if context:
            log_message += f" (コンテキスト: {context})"

        self.logger.log(log_level, log_message)

    def get_guidance(self, error_info: TranslationErrorInfo) -> str:
        """エラー種別に応じたユーザ向けガイダンス"""
        return self.GUIDANCE.get(error_info.type, f"予期しないエラーが発生しました：{error_info.message}")

    def get_recent_errors(self, limit: int = 10) -> List[TranslationErrorInfo]:
        """直近のエラーを新しい順に取得"""
        return list(reversed(self.error_history))[:limit]

    def clear_history(self):
        """エラー履歴をクリア"""
        self.error_history.clear()
        self.error_count = 0
