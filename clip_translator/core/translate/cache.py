"""
翻訳結果キャッシュと翻訳履歴
"""

import logging
import threading
import time
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

CacheKey = Tuple[str, str, str, str]


@dataclass
class CacheEntry:
    """キャッシュエントリ"""
    text: str
    source_language: str
    target_language: str
    provider: str
    detected_language: Optional[str] = None
    confidence: Optional[float] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class HistoryEntry:
    """翻訳履歴エントリ"""
    text: str
    source_language: str
    target_language: str
    result: str
    provider: str
    timestamp: float = field(default_factory=time.time)


def normalize_text(text: str) -> str:
    """キャッシュキー用にテキストを正規化"""
    return " ".join(text.split())


class TranslationCache:
    """挿入順の上限とTTLを持つ翻訳キャッシュ"""

    def __init__(
        self,
        max_size: int = 100,
        ttl_seconds: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[CacheKey, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def make_key(provider: str, text: str, source: str, target: Optional[str]) -> CacheKey:
        return (provider, normalize_text(text), source, target or "")

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        """有効期限内のエントリを取得（期限切れは削除）"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            if self._clock() - entry.timestamp >= self.ttl_seconds:
                del self._entries[key]
                return None

            return entry

    def put(self, key: CacheKey, entry: CacheEntry):
        """エントリを追加（上限に達している場合は最も古いものを削除）"""
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_size:
                evicted_key, _ = self._entries.popitem(last=False)
                logging.debug(f"キャッシュから削除: {evicted_key[0]}:{evicted_key[2]}->{evicted_key[3]}")

            self._entries[key] = entry

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return self.get(key) is not None


class TranslationHistory:
    """新しい順に保持する上限付きの翻訳履歴"""

    def __init__(self, max_size: int = 50):
        self.max_size = max_size
        self._entries: Deque[HistoryEntry] = deque(maxlen=max_size)

    def add(self, entry: HistoryEntry):
        self._entries.appendleft(entry)

    def get(self, limit: Optional[int] = 10) -> List[HistoryEntry]:
        entries = list(self._entries)
        return entries if limit is None else entries[:limit]

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def cache_stats(cache: TranslationCache, history: TranslationHistory) -> Dict[str, Any]:
    """キャッシュと履歴の統計"""
    return {
        "size": len(cache),
        "max_size": cache.max_size,
        "ttl_seconds": cache.ttl_seconds,
        "history_size": len(history),
        "max_history_size": history.max_size,
    }
