"""
クリップボード翻訳ユーティリティ
"""

__version__ = "0.1.0"
