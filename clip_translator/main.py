#!/usr/bin/env python3
"""
クリップボード翻訳ユーティリティ メインエントリーポイント
コマンドライン引数または標準入力のテキストを翻訳する
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from clip_translator.core.settings_manager import AppSettings, SettingsManager
from clip_translator.core.translate.orchestrator import TranslationOrchestrator


def setup_logging(log_dir: Path, verbose: bool = False) -> logging.Logger:
    """
    ロギング設定
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "clip-translator.log"

    handlers: List[logging.Handler] = [logging.FileHandler(log_file, encoding='utf-8')]
    if verbose:
        handlers.append(logging.StreamHandler(sys.stderr))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )

    logger = logging.getLogger(__name__)
    logger.info("=== クリップボード翻訳 ログ開始 ===")
    logger.info(f"Python version: {sys.version}")
    logger.info(f"Platform: {sys.platform}")
    logger.info(f"Log file: {log_file}")

    return logger


def create_orchestrator(settings_manager: SettingsManager) -> TranslationOrchestrator:
    """設定からオーケストレーターを構築し、設定変更を購読する"""
    settings: AppSettings = settings_manager.load_settings()

    errors = settings_manager.validate_settings(settings)
    for error in errors:
        logging.warning(f"設定エラー: {error}")

    orchestrator = TranslationOrchestrator.from_settings(settings)
    settings_manager.add_change_listener(orchestrator.on_settings_changed)
    return orchestrator


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clip-translator",
        description="テキストを母国語と外国語の間で自動的に翻訳します",
    )
    parser.add_argument("text", nargs="*", help="翻訳するテキスト（省略時は標準入力から1行ずつ読み込み）")
    parser.add_argument("-s", "--source", default="auto", help="翻訳元の言語コード（既定: auto）")
    parser.add_argument("-t", "--target", default=None, help="翻訳先の言語コード")
    parser.add_argument(
        "--live",
        action="store_true",
        help="入力欄での編集として扱う（既定はホットキー等の外部入力）",
    )
    parser.add_argument("--settings", type=Path, default=None, help="設定ファイルのパス")
    parser.add_argument("-v", "--verbose", action="store_true", help="詳細ログを標準エラーに出力")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """メイン関数"""
    args = build_parser().parse_args(argv)

    settings_manager = SettingsManager(args.settings)
    logger = setup_logging(settings_manager.settings_path.parent, args.verbose)

    try:
        orchestrator = create_orchestrator(settings_manager)
    except Exception as e:
        logger.critical(f"初期化に失敗しました: {e}", exc_info=True)
        print(f"エラー: {e}", file=sys.stderr)
        return 1

    if args.text:
        texts = [" ".join(args.text)]
    else:
        texts = (line.rstrip("\n") for line in sys.stdin)

    exit_code = 0
    for text in texts:
        if not text.strip():
            continue

        response = orchestrator.translate(
            text,
            source=args.source,
            target=args.target,
            is_external_trigger=not args.live,
        )

        if response.success:
            print(response.translated_text)
            logger.info(
                f"翻訳完了: {response.source_language} -> {response.target_language} "
                f"(provider={response.provider}, cache={response.from_cache})"
            )
        else:
            guidance = orchestrator.error_handler.get_guidance(response.error)
            print(f"エラー: {response.error.message}", file=sys.stderr)
            print(guidance, file=sys.stderr)
            exit_code = 2

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
