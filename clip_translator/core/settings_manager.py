"""
設定ファイル管理クラス
ユーザー設定の永続化と変更通知を行う
"""

import json
import logging
import os
import platform
import shutil
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

SETTINGS_VERSION = "1.0.0"


@dataclass
class TranslationSettings:
    """翻訳設定"""

    primary_language: str = "ru"
    second_language: str = "en"  # 既定の外国語
    session_timeout: float = 60  # 分
    smart_switch: bool = True  # 翻訳方向の自動切り替え


@dataclass
class ProviderSettings:
    """翻訳プロバイダ設定"""

    name: str = "mock"  # "mock", "google", "yandex", "deepl"
    api_key: str = ""
    folder_id: str = ""  # Yandex
    project_id: str = ""  # Google
    location: str = "global"  # Google
    service_account_path: str = ""  # Google
    use_pro_api: bool = False  # DeepL
    formality: str = ""  # DeepL
    timeout: float = 10.0


@dataclass
class AppSettings:
    """アプリケーション設定"""

    translation: TranslationSettings = field(default_factory=TranslationSettings)
    provider: ProviderSettings = field(default_factory=ProviderSettings)
    version: str = SETTINGS_VERSION


SettingsListener = Callable[[AppSettings], None]


def _is_language_code(value: Any) -> bool:
    return isinstance(value, str) and 2 <= len(value.strip()) <= 8 and value.strip().lower() != "auto"


class SettingsManager:
    """設定管理クラス"""

    def __init__(self, settings_path: Optional[Path] = None):
        self.logger = logging.getLogger(__name__)
        self._settings_path = Path(settings_path) if settings_path else self._get_settings_path()
        self._settings: Optional[AppSettings] = None
        self._listeners: List[SettingsListener] = []

    @property
    def settings_path(self) -> Path:
        return self._settings_path

    def _get_settings_path(self) -> Path:
        """設定ファイルのパスを取得"""
        # プラットフォーム別の設定フォルダ
        if platform.system() == "Windows":
            config_dir = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        elif platform.system() == "Darwin":  # macOS
            config_dir = Path.home() / "Library" / "Application Support"
        else:  # Linux
            config_dir = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))

        return config_dir / "clip-translator" / "settings.json"

    def load_settings(self) -> AppSettings:
        """設定を読み込み"""
        if self._settings is not None:
            return self._settings

        try:
            if self._settings_path.exists():
                self.logger.info(f"設定ファイル読み込み: {self._settings_path}")
                with open(self._settings_path, "r", encoding="utf-8") as f:
                    settings_dict = json.load(f)

                if not isinstance(settings_dict, dict):
                    raise ValueError("設定ファイルの形式が不正です")

                # バージョン確認
                file_version = settings_dict.get("version", SETTINGS_VERSION)
                if file_version != SETTINGS_VERSION:
                    self.logger.warning(f"設定ファイルのバージョンが異なります: {file_version}")

                self._settings = self._dict_to_settings(settings_dict)
                self.logger.info("設定読み込み完了")
            else:
                self.logger.info("設定ファイルが見つかりません。デフォルト設定を使用")
                self._settings = self._create_default_settings()

        except Exception as e:
            self.logger.error(f"設定読み込みエラー: {e}")
            self.logger.info("デフォルト設定を使用")
            self._settings = self._create_default_settings()

        return self._settings

    def save_settings(self, settings: AppSettings) -> bool:
        """設定を保存して変更を通知"""
        try:
            self._settings = settings
            settings_dict = self._settings_to_dict(settings)

            self._settings_path.parent.mkdir(parents=True, exist_ok=True)

            # バックアップを作成
            self._create_backup()

            self.logger.info(f"設定ファイル保存: {self._settings_path}")
            with open(self._settings_path, "w", encoding="utf-8") as f:
                json.dump(settings_dict, f, indent=2, ensure_ascii=False)

            self.logger.info("設定保存完了")

        except Exception as e:
            self.logger.error(f"設定保存エラー: {e}")
            return False

        self._notify_listeners(settings)
        return True

    def update_translation_settings(self, **changes) -> AppSettings:
        """翻訳設定の一部を更新して保存"""
        settings = self.load_settings()
        known = {f.name for f in fields(TranslationSettings)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"未知の翻訳設定: {', '.join(sorted(unknown))}")

        updated = replace(settings, translation=replace(settings.translation, **changes))
        errors = self.validate_settings(updated)
        if errors:
            raise ValueError("; ".join(errors))

        self.save_settings(updated)
        return updated

    def add_change_listener(self, listener: SettingsListener):
        """設定変更リスナーを登録"""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_change_listener(self, listener: SettingsListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify_listeners(self, settings: AppSettings):
        for listener in list(self._listeners):
            try:
                listener(settings)
            except Exception as e:
                self.logger.error(f"設定変更リスナーでエラー: {e}")

    def _create_default_settings(self) -> AppSettings:
        """デフォルト設定を作成"""
        return AppSettings(
            translation=TranslationSettings(),
            provider=ProviderSettings(),
        )

    def _settings_to_dict(self, settings: AppSettings) -> Dict[str, Any]:
        """設定オブジェクトを辞書に変換"""
        return {
            "version": settings.version,
            "translation": asdict(settings.translation),
            "provider": asdict(settings.provider),
        }

    def _dict_to_settings(self, settings_dict: Dict[str, Any]) -> AppSettings:
        """辞書を設定オブジェクトに変換（不正な値は既定値に戻す）"""
        default_settings = self._create_default_settings()

        translation_dict = settings_dict.get("translation")
        if isinstance(translation_dict, dict):
            default_settings.translation = self._load_translation_settings(translation_dict)

        provider_dict = settings_dict.get("provider")
        if isinstance(provider_dict, dict):
            default_settings.provider = self._load_provider_settings(provider_dict)

        if isinstance(settings_dict.get("version"), str):
            default_settings.version = settings_dict["version"]

        return default_settings

    def _load_translation_settings(self, data: Dict[str, Any]) -> TranslationSettings:
        settings = TranslationSettings()

        for key in ("primary_language", "second_language"):
            value = data.get(key)
            if value is None:
                continue
            if _is_language_code(value):
                setattr(settings, key, value.strip().lower())
            else:
                self.logger.warning(f"不正な言語コードを無視します: {key}={value!r}")

        timeout = data.get("session_timeout")
        if timeout is not None:
            if isinstance(timeout, (int, float)) and not isinstance(timeout, bool) and timeout >= 1:
                settings.session_timeout = timeout
            else:
                self.logger.warning(f"不正なセッションタイムアウトを無視します: {timeout!r}")

        smart_switch = data.get("smart_switch")
        if isinstance(smart_switch, bool):
            settings.smart_switch = smart_switch

        if settings.primary_language == settings.second_language:
            self.logger.warning("母国語と外国語が同じため外国語を既定値に戻します")
            fallback = TranslationSettings()
            settings.second_language = (
                fallback.second_language
                if settings.primary_language != fallback.second_language
                else fallback.primary_language
            )

        return settings

    def _load_provider_settings(self, data: Dict[str, Any]) -> ProviderSettings:
        settings = ProviderSettings()
        for f in fields(ProviderSettings):
            if f.name not in data:
                continue
            value = data[f.name]
            default = getattr(settings, f.name)
            if isinstance(default, bool):
                valid = isinstance(value, bool)
            elif isinstance(default, float):
                valid = isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0
                value = float(value) if valid else value
            else:
                valid = isinstance(value, str)
                value = value.strip() if valid else value
            if valid:
                setattr(settings, f.name, value)
            else:
                self.logger.warning(f"不正なプロバイダ設定を無視します: {f.name}={value!r}")
        settings.name = settings.name.lower() or "mock"
        return settings

    def _create_backup(self):
        """設定ファイルのバックアップを作成"""
        if self._settings_path.exists():
            backup_path = self._settings_path.with_suffix(".json.backup")
            try:
                shutil.copy2(self._settings_path, backup_path)
                self.logger.debug(f"バックアップ作成: {backup_path}")
            except Exception as e:
                self.logger.warning(f"バックアップ作成失敗: {e}")

    def reset_to_defaults(self) -> AppSettings:
        """設定をデフォルトに戻す"""
        self.logger.info("設定をデフォルトに戻します")
        default_settings = self._create_default_settings()
        if self.save_settings(default_settings):
            return default_settings
        return self.load_settings()

    def validate_settings(self, settings: AppSettings) -> List[str]:
        """設定の妥当性を確認"""
        errors = []

        translation = settings.translation
        if not _is_language_code(translation.primary_language):
            errors.append("母国語の言語コードが不正です")
        if not _is_language_code(translation.second_language):
            errors.append("外国語の言語コードが不正です")
        if translation.primary_language == translation.second_language:
            errors.append("母国語と外国語には異なる言語を設定してください")
        if translation.session_timeout < 1:
            errors.append("セッションタイムアウトは1分以上で設定してください")

        provider = settings.provider
        if provider.name not in ("mock", "google", "yandex", "deepl"):
            errors.append(f"未対応の翻訳プロバイダです: {provider.name}")
        if provider.name in ("yandex", "deepl") and not provider.api_key:
            errors.append("このプロバイダにはAPIキーが必要です")
        if provider.name == "yandex" and not provider.folder_id:
            errors.append("YandexにはFolder IDが必要です")
        if provider.name == "google" and not provider.project_id:
            errors.append("GoogleにはプロジェクトIDが必要です")
        if provider.timeout <= 0:
            errors.append("タイムアウトは正の値で設定してください")

        return errors
