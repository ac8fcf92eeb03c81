"""
Настройки ModMyFactory.
Хранятся в settings.json рядом с папкой данных пользователя.
"""

import os
import json
from dataclasses import dataclass, asdict, fields
from typing import Optional


SETTINGS_FILENAME = "settings.json"
DATA_DIRNAME = "ModMyFactory"
DATABASE_FILENAME = "modpacks.db"

LOG_FONT_MIN = 8
LOG_FONT_MAX = 24


def default_data_path() -> str:
    return os.path.join(os.path.expanduser("~"), DATA_DIRNAME)


@dataclass
class AppSettings:
    """Пользовательские настройки."""
    data_path: str = ""  # Пусто - папка по умолчанию в домашнем каталоге
    last_import_path: str = ""

    log_font_size: int = 10
    window_width: int = 1200
    window_height: int = 700

    verbose_logging: bool = False

    # Адрес releases/latest в GitHub API, пусто - проверка обновлений отключена
    update_url: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "AppSettings":
        """
        Собрать настройки из словаря.
        Неизвестные ключи и значения другого типа пропускаются,
        для них остаются значения по умолчанию.
        """
        settings = cls()
        for item in fields(cls):
            value = data.get(item.name)
            if value is not None and type(value) is type(getattr(settings, item.name)):
                setattr(settings, item.name, value)
        return settings

    @classmethod
    def keys(cls) -> set:
        return {item.name for item in fields(cls)}


class SettingsManager:
    """Чтение и запись AppSettings в JSON."""

    def __init__(self, settings_path: Optional[str] = None):
        """
        Args:
            settings_path: Путь к settings.json. По умолчанию файл
                          лежит в папке данных ModMyFactory.
        """
        self.settings_path = settings_path or os.path.join(default_data_path(), SETTINGS_FILENAME)
        self.settings = self._read()

    def _read(self) -> AppSettings:
        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return AppSettings()
        except (OSError, ValueError):
            # Повреждённый файл не мешает запуску
            return AppSettings()
        return AppSettings.from_dict(data) if isinstance(data, dict) else AppSettings()

    def save_settings(self) -> bool:
        """
        Записать настройки через временный файл.

        Returns:
            False если файл записать не удалось.
        """
        tmp_path = self.settings_path + ".tmp"
        try:
            os.makedirs(os.path.dirname(self.settings_path) or ".", exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(asdict(self.settings), f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.settings_path)
        except OSError:
            return False
        return True

    def update(self, **values) -> None:
        """Изменить несколько настроек, неизвестные ключи пропускаются."""
        known = AppSettings.keys()
        for key, value in values.items():
            if key in known:
                setattr(self.settings, key, value)

    @property
    def data_path(self) -> str:
        return self.settings.data_path or default_data_path()

    @data_path.setter
    def data_path(self, value: str) -> None:
        self.settings.data_path = value

    @property
    def database_path(self) -> str:
        return os.path.join(self.data_path, DATABASE_FILENAME)

    @property
    def last_import_path(self) -> str:
        return self.settings.last_import_path

    @last_import_path.setter
    def last_import_path(self, value: str) -> None:
        self.settings.last_import_path = value

    @property
    def log_font_size(self) -> int:
        return self.settings.log_font_size

    @log_font_size.setter
    def log_font_size(self, value: int) -> None:
        self.settings.log_font_size = max(LOG_FONT_MIN, min(LOG_FONT_MAX, value))

    @property
    def verbose_logging(self) -> bool:
        return self.settings.verbose_logging

    @verbose_logging.setter
    def verbose_logging(self, value: bool) -> None:
        self.settings.verbose_logging = value

    @property
    def update_url(self) -> str:
        return self.settings.update_url
