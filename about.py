"""
Модуль окна "О программе".
Сведения о версии, используемых библиотеках, история изменений
и проверка обновлений через GitHub.
"""

import asyncio
import os
import platform
import re
from dataclasses import dataclass
from importlib import metadata
from typing import Callable, Dict, List, Optional, Tuple

import aiohttp
from PyQt6.QtCore import PYQT_VERSION_STR, QT_VERSION_STR, QThread, pyqtSignal

from observable import ObservableObject


__version__ = "1.0.0"
AUTHOR = "Amorsev"

CHANGELOG_FILENAME = "Changelog.md"


@dataclass
class AttributionInfo:
    """Сведения о стороннем компоненте."""
    name: str
    url: str
    license: str


ATTRIBUTIONS = [
    AttributionInfo("ModMyFactory", "https://github.com/Artentus/ModMyFactory", "GPL-3.0"),
    AttributionInfo("PyQt6", "https://www.riverbankcomputing.com/software/pyqt/", "GPL-3.0"),
    AttributionInfo("aiohttp", "https://github.com/aio-libs/aiohttp", "Apache-2.0"),
    AttributionInfo("aiofiles", "https://github.com/Tinche/aiofiles", "Apache-2.0"),
]


class UpdateCheckError(Exception):
    """Исключение для ошибок проверки обновлений."""
    pass


def parse_release_tag(tag: str) -> Tuple[int, ...]:
    """
    Извлечь номер версии из тега релиза.

    Args:
        tag: Тег вида "v1.2.3" или "1.2.3-beta".

    Returns:
        Кортеж чисел версии.

    Raises:
        UpdateCheckError: Если тег не содержит версии.
    """
    match = re.search(r'(\d+(?:\.\d+)*)', tag or "")
    if not match:
        raise UpdateCheckError(f"Некорректный тег релиза: {tag!r}")
    return tuple(int(part) for part in match.group(1).split("."))


def is_newer_version(latest: str, current: str) -> bool:
    """Сравнить версии, дополняя более короткую нулями."""
    a = parse_release_tag(latest)
    b = parse_release_tag(current)
    width = max(len(a), len(b))
    return a + (0,) * (width - len(a)) > b + (0,) * (width - len(b))


class UpdateChecker:
    """Проверка наличия новой версии через GitHub API."""

    def __init__(self, url: str, current_version: str = __version__):
        """
        Args:
            url: Адрес releases/latest репозитория GitHub.
                 Пустая строка отключает проверку.
            current_version: Текущая версия программы.
        """
        self.url = url
        self.current_version = current_version

    async def fetch_latest_release(self, timeout: int = 15) -> dict:
        """
        Получить описание последнего релиза.

        Raises:
            UpdateCheckError: При сетевой ошибке или ответе не 200.
        """
        if not self.url:
            raise UpdateCheckError("Адрес проверки обновлений не задан")
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    self.url,
                    timeout=aiohttp.ClientTimeout(total=timeout),
                    headers={"Accept": "application/vnd.github+json"}
                ) as response:
                    if response.status != 200:
                        raise UpdateCheckError(f"Ошибка HTTP {response.status}")
                    return await response.json()
        except asyncio.TimeoutError:
            raise UpdateCheckError(f"Таймаут проверки обновлений (>{timeout} сек)")
        except aiohttp.ClientError as e:
            raise UpdateCheckError(f"Ошибка сети: {str(e)}")

    async def check_async(self) -> Tuple[bool, str, str]:
        """
        Проверить обновления.

        Returns:
            Кортеж (есть обновление, последняя версия, ссылка на релиз).
        """
        release = await self.fetch_latest_release()
        tag = release.get("tag_name", "")
        url = release.get("html_url", "")
        return is_newer_version(tag, self.current_version), tag, url


class UpdateCheckWorker(QThread):
    """
    Рабочий поток проверки обновлений.
    Передаёт кортеж результата или UpdateCheckError сигналом.
    """

    result_signal = pyqtSignal(object)

    def __init__(self, checker: UpdateChecker):
        super().__init__()
        self.checker = checker

    def run(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            result = loop.run_until_complete(self.checker.check_async())
        except UpdateCheckError as e:
            result = e
        except Exception as e:
            result = UpdateCheckError(f"Критическая ошибка: {e}")
        finally:
            loop.close()
        self.result_signal.emit(result)


def get_library_versions() -> Dict[str, str]:
    """Версии используемых библиотек."""
    versions = {
        "Python": platform.python_version(),
        "Qt": QT_VERSION_STR,
        "PyQt6": PYQT_VERSION_STR,
    }
    for distribution in ("aiohttp", "aiofiles"):
        try:
            versions[distribution] = metadata.version(distribution)
        except metadata.PackageNotFoundError:
            versions[distribution] = "?"
    return versions


class AboutWindowViewModel(ObservableObject):
    """Модель представления окна "О программе"."""

    def __init__(
        self,
        update_checker: UpdateChecker,
        changelog_path: Optional[str] = None,
        log_callback: Optional[Callable[[str, str], None]] = None
    ):
        super().__init__()
        self.attached_view = None
        self.library_versions = get_library_versions()
        self.attributions: List[AttributionInfo] = list(ATTRIBUTIONS)
        self.update_checker = update_checker
        self.update_worker: Optional[UpdateCheckWorker] = None
        self.log_callback = log_callback
        self._update_status = ""

        if changelog_path is None:
            changelog_path = os.path.join(
                os.path.dirname(os.path.abspath(__file__)), CHANGELOG_FILENAME
            )
        self.changelog = self._read_changelog(changelog_path)

    def _log(self, message: str, level: str = "INFO") -> None:
        if self.log_callback:
            self.log_callback(message, level)

    @staticmethod
    def _read_changelog(path: str) -> str:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except OSError:
            return ""

    @property
    def author(self) -> str:
        return AUTHOR

    @property
    def gui_version(self) -> str:
        return __version__

    @property
    def update_status(self) -> str:
        return self._update_status

    @property
    def can_check_updates(self) -> bool:
        return bool(self.update_checker.url)

    @property
    def is_checking(self) -> bool:
        return self.update_worker is not None and self.update_worker.isRunning()

    def _set_update_status(self, status: str) -> None:
        self._set_field("_update_status", status, "update_status")

    def attach_view(self, view) -> None:
        self.attached_view = view

    def close(self) -> None:
        """Команда закрытия окна."""
        if self.attached_view is not None:
            self.attached_view.close()

    def check_for_updates(self) -> bool:
        """
        Запустить проверку обновлений в рабочем потоке.

        Returns:
            True если проверка запущена.
        """
        if not self.can_check_updates:
            self._set_update_status("Адрес проверки обновлений не задан в настройках")
            return False
        if self.is_checking:
            return False

        self._set_update_status("Проверка обновлений...")
        self.update_worker = UpdateCheckWorker(self.update_checker)
        self.update_worker.result_signal.connect(self.apply_update_result)
        self.update_worker.start()
        return True

    def apply_update_result(self, result) -> bool:
        """
        Показать результат проверки обновлений.

        Args:
            result: Кортеж (есть обновление, версия, ссылка) или UpdateCheckError.

        Returns:
            True если доступна новая версия.
        """
        if isinstance(result, UpdateCheckError):
            self._log(f"Не удалось проверить обновления: {result}", "WARNING")
            self._set_update_status(f"Не удалось проверить обновления: {result}")
            return False

        available, tag, url = result
        if available:
            self._log(f"Доступна новая версия: {tag}", "SUCCESS")
            self._set_update_status(f"Доступна версия {tag}: {url}")
        else:
            self._log("Установлена последняя версия", "INFO")
            self._set_update_status("Установлена последняя версия")
        return available
