"""
Модуль импорта файлов модов.
Проверяет дубликаты, копирует архив в папку модов нужной версии игры
и возвращает результат для применения в потоке интерфейса.
"""

import asyncio
import os
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Set, Tuple

from PyQt6.QtCore import QThread, pyqtSignal

from locations import Locations
from mod_file import ModFile, ModFileError
from mods import Manager, Mod, Version


class ImportStatus(Enum):
    """Статус импорта мода."""
    IMPORTED = "imported"
    DUPLICATE = "duplicate"
    FAILED = "failed"
    MISSING = "missing"


@dataclass
class ImportResult:
    """Результат импорта одного файла."""
    path: str
    status: ImportStatus
    mod: Optional[Mod] = None
    message: str = ""


class ModImporter:
    """
    Импорт модов в папки менеджера.
    Сам менеджер не изменяется: добавление мода выполняет вызывающая сторона.
    """

    def __init__(
        self,
        manager: Manager,
        locations: Locations,
        log_callback: Optional[Callable[[str, str], None]] = None
    ):
        self.manager = manager
        self.locations = locations
        self.log_callback = log_callback
        # Моды, скопированные в текущем пакете, но ещё не добавленные
        self._pending: Set[Tuple[str, Version]] = set()

    def _log(self, message: str, level: str = "INFO") -> None:
        if self.log_callback:
            self.log_callback(message, level)

    def begin_batch(self) -> None:
        self._pending.clear()

    async def import_file_async(
        self,
        path: str,
        log_callback: Optional[Callable[[str, str], None]] = None
    ) -> ImportResult:
        """
        Импортировать файл мода.

        Args:
            path: Путь к zip-архиву мода.
            log_callback: Замена log_callback импортёра, например
                          сигнал рабочего потока.

        Returns:
            ImportResult; при статусе IMPORTED содержит новый Mod.
        """
        log = log_callback or self._log

        if not os.path.exists(path):
            return ImportResult(path, ImportStatus.MISSING, message=f"Файл не найден: {path}")

        try:
            mod_file = await ModFile.load_async(path)
        except (ModFileError, OSError) as e:
            log(f"Не удалось прочитать мод {path}: {e}", "DEBUG")
            return ImportResult(path, ImportStatus.FAILED, message=str(e))

        info = mod_file.info
        key = (info.name, info.version)
        if self.manager.contains_mod(info.name, info.version) or key in self._pending:
            return ImportResult(
                path,
                ImportStatus.DUPLICATE,
                message=f"Мод {info.name} {info.version} уже установлен"
            )

        mod_dir = self.locations.get_mod_dir(info.factorio_version)
        try:
            moved_path = await mod_file.copy_to_async(mod_dir)
        except (ModFileError, OSError) as e:
            return ImportResult(path, ImportStatus.FAILED, message=f"Ошибка копирования {path}: {e}")

        self._pending.add(key)
        log(f"Мод {info.name} {info.version} скопирован: {moved_path}", "DEBUG")
        return ImportResult(
            path,
            ImportStatus.IMPORTED,
            mod=Mod(info, moved_path),
            message=f"Мод {info.name} {info.version} добавлен"
        )


class ImportWorker(QThread):
    """
    Рабочий поток для импорта модов без блокировки UI.
    Результаты и сообщения лога передаются сигналами
    и применяются в потоке интерфейса.
    """

    log_signal = pyqtSignal(str, str)  # message, level
    result_signal = pyqtSignal(object)  # ImportResult
    finished_signal = pyqtSignal(int, int)  # imported, total

    def __init__(self, importer: ModImporter, paths: List[str]):
        super().__init__()
        self.importer = importer
        self.paths = list(paths)

    def log(self, message: str, level: str = "INFO") -> None:
        """Отправить сообщение в лог."""
        self.log_signal.emit(message, level)

    async def _run_async(self) -> int:
        imported = 0
        self.importer.begin_batch()
        for path in self.paths:
            result = await self.importer.import_file_async(path, log_callback=self.log)
            if result.status == ImportStatus.IMPORTED:
                imported += 1
            self.result_signal.emit(result)
        return imported

    def run(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        imported = 0
        try:
            imported = loop.run_until_complete(self._run_async())
        except Exception as e:
            self.log(f"Критическая ошибка импорта: {e}", "ERROR")
        finally:
            loop.close()
            self.finished_signal.emit(imported, len(self.paths))
