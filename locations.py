"""
Модуль расположения файлов модов на диске.
Каждая версия игры хранит моды в собственной папке <base>/mods/<major.minor>.
"""

import os
from typing import Callable, List, Optional

from mod_file import ModFile, ModFileError
from mods import MOD_LIST_FILENAME, Manager, Mod, Version


MODS_DIRNAME = "mods"


class Locations:
    """
    Разрешение путей к папкам модов и сканирование установленных модов.
    """

    def __init__(
        self,
        base_path: str,
        log_callback: Optional[Callable[[str, str], None]] = None
    ):
        """
        Args:
            base_path: Корневая папка данных приложения.
            log_callback: Функция обратного вызова для логирования (message, level).
        """
        self.base_path = base_path
        self.log_callback = log_callback

    def _log(self, message: str, level: str = "INFO") -> None:
        if self.log_callback:
            self.log_callback(message, level)

    @property
    def mods_root(self) -> str:
        return os.path.join(self.base_path, MODS_DIRNAME)

    def get_mod_dir(self, factorio_version: Version, create: bool = True) -> str:
        """
        Получить папку модов для версии игры.

        Args:
            factorio_version: Версия игры (ревизия игнорируется).
            create: Создать папку, если её нет.

        Returns:
            Путь к папке модов.
        """
        path = os.path.join(self.mods_root, factorio_version.major_minor)
        if create:
            os.makedirs(path, exist_ok=True)
        return path

    def get_mod_list_path(self, factorio_version: Version) -> str:
        return os.path.join(self.get_mod_dir(factorio_version, create=False), MOD_LIST_FILENAME)

    def list_version_dirs(self) -> List[Version]:
        """Версии игры, для которых существуют папки модов."""
        if not os.path.isdir(self.mods_root):
            return []

        versions = []
        for entry in os.listdir(self.mods_root):
            if not os.path.isdir(os.path.join(self.mods_root, entry)):
                continue
            try:
                versions.append(Version.parse(entry).to_game_version())
            except ValueError:
                self._log(f"Пропущена папка с некорректной версией: {entry}", "DEBUG")
        return sorted(versions)

    def scan_mods(self, manager: Manager) -> int:
        """
        Загрузить установленные моды во все менеджеры.

        Args:
            manager: Корневой менеджер модов.

        Returns:
            Количество загруженных модов.
        """
        loaded = 0
        for version in self.list_version_dirs():
            mod_dir = self.get_mod_dir(version, create=False)
            mod_manager = manager.get_mod_manager(version)

            for entry in sorted(os.listdir(mod_dir)):
                path = os.path.join(mod_dir, entry)
                if not (entry.lower().endswith(".zip") or os.path.isdir(path)):
                    continue

                try:
                    mod_file = ModFile.load(path)
                except ModFileError as e:
                    self._log(str(e), "WARNING")
                    continue

                if mod_file.info.factorio_version != version:
                    self._log(
                        f"Мод {mod_file.info.name} предназначен для Factorio "
                        f"{mod_file.info.factorio_version.major_minor}, пропущен",
                        "WARNING"
                    )
                    continue

                if mod_manager.contains(mod_file.info.name, mod_file.info.version):
                    self._log(f"Дубликат мода пропущен: {path}", "DEBUG")
                    continue

                mod_manager.add_mod(Mod(mod_file.info, path))
                loaded += 1

            try:
                mod_manager.load_mod_list(self.get_mod_list_path(version))
            except (OSError, ValueError) as e:
                self._log(f"Ошибка чтения {MOD_LIST_FILENAME} для {version.major_minor}: {e}", "WARNING")

        self._log(f"Загружено модов: {loaded}", "INFO")
        return loaded

    def save_mod_lists(self, manager: Manager) -> bool:
        """Сохранить mod-list.json для каждой версии игры."""
        success = True
        for mod_manager in manager.mod_managers:
            path = os.path.join(
                self.get_mod_dir(mod_manager.factorio_version), MOD_LIST_FILENAME
            )
            try:
                mod_manager.save_mod_list(path)
            except OSError as e:
                self._log(f"Ошибка сохранения {path}: {e}", "ERROR")
                success = False
        return success
