"""
Модуль базы данных для хранения модпаков.
Использует SQLite для локального хранения состава модпаков.
"""

import sqlite3
from datetime import datetime
from dataclasses import dataclass, field
from typing import List, Tuple

from mods import Manager, Version
from modpacks import Modpack, ModpackCollection


@dataclass
class ModpackRecord:
    """Запись о модпаке в базе данных."""
    name: str
    enabled: bool
    mods: List[Tuple[str, str]] = field(default_factory=list)  # (name, version)
    saved_date: str = ""


class ModpackDatabase:
    """
    Класс для работы с базой данных модпаков.
    Моды хранятся ссылками (имя, версия) на установленные моды.
    """

    def __init__(self, db_path: str = "modpacks.db"):
        """
        Инициализация базы данных.

        Args:
            db_path: Путь к файлу базы данных SQLite.
        """
        self.db_path = db_path
        self._init_database()

    def _init_database(self) -> None:
        """Создание таблиц базы данных, если они не существуют."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS modpacks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    enabled INTEGER NOT NULL DEFAULT 0,
                    position INTEGER NOT NULL,
                    saved_date TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS modpack_mods (
                    modpack_id INTEGER NOT NULL
                        REFERENCES modpacks(id) ON DELETE CASCADE,
                    mod_name TEXT NOT NULL,
                    mod_version TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_modpack_id
                ON modpack_mods(modpack_id)
            """)

            conn.commit()

    def save_modpacks(self, modpacks: ModpackCollection) -> int:
        """
        Сохранить все модпаки, заменив предыдущее содержимое.

        Args:
            modpacks: Коллекция модпаков.

        Returns:
            Количество сохранённых модпаков.
        """
        saved_date = datetime.now().isoformat()

        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM modpack_mods")
            cursor.execute("DELETE FROM modpacks")

            for position, modpack in enumerate(modpacks):
                cursor.execute(
                    "INSERT INTO modpacks (name, enabled, position, saved_date) VALUES (?, ?, ?, ?)",
                    (modpack.name, int(modpack.enabled), position, saved_date)
                )
                modpack_id = cursor.lastrowid
                cursor.executemany(
                    "INSERT INTO modpack_mods (modpack_id, mod_name, mod_version) VALUES (?, ?, ?)",
                    [(modpack_id, mod.name, str(mod.version)) for mod in modpack.mods]
                )

            conn.commit()
            return len(modpacks)

    def load_records(self) -> List[ModpackRecord]:
        """
        Получить все записи о модпаках.

        Returns:
            Список ModpackRecord в сохранённом порядке.
        """
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT id, name, enabled, saved_date FROM modpacks ORDER BY position"
            )
            rows = cursor.fetchall()

            records = []
            for modpack_id, name, enabled, saved_date in rows:
                cursor.execute(
                    "SELECT mod_name, mod_version FROM modpack_mods WHERE modpack_id = ? ORDER BY rowid",
                    (modpack_id,)
                )
                records.append(ModpackRecord(
                    name=name,
                    enabled=bool(enabled),
                    mods=[(row[0], row[1]) for row in cursor.fetchall()],
                    saved_date=saved_date
                ))
            return records

    def load_modpacks(self, manager: Manager) -> Tuple[List[Modpack], List[Tuple[str, str]]]:
        """
        Восстановить модпаки, связав записи с установленными модами.

        Args:
            manager: Менеджер модов для поиска модов.

        Returns:
            Кортеж (модпаки, ссылки на моды, которые не удалось найти).
        """
        modpacks = []
        missing = []
        for record in self.load_records():
            mods = []
            for name, version in record.mods:
                try:
                    mod = manager.find_mod(name, Version.parse(version))
                except ValueError:
                    mod = None
                if mod is None:
                    missing.append((name, version))
                else:
                    mods.append(mod)
            # Состояние включения модов задаётся mod-list.json, поэтому
            # флаг восстанавливается без распространения на моды
            modpack = Modpack(record.name, mods)
            modpack._enabled = record.enabled
            modpacks.append(modpack)
        return modpacks, missing
