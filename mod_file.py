"""
Модуль для чтения файлов модов Factorio.
Извлекает метаданные из info.json архива или папки мода
и копирует архивы в каталог модов.
"""

import io
import json
import os
import zipfile
from typing import Optional, Tuple

import aiofiles

from mods import ModInfo


INFO_FILENAME = "info.json"

# Размер блока при копировании
COPY_CHUNK_SIZE = 64 * 1024


class ModFileError(Exception):
    """Исключение для ошибок чтения файла мода."""
    pass


def _find_info_entry(names) -> Optional[str]:
    """
    Найти info.json в списке файлов архива.
    Допускается расположение в корне или в одной папке верхнего уровня.
    """
    candidates = []
    for name in names:
        parts = name.strip("/").split("/")
        if parts[-1] == INFO_FILENAME and len(parts) <= 2:
            candidates.append((len(parts), name))
    if not candidates:
        return None
    return min(candidates)[1]


def _parse_info(raw: bytes, path: str) -> ModInfo:
    try:
        data = json.loads(raw.decode("utf-8-sig"))
        return ModInfo.from_json(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ModFileError(f"Некорректный {INFO_FILENAME} в {path}: {e}")
    except ValueError as e:
        raise ModFileError(f"{path}: {e}")


def _parse_archive(data: bytes, path: str) -> ModInfo:
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            entry = _find_info_entry(archive.namelist())
            if entry is None:
                raise ModFileError(f"Файл {INFO_FILENAME} не найден в архиве {path}")
            return _parse_info(archive.read(entry), path)
    except zipfile.BadZipFile:
        raise ModFileError(f"Файл не является zip-архивом: {path}")


class ModFile:
    """Файл мода (zip-архив или распакованная папка)."""

    def __init__(self, path: str, info: ModInfo):
        self.path = path
        self.info = info

    @property
    def is_directory(self) -> bool:
        return os.path.isdir(self.path)

    @property
    def target_filename(self) -> str:
        """Имя архива по соглашению Factorio: <name>_<version>.zip"""
        return f"{self.info.name}_{self.info.version}.zip"

    @classmethod
    def load(cls, path: str) -> "ModFile":
        """
        Загрузить файл мода синхронно.

        Args:
            path: Путь к архиву или папке мода.

        Returns:
            ModFile с прочитанными метаданными.

        Raises:
            ModFileError: Если файл не найден или метаданные некорректны.
        """
        if os.path.isdir(path):
            info_path = os.path.join(path, INFO_FILENAME)
            if not os.path.isfile(info_path):
                raise ModFileError(f"Файл {INFO_FILENAME} не найден в папке {path}")
            with open(info_path, 'rb') as f:
                return cls(path, _parse_info(f.read(), path))

        if not os.path.isfile(path):
            raise ModFileError(f"Файл не найден: {path}")

        with open(path, 'rb') as f:
            return cls(path, _parse_archive(f.read(), path))

    @classmethod
    async def load_async(cls, path: str) -> "ModFile":
        """Асинхронный вариант load(); чтение файла через aiofiles."""
        if os.path.isdir(path):
            info_path = os.path.join(path, INFO_FILENAME)
            if not os.path.isfile(info_path):
                raise ModFileError(f"Файл {INFO_FILENAME} не найден в папке {path}")
            async with aiofiles.open(info_path, 'rb') as f:
                return cls(path, _parse_info(await f.read(), path))

        if not os.path.isfile(path):
            raise ModFileError(f"Файл не найден: {path}")

        async with aiofiles.open(path, 'rb') as f:
            data = await f.read()
        return cls(path, _parse_archive(data, path))

    @classmethod
    async def try_load_async(cls, path: str) -> Tuple[bool, Optional["ModFile"]]:
        """
        Попытаться загрузить файл мода.

        Returns:
            Кортеж (успех, ModFile или None).
        """
        try:
            return True, await cls.load_async(path)
        except (ModFileError, OSError):
            return False, None

    async def copy_to_async(self, directory: str) -> str:
        """
        Скопировать архив мода в указанную папку.

        Args:
            directory: Папка назначения (создаётся при необходимости).

        Returns:
            Путь к скопированному файлу.

        Raises:
            ModFileError: Если мод является папкой, а не архивом.
        """
        if self.is_directory:
            raise ModFileError(f"Копирование папок модов не поддерживается: {self.path}")

        os.makedirs(directory, exist_ok=True)
        destination = os.path.join(directory, self.target_filename)
        if os.path.abspath(destination) == os.path.abspath(self.path):
            return destination

        # Незаконченная копия не должна попасть в папку модов под именем архива
        partial = destination + ".part"
        try:
            async with aiofiles.open(self.path, 'rb') as src, aiofiles.open(partial, 'wb') as dst:
                while True:
                    chunk = await src.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    await dst.write(chunk)
            os.replace(partial, destination)
        except OSError:
            if os.path.exists(partial):
                os.remove(partial)
            raise

        return destination
