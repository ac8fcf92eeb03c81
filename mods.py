"""
Модуль доменной модели модов Factorio.
Моды группируются по версии игры (ModManager) и по имени (ModFamily).
"""

import json
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from PyQt6.QtCore import QObject, pyqtSignal

from observable import ObservableList, ObservableObject


# Версия игры по умолчанию, если в info.json не указан factorio_version
DEFAULT_FACTORIO_VERSION = "0.12"

MOD_LIST_FILENAME = "mod-list.json"


@dataclass(frozen=True, order=True)
class Version:
    """Версия в формате major.minor.revision."""
    major: int
    minor: int
    revision: int = 0

    @classmethod
    def parse(cls, text: str) -> "Version":
        """
        Разобрать строку версии.

        Args:
            text: Строка вида "1.1" или "1.1.42".

        Returns:
            Экземпляр Version.

        Raises:
            ValueError: Если строка не является версией.
        """
        parts = str(text).strip().split(".")
        if not 2 <= len(parts) <= 3:
            raise ValueError(f"Некорректная версия: {text!r}")
        try:
            numbers = [int(p) for p in parts]
        except ValueError:
            raise ValueError(f"Некорректная версия: {text!r}")
        if any(n < 0 for n in numbers):
            raise ValueError(f"Некорректная версия: {text!r}")
        return cls(*numbers)

    @property
    def major_minor(self) -> str:
        """Версия игры без ревизии, например "1.1"."""
        return f"{self.major}.{self.minor}"

    def to_game_version(self) -> "Version":
        return Version(self.major, self.minor)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.revision}"


@dataclass
class ModInfo:
    """Метаданные мода из info.json."""
    name: str
    version: Version
    factorio_version: Version
    title: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None
    dependencies: List[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict) -> "ModInfo":
        """
        Создать ModInfo из содержимого info.json.

        Raises:
            ValueError: Если отсутствуют обязательные поля.
        """
        if not isinstance(data, dict):
            raise ValueError("info.json должен содержать объект")

        name = data.get("name")
        if not name or not isinstance(name, str):
            raise ValueError("В info.json отсутствует поле name")

        if "version" not in data:
            raise ValueError(f"В info.json мода {name} отсутствует поле version")

        version = Version.parse(data["version"])
        factorio_version = Version.parse(
            data.get("factorio_version", DEFAULT_FACTORIO_VERSION)
        ).to_game_version()

        dependencies = data.get("dependencies") or []
        if isinstance(dependencies, str):
            dependencies = [dependencies]

        return cls(
            name=name,
            version=version,
            factorio_version=factorio_version,
            title=data.get("title"),
            author=data.get("author"),
            description=data.get("description"),
            dependencies=list(dependencies)
        )


class Mod(ObservableObject):
    """Установленный мод."""

    def __init__(self, info: ModInfo, path: str, enabled: bool = False):
        super().__init__()
        self.info = info
        self.path = path
        self._enabled = enabled

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def version(self) -> Version:
        return self.info.version

    @property
    def factorio_version(self) -> Version:
        return self.info.factorio_version

    @property
    def display_name(self) -> str:
        return self.info.title or self.info.name

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._set_field("_enabled", bool(value), "enabled")

    def __repr__(self) -> str:
        return f"Mod({self.name!r}, {str(self.version)!r})"


class ModFamily(ObservableObject):
    """
    Семейство модов: все версии мода с одним именем
    в пределах одной версии игры.

    Одновременно включена не более чем одна версия: включение версии
    любым путём (в том числе через модпак) выключает остальные.
    """

    def __init__(self, name: str):
        super().__init__()
        self.name = name
        self.mods = ObservableList()

    @property
    def display_name(self) -> str:
        latest = self.latest_mod
        return latest.display_name if latest is not None else self.name

    @property
    def latest_mod(self) -> Optional[Mod]:
        """Мод с наибольшей версией."""
        if len(self.mods) == 0:
            return None
        return max(self.mods, key=lambda m: m.version)

    @property
    def enabled_mod(self) -> Optional[Mod]:
        for mod in self.mods:
            if mod.enabled:
                return mod
        return None

    @property
    def is_enabled(self) -> bool:
        return self.enabled_mod is not None

    @is_enabled.setter
    def is_enabled(self, value: bool) -> None:
        if value:
            # Если ни одна версия не включена, включаем самую новую
            if self.enabled_mod is None and self.latest_mod is not None:
                self.latest_mod.enabled = True
        else:
            for mod in self.mods:
                mod.enabled = False

    def add(self, mod: Mod) -> None:
        if mod.enabled and self.enabled_mod is not None:
            mod.enabled = False
        mod.property_changed.connect(self._on_mod_property_changed)
        self.mods.append(mod)

    def remove(self, mod: Mod) -> None:
        self.mods.remove(mod)
        mod.property_changed.disconnect(self._on_mod_property_changed)

    def _on_mod_property_changed(self, sender: Mod, name: str) -> None:
        if name != "enabled" or not sender.enabled:
            return
        for mod in self.mods:
            if mod is not sender and mod.enabled:
                mod.enabled = False


class ModManager(QObject):
    """
    Менеджер модов одной версии игры.
    Хранит наблюдаемый список семейств модов.
    """

    def __init__(self, factorio_version: Version):
        super().__init__()
        self.factorio_version = factorio_version.to_game_version()
        self.families = ObservableList()

    def get_family(self, name: str) -> Optional[ModFamily]:
        for family in self.families:
            if family.name == name:
                return family
        return None

    @property
    def mods(self) -> List[Mod]:
        return [mod for family in self.families for mod in family.mods]

    def contains(self, name: str, version: Version) -> bool:
        return self.find(name, version) is not None

    def find(self, name: str, version: Version) -> Optional[Mod]:
        family = self.get_family(name)
        if family is None:
            return None
        for mod in family.mods:
            if mod.version == version:
                return mod
        return None

    def add_mod(self, mod: Mod) -> None:
        """
        Добавить мод в менеджер.

        Raises:
            ValueError: Если версия игры мода не совпадает или мод уже добавлен.
        """
        if mod.factorio_version != self.factorio_version:
            raise ValueError(
                f"Мод {mod.name} предназначен для Factorio {mod.factorio_version.major_minor}, "
                f"а не {self.factorio_version.major_minor}"
            )
        if self.contains(mod.name, mod.version):
            raise ValueError(f"Мод {mod.name} {mod.version} уже добавлен")

        family = self.get_family(mod.name)
        if family is None:
            family = ModFamily(mod.name)
            family.add(mod)
            self.families.append(family)
        else:
            family.add(mod)

    def remove_mod(self, mod: Mod) -> bool:
        family = self.get_family(mod.name)
        if family is None or mod not in family.mods:
            return False
        family.remove(mod)
        if len(family.mods) == 0:
            self.families.remove(family)
        return True

    def load_mod_list(self, path: str) -> int:
        """
        Применить состояние включения из mod-list.json.

        Args:
            path: Путь к mod-list.json.

        Returns:
            Количество модов, для которых найдена запись.

        Raises:
            ValueError: Если файл не является корректным mod-list.json.
        """
        if not os.path.exists(path):
            return 0

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        entries = data.get("mods", []) if isinstance(data, dict) else None
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise ValueError(f"Некорректный формат {MOD_LIST_FILENAME}: {path}")

        applied = 0
        for entry in entries:
            family = self.get_family(entry.get("name", ""))
            if family is None:
                continue
            family.is_enabled = bool(entry.get("enabled", False))
            applied += 1
        return applied

    def save_mod_list(self, path: str) -> None:
        """Сохранить состояние включения в формате mod-list.json."""
        entries = [
            {"name": family.name, "enabled": family.is_enabled}
            for family in sorted(self.families, key=lambda f: f.name.lower())
        ]
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump({"mods": entries}, f, indent=2, ensure_ascii=False)


class Manager(QObject):
    """
    Корневой менеджер: набор менеджеров модов по версиям игры.
    """

    mod_manager_created = pyqtSignal(object)  # ModManager

    def __init__(self):
        super().__init__()
        self._mod_managers: Dict[Tuple[int, int], ModManager] = {}

    @property
    def mod_managers(self) -> List[ModManager]:
        """Менеджеры модов, упорядоченные по версии игры."""
        return [self._mod_managers[key] for key in sorted(self._mod_managers)]

    def get_mod_manager(self, factorio_version: Version) -> ModManager:
        """
        Получить менеджер модов для версии игры, создав его при необходимости.
        """
        key = (factorio_version.major, factorio_version.minor)
        manager = self._mod_managers.get(key)
        if manager is None:
            manager = ModManager(factorio_version)
            self._mod_managers[key] = manager
            self.mod_manager_created.emit(manager)
        return manager

    def contains_mod(self, name: str, version: Version) -> bool:
        return self.find_mod(name, version) is not None

    def find_mod(self, name: str, version: Version) -> Optional[Mod]:
        for manager in self._mod_managers.values():
            mod = manager.find(name, version)
            if mod is not None:
                return mod
        return None

    def add_mod(self, mod: Mod) -> None:
        self.get_mod_manager(mod.factorio_version).add_mod(mod)

    def remove_mod(self, mod: Mod) -> bool:
        key = (mod.factorio_version.major, mod.factorio_version.minor)
        manager = self._mod_managers.get(key)
        return manager.remove_mod(mod) if manager is not None else False
