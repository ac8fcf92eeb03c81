"""
Модуль модпаков: именованных наборов модов.
"""

from typing import Iterable, List, Optional

from mods import Mod
from observable import ObservableList, ObservableObject


DEFAULT_MODPACK_NAME = "Новый модпак"


class Modpack(ObservableObject):
    """Модпак - пользовательская группа модов."""

    def __init__(self, name: str, mods: Optional[Iterable[Mod]] = None, enabled: bool = False):
        super().__init__()
        self._name = name
        self._enabled = enabled
        self.mods: List[Mod] = list(mods) if mods is not None else []

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._set_field("_name", value, "name")

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        """
        Включение модпака включает (или выключает) все его моды.
        Другие версии тех же модов выключает ModFamily.
        """
        value = bool(value)
        for mod in self.mods:
            mod.enabled = value
        self._set_field("_enabled", value, "enabled")

    def add_mod(self, mod: Mod) -> None:
        if mod not in self.mods:
            self.mods.append(mod)
            self.raise_property_changed("mods")

    def remove_mod(self, mod: Mod) -> None:
        if mod in self.mods:
            self.mods.remove(mod)
            self.raise_property_changed("mods")

    def __repr__(self) -> str:
        return f"Modpack({self._name!r}, mods={len(self.mods)})"


class ModpackCollection(ObservableList):
    """Наблюдаемая коллекция модпаков."""

    def names(self) -> List[str]:
        return [modpack.name for modpack in self]

    def unique_name(self, base: str = DEFAULT_MODPACK_NAME) -> str:
        """
        Подобрать свободное имя: "Новый модпак", "Новый модпак 2", ...
        """
        existing = set(self.names())
        if base not in existing:
            return base
        index = 2
        while f"{base} {index}" in existing:
            index += 1
        return f"{base} {index}"

    def create_modpack(self, name: Optional[str] = None) -> Modpack:
        """Создать пустой модпак и добавить его в коллекцию."""
        modpack = Modpack(name or self.unique_name())
        self.append(modpack)
        return modpack
