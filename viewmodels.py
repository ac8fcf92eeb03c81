"""
Модуль моделей представления главного окна.
Связывает доменные коллекции модов и модпаков с интерфейсом:
зеркалирование коллекций, фильтрация и агрегированные флажки "выбрать все".
"""

import os
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Tuple

from PyQt6.QtCore import QObject, pyqtSignal

from importer import ImportResult, ImportStatus, ImportWorker, ModImporter
from mods import Manager, ModFamily, ModManager
from modpacks import Modpack, ModpackCollection
from observable import (
    CollectionAction, CollectionChange, ObservableList, ObservableObject, select_from_all
)


def fuzzy_match(text: str, pattern: str) -> Tuple[bool, int]:
    """
    Нечёткий поиск: символы шаблона должны встречаться в тексте по порядку.

    Args:
        text: Текст для поиска.
        pattern: Шаблон поиска.

    Returns:
        Кортеж (совпадение, оценка). Подряд идущие символы и начала слов
        повышают оценку. Пустой шаблон совпадает с любым текстом.
    """
    if not pattern:
        return True, 0

    text_lower = text.lower()
    pattern_lower = pattern.lower()

    score = 0
    position = 0
    previous = -2
    for char in pattern_lower:
        if char.isspace():
            continue
        index = text_lower.find(char, position)
        if index < 0:
            return False, 0

        score += 1
        if index == previous + 1:
            score += 5
        if index == 0 or not text_lower[index - 1].isalnum():
            score += 3

        previous = index
        position = index + 1

    return True, score


class CollectionView(QObject):
    """
    Упорядоченное и отфильтрованное представление наблюдаемого списка.
    Обновляется автоматически при изменении исходной коллекции.
    """

    changed = pyqtSignal()

    def __init__(
        self,
        source: ObservableList,
        sort_key: Optional[Callable[[Any], Any]] = None,
        reverse: bool = False,
        filter_func: Optional[Callable[[Any], bool]] = None
    ):
        super().__init__()
        self.source = source
        self.sort_key = sort_key
        self.reverse = reverse
        self.filter_func = filter_func
        self._items: List[Any] = []
        self.source.collection_changed.connect(self._on_source_changed)
        self.refresh()

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> Any:
        return self._items[index]

    def _on_source_changed(self, change: CollectionChange) -> None:
        self.refresh()

    def refresh(self) -> None:
        """Пересчитать фильтрацию и сортировку."""
        items = [item for item in self.source if self.filter_func is None or self.filter_func(item)]
        if self.sort_key is not None:
            items.sort(key=self.sort_key, reverse=self.reverse)
        self._items = items
        self.changed.emit()

    def dispose(self) -> None:
        self.source.collection_changed.disconnect(self._on_source_changed)


class ModFamilyViewModel(ObservableObject):
    """Модель представления семейства модов."""

    def __init__(self, family: ModFamily):
        super().__init__()
        self.family = family
        self._matches_filter = True
        self._is_enabled = family.is_enabled

        for mod in family.mods:
            mod.property_changed.connect(self._on_mod_property_changed)
        family.mods.collection_changed.connect(self._on_mods_changed)

    @property
    def name(self) -> str:
        return self.family.name

    @property
    def display_name(self) -> str:
        return self.family.display_name

    @property
    def version_text(self) -> str:
        mod = self.family.enabled_mod or self.family.latest_mod
        return str(mod.version) if mod is not None else ""

    @property
    def is_enabled(self) -> bool:
        return self._is_enabled

    @is_enabled.setter
    def is_enabled(self, value: bool) -> None:
        self.family.is_enabled = value
        self._evaluate_enabled()

    @property
    def matches_filter(self) -> bool:
        return self._matches_filter

    def apply_filter(self, pattern: str) -> None:
        matches, _ = fuzzy_match(self.display_name, pattern or "")
        if not matches and pattern:
            matches, _ = fuzzy_match(self.name, pattern)
        self._set_field("_matches_filter", matches, "matches_filter")

    def _evaluate_enabled(self) -> None:
        self._set_field("_is_enabled", self.family.is_enabled, "is_enabled")

    def _on_mod_property_changed(self, sender: Any, name: str) -> None:
        if name == "enabled":
            self._evaluate_enabled()

    def _on_mods_changed(self, change: CollectionChange) -> None:
        for mod in change.old_items:
            mod.property_changed.disconnect(self._on_mod_property_changed)
        for mod in change.new_items:
            mod.property_changed.connect(self._on_mod_property_changed)
        self.raise_property_changed("version_text")
        self._evaluate_enabled()

    def dispose(self) -> None:
        """Отписаться от доменных объектов."""
        for mod in self.family.mods:
            mod.property_changed.disconnect(self._on_mod_property_changed)
        self.family.mods.collection_changed.disconnect(self._on_mods_changed)


class ModVersionGroupingViewModel(ObservableObject):
    """
    Группа семейств модов одной версии игры.
    Поддерживает family_view_models во взаимно однозначном соответствии
    с семействами менеджера модов.
    """

    def __init__(self, mod_manager: ModManager):
        super().__init__()
        self.mod_manager = mod_manager
        self._filter = ""
        self.family_view_models = ObservableList(
            ModFamilyViewModel(family) for family in mod_manager.families
        )
        self.families_view = CollectionView(
            self.family_view_models,
            sort_key=lambda vm: vm.display_name.lower(),
            filter_func=lambda vm: vm.matches_filter
        )
        mod_manager.families.collection_changed.connect(self._on_families_changed)

    @property
    def factorio_version(self):
        return self.mod_manager.factorio_version

    @property
    def header(self) -> str:
        return f"Factorio {self.factorio_version.major_minor}"

    @property
    def filter(self) -> str:
        return self._filter

    @filter.setter
    def filter(self, value: str) -> None:
        value = value or ""
        if value == self._filter:
            return
        self._filter = value
        for vm in self.family_view_models:
            vm.apply_filter(value)
        self.families_view.refresh()
        self.raise_property_changed("filter")

    def _find_view_model(self, family: ModFamily) -> Optional[ModFamilyViewModel]:
        for vm in self.family_view_models:
            if vm.family is family:
                return vm
        return None

    def _create_view_model(self, family: ModFamily) -> ModFamilyViewModel:
        vm = ModFamilyViewModel(family)
        vm.apply_filter(self._filter)
        return vm

    def _on_families_changed(self, change: CollectionChange) -> None:
        if change.action == CollectionAction.ADD:
            self.family_view_models.extend(
                self._create_view_model(family) for family in change.new_items
            )
        elif change.action == CollectionAction.REMOVE:
            for family in change.old_items:
                vm = self._find_view_model(family)
                if vm is not None:
                    self.family_view_models.remove(vm)
                    vm.dispose()
        elif change.action == CollectionAction.RESET:
            old_view_models = list(self.family_view_models)
            self.family_view_models.reset(
                self._create_view_model(family) for family in change.new_items
            )
            for vm in old_view_models:
                vm.dispose()

    def dispose(self) -> None:
        self.mod_manager.families.collection_changed.disconnect(self._on_families_changed)
        self.families_view.dispose()
        for vm in self.family_view_models:
            vm.dispose()


class ModpackViewModel(ObservableObject):
    """Модель представления модпака."""

    def __init__(self, modpack: Modpack):
        super().__init__()
        self.modpack = modpack
        self._is_renaming = False
        self._matches_search = True
        self._search_score = 0
        modpack.property_changed.connect(self._on_modpack_property_changed)

    @property
    def name(self) -> str:
        return self.modpack.name

    @name.setter
    def name(self, value: str) -> None:
        value = (value or "").strip()
        if value:
            self.modpack.name = value

    @property
    def enabled(self) -> bool:
        return self.modpack.enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self.modpack.enabled = value

    @property
    def mod_count(self) -> int:
        return len(self.modpack.mods)

    @property
    def is_renaming(self) -> bool:
        return self._is_renaming

    @is_renaming.setter
    def is_renaming(self, value: bool) -> None:
        self._set_field("_is_renaming", bool(value), "is_renaming")

    @property
    def matches_search(self) -> bool:
        return self._matches_search

    @property
    def search_score(self) -> int:
        return self._search_score

    def apply_fuzzy_filter(self, pattern: str) -> None:
        self._matches_search, self._search_score = fuzzy_match(self.name, pattern or "")

    def _on_modpack_property_changed(self, sender: Any, name: str) -> None:
        # Переименование свойств домена в свойства модели представления
        if name == "mods":
            self.raise_property_changed("mod_count")
        else:
            self.raise_property_changed(name)

    def dispose(self) -> None:
        self.modpack.property_changed.disconnect(self._on_modpack_property_changed)


@dataclass
class MenuItemViewModel:
    """Пункт меню, создаваемый представлением."""
    text: str
    shortcut: str
    callback: Callable[[], None]
    icon: str = ""
    enabled: bool = True


class ManagerViewModel(ObservableObject):
    """
    Модель представления менеджера модов и модпаков.

    Поддерживает две отображаемые коллекции, синхронизированные
    с доменными коллекциями, и два агрегированных флажка
    "включить все" с тремя состояниями.
    """

    notification = pyqtSignal(str, str)  # level, message

    def __init__(
        self,
        manager: Manager,
        modpacks: ModpackCollection,
        importer: ModImporter,
        file_dialog: Optional[Callable[[], List[str]]] = None,
        log_callback: Optional[Callable[[str, str], None]] = None
    ):
        """
        Args:
            manager: Корневой менеджер модов.
            modpacks: Коллекция модпаков.
            importer: Импортёр файлов модов.
            file_dialog: Функция, возвращающая выбранные пользователем пути.
            log_callback: Функция обратного вызова для логирования (message, level).
        """
        super().__init__()
        self.manager = manager
        self.modpack_collection = modpacks
        self.importer = importer
        self.file_dialog = file_dialog
        self.log_callback = log_callback
        self.import_worker: Optional[ImportWorker] = None

        self._mod_version_groupings = ObservableList()
        self._modpacks = ObservableList()
        self._mod_filter = ""
        self._modpack_filter = ""
        self._all_mods_enabled: Optional[bool] = False
        self._all_modpacks_enabled: Optional[bool] = False
        self._is_updating_mods = False
        self._is_updating_modpacks = False

        for mod_manager in manager.mod_managers:
            self._add_grouping(mod_manager)

        for modpack in modpacks:
            self._modpacks.append(self._create_modpack_view_model(modpack))

        self.mod_version_groupings = CollectionView(
            self._mod_version_groupings,
            sort_key=lambda vm: vm.factorio_version,
            reverse=True
        )
        self.modpacks = CollectionView(
            self._modpacks,
            sort_key=self._modpack_sort_key,
            filter_func=lambda vm: vm.matches_search
        )

        self._evaluate_mod_enabled_states()
        self._evaluate_modpack_enabled_states()

        manager.mod_manager_created.connect(self._on_mod_manager_created)
        modpacks.collection_changed.connect(self._on_modpack_collection_changed)

    def _log(self, message: str, level: str = "INFO") -> None:
        if self.log_callback:
            self.log_callback(message, level)

    # --- Фильтры ---

    @property
    def mod_filter(self) -> str:
        return self._mod_filter

    @mod_filter.setter
    def mod_filter(self, value: str) -> None:
        value = value or ""
        if value != self._mod_filter:
            self._mod_filter = value
            self.raise_property_changed("mod_filter")

            for vm in self._mod_version_groupings:
                vm.filter = value

    @property
    def modpack_filter(self) -> str:
        return self._modpack_filter

    @modpack_filter.setter
    def modpack_filter(self, value: str) -> None:
        value = value or ""
        if value != self._modpack_filter:
            self._modpack_filter = value
            self.raise_property_changed("modpack_filter")

            for vm in self._modpacks:
                vm.apply_fuzzy_filter(value)

            self.modpacks.refresh()
            self.raise_property_changed("modpacks")

    def _modpack_sort_key(self, vm: ModpackViewModel):
        # При поиске сначала лучшие совпадения, иначе по имени
        if self._modpack_filter:
            return (-vm.search_score, vm.name.lower())
        return (0, vm.name.lower())

    # --- Агрегированные флажки ---

    @property
    def family_view_models(self) -> List[ModFamilyViewModel]:
        return [
            family
            for grouping in self._mod_version_groupings
            for family in grouping.family_view_models
        ]

    @property
    def all_mods_enabled(self) -> Optional[bool]:
        return self._all_mods_enabled

    @all_mods_enabled.setter
    def all_mods_enabled(self, value: Optional[bool]) -> None:
        if value is None:
            raise ValueError("all_mods_enabled нельзя установить в неопределённое состояние")

        self._is_updating_mods = True
        try:
            for family in self.family_view_models:
                family.is_enabled = value
        finally:
            self._is_updating_mods = False
        # Итог считается заново: пустая коллекция остаётся False
        self._evaluate_mod_enabled_states()

    @property
    def all_modpacks_enabled(self) -> Optional[bool]:
        return self._all_modpacks_enabled

    @all_modpacks_enabled.setter
    def all_modpacks_enabled(self, value: Optional[bool]) -> None:
        if value is None:
            raise ValueError("all_modpacks_enabled нельзя установить в неопределённое состояние")

        self._is_updating_modpacks = True
        try:
            for pack in self._modpacks:
                pack.enabled = value
        finally:
            self._is_updating_modpacks = False
        self._evaluate_modpack_enabled_states()

    def _evaluate_mod_enabled_states(self) -> None:
        self._all_mods_enabled = select_from_all(
            self.family_view_models, lambda family: family.is_enabled
        )
        self.raise_property_changed("all_mods_enabled")

    def _evaluate_modpack_enabled_states(self) -> None:
        self._all_modpacks_enabled = select_from_all(self._modpacks, lambda vm: vm.enabled)
        self.raise_property_changed("all_modpacks_enabled")

    # --- Зеркалирование коллекций ---

    def _add_grouping(self, mod_manager: ModManager) -> None:
        vm = ModVersionGroupingViewModel(mod_manager)
        vm.filter = self._mod_filter
        vm.family_view_models.collection_changed.connect(self._on_version_grouping_collection_changed)
        for family in vm.family_view_models:
            family.property_changed.connect(self._on_family_property_changed)
        self._mod_version_groupings.append(vm)

    def _on_mod_manager_created(self, mod_manager: ModManager) -> None:
        self._add_grouping(mod_manager)
        self._evaluate_mod_enabled_states()

    def _on_family_property_changed(self, sender: Any, name: str) -> None:
        if name == "is_enabled" and not self._is_updating_mods:
            self._evaluate_mod_enabled_states()

    def _on_version_grouping_collection_changed(self, change: CollectionChange) -> None:
        for vm in change.old_items:
            vm.property_changed.disconnect(self._on_family_property_changed)
        for vm in change.new_items:
            vm.property_changed.connect(self._on_family_property_changed)

        self._evaluate_mod_enabled_states()

    def _create_modpack_view_model(self, modpack: Modpack) -> ModpackViewModel:
        vm = ModpackViewModel(modpack)
        vm.apply_fuzzy_filter(self._modpack_filter)
        vm.property_changed.connect(self._on_modpack_property_changed)
        return vm

    def _destroy_modpack_view_model(self, vm: ModpackViewModel) -> None:
        vm.property_changed.disconnect(self._on_modpack_property_changed)
        vm.dispose()

    def _try_get_view_model(self, modpack: Modpack) -> Optional[ModpackViewModel]:
        for vm in self._modpacks:
            if vm.modpack is modpack:
                return vm
        return None

    def _on_modpack_property_changed(self, sender: Any, name: str) -> None:
        if name == "is_renaming":
            if not sender.is_renaming:
                sender.apply_fuzzy_filter(self._modpack_filter)
                self.modpacks.refresh()
        elif name == "name":
            if not sender.is_renaming:
                self.modpacks.refresh()
        elif name == "enabled":
            if not self._is_updating_modpacks:
                self._evaluate_modpack_enabled_states()

    def _on_modpack_collection_changed(self, change: CollectionChange) -> None:
        if change.action == CollectionAction.ADD:
            self._modpacks.extend(
                self._create_modpack_view_model(modpack) for modpack in change.new_items
            )
        elif change.action == CollectionAction.REMOVE:
            for modpack in change.old_items:
                vm = self._try_get_view_model(modpack)
                if vm is not None:
                    self._modpacks.remove(vm)
                    self._destroy_modpack_view_model(vm)
        elif change.action == CollectionAction.RESET:
            old_view_models = list(self._modpacks)
            self._modpacks.reset(
                self._create_modpack_view_model(modpack) for modpack in change.new_items
            )
            for vm in old_view_models:
                self._destroy_modpack_view_model(vm)

        self.raise_property_changed("modpacks")
        self._evaluate_modpack_enabled_states()

    def get_modpack_view_model(self, modpack: Modpack) -> Optional[ModpackViewModel]:
        return self._try_get_view_model(modpack)

    # --- Команды ---

    @property
    def is_importing(self) -> bool:
        return self.import_worker is not None and self.import_worker.isRunning()

    def add_mods(self) -> bool:
        """
        Команда "Добавить моды": запросить файлы и запустить импорт.

        Returns:
            True если импорт запущен.
        """
        if self.file_dialog is None:
            return False

        if self.is_importing:
            self.notification.emit("WARNING", "Импорт уже выполняется")
            return False

        paths = self.file_dialog()
        if not paths:
            return False

        paths = [os.path.abspath(p) for p in paths if os.path.isfile(p)]
        if not paths:
            return False

        return self.start_import(paths)

    def start_import(self, paths: List[str]) -> bool:
        """
        Запустить импорт файлов в рабочем потоке.

        Returns:
            False если предыдущий импорт ещё не завершён.
        """
        if self.is_importing:
            self.notification.emit("WARNING", "Импорт уже выполняется")
            return False

        self._log(f"Импорт модов: {len(paths)} файл(ов)...", "INFO")
        self.import_worker = ImportWorker(self.importer, paths)
        self.import_worker.log_signal.connect(self._log)
        self.import_worker.result_signal.connect(self.apply_import_result)
        self.import_worker.finished_signal.connect(self._on_import_finished)
        self.import_worker.start()
        return True

    def apply_import_result(self, result: ImportResult) -> None:
        """Применить результат импорта в потоке интерфейса."""
        if result.status == ImportStatus.IMPORTED and self.manager.contains_mod(
            result.mod.name, result.mod.version
        ):
            # Мод успел появиться в менеджере, пока файл копировался
            result.status = ImportStatus.DUPLICATE
            result.message = f"Мод {result.mod.name} {result.mod.version} уже установлен"

        if result.status == ImportStatus.IMPORTED:
            self.manager.add_mod(result.mod)
            self._log(result.message, "SUCCESS")
        elif result.status == ImportStatus.DUPLICATE:
            self._log(result.message, "WARNING")
            self.notification.emit("INFO", result.message)
        else:
            self._log(f"Не удалось импортировать мод: {result.message}", "ERROR")
            self.notification.emit("ERROR", result.message)

    def _on_import_finished(self, imported: int, total: int) -> None:
        self._log(f"Импорт завершён: добавлено {imported} из {total}", "INFO")

    def create_modpack(self) -> Modpack:
        """Команда "Новый модпак": создать модпак и начать его переименование."""
        modpack = self.modpack_collection.create_modpack()
        vm = self._try_get_view_model(modpack)
        if vm is not None:
            vm.is_renaming = True
            self.modpacks.refresh()
        self._log(f"Создан модпак: {modpack.name}", "INFO")
        return modpack

    def get_file_menu_items(self) -> List[MenuItemViewModel]:
        return [
            MenuItemViewModel("📦 Добавить файлы модов...", "Ctrl+O", self.add_mods, icon="add_mods"),
            MenuItemViewModel("🗂️ Новый модпак", "Ctrl+N", self.create_modpack, icon="new_modpack"),
        ]

    def get_edit_menu_items(self) -> List[MenuItemViewModel]:
        # TODO: пункты "Переименовать" и "Удалить" для выбранного модпака
        return []

    def dispose(self) -> None:
        self.manager.mod_manager_created.disconnect(self._on_mod_manager_created)
        self.modpack_collection.collection_changed.disconnect(self._on_modpack_collection_changed)
        for grouping in self._mod_version_groupings:
            grouping.family_view_models.collection_changed.disconnect(
                self._on_version_grouping_collection_changed
            )
            for family in grouping.family_view_models:
                family.property_changed.disconnect(self._on_family_property_changed)
            grouping.dispose()
        for vm in self._modpacks:
            self._destroy_modpack_view_model(vm)
        self.mod_version_groupings.dispose()
        self.modpacks.dispose()
