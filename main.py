"""
Главный модуль приложения ModMyFactory.
Реализует графический интерфейс менеджера модов Factorio на PyQt6.
"""

import sys
import os
import weakref
from datetime import datetime
from typing import List, Optional

from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QLabel, QLineEdit, QPushButton, QTextEdit, QGroupBox, QFileDialog,
    QSplitter, QMessageBox, QCheckBox, QTreeWidget, QTreeWidgetItem,
    QListWidget, QListWidgetItem, QSpinBox
)
from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtGui import QFont, QTextCursor, QAction, QKeySequence

# Импорт модулей приложения
from about import AboutWindowViewModel, UpdateChecker
from database import ModpackDatabase
from dialogs import AboutDialog
from importer import ModImporter
from locations import Locations
from mods import Manager
from modpacks import ModpackCollection
from settings import LOG_FONT_MAX, LOG_FONT_MIN, SettingsManager
from styles import get_main_stylesheet, get_log_html_style, PALETTE
from viewmodels import ManagerViewModel, ModFamilyViewModel, ModpackViewModel


def to_check_state(value: Optional[bool]) -> Qt.CheckState:
    """Преобразовать тройное состояние в состояние флажка Qt."""
    if value is None:
        return Qt.CheckState.PartiallyChecked
    return Qt.CheckState.Checked if value else Qt.CheckState.Unchecked


class LogPanel(QWidget):
    """
    Панель журнала: цветные строки, фильтр отладочных сообщений,
    размер шрифта.
    """

    def __init__(self, font_size: int, verbose: bool, parent: Optional[QWidget] = None):
        super().__init__(parent)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        toolbar = QHBoxLayout()

        title = QLabel("📋 Журнал")
        title.setStyleSheet(f"font-size: 14px; font-weight: bold; color: {PALETTE['accent']};")
        toolbar.addWidget(title)
        toolbar.addStretch()

        self.verbose_box = QCheckBox("Отладочные сообщения")
        self.verbose_box.setChecked(verbose)
        toolbar.addWidget(self.verbose_box)

        size_label = QLabel("Шрифт:")
        size_label.setStyleSheet(f"color: {PALETTE['text_dim']};")
        toolbar.addWidget(size_label)

        self.size_spin = QSpinBox()
        self.size_spin.setRange(LOG_FONT_MIN, LOG_FONT_MAX)
        self.size_spin.setFixedWidth(60)
        toolbar.addWidget(self.size_spin)

        self.view = QTextEdit()
        self.view.setReadOnly(True)
        self.view.setFont(QFont("Consolas"))
        self.size_spin.setValue(font_size)
        self.set_font_size(font_size)
        self.size_spin.valueChanged.connect(self.set_font_size)

        clear_btn = QPushButton("🗑️ Очистить")
        clear_btn.clicked.connect(self.view.clear)
        toolbar.addWidget(clear_btn)

        layout.addLayout(toolbar)
        layout.addWidget(self.view)

    @property
    def verbose(self) -> bool:
        return self.verbose_box.isChecked()

    @property
    def font_size(self) -> int:
        return self.size_spin.value()

    def set_font_size(self, size: int) -> None:
        font = self.view.font()
        font.setPointSize(size)
        self.view.setFont(font)

    def append(self, message: str, level: str = "INFO") -> None:
        if level == "DEBUG" and not self.verbose:
            return
        line = get_log_html_style(level, message, datetime.now().strftime("%H:%M:%S"))
        cursor = self.view.textCursor()
        cursor.movePosition(QTextCursor.MoveOperation.End)
        cursor.insertHtml(line)
        self.view.setTextCursor(cursor)
        self.view.ensureCursorVisible()


class MainWindow(QMainWindow):
    """
    Главное окно приложения ModMyFactory.
    Слева - моды по версиям игры, справа - модпаки, снизу - логи.
    """

    def __init__(self, settings: Optional[SettingsManager] = None):
        super().__init__()

        self.settings = settings or SettingsManager()

        self.setWindowTitle("ModMyFactory")
        self.setMinimumSize(1000, 600)
        self.resize(
            self.settings.settings.window_width,
            self.settings.settings.window_height
        )
        self.setAcceptDrops(True)
        self.setStyleSheet(get_main_stylesheet())

        # Журнал создаётся первым, чтобы загрузка модов могла в него писать
        self.log_panel = LogPanel(self.settings.log_font_size, self.settings.verbose_logging)

        self.about_view_model: Optional[AboutWindowViewModel] = None
        self._populating = False
        # Модели представления, на сигналы которых окно уже подписано
        self._watched = weakref.WeakSet()
        self._load_data()

        self.view_model = ManagerViewModel(
            self.manager,
            self.modpacks,
            ModImporter(self.manager, self.locations, log_callback=self._log),
            file_dialog=self._select_mod_files,
            log_callback=self._log
        )
        self.view_model.property_changed.connect(self._on_view_model_property_changed)
        self.view_model.notification.connect(self._show_notification)
        self.view_model.mod_version_groupings.changed.connect(self._populate_mods)
        self.view_model.modpacks.changed.connect(
            lambda: QTimer.singleShot(0, self._populate_modpacks)
        )

        self._create_ui()
        self._create_menus()

        self._populate_mods()
        self._populate_modpacks()
        self._update_select_all_boxes()

    def _load_data(self) -> None:
        """Загрузка установленных модов и модпаков."""
        self.locations = Locations(self.settings.data_path, log_callback=self._log)
        self.manager = Manager()
        self.modpacks = ModpackCollection()

        self.locations.scan_mods(self.manager)

        try:
            os.makedirs(self.settings.data_path, exist_ok=True)
            self.database: Optional[ModpackDatabase] = ModpackDatabase(self.settings.database_path)
            modpacks, missing = self.database.load_modpacks(self.manager)
        except Exception as e:
            self.database = None
            self._log(f"Ошибка загрузки модпаков: {str(e)}", "ERROR")
            return

        self.modpacks.reset(modpacks)
        for name, version in missing:
            self._log(f"Мод {name} {version} из модпака не найден", "WARNING")
        self._log(f"Загружено модпаков: {len(modpacks)}", "INFO")

    # --- Интерфейс ---

    def _create_ui(self) -> None:
        """Создание пользовательского интерфейса."""
        central_widget = QWidget()
        self.setCentralWidget(central_widget)

        main_layout = QVBoxLayout(central_widget)
        main_layout.setContentsMargins(10, 10, 10, 10)
        main_layout.setSpacing(10)

        vertical_splitter = QSplitter(Qt.Orientation.Vertical)

        lists_splitter = QSplitter(Qt.Orientation.Horizontal)
        lists_splitter.addWidget(self._create_mods_panel())
        lists_splitter.addWidget(self._create_modpacks_panel())
        lists_splitter.setSizes([600, 400])

        vertical_splitter.addWidget(lists_splitter)
        vertical_splitter.addWidget(self.log_panel)
        vertical_splitter.setSizes([520, 180])
        vertical_splitter.setStretchFactor(0, 3)
        vertical_splitter.setStretchFactor(1, 1)

        main_layout.addWidget(vertical_splitter)

    def _create_mods_panel(self) -> QWidget:
        """Панель модов, сгруппированных по версии игры."""
        group = QGroupBox("🧩 Моды")
        layout = QVBoxLayout(group)

        header_layout = QHBoxLayout()

        self.all_mods_checkbox = QCheckBox("Все")
        self.all_mods_checkbox.setTristate(True)
        self.all_mods_checkbox.clicked.connect(self._toggle_all_mods)
        header_layout.addWidget(self.all_mods_checkbox)

        self.mod_filter_input = QLineEdit()
        self.mod_filter_input.setPlaceholderText("Поиск модов...")
        self.mod_filter_input.textChanged.connect(self._on_mod_filter_changed)
        header_layout.addWidget(self.mod_filter_input)

        layout.addLayout(header_layout)

        self.mods_tree = QTreeWidget()
        self.mods_tree.setHeaderLabels(["Мод", "Версия"])
        self.mods_tree.setColumnWidth(0, 360)
        self.mods_tree.setAlternatingRowColors(True)
        self.mods_tree.itemChanged.connect(self._on_mod_item_changed)
        layout.addWidget(self.mods_tree)

        add_btn = QPushButton("📦 Добавить моды")
        add_btn.setProperty("class", "primary")
        add_btn.clicked.connect(self.view_model.add_mods)
        layout.addWidget(add_btn)

        return group

    def _create_modpacks_panel(self) -> QWidget:
        """Панель модпаков."""
        group = QGroupBox("🗂️ Модпаки")
        layout = QVBoxLayout(group)

        header_layout = QHBoxLayout()

        self.all_modpacks_checkbox = QCheckBox("Все")
        self.all_modpacks_checkbox.setTristate(True)
        self.all_modpacks_checkbox.clicked.connect(self._toggle_all_modpacks)
        header_layout.addWidget(self.all_modpacks_checkbox)

        self.modpack_filter_input = QLineEdit()
        self.modpack_filter_input.setPlaceholderText("Поиск модпаков...")
        self.modpack_filter_input.textChanged.connect(self._on_modpack_filter_changed)
        header_layout.addWidget(self.modpack_filter_input)

        layout.addLayout(header_layout)

        self.modpacks_list = QListWidget()
        self.modpacks_list.setAlternatingRowColors(True)
        self.modpacks_list.itemChanged.connect(self._on_modpack_item_changed)
        self.modpacks_list.itemDoubleClicked.connect(self._start_renaming)
        layout.addWidget(self.modpacks_list)

        new_btn = QPushButton("➕ Новый модпак")
        new_btn.clicked.connect(self.view_model.create_modpack)
        layout.addWidget(new_btn)

        return group

    def _create_menus(self) -> None:
        """Меню строится из пунктов модели представления."""
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("Файл")
        for item in self.view_model.get_file_menu_items():
            action = QAction(item.text, self)
            action.setShortcut(QKeySequence(item.shortcut))
            action.setEnabled(item.enabled)
            action.triggered.connect(item.callback)
            file_menu.addAction(action)

        file_menu.addSeparator()
        exit_action = QAction("Выход", self)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        edit_items = self.view_model.get_edit_menu_items()
        if edit_items:
            edit_menu = menu_bar.addMenu("Правка")
            for item in edit_items:
                action = QAction(item.text, self)
                action.setShortcut(QKeySequence(item.shortcut))
                action.triggered.connect(item.callback)
                edit_menu.addAction(action)

        help_menu = menu_bar.addMenu("Справка")
        about_action = QAction("О программе", self)
        about_action.triggered.connect(self._show_about)
        help_menu.addAction(about_action)

    # --- Заполнение списков ---

    def _populate_mods(self) -> None:
        """Перестроение дерева модов по модели представления."""
        self._populating = True
        try:
            self.mods_tree.clear()
            for grouping in self.view_model.mod_version_groupings:
                group_item = QTreeWidgetItem([grouping.header, ""])
                group_item.setFlags(Qt.ItemFlag.ItemIsEnabled)
                self.mods_tree.addTopLevelItem(group_item)

                if grouping not in self._watched:
                    grouping.families_view.changed.connect(self._populate_mods)
                    self._watched.add(grouping)

                for family in grouping.families_view:
                    item = QTreeWidgetItem([family.display_name, family.version_text])
                    item.setFlags(
                        Qt.ItemFlag.ItemIsEnabled
                        | Qt.ItemFlag.ItemIsSelectable
                        | Qt.ItemFlag.ItemIsUserCheckable
                    )
                    item.setCheckState(0, to_check_state(family.is_enabled))
                    item.setData(0, Qt.ItemDataRole.UserRole, family)
                    group_item.addChild(item)

                    if family not in self._watched:
                        family.property_changed.connect(self._on_family_property_changed)
                        self._watched.add(family)

                group_item.setExpanded(True)
        finally:
            self._populating = False

    def _populate_modpacks(self) -> None:
        """Перестроение списка модпаков по модели представления."""
        self._populating = True
        try:
            self.modpacks_list.clear()
            for vm in self.view_model.modpacks:
                item = QListWidgetItem(vm.name)
                item.setFlags(
                    Qt.ItemFlag.ItemIsEnabled
                    | Qt.ItemFlag.ItemIsSelectable
                    | Qt.ItemFlag.ItemIsUserCheckable
                    | Qt.ItemFlag.ItemIsEditable
                )
                item.setCheckState(to_check_state(vm.enabled))
                item.setToolTip(f"Модов: {vm.mod_count}")
                item.setData(Qt.ItemDataRole.UserRole, vm)
                self.modpacks_list.addItem(item)

                if vm.is_renaming:
                    self.modpacks_list.setCurrentItem(item)
                    self.modpacks_list.editItem(item)
        finally:
            self._populating = False

    def _find_mod_item(self, family: ModFamilyViewModel) -> Optional[QTreeWidgetItem]:
        for i in range(self.mods_tree.topLevelItemCount()):
            group_item = self.mods_tree.topLevelItem(i)
            for j in range(group_item.childCount()):
                item = group_item.child(j)
                if item.data(0, Qt.ItemDataRole.UserRole) is family:
                    return item
        return None

    def _find_modpack_item(self, vm: ModpackViewModel) -> Optional[QListWidgetItem]:
        for i in range(self.modpacks_list.count()):
            item = self.modpacks_list.item(i)
            if item.data(Qt.ItemDataRole.UserRole) is vm:
                return item
        return None

    def _update_select_all_boxes(self) -> None:
        self.all_mods_checkbox.setCheckState(to_check_state(self.view_model.all_mods_enabled))
        self.all_modpacks_checkbox.setCheckState(to_check_state(self.view_model.all_modpacks_enabled))

    # --- Обработчики событий модели представления ---

    def _on_view_model_property_changed(self, sender, name: str) -> None:
        if name in ("all_mods_enabled", "all_modpacks_enabled"):
            self._update_select_all_boxes()
            if name == "all_modpacks_enabled":
                self._refresh_modpack_check_states()

    def _on_family_property_changed(self, sender, name: str) -> None:
        if name not in ("is_enabled", "version_text"):
            return
        item = self._find_mod_item(sender)
        if item is None:
            return
        self._populating = True
        try:
            item.setCheckState(0, to_check_state(sender.is_enabled))
            item.setText(1, sender.version_text)
        finally:
            self._populating = False

    def _refresh_modpack_check_states(self) -> None:
        self._populating = True
        try:
            for i in range(self.modpacks_list.count()):
                item = self.modpacks_list.item(i)
                vm = item.data(Qt.ItemDataRole.UserRole)
                item.setCheckState(to_check_state(vm.enabled))
        finally:
            self._populating = False

    def _show_notification(self, level: str, message: str) -> None:
        if level == "ERROR":
            QMessageBox.warning(self, "Ошибка", message)
        else:
            QMessageBox.information(self, "ModMyFactory", message)

    # --- Обработчики событий интерфейса ---

    def _toggle_all_mods(self) -> None:
        # Флажок с тремя состояниями: после клика всегда одно из двух
        self.view_model.all_mods_enabled = self.view_model.all_mods_enabled is not True

    def _toggle_all_modpacks(self) -> None:
        self.view_model.all_modpacks_enabled = self.view_model.all_modpacks_enabled is not True

    def _on_mod_filter_changed(self, text: str) -> None:
        self.view_model.mod_filter = text

    def _on_modpack_filter_changed(self, text: str) -> None:
        self.view_model.modpack_filter = text

    def _on_mod_item_changed(self, item: QTreeWidgetItem, column: int) -> None:
        if self._populating or column != 0:
            return
        family = item.data(0, Qt.ItemDataRole.UserRole)
        if family is not None:
            family.is_enabled = item.checkState(0) == Qt.CheckState.Checked

    def _on_modpack_item_changed(self, item: QListWidgetItem) -> None:
        if self._populating:
            return
        vm = item.data(Qt.ItemDataRole.UserRole)
        if vm is None:
            return

        enabled = item.checkState() == Qt.CheckState.Checked
        if enabled != vm.enabled:
            vm.enabled = enabled

        if item.text() != vm.name:
            vm.name = item.text()
            if vm.is_renaming:
                vm.is_renaming = False
            else:
                self.view_model.modpacks.refresh()
            self._log(f"Модпак переименован: {vm.name}", "INFO")
        elif vm.is_renaming:
            vm.is_renaming = False

    def _start_renaming(self, item: QListWidgetItem) -> None:
        vm = item.data(Qt.ItemDataRole.UserRole)
        if vm is not None:
            vm.is_renaming = True

    def _select_mod_files(self) -> List[str]:
        """Диалог выбора архивов модов."""
        paths, _ = QFileDialog.getOpenFileNames(
            self,
            "Выберите файлы модов",
            self.settings.last_import_path,
            "ZIP-архив (*.zip)"
        )
        if paths:
            self.settings.last_import_path = os.path.dirname(paths[0])
        return paths

    def _show_about(self) -> None:
        # Модель живёт дольше диалога, пока идёт проверка обновлений
        if self.about_view_model is None:
            self.about_view_model = AboutWindowViewModel(
                UpdateChecker(self.settings.update_url),
                log_callback=self._log
            )
        dialog = AboutDialog(self.about_view_model, self)
        dialog.exec()

    # --- Перетаскивание файлов ---

    def dragEnterEvent(self, event) -> None:
        if event.mimeData().hasUrls() and any(
            url.toLocalFile().lower().endswith(".zip") for url in event.mimeData().urls()
        ):
            event.accept()
        else:
            event.ignore()

    def dropEvent(self, event) -> None:
        paths = [url.toLocalFile() for url in event.mimeData().urls()]
        zip_paths = [p for p in paths if p.lower().endswith(".zip") and os.path.isfile(p)]
        if zip_paths:
            self.view_model.start_import(zip_paths)

    # --- Логи и настройки ---

    def _log(self, message: str, level: str = "INFO") -> None:
        self.log_panel.append(message, level)

    def _save_settings(self) -> None:
        self.settings.update(
            log_font_size=self.log_panel.font_size,
            verbose_logging=self.log_panel.verbose,
            window_width=self.width(),
            window_height=self.height()
        )
        if not self.settings.save_settings():
            self._log(f"Не удалось сохранить настройки: {self.settings.settings_path}", "ERROR")

    def _save_data(self) -> None:
        """Сохранение состояния модов и модпаков."""
        self.locations.save_mod_lists(self.manager)
        if self.database is not None:
            try:
                self.database.save_modpacks(self.modpacks)
            except Exception as e:
                self._log(f"Ошибка сохранения модпаков: {str(e)}", "ERROR")

    def closeEvent(self, event) -> None:
        """Обработка закрытия окна."""
        workers = [self.view_model.import_worker]
        if self.about_view_model is not None:
            workers.append(self.about_view_model.update_worker)
        for worker in workers:
            if worker is not None and worker.isRunning():
                worker.wait(5000)

        self._save_data()
        self._save_settings()
        self.view_model.dispose()

        event.accept()


def main():
    """Точка входа в приложение."""
    app = QApplication(sys.argv)
    app.setStyle("Fusion")

    window = MainWindow()
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
