"""
Модуль диалоговых окон.
Базовый класс диалога с собственным оформлением окна и окно "О программе".
"""

import ctypes
import os
from typing import Optional

from PyQt6.QtCore import Qt, QPoint
from PyQt6.QtWidgets import (
    QDialog, QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton,
    QTextEdit, QTabWidget, QLayout
)

from about import AboutWindowViewModel
from styles import get_dialog_stylesheet, PALETTE


# Стили окна Win32 (GWL_STYLE)
GWL_STYLE = -16
WS_MAXIMIZEBOX = 0x00010000
WS_MINIMIZEBOX = 0x00020000


def unset_window_styles(styles: int, flags: int) -> int:
    """Снять флаги стиля окна."""
    return styles & ~flags


def remove_resize_buttons(hwnd: int) -> bool:
    """
    Убрать кнопки свёртывания и развёртывания у окна Windows.

    Args:
        hwnd: Дескриптор окна.

    Returns:
        True если стиль изменён, False на других платформах.
    """
    if os.name != 'nt':
        return False

    user32 = ctypes.windll.user32
    styles = user32.GetWindowLongW(hwnd, GWL_STYLE)
    styles = unset_window_styles(styles, WS_MAXIMIZEBOX | WS_MINIMIZEBOX)
    user32.SetWindowLongW(hwnd, GWL_STYLE, styles)
    return True


class DialogBase(QDialog):
    """
    Базовый диалог: без значка на панели задач, без изменения размера,
    без системной рамки, по центру окна-владельца.
    """

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setWindowFlags(
            Qt.WindowType.Dialog
            | Qt.WindowType.FramelessWindowHint
            | Qt.WindowType.Tool
        )
        self.setModal(True)
        self.setStyleSheet(get_dialog_stylesheet())
        self._drag_offset: Optional[QPoint] = None

    def fix_size(self) -> None:
        """Запретить изменение размера по содержимому."""
        if self.layout() is not None:
            self.layout().setSizeConstraint(QLayout.SizeConstraint.SetFixedSize)

    def showEvent(self, event) -> None:
        """Центрирование относительно владельца при показе."""
        super().showEvent(event)
        owner = self.parentWidget()
        if owner is not None:
            center = owner.frameGeometry().center()
            self.move(center - self.rect().center())

        # Qt на Windows не убирает кнопки размера у диалогов сам
        remove_resize_buttons(int(self.winId()))

    # Перемещение окна без системной рамки

    def mousePressEvent(self, event) -> None:
        if event.button() == Qt.MouseButton.LeftButton:
            self._drag_offset = event.globalPosition().toPoint() - self.frameGeometry().topLeft()
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event) -> None:
        if self._drag_offset is not None and event.buttons() & Qt.MouseButton.LeftButton:
            self.move(event.globalPosition().toPoint() - self._drag_offset)
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event) -> None:
        self._drag_offset = None
        super().mouseReleaseEvent(event)


class AboutDialog(DialogBase):
    """Окно "О программе"."""

    def __init__(self, view_model: AboutWindowViewModel, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.view_model = view_model
        self.view_model.attach_view(self)
        self.view_model.property_changed.connect(self._on_property_changed)

        self.setWindowTitle("О программе")
        self._create_ui()
        self.fix_size()

    def _create_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(20, 20, 20, 20)
        layout.setSpacing(10)

        title = QLabel("⚙️ ModMyFactory")
        title.setStyleSheet(f"""
            font-size: 22px;
            font-weight: bold;
            color: {PALETTE["accent"]};
        """)
        layout.addWidget(title)

        self.version_label = QLabel(f"Версия {self.view_model.gui_version}")
        layout.addWidget(self.version_label)

        author_label = QLabel(f"Автор: {self.view_model.author}")
        author_label.setStyleSheet(f"color: {PALETTE['text_dim']};")
        layout.addWidget(author_label)

        tabs = QTabWidget()
        tabs.setFixedSize(520, 300)

        versions_text = QTextEdit()
        versions_text.setReadOnly(True)
        versions_text.setPlainText("\n".join(
            f"{name}: {version}" for name, version in self.view_model.library_versions.items()
        ))
        tabs.addTab(versions_text, "Библиотеки")

        changelog_text = QTextEdit()
        changelog_text.setReadOnly(True)
        changelog_text.setMarkdown(self.view_model.changelog or "История изменений недоступна.")
        tabs.addTab(changelog_text, "Изменения")

        attributions_text = QTextEdit()
        attributions_text.setReadOnly(True)
        attributions_text.setHtml("<br>".join(
            f'<a href="{a.url}">{a.name}</a> ({a.license})' for a in self.view_model.attributions
        ))
        tabs.addTab(attributions_text, "Благодарности")

        layout.addWidget(tabs)

        self.update_label = QLabel(self.view_model.update_status)
        self.update_label.setWordWrap(True)
        layout.addWidget(self.update_label)

        buttons_layout = QHBoxLayout()

        self.update_button = QPushButton("🔄 Проверить обновления")
        self.update_button.setEnabled(self.view_model.can_check_updates)
        if not self.view_model.can_check_updates:
            self.update_button.setToolTip("Укажите update_url в settings.json")
        self.update_button.clicked.connect(self._check_updates)
        buttons_layout.addWidget(self.update_button)

        buttons_layout.addStretch()

        close_btn = QPushButton("Закрыть")
        close_btn.setProperty("class", "primary")
        close_btn.clicked.connect(self.view_model.close)
        buttons_layout.addWidget(close_btn)

        layout.addLayout(buttons_layout)

    def _check_updates(self) -> None:
        self.view_model.check_for_updates()

    def _on_property_changed(self, sender, name: str) -> None:
        if name == "update_status":
            self.update_label.setText(self.view_model.update_status)

    def closeEvent(self, event) -> None:
        self.view_model.property_changed.disconnect(self._on_property_changed)
        self.view_model.attach_view(None)
        super().closeEvent(event)
