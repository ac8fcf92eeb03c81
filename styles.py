"""
Оформление интерфейса в цветах Factorio.
Палитра, таблицы стилей Qt и HTML-разметка строк лога.
"""

import html

PALETTE = {
    "window": "#2b2b2b",
    "panel": "#313131",
    "raised": "#3c3c3c",
    "field": "#242424",
    "shadow": "#1b1b1b",

    "accent": "#ff9f1c",        # оранжевый Factorio
    "accent_light": "#ffb84d",

    "text": "#ffe6c0",
    "text_dim": "#b5a88f",
    "text_faint": "#6e6a63",

    "outline": "#141414",
    "outline_light": "#4d4d4d",
    "highlight": "#474747",
    "sunken": "#1f1f1f",
    "inactive": "#363636",
}

LOG_COLORS = {
    "INFO": "#7fb8e6",
    "SUCCESS": "#5eb663",
    "WARNING": "#e3c53b",
    "ERROR": "#e04a3f",
    "DEBUG": "#a98bd6",
}


def _frame(selector: str, background: str, radius: int = 4, padding: str = "") -> str:
    """Правило для виджета с тёмной рамкой Factorio."""
    rule = (
        f"{selector} {{ background-color: {PALETTE[background]}; "
        f"border: 2px solid {PALETTE['outline']}; border-radius: {radius}px;"
    )
    if padding:
        rule += f" padding: {padding};"
    return rule + " }\n"


def _selected(selector: str) -> str:
    return f"{selector} {{ background-color: {PALETTE['highlight']}; color: {PALETTE['accent']}; }}\n"


def get_main_stylesheet() -> str:
    """Таблица стилей главного окна."""
    p = PALETTE
    rules = [
        f"QWidget {{ background-color: {p['window']}; color: {p['text']}; "
        f"font-family: 'Segoe UI', sans-serif; }}\n",
        "QLabel { background: transparent; }\n",

        _frame("QLineEdit", "field", padding="5px 8px"),
        f"QLineEdit:focus {{ border-color: {p['accent']}; }}\n",
        f"QLineEdit {{ selection-background-color: {p['accent']}; selection-color: {p['shadow']}; }}\n",

        _frame("QPushButton", "raised", padding="6px 14px"),
        "QPushButton { font-weight: bold; }\n",
        f"QPushButton:hover {{ background-color: {p['highlight']}; border-color: {p['accent']}; }}\n",
        f"QPushButton:pressed {{ background-color: {p['sunken']}; }}\n",
        f"QPushButton:disabled {{ background-color: {p['inactive']}; color: {p['text_faint']}; }}\n",
        f'QPushButton[class="primary"] {{ background-color: {p["accent"]}; color: {p["shadow"]}; }}\n',
        f'QPushButton[class="primary"]:hover {{ background-color: {p["accent_light"]}; }}\n',

        _frame("QTreeWidget, QListWidget", "panel"),
        f"QTreeWidget, QListWidget {{ alternate-background-color: {p['window']}; }}\n",
        _selected("QTreeWidget::item:selected, QListWidget::item:selected"),
        f"QHeaderView::section {{ background-color: {p['raised']}; color: {p['text_dim']}; "
        f"border: none; padding: 3px 6px; }}\n",

        _frame("QTextEdit", "shadow", padding="6px"),
        "QTextEdit { font-family: 'Consolas', monospace; }\n",

        "QCheckBox { spacing: 6px; }\n",
        f"QCheckBox::indicator {{ width: 14px; height: 14px; "
        f"border: 2px solid {p['outline_light']}; background-color: {p['field']}; }}\n",
        f"QCheckBox::indicator:checked {{ background-color: {p['accent']}; border-color: {p['accent']}; }}\n",
        # Смешанное состояние флажков "Все"
        f"QCheckBox::indicator:indeterminate {{ background-color: {p['text_faint']}; "
        f"border-color: {p['accent']}; }}\n",

        f"QGroupBox {{ border: 2px solid {p['outline']}; border-radius: 6px; "
        f"margin-top: 12px; padding-top: 12px; font-weight: bold; color: {p['accent']}; }}\n",
        "QGroupBox::title { subcontrol-origin: margin; left: 10px; padding: 2px 6px; }\n",

        f"QMenuBar {{ background-color: {p['raised']}; }}\n",
        f"QMenu {{ background-color: {p['panel']}; border: 1px solid {p['outline']}; }}\n",
        "QMenu::item { padding: 5px 22px; }\n",
        _selected("QMenuBar::item:selected, QMenu::item:selected"),
    ]
    return "".join(rules)


def get_dialog_stylesheet() -> str:
    """Таблица стилей диалогов без системной рамки."""
    p = PALETTE
    return get_main_stylesheet() + "".join([
        f"QDialog {{ background-color: {p['panel']}; border: 2px solid {p['accent']}; }}\n",
        f"QTabWidget::pane {{ border: 2px solid {p['outline']}; }}\n",
        f"QTabBar::tab {{ background-color: {p['raised']}; padding: 5px 12px; }}\n",
        f"QTabBar::tab:selected {{ color: {p['accent']}; }}\n",
    ])


def get_log_html_style(level: str, message: str, timestamp: str = "") -> str:
    """
    Строка лога в HTML для QTextEdit.

    Args:
        level: INFO, SUCCESS, WARNING, ERROR или DEBUG.
        message: Текст сообщения, экранируется.
        timestamp: Время записи, может быть пустым.
    """
    parts = []
    if timestamp:
        parts.append(f'<span style="color: {PALETTE["text_faint"]};">{timestamp}</span>')
    color = LOG_COLORS.get(level, PALETTE["text"])
    padded = f"{level:<7}".replace(" ", "&nbsp;")
    parts.append(f'<b style="color: {color};">{padded}</b>')
    parts.append(f'<span style="color: {PALETTE["text"]};">{html.escape(message)}</span>')
    return " ".join(parts) + "<br>"
