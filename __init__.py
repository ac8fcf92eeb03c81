"""
ModMyFactory

Desktop-приложение для управления модами и модпаками Factorio.

Модули:
    - observable: Наблюдаемые объекты и коллекции
    - mods: Доменная модель модов (версии, семейства, менеджеры)
    - mod_file: Чтение и копирование файлов модов
    - modpacks: Модпаки
    - locations: Папки модов по версиям игры
    - importer: Импорт файлов модов
    - database: Хранение модпаков в SQLite
    - settings: Управление настройками приложения
    - viewmodels: Модели представления главного окна
    - about: Окно "О программе" и проверка обновлений
    - dialogs: Диалоговые окна
    - styles: Стили интерфейса
    - main: Главный модуль с GUI

Использование:
    python main.py

Автор: Amorsev
Версия: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Amorsev"
