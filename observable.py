"""
Модуль наблюдаемых объектов и коллекций.
Базовые классы для привязки моделей представления к интерфейсу PyQt6.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, List, Optional

from PyQt6.QtCore import QObject, pyqtSignal


class CollectionAction(Enum):
    """Тип изменения коллекции."""
    ADD = "add"
    REMOVE = "remove"
    RESET = "reset"


@dataclass
class CollectionChange:
    """Описание изменения наблюдаемой коллекции."""
    action: CollectionAction
    new_items: List[Any] = field(default_factory=list)
    old_items: List[Any] = field(default_factory=list)


class ObservableObject(QObject):
    """
    Объект, уведомляющий подписчиков об изменении своих свойств.
    Сигнал property_changed передаёт (отправитель, имя свойства).
    """

    property_changed = pyqtSignal(object, str)

    def raise_property_changed(self, name: str) -> None:
        """Уведомить подписчиков об изменении свойства."""
        self.property_changed.emit(self, name)

    def _set_field(self, attr: str, value: Any, name: str) -> bool:
        """
        Установить значение поля и уведомить, если оно изменилось.

        Args:
            attr: Имя атрибута экземпляра.
            value: Новое значение.
            name: Имя свойства для уведомления.

        Returns:
            True если значение изменилось.
        """
        if getattr(self, attr) == value:
            return False
        setattr(self, attr, value)
        self.raise_property_changed(name)
        return True


class ObservableList(QObject):
    """
    Список, уведомляющий об добавлении, удалении и сбросе элементов.
    Каждая операция порождает ровно одно событие collection_changed.
    """

    collection_changed = pyqtSignal(object)  # CollectionChange

    def __init__(self, items: Optional[Iterable[Any]] = None):
        super().__init__()
        self._items: List[Any] = list(items) if items is not None else []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        # Копия, чтобы подписчики могли изменять список во время обхода
        return iter(list(self._items))

    def __getitem__(self, index: int) -> Any:
        return self._items[index]

    def __contains__(self, item: Any) -> bool:
        return item in self._items

    def index(self, item: Any) -> int:
        return self._items.index(item)

    def append(self, item: Any) -> None:
        self._items.append(item)
        self.collection_changed.emit(CollectionChange(CollectionAction.ADD, new_items=[item]))

    def insert(self, index: int, item: Any) -> None:
        self._items.insert(index, item)
        self.collection_changed.emit(CollectionChange(CollectionAction.ADD, new_items=[item]))

    def extend(self, items: Iterable[Any]) -> None:
        new_items = list(items)
        if not new_items:
            return
        self._items.extend(new_items)
        self.collection_changed.emit(CollectionChange(CollectionAction.ADD, new_items=new_items))

    def remove(self, item: Any) -> None:
        self._items.remove(item)
        self.collection_changed.emit(CollectionChange(CollectionAction.REMOVE, old_items=[item]))

    def pop(self, index: int = -1) -> Any:
        item = self._items.pop(index)
        self.collection_changed.emit(CollectionChange(CollectionAction.REMOVE, old_items=[item]))
        return item

    def clear(self) -> None:
        self.reset([])

    def reset(self, items: Iterable[Any]) -> None:
        """
        Заменить содержимое списка целиком.
        Старые элементы всегда передаются в old_items,
        чтобы подписчики могли отписаться от них.
        """
        old_items = self._items
        self._items = list(items)
        self.collection_changed.emit(CollectionChange(
            CollectionAction.RESET,
            new_items=list(self._items),
            old_items=old_items
        ))


def select_from_all(items: Iterable[Any], selector: Callable[[Any], bool]) -> Optional[bool]:
    """
    Вычислить тройное состояние для набора булевых значений.

    Args:
        items: Элементы коллекции.
        selector: Функция, возвращающая булево значение элемента.

    Returns:
        True если все значения истинны, False если все ложны
        (или коллекция пуста), None при смешанных значениях.
    """
    seen_true = False
    seen_false = False
    for item in items:
        if selector(item):
            seen_true = True
        else:
            seen_false = True
        if seen_true and seen_false:
            return None
    return seen_true
