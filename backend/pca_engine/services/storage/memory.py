"""
Ghana PCA Engine - In-Memory Repository
"""
from typing import Dict, List, Optional, TypeVar

from .base import Repository

T = TypeVar("T")


class InMemoryRepository(Repository[T]):
    """Dict-backed repository; one instance per service, nothing shared."""

    def __init__(self):
        self._items: Dict[str, T] = {}

    def get(self, item_id: str) -> Optional[T]:
        return self._items.get(item_id)

    def put(self, item_id: str, item: T) -> T:
        self._items[item_id] = item
        return item

    def list(self) -> List[T]:
        return list(self._items.values())

    def delete(self, item_id: str) -> bool:
        return self._items.pop(item_id, None) is not None
