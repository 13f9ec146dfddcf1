"""
Ghana PCA Engine - Storage Port

Services depend only on this interface; the in-memory and SQL adapters
are interchangeable behind it.
"""
from abc import ABC, abstractmethod
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


class Repository(ABC, Generic[T]):
    """get/put/list/delete by id."""

    @abstractmethod
    def get(self, item_id: str) -> Optional[T]:
        ...

    @abstractmethod
    def put(self, item_id: str, item: T) -> T:
        ...

    @abstractmethod
    def list(self) -> List[T]:
        """All items in insertion order."""
        ...

    @abstractmethod
    def delete(self, item_id: str) -> bool:
        """Return True if an item was removed."""
        ...
