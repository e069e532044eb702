"""
ChangeSet - current/removed bookkeeping for one entity kind.

Used by the schedule and alert reconcilers to work out the minimal set of
remote mutations on commit:

- current: entities the job should end up with, in order
- removed: entities that exist remotely and were taken out locally

Entities that never existed remotely (created == False) are discarded on
remove; they never reach the removed list and never cause a remote delete.
"""

from typing import Callable, Generic, Hashable, Iterator, Optional, TypeVar

from agentjob.errors import ArgumentError


T = TypeVar("T")


class ChangeSet(Generic[T]):
    """
    Ordered current list plus pending-removal list, keyed by stable identity.

    current and removed are disjoint by key at all times.
    """

    def __init__(self, key: Callable[[T], Hashable], items: Optional[list[T]] = None):
        """
        Args:
            key: Stable identity of an entity (schedule id, alert name)
            items: Initial contents of the current list
        """
        self._key = key
        self._current: list[T] = list(items or [])
        self._removed: list[T] = []

    @property
    def current(self) -> list[T]:
        return list(self._current)

    @property
    def removed(self) -> list[T]:
        return list(self._removed)

    def add(self, entity: T) -> None:
        """
        Add an entity to the current list.

        Re-adding an entity that is pending removal undoes the removal.
        """
        if entity is None:
            raise ArgumentError("entity is required")

        key = self._key(entity)
        self._removed = [e for e in self._removed if self._key(e) != key]

        if self._index_of(entity) is None:
            self._current.append(entity)

    def remove(self, entity: T) -> None:
        """
        Take an entity out of the current list.

        Entities that exist remotely are kept in the removed list so the
        reconciler can delete or detach them; others are discarded.
        """
        if entity is None:
            raise ArgumentError("entity is required")

        index = self._index_of(entity)
        if index is None:
            return

        taken = self._current.pop(index)
        if getattr(taken, "created", False):
            self._removed.append(taken)

    def mark_removed(self, entity: T) -> None:
        """Put a remotely existing entity straight into the removed list."""
        if not getattr(entity, "created", False):
            return
        key = self._key(entity)
        self._current = [e for e in self._current if self._key(e) != key]
        if all(self._key(e) != key for e in self._removed):
            self._removed.append(entity)

    def clear_removed(self) -> None:
        self._removed.clear()

    def find(self, key: Hashable) -> Optional[T]:
        """Find an entity in the current list by key."""
        for entity in self._current:
            if self._key(entity) == key:
                return entity
        return None

    def _index_of(self, entity: T) -> Optional[int]:
        for i, e in enumerate(self._current):
            if e is entity:
                return i
        # uncreated entities may share a placeholder key, match those by identity only
        if getattr(entity, "created", False):
            key = self._key(entity)
            for i, e in enumerate(self._current):
                if getattr(e, "created", False) and self._key(e) == key:
                    return i
        return None

    def __contains__(self, entity: object) -> bool:
        return self._index_of(entity) is not None  # type: ignore[arg-type]

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._current))

    def __len__(self) -> int:
        return len(self._current)

    def __repr__(self) -> str:
        return f"ChangeSet(current={len(self._current)}, removed={len(self._removed)})"
