"""
Dirty tracking shared by the entity records.

A record remembers the state it had when it was last loaded from or written
to the job store. Reconcilers compare against that snapshot so only changed
entities produce alter calls.
"""

from dataclasses import fields
from typing import Any, ClassVar, Optional


class TrackedRecord:
    """
    Mixin for dataclass records with a persisted-state snapshot.

    Subclasses declare bookkeeping fields in _untracked; those and any
    underscore-prefixed fields are excluded from state().
    """

    _untracked: ClassVar[frozenset] = frozenset()
    _baseline: Optional[dict[str, Any]]

    def state(self) -> dict[str, Any]:
        """Return the tracked field values."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if not f.name.startswith("_") and f.name not in self._untracked
        }

    def mark_clean(self, state: Optional[dict[str, Any]] = None) -> None:
        """Snapshot the given state (default: current state) as persisted."""
        self._baseline = dict(state if state is not None else self.state())

    @property
    def baseline(self) -> Optional[dict[str, Any]]:
        return dict(self._baseline) if self._baseline is not None else None

    def changed_fields(self, state: Optional[dict[str, Any]] = None) -> list[str]:
        """List fields whose value differs from the snapshot (all fields if never persisted)."""
        current = state if state is not None else self.state()
        if self._baseline is None:
            return sorted(current)
        return sorted(k for k, v in current.items() if self._baseline.get(k) != v)

    @property
    def is_dirty(self) -> bool:
        return bool(self.changed_fields())
