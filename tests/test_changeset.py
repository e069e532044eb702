"""Tests for agentjob.changeset module."""

import pytest

from agentjob.changeset import ChangeSet
from agentjob.errors import ArgumentError
from agentjob.schemas import Schedule


def _stored(schedule_id, name="s"):
    return Schedule.from_store(name=name, id=schedule_id)


@pytest.fixture
def changes():
    return ChangeSet(key=lambda s: s.id)


class TestAddRemove:
    """Tests current/removed bookkeeping."""

    def test_add_then_remove_new_entity_is_noop(self, changes):
        schedule = Schedule(name="new")
        changes.add(schedule)
        changes.remove(schedule)
        assert changes.current == []
        assert changes.removed == []

    def test_remove_created_entity_queues_it(self, changes):
        schedule = _stored(7)
        changes.add(schedule)
        changes.remove(schedule)
        assert changes.current == []
        assert changes.removed == [schedule]

    def test_readd_undoes_removal(self, changes):
        schedule = _stored(7)
        changes.add(schedule)
        changes.remove(schedule)
        changes.add(schedule)
        assert changes.current == [schedule]
        assert changes.removed == []

    def test_readd_matches_by_key(self, changes):
        changes.add(_stored(7))
        changes.remove(changes.find(7))
        replacement = _stored(7, name="reloaded")
        changes.add(replacement)
        assert changes.removed == []
        assert changes.current == [replacement]

    def test_add_twice_keeps_one(self, changes):
        schedule = Schedule(name="new")
        changes.add(schedule)
        changes.add(schedule)
        assert len(changes) == 1

    def test_new_entities_share_placeholder_key(self, changes):
        first, second = Schedule(name="one"), Schedule(name="two")
        changes.add(first)
        changes.add(second)
        changes.remove(second)
        assert changes.current == [first]

    def test_remove_absent_is_noop(self, changes):
        changes.remove(_stored(3))
        assert changes.removed == []

    def test_none_rejected(self, changes):
        with pytest.raises(ArgumentError):
            changes.add(None)
        with pytest.raises(ArgumentError):
            changes.remove(None)

    def test_lists_stay_disjoint(self, changes):
        schedules = [_stored(i) for i in range(1, 5)]
        for s in schedules:
            changes.add(s)
        changes.remove(schedules[0])
        changes.remove(schedules[2])
        changes.add(schedules[0])
        current = {s.id for s in changes.current}
        removed = {s.id for s in changes.removed}
        assert current.isdisjoint(removed)
        assert removed == {3}


class TestMarkRemoved:
    """Tests loading entities straight into the removed list."""

    def test_created_entity(self, changes):
        schedule = _stored(4)
        changes.add(schedule)
        changes.mark_removed(schedule)
        assert changes.current == []
        assert changes.removed == [schedule]

    def test_new_entity_ignored(self, changes):
        changes.mark_removed(Schedule(name="new"))
        assert changes.removed == []

    def test_clear_removed(self, changes):
        changes.mark_removed(_stored(4))
        changes.clear_removed()
        assert changes.removed == []
