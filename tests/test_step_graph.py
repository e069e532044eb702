"""Tests for agentjob.step_graph module.

Tests StepGraph numbering, transition remapping, reachability and the
last-step completion check.
"""

import pytest

from agentjob.errors import ArgumentError, NameConflictError
from agentjob.schemas import ActionMode, CompletionAction, JobStep
from agentjob.step_graph import StepGraph


def _stored(*names):
    """Steps as loaded from the job store; the last one quits with success."""
    steps = [JobStep.from_store(name=name, id=i) for i, name in enumerate(names, start=1)]
    steps[-1].set_success_action(CompletionAction.QUIT_WITH_SUCCESS)
    return steps


class TestNumbering:
    """Tests that ids stay 1..n in list order."""

    def test_loaded_steps_ordered_by_id(self):
        steps = [JobStep(name="b", id=2), JobStep(name="a", id=1), JobStep(name="c", id=3)]
        graph = StepGraph(steps)
        assert [s.name for s in graph] == ["a", "b", "c"]

    def test_new_steps_are_numbered(self):
        graph = StepGraph([JobStep(name="a"), JobStep(name="b")])
        assert [s.id for s in graph] == [1, 2]

    def test_add_appends(self, make_steps):
        graph = StepGraph(make_steps("a", "b"))
        step = graph.add_step(JobStep(name="c"))
        assert step.id == 3
        assert graph.step_count == 3

    def test_insert_shifts_and_remaps_targets(self, make_steps):
        graph = StepGraph(make_steps("a", "b", "c"))
        a, b, c = graph.steps
        graph.set_success_action(a, CompletionAction.GO_TO_STEP, c)

        graph.insert_step(0, JobStep(name="first"))

        assert [s.name for s in graph] == ["first", "a", "b", "c"]
        assert c.id == 4
        assert a.success_step_id == 4

    def test_move_remaps_targets(self, make_steps):
        graph = StepGraph(make_steps("a", "b", "c"))
        a, b, c = graph.steps
        graph.set_failure_action(a, CompletionAction.GO_TO_STEP, c)

        graph.move_step(c, 1)

        assert [s.name for s in graph] == ["a", "c", "b"]
        assert a.failure_step_id == 2

    def test_get_out_of_range(self, make_steps):
        graph = StepGraph(make_steps("a"))
        assert graph.get(0) is None
        assert graph.get(2) is None
        assert graph.get(None) is None


class TestNames:
    """Tests step name uniqueness."""

    def test_duplicate_name_on_add(self, make_steps):
        graph = StepGraph(make_steps("a", "b"))
        with pytest.raises(NameConflictError) as exc:
            graph.add_step(JobStep(name="a"))
        assert exc.value.name == "a"
        assert graph.step_count == 2

    def test_names_are_trimmed(self, make_steps):
        graph = StepGraph(make_steps("a"))
        with pytest.raises(NameConflictError):
            graph.add_step(JobStep(name="  a "))

    def test_duplicate_names_on_load(self):
        with pytest.raises(NameConflictError):
            StepGraph([JobStep(name="a", id=1), JobStep(name="a", id=2)])

    def test_rename_conflict(self, make_steps):
        graph = StepGraph(make_steps("a", "b"))
        with pytest.raises(NameConflictError):
            graph.rename_step(graph.get(2), "a")

    def test_rename_to_own_name(self, make_steps):
        graph = StepGraph(make_steps("a", "b"))
        graph.rename_step(graph.get(1), " a ")
        assert graph.get(1).name == "a"

    def test_find_by_name(self, make_steps):
        graph = StepGraph(make_steps("a", "b"))
        assert graph.find_by_name("b") is graph.get(2)
        assert graph.find_by_name("missing") is None


class TestTransitions:
    """Tests transition setters and delete rewrites."""

    def test_go_to_step_requires_target(self, make_steps):
        graph = StepGraph(make_steps("a", "b"))
        with pytest.raises(ArgumentError):
            graph.set_success_action(graph.get(1), CompletionAction.GO_TO_STEP)

    def test_quit_rejects_target(self, make_steps):
        graph = StepGraph(make_steps("a", "b"))
        with pytest.raises(ArgumentError):
            graph.set_failure_action(graph.get(1), CompletionAction.QUIT_WITH_FAILURE, graph.get(2))

    def test_self_target_rejected(self, make_steps):
        graph = StepGraph(make_steps("a", "b"))
        a = graph.get(1)
        with pytest.raises(ArgumentError):
            graph.set_success_action(a, CompletionAction.GO_TO_STEP, a)

    def test_target_must_be_member(self, make_steps):
        graph = StepGraph(make_steps("a", "b"))
        with pytest.raises(ArgumentError):
            graph.set_success_action(graph.get(1), CompletionAction.GO_TO_STEP, JobStep(name="stranger"))

    def test_delete_rewrites_incoming_transitions(self, make_steps):
        graph = StepGraph(make_steps("a", "b", "c"))
        a, b, c = graph.steps
        graph.set_success_action(a, CompletionAction.GO_TO_STEP, b)
        graph.set_failure_action(c, CompletionAction.GO_TO_STEP, b)

        graph.delete_step(b)

        assert a.success_action == CompletionAction.GO_TO_NEXT_STEP
        assert a.success_step_id is None
        assert c.failure_action == CompletionAction.QUIT_WITH_FAILURE
        assert c.id == 2

    def test_delete_new_step_is_not_queued(self, make_steps):
        graph = StepGraph(make_steps("a", "b"))
        graph.delete_step(graph.get(2))
        assert graph.deleted_steps == []

    def test_delete_stored_step_is_queued(self):
        graph = StepGraph(_stored("a", "b"), mode=ActionMode.EDIT)
        b = graph.get(2)
        graph.delete_step(b)
        assert graph.deleted_steps == [b]

    def test_readd_undoes_delete(self):
        graph = StepGraph(_stored("a", "b"), mode=ActionMode.EDIT)
        b = graph.get(2)
        graph.delete_step(b)
        graph.add_step(b)
        assert graph.deleted_steps == []
        assert b in graph

    def test_dangling_target_degrades(self):
        a = JobStep(name="a", id=1, success_action="go_to_step", success_step_id=9,
                    failure_action="go_to_step", failure_step_id=9)
        graph = StepGraph([a, JobStep(name="b", id=2)])

        assert graph.effective_success_action(a) == CompletionAction.GO_TO_NEXT_STEP
        assert graph.effective_failure_action(a) == CompletionAction.QUIT_WITH_FAILURE

        stored = graph.persisted_form(a)
        assert stored.success_action == CompletionAction.GO_TO_NEXT_STEP
        assert stored.success_step_id is None
        assert stored.failure_action == CompletionAction.QUIT_WITH_FAILURE

    def test_dangling_target_not_captured_by_new_step(self):
        a = JobStep(name="a", id=1, success_action="go_to_step", success_step_id=3)
        graph = StepGraph([a, JobStep(name="b", id=2)])

        c = graph.add_step(JobStep(name="c"))

        assert c.id == 3
        assert a.success_step_id is None
        assert graph.effective_success_action(a) == CompletionAction.GO_TO_NEXT_STEP
        assert graph.find_unreachable_steps() == [graph.get(2), c]

    def test_last_step_persisted_as_quit_with_success(self, make_steps):
        graph = StepGraph(make_steps("a", "b"))
        b = graph.get(2)

        assert graph.persisted_form(b).success_action == CompletionAction.QUIT_WITH_SUCCESS
        assert b.success_action == CompletionAction.GO_TO_NEXT_STEP
        assert graph.persisted_form(graph.get(1)).success_action == CompletionAction.GO_TO_NEXT_STEP


class TestRevision:
    """Tests that structural mutations bump the revision."""

    def test_structural_changes_bump(self, make_steps):
        graph = StepGraph(make_steps("a", "b", "c"))
        revisions = [graph.revision]

        graph.add_step(JobStep(name="d"))
        revisions.append(graph.revision)
        graph.move_step(graph.get(4), 0)
        revisions.append(graph.revision)
        graph.set_success_action(graph.get(1), CompletionAction.QUIT_WITH_SUCCESS)
        revisions.append(graph.revision)
        graph.set_start_step(graph.get(2))
        revisions.append(graph.revision)
        graph.delete_step(graph.get(3))
        revisions.append(graph.revision)

        assert revisions == sorted(set(revisions))

    def test_rename_does_not_bump(self, make_steps):
        graph = StepGraph(make_steps("a", "b"))
        before = graph.revision
        graph.rename_step(graph.get(1), "renamed")
        assert graph.revision == before


class TestReachability:
    """Tests find_unreachable_steps."""

    def test_linear_all_reachable(self, make_steps):
        graph = StepGraph(make_steps("a", "b", "c"))
        graph.set_success_action(graph.get(3), CompletionAction.QUIT_WITH_SUCCESS)
        assert graph.find_unreachable_steps() == []

    def test_empty_graph(self):
        assert StepGraph().find_unreachable_steps() == []

    def test_jump_skips_step(self, make_steps):
        graph = StepGraph(make_steps("a", "b", "c"))
        a, b, c = graph.steps
        graph.set_success_action(a, CompletionAction.GO_TO_STEP, c)
        assert graph.find_unreachable_steps() == [b]

    def test_failure_edge_reaches(self, make_steps):
        graph = StepGraph(make_steps("a", "b", "c"))
        a, b, c = graph.steps
        graph.set_success_action(a, CompletionAction.GO_TO_STEP, c)
        graph.set_failure_action(a, CompletionAction.GO_TO_NEXT_STEP)
        assert graph.find_unreachable_steps() == []

    def test_terminal_first_step(self, make_steps):
        graph = StepGraph(make_steps("a", "b", "c"))
        graph.set_success_action(graph.get(1), CompletionAction.QUIT_WITH_SUCCESS)
        assert [s.name for s in graph.find_unreachable_steps()] == ["b", "c"]

    def test_first_step_always_reachable(self, make_steps):
        graph = StepGraph(make_steps("a", "b", "c"))
        for step in graph.steps:
            graph.set_success_action(step, CompletionAction.QUIT_WITH_FAILURE)
        assert graph.get(1) not in graph.find_unreachable_steps()

    def test_cycle_terminates(self, make_steps):
        graph = StepGraph(make_steps("a", "b", "c"))
        a, b, c = graph.steps
        graph.set_success_action(b, CompletionAction.GO_TO_STEP, a)
        assert graph.find_unreachable_steps() == [c]

    def test_dangling_target_contributes_no_edge(self):
        a = JobStep(name="a", id=1, success_action="go_to_step", success_step_id=7)
        graph = StepGraph([a, JobStep(name="b", id=2)])
        assert [s.name for s in graph.find_unreachable_steps()] == ["b"]

    def test_start_step_seeds_sweep(self, make_steps):
        graph = StepGraph(make_steps("a", "b", "c"))
        a, b, c = graph.steps
        graph.set_success_action(a, CompletionAction.QUIT_WITH_SUCCESS)
        graph.set_start_step(c)
        assert graph.find_unreachable_steps() == [b]

    def test_start_step_falls_back_to_first(self, make_steps):
        graph = StepGraph(make_steps("a", "b"))
        b = graph.get(2)
        graph.set_start_step(b)
        graph.delete_step(b)
        assert graph.start_step is graph.get(1)


class TestLastStepCompletionAction:
    """Tests last_step_completion_action_will_change."""

    def test_never_when_creating(self, make_steps):
        graph = StepGraph(make_steps("a", "b"))
        assert graph.mode == ActionMode.CREATE
        assert graph.last_step_completion_action_will_change() is False

    def test_unchanged_job(self):
        graph = StepGraph(_stored("a", "b", "c"), mode=ActionMode.EDIT)
        assert graph.last_step_completion_action_will_change() is False

    def test_appended_step(self):
        graph = StepGraph(_stored("a", "b", "c"), mode=ActionMode.EDIT)
        graph.add_step(JobStep(name="d"))
        assert graph.last_step_completion_action_will_change() is True

    def test_previous_last_still_quits(self):
        graph = StepGraph(_stored("a", "b", "c"), mode=ActionMode.EDIT)
        d = graph.add_step(JobStep(name="d"))
        graph.set_success_action(d, CompletionAction.QUIT_WITH_SUCCESS)
        assert graph.last_step_completion_action_will_change() is True

        graph.set_success_action(graph.get(3), CompletionAction.GO_TO_NEXT_STEP)
        assert graph.last_step_completion_action_will_change() is False

    def test_stored_last_step_going_to_next(self):
        steps = [JobStep.from_store(name="a", id=1), JobStep.from_store(name="b", id=2)]
        graph = StepGraph(steps, mode=ActionMode.EDIT)
        assert graph.last_step_completion_action_will_change() is True

    def test_mark_persisted_resets_baseline(self):
        graph = StepGraph(_stored("a", "b"), mode=ActionMode.EDIT)
        d = graph.add_step(JobStep(name="d"))
        graph.set_success_action(d, CompletionAction.QUIT_WITH_SUCCESS)
        graph.mark_persisted()
        assert graph.last_step_completion_action_will_change() is False


class TestOrderChanged:
    """Tests has_order_changed."""

    def test_append_keeps_order(self):
        graph = StepGraph(_stored("a", "b"), mode=ActionMode.EDIT)
        graph.add_step(JobStep(name="c"))
        assert graph.has_order_changed is False

    def test_move_changes_order(self):
        graph = StepGraph(_stored("a", "b"), mode=ActionMode.EDIT)
        graph.move_step(graph.get(2), 0)
        assert graph.has_order_changed is True
