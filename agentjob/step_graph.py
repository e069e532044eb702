"""
StepGraph - the ordered steps of a job and the transitions between them.

Nodes are step ids (1..n, contiguous, in list order). Each step contributes up
to two edges: its success action and its failure action.
- go_to_next_step -> id + 1 (no edge from the last step)
- go_to_step      -> the target id (no edge if the target does not exist)
- quit_with_*     -> terminal

Every structural mutation renumbers the steps, remaps go_to_step targets so
they keep pointing at the same step, and bumps `revision`. The validator uses
the revision to tell whether a confirmed report is still current.
"""

import logging
from collections import deque
from dataclasses import replace
from typing import Iterator, Optional

from agentjob.errors import ArgumentError, NameConflictError
from agentjob.schemas import ActionMode, CompletionAction, JobStep

logger = logging.getLogger(__name__)


class StepGraph:
    """
    Ordered collection of JobStep records with transition edges.

    Steps removed from the graph that exist in the job store are kept in
    `deleted_steps` until the step reconciler drops them.
    """

    def __init__(
        self,
        steps: Optional[list[JobStep]] = None,
        mode: ActionMode = ActionMode.CREATE,
        start_step_id: Optional[int] = None,
    ):
        """
        Args:
            steps: Initial steps; loaded steps are ordered by their id
            mode: CREATE for a new job, EDIT for an existing one
            start_step_id: Id of the configured start step (default: first step)
        """
        self.mode = ActionMode(mode)
        self.revision = 0
        self._steps: list[JobStep] = sorted(steps or [], key=lambda s: (s.id < 0, s.id))
        self._deleted: list[JobStep] = []

        self.check_names()
        if [s.id for s in self._steps] != list(range(1, len(self._steps) + 1)):
            self._renumber()

        self._start_step: Optional[JobStep] = self.get(start_step_id) if start_step_id else None
        self._original_last: Optional[JobStep] = self._steps[-1] if self._steps else None

    # -------------------------------------------------------------------------
    # Collection access
    # -------------------------------------------------------------------------

    @property
    def steps(self) -> list[JobStep]:
        return list(self._steps)

    @property
    def deleted_steps(self) -> list[JobStep]:
        return list(self._deleted)

    @property
    def step_count(self) -> int:
        return len(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[JobStep]:
        return iter(list(self._steps))

    def __contains__(self, step: object) -> bool:
        return any(s is step for s in self._steps)

    def get(self, step_id: Optional[int]) -> Optional[JobStep]:
        """Get a step by id."""
        if step_id is None or step_id < 1 or step_id > len(self._steps):
            return None
        return self._steps[step_id - 1]

    def find_by_name(self, name: str) -> Optional[JobStep]:
        name = (name or "").strip()
        for step in self._steps:
            if step.name == name:
                return step
        return None

    @property
    def start_step(self) -> Optional[JobStep]:
        """The step execution starts at; falls back to the first step."""
        if self._start_step is not None and self._start_step not in self:
            self._start_step = None
        if self._start_step is None and self._steps:
            return self._steps[0]
        return self._start_step

    @property
    def has_order_changed(self) -> bool:
        """True when any stored step has a different id than when it was loaded."""
        return any(step.step_id_changed for step in self._steps)

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def add_step(self, step: JobStep) -> JobStep:
        """Append a step to the end of the job."""
        return self.insert_step(len(self._steps), step)

    def insert_step(self, index: int, step: JobStep) -> JobStep:
        """
        Insert a step at a list position (0-based).

        Raises:
            ArgumentError: If step is None or already part of the graph
            NameConflictError: If another step has the same name
        """
        if step is None:
            raise ArgumentError("step is required")
        if step in self:
            raise ArgumentError(f"Step '{step.name}' is already part of the job")
        self._check_name_available(step.name, exclude=step)

        # re-adding a step that was pending drop undoes the drop
        self._deleted = [s for s in self._deleted if s is not step]

        step.id = -1
        index = max(0, min(index, len(self._steps)))
        self._steps.insert(index, step)
        self._structure_changed()
        logger.debug(f"Inserted step '{step.name}' as step {step.id}")
        return step

    def delete_step(self, step: JobStep) -> None:
        """
        Remove a step from the job.

        Transitions that targeted it fall back to go_to_next_step (success) and
        quit_with_failure (failure). Stored steps are queued for dropping.
        """
        if step is None:
            raise ArgumentError("step is required")
        if step not in self:
            return

        removed_id = step.id
        self._steps = [s for s in self._steps if s is not step]
        for other in self._steps:
            if other.success_action == CompletionAction.GO_TO_STEP and other.success_step_id == removed_id:
                other.set_success_action(CompletionAction.GO_TO_NEXT_STEP)
            if other.failure_action == CompletionAction.GO_TO_STEP and other.failure_step_id == removed_id:
                other.set_failure_action(CompletionAction.QUIT_WITH_FAILURE)

        if self._start_step is step:
            self._start_step = None
        if step.created:
            self._deleted.append(step)

        self._structure_changed()
        logger.debug(f"Deleted step '{step.name}' (was step {removed_id})")

    def move_step(self, step: JobStep, index: int) -> None:
        """Move a step to a new list position (0-based)."""
        if step not in self:
            raise ArgumentError(f"Step '{getattr(step, 'name', step)}' is not part of the job")
        self._steps = [s for s in self._steps if s is not step]
        index = max(0, min(index, len(self._steps)))
        self._steps.insert(index, step)
        self._structure_changed()

    def rename_step(self, step: JobStep, name: str) -> None:
        """
        Rename a step.

        Raises:
            NameConflictError: If another step already has the name
        """
        name = (name or "").strip()
        self._check_name_available(name, exclude=step)
        step.name = name

    def set_success_action(self, step: JobStep, action: CompletionAction, target: Optional[JobStep] = None) -> None:
        self._require_member(step, target)
        step.set_success_action(action, target)
        self._structure_changed()

    def set_failure_action(self, step: JobStep, action: CompletionAction, target: Optional[JobStep] = None) -> None:
        self._require_member(step, target)
        step.set_failure_action(action, target)
        self._structure_changed()

    def set_start_step(self, step: Optional[JobStep]) -> None:
        if step is not None and step not in self:
            raise ArgumentError(f"Step '{step.name}' is not part of the job")
        self._start_step = step
        self._structure_changed()

    def mark_changed(self) -> None:
        """Record a transition edit made directly on a step record."""
        self.revision += 1

    def clear_deleted(self) -> None:
        self._deleted.clear()

    def mark_persisted(self) -> None:
        """Called after the steps were written: the current last step becomes the baseline."""
        self.mode = ActionMode.EDIT
        self._original_last = self._steps[-1] if self._steps else None

    def _require_member(self, step: JobStep, target: Optional[JobStep]) -> None:
        if step not in self:
            raise ArgumentError(f"Step '{getattr(step, 'name', step)}' is not part of the job")
        if isinstance(target, JobStep) and target not in self:
            raise ArgumentError(f"Target step '{target.name}' is not part of the job")

    def _structure_changed(self) -> None:
        self._renumber()
        self.revision += 1

    def _renumber(self) -> None:
        """
        Assign ids 1..n in list order and remap go_to_step targets to follow their step.

        A target that names no current step is cleared, so it stays dangling
        instead of picking up whichever step is later given that id.
        """
        mapping = {step.id: index for index, step in enumerate(self._steps, start=1) if step.id > 0}

        for step in self._steps:
            if step.success_action == CompletionAction.GO_TO_STEP:
                step.success_step_id = mapping.get(step.success_step_id)
            if step.failure_action == CompletionAction.GO_TO_STEP:
                step.failure_step_id = mapping.get(step.failure_step_id)

        for index, step in enumerate(self._steps, start=1):
            step.id = index

    # -------------------------------------------------------------------------
    # Names
    # -------------------------------------------------------------------------

    def check_names(self) -> None:
        """
        Raises:
            NameConflictError: For the first duplicated step name
        """
        seen: set[str] = set()
        for step in self._steps:
            if step.name in seen:
                raise NameConflictError(step.name)
            seen.add(step.name)

    def _check_name_available(self, name: str, exclude: Optional[JobStep] = None) -> None:
        name = (name or "").strip()
        for other in self._steps:
            if other is not exclude and other.name == name:
                raise NameConflictError(name)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def effective_success_action(self, step: JobStep) -> CompletionAction:
        """Success action with a dangling go_to_step degraded to go_to_next_step."""
        if step.success_action == CompletionAction.GO_TO_STEP and self.get(step.success_step_id) is None:
            return CompletionAction.GO_TO_NEXT_STEP
        return step.success_action

    def effective_failure_action(self, step: JobStep) -> CompletionAction:
        """Failure action with a dangling go_to_step degraded to quit_with_failure."""
        if step.failure_action == CompletionAction.GO_TO_STEP and self.get(step.failure_step_id) is None:
            return CompletionAction.QUIT_WITH_FAILURE
        return step.failure_action

    def persisted_form(self, step: JobStep) -> JobStep:
        """
        The step as it is written to the job store.

        Dangling targets are degraded, and the last step never keeps
        go_to_next_step: it is stored as quit_with_success. The local record
        keeps go_to_next_step so steps appended later still follow it.
        """
        success = self.effective_success_action(step)
        failure = self.effective_failure_action(step)
        if step.id == len(self._steps) and success == CompletionAction.GO_TO_NEXT_STEP:
            success = CompletionAction.QUIT_WITH_SUCCESS

        return replace(
            step,
            success_action=success,
            success_step_id=step.success_step_id if success == CompletionAction.GO_TO_STEP else None,
            failure_action=failure,
            failure_step_id=step.failure_step_id if failure == CompletionAction.GO_TO_STEP else None,
        )

    def _edge_target(self, step: JobStep, action: CompletionAction, target_id: Optional[int]) -> Optional[int]:
        if action == CompletionAction.GO_TO_NEXT_STEP:
            return step.id + 1 if step.id < len(self._steps) else None
        if action == CompletionAction.GO_TO_STEP:
            return target_id if self.get(target_id) is not None else None
        return None

    # -------------------------------------------------------------------------
    # Analysis
    # -------------------------------------------------------------------------

    def find_unreachable_steps(self) -> list[JobStep]:
        """
        Steps that cannot be reached from the first step.

        Forward sweep over success and failure edges, seeded with the first
        step and the configured start step. O(steps).

        Returns:
            Unreachable steps in job order, empty when all are reachable
        """
        if not self._steps:
            return []

        seeds = [self._steps[0].id]
        start = self.start_step
        if start is not None and start.id not in seeds:
            seeds.append(start.id)

        visited: set[int] = set()
        worklist = deque(seeds)
        while worklist:
            step_id = worklist.popleft()
            if step_id in visited:
                continue
            visited.add(step_id)

            step = self._steps[step_id - 1]
            for action, target_id in (
                (step.success_action, step.success_step_id),
                (step.failure_action, step.failure_step_id),
            ):
                next_id = self._edge_target(step, action, target_id)
                if next_id is not None and next_id not in visited:
                    worklist.append(next_id)

        return [step for step in self._steps if step.id not in visited]

    def last_step_completion_action_will_change(self) -> bool:
        """
        Whether saving will change how an existing job ends.

        Only applies when editing. True when the last step relies on
        go_to_next_step (it is stored as quit_with_success), or when the step
        that was last when the job was loaded is no longer last but still quits
        with success, so the steps after it no longer run by default.
        """
        if self.mode != ActionMode.EDIT or not self._steps:
            return False

        last = self._steps[-1]
        if self.effective_success_action(last) == CompletionAction.GO_TO_NEXT_STEP:
            return True

        previous = self._original_last
        if previous is not None and previous is not last and previous in self:
            return self.effective_success_action(previous) == CompletionAction.QUIT_WITH_SUCCESS
        return False
