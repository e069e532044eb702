"""
JobStep record - one executable unit within a job.

Transitions are stored as (action, target step id). Only GO_TO_STEP carries a
target; the StepGraph keeps target ids in sync when steps are renumbered.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Union

from agentjob.errors import ArgumentError
from .actions import CompletionAction, SubSystem
from .base import TrackedRecord


DEFAULT_DATABASE = "master"


@dataclass(eq=False)
class JobStep(TrackedRecord):
    """
    A job step.

    Attributes:
        name: Step name, unique within the job (whitespace trimmed)
        id: 1-based position in the job, -1 until the step is placed
        subsystem: Engine that runs the command
        success_action / success_step_id: Transition on success
        failure_action / failure_step_id: Transition on failure
        created: Whether the step exists in the job store
        original_id / original_name: Identity in the job store when loaded
    """
    name: str = ""
    id: int = -1
    subsystem: SubSystem = SubSystem.TRANSACT_SQL
    command: str = ""
    database_name: str = DEFAULT_DATABASE
    database_user_name: str = ""
    server: str = ""
    command_execution_success_code: int = 0
    success_action: CompletionAction = CompletionAction.GO_TO_NEXT_STEP
    success_step_id: Optional[int] = None
    failure_action: CompletionAction = CompletionAction.QUIT_WITH_FAILURE
    failure_step_id: Optional[int] = None
    retry_attempts: int = 0
    retry_interval: int = 0
    output_file_name: str = ""
    append_to_log_file: bool = False
    append_to_step_history: bool = False
    write_log_to_table: bool = False
    append_log_to_table: bool = False
    proxy_name: str = ""
    created: bool = False
    original_id: int = -1
    original_name: Optional[str] = None
    _baseline: Optional[dict[str, Any]] = field(default=None, init=False, repr=False)

    _untracked: ClassVar[frozenset] = frozenset({"created", "original_id", "original_name"})

    def __post_init__(self):
        self.name = (self.name or "").strip()
        self.subsystem = SubSystem.from_string(self.subsystem)
        self.success_action = CompletionAction.from_string(self.success_action)
        self.failure_action = CompletionAction.from_string(self.failure_action)

    @classmethod
    def from_store(cls, **values: Any) -> "JobStep":
        """Build a step that already exists in the job store."""
        step = cls(**values)
        step.created = True
        step.original_id = step.id
        step.original_name = step.name
        step.mark_clean()
        return step

    @property
    def step_id_changed(self) -> bool:
        """True when a stored step has been renumbered in this session."""
        return self.created and self.id != self.original_id

    @property
    def renamed(self) -> bool:
        return self.created and self.original_name is not None and self.name != self.original_name

    def set_success_action(self, action: CompletionAction, target: Union["JobStep", int, None] = None) -> None:
        """Set the success transition. A target is required for GO_TO_STEP only."""
        self.success_action, self.success_step_id = self._check_transition(action, target)

    def set_failure_action(self, action: CompletionAction, target: Union["JobStep", int, None] = None) -> None:
        """Set the failure transition. A target is required for GO_TO_STEP only."""
        self.failure_action, self.failure_step_id = self._check_transition(action, target)

    def _check_transition(self, action, target) -> tuple[CompletionAction, Optional[int]]:
        action = CompletionAction.from_string(action)
        if action == CompletionAction.GO_TO_STEP and target is None:
            raise ArgumentError("go_to_step requires a target step")
        if action != CompletionAction.GO_TO_STEP and target is not None:
            raise ArgumentError(f"{action.value} does not take a target step")
        if target is None:
            return action, None
        if target is self:
            raise ArgumentError(f"Step '{self.name}' cannot go to itself")
        target_id = target.id if isinstance(target, JobStep) else int(target)
        if self.id > 0 and target_id == self.id:
            raise ArgumentError(f"Step '{self.name}' cannot go to itself")
        return action, target_id

    def __str__(self) -> str:
        return f"{self.id}:{self.name}"
