"""
Properties panels - load/save capability shared by editors of a job.

A panel copies values out of a record on load, lets the caller edit its
`values` mapping, and writes them back on save. `is_switching` is True when
the panel is being left for another one (or replaced, for subsystem editors)
rather than committed.

Subsystem editors:
- TransactSqlEditor: command, database
- CmdExecEditor: command, process exit code
- PowerShellEditor: command
- CommandEditor: command only, for every other subsystem
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from agentjob.errors import ArgumentError
from agentjob.schemas import DEFAULT_DATABASE, JobStep, SubSystem
from agentjob.validator import StepValidator, ValidationReport

logger = logging.getLogger(__name__)


class PropertiesPanel(ABC):
    """Abstract base for panels that edit part of a job."""

    @abstractmethod
    def load(self, data: Any) -> None:
        """Populate the panel from a record."""
        pass

    @abstractmethod
    def save(self, data: Any, is_switching: bool) -> bool:
        """
        Write the panel back to a record.

        Returns:
            True when the data was accepted
        """
        pass


class StepsPanel(PropertiesPanel):
    """
    Steps page of a job editor.

    Leaving the page runs the step validator. With warnings, `confirm` decides
    whether the user may leave; a confirmed revision is not asked about again.
    """

    def __init__(self, validator: StepValidator, confirm: Optional[Callable[[ValidationReport], bool]] = None):
        self.validator = validator
        self.confirm = confirm

    def load(self, data: Any) -> None:
        self.validator.reset()

    def save(self, data: Any, is_switching: bool) -> bool:
        if not is_switching:
            return True
        return self.validator.check(self.confirm)


# =============================================================================
# Subsystem editors
# =============================================================================


class SubsystemEditor(PropertiesPanel):
    """Base editor for the subsystem-specific fields of a step."""

    fields: tuple[str, ...] = ("command",)

    def __init__(self):
        self.values: dict[str, Any] = {}

    def load(self, data: JobStep) -> None:
        self.values = {name: self._read(data, name) for name in self.fields}

    def save(self, data: JobStep, is_switching: bool) -> bool:
        # switching subsystems carries the command text over, nothing else
        names = ("command",) if is_switching else self.fields
        for name in names:
            if name in self.values:
                self._write(data, name, self.values[name])
        return True

    def _read(self, step: JobStep, name: str) -> Any:
        return getattr(step, name)

    def _write(self, step: JobStep, name: str, value: Any) -> None:
        setattr(step, name, value)


class CommandEditor(SubsystemEditor):
    """Command text only."""
    pass


class TransactSqlEditor(SubsystemEditor):
    fields = ("command", "database_name")

    def _write(self, step: JobStep, name: str, value: Any) -> None:
        if name == "database_name":
            value = (value or "").strip() or DEFAULT_DATABASE
        setattr(step, name, value)


class CmdExecEditor(SubsystemEditor):
    """Operating system command with the exit code that means success."""

    fields = ("command", "process_exit_code")

    def _read(self, step: JobStep, name: str) -> Any:
        if name == "process_exit_code":
            return str(step.command_execution_success_code)
        return getattr(step, name)

    def _write(self, step: JobStep, name: str, value: Any) -> None:
        if name != "process_exit_code":
            setattr(step, name, value)
            return

        text = str(value if value is not None else "").strip()
        if not text:
            step.command_execution_success_code = 0
            return
        try:
            step.command_execution_success_code = int(text)
        except ValueError as e:
            raise ArgumentError(f"Process exit code must be an integer, got: {text!r}") from e


class PowerShellEditor(SubsystemEditor):
    pass


SUBSYSTEM_EDITORS: dict[SubSystem, type[SubsystemEditor]] = {
    SubSystem.TRANSACT_SQL: TransactSqlEditor,
    SubSystem.CMD_EXEC: CmdExecEditor,
    SubSystem.POWERSHELL: PowerShellEditor,
}


def editor_for(subsystem) -> SubsystemEditor:
    """Return an editor for a subsystem (command-only when none is registered)."""
    subsystem = SubSystem.from_string(subsystem)
    editor_class = SUBSYSTEM_EDITORS.get(subsystem, CommandEditor)
    logger.debug(f"Editor for {subsystem.value}: {editor_class.__name__}")
    return editor_class()
