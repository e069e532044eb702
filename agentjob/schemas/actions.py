"""
Enumerations shared by the job records.

- CompletionAction: the transition a step takes after it finishes
- SubSystem: the engine that executes a step's command
- FrequencyType: how often a schedule fires
"""

from enum import Enum


class CompletionAction(str, Enum):
    """
    Transition taken after a step completes.

    GO_TO_STEP is the only action that carries a target step id.
    QUIT_* actions end the job and are terminal for reachability.
    """
    GO_TO_NEXT_STEP = "go_to_next_step"
    QUIT_WITH_SUCCESS = "quit_with_success"
    QUIT_WITH_FAILURE = "quit_with_failure"
    GO_TO_STEP = "go_to_step"

    @property
    def is_terminal(self) -> bool:
        return self in (CompletionAction.QUIT_WITH_SUCCESS, CompletionAction.QUIT_WITH_FAILURE)

    @classmethod
    def from_string(cls, value: str) -> "CompletionAction":
        """
        Parse an action from its value ("go_to_step") or its server name ("GoToStep").

        Raises:
            ValueError: If the string names no action
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip()
        for action in cls:
            if normalized == action.value:
                return action
            if normalized.lower() == action.value.replace("_", ""):
                return action
        raise ValueError(f"Unknown completion action: {value}")


class SubSystem(str, Enum):
    """Step subsystems known to the job server."""
    TRANSACT_SQL = "TransactSql"
    CMD_EXEC = "CmdExec"
    POWERSHELL = "PowerShell"
    SSIS = "Ssis"
    ANALYSIS_QUERY = "AnalysisQuery"
    ANALYSIS_COMMAND = "AnalysisCommand"
    SNAPSHOT = "Snapshot"
    LOG_READER = "LogReader"
    DISTRIBUTION = "Distribution"
    MERGE = "Merge"
    QUEUE_READER = "QueueReader"

    @property
    def uses_process_output(self) -> bool:
        """Whether step history output comes from a child process rather than T-SQL."""
        return self in (SubSystem.CMD_EXEC, SubSystem.POWERSHELL, SubSystem.SSIS)

    @classmethod
    def from_string(cls, value: str) -> "SubSystem":
        if isinstance(value, cls):
            return value
        for subsystem in cls:
            if str(value).lower() == subsystem.value.lower():
                return subsystem
        raise ValueError(f"Unknown subsystem: {value}")


class FrequencyType(str, Enum):
    """Schedule frequency."""
    ONE_TIME = "one_time"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    MONTHLY_RELATIVE = "monthly_relative"
    ON_IDLE = "on_idle"
    AUTOSTART = "autostart"

    @property
    def is_recurring(self) -> bool:
        # autostart is validated like a recurring schedule by the server
        return self not in (FrequencyType.ONE_TIME, FrequencyType.ON_IDLE)
