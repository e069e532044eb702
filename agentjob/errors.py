"""
Error classes for agentjob.

These error types separate the failures a job edit session can hit:
- ArgumentError: A required collaborator or argument is missing or invalid
- NameConflictError: Duplicate step name (or job name on create)
- ScheduleValidationError: A schedule's own fields are inconsistent
- RemoteOperationError: The job store rejected a create/alter/drop call
- JobNotFoundError: The job being edited does not exist in the store

Error handling contract:
- Step-graph warnings (unreachable steps, last-step change) are reports, not errors
- Permission failures are boolean results, not exceptions
- Name conflicts and argument errors are raised before any remote call
- Remote errors are wrapped with the failing phase and re-raised; no retry, no rollback
"""


class AgentJobError(Exception):
    """Base exception for agentjob."""
    pass


class ArgumentError(AgentJobError, ValueError):
    """
    A required argument is missing or invalid.

    Examples:
    - None passed for the job store or context
    - go_to_step action without a target step
    - A step targeting itself
    """
    pass


class NameConflictError(AgentJobError):
    """
    A name is already taken.

    Raised for duplicate step names within a job, and for an existing job
    name when creating a new job.
    """

    def __init__(self, name: str, scope: str = "step"):
        self.name = name
        self.scope = scope
        super().__init__(f"A {scope} named '{name}' already exists")


class ScheduleValidationError(AgentJobError):
    """A schedule's fields are inconsistent. Carries every problem found."""

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class RemoteOperationError(AgentJobError):
    """
    A job store call failed.

    Attributes:
        phase: Which phase failed (e.g. "create", "alter", "drop")
        entity: Human readable description of the entity involved

    The original exception is preserved as __cause__.
    """

    def __init__(self, phase: str, entity: str, message: str):
        self.phase = phase
        self.entity = entity
        super().__init__(f"{phase} {entity} failed: {message}")


class JobNotFoundError(AgentJobError, LookupError):
    """The job referenced by the edit context does not exist."""
    pass
