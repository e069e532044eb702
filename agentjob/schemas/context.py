"""
JobContext - explicit identity and permissions for one edit session.

Everything the session needs to know about which job it edits and what the
caller may do is passed in here; nothing is looked up from ambient state.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ActionMode(str, Enum):
    """Whether the session creates a new job or edits an existing one."""
    CREATE = "create"
    EDIT = "edit"


@dataclass(frozen=True)
class JobContext:
    """
    Edit session context.

    Attributes:
        job_id: Job being edited; None starts a new job (create mode)
        urn: Optional server path of the job, informational
        is_read_only: Caller may not change the job's structure
        allow_enable_disable: With is_read_only, the caller may still toggle
            job and schedule enabled flags
        can_manage_alerts: Caller may read and re-associate alerts
        targets_local_server: Job runs on the server it is defined on; when
            False, step/schedule changes are announced to target servers
        script: T-SQL to seed a new job's single first step with
        excluded_schedule_ids: Schedules never loaded into the session
        removed_schedule_ids: Schedules loaded straight into the pending-removal list
    """
    job_id: Optional[str] = None
    urn: str = ""
    is_read_only: bool = False
    allow_enable_disable: bool = True
    can_manage_alerts: bool = True
    targets_local_server: bool = True
    script: str = ""
    excluded_schedule_ids: frozenset[int] = field(default_factory=frozenset)
    removed_schedule_ids: frozenset[int] = field(default_factory=frozenset)

    @property
    def mode(self) -> ActionMode:
        return ActionMode.EDIT if self.job_id else ActionMode.CREATE
