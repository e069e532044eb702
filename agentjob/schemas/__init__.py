"""
agentjob.schemas - Records for a job edit session.

JobContext -> JobRecord + JobStep[] + Schedule[] + Alert[]

- JobContext: which job is edited, and what the caller may change
- JobRecord: job-level properties
- JobStep: executable step with success/failure transitions
- Schedule: when the job runs (exclusive or shared, by server version)
- Alert: server alert that may point at the job

Records carry a `created` flag (exists in the job store) and a persisted-state
snapshot used for dirty tracking.
"""

from .actions import CompletionAction, FrequencyType, SubSystem
from .alert import Alert
from .context import ActionMode, JobContext
from .job import DEFAULT_CATEGORY, JobRecord
from .schedule import MAX_AGENT_DATE, MAX_AGENT_TIME, MIN_START_DATE, Schedule
from .step import DEFAULT_DATABASE, JobStep

__all__ = [
    # Enums
    "CompletionAction",
    "FrequencyType",
    "SubSystem",
    "ActionMode",
    # Records
    "Alert",
    "JobContext",
    "JobRecord",
    "JobStep",
    "Schedule",
    # Constants
    "DEFAULT_CATEGORY",
    "DEFAULT_DATABASE",
    "MAX_AGENT_DATE",
    "MAX_AGENT_TIME",
    "MIN_START_DATE",
]
