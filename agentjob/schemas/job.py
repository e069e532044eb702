"""
JobRecord - the job-level properties persisted alongside steps and schedules.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional

from .base import TrackedRecord


DEFAULT_CATEGORY = "[Uncategorized (Local)]"


@dataclass(eq=False)
class JobRecord(TrackedRecord):
    """
    Job properties.

    Attributes:
        job_id: Server-assigned identifier, None until the job is created
        start_step_id: Id of the step execution starts at, 0 when the job has no steps
    """
    name: str
    job_id: Optional[str] = None
    description: str = ""
    owner: str = ""
    category: str = DEFAULT_CATEGORY
    enabled: bool = True
    start_step_id: int = 0
    _baseline: Optional[dict[str, Any]] = field(default=None, init=False, repr=False)

    # the start step is pushed by the step reconciler, not by alter_job
    _untracked: ClassVar[frozenset] = frozenset({"job_id", "start_step_id"})
