"""
Alert record.

Alerts are server-wide objects; a job only references them. An alert points
at no more than one job at a time through its job_id.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional

from .base import TrackedRecord


@dataclass(eq=False)
class Alert(TrackedRecord):
    """
    A server alert.

    Attributes:
        name: Alert name, unique per server
        job_id: Job the alert runs in response, None when unassociated
        created: True when the alert is already wired to the job being edited
            (the alert itself may exist on the server either way)
    """
    name: str
    job_id: Optional[str] = None
    enabled: bool = True
    severity: int = 0
    message_id: int = 0
    created: bool = False
    _baseline: Optional[dict[str, Any]] = field(default=None, init=False, repr=False)

    _untracked: ClassVar[frozenset] = frozenset({"created"})

