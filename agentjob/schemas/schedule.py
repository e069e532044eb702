"""
Schedule record.

A schedule is exclusively owned by one job on servers before the shared
schedule era, and shared by reference (reference counted by the server)
from then on. Whether a schedule is shared is derived from the server
version at apply time; it is not stored here.
"""

from dataclasses import dataclass, field
from datetime import date, time
from typing import Any, ClassVar, Iterable, Optional

from agentjob.config import DEFAULT_SHARED_SCHEDULE_MIN_VERSION
from agentjob.errors import ScheduleValidationError
from .actions import FrequencyType
from .base import TrackedRecord


MIN_START_DATE = date(1990, 1, 1)
MAX_AGENT_DATE = date(9999, 12, 31)
MAX_AGENT_TIME = time(23, 59, 59)


@dataclass(eq=False)
class Schedule(TrackedRecord):
    """
    A job schedule.

    Attributes:
        id: Server-assigned schedule id, -1 until created
        name: Schedule name
        enabled: Whether the schedule fires
        frequency_*: Recurrence definition, as the job server stores it
        active_*: Window in which the schedule is active
        created: Whether the schedule exists in the job store
    """
    name: str = ""
    id: int = -1
    enabled: bool = True
    frequency_type: FrequencyType = FrequencyType.WEEKLY
    frequency_interval: int = 1
    frequency_recurrence_factor: int = 1
    frequency_relative_interval: int = 0
    frequency_subday_type: int = 0
    frequency_subday_interval: int = 0
    active_start_date: date = field(default_factory=date.today)
    active_start_time: time = time(0, 0, 0)
    active_end_date: date = MAX_AGENT_DATE
    active_end_time: time = MAX_AGENT_TIME
    created: bool = False
    original_name: Optional[str] = None
    _baseline: Optional[dict[str, Any]] = field(default=None, init=False, repr=False)

    _untracked: ClassVar[frozenset] = frozenset({"id", "created", "original_name"})

    def __post_init__(self):
        self.frequency_type = FrequencyType(self.frequency_type)
        if self.active_end_date > MAX_AGENT_DATE:
            self.active_end_date = MAX_AGENT_DATE
        if self.active_end_time > MAX_AGENT_TIME:
            self.active_end_time = MAX_AGENT_TIME

    @classmethod
    def from_store(cls, **values: Any) -> "Schedule":
        """Build a schedule that already exists in the job store."""
        schedule = cls(**values)
        schedule.created = True
        schedule.original_name = schedule.name
        schedule.mark_clean()
        return schedule

    @property
    def has_end_date(self) -> bool:
        return self.active_end_date < MAX_AGENT_DATE

    @property
    def has_end_time(self) -> bool:
        return self.active_end_time < MAX_AGENT_TIME

    def validate(
        self,
        major_version: Optional[int] = None,
        siblings: Optional[Iterable["Schedule"]] = None,
        shared_min_version: int = DEFAULT_SHARED_SCHEDULE_MIN_VERSION,
    ) -> None:
        """
        Check the schedule's fields for consistency.

        Args:
            major_version: Server major version; enables the duplicate-name
                check for exclusively owned schedules
            siblings: Other schedules of the same job
            shared_min_version: First server version with shared schedules

        Raises:
            ScheduleValidationError: Listing every problem found
        """
        problems = []

        if siblings is not None and major_version is not None and major_version < shared_min_version:
            renamed = self.original_name is None or self.name != self.original_name
            if renamed and any(s is not self and s.name == self.name for s in siblings):
                problems.append(f"A schedule named '{self.name}' already exists")

        if self.active_start_date > self.active_end_date:
            problems.append("Start date is after end date")

        if self.frequency_type == FrequencyType.ONE_TIME:
            if self.active_start_date < MIN_START_DATE:
                problems.append(f"Start date must be on or after {MIN_START_DATE.isoformat()}")

        if self.frequency_type.is_recurring:
            if self.active_start_date < MIN_START_DATE:
                problems.append(f"Start date must be on or after {MIN_START_DATE.isoformat()}")
            if self.active_start_time == self.active_end_time:
                problems.append("End time must differ from start time")

        if self.frequency_type == FrequencyType.WEEKLY and self.frequency_interval == 0:
            problems.append("Weekly schedule must run on at least one day")

        if problems:
            raise ScheduleValidationError(problems)
