"""
JobStore protocol - the remote job server as seen by an edit session.

The store owns persistence: jobs, steps, schedules (including shared schedule
reference counts) and alerts. The reconcilers only issue the calls below;
they never cache server-side counts. Calls block until the server answers
and are not retried here.

Returned records describe remote state. The session marks them as created
and snapshots them for dirty tracking.
"""

from abc import ABC, abstractmethod
from typing import Optional

from agentjob.schemas import Alert, JobRecord, JobStep, Schedule


class JobStore(ABC):
    """Abstract base class for job store adapters."""

    # -- server --------------------------------------------------------------

    @abstractmethod
    def server_major_version(self) -> int:
        """Major version of the job server; gates shared schedule behaviour."""
        pass

    # -- jobs ----------------------------------------------------------------

    @abstractmethod
    def lookup_job(self, job_id: str) -> Optional[JobRecord]:
        pass

    @abstractmethod
    def lookup_job_by_name(self, name: str) -> Optional[JobRecord]:
        pass

    @abstractmethod
    def create_job(self, job: JobRecord) -> str:
        """
        Create a job.

        Returns:
            The new job id
        """
        pass

    @abstractmethod
    def alter_job(self, job: JobRecord) -> None:
        pass

    @abstractmethod
    def set_start_step(self, job_id: str, step_id: int) -> None:
        """Point the job at its start step (0 for none)."""
        pass

    @abstractmethod
    def notify_job_changed(self, job_id: str) -> None:
        """Tell target servers that a multi-server job's definition changed."""
        pass

    # -- steps ---------------------------------------------------------------

    @abstractmethod
    def enum_steps(self, job_id: str) -> list[JobStep]:
        pass

    @abstractmethod
    def create_step(self, job_id: str, step: JobStep) -> None:
        pass

    @abstractmethod
    def alter_step(self, job_id: str, original_name: str, step: JobStep) -> None:
        pass

    @abstractmethod
    def rename_step(self, job_id: str, original_name: str, new_name: str) -> None:
        pass

    @abstractmethod
    def drop_step(self, job_id: str, name: str) -> None:
        pass

    # -- schedules -----------------------------------------------------------

    @abstractmethod
    def lookup_schedule(self, schedule_id: int) -> Optional[Schedule]:
        pass

    @abstractmethod
    def enum_job_schedules(self, job_id: str) -> list[Schedule]:
        """Schedules the job currently references."""
        pass

    @abstractmethod
    def create_schedule(self, job_id: str, schedule: Schedule, shared: bool) -> int:
        """
        Create a schedule owned by (exclusive) or attached to (shared) the job.

        Returns:
            The new schedule id
        """
        pass

    @abstractmethod
    def alter_schedule(self, schedule: Schedule) -> None:
        pass

    @abstractmethod
    def delete_schedule(self, schedule_id: int) -> None:
        pass

    @abstractmethod
    def remove_shared_schedule(self, job_id: str, schedule_id: int) -> None:
        """Detach a shared schedule from the job; the server deletes it when no job references it."""
        pass

    @abstractmethod
    def add_shared_schedule(self, job_id: str, schedule_id: int) -> None:
        pass

    # -- alerts --------------------------------------------------------------

    @abstractmethod
    def enum_alerts(self) -> list[Alert]:
        pass

    @abstractmethod
    def lookup_alert(self, name: str) -> Optional[Alert]:
        pass

    @abstractmethod
    def alter_alert(self, alert: Alert) -> None:
        pass
