"""
ScheduleReconciler - turns local schedule edits into job store calls.

Before the shared schedule era each schedule belongs to exactly one job:
removal deletes it, creation makes an exclusively owned schedule. From the
shared era on, removal detaches the job's reference (the store deletes the
schedule when nothing references it) and an existing schedule added to the
job is attached by reference.
"""

import logging
from dataclasses import replace
from typing import Optional

from agentjob.changeset import ChangeSet
from agentjob.config import AgentJobConfig
from agentjob.errors import ArgumentError
from agentjob.schemas import JobContext, JobRecord, Schedule
from agentjob.store import JobStore
from .base import remote_call

logger = logging.getLogger(__name__)


class ScheduleReconciler:
    """
    Schedules of one job, with pending removals.

    Usage:
        schedules = ScheduleReconciler(store, context, loaded)
        schedules.add(Schedule(name="nightly", frequency_type="daily"))
        changed = schedules.apply_changes(job)
    """

    def __init__(
        self,
        store: JobStore,
        context: JobContext,
        schedules: Optional[list[Schedule]] = None,
        config: Optional[AgentJobConfig] = None,
    ):
        if store is None:
            raise ArgumentError("store is required")
        if context is None:
            raise ArgumentError("context is required")

        self.store = store
        self.context = context
        self.config = config or AgentJobConfig()
        self.changes: ChangeSet[Schedule] = ChangeSet(key=lambda s: s.id, items=schedules)

    @property
    def schedules(self) -> list[Schedule]:
        return self.changes.current

    @property
    def removed_schedules(self) -> list[Schedule]:
        return self.changes.removed

    def add(self, schedule: Schedule) -> None:
        self.changes.add(schedule)

    def add_existing(self, schedule_id: int) -> Schedule:
        """
        Reference a schedule that already exists in the job store.

        Raises:
            ArgumentError: If no schedule has the id
        """
        with remote_call("lookup", f"schedule {schedule_id}"):
            schedule = self.store.lookup_schedule(schedule_id)
        if schedule is None:
            raise ArgumentError(f"Schedule not found: {schedule_id}")
        schedule.created = True
        schedule.original_name = schedule.name
        schedule.mark_clean()
        self.changes.add(schedule)
        return schedule

    def remove(self, schedule: Schedule) -> None:
        self.changes.remove(schedule)

    def find(self, schedule_id: int) -> Optional[Schedule]:
        return self.changes.find(schedule_id)

    def is_shared_era(self) -> bool:
        """Whether the server reference counts schedules."""
        return self.store.server_major_version() >= self.config.shared_schedule_min_version

    # -------------------------------------------------------------------------
    # Apply
    # -------------------------------------------------------------------------

    def apply_changes(self, job: JobRecord) -> bool:
        """
        Push schedule changes for a job.

        Args:
            job: The job the schedules belong to; must already exist

        Returns:
            True if any remote mutation was issued

        Raises:
            ScheduleValidationError: A new or changed schedule is inconsistent
            RemoteOperationError: A store call failed
        """
        if self.context.is_read_only:
            if not self.context.allow_enable_disable:
                logger.debug(f"Job '{job.name}' is read-only, schedules not applied")
                return False
            return self._apply_enabled_toggles()

        major_version = self.store.server_major_version()
        shared = major_version >= self.config.shared_schedule_min_version
        self._validate_pending(major_version)

        changed = self._apply_removals(job, shared)

        attached: Optional[set[int]] = None
        for schedule in self.changes:
            if not schedule.created:
                with remote_call("create", f"schedule '{schedule.name}'"):
                    schedule.id = self.store.create_schedule(job.job_id, schedule, shared)
                logger.info(f"Created schedule '{schedule.name}' ({schedule.id}) for job '{job.name}'")
                schedule.created = True
                schedule.original_name = schedule.name
                schedule.mark_clean()
                changed = True
                continue

            if shared:
                if attached is None:
                    attached = self._attached_ids(job)
                if schedule.id not in attached:
                    with remote_call("attach", f"schedule '{schedule.name}'"):
                        self.store.add_shared_schedule(job.job_id, schedule.id)
                    logger.info(f"Attached shared schedule '{schedule.name}' ({schedule.id}) to job '{job.name}'")
                    attached.add(schedule.id)
                    changed = True

            if schedule.is_dirty:
                with remote_call("alter", f"schedule '{schedule.name}'"):
                    self.store.alter_schedule(schedule)
                logger.info(f"Altered schedule '{schedule.name}' ({schedule.id}): {schedule.changed_fields()}")
                schedule.original_name = schedule.name
                schedule.mark_clean()
                changed = True

        return changed

    def _apply_removals(self, job: JobRecord, shared: bool) -> bool:
        changed = False
        removed = self.changes.removed
        attached = self._attached_ids(job) if shared and removed else set()

        for schedule in removed:
            if shared:
                if schedule.id not in attached:
                    logger.debug(f"Schedule {schedule.id} no longer referenced by job '{job.name}', nothing to detach")
                    continue
                with remote_call("detach", f"schedule '{schedule.name}'"):
                    self.store.remove_shared_schedule(job.job_id, schedule.id)
                logger.info(f"Detached shared schedule '{schedule.name}' ({schedule.id}) from job '{job.name}'")
            else:
                with remote_call("delete", f"schedule '{schedule.name}'"):
                    self.store.delete_schedule(schedule.id)
                logger.info(f"Deleted schedule '{schedule.name}' ({schedule.id})")
                schedule.created = False
            changed = True

        self.changes.clear_removed()
        return changed

    def _apply_enabled_toggles(self) -> bool:
        """Read-only with the enable/disable override: push only enabled flags."""
        changed = False
        for schedule in self.changes:
            baseline = schedule.baseline
            if not schedule.created or baseline is None or baseline["enabled"] == schedule.enabled:
                continue

            toggled = {**baseline, "enabled": schedule.enabled}
            pushed = replace(schedule, **toggled)
            with remote_call("alter", f"schedule '{schedule.name}'"):
                self.store.alter_schedule(pushed)
            logger.info(f"Set schedule '{schedule.name}' ({schedule.id}) enabled={schedule.enabled}")
            schedule.mark_clean(toggled)
            changed = True
        return changed

    def _validate_pending(self, major_version: int) -> None:
        siblings = self.changes.current
        for schedule in siblings:
            if not schedule.created or schedule.is_dirty:
                schedule.validate(
                    major_version=major_version,
                    siblings=siblings,
                    shared_min_version=self.config.shared_schedule_min_version,
                )

    def _attached_ids(self, job: JobRecord) -> set[int]:
        with remote_call("enumerate", f"schedules of job '{job.name}'"):
            return {s.id for s in self.store.enum_job_schedules(job.job_id)}
