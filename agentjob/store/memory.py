"""
In-memory job store.

Reference adapter used for dry runs (`agentjob plan`) and tests. Keeps jobs,
steps, schedules and alerts in dictionaries, reference counts shared
schedules like the server does, and records every mutating call in `calls`.
"""

import copy
import logging
import uuid
from typing import Any, Iterable, Optional

from agentjob.schemas import Alert, JobRecord, JobStep, Schedule
from .base import JobStore

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised by the in-memory store for missing objects and injected failures."""
    pass


def _clone(record):
    clone = copy.copy(record)
    clone._baseline = None
    return clone


class InMemoryJobStore(JobStore):
    """
    Dictionary-backed JobStore.

    Attributes:
        calls: Mutating calls issued, as (operation, *args) tuples
        fail_on: Operation names that raise StoreError when called
    """

    def __init__(self, major_version: int = 16, fail_on: Optional[Iterable[str]] = None):
        self.major_version = major_version
        self.fail_on: set[str] = set(fail_on or [])
        self.calls: list[tuple[Any, ...]] = []

        self._jobs: dict[str, JobRecord] = {}
        self._steps: dict[str, dict[str, JobStep]] = {}
        self._schedules: dict[int, Schedule] = {}
        self._schedule_jobs: dict[int, set[str]] = {}
        self._alerts: dict[str, Alert] = {}
        self._next_schedule_id = 1

    # -- helpers -------------------------------------------------------------

    def _record(self, operation: str, *args: Any) -> None:
        if operation in self.fail_on:
            raise StoreError(f"{operation} failed (injected)")
        self.calls.append((operation, *args))
        logger.debug(f"store call: {operation} {args}")

    def operations(self) -> list[str]:
        """Names of the mutating calls issued so far."""
        return [call[0] for call in self.calls]

    def reset_calls(self) -> None:
        self.calls.clear()

    def _job_steps(self, job_id: str) -> dict[str, JobStep]:
        if job_id not in self._jobs:
            raise StoreError(f"Job not found: {job_id}")
        return self._steps.setdefault(job_id, {})

    # -- seeding -------------------------------------------------------------

    def add_job(self, job: JobRecord, steps: Iterable[JobStep] = (), schedules: Iterable[Schedule] = ()) -> str:
        """Seed a job with steps and exclusively owned schedules, without recording calls."""
        job = _clone(job)
        job.job_id = job.job_id or str(uuid.uuid4())
        self._jobs[job.job_id] = job
        self._steps[job.job_id] = {s.name: _clone(s) for s in steps}
        for schedule in schedules:
            self.add_schedule(schedule, job_ids=[job.job_id])
        return job.job_id

    def add_schedule(self, schedule: Schedule, job_ids: Iterable[str] = ()) -> int:
        """Seed a schedule attached to the given jobs, without recording calls."""
        schedule = _clone(schedule)
        if schedule.id < 0:
            schedule.id = self._next_schedule_id
        self._next_schedule_id = max(self._next_schedule_id, schedule.id + 1)
        self._schedules[schedule.id] = schedule
        self._schedule_jobs[schedule.id] = set(job_ids)
        return schedule.id

    def add_alert(self, alert: Alert) -> None:
        self._alerts[alert.name] = _clone(alert)

    def schedule_references(self, schedule_id: int) -> set[str]:
        """Jobs referencing a schedule (empty when it does not exist)."""
        return set(self._schedule_jobs.get(schedule_id, set()))

    # -- server --------------------------------------------------------------

    def server_major_version(self) -> int:
        return self.major_version

    # -- jobs ----------------------------------------------------------------

    def lookup_job(self, job_id: str) -> Optional[JobRecord]:
        job = self._jobs.get(job_id)
        return _clone(job) if job else None

    def lookup_job_by_name(self, name: str) -> Optional[JobRecord]:
        for job in self._jobs.values():
            if job.name == name:
                return _clone(job)
        return None

    def create_job(self, job: JobRecord) -> str:
        self._record("create_job", job.name)
        job_id = str(uuid.uuid4())
        stored = _clone(job)
        stored.job_id = job_id
        self._jobs[job_id] = stored
        self._steps[job_id] = {}
        return job_id

    def alter_job(self, job: JobRecord) -> None:
        self._record("alter_job", job.job_id)
        if job.job_id not in self._jobs:
            raise StoreError(f"Job not found: {job.job_id}")
        start_step_id = self._jobs[job.job_id].start_step_id
        stored = _clone(job)
        stored.start_step_id = start_step_id
        self._jobs[job.job_id] = stored

    def set_start_step(self, job_id: str, step_id: int) -> None:
        self._record("set_start_step", job_id, step_id)
        if job_id not in self._jobs:
            raise StoreError(f"Job not found: {job_id}")
        self._jobs[job_id].start_step_id = step_id

    def notify_job_changed(self, job_id: str) -> None:
        self._record("notify_job_changed", job_id)

    # -- steps ---------------------------------------------------------------

    def enum_steps(self, job_id: str) -> list[JobStep]:
        return sorted((_clone(s) for s in self._job_steps(job_id).values()), key=lambda s: s.id)

    def create_step(self, job_id: str, step: JobStep) -> None:
        self._record("create_step", job_id, step.name, step.id)
        steps = self._job_steps(job_id)
        if step.name in steps:
            raise StoreError(f"Step already exists: {step.name}")
        steps[step.name] = _clone(step)

    def alter_step(self, job_id: str, original_name: str, step: JobStep) -> None:
        self._record("alter_step", job_id, original_name)
        steps = self._job_steps(job_id)
        if original_name not in steps:
            raise StoreError(f"Step not found: {original_name}")
        stored = _clone(step)
        stored.name = original_name
        steps[original_name] = stored

    def rename_step(self, job_id: str, original_name: str, new_name: str) -> None:
        self._record("rename_step", job_id, original_name, new_name)
        steps = self._job_steps(job_id)
        if original_name not in steps:
            raise StoreError(f"Step not found: {original_name}")
        if new_name != original_name and new_name in steps:
            raise StoreError(f"Step already exists: {new_name}")
        stored = steps.pop(original_name)
        stored.name = new_name
        steps[new_name] = stored

    def drop_step(self, job_id: str, name: str) -> None:
        self._record("drop_step", job_id, name)
        steps = self._job_steps(job_id)
        if name not in steps:
            raise StoreError(f"Step not found: {name}")
        del steps[name]

    # -- schedules -----------------------------------------------------------

    def lookup_schedule(self, schedule_id: int) -> Optional[Schedule]:
        schedule = self._schedules.get(schedule_id)
        return _clone(schedule) if schedule else None

    def enum_job_schedules(self, job_id: str) -> list[Schedule]:
        return [
            _clone(self._schedules[sid])
            for sid in sorted(self._schedule_jobs)
            if job_id in self._schedule_jobs[sid]
        ]

    def create_schedule(self, job_id: str, schedule: Schedule, shared: bool) -> int:
        self._record("create_schedule", job_id, schedule.name, shared)
        stored = _clone(schedule)
        stored.id = self._next_schedule_id
        self._next_schedule_id += 1
        self._schedules[stored.id] = stored
        self._schedule_jobs[stored.id] = {job_id}
        return stored.id

    def alter_schedule(self, schedule: Schedule) -> None:
        self._record("alter_schedule", schedule.id)
        if schedule.id not in self._schedules:
            raise StoreError(f"Schedule not found: {schedule.id}")
        self._schedules[schedule.id] = _clone(schedule)

    def delete_schedule(self, schedule_id: int) -> None:
        self._record("delete_schedule", schedule_id)
        if schedule_id not in self._schedules:
            raise StoreError(f"Schedule not found: {schedule_id}")
        del self._schedules[schedule_id]
        del self._schedule_jobs[schedule_id]

    def remove_shared_schedule(self, job_id: str, schedule_id: int) -> None:
        self._record("remove_shared_schedule", job_id, schedule_id)
        if schedule_id not in self._schedules:
            raise StoreError(f"Schedule not found: {schedule_id}")
        jobs = self._schedule_jobs[schedule_id]
        jobs.discard(job_id)
        if not jobs:
            del self._schedules[schedule_id]
            del self._schedule_jobs[schedule_id]

    def add_shared_schedule(self, job_id: str, schedule_id: int) -> None:
        self._record("add_shared_schedule", job_id, schedule_id)
        if schedule_id not in self._schedules:
            raise StoreError(f"Schedule not found: {schedule_id}")
        self._schedule_jobs[schedule_id].add(job_id)

    # -- alerts --------------------------------------------------------------

    def enum_alerts(self) -> list[Alert]:
        return [_clone(a) for a in self._alerts.values()]

    def lookup_alert(self, name: str) -> Optional[Alert]:
        alert = self._alerts.get(name)
        return _clone(alert) if alert else None

    def alter_alert(self, alert: Alert) -> None:
        self._record("alter_alert", alert.name, alert.job_id)
        if alert.name not in self._alerts:
            raise StoreError(f"Alert not found: {alert.name}")
        self._alerts[alert.name] = _clone(alert)
