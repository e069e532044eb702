"""
JobAssembly - one edit session over a job.

Loads the job's properties, steps, schedules and alerts from the job store
(edit mode) or starts a blank job (create mode), lets the caller edit them,
and pushes everything back in a fixed order:

    job -> steps -> schedules -> (notify target servers) -> alerts

A failure part way through is not rolled back; changes already applied
stay applied and the error names the phase that failed.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from agentjob.config import AgentJobConfig
from agentjob.errors import ArgumentError, JobNotFoundError, NameConflictError
from agentjob.reconcile import AlertReconciler, ScheduleReconciler, StepReconciler, remote_call
from agentjob.schemas import ActionMode, JobContext, JobRecord, JobStep, SubSystem
from agentjob.step_graph import StepGraph
from agentjob.store import JobStore
from agentjob.validator import StepValidator, ValidationReport

logger = logging.getLogger(__name__)


SCRIPT_STEP_NAME = "1"


@dataclass
class ApplyResult:
    """What an apply changed remotely."""
    job_changed: bool = False
    steps_changed: bool = False
    schedules_changed: bool = False
    alerts_changed: bool = False

    @property
    def changed(self) -> bool:
        return self.job_changed or self.steps_changed or self.schedules_changed or self.alerts_changed


class JobAssembly:
    """
    Edit session for a single job.

    Attributes:
        job: Job-level properties
        steps: StepGraph of the job's steps
        schedules: ScheduleReconciler holding the job's schedules
        alerts: AlertReconciler holding the job's alerts
        validator: StepValidator bound to `steps`
    """

    def __init__(
        self,
        store: JobStore,
        context: JobContext,
        config: Optional[AgentJobConfig] = None,
        job: Optional[JobRecord] = None,
    ):
        """
        Args:
            store: Job store adapter
            context: Which job is edited and what the caller may do
            config: Settings (default: AgentJobConfig())
            job: Initial properties for a new job (create mode only)

        Raises:
            ArgumentError: If store or context is missing
            JobNotFoundError: If the job to edit does not exist
        """
        if store is None:
            raise ArgumentError("store is required")
        if context is None:
            raise ArgumentError("context is required")

        self.store = store
        self.context = context
        self.config = config or AgentJobConfig()
        self.mode = context.mode

        if self.mode == ActionMode.EDIT:
            self._load()
        else:
            self._set_defaults(job)

        self.validator = StepValidator(self.steps)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def _load(self) -> None:
        job_id = self.context.job_id
        with remote_call("load", f"job {job_id}"):
            job = self.store.lookup_job(job_id)
        if job is None:
            raise JobNotFoundError(f"Job not found: {job_id}")
        job.mark_clean()
        self.job = job

        with remote_call("load", f"steps of job '{job.name}'"):
            steps = self.store.enum_steps(job_id)
        for step in steps:
            step.created = True
            step.original_id = step.id
            step.original_name = step.name
            step.mark_clean()
        self.steps = StepGraph(steps, mode=ActionMode.EDIT, start_step_id=job.start_step_id)

        current, removed = [], []
        with remote_call("load", f"schedules of job '{job.name}'"):
            loaded = self.store.enum_job_schedules(job_id)
        for schedule in loaded:
            if schedule.id in self.context.excluded_schedule_ids:
                continue
            schedule.created = True
            schedule.original_name = schedule.name
            schedule.mark_clean()
            if schedule.id in self.context.removed_schedule_ids:
                removed.append(schedule)
            else:
                current.append(schedule)
        self.schedules = ScheduleReconciler(self.store, self.context, current, self.config)
        for schedule in removed:
            self.schedules.changes.mark_removed(schedule)

        alerts = []
        if self.context.can_manage_alerts:
            with remote_call("load", "alerts"):
                server_alerts = self.store.enum_alerts()
            for alert in server_alerts:
                if alert.job_id == job_id:
                    alert.created = True
                    alert.mark_clean()
                    alerts.append(alert)
        self.alerts = AlertReconciler(self.store, self.context, alerts)

        self.step_reconciler = StepReconciler(self.store, self.context, self.steps)
        logger.debug(
            f"Loaded job '{job.name}': {len(self.steps)} steps, "
            f"{len(current)} schedules, {len(alerts)} alerts"
        )

    def _set_defaults(self, job: Optional[JobRecord]) -> None:
        self.job = job if job is not None else JobRecord(name="")

        steps = []
        if self.context.script:
            steps.append(JobStep(name=SCRIPT_STEP_NAME, subsystem=SubSystem.TRANSACT_SQL, command=self.context.script))
        self.steps = StepGraph(steps, mode=ActionMode.CREATE)
        self.schedules = ScheduleReconciler(self.store, self.context, config=self.config)
        self.alerts = AlertReconciler(self.store, self.context)
        self.step_reconciler = StepReconciler(self.store, self.context, self.steps)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self) -> ValidationReport:
        """Reachability and last-step warnings for the current steps."""
        return self.validator.validate()

    # -------------------------------------------------------------------------
    # Apply
    # -------------------------------------------------------------------------

    def apply_changes(self) -> ApplyResult:
        """
        Push all pending changes to the job store.

        Returns:
            ApplyResult describing which parts changed remotely

        Raises:
            ArgumentError: A new job has no name
            NameConflictError: Duplicate step name, or the job name is taken
            ScheduleValidationError: A schedule is inconsistent
            RemoteOperationError: A store call failed
        """
        creating = self.mode == ActionMode.CREATE
        result = ApplyResult()

        self.steps.check_names()
        self._check_job_name(creating)

        if creating:
            with remote_call("create", f"job '{self.job.name}'"):
                self.job.job_id = self.store.create_job(self.job)
            logger.info(f"Created job '{self.job.name}' ({self.job.job_id})")
            self.job.mark_clean()
            result.job_changed = True
        else:
            result.job_changed = self._alter_job()

        result.steps_changed = self.step_reconciler.apply_changes(self.job, creating=creating)
        result.schedules_changed = self.schedules.apply_changes(self.job)

        if (
            (result.steps_changed or result.schedules_changed)
            and not creating
            and not self.context.targets_local_server
        ):
            with remote_call("notify", f"target servers of job '{self.job.name}'"):
                self.store.notify_job_changed(self.job.job_id)
            logger.info(f"Notified target servers that job '{self.job.name}' changed")

        result.alerts_changed = self.alerts.apply_changes(self.job)

        if creating:
            self.mode = ActionMode.EDIT
        logger.debug(f"Applied job '{self.job.name}': {result}")
        return result

    def _check_job_name(self, creating: bool) -> None:
        name = self.job.name
        if creating:
            if not name:
                raise ArgumentError("job name is required")
        elif self.context.is_read_only or "name" not in self.job.changed_fields():
            return

        with remote_call("lookup", f"job '{name}'"):
            existing = self.store.lookup_job_by_name(name)
        if existing is not None and existing.job_id != self.job.job_id:
            raise NameConflictError(name, scope="job")

    def _alter_job(self) -> bool:
        changed = self.job.changed_fields()
        if not changed:
            return False

        if self.context.is_read_only:
            if not self.context.allow_enable_disable or "enabled" not in changed:
                logger.debug(f"Job '{self.job.name}' is read-only, properties not applied")
                return False
            toggled = {**self.job.baseline, "enabled": self.job.enabled}
            pushed = JobRecord(**toggled, job_id=self.job.job_id, start_step_id=self.job.start_step_id)
            with remote_call("alter", f"job '{self.job.name}'"):
                self.store.alter_job(pushed)
            logger.info(f"Set job '{self.job.name}' enabled={self.job.enabled}")
            self.job.mark_clean(toggled)
            return True

        with remote_call("alter", f"job '{self.job.name}'"):
            self.store.alter_job(self.job)
        logger.info(f"Altered job '{self.job.name}': {changed}")
        self.job.mark_clean()
        return True
