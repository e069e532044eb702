"""
StepReconciler - writes a job's step graph to the job store.

Order of operations:
1. Drop stored steps that were deleted in the session
2. If any stored step was renumbered, or would be renamed to a name another
   stored step still holds, drop every stored step (they are all recreated
   below, in order)
3. Create new steps, alter changed ones, rename renamed ones
4. Point the job at its start step
"""

import logging

from agentjob.errors import ArgumentError
from agentjob.schemas import JobContext, JobRecord, JobStep
from agentjob.step_graph import StepGraph
from agentjob.store import JobStore
from .base import remote_call

logger = logging.getLogger(__name__)


class StepReconciler:
    """Pushes StepGraph changes for one job."""

    def __init__(self, store: JobStore, context: JobContext, graph: StepGraph):
        if store is None:
            raise ArgumentError("store is required")
        if context is None:
            raise ArgumentError("context is required")
        if graph is None:
            raise ArgumentError("graph is required")

        self.store = store
        self.context = context
        self.graph = graph

    def apply_changes(self, job: JobRecord, creating: bool = False) -> bool:
        """
        Push step changes for a job.

        Args:
            job: The job; start_step_id is updated to the value pushed
            creating: The job was created in this apply

        Returns:
            True if any remote mutation was issued; False when read-only

        Raises:
            NameConflictError: Two steps share a name (before any remote call)
            RemoteOperationError: A store call failed
        """
        if self.context.is_read_only:
            logger.debug(f"Job '{job.name}' is read-only, steps not applied")
            return False

        self.graph.check_names()
        changed = False

        for step in reversed(self.graph.deleted_steps):
            if step.created:
                self._drop(job, step)
                changed = True
        self.graph.clear_deleted()

        if self.graph.has_order_changed or self._names_collide():
            logger.info(f"Step order or names of job '{job.name}' changed, recreating stored steps")
            for step in reversed(self.graph.steps):
                if step.created:
                    self._drop(job, step)
                    changed = True

        for step in self.graph.steps:
            if self._apply_step(job, step):
                changed = True

        start = self.graph.start_step
        start_id = start.id if start is not None else 0
        if creating or job.start_step_id != start_id:
            with remote_call("set start step of", f"job '{job.name}'"):
                self.store.set_start_step(job.job_id, start_id)
            logger.info(f"Start step of job '{job.name}' set to {start_id}")
            job.start_step_id = start_id
            changed = True

        self.graph.mark_persisted()
        return changed

    def _names_collide(self) -> bool:
        """True when a step would take a name another stored step still holds."""
        stored = {step.original_name: step for step in self.graph.steps if step.created}
        for step in self.graph.steps:
            holder = stored.get(step.name)
            if holder is not None and holder is not step:
                return True
        return False

    def _apply_step(self, job: JobRecord, step: JobStep) -> bool:
        payload = self.graph.persisted_form(step)
        state = payload.state()

        if not step.created:
            with remote_call("create", f"step '{step.name}'"):
                self.store.create_step(job.job_id, payload)
            logger.info(f"Created step {step.id} '{step.name}' in job '{job.name}'")
            step.created = True
            step.original_id = step.id
            step.original_name = step.name
            step.mark_clean(state)
            return True

        changed = False
        altered = [name for name in step.changed_fields(state) if name != "name"]
        if altered:
            with remote_call("alter", f"step '{step.original_name}'"):
                self.store.alter_step(job.job_id, step.original_name, payload)
            logger.info(f"Altered step {step.id} '{step.original_name}': {altered}")
            changed = True

        if step.renamed:
            with remote_call("rename", f"step '{step.original_name}'"):
                self.store.rename_step(job.job_id, step.original_name, step.name)
            logger.info(f"Renamed step {step.id} '{step.original_name}' to '{step.name}'")
            step.original_name = step.name
            changed = True

        step.mark_clean(state)
        return changed

    def _drop(self, job: JobRecord, step: JobStep) -> None:
        name = step.original_name or step.name
        with remote_call("drop", f"step '{name}'"):
            self.store.drop_step(job.job_id, name)
        logger.info(f"Dropped step '{name}' from job '{job.name}'")
        step.created = False
        step.original_id = -1
