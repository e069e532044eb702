"""
AlertReconciler - associates server alerts with the job.

Alerts are never created or deleted here. Adding an alert points it at the
job; removing one clears its job association. Only callers allowed to manage
alerts get any remote call at all.
"""

import logging
from typing import Optional

from agentjob.changeset import ChangeSet
from agentjob.errors import ArgumentError
from agentjob.schemas import Alert, JobContext, JobRecord
from agentjob.store import JobStore
from .base import remote_call

logger = logging.getLogger(__name__)


class AlertReconciler:
    """Alerts associated with one job, keyed by alert name."""

    def __init__(self, store: JobStore, context: JobContext, alerts: Optional[list[Alert]] = None):
        if store is None:
            raise ArgumentError("store is required")
        if context is None:
            raise ArgumentError("context is required")

        self.store = store
        self.context = context
        self.changes: ChangeSet[Alert] = ChangeSet(key=lambda a: a.name, items=alerts)

    @property
    def alerts(self) -> list[Alert]:
        return self.changes.current

    @property
    def removed_alerts(self) -> list[Alert]:
        return self.changes.removed

    def add(self, alert: Alert) -> None:
        self.changes.add(alert)

    def add_by_name(self, name: str) -> Alert:
        """
        Queue an alert for association by name.

        An alert pending removal is restored as it was, so undoing the
        removal costs no remote call.
        """
        alert = self.changes.find(name)
        if alert is not None:
            return alert

        pending = [a for a in self.changes.removed if a.name == name]
        alert = pending[0] if pending else Alert(name=name)
        self.changes.add(alert)
        return alert

    def remove(self, alert: Alert) -> None:
        self.changes.remove(alert)

    def apply_changes(self, job: JobRecord) -> bool:
        """
        Settle alert associations for a job.

        Returns:
            True if any alert was re-associated; False without alert permission

        Raises:
            RemoteOperationError: A store call failed
        """
        if not self.context.can_manage_alerts:
            logger.debug(f"Caller may not manage alerts, alerts of job '{job.name}' not applied")
            return False

        changed = False
        for alert in self.changes:
            if alert.created:
                continue

            with remote_call("lookup", f"alert '{alert.name}'"):
                remote = self.store.lookup_alert(alert.name)
            if remote is None:
                logger.warning(f"Alert '{alert.name}' not found on the server, dropped from job '{job.name}'")
                self.changes.remove(alert)
                continue

            remote.job_id = job.job_id
            with remote_call("alter", f"alert '{alert.name}'"):
                self.store.alter_alert(remote)
            logger.info(f"Associated alert '{alert.name}' with job '{job.name}'")
            alert.job_id = job.job_id
            alert.created = True
            alert.mark_clean()
            changed = True

        for alert in self.changes.removed:
            with remote_call("lookup", f"alert '{alert.name}'"):
                remote = self.store.lookup_alert(alert.name)
            if remote is None:
                logger.debug(f"Alert '{alert.name}' no longer exists, nothing to detach")
                continue

            remote.job_id = None
            with remote_call("alter", f"alert '{alert.name}'"):
                self.store.alter_alert(remote)
            logger.info(f"Detached alert '{alert.name}' from job '{job.name}'")
            alert.job_id = None
            alert.created = False
            changed = True

        self.changes.clear_removed()
        return changed
