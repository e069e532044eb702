"""
agentjob.reconcile - Push local edits to the job store.

Each reconciler owns one entity kind and issues the minimal set of store
calls for it. All of them return True when any remote mutation was issued.
"""

from .alerts import AlertReconciler
from .base import remote_call
from .schedules import ScheduleReconciler
from .steps import StepReconciler

__all__ = [
    "AlertReconciler",
    "ScheduleReconciler",
    "StepReconciler",
    "remote_call",
]
