"""
agentjob.store - Job store adapters.

The JobStore ABC is the only way an edit session talks to the job server.
InMemoryJobStore is the reference implementation used for dry runs and tests.
"""

from .base import JobStore
from .memory import InMemoryJobStore, StoreError

__all__ = [
    "JobStore",
    "InMemoryJobStore",
    "StoreError",
]
