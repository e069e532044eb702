"""
agentjob - Edit session core for scheduled agent jobs.

Loads a job's steps, schedules and alerts from a job store, validates the
step transition graph, and pushes the minimal set of changes back.
"""

__version__ = "0.1.0"


__all__ = [
    "AgentJobConfig",
    "ApplyResult",
    "JobAssembly",
    "load_config",
    "get_agentjob_home",
]

from .assembly import ApplyResult, JobAssembly
from .config import AgentJobConfig, get_agentjob_home, load_config
