"""
Error boundary for job store calls made during apply.

Store adapters raise whatever their transport raises. Reconcilers wrap each
call so the caller sees a RemoteOperationError naming the phase and entity,
with the original exception chained as __cause__.
"""

from contextlib import contextmanager
from typing import Iterator

from agentjob.errors import RemoteOperationError


@contextmanager
def remote_call(phase: str, entity: str) -> Iterator[None]:
    """
    Wrap one job store call.

    Raises:
        RemoteOperationError: If the call fails
    """
    try:
        yield
    except RemoteOperationError:
        raise
    except Exception as e:
        raise RemoteOperationError(phase, entity, str(e)) from e
