"""
Resilience patterns used by the exception engine.

- Worker pool: bounded fan-out with a join on every submission
- Retry: fixed-delay retries for collaborator lookups
"""

from .retry_policies import CollaboratorRetryPolicy, create_collaborator_retry_policy
from .worker_pool import TaskOutcome, WorkerPool

__all__ = [
    "CollaboratorRetryPolicy",
    "create_collaborator_retry_policy",
    "TaskOutcome",
    "WorkerPool",
]
