"""Sequential execution of shell commands."""

from .executor import Continuation, ContinuationError, Handler, SequentialExecutor

__all__ = [
    "Continuation",
    "ContinuationError",
    "Handler",
    "SequentialExecutor",
]
