"""Persistence layer exports."""

from .adapter import PersistenceAdapter, UnitOfWorkFactory, transition_allowed
from .errors import (
    DuplicateKeyError,
    ExecutionNotFoundError,
    NotFoundError,
    RepositoryError,
    StoreUnavailableError,
)
from .interfaces import ExecutionRepository, TestResultRepository, UnitOfWork
from .memory import InMemoryUnitOfWork

__all__ = [
    "DuplicateKeyError",
    "ExecutionNotFoundError",
    "ExecutionRepository",
    "InMemoryUnitOfWork",
    "NotFoundError",
    "PersistenceAdapter",
    "RepositoryError",
    "StoreUnavailableError",
    "TestResultRepository",
    "UnitOfWork",
    "UnitOfWorkFactory",
    "transition_allowed",
]
