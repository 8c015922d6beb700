"""SQL persistence backend for runwatch."""

from .migrations import MIGRATIONS, apply_migrations
from .models import Base, ExecutionRecord, TestResultRecord
from .repositories import SqlExecutionRepository, SqlTestResultRepository
from .unit_of_work import SqlUnitOfWork, create_sql_unit_of_work_factory

__all__ = [
    "MIGRATIONS",
    "Base",
    "ExecutionRecord",
    "SqlExecutionRepository",
    "SqlTestResultRepository",
    "SqlUnitOfWork",
    "TestResultRecord",
    "apply_migrations",
    "create_sql_unit_of_work_factory",
]
