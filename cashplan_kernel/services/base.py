"""
BaseService -- abstract base for kernel write services.

Services receive the caller's ``Session`` and persist with
``session.flush()``; they never commit. The caller (planner invocation,
CLI, test harness) owns the transaction boundary.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from cashplan_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Holds the caller's session. Flush-only, never commit."""

    def __init__(self, session: Session):
        self.session = session
