"""Atomic units of work.

A ``UnitOfWork`` is the handle every repository call receives. Services open
one through a ``TransactionManager`` and pass it down explicitly; a call that
is handed an active unit joins it instead of starting another, so nested
service calls commit or roll back together.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, ContextManager, Iterator, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class UnitOfWork:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.transaction_id = uuid4().hex
        self.active = True

    def __repr__(self) -> str:
        state = "active" if self.active else "closed"
        return f"<UnitOfWork {self.transaction_id} {state}>"


class TransactionManager(ABC):
    @abstractmethod
    def transaction(self, uow: Optional[UnitOfWork] = None) -> ContextManager[UnitOfWork]:
        """Yield ``uow`` when it is active, otherwise a fresh unit that commits
        on normal exit and rolls back on any exception."""


class SqlAlchemyTransactionManager(TransactionManager):
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    @contextmanager
    def transaction(self, uow: Optional[UnitOfWork] = None) -> Iterator[UnitOfWork]:
        if uow is not None:
            if not uow.active:
                raise RuntimeError(f"{uow!r} is no longer usable")
            yield uow
            return

        session = self.session_factory()
        unit = UnitOfWork(session)
        logger.debug("begin %s", unit.transaction_id)
        try:
            with session.begin():
                yield unit
        except Exception:
            logger.warning("rolled back %s", unit.transaction_id)
            raise
        else:
            logger.debug("committed %s", unit.transaction_id)
        finally:
            unit.active = False
            session.close()
