"""
Transaction boundary shared by the services.

Repositories only flush. ``atomic`` blocks nest: inner blocks join the
outer transaction, only the outermost block commits, and an exception at
any depth rolls the whole unit back.
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


logger = logging.getLogger(__name__)


class UnitOfWork:
    def __init__(self, db: Session):
        self.db = db
        self._depth = 0

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def atomic(self) -> Iterator[Session]:
        self._depth += 1
        try:
            yield self.db
        except Exception:
            self._depth -= 1
            if self._depth == 0:
                self.db.rollback()
                logger.debug("unit_of_work_rolled_back")
            raise
        else:
            self._depth -= 1
            if self._depth == 0:
                try:
                    self.db.commit()
                except Exception:
                    self.db.rollback()
                    raise
