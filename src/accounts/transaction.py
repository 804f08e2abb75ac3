"""All-or-nothing execution of store operations."""

import logging
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from .database import Database

logger = logging.getLogger(__name__)


class Transaction:
    """Run store operations against one session and commit them together.

    ``do`` may be called several times; once a call has failed the following
    calls are skipped. ``finish`` commits when every call succeeded and rolls
    back otherwise, re-raising the first error.
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self.error: Optional[Exception] = None

    @classmethod
    def begin(cls, database: Database) -> "Transaction":
        return cls(database.session())

    def do(self, func: Callable[[Session], Any]) -> Any:
        if self.error is not None:
            return None
        try:
            return func(self.session)
        except Exception as exc:
            self.error = exc
            return None

    def finish(self) -> None:
        try:
            if self.error is not None:
                logger.debug("rolling back transaction: %s", self.error)
                self.session.rollback()
                raise self.error
            try:
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise
        finally:
            self.session.close()
