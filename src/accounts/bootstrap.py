"""Provisioning of the root administrator account."""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from .config import Settings
from .database import Database
from .models.user import User
from .store import StoreError, find_user_by_email, insert_user, set_user_password
from .transaction import Transaction

logger = logging.getLogger(__name__)


class BootstrapError(RuntimeError):
    """The root account could not be looked up or created."""


def insert_root(database: Database, settings: Settings) -> Optional[User]:
    """Make sure the configured root account exists.

    Does nothing unless name, email and password are all configured. An
    existing user with the root email is left untouched.
    """
    if not settings.has_root:
        logger.debug("no root account configured")
        return None

    root = User(
        name=settings.root_name,
        email=settings.root_email,
        institute=settings.root_institute,
        admin=True,
    )

    def create(db):
        existing = find_user_by_email(db, root.email)
        if existing is not None:
            logger.info("root account %s already exists", root.email)
            return existing
        insert_user(db, root)
        set_user_password(db, root, settings.root_password)
        logger.info("created root account %s with id %s", root.email, root.id)
        return root

    tx = Transaction.begin(database)
    user = tx.do(create)
    try:
        tx.finish()
    except (StoreError, SQLAlchemyError) as exc:
        raise BootstrapError(f"cannot create root account {root.email}: {exc}") from exc
    return user
