"""Persistence operations for user accounts.

Every function takes the session to work on as its first argument. The
session may be a plain one or the session of an active
:class:`~accounts.transaction.Transaction`; nothing here commits.
"""

import hashlib
import hmac
import logging
import os
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models.project import Project
from .models.user import User

logger = logging.getLogger(__name__)

HASH_ALGORITHM = "pbkdf2_sha256"
HASH_ITERATIONS = 100_000
SALT_BYTES = 16


class StoreError(Exception):
    """Base class for errors raised by the user store."""


class DuplicateEmailError(StoreError):
    def __init__(self, email: str) -> None:
        super().__init__(f"email {email!r} is already in use")
        self.email = email


class UserNotFoundError(StoreError):
    def __init__(self, user_id: int) -> None:
        super().__init__(f"user {user_id} not found")
        self.user_id = user_id


class InvalidPasswordError(StoreError):
    pass


def hash_password(password: str, salt: Optional[bytes] = None) -> str:
    """Return a salted PBKDF2 digest in the form ``algorithm$iterations$salt$hash``."""
    if salt is None:
        salt = os.urandom(SALT_BYTES)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, HASH_ITERATIONS)
    return f"{HASH_ALGORITHM}${HASH_ITERATIONS}${salt.hex()}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
    except ValueError:
        return False
    if algorithm != HASH_ALGORITHM:
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), bytes.fromhex(salt), int(iterations)
    )
    return hmac.compare_digest(digest.hex(), expected)


def _is_duplicate_email(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "email" in message and ("unique" in message or "duplicate" in message)


def _flush(db: Session, user: User) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        if _is_duplicate_email(exc):
            raise DuplicateEmailError(user.email) from exc
        raise


def find_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def find_all_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.id).all()


def insert_user(db: Session, user: User) -> User:
    """Insert a new user and populate its ``id``."""
    if find_user_by_email(db, user.email) is not None:
        raise DuplicateEmailError(user.email)
    db.add(user)
    _flush(db, user)
    logger.info("inserted user id=%s email=%s", user.id, user.email)
    return user


def update_user(db: Session, user: User) -> User:
    """Overwrite name, email, institute and admin flag of the user with ``user.id``.

    Fields left as ``None`` keep their stored value.
    """
    record = db.get(User, user.id)
    if record is None:
        raise UserNotFoundError(user.id)
    other = find_user_by_email(db, user.email)
    if other is not None and other.id != record.id:
        raise DuplicateEmailError(user.email)
    for field in ("name", "email", "institute", "admin"):
        value = getattr(user, field)
        if value is not None:
            setattr(record, field, value)
    _flush(db, record)
    logger.info("updated user id=%s", record.id)
    return record


def delete_user_by_id(db: Session, user_id: int) -> None:
    record = db.get(User, user_id)
    if record is None:
        raise UserNotFoundError(user_id)
    db.delete(record)
    db.flush()
    logger.info("deleted user id=%s", user_id)


def set_user_password(db: Session, user: User, password: str) -> None:
    if not password:
        raise InvalidPasswordError("password must not be empty")
    record = db.get(User, user.id)
    if record is None:
        raise UserNotFoundError(user.id)
    record.password_hash = hash_password(password)
    db.flush()
    logger.debug("set password for user id=%s", record.id)


def check_user_password(db: Session, email: str, password: str) -> bool:
    """Return whether ``password`` matches the stored password of ``email``."""
    user = find_user_by_email(db, email)
    if user is None or not user.password_hash:
        return False
    return verify_password(password, user.password_hash)


def reassign_packages_to_owner(db: Session, user_id: int) -> int:
    """Hand packages held by the user back to the owners of their origin projects."""
    packages = (
        db.query(Project)
        .filter(Project.owner == user_id, Project.is_package)
        .all()
    )
    for package in packages:
        origin = db.get(Project, package.origin)
        if origin is None:
            raise StoreError(f"origin {package.origin} of package {package.id} not found")
        package.owner = origin.owner
    db.flush()
    logger.debug("reassigned %d packages of user id=%s", len(packages), user_id)
    return len(packages)


def delete_user_projects(db: Session, user_id: int) -> int:
    """Delete the user's projects together with all packages split from them."""
    ids = [
        row[0]
        for row in db.query(Project.id)
        .filter(Project.owner == user_id, ~Project.is_package)
        .all()
    ]
    if not ids:
        return 0
    # packages first, their origin column references the projects
    deleted = (
        db.query(Project)
        .filter(Project.origin.in_(ids), Project.is_package)
        .delete(synchronize_session="fetch")
    )
    deleted += (
        db.query(Project)
        .filter(Project.id.in_(ids))
        .delete(synchronize_session="fetch")
    )
    logger.debug("deleted %d projects of user id=%s", deleted, user_id)
    return deleted
