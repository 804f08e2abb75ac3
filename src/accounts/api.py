"""FastAPI application exposing user account endpoints."""

import logging
import re
from contextlib import asynccontextmanager
from typing import Generator, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import Counter
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .bootstrap import insert_root
from .config import Settings, settings as default_settings
from .database import Database
from .models.user import User
from .schemas import CreateUserRequest, UserResponse, UsersResponse
from .store import (
    DuplicateEmailError,
    StoreError,
    UserNotFoundError,
    delete_user_by_id,
    delete_user_projects,
    find_all_users,
    find_user_by_id,
    insert_user,
    reassign_packages_to_owner,
    set_user_password,
    update_user,
)
from .transaction import Transaction

logger = logging.getLogger(__name__)

USER_ID = re.compile(r"[0-9]+")
# largest id a signed 64-bit integer column can hold
MAX_USER_ID = 2**63 - 1

router = APIRouter()

# Prometheus counter to track API requests by method, endpoint and status code
REQUEST_COUNTER = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)
USERS_CREATED_COUNTER = Counter("users_created_total", "Total users created")
USERS_DELETED_COUNTER = Counter("users_deleted_total", "Total users deleted")


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(
    database: Database = Depends(get_database),
) -> Generator[Session, None, None]:
    db = database.session()
    try:
        yield db
    finally:
        db.close()


def get_user_id(user_id: str) -> int:
    """Parse the numeric id of ``/users/{id}``; anything else is not found."""
    if not USER_ID.fullmatch(user_id) or int(user_id) > MAX_USER_ID:
        raise HTTPException(status_code=404, detail=f"invalid user id: {user_id!r}")
    logger.debug("user id: %s", user_id)
    return int(user_id)


def endpoint_label(request: Request) -> str:
    """Label metrics with the matched route template, not the raw path."""
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")


def _format_errors(exc: RequestValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )


@router.post("/users", response_model=UserResponse)
def post_user(
    payload: CreateUserRequest, database: Database = Depends(get_database)
) -> UserResponse:
    """Create a user and set its password in one transaction."""

    user = User(**payload.user.model_dump())
    logger.debug("post user: %s", payload.user.email)

    def create(db: Session) -> User:
        insert_user(db, user)
        set_user_password(db, user, payload.password)
        return user

    tx = Transaction.begin(database)
    tx.do(create)
    try:
        tx.finish()
    except (StoreError, SQLAlchemyError) as exc:
        logger.warning("cannot create user %s: %s", user.email, exc)
        raise HTTPException(status_code=400, detail=f"cannot create user: {exc}") from exc
    USERS_CREATED_COUNTER.inc()
    return UserResponse.model_validate(user)


@router.get("/users", response_model=UsersResponse)
def get_all_users(db: Session = Depends(get_db)) -> UsersResponse:
    """Return all users ordered by id."""

    logger.debug("get all users")
    try:
        users = find_all_users(db)
    except SQLAlchemyError as exc:
        logger.exception("cannot list users")
        raise HTTPException(status_code=500, detail=f"cannot list users: {exc}") from exc
    return UsersResponse(users=[UserResponse.model_validate(u) for u in users])


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int = Depends(get_user_id), db: Session = Depends(get_db)
) -> UserResponse:
    try:
        user = find_user_by_id(db, user_id)
    except SQLAlchemyError as exc:
        logger.exception("cannot get user %s", user_id)
        raise HTTPException(status_code=500, detail=f"cannot get user: {exc}") from exc
    if user is None:
        raise HTTPException(status_code=404, detail="cannot get user: not found")
    return UserResponse.model_validate(user)


@router.put("/users/{user_id}", response_model=UserResponse)
def put_user(
    payload: CreateUserRequest,
    user_id: int = Depends(get_user_id),
    database: Database = Depends(get_database),
) -> UserResponse:
    """Update a user; an empty password keeps the current one."""

    user = User(id=user_id, **payload.user.model_dump())

    def update(db: Session) -> User:
        record = update_user(db, user)
        if payload.password:
            set_user_password(db, record, payload.password)
        return record

    tx = Transaction.begin(database)
    updated = tx.do(update)
    try:
        tx.finish()
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail=f"cannot update user: {exc}") from exc
    except DuplicateEmailError as exc:
        raise HTTPException(status_code=400, detail=f"cannot update user: {exc}") from exc
    except (StoreError, SQLAlchemyError) as exc:
        logger.exception("cannot update user %s", user_id)
        raise HTTPException(status_code=500, detail=f"cannot update user: {exc}") from exc
    return UserResponse.model_validate(updated)


@router.delete("/users/{user_id}", response_class=Response)
def delete_user(
    user_id: int = Depends(get_user_id), database: Database = Depends(get_database)
) -> Response:
    """Delete a user after cleaning up the projects it owns or holds."""

    def delete(db: Session) -> None:
        if find_user_by_id(db, user_id) is None:
            raise UserNotFoundError(user_id)
        try:
            reassign_packages_to_owner(db, user_id)
        except StoreError as exc:
            raise StoreError(f"cannot reassign packages: {exc}") from exc
        try:
            delete_user_projects(db, user_id)
        except StoreError as exc:
            raise StoreError(f"cannot delete projects: {exc}") from exc
        delete_user_by_id(db, user_id)

    tx = Transaction.begin(database)
    tx.do(delete)
    try:
        tx.finish()
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail=f"cannot delete user: {exc}") from exc
    except (StoreError, SQLAlchemyError) as exc:
        logger.exception("cannot delete user %s", user_id)
        raise HTTPException(status_code=500, detail=f"cannot delete user: {exc}") from exc
    USERS_DELETED_COUNTER.inc()
    return Response(status_code=200)


def create_app(
    settings: Optional[Settings] = None, database: Optional[Database] = None
) -> FastAPI:
    """Build the application around an explicitly constructed store.

    The lifespan creates missing tables, provisions the root account and
    disposes of the connection pool on shutdown.
    """
    settings = settings or default_settings
    database = database or Database(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.init_db()
        insert_root(database, settings)
        logger.info("account service ready")
        yield
        database.close()

    app = FastAPI(title=settings.api_title, lifespan=lifespan, redirect_slashes=False)
    app.state.settings = settings
    app.state.database = database

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log incoming requests and their outcomes while updating metrics."""
        logger.info("request %s %s", request.method, request.url.path)
        try:
            response = await call_next(request)
            REQUEST_COUNTER.labels(
                method=request.method,
                endpoint=endpoint_label(request),
                status=str(response.status_code),
            ).inc()
            logger.info(
                "response %s %s status %s",
                request.method,
                request.url.path,
                response.status_code,
            )
            return response
        except Exception:
            REQUEST_COUNTER.labels(
                method=request.method,
                endpoint=endpoint_label(request),
                status="500",
            ).inc()
            logger.exception("error handling %s %s", request.method, request.url.path)
            raise

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": f"cannot read user: invalid data: {_format_errors(exc)}"},
        )

    app.include_router(router)
    return app
