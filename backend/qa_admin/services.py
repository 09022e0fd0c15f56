"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories.
Services are intentionally thin: they map validated payloads onto
models, persist them via repositories and translate storage failures
into the domain errors below, which controllers map to HTTP responses.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from . import models, repositories
from .config import settings

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
logger = logging.getLogger("qa_admin.services")


class NotFoundError(LookupError):
    """No row matches the requested identifier."""


class InvalidReferenceError(ValueError):
    """A payload field points at a row that does not exist."""
    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class PersistenceError(RuntimeError):
    """The store rejected or failed an operation."""


class ConflictError(PersistenceError):
    """The store rejected an operation on integrity grounds."""


def _log_event(event: str, **fields) -> None:
    logger.info("%s %s", event, json.dumps(fields, ensure_ascii=True, default=str))


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def register(self, username: str, password: str) -> models.User:
        """Create a new user with a hashed password.

        Returns the existing user when `username` is already taken, which
        keeps registration idempotent for automation and tests.
        """
        existing = self.user_repo.get_by_username(username)
        if existing:
            return existing
        hashed = PWD_CTX.hash(password)
        user = self.user_repo.create(models.User(username=username, password_hash=hashed))
        _log_event("user_registered", id=user.id, username=user.username)
        return user

    def authenticate(self, username: str, password: str) -> Optional[str]:
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_username(username)
        if not user or not PWD_CTX.verify(password, user.password_hash):
            return None
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
        payload = {"user_id": user.id, "username": user.username, "exp": int(expire.timestamp())}
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    def list_users(self) -> List[models.User]:
        return self.user_repo.list_all()


class _ResourceService:
    """CRUD for one resource with full-overwrite updates.

    Subclasses set `resource` (used in messages and log events) and
    `repo_class`. Updates copy every field of the payload onto the row,
    so fields left out of an optional-field payload are cleared.
    """
    resource: str
    model: type
    repo_class: type

    def __init__(self, session: Session):
        self.session = session
        self.repo = self.repo_class(session)

    def list_all(self) -> list:
        return self.repo.list_all()

    def get(self, row_id: int):
        row = self.repo.get(row_id)
        if row is None:
            raise NotFoundError(f"{self.resource} not found")
        return row

    def create(self, payload: BaseModel):
        self._check_references(payload)
        row = self.model(**payload.model_dump())
        row = self._persist("create", lambda: self.repo.save(row))
        _log_event(f"{self.resource}_created", id=row.id)
        return row

    def update(self, row_id: int, payload: BaseModel):
        row = self.get(row_id)
        self._check_references(payload)
        for field, value in payload.model_dump().items():
            setattr(row, field, value)
        row = self._persist("update", lambda: self.repo.save(row))
        _log_event(f"{self.resource}_updated", id=row.id)
        return row

    def delete(self, row_id: int):
        row = self.get(row_id)
        # detach a response copy before the row is expired by the commit
        snapshot = self._snapshot(row)
        self._persist("delete", lambda: self.repo.delete(row))
        _log_event(f"{self.resource}_deleted", id=row_id)
        return snapshot

    def _snapshot(self, row):
        return self.model.model_validate(row.model_dump())

    def _check_references(self, payload: BaseModel) -> None:
        """Hook for resources whose payload references other rows."""

    def _persist(self, action: str, operation):
        try:
            return operation()
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("%s_%s_conflict %s", self.resource, action, exc.orig)
            raise ConflictError(f"failed to {action} {self.resource}") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("%s_%s_failed", self.resource, action)
            raise PersistenceError(f"failed to {action} {self.resource}") from exc


class CategoryService(_ResourceService):
    resource = "category"
    model = models.Category
    repo_class = repositories.CategoryRepository

    def latest(self) -> Optional[models.Category]:
        return self.repo.latest()


class AvatarService(_ResourceService):
    resource = "avatar"
    model = models.Avatar
    repo_class = repositories.AvatarRepository


class QAService(_ResourceService):
    """Questions; every write checks that `category_id` exists first."""
    resource = "question"
    model = models.QA
    repo_class = repositories.QARepository

    def _check_references(self, payload: BaseModel) -> None:
        if self.session.get(models.Category, payload.category_id) is None:
            raise InvalidReferenceError("category_id", "Category does not exist")

    def _snapshot(self, row):
        snapshot = super()._snapshot(row)
        snapshot.category = models.Category.model_validate(row.category.model_dump()) if row.category else None
        return snapshot
