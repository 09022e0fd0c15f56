"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
categories, avatars, questions). Repositories return SQLModel objects,
own the ordering of list queries and perform commits/refreshes.
Failures propagate as SQLAlchemy exceptions; services translate them.
"""

from typing import List, Optional
from sqlmodel import Session, select
from . import models


class _CrudRepository:
    """Shared add/get/delete plumbing for single-table aggregates."""
    model: type

    def __init__(self, session: Session):
        self.session = session

    def get(self, row_id: int):
        """Fetch a row by primary key or `None`."""
        return self.session.get(self.model, row_id)

    def save(self, row):
        """Insert or update `row` and return the refreshed instance."""
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def delete(self, row) -> None:
        self.session.delete(row)
        self.session.commit()


class UserRepository(_CrudRepository):
    """CRUD operations for `User` objects."""
    model = models.User

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        return self.save(user)

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def list_all(self) -> List[models.User]:
        return self.session.exec(select(models.User).order_by(models.User.id)).all()


class CategoryRepository(_CrudRepository):
    model = models.Category

    def list_all(self) -> List[models.Category]:
        """Return every category ordered by name ascending."""
        stmt = select(models.Category).order_by(models.Category.name, models.Category.id)
        return self.session.exec(stmt).all()

    def latest(self) -> Optional[models.Category]:
        """Return the most recently created category, if any."""
        stmt = select(models.Category).order_by(models.Category.created_at.desc(), models.Category.id.desc())
        return self.session.exec(stmt).first()


class AvatarRepository(_CrudRepository):
    model = models.Avatar

    def list_all(self) -> List[models.Avatar]:
        return self.session.exec(select(models.Avatar).order_by(models.Avatar.id)).all()


class QARepository(_CrudRepository):
    """Question queries; rows come back with their category joined."""
    model = models.QA

    def list_all(self) -> List[models.QA]:
        """Return all questions newest first."""
        stmt = select(models.QA).order_by(models.QA.created_at.desc(), models.QA.id.desc())
        return self.session.exec(stmt).unique().all()
