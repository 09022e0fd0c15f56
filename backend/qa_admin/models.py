"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table; `QA` rows reference their `Category` and are
loaded together with it.
"""

from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Difficulty(str, Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class AnswerOption(str, Enum):
    """Which of the four option slots holds the correct answer."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class User(SQLModel, table=True):
    """An admin user.

    Fields:
    - `username`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=_utcnow)


class Category(SQLModel, table=True):
    """A named group of questions with an optional cover image URL."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    image: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow, index=True)


class Avatar(SQLModel, table=True):
    """An avatar image users can pick from."""
    id: Optional[int] = Field(default=None, primary_key=True)
    url: str
    created_at: datetime = Field(default_factory=_utcnow)


class QA(SQLModel, table=True):
    """A multiple-choice question with four options.

    `correct_answer` names the option slot (A-D) holding the right answer.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    question: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_answer: AnswerOption
    difficulty: Difficulty = Field(index=True)
    category_id: int = Field(foreign_key="category.id", index=True)
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow, index=True)
    category: Optional[Category] = Relationship(sa_relationship_kwargs={"lazy": "joined"})
