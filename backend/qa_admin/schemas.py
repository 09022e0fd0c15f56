"""Pydantic request/response schemas used by the API and the client.

The same input schemas validate requests on the server and submissions
in `qa_admin.client`, so both sides reject the same payloads with the
same field-level messages.
"""

from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from .models import AnswerOption, Difficulty

_URL = TypeAdapter(AnyUrl)

MAX_ROW_ID = 2**63 - 1
RowId = Annotated[int, Field(ge=1, le=MAX_ROW_ID)]


def _required_text(value: str, message: str) -> str:
    if not value.strip():
        raise PydanticCustomError("required", message)
    return value


def _well_formed_url(value: str, message: str) -> str:
    try:
        _URL.validate_python(value)
    except ValidationError:
        raise PydanticCustomError("url", message)
    return value


class RegisterIn(BaseModel):
    """Payload for user registration/login endpoints."""
    username: str
    password: str

    @field_validator("username", "password")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        return _required_text(v, "Username and password are required")


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str
    token_type: str = "bearer"


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    created_at: datetime


class CategoryIn(BaseModel):
    """Create and full-overwrite payload for a category.

    `image` may be omitted, null or an empty string; anything else must
    be a well-formed URL.
    """
    name: str
    image: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        return _required_text(v, "Name is required")

    @field_validator("image")
    @classmethod
    def _image_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return v
        return _well_formed_url(v, "Invalid image URL")


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    image: Optional[str] = None
    created_at: datetime


class AvatarIn(BaseModel):
    """Create and full-overwrite payload for an avatar.

    Unknown fields (older clients send a `name`) are ignored.
    """
    url: str

    @field_validator("url")
    @classmethod
    def _url(cls, v: str) -> str:
        return _well_formed_url(v, "Please enter a valid image URL")


class AvatarOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    created_at: datetime


class QAIn(BaseModel):
    """Create payload for a question."""
    question: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_answer: AnswerOption
    difficulty: Difficulty
    category_id: RowId

    @field_validator("question", "option_a", "option_b", "option_c", "option_d")
    @classmethod
    def _text_required(cls, v: str, info) -> str:
        label = "Question" if info.field_name == "question" else f"Option {info.field_name[-1].upper()}"
        return _required_text(v, f"{label} is required")


class QAUpdate(QAIn):
    """Full-overwrite payload for a question, activation flag included."""
    is_active: bool


class QAOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    question: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_answer: AnswerOption
    difficulty: Difficulty
    category_id: int
    is_active: bool
    created_at: datetime
    category: Optional[CategoryOut] = None


class FieldError(BaseModel):
    field: str
    message: str


class ErrorOut(BaseModel):
    """Error body returned for every rejected request."""
    detail: str
    errors: List[FieldError] = []
