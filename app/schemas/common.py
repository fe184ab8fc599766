"""Shared schema pieces: camelCase base model, response envelope, email normalization."""

from typing import Annotated, Any, Generic, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, StringConstraints
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")

PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128
NAME_MIN_LEN = 2
NAME_MAX_LEN = 50


def normalize_email(value: Any) -> Any:
    """Trim and lowercase an email; non-strings are left for validation to reject."""
    if isinstance(value, str):
        return value.strip().lower()
    return value


NormalizedEmail = Annotated[EmailStr, BeforeValidator(normalize_email)]
Name = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN),
]
NewPassword = Annotated[
    str,
    StringConstraints(min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN),
]


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys; accepts either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FieldError(BaseModel):
    """One per-field validation message."""

    field: str
    message: str


class ApiResponse(CamelModel, Generic[DataT]):
    """Response envelope used by every endpoint."""

    success: bool = Field(default=True, description="Whether the request succeeded")
    message: str = Field(..., description="Human-readable outcome")
    data: DataT | None = Field(default=None, description="Payload, when any")
    errors: list[FieldError] | None = Field(default=None, description="Per-field errors")
