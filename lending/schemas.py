from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Generic, Literal, Optional, TypeVar

from .models import Genre, as_utc

T = TypeVar("T")

SortField = Literal[
    "title", "author", "genre", "isbn", "copies", "createdAt", "updatedAt"
]
SortDirection = Literal["asc", "desc"]


class BookBase(BaseModel):
    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    genre: Genre
    isbn: str = Field(min_length=1)
    description: Optional[str] = None
    copies: int = Field(ge=0)

    class Config:
        str_strip_whitespace = True


class BookCreate(BookBase):
    pass


class BookUpdate(BaseModel):
    # no `available` field: it is always derived from copies
    title: Optional[str] = Field(None, min_length=1)
    author: Optional[str] = Field(None, min_length=1)
    genre: Optional[Genre] = None
    isbn: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    copies: Optional[int] = Field(None, ge=0)

    class Config:
        str_strip_whitespace = True


class BorrowCreate(BaseModel):
    book: str = Field(pattern=r"^[0-9a-fA-F]{24}$")
    quantity: int = Field(gt=0)
    due_date: datetime

    class Config:
        populate_by_name = True
        alias_generator = to_camel

    @field_validator("due_date")
    @classmethod
    def due_date_in_future(cls, value: datetime) -> datetime:
        value = as_utc(value)
        if value <= datetime.now(timezone.utc):
            raise ValueError("Due date must be in the future")
        return value


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None
