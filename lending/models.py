from enum import Enum
from pydantic import AfterValidator, BaseModel, BeforeValidator, Field
from pydantic.alias_generators import to_camel
from typing import Annotated, Optional
from datetime import datetime, timezone


# ObjectId values leave the database as strings
PyObjectId = Annotated[str, BeforeValidator(str)]


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDateTime = Annotated[datetime, AfterValidator(as_utc)]


class Genre(str, Enum):
    FICTION = "FICTION"
    NON_FICTION = "NON_FICTION"
    SCIENCE = "SCIENCE"
    HISTORY = "HISTORY"
    BIOGRAPHY = "BIOGRAPHY"
    FANTASY = "FANTASY"


class BookModel(BaseModel):
    id: PyObjectId = Field(alias="_id")
    title: str
    author: str
    genre: Genre
    isbn: str
    description: Optional[str] = None
    copies: int
    available: bool
    created_at: UtcDateTime
    updated_at: UtcDateTime

    class Config:
        populate_by_name = True
        alias_generator = to_camel


class BorrowModel(BaseModel):
    id: PyObjectId = Field(alias="_id")
    book: PyObjectId
    quantity: int
    due_date: UtcDateTime
    created_at: UtcDateTime
    updated_at: UtcDateTime

    class Config:
        populate_by_name = True
        alias_generator = to_camel


class BookBrief(BaseModel):
    title: str
    isbn: str


class BorrowSummary(BaseModel):
    book: BookBrief
    total_quantity: int

    class Config:
        populate_by_name = True
        alias_generator = to_camel


class ClearResult(BaseModel):
    deleted_books: int
    deleted_borrows: int

    class Config:
        populate_by_name = True
        alias_generator = to_camel
