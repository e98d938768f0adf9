from datetime import datetime, timezone
import logging
from typing import List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from exceptions.exceptions import (
    BookNotFoundError,
    DatabaseError,
    DuplicateIsbnError,
    InvalidBookDataError,
    InvalidBookIdError,
)
from .models import BookModel, Genre
from .schemas import BookCreate, BookUpdate

logger = logging.getLogger(__name__)

# API sort keys -> stored field names
SORT_FIELDS = {
    "title": "title",
    "author": "author",
    "genre": "genre",
    "isbn": "isbn",
    "copies": "copies",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def compute_availability(copies: int) -> bool:
    return copies > 0


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(book_id: str) -> ObjectId:
    if not ObjectId.is_valid(book_id):
        raise InvalidBookIdError(book_id)
    return ObjectId(book_id)


def new_book_document(book: BookCreate) -> dict:
    now = utcnow()
    document = book.model_dump(mode="json")
    document["available"] = compute_availability(book.copies)
    document["created_at"] = now
    document["updated_at"] = now
    return document


async def create_book(db, book: BookCreate) -> BookModel:
    try:
        existing = await db.books.find_one({"isbn": book.isbn})
    except PyMongoError as e:
        raise DatabaseError("create", str(e))
    if existing:
        raise DuplicateIsbnError(book.isbn)

    document = new_book_document(book)
    try:
        result = await db.books.insert_one(document)
    except DuplicateKeyError:
        raise DuplicateIsbnError(book.isbn)
    except PyMongoError as e:
        raise DatabaseError("create", str(e))

    document["_id"] = result.inserted_id
    logger.info(f"Created book {result.inserted_id} ({book.isbn})")
    return BookModel(**document)


async def get_book(db, book_id: str) -> BookModel:
    object_id = to_object_id(book_id)
    try:
        book = await db.books.find_one({"_id": object_id})
    except PyMongoError as e:
        raise DatabaseError("fetch", str(e))
    if book is None:
        raise BookNotFoundError(book_id)
    return BookModel(**book)


async def list_books(
    db,
    genre: Optional[Genre] = None,
    sort_by: str = "createdAt",
    sort: str = "asc",
    limit: int = 10,
    page: int = 1,
) -> List[BookModel]:
    limit = max(limit, 1)
    page = max(page, 1)
    skip = (page - 1) * limit

    query = {}
    if genre:
        query["genre"] = Genre(genre).value

    direction = DESCENDING if sort == "desc" else ASCENDING
    try:
        cursor = db.books.find(
            query,
            sort=[(SORT_FIELDS.get(sort_by, sort_by), direction)],
            skip=skip,
            limit=limit,
        )
        return [BookModel(**book) async for book in cursor]
    except PyMongoError as e:
        raise DatabaseError("list", str(e))


async def update_book(db, book_id: str, book_update: BookUpdate) -> BookModel:
    object_id = to_object_id(book_id)
    update_data = book_update.model_dump(
        mode="json", exclude_unset=True, exclude_none=True
    )
    if not update_data:
        raise InvalidBookDataError("No relevant values passed for update.")

    if "copies" in update_data:
        update_data["available"] = compute_availability(update_data["copies"])
    update_data["updated_at"] = utcnow()

    try:
        updated_book = await db.books.find_one_and_update(
            {"_id": object_id},
            {"$set": update_data},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        raise DuplicateIsbnError(update_data["isbn"])
    except PyMongoError as e:
        raise DatabaseError("update", str(e))

    if updated_book is None:
        raise BookNotFoundError(book_id)
    logger.info(f"Updated book {book_id}: {sorted(update_data)}")
    return BookModel(**updated_book)


async def delete_book(db, book_id: str) -> BookModel:
    # outstanding borrows are left in place
    object_id = to_object_id(book_id)
    try:
        deleted = await db.books.find_one_and_delete({"_id": object_id})
    except PyMongoError as e:
        raise DatabaseError("delete", str(e))
    if deleted is None:
        raise BookNotFoundError(book_id)
    logger.info(f"Deleted book {book_id} ({deleted['isbn']})")
    return BookModel(**deleted)
