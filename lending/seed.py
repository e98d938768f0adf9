import logging
from typing import List

from pymongo.errors import BulkWriteError, DuplicateKeyError, PyMongoError

from exceptions.exceptions import DatabaseError, DuplicateIsbnError
from .crud import new_book_document
from .ledger import clear_borrows
from .models import BookModel, ClearResult, Genre
from .schemas import BookCreate

logger = logging.getLogger(__name__)

SAMPLE_BOOKS = [
    BookCreate(
        title="The Theory of Everything",
        author="Stephen Hawking",
        genre=Genre.SCIENCE,
        isbn="9780553380163",
        description="An overview of the history of the universe.",
        copies=5,
    ),
    BookCreate(
        title="1984",
        author="George Orwell",
        genre=Genre.FICTION,
        isbn="9780451524935",
        description="A dystopian novel about totalitarian surveillance.",
        copies=3,
    ),
    BookCreate(
        title="Sapiens",
        author="Yuval Noah Harari",
        genre=Genre.HISTORY,
        isbn="9780062316097",
        description="A brief history of humankind.",
        copies=4,
    ),
    BookCreate(
        title="Steve Jobs",
        author="Walter Isaacson",
        genre=Genre.BIOGRAPHY,
        isbn="9781451648539",
        copies=2,
    ),
    BookCreate(
        title="The Hobbit",
        author="J.R.R. Tolkien",
        genre=Genre.FANTASY,
        isbn="9780547928227",
        description="Bilbo Baggins sets out on an unexpected journey.",
        copies=6,
    ),
    BookCreate(
        title="Thinking, Fast and Slow",
        author="Daniel Kahneman",
        genre=Genre.NON_FICTION,
        isbn="9780374533557",
        copies=0,
    ),
]


def duplicate_isbn(error_details: dict) -> str:
    return error_details.get("keyValue", {}).get("isbn", "unknown")


async def seed_books(db, books: List[BookCreate] = SAMPLE_BOOKS) -> List[BookModel]:
    isbns = [book.isbn for book in books]
    try:
        existing = await db.books.find_one({"isbn": {"$in": isbns}})
    except PyMongoError as e:
        raise DatabaseError("seed", str(e))
    if existing:
        raise DuplicateIsbnError(existing["isbn"])

    documents = [new_book_document(book) for book in books]
    try:
        result = await db.books.insert_many(documents)
    except BulkWriteError as e:
        write_errors = e.details.get("writeErrors") or [{}]
        raise DuplicateIsbnError(duplicate_isbn(write_errors[0]))
    except DuplicateKeyError as e:
        raise DuplicateIsbnError(duplicate_isbn(e.details or {}))
    except PyMongoError as e:
        raise DatabaseError("seed", str(e))

    logger.info(f"Seeded {len(documents)} books")
    return [
        BookModel(**{**document, "_id": inserted_id})
        for document, inserted_id in zip(documents, result.inserted_ids)
    ]


async def clear_all(db) -> ClearResult:
    deleted_borrows = await clear_borrows(db)
    try:
        result = await db.books.delete_many({})
    except PyMongoError as e:
        raise DatabaseError("clear", str(e))
    logger.info(
        f"Cleared {result.deleted_count} books and {deleted_borrows} borrows"
    )
    return ClearResult(
        deleted_books=result.deleted_count, deleted_borrows=deleted_borrows
    )
