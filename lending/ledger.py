from collections import defaultdict
import logging
from typing import List

from pymongo.errors import PyMongoError

from exceptions.exceptions import (
    BookNotAvailableError,
    BookNotFoundError,
    DatabaseError,
    InsufficientCopiesError,
    InvalidBorrowDataError,
)
from .crud import compute_availability, get_book, to_object_id, utcnow
from .models import BookBrief, BorrowModel, BorrowSummary, as_utc
from .schemas import BorrowCreate

logger = logging.getLogger(__name__)


# attempts before a borrow that keeps losing races gives up
MAX_TAKE_ATTEMPTS = 3


async def take_copies(db, book_id: str, quantity: int) -> int:
    """Atomically remove `quantity` copies from a book.

    Each attempt is a single compare-and-swap write on the copy count seen by
    the preceding read, and it sets `copies` and `available` together, so a
    book never shows a decremented count with a stale flag and concurrent
    borrows can never push the count below zero. Returns the copy
    count left on the book.
    """
    object_id = to_object_id(book_id)
    for attempt in range(1, MAX_TAKE_ATTEMPTS + 1):
        try:
            current = await db.books.find_one({"_id": object_id}, {"copies": 1})
        except PyMongoError as e:
            raise DatabaseError("borrow", str(e))
        if current is None:
            raise BookNotFoundError(book_id)

        copies = current["copies"]
        if copies < quantity:
            raise InsufficientCopiesError(copies, quantity)

        remaining = copies - quantity
        try:
            result = await db.books.update_one(
                {"_id": object_id, "copies": copies},
                {
                    "$set": {
                        "copies": remaining,
                        "available": compute_availability(remaining),
                        "updated_at": utcnow(),
                    }
                },
            )
        except PyMongoError as e:
            logger.error(f"Taking {quantity} copies of book {book_id} failed: {e}")
            raise DatabaseError("borrow", str(e))

        if result.matched_count == 1:
            return remaining
        logger.warning(
            f"Lost borrow race on book {book_id} (attempt {attempt}): "
            f"{copies} copies changed before {quantity} could be taken"
        )

    raise InsufficientCopiesError(copies, quantity)


async def borrow_book(db, borrow: BorrowCreate) -> BorrowModel:
    book = await get_book(db, borrow.book)

    if not book.available:
        logger.warning(f"Borrow rejected, book {book.id} is not available")
        raise BookNotAvailableError(book.title, book.isbn)

    if book.copies < borrow.quantity:
        logger.warning(
            f"Borrow rejected for book {book.id}: {book.copies} copies, "
            f"{borrow.quantity} requested"
        )
        raise InsufficientCopiesError(book.copies, borrow.quantity)

    now = utcnow()
    due_date = as_utc(borrow.due_date)
    if due_date <= now:
        raise InvalidBorrowDataError("Due date must be in the future")

    remaining = await take_copies(db, borrow.book, borrow.quantity)

    document = {
        "book": to_object_id(borrow.book),
        "quantity": borrow.quantity,
        "due_date": due_date,
        "created_at": now,
        "updated_at": now,
    }
    try:
        result = await db.borrows.insert_one(document)
    except PyMongoError as e:
        # the decrement above is already committed and is not reversed
        logger.error(
            f"Borrow record for book {borrow.book} not saved after taking "
            f"{borrow.quantity} copies: {e}"
        )
        raise DatabaseError("borrow", str(e))

    document["_id"] = result.inserted_id
    logger.info(
        f"Borrowed {borrow.quantity} of book {borrow.book}, {remaining} copies left"
    )
    return BorrowModel(**document)


async def get_summary(db) -> List[BorrowSummary]:
    totals = defaultdict(int)
    books = {}
    try:
        async for borrow in db.borrows.find({}, {"book": 1, "quantity": 1}):
            totals[borrow["book"]] += borrow["quantity"]

        if totals:
            async for book in db.books.find(
                {"_id": {"$in": list(totals)}}, {"title": 1, "isbn": 1}
            ):
                books[book["_id"]] = book
    except PyMongoError as e:
        raise DatabaseError("summary", str(e))

    # books deleted after being borrowed drop out of the summary
    return [
        BorrowSummary(
            book=BookBrief(title=books[book_id]["title"], isbn=books[book_id]["isbn"]),
            total_quantity=quantity,
        )
        for book_id, quantity in totals.items()
        if book_id in books
    ]


async def clear_borrows(db) -> int:
    try:
        result = await db.borrows.delete_many({})
    except PyMongoError as e:
        raise DatabaseError("clear", str(e))
    return result.deleted_count
