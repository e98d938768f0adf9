import os
import logging
from typing import List, Optional
from fastapi import Depends, FastAPI, Query, status
from contextlib import asynccontextmanager
from dotenv import load_dotenv

from exceptions.exceptions import add_exception_handlers
from .storage import close_db_connection, ensure_indexes, get_database, init_db
from .crud import create_book, delete_book, get_book, list_books, update_book
from .ledger import borrow_book, get_summary
from .seed import clear_all, seed_books
from .schemas import (
    ApiResponse,
    BookCreate,
    BookUpdate,
    BorrowCreate,
    SortDirection,
    SortField,
)
from .models import BookModel, BorrowModel, BorrowSummary, ClearResult, Genre

load_dotenv()

# Set up logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.testing = app.state.testing if hasattr(app.state, "testing") else False

    if not app.state.testing:
        logger.info("Initializing database connection")
        await init_db()
        app.state.db = get_database()
        await ensure_indexes(app.state.db)

    yield

    if not app.state.testing:
        logger.info("Closing database connection")
        await close_db_connection()


app = FastAPI(
    title="Library Lending API",
    lifespan=lifespan,
    description="Book catalog and lending endpoints for library staff",
    version="1.0.0",
)

add_exception_handlers(app)


def get_db():
    return app.state.db


@app.get("/")
async def root():
    return {"message": "Welcome to the Library Management API"}


@app.post(
    "/api/books",
    response_model=ApiResponse[BookModel],
    status_code=status.HTTP_201_CREATED,
)
async def add_book(book: BookCreate, db=Depends(get_db)):
    logger.info(f"Received request to add book: {book.title}")
    new_book = await create_book(db, book)
    return ApiResponse(message="Book created successfully", data=new_book)


@app.get("/api/books", response_model=ApiResponse[List[BookModel]])
async def read_books(
    filter: Optional[Genre] = None,
    sort_by: SortField = Query("createdAt", alias="sortBy"),
    sort: SortDirection = "asc",
    limit: int = 10,
    page: int = 1,
    db=Depends(get_db),
):
    books = await list_books(
        db, genre=filter, sort_by=sort_by, sort=sort, limit=limit, page=page
    )
    if not books:
        message = "No books found"
        if filter:
            message += f" for genre '{filter.value}'"
        return ApiResponse(message=message, data=[])
    return ApiResponse(message="Books retrieved successfully", data=books)


@app.get("/api/books/{book_id}", response_model=ApiResponse[BookModel])
async def read_book(book_id: str, db=Depends(get_db)):
    book = await get_book(db, book_id)
    return ApiResponse(message="Book retrieved successfully", data=book)


@app.put("/api/books/{book_id}", response_model=ApiResponse[BookModel])
async def modify_book(book_id: str, book_update: BookUpdate, db=Depends(get_db)):
    updated_book = await update_book(db, book_id, book_update)
    return ApiResponse(message="Book updated successfully", data=updated_book)


@app.delete("/api/books/{book_id}", response_model=ApiResponse[None])
async def remove_book(book_id: str, db=Depends(get_db)):
    await delete_book(db, book_id)
    return ApiResponse(message="Book deleted successfully")


@app.post(
    "/api/borrow",
    response_model=ApiResponse[BorrowModel],
    status_code=status.HTTP_201_CREATED,
)
async def borrow(borrow_request: BorrowCreate, db=Depends(get_db)):
    new_borrow = await borrow_book(db, borrow_request)
    return ApiResponse(message="Book borrowed successfully", data=new_borrow)


@app.get("/api/borrow", response_model=ApiResponse[List[BorrowSummary]])
async def borrowed_books_summary(db=Depends(get_db)):
    summary = await get_summary(db)
    return ApiResponse(
        message="Borrowed books summary retrieved successfully", data=summary
    )


@app.post(
    "/api/seed/books",
    response_model=ApiResponse[List[BookModel]],
    status_code=status.HTTP_201_CREATED,
)
async def seed(db=Depends(get_db)):
    seeded = await seed_books(db)
    return ApiResponse(message="Database seeded with default books", data=seeded)


@app.delete("/api/seed/all", response_model=ApiResponse[ClearResult])
async def delete_all(db=Depends(get_db)):
    cleared = await clear_all(db)
    return ApiResponse(
        message="All books and borrows deleted successfully", data=cleared
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
