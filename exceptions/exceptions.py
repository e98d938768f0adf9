from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

logger = logging.getLogger(__name__)


class LibraryException(Exception):
    """Base exception for library-related errors."""

    status_code = 400


class InvalidBookDataError(LibraryException):
    def __init__(self, message: str):
        super().__init__(f"Invalid book data: {message}")


class InvalidBorrowDataError(LibraryException):
    def __init__(self, message: str):
        super().__init__(f"Invalid borrow data: {message}")


class InvalidBookIdError(LibraryException):
    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(f"Invalid Book ID format: '{book_id}'")


class BookNotFoundError(LibraryException):
    status_code = 404

    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(f"Book not found with ID: '{book_id}'")


class DuplicateIsbnError(LibraryException):
    status_code = 409

    def __init__(self, isbn: str):
        self.isbn = isbn
        super().__init__(f"A book with ISBN '{isbn}' already exists.")


class BookNotAvailableError(LibraryException):
    def __init__(self, title: str, isbn: str):
        self.title = title
        self.isbn = isbn
        super().__init__(
            f"Book '{title}' (ISBN: {isbn}) is not available for borrowing"
        )


class InsufficientCopiesError(LibraryException):
    def __init__(self, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__(
            f"Not enough copies, available: {available}, requested: {requested}"
        )


class DatabaseError(LibraryException):
    status_code = 500

    def __init__(self, operation: str, details: str):
        super().__init__(f"Database error during {operation}: {details}")


def error_body(message: str, error=None) -> dict:
    return {"success": False, "message": message, "error": error}


# Exception handlers
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.error(f"HTTP error {exc.status_code}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"Request validation error: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content=error_body("Validation failed", jsonable_encoder(exc.errors())),
    )


async def response_validation_exception_handler(
    request: Request, exc: ResponseValidationError
):
    logger.error(f"Response validation error: {exc.errors()}")
    return JSONResponse(
        status_code=500,
        content=error_body(
            "The server encountered an unexpected error. Please contact support."
        ),
    )


async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content=error_body("Internal Server Error"),
    )


async def library_exception_handler(request: Request, exc: LibraryException):
    logger.error(f"Library error: {str(exc)}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc)),
    )


def add_exception_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(
        ResponseValidationError, response_validation_exception_handler
    )
    app.add_exception_handler(Exception, general_exception_handler)
    app.add_exception_handler(LibraryException, library_exception_handler)
