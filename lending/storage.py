from motor.motor_asyncio import AsyncIOMotorClient
import logging
import os
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://mongo:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "library_db")
client: AsyncIOMotorClient = None


async def init_db():
    global client
    client = AsyncIOMotorClient(MONGODB_URL, tz_aware=True)


async def close_db_connection():
    global client
    if client:
        client.close()
        client = None


def get_database():
    return client[MONGODB_DB]


async def ensure_indexes(db):
    # isbn uniqueness is the final authority over the pre-insert lookup
    await db.books.create_index("isbn", unique=True)
    await db.borrows.create_index("book")
    logger.info("Database indexes ensured")
