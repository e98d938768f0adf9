from unittest.mock import MagicMock, patch

import pytest

from lending import storage


@pytest.mark.asyncio
@patch("lending.storage.AsyncIOMotorClient")
async def test_init_db_uses_timezone_aware_client(mock_client):
    await storage.init_db()
    try:
        mock_client.assert_called_once_with(storage.MONGODB_URL, tz_aware=True)
    finally:
        await storage.close_db_connection()
    mock_client.return_value.close.assert_called_once()


@pytest.mark.asyncio
async def test_ensure_indexes_makes_isbn_unique(test_db):
    indexes = await test_db.books.index_information()
    assert any(
        index.get("unique") and index["key"] == [("isbn", 1)]
        for index in indexes.values()
    )


def test_get_database_uses_configured_name():
    with patch.object(storage, "client", MagicMock()) as mock_client:
        storage.get_database()
    mock_client.__getitem__.assert_called_once_with(storage.MONGODB_DB)
