from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

import pytest

from app.core.config import settings
from app.core.exceptions import ResourceNotFoundError, ValidationError
from app.db import storage as storage_module
from app.db.storage import ObjectStorage
from tests.fakes import FakeCollection


@pytest.fixture
def files(monkeypatch):
    collection = FakeCollection("uploads.files")
    monkeypatch.setattr(storage_module, "get_database", lambda: {"uploads.files": collection})
    return collection


@pytest.fixture
def store(files):
    storage = ObjectStorage("uploads")
    storage._bucket = MagicMock()
    storage._bucket.upload_from_stream = AsyncMock(return_value="file-1")
    storage._bucket.delete = AsyncMock()
    return storage


@pytest.mark.asyncio
async def test_upload_returns_tokenized_url(store):
    url = await store.upload_bytes("kyc_documents/u1/passport_1700000000000", b"scan", "image/jpeg", {"userId": "u1"})

    parsed = urlparse(url)
    assert parsed.path == f"{settings.API_PREFIX}/files/kyc_documents/u1/passport_1700000000000"

    path, _ = store.bucket.upload_from_stream.call_args.args
    metadata = store.bucket.upload_from_stream.call_args.kwargs["metadata"]
    assert path == "kyc_documents/u1/passport_1700000000000"
    assert metadata["userId"] == "u1"
    assert metadata["contentType"] == "image/jpeg"
    assert parse_qs(parsed.query)["token"] == [metadata["downloadToken"]]


@pytest.mark.asyncio
async def test_empty_and_oversized_uploads(store, monkeypatch):
    with pytest.raises(ValidationError):
        await store.upload_bytes("profile_images/u1/a.png", b"")

    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 0)
    with pytest.raises(ValidationError):
        await store.upload_bytes("profile_images/u1/a.png", b"x")

    store.bucket.upload_from_stream.assert_not_called()


@pytest.mark.asyncio
async def test_download_url_of_latest_revision(store, files):
    files.find_one.return_value = {"_id": "file-2", "metadata": {"downloadToken": "tok-2"}}

    url = await store.get_download_url("profile_images/u1/a.png")

    assert url.endswith("/files/profile_images/u1/a.png?token=tok-2")
    assert files.find_one.call_args.args[0] == {"filename": "profile_images/u1/a.png"}


@pytest.mark.asyncio
async def test_unknown_path(store):
    with pytest.raises(ResourceNotFoundError):
        await store.get_download_url("nope")


@pytest.mark.asyncio
@pytest.mark.parametrize("token", [None, "", "wrong"])
async def test_wrong_token_looks_like_missing_file(store, files, token):
    files.find_one.return_value = {"_id": "file-1", "metadata": {"downloadToken": "right"}}

    with pytest.raises(ResourceNotFoundError):
        await store.open_object("a.png", token)


@pytest.mark.asyncio
async def test_open_object_streams_chunks(store, files):
    files.find_one.return_value = {
        "_id": "file-1",
        "length": 3,
        "metadata": {"downloadToken": "right", "contentType": "image/png"},
    }
    grid_out = MagicMock()
    grid_out.readchunk = AsyncMock(side_effect=[b"ab", b"c", b""])
    store.bucket.open_download_stream = AsyncMock(return_value=grid_out)

    stored = await store.open_object("a.png", "right")

    assert stored["content_type"] == "image/png"
    assert stored["length"] == 3
    assert [chunk async for chunk in stored["chunks"]] == [b"ab", b"c"]


@pytest.mark.asyncio
async def test_delete_removes_every_revision(store, files):
    files.documents = [{"_id": "file-1"}, {"_id": "file-2"}]

    assert await store.delete_object("a.png") is True
    assert [call.args[0] for call in store.bucket.delete.call_args_list] == ["file-1", "file-2"]


@pytest.mark.asyncio
async def test_delete_missing_object(store):
    assert await store.delete_object("a.png") is False
