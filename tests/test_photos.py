import base64

import httpx
import pytest

from chug_core import (
    HttpObjectBlobStore,
    InlineBlobStore,
    LocalFileBlobStore,
    StorageUnavailable,
    StoredPhoto,
    encode_data_uri,
    resolve_photo_url,
)
from chug_core.validation import validate_photo

JPEG = b"\xff\xd8\xff\xe0fakejpeg"
DATA_URI = encode_data_uri(JPEG, "image/jpeg")


def test_encode_data_uri():
    assert DATA_URI.startswith("data:image/jpeg;base64,")
    assert base64.b64decode(DATA_URI.split(",", 1)[1]) == JPEG


def test_resolve_absent_photo_is_none():
    assert resolve_photo_url(None) is None
    assert resolve_photo_url(StoredPhoto()) is None


def test_resolve_each_representation():
    assert resolve_photo_url(StoredPhoto(image_base64=DATA_URI)) == DATA_URI
    assert (
        resolve_photo_url(StoredPhoto(image_url="https://cdn.example.com/a.jpg"))
        == "https://cdn.example.com/a.jpg"
    )
    assert (
        resolve_photo_url(StoredPhoto(image_path="abc.jpg"), "https://api.example.com/uploads/")
        == "https://api.example.com/uploads/abc.jpg"
    )
    assert resolve_photo_url(StoredPhoto(image_path="/abc.jpg"), "/uploads") == "/uploads/abc.jpg"
    assert resolve_photo_url(StoredPhoto(image_path="abc.jpg")) == "/abc.jpg"


def test_resolve_precedence_inline_then_url_then_path():
    both = StoredPhoto(image_base64=DATA_URI, image_url="https://cdn.example.com/a.jpg")
    assert resolve_photo_url(both) == DATA_URI
    url_and_path = StoredPhoto(image_url="https://cdn.example.com/a.jpg", image_path="b.jpg")
    assert resolve_photo_url(url_and_path, "/uploads/") == "https://cdn.example.com/a.jpg"
    everything = StoredPhoto(
        image_base64=DATA_URI, image_url="https://cdn.example.com/a.jpg", image_path="b.jpg"
    )
    assert resolve_photo_url(everything, "/uploads/") == DATA_URI


def test_resolve_unrecognized_values_fall_through_to_none():
    assert resolve_photo_url(StoredPhoto(image_base64="not-a-data-uri")) is None
    assert resolve_photo_url(StoredPhoto(image_url="javascript:alert(1)")) is None
    assert resolve_photo_url(StoredPhoto(image_path="../etc/passwd")) is None
    # a broken inline value does not hide a valid URL
    fallback = StoredPhoto(image_base64="garbage", image_url="https://cdn.example.com/a.jpg")
    assert resolve_photo_url(fallback) == "https://cdn.example.com/a.jpg"


@pytest.mark.asyncio
async def test_inline_blob_store():
    stored = await InlineBlobStore().store(validate_photo(JPEG, "image/jpeg"))
    assert stored.image_base64 == DATA_URI
    assert stored.image_url is None and stored.image_path is None


@pytest.mark.asyncio
async def test_local_file_blob_store_writes_file(tmp_path):
    blobs = LocalFileBlobStore(tmp_path / "uploads")
    stored = await blobs.store(validate_photo(JPEG, "image/jpeg"))
    assert stored.image_path.endswith(".jpg")
    assert (tmp_path / "uploads" / stored.image_path).read_bytes() == JPEG
    assert resolve_photo_url(stored, "/uploads/") == f"/uploads/{stored.image_path}"


@pytest.mark.asyncio
async def test_local_file_blob_store_failure_is_storage_unavailable(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    blobs = LocalFileBlobStore(blocker / "sub")
    with pytest.raises(StorageUnavailable):
        await blobs.store(validate_photo(JPEG, "image/jpeg"))


@pytest.mark.asyncio
async def test_http_object_blob_store_puts_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["type"] = request.headers["content-type"]
        seen["body"] = request.content
        return httpx.Response(200)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    blobs = HttpObjectBlobStore(
        "https://bucket.example.com/",
        public_base_url="https://cdn.example.com",
        client=client,
    )
    stored = await blobs.store(validate_photo(JPEG, "image/jpeg"))
    await client.aclose()

    assert seen["method"] == "PUT"
    assert seen["url"].startswith("https://bucket.example.com/attempts/")
    assert seen["type"] == "image/jpeg"
    assert seen["body"] == JPEG
    assert stored.image_url.startswith("https://cdn.example.com/attempts/")
    assert resolve_photo_url(stored) == stored.image_url


@pytest.mark.asyncio
async def test_http_object_blob_store_error_is_storage_unavailable():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(503)))
    blobs = HttpObjectBlobStore("https://bucket.example.com", client=client)
    with pytest.raises(StorageUnavailable):
        await blobs.store(validate_photo(JPEG, "image/jpeg"))
    await client.aclose()


@pytest.mark.asyncio
async def test_local_file_blob_store_discard(tmp_path):
    blobs = LocalFileBlobStore(tmp_path)
    stored = await blobs.store(validate_photo(JPEG, "image/jpeg"))
    await blobs.discard(stored)
    assert not (tmp_path / stored.image_path).exists()
    # already gone: still quiet
    await blobs.discard(stored)


@pytest.mark.asyncio
async def test_http_object_blob_store_discard_failure_is_logged_not_raised(caplog):
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500)))
    blobs = HttpObjectBlobStore("https://bucket.example.com", client=client)
    await blobs.discard(StoredPhoto(image_url="https://bucket.example.com/attempts/a.jpg"))
    await client.aclose()
    assert "orphaned photo" in caplog.text
