import httpx
import pytest

from bbe_admin.integrations.blob_storage import (
    MAX_UPLOAD_BYTES,
    BlobStorageClient,
    BlobStorageError,
    BlobValidationError,
    is_blob_url,
    validate_image,
)

OLD_URL = "https://store.public.blob.vercel-storage.com/old.png"


def test_validate_image_size_limit():
    validate_image("image/png", MAX_UPLOAD_BYTES)
    with pytest.raises(BlobValidationError, match="File size exceeds 3MB limit"):
        validate_image("image/png", MAX_UPLOAD_BYTES + 1)


@pytest.mark.parametrize("content_type", ["image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"])
def test_validate_image_allowed_types(content_type):
    validate_image(content_type, 10)


@pytest.mark.parametrize("content_type", ["image/svg+xml", "application/pdf", None])
def test_validate_image_rejects_other_types(content_type):
    with pytest.raises(BlobValidationError, match="Invalid file type"):
        validate_image(content_type, 10)


def test_is_blob_url():
    assert is_blob_url(OLD_URL)
    assert not is_blob_url("https://cdn.example.com/a.png")
    assert not is_blob_url("")
    assert not is_blob_url(None)


@pytest.mark.asyncio
async def test_upload(blob_storage, blob_backend):
    result = await blob_storage.upload("hero image.png", b"\x89PNG", "image/png")

    request = blob_backend.uploads[0]
    assert request.method == "PUT"
    assert request.url.raw_path == b"/hero%20image.png"
    assert request.headers["authorization"] == "Bearer rw-token"
    assert request.headers["x-content-type"] == "image/png"
    assert request.content == b"\x89PNG"
    assert result["url"].startswith("https://store.public.blob.vercel-storage.com/")
    assert result["contentType"] == "image/png"
    assert blob_backend.deleted == []


@pytest.mark.asyncio
async def test_upload_replaces_old_blob(blob_storage, blob_backend):
    await blob_storage.upload("new.png", b"data", "image/png", old_url=OLD_URL)
    assert blob_backend.deleted == [OLD_URL]


@pytest.mark.asyncio
async def test_upload_leaves_foreign_old_url_alone(blob_storage, blob_backend):
    await blob_storage.upload("new.png", b"data", "image/png", old_url="https://cdn.example.com/a.png")
    assert blob_backend.deleted == []


@pytest.mark.asyncio
async def test_upload_continues_when_old_delete_fails(blob_storage, blob_backend, mocker):
    mocker.patch.object(blob_storage, "delete", side_effect=BlobStorageError("gone"))
    result = await blob_storage.upload("new.png", b"data", "image/png", old_url=OLD_URL)
    assert result["url"]
    assert len(blob_backend.uploads) == 1


@pytest.mark.asyncio
async def test_upload_rejects_invalid_file_before_network(blob_storage, blob_backend):
    with pytest.raises(BlobValidationError):
        await blob_storage.upload("doc.pdf", b"%PDF", "application/pdf", old_url=OLD_URL)
    assert blob_backend.uploads == []
    assert blob_backend.deleted == []


@pytest.mark.asyncio
async def test_upload_requires_token(blob_backend):
    storage = BlobStorageClient("", base_url="https://blob.test")
    with pytest.raises(BlobStorageError, match="token"):
        await storage.upload("a.png", b"x", "image/png")


@pytest.mark.asyncio
async def test_delete_only_blob_urls(blob_storage, blob_backend):
    with pytest.raises(BlobValidationError, match="Can only delete Vercel Blob images"):
        await blob_storage.delete("https://cdn.example.com/a.png")

    await blob_storage.delete(OLD_URL)
    assert blob_backend.deleted == [OLD_URL]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["<html>ok</html>", "[]"])
async def test_upload_rejects_non_object_response(body):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text=body))
    storage = BlobStorageClient("rw-token", base_url="https://blob.test", transport=transport)

    with pytest.raises(BlobStorageError, match="Invalid response from blob storage"):
        await storage.upload("a.png", b"123", "image/png")
