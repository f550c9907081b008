"""Tests for the MinIO-backed object store with a mocked client."""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from minio.error import MinioException

from photowall.errors import ObjectStoreError
from photowall.services.object_store import MinioObjectStore


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def store(client):
    return MinioObjectStore(client, "valentine-images", "https://cdn.example.com/", concurrency=2)


@pytest.mark.asyncio
async def test_store_puts_object(store, client):
    await store.store("g1/1-abc.jpg", b"data", "image/jpeg")

    client.put_object.assert_called_once()
    kwargs = client.put_object.call_args.kwargs
    assert kwargs["bucket_name"] == "valentine-images"
    assert kwargs["object_name"] == "g1/1-abc.jpg"
    assert kwargs["length"] == 4
    assert kwargs["content_type"] == "image/jpeg"
    assert kwargs["data"].read() == b"data"


@pytest.mark.asyncio
async def test_store_failure_is_wrapped(store, client):
    client.put_object.side_effect = MinioException("denied")
    with pytest.raises(ObjectStoreError) as exc_info:
        await store.store("g1/x.jpg", b"data")
    assert exc_info.value.paths == ["g1/x.jpg"]


def test_public_url_is_pure(store, client):
    assert store.public_url("g1/1-abc.jpg") == "https://cdn.example.com/valentine-images/g1/1-abc.jpg"
    assert store.public_url("g1/a b.jpg") == "https://cdn.example.com/valentine-images/g1/a%20b.jpg"
    assert client.mock_calls == []


@pytest.mark.asyncio
async def test_batch_delete_removes_all(store, client):
    await store.batch_delete(["a", "b", "c"])
    removed = sorted(c.kwargs["object_name"] for c in client.remove_object.call_args_list)
    assert removed == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_batch_delete_reports_failed_paths(store, client):
    def remove(bucket_name, object_name):
        if object_name == "b":
            raise MinioException("boom")

    client.remove_object.side_effect = remove
    with pytest.raises(ObjectStoreError) as exc_info:
        await store.batch_delete(["a", "b", "c"])
    assert exc_info.value.paths == ["b"]
    assert client.remove_object.call_count == 3


@pytest.mark.asyncio
async def test_batch_delete_empty_is_noop(store, client):
    await store.batch_delete([])
    client.remove_object.assert_not_called()


@pytest.mark.asyncio
async def test_list_paths(store, client):
    client.list_objects.return_value = iter([SimpleNamespace(object_name="g1/a.jpg"), SimpleNamespace(object_name="g1/b.jpg")])
    assert await store.list_paths("g1/") == ["g1/a.jpg", "g1/b.jpg"]
    client.list_objects.assert_called_once_with(bucket_name="valentine-images", prefix="g1/", recursive=True)


def test_ensure_bucket_creates_missing(store, client):
    client.bucket_exists.return_value = False
    store.ensure_bucket()
    client.make_bucket.assert_called_once_with(bucket_name="valentine-images")

    client.reset_mock()
    client.bucket_exists.return_value = True
    store.ensure_bucket()
    client.make_bucket.assert_not_called()


@pytest.mark.asyncio
async def test_ping_failure(store, client):
    client.bucket_exists.side_effect = MinioException("unreachable")
    with pytest.raises(ObjectStoreError):
        await store.ping()
