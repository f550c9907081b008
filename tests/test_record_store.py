"""Tests for the record store over SQLite."""
import pytest

from photowall.services.record_store import RecordStore


async def _gallery(records: RecordStore, name: str):
    return await records.insert("galleries", {"uploader_name": name})


@pytest.mark.asyncio
async def test_insert_and_query_with_filters(records):
    a = await _gallery(records, "Ann")
    b = await _gallery(records, "Bob")
    await _gallery(records, "Cid")

    found = await records.query("galleries", {"uploader_name": ["Ann", "Bob"]}, ("uploader_name",))
    assert [g.id for g in found] == [a.id, b.id]

    found = await records.query("galleries", {"id": b.id})
    assert [g.uploader_name for g in found] == ["Bob"]


@pytest.mark.asyncio
async def test_query_descending_order(records):
    for name in ("Ann", "Bob", "Cid"):
        await _gallery(records, name)
    found = await records.query("galleries", order_by=("-uploader_name",))
    assert [g.uploader_name for g in found] == ["Cid", "Bob", "Ann"]


@pytest.mark.asyncio
async def test_batch_insert_and_count(records):
    g = await _gallery(records, "Ann")
    rows = [{"gallery_id": g.id, "image_url": f"http://x/{i}", "file_path": f"{g.id}/{i}.jpg"} for i in range(3)]
    images = await records.batch_insert("images", rows)
    assert len(images) == 3
    assert all(img.id is not None for img in images)
    assert await records.count("images", {"gallery_id": g.id}) == 3
    assert await records.batch_insert("images", []) == []


@pytest.mark.asyncio
async def test_delete_returns_rowcount(records):
    g = await _gallery(records, "Ann")
    assert await records.delete("galleries", {"id": g.id}) == 1
    assert await records.delete("galleries", {"id": g.id}) == 0


@pytest.mark.asyncio
async def test_delete_without_filter_is_refused(records):
    await _gallery(records, "Ann")
    with pytest.raises(ValueError):
        await records.delete("galleries", {})
    assert await records.count("galleries") == 1


@pytest.mark.asyncio
async def test_unknown_collection_and_column(records):
    with pytest.raises(ValueError):
        await records.query("albums")
    with pytest.raises(ValueError):
        await records.query("galleries", {"title": "x"})


@pytest.mark.asyncio
async def test_gallery_delete_cascades_to_children(records):
    g = await _gallery(records, "Ann")
    img = await records.insert("images", {"gallery_id": g.id, "image_url": "http://x/1", "file_path": f"{g.id}/1.jpg"})
    await records.insert("comments", {"image_id": img.id, "commenter_name": "Bob", "comment_text": "hi"})
    await records.insert("likes", {"image_id": img.id, "voter_token": "tok"})

    await records.delete("galleries", {"id": g.id})

    assert await records.count("images") == 0
    assert await records.count("comments") == 0
    assert await records.count("likes") == 0
