"""Tests for the HTTP client and its like toggle against the app over ASGI."""
import pytest
from httpx import ASGITransport, HTTPStatusError

from photowall.client import PhotowallClient, build_parser, run_command
from photowall.config import settings
from photowall.main import app


@pytest.fixture
async def client(async_client):
    # async_client installs the dependency overrides the app needs
    c = PhotowallClient("http://test", voter_token="tok-client", transport=ASGITransport(app=app))
    yield c
    await c.aclose()


@pytest.fixture
async def uploaded(client, tmp_path):
    paths = []
    for name in ("a.jpg", "b.jpg"):
        p = tmp_path / name
        p.write_bytes(b"img-" + name.encode())
        paths.append(p)
    return await client.create_gallery("Sam", paths)


@pytest.mark.asyncio
async def test_upload_and_feed(client, uploaded):
    assert uploaded["complete"] is True
    assert uploaded["paired"] == 2
    feed = await client.feed()
    assert [g["id"] for g in feed["galleries"]] == [uploaded["gallery_id"]]


@pytest.mark.asyncio
async def test_toggle_like_round_trip(client, uploaded):
    image_id = uploaded["images"][0]["id"]

    state = await client.toggle_like(image_id)
    assert (state.liked, state.count) == (True, 1)
    assert await client.like_count(image_id) == 1

    state = await client.toggle_like(image_id)
    assert (state.liked, state.count) == (False, 0)
    assert await client.like_count(image_id) == 0


@pytest.mark.asyncio
async def test_unlike_command_never_goes_below_zero(client, uploaded):
    image_id = uploaded["images"][0]["id"]
    args = build_parser().parse_args(["unlike", image_id])
    result = await run_command(args, client)
    assert result == {"image_id": image_id, "liked": False, "likes": 0}


@pytest.mark.asyncio
async def test_like_and_comment_commands(client, uploaded):
    image_id = uploaded["images"][1]["id"]

    result = await run_command(build_parser().parse_args(["like", image_id]), client)
    assert result["liked"] is True
    assert result["likes"] == 1

    comment = await run_command(
        build_parser().parse_args(["comment", image_id, "lovely", "--anonymous"]),
        client,
    )
    assert comment["commenter_name"] == "Anonymous"


@pytest.mark.asyncio
async def test_unknown_image_raises_status_error(client):
    with pytest.raises(HTTPStatusError) as exc_info:
        await client.like_count("00000000-0000-0000-0000-000000000000")
    assert exc_info.value.response.status_code == 404


@pytest.mark.asyncio
async def test_voter_token_loaded_from_file(async_client, tmp_path, monkeypatch):
    token_file = tmp_path / "voter_token"
    monkeypatch.setattr(settings, "voter_token_file", str(token_file))

    c = PhotowallClient("http://test", transport=ASGITransport(app=app))
    try:
        assert c.voter_token == token_file.read_text(encoding="utf-8")
        assert c.likes.voter_token == c.voter_token
    finally:
        await c.aclose()
