"""HTTP-клиент photowall: лента, загрузка галереи, лайки и комментарии.

Токен голосующего создаётся при первом запуске и хранится в settings.voter_token_file.
Флаг «я лайкнул» живёт только в LikeSession текущего процесса.

Usage:
    photowall-client feed
    photowall-client upload "Sam" a.jpg b.jpg
    photowall-client like <image-id>
    photowall-client comment <image-id> "nice" --anonymous
"""
import argparse
import asyncio
import json
import logging
import mimetypes
from collections.abc import Sequence
from pathlib import Path
from uuid import UUID

import httpx

from photowall.config import settings
from photowall.services.engagement import LikeSession, LikeState
from photowall.services.voter_token import load_or_create_voter_token

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class PhotowallClient:
    def __init__(
        self,
        base_url: str | None = None,
        voter_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ):
        self.voter_token = voter_token or load_or_create_voter_token()
        self._http = httpx.AsyncClient(
            base_url=(base_url or settings.api_url).rstrip("/"),
            transport=transport,
            timeout=timeout,
        )
        self.likes = LikeSession(self, self.voter_token)

    async def __aenter__(self) -> "PhotowallClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        r = await self._http.request(method, f"{API_PREFIX}{path}", **kwargs)
        if r.is_error:
            logger.warning("%s %s -> %d: %s", method, path, r.status_code, r.text)
        r.raise_for_status()
        return r

    async def feed(self) -> dict:
        return (await self._request("GET", "/feed")).json()

    async def create_gallery(self, uploader_name: str, files: Sequence[Path]) -> dict:
        """207 (частичная загрузка) не исключение: смотрите complete и failures в ответе."""
        parts = [
            ("files", (p.name, p.read_bytes(), mimetypes.guess_type(p.name)[0] or "application/octet-stream"))
            for p in files
        ]
        r = await self._request("POST", "/galleries", data={"uploader_name": uploader_name}, files=parts)
        return r.json()

    async def like(self, image_id: UUID, voter_token: str) -> int:
        r = await self._request("POST", f"/images/{image_id}/likes", headers={"X-Voter-Token": voter_token})
        return r.json()["likes"]

    async def unlike(self, image_id: UUID, voter_token: str) -> int:
        r = await self._request("DELETE", f"/images/{image_id}/likes", headers={"X-Voter-Token": voter_token})
        return r.json()["likes"]

    async def like_count(self, image_id: UUID) -> int:
        return (await self._request("GET", f"/images/{image_id}/likes")).json()["likes"]

    async def toggle_like(self, image_id: UUID) -> LikeState:
        """Лайк, если в этой сессии ещё не лайкали, иначе снятие лайка. Счётчик не уходит ниже 0."""
        return await self.likes.toggle(image_id, await self.like_count(image_id))

    async def comment(
        self,
        image_id: UUID,
        text: str,
        name: str | None = None,
        anonymous: bool = False,
    ) -> dict:
        body = {"comment_text": text, "commenter_name": name, "is_anonymous": anonymous}
        return (await self._request("POST", f"/images/{image_id}/comments", json=body)).json()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="photowall-client", description="Photowall API client")
    parser.add_argument("--api-url", default=None, help="API URL (default: API_URL from .env)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("feed", help="Print all galleries, newest first")

    upload = sub.add_parser("upload", help="Create a gallery from local files")
    upload.add_argument("uploader_name")
    upload.add_argument("files", nargs="+", type=Path)

    like = sub.add_parser("like", help="Like an image")
    like.add_argument("image_id", type=UUID)

    unlike = sub.add_parser("unlike", help="Remove this client's like from an image")
    unlike.add_argument("image_id", type=UUID)

    comment = sub.add_parser("comment", help="Comment on an image")
    comment.add_argument("image_id", type=UUID)
    comment.add_argument("text")
    comment.add_argument("--name", default=None)
    comment.add_argument("--anonymous", action="store_true")
    return parser


async def run_command(args: argparse.Namespace, client: PhotowallClient) -> dict:
    if args.command == "feed":
        return await client.feed()
    if args.command == "upload":
        return await client.create_gallery(args.uploader_name, args.files)
    if args.command in ("like", "unlike"):
        # Новый процесс ничего не знает о прошлых лайках: для unlike считаем, что лайк был
        client.likes.liked[args.image_id] = args.command == "unlike"
        state = await client.toggle_like(args.image_id)
        return {"image_id": str(args.image_id), "liked": state.liked, "likes": state.count}
    if args.command == "comment":
        return await client.comment(args.image_id, args.text, args.name, args.anonymous)
    raise ValueError(f"unknown command: {args.command}")


async def _main(args: argparse.Namespace) -> dict:
    async with PhotowallClient(args.api_url) as client:
        return await run_command(args, client)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        result = asyncio.run(_main(args))
    except httpx.HTTPError as e:
        print(f"Error: {e}")
        return 1
    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
