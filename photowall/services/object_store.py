"""MinIO: хранение бинарных объектов изображений и их публичные URL."""
import abc
import asyncio
import functools
import io
import logging
from collections.abc import Sequence
from urllib.parse import quote

from minio import Minio
from minio.error import MinioException
from urllib3.exceptions import HTTPError as TransportError

from photowall.config import settings
from photowall.errors import ObjectStoreError

logger = logging.getLogger(__name__)


class ObjectStore(abc.ABC):
    """Хранилище объектов по пути (ключу). public_url: чистая функция, не ходит в сеть."""

    @abc.abstractmethod
    async def store(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> None: ...

    @abc.abstractmethod
    def public_url(self, path: str) -> str: ...

    @abc.abstractmethod
    async def batch_delete(self, paths: Sequence[str]) -> None:
        """Удаляет все пути; при ошибке по части путей: ObjectStoreError с их списком."""

    @abc.abstractmethod
    async def list_paths(self, prefix: str) -> list[str]: ...


class MinioObjectStore(ObjectStore):
    def __init__(
        self,
        client: Minio,
        bucket: str,
        public_base_url: str,
        concurrency: int = 4,
    ):
        self.client = client
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.concurrency = max(1, concurrency)

    async def _run(self, fn, *args, **kwargs):
        # Клиент minio синхронный: уводим вызовы в пул потоков
        call = functools.partial(fn, *args, **kwargs)
        return await asyncio.get_running_loop().run_in_executor(None, call)

    def ensure_bucket(self) -> None:
        if not self.client.bucket_exists(bucket_name=self.bucket):
            logger.info("Creating bucket %s", self.bucket)
            self.client.make_bucket(bucket_name=self.bucket)

    async def ping(self) -> None:
        try:
            await self._run(self.client.bucket_exists, bucket_name=self.bucket)
        except (MinioException, TransportError) as e:
            raise ObjectStoreError(f"object store unavailable: {e}") from e

    async def store(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        try:
            await self._run(
                self.client.put_object,
                bucket_name=self.bucket,
                object_name=path,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except (MinioException, TransportError) as e:
            logger.warning("store %s failed: %s", path, e)
            raise ObjectStoreError(f"store {path} failed: {e}", [path]) from e
        logger.info("Stored %s/%s (%d bytes)", self.bucket, path, len(data))

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{self.bucket}/{quote(path)}"

    async def _remove(self, sem: asyncio.Semaphore, path: str) -> None:
        async with sem:
            await self._run(self.client.remove_object, bucket_name=self.bucket, object_name=path)

    async def batch_delete(self, paths: Sequence[str]) -> None:
        paths = list(paths)
        if not paths:
            return
        sem = asyncio.Semaphore(self.concurrency)
        results = await asyncio.gather(
            *(self._remove(sem, p) for p in paths),
            return_exceptions=True,
        )
        failed = []
        for path, res in zip(paths, results):
            if isinstance(res, BaseException):
                if not isinstance(res, (MinioException, TransportError)):
                    raise res
                logger.warning("delete %s failed: %s", path, res)
                failed.append(path)
        if failed:
            raise ObjectStoreError(f"{len(failed)} of {len(paths)} objects not deleted", failed)
        logger.info("Deleted %d objects from %s", len(paths), self.bucket)

    async def list_paths(self, prefix: str) -> list[str]:
        def _list() -> list[str]:
            objects = self.client.list_objects(bucket_name=self.bucket, prefix=prefix, recursive=True)
            return [o.object_name for o in objects]

        try:
            return await self._run(_list)
        except (MinioException, TransportError) as e:
            raise ObjectStoreError(f"list {prefix} failed: {e}") from e


def _client() -> Minio:
    return Minio(
        endpoint=settings.minio_endpoint,
        access_key=settings.minio_access_key,
        secret_key=settings.minio_secret_key,
        secure=settings.minio_secure,
    )


_object_store: MinioObjectStore | None = None


def get_object_store() -> MinioObjectStore:
    global _object_store
    if _object_store is None:
        _object_store = MinioObjectStore(
            _client(),
            settings.minio_bucket,
            settings.get_public_base_url(),
            concurrency=settings.upload_concurrency,
        )
    return _object_store
