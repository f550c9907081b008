"""Реляционное хранилище: коллекции galleries / images / comments / likes.

Каждая операция открывает свою сессию и транзакцию; между вызовами
атомарности нет, как и между БД и объектным хранилищем."""
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from photowall.database import async_session_maker
from photowall.errors import RecordStoreError
from photowall.models import Base, Comment, Gallery, Image, Like

logger = logging.getLogger(__name__)

COLLECTIONS: dict[str, type[Base]] = {
    "galleries": Gallery,
    "images": Image,
    "comments": Comment,
    "likes": Like,
}


def _model(collection: str) -> type[Base]:
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f"unknown collection: {collection}") from None


def _column(model: type[Base], name: str):
    col = getattr(model, name, None)
    if col is None:
        raise ValueError(f"{model.__tablename__} has no column {name}")
    return col


def _where(model: type[Base], filters: Mapping[str, Any] | None) -> list:
    clauses = []
    for name, value in (filters or {}).items():
        col = _column(model, name)
        if isinstance(value, (list, tuple, set)):
            clauses.append(col.in_(list(value)))
        else:
            clauses.append(col == value)
    return clauses


def _order(model: type[Base], order_by: Sequence[str]) -> list:
    """Имя колонки; с префиксом "-": по убыванию."""
    out = []
    for item in order_by:
        desc = item.startswith("-")
        col = _column(model, item.lstrip("-"))
        out.append(col.desc() if desc else col.asc())
    return out


class RecordStore:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def insert(self, collection: str, row: Mapping[str, Any]) -> Base:
        model = _model(collection)
        obj = model(**row)
        try:
            async with self._session_maker() as session:
                session.add(obj)
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning("insert into %s failed: %s", collection, e)
            raise RecordStoreError(f"insert into {collection} failed: {e}") from e
        return obj

    async def batch_insert(self, collection: str, rows: Sequence[Mapping[str, Any]]) -> list[Base]:
        """Все строки одной транзакцией: либо вставлены все, либо ни одной."""
        model = _model(collection)
        objs = [model(**row) for row in rows]
        if not objs:
            return []
        try:
            async with self._session_maker() as session:
                session.add_all(objs)
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning("batch insert of %d rows into %s failed: %s", len(objs), collection, e)
            raise RecordStoreError(f"batch insert into {collection} failed: {e}") from e
        return objs

    async def query(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        order_by: Sequence[str] = (),
    ) -> list[Base]:
        model = _model(collection)
        q = select(model).where(*_where(model, filters)).order_by(*_order(model, order_by))
        try:
            async with self._session_maker() as session:
                result = await session.execute(q)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.warning("query %s failed: %s", collection, e)
            raise RecordStoreError(f"query {collection} failed: {e}") from e

    async def delete(self, collection: str, filters: Mapping[str, Any]) -> int:
        """Удаляет строки по фильтру. Пустой фильтр запрещён. Возвращает число удалённых строк."""
        if not filters:
            raise ValueError("refusing to delete without a filter")
        model = _model(collection)
        try:
            async with self._session_maker() as session:
                result = await session.execute(delete(model).where(*_where(model, filters)))
                await session.commit()
                return result.rowcount or 0
        except SQLAlchemyError as e:
            logger.warning("delete from %s failed: %s", collection, e)
            raise RecordStoreError(f"delete from {collection} failed: {e}") from e

    async def count(self, collection: str, filters: Mapping[str, Any] | None = None) -> int:
        model = _model(collection)
        q = select(func.count()).select_from(model).where(*_where(model, filters))
        try:
            async with self._session_maker() as session:
                return (await session.execute(q)).scalar() or 0
        except SQLAlchemyError as e:
            logger.warning("count %s failed: %s", collection, e)
            raise RecordStoreError(f"count {collection} failed: {e}") from e


_record_store: RecordStore | None = None


def get_record_store() -> RecordStore:
    global _record_store
    if _record_store is None:
        _record_store = RecordStore(async_session_maker)
    return _record_store
