from typing import Any, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapper, RelationshipProperty, selectinload
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.sql.selectable import Join as JoinClause

from crudcore.core.errors import NotFoundError, StoreError
from crudcore.core.logger import get_logger
from crudcore.core.settings import settings
from crudcore.helper.converter import as_mapping
from crudcore.schemas import PagingQuery
from crudcore.utils.tx import maybe_begin
from .query_options import Join, Preload, normalize_query_options

logger = get_logger(__name__)

ModelT = TypeVar("ModelT")
IdT = TypeVar("IdT")

_SORT_DIRECTIONS = ("asc", "desc")


class BaseRepository(Generic[ModelT, IdT]):
    """
    Generic data access for one mapped class.

    Every operation receives the caller's session; transactions belong to the
    caller except in `create_many`, which opens one per batch when the session
    has none.
    """

    def __init__(self, model: Type[ModelT]):
        self.model = model
        self.mapper: Mapper = sa_inspect(model)
        self._tag = f"[BaseRepository:{model.__name__}]"

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _column(self, name: str):
        if name not in self.mapper.column_attrs:
            raise StoreError(f"Unknown field '{name}' on {self.model.__name__}", operation="query")
        return getattr(self.model, name)

    @staticmethod
    def _relationship(mapper: Mapper, name: str) -> RelationshipProperty:
        if name not in mapper.relationships:
            raise StoreError(f"Unknown relation '{name}' on {mapper.class_.__name__}", operation="query")
        return mapper.relationships[name]

    def _pk_clause(self, id_: IdT) -> ColumnElement[bool]:
        pk_cols = self.mapper.primary_key
        if len(pk_cols) == 1:
            return pk_cols[0] == id_
        values = tuple(id_)  # composite key
        if len(values) != len(pk_cols):
            raise StoreError(
                f"{self.model.__name__} expects {len(pk_cols)} key values, got {len(values)}",
                operation="get",
            )
        clause = pk_cols[0] == values[0]
        for col, value in zip(pk_cols[1:], values[1:]):
            clause = clause & (col == value)
        return clause

    def _association_loaders(self) -> List[Any]:
        return [selectinload(getattr(self.model, rel.key)) for rel in self.mapper.relationships]

    def _preload(self, path: str):
        mapper, loader = self.mapper, None
        for part in path.split("."):
            rel = self._relationship(mapper, part)
            attr = getattr(mapper.class_, part)
            loader = selectinload(attr) if loader is None else loader.selectinload(attr)
            mapper = rel.mapper
        return loader

    def _criteria(self, filters: Any) -> List[ColumnElement[bool]]:
        if filters is None:
            return []
        if isinstance(filters, ColumnElement):
            return [filters]
        if isinstance(filters, (list, tuple)) and all(isinstance(f, ColumnElement) for f in filters):
            return list(filters)

        clauses: List[ColumnElement[bool]] = []
        for name, value in as_mapping(filters, only_set=True).items():
            col = self._column(name)
            if value is None:
                clauses.append(col.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(col.in_(list(value)))
            else:
                clauses.append(col == value)
        return clauses

    def _order_clauses(self, paging: PagingQuery) -> List[Any]:
        order: List[Any] = []
        if paging.sort_field:
            direction = paging.sort_direction.strip().lower()
            if direction not in _SORT_DIRECTIONS:
                raise StoreError(f"Invalid sort direction '{paging.sort_direction}'", operation="query")
            col = self._column(paging.sort_field)
            order.append(col.asc() if direction == "asc" else col.desc())
        # tiebreaker so pages never overlap
        order.extend(col.asc() for col in self.mapper.primary_key)
        return order

    async def _reload_columns(self, entity: ModelT, session: AsyncSession) -> None:
        await session.refresh(entity, attribute_names=[p.key for p in self.mapper.column_attrs])

    async def _paginate(
        self,
        query: Select,
        session: AsyncSession,
        paging: Optional[PagingQuery],
    ) -> Tuple[int, List[ModelT]]:
        # a join along a to-many relation repeats the entity once per related row
        if any(isinstance(f, JoinClause) for f in query.get_final_froms()):
            query = query.distinct()
        keys = query.with_only_columns(*self.mapper.primary_key).distinct().order_by(None).subquery()
        total = int(await session.scalar(select(func.count()).select_from(keys)) or 0)

        if paging is not None:
            query = query.order_by(*self._order_clauses(paging)).offset(paging.offset).limit(paging.limit)

        query = query.options(*self._association_loaders())
        items = list((await session.execute(query)).scalars().all())
        return total, items

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    async def get(self, id_: IdT, session: AsyncSession) -> ModelT:
        stmt: Select = select(self.model).where(self._pk_clause(id_)).options(*self._association_loaders())
        try:
            res = await session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("%s get id=%s error: %s", self._tag, id_, e, exc_info=True)
            raise StoreError(str(e), operation="get") from e

        entity = res.scalars().first()
        if entity is None:
            logger.debug("%s get id=%s not found", self._tag, id_)
            raise NotFoundError(self.model.__name__, id_)
        return entity

    async def get_list(
        self,
        filters: Any,
        session: AsyncSession,
        paging: Optional[PagingQuery] = None,
        *,
        options: Any = None,
    ) -> Tuple[int, List[ModelT]]:
        query: Select = select(self.model).where(*self._criteria(filters))
        query = self.query_builder(query, options)
        try:
            return await self._paginate(query, session, paging)
        except SQLAlchemyError as e:
            logger.error("%s get_list error: %s", self._tag, e, exc_info=True)
            raise StoreError(str(e), operation="get_list") from e

    async def get_list_with_query(
        self,
        query: Select,
        session: AsyncSession,
        paging: Optional[PagingQuery] = None,
        *,
        options: Any = None,
    ) -> Tuple[int, List[ModelT]]:
        query = self.query_builder(query, options)
        try:
            return await self._paginate(query, session, paging)
        except SQLAlchemyError as e:
            logger.error("%s get_list_with_query error: %s", self._tag, e, exc_info=True)
            raise StoreError(str(e), operation="get_list_with_query") from e

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    async def create(self, entity: ModelT, session: AsyncSession) -> ModelT:
        session.add(entity)
        try:
            await session.flush()
            await self._reload_columns(entity, session)
        except SQLAlchemyError as e:
            logger.error("%s create error: %s", self._tag, e, exc_info=True)
            raise StoreError(str(e), operation="create") from e
        return entity

    async def create_many(
        self,
        entities: Sequence[ModelT],
        session: AsyncSession,
        batch_size: Optional[int] = None,
    ) -> int:
        """
        Insert `entities` in batches of `batch_size` (<= 0 means a single batch).

        Without a caller transaction each batch commits on its own, so a failure
        leaves earlier batches committed.
        """
        items = list(entities)
        size = settings.DEFAULT_BATCH_SIZE if batch_size is None else batch_size
        if size <= 0:
            size = max(len(items), 1)

        total = 0
        for start in range(0, len(items), size):
            batch = items[start:start + size]
            try:
                async with maybe_begin(session):
                    session.add_all(batch)
                    await session.flush()
            except SQLAlchemyError as e:
                logger.error(
                    "%s create_many batch at %s failed after %s rows: %s",
                    self._tag, start, total, e, exc_info=True,
                )
                raise StoreError(str(e), operation="create_many") from e
            total += len(batch)
        logger.debug("%s create_many inserted=%s", self._tag, total)
        return total

    async def update(self, entity: ModelT, session: AsyncSession) -> ModelT:
        try:
            if entity not in session:
                entity = await session.merge(entity)
            await session.flush()
            await self._reload_columns(entity, session)
        except SQLAlchemyError as e:
            logger.error("%s update error: %s", self._tag, e, exc_info=True)
            raise StoreError(str(e), operation="update") from e
        return entity

    async def delete(self, entity: ModelT, session: AsyncSession) -> bool:
        try:
            await session.delete(entity)
            await session.flush()
        except SQLAlchemyError as e:
            logger.error("%s delete error: %s", self._tag, e, exc_info=True)
            raise StoreError(str(e), operation="delete") from e
        return True

    # ------------------------------------------------------------------
    # query augmentation
    # ------------------------------------------------------------------
    def query_builder(self, query: Select, options: Any = None) -> Select:
        """Apply Preload/Join modifiers on top of `query`. Never removes existing clauses."""
        preloaded: set[str] = set()
        joined: set[str] = set()
        for opt in normalize_query_options(options):
            if isinstance(opt, Preload):
                for name in opt.names:
                    if name not in preloaded:
                        preloaded.add(name)
                        query = query.options(self._preload(name))
            elif isinstance(opt, Join):
                for name in opt.names:
                    if name not in joined:
                        joined.add(name)
                        self._relationship(self.mapper, name)
                        query = query.outerjoin(getattr(self.model, name))
        return query
