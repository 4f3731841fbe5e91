from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from crudcore.core.errors import NotFoundError
from crudcore.core.logger import get_logger
from crudcore.entities import PagedResultDTO
from crudcore.helper.converter import merge_onto, project, project_many
from crudcore.repositories import BaseRepository
from crudcore.schemas import PagingQuery
from crudcore.utils.tx import maybe_begin

logger = get_logger(__name__)

ModelT = TypeVar("ModelT")
IdT = TypeVar("IdT")
DtoT = TypeVar("DtoT")
CreateT = TypeVar("CreateT")
UpdateT = TypeVar("UpdateT")
FilterT = TypeVar("FilterT")


class BaseService(Generic[ModelT, IdT, DtoT, CreateT, UpdateT, FilterT]):
    """
    CRUD at the DTO boundary on top of a `BaseRepository`.

    Subclasses only bind the type parameters:

        class CustomerService(BaseService[Customer, int, CustomerDTO,
                                          CustomerCreate, CustomerUpdate, CustomerFilter]):
            pass

        service = CustomerService(BaseRepository(Customer), CustomerDTO)

    Each call runs inside the caller's transaction when there is one, or in
    its own short transaction otherwise.
    """

    def __init__(self, repository: BaseRepository[ModelT, IdT], dto_type: Type[DtoT]) -> None:
        self.repository = repository
        self.dto_type = dto_type
        self._tag = f"[{type(self).__name__}:{repository.model.__name__}]"

    async def get(self, id_: IdT, session: AsyncSession) -> Optional[DtoT]:
        """
        Retrieve one record as a DTO.

        Args:
            id_: Identity of the record.
            session: Active async database session.

        Returns:
            The projected DTO, or None when no record has that identity.

        Raises:
            StoreError: Any storage failure other than "not found".
            ConversionError: The entity cannot be projected onto the DTO.
        """
        logger.debug("%s Get ID=%s", self._tag, id_)
        async with maybe_begin(session):
            try:
                entity = await self.repository.get(id_, session)
            except NotFoundError:
                return None
            return project(entity, self.dto_type)

    async def get_list(
        self,
        filters: Optional[FilterT],
        session: AsyncSession,
        paging: Optional[PagingQuery] = None,
        *,
        options: Any = None,
    ) -> PagedResultDTO[DtoT]:
        """
        List records matching `filters`, optionally paged.

        Args:
            filters: Filter DTO, mapping or SQLAlchemy criteria.
            session: Active async database session.
            paging: Page request; None returns every matching record.
            options: Preload/Join modifiers forwarded to the repository.

        Returns:
            PagedResultDTO whose `total` is the filtered count before paging.
        """
        logger.debug("%s List filters=%s paging=%s", self._tag, filters, paging)
        async with maybe_begin(session):
            total, entities = await self.repository.get_list(filters, session, paging, options=options)
            items = project_many(entities, self.dto_type) if entities else []
        return PagedResultDTO.build(items, total, paging)

    async def create(self, payload: CreateT, session: AsyncSession) -> DtoT:
        """
        Create a record from `payload` and return it with store-generated fields.

        Raises:
            ConversionError: `payload` does not fit the entity.
            StoreError: The insert failed.
        """
        logger.info("%s Creating record", self._tag)
        try:
            async with maybe_begin(session):
                entity = merge_onto(payload, self.repository.model)
                entity = await self.repository.create(entity, session)
                dto = merge_onto(entity, self.dto_type)
        except Exception as e:
            logger.error("%s Create failed: %s", self._tag, e, exc_info=True)
            raise
        logger.info("%s Record created", self._tag)
        return dto

    async def update(self, id_: IdT, payload: UpdateT, session: AsyncSession) -> DtoT:
        """
        Partially update a record: fields absent from `payload` keep their stored values.

        Raises:
            NotFoundError: No record has identity `id_`.
            ConversionError: `payload` does not fit the entity.
            StoreError: The save failed.
        """
        logger.info("%s Updating ID=%s", self._tag, id_)
        try:
            async with maybe_begin(session):
                entity = await self.repository.get(id_, session)
                merge_onto(payload, entity)
                entity = await self.repository.update(entity, session)
                dto = merge_onto(entity, self.dto_type)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("%s Update failed ID=%s: %s", self._tag, id_, e, exc_info=True)
            raise
        return dto

    async def delete(self, id_: IdT, session: AsyncSession) -> bool:
        """Delete a record. Returns False when no record has identity `id_`."""
        logger.info("%s Deleting ID=%s", self._tag, id_)
        async with maybe_begin(session):
            try:
                entity = await self.repository.get(id_, session)
            except NotFoundError:
                return False
            return await self.repository.delete(entity, session)
