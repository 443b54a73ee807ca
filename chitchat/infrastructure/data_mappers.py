# chitchat/infrastructure/data_mappers.py

from typing import Generic, Protocol, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

ModelT_contra = TypeVar("ModelT_contra", contravariant=True)
ModelT = TypeVar("ModelT")


class DataMapper(Protocol[ModelT_contra]):
    async def insert(self, model: ModelT_contra):
        raise NotImplementedError

    async def delete(self, model: ModelT_contra):
        raise NotImplementedError

    async def update(self, model: ModelT_contra):
        raise NotImplementedError


class SQLAlchemyMapper(Generic[ModelT]):
    """Writes one mapped class through an ``AsyncSession``.

    Every table in the service is a flat record keyed by an integer id, so a
    single mapper implementation serves all of them.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert(self, model: ModelT):
        self.session.add(model)
        await self.session.flush()

    async def delete(self, model: ModelT):
        await self.session.delete(model)

    async def update(self, model: ModelT):
        await self.session.merge(model)
