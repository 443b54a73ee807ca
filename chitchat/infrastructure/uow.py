# chitchat/infrastructure/uow.py

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Type

from sqlalchemy.ext.asyncio import AsyncSession

from chitchat.infrastructure.data_mappers import DataMapper


class UoWModel:
    def __init__(self, model: Any, uow: "UnitOfWork"):
        self.__dict__["_model"] = model
        self.__dict__["_uow"] = uow

    def __getattr__(self, key):
        return getattr(self._model, key)

    def __setattr__(self, key, value):
        setattr(self._model, key, value)
        # new models are inserted as a whole, only existing ones become dirty
        if id(self._model) not in self._uow.new:
            self._uow.register_dirty(self._model)


class UnitOfWork:
    """Collects the changes of one operation and writes them in one transaction.

    Gateways register new, dirty and deleted models; ``flush`` pushes them to
    the open transaction (so generated ids become available), ``commit`` flushes
    and commits. Nothing is visible to other sessions before ``commit``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.dirty: Dict[int, Any] = {}
        self.new: Dict[int, Any] = {}
        self.deleted: Dict[int, Any] = {}
        self.mappers: Dict[Type, DataMapper] = {}

    def register_dirty(self, model: Any) -> None:
        if isinstance(model, UoWModel):
            model = model._model
        model_id = id(model)
        if model_id not in self.new:
            self.dirty[model_id] = model

    def register_deleted(self, model: Any) -> None:
        if isinstance(model, UoWModel):
            model = model._model
        model_id = id(model)
        if model_id in self.new:
            self.new.pop(model_id)
            return
        elif model_id in self.dirty:
            self.dirty.pop(model_id)

        self.deleted[model_id] = model

    def register_new(self, model: Any) -> UoWModel:
        if isinstance(model, UoWModel):
            model = model._model
        model_id = id(model)
        self.new[model_id] = model
        return UoWModel(model, self)

    async def flush(self) -> None:
        for model in self.new.values():
            await self.mappers[type(model)].insert(model)
        for model in self.dirty.values():
            await self.mappers[type(model)].update(model)
        for model in self.deleted.values():
            await self.mappers[type(model)].delete(model)

        self.new.clear()
        self.dirty.clear()
        self.deleted.clear()
        await self.session.flush()

    async def commit(self) -> None:
        await self.flush()
        await self.session.commit()

    async def rollback(self) -> None:
        self.new.clear()
        self.dirty.clear()
        self.deleted.clear()
        await self.session.rollback()

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator["UnitOfWork"]:
        """Run a block inside a SAVEPOINT.

        Changes registered in the block are flushed before the savepoint is
        released. If the block or the flush fails, only the savepoint's work is
        undone and the error propagates; the outer transaction stays usable.
        """
        await self.flush()
        try:
            async with self.session.begin_nested():
                yield self
                await self.flush()
        except Exception:
            self.new.clear()
            self.dirty.clear()
            self.deleted.clear()
            raise
