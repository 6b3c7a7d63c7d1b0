"""
Row-level access to publishable content.

Every mutation is one statement: an INSERT, a DELETE, or a single UPDATE that
carries all changed columns together. Reads return freshly loaded rows.
"""

import uuid
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from portal.kernel.datastore import store_call
from portal.kernel.models.content import model_for

ModelT = TypeVar("ModelT")


class ContentRepository(Generic[ModelT]):
    """Data store calls for one content model."""

    def __init__(self, session: AsyncSession, model: Type[ModelT]):
        self.session = session
        self.model = model

    @classmethod
    def for_kind(cls, session: AsyncSession, kind) -> "ContentRepository":
        return cls(session, model_for(kind))

    @store_call
    async def get(self, record_id: uuid.UUID) -> Optional[ModelT]:
        """Load a row by id, always from the store."""
        return await self.session.get(self.model, record_id, populate_existing=True)

    @store_call
    async def insert(self, record: ModelT) -> ModelT:
        self.session.add(record)
        await self.session.flush()
        await self.session.refresh(record)
        return record

    @store_call
    async def delete(self, record_id: uuid.UUID) -> bool:
        result = await self.session.execute(
            delete(self.model).where(self.model.id == record_id)
        )
        return result.rowcount > 0

    @store_call
    async def update_fields(
        self,
        record_id: uuid.UUID,
        values: Dict[str, Any],
        *,
        where: Iterable[ColumnElement[bool]] = (),
    ) -> bool:
        """
        Apply all changes in one UPDATE.

        Extra where clauses turn the write into a compare-and-set; returns
        False when no row matched.
        """
        statement = (
            update(self.model)
            .where(self.model.id == record_id, *where)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        return result.rowcount > 0

    @store_call
    async def increment_views(self, record_id: uuid.UUID) -> None:
        """views = views + 1, computed by the store."""
        await self.session.execute(
            update(self.model)
            .where(self.model.id == record_id)
            .values(views=self.model.views + 1)
            .execution_options(synchronize_session=False)
        )

    @store_call
    async def list_page(
        self,
        *,
        filters: Sequence[ColumnElement[bool]] = (),
        order_by: Sequence[Any] = (),
        offset: int = 0,
        limit: Optional[int] = None,
        query: Optional[Select] = None,
    ) -> Tuple[List[ModelT], int]:
        """
        Filtered, ordered page plus the total matching count.

        query lets a caller start from a select with joins; filters are
        applied to both the page and the count.
        """
        base = query if query is not None else select(self.model)
        if filters:
            base = base.where(*filters)

        count_query = select(func.count()).select_from(base.order_by(None).subquery())
        total = (await self.session.execute(count_query)).scalar_one()

        page_query = base.order_by(*order_by).offset(offset).execution_options(populate_existing=True)
        if limit is not None:
            page_query = page_query.limit(limit)
        result = await self.session.execute(page_query)
        return list(result.scalars().all()), total
