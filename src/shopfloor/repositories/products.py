"""Catalog repository — insert or replace by id."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shopfloor.db.models import Product
from shopfloor.repositories.base import guarded
from shopfloor.schemas.product import ProductCreate, ProductRead


class ProductRepository:
    """Products as relational rows.

    save() without an id inserts a new product. With an id it replaces
    that product's fields, or inserts under that id when it is unknown.
    """

    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        timeout: Optional[float] = None,
    ):
        self._sessions = sessions
        self._timeout = timeout

    async def get_all(self) -> list[ProductRead]:
        async def _get_all() -> list[ProductRead]:
            async with self._sessions() as db:
                result = await db.execute(select(Product).order_by(Product.id))
                return [ProductRead.model_validate(p) for p in result.scalars().all()]

        return await guarded("catalog", _get_all, self._timeout)

    async def save(self, record: ProductCreate) -> ProductRead:
        async def _upsert() -> ProductRead:
            async with self._sessions() as db:
                product = None
                if record.id is not None:
                    product = await db.get(Product, record.id)
                if product is None:
                    product = Product(**record.model_dump(exclude_none=True))
                    db.add(product)
                else:
                    product.title = record.title
                    product.price = record.price
                    product.thumbnail = record.thumbnail
                await db.commit()
                await db.refresh(product)
                return ProductRead.model_validate(product)

        return await guarded("catalog", _upsert, self._timeout)
