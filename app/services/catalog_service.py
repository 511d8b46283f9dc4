"""Catalog lookups that turn route ids into image owners."""

from sqlalchemy.ext.asyncio import AsyncSession

from app.imagestore.owner import ProductOwner, StoreOwner
from app.models.store import Product, Store
from app.services.base_service import BaseService


class CatalogService(BaseService[Product]):
    """Store and product lookups."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Product)

    async def get_store(self, store_id: int) -> Store | None:
        return await self.db.get(Store, store_id)

    async def store_owner(self, store_id: int) -> StoreOwner | None:
        """Owner for a store id, or None if the store does not exist."""
        store = await self.get_store(store_id)
        return StoreOwner(store.id) if store else None

    async def product_owner(self, product_id: int) -> ProductOwner | None:
        """Owner for a product id; the store id comes from the product row."""
        product = await self.get_by_id(product_id)
        return ProductOwner(product.store_id, product.id) if product else None
