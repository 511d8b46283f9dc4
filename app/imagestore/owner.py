"""Owner identities for stored images.

An image belongs either to a store or to a product. A product owner always
carries its parent store id because product images live under their store.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class StoreOwner:
    """Images owned directly by a store."""

    store_id: int

    @property
    def kind(self) -> str:
        return "store"

    def __str__(self) -> str:
        return f"Store{{{self.store_id}}}"


@dataclass(frozen=True)
class ProductOwner:
    """Images owned by a product nested under its store."""

    store_id: int
    product_id: int

    @property
    def kind(self) -> str:
        return "product"

    @property
    def store(self) -> StoreOwner:
        """The parent store owner."""
        return StoreOwner(self.store_id)

    def __str__(self) -> str:
        return f"Product{{{self.store_id},{self.product_id}}}"


Owner = StoreOwner | ProductOwner
