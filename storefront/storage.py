"""Storage contract implemented by the SQLite and Firestore backends."""

from __future__ import annotations

from typing import List, Optional, Protocol

from .models import AccessCode, Message, Product


class StorageError(RuntimeError):
    """Raised when the backing store cannot complete an operation."""


class DuplicateCodeError(ValueError):
    """Raised when an access code value (or a second master code) already exists."""


class Storage(Protocol):
    def initialize(self) -> None: ...

    # Access codes
    def list_access_codes(self) -> List[AccessCode]: ...

    def get_access_code(self, code_id: str) -> Optional[AccessCode]: ...

    def find_access_code(self, code: str) -> Optional[AccessCode]: ...

    def find_master_code(self) -> Optional[AccessCode]: ...

    def create_access_code(self, code: str, label: str, *, is_master: bool = False) -> AccessCode: ...

    def delete_access_code(self, code_id: str) -> bool: ...

    # Products
    def list_products(self) -> List[Product]: ...

    def get_product(self, product_id: str) -> Optional[Product]: ...

    def create_product(
        self,
        *,
        name: str,
        category: str,
        price: int,
        image: str,
        description: str,
        rating: int = 5,
        images: Optional[List[str]] = None,
        is_new: bool = False,
        in_stock: bool = True,
        sizes: Optional[List[int]] = None,
    ) -> Product: ...

    def update_product(self, product_id: str, **fields: object) -> Optional[Product]: ...

    def delete_product(self, product_id: str) -> bool: ...

    # Messages
    def list_messages(self) -> List[Message]: ...

    def create_message(self, content: str, *, is_system: bool = False) -> Message: ...


PRODUCT_FIELDS = (
    "name",
    "category",
    "price",
    "rating",
    "image",
    "images",
    "description",
    "is_new",
    "in_stock",
    "sizes",
)
NULLABLE_PRODUCT_FIELDS = frozenset({"images", "sizes"})


__all__ = [
    "DuplicateCodeError",
    "NULLABLE_PRODUCT_FIELDS",
    "PRODUCT_FIELDS",
    "Storage",
    "StorageError",
]
