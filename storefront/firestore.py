"""Firestore-backed persistence mirroring :class:`storefront.database.Database`.

Documents keep the camelCase field names used by the web client
(``isMaster``, ``createdAt``, ...). Firestore has no unique constraints, so
code uniqueness is enforced with a lookup before every insert.
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from .models import AccessCode, Message, Product
from .storage import NULLABLE_PRODUCT_FIELDS, PRODUCT_FIELDS, DuplicateCodeError, StorageError

ACCESS_CODES = "admin_codes"
PRODUCTS = "products"
MESSAGES = "messages"

_PRODUCT_DOCUMENT_FIELDS = {
    "name": "name",
    "category": "category",
    "price": "price",
    "rating": "rating",
    "image": "image",
    "images": "images",
    "description": "description",
    "is_new": "isNew",
    "in_stock": "inStock",
    "sizes": "sizes",
}


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    # JavaScript's toISOString() ends in "Z", which fromisoformat rejects before 3.11.
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)



@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except google_exceptions.GoogleAPIError as exc:
        raise StorageError(f"Firestore failed to {action}: {exc}") from exc


class FirestoreStorage:
    """Storage contract implemented on top of a Firestore client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_credentials(cls, credentials_path: Optional[Path] = None) -> "FirestoreStorage":
        """Initialise the default Firebase app and wrap its Firestore client."""

        if not firebase_admin._apps:
            if credentials_path is not None:
                firebase_admin.initialize_app(credentials.Certificate(str(credentials_path)))
            else:
                firebase_admin.initialize_app()
        return cls(firestore.client())

    def initialize(self) -> None:
        # Collections are created implicitly on first write.
        return None

    # ------------------------------------------------------------------
    # Access codes
    # ------------------------------------------------------------------
    def list_access_codes(self) -> List[AccessCode]:
        with _translate_errors("list access codes"):
            snapshots = list(self._client.collection(ACCESS_CODES).stream())
        codes = [self._snapshot_to_access_code(snapshot) for snapshot in snapshots]
        return sorted(codes, key=lambda code: code.created_at)

    def get_access_code(self, code_id: str) -> Optional[AccessCode]:
        with _translate_errors("load access code"):
            snapshot = self._client.collection(ACCESS_CODES).document(code_id).get()
        if not snapshot.exists:
            return None
        return self._snapshot_to_access_code(snapshot)

    def find_access_code(self, code: str) -> Optional[AccessCode]:
        snapshot = self._first_match(ACCESS_CODES, "code", code)
        if snapshot is None:
            return None
        return self._snapshot_to_access_code(snapshot)

    def find_master_code(self) -> Optional[AccessCode]:
        snapshot = self._first_match(ACCESS_CODES, "isMaster", True)
        if snapshot is None:
            return None
        return self._snapshot_to_access_code(snapshot)

    def create_access_code(self, code: str, label: str, *, is_master: bool = False) -> AccessCode:
        if self.find_access_code(code) is not None:
            raise DuplicateCodeError("An access code with that value already exists")
        if is_master and self.find_master_code() is not None:
            raise DuplicateCodeError("A master access code already exists")

        created_at = _current_timestamp()
        document = {
            "code": code,
            "label": label,
            "isMaster": bool(is_master),
            "createdAt": created_at.isoformat(),
        }
        with _translate_errors("create access code"):
            _, reference = self._client.collection(ACCESS_CODES).add(document)
        return AccessCode(
            id=reference.id,
            code=code,
            label=label,
            is_master=bool(is_master),
            created_at=created_at,
        )

    def delete_access_code(self, code_id: str) -> bool:
        return self._delete_document(ACCESS_CODES, code_id)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------
    def list_products(self) -> List[Product]:
        with _translate_errors("list products"):
            snapshots = list(self._client.collection(PRODUCTS).stream())
        return [self._snapshot_to_product(snapshot) for snapshot in snapshots]

    def get_product(self, product_id: str) -> Optional[Product]:
        with _translate_errors("load product"):
            snapshot = self._client.collection(PRODUCTS).document(product_id).get()
        if not snapshot.exists:
            return None
        return self._snapshot_to_product(snapshot)

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
    ) -> Product:
        document = {
            "name": name,
            "category": category,
            "price": int(price),
            "rating": int(rating),
            "image": image,
            "images": list(images) if images is not None else None,
            "description": description,
            "isNew": bool(is_new),
            "inStock": bool(in_stock),
            "sizes": list(sizes) if sizes is not None else None,
            "createdAt": _current_timestamp().isoformat(),
        }
        with _translate_errors("create product"):
            _, reference = self._client.collection(PRODUCTS).add(document)
            snapshot = reference.get()
        return self._snapshot_to_product(snapshot)

    def update_product(self, product_id: str, **fields: object) -> Optional[Product]:
        updates: Dict[str, object] = {}
        for field in PRODUCT_FIELDS:
            if field not in fields:
                continue
            value = fields[field]
            if value is None and field not in NULLABLE_PRODUCT_FIELDS:
                continue
            updates[_PRODUCT_DOCUMENT_FIELDS[field]] = value

        with _translate_errors("update product"):
            reference = self._client.collection(PRODUCTS).document(product_id)
            snapshot = reference.get()
            if not snapshot.exists:
                return None
            if updates:
                reference.update(updates)
                snapshot = reference.get()
        return self._snapshot_to_product(snapshot)

    def delete_product(self, product_id: str) -> bool:
        return self._delete_document(PRODUCTS, product_id)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------
    def list_messages(self) -> List[Message]:
        with _translate_errors("list messages"):
            snapshots = list(self._client.collection(MESSAGES).stream())
        return [self._snapshot_to_message(snapshot) for snapshot in snapshots]

    def create_message(self, content: str, *, is_system: bool = False) -> Message:
        created_at = _current_timestamp()
        with _translate_errors("create message"):
            _, reference = self._client.collection(MESSAGES).add(
                {"content": content, "isSystem": bool(is_system), "createdAt": created_at.isoformat()}
            )
        return Message(id=reference.id, content=content, is_system=bool(is_system), created_at=created_at)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _first_match(self, collection: str, field: str, value: object) -> Optional[Any]:
        with _translate_errors(f"query {collection}"):
            query = self._client.collection(collection).where(filter=FieldFilter(field, "==", value)).limit(1)
            for snapshot in query.stream():
                return snapshot
        return None

    def _delete_document(self, collection: str, document_id: str) -> bool:
        with _translate_errors(f"delete from {collection}"):
            reference = self._client.collection(collection).document(document_id)
            if not reference.get().exists:
                return False
            reference.delete()
        return True

    def _snapshot_to_access_code(self, snapshot: Any) -> AccessCode:
        data = snapshot.to_dict() or {}
        return AccessCode(
            id=snapshot.id,
            code=str(data["code"]),
            label=str(data.get("label", "")),
            is_master=bool(data.get("isMaster", False)),
            created_at=_parse_datetime(data.get("createdAt")) or _current_timestamp(),
        )

    def _snapshot_to_product(self, snapshot: Any) -> Product:
        data = snapshot.to_dict() or {}
        rating = data.get("rating")
        return Product(
            id=snapshot.id,
            name=str(data["name"]),
            category=str(data["category"]),
            price=int(data["price"]),
            rating=int(rating) if rating is not None else 5,
            image=str(data["image"]),
            images=data.get("images"),
            description=str(data.get("description", "")),
            is_new=bool(data.get("isNew", False)),
            in_stock=data.get("inStock") is not False,
            sizes=data.get("sizes"),
            created_at=_parse_datetime(data.get("createdAt")),
        )

    def _snapshot_to_message(self, snapshot: Any) -> Message:
        data = snapshot.to_dict() or {}
        return Message(
            id=snapshot.id,
            content=str(data.get("content", "")),
            is_system=bool(data.get("isSystem", False)),
            created_at=_parse_datetime(data.get("createdAt")),
        )


__all__ = ["FirestoreStorage"]
