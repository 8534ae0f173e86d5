"""SQLite-backed persistence for access codes, products and messages."""
from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

from .models import AccessCode, Message, Product
from .storage import NULLABLE_PRODUCT_FIELDS, PRODUCT_FIELDS, DuplicateCodeError, StorageError


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the storefront database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "storefront.sqlite3").resolve(strict=False)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _parse_id(value: str) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _dump_list(value: Optional[list]) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(list(value))


def _load_list(value: Optional[str]) -> Optional[list]:
    if value is None:
        return None
    return json.loads(value)


class Database:
    """Simple wrapper around SQLite implementing the storefront storage contract."""

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StorageError(f"Unable to open database at {self._path}") from exc
        try:
            with conn:
                yield conn
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as exc:
            raise StorageError(f"SQLite operation failed: {exc}") from exc
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._transaction() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS admin_codes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    code TEXT NOT NULL UNIQUE,
                    label TEXT NOT NULL,
                    is_master INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS products (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    price INTEGER NOT NULL,
                    rating INTEGER NOT NULL DEFAULT 5,
                    image TEXT NOT NULL,
                    images TEXT,
                    description TEXT NOT NULL,
                    is_new INTEGER NOT NULL DEFAULT 0,
                    in_stock INTEGER NOT NULL DEFAULT 1,
                    sizes TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    content TEXT NOT NULL,
                    is_system INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );

                CREATE UNIQUE INDEX IF NOT EXISTS idx_admin_codes_single_master
                    ON admin_codes(is_master) WHERE is_master = 1;
                """
            )

    # ------------------------------------------------------------------
    # Access codes
    # ------------------------------------------------------------------
    def list_access_codes(self) -> List[AccessCode]:
        with self._transaction() as conn:
            rows = conn.execute("SELECT * FROM admin_codes ORDER BY id").fetchall()
        return [self._row_to_access_code(row) for row in rows]

    def get_access_code(self, code_id: str) -> Optional[AccessCode]:
        row_id = _parse_id(code_id)
        if row_id is None:
            return None
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM admin_codes WHERE id = ?", (row_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_access_code(row)

    def find_access_code(self, code: str) -> Optional[AccessCode]:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM admin_codes WHERE code = ?", (code,)).fetchone()
        if row is None:
            return None
        return self._row_to_access_code(row)

    def find_master_code(self) -> Optional[AccessCode]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM admin_codes WHERE is_master = 1 ORDER BY id LIMIT 1"
            ).fetchone()
        if row is None:
            return None
        return self._row_to_access_code(row)

    def create_access_code(self, code: str, label: str, *, is_master: bool = False) -> AccessCode:
        created_at = _current_timestamp()
        try:
            with self._transaction() as conn:
                cursor = conn.execute(
                    "INSERT INTO admin_codes (code, label, is_master, created_at) VALUES (?, ?, ?, ?)",
                    (code, label, int(bool(is_master)), _serialize_datetime(created_at)),
                )
                code_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            raise DuplicateCodeError("An access code with that value already exists") from exc

        return AccessCode(
            id=str(code_id),
            code=code,
            label=label,
            is_master=bool(is_master),
            created_at=created_at,
        )

    def delete_access_code(self, code_id: str) -> bool:
        row_id = _parse_id(code_id)
        if row_id is None:
            return False
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM admin_codes WHERE id = ?", (row_id,))
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------
    def list_products(self) -> List[Product]:
        with self._transaction() as conn:
            rows = conn.execute("SELECT * FROM products ORDER BY id").fetchall()
        return [self._row_to_product(row) for row in rows]

    def get_product(self, product_id: str) -> Optional[Product]:
        row_id = _parse_id(product_id)
        if row_id is None:
            return None
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM products WHERE id = ?", (row_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_product(row)

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
        created_at = _current_timestamp()
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO products (
                    name, category, price, rating, image, images, description,
                    is_new, in_stock, sizes, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    name,
                    category,
                    int(price),
                    int(rating),
                    image,
                    _dump_list(images),
                    description,
                    int(bool(is_new)),
                    int(bool(in_stock)),
                    _dump_list(sizes),
                    _serialize_datetime(created_at),
                ),
            )
            product_id = cursor.lastrowid

        product = self.get_product(str(product_id))
        if product is None:
            raise StorageError("Failed to load product after creation")
        return product

    def update_product(self, product_id: str, **fields: object) -> Optional[Product]:
        row_id = _parse_id(product_id)
        if row_id is None:
            return None

        updates: List[str] = []
        values: List[object] = []
        for column in PRODUCT_FIELDS:
            if column not in fields:
                continue
            value = fields[column]
            if value is None and column not in NULLABLE_PRODUCT_FIELDS:
                continue
            if column in ("images", "sizes"):
                value = _dump_list(value)  # type: ignore[arg-type]
            elif column in ("is_new", "in_stock"):
                value = int(bool(value))
            updates.append(f"{column} = ?")
            values.append(value)

        if not updates:
            return self.get_product(product_id)

        values.append(row_id)
        query = f"UPDATE products SET {', '.join(updates)} WHERE id = ?"

        with self._transaction() as conn:
            cursor = conn.execute(query, values)
            if cursor.rowcount == 0:
                return None

        return self.get_product(product_id)

    def delete_product(self, product_id: str) -> bool:
        row_id = _parse_id(product_id)
        if row_id is None:
            return False
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM products WHERE id = ?", (row_id,))
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------
    def list_messages(self) -> List[Message]:
        with self._transaction() as conn:
            rows = conn.execute("SELECT * FROM messages ORDER BY id").fetchall()
        return [self._row_to_message(row) for row in rows]

    def create_message(self, content: str, *, is_system: bool = False) -> Message:
        created_at = _current_timestamp()
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO messages (content, is_system, created_at) VALUES (?, ?, ?)",
                (content, int(bool(is_system)), _serialize_datetime(created_at)),
            )
            message_id = cursor.lastrowid
        return Message(id=str(message_id), content=content, is_system=bool(is_system), created_at=created_at)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_access_code(self, row: sqlite3.Row) -> AccessCode:
        return AccessCode(
            id=str(row["id"]),
            code=str(row["code"]),
            label=str(row["label"]),
            is_master=bool(row["is_master"]),
            created_at=_parse_datetime(str(row["created_at"])),
        )

    def _row_to_product(self, row: sqlite3.Row) -> Product:
        return Product(
            id=str(row["id"]),
            name=str(row["name"]),
            category=str(row["category"]),
            price=int(row["price"]),
            rating=int(row["rating"]),
            image=str(row["image"]),
            images=_load_list(row["images"]),
            description=str(row["description"]),
            is_new=bool(row["is_new"]),
            in_stock=bool(row["in_stock"]),
            sizes=_load_list(row["sizes"]),
            created_at=_parse_datetime(str(row["created_at"])),
        )

    def _row_to_message(self, row: sqlite3.Row) -> Message:
        return Message(
            id=str(row["id"]),
            content=str(row["content"]),
            is_system=bool(row["is_system"]),
            created_at=_parse_datetime(str(row["created_at"])),
        )


__all__ = ["Database", "resolve_database_path"]
