"""Domain models shared by the storage backends and the HTTP layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class AccessCode:
    """A secret granting access to the admin panel."""

    id: str
    code: str
    label: str
    is_master: bool
    created_at: datetime


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    category: str
    price: int
    image: str
    description: str
    rating: int = 5
    images: Optional[List[str]] = None
    is_new: bool = False
    in_stock: bool = True
    sizes: Optional[List[int]] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Message:
    id: str
    content: str
    is_system: bool
    created_at: Optional[datetime] = None


__all__ = ["AccessCode", "Message", "Product"]
