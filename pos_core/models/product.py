# =============================================================================
# pos_core/models/product.py
# Product catalog entity
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pos_core.models.common import (
    format_decimal,
    format_timestamp,
    is_local_id,
    optional_text,
    parse_timestamp,
    require_text,
    to_decimal,
    to_int,
)


@dataclass
class ProductDraft:
    """A product as entered in the catalog form, before an id is assigned."""
    name: str
    price: Decimal
    category: str
    stock: int = 0
    image_url: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True

    def __post_init__(self):
        self.name = require_text(self.name, "name")
        self.price = to_decimal(self.price, "price")
        self.category = require_text(self.category, "category")
        self.stock = to_int(self.stock, "stock")
        self.image_url = optional_text(self.image_url)
        self.description = optional_text(self.description)
        self.is_active = bool(self.is_active)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "price": format_decimal(self.price),
            "category": self.category,
            "stock": self.stock,
            "image_url": self.image_url,
            "description": self.description,
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ProductDraft:
        return cls(
            name=data.get("name"),
            price=data.get("price"),
            category=data.get("category"),
            stock=data.get("stock", 0),
            image_url=data.get("image_url"),
            description=data.get("description"),
            is_active=data.get("is_active", True),
        )


@dataclass
class Product:
    """A stored catalog product. Removal is a soft delete (is_active=False)."""
    id: str
    name: str
    price: Decimal
    category: str
    stock: int = 0
    image_url: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def is_local(self) -> bool:
        """Created by the local fallback and not yet reconciled with a remote id."""
        return is_local_id(self.id)

    @classmethod
    def from_draft(
        cls,
        draft: ProductDraft,
        product_id: str,
        created_at: Optional[datetime] = None,
    ) -> Product:
        created_at = created_at or datetime.now()
        return cls(
            id=str(product_id),
            name=draft.name,
            price=draft.price,
            category=draft.category,
            stock=draft.stock,
            image_url=draft.image_url,
            description=draft.description,
            is_active=draft.is_active,
            created_at=created_at,
            updated_at=created_at,
        )

    def to_draft(self) -> ProductDraft:
        return ProductDraft(
            name=self.name,
            price=self.price,
            category=self.category,
            stock=self.stock,
            image_url=self.image_url,
            description=self.description,
            is_active=self.is_active,
        )

    def with_updates(self, updated_at: datetime, **changes) -> Product:
        """Return a copy with validated field changes applied."""
        draft = ProductDraft.from_dict({**self.to_draft().to_dict(), **changes})
        return replace(
            self,
            name=draft.name,
            price=draft.price,
            category=draft.category,
            stock=draft.stock,
            image_url=draft.image_url,
            description=draft.description,
            is_active=draft.is_active,
            updated_at=updated_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = self.to_draft().to_dict()
        data["id"] = self.id
        data["created_at"] = format_timestamp(self.created_at)
        data["updated_at"] = format_timestamp(self.updated_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Product:
        draft = ProductDraft.from_dict(data)
        created_at = parse_timestamp(data["created_at"]) if data.get("created_at") else datetime.now()
        updated_at = parse_timestamp(data["updated_at"]) if data.get("updated_at") else created_at
        product = cls.from_draft(draft, require_text(data.get("id"), "id"), created_at)
        product.updated_at = updated_at
        return product
