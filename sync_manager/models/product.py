from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from sync_manager.models.sync import PlatformId


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


class ProductSyncStatus(str, Enum):
    SYNCED = "synced"
    PENDING = "pending"
    ERROR = "error"


class ProductBase(SQLModel):
    """Champs communs d'un produit du catalogue source."""
    sku: str = Field(index=True)      # ex: "SKU001"
    name: str
    category: str = "Sem categoria"
    inventory: int = 0
    price: float = 0.0
    sync_status: ProductSyncStatus = ProductSyncStatus.PENDING
    last_synced_at: Optional[datetime] = None


class Product(ProductBase, table=True):
    __tablename__ = "product"

    id: Optional[int] = Field(default=None, primary_key=True)
    # plateformes où le produit est publié
    platforms: List[PlatformId] = Field(default_factory=list, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)


class ProductCreate(ProductBase):
    platforms: List[PlatformId] = []


class ProductRead(ProductBase):
    id: int
    platforms: List[PlatformId] = []


class ProductUpdate(SQLModel):
    """Payload partiel pour mise à jour."""
    sku: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    inventory: Optional[int] = None
    price: Optional[float] = None
    sync_status: Optional[ProductSyncStatus] = None
    last_synced_at: Optional[datetime] = None
    platforms: Optional[List[PlatformId]] = None
