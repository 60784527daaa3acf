from __future__ import annotations
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import String, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from services.database import Base
from models.hateoas import HATEOASLink

# -----------------------------------------------------------------------------
# SQLAlchemy Model
# -----------------------------------------------------------------------------
class Item(Base):
    __tablename__ = "items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sku: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price_cents: Mapped[int] = mapped_column(Integer, default=0)

# -----------------------------------------------------------------------------
# Pydantic Schemas
# -----------------------------------------------------------------------------
class ItemRead(BaseModel):
    id: int = Field(
        ...,
        description="Internal unique identifier for this item"
    )
    sku: str = Field(
        ...,
        description="Stock keeping unit"
    )
    name: str = Field(
        ...,
        description="Item name"
    )
    description: Optional[str] = Field(
        None,
        description="Free-text description"
    )
    price_cents: int = Field(
        0,
        description="Unit price in cents"
    )
    links: Optional[List[HATEOASLink]] = Field(
        None,
        description="HATEOAS links."
    )

    model_config = ConfigDict(from_attributes=True)
