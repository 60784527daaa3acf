from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Optional, List

from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Table, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship, attribute_keyed_dict

from services.database import Base
from models.hateoas import HATEOASLink
from models.customer import Customer
from models.item import Item

# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------
class OrderStatus(PyEnum):
    """Lifecycle status of an order"""
    OPEN = "open"               # Items may still be added
    PLACED = "placed"           # Submitted by the customer
    SHIPPED = "shipped"         # Left the warehouse
    CANCELLED = "cancelled"     # Cancelled before shipping

# -----------------------------------------------------------------------------
# Association Tables
# -----------------------------------------------------------------------------
order_items = Table(
    "order_items",
    Base.metadata,
    Column("order_id", ForeignKey("orders.id", ondelete="CASCADE"), primary_key=True),
    Column("item_id", ForeignKey("items.id", ondelete="CASCADE"), primary_key=True),
)

# -----------------------------------------------------------------------------
# SQLAlchemy Models
# -----------------------------------------------------------------------------
class OrderSlot(Base):
    """One named slot of an order, pointing at an item (e.g. "gift" -> Item#3)."""
    __tablename__ = "order_slots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    slot: Mapped[str] = mapped_column(String(100), nullable=False)
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False
    )

    item: Mapped[Item] = relationship(lazy="selectin")


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reference: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(OrderStatus),
        default=OrderStatus.OPEN,
        nullable=False
    )
    customer_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    # Property references exposed under /orders/{id}/{property}
    customer: Mapped[Optional[Customer]] = relationship(
        lazy="selectin",
        info={"rel": "buyer"},
    )
    items: Mapped[List[Item]] = relationship(
        secondary=order_items,
        lazy="selectin",
        order_by=Item.id,
    )
    slots: Mapped[dict[str, OrderSlot]] = relationship(
        collection_class=attribute_keyed_dict("slot"),
        cascade="all, delete-orphan",
        lazy="selectin",
        info={"map_key": "slot", "map_value": "item"},
    )

# -----------------------------------------------------------------------------
# Pydantic Schemas
# -----------------------------------------------------------------------------
class OrderRead(BaseModel):
    id: int = Field(
        ...,
        description="Internal unique identifier for this order"
    )
    reference: str = Field(
        ...,
        description="Human-facing order reference"
    )
    status: OrderStatus = Field(
        ...,
        description="Current status of the order"
    )
    created_at: Optional[datetime] = Field(
        None,
        description="Timestamp when this order was created"
    )
    updated_at: Optional[datetime] = Field(
        None,
        description="Timestamp when this order was last updated"
    )
    links: Optional[List[HATEOASLink]] = Field(
        None,
        description="HATEOAS links."
    )

    model_config = ConfigDict(from_attributes=True)
