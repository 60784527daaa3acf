from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional, List

from uuid import UUID, uuid4
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from services.database import Base
from models.hateoas import HATEOASLink

# -----------------------------------------------------------------------------
# SQLAlchemy Model
# -----------------------------------------------------------------------------
class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )

# -----------------------------------------------------------------------------
# Pydantic Schemas
# -----------------------------------------------------------------------------
class CustomerRead(BaseModel):
    """Read information about a customer"""
    id: UUID = Field(
        ...,
        description="Internal unique identifier for this customer"
    )
    name: str = Field(
        ...,
        description="Display name of the customer"
    )
    email: Optional[str] = Field(
        None,
        description="Contact email address"
    )
    created_at: Optional[datetime] = Field(
        None,
        description="Timestamp when this customer was created"
    )
    links: Optional[List[HATEOASLink]] = Field(
        None,
        description="HATEOAS links."
    )

    model_config = ConfigDict(from_attributes=True)
