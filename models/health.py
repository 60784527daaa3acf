from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class Health(BaseModel):
    status: int
    status_message: str
    timestamp: str = Field(..., description="ISO-8601 timestamp of the check")
    ip_address: str
    echo: Optional[str] = None
    path_echo: Optional[str] = None
