from typing import Any, List, Optional

from pydantic import BaseModel, Field

class HATEOASLink(BaseModel):
    rel: str = "self"   # "self", "collection", or a composed property rel
    href: str           # absolute URL
    method: str = "GET" # "GET", "POST", "PUT", "DELETE"


class IncomingLinks(BaseModel):
    """Request body for POST/PUT on a property reference."""
    links: List[HATEOASLink] = Field(
        default_factory=list,
        description="Links to the objects the property should reference"
    )


class PropertyResource(BaseModel):
    """Embedded rendering of a collection-like or map-like property."""
    content: Any = Field(
        ...,
        description="List of entity resources, or a key -> entity resource mapping"
    )
    links: Optional[List[HATEOASLink]] = Field(
        None,
        description="HATEOAS links."
    )


class CompactResource(BaseModel):
    """Compact rendering: only links, no embedded bodies."""
    links: List[HATEOASLink] = Field(default_factory=list)
    content: List[Any] = Field(default_factory=list)
