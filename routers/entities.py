from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict

from config.settings import settings
from services.database import get_db
from services.exceptions import ResourceNotFoundError
from services.repositories import FIND, repositories
from utils.hateoas import LinkRenderer, hateoas_entity


router = APIRouter(
    tags=["Entities"],
)


# -----------------------------------------------------------------------------
# GET Endpoints
# -----------------------------------------------------------------------------

@router.get("/{repository}", status_code=200, name="list_entities")
async def list_entities(
    request: Request,
    repository: str,
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=settings.PAGE_SIZE_LIMIT, description="Maximum number of records to return"),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """List the objects of an exported repository."""
    repo = repositories.for_path(repository)
    repo.require(FIND, "GET")

    renderer = LinkRenderer(request)
    objects = await repo.find_all(db, skip=skip, limit=limit)

    return {
        "data": [
            hateoas_entity(renderer, repo, obj).model_dump(mode="json")
            for obj in objects
        ],
        "skip": skip,
        "limit": limit,
        "links": [{"rel": "self", "href": renderer.collection(repo), "method": "GET"}],
    }


@router.get("/{repository}/{entity_id}", status_code=200, name="get_entity")
async def get_entity(
    request: Request,
    repository: str,
    entity_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Get one object with links to each of its property references"""
    repo = repositories.for_path(repository)
    repo.require(FIND, "GET")

    obj = await repo.find_one(db, entity_id)
    if obj is None:
        raise ResourceNotFoundError(f"No {repo.item_rel} with id '{entity_id}'")

    return hateoas_entity(LinkRenderer(request), repo, obj).model_dump(mode="json")
