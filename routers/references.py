from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from typing import List

from models.hateoas import HATEOASLink, IncomingLinks
from services.exceptions import BadRequestError
from services.references import PropertyReferenceService, get_reference_service, id_from_href
from utils.hateoas import (
    LinkRenderer,
    compact_links,
    compact_resource,
    entity_resource,
    property_resource,
    uri_list,
)

COMPACT_JSON = "application/x-compact+json"
URI_LIST = "text/uri-list"


router = APIRouter(
    tags=["Property References"],
)


def _accepts(request: Request, media_type: str) -> bool:
    return media_type in request.headers.get("accept", "")


async def read_incoming_links(request: Request) -> List[HATEOASLink]:
    """Parse a POST/PUT body: JSON ``{"links": [...]}`` or a text/uri-list."""
    content_type = request.headers.get("content-type", "")
    try:
        body = (await request.body()).decode("utf-8")
    except UnicodeDecodeError:
        raise BadRequestError("Request body is not valid UTF-8")

    if content_type.startswith(URI_LIST):
        hrefs = [
            line.strip()
            for line in body.splitlines()
            if line.strip() and not line.strip().startswith("#")
        ]
        return [HATEOASLink(rel=id_from_href(href), href=href) for href in hrefs]

    try:
        return IncomingLinks.model_validate_json(body or "{}").links
    except ValidationError as exc:
        raise BadRequestError("Request body is not a list of links", details={"errors": exc.errors()})


# -----------------------------------------------------------------------------
# GET Endpoints
# -----------------------------------------------------------------------------

@router.get("/{repository}/{entity_id}/{property_path}", status_code=200, name="follow_property_reference")
async def follow_property_reference(
    request: Request,
    repository: str,
    entity_id: str,
    property_path: str,
    service: PropertyReferenceService = Depends(get_reference_service),
):
    """Follow a property reference; the rendering depends on the Accept header."""
    prop = await service.follow(repository, entity_id, property_path)
    renderer = LinkRenderer(request)

    if _accepts(request, URI_LIST):
        return PlainTextResponse(uri_list(compact_links(renderer, prop)), media_type=URI_LIST)

    if _accepts(request, COMPACT_JSON):
        return JSONResponse(
            compact_resource(renderer, prop).model_dump(mode="json"),
            media_type=COMPACT_JSON,
        )

    resource = property_resource(renderer, prop)
    headers = {}
    if prop.property.is_singular:
        headers["Content-Location"] = renderer.self_link(prop.target, prop.value).href

    return JSONResponse(resource.model_dump(mode="json", exclude_none=True), headers=headers)


@router.get("/{repository}/{entity_id}/{property_path}/{element_id}", status_code=200, name="follow_property_reference_element")
async def follow_property_reference_element(
    request: Request,
    repository: str,
    entity_id: str,
    property_path: str,
    element_id: str,
    service: PropertyReferenceService = Depends(get_reference_service),
):
    """Get one referenced object by its id."""
    prop, element = await service.follow_element(repository, entity_id, property_path, element_id)
    renderer = LinkRenderer(request)

    resource = entity_resource(renderer, prop.target, element)
    self_href = renderer.self_link(prop.target, element).href

    if _accepts(request, URI_LIST):
        return PlainTextResponse(uri_list([HATEOASLink(href=self_href)]), media_type=URI_LIST)

    return JSONResponse(
        resource.model_dump(mode="json", exclude_none=True),
        headers={"Content-Location": self_href},
    )


# -----------------------------------------------------------------------------
# POST/PUT Endpoints
# -----------------------------------------------------------------------------

@router.api_route("/{repository}/{entity_id}/{property_path}", methods=["POST", "PUT"], status_code=201, name="create_property_reference")
async def create_property_reference(
    request: Request,
    repository: str,
    entity_id: str,
    property_path: str,
    service: PropertyReferenceService = Depends(get_reference_service),
):
    """PUT replaces the referenced object(s); POST appends to a collection or map."""
    links = await read_incoming_links(request)
    await service.create(repository, entity_id, property_path, links, request.method)
    return Response(status_code=status.HTTP_201_CREATED)


# -----------------------------------------------------------------------------
# DELETE Endpoints
# -----------------------------------------------------------------------------

@router.delete("/{repository}/{entity_id}/{property_path}", status_code=204, name="delete_property_reference")
async def delete_property_reference(
    repository: str,
    entity_id: str,
    property_path: str,
    service: PropertyReferenceService = Depends(get_reference_service),
):
    await service.delete(repository, entity_id, property_path)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{repository}/{entity_id}/{property_path}/{element_id}", status_code=204, name="delete_property_reference_element")
async def delete_property_reference_element(
    repository: str,
    entity_id: str,
    property_path: str,
    element_id: str,
    service: PropertyReferenceService = Depends(get_reference_service),
):
    await service.delete_element(repository, entity_id, property_path, element_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
