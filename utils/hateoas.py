from fastapi import Request
from typing import Any, List

from models.hateoas import HATEOASLink, CompactResource, PropertyResource
from services.repositories import RepositoryResource
from services.references import ReferencedProperty


# -----------------------------------------------------------------------------
# Link Renderer
# -----------------------------------------------------------------------------
class LinkRenderer:
    """Builds canonical hrefs for repositories, entities and their properties."""

    def __init__(self, request: Request):
        self.request = request

    def collection(self, repository: RepositoryResource) -> str:
        return str(self.request.url_for("list_entities", repository=repository.path))

    def entity(self, repository: RepositoryResource, entity_id: Any) -> str:
        return str(self.request.url_for(
            "get_entity",
            repository=repository.path,
            entity_id=str(entity_id),
        ))

    def property(self, repository: RepositoryResource, entity_id: Any, property_path: str) -> str:
        return str(self.request.url_for(
            "follow_property_reference",
            repository=repository.path,
            entity_id=str(entity_id),
            property_path=property_path,
        ))

    def element(self, repository: RepositoryResource, entity_id: Any, property_path: str, element_id: Any) -> str:
        return str(self.request.url_for(
            "follow_property_reference_element",
            repository=repository.path,
            entity_id=str(entity_id),
            property_path=property_path,
            element_id=str(element_id),
        ))

    def self_link(self, repository: RepositoryResource, obj: Any) -> HATEOASLink:
        return HATEOASLink(
            rel="self",
            href=self.entity(repository, repository.entity.id_of(obj)),
            method="GET",
        )


# -----------------------------------------------------------------------------
# Entity HATEOAS
# -----------------------------------------------------------------------------
def build_entity_links(renderer: LinkRenderer, repository: RepositoryResource, obj: Any) -> List[HATEOASLink]:
    entity_id = repository.entity.id_of(obj)
    links = [renderer.self_link(repository, obj)]
    for prop in repository.entity.properties.values():
        links.append(
            HATEOASLink(
                rel=prop.rel or prop.name,
                href=renderer.property(repository, entity_id, prop.path),
                method="GET",
            )
        )
    links.append(
        HATEOASLink(
            rel="collection",
            href=renderer.collection(repository),
            method="GET",
        )
    )
    return links


def entity_resource(renderer: LinkRenderer, repository: RepositoryResource, obj: Any, links: List[HATEOASLink] = None):
    """Validate the repository's read schema from ``obj`` and attach its links.

    Without explicit links the resource carries only its self link.
    """
    if links is None:
        links = [renderer.self_link(repository, obj)]

    entity_read = repository.schema.model_validate(obj)
    if links:
        entity_read = entity_read.model_copy(update={"links": links})

    return entity_read


def hateoas_entity(renderer: LinkRenderer, repository: RepositoryResource, obj: Any):
    return entity_resource(renderer, repository, obj, build_entity_links(renderer, repository, obj))


# -----------------------------------------------------------------------------
# Property reference renderings
# -----------------------------------------------------------------------------
def property_resource(renderer: LinkRenderer, prop: ReferencedProperty):
    """Embedded rendering: the entity itself, or a list / mapping of entities."""
    if prop.property.is_collection_like:
        content = [entity_resource(renderer, prop.target, element) for element in prop.value]
    elif prop.property.is_map:
        content = {
            str(key): entity_resource(renderer, prop.target, element)
            for key, element in prop.value.items()
        }
    else:
        return entity_resource(renderer, prop.target, prop.value)

    return PropertyResource(
        content=content,
        links=[
            HATEOASLink(
                rel="self",
                href=renderer.property(prop.repository, prop.owner_id, prop.path),
                method="GET",
            )
        ],
    )


def compact_rel(prop: ReferencedProperty) -> str:
    """repository.entity.property.target-repository, e.g. "orders.order.items.items"."""
    return "%s.%s.%s.%s" % (
        prop.repository.rel,
        prop.repository.item_rel,
        prop.property.rel or prop.path,
        prop.target.rel,
    )


def compact_links(renderer: LinkRenderer, prop: ReferencedProperty) -> List[HATEOASLink]:
    rel = compact_rel(prop)

    if prop.property.is_collection_like:
        return [
            HATEOASLink(
                rel=rel,
                href=renderer.element(prop.repository, prop.owner_id, prop.path, prop.id_of(element)),
                method="GET",
            )
            for element in prop.value
        ]

    if prop.property.is_map:
        return [
            HATEOASLink(
                rel=str(key),
                href=renderer.entity(prop.target, prop.id_of(element)),
                method="GET",
            )
            for key, element in prop.value.items()
        ]

    return [
        HATEOASLink(
            rel=rel,
            href=renderer.property(prop.repository, prop.owner_id, prop.path),
            method="GET",
        )
    ]


def compact_resource(renderer: LinkRenderer, prop: ReferencedProperty) -> CompactResource:
    return CompactResource(links=compact_links(renderer, prop), content=[])


def uri_list(links: List[HATEOASLink]) -> str:
    return "".join(f"{link.href}\n" for link in links)
