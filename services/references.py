"""
Resolution and mutation of property references.

A request names ``/{repository}/{id}/{property}``. ``resolve`` turns that
into a ``ReferencedProperty`` (owner object, property descriptor, target
repository and a copy of the current value), and each operation below
reads or rewrites that value. The operations never touch the request or
response; failures are raised as ``services.exceptions`` errors.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from models.hateoas import HATEOASLink
from services.database import get_db
from services.events import LinkEventPublisher, LinkEventType, link_events
from services.exceptions import BadRequestError, MethodNotSupportedError, ResourceNotFoundError
from services.metadata import PersistentProperty
from services.repositories import (
    DELETE,
    FIND,
    SAVE,
    RepositoryRegistry,
    RepositoryResource,
    repositories,
)

logger = logging.getLogger(__name__)


@dataclass
class ReferencedProperty:
    repository: RepositoryResource
    owner: Any
    owner_id: Any
    property: PersistentProperty
    path: str
    target: RepositoryResource
    value: Any

    def id_of(self, element: Any) -> Any:
        return self.target.entity.id_of(element)

    def matches(self, element: Any, element_id: str) -> bool:
        return element is not None and str(self.id_of(element)) == element_id


def id_from_href(href: str) -> str:
    """Last non-empty path segment of a link href."""
    segments = [segment for segment in href.split("?", 1)[0].split("/") if segment]
    if not segments:
        raise BadRequestError(f"Link '{href}' does not identify an object")
    return segments[-1]


class PropertyReferenceService:

    def __init__(
        self,
        db: AsyncSession,
        registry: RepositoryRegistry = repositories,
        events: LinkEventPublisher = link_events,
    ) -> None:
        self.db = db
        self.registry = registry
        self.events = events

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------
    async def resolve(self, repository_path: str, entity_id: str, property_path: str) -> ReferencedProperty:
        repository = self.registry.for_path(repository_path)
        repository.require(FIND, "GET")

        owner = await repository.find_one(self.db, entity_id)
        if owner is None:
            raise ResourceNotFoundError(f"No {repository.item_rel} with id '{entity_id}'")

        prop = repository.entity.property_for_path(property_path)
        if prop is None:
            logger.debug("%s has no property for path '%s'", repository.entity.name, property_path)
            raise ResourceNotFoundError(f"No property '{property_path}' on {repository.item_rel}")

        target = self.registry.for_type(prop.target)
        if target is None:
            logger.debug("%s.%s targets unexported type %s", repository.entity.name, prop.name, prop.target.__name__)
            raise ResourceNotFoundError(f"Property '{property_path}' is not exported")

        return ReferencedProperty(
            repository=repository,
            owner=owner,
            owner_id=repository.entity.id_of(owner),
            property=prop,
            path=property_path,
            target=target,
            value=prop.get(owner),
        )

    async def load_linked(self, target: RepositoryResource, links: Iterable[HATEOASLink]) -> list[tuple[str, Any]]:
        """Resolve each link to its target object, keeping the link rel."""
        loaded = []
        for link in links:
            linked_id = id_from_href(link.href)
            obj = await target.find_one(self.db, linked_id)
            if obj is None:
                raise ResourceNotFoundError(f"Link '{link.href}' does not resolve to a {target.item_rel}")
            loaded.append((link.rel, obj))
        return loaded

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------
    async def follow(self, repository_path: str, entity_id: str, property_path: str) -> ReferencedProperty:
        prop = await self.resolve(repository_path, entity_id, property_path)
        if prop.value is None:
            raise ResourceNotFoundError(f"Property '{property_path}' is not set")
        return prop

    async def follow_element(
        self,
        repository_path: str,
        entity_id: str,
        property_path: str,
        element_id: str,
    ) -> tuple[ReferencedProperty, Any]:
        prop = await self.follow(repository_path, entity_id, property_path)

        if prop.property.is_collection_like:
            candidates = prop.value
        elif prop.property.is_map:
            candidates = prop.value.values()
        else:
            candidates = [prop.value]

        for element in candidates:
            if prop.matches(element, element_id):
                return prop, element

        raise ResourceNotFoundError(f"No element '{element_id}' in property '{property_path}'")

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------
    async def create(
        self,
        repository_path: str,
        entity_id: str,
        property_path: str,
        links: list[HATEOASLink],
        method: str,
    ) -> Any:
        """POST appends/merges, PUT replaces."""
        self.registry.for_path(repository_path).require(SAVE, method)
        prop = await self.resolve(repository_path, entity_id, property_path)
        append = method == "POST"

        if prop.property.is_collection_like:
            current = prop.value if append and prop.value is not None else []
            updated = list(current)
            for _, obj in await self.load_linked(prop.target, links):
                if obj not in updated:
                    updated.append(obj)

        elif prop.property.is_map:
            current = prop.value if append and prop.value is not None else {}
            updated = dict(current)
            for rel, obj in await self.load_linked(prop.target, links):
                updated[rel] = obj

        else:
            if append:
                raise BadRequestError(
                    "Cannot POST a reference to a singular property; use PUT instead."
                )
            if len(links) != 1:
                raise BadRequestError(
                    "Must send exactly 1 link to update a singular property reference."
                )
            [(_, updated)] = await self.load_linked(prop.target, links)

        return await self._apply(
            prop,
            updated,
            LinkEventType.BEFORE_LINK_SAVE,
            LinkEventType.AFTER_LINK_SAVE,
        )

    async def delete(self, repository_path: str, entity_id: str, property_path: str) -> Optional[Any]:
        self.registry.for_path(repository_path).require(DELETE, "DELETE")
        prop = await self.resolve(repository_path, entity_id, property_path)

        if not prop.property.is_singular:
            raise MethodNotSupportedError(
                "DELETE",
                allowed=["GET", "POST", "PUT"],
                reason=f"delete single elements of '{property_path}' by id instead",
            )
        if prop.value is None:
            return None

        return await self._apply(
            prop,
            None,
            LinkEventType.BEFORE_LINK_DELETE,
            LinkEventType.AFTER_LINK_DELETE,
        )

    async def delete_element(
        self,
        repository_path: str,
        entity_id: str,
        property_path: str,
        element_id: str,
    ) -> Optional[Any]:
        self.registry.for_path(repository_path).require(DELETE, "DELETE")
        prop = await self.resolve(repository_path, entity_id, property_path)

        if prop.value is None:
            return None

        if prop.property.is_collection_like:
            updated = [element for element in prop.value if not prop.matches(element, element_id)]
            changed = len(updated) != len(prop.value)
        elif prop.property.is_map:
            updated = {
                key: element
                for key, element in prop.value.items()
                if not prop.matches(element, element_id)
            }
            changed = len(updated) != len(prop.value)
        else:
            updated = None
            changed = prop.matches(prop.value, element_id)

        if not changed:
            logger.debug("No element '%s' in %s.%s; nothing to delete", element_id, prop.repository.item_rel, prop.property.name)
            return None

        return await self._apply(
            prop,
            updated,
            LinkEventType.BEFORE_LINK_DELETE,
            LinkEventType.AFTER_LINK_DELETE,
        )

    async def _apply(
        self,
        prop: ReferencedProperty,
        updated: Any,
        before: LinkEventType,
        after: LinkEventType,
    ) -> Any:
        prop.property.set(prop.owner, updated)

        await self.events.emit(before, prop.owner, prop.value, prop.property.name)
        saved = await prop.repository.save(self.db, prop.owner)
        await self.events.emit(after, saved, prop.value, prop.property.name)

        logger.info(
            "Updated %s %s property '%s' (%s)",
            prop.repository.item_rel,
            prop.owner_id,
            prop.property.name,
            before.value,
        )
        return saved


# -----------------------------------------------------------------------------
# Dependency
# -----------------------------------------------------------------------------
async def get_reference_service(db: AsyncSession = Depends(get_db)) -> PropertyReferenceService:
    return PropertyReferenceService(db)
