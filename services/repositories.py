from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from services.exceptions import MethodNotSupportedError, ResourceNotFoundError
from services.metadata import PersistentEntity, describe_entity

logger = logging.getLogger(__name__)


# Repository capabilities, checked before each operation
FIND = "find"
SAVE = "save"
DELETE = "delete"
ALL_METHODS = frozenset({FIND, SAVE, DELETE})

HTTP_METHODS_FOR = {
    FIND: ("GET",),
    SAVE: ("POST", "PUT"),
    DELETE: ("DELETE",),
}


@dataclass(frozen=True)
class RepositoryResource:
    """An exported repository: URL path, relation names and its entity metadata."""
    path: str
    rel: str
    item_rel: str
    entity: PersistentEntity
    schema: type[BaseModel]
    methods: frozenset[str] = ALL_METHODS

    @property
    def model(self) -> type:
        return self.entity.type

    def supports(self, method: str) -> bool:
        return method in self.methods

    def allowed_http_methods(self) -> list[str]:
        return [verb for method in self.methods for verb in HTTP_METHODS_FOR[method]]

    def require(self, method: str, http_method: str) -> None:
        if not self.supports(method):
            raise MethodNotSupportedError(
                http_method,
                allowed=self.allowed_http_methods(),
                reason=f"repository '{self.path}' does not export {method}",
            )

    async def find_one(self, db: AsyncSession, raw_id: Any) -> Optional[Any]:
        entity_id = self.entity.convert_id(raw_id)
        if entity_id is None:
            return None
        return await db.get(self.model, entity_id)

    async def find_all(self, db: AsyncSession, skip: int = 0, limit: int = 100) -> Sequence[Any]:
        id_column = getattr(self.model, self.entity.id_attribute)
        result = await db.execute(
            select(self.model).order_by(id_column).offset(skip).limit(limit)
        )
        return result.scalars().all()

    async def save(self, db: AsyncSession, obj: Any) -> Any:
        db.add(obj)
        await db.commit()
        return obj


class RepositoryRegistry:
    """Lookup of exported repositories by URL path or by domain type."""

    def __init__(self) -> None:
        self._by_path: dict[str, RepositoryResource] = {}
        self._by_type: dict[type, RepositoryResource] = {}

    def register(
        self,
        model: type,
        *,
        path: str,
        schema: type[BaseModel],
        rel: Optional[str] = None,
        item_rel: Optional[str] = None,
        methods: Iterable[str] = ALL_METHODS,
    ) -> RepositoryResource:
        if path in self._by_path:
            raise ValueError(f"Repository path '{path}' is already registered")

        repository = RepositoryResource(
            path=path,
            rel=rel or path,
            item_rel=item_rel or model.__name__.lower(),
            entity=describe_entity(model),
            schema=schema,
            methods=frozenset(methods),
        )
        self._by_path[path] = repository
        self._by_type[model] = repository

        logger.info(
            "Registered repository /%s for %s (methods: %s)",
            path,
            model.__name__,
            ", ".join(sorted(repository.methods)),
        )
        return repository

    def for_path(self, path: str) -> RepositoryResource:
        repository = self._by_path.get(path)
        if repository is None:
            raise ResourceNotFoundError(f"No repository exported at '/{path}'")
        return repository

    def for_type(self, model: type) -> Optional[RepositoryResource]:
        return self._by_type.get(model)


def build_default_registry() -> RepositoryRegistry:
    from models.customer import Customer, CustomerRead
    from models.item import Item, ItemRead
    from models.order import Order, OrderRead

    registry = RepositoryRegistry()
    registry.register(Customer, path="customers", item_rel="customer", schema=CustomerRead)
    registry.register(Item, path="items", item_rel="item", schema=ItemRead)
    registry.register(Order, path="orders", item_rel="order", schema=OrderRead)
    return registry


repositories = build_default_registry()
