"""
Persistent entity / property metadata.

Each exported model gets an explicit table of ``PersistentProperty``
descriptors, built once from its SQLAlchemy mapper. Relationship ``info``
carries the optional mappings:

    rel        relation name used in compact renderings
    path       URL segment, when it differs from the attribute name
    map_key    for keyed association relationships: the key attribute
    map_value  for keyed association relationships: the value relationship

Descriptors expose get/set closures so callers never reach into the
objects with getattr/setattr themselves.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from sqlalchemy import inspect
from sqlalchemy.orm import RelationshipProperty

logger = logging.getLogger(__name__)

# Range of an integer primary key column
MIN_INTEGER_ID = -(2 ** 63)
MAX_INTEGER_ID = 2 ** 63 - 1


class Cardinality(str, Enum):
    SINGULAR = "singular"
    COLLECTION = "collection"
    MAP = "map"


@dataclass(frozen=True)
class PersistentProperty:
    name: str
    path: str
    rel: Optional[str]
    cardinality: Cardinality
    owner: type
    target: type
    getter: Callable[[Any], Any] = field(repr=False, compare=False)
    setter: Callable[[Any, Any], None] = field(repr=False, compare=False)

    @property
    def is_collection_like(self) -> bool:
        return self.cardinality is Cardinality.COLLECTION

    @property
    def is_map(self) -> bool:
        return self.cardinality is Cardinality.MAP

    @property
    def is_singular(self) -> bool:
        return self.cardinality is Cardinality.SINGULAR

    def get(self, obj: Any) -> Any:
        return self.getter(obj)

    def set(self, obj: Any, value: Any) -> None:
        self.setter(obj, value)


@dataclass(frozen=True)
class PersistentEntity:
    type: type
    id_attribute: str
    id_type: type
    properties: dict[str, PersistentProperty]

    @property
    def name(self) -> str:
        return self.type.__name__

    def get_property(self, name: str) -> Optional[PersistentProperty]:
        return self.properties.get(name)

    def name_for_path(self, path: str) -> str:
        for prop in self.properties.values():
            if prop.path == path:
                return prop.name
        return path

    def property_for_path(self, path: str) -> Optional[PersistentProperty]:
        return self.get_property(self.name_for_path(path))

    def id_of(self, obj: Any) -> Any:
        return getattr(obj, self.id_attribute)

    def convert_id(self, raw_id: str) -> Optional[Any]:
        """Convert a path id to the primary key type, or None if it can't be.

        Integer ids must be spelled canonically ("5", not "+5" or "0_5") and
        fit a signed 64-bit column.
        """
        if isinstance(raw_id, self.id_type):
            entity_id = raw_id
        else:
            try:
                entity_id = self.id_type(raw_id)
            except (TypeError, ValueError):
                return None
            if self.id_type is int and str(entity_id) != raw_id:
                return None

        if self.id_type is int and not MIN_INTEGER_ID <= entity_id <= MAX_INTEGER_ID:
            return None
        return entity_id


# -----------------------------------------------------------------------------
# Accessor closures
# -----------------------------------------------------------------------------
def _singular_accessors(key: str):
    def getter(obj):
        return getattr(obj, key)

    def setter(obj, value):
        setattr(obj, key, value)

    return getter, setter


def _collection_accessors(key: str):
    def getter(obj):
        value = getattr(obj, key)
        return None if value is None else list(value)

    def setter(obj, value):
        setattr(obj, key, list(value or []))

    return getter, setter


def _map_accessors(key: str, association: type, key_attr: str, value_attr: str):
    def getter(obj):
        entries = getattr(obj, key)
        if entries is None:
            return None
        return {k: getattr(entry, value_attr) for k, entry in entries.items()}

    def setter(obj, value):
        setattr(
            obj,
            key,
            {
                k: association(**{key_attr: k, value_attr: v})
                for k, v in (value or {}).items()
            },
        )

    return getter, setter


def _describe_relationship(model: type, rel: RelationshipProperty) -> PersistentProperty:
    info = rel.info or {}
    target = rel.mapper.class_

    if "map_value" in info:
        value_attr = info["map_value"]
        key_attr = info.get("map_key", "key")
        association = target
        target = rel.mapper.relationships[value_attr].mapper.class_
        cardinality = Cardinality.MAP
        getter, setter = _map_accessors(rel.key, association, key_attr, value_attr)
    elif rel.uselist:
        cardinality = Cardinality.COLLECTION
        getter, setter = _collection_accessors(rel.key)
    else:
        cardinality = Cardinality.SINGULAR
        getter, setter = _singular_accessors(rel.key)

    return PersistentProperty(
        name=rel.key,
        path=info.get("path", rel.key),
        rel=info.get("rel"),
        cardinality=cardinality,
        owner=model,
        target=target,
        getter=getter,
        setter=setter,
    )


def describe_entity(model: type) -> PersistentEntity:
    """Build the property descriptor table for a mapped class."""
    mapper = inspect(model)

    primary_key = mapper.primary_key
    if len(primary_key) != 1:
        raise ValueError(f"{model.__name__} must have exactly one primary key column")
    id_column = primary_key[0]
    id_attribute = mapper.get_property_by_column(id_column).key

    properties = {
        rel.key: _describe_relationship(model, rel)
        for rel in mapper.relationships
    }

    logger.debug(
        "Described %s: id=%s, properties=%s",
        model.__name__,
        id_attribute,
        {name: prop.cardinality.value for name, prop in properties.items()},
    )

    return PersistentEntity(
        type=model,
        id_attribute=id_attribute,
        id_type=id_column.type.python_type,
        properties=properties,
    )
