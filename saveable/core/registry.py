"""
Type registry mapping stored type tags to entity handlers.

Every row in the saves and collections tables references its saver, saveable or
owner through a ``(type_tag, id)`` pair. The tag persisted is the alias a model
was registered under when there is one, otherwise the model's fully qualified
class name. Both forms resolve back to the same handler.
"""
import logging
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple

from sqlalchemy import Integer, inspect, select
from sqlalchemy.orm import Session

from saveable.core.exceptions import (
    EntityNotPersistedError,
    TypeRegistrationError,
    UnknownEntityTypeError,
    UnsupportedEntityTypeError,
)

logger = logging.getLogger(__name__)


class EntityRef(NamedTuple):
    """(type_tag, id) pair identifying any saver, saveable or owner"""
    type_tag: str
    id: Any


class EntityMatch(NamedTuple):
    """
    Filter form of an entity reference: every tag rows of the type may carry.
    The first tag is the one new rows are written with.
    """
    tags: Tuple[str, ...]
    id: Any

    @property
    def ref(self) -> EntityRef:
        return EntityRef(self.tags[0], self.id)


def canonical_name(model: type) -> str:
    return f"{model.__module__}.{model.__qualname__}"


class EntityHandler:
    """Fetch-by-id and identify capabilities for one registered ORM model"""

    def __init__(self, model: type, tag: Optional[str] = None):
        self.model = model
        self.canonical_name = canonical_name(model)
        self.alias = tag
        mapper = inspect(model)
        if len(mapper.primary_key) != 1:
            raise UnsupportedEntityTypeError(self.canonical_name, "primary key must be a single column")
        # reference ids are stored in integer columns
        if not isinstance(mapper.primary_key[0].type, Integer):
            raise UnsupportedEntityTypeError(self.canonical_name, "primary key must be an integer")
        self._pk_attr = mapper.get_property_by_column(mapper.primary_key[0]).key

    @property
    def tag(self) -> str:
        """Tag written to storage for this type"""
        return self.alias or self.canonical_name

    @property
    def stored_tags(self) -> List[str]:
        """
        Every tag rows of this type may carry. Rows written before an alias was
        configured still hold the canonical name.
        """
        return list(dict.fromkeys([self.tag, self.canonical_name]))

    @property
    def primary_key(self):
        return getattr(self.model, self._pk_attr)

    def identity(self, instance) -> Any:
        value = getattr(instance, self._pk_attr)
        if value is None:
            raise EntityNotPersistedError(self.tag)
        return value

    def reference(self, instance) -> EntityRef:
        return EntityRef(self.tag, self.identity(instance))

    def match(self, instance) -> EntityMatch:
        return EntityMatch(tuple(self.stored_tags), self.identity(instance))

    def get(self, db: Session, ident) -> Optional[Any]:
        return db.get(self.model, ident)

    def fetch_many(self, db: Session, ids: Iterable[Any]) -> List[Any]:
        ids = list(dict.fromkeys(ids))
        if not ids:
            return []
        stmt = select(self.model).where(self.primary_key.in_(ids))
        return list(db.execute(stmt).scalars())

    def __repr__(self) -> str:  # pragma: no cover
        return f"<EntityHandler {self.tag}>"


class TypeRegistry:
    """Bidirectional mapping between storage tags and entity handlers"""

    def __init__(self):
        self._by_canonical: Dict[str, EntityHandler] = {}
        self._aliases: Dict[str, str] = {}

    def register(self, model: type, tag: Optional[str] = None) -> EntityHandler:
        """
        Register an ORM model, optionally under a short storage alias.

        Args:
            model: Declarative model class
            tag: Alias persisted instead of the fully qualified class name

        Returns:
            The handler for the model
        """
        name = canonical_name(model)
        if tag is not None:
            bound = self._aliases.get(tag)
            if bound is not None and bound != name:
                raise TypeRegistrationError(tag, bound, name)

        handler = self._by_canonical.get(name)
        if handler is None:
            handler = EntityHandler(model, tag)
            self._by_canonical[name] = handler
        elif tag is not None:
            if handler.alias not in (None, tag):
                # re-aliasing: the old alias stops resolving
                self._aliases.pop(handler.alias, None)
            handler.alias = tag

        if tag is not None:
            self._aliases[tag] = name
        logger.debug("registered entity type", extra={"type": name, "tag": handler.tag})
        return handler

    def morph_map(self, mapping: Dict[str, type]) -> None:
        for tag, model in mapping.items():
            self.register(model, tag)

    def resolve(self, tag: str) -> Optional[EntityHandler]:
        """Handler for a canonical name or alias, None when unknown"""
        handler = self._by_canonical.get(tag)
        if handler is not None:
            return handler
        name = self._aliases.get(tag)
        if name is None:
            return None
        return self._by_canonical.get(name)

    def handler_for(self, obj) -> EntityHandler:
        """Handler for an instance, a model class, a handler or a stored tag"""
        if isinstance(obj, EntityHandler):
            return obj
        if isinstance(obj, str):
            handler = self.resolve(obj)
            if handler is None:
                raise UnknownEntityTypeError(obj)
            return handler
        model = obj if isinstance(obj, type) else type(obj)
        handler = self._by_canonical.get(canonical_name(model))
        if handler is None:
            raise UnknownEntityTypeError(canonical_name(model))
        return handler

    def lookup(self, type_) -> Optional[EntityHandler]:
        """Like handler_for, but None instead of raising for unknown types"""
        try:
            return self.handler_for(type_)
        except UnknownEntityTypeError:
            return None

    def tag_for(self, obj) -> str:
        return self.handler_for(obj).tag

    def reference(self, instance) -> EntityRef:
        return self.handler_for(instance).reference(instance)

    def match(self, instance) -> EntityMatch:
        """Filter matching the entity under its alias and its canonical name"""
        return self.handler_for(instance).match(instance)

    def __contains__(self, tag: str) -> bool:
        return self.resolve(tag) is not None

    def __iter__(self):
        return iter(self._by_canonical.values())
