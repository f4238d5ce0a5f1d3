"""
Polymorphic save/bookmark engine.

Any registered entity can save any other registered entity into optional,
nested collections, with metadata and a manual ordering position.
"""

from saveable.core.registry import EntityHandler, EntityMatch, EntityRef, TypeRegistry
from saveable.models import Collection, Save
from saveable.services import AssociationStore, CollectionService, SaverQueries, SaveableQueries

__version__ = "1.0.0"

__all__ = [
    "EntityHandler",
    "EntityMatch",
    "EntityRef",
    "TypeRegistry",
    "Collection",
    "Save",
    "AssociationStore",
    "CollectionService",
    "SaverQueries",
    "SaveableQueries",
]
