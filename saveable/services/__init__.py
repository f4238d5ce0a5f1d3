"""
Services over the saves and collections tables.
"""

from .association_store import AssociationStore
from .collection_service import CollectionService
from .saver_queries import SaverQueries
from .saveable_queries import SaveableQueries

__all__ = [
    "AssociationStore",
    "CollectionService",
    "SaverQueries",
    "SaveableQueries",
]
