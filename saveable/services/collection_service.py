"""
Collection Service - hierarchical folders for organizing saves
"""
import logging
from typing import List, Optional, Set

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from saveable.core.exceptions import CollectionCycleError, CollectionNotFoundError
from saveable.core.registry import TypeRegistry
from saveable.models.collection import Collection
from saveable.models.save import Save
from saveable.services.merge import fetch_entities_for_saves

logger = logging.getLogger(__name__)


class CollectionService:
    """Creates, nests, lists and deletes collections"""

    def __init__(self, db: Session, registry: TypeRegistry):
        self.db = db
        self.registry = registry

    def create(
        self,
        owner,
        name: str,
        description: Optional[str] = None,
        parent: Optional[Collection] = None,
    ) -> Collection:
        """
        Create a collection for an owner

        Args:
            owner: Owning entity (any registered model instance)
            name: Display name
            description: Optional description
            parent: Optional parent collection

        Returns:
            Created collection

        Raises:
            CollectionNotFoundError: parent was never persisted or has been deleted
        """
        ref = self.registry.reference(owner)
        parent_id = self._existing_id(parent) if parent is not None else None
        collection = Collection(
            owner_type=ref.type_tag,
            owner_id=ref.id,
            name=name,
            description=description,
            parent_id=parent_id,
        )
        self.db.add(collection)
        try:
            self.db.flush()
            if parent_id is not None and collection.id == parent_id:
                raise CollectionCycleError(collection.id, parent_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(collection)
        logger.info(
            "collection created",
            extra={"collection_id": collection.id, "owner": list(ref)},
        )
        return collection

    def rename(
        self,
        collection: Collection,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Collection:
        if name is not None:
            collection.name = name
        if description is not None:
            collection.description = description
        self._commit()
        self.db.refresh(collection)
        return collection

    def set_parent(self, collection: Collection, parent: Optional[Collection]) -> Collection:
        """
        Move a collection under a new parent (None makes it a root)

        Raises:
            CollectionCycleError: parent is the collection itself or one of its descendants
            CollectionNotFoundError: parent has been deleted
        """
        if parent is not None:
            self._existing_id(parent)
            if parent.id == collection.id or collection.id in self._ancestor_ids(parent):
                raise CollectionCycleError(collection.id, parent.id)
        collection.parent_id = parent.id if parent is not None else None
        self._commit()
        self.db.refresh(collection)
        return collection

    def get(self, collection_id: int) -> Optional[Collection]:
        return self.db.get(Collection, collection_id)

    def for_owner(self, owner) -> List[Collection]:
        match = self.registry.match(owner)
        stmt = select(Collection).where(Collection.by_owner(match)).order_by(Collection.id)
        return list(self.db.execute(stmt).scalars())

    def root_collections(self, owner) -> List[Collection]:
        return self.by_parent(owner, None)

    def by_parent(self, owner, parent: Optional[Collection]) -> List[Collection]:
        match = self.registry.match(owner)
        stmt = (
            select(Collection)
            .where(
                Collection.by_owner(match),
                Collection.by_parent(parent.id if parent is not None else None),
            )
            .order_by(Collection.id)
        )
        return list(self.db.execute(stmt).scalars())

    def children(self, collection: Collection) -> List[Collection]:
        stmt = select(Collection).where(Collection.parent_id == collection.id).order_by(Collection.id)
        return list(self.db.execute(stmt).scalars())

    def ancestors(self, collection: Collection) -> List[Collection]:
        """Parents from nearest to root"""
        chain = []
        for parent_id in self._ancestor_ids(collection):
            chain.append(self.db.get(Collection, parent_id))
        return chain

    def saves(self, collection: Collection) -> List[Save]:
        stmt = (
            select(Save)
            .where(Save.collection_id == collection.id)
            .order_by(Save.order_column, Save.id)
        )
        return list(self.db.execute(stmt).scalars())

    def items(self, collection: Collection) -> list:
        """Saved entities in this collection, in order_column order"""
        return fetch_entities_for_saves(self.db, self.registry, self.saves(collection))

    def delete(self, collection: Collection) -> int:
        """
        Delete a collection with all its descendants; their saves are kept but unfiled

        Returns:
            Number of collections deleted
        """
        try:
            count = self.delete_tree([collection.id])
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return count

    def delete_tree(self, root_ids: List[int]) -> int:
        """
        Delete the given collections and their descendants without committing.
        Saves filed in any of them get collection_id set to NULL.
        """
        ids = sorted(self._descendant_ids(root_ids))
        if not ids:
            return 0
        self.db.execute(
            update(Save)
            .where(Save.collection_id.in_(ids))
            .values(collection_id=None)
        )
        self.db.execute(
            delete(Collection)
            .where(Collection.id.in_(ids))
        )
        logger.info("collections deleted", extra={"collection_ids": ids})
        return len(ids)

    def _descendant_ids(self, root_ids: List[int]) -> Set[int]:
        # visited set: parent chains are not guaranteed acyclic in existing data
        seen: Set[int] = set()
        frontier = [i for i in root_ids if i is not None]
        while frontier:
            batch = [i for i in frontier if i not in seen]
            seen.update(batch)
            if not batch:
                break
            stmt = select(Collection.id).where(Collection.parent_id.in_(batch))
            frontier = [i for i in self.db.execute(stmt).scalars() if i not in seen]
        if seen:
            # drop ids that no longer exist
            stmt = select(Collection.id).where(Collection.id.in_(list(seen)))
            seen = set(self.db.execute(stmt).scalars())
        return seen

    def _existing_id(self, collection: Collection) -> int:
        # the instance may be stale: deleted in bulk or by another session
        found = None
        if collection.id is not None:
            found = self.db.execute(
                select(Collection.id).where(Collection.id == collection.id)
            ).scalar_one_or_none()
        if found is None:
            raise CollectionNotFoundError(collection.id)
        return found

    def _ancestor_ids(self, collection: Collection) -> List[int]:
        chain: List[int] = []
        seen = {collection.id}
        parent_id = collection.parent_id
        while parent_id is not None and parent_id not in seen:
            chain.append(parent_id)
            seen.add(parent_id)
            parent_id = self.db.execute(
                select(Collection.parent_id).where(Collection.id == parent_id)
            ).scalar_one_or_none()
        return chain

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
