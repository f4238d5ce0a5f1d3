"""
Association Store - owns Save rows: create, remove, file, annotate, cascade
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from saveable.config import SaveableSettings, get_settings
from saveable.core.exceptions import DuplicateSaveError
from saveable.core.registry import EntityMatch, TypeRegistry
from saveable.models.collection import Collection
from saveable.models.save import Save
from saveable.services.collection_service import CollectionService

logger = logging.getLogger(__name__)


class AssociationStore:
    """
    Saves entities on behalf of savers.

    Request scoped: wraps one session. Mutations commit on success and roll
    back on failure. Missing or duplicate saves are reported through the
    return value, never raised.
    """

    def __init__(
        self,
        db: Session,
        registry: TypeRegistry,
        settings: Optional[SaveableSettings] = None,
    ):
        self.db = db
        self.registry = registry
        self.settings = settings or get_settings()

    def save(
        self,
        saver,
        saveable,
        collection: Optional[Collection] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Save an item, optionally into a collection

        Args:
            saver: Entity doing the save
            saveable: Entity being saved
            collection: Optional collection to file the save in
            metadata: Optional JSON-compatible mapping

        Returns:
            True when a save was created, False when the pair was already saved

        Raises:
            DuplicateSaveError: a concurrent writer inserted the same pair first
        """
        saver_match = self.registry.match(saver)
        saveable_match = self.registry.match(saveable)
        if self._find(saver_match, saveable_match) is not None:
            return False

        saver_ref, saveable_ref = saver_match.ref, saveable_match.ref

        collection_id = collection.id if collection is not None else None
        record = Save(
            saver_type=saver_ref.type_tag,
            saver_id=saver_ref.id,
            saveable_type=saveable_ref.type_tag,
            saveable_id=saveable_ref.id,
            collection_id=collection_id,
            save_metadata=dict(metadata or {}),
            # read-then-write: concurrent saves in one scope may share a position
            order_column=self._next_position(saver_match, collection_id),
        )
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if self._find(saver_match, saveable_match) is not None:
                logger.warning(
                    "concurrent duplicate save",
                    extra={"saver": list(saver_ref), "saveable": list(saveable_ref)},
                )
                raise DuplicateSaveError(saver_ref, saveable_ref) from exc
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "save created",
            extra={
                "saver": list(saver_ref),
                "saveable": list(saveable_ref),
                "collection_id": collection_id,
                "order_column": record.order_column,
            },
        )
        return True

    def unsave(self, saver, saveable) -> bool:
        """Remove a save; False when there was nothing to remove"""
        return self._delete_pair(self.registry.match(saver), self.registry.match(saveable))

    def toggle(
        self,
        saver,
        saveable,
        collection: Optional[Collection] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Unsave when saved, save otherwise. Returns the new saved state"""
        if self.has_saved(saver, saveable):
            self.unsave(saver, saveable)
            return False
        self.save(saver, saveable, collection, metadata)
        return True

    def move_to_collection(self, saver, saveable, collection: Optional[Collection] = None) -> bool:
        """File an existing save in another collection (None: unsorted)"""
        record = self.find(saver, saveable)
        if record is None:
            return False
        record.collection_id = collection.id if collection is not None else None
        self._commit()
        return True

    def update_metadata(self, saver, saveable, patch: Dict[str, Any]) -> bool:
        """Shallow-merge patch into an existing save's metadata"""
        record = self.find(saver, saveable)
        if record is None:
            return False
        # JSON columns are not mutation-tracked; assign a new dict
        record.save_metadata = {**(record.save_metadata or {}), **patch}
        self._commit()
        return True

    def has_saved(self, saver, saveable) -> bool:
        saver_match = self.registry.match(saver)
        saveable_match = self.registry.match(saveable)
        stmt = select(
            select(Save.id).where(Save.by_saver(saver_match), Save.by_saveable(saveable_match)).exists()
        )
        return bool(self.db.execute(stmt).scalar())

    def find(self, saver, saveable) -> Optional[Save]:
        return self._find(self.registry.match(saver), self.registry.match(saveable))

    # Cascades. Callers notify the store before an entity row goes away.

    def before_remove(self, entity) -> Dict[str, int]:
        """
        Run every cascade for an entity about to be deleted, without committing.
        The caller deletes the entity and commits in the same transaction.

        Returns:
            Counts of removed saves and collections
        """
        match = self.registry.match(entity)
        counts = {
            "saves_as_saver": self.remove_saver_saves(match),
            "saves_as_saveable": self.remove_saveable_saves(match),
            "collections": self.remove_owned_collections(match),
        }
        logger.info("entity cascade", extra={"entity": list(match.ref), **counts})
        return counts

    def remove(self, entity) -> Dict[str, int]:
        """Cascade and delete an entity in one transaction"""
        try:
            counts = self.before_remove(entity)
            self.db.delete(entity)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return counts

    def remove_saver_saves(self, match: EntityMatch) -> int:
        result = self.db.execute(delete(Save).where(Save.by_saver(match)))
        return result.rowcount

    def remove_saveable_saves(self, match: EntityMatch) -> int:
        result = self.db.execute(delete(Save).where(Save.by_saveable(match)))
        return result.rowcount

    def remove_owned_collections(self, match: EntityMatch) -> int:
        ids = list(self.db.execute(select(Collection.id).where(Collection.by_owner(match))).scalars())
        return CollectionService(self.db, self.registry).delete_tree(ids)

    def _find(self, saver_match: EntityMatch, saveable_match: EntityMatch) -> Optional[Save]:
        # a pair saved under both the alias and the canonical name yields two rows
        stmt = (
            select(Save)
            .where(Save.by_saver(saver_match), Save.by_saveable(saveable_match))
            .order_by(Save.id)
        )
        return self.db.execute(stmt).scalars().first()

    def _delete_pair(self, saver_match: EntityMatch, saveable_match: EntityMatch) -> bool:
        try:
            result = self.db.execute(
                delete(Save)
                .where(Save.by_saver(saver_match), Save.by_saveable(saveable_match))
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        removed = result.rowcount > 0
        if removed:
            logger.info(
                "save removed",
                extra={"saver": list(saver_match.ref), "saveable": list(saveable_match.ref)},
            )
        return removed

    def _next_position(self, saver_match: EntityMatch, collection_id: Optional[int]) -> int:
        if not self.settings.auto_ordering:
            return 0
        stmt = select(func.coalesce(func.max(Save.order_column), 0)).where(
            Save.by_saver(saver_match), Save.by_collection(collection_id)
        )
        return int(self.db.execute(stmt).scalar()) + 1

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
