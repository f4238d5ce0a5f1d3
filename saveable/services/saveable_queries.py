"""
Saveable-side queries: who saved a given entity, and save aggregates over sets of entities
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from saveable.config import SaveableSettings, get_settings
from saveable.core.registry import EntityHandler, EntityMatch, TypeRegistry
from saveable.models.save import Save
from saveable.services.association_store import AssociationStore
from saveable.services.merge import (
    check_type_fanout,
    distinct_handlers,
    fetch_grouped,
    merge_by_recency,
)

logger = logging.getLogger(__name__)


class SaveableQueries:
    """Reads the saves table from the saveable's side"""

    def __init__(
        self,
        db: Session,
        registry: TypeRegistry,
        settings: Optional[SaveableSettings] = None,
    ):
        self.db = db
        self.registry = registry
        self.settings = settings or get_settings()

    def save_records(self, saveable) -> List[Save]:
        match = self.registry.match(saveable)
        stmt = select(Save).where(Save.by_saveable(match)).order_by(Save.created_at.desc(), Save.id.desc())
        return list(self.db.execute(stmt).scalars())

    def savers_query(self, saveable, type_) -> Select:
        """Chainable query over savers of one type, newest save first"""
        handler = self.registry.handler_for(type_)
        return self._savers_stmt(self.registry.match(saveable), handler)

    def savers(self, saveable, type_=None) -> List[Any]:
        """
        Entities that saved this one, newest save first

        Without a type every saver type is fetched separately and the results
        merged by created_at.
        """
        match = self.registry.match(saveable)
        if type_ is not None:
            handler = self.registry.lookup(type_)
            if handler is None:
                return []
            return list(self.db.execute(self._savers_stmt(match, handler)).scalars())

        stmt = select(Save.saver_type).where(Save.by_saveable(match)).distinct()
        handlers = distinct_handlers(self.registry, self.db.execute(stmt).scalars())
        if not handlers:
            return []
        if len(handlers) == 1:
            return list(self.db.execute(self._savers_stmt(match, handlers[0])).scalars())

        check_type_fanout(handlers, self.settings.max_mixed_types)
        rows = []
        for handler in handlers:
            stmt = self._savers_stmt(match, handler, columns=(Save.created_at, Save.id))
            rows.extend(tuple(row) for row in self.db.execute(stmt).all())
        return merge_by_recency(rows)

    def savers_grouped(self, saveable) -> Dict[str, List[Any]]:
        """{stored saver tag: entities}; types that no longer resolve are dropped"""
        match = self.registry.match(saveable)
        stmt = (
            select(Save.saver_type, Save.saver_id)
            .where(Save.by_saveable(match))
            .order_by(Save.created_at.desc(), Save.id.desc())
        )
        return fetch_grouped(self.db, self.registry, self.db.execute(stmt).all())

    def times_saved(self, saveable) -> int:
        match = self.registry.match(saveable)
        stmt = select(func.count(Save.id)).where(Save.by_saveable(match))
        return int(self.db.execute(stmt).scalar() or 0)

    def savers_count(self, saveable, type_=None) -> int:
        match = self.registry.match(saveable)
        stmt = select(func.count(Save.id)).where(Save.by_saveable(match))
        if type_ is not None:
            handler = self.registry.lookup(type_)
            if handler is not None:
                stmt = stmt.where(Save.saver_type.in_(handler.stored_tags))
            elif isinstance(type_, str):
                stmt = stmt.where(Save.saver_type == type_)
            else:
                return 0
        return int(self.db.execute(stmt).scalar() or 0)

    def is_saved_by(self, saveable, saver) -> bool:
        return self._store().has_saved(saver, saveable)

    def saved_record_by(self, saveable, saver) -> Optional[Save]:
        return self._store().find(saver, saveable)

    def remove_saved_by(self, saveable, saver) -> bool:
        return self._store().unsave(saver, saveable)

    # Aggregates over a set of saveables. Each takes the saveable model and an
    # optional base statement selecting it, and returns a chainable Select.

    def with_saves_count(self, model, stmt: Optional[Select] = None) -> Select:
        """Adds a saves_count column (total savers per row)"""
        handler = self.registry.handler_for(model)
        stmt = stmt if stmt is not None else select(handler.model)
        return stmt.add_columns(self._count_subquery(handler).label("saves_count"))

    def most_saved(self, model, limit: int = 10, stmt: Optional[Select] = None) -> Select:
        """Rows with saves_count, highest first, at most limit of them"""
        handler = self.registry.handler_for(model)
        stmt = stmt if stmt is not None else select(handler.model)
        saves_count = self._count_subquery(handler).label("saves_count")
        return stmt.add_columns(saves_count).order_by(saves_count.desc()).limit(limit)

    def with_save_status(self, model, saver, stmt: Optional[Select] = None) -> Select:
        """
        Adds is_saved and save_metadata columns for one saver.

        Both are correlated subqueries, so rows are never duplicated.
        """
        handler = self.registry.handler_for(model)
        saver_match = self.registry.match(saver)
        stmt = stmt if stmt is not None else select(handler.model)
        saved_by = self._match_saveable(handler, saver_match)
        is_saved = select(Save.id).where(saved_by).exists().label("is_saved")
        save_metadata = (
            select(Save.save_metadata).where(saved_by).limit(1).scalar_subquery().label("save_metadata")
        )
        return stmt.add_columns(is_saved, save_metadata)

    def where_saved_by(self, model, saver, stmt: Optional[Select] = None) -> Select:
        """Only rows the saver has saved"""
        handler = self.registry.handler_for(model)
        saver_match = self.registry.match(saver)
        stmt = stmt if stmt is not None else select(handler.model)
        return stmt.where(select(Save.id).where(self._match_saveable(handler, saver_match)).exists())

    def _count_subquery(self, handler: EntityHandler):
        return (
            select(func.count(Save.id))
            .where(
                Save.saveable_type.in_(handler.stored_tags),
                Save.saveable_id == handler.primary_key,
            )
            .scalar_subquery()
        )

    def _match_saveable(self, handler: EntityHandler, saver_match: EntityMatch):
        return and_(
            Save.saveable_type.in_(handler.stored_tags),
            Save.saveable_id == handler.primary_key,
            Save.by_saver(saver_match),
        )

    def _savers_stmt(self, match: EntityMatch, handler: EntityHandler, columns: tuple = ()) -> Select:
        return (
            select(handler.model, *columns)
            .join(
                Save,
                and_(
                    Save.saver_id == handler.primary_key,
                    Save.saver_type.in_(handler.stored_tags),
                ),
            )
            .where(Save.by_saveable(match))
            .order_by(Save.created_at.desc(), Save.id.desc())
        )

    def _store(self) -> AssociationStore:
        return AssociationStore(self.db, self.registry, self.settings)
