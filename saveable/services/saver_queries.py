"""
Saver-side queries: what has a given entity saved
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from saveable.config import SaveableSettings, get_settings
from saveable.core.registry import EntityHandler, EntityMatch, TypeRegistry
from saveable.models.save import Save
from saveable.services.merge import (
    check_type_fanout,
    distinct_handlers,
    fetch_grouped,
    merge_by_position,
)

logger = logging.getLogger(__name__)


class SaverQueries:
    """Reads the saves table from the saver's side"""

    def __init__(
        self,
        db: Session,
        registry: TypeRegistry,
        settings: Optional[SaveableSettings] = None,
    ):
        self.db = db
        self.registry = registry
        self.settings = settings or get_settings()

    def saved_records(self, saver) -> List[Save]:
        """Save rows of a saver, by order_column"""
        match = self.registry.match(saver)
        stmt = select(Save).where(Save.by_saver(match)).order_by(Save.order_column, Save.id)
        return list(self.db.execute(stmt).scalars())

    def unsorted_saved_records(self, saver) -> List[Save]:
        """Save rows not filed in any collection"""
        match = self.registry.match(saver)
        stmt = (
            select(Save)
            .where(Save.by_saver(match), Save.collection_id.is_(None))
            .order_by(Save.order_column, Save.id)
        )
        return list(self.db.execute(stmt).scalars())

    def saved_items_query(self, saver, type_, unsorted: bool = False) -> Select:
        """
        Chainable query over one saveable type the saver has saved

        Args:
            saver: Saver entity
            type_: Model class, canonical name or alias of the saveable type
            unsorted: Only saves outside any collection

        Returns:
            Select of the saveable model, ordered by order_column asc, created_at desc
        """
        handler = self.registry.handler_for(type_)
        return self._items_stmt(self.registry.match(saver), handler, unsorted)

    def saved_items(self, saver, type_=None) -> List[Any]:
        """
        Entities a saver has saved

        Without a type every saved type is fetched separately and the results
        merged by (order_column asc, created_at desc).
        """
        return self._items(self.registry.match(saver), type_, unsorted=False)

    def unsorted_saved_items(self, saver, type_=None) -> List[Any]:
        """Same as saved_items, limited to saves outside any collection"""
        return self._items(self.registry.match(saver), type_, unsorted=True)

    def saved_items_grouped(self, saver) -> Dict[str, List[Any]]:
        """{stored saveable tag: entities}; types that no longer resolve are dropped"""
        match = self.registry.match(saver)
        stmt = (
            select(Save.saveable_type, Save.saveable_id)
            .where(Save.by_saver(match))
            .order_by(Save.order_column, Save.id)
        )
        return fetch_grouped(self.db, self.registry, self.db.execute(stmt).all())

    def saved_items_count(self, saver, type_=None) -> int:
        match = self.registry.match(saver)
        stmt = select(func.count(Save.id)).where(Save.by_saver(match))
        if type_ is not None:
            handler = self.registry.lookup(type_)
            if handler is not None:
                stmt = stmt.where(Save.saveable_type.in_(handler.stored_tags))
            elif isinstance(type_, str):
                # tag of a type no longer registered; count its rows as stored
                stmt = stmt.where(Save.saveable_type == type_)
            else:
                return 0
        return int(self.db.execute(stmt).scalar() or 0)

    def where_saved_item(self, model, saveable, stmt: Optional[Select] = None) -> Select:
        """Saver-model rows that saved the given saveable"""
        handler = self.registry.handler_for(model)
        saveable_match = self.registry.match(saveable)
        stmt = stmt if stmt is not None else select(handler.model)
        saved = (
            select(Save.id)
            .where(
                Save.saver_type.in_(handler.stored_tags),
                Save.saver_id == handler.primary_key,
                Save.by_saveable(saveable_match),
            )
            .exists()
        )
        return stmt.where(saved)

    def _items(self, match: EntityMatch, type_, unsorted: bool) -> List[Any]:
        if type_ is not None:
            handler = self.registry.lookup(type_)
            if handler is None:
                return []
            return list(self.db.execute(self._items_stmt(match, handler, unsorted)).scalars())

        stmt = select(Save.saveable_type).where(Save.by_saver(match)).distinct()
        if unsorted:
            stmt = stmt.where(Save.collection_id.is_(None))
        handlers = distinct_handlers(self.registry, self.db.execute(stmt).scalars())
        if not handlers:
            return []
        if len(handlers) == 1:
            return list(self.db.execute(self._items_stmt(match, handlers[0], unsorted)).scalars())

        check_type_fanout(handlers, self.settings.max_mixed_types)
        rows = []
        for handler in handlers:
            stmt = self._items_stmt(
                match, handler, unsorted,
                columns=(Save.order_column, Save.created_at, Save.id),
            )
            rows.extend(tuple(row) for row in self.db.execute(stmt).all())
        logger.debug(
            "merged mixed-type saved items",
            extra={"saver": list(match.ref), "types": len(handlers), "rows": len(rows)},
        )
        return merge_by_position(rows)

    def _items_stmt(
        self,
        match: EntityMatch,
        handler: EntityHandler,
        unsorted: bool,
        columns: tuple = (),
    ) -> Select:
        stmt = (
            select(handler.model, *columns)
            .join(
                Save,
                and_(
                    Save.saveable_id == handler.primary_key,
                    Save.saveable_type.in_(handler.stored_tags),
                ),
            )
            .where(Save.by_saver(match))
        )
        if unsorted:
            stmt = stmt.where(Save.collection_id.is_(None))
        return stmt.order_by(Save.order_column.asc(), Save.created_at.desc(), Save.id.desc())
