"""
Per-type fetch and in-memory merge for reads spanning several entity types.

The saves table points into many entity tables, which cannot be joined in one
statement. Reads therefore fetch each type on its own and merge the results
here. Callers bound the number of types with ``check_type_fanout`` first.
"""
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from sqlalchemy.orm import Session

from saveable.core.exceptions import MixedTypeLimitError
from saveable.core.registry import EntityHandler, TypeRegistry

logger = logging.getLogger(__name__)

_EPOCH = datetime.min


def check_type_fanout(types: Sequence[Any], limit: int) -> None:
    if len(types) > limit:
        raise MixedTypeLimitError(len(types), limit)


def distinct_handlers(registry: TypeRegistry, tags: Iterable[str]) -> List[EntityHandler]:
    """Handlers behind the stored tags; tags that no longer resolve are skipped"""
    handlers = {}
    for tag in tags:
        handler = registry.resolve(tag)
        if handler is None:
            logger.debug("skipping unresolvable type tag", extra={"type_tag": tag})
            continue
        handlers.setdefault(handler.canonical_name, handler)
    return list(handlers.values())


def _created_key(value) -> datetime:
    if value is None:
        return _EPOCH
    # SQLite hands back naive datetimes, other backends aware ones
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.replace(tzinfo=None)


def merge_by_position(rows: List[Tuple[Any, int, Any, int]]) -> List[Any]:
    """(entity, order_column, created_at, save id) rows -> order asc, newest first"""
    rows = sorted(rows, key=lambda r: (_created_key(r[2]), r[3]), reverse=True)
    rows.sort(key=lambda r: r[1])
    return [r[0] for r in rows]


def merge_by_recency(rows: List[Tuple[Any, Any, int]]) -> List[Any]:
    """(entity, created_at, save id) rows -> entities newest first"""
    rows = sorted(rows, key=lambda r: (_created_key(r[1]), r[2]), reverse=True)
    return [r[0] for r in rows]


def group_ids(pairs: Iterable[Tuple[str, Any]]) -> Dict[str, List[Any]]:
    grouped: Dict[str, List[Any]] = defaultdict(list)
    for tag, ident in pairs:
        if ident not in grouped[tag]:
            grouped[tag].append(ident)
    return dict(grouped)


def fetch_grouped(
    db: Session, registry: TypeRegistry, pairs: Iterable[Tuple[str, Any]]
) -> Dict[str, List[Any]]:
    """{stored tag: entities}; tags that no longer resolve are dropped"""
    grouped = {}
    for tag, ids in group_ids(pairs).items():
        handler = registry.resolve(tag)
        if handler is None:
            logger.debug("skipping unresolvable type tag", extra={"type_tag": tag})
            continue
        grouped[tag] = handler.fetch_many(db, ids)
    return grouped


def fetch_entities_for_saves(db: Session, registry: TypeRegistry, saves) -> List[Any]:
    """Saveable entities behind the given saves, in the order of the saves"""
    saves = list(saves)
    by_key = {}
    for tag, entities in fetch_grouped(
        db, registry, ((s.saveable_type, s.saveable_id) for s in saves)
    ).items():
        handler = registry.resolve(tag)
        for entity in entities:
            by_key[(tag, handler.identity(entity))] = entity
    return [
        by_key[(s.saveable_type, s.saveable_id)]
        for s in saves
        if (s.saveable_type, s.saveable_id) in by_key
    ]
