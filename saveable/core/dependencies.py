"""
FastAPI dependencies wiring the request session to the saveable services.
"""
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from saveable.config import SaveableSettings, get_settings
from saveable.core.db import get_db
from saveable.core.registry import TypeRegistry
from saveable.services import AssociationStore, CollectionService, SaverQueries, SaveableQueries


def get_registry(request: Request) -> TypeRegistry:
    """Registry installed on the application by create_app"""
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise RuntimeError("No TypeRegistry configured on the application")
    return registry


def get_app_settings(request: Request) -> SaveableSettings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_store(
    db: Session = Depends(get_db),
    registry: TypeRegistry = Depends(get_registry),
    settings: SaveableSettings = Depends(get_app_settings),
) -> AssociationStore:
    return AssociationStore(db, registry, settings)


def get_collection_service(
    db: Session = Depends(get_db),
    registry: TypeRegistry = Depends(get_registry),
) -> CollectionService:
    return CollectionService(db, registry)


def get_saver_queries(
    db: Session = Depends(get_db),
    registry: TypeRegistry = Depends(get_registry),
    settings: SaveableSettings = Depends(get_app_settings),
) -> SaverQueries:
    return SaverQueries(db, registry, settings)


def get_saveable_queries(
    db: Session = Depends(get_db),
    registry: TypeRegistry = Depends(get_registry),
    settings: SaveableSettings = Depends(get_app_settings),
) -> SaveableQueries:
    return SaveableQueries(db, registry, settings)


def load_entity(db: Session, registry: TypeRegistry, type_tag: str, entity_id: int):
    """Entity addressed by a stored tag and id, 404 when either is unknown"""
    handler = registry.resolve(type_tag)
    if handler is None:
        raise HTTPException(status_code=404, detail=f"Unknown entity type '{type_tag}'")
    entity = handler.get(db, entity_id)
    if entity is None:
        raise HTTPException(status_code=404, detail=f"{type_tag} {entity_id} not found")
    return entity
