"""
Saves API endpoints - toggle, list, file and annotate saves
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from saveable.core.db import get_db
from saveable.core.dependencies import (
    get_collection_service,
    get_registry,
    get_saveable_queries,
    get_saver_queries,
    get_store,
    load_entity,
)
from saveable.core.registry import TypeRegistry
from saveable.schemas.base import Envelope
from saveable.schemas.save import SaveCount, SaveRead, SaveToggle, SaveToggleResult, SaveUpdate
from saveable.services import AssociationStore, CollectionService, SaverQueries, SaveableQueries

router = APIRouter(prefix="/saves", tags=["saves"])


def _owned_collection(collections: CollectionService, saver, collection_id: Optional[int]):
    if collection_id is None:
        return None
    collection = collections.get(collection_id)
    if collection is None or not collection.owned_by(collections.registry.match(saver)):
        raise HTTPException(status_code=404, detail=f"Collection {collection_id} not found")
    return collection


@router.post(
    "/{saver_type}/{saver_id}/toggle/{saveable_type}/{saveable_id}",
    response_model=Envelope[SaveToggleResult],
)
def toggle_save(
    saver_type: str,
    saver_id: int,
    saveable_type: str,
    saveable_id: int,
    body: Optional[SaveToggle] = None,
    db: Session = Depends(get_db),
    registry: TypeRegistry = Depends(get_registry),
    store: AssociationStore = Depends(get_store),
    collections: CollectionService = Depends(get_collection_service),
):
    """
    Toggle save status (creates or removes the save)

    - **collection_id**: Optional collection to file a new save in
    - **metadata**: Optional metadata stored with a new save
    """
    body = body or SaveToggle()
    saver = load_entity(db, registry, saver_type, saver_id)
    saveable = load_entity(db, registry, saveable_type, saveable_id)
    collection = _owned_collection(collections, saver, body.collection_id)

    saved = store.toggle(saver, saveable, collection, body.metadata)
    return Envelope(
        status="ok",
        data=SaveToggleResult(
            saved=saved,
            saver_type=saver_type,
            saver_id=saver_id,
            saveable_type=saveable_type,
            saveable_id=saveable_id,
        )
    )


@router.get("/{saver_type}/{saver_id}", response_model=Envelope[list[SaveRead]])
def list_saves(
    saver_type: str,
    saver_id: int,
    unsorted: bool = False,
    collection_id: Optional[int] = None,
    db: Session = Depends(get_db),
    registry: TypeRegistry = Depends(get_registry),
    queries: SaverQueries = Depends(get_saver_queries),
    collections: CollectionService = Depends(get_collection_service),
):
    """
    List a saver's save records by order_column

    - **unsorted**: Only saves outside any collection
    - **collection_id**: Only saves filed in this collection
    """
    saver = load_entity(db, registry, saver_type, saver_id)
    if collection_id is not None:
        records = collections.saves(_owned_collection(collections, saver, collection_id))
    elif unsorted:
        records = queries.unsorted_saved_records(saver)
    else:
        records = queries.saved_records(saver)
    return Envelope(status="ok", data=[SaveRead.model_validate(r) for r in records])


@router.patch(
    "/{saver_type}/{saver_id}/items/{saveable_type}/{saveable_id}",
    response_model=Envelope[SaveRead],
)
def update_save(
    saver_type: str,
    saver_id: int,
    saveable_type: str,
    saveable_id: int,
    body: SaveUpdate,
    db: Session = Depends(get_db),
    registry: TypeRegistry = Depends(get_registry),
    store: AssociationStore = Depends(get_store),
    collections: CollectionService = Depends(get_collection_service),
):
    """
    Move a save between collections and/or merge metadata into it

    Fields left out of the body are not touched; collection_id null unfiles the save.
    """
    saver = load_entity(db, registry, saver_type, saver_id)
    saveable = load_entity(db, registry, saveable_type, saveable_id)
    if store.find(saver, saveable) is None:
        raise HTTPException(status_code=404, detail="Save not found")

    update_fields = body.model_dump(exclude_unset=True)
    if "collection_id" in update_fields:
        collection = _owned_collection(collections, saver, update_fields["collection_id"])
        store.move_to_collection(saver, saveable, collection)
    if update_fields.get("metadata"):
        store.update_metadata(saver, saveable, update_fields["metadata"])

    return Envelope(status="ok", data=SaveRead.model_validate(store.find(saver, saveable)))


@router.get("/count/{saveable_type}/{saveable_id}", response_model=Envelope[SaveCount])
def count_saves(
    saveable_type: str,
    saveable_id: int,
    db: Session = Depends(get_db),
    registry: TypeRegistry = Depends(get_registry),
    queries: SaveableQueries = Depends(get_saveable_queries),
):
    """Number of savers of an entity"""
    saveable = load_entity(db, registry, saveable_type, saveable_id)
    return Envelope(
        status="ok",
        data=SaveCount(
            saveable_type=saveable_type,
            saveable_id=saveable_id,
            times_saved=queries.times_saved(saveable),
        )
    )
