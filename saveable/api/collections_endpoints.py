"""
Collections API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from saveable.core.db import get_db
from saveable.core.dependencies import get_collection_service, get_registry, load_entity
from saveable.core.registry import TypeRegistry
from saveable.schemas.base import Envelope
from saveable.schemas.collection import CollectionCreate, CollectionDeleted, CollectionRead
from saveable.services import CollectionService

router = APIRouter(prefix="/collections", tags=["collections"])


@router.post(
    "",
    response_model=Envelope[CollectionRead],
    status_code=status.HTTP_201_CREATED,
)
def create_collection(
    payload: CollectionCreate,
    db: Session = Depends(get_db),
    registry: TypeRegistry = Depends(get_registry),
    collections: CollectionService = Depends(get_collection_service),
):
    """
    Create a collection

    - **owner_type** / **owner_id**: Owning entity
    - **parent_id**: Optional parent collection of the same owner
    """
    owner = load_entity(db, registry, payload.owner_type, payload.owner_id)
    parent = None
    if payload.parent_id is not None:
        parent = collections.get(payload.parent_id)
        if parent is None or not parent.owned_by(registry.match(owner)):
            raise HTTPException(status_code=404, detail=f"Collection {payload.parent_id} not found")

    collection = collections.create(owner, payload.name, payload.description, parent)
    return Envelope(status="ok", data=CollectionRead.model_validate(collection))


@router.get("/{owner_type}/{owner_id}", response_model=Envelope[list[CollectionRead]])
def list_collections(
    owner_type: str,
    owner_id: int,
    roots_only: bool = False,
    db: Session = Depends(get_db),
    registry: TypeRegistry = Depends(get_registry),
    collections: CollectionService = Depends(get_collection_service),
):
    """List an owner's collections"""
    owner = load_entity(db, registry, owner_type, owner_id)
    found = collections.root_collections(owner) if roots_only else collections.for_owner(owner)
    return Envelope(status="ok", data=[CollectionRead.model_validate(c) for c in found])


@router.delete("/{collection_id}", response_model=Envelope[CollectionDeleted])
def delete_collection(
    collection_id: int,
    collections: CollectionService = Depends(get_collection_service),
):
    """Delete a collection and its sub-collections; saves in them become unsorted"""
    collection = collections.get(collection_id)
    if collection is None:
        raise HTTPException(status_code=404, detail=f"Collection {collection_id} not found")
    deleted = collections.delete(collection)
    return Envelope(
        status="ok",
        data=CollectionDeleted(collection_id=collection_id, collections_deleted=deleted),
    )
