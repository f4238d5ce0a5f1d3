"""
Integration tests for the saves and collections HTTP endpoints
"""
import pytest
from fastapi.testclient import TestClient

from saveable.core.db import get_db
from saveable.main import create_app


@pytest.fixture
def client(session_factory, registry, settings):
    app = create_app(registry, settings)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_toggle_creates_and_removes_save(client, user, posts):
    url = f"/saves/entities.User/{user.id}/toggle/entities.Post/{posts[0].id}"

    response = client.post(url)
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["data"]["saved"] is True

    response = client.post(url)
    assert response.json()["data"]["saved"] is False

    listed = client.get(f"/saves/entities.User/{user.id}").json()
    assert listed["data"] == []


def test_toggle_with_collection_and_metadata(client, collections, user, posts):
    reading = collections.create(user, "Reading List")

    response = client.post(
        f"/saves/entities.User/{user.id}/toggle/entities.Post/{posts[0].id}",
        json={"collection_id": reading.id, "metadata": {"note": "weekend"}},
    )
    assert response.status_code == 200

    records = client.get(
        f"/saves/entities.User/{user.id}", params={"collection_id": reading.id}
    ).json()["data"]
    assert len(records) == 1
    assert records[0]["saveable_id"] == posts[0].id
    assert records[0]["collection_id"] == reading.id
    assert records[0]["metadata"] == {"note": "weekend"}
    assert records[0]["order_column"] == 1


def test_toggle_into_someone_elses_collection_is_not_found(client, collections, user, other_user, posts):
    theirs = collections.create(other_user, "Theirs")

    response = client.post(
        f"/saves/entities.User/{user.id}/toggle/entities.Post/{posts[0].id}",
        json={"collection_id": theirs.id},
    )

    assert response.status_code == 404
    assert response.json()["error_code"] == "NOT_FOUND"


def test_unknown_entity_type_is_not_found(client, user):
    response = client.post(f"/saves/entities.User/{user.id}/toggle/video/1")

    assert response.status_code == 404
    body = response.json()
    assert body["status"] == "error"
    assert body["data"] is None
    assert "video" in body["error"]


def test_list_unsorted_saves(client, store, collections, user, posts):
    reading = collections.create(user, "Reading")
    store.save(user, posts[0], reading)
    store.save(user, posts[1])

    records = client.get(f"/saves/entities.User/{user.id}", params={"unsorted": True}).json()["data"]

    assert [r["saveable_id"] for r in records] == [posts[1].id]


def test_update_save_moves_and_merges_metadata(client, store, collections, user, posts):
    reading = collections.create(user, "Reading")
    store.save(user, posts[0], metadata={"note": "draft"})
    url = f"/saves/entities.User/{user.id}/items/entities.Post/{posts[0].id}"

    response = client.patch(url, json={"collection_id": reading.id, "metadata": {"rating": 4}})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["collection_id"] == reading.id
    assert data["metadata"] == {"note": "draft", "rating": 4}

    data = client.patch(url, json={"collection_id": None}).json()["data"]
    assert data["collection_id"] is None
    assert data["metadata"] == {"note": "draft", "rating": 4}


def test_update_unsaved_item_is_not_found(client, user, posts):
    response = client.patch(
        f"/saves/entities.User/{user.id}/items/entities.Post/{posts[0].id}",
        json={"metadata": {"note": "x"}},
    )

    assert response.status_code == 404


def test_count_saves(client, store, user, other_user, posts):
    store.save(user, posts[0])
    store.save(other_user, posts[0])

    data = client.get(f"/saves/count/entities.Post/{posts[0].id}").json()["data"]

    assert data == {"saveable_type": "entities.Post", "saveable_id": posts[0].id, "times_saved": 2}


def test_create_and_list_collections(client, user):
    response = client.post(
        "/collections",
        json={"owner_type": "entities.User", "owner_id": user.id, "name": "Reading List"},
    )
    assert response.status_code == 201
    root = response.json()["data"]
    assert root["name"] == "Reading List"
    assert root["parent_id"] is None

    child = client.post(
        "/collections",
        json={
            "owner_type": "entities.User",
            "owner_id": user.id,
            "name": "Papers",
            "parent_id": root["id"],
        },
    ).json()["data"]
    assert child["parent_id"] == root["id"]

    listed = client.get(f"/collections/entities.User/{user.id}").json()["data"]
    assert [c["id"] for c in listed] == [root["id"], child["id"]]
    roots = client.get(f"/collections/entities.User/{user.id}", params={"roots_only": True}).json()["data"]
    assert [c["id"] for c in roots] == [root["id"]]


def test_create_collection_validates_payload(client, user):
    response = client.post(
        "/collections",
        json={"owner_type": "entities.User", "owner_id": user.id, "name": ""},
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "VALIDATION_ERROR"


def test_delete_collection_unfiles_saves(client, store, collections, user, posts):
    reading = collections.create(user, "Reading")
    collections.create(user, "Nested", parent=reading)
    store.save(user, posts[0], reading)

    response = client.delete(f"/collections/{reading.id}")
    assert response.status_code == 200
    assert response.json()["data"] == {"collection_id": reading.id, "collections_deleted": 2}

    records = client.get(f"/saves/entities.User/{user.id}", params={"unsorted": True}).json()["data"]
    assert [r["saveable_id"] for r in records] == [posts[0].id]


def test_delete_missing_collection(client):
    response = client.delete("/collections/999")

    assert response.status_code == 404
