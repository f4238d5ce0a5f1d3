"""
Unit tests for saver-side reads
"""
import pytest

from saveable.config import SaveableSettings
from saveable.core.exceptions import MixedTypeLimitError, UnknownEntityTypeError
from saveable.core.registry import TypeRegistry
from saveable.services import AssociationStore, SaverQueries

from entities import Post, Team, User


def test_saved_items_of_one_type_in_position_order(store, saver_queries, user, posts):
    store.save(user, posts[2])
    store.save(user, posts[0])
    store.save(user, posts[1])

    assert saver_queries.saved_items(user, Post) == [posts[2], posts[0], posts[1]]
    assert saver_queries.saved_items(user, "entities.Post") == [posts[2], posts[0], posts[1]]


def test_saved_items_query_is_chainable(store, saver_queries, db_session, user, posts):
    for post in posts:
        store.save(user, post)

    stmt = saver_queries.saved_items_query(user, Post).where(Post.title != "Post 2")

    assert list(db_session.execute(stmt).scalars()) == [posts[0], posts[2]]


def test_saved_items_query_requires_registered_type(saver_queries, user):
    with pytest.raises(UnknownEntityTypeError):
        saver_queries.saved_items_query(user, "video")


def test_saved_items_of_unknown_type_is_empty(store, saver_queries, user, posts):
    store.save(user, posts[0])

    assert saver_queries.saved_items(user, "video") == []


def test_saved_items_excludes_other_savers(store, saver_queries, user, other_user, posts):
    store.save(user, posts[0])
    store.save(other_user, posts[1])

    assert saver_queries.saved_items(user) == [posts[0]]
    assert saver_queries.saved_items(other_user) == [posts[1]]


def test_saved_items_ties_prefer_newest(db_session, registry, user, posts):
    store = AssociationStore(db_session, registry, SaveableSettings(_env_file=None, auto_ordering=False))
    queries = SaverQueries(db_session, registry)
    for post in posts:
        store.save(user, post)

    # equal positions fall back to newest save first
    assert queries.saved_items(user, Post) == [posts[2], posts[1], posts[0]]


def test_mixed_types_merged_by_position(store, saver_queries, user, team, posts, comment):
    store.save(user, posts[0])
    store.save(user, comment)
    store.save(user, team)
    store.save(user, posts[1])

    assert saver_queries.saved_items(user) == [posts[0], comment, team, posts[1]]


def test_saved_items_grouped_by_type(store, saver_queries, user, posts, comment):
    store.save(user, posts[0])
    store.save(user, comment)
    store.save(user, posts[1])

    grouped = saver_queries.saved_items_grouped(user)

    assert set(grouped) == {"entities.Post", "entities.Comment"}
    assert [p.id for p in grouped["entities.Post"]] == [posts[0].id, posts[1].id]
    assert grouped["entities.Comment"] == [comment]


def test_unsorted_saved_items(store, collections, saver_queries, user, posts, comment):
    reading = collections.create(user, "Reading List")
    store.save(user, posts[0], reading)
    store.save(user, posts[1])
    store.save(user, comment)

    assert saver_queries.unsorted_saved_items(user) == [posts[1], comment]
    assert saver_queries.unsorted_saved_items(user, Post) == [posts[1]]
    assert [s.saveable_id for s in saver_queries.unsorted_saved_records(user)] == [posts[1].id, comment.id]


def test_reading_list_flow(store, collections, saver_queries, user, posts):
    reading = collections.create(user, "Reading List")
    store.save(user, posts[0], reading)
    store.save(user, posts[1])

    assert collections.items(reading) == [posts[0]]
    assert saver_queries.unsorted_saved_items(user) == [posts[1]]

    collections.delete(reading)

    # both now sit at position 1; the newer save comes first
    assert saver_queries.unsorted_saved_items(user) == [posts[1], posts[0]]


def test_saved_records_in_position_order(store, saver_queries, user, posts):
    store.save(user, posts[1])
    store.save(user, posts[0])

    records = saver_queries.saved_records(user)

    assert [r.saveable_id for r in records] == [posts[1].id, posts[0].id]
    assert [r.order_column for r in records] == [1, 2]


def test_saved_items_count(store, saver_queries, user, posts, comment):
    store.save(user, posts[0])
    store.save(user, posts[1])
    store.save(user, comment)

    assert saver_queries.saved_items_count(user) == 3
    assert saver_queries.saved_items_count(user, Post) == 2
    assert saver_queries.saved_items_count(user, "entities.Comment") == 1
    assert saver_queries.saved_items_count(user, "video") == 0


def test_where_saved_item_filters_savers(store, saver_queries, db_session, user, other_user, team, posts):
    store.save(user, posts[0])
    store.save(team, posts[0])
    store.save(other_user, posts[1])

    stmt = saver_queries.where_saved_item(User, posts[0])

    assert list(db_session.execute(stmt).scalars()) == [user]
    # team shares id 1 with user but is a different saver type
    assert list(db_session.execute(saver_queries.where_saved_item(Team, posts[0])).scalars()) == [team]


def test_mixed_type_limit(store, db_session, registry, user, team, posts, comment):
    store.save(user, posts[0])
    store.save(user, comment)
    store.save(user, team)
    queries = SaverQueries(db_session, registry, SaveableSettings(_env_file=None, max_mixed_types=2))

    with pytest.raises(MixedTypeLimitError) as exc_info:
        queries.saved_items(user)

    assert exc_info.value.status_code == 422
    # a single type is never limited
    assert queries.saved_items(user, Post) == [posts[0]]


def test_unresolvable_tags_are_skipped(store, db_session, user, posts, comment):
    store.save(user, posts[0])
    store.save(user, comment)

    # Comment is no longer registered with this registry
    registry = TypeRegistry()
    registry.register(User)
    registry.register(Post)
    queries = SaverQueries(db_session, registry)

    assert queries.saved_items(user) == [posts[0]]
    assert set(queries.saved_items_grouped(user)) == {"entities.Post"}


def test_alias_and_canonical_rows_read_together(db_session, user, posts):
    plain = TypeRegistry()
    plain.register(User)
    plain.register(Post)
    AssociationStore(db_session, plain).save(user, posts[0])

    aliased = TypeRegistry()
    aliased.register(User)
    aliased.register(Post, "post")
    AssociationStore(db_session, aliased).save(user, posts[1])
    queries = SaverQueries(db_session, aliased)

    # rows written before the alias existed keep the canonical name
    assert queries.saved_items_count(user, Post) == 2
    assert queries.saved_items(user, Post) == [posts[0], posts[1]]
    assert queries.saved_items(user) == [posts[0], posts[1]]
