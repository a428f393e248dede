# tests/test_blog.py
import pytest

from contentcore.core.errors import ContentValidationError, LimitExceededError, NotFoundError
from contentcore.schemas.blog import CategoryCreate, CategoryUpdate, PostCreate, SeriesCreate, SeriesUpdate


def _post(engine, db, title, **kw):
    return engine.create(db, PostCreate(title=title, content="<p>Some words here</p>", **kw), author_id=1)


# ---------- categorías ----------
def test_category_slugs_and_counts(db, post_engine):
    news = post_engine.create_category(db, CategoryCreate(name="News"))
    again = post_engine.create_category(db, CategoryCreate(name="News!"))
    assert (news.slug, again.slug) == ("news", "news-2")

    _post(post_engine, db, "Tagged post", category_ids=[news.id])
    gone = _post(post_engine, db, "Tagged then deleted", category_ids=[news.id])
    post_engine.soft_delete(db, gone.id, actor_id=1)

    counts = {c.slug: c.post_count for c in post_engine.categories(db)}
    assert counts == {"news": 1, "news-2": 0}


def test_category_limit_and_unknown(db, post_engine):
    cats = [post_engine.create_category(db, CategoryCreate(name=f"Cat {i}")) for i in range(4)]
    with pytest.raises(LimitExceededError) as exc:
        _post(post_engine, db, "Too many cats", category_ids=[c.id for c in cats])
    assert exc.value.code == "CATEGORY_LIMIT"

    with pytest.raises(NotFoundError) as exc:
        _post(post_engine, db, "Ghost category", category_ids=[999])
    assert exc.value.code == "CATEGORY_NOT_FOUND"


def test_category_rename_reaches_cached_posts(db, post_engine):
    cat = post_engine.create_category(db, CategoryCreate(name="Guides"))
    post = _post(post_engine, db, "How to guide", category_ids=[cat.id])
    assert [c.name for c in post_engine.get(db, post.id).categories] == ["Guides"]

    post_engine.update_category(db, cat.id, CategoryUpdate(name="Tutorials"))
    assert cat.slug == "tutorials"
    assert [c.name for c in post_engine.get(db, post.id).categories] == ["Tutorials"]


def test_delete_category(db, post_engine):
    cat = post_engine.create_category(db, CategoryCreate(name="Temporary"))
    _post(post_engine, db, "Post with temp cat", category_ids=[cat.id])
    post_engine.delete_category(db, cat.id)
    assert post_engine.categories(db) == []
    with pytest.raises(NotFoundError):
        post_engine.delete_category(db, cat.id)


def test_set_categories_replaces(db, post_engine):
    a = post_engine.create_category(db, CategoryCreate(name="Alpha"))
    b = post_engine.create_category(db, CategoryCreate(name="Beta"))
    post = _post(post_engine, db, "Recategorized", category_ids=[a.id])
    post_engine.set_categories(db, post.id, [b.id], actor_id=1)
    assert [c.slug for c in post.categories] == ["beta"]
    assert post_engine.list(db, category_id=b.id).total == 1
    assert post_engine.list(db, category_id=a.id).total == 0


# ---------- series ----------
def test_series_membership_and_order(db, post_engine):
    series = post_engine.create_series(db, SeriesCreate(title="Python basics"))
    a, b, c = (_post(post_engine, db, f"Basics part {n}") for n in (1, 2, 3))
    for p in (a, b, c):
        post_engine.add_post_to_series(db, series.id, p.id, actor_id=1)

    assert post_engine.get_series(db, series.id).post_ids == [a.id, b.id, c.id]

    out = post_engine.reorder_series(db, series.id, [c.id, a.id, b.id])
    assert out.post_ids == [c.id, a.id, b.id]

    outsider = _post(post_engine, db, "Not in series")
    with pytest.raises(ContentValidationError) as exc:
        post_engine.reorder_series(db, series.id, [a.id, outsider.id])
    assert exc.value.code == "NOT_IN_SERIES"

    post_engine.remove_post_from_series(db, b.id, actor_id=1)
    assert b.series_id is None
    assert post_engine.get_series(db, series.id).post_ids == [c.id, a.id]
    assert [s.slug for s in post_engine.list_series(db)] == ["python-basics"]


def test_unknown_series(db, post_engine):
    with pytest.raises(NotFoundError) as exc:
        post_engine.get_series(db, 42)
    assert exc.value.code == "SERIES_NOT_FOUND"


def test_update_series_renames_and_reslugs(db, post_engine):
    series = post_engine.create_series(db, SeriesCreate(title="Python basics"))
    post_engine.create_series(db, SeriesCreate(title="Rust basics"))

    post_engine.update_series(db, series.id, SeriesUpdate(description="From zero"))
    assert (series.slug, series.description) == ("python-basics", "From zero")

    post_engine.update_series(db, series.id, SeriesUpdate(title="Rust basics"))
    assert (series.title, series.slug) == ("Rust basics", "rust-basics-2")

    with pytest.raises(ContentValidationError) as exc:
        post_engine.update_series(db, series.id, SeriesUpdate(title=" <b>x</b> "))
    assert exc.value.code == "TITLE_TOO_SHORT"
    assert series.title == "Rust basics"


def test_delete_series_detaches_posts(db, post_engine):
    series = post_engine.create_series(db, SeriesCreate(title="Doomed series"))
    a = _post(post_engine, db, "Part one")
    b = _post(post_engine, db, "Part two")
    for p in (a, b):
        post_engine.add_post_to_series(db, series.id, p.id, actor_id=1)
    series_id = series.id

    post_engine.delete_series(db, series_id)

    assert (a.series_id, a.series_order, b.series_id, b.series_order) == (None, None, None, None)
    assert db.get(post_engine.model, a.id) is not None
    with pytest.raises(NotFoundError) as exc:
        post_engine.get_series(db, series_id)
    assert exc.value.code == "SERIES_NOT_FOUND"
    with pytest.raises(NotFoundError):
        post_engine.delete_series(db, series_id)


# ---------- destacados / fijados / feed ----------
def test_featured_only_lists_published(db, post_engine, clock):
    old = _post(post_engine, db, "Old featured", status="published", is_featured=True)
    clock.advance(hours=1)
    new = _post(post_engine, db, "New featured", status="published")
    post_engine.set_featured(db, new.id, actor_id=1)
    _post(post_engine, db, "Draft featured", is_featured=True)

    assert [p.id for p in post_engine.featured(db)] == [new.id, old.id]
    assert [p.id for p in post_engine.featured(db, limit=1)] == [new.id]


def test_pinned_order(db, post_engine):
    a = _post(post_engine, db, "Pinned alpha", status="published")
    b = _post(post_engine, db, "Pinned beta", status="published")
    post_engine.set_pinned(db, a.id, pin_order=2, actor_id=1)
    post_engine.set_pinned(db, b.id, pin_order=1, actor_id=1)
    assert [p.id for p in post_engine.pinned(db)] == [b.id, a.id]

    assert [p.id for p in post_engine.reorder_pinned(db, [a.id, b.id], actor_id=1)] == [a.id, b.id]

    post_engine.set_pinned(db, a.id, False, actor_id=1)
    assert a.pin_order == 0
    assert [p.id for p in post_engine.pinned(db)] == [b.id]


def test_feed(db, post_engine, clock):
    first = _post(post_engine, db, "First published", status="published")
    clock.advance(minutes=5)
    second = _post(post_engine, db, "Second published", status="published")
    _post(post_engine, db, "Still a draft")

    feed = post_engine.feed(db)
    assert [f.id for f in feed] == [second.id, first.id]
    assert feed[0].path == "/blog/second-published"
    assert len(post_engine.feed(db, limit=1)) == 1


# ---------- adyacentes / clonado ----------
def test_adjacent_posts_by_publication_date(db, post_engine, clock):
    first = _post(post_engine, db, "Adjacent first", status="published")
    clock.advance(minutes=5)
    middle = _post(post_engine, db, "Adjacent middle", status="published")
    clock.advance(minutes=5)
    _post(post_engine, db, "Adjacent draft")
    clock.advance(minutes=5)
    last = _post(post_engine, db, "Adjacent last", status="published")

    out = post_engine.adjacent(db, middle.id)
    assert (out.previous.id, out.next.id) == (first.id, last.id)
    assert out.next.path == "/blog/adjacent-last"

    edges = post_engine.adjacent(db, first.id)
    assert edges.previous is None and edges.next.id == middle.id


def test_adjacent_refreshes_after_unpublish(db, post_engine, clock):
    first = _post(post_engine, db, "Neighbour one", status="published")
    clock.advance(minutes=5)
    second = _post(post_engine, db, "Neighbour two", status="published")
    assert post_engine.adjacent(db, first.id).next.id == second.id

    post_engine.unpublish(db, second.id, actor_id=1)
    db.commit()
    assert post_engine.adjacent(db, first.id).next is None
    empty = post_engine.adjacent(db, second.id)
    assert empty.previous is None and empty.next is None

    with pytest.raises(NotFoundError):
        post_engine.adjacent(db, 4242)


def test_clone_post_creates_draft_copy(db, post_engine):
    news = post_engine.create_category(db, CategoryCreate(name="News"))
    source = _post(
        post_engine, db, "Cloned source", status="published", meta_title="Meta", category_ids=[news.id],
        password="s3cret",
    )
    post_engine.set_featured(db, source.id, actor_id=1)

    clone = post_engine.clone_post(db, source.id, author_id=2)

    assert clone.id != source.id
    assert (clone.title, clone.slug, clone.status) == ("Cloned source (Copy)", "cloned-source-copy", "draft")
    assert clone.content == source.content and clone.meta_title == "Meta"
    assert [c.id for c in clone.categories] == [news.id]
    assert clone.password_hash == source.password_hash
    assert clone.is_featured is False and clone.published_at is None
    assert clone.revision == 1 and clone.author_id == 2

    again = post_engine.clone_post(db, source.id, author_id=2)
    assert again.slug == "cloned-source-copy-2"


# ---------- bulk propios del blog ----------
def test_bulk_feature_and_categories(db, post_engine):
    a = _post(post_engine, db, "Bulk alpha")
    b = _post(post_engine, db, "Bulk beta")
    cat = post_engine.create_category(db, CategoryCreate(name="Batch"))

    assert post_engine.bulk_feature(db, [a.id, b.id], actor_id=1).count == 2
    assert a.is_featured and b.is_featured

    result = post_engine.bulk_set_categories(db, [a.id, b.id, 777], [cat.id], actor_id=1)
    assert result.count == 2
    assert [e.code for e in result.errors] == ["NOT_FOUND"]
    assert [c.id for c in b.categories] == [cat.id]

    with pytest.raises(NotFoundError):
        post_engine.bulk_set_categories(db, [a.id], [12345], actor_id=1)
