# tests/test_bulk.py
from datetime import timedelta

import pytest

from contentcore.core.errors import ContentValidationError, LimitExceededError
from contentcore.schemas.blog import PostCreate
from contentcore.schemas.pages import PageCreate


def _posts(engine, db, n):
    return [engine.create(db, PostCreate(title=f"Bulk post {i}"), author_id=1) for i in range(n)]


def _errors_by_id(result):
    return {e.id: e.code for e in result.errors}


@pytest.mark.parametrize("ids", [[], ["x", -1, 0], None])
def test_empty_ids_rejected_up_front(db, post_engine, ids):
    with pytest.raises(ContentValidationError) as exc:
        post_engine.bulk_update_status(db, ids, "published", actor_id=1)
    assert exc.value.code == "EMPTY_IDS"


def test_bulk_limit(db, post_engine):
    post_engine.config.update(max_bulk_size=2)
    with pytest.raises(LimitExceededError) as exc:
        post_engine.bulk_delete(db, [1, 2, 3], actor_id=1)
    assert exc.value.code == "BULK_LIMIT_EXCEEDED"
    assert exc.value.context["received"] == 3


def test_partial_failure_keeps_going(db, post_engine):
    a, b = _posts(post_engine, db, 2)
    result = post_engine.bulk_update_status(db, [a.id, 9999, b.id, a.id], "published", actor_id=1)

    assert result.count == 2
    assert _errors_by_id(result) == {9999: "NOT_FOUND"}
    assert a.status == b.status == "published"


def test_invalid_transition_is_reported_per_item(db, post_engine):
    a, b = _posts(post_engine, db, 2)
    post_engine.archive(db, b.id, actor_id=1)
    result = post_engine.bulk_update_status(db, [a.id, b.id], "published", actor_id=1)
    assert result.count == 1
    assert _errors_by_id(result) == {b.id: "INVALID_TRANSITION"}
    assert b.status == "archived"


def test_locked_items_are_skipped(db, post_engine):
    a, b = _posts(post_engine, db, 2)
    post_engine.acquire_lock(db, b.id, 1)
    result = post_engine.bulk_update_status(db, [a.id, b.id], "published", actor_id=2)
    assert _errors_by_id(result) == {b.id: "LOCKED"}


def test_bulk_invalidates_once(db, post_engine, notifier):
    posts = _posts(post_engine, db, 3)
    db.commit()
    notifier.calls.clear()
    post_engine.bulk_update_status(db, [p.id for p in posts], "published", actor_id=1)
    db.commit()
    assert len(notifier.calls) == 1
    assert sorted(notifier.calls[0]) == sorted(f"/blog/{p.slug}" for p in posts)


def test_nothing_succeeded_means_no_invalidation(db, post_engine, notifier):
    notifier.calls.clear()
    result = post_engine.bulk_delete(db, [404, 405], actor_id=1)
    db.commit()
    assert result.count == 0 and len(result.errors) == 2
    assert notifier.calls == []


def test_bulk_schedule(db, post_engine, clock):
    posts = _posts(post_engine, db, 2)
    with pytest.raises(ContentValidationError) as exc:
        post_engine.bulk_schedule(db, [p.id for p in posts], clock.now - timedelta(hours=1), actor_id=1)
    assert exc.value.code == "SCHEDULE_PAST"

    when = clock.now + timedelta(hours=6)
    result = post_engine.bulk_schedule(db, [p.id for p in posts], when, actor_id=1)
    assert result.count == 2
    assert all(p.status == "scheduled" and p.scheduled_for == when for p in posts)


def test_bulk_status_scheduled_needs_date(db, post_engine):
    (post,) = _posts(post_engine, db, 1)
    with pytest.raises(ContentValidationError) as exc:
        post_engine.bulk_update_status(db, [post.id], "scheduled", actor_id=1)
    assert exc.value.code == "SCHEDULE_REQUIRED"


def test_bulk_soft_delete_hard_delete_and_restore(db, post_engine):
    a, b, c = _posts(post_engine, db, 3)

    assert post_engine.bulk_delete(db, [a.id, b.id], actor_id=1).count == 2
    assert a.deleted_at is not None and b.deleted_at is not None

    restored = post_engine.bulk_restore(db, [a.id, c.id], actor_id=1)
    assert restored.count == 1
    assert _errors_by_id(restored) == {c.id: "NOT_FOUND"}
    assert a.deleted_at is None and a.status == "draft"

    hard = post_engine.bulk_delete(db, [b.id], permanent=True, actor_id=1)
    assert hard.count == 1
    assert db.get(post_engine.model, b.id) is None


# ---------- protección ----------
@pytest.fixture
def system_and_custom(db, page_engine):
    page_engine.bootstrap_system_pages(db, author_id=1)
    about = page_engine.get_by_system_key(db, "ABOUT")
    custom = page_engine.create(db, PageCreate(title="Custom page", status="published"), author_id=1)
    return about, custom


@pytest.mark.parametrize("status", ["draft", "archived"])
def test_system_pages_excluded_from_bulk_status(db, page_engine, system_and_custom, status):
    about, custom = system_and_custom
    result = page_engine.bulk_update_status(db, [about.id, custom.id], status, actor_id=1)
    assert result.count == 1
    assert _errors_by_id(result) == {about.id: "PROTECTED_ITEM"}


def test_system_pages_allowed_in_bulk_publish(db, page_engine, system_and_custom):
    about, custom = system_and_custom
    result = page_engine.bulk_update_status(db, [about.id, custom.id], "published", actor_id=1)
    assert result.count == 2 and result.errors == []


def test_system_pages_excluded_from_bulk_delete_and_move(db, page_engine, system_and_custom):
    about, custom = system_and_custom
    parent = page_engine.create(db, PageCreate(title="Parent"), author_id=1)

    deleted = page_engine.bulk_delete(db, [about.id, custom.id], actor_id=1)
    assert _errors_by_id(deleted) == {about.id: "PROTECTED_ITEM"}

    moved = page_engine.bulk_move(db, [about.id], parent.id, actor_id=1)
    assert moved.count == 0
    assert _errors_by_id(moved) == {about.id: "PROTECTED_ITEM"}


# ---------- bulk propios de pages ----------
def test_bulk_move(db, page_engine):
    parent = page_engine.create(db, PageCreate(title="Docs"), author_id=1)
    a = page_engine.create(db, PageCreate(title="Install"), author_id=1)
    b = page_engine.create(db, PageCreate(title="Usage"), author_id=1)

    result = page_engine.bulk_move(db, [a.id, b.id, parent.id], parent.id, actor_id=1)
    assert result.count == 2
    assert _errors_by_id(result) == {parent.id: "SELF_PARENT"}
    assert (a.path, b.path) == ("/docs/install", "/docs/usage")


def test_bulk_reorder(db, page_engine):
    a = page_engine.create(db, PageCreate(title="First"), author_id=1)
    b = page_engine.create(db, PageCreate(title="Second"), author_id=1)
    result = page_engine.bulk_reorder(db, [{"id": a.id, "sort_order": 2}, {"id": b.id, "sort_order": 1}], actor_id=1)
    assert result.count == 2
    assert (a.sort_order, b.sort_order) == (2, 1)
    assert [p.id for p in page_engine.children(db, None)] == [b.id, a.id]


def test_bulk_template_and_visibility(db, page_engine):
    a = page_engine.create(db, PageCreate(title="Alpha"), author_id=1)
    with pytest.raises(ContentValidationError) as exc:
        page_engine.bulk_set_template(db, [a.id], "nope", actor_id=1)
    assert exc.value.code == "INVALID_TEMPLATE"

    assert page_engine.bulk_set_template(db, [a.id], "landing", actor_id=1).count == 1
    assert page_engine.bulk_set_visibility(db, [a.id], "private", actor_id=1).count == 1
    assert (a.template, a.visibility) == ("landing", "private")
