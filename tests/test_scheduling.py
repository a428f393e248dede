# tests/test_scheduling.py
from datetime import timedelta

from contentcore.schemas.blog import PostCreate
from contentcore.schemas.pages import PageCreate
from contentcore.services.sweep_service import run_sweeps


def _scheduled_post(engine, db, title, when):
    return engine.create(db, PostCreate(title=title, scheduled_for=when), author_id=1)


def test_due_items_are_published(db, post_engine, clock, notifier):
    soon = _scheduled_post(post_engine, db, "Publishes soon", clock.now + timedelta(hours=1))
    later = _scheduled_post(post_engine, db, "Publishes later", clock.now + timedelta(hours=3))
    clock.advance(hours=2)
    db.commit()
    notifier.calls.clear()

    result = post_engine.process_scheduled(db)
    db.commit()

    assert result.processed == 1
    assert result.published == [soon.id]
    assert result.errors == []
    assert soon.status == "published"
    assert soon.published_at == clock.now
    assert soon.scheduled_for is None
    assert later.status == "scheduled"
    assert notifier.calls == [["/blog/publishes-soon"]]


def test_nothing_due(db, post_engine, clock, notifier):
    _scheduled_post(post_engine, db, "Far future", clock.now + timedelta(days=30))
    db.commit()
    notifier.calls.clear()
    result = post_engine.process_scheduled(db)
    db.commit()
    assert result.processed == 0 and result.published == []
    assert notifier.calls == []


def test_scheduling_disabled_skips_sweep(db, post_engine, clock):
    post = _scheduled_post(post_engine, db, "Stays scheduled", clock.now + timedelta(minutes=5))
    clock.advance(hours=1)
    post_engine.config.update(enable_scheduling=False)

    result = post_engine.process_scheduled(db)
    assert result.processed == 0
    assert post.status == "scheduled"


def test_scheduled_listing_is_ordered(db, post_engine, clock):
    b = _scheduled_post(post_engine, db, "Second in line", clock.now + timedelta(hours=5))
    a = _scheduled_post(post_engine, db, "First in line", clock.now + timedelta(hours=1))
    post_engine.create(db, PostCreate(title="Plain draft"), author_id=1)
    assert [s.id for s in post_engine.scheduled(db)] == [a.id, b.id]


def test_run_sweeps_commits_each_task(db, page_engine, post_engine, clock):
    page = page_engine.create(
        db, PageCreate(title="Launch page", scheduled_for=clock.now + timedelta(minutes=10)), author_id=1
    )
    post = _scheduled_post(post_engine, db, "Launch post", clock.now + timedelta(minutes=10))
    locked = post_engine.create(db, PostCreate(title="Forgotten lock"), author_id=1)
    post_engine.acquire_lock(db, locked.id, 9)
    db.commit()

    clock.advance(hours=1)
    results = run_sweeps(db, page_engine, post_engine)

    assert set(results) == {
        "publish_scheduled_pages",
        "publish_scheduled_posts",
        "release_stale_page_locks",
        "release_stale_post_locks",
    }
    assert all(r["ok"] for r in results.values())
    assert results["publish_scheduled_pages"]["result"]["published"] == [page.id]
    assert results["publish_scheduled_posts"]["result"]["published"] == [post.id]
    assert results["release_stale_post_locks"]["result"] == 1

    db.expire_all()
    assert db.get(post_engine.model, post.id).status == "published"
    assert db.get(post_engine.model, locked.id).is_locked is False


def test_run_sweeps_reports_failed_task(db, page_engine, post_engine, monkeypatch):
    from contentcore.core.errors import ContentError

    def boom(_db):
        raise ContentError("storage unavailable", code="STORAGE_ERROR")

    monkeypatch.setattr(page_engine, "process_scheduled", boom)
    results = run_sweeps(db, page_engine, post_engine)

    assert results["publish_scheduled_pages"] == {"ok": False, "error": "storage unavailable"}
    assert results["publish_scheduled_posts"]["ok"] is True
