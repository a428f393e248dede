# tests/test_cache.py
import logging

from contentcore.schemas.blog import PostCreate, PostUpdate
from contentcore.services.blog_service import PostEngine
from contentcore.services.cache_service import CacheKeys, MemoryCache


class TickingClock:
    def __init__(self) -> None:
        self.t = 1000.0

    def __call__(self) -> float:
        return self.t


class BrokenCache:
    def get(self, key):
        raise ConnectionError("cache down")

    def set(self, key, value, ttl_seconds):
        raise ConnectionError("cache down")

    def delete(self, key):
        raise ConnectionError("cache down")

    def flush(self, pattern):
        raise ConnectionError("cache down")


def test_memory_cache_ttl_and_glob_flush():
    tick = TickingClock()
    cache = MemoryCache(clock=tick)
    cache.set("pages:list:a", 1, 60)
    cache.set("pages:list:b", 2, 60)
    cache.set("pages:item:id:1", 3, 10)

    assert cache.get("pages:item:id:1") == 3
    tick.t += 10
    assert cache.get("pages:item:id:1") is None

    cache.flush("pages:list:*")
    assert cache.keys() == []


def test_cache_keys_format():
    keys = CacheKeys("pages")
    assert keys.by_id(7) == "pages:item:id:7"
    assert keys.by_slug("about") == "pages:item:slug:about"
    assert keys.children(3) == "pages:children:3"
    assert keys.aggregate("tree") == "pages:tree"
    assert keys.listing("abc").startswith("pages:list:")


def test_reads_are_cached_until_an_engine_mutation(db, post_engine):
    post = post_engine.create(db, PostCreate(title="Cached title"), author_id=1)
    assert post_engine.get(db, post.id).title == "Cached title"

    # escritura por fuera del engine: el cache no se entera
    post.title = "Changed behind the back"
    db.flush()
    assert post_engine.get(db, post.id).title == "Cached title"

    post_engine.update(db, post.id, PostUpdate(title="Changed properly"), actor_id=1)
    assert post_engine.get(db, post.id).title == "Changed properly"


def test_listing_cache_dropped_on_create(db, post_engine):
    post_engine.create(db, PostCreate(title="First entry"), author_id=1)
    assert post_engine.list(db).total == 1
    assert any(k.startswith("blog:list:") for k in post_engine.cache.keys())

    post_engine.create(db, PostCreate(title="Second entry"), author_id=1)
    assert not any(k.startswith("blog:list:") for k in post_engine.cache.keys())
    assert post_engine.list(db).total == 2


def test_failing_notifier_does_not_break_mutation(db, clock, caplog):
    def explode(paths):
        raise RuntimeError("webhook down")

    engine = PostEngine(cache=MemoryCache(), notifier=explode, clock=clock)
    with caplog.at_level(logging.WARNING):
        post = engine.create(db, PostCreate(title="Survives notifier"), author_id=1)
        db.commit()

    assert post.id is not None
    assert "Revalidation failed" in caplog.text


def test_failing_cache_is_a_miss(db, clock, caplog):
    engine = PostEngine(cache=BrokenCache(), clock=clock)
    with caplog.at_level(logging.WARNING):
        post = engine.create(db, PostCreate(title="Survives cache"), author_id=1)
        assert engine.get(db, post.id).title == "Survives cache"
    assert "Cache" in caplog.text


# ---------- revalidación diferida al commit ----------
def test_revalidation_waits_for_commit(db, post_engine, notifier):
    post_engine.create(db, PostCreate(title="Deferred webhook"), author_id=1)
    assert notifier.calls == []

    db.commit()
    assert notifier.calls == [["/blog/deferred-webhook"]]


def test_rollback_discards_pending_revalidation(db, post_engine, notifier):
    post_engine.create(db, PostCreate(title="Never committed"), author_id=1)
    db.rollback()
    db.commit()
    assert notifier.calls == []


def test_failed_savepoint_keeps_pending_revalidation(db, post_engine, notifier):
    post_engine.create(db, PostCreate(title="Kept across savepoint"), author_id=1)
    result = post_engine.bulk_delete(db, [4040], actor_id=1)
    assert result.errors[0].code == "NOT_FOUND"

    db.commit()
    assert notifier.calls == [["/blog/kept-across-savepoint"]]


def test_one_notification_per_commit(db, post_engine, notifier):
    a = post_engine.create(db, PostCreate(title="Batched one"), author_id=1)
    post_engine.publish(db, a.id, actor_id=1)
    db.commit()
    assert len(notifier.calls) == 1
    assert notifier.calls[0] == ["/blog/batched-one"]
