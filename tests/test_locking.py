# tests/test_locking.py
import pytest

from contentcore.core.errors import FeatureDisabledError, LockedError, NotLockOwnerError
from contentcore.schemas.blog import PostCreate, PostUpdate


@pytest.fixture
def post(db, post_engine):
    return post_engine.create(db, PostCreate(title="Lockable post", content="<p>x</p>"), author_id=1)


def test_holder_can_write_others_cannot(db, post_engine, post):
    info = post_engine.acquire_lock(db, post.id, 1)
    assert info.is_locked and info.locked_by == 1
    assert info.expires_at is not None and info.is_expired is False

    post_engine.update(db, post.id, PostUpdate(title="Edited by holder"), actor_id=1)

    with pytest.raises(LockedError) as exc:
        post_engine.update(db, post.id, PostUpdate(title="Edited by intruder"), actor_id=2)
    assert exc.value.status_code == 423
    assert exc.value.context["locked_by"] == 1


def test_anonymous_actor_cannot_write_locked_item(db, post_engine, post):
    post_engine.acquire_lock(db, post.id, 1)

    with pytest.raises(LockedError):
        post_engine.update(db, post.id, PostUpdate(title="Overwritten by anonymous"), actor_id=None)
    with pytest.raises(LockedError):
        post_engine.publish(db, post.id, actor_id=None)
    with pytest.raises(LockedError):
        post_engine.soft_delete(db, post.id, actor_id=None)
    with pytest.raises(LockedError):
        post_engine.hard_delete(db, post.id, actor_id=None)

    result = post_engine.bulk_update_status(db, [post.id], "published", actor_id=None)
    assert result.count == 0 and result.errors[0].code == "LOCKED"
    assert post.title == "Lockable post"
    assert post.status == "draft" and post.deleted_at is None


def test_actor_is_required_on_mutations(db, post_engine, post):
    with pytest.raises(TypeError):
        post_engine.publish(db, post.id)


def test_anonymous_actor_can_write_unlocked_item(db, post_engine, post):
    post_engine.publish(db, post.id, actor_id=None)
    assert post.status == "published"


def test_reentry_refreshes_lease(db, post_engine, post, clock):
    first = post_engine.acquire_lock(db, post.id, 1)
    clock.advance(minutes=10)
    again = post_engine.acquire_lock(db, post.id, 1)
    assert again.locked_at > first.locked_at


def test_active_lock_blocks_other_holder(db, post_engine, post):
    post_engine.acquire_lock(db, post.id, 1)
    with pytest.raises(LockedError):
        post_engine.acquire_lock(db, post.id, 2)


def test_expired_lock_can_be_taken_over(db, post_engine, post, clock):
    post_engine.acquire_lock(db, post.id, 1)
    clock.advance(minutes=31)

    status = post_engine.lock_status(db, post.id)
    assert status.is_locked and status.is_expired

    # Un lock vencido sigue bloqueando escrituras hasta que alguien lo tome
    with pytest.raises(LockedError):
        post_engine.update(db, post.id, PostUpdate(title="Not yet allowed"), actor_id=2)

    info = post_engine.acquire_lock(db, post.id, 2)
    assert info.locked_by == 2
    post_engine.update(db, post.id, PostUpdate(title="Now allowed"), actor_id=2)


def test_lock_exactly_at_timeout_is_still_held(db, post_engine, post, clock):
    post_engine.acquire_lock(db, post.id, 1)
    clock.advance(minutes=30)

    assert post_engine.lock_status(db, post.id).is_expired is False
    assert post_engine.release_stale_locks(db) == 0
    with pytest.raises(LockedError):
        post_engine.acquire_lock(db, post.id, 2)

    clock.advance(seconds=1)
    assert post_engine.lock_status(db, post.id).is_expired is True
    assert post_engine.acquire_lock(db, post.id, 2).locked_by == 2


def test_release_requires_ownership_unless_forced(db, post_engine, post):
    post_engine.acquire_lock(db, post.id, 1)

    with pytest.raises(NotLockOwnerError):
        post_engine.release_lock(db, post.id, 2)

    info = post_engine.release_lock(db, post.id, 2, force=True)
    assert info.is_locked is False
    assert post.locked_by is None and post.locked_at is None


def test_release_of_free_item_is_noop(db, post_engine, post):
    info = post_engine.release_lock(db, post.id, 5)
    assert info.is_locked is False


def test_stale_lock_sweep(db, post_engine, post, clock):
    other = post_engine.create(db, PostCreate(title="Fresh lock post"), author_id=1)
    post_engine.acquire_lock(db, post.id, 1)
    clock.advance(minutes=25)
    post_engine.acquire_lock(db, other.id, 2)
    clock.advance(minutes=10)

    assert post_engine.release_stale_locks(db) == 1
    db.refresh(post)
    db.refresh(other)
    assert post.is_locked is False and post.locked_by is None
    assert other.is_locked is True


def test_locking_disabled(db, post_engine, post):
    post_engine.acquire_lock(db, post.id, 1)
    post_engine.config.update(enable_locking=False)

    with pytest.raises(FeatureDisabledError) as exc:
        post_engine.acquire_lock(db, post.id, 2)
    assert exc.value.code == "LOCKING_DISABLED"

    # sin locking nadie queda bloqueado
    post_engine.update(db, post.id, PostUpdate(title="Anyone can write"), actor_id=2)


def test_lock_timeout_comes_from_live_config(db, post_engine, post, clock):
    post_engine.acquire_lock(db, post.id, 1)
    clock.advance(minutes=10)
    assert post_engine.lock_status(db, post.id).is_expired is False

    post_engine.config.update(lock_timeout_minutes=5)
    assert post_engine.lock_status(db, post.id).is_expired is True
