# tests/test_system_pages.py
import pytest

from contentcore.core.errors import ContentValidationError, NotFoundError, ProtectedItemError
from contentcore.core.runtime_config import EngineConfig
from contentcore.schemas.pages import PageCreate, PageUpdate
from contentcore.services.page_service import SYSTEM_PAGE_KEYS, PageEngine


def test_bootstrap_is_idempotent(db, page_engine, notifier):
    first = page_engine.bootstrap_system_pages(db, author_id=1)
    db.commit()
    assert len(first) == len(SYSTEM_PAGE_KEYS) == 24
    assert not any(r.is_registered for r in first)
    assert len(notifier.calls) == 1

    notifier.calls.clear()
    second = page_engine.bootstrap_system_pages(db, author_id=1)
    db.commit()
    assert all(r.is_registered for r in second)
    assert [r.key for r in second] == list(SYSTEM_PAGE_KEYS)
    assert notifier.calls == []


def test_home_page_lives_at_root(db, page_engine):
    page_engine.bootstrap_system_pages(db, author_id=1)
    home = page_engine.get_by_system_key(db, "HOME")
    assert (home.slug, home.path, home.is_home_page) == ("", "/", True)
    assert home.status == "published" and home.is_system
    assert page_engine.home_page(db).id == home.id

    privacy = page_engine.get_by_system_key(db, "PRIVACY_POLICY")
    assert privacy.path == "/privacy-policy"


def test_unknown_system_key(db, page_engine):
    with pytest.raises(NotFoundError):
        page_engine.get_by_system_key(db, "NOPE")


def test_custom_pages_cannot_take_reserved_slugs(db, page_engine):
    page = page_engine.create(db, PageCreate(title="Contact"), author_id=1)
    assert page.slug == "contact-2"
    page_engine.bootstrap_system_pages(db, author_id=1)
    assert page_engine.get_by_system_key(db, "CONTACT").slug == "contact"


def test_set_home_page_moves_the_flag(db, page_engine):
    page_engine.bootstrap_system_pages(db, author_id=1)
    landing = page_engine.create(db, PageCreate(title="Landing", status="published"), author_id=1)

    page_engine.set_home_page(db, landing.id, actor_id=1)

    assert landing.is_home_page is True
    assert page_engine.home_page(db).id == landing.id
    old_home = page_engine.get_by_system_key(db, "HOME")
    assert old_home.is_home_page is False
    assert old_home.slug == "" and old_home.is_system


def test_set_home_page_rejects_deleted_and_missing(db, page_engine):
    page = page_engine.create(db, PageCreate(title="Soon gone"), author_id=1)
    page_engine.soft_delete(db, page.id, actor_id=1)
    with pytest.raises(ContentValidationError) as exc:
        page_engine.set_home_page(db, page.id, actor_id=1)
    assert exc.value.code == "PAGE_DELETED"
    with pytest.raises(NotFoundError):
        page_engine.set_home_page(db, 4040, actor_id=1)


def test_system_pages_are_protected(db, page_engine):
    page_engine.bootstrap_system_pages(db, author_id=1)
    about = page_engine.get_by_system_key(db, "ABOUT")

    with pytest.raises(ProtectedItemError):
        page_engine.soft_delete(db, about.id, actor_id=1)
    with pytest.raises(ProtectedItemError):
        page_engine.hard_delete(db, about.id, actor_id=1)
    with pytest.raises(ProtectedItemError):
        page_engine.update(db, about.id, PageUpdate(slug="about-us"), actor_id=1)

    # contenido y archivo individual sí se permiten
    page_engine.update(db, about.id, PageUpdate(content="<p>We build things</p>"), actor_id=1)
    archived = page_engine.archive(db, about.id, actor_id=1)
    assert archived.status == "archived"


def test_system_pages_listing(db, page_engine):
    page_engine.bootstrap_system_pages(db, author_id=1)
    page_engine.create(db, PageCreate(title="Not system"), author_id=1)
    keys = [p.system_key for p in page_engine.system_pages(db)]
    assert sorted(keys) == sorted(SYSTEM_PAGE_KEYS)
    assert page_engine.list(db, is_system=False).total == 1


def test_auto_register_disabled(db, clock):
    engine = PageEngine(config=EngineConfig(auto_register_system_pages=False), clock=clock)
    assert engine.bootstrap_system_pages(db, author_id=1) == []
    assert engine.system_pages(db) == []
