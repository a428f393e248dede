# tests/test_revisions.py
import pytest

from contentcore.core.errors import (
    ContentValidationError,
    FeatureDisabledError,
    MaxDepthExceededError,
    NotFoundError,
    ProtectedItemError,
)
from contentcore.schemas.blog import PostCreate, PostUpdate
from contentcore.schemas.pages import PageCreate, PageUpdate


def _page(engine, db, title="Versioned Page", content="<p>v1</p>"):
    return engine.create(db, PageCreate(title=title, content=content), author_id=1)


def test_create_does_not_snapshot(db, page_engine):
    p = _page(page_engine, db)
    assert p.revision == 1
    assert page_engine.revisions(db, p.id) == []


def test_content_update_snapshots_previous_state_and_bumps_revision(db, page_engine):
    p = _page(page_engine, db)
    page_engine.update(db, p.id, PageUpdate(content="<p>v2</p>", change_note="second"), actor_id=7)

    revs = page_engine.revisions(db, p.id)
    assert len(revs) == 1
    assert revs[0].revision_number == 1
    assert revs[0].content == "<p>v1</p>"
    assert revs[0].change_note == "second"
    assert revs[0].created_by == 7
    assert p.revision == 2
    assert p.content == "<p>v2</p>"


def test_metadata_only_update_keeps_revision(db, page_engine):
    p = _page(page_engine, db)
    page_engine.update(db, p.id, PageUpdate(meta_title="SEO", template="landing"), actor_id=1)
    assert p.revision == 1
    assert page_engine.revisions(db, p.id) == []


def test_same_text_is_not_a_change(db, page_engine):
    p = _page(page_engine, db)
    page_engine.update(db, p.id, PageUpdate(title=p.title, content=p.content), actor_id=1)
    assert p.revision == 1


def test_retention_keeps_newest_revisions(db, page_engine):
    page_engine.config.update(max_revisions=3)
    p = _page(page_engine, db)
    for i in range(2, 7):
        page_engine.update(db, p.id, PageUpdate(content=f"<p>v{i}</p>"), actor_id=1)

    revs = page_engine.revisions(db, p.id)
    assert [r.revision_number for r in revs] == [5, 4, 3]
    assert p.revision == 6


def test_restore_revision_checkpoints_live_state(db, page_engine):
    p = _page(page_engine, db)
    page_engine.update(db, p.id, PageUpdate(content="<p>v2</p>"), actor_id=1)
    page_engine.update(db, p.id, PageUpdate(content="<p>v3</p>"), actor_id=1)
    first = next(r for r in page_engine.revisions(db, p.id) if r.revision_number == 1)

    restored = page_engine.restore_revision(db, p.id, first.id, actor_id=1)

    assert restored.content == "<p>v1</p>"
    assert restored.revision == 5
    revs = page_engine.revisions(db, p.id)
    assert [r.revision_number for r in revs] == [4, 2, 1]
    assert revs[0].content == "<p>v3</p>"
    assert "Before restoring" in revs[0].change_note


def test_restore_after_two_title_updates(db, page_engine):
    p = _page(page_engine, db, title="Original Title")
    page_engine.update(db, p.id, PageUpdate(title="Second Title"), actor_id=1)
    page_engine.update(db, p.id, PageUpdate(title="Third Title"), actor_id=1)
    assert p.revision == 3

    # la revisión 2 guarda el estado que tenía el item en su revisión 2
    second = next(r for r in page_engine.revisions(db, p.id) if r.revision_number == 2)
    assert second.title == "Second Title"

    restored = page_engine.restore_revision(db, p.id, second.id, actor_id=1)

    assert restored.title == "Second Title"
    assert restored.revision == 5
    revs = page_engine.revisions(db, p.id)
    assert [r.revision_number for r in revs] == [4, 2, 1]
    assert revs[0].title == "Third Title"


def test_restore_brings_back_template(db, page_engine):
    p = page_engine.create(db, PageCreate(title="Tpl Page", content="<p>a</p>", template="landing"), author_id=1)
    page_engine.update(db, p.id, PageUpdate(content="<p>b</p>", template="blank"), actor_id=1)
    rev = page_engine.revisions(db, p.id)[0]
    assert rev.template == "landing"

    page_engine.restore_revision(db, p.id, rev.id, actor_id=1)
    assert p.template == "landing"


def test_revision_numbers_never_go_backwards(db, page_engine):
    p = _page(page_engine, db)
    seen = [p.revision]
    for i in range(2, 5):
        page_engine.update(db, p.id, PageUpdate(content=f"<p>v{i}</p>"), actor_id=1)
        seen.append(p.revision)
    oldest = page_engine.revisions(db, p.id)[-1]
    page_engine.restore_revision(db, p.id, oldest.id, actor_id=1)
    seen.append(p.revision)
    assert seen == sorted(seen)
    assert len(set(seen)) == len(seen)


def test_diff_between_revisions(db, page_engine):
    p = _page(page_engine, db, content="<p>v1</p>")
    page_engine.update(db, p.id, PageUpdate(content="<p>v2</p>"), actor_id=1)
    page_engine.update(db, p.id, PageUpdate(content="<p>v3</p>"), actor_id=1)
    by_number = {r.revision_number: r for r in page_engine.revisions(db, p.id)}

    diff = page_engine.diff_revisions(db, p.id, by_number[1].id, by_number[2].id)
    assert diff.from_revision == 1 and diff.to_revision == 2
    assert diff.content_changed is True
    assert diff.title_changed is False
    assert "-<p>v1</p>" in diff.content_diff
    assert "+<p>v2</p>" in diff.content_diff


def test_revision_of_another_item_is_not_found(db, page_engine):
    a = _page(page_engine, db, title="Page A")
    b = _page(page_engine, db, title="Page B")
    page_engine.update(db, a.id, PageUpdate(content="<p>changed</p>"), actor_id=1)
    rev = page_engine.revisions(db, a.id)[0]

    with pytest.raises(NotFoundError) as exc:
        page_engine.revision(db, b.id, rev.id)
    assert exc.value.code == "REVISION_NOT_FOUND"


def test_revisions_disabled(db, page_engine):
    p = _page(page_engine, db)
    page_engine.update(db, p.id, PageUpdate(content="<p>v2</p>"), actor_id=1)
    rev = page_engine.revisions(db, p.id)[0]

    page_engine.config.update(enable_revisions=False)
    page_engine.update(db, p.id, PageUpdate(content="<p>v3</p>"), actor_id=1)
    assert len(page_engine.revisions(db, p.id)) == 1
    assert p.revision == 3

    with pytest.raises(FeatureDisabledError) as exc:
        page_engine.restore_revision(db, p.id, rev.id, actor_id=1)
    assert exc.value.code == "REVISIONS_DISABLED"


# ---------- una escritura rechazada no deja rastro ----------
def _assert_untouched(engine, db, item, revision, title):
    assert item.revision == revision
    assert item.title == title
    assert engine.revisions(db, item.id) == []


def test_protected_move_rejected_before_snapshot(db, page_engine):
    page_engine.bootstrap_system_pages(db, author_id=1)
    about = db.get(page_engine.model, page_engine.get_by_system_key(db, "ABOUT").id)
    other = _page(page_engine, db, title="Other Parent")

    with pytest.raises(ProtectedItemError):
        page_engine.update(
            db, about.id, PageUpdate(title="About Us New", meta_title="New SEO", parent_id=other.id), actor_id=1
        )

    _assert_untouched(page_engine, db, about, 1, "About")
    assert about.meta_title == "About"
    assert about.parent_id is None


def test_code_injection_rejected_before_snapshot(db, page_engine):
    p = _page(page_engine, db)
    with pytest.raises(FeatureDisabledError) as exc:
        page_engine.update(db, p.id, PageUpdate(content="<p>v2</p>", custom_js="alert(1)"), actor_id=1)
    assert exc.value.code == "CODE_INJECTION_DISABLED"
    _assert_untouched(page_engine, db, p, 1, "Versioned Page")
    assert p.content == "<p>v1</p>"


def test_depth_limit_rejected_before_snapshot(db, page_engine):
    a = _page(page_engine, db, title="Level A")
    b = page_engine.create(db, PageCreate(title="Level B", parent_id=a.id), author_id=1)
    c = page_engine.create(db, PageCreate(title="Level C", parent_id=b.id), author_id=1)
    d = page_engine.create(db, PageCreate(title="Level D", parent_id=c.id), author_id=1)
    p = _page(page_engine, db, title="Too Deep")

    with pytest.raises(MaxDepthExceededError):
        page_engine.update(db, p.id, PageUpdate(title="Too Deep Renamed", parent_id=d.id), actor_id=1)
    _assert_untouched(page_engine, db, p, 1, "Too Deep")


def test_invalid_transition_rejected_before_snapshot(db, post_engine):
    post = post_engine.create(db, PostCreate(title="Archived post"), author_id=1)
    post_engine.archive(db, post.id, actor_id=1)

    with pytest.raises(ContentValidationError) as exc:
        post_engine.update(db, post.id, PostUpdate(title="Renamed archived", status="published"), actor_id=1)
    assert exc.value.code == "INVALID_TRANSITION"
    _assert_untouched(post_engine, db, post, 1, "Archived post")


def test_unknown_category_rejected_before_snapshot(db, post_engine):
    post = post_engine.create(db, PostCreate(title="Categorised post"), author_id=1)
    with pytest.raises(NotFoundError):
        post_engine.update(db, post.id, PostUpdate(title="Renamed post", category_ids=[4242]), actor_id=1)
    _assert_untouched(post_engine, db, post, 1, "Categorised post")
