"""
Persistence gateway and cache invalidation tests, against in-memory SQLite.

Run: pytest backend/tests/test_portfolio_store.py -v
"""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from folio.core.exceptions import PersistenceError, PortfolioError, UsernameTaken
from folio.db import models
from folio.schemas.portfolio import Theme
from folio.services import page_cache
from folio.services.document import build_about, build_header, build_skills
from folio.services.page_cache import PORTFOLIO_TAG, PageCache, invalidate, public_pages


@pytest.fixture
def recorded():
    calls = []

    def recorder(tag, username):
        calls.append((tag, username))

    page_cache.subscribe(recorder)
    yield calls
    page_cache.unsubscribe(recorder)


# ── upsert ──────────────────────────────────────────────────────────────────

class TestUpsert:

    def test_creates_row(self, store, user):
        row = store.upsert(user.id, "jane-doe", [build_header("Jane")], published=True, theme=Theme.DARK)
        assert row.id
        assert row.username == "jane-doe"
        assert row.published is True
        assert row.theme == "dark"
        assert [s.section for s in store.get_document(row)] == ["header"]

    def test_updates_in_place(self, store, user, db):
        first = store.upsert(user.id, "jane-doe", [build_header("Jane")])
        second = store.upsert(user.id, "jane-doe", [build_skills("x")], published=True)
        assert first.id == second.id
        assert db.query(models.Portfolio).count() == 1
        assert [s.section for s in store.get_document(second)] == ["skills"]

    def test_foreign_username_is_taken(self, store, user, other_user):
        store.upsert(other_user.id, "jane-doe", [build_header("Other")])
        with pytest.raises(UsernameTaken):
            store.upsert(user.id, "jane-doe", [build_header("Jane")])
        row = store.find_by_username("jane-doe")
        assert row.user_id == other_user.id
        assert store.get_document(row)[0].data.name == "Other"

    def test_rename_rekeys_owner_row(self, store, user, db):
        original = store.upsert(user.id, "jane-doe", [build_header("Jane")])
        renamed = store.upsert(user.id, "jane-smith", [build_header("Jane Smith")])
        assert renamed.id == original.id
        assert store.find_by_username("jane-doe") is None
        assert db.query(models.Portfolio).count() == 1

    def test_rename_invalidates_both_usernames(self, store, user, recorded):
        store.upsert(user.id, "jane-doe", [build_header("Jane")])
        recorded.clear()
        store.upsert(user.id, "jane-smith", [build_header("Jane")])
        assert sorted(recorded) == [(PORTFOLIO_TAG, "jane-doe"), (PORTFOLIO_TAG, "jane-smith")]

    def test_database_failure_rolls_back(self, store, user, db, monkeypatch):
        def broken_commit():
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(db, "commit", broken_commit)
        with pytest.raises(PersistenceError) as exc:
            store.upsert(user.id, "jane-doe", [build_header("Jane")])
        assert exc.value.message == "Failed to save portfolio"

    def test_failed_write_does_not_invalidate(self, store, user, other_user, recorded):
        store.upsert(other_user.id, "jane-doe", [build_header("Other")])
        recorded.clear()
        with pytest.raises(UsernameTaken):
            store.upsert(user.id, "jane-doe", [build_header("Jane")])
        assert recorded == []


# ── update_settings ─────────────────────────────────────────────────────────

class TestUpdateSettings:

    def test_toggle_and_theme(self, store, user):
        store.upsert(user.id, "jane-doe", [build_about("m")], published=True)
        row = store.update_settings(user.id, published=False, theme=Theme.MIDNIGHT)
        assert row.published is False
        assert row.theme == "midnight"
        assert [s.section for s in store.get_document(row)] == ["about"]

    def test_partial_update(self, store, user):
        store.upsert(user.id, "jane-doe", [build_about("m")], published=True, theme="retro")
        row = store.update_settings(user.id, published=False)
        assert row.theme == "retro"

    def test_missing_portfolio(self, store, user):
        with pytest.raises(PortfolioError) as exc:
            store.update_settings(user.id, published=True)
        assert exc.value.status_code == 404


# ── Public page cache ───────────────────────────────────────────────────────

class TestPageCache:

    def test_invalidate_one_username(self):
        cache = PageCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache(PORTFOLIO_TAG, "a")
        assert "a" not in cache
        assert cache.get("b") == 2

    def test_invalidate_all(self):
        cache = PageCache()
        cache.set("a", 1)
        cache(PORTFOLIO_TAG, None)
        assert "a" not in cache

    def test_other_tag_ignored(self):
        cache = PageCache()
        cache.set("a", 1)
        cache("something-else", "a")
        assert cache.get("a") == 1

    def test_failing_subscriber_does_not_stop_others(self):
        def broken(tag, username):
            raise RuntimeError("boom")

        # Registered ahead of public_pages so it fails first
        page_cache._subscribers.insert(0, broken)
        try:
            public_pages.set("jane-doe", {"cached": True})
            invalidate(PORTFOLIO_TAG, "jane-doe")
        finally:
            page_cache.unsubscribe(broken)
        assert "jane-doe" not in public_pages

    def test_upsert_clears_public_page(self, store, user):
        public_pages.set("jane-doe", {"cached": True})
        store.upsert(user.id, "jane-doe", [build_header("Jane")])
        assert "jane-doe" not in public_pages
