"""
Repository Tests
================

Tests for soft-delete scoping and optimistic concurrency.

Version: 0.1.0
"""

import pytest

from services.trust_safety.models.profile import Profile
from services.trust_safety.services.repository import Repository
from shared.database.mongodb import Collections
from shared.exceptions import ConflictError, NotFoundError, ValidationError
from shared.store import MockDocumentStore


@pytest.fixture
def repo(store: MockDocumentStore) -> Repository[Profile]:
    return Repository(Collections.PROFILES, Profile, "Profile", store)


class TestReads:
    @pytest.mark.asyncio
    async def test_get_missing(self, repo: Repository[Profile]) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await repo.get("nope")

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_soft_deleted_hidden(self, repo: Repository[Profile]) -> None:
        profile = await repo.insert(Profile(user_id="u1", is_deleted=True))

        assert await repo.find_by_id(profile.id) is None
        assert await repo.find_by_id(profile.id, include_deleted=True) is not None
        assert await repo.count() == 0


class TestMutate:
    """Tests for load-modify-save with compare-and-swap."""

    @pytest.mark.asyncio
    async def test_bumps_version(self, repo: Repository[Profile]) -> None:
        profile = await repo.insert(Profile(user_id="u1"))

        updated = await repo.mutate(profile.id, lambda p: p.model_copy(update={"bio": "Hi"}))

        assert updated.version == 1
        assert (await repo.get(profile.id)).bio == "Hi"

    @pytest.mark.asyncio
    async def test_retries_after_concurrent_write(
        self, repo: Repository[Profile], store: MockDocumentStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        profile = await repo.insert(Profile(user_id="u1", preferences={"hits": 0}))
        real_update_one = store.update_one
        raced = False

        async def racing_update_one(collection, filter, update) -> int:
            nonlocal raced
            if not raced:
                # Another writer lands between our load and our write
                raced = True
                await real_update_one(
                    collection,
                    {"_id": filter["_id"]},
                    {"$inc": {"version": 1, "preferences.hits": 1}},
                )
            return await real_update_one(collection, filter, update)

        monkeypatch.setattr(store, "update_one", racing_update_one)
        calls = 0

        def apply(p: Profile) -> Profile:
            nonlocal calls
            calls += 1
            return p.model_copy(update={"preferences": {"hits": p.preferences["hits"] + 1}})

        result = await repo.mutate(profile.id, apply)

        # Both increments survive: the retry re-read the concurrent write
        assert result.preferences["hits"] == 2
        assert result.version == 2
        assert calls == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_conflict(
        self, repo: Repository[Profile], store: MockDocumentStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        profile = await repo.insert(Profile(user_id="u1"))

        async def always_stale(collection, filter, update) -> int:
            return 0

        monkeypatch.setattr(store, "update_one", always_stale)

        with pytest.raises(ConflictError):
            await repo.mutate(profile.id, lambda p: p.model_copy(update={"bio": "x"}))

    @pytest.mark.asyncio
    async def test_domain_error_not_retried(self, repo: Repository[Profile]) -> None:
        profile = await repo.insert(Profile(user_id="u1"))
        calls = 0

        def reject(p: Profile) -> Profile:
            nonlocal calls
            calls += 1
            raise ValidationError("nope")

        with pytest.raises(ValidationError):
            await repo.mutate(profile.id, reject)

        assert calls == 1
        assert (await repo.get(profile.id)).version == 0

    @pytest.mark.asyncio
    async def test_unique_violation_on_insert(self, repo: Repository[Profile]) -> None:
        await repo.insert(Profile(user_id="u1"))

        with pytest.raises(ConflictError):
            await repo.insert(Profile(user_id="u1"))
