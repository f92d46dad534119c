"""Tests for the in-memory remote store."""

import pytest

from ledgerly.services.storage import (
    ConflictError,
    InMemoryRemoteStore,
    NotFoundError,
    StorageError,
    blob_sha,
    decode_content,
    encode_content,
)


class TestVersionTags:
    """Tests for compare-and-swap writes."""

    @pytest.mark.asyncio
    async def test_stale_tag_conflicts_then_fresh_tag_succeeds(self):
        """Test that a write after another writer fails until re-read."""
        store = InMemoryRemoteStore({"data/category.json": {"income": [], "expenses": []}})
        first = await store.read_file("data/category.json")

        store.seed("data/category.json", {"income": ["Salary"], "expenses": []})

        with pytest.raises(ConflictError):
            await store.write_file("data/category.json", {}, "Stale", sha=first.sha)
        assert "data/category.json" not in store.versions

        fresh = await store.read_file("data/category.json")
        new_sha = await store.write_file("data/category.json", {}, "Fresh", sha=fresh.sha)
        assert new_sha == store.sha("data/category.json")

    @pytest.mark.asyncio
    async def test_tag_is_git_blob_sha(self):
        store = InMemoryRemoteStore()
        sha = await store.write_file("a.json", [], "Create")
        assert sha == blob_sha(encode_content([]))

    @pytest.mark.asyncio
    async def test_write_records_commit(self):
        store = InMemoryRemoteStore()
        await store.write_file("a.json", [1], "Create a")
        assert store.commits == [("a.json", "Create a")]
        assert store.content("a.json") == [1]


class TestReadsAndFailures:
    """Tests for absent files, deletes and injected failures."""

    @pytest.mark.asyncio
    async def test_missing_file_returns_default(self):
        store = InMemoryRemoteStore()
        remote = await store.read_file("nope.json", default=[])
        assert remote.exists is False
        assert remote.content == []
        assert store.reads["nope.json"] == 1

    @pytest.mark.asyncio
    async def test_delete_then_missing(self):
        store = InMemoryRemoteStore({"a.json": []})
        await store.read_file("a.json")
        await store.delete_file("a.json", "Remove")
        assert "a.json" not in store.versions
        with pytest.raises(NotFoundError):
            await store.delete_file("a.json", "Remove again")

    @pytest.mark.asyncio
    async def test_folder_exists(self):
        store = InMemoryRemoteStore({"data/2024/01/income.json": []})
        assert await store.exists("data/2024") is True
        assert await store.exists("data/2025") is False

    @pytest.mark.asyncio
    async def test_injected_failure(self):
        store = InMemoryRemoteStore({"a.json": []})
        store.fail("a.json")
        with pytest.raises(StorageError):
            await store.read_file("a.json")
        store.recover("a.json")
        assert (await store.read_file("a.json")).exists is True

    @pytest.mark.asyncio
    async def test_undecodable_body_is_storage_error(self):
        """Test that bytes which are not UTF-8 surface as StorageError."""
        store = InMemoryRemoteStore()
        store.seed_raw("a.json", b"\xff\xfe[]")
        with pytest.raises(StorageError):
            await store.read_file("a.json")


class TestContentCodec:
    """Tests for the base64 JSON codec."""

    def test_wrapped_body_decodes(self):
        encoded = encode_content([1, 2])
        wrapped = "\n".join(encoded[i:i + 4] for i in range(0, len(encoded), 4))
        assert decode_content(wrapped) == [1, 2]

    def test_empty_body_is_none(self):
        assert decode_content("") is None

    @pytest.mark.parametrize("encoded", ["abc", "//79W10="])
    def test_unreadable_body_raises_storage_error(self, encoded):
        with pytest.raises(StorageError):
            decode_content(encoded)

    def test_invalid_json_raises_storage_error(self):
        with pytest.raises(StorageError):
            decode_content("e25vdCBqc29u")
