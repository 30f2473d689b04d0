import pytest

from conftest import document_warrant, user
from shared.clients.authz.models.Warrant import WarrantOp, WriteResult
from shared.exceptions import InvalidRelationError, StoreUnavailableError


class TestWrite:
    async def test_create_returns_consistency_token(self, store, authz_client):
        result = await store.write(document_warrant("doc_a", "owner", "user1"), WarrantOp.CREATE)

        assert result.consistency_token == "token-1"
        assert document_warrant("doc_a", "owner", "user1") in authz_client.warrants

    async def test_create_twice_is_idempotent(self, store, authz_client):
        warrant = document_warrant("doc_a", "owner", "user1")
        await store.write(warrant, WarrantOp.CREATE)
        await store.write(warrant, WarrantOp.CREATE)

        assert await store.list_warrants("document", subject=user("user1")) == [warrant]

    async def test_delete_absent_is_noop(self, store, authz_client):
        await store.write(document_warrant("doc_a", "viewer", "user1"), WarrantOp.DELETE)

        assert authz_client.warrants == set()

    async def test_invalid_relation_is_not_sent(self, store, authz_client):
        with pytest.raises(InvalidRelationError):
            await store.write(document_warrant("doc_a", "editor", "user1"), WarrantOp.CREATE)
        assert authz_client.write_calls == []

    async def test_empty_batch_is_noop(self, store, authz_client):
        result = await store.write_batch([], WarrantOp.CREATE)

        assert result.noop is True
        assert authz_client.write_calls == []


class TestRetry:
    async def test_transient_failure_is_retried(self, store, authz_client):
        authz_client.fail_next_writes = 2

        await store.write(document_warrant("doc_a", "owner", "user1"), WarrantOp.CREATE)

        assert len(authz_client.write_calls) == 3
        assert document_warrant("doc_a", "owner", "user1") in authz_client.warrants

    async def test_gives_up_after_configured_retries(self, helper_config, authz_client, schema, monkeypatch):
        from services.authz.RelationStore import RelationStore

        monkeypatch.setenv("AUTHZ_WRITE_RETRIES", "1")
        monkeypatch.setenv("AUTHZ_WRITE_RETRY_BACKOFF", "0.001")
        store = RelationStore(helper_config=helper_config, authz_client=authz_client, schema=schema)
        authz_client.fail_next_writes = 5

        with pytest.raises(StoreUnavailableError):
            await store.write(document_warrant("doc_a", "owner", "user1"), WarrantOp.CREATE)
        assert len(authz_client.write_calls) == 2

    async def test_reads_are_not_retried(self, store, authz_client):
        authz_client.fail_reads = True

        with pytest.raises(StoreUnavailableError):
            await store.list_warrants("document", subject=user("user1"))
        assert len(authz_client.list_calls) == 1


class TestNoopBatch:
    async def test_noop_batch_falls_back_to_point_writes(self, store, authz_client, monkeypatch):
        original = authz_client.do_write_warrants

        async def reject_batches(warrants, op, timeout=None):
            if len(warrants) > 1:
                authz_client.write_calls.append((list(warrants), op))
                return WriteResult(count=len(warrants), noop=True)
            return await original(warrants, op, timeout=timeout)

        monkeypatch.setattr(authz_client, "do_write_warrants", reject_batches)
        warrants = [document_warrant("doc_a", "viewer", "user4"), document_warrant("doc_b", "viewer", "user4")]

        result = await store.write_batch(warrants, WarrantOp.CREATE)

        assert set(warrants) <= authz_client.warrants
        assert result.consistency_token == "token-2"
        assert result.noop is False


class TestListWarrants:
    async def test_unknown_resource_type_raises(self, store):
        with pytest.raises(InvalidRelationError):
            await store.list_warrants("folder")

    async def test_filters(self, store):
        await store.write(document_warrant("doc_a", "owner", "user1"), WarrantOp.CREATE)
        await store.write(document_warrant("doc_b", "viewer", "user1"), WarrantOp.CREATE)

        warrants = await store.list_warrants("document", relation="viewer")

        assert [w.resource_id for w in warrants] == ["doc_b"]
