import json
import uuid

import httpx
import pytest

from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.clients.rag.pinecone.RAGClientPinecone import RAGClientPinecone
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.exceptions import IndexUnavailableError, InvalidRequestError


@pytest.fixture
def rag_env(monkeypatch):
    monkeypatch.setenv("RAG_QDRANT_BASE_URL", "http://qdrant.test:6333")
    monkeypatch.setenv("RAG_QDRANT_COLLECTION", "chunks")
    monkeypatch.delenv("RAG_QDRANT_API_KEY", raising=False)
    monkeypatch.setenv("RAG_PINECONE_BASE_URL", "https://chunks-abc.svc.pinecone.test")
    monkeypatch.setenv("RAG_PINECONE_CONTROL_URL", "https://api.pinecone.test")
    monkeypatch.setenv("RAG_PINECONE_API_KEY", "pc_key")
    monkeypatch.setenv("RAG_PINECONE_INDEX", "chunks")
    monkeypatch.delenv("RAG_PINECONE_NAMESPACE", raising=False)


def recording_handler(seen: list, response_json: dict, status_code: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status_code, json=response_json)
    return handler


def chunk(parent: str, position: int, document_name: str | None = None) -> VectorPoint:
    return VectorPoint(
        chunk_id=f"chunk_{parent}_{position}",
        parent_resource_id=parent,
        position=position,
        text=f"text {position}",
        document_name=document_name,
    )


class TestQdrant:
    async def test_empty_allow_list_makes_no_request(self, helper_config, rag_env):
        seen: list = []
        client = RAGClientQdrant(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(recording_handler(seen, {})))
        try:
            assert await client.do_search([0.1, 0.2], allowed_resource_ids=set(), top_k=5) == []
        finally:
            await client.close()

        assert seen == []

    async def test_filter_is_pushed_down(self, helper_config, rag_env):
        seen: list = []
        response = {"result": [
            {"id": "p1", "score": 0.4, "payload": {"chunk_id": "chunk_doc_b_0", "parent_resource_id": "doc_b", "text": "b0", "position": 0}},
            {"id": "p2", "score": 0.9, "payload": {"chunk_id": "chunk_doc_a_1", "parent_resource_id": "doc_a", "text": "a1", "position": 1, "document_name": "A"}},
        ]}
        client = RAGClientQdrant(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(recording_handler(seen, response)))
        try:
            hits = await client.do_search([0.1, 0.2], allowed_resource_ids={"doc_b", "doc_a"}, top_k=5)
        finally:
            await client.close()

        body = json.loads(seen[0].content)
        assert seen[0].url.path == "/collections/chunks/points/search"
        assert body["filter"] == {"must": [{"key": "parent_resource_id", "match": {"any": ["doc_a", "doc_b"]}}]}
        assert body["limit"] == 5
        assert [hit.chunk_id for hit in hits] == ["chunk_doc_a_1", "chunk_doc_b_0"]
        assert hits[0].document_name == "A"

    async def test_invalid_top_k(self, helper_config, rag_env):
        client = RAGClientQdrant(helper_config=helper_config)

        with pytest.raises(InvalidRequestError):
            await client.do_search([0.1], allowed_resource_ids={"doc_a"}, top_k=0)

    async def test_search_error_raises_index_unavailable(self, helper_config, rag_env):
        client = RAGClientQdrant(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(recording_handler([], {"status": "error"}, status_code=500)))
        try:
            with pytest.raises(IndexUnavailableError):
                await client.do_search([0.1], allowed_resource_ids={"doc_a"}, top_k=3)
        finally:
            await client.close()

    async def test_malformed_hit_raises_index_unavailable(self, helper_config, rag_env):
        response = {"result": [
            {"id": "p1", "score": "high", "payload": {"chunk_id": "chunk_doc_a_0", "parent_resource_id": "doc_a"}},
        ]}
        client = RAGClientQdrant(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(recording_handler([], response)))
        try:
            with pytest.raises(IndexUnavailableError, match="malformed"):
                await client.do_search([0.1], allowed_resource_ids={"doc_a"}, top_k=3)
        finally:
            await client.close()

    async def test_non_json_body_raises_index_unavailable(self, helper_config, rag_env):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>proxy error</html>")

        client = RAGClientQdrant(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(handler))
        try:
            with pytest.raises(IndexUnavailableError):
                await client.do_search([0.1], allowed_resource_ids={"doc_a"}, top_k=3)
        finally:
            await client.close()

    async def test_upsert_uses_uuid_point_ids(self, helper_config, rag_env):
        seen: list = []
        client = RAGClientQdrant(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(recording_handler(seen, {"result": {}})))
        try:
            await client.do_upsert_points([(chunk("doc_a", 0), [0.1, 0.2])])
        finally:
            await client.close()

        point = json.loads(seen[0].content)["points"][0]
        assert seen[0].method == "PUT"
        assert uuid.UUID(point["id"]) == uuid.UUID(client.make_point_id(chunk("doc_a", 0)))
        assert point["payload"]["parent_resource_id"] == "doc_a"
        assert point["payload"]["chunk_id"] == "chunk_doc_a_0"

    async def test_point_id_is_deterministic(self, helper_config, rag_env):
        client = RAGClientQdrant(helper_config=helper_config)

        assert client.make_point_id(chunk("doc_a", 0)) == client.make_point_id(chunk("doc_a", 0))
        assert client.make_point_id(chunk("doc_a", 0)) != client.make_point_id(chunk("doc_a", 1))

    async def test_delete_by_parent(self, helper_config, rag_env):
        seen: list = []
        client = RAGClientQdrant(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(recording_handler(seen, {"result": {}})))
        try:
            await client.do_delete_by_parent("doc_a")
        finally:
            await client.close()

        assert seen[0].url.path == "/collections/chunks/points/delete"
        assert json.loads(seen[0].content)["filter"]["must"][0]["match"] == {"value": "doc_a"}

    async def test_create_collection_indexes_parent_field(self, helper_config, rag_env):
        seen: list = []
        client = RAGClientQdrant(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(recording_handler(seen, {"result": True})))
        try:
            await client.do_create_collection(vector_size=1536, distance="cosine")
        finally:
            await client.close()

        assert json.loads(seen[0].content) == {"vectors": {"size": 1536, "distance": "Cosine"}}
        assert seen[1].url.path == "/collections/chunks/index"
        assert json.loads(seen[1].content)["field_name"] == "parent_resource_id"

    async def test_existence_check(self, helper_config, rag_env):
        client = RAGClientQdrant(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(recording_handler([], {"result": {"exists": False}})))
        try:
            assert await client.do_existence_check() is False
        finally:
            await client.close()


class TestPinecone:
    async def test_empty_allow_list_makes_no_request(self, helper_config, rag_env):
        seen: list = []
        client = RAGClientPinecone(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(recording_handler(seen, {})))
        try:
            assert await client.do_search([0.1], allowed_resource_ids=[], top_k=5) == []
        finally:
            await client.close()

        assert seen == []

    async def test_filter_is_pushed_down(self, helper_config, rag_env):
        seen: list = []
        response = {"matches": [
            {"id": "chunk_doc_a_0", "score": 0.8,
             "metadata": {"chunk_id": "chunk_doc_a_0", "parent_resource_id": "doc_a", "text": "a0", "position": 0.0}},
        ]}
        client = RAGClientPinecone(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(recording_handler(seen, response)))
        try:
            hits = await client.do_search([0.1], allowed_resource_ids=["doc_a"], top_k=5)
        finally:
            await client.close()

        body = json.loads(seen[0].content)
        assert seen[0].url.host == "chunks-abc.svc.pinecone.test"
        assert seen[0].url.path == "/query"
        assert seen[0].headers["Api-Key"] == "pc_key"
        assert body["filter"] == {"parent_resource_id": {"$in": ["doc_a"]}}
        assert body["topK"] == 5
        assert hits[0].position == 0
        assert hits[0].parent_resource_id == "doc_a"

    async def test_upsert_drops_null_metadata(self, helper_config, rag_env):
        seen: list = []
        client = RAGClientPinecone(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(recording_handler(seen, {"upsertedCount": 1})))
        try:
            await client.do_upsert_points([(chunk("doc_a", 0), [0.1])])
        finally:
            await client.close()

        vector = json.loads(seen[0].content)["vectors"][0]
        assert seen[0].method == "POST"
        assert vector["id"] == "doc_a#0"
        assert vector["metadata"]["chunk_id"] == "chunk_doc_a_0"
        assert "document_name" not in vector["metadata"]

    async def test_delete_by_parent_lists_ids_then_deletes_them(self, helper_config, rag_env):
        seen: list = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == "/vectors/list":
                # "doc_a#b" is a different document sharing the prefix
                return httpx.Response(200, json={
                    "vectors": [{"id": "doc_a#0"}, {"id": "doc_a#1"}, {"id": "doc_a#b#0"}],
                    "namespace": "",
                })
            return httpx.Response(200, json={})

        client = RAGClientPinecone(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(handler))
        try:
            await client.do_delete_by_parent("doc_a", timeout=4.0)
        finally:
            await client.close()

        assert [request.method for request in seen] == ["GET", "POST"]
        assert seen[0].url.params["prefix"] == "doc_a#"
        assert seen[1].url.path == "/vectors/delete"
        body = json.loads(seen[1].content)
        assert body == {"ids": ["doc_a#0", "doc_a#1"]}
        assert "filter" not in body
        assert seen[1].extensions["timeout"]["read"] == 4.0

    async def test_delete_by_parent_follows_pagination(self, helper_config, rag_env):
        seen: list = []
        pages = {
            None: {"vectors": [{"id": "doc_a#0"}], "pagination": {"next": "tok1"}},
            "tok1": {"vectors": [{"id": "doc_a#1"}]},
        }

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == "/vectors/list":
                return httpx.Response(200, json=pages[request.url.params.get("paginationToken")])
            return httpx.Response(200, json={})

        client = RAGClientPinecone(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(handler))
        try:
            await client.do_delete_by_parent("doc_a")
        finally:
            await client.close()

        assert len(seen) == 3
        assert json.loads(seen[2].content)["ids"] == ["doc_a#0", "doc_a#1"]

    async def test_delete_by_parent_without_chunks_sends_no_delete(self, helper_config, rag_env):
        seen: list = []
        client = RAGClientPinecone(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(recording_handler(seen, {"vectors": []})))
        try:
            await client.do_delete_by_parent("doc_new")
        finally:
            await client.close()

        assert [request.url.path for request in seen] == ["/vectors/list"]

    async def test_collection_management_uses_control_plane(self, helper_config, rag_env):
        seen: list = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.method == "GET":
                return httpx.Response(404, json={"error": "not found"})
            return httpx.Response(201, json={"name": "chunks"})

        client = RAGClientPinecone(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(handler))
        try:
            assert await client.do_existence_check() is False
            await client.do_create_collection(vector_size=1536, distance="Cosine")
        finally:
            await client.close()

        assert {request.url.host for request in seen} == {"api.pinecone.test"}
        body = json.loads(seen[1].content)
        assert body["dimension"] == 1536
        assert body["metric"] == "cosine"


class TestRAGClientManager:
    def test_instantiates_configured_engines(self, helper_config, rag_env, monkeypatch):
        monkeypatch.setenv("RAG_ENGINES", "[qdrant,pinecone]")

        clients = RAGClientManager(helper_config=helper_config).get_clients()

        assert [client.get_engine_name() for client in clients] == ["qdrant", "pinecone"]

    def test_unknown_engine_raises(self, helper_config, rag_env, monkeypatch):
        monkeypatch.setenv("RAG_ENGINES", "[milvus]")

        with pytest.raises(ValueError, match="Unsupported"):
            RAGClientManager(helper_config=helper_config)
