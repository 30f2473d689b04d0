"""
Pytest configuration and in-memory doubles for the bridge test suite.

The doubles implement the request methods the services call on the real
clients (do_write_warrants, do_list_warrants, do_embed, do_search, ...), so
services can be exercised without any network backend.
"""
import logging

import pytest

from services.authz.AuthorizationEvaluator import AuthorizationEvaluator
from services.authz.RelationStore import RelationStore
from services.retrieval.RetrievalService import RetrievalService
from shared.clients.authz.models.RelationSchema import RelationSchema
from shared.clients.authz.models.Warrant import Subject, Warrant, WarrantOp, WriteResult
from shared.clients.rag.models.SearchHit import SearchHit
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.exceptions import StoreUnavailableError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger

pytest_plugins = ["pytest_asyncio"]


class InMemoryAuthzClient:
    """Relation store backend holding direct warrants in a set."""

    def __init__(self):
        self.warrants: set[Warrant] = set()
        self.write_calls: list[tuple[list[Warrant], WarrantOp]] = []
        self.list_calls: list[dict] = []
        self.fail_next_writes = 0
        self.fail_reads = False
        self._token = 0

    def get_engine_name(self) -> str:
        return "memory"

    async def do_write_warrants(self, warrants, op, timeout=None) -> WriteResult:
        self.write_calls.append((list(warrants), op))
        if self.fail_next_writes:
            self.fail_next_writes -= 1
            raise StoreUnavailableError(message="relation store down")
        for warrant in warrants:
            if op == WarrantOp.CREATE:
                self.warrants.add(warrant)
            else:
                self.warrants.discard(warrant)
        self._token += 1
        return WriteResult(consistency_token=f"token-{self._token}", count=len(warrants))

    async def do_list_warrants(
        self,
        resource_type=None,
        resource_id=None,
        relation=None,
        subject=None,
        consistency_token=None,
        timeout=None,
    ) -> list[Warrant]:
        self.list_calls.append({
            "resource_type": resource_type,
            "resource_id": resource_id,
            "relation": relation,
            "subject": subject,
            "consistency_token": consistency_token,
        })
        if self.fail_reads:
            raise StoreUnavailableError(message="relation store down")
        return [
            w for w in sorted(self.warrants, key=str)
            if (resource_type is None or w.resource_type == resource_type)
            and (resource_id is None or w.resource_id == resource_id)
            and (relation is None or w.relation == relation)
            and (subject is None or w.subject == subject)
        ]


class FakeEmbedClient:
    """Embeds a text as [length, 1.0] and records every call."""

    def __init__(self):
        self.calls: list[list[str]] = []
        self.timeouts: list[float | None] = []

    def get_engine_name(self) -> str:
        return "fake"

    async def do_embed(self, texts, timeout=None) -> list[list[float]]:
        texts = [texts] if isinstance(texts, str) else texts
        self.calls.append(list(texts))
        self.timeouts.append(timeout)
        return [[float(len(text)), 1.0] for text in texts]

    async def do_embed_query(self, text, timeout=None) -> list[float]:
        return (await self.do_embed([text], timeout=timeout))[0]

    async def do_fetch_embedding_vector_size(self):
        return 2, "Cosine"


class InMemoryRagClient:
    """Vector index holding chunks in a dict. Search honours the allow-list
    unless `leak` is set, which simulates a backend ignoring the filter.
    """

    def __init__(self):
        self.points: dict[str, tuple[VectorPoint, list[float]]] = {}
        self.search_calls: list[dict] = []
        self.delete_calls: list[str] = []
        self.upsert_calls = 0
        self.timeouts: list[float | None] = []
        self.leak = False

    def get_engine_name(self) -> str:
        return "memory"

    def add_chunk(self, parent_resource_id: str, position: int, text: str, document_name: str | None = None):
        chunk_id = f"chunk_{parent_resource_id}_{position}"
        point = VectorPoint(
            chunk_id=chunk_id,
            parent_resource_id=parent_resource_id,
            position=position,
            text=text,
            document_name=document_name,
        )
        self.points[chunk_id] = (point, [float(len(text)), 1.0])

    async def do_search(self, query_vector, allowed_resource_ids, top_k, timeout=None) -> list[SearchHit]:
        self.search_calls.append({
            "query_vector": query_vector,
            "allowed_resource_ids": set(allowed_resource_ids),
            "top_k": top_k,
        })
        hits = [
            SearchHit(
                chunk_id=point.chunk_id,
                score=1.0 / (1 + abs(vector[0] - query_vector[0])),
                parent_resource_id=point.parent_resource_id,
                text=point.text,
                position=point.position,
                document_name=point.document_name,
            )
            for point, vector in self.points.values()
            if self.leak or point.parent_resource_id in allowed_resource_ids
        ]
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:top_k]

    async def do_delete_by_parent(self, parent_resource_id: str, timeout=None) -> None:
        self.delete_calls.append(parent_resource_id)
        self.timeouts.append(timeout)
        for chunk_id in [cid for cid, (p, _) in self.points.items() if p.parent_resource_id == parent_resource_id]:
            del self.points[chunk_id]

    async def do_upsert_points(self, points, timeout=None) -> None:
        self.upsert_calls += 1
        self.timeouts.append(timeout)
        for point, vector in points:
            self.points[point.chunk_id] = (point, vector)


def user(user_id: str) -> Subject:
    return Subject(resource_type="user", resource_id=user_id)


def document_warrant(resource_id: str, relation: str, user_id: str) -> Warrant:
    return Warrant(resource_type="document", resource_id=resource_id, relation=relation, subject=user(user_id))


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("authz_rag_bridge.tests")))


@pytest.fixture
def schema() -> RelationSchema:
    return RelationSchema.default()


@pytest.fixture
def authz_client() -> InMemoryAuthzClient:
    return InMemoryAuthzClient()


@pytest.fixture
def embed_client() -> FakeEmbedClient:
    return FakeEmbedClient()


@pytest.fixture
def rag_client() -> InMemoryRagClient:
    return InMemoryRagClient()


@pytest.fixture
def store(helper_config, authz_client, schema, monkeypatch) -> RelationStore:
    monkeypatch.setenv("AUTHZ_WRITE_RETRY_BACKOFF", "0.001")
    return RelationStore(helper_config=helper_config, authz_client=authz_client, schema=schema)


@pytest.fixture
def evaluator(helper_config, store) -> AuthorizationEvaluator:
    return AuthorizationEvaluator(helper_config=helper_config, store=store)


@pytest.fixture
def retrieval_service(helper_config, store, evaluator, rag_client, embed_client) -> RetrievalService:
    return RetrievalService(
        helper_config=helper_config,
        store=store,
        evaluator=evaluator,
        rag_client=rag_client,
        embed_client=embed_client,
    )


@pytest.fixture
def demo_index(rag_client) -> InMemoryRagClient:
    """Two documents with two chunks each."""
    rag_client.add_chunk("doc_sherlock-holmes", 0, "It is a capital mistake to theorize before one has data.")
    rag_client.add_chunk("doc_sherlock-holmes", 1, "The game is afoot.", document_name="Sherlock Holmes")
    rag_client.add_chunk("doc_federalist-papers", 0, "Justice is the end of government.")
    rag_client.add_chunk("doc_federalist-papers", 1, "Liberty may be endangered by the abuses of liberty.")
    return rag_client
