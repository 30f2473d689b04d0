"""Access-filtered retrieval service.

Resolves the documents a subject may view, then runs a similarity search
restricted to exactly those documents:

    START -> RESOLVE_ACCESS -> (NO_ACCESS | SEARCH) -> DONE

Each stage only depends on the request and the output of the previous stage,
so independent requests run concurrently without shared mutable state.
"""

import asyncio

from services.authz.AuthorizationEvaluator import AuthorizationEvaluator
from services.authz.RelationStore import RelationStore
from shared.clients.authz.models.Warrant import Subject, Warrant, WarrantOp, WriteResult
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.SearchHit import SearchHit
from shared.exceptions import InvalidRequestError, NotAuthorizedError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.document_naming import get_document_display_name
from shared.models.search import (
    RetrievalRequest,
    RetrievalResponse,
    RetrievalResultItem,
    RetrievalStage,
    RetrievalStatus,
)


class RetrievalService:
    """Orchestrates access resolution, embedding and constrained vector search."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store: RelationStore,
        evaluator: AuthorizationEvaluator,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._evaluator = evaluator
        self._rag = rag_client
        self._embed = embed_client

        self.resource_type = helper_config.get_string_val("AUTHZ_RESOURCE_TYPE", default="document")
        self.viewer_relation = helper_config.get_string_val("AUTHZ_VIEWER_RELATION", default="viewer")
        self.owner_relation = helper_config.get_string_val("AUTHZ_OWNER_RELATION", default="owner")
        self.default_top_k = int(helper_config.get_number_val("RETRIEVAL_TOP_K", default=5))

        # fail at startup, not on the first request
        store.schema.validate_relation(self.resource_type, self.viewer_relation)
        store.schema.validate_relation(self.resource_type, self.owner_relation)

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_search(self, request: RetrievalRequest) -> RetrievalResponse:
        """Run one retrieval request through the state machine.

        Args:
            request (RetrievalRequest): Query, subject and limits.

        Returns:
            RetrievalResponse: status "no_access" with no results when the subject
                may view nothing, otherwise the ranked chunks of viewable documents.

        Raises:
            InvalidRelationError, StoreUnavailableError, ProviderError,
            IndexUnavailableError, RequestTimeoutError: propagated unchanged.
        """
        self._log_stage(request, RetrievalStage.START)

        self._log_stage(request, RetrievalStage.RESOLVE_ACCESS)
        allowed = await self._resolve_access(request)

        if not allowed:
            self._log_stage(request, RetrievalStage.NO_ACCESS)
            self.logging.info("❌ %s has no document access - skipping search", request.subject, color="yellow")
            return RetrievalResponse(
                query=request.query,
                subject=request.subject,
                status=RetrievalStatus.NO_ACCESS,
            )

        self._log_stage(request, RetrievalStage.SEARCH)
        hits = await self._search(request, allowed)

        self._log_stage(request, RetrievalStage.DONE)
        items = self._build_result_items(request, allowed, hits)
        self.logging.info(
            "Query complete for %s: %d result(s) from %d accessible document(s).",
            request.subject, len(items), len(allowed),
        )
        return RetrievalResponse(
            query=request.query,
            subject=request.subject,
            status=RetrievalStatus.OK,
            accessible_resource_ids=sorted(allowed),
            results=items,
            total=len(items),
        )

    ##########################################
    ################ STAGES ##################
    ##########################################

    async def _resolve_access(self, request: RetrievalRequest) -> frozenset[str]:
        allowed = await self._evaluator.list_accessible(
            subject=request.subject,
            relation=self.viewer_relation,
            resource_type=self.resource_type,
            consistency_token=request.consistency_token,
            timeout=request.timeout,
        )
        if allowed:
            names = ", ".join(get_document_display_name(rid) for rid in sorted(allowed))
            self.logging.info("✅ %s can search in: %s", request.subject, names, color="green")
        return frozenset(allowed)

    async def _search(self, request: RetrievalRequest, allowed: frozenset[str]) -> list[SearchHit]:
        vector = await self._embed.do_embed_query(request.query, timeout=request.timeout)
        return await self._rag.do_search(
            query_vector=vector,
            allowed_resource_ids=allowed,
            top_k=request.top_k or self.default_top_k,
            timeout=request.timeout,
        )

    def _build_result_items(
        self,
        request: RetrievalRequest,
        allowed: frozenset[str],
        hits: list[SearchHit],
    ) -> list[RetrievalResultItem]:
        """Annotate hits with display names. A hit outside the allow-list
        resolved for this request is dropped, whatever the backend returned.
        """
        items: list[RetrievalResultItem] = []
        for hit in hits:
            if hit.parent_resource_id not in allowed:
                self.logging.error(
                    "Index returned chunk %s of '%s' outside the allow-list of %s. Dropped.",
                    hit.chunk_id, hit.parent_resource_id, request.subject,
                )
                continue
            items.append(RetrievalResultItem(
                chunk_id=hit.chunk_id,
                parent_resource_id=hit.parent_resource_id,
                document_name=hit.document_name or get_document_display_name(hit.parent_resource_id),
                score=hit.score,
                text=hit.text,
                position=hit.position,
            ))
        return items

    def _log_stage(self, request: RetrievalRequest, stage: RetrievalStage) -> None:
        self.logging.debug("Retrieval for %s: %s", request.subject, stage.value)

    ##########################################
    ################ SHARING #################
    ##########################################

    async def do_share(
        self,
        owner: Subject,
        grantee: Subject,
        resource_ids: list[str],
        timeout: float | None = None,
    ) -> WriteResult:
        """Grant `grantee` viewer access to documents owned by `owner`.

        All-or-nothing: ownership is checked on every document first, and if
        any check fails nothing is written.

        Args:
            owner (Subject): The principal sharing the documents.
            grantee (Subject): The principal receiving viewer access.
            resource_ids (list[str]): Documents to share. Duplicates are ignored.
            timeout (float | None): Caller-supplied timeout in seconds.

        Returns:
            WriteResult: Consistency token of the grant, to be passed to the
                grantee's first search when read-after-write is required.

        Raises:
            InvalidRequestError: If resource_ids is empty.
            NotAuthorizedError: Naming the first document (in input order) `owner` does not own.
        """
        unique_ids = list(dict.fromkeys(resource_ids))
        if not unique_ids:
            raise InvalidRequestError("At least one resource id is required to share.")

        checks = await asyncio.gather(*[
            self._evaluator.check(
                subject=owner,
                relation=self.owner_relation,
                resource_type=self.resource_type,
                resource_id=resource_id,
                timeout=timeout,
            )
            for resource_id in unique_ids
        ])
        for resource_id, is_owner in zip(unique_ids, checks):
            if not is_owner:
                self.logging.info(
                    "Share rejected: %s is not %s of %s.", owner, self.owner_relation, resource_id, color="yellow",
                )
                raise NotAuthorizedError(
                    subject_id=owner.resource_id,
                    relation=self.owner_relation,
                    resource_id=resource_id,
                )

        warrants = [
            Warrant(
                resource_type=self.resource_type,
                resource_id=resource_id,
                relation=self.viewer_relation,
                subject=grantee,
            )
            for resource_id in unique_ids
        ]
        result = await self._store.write_batch(warrants, WarrantOp.CREATE, timeout=timeout)
        self.logging.info(
            "👤 %s shared %d document(s) with %s.", owner, len(unique_ids), grantee, color="green",
        )
        return result
