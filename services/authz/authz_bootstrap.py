"""Authorization bootstrap entry point.

Publishes the relation schema to the configured relation store backend. With
AUTHZ_BOOTSTRAP_DEMO=true it also seeds the demo warrants and runs the demo
searches for three users:

    user1  owner of doc_sherlock-holmes   -> searches Sherlock Holmes
    user2  viewer of doc_federalist-papers -> searches Federalist Papers
    user3  no warrants                     -> no_access

Usage:
    python -m services.authz.authz_bootstrap
"""

import asyncio

from services.authz.AuthorizationEvaluator import AuthorizationEvaluator
from services.authz.RelationStore import RelationStore
from services.authz.schema_loader import load_relation_schema
from services.retrieval.RetrievalService import RetrievalService
from shared.clients.authz.AuthzClientManager import AuthzClientManager
from shared.clients.authz.models.Warrant import Subject, Warrant, WarrantOp
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger, setup_logging
from shared.models.search import RetrievalRequest, RetrievalStatus

DEMO_WARRANTS = [
    Warrant(resource_type="document", resource_id="doc_sherlock-holmes", relation="owner",
            subject=Subject(resource_id="user1")),
    Warrant(resource_type="document", resource_id="doc_federalist-papers", relation="viewer",
            subject=Subject(resource_id="user2")),
]
DEMO_USERS = ["user1", "user2", "user3"]
DEMO_QUERY = "What are the principles of justice and liberty?"


async def run_demo(
    logger: ColorLogger,
    store: RelationStore,
    retrieval_service: RetrievalService,
    query: str,
) -> None:
    """Seed the demo warrants and search once per demo user."""
    token: str | None = None
    for warrant in DEMO_WARRANTS:
        result = await store.write(warrant, WarrantOp.CREATE)
        token = result.consistency_token or token
        logger.info(
            f"👤 Granted {warrant.subject.resource_id} {warrant.relation} access to {warrant.resource_id}",
            color="green",
        )

    for user_id in DEMO_USERS:
        logger.info(f"🔍 Searching for user {user_id} with query: \"{query}\"", color="cyan")
        response = await retrieval_service.do_search(RetrievalRequest(
            query=query,
            subject=Subject(resource_id=user_id),
            consistency_token=token,
        ))
        if response.status == RetrievalStatus.NO_ACCESS:
            continue
        for rank, item in enumerate(response.results, start=1):
            logger.info(f"{rank}. From \"{item.document_name}\" (score {item.score:.4f}): {item.text[:200]}")


async def main() -> None:
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    schema = load_relation_schema(config)
    authz_client = AuthzClientManager(helper_config=config).get_client()
    run_demo_flow = config.get_bool_val("AUTHZ_BOOTSTRAP_DEMO", default=False)

    rag_clients = RAGClientManager(helper_config=config).get_clients() if run_demo_flow else []
    embed_client = EmbedClientManager(helper_config=config).get_client() if run_demo_flow else None

    try:
        await authz_client.boot()
        await authz_client.do_healthcheck()

        await authz_client.do_define_resource_types(schema)
        logger.info(f"Published resource types: {', '.join(t.type for t in schema.resource_types)}")

        if not run_demo_flow:
            return

        await embed_client.boot()
        for rag_client in rag_clients:
            await rag_client.boot()

        store = RelationStore(helper_config=config, authz_client=authz_client, schema=schema)
        evaluator = AuthorizationEvaluator(helper_config=config, store=store)
        retrieval_service = RetrievalService(
            helper_config=config,
            store=store,
            evaluator=evaluator,
            rag_client=rag_clients[0],
            embed_client=embed_client,
        )
        query = config.get_string_val("AUTHZ_BOOTSTRAP_DEMO_QUERY", default=DEMO_QUERY)
        await run_demo(logger, store, retrieval_service, query)
    finally:
        await authz_client.close()
        if embed_client:
            await embed_client.close()
        for rag_client in rag_clients:
            await rag_client.close()


if __name__ == "__main__":
    asyncio.run(main())
