"""FastAPI application entry point for the authorization-gated retrieval bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.authz.AuthorizationEvaluator import AuthorizationEvaluator
from services.authz.RelationStore import RelationStore
from services.authz.schema_loader import load_relation_schema
from services.retrieval.RetrievalService import RetrievalService
from server.errors import register_exception_handlers
from server.routers.AccessRouter import router as access_router
from server.routers.QueryRouter import router as query_router
from shared.clients.ClientInterface import ClientInterface
from shared.clients.authz.AuthzClientManager import AuthzClientManager
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    schema = load_relation_schema(app.state.helper_config)
    authz_client = AuthzClientManager(helper_config=app.state.helper_config).get_client()
    rag_clients = RAGClientManager(helper_config=app.state.helper_config).get_clients()
    embed_client = EmbedClientManager(helper_config=app.state.helper_config).get_client()
    clients: list[ClientInterface] = [authz_client, *rag_clients, embed_client]

    logging.info("Booting all clients...")
    for client in clients:
        await client.boot()
    logging.info("All clients booted successfully.")

    await check_connections(clients)

    app.state.store = RelationStore(
        helper_config=app.state.helper_config,
        authz_client=authz_client,
        schema=schema,
    )
    app.state.evaluator = AuthorizationEvaluator(
        helper_config=app.state.helper_config,
        store=app.state.store,
    )
    # queries are served by the first configured RAG backend
    app.state.retrieval_service = RetrievalService(
        helper_config=app.state.helper_config,
        store=app.state.store,
        evaluator=app.state.evaluator,
        rag_client=rag_clients[0],
        embed_client=embed_client,
    )

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in clients:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="authz_rag_bridge",
    description=(
        "Authorization-gated retrieval. Documents are indexed into a vector database "
        "and searched via POST /query, restricted to the documents the requesting user "
        "may view according to the relation store. Warrants are managed under /access."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(query_router)
app.include_router(access_router)


async def check_connections(clients: list[ClientInterface]) -> None:
    """Check connectivity to all configured backends on startup.

    Every backend is required: without the relation store no access can be
    resolved, without the index or embedder no query can be served.

    Raises:
        RuntimeError: If a backend is not reachable.
    """
    for client in clients:
        result = await client.do_healthcheck()
        if not result.is_success:
            raise RuntimeError(
                f"{client.get_client_type().upper()} client '{client.get_engine_name()}' is not reachable "
                f"(status {result.status_code}). Cannot serve queries."
            )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting authz_rag_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
