"""Ingest runner entry point.

Embeds the plain-text documents of INGEST_SOURCE_DIR into every configured
RAG backend. Document ids are derived from the file names, so the warrants
granted on "doc_<name>" apply to the chunks of "<name>.txt".

Usage:
    python -m services.ingest.ingest_runner
"""

import asyncio

from services.ingest.IngestService import IngestService
from services.ingest.source_reader import read_source_documents
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging


async def main() -> None:
    """Run the ingestion pipeline once."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    source_dir = config.get_path_val("INGEST_SOURCE_DIR", default="documents")
    documents = read_source_documents(source_dir, logger)
    if not documents:
        logger.error(f"No .txt or .md documents found in '{source_dir}'. Aborting.")
        return

    rag_clients = RAGClientManager(helper_config=config).get_clients()
    embed_client = EmbedClientManager(helper_config=config).get_client()

    try:
        booted_rag_clients: list[RAGClientInterface] = []
        booted_embed_client: EmbedClientInterface | None = None

        # embed client is required, without it nothing can be ingested
        try:
            await embed_client.boot()
            await embed_client.do_healthcheck()
            booted_embed_client = embed_client
        except Exception as e:
            logger.error(f"Error booting Embed client {embed_client.get_engine_name()}: {e}. Aborting.")
            return

        # at least one rag client needs to boot
        for rag_client in rag_clients:
            try:
                await rag_client.boot()
                await rag_client.do_healthcheck()
                booted_rag_clients.append(rag_client)
            except Exception as e:
                logger.error(f"Error booting RAG client {rag_client.get_engine_name()}: {e}. Skipping this client.")
        if not booted_rag_clients:
            logger.error("No RAG clients booted successfully. Aborting.")
            return

        # create missing collections with the dimension of the embedding model
        vector_size, distance = await booted_embed_client.do_fetch_embedding_vector_size()
        for rag_client in booted_rag_clients:
            if not await rag_client.do_existence_check():
                await rag_client.do_create_collection(vector_size=vector_size, distance=distance)

        ingest_service = IngestService(
            helper_config=config,
            rag_clients=booted_rag_clients,
            embed_client=booted_embed_client,
        )
        report = await ingest_service.do_ingest(documents)
        if report.errors:
            logger.warning(f"{report.errors} document(s) failed to ingest. See errors above.")
    finally:
        await embed_client.close()
        for rag_client in rag_clients:
            await rag_client.close()


if __name__ == "__main__":
    asyncio.run(main())
