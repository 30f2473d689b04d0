"""Ingestion service.

Splits each source document into overlapping chunks, embeds them via the
embed client, and replaces the document's chunk set in every RAG backend.
Every chunk carries the resource id of its parent document, which is the
join key of the access filter at query time.
"""

import asyncio

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import IngestReport, SourceDocument


def split_text(text: str, chunk_size: int, overlap: int) -> list[str]:
    """Split a document's text into overlapping chunks.

    Args:
        text (str): The full document text.
        chunk_size (int): Characters per chunk.
        overlap (int): Characters shared by consecutive chunks.

    Returns:
        list[str]: Ordered list of text chunks.

    Raises:
        ValueError: If chunk_size is not positive or overlap is not smaller than chunk_size.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}.")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError(f"overlap must be in [0, {chunk_size}), got {overlap}.")
    if not text:
        return []
    chunks: list[str] = []
    start = 0
    while start < len(text):
        end = min(start + chunk_size, len(text))
        chunks.append(text[start:end])
        if end >= len(text):
            break
        start = end - overlap
    return chunks


def make_chunk_id(resource_id: str, position: int) -> str:
    return f"chunk_{resource_id}_{position}"


class IngestService:
    """Orchestrates the ingestion pipeline from source documents to RAGs."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_clients: list[RAGClientInterface],
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_clients = rag_clients
        self._embed_client = embed_client

        self.chunk_size = int(helper_config.get_number_val("INGEST_CHUNK_SIZE", default=1000))
        self.chunk_overlap = int(helper_config.get_number_val("INGEST_CHUNK_OVERLAP", default=200))
        self.max_chars = int(helper_config.get_number_val("INGEST_MAX_CHARS", default=0))
        self.embed_batch_size = int(helper_config.get_number_val("INGEST_EMBED_BATCH_SIZE", default=32))
        self.upsert_batch_size = int(helper_config.get_number_val("INGEST_UPSERT_BATCH_SIZE", default=100))
        self.doc_concurrency = int(helper_config.get_number_val("INGEST_CONCURRENCY", default=5))
        # 0 keeps the per-client RAG_TIMEOUT / EMBED_TIMEOUT
        self.request_timeout = float(helper_config.get_number_val("INGEST_REQUEST_TIMEOUT", default=0)) or None

    ##########################################
    ############### CORE INGEST ##############
    ##########################################

    async def do_ingest(self, documents: list[SourceDocument], timeout: float | None = None) -> IngestReport:
        """Ingest all documents into all RAG clients.

        A failing document is logged and counted, the others are still ingested.

        Args:
            documents (list[SourceDocument]): The documents to ingest.
            timeout (float | None): Per-request timeout in seconds for every embed,
                delete and upsert call. Defaults to INGEST_REQUEST_TIMEOUT.

        Returns:
            IngestReport: Counters for ingested, skipped and failed documents.
        """
        report = IngestReport()
        if not documents:
            self.logging.warning("No documents to ingest.")
            return report

        self.logging.info(
            "Ingesting %d document(s) into %d RAG backend(s)...", len(documents), len(self._rag_clients),
        )

        timeout = timeout if timeout is not None else self.request_timeout
        sem = asyncio.Semaphore(self.doc_concurrency)
        results = await asyncio.gather(
            *[self._ingest_document(doc, sem, timeout) for doc in documents],
            return_exceptions=True,
        )

        for doc, result in zip(documents, results):
            if isinstance(result, Exception):
                report.errors += 1
                self.logging.error("Ingestion failed for '%s': %s", doc.resource_id, result)
            elif result == 0:
                report.skipped += 1
            else:
                report.ingested += 1
                report.chunks += result

        self.logging.info(
            "Ingestion complete: %d ingested (%d chunks), %d skipped, %d errors.",
            report.ingested, report.chunks, report.skipped, report.errors,
        )
        return report

    ##########################################
    ############ DOCUMENT INGEST #############
    ##########################################

    async def _ingest_document(self, doc: SourceDocument, sem: asyncio.Semaphore, timeout: float | None = None) -> int:
        """Embed and upsert a single document's chunks into every RAG backend.

        Returns:
            int: Number of chunks written, 0 if the document was skipped.
        """
        async with sem:
            if not doc.resource_id:
                self.logging.warning("Skipping document '%s': missing resource id.", doc.source)
                return 0

            content = doc.content
            if self.max_chars > 0 and len(content) > self.max_chars:
                self.logging.debug(
                    "Truncating '%s' from %d to %d characters.", doc.resource_id, len(content), self.max_chars,
                )
                content = content[:self.max_chars]

            if not content.strip():
                self.logging.info("Skipping document '%s': no content.", doc.resource_id)
                return 0

            chunks = split_text(content, self.chunk_size, self.chunk_overlap)
            vectors = await self._embed_chunks(chunks, timeout=timeout)

            content_hash = doc.get_content_hash()
            points = [
                (
                    VectorPoint(
                        chunk_id=make_chunk_id(doc.resource_id, position),
                        parent_resource_id=doc.resource_id,
                        position=position,
                        text=chunk,
                        document_name=doc.name,
                        source=doc.source,
                        content_hash=content_hash,
                    ),
                    vector,
                )
                for position, (chunk, vector) in enumerate(zip(chunks, vectors))
            ]

            for rag_client in self._rag_clients:
                # drop the previous chunk set before writing the new one
                await rag_client.do_delete_by_parent(doc.resource_id, timeout=timeout)
                for batch_start in range(0, len(points), self.upsert_batch_size):
                    await rag_client.do_upsert_points(
                        points[batch_start: batch_start + self.upsert_batch_size], timeout=timeout,
                    )

            self.logging.info(
                "Ingested document '%s' ('%s'): %d chunks.", doc.resource_id, doc.name, len(points),
            )
            return len(points)

    async def _embed_chunks(self, chunks: list[str], timeout: float | None = None) -> list[list[float]]:
        vectors: list[list[float]] = []
        for batch_start in range(0, len(chunks), self.embed_batch_size):
            batch = chunks[batch_start: batch_start + self.embed_batch_size]
            vectors.extend(await self._embed_client.do_embed(texts=batch, timeout=timeout))
        return vectors
