from abc import abstractmethod

from typing import Tuple
from shared.clients.ClientInterface import ClientInterface
from shared.exceptions import BackendUnavailableError, ProviderError

from shared.helper.HelperConfig import HelperConfig

class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and embedding config
        self.embed_distance = helper_config.get_string_val(f"{self.get_client_type().upper()}_DISTANCE", default="Cosine")
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=None)
        self.embed_model_max_chars = helper_config.get_number_val(f"{self.get_client_type().upper()}_MODEL_MAX_CHARS", default=0)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    def _get_unavailable_error(self) -> type[BackendUnavailableError]:
        return ProviderError

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embed")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        """
        Fetch the output vector dimension and distance metric of the configured embedding model.

        Returns:
            Tuple[int, str]: The number of dimensions produced by the embedding model and the distance metric.

        Raises:
            ProviderError: If the dimension cannot be determined.
        """
        pass

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Response format differs by backend:
        - Ollama /api/embed: {"embeddings": [[...], [...]]}  (already ordered)
        - OpenAI-compatible: {"data": [{"embedding": [...], "index": 0}]} (needs sorting)

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            ProviderError: If the response format is invalid or embeddings are empty.
        """
        pass

    def _truncate(self, texts: list[str]) -> list[str]:
        """Cut texts down to the model's character limit, if one is configured."""
        max_chars = int(self.embed_model_max_chars or 0)
        if max_chars <= 0:
            return texts
        truncated = []
        for text in texts:
            if len(text) > max_chars:
                self.logging.warning(
                    "Text of %d chars exceeds EMBED_MODEL_MAX_CHARS=%d and is truncated.", len(text), max_chars
                )
                text = text[:max_chars]
            truncated.append(text)
        return truncated

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str, timeout: float | None = None) -> list[list[float]]:
        """Send an embedding request and return the extracted vectors.

        Args:
            texts (list[str] | str): One or more texts to embed.
            timeout (float | None): Caller-supplied timeout in seconds.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the inputs.

        Raises:
            ProviderError: If the request fails or the response holds no valid embeddings.
            RequestTimeoutError: If the request exceeds its timeout.
        """
        texts = [texts] if isinstance(texts, str) else texts
        body = self.get_embed_payload(self._truncate(texts))
        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_embedding(),
            json=body,
            timeout=timeout,
        )
        if response.status_code != 200:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise ProviderError(
                message="Embedding request failed with status %d." % response.status_code,
                detail=response.text[:200],
            )
        vectors = self.parse_response(response, self.extract_embeddings_from_response)
        if len(vectors) != len(texts):
            raise ProviderError(
                message=f"Embedding backend returned {len(vectors)} vectors for {len(texts)} inputs."
            )
        return vectors

    async def do_embed_query(self, text: str, timeout: float | None = None) -> list[float]:
        """Embed a single query text into one fixed-length vector."""
        vectors = await self.do_embed([text], timeout=timeout)
        return vectors[0]
