from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.SearchHit import SearchHit
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.exceptions import BackendUnavailableError, IndexUnavailableError, InvalidRequestError
from shared.helper.HelperConfig import HelperConfig


class RAGClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    def _get_unavailable_error(self) -> type[BackendUnavailableError]:
        return IndexUnavailableError

    def _get_control_base_url(self) -> str | None:
        """
        Returns the base URL for collection management requests when the backend
        separates its control plane from the data plane. None means _get_base_url().
        """
        return None

    @abstractmethod
    def make_point_id(self, point: VectorPoint) -> str:
        """
        Returns the backend point id of a chunk. Deterministic, so re-ingesting a
        document overwrites its points. Backends that only accept UUIDs derive one
        from the chunk id.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_search(self) -> str:
        """
        Returns the endpoint path for nearest-neighbour search requests.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/search")
        """
        pass

    @abstractmethod
    def _get_endpoint_points(self) -> str:
        """
        Returns the endpoint path for points upsert requests.

        Returns:
            str: The endpoint path for points requests (e.g. "/points")
        """
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self) -> str:
        """
        Returns the endpoint path for deleting points by filter.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/delete")
        """
        pass

    @abstractmethod
    def _get_endpoint_check_collection_existence(self) -> str:
        """
        Returns the endpoint path for collection existence check requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_create_collection(self) -> str:
        """
        Returns the endpoint path for create collection requests.
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_search_payload(self, query_vector: list[float], allowed_resource_ids: list[str], top_k: int) -> dict:
        """
        Builds the backend-specific request body for a similarity search restricted
        to the allowed parent resources. The restriction must be expressed in the
        backend's native filter so that it is applied before ranking.

        Args:
            query_vector (list[float]): The embedded query.
            allowed_resource_ids (list[str]): Non-empty allow-list of parent resource ids.
            top_k (int): Maximum number of matches.

        Returns:
            dict: The payload for the search request.
        """
        pass

    @abstractmethod
    def get_upsert_payload(self, points: list[tuple[VectorPoint, list[float]]]) -> dict:
        """
        Builds the backend-specific request body for a points upsert.

        Args:
            points (list[tuple[VectorPoint, list[float]]]): Payload and vector per chunk.

        Returns:
            dict: The payload for the upsert request.
        """
        pass

    def get_delete_by_parent_payload(self, parent_resource_id: str) -> dict:
        """
        Builds the backend-specific request body that deletes every chunk of a document
        by filter. Backends without filtered deletes override do_delete_by_parent instead.
        """
        raise NotImplementedError(f"{self.get_engine_name()} does not delete by filter.")

    @abstractmethod
    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        """
        Builds the backend-specific request body for collection creation.
        """
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        """
        Extracts the matches from a raw search response.

        Args:
            raw_response (dict): The raw JSON response from the search endpoint.

        Returns:
            list[SearchHit]: The matches, in any order.
        """
        pass

    @abstractmethod
    def extract_collection_exists(self, response: httpx.Response) -> bool:
        """
        Interprets the response of a collection existence check.

        Raises:
            IndexUnavailableError: If the response is neither a positive nor a negative answer.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_search(
        self,
        query_vector: list[float],
        allowed_resource_ids: set[str] | list[str],
        top_k: int,
        timeout: float | None = None,
    ) -> list[SearchHit]:
        """Nearest-neighbour search restricted to chunks of the allowed documents.

        An empty allow-list returns an empty result without contacting the
        backend: backends read an empty filter as "no filter".

        Args:
            query_vector (list[float]): The embedded query.
            allowed_resource_ids (set[str] | list[str]): Parent resource ids the caller may see.
            top_k (int): Maximum number of results, must be positive.
            timeout (float | None): Caller-supplied timeout in seconds.

        Returns:
            list[SearchHit]: Matches ordered by descending score, at most top_k.

        Raises:
            InvalidRequestError: If top_k is not positive.
            IndexUnavailableError: If the backend fails.
            RequestTimeoutError: If the request exceeds its timeout.
        """
        if top_k < 1:
            raise InvalidRequestError(f"top_k must be a positive integer, got {top_k}.")
        if not allowed_resource_ids:
            self.logging.debug("Empty allow-list, skipping search on %s.", self.get_engine_name())
            return []

        allowed = sorted(set(allowed_resource_ids))
        resp = await self.do_request(
            method="POST",
            json=self.get_search_payload(query_vector, allowed, top_k),
            endpoint=self._get_endpoint_search(),
            raise_on_error=True,
            timeout=timeout,
        )
        hits = self.parse_response(resp, self.extract_search_hits)
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:top_k]

    async def do_existence_check(self) -> bool:
        """Check if the collection exists in the rag backend.

        Returns:
            bool: True if the collection exists, False otherwise.
        """
        resp = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_check_collection_existence(),
            base_url=self._get_control_base_url(),
        )
        return self.parse_response(resp, self.extract_collection_exists, raw=True)

    async def do_create_collection(self, vector_size: int = 768, distance: str = "Cosine") -> httpx.Response:
        """Create the collection in the rag backend.

        Args:
            vector_size (int): The size of the vectors in the collection.
            distance (str): The distance metric for the vectors.

        Returns:
            httpx.Response: The response from the create collection request.
        """
        self.logging.info(
            "Creating collection on %s (size=%d, distance=%s)...",
            self.get_engine_name(), vector_size, distance,
        )
        return await self.do_request(
            method=self._get_create_collection_method(),
            json=self.get_create_collection_payload(vector_size, distance),
            endpoint=self._get_endpoint_create_collection(),
            base_url=self._get_control_base_url(),
            raise_on_error=True,
            accept_status=(409,),
        )

    def _get_create_collection_method(self) -> str:
        return "PUT"

    async def do_upsert_points(
        self,
        points: list[tuple[VectorPoint, list[float]]],
        timeout: float | None = None,
    ) -> httpx.Response:
        """Upsert chunks into the rag backend collection.
        Inserts new points or replaces existing ones with the same point id.

        Args:
            points (list[tuple[VectorPoint, list[float]]]): Payload and vector per chunk.
            timeout (float | None): Caller-supplied timeout in seconds.

        Returns:
            httpx.Response: The response from the upsert request.
        """
        for point, _ in points:
            # access filter join key, never upsert a chunk without it
            if not point.parent_resource_id:
                raise ValueError(f"Chunk '{point.chunk_id}' has no parent_resource_id.")
        return await self.do_request(
            method=self._get_upsert_method(),
            json=self.get_upsert_payload(points),
            endpoint=self._get_endpoint_points(),
            raise_on_error=True,
            timeout=timeout,
        )

    def _get_upsert_method(self) -> str:
        return "PUT"

    async def do_delete_by_parent(self, parent_resource_id: str, timeout: float | None = None) -> None:
        """Deletes all chunks of a document from the RAG backend.
        Used before re-ingesting a document so no stale chunk survives.

        Args:
            parent_resource_id (str): The resource id of the document.
            timeout (float | None): Caller-supplied timeout in seconds.
        """
        await self.do_request(
            method="POST",
            json=self.get_delete_by_parent_payload(parent_resource_id),
            endpoint=self._get_endpoint_delete_points(),
            raise_on_error=True,
            timeout=timeout,
        )
