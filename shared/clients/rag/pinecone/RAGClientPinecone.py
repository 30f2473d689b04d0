import httpx

from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.SearchHit import SearchHit
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.exceptions import IndexUnavailableError
from shared.models.config import EnvConfig

# Pinecone caps
LIST_PAGE_LIMIT = 100
DELETE_BATCH_LIMIT = 1000


class RAGClientPinecone(RAGClientInterface):
    """Pinecone REST client. Data-plane requests go to the index host,
    index management goes to the control plane.

    Serverless indexes cannot delete by metadata filter, so vector ids are
    "<parent_resource_id>#<position>" and a document's chunks are found by
    listing ids with the "<parent_resource_id>#" prefix.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._control_url = self.get_config_val("CONTROL_URL", default="https://api.pinecone.io", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self._api_version = self.get_config_val("API_VERSION", default="2024-07", val_type="string")
        self._index_name = self.get_config_val("INDEX", default=None, val_type="string")
        self._namespace = self.get_config_val("NAMESPACE", default="", val_type="string")
        self._cloud = self.get_config_val("CLOUD", default="aws", val_type="string")
        self._region = self.get_config_val("REGION", default="us-east-1", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Pinecone"

    def make_point_id(self, point: VectorPoint) -> str:
        return f"{self.make_point_id_prefix(point.parent_resource_id)}{point.position}"

    def make_point_id_prefix(self, parent_resource_id: str) -> str:
        return f"{parent_resource_id}#"

    def _get_control_base_url(self) -> str | None:
        return self._control_url

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="INDEX", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Api-Key": self._api_key, "X-Pinecone-API-Version": self._api_version}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/describe_index_stats"

    def _get_endpoint_search(self) -> str:
        return "/query"

    def _get_endpoint_points(self) -> str:
        return "/vectors/upsert"

    def _get_endpoint_list_points(self) -> str:
        return "/vectors/list"

    def _get_endpoint_delete_points(self) -> str:
        return "/vectors/delete"

    def _get_endpoint_check_collection_existence(self) -> str:
        return f"/indexes/{self._index_name}"

    def _get_endpoint_create_collection(self) -> str:
        return "/indexes"

    def _get_create_collection_method(self) -> str:
        return "POST"

    def _get_upsert_method(self) -> str:
        return "POST"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def _with_namespace(self, payload: dict) -> dict:
        if self._namespace:
            payload["namespace"] = self._namespace
        return payload

    def get_search_payload(self, query_vector: list[float], allowed_resource_ids: list[str], top_k: int) -> dict:
        return self._with_namespace({
            "vector": query_vector,
            "filter": {"parent_resource_id": {"$in": allowed_resource_ids}},
            "topK": top_k,
            "includeMetadata": True,
            "includeValues": False,
        })

    def get_upsert_payload(self, points: list[tuple[VectorPoint, list[float]]]) -> dict:
        # metadata values must not be null in Pinecone
        return self._with_namespace({
            "vectors": [
                {
                    "id": self.make_point_id(point),
                    "values": vector,
                    "metadata": point.model_dump(exclude_none=True),
                }
                for point, vector in points
            ]
        })

    def get_list_points_params(self, prefix: str, pagination_token: str | None = None) -> dict:
        params = self._with_namespace({"prefix": prefix, "limit": LIST_PAGE_LIMIT})
        if pagination_token:
            params["paginationToken"] = pagination_token
        return params

    def get_delete_by_ids_payload(self, point_ids: list[str]) -> dict:
        return self._with_namespace({"ids": point_ids})

    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        return {
            "name": self._index_name,
            "dimension": vector_size,
            "metric": distance.lower(),
            "spec": {"serverless": {"cloud": self._cloud, "region": self._region}},
        }

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        hits: list[SearchHit] = []
        for match in raw_response.get("matches", []):
            metadata = match.get("metadata") or {}
            position = metadata.get("position")
            hits.append(SearchHit(
                chunk_id=str(metadata.get("chunk_id") or match.get("id")),
                score=float(match.get("score", 0.0)),
                parent_resource_id=str(metadata.get("parent_resource_id", "")),
                text=metadata.get("text") or "",
                # Pinecone stores all numbers as floats
                position=int(position) if position is not None else None,
                document_name=metadata.get("document_name"),
            ))
        return hits

    def extract_point_ids_page(self, raw_response: dict) -> tuple[list[str], str | None]:
        point_ids = [str(vector["id"]) for vector in raw_response.get("vectors") or []]
        next_token = (raw_response.get("pagination") or {}).get("next")
        return point_ids, next_token

    def extract_collection_exists(self, response: httpx.Response) -> bool:
        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        raise IndexUnavailableError(
            message=f"Existence check for index '{self._index_name}' failed with status {response.status_code}.",
            detail=response.text[:500],
        )

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_list_point_ids(self, parent_resource_id: str, timeout: float | None = None) -> list[str]:
        """List the ids of every chunk of a document, following the pagination token.

        The prefix "<parent>#" also matches ids of a document named "<parent>#x",
        so only ids whose remainder is a bare position are kept.

        Args:
            parent_resource_id (str): The resource id of the document.
            timeout (float | None): Caller-supplied timeout in seconds.

        Returns:
            list[str]: Vector ids of the document's chunks.
        """
        prefix = self.make_point_id_prefix(parent_resource_id)
        point_ids: list[str] = []
        pagination_token: str | None = None
        while True:
            resp = await self.do_request(
                method="GET",
                params=self.get_list_points_params(prefix, pagination_token),
                endpoint=self._get_endpoint_list_points(),
                raise_on_error=True,
                timeout=timeout,
            )
            page_ids, pagination_token = self.parse_response(resp, self.extract_point_ids_page)
            point_ids.extend(pid for pid in page_ids if pid[len(prefix):].isdigit())
            if not pagination_token:
                break
        return point_ids

    async def do_delete_by_parent(self, parent_resource_id: str, timeout: float | None = None) -> None:
        point_ids = await self.do_list_point_ids(parent_resource_id, timeout=timeout)
        if not point_ids:
            self.logging.debug("No chunks of %s stored in Pinecone, nothing to delete.", parent_resource_id)
            return
        for start in range(0, len(point_ids), DELETE_BATCH_LIMIT):
            await self.do_request(
                method="POST",
                json=self.get_delete_by_ids_payload(point_ids[start:start + DELETE_BATCH_LIMIT]),
                endpoint=self._get_endpoint_delete_points(),
                raise_on_error=True,
                timeout=timeout,
            )
        self.logging.debug("Deleted %d chunk(s) of %s from Pinecone.", len(point_ids), parent_resource_id)
