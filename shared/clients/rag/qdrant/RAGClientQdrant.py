import uuid

import httpx

from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.SearchHit import SearchHit
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.exceptions import IndexUnavailableError
from shared.models.config import EnvConfig

# Fixed namespace for deterministic UUIDv5 point IDs.
# Changing this value would invalidate all existing point IDs in Qdrant.
_POINT_ID_NAMESPACE = uuid.UUID("6f4d3c2b-1a09-4e5f-8b7c-6d5e4f3a2b1c")


class RAGClientQdrant(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    def make_point_id(self, point: VectorPoint) -> str:
        return str(uuid.uuid5(_POINT_ID_NAMESPACE, point.chunk_id))

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default=None)
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_search(self) -> str:
        return f"/collections/{self._collection_name}/points/search"

    def _get_endpoint_points(self) -> str:
        return f"/collections/{self._collection_name}/points?wait=true"

    def _get_endpoint_delete_points(self) -> str:
        return f"/collections/{self._collection_name}/points/delete?wait=true"

    def _get_endpoint_check_collection_existence(self) -> str:
        return f"/collections/{self._collection_name}/exists"

    def _get_endpoint_create_collection(self) -> str:
        return f"/collections/{self._collection_name}"

    def _get_endpoint_payload_index(self) -> str:
        return f"/collections/{self._collection_name}/index?wait=true"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_search_payload(self, query_vector: list[float], allowed_resource_ids: list[str], top_k: int) -> dict:
        return {
            "vector": query_vector,
            "filter": {
                "must": [
                    {"key": "parent_resource_id", "match": {"any": allowed_resource_ids}},
                ]
            },
            "limit": top_k,
            "with_payload": True,
            "with_vector": False,
        }

    def get_upsert_payload(self, points: list[tuple[VectorPoint, list[float]]]) -> dict:
        return {
            "points": [
                {
                    "id": self.make_point_id(point),
                    "vector": vector,
                    "payload": point.model_dump(),
                }
                for point, vector in points
            ]
        }

    def get_delete_by_parent_payload(self, parent_resource_id: str) -> dict:
        return {
            "filter": {
                "must": [
                    {"key": "parent_resource_id", "match": {"value": parent_resource_id}},
                ]
            }
        }

    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        return {"vectors": {"size": vector_size, "distance": distance.capitalize()}}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        hits: list[SearchHit] = []
        for point in raw_response.get("result", []):
            payload = point.get("payload") or {}
            hits.append(SearchHit(
                chunk_id=str(payload.get("chunk_id") or point.get("id")),
                score=float(point.get("score", 0.0)),
                parent_resource_id=str(payload.get("parent_resource_id", "")),
                text=payload.get("text") or "",
                position=payload.get("position"),
                document_name=payload.get("document_name"),
            ))
        return hits

    def extract_collection_exists(self, response: httpx.Response) -> bool:
        if response.status_code != 200:
            raise IndexUnavailableError(
                message=f"Existence check for collection '{self._collection_name}' failed with status {response.status_code}.",
                detail=response.text[:500],
            )
        return bool(response.json().get("result", {}).get("exists"))

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_create_collection(self, vector_size: int = 768, distance: str = "Cosine") -> httpx.Response:
        """Create the collection and a keyword index on parent_resource_id,
        the field every access-filtered search matches on.
        """
        response = await super().do_create_collection(vector_size=vector_size, distance=distance)
        await self.do_request(
            method="PUT",
            json={"field_name": "parent_resource_id", "field_schema": "keyword"},
            endpoint=self._get_endpoint_payload_index(),
            raise_on_error=True,
        )
        return response
