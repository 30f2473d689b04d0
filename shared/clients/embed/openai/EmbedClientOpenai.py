from typing import Tuple

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.exceptions import ProviderError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOpenai(EmbedClientInterface):
    """OpenAI-compatible /embeddings client (OpenAI, Azure-style proxies, vLLM, LocalAI)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.openai.com/v1", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        # text-embedding-3-small and ada-002 both produce 1536 dimensions
        self._dimensions = int(self.get_config_val("DIMENSIONS", default=1536, val_type="number"))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Openai"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.openai.com/v1"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="DIMENSIONS", val_type="number", default=1536),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/models"

    def get_endpoint_embedding(self) -> str:
        return "/embeddings"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    ##########################################
    ################# OTHER ##################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        # no model details endpoint, the dimension is configured
        return self._dimensions, self.embed_distance

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        data = response_data.get("data")
        if not data:
            raise ProviderError(
                message="OpenAI response does not contain valid embeddings.",
                detail=f"Response keys: {list(response_data.keys())}",
            )
        ordered = sorted(data, key=lambda item: item.get("index", 0))
        embeddings = [item.get("embedding") for item in ordered]
        if any(not vector for vector in embeddings):
            raise ProviderError(message="OpenAI response contains an empty embedding.")
        return embeddings
