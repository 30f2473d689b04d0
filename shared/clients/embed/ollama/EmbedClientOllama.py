from typing import Tuple

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.exceptions import ProviderError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOllama(EmbedClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default="")
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        # root on ollama
        return ""

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    def get_endpoint_model_details(self) -> str:
        # model name goes in the body
        return "/api/show"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    ##########################################
    ################# OTHER ##################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        response = await self.do_request(
            method="POST",
            json={"name": self.embed_model},
            endpoint=self.get_endpoint_model_details(),
            raise_on_error=True,
        )
        vector_size = self.parse_response(response, self.extract_vector_size)
        if vector_size is None:
            raise ProviderError(message=f"Could not determine embedding vector size for model {self.embed_model}")
        return vector_size, self.embed_distance

    def extract_vector_size(self, response_data: dict) -> int | None:
        model_info: dict = response_data.get("model_info") or {}
        for key, value in model_info.items():
            if key.endswith(".embedding_length"):
                return int(value)
        return None

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        embeddings = response_data.get("embeddings")
        if not embeddings or not embeddings[0]:
            raise ProviderError(
                message="Ollama response does not contain valid embeddings.",
                detail=f"Response keys: {list(response_data.keys())}",
            )
        return embeddings
