from typing import Tuple

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOpenai(EmbedClientInterface):
    """Any server speaking the OpenAI /v1/embeddings protocol (OpenAI, vLLM, LiteLLM)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    def _get_engine_name(self) -> str:
        return "Openai"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.openai.com"),
            EnvConfig(env_key="API_KEY", val_type="string"),
            # text-embedding-3-small
            EnvConfig(env_key="DIMENSIONS", val_type="number", default=1536),
        ]

    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self.settings['API_KEY']}"}

    def _get_base_url(self) -> str:
        return self.settings["BASE_URL"]

    def _get_endpoint_healthcheck(self) -> str:
        return "/v1/models"

    def get_endpoint_embedding(self) -> str:
        return "/v1/embeddings"

    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        # items may arrive out of order, "index" points at the input text
        items = sorted(response_data.get("data") or [], key=lambda item: item.get("index", 0))
        vectors = [item.get("embedding") for item in items]
        if not vectors or not all(vectors):
            raise ValueError(f"OpenAI-compatible backend sent no usable embeddings, got keys {sorted(response_data)}.")
        return vectors

    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        # no model details endpoint, so the size comes from configuration
        return int(self.settings["DIMENSIONS"]), self.embed_distance
