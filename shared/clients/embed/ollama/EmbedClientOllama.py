from typing import Tuple

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOllama(EmbedClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string"),
            # only needed behind an authenticating proxy
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    def _get_auth_header(self) -> dict:
        api_key = self.settings["API_KEY"]
        return {"Authorization": f"Bearer {api_key}"} if api_key else {}

    def _get_base_url(self) -> str:
        return self.settings["BASE_URL"]

    def _get_endpoint_healthcheck(self) -> str:
        # "Ollama is running"
        return "/"

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        # {"model": "...", "embeddings": [[...], ...]}
        vectors = response_data.get("embeddings") or []
        if not vectors or not all(vectors):
            raise ValueError(f"Ollama sent no embeddings, got keys {sorted(response_data)}.")
        return vectors

    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        """Read <architecture>.embedding_length from /api/show."""
        response = await self.do_request("POST", "/api/show", json={"name": self.embed_model}, check=True)
        model_info: dict = response.json().get("model_info") or {}
        sizes = [value for key, value in model_info.items() if key.endswith(".embedding_length")]
        if not sizes:
            raise ValueError(f"Ollama reports no embedding length for '{self.embed_model}'.")
        return int(sizes[0]), self.embed_distance
