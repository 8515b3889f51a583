from abc import abstractmethod

from typing import Tuple
from shared.clients.ClientInterface import ClientInterface

from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    """Turns passages into vectors with the model named by EMBED_MODEL.

    EMBED_MODEL_MAX_CHARS cuts every text before it is sent (0 keeps it whole).
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.embed_model = helper_config.get_string_val("EMBED_MODEL")
        self.embed_distance = helper_config.get_string_val("EMBED_DISTANCE", default="Cosine")
        self.embed_model_max_chars = int(helper_config.get_number_val("EMBED_MODEL_MAX_CHARS", default=0))

    def _get_client_type(self) -> str:
        return "embed"

    def supports_batch_embedding(self) -> bool:
        """False makes the chunk embedder send one text per request."""
        return True

    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        pass

    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        pass

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Vectors of a response body, in the order the texts were sent.

        Raises:
            ValueError: If the body holds no usable vectors.
        """
        pass

    @abstractmethod
    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        """(dimensions, distance) of the configured model, used when EMBED_VECTOR_SIZE=0."""
        pass

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Embed one text or a list of texts in a single request.

        Raises:
            BackendResponseError: If the backend rejects the request.
            ValueError: If the number of vectors does not match the number of texts.
        """
        batch = [texts] if isinstance(texts, str) else list(texts)
        if self.embed_model_max_chars > 0:
            batch = [text[: self.embed_model_max_chars] for text in batch]

        response = await self.do_request(
            "POST", self.get_endpoint_embedding(), json=self.get_embed_payload(batch), check=True
        )
        vectors = self.extract_embeddings_from_response(response.json())
        if len(vectors) != len(batch):
            raise ValueError(
                f"{self.get_engine_name()} returned {len(vectors)} vectors for {len(batch)} texts ({self.embed_model})."
            )
        return vectors
