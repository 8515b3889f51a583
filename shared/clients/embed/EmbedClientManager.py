from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperLoader import load_engine_class
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface


class EmbedClientManager:
    """Builds the embedding client named by EMBED_ENGINE (ollama, openai)."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        engine = helper_config.get_string_val("EMBED_ENGINE")
        client_class = load_engine_class("shared.clients.embed", "EmbedClient", engine)
        self.client: EmbedClientInterface = client_class(helper_config=helper_config)
        self.logging.debug("Embedding client '%s' created.", engine)

    def get_client(self) -> EmbedClientInterface:
        return self.client
