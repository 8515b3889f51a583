from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperLoader import load_engine_class
from shared.clients.rag.RAGClientInterface import RAGClientInterface


class RAGClientManager:
    """Builds one client per engine in RAG_ENGINES, e.g. RAG_ENGINES=[qdrant].

    Every index gets the same records, so a sync keeps them all in step.
    """

    def __init__(self, helper_config: HelperConfig, upsert_batch_size: int = 100):
        self.helper_config = helper_config
        self.upsert_batch_size = upsert_batch_size
        self.logging = helper_config.get_logger()
        self.clients = self._initialize_clients()

    def _initialize_clients(self) -> list[RAGClientInterface]:
        engines: list[str] = []
        for engine in self.helper_config.get_list_val("RAG_ENGINES"):
            if engine.lower() not in engines:
                engines.append(engine.lower())
        if not engines:
            raise ValueError("RAG_ENGINES is empty, at least one vector index is required.")

        clients = []
        for engine in engines:
            client_class = load_engine_class("shared.clients.rag", "RAGClient", engine)
            clients.append(client_class(helper_config=self.helper_config, upsert_batch_size=self.upsert_batch_size))
            self.logging.debug("Vector index client '%s' created.", engine)
        return clients

    def get_clients(self) -> list[RAGClientInterface]:
        return self.clients
