from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import IndexRecord
from shared.models.config import EnvConfig


class RAGClientQdrant(RAGClientInterface):
    """Qdrant over its REST API. Record ids are UUID strings, which Qdrant accepts as point ids."""

    def __init__(self, helper_config: HelperConfig, upsert_batch_size: int = 100):
        super().__init__(helper_config=helper_config, upsert_batch_size=upsert_batch_size)
        self._collection = self.settings["COLLECTION"]

    def _get_engine_name(self) -> str:
        return "Qdrant"

    def get_collection_name(self) -> str:
        return self._collection

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string"),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default="data-ingested"),
        ]

    def _get_auth_header(self) -> dict:
        api_key = self.settings["API_KEY"]
        return {"api-key": api_key} if api_key else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self.settings["BASE_URL"]

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_collection(self) -> str:
        return f"/collections/{self._collection}"

    def _get_endpoint_collection_exists(self) -> str:
        return self._get_endpoint_collection() + "/exists"

    def _get_endpoint_points(self) -> str:
        return self._get_endpoint_collection() + "/points"

    def _get_endpoint_delete_points(self) -> str:
        return self._get_endpoint_points() + "/delete"

    ################ PAYLOADS ##################
    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        return {"vectors": {"size": vector_size, "distance": distance}}

    def get_upsert_payload(self, records: list[IndexRecord]) -> dict:
        return {"points": [record.to_point() for record in records]}

    def get_delete_payload(self, record_ids: list[str]) -> dict:
        return {"points": list(record_ids)}

    def extract_existence_from_response(self, raw_response: dict) -> bool:
        # {"result": {"exists": true}, "status": "ok", ...}
        return bool((raw_response.get("result") or {}).get("exists"))
