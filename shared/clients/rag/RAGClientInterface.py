from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.VectorPoint import IndexRecord

from shared.helper.HelperConfig import HelperConfig


class RAGClientInterface(ClientInterface):
    """A vector index holding the records of one collection.

    The sync only needs four things from an index: make sure the collection
    exists, write records by id, delete records by id, and a healthcheck.
    Writes are sent with wait=true so a returned call means the records are
    persisted.
    """

    def __init__(self, helper_config: HelperConfig, upsert_batch_size: int = 100):
        super().__init__(helper_config=helper_config)
        self.upsert_batch_size = upsert_batch_size

    def _get_client_type(self) -> str:
        return "rag"

    @abstractmethod
    def get_collection_name(self) -> str:
        pass

    ##########################################
    ############### ENDPOINTS ################
    ##########################################

    @abstractmethod
    def _get_endpoint_collection(self) -> str:
        """Path of the collection itself, e.g. "/collections/docs"."""
        pass

    @abstractmethod
    def _get_endpoint_collection_exists(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_points(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self) -> str:
        pass

    ##########################################
    ########### PAYLOAD / PARSER #############
    ##########################################

    @abstractmethod
    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        pass

    @abstractmethod
    def get_upsert_payload(self, records: list[IndexRecord]) -> dict:
        pass

    @abstractmethod
    def get_delete_payload(self, record_ids: list[str]) -> dict:
        pass

    @abstractmethod
    def extract_existence_from_response(self, raw_response: dict) -> bool:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self) -> bool:
        response = await self.do_request("GET", self._get_endpoint_collection_exists(), check=True)
        return self.extract_existence_from_response(response.json())

    async def do_create_collection_if_not_exists(self, vector_size: int = 1536, distance: str = "Cosine") -> bool:
        """Create the collection on first use.

        Returns:
            bool: True if it was created now, False if it was already there.
        """
        collection = self.get_collection_name()
        if await self.do_existence_check():
            self.logging.debug("Collection '%s' exists on %s.", collection, self.get_engine_name())
            return False

        self.logging.info(
            "Collection '%s' missing on %s, creating it (size=%d, distance=%s).",
            collection, self.get_engine_name(), vector_size, distance,
        )
        await self.do_request(
            "PUT",
            self._get_endpoint_collection(),
            json=self.get_create_collection_payload(vector_size, distance),
            check=True,
        )
        return True

    async def do_upsert_records(self, records: list[IndexRecord]) -> list[str]:
        """Write records in chunks of upsert_batch_size. A record whose id exists is replaced.

        Returns:
            list[str]: The written ids, in input order.

        Raises:
            BackendResponseError: On the first rejected chunk. Earlier chunks stay written.
        """
        size = self.upsert_batch_size
        for chunk in (records[i:i + size] for i in range(0, len(records), size)):
            await self.do_request(
                "PUT",
                self._get_endpoint_points(),
                json=self.get_upsert_payload(chunk),
                params={"wait": "true"},
                check=True,
            )
        return [record.id for record in records]

    async def do_delete_records(self, record_ids: list[str]) -> None:
        """Delete records by id. Unknown ids are not an error."""
        if not record_ids:
            return
        await self.do_request(
            "POST",
            self._get_endpoint_delete_points(),
            json=self.get_delete_payload(record_ids),
            params={"wait": "true"},
            check=True,
        )
