from abc import ABC, abstractmethod

import httpx
from httpx._types import QueryParamTypes, RequestContent
from typing import Any
from shared.models.config import EnvConfig

from shared.helper.HelperConfig import HelperConfig


class BackendResponseError(Exception):
    """A backend answered with a status code >= 300."""

    def __init__(self, url: str, status_code: int, body: str = ""):
        super().__init__(f"Request to {url} failed with status {status_code}")
        self.url = url
        self.status_code = status_code
        self.body = body


class ClientInterface(ABC):
    """Shared plumbing of the HTTP backends (vector index, embedding model, wiki).

    Settings of an engine are read from <TYPE>_<ENGINE>_<KEY>, e.g.
    RAG_QDRANT_BASE_URL. Subclasses declare them in _get_required_config()
    and read the resolved values from self.settings.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)
        self._client: httpx.AsyncClient | None = None
        # fails fast on missing settings
        self.settings: dict[str, Any] = {
            entry.env_key: self.get_config_val(entry.env_key, default=entry.default, val_type=entry.val_type)
            for entry in self._get_required_config()
        }

    def is_booted(self) -> bool:
        return self._client is not None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """Kind of backend, e.g. "rag"."""
        pass

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """Engine name as used in class and module names, e.g. "Qdrant"."""
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """Settings this engine reads, without the <TYPE>_<ENGINE>_ prefix."""
        pass

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """Read one engine setting, e.g. raw_key "PAT" of the wiki client reads WIKI_AZUREDEVOPS_PAT.

        Raises:
            ValueError: If a setting without default is missing or val_type is unknown.
        """
        key = f"{self.get_client_type()}_{self.get_engine_name()}_{raw_key}".upper()
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        if val_type not in readers:
            raise ValueError(f"Setting '{key}' has unsupported type '{val_type}'.")
        return readers[val_type](key, default=default)

    ################ HTTP ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Headers carrying the credentials, empty if the backend is open."""
        pass

    @abstractmethod
    def _get_base_url(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """Cheap GET endpoint that answers 2xx when the backend is reachable."""
        pass

    def _build_url(self, endpoint: str) -> str:
        endpoint = endpoint.strip()
        if endpoint and not endpoint.startswith("/"):
            endpoint = "/" + endpoint
        return self._get_base_url().rstrip("/") + endpoint

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        self._client = httpx.AsyncClient(timeout=self.timeout)

    async def close(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        await client.aclose()

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        return await self.do_request("GET", self._get_endpoint_healthcheck(), check=True)

    async def do_request(
        self,
        method: str,
        endpoint: str = "",
        *,
        json: Any = None,
        content: RequestContent | None = None,
        params: QueryParamTypes | None = None,
        headers: dict | None = None,
        check: bool = False,
    ) -> httpx.Response:
        """Send one request to the backend.

        With check=True a status >= 300 raises BackendResponseError, otherwise
        the response is returned as is. Transport failures raise httpx.HTTPError.
        """
        if self._client is None:
            raise RuntimeError(f"{self.get_client_type()} client '{self.get_engine_name()}' is not booted.")

        url = self._build_url(endpoint)
        request_headers = {**self._get_auth_header(), **(headers or {})}
        body: dict = {"content": content} if content is not None else {"json": json} if json is not None else {}
        response = await self._client.request(method, url, params=params, headers=request_headers, **body)

        if check and response.status_code >= 300:
            self.logging.error("%s %s answered %d: %s", method, url, response.status_code, response.text[:500])
            raise BackendResponseError(url, response.status_code, response.text)
        return response
