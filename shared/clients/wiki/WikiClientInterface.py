from abc import abstractmethod
import hashlib

import httpx
from shared.clients.ClientInterface import BackendResponseError, ClientInterface

from shared.helper.HelperConfig import HelperConfig


class WikiClientInterface(ClientInterface):
    """Read-only access to the pages of one remote wiki, addressed by path."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    def _get_client_type(self) -> str:
        return "wiki"

    @abstractmethod
    def get_wiki_name(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_page(self) -> str:
        pass

    @abstractmethod
    def get_page_params(self, page_path: str, include_content: bool) -> dict:
        pass

    @abstractmethod
    def get_page_url(self, page_path: str) -> str:
        """Browser URL of a page, stored on its records as source_url."""
        pass

    @abstractmethod
    def extract_page_content(self, raw_response: dict) -> str:
        pass

    def extract_page_version(self, response: httpx.Response) -> str:
        """The ETag without quotes, or a SHA-256 of the content if the wiki sends none."""
        etag = response.headers.get("ETag")
        if etag:
            return etag.strip('"')
        content = self.extract_page_content(response.json())
        return hashlib.sha256(content.encode("utf-8")).hexdigest()

    async def _get_page(self, page_path: str, include_content: bool) -> httpx.Response:
        return await self.do_request(
            "GET", self._get_endpoint_page(), params=self.get_page_params(page_path, include_content)
        )

    async def do_fetch_page_version(self, page_path: str) -> str | None:
        """Current version of a page, None if the wiki answers 404.

        Raises:
            BackendResponseError: On any other status >= 300.
        """
        response = await self._get_page(page_path, include_content=False)
        if response.status_code == 404:
            return None
        if response.status_code >= 300:
            self.logging.error("Wiki page '%s' answered %d: %s", page_path, response.status_code, response.text[:200])
            raise BackendResponseError(str(response.url), response.status_code, response.text)
        if response.headers.get("ETag"):
            return self.extract_page_version(response)
        # without an ETag the version is a hash of the content
        return self.extract_page_version(await self._fetch_page(page_path))

    async def do_fetch_page_content(self, page_path: str) -> str:
        response = await self._fetch_page(page_path)
        return self.extract_page_content(response.json())

    async def _fetch_page(self, page_path: str) -> httpx.Response:
        return await self.do_request(
            "GET",
            self._get_endpoint_page(),
            params=self.get_page_params(page_path, include_content=True),
            check=True,
        )
