import base64
from urllib.parse import quote

from shared.clients.wiki.WikiClientInterface import WikiClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class WikiClientAzuredevops(WikiClientInterface):
    """Azure DevOps wiki pages API (_apis/wiki/wikis/<wiki>/pages)."""

    def __init__(self, helper_config: HelperConfig, wiki: str | None = None):
        super().__init__(helper_config=helper_config)
        self._wiki = wiki or self.settings["WIKI"]
        if not self._wiki:
            raise ValueError("No wiki configured. Set WIKI_AZUREDEVOPS_WIKI or pass the wiki name.")
        self._project_path = f"/{self.settings['ORGANIZATION']}/{self.settings['PROJECT']}"

    def _get_engine_name(self) -> str:
        return "Azuredevops"

    def get_wiki_name(self) -> str:
        return f"{self._project_path.lstrip('/')}/{self._wiki}"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://dev.azure.com"),
            EnvConfig(env_key="ORGANIZATION", val_type="string"),
            EnvConfig(env_key="PROJECT", val_type="string"),
            EnvConfig(env_key="WIKI", val_type="string", default=""),
            EnvConfig(env_key="PAT", val_type="string"),
            EnvConfig(env_key="API_VERSION", val_type="string", default="7.1"),
        ]

    def _get_auth_header(self) -> dict:
        # a PAT is sent as basic auth password with an empty user
        token = base64.b64encode(f":{self.settings['PAT']}".encode("ascii")).decode("ascii")
        return {"Authorization": f"Basic {token}", "Accept": "application/json"}

    def _get_base_url(self) -> str:
        return self.settings["BASE_URL"]

    def _get_endpoint_healthcheck(self) -> str:
        return f"{self._project_path}/_apis/wiki/wikis/{self._wiki}?api-version={self.settings['API_VERSION']}"

    def _get_endpoint_page(self) -> str:
        return f"{self._project_path}/_apis/wiki/wikis/{self._wiki}/pages"

    def get_page_params(self, page_path: str, include_content: bool) -> dict:
        return {
            "path": "/" + page_path.strip("/"),
            "includeContent": str(include_content).lower(),
            "api-version": self.settings["API_VERSION"],
        }

    def get_page_url(self, page_path: str) -> str:
        page = quote("/" + page_path.strip("/"), safe="")
        return f"{self._get_base_url().rstrip('/')}{self._project_path}/_wiki/wikis/{self._wiki}?pagePath={page}"

    def extract_page_content(self, raw_response: dict) -> str:
        return raw_response.get("content") or ""
