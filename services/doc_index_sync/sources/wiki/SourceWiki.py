from shared.clients.rag.models.VectorPoint import IndexRecord, VectorPoint
from shared.clients.wiki.WikiClientInterface import WikiClientInterface
from shared.clients.wiki.azuredevops.WikiClientAzuredevops import WikiClientAzuredevops
from services.doc_index_sync.SyncErrors import ExtractionFailed, SourceUnavailable
from services.doc_index_sync.sources.SourceInterface import SourceInterface


class SourceWiki(SourceInterface):
    """Configured pages of a remote wiki.

    The location is the wiki name; the pages to ingest are listed in
    SyncConfig.wiki_pages (SOURCE_WIKI_PAGES). A page answering 404 counts
    as removed, any other failure makes the whole enumeration fail.
    """

    def __init__(self, *args, wiki_client: WikiClientInterface | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._wiki_client = wiki_client or WikiClientAzuredevops(helper_config=self._helper_config, wiki=self.location)
        self._page_paths = [
            page.strip("/") for page in self._sync_config.wiki_pages if page.strip("/")
        ]

    def get_source_kind(self) -> str:
        return "wiki"

    def get_page_paths(self) -> list[str]:
        return list(self._page_paths)

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        await self._wiki_client.boot()
        await self._wiki_client.do_healthcheck()

    async def close(self) -> None:
        await self._wiki_client.close()

    ##########################################
    ############### OPERATIONS ###############
    ##########################################

    async def do_list_current(self) -> dict[str, str]:
        current: dict[str, str] = {}
        for page_path in self._page_paths:
            try:
                version = await self._wiki_client.do_fetch_page_version(page_path)
            except Exception as exc:
                raise SourceUnavailable(f"Wiki page '{page_path}' could not be checked: {exc}", source_id=self.get_source_id()) from exc
            if version is None:
                self.logging.warning("Wiki page '%s' not found in '%s'.", page_path, self.location)
                continue
            current[page_path] = version
        return current

    async def do_extract_and_embed(self, document_id: str, version: str) -> list[IndexRecord]:
        try:
            content = await self._wiki_client.do_fetch_page_content(document_id)
        except Exception as exc:
            self.logging.error("Could not fetch wiki page '%s': %s", document_id, exc)
            raise ExtractionFailed(f"Could not fetch wiki page: {exc}", source_id=self.get_source_id(), document_id=document_id) from exc

        source_url = self._wiki_client.get_page_url(document_id)
        points = [
            VectorPoint(
                source_id=self.get_source_id(),
                document_id=document_id,
                chunk_ordinal=index,
                key=f"{document_id}_{index}",
                file_name=document_id.rsplit("/", 1)[-1],
                page_number=1,
                record_type="WIKI",
                source_url=source_url,
                text=chunk,
            )
            for index, chunk in enumerate(self._chunk_embedder.split_markdown(content))
        ]
        return await self._embed_points(points, version)
