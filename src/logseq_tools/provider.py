"""Graph data provider: the only boundary the analyses depend on.

`GraphProvider` is the protocol every analysis is written against.
`LogseqClient` implements it over Logseq's local HTTP API, which accepts
`POST /api` with a JSON body `{"method": "logseq.Editor.getAllPages", "args": []}`
and a bearer token.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from .config import ApiSettings, get_api_settings
from .models import Block, Page

log = logging.getLogger(__name__)


class ProviderError(Exception):
    """Raised when the graph data provider cannot complete a call."""

    pass


class LogseqAPIError(ProviderError):
    """Raised for transport failures and non-2xx responses from the Logseq API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class GraphProvider(Protocol):
    async def get_all_pages(self) -> list[Page]: ...

    async def get_page(self, name: str) -> Page | None: ...

    async def get_page_blocks(self, name: str) -> list[Block] | None: ...

    async def get_block(self, block_id: str, include_children: bool = ...) -> Block | None: ...

    async def query(self, query: str) -> list[Any]: ...

    async def create_page(
        self, name: str, properties: dict | None = ..., options: dict | None = ...
    ) -> Page | None: ...

    async def append_block(self, page: str, content: str) -> Block | None: ...

    async def insert_block(self, target: str, content: str, options: dict | None = ...) -> Block | None: ...

    async def remove_block(self, block_id: str) -> None: ...


async def fetch_page_blocks(provider: GraphProvider, name: str) -> list[Block] | None:
    """Fetch a page's block tree, treating any failure as "no content".

    Used inside loops over many pages: one page failing must not abort the
    surrounding analysis.
    """
    try:
        return await provider.get_page_blocks(name)
    except ProviderError as e:
        log.debug("Skipping content of page %r: %s", name, e)
        return None


def _as_block(payload: Any) -> Block | None:
    if not isinstance(payload, dict):
        return None
    return Block.model_validate(payload)


class LogseqClient:
    """GraphProvider backed by the Logseq HTTP API server."""

    def __init__(
        self,
        settings: ApiSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_api_settings()
        self._transport = transport

    async def call(self, method: str, args: list[Any] | None = None) -> Any:
        """Invoke one API method and return its decoded JSON result.

        Raises:
            LogseqAPIError: On transport errors, non-2xx statuses or bodies
                that are not JSON.
        """
        headers = {"Content-Type": "application/json"}
        if self.settings.token:
            headers["Authorization"] = f"Bearer {self.settings.token}"

        log.debug("Calling %s with %d args", method, len(args or []))
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.settings.api_url,
                    json={"method": method, "args": args or []},
                    headers=headers,
                )
        except httpx.HTTPError as e:
            raise LogseqAPIError(f"Logseq API request failed: {e}") from e

        if response.is_error:
            raise LogseqAPIError(
                f"Logseq API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise LogseqAPIError(f"Logseq API returned invalid JSON for {method}") from e

    async def get_all_pages(self) -> list[Page]:
        payload = await self.call("logseq.Editor.getAllPages")
        if not isinstance(payload, list):
            raise LogseqAPIError("Logseq API returned no page list")
        pages = []
        for item in payload:
            if not isinstance(item, dict):
                continue
            try:
                pages.append(Page.model_validate(item))
            except ValidationError as e:
                log.debug("Ignoring malformed page payload: %s", e)
        return pages

    async def get_page(self, name: str) -> Page | None:
        payload = await self.call("logseq.Editor.getPage", [name])
        if not isinstance(payload, dict):
            return None
        return Page.model_validate(payload)

    async def get_page_blocks(self, name: str) -> list[Block] | None:
        payload = await self.call("logseq.Editor.getPageBlocksTree", [name])
        if not payload or not isinstance(payload, list):
            return None
        try:
            return [Block.model_validate(item) for item in payload if isinstance(item, dict)]
        except ValidationError as e:
            raise LogseqAPIError(f"Malformed block tree for page {name!r}") from e

    async def get_block(self, block_id: str, include_children: bool = True) -> Block | None:
        payload = await self.call(
            "logseq.Editor.getBlock", [block_id, {"includeChildren": include_children}]
        )
        return _as_block(payload)

    async def query(self, query: str) -> list[Any]:
        """Run a DataScript query; failures and non-list results yield []."""
        try:
            payload = await self.call("logseq.DB.datascriptQuery", [query])
        except LogseqAPIError as e:
            log.warning("DataScript query failed: %s", e)
            return []
        return payload if isinstance(payload, list) else []

    async def create_page(
        self, name: str, properties: dict | None = None, options: dict | None = None
    ) -> Page | None:
        args: list[Any] = [name, properties or {}]
        if options:
            args.append(options)
        payload = await self.call("logseq.Editor.createPage", args)
        if not isinstance(payload, dict):
            return None
        return Page.model_validate(payload)

    async def append_block(self, page: str, content: str) -> Block | None:
        payload = await self.call("logseq.Editor.appendBlockInPage", [page, content])
        return _as_block(payload)

    async def insert_block(self, target: str, content: str, options: dict | None = None) -> Block | None:
        payload = await self.call("logseq.Editor.insertBlock", [target, content, options or {}])
        return _as_block(payload)

    async def remove_block(self, block_id: str) -> None:
        await self.call("logseq.Editor.removeBlock", [block_id])
