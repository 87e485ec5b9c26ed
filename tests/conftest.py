"""Shared test fixtures for the logseq-tools test suite.

Design:
- FakeProvider: in-memory graph built from wire-format page/block dicts
- install_provider: installs a FakeProvider as the core module's provider
- runner: CliRunner for CLI tests
- Async tests use pytest-asyncio (@pytest.mark.asyncio)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from click.testing import CliRunner

from logseq_tools import core
from logseq_tools.models import Block, Page
from logseq_tools.provider import LogseqAPIError


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions (for test code, not fixtures)
# ─────────────────────────────────────────────────────────────────────────────


def make_page(name: str, **fields: Any) -> dict:
    """Wire-format page dict, as returned by logseq.Editor.getAllPages.

    Usage in tests:
        from conftest import make_page
        make_page("Project X", updatedAt=1710000000000)
    """
    return {"name": name.lower(), "originalName": name, **fields}


def make_journal(day: int, **fields: Any) -> dict:
    """Wire-format journal page for a YYYYMMDD journal day."""
    from logseq_tools.dates import format_journal_date, journal_day_to_date

    name = format_journal_date(journal_day_to_date(day))
    return {"name": name, "originalName": name, "journal?": True, "journalDay": day, **fields}


def make_block(content: str | None, *children: dict, **fields: Any) -> dict:
    """Wire-format block dict with nested children."""
    return {"content": content, "children": list(children), **fields}


class FakeProvider:
    """In-memory GraphProvider.

    Pages and block trees are validated through the real models, so wire
    quirks (originalName, journal?, epoch-ms timestamps) behave as in
    production. Mutations are recorded in `calls`.
    """

    def __init__(
        self,
        pages: list[dict] | None = None,
        blocks: dict[str, list[dict]] | None = None,
        rows: list[Any] | None = None,
    ) -> None:
        self.pages = [Page.model_validate(page) for page in pages or []]
        self.blocks: dict[str, list[Block]] = {
            name: [Block.model_validate(block) for block in tree]
            for name, tree in (blocks or {}).items()
        }
        self.rows = rows or []
        self.block_lookup: dict[str, Block] = {}
        self.queries: list[str] = []
        self.calls: list[tuple] = []
        self.fail_all_pages = False
        self.failing_pages: set[str] = set()
        self._uuid_counter = 0

    def _next_uuid(self) -> str:
        self._uuid_counter += 1
        return f"uuid-{self._uuid_counter}"

    async def get_all_pages(self) -> list[Page]:
        if self.fail_all_pages:
            raise LogseqAPIError("Logseq API error: 500 Internal Server Error", status_code=500)
        return list(self.pages)

    async def get_page(self, name: str) -> Page | None:
        for page in self.pages:
            if page.name and page.name.lower() == name.lower():
                return page
        return None

    async def get_page_blocks(self, name: str) -> list[Block] | None:
        if name in self.failing_pages:
            raise LogseqAPIError("Logseq API error: 500 Internal Server Error", status_code=500)
        tree = self.blocks.get(name)
        if tree is None:
            tree = self.blocks.get(name.lower())
        return tree or None

    async def get_block(self, block_id: str, include_children: bool = True) -> Block | None:
        return self.block_lookup.get(block_id)

    async def query(self, query: str) -> list[Any]:
        self.queries.append(query)
        return [list(row) if isinstance(row, tuple) else row for row in self.rows]

    async def create_page(
        self, name: str, properties: dict | None = None, options: dict | None = None
    ) -> Page | None:
        self.calls.append(("create_page", name, properties, options))
        page = Page(name=name.lower(), original_name=name, uuid=self._next_uuid())
        self.pages.append(page)
        return page

    async def append_block(self, page: str, content: str) -> Block | None:
        block = Block(uuid=self._next_uuid(), content=content)
        self.calls.append(("append_block", page, content))
        self.blocks.setdefault(page, []).append(block)
        return block

    async def insert_block(self, target: str, content: str, options: dict | None = None) -> Block | None:
        block = Block(uuid=self._next_uuid(), content=content)
        self.calls.append(("insert_block", target, content, options))
        return block

    async def remove_block(self, block_id: str) -> None:
        self.calls.append(("remove_block", block_id))


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def runner() -> CliRunner:
    """CLI runner with isolated environment."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch, tmp_path):
    """Keep real Logseq settings and config files out of tests."""
    for var in ("LOGSEQ_API_URL", "LOGSEQ_HOST", "LOGSEQ_PORT", "LOGSEQ_TOKEN", "LOGSEQ_TIMEOUT"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(core, "_provider", None)


@pytest.fixture
def install_provider(monkeypatch) -> Callable[..., FakeProvider]:
    """Build a FakeProvider and make it the core module's provider.

    Usage:
        def test_something(install_provider):
            fake = install_provider(pages=[make_page("A")], blocks={...})
    """

    def _install(
        pages: list[dict] | None = None,
        blocks: dict[str, list[dict]] | None = None,
        rows: list[Any] | None = None,
    ) -> FakeProvider:
        fake = FakeProvider(pages=pages, blocks=blocks, rows=rows)
        monkeypatch.setattr(core, "_provider", fake)
        return fake

    return _install
