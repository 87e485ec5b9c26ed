"""Tests for backlink discovery."""

import pytest
from conftest import FakeProvider, make_block, make_page

from logseq_tools.backlinks import find_backlinks
from logseq_tools.provider import ProviderError


def _graph() -> FakeProvider:
    return FakeProvider(
        pages=[make_page("target"), make_page("a"), make_page("b"), make_page("c"), {"originalName": "nameless"}],
        blocks={
            "target": [make_block("self link [[target]]")],
            "a": [make_block("intro", make_block("nested [[Target]]"))],
            "b": [make_block("no link to target")],
            "c": [make_block("[[ target ]] again")],
        },
    )


class TestFindBacklinks:
    @pytest.mark.asyncio
    async def test_finds_referencing_pages_in_order(self):
        assert await find_backlinks(_graph(), "target") == ["a", "c"]

    @pytest.mark.asyncio
    async def test_target_matching_is_case_insensitive(self):
        assert await find_backlinks(_graph(), "TARGET") == ["a", "c"]

    @pytest.mark.asyncio
    async def test_failing_page_is_skipped(self):
        provider = _graph()
        provider.failing_pages.add("a")

        assert await find_backlinks(provider, "target") == ["c"]

    @pytest.mark.asyncio
    async def test_page_list_failure_propagates(self):
        provider = _graph()
        provider.fail_all_pages = True

        with pytest.raises(ProviderError):
            await find_backlinks(provider, "target")

    @pytest.mark.asyncio
    async def test_no_backlinks(self):
        assert await find_backlinks(_graph(), "unknown") == []
