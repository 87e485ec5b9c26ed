"""Tests for MCP server tool wrappers.

Tests the MCP layer behavior: tool names, camelCase parameters and argument
pass-through. Core logic is tested elsewhere.
"""

import pytest
from conftest import make_block, make_journal, make_page

from logseq_tools import server
from logseq_tools.models import Block

EXPECTED_TOOLS = {
    "getAllPages": set(),
    "getPage": {"pageName"},
    "getJournalSummary": {"dateRange"},
    "searchPages": {"query"},
    "getBacklinks": {"pageName"},
    "getBlock": {"blockId", "includeChildren"},
    "createPage": {"pageName", "content"},
    "addJournalEntry": {"content", "date", "asBlock"},
    "addJournalBlock": {"content", "date", "preserveFormatting"},
    "addJournalContent": {"content", "date"},
    "addNoteContent": {"pageName", "content", "createIfNotExist"},
    "analyzeGraph": {"daysThreshold"},
    "findKnowledgeGaps": {"minReferenceCount", "includeOrphans"},
    "analyzeJournalPatterns": {"timeframe", "includeMood", "includeTopics"},
    "smartQuery": {"request", "includeQuery", "advanced"},
    "suggestConnections": {"minConfidence", "maxSuggestions", "focusArea"},
}


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


async def _call_tool(tool_obj, /, *args, **kwargs):
    """Invoke the wrapped coroutine behind an MCP FunctionTool."""
    bound = tool_obj.fn(*args, **kwargs)
    if callable(bound):
        return await bound()
    return await bound


# ─────────────────────────────────────────────────────────────────────────────
# Registration
# ─────────────────────────────────────────────────────────────────────────────


class TestRegistration:
    @pytest.mark.asyncio
    async def test_all_tools_are_registered(self):
        tools = await server.mcp.get_tools()

        assert set(tools) == set(EXPECTED_TOOLS)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,params", sorted(EXPECTED_TOOLS.items()))
    async def test_parameters_are_camel_case(self, name, params):
        tools = await server.mcp.get_tools()

        assert set(tools[name].parameters.get("properties", {})) == params


# ─────────────────────────────────────────────────────────────────────────────
# Read tools
# ─────────────────────────────────────────────────────────────────────────────


class TestReadTools:
    @pytest.mark.asyncio
    async def test_get_page(self, install_provider):
        install_provider(pages=[make_page("Notes")], blocks={"notes": [make_block("hello")]})

        result = await _call_tool(server.get_page_tool, pageName="Notes")

        assert result.startswith("# Notes\n\n- hello\n")

    @pytest.mark.asyncio
    async def test_get_journal_summary(self, install_provider):
        install_provider(pages=[make_journal(20200101)])

        result = await _call_tool(server.get_journal_summary_tool, dateRange="today")

        assert "No journal entries found for today." in result

    @pytest.mark.asyncio
    async def test_get_block_passes_include_children(self, install_provider):
        fake = install_provider()
        fake.block_lookup["abc"] = Block(content="top", children=[Block(content="child")])

        result = await _call_tool(server.get_block_tool, blockId="((abc))", includeChildren=False)

        assert result.endswith("---\n- top")

    @pytest.mark.asyncio
    async def test_errors_are_returned_as_text(self, install_provider):
        install_provider().fail_all_pages = True

        result = await _call_tool(server.search_pages_tool, query="x")

        assert result.startswith("Error searching pages: ")


# ─────────────────────────────────────────────────────────────────────────────
# Write tools
# ─────────────────────────────────────────────────────────────────────────────


class TestWriteTools:
    @pytest.mark.asyncio
    async def test_add_journal_entry_as_block(self, install_provider):
        fake = install_provider()

        result = await _call_tool(
            server.add_journal_entry_tool, content="hi", date="Mar 14th, 2025", asBlock=True
        )

        assert result == 'Added journal entry to "Mar 14th, 2025" as a single block.'
        assert fake.calls[-1] == ("append_block", "Mar 14th, 2025", "hi")

    @pytest.mark.asyncio
    async def test_add_note_content_respects_create_flag(self, install_provider):
        install_provider()

        result = await _call_tool(
            server.add_note_content_tool, pageName="Ideas", content="x", createIfNotExist=False
        )

        assert result == 'Page "Ideas" does not exist and createIfNotExist is false'


# ─────────────────────────────────────────────────────────────────────────────
# Analysis tools
# ─────────────────────────────────────────────────────────────────────────────


class TestAnalysisTools:
    @pytest.mark.asyncio
    async def test_find_knowledge_gaps(self, install_provider):
        install_provider(
            pages=[make_page("A"), make_page("B")],
            blocks={"a": [make_block("[[b]] [[b]]")]},
        )

        result = await _call_tool(
            server.find_knowledge_gaps_tool, minReferenceCount=2, includeOrphans=False
        )

        assert "## Missing Pages" not in result
        assert "- Missing pages (referenced ≥2 times): 0\n" in result
        assert "Orphaned" not in result

    @pytest.mark.asyncio
    async def test_suggest_connections_focus(self, install_provider):
        install_provider()

        result = await _call_tool(server.suggest_connections_tool, focusArea="python")

        assert "Focusing on topics related to: python" in result

    @pytest.mark.asyncio
    async def test_smart_query_includes_query(self, install_provider):
        install_provider(rows=[["a", 2]])

        result = await _call_tool(
            server.smart_query_tool, request="most referenced", includeQuery=True
        )

        assert "## Generated Query" in result
