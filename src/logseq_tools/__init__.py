"""logseq-tools: graph analysis tools for a Logseq knowledge graph, served over MCP."""

__version__ = "0.1.0"
