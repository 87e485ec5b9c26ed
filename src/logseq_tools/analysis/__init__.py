"""Graph-wide analyses built on the graph data provider."""

from .gaps import find_knowledge_gaps
from .graph import analyze_graph, find_clusters
from .journal import analyze_journal_patterns, compute_streaks
from .suggestions import suggest_connections

__all__ = [
    "analyze_graph",
    "analyze_journal_patterns",
    "compute_streaks",
    "find_clusters",
    "find_knowledge_gaps",
    "suggest_connections",
]
