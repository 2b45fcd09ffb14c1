"""
Knowledge Graph Module.

Neo4j-based prompt/content graph store adapter and schema models.
"""

from promptgraph.graph.neo4j_client import (
    PromptGraphClient,
    get_prompt_graph_client,
    to_native,
)
from promptgraph.graph.schema import (
    ContentNode,
    NodeFilter,
    NodeLabel,
    PLevel,
    PromptNode,
    RelationType,
)

__all__ = [
    # Schema
    "NodeLabel",
    "RelationType",
    "PLevel",
    "PromptNode",
    "ContentNode",
    "NodeFilter",
    # Client
    "PromptGraphClient",
    "get_prompt_graph_client",
    "to_native",
]
