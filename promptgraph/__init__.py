"""
Prompt Graph Analytics.

Graph analytics over the GEO prompt/content knowledge graph: community
detection, centrality, similarity and content gap analysis.
"""

__version__ = "0.1.0"
