"""
Memento: hybrid semantic search over a knowledge graph.

Blends vector similarity with keyword matching and fuses both rankings
with Reciprocal Rank Fusion, so entities confirmed by both signals rise
to the top.
"""

__version__ = "1.0.0"
