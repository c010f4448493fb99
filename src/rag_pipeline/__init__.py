"""Markdown ingestion with offset-exact chunking, cosine retrieval, and grounded generation."""

__version__ = "0.1.0"
