"""
Ingestion - document loading, chunking, offset resolution, and embedding.

This package converts a directory of markdown files into embedded chunks
with exact character offsets and hands them to a similarity store.
"""
