"""
Serving - FastAPI application for retrieval and grounded generation.

Run with ``uvicorn --factory rag_pipeline.serving.app:create_app``.
"""
