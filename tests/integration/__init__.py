"""Integration tests for components working together.

Coverage:
    - /chat, /threads and /ingest through the real FastAPI app
    - ChatClient against the app and against held-open mock streams

Requests go through httpx transports in-process; no network or API keys
are needed.
"""
