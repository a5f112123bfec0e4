"""docchat - streaming document Q&A over an upstream reasoning service.

Combines FastAPI for the SSE relay, Agno for retrieval and generation,
httpx for the streaming client, NiceGUI for a thin chat view, and Pydantic
for data validation.

Components:
    - api: HTTP endpoints, input validation and error responses
    - relay: upstream-to-wire forwarding of chat event streams
    - sessions: registry of active conversations
    - client: frame parser, conversation reducer and cancellation
    - agent: upstream service built on Agno
    - parsing: PDF extraction for document ingestion
    - ui: web interface for chat interactions
    - models: shared schemas
"""

__version__ = "0.1.0"
