"""FastAPI endpoints for docchat.

HTTP and streaming routes with async request handling. Chat answers are
relayed as Server-Sent Events.

Endpoints:
    - GET /health: Service health status
    - POST /chat: Streamed chat answer (text/event-stream)
    - OPTIONS /chat: CORS preflight
    - POST /threads: New conversation thread
    - DELETE /threads/{id}: End a conversation
    - POST /ingest: PDF ingestion into a new thread

Errors are returned as ``{success: false, error, type}`` with
``type`` one of validation_error, chat_error, processing_error, server_error.
"""
