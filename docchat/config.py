"""Application settings with environment variable loading.

Holds the server-side configuration for the chat relay and the ingestion
endpoint. Values come from the environment (optionally a .env file).
"""

import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

DEVELOPMENT = "development"


def _optional_env(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


class Settings(BaseModel):
    """Server configuration bundle.

    Attributes:
        environment: Deployment mode. Error details are only exposed in development.
        retrieval_assistant_id: Upstream assistant used for chat runs.
        ingestion_assistant_id: Upstream assistant used for document ingestion.
        max_stream_events: Hard ceiling on events forwarded per chat request.
        ingest_timeout_seconds: Ceiling for a single ingestion run.
        retrieval_k: Number of documents retrieved per query.
        retriever_provider: Name of the vector store backing retrieval.
        query_model: Model used by the upstream for answering.
    """

    environment: str = Field(
        default_factory=lambda: os.getenv("APP_ENV", "production").strip().lower(),
    )
    retrieval_assistant_id: str | None = Field(
        default_factory=lambda: _optional_env("RETRIEVAL_ASSISTANT_ID"),
    )
    ingestion_assistant_id: str | None = Field(
        default_factory=lambda: _optional_env("INGESTION_ASSISTANT_ID"),
    )
    max_stream_events: int = Field(default=1000, ge=1)
    ingest_timeout_seconds: float = Field(default=300.0, gt=0)
    retrieval_k: int = Field(default=5, ge=1, le=50)
    retriever_provider: str = "lancedb"
    query_model: str = Field(
        default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o-mini"),
    )

    @property
    def is_development(self) -> bool:
        return self.environment == DEVELOPMENT

    def retrieval_stream_config(self) -> dict[str, Any]:
        """Configuration forwarded verbatim to every upstream chat run."""
        return {
            "queryModel": self.query_model,
            "retrieverProvider": self.retriever_provider,
            "k": self.retrieval_k,
        }

    def index_config(self) -> dict[str, Any]:
        """Configuration forwarded verbatim to every ingestion run."""
        return {
            "retrieverProvider": self.retriever_provider,
            "useSampleDocs": False,
        }


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the process-wide settings."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
