"""Settings for the Agno upstream: model access, history depth and storage.

OpenAI and OpenAI-compatible endpoints (``LLM_BASE_URL``) are supported.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()

DEFAULT_DATA_DIR = Path(__file__).parent.parent.parent / "data"


def _api_key_from_env() -> str:
    return os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY") or ""


class AgentConfig(BaseModel):
    """Model and storage settings shared by every assistant.

    Attributes:
        api_key: Key for the model endpoint.
        base_url: Endpoint override; None means the OpenAI default.
        model_name: Chat model identifier.
        temperature: Sampling temperature, 0.0 to 2.0.
        max_tokens: Cap on generated tokens per answer.
        history_messages: Prior thread messages fed back into each run.
        data_dir: Root for the run-history database and the vector store.
    """

    api_key: str = Field(default_factory=_api_key_from_env)
    base_url: str | None = Field(default_factory=lambda: os.getenv("LLM_BASE_URL") or None)
    model_name: str = Field(default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o-mini"))
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1024, ge=1, le=128000)
    history_messages: int = Field(default=20, ge=0)
    data_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("DOCCHAT_DATA_DIR") or DEFAULT_DATA_DIR),
    )

    @field_validator("api_key")
    @classmethod
    def require_api_key(cls, value: str) -> str:
        key = value.strip()
        if not key:
            raise ValueError("API key required. Set LLM_API_KEY or OPENAI_API_KEY in .env")
        return key

    @property
    def sessions_db(self) -> Path:
        return self.data_dir / "sessions.db"

    @property
    def knowledge_dir(self) -> Path:
        return self.data_dir / "knowledge"


def get_agent_config() -> AgentConfig:
    """Build the agent configuration from the environment.

    Raises:
        ValueError: If no API key is set.
    """
    return AgentConfig()
