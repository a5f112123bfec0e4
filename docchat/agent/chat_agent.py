"""Agno-backed upstream service producing chat event streams.

Each chat run is expressed as a sequence of ``UpstreamEvent`` values:

1. ``metadata`` - run and thread identifiers.
2. ``updates`` with ``retrieveDocuments.documents`` - the excerpts
   retrieved from the knowledge base for the query.
3. ``messages/partial`` - one per model chunk, carrying the full text
   generated so far as ``[{"type": "ai", "content": ...}]``.
4. ``updates`` with ``generateResponse`` - the final answer.

Retrieval happens when the stream is opened, so a broken knowledge base
is reported as an open failure rather than mid-stream.

Storage: Agno run history goes to SQLite, documents to a LanceDB
knowledge base, both under the project data directory.
"""

import logging
import uuid
from collections.abc import AsyncGenerator, AsyncIterator
from typing import Any

from agno.agent import Agent
from agno.db.sqlite import SqliteDb
from agno.knowledge.knowledge import Knowledge
from agno.models.openai import OpenAIChat
from agno.vectordb.lancedb import LanceDb

from docchat.agent.config import AgentConfig, get_agent_config
from docchat.models.schemas import ThreadHandle, UpstreamEvent

logger = logging.getLogger(__name__)

DEFAULT_RETRIEVAL_K = 5

# Agno event names that carry generated text. Other run events
# (started, completed, tool calls) are not part of the text channel.
_CONTENT_EVENTS = {"RunContent", "RunResponseContent"}
# Agno reports a failed or cancelled run as an event instead of raising.
_FAILURE_EVENTS = {"RunError", "RunCancelled"}


class UpstreamRunError(RuntimeError):
    """The agent run failed after it started streaming."""


class AgentService:
    """Upstream reasoning service built on Agno.

    Wraps Agno with:
    - One agent per assistant identifier, created on first use
    - LanceDB knowledge base for document retrieval
    - SQLite storage for per-thread run history
    """

    def __init__(self, config: AgentConfig | None = None) -> None:
        """Initialize the agent service.

        Args:
            config: Optional agent configuration.
                    Loads from environment if not provided.
        """
        self._config = config or get_agent_config()
        self._storage = self._create_storage()
        self._knowledge = self._create_knowledge()
        self._agents: dict[str, Agent] = {}

    def _create_storage(self) -> SqliteDb:
        self._config.data_dir.mkdir(parents=True, exist_ok=True)
        return SqliteDb(
            db_file=str(self._config.sessions_db),
            session_table="chat_sessions",
        )

    def _create_knowledge(self) -> Knowledge:
        knowledge_dir = self._config.knowledge_dir
        knowledge_dir.mkdir(parents=True, exist_ok=True)

        vector_db = LanceDb(
            uri=str(knowledge_dir),
            table_name="documents",
        )

        return Knowledge(vector_db=vector_db)

    def _get_agent(self, assistant_id: str) -> Agent:
        agent = self._agents.get(assistant_id)
        if agent is None:
            agent = self._create_agent(assistant_id)
            self._agents[assistant_id] = agent
        return agent

    def _create_agent(self, assistant_id: str) -> Agent:
        """Create the Agno agent for an assistant identifier.

        Returns:
            Agent with OpenAI model and SQLite storage. Retrieval is done
            by the service itself, so the agent does not search on its own.
        """
        model = OpenAIChat(
            id=self._config.model_name,
            api_key=self._config.api_key,
            base_url=self._config.base_url,
            temperature=self._config.temperature,
            max_tokens=self._config.max_tokens,
        )

        return Agent(
            name=assistant_id,
            model=model,
            db=self._storage,
            description="A retrieval assistant answering questions about uploaded documents.",
            instructions=[
                "Answer using the provided document excerpts when they are relevant.",
                "Cite the source file and page when you use an excerpt.",
                "Say so when the excerpts do not contain the answer.",
                "Be concise yet thorough.",
            ],
            add_history_to_context=True,
            num_history_messages=self._config.history_messages,
            markdown=True,
        )

    async def create_thread(self) -> ThreadHandle:
        """Create a new conversation thread."""
        handle = ThreadHandle(thread_id=str(uuid.uuid4()))
        logger.info(f"Created thread: {handle.thread_id}")
        return handle

    async def open_run_stream(
        self,
        thread_id: str,
        assistant_id: str,
        query: str,
        config: dict[str, Any] | None = None,
    ) -> AsyncIterator[UpstreamEvent]:
        """Start a chat run and return its event stream.

        Args:
            thread_id: Conversation the run belongs to.
            assistant_id: Which assistant answers.
            query: The user's question.
            config: Run configuration (``k`` sets the number of excerpts).

        Returns:
            Async iterator of upstream events for this run.

        Raises:
            Exception: Any retrieval failure, before the stream starts.
        """
        config = config or {}
        agent = self._get_agent(assistant_id)

        documents = await self._knowledge.async_search(
            query=query,
            max_results=int(config.get("k", DEFAULT_RETRIEVAL_K)),
        )
        payloads = [_document_payload(doc) for doc in documents or []]
        logger.info(f"Retrieved {len(payloads)} documents for thread {thread_id}")

        return self._run_events(agent, thread_id, query, payloads)

    async def _run_events(
        self,
        agent: Agent,
        thread_id: str,
        query: str,
        documents: list[dict[str, Any]],
    ) -> AsyncGenerator[UpstreamEvent]:
        run_id = str(uuid.uuid4())
        yield UpstreamEvent(event="metadata", data={"run_id": run_id, "thread_id": thread_id})
        yield UpstreamEvent(
            event="updates",
            data={"retrieveDocuments": {"documents": documents}},
        )

        accumulated = ""
        response_stream = agent.arun(
            _build_prompt(query, documents),
            session_id=thread_id,
            stream=True,
        )
        async for chunk in response_stream:
            event = getattr(chunk, "event", None)
            if event in _FAILURE_EVENTS:
                reason = getattr(chunk, "content", None) or event
                logger.error(f"Agent run for thread {thread_id} ended with {event}: {reason}")
                raise UpstreamRunError(f"{event}: {reason}")
            if event is not None and event not in _CONTENT_EVENTS:
                continue
            content = getattr(chunk, "content", None)
            if not isinstance(content, str) or not content:
                continue

            accumulated += content
            yield UpstreamEvent(
                event="messages/partial",
                data=[{"type": "ai", "content": accumulated, "id": run_id}],
            )

        yield UpstreamEvent(
            event="updates",
            data={
                "generateResponse": {
                    "messages": [{"type": "ai", "content": accumulated, "id": run_id}]
                }
            },
        )

    async def ingest_documents(
        self,
        thread_id: str,
        assistant_id: str,
        documents: list[dict[str, Any]],
        config: dict[str, Any] | None = None,
    ) -> int:
        """Add page documents to the knowledge base.

        Args:
            thread_id: Thread the documents were uploaded for.
            assistant_id: Ingestion assistant identifier.
            documents: ``{pageContent, metadata}`` documents.
            config: Index configuration.

        Returns:
            Number of documents added.
        """
        logger.info(
            f"Ingesting {len(documents)} documents into thread {thread_id} "
            f"via {assistant_id} ({config or {}})"
        )
        added = 0
        for doc in documents:
            content = doc.get("pageContent") or ""
            metadata = _flatten_metadata(doc.get("metadata") or {})
            if not content.strip():
                logger.warning(f"Skipping empty document: {metadata.get('source')}")
                continue

            metadata["thread_id"] = thread_id
            name = f"{metadata.get('source', 'document')}#page={metadata.get('page_number', 0)}"
            await self._knowledge.add_content_async(
                name=name,
                text_content=content,
                metadata=metadata,
            )
            added += 1

        logger.info(f"Added {added} documents to knowledge base for thread {thread_id}")
        return added


def _flatten_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """Flatten wire document metadata into scalar knowledge-base fields."""
    flat: dict[str, Any] = {
        k: v for k, v in metadata.items() if k != "loc" and v is not None
    }
    loc = metadata.get("loc")
    if isinstance(loc, dict) and loc.get("pageNumber") is not None:
        flat["page_number"] = loc["pageNumber"]
    return flat


def _document_payload(doc: Any) -> dict[str, Any]:
    """Convert an Agno document into the wire shape ``{pageContent, metadata}``."""
    meta = dict(getattr(doc, "meta_data", None) or {})
    page_number = meta.pop("page_number", None)
    meta.pop("thread_id", None)
    meta.setdefault("source", getattr(doc, "name", None))
    if page_number is not None:
        meta["loc"] = {"pageNumber": page_number}
    return {"pageContent": getattr(doc, "content", "") or "", "metadata": meta}


def _build_prompt(query: str, documents: list[dict[str, Any]]) -> str:
    if not documents:
        return query

    excerpts = []
    for i, doc in enumerate(documents, start=1):
        meta = doc["metadata"]
        page = (meta.get("loc") or {}).get("pageNumber", "N/A")
        excerpts.append(f"[{i}] {meta.get('source')} (page {page}):\n{doc['pageContent']}")

    return (
        "Document excerpts:\n\n"
        + "\n\n".join(excerpts)
        + f"\n\nQuestion: {query}"
    )


# Module-level singleton instance
_agent_service: AgentService | None = None


def get_agent_service() -> AgentService:
    """Get or create the global agent service.

    Returns:
        The AgentService instance.
    """
    global _agent_service
    if _agent_service is None:
        _agent_service = AgentService()
    return _agent_service
