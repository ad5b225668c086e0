# Copyright (c) Microsoft. All rights reserved.
"""
Azure AI Foundry Agent Service client

Thin async wrapper around ``azure.ai.agents.aio.AgentsClient`` exposing the
assistants-style operations the proxy needs, and translating SDK objects into
plain records so the run-polling logic does not depend on SDK model classes.

Operations:
- Agents:   get_agent
- Threads:  create_thread, get_thread
- Messages: add_user_message, list_messages
- Runs:     create_run, get_run
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

from azure.ai.agents.aio import AgentsClient
from azure.ai.agents.models import ListSortOrder, MessageRole, MessageTextContent
from azure.identity.aio import DefaultAzureCredential

from services.observability import agent_span

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------------
# Records
# -------------------------------------------------------------------------


@dataclass(frozen=True)
class RunError:
    code: str | None
    message: str | None


@dataclass(frozen=True)
class AgentRun:
    id: str
    status: str
    created_at: datetime
    last_error: RunError | None = None


@dataclass(frozen=True)
class TextContent:
    """Plain-text message content."""

    text: str


@dataclass(frozen=True)
class OtherContent:
    """Any non-text content item (images, file citations, ...), kept as-is."""

    payload: Any

    def __str__(self) -> str:
        return str(self.payload)


MessageContent = TextContent | OtherContent


@dataclass(frozen=True)
class AgentMessage:
    id: str
    role: str
    created_at: datetime
    content: list[MessageContent] = field(default_factory=list)


@dataclass(frozen=True)
class AgentInfo:
    id: str
    name: str


# -------------------------------------------------------------------------
# SDK translation helpers
# -------------------------------------------------------------------------


def enum_text(value: Any) -> str:
    """Return the string form of an SDK enum (``RunStatus.IN_PROGRESS`` -> ``in_progress``)."""
    if value is None:
        return ""
    return str(getattr(value, "value", value))


# Runs without a server timestamp must not hide replies through clock skew
EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def _as_datetime(value: Any, fallback: datetime | None = None) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return fallback or datetime.now(timezone.utc)


def _to_run(run: Any) -> AgentRun:
    last_error = getattr(run, "last_error", None)
    created_at = getattr(run, "created_at", None)
    if created_at is None:
        logger.warning(f"Run {run.id} has no created_at, accepting replies of any age")
    return AgentRun(
        id=run.id,
        status=enum_text(run.status),
        created_at=_as_datetime(created_at, fallback=EARLIEST),
        last_error=(
            RunError(
                code=getattr(last_error, "code", None),
                message=getattr(last_error, "message", None),
            )
            if last_error is not None
            else None
        ),
    )


def _to_content(item: Any) -> MessageContent:
    if isinstance(item, MessageTextContent):
        return TextContent(text=item.text.value)
    return OtherContent(payload=item)


def _to_message(message: Any) -> AgentMessage:
    return AgentMessage(
        id=message.id,
        role=enum_text(message.role),
        created_at=_as_datetime(message.created_at),
        content=[_to_content(item) for item in message.content or []],
    )


def validate_endpoint(endpoint: str) -> str:
    """Ensure the project endpoint is an absolute http(s) URL."""
    parsed = urlparse(endpoint or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid endpoint URL format: {endpoint!r}")
    return endpoint


# -------------------------------------------------------------------------
# Client
# -------------------------------------------------------------------------


class FoundryAgentsClient:
    """
    Async access to one AI Foundry project's agent service.

    The underlying ``AgentsClient`` and credential are owned by this object
    and released by ``close()``.
    """

    def __init__(
        self,
        endpoint: str,
        credential: Any | None = None,
        managed_identity_client_id: str | None = None,
    ):
        """
        Create the client.

        Args:
            endpoint: AI Foundry project endpoint URL.
            credential: Async Azure credential. Defaults to DefaultAzureCredential.
            managed_identity_client_id: Client id of a user-assigned managed identity.
        """
        self.endpoint = validate_endpoint(endpoint)
        self.credential = credential or DefaultAzureCredential(
            managed_identity_client_id=managed_identity_client_id
        )
        self._client = AgentsClient(endpoint=self.endpoint, credential=self.credential)

    async def get_agent(self, agent_id: str) -> AgentInfo:
        async with agent_span("get_agent", agent_id=agent_id):
            agent = await self._client.get_agent(agent_id)
        return AgentInfo(id=agent.id, name=agent.name or agent_id)

    async def create_thread(self) -> str:
        async with agent_span("create_thread"):
            thread = await self._client.threads.create()
        return thread.id

    async def get_thread(self, thread_id: str) -> str:
        async with agent_span("get_thread", thread_id=thread_id):
            thread = await self._client.threads.get(thread_id)
        return thread.id

    async def add_user_message(self, thread_id: str, text: str) -> str:
        async with agent_span("create_message", thread_id=thread_id):
            message = await self._client.messages.create(
                thread_id=thread_id,
                role=MessageRole.USER,
                content=text,
            )
        return message.id

    async def create_run(self, thread_id: str, agent_id: str) -> AgentRun:
        async with agent_span("create_run", thread_id=thread_id, agent_id=agent_id):
            run = await self._client.runs.create(thread_id=thread_id, agent_id=agent_id)
        return _to_run(run)

    async def get_run(self, thread_id: str, run_id: str) -> AgentRun:
        async with agent_span("get_run", thread_id=thread_id, run_id=run_id):
            run = await self._client.runs.get(thread_id=thread_id, run_id=run_id)
        return _to_run(run)

    async def cancel_run(self, thread_id: str, run_id: str) -> AgentRun:
        async with agent_span("cancel_run", thread_id=thread_id, run_id=run_id):
            run = await self._client.runs.cancel(thread_id=thread_id, run_id=run_id)
        return _to_run(run)

    async def list_messages(self, thread_id: str) -> list[AgentMessage]:
        """List the thread's messages, newest first."""
        async with agent_span("list_messages", thread_id=thread_id):
            messages = [
                _to_message(message)
                async for message in self._client.messages.list(
                    thread_id=thread_id, order=ListSortOrder.DESCENDING
                )
            ]
        return messages

    async def close(self) -> None:
        await self._client.close()
        close_credential = getattr(self.credential, "close", None)
        if close_credential is not None:
            await close_credential()
