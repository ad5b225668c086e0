# Copyright (c) Microsoft. All rights reserved.
"""
Chat Proxy Service

Relays a user's chat message to an AI Foundry agent and waits for the reply.

For each message the service resolves a thread, appends the message, starts a
run, polls it to a terminal status and extracts the agent's reply. Failed,
cancelled and timed-out runs, as well as Agent Service errors, are retried
with exponential backoff. When the Agent Service cannot be reached at all the
service answers from the local SimulatedAgent instead.

process_message() never raises: every outcome is either a ChatReply (possibly
an apology text) or, for an empty message, a ClientError.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass

from services.connection import AgentConnection
from services.foundry_client import FoundryAgentsClient
from services.run_poller import (
    POLL_INTERVAL_SECONDS,
    Sleep,
    extract_reply,
    is_running_status,
    poll_run,
    same_text,
)
from services.settings import Settings
from services.simulation import SIMULATION_MARKER, SimulatedAgent

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BASE_DELAY_SECONDS = 1.0
CANCEL_MAX_POLLS = 20

MESSAGE_REQUIRED = "Message is required"
RUN_FAILED_REPLY = "I encountered an error processing your request. Please try again."
TIMEOUT_REPLY = (
    "Your request is taking longer than expected. The AI service may be busy. "
    "Please try again."
)
UNEXPECTED_STATUS_REPLY = "I encountered an unexpected issue. Please try again."
TECHNICAL_DIFFICULTIES_REPLY = "I'm having technical difficulties. Please try again later."


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after a failed attempt (1-based): 1s, 2s, 4s, ..."""
    return BASE_DELAY_SECONDS * 2 ** (attempt - 1)


def new_thread_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class ChatReply:
    thread_id: str
    text: str
    simulated: bool = False


@dataclass(frozen=True)
class ClientError:
    reason: str


ChatResult = ChatReply | ClientError


@dataclass(frozen=True)
class _AttemptOutcome:
    reply: str
    retryable: bool


class ChatProxyService:
    """Submits chat messages to the configured AI Foundry agent."""

    def __init__(
        self,
        settings: Settings,
        connection: AgentConnection | None = None,
        simulator: SimulatedAgent | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings
        self.connection = connection or AgentConnection(settings)
        self.simulator = simulator or SimulatedAgent(settings.agent_name, sleep=sleep)
        self._sleep = sleep

        logger.info("Azure AI Foundry connection details:")
        logger.info(f"  Project endpoint: {settings.endpoint}")
        logger.info(f"  Workspace: {settings.workspace_name}")
        logger.info(f"  Agent: {settings.agent_name} ({settings.agent_id})")

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    async def process_message(self, message: str | None, thread_id: str | None = None) -> ChatResult:
        """
        Produce the agent's reply to a message.

        Args:
            message: The user's message text.
            thread_id: Existing conversation thread, if any.

        Returns:
            ClientError for an empty message, otherwise a ChatReply.
        """
        if not message:
            return ClientError(reason=MESSAGE_REQUIRED)

        try:
            logger.info(f"Processing message (thread: {thread_id or 'new'})")
            client = await self.connection.get_client()
            if client is None:
                logger.info(
                    f"{SIMULATION_MARKER} Using simulation mode (AI Foundry client not available)"
                )
                text = await self.simulator.reply(message)
                return ChatReply(thread_id=thread_id or new_thread_id(), text=text, simulated=True)

            resolved_thread, text = await self.submit_and_await_reply(client, message, thread_id)
            return ChatReply(thread_id=resolved_thread, text=text)
        except Exception:
            logger.exception("Error processing message")
            return ChatReply(
                thread_id=thread_id or new_thread_id(),
                text=TECHNICAL_DIFFICULTIES_REPLY,
            )

    async def create_thread(self) -> str:
        """Create a conversation thread, falling back to a local id when the Agent Service is unavailable."""
        client = await self.connection.get_client()
        if client is not None:
            try:
                thread_id = await client.create_thread()
                logger.info(f"Created AI Foundry thread: {thread_id}")
                return thread_id
            except Exception:
                logger.exception("Failed to create AI Foundry thread, using a local thread id")

        thread_id = new_thread_id()
        logger.info(f"{SIMULATION_MARKER} Created simulation thread: {thread_id}")
        return thread_id

    async def submit_and_await_reply(
        self,
        client: FoundryAgentsClient,
        message: str,
        thread_id: str | None = None,
    ) -> tuple[str, str]:
        """
        Run the message through the agent, retrying failed attempts.

        Returns:
            (thread id used, reply text). The reply is an apology when every
            attempt failed.
        """
        resolved: str | None = None
        outcome = _AttemptOutcome(reply=TECHNICAL_DIFFICULTIES_REPLY, retryable=True)

        for attempt in range(1, MAX_ATTEMPTS + 1):
            logger.info(f"AI Foundry attempt {attempt}/{MAX_ATTEMPTS}")
            try:
                if resolved is None:
                    resolved = await self._resolve_thread(client, thread_id)
                outcome = await self._run_once(client, resolved, message)
            except Exception as e:
                logger.exception(
                    f"AI Foundry API error (attempt {attempt}/{MAX_ATTEMPTS}): "
                    f"{type(e).__name__}: {e}"
                )
                outcome = _AttemptOutcome(reply=TECHNICAL_DIFFICULTIES_REPLY, retryable=True)

            if not outcome.retryable:
                return resolved, outcome.reply

            if attempt < MAX_ATTEMPTS:
                delay = backoff_delay(attempt)
                logger.info(
                    f"Retrying in {delay:.0f}s (attempt {attempt + 1}/{MAX_ATTEMPTS})"
                )
                await self._sleep(delay)

        logger.error(f"Giving up after {MAX_ATTEMPTS} attempts")
        return resolved or thread_id or new_thread_id(), outcome.reply

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    async def _resolve_thread(self, client: FoundryAgentsClient, thread_id: str | None) -> str:
        if thread_id:
            try:
                existing = await client.get_thread(thread_id)
                logger.info(f"Retrieved existing thread: {existing}")
                return existing
            except Exception as e:
                logger.warning(f"Failed to retrieve thread {thread_id}, creating new one: {e}")

        created = await client.create_thread()
        logger.info(f"Created new thread: {created}")
        return created

    async def _run_once(
        self,
        client: FoundryAgentsClient,
        thread_id: str,
        message: str,
    ) -> _AttemptOutcome:
        await client.add_user_message(thread_id, message)
        logger.info(f"Added user message to thread {thread_id}")

        run = await client.create_run(thread_id, self.settings.agent_id)
        run_created_at = run.created_at
        logger.info(f"Started run {run.id}")

        result = await poll_run(client, thread_id, run, sleep=self._sleep)
        final = result.run

        if same_text(final.status, "completed"):
            logger.info(f"Run completed successfully in {result.elapsed:.1f}s")
            messages = await client.list_messages(thread_id)
            return _AttemptOutcome(
                reply=extract_reply(messages, run_created_at),
                retryable=False,
            )

        if same_text(final.status, "failed"):
            if final.last_error is not None:
                logger.error(
                    f"Run {final.id} failed: code={final.last_error.code}, "
                    f"message={final.last_error.message}"
                )
            else:
                logger.error(f"Run {final.id} failed without error details")
            return _AttemptOutcome(reply=RUN_FAILED_REPLY, retryable=True)

        if result.timed_out:
            logger.warning(
                f"Run {final.id} timed out after {result.polls} polls "
                f"({result.elapsed:.1f}s), last status '{final.status}'"
            )
            await self._cancel_run(client, thread_id, final.id)
            return _AttemptOutcome(reply=TIMEOUT_REPLY, retryable=True)

        logger.warning(f"Run {final.id} ended with status '{final.status}'")
        return _AttemptOutcome(reply=UNEXPECTED_STATUS_REPLY, retryable=True)

    async def _cancel_run(self, client: FoundryAgentsClient, thread_id: str, run_id: str) -> None:
        """Cancel an abandoned run; the thread rejects new messages while it is active."""
        try:
            run = await client.cancel_run(thread_id, run_id)
            polls = 0
            while (
                is_running_status(run.status) or same_text(run.status, "cancelling")
            ) and polls < CANCEL_MAX_POLLS:
                await self._sleep(POLL_INTERVAL_SECONDS)
                run = await client.get_run(thread_id, run_id)
                polls += 1
            logger.info(f"Cancelled run {run_id}, status: {run.status}")
        except Exception as e:
            logger.warning(f"Failed to cancel run {run_id}: {type(e).__name__}: {e}")
