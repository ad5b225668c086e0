# Copyright (c) Microsoft. All rights reserved.

"""
Run polling and reply extraction.

A run moves Queued -> InProgress -> {Completed | Failed | Cancelled}. The
Agent Service is not consistent about casing (``queued``, ``in_progress``,
``InProgress``), so statuses are compared case-insensitively and anything
that is not a known running status is treated as terminal.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Iterable

from services.foundry_client import AgentMessage, AgentRun, MessageContent, TextContent

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.5
MAX_POLLS = 240  # 240 * 0.5s = 120 seconds

RUNNING_STATUSES = frozenset({"queued", "inprogress", "in_progress", "running"})
KNOWN_TERMINAL_STATUSES = frozenset(
    {"completed", "failed", "cancelled", "canceled", "cancelling", "expired", "requires_action"}
)

NO_RESPONSE_REPLY = "I processed your request but didn't generate a response. Please try again."

Sleep = Callable[[float], Awaitable[None]]


def is_running_status(status: str | None) -> bool:
    """Return True while a run status means the agent is still working."""
    if not status:
        return False
    return status.lower() in RUNNING_STATUSES


def same_text(value: str | None, expected: str) -> bool:
    return (value or "").lower() == expected.lower()


@dataclass(frozen=True)
class PollResult:
    run: AgentRun
    polls: int
    elapsed: float

    @property
    def timed_out(self) -> bool:
        return is_running_status(self.run.status)


async def poll_run(
    client,
    thread_id: str,
    run: AgentRun,
    sleep: Sleep = asyncio.sleep,
    max_polls: int = MAX_POLLS,
    interval: float = POLL_INTERVAL_SECONDS,
) -> PollResult:
    """
    Poll a run until it leaves the running states or the poll cap is reached.

    Only status transitions are logged, not every poll.
    """
    started = time.monotonic()
    polls = 0
    previous_status = run.status

    while is_running_status(run.status) and polls < max_polls:
        await sleep(interval)
        run = await client.get_run(thread_id, run.id)
        polls += 1

        if polls == 1 or run.status != previous_status:
            logger.info(
                f"Run {run.id} status: {run.status} "
                f"at {time.monotonic() - started:.1f}s"
            )
            previous_status = run.status

    elapsed = time.monotonic() - started
    if not is_running_status(run.status) and (run.status or "").lower() not in KNOWN_TERMINAL_STATUSES:
        logger.warning(f"Run {run.id} ended with unrecognized status '{run.status}'")
    logger.info(
        f"Polling completed after {polls} polls in {elapsed:.1f}s. "
        f"Final status: {run.status}"
    )
    return PollResult(run=run, polls=polls, elapsed=elapsed)


def _content_text(item: MessageContent) -> str | None:
    if isinstance(item, TextContent):
        return item.text
    text = str(item)
    # str() of an opaque SDK object is often just its type name
    if text == type(getattr(item, "payload", item)).__name__:
        return None
    return text


def extract_reply(messages: Iterable[AgentMessage], run_created_at: datetime) -> str:
    """
    Return the text of the newest assistant message created by the current run.

    Messages created before ``run_created_at`` belong to earlier runs on the
    same thread and are never returned.
    """
    ordered = sorted(messages, key=lambda m: m.created_at, reverse=True)
    logger.info(f"Found {len(ordered)} messages in thread")

    for message in ordered:
        if not same_text(message.role, "assistant") or message.created_at < run_created_at:
            continue
        for item in message.content:
            text = _content_text(item)
            if text:
                preview = text[:100] + "..." if len(text) > 100 else text
                logger.info(f"Returning agent reply (length: {len(text)}): {preview}")
                return text
        logger.warning(f"Assistant message {message.id} has no text content")

    logger.warning("No assistant message found for the current run")
    return NO_RESPONSE_REPLY
