# Copyright (c) Microsoft. All rights reserved.

"""Unit tests for run status classification, polling bounds and reply extraction."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeAgentsClient
from services.foundry_client import AgentMessage, OtherContent, TextContent
from services.run_poller import (
    MAX_POLLS,
    NO_RESPONSE_REPLY,
    POLL_INTERVAL_SECONDS,
    extract_reply,
    is_running_status,
    poll_run,
)

RUN_START = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _message(role: str, offset_seconds: int, *content) -> AgentMessage:
    return AgentMessage(
        id=f"msg_{role}_{offset_seconds}",
        role=role,
        created_at=RUN_START + timedelta(seconds=offset_seconds),
        content=list(content),
    )


@pytest.mark.parametrize(
    "status",
    ["queued", "inprogress", "in_progress", "running", "QUEUED", "INPROGRESS", "IN_PROGRESS", "Running", "InProgress"],
)
def test_running_statuses_are_recognized_in_any_case(status: str) -> None:
    assert is_running_status(status) is True


@pytest.mark.parametrize(
    "status",
    ["completed", "failed", "cancelled", "COMPLETED", "", None, "unknown_status", "expired", "requires_action"],
)
def test_other_statuses_are_terminal(status: str | None) -> None:
    assert is_running_status(status) is False


def test_poll_run_stops_when_run_completes(sleep) -> None:
    client = FakeAgentsClient(run_statuses=[["queued", "queued", "in_progress", "completed"]])

    async def scenario():
        thread_id = await client.create_thread()
        run = await client.create_run(thread_id, "asst_test")
        return await poll_run(client, thread_id, run, sleep=sleep)

    result = asyncio.run(scenario())

    assert result.run.status == "completed"
    assert result.polls == 3
    assert result.timed_out is False
    assert sleep.calls == [POLL_INTERVAL_SECONDS] * 3


def test_poll_run_gives_up_after_poll_cap(sleep) -> None:
    client = FakeAgentsClient(run_statuses=[["in_progress"]])

    async def scenario():
        thread_id = await client.create_thread()
        run = await client.create_run(thread_id, "asst_test")
        return await poll_run(client, thread_id, run, sleep=sleep)

    result = asyncio.run(scenario())

    assert result.polls == MAX_POLLS == 240
    assert client.count("get_run") == 240
    assert sum(sleep.calls) == pytest.approx(120.0)
    assert result.timed_out is True


def test_poll_run_logs_only_status_transitions(sleep, caplog) -> None:
    client = FakeAgentsClient(run_statuses=[["queued"] + ["in_progress"] * 10 + ["completed"]])

    async def scenario():
        thread_id = await client.create_thread()
        run = await client.create_run(thread_id, "asst_test")
        return await poll_run(client, thread_id, run, sleep=sleep)

    with caplog.at_level(logging.INFO, logger="services.run_poller"):
        asyncio.run(scenario())

    transitions = [
        r.getMessage() for r in caplog.records if r.getMessage().startswith("Run run_1 status:")
    ]
    assert len(transitions) == 2
    assert transitions[-1].startswith("Run run_1 status: completed")


def test_poll_run_treats_unknown_status_as_terminal(sleep, caplog) -> None:
    client = FakeAgentsClient(run_statuses=[["queued", "mystery"]])

    async def scenario():
        thread_id = await client.create_thread()
        run = await client.create_run(thread_id, "asst_test")
        return await poll_run(client, thread_id, run, sleep=sleep)

    with caplog.at_level(logging.WARNING, logger="services.run_poller"):
        result = asyncio.run(scenario())

    assert result.run.status == "mystery"
    assert result.polls == 1
    assert result.timed_out is False
    assert any("unrecognized status 'mystery'" in r.getMessage() for r in caplog.records)


def test_extract_reply_returns_newest_assistant_message_of_current_run() -> None:
    messages = [
        _message("assistant", -30, TextContent("old answer")),
        _message("user", 0, TextContent("question")),
        _message("assistant", 5, TextContent("first part")),
        _message("assistant", 9, TextContent("latest answer")),
    ]

    assert extract_reply(messages, RUN_START) == "latest answer"


def test_extract_reply_ignores_stale_assistant_message() -> None:
    messages = [
        _message("assistant", -10, TextContent("answer from a previous run")),
        _message("user", 1, TextContent("new question")),
    ]

    assert extract_reply(messages, RUN_START) == NO_RESPONSE_REPLY


def test_extract_reply_accepts_message_created_at_run_start() -> None:
    messages = [_message("Assistant", 0, TextContent("same second"))]

    assert extract_reply(messages, RUN_START) == "same second"


def test_extract_reply_falls_back_to_string_form_of_other_content() -> None:
    class ImageFile:
        def __str__(self) -> str:
            return "image_file: file_123"

    messages = [_message("assistant", 3, OtherContent(ImageFile()))]

    assert extract_reply(messages, RUN_START) == "image_file: file_123"


def test_extract_reply_skips_content_that_only_names_its_type() -> None:
    class Opaque:
        def __str__(self) -> str:
            return "Opaque"

    messages = [
        _message("assistant", 4, OtherContent(Opaque()), TextContent("")),
    ]

    assert extract_reply(messages, RUN_START) == NO_RESPONSE_REPLY


def test_extract_reply_with_no_messages_returns_placeholder() -> None:
    assert extract_reply([], RUN_START) == NO_RESPONSE_REPLY
