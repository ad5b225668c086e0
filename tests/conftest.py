# Copyright (c) Microsoft. All rights reserved.

"""Shared fakes for the chat proxy tests: an in-memory Agent Service and a recording sleep."""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone

import pytest
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError

from services.chat_proxy import ChatProxyService
from services.connection import AgentConnection
from services.foundry_client import AgentInfo, AgentMessage, AgentRun, RunError, TextContent
from services.run_poller import is_running_status
from services.settings import Settings
from services.simulation import SimulatedAgent


class RecordingSleep:
    """Async sleep replacement that records requested delays and returns immediately."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def backoffs(self) -> list[float]:
        return [seconds for seconds in self.calls if seconds >= 1.0]

    @property
    def polls(self) -> list[float]:
        return [seconds for seconds in self.calls if seconds < 1.0]


class FakeAgentsClient:
    """
    In-memory stand-in for FoundryAgentsClient.

    ``run_statuses`` holds one status sequence per run: the first status is
    returned by create_run, the following ones by successive get_run calls,
    and the last one repeats. When there are more runs than sequences the
    last sequence is reused. A run reaching "completed" appends an assistant
    reply to its thread unless ``add_reply`` is False. Like the real service,
    a thread with a queued or in-progress run rejects new messages and runs.
    """

    def __init__(
        self,
        run_statuses: list[list[str]] | None = None,
        reply_factory=None,
        add_reply: bool = True,
        agent_name: str = "Test Agent",
        fail_on: dict[str, Exception] | None = None,
    ) -> None:
        self.run_statuses = run_statuses or [["queued", "in_progress", "completed"]]
        self.reply_factory = reply_factory or (lambda text, run_number: f"Reply {run_number} to: {text}")
        self.add_reply = add_reply
        self.agent_name = agent_name
        self.fail_on = fail_on or {}

        self.threads: dict[str, list[AgentMessage]] = {}
        self.calls: list[str] = []
        self.runs: dict[str, dict] = {}
        self.closed = False
        self._now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        self._ids = itertools.count(1)

    # helpers

    def _tick(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise self.fail_on[operation]

    def count(self, operation: str) -> int:
        return self.calls.count(operation)

    def add_message(self, thread_id: str, role: str, text: str, created_at: datetime | None = None) -> None:
        self.threads[thread_id].append(
            AgentMessage(
                id=f"msg_{next(self._ids)}",
                role=role,
                created_at=created_at or self._tick(),
                content=[TextContent(text=text)],
            )
        )

    def _status(self, state: dict) -> str:
        if state["cancelled"]:
            return "cancelled"
        sequence = state["sequence"]
        return sequence[min(state["position"], len(sequence) - 1)]

    def _ensure_idle(self, thread_id: str) -> None:
        for run_id, state in self.runs.items():
            if state["thread_id"] == thread_id and is_running_status(self._status(state)):
                raise HttpResponseError(
                    message=f"Can't add messages to {thread_id} while a run {run_id} is active."
                )

    def _snapshot(self, run_id: str) -> AgentRun:
        state = self.runs[run_id]
        status = self._status(state)
        if status == "completed" and not state["replied"]:
            state["replied"] = True
            if self.add_reply:
                self.add_message(
                    state["thread_id"],
                    "assistant",
                    self.reply_factory(state["text"], state["number"]),
                )
        last_error = RunError(code="server_error", message="boom") if status == "failed" else None
        return AgentRun(id=run_id, status=status, created_at=state["created_at"], last_error=last_error)

    # FoundryAgentsClient surface

    async def get_agent(self, agent_id: str) -> AgentInfo:
        self._record("get_agent")
        return AgentInfo(id=agent_id, name=self.agent_name)

    async def create_thread(self) -> str:
        self._record("create_thread")
        thread_id = f"thread_{next(self._ids)}"
        self.threads[thread_id] = []
        return thread_id

    async def get_thread(self, thread_id: str) -> str:
        self._record("get_thread")
        if thread_id not in self.threads:
            raise ResourceNotFoundError(f"No thread found with id '{thread_id}'")
        return thread_id

    async def add_user_message(self, thread_id: str, text: str) -> str:
        self._record("add_user_message")
        self._ensure_idle(thread_id)
        self.add_message(thread_id, "user", text)
        return self.threads[thread_id][-1].id

    async def create_run(self, thread_id: str, agent_id: str) -> AgentRun:
        self._record("create_run")
        self._ensure_idle(thread_id)
        number = len(self.runs) + 1
        run_id = f"run_{number}"
        sequence = self.run_statuses[min(number, len(self.run_statuses)) - 1]
        user_texts = [m.content[0].text for m in self.threads[thread_id] if m.role == "user"]
        self.runs[run_id] = {
            "thread_id": thread_id,
            "sequence": sequence,
            "position": 0,
            "created_at": self._tick(),
            "number": number,
            "text": user_texts[-1] if user_texts else "",
            "replied": False,
            "cancelled": False,
        }
        return self._snapshot(run_id)

    async def get_run(self, thread_id: str, run_id: str) -> AgentRun:
        self._record("get_run")
        self.runs[run_id]["position"] += 1
        return self._snapshot(run_id)

    async def cancel_run(self, thread_id: str, run_id: str) -> AgentRun:
        self._record("cancel_run")
        self.runs[run_id]["cancelled"] = True
        return self._snapshot(run_id)

    async def list_messages(self, thread_id: str) -> list[AgentMessage]:
        self._record("list_messages")
        return sorted(self.threads[thread_id], key=lambda m: m.created_at, reverse=True)

    async def close(self) -> None:
        self.closed = True


def make_connection(settings: Settings, client) -> AgentConnection:
    return AgentConnection(settings, client_factory=lambda _settings: client)


def make_service(settings: Settings, client, sleep: RecordingSleep) -> ChatProxyService:
    return ChatProxyService(
        settings,
        connection=make_connection(settings, client),
        simulator=SimulatedAgent(settings.agent_name, sleep=sleep),
        sleep=sleep,
    )


def unreachable_factory(_settings: Settings):
    raise ConnectionError("Agent Service unreachable")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        endpoint="https://example.services.ai.azure.com/api/projects/test",
        agent_id="asst_test",
        agent_name="Test Agent",
    )


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()
