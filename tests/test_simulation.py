# Copyright (c) Microsoft. All rights reserved.

"""Tests for the keyword-driven simulated agent."""

from __future__ import annotations

import asyncio
import logging
import random

import pytest

from services.simulation import SIMULATION_MARKER, SimulatedAgent


@pytest.mark.parametrize(
    "message, keyword",
    [
        ("What are the survival rates?", "survival"),
        ("Tell me about prognosis", "survival"),
        ("What treatment options are available?", "treatment"),
        ("Tell me about therapy", "treatment"),
        ("What are the side effects?", "side effect"),
        ("I need support", "support"),
        ("Can you help me?", "support"),
    ],
)
def test_keywords_select_contextual_reply(message: str, keyword: str) -> None:
    reply = SimulatedAgent("AI in A Box").canned_reply(message)

    assert keyword in reply
    assert "Thank you for your question" not in reply


def test_generic_message_gets_default_reply() -> None:
    reply = SimulatedAgent("AI in A Box").canned_reply("Hello there")

    assert "Thank you for your question" in reply
    assert "AI in A Box" in reply
    assert "Hello there" in reply


def test_reply_waits_a_random_delay_and_logs_marker(sleep, caplog) -> None:
    agent = SimulatedAgent("AI in A Box", sleep=sleep, rng=random.Random(7))

    with caplog.at_level(logging.INFO, logger="services.simulation"):
        reply = asyncio.run(agent.reply("Hello"))

    assert reply
    assert len(sleep.calls) == 1
    assert 0.5 <= sleep.calls[0] <= 1.5
    assert all(SIMULATION_MARKER in record.getMessage() for record in caplog.records)
