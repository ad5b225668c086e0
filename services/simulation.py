"""
Simulated Agent

Keyword-triggered canned replies used when the AI Foundry Agent Service
cannot be reached, e.g. local development without Azure credentials.
No network calls are made; a random delay emulates agent latency.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

SIMULATION_MARKER = "[simulation]"

MIN_DELAY_SECONDS = 0.5
MAX_DELAY_SECONDS = 1.5

# (keywords, reply) pairs, checked in order
CANNED_REPLIES = [
    (
        ("survival", "prognosis"),
        "Cancer survival rates vary significantly depending on the type, stage, and "
        "individual factors. I'd recommend discussing your specific situation with your "
        "oncologist who can provide personalized information based on your medical "
        "history and current condition.",
    ),
    (
        ("treatment", "therapy"),
        "Cancer treatments vary by type and stage. Common approaches include surgery, "
        "chemotherapy, radiation therapy, immunotherapy, and targeted therapy. What type "
        "of treatment information are you looking for?",
    ),
    (
        ("side effect",),
        "Cancer treatment side effects can vary depending on the type of treatment. "
        "Common side effects may include fatigue, nausea, hair loss, and changes in "
        "appetite. It's important to discuss any side effects with your healthcare team.",
    ),
    (
        ("support", "help"),
        "There are many support resources available for cancer patients including "
        "support groups, counseling services, and patient advocacy organizations. Your "
        "healthcare team can help connect you with appropriate resources.",
    ),
]


class SimulatedAgent:
    """Local stand-in for the Agent Service with the same reply contract."""

    def __init__(
        self,
        agent_name: str,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        self.agent_name = agent_name
        self._sleep = sleep
        self._rng = rng or random.Random()

    def canned_reply(self, message: str) -> str:
        """
        Pick a reply for the message by keyword.

        Args:
            message: The user's message.

        Returns:
            The first matching canned reply, or a generic reply echoing the message.
        """
        message_lower = message.lower()
        for keywords, reply in CANNED_REPLIES:
            if any(keyword in message_lower for keyword in keywords):
                return reply

        return (
            f"Thank you for your question about '{message}'. As {self.agent_name}, "
            "I'm designed to provide helpful information. Could you provide more "
            "context so I can give you the most relevant response?"
        )

    async def reply(self, message: str) -> str:
        logger.info(f"{SIMULATION_MARKER} Processing with simulation mode")
        await self._sleep(self._rng.uniform(MIN_DELAY_SECONDS, MAX_DELAY_SECONDS))
        reply = self.canned_reply(message)
        logger.info(f"{SIMULATION_MARKER} Generated contextual response")
        return reply
