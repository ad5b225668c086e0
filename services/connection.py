# Copyright (c) Microsoft. All rights reserved.

"""Process-wide, lazily initialized connection to the AI Foundry Agent Service."""

import asyncio
import logging
from typing import Callable

from services.foundry_client import FoundryAgentsClient
from services.settings import Settings

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Settings], FoundryAgentsClient]


def default_client_factory(settings: Settings) -> FoundryAgentsClient:
    return FoundryAgentsClient(
        endpoint=settings.endpoint,
        managed_identity_client_id=settings.managed_identity_client_id,
    )


class AgentConnection:
    """
    Holds the authenticated Agent Service client for the life of the process.

    The client is created on first use and validated once by fetching the
    configured agent. A failed initialization is not cached: the slot stays
    empty and the next caller tries again.
    """

    def __init__(
        self,
        settings: Settings,
        client_factory: ClientFactory = default_client_factory,
    ):
        self.settings = settings
        self._client_factory = client_factory
        self._client: FoundryAgentsClient | None = None
        self._lock = asyncio.Lock()
        self.last_error: Exception | None = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def get_client(self) -> FoundryAgentsClient | None:
        """Return the validated client, or None when the Agent Service is unreachable."""
        if self._client is not None:
            return self._client

        async with self._lock:
            if self._client is not None:
                return self._client

            client = None
            try:
                logger.info(f"Initializing AI Foundry client for {self.settings.endpoint}")
                client = self._client_factory(self.settings)
                agent = await client.get_agent(self.settings.agent_id)
                logger.info(f"Connection test successful, agent found: '{agent.name}'")
            except Exception as e:
                self.last_error = e
                logger.exception(
                    f"Failed to initialize AI Foundry client: {type(e).__name__}: {e}"
                )
                logger.warning(
                    "For local development, sign in with 'az login' and check that "
                    "AI_FOUNDRY_ENDPOINT is set in local.settings.json"
                )
                if client is not None:
                    await self._close_quietly(client)
                return None

            self._client = client
            self.last_error = None
            logger.info("AI Foundry client fully initialized and tested")
            return client

    async def close(self) -> None:
        async with self._lock:
            client, self._client = self._client, None
        if client is not None:
            await client.close()

    @staticmethod
    async def _close_quietly(client: FoundryAgentsClient) -> None:
        try:
            await client.close()
        except Exception as e:
            logger.warning(f"Error closing unvalidated AI Foundry client: {e}")
