# Copyright (c) Microsoft. All rights reserved.

"""Health and diagnostics for the AI Foundry connection."""

import logging
import os
from datetime import datetime, timezone
from typing import Mapping

from azure.core.exceptions import ClientAuthenticationError

from services.connection import AgentConnection
from services.settings import Settings

logger = logging.getLogger(__name__)


def classify_identity(environ: Mapping[str, str] | None = None) -> str:
    """Describe the credential mechanism available in this environment."""
    env = os.environ if environ is None else environ

    if (env.get("MSI_ENDPOINT") and env.get("MSI_SECRET")) or (
        env.get("IDENTITY_ENDPOINT") and env.get("IDENTITY_HEADER")
    ):
        return "Active - System-assigned managed identity available"
    if env.get("AZURE_CLIENT_ID"):
        return "Active - User-assigned managed identity configured"
    if env.get("AZURE_TENANT_ID") or env.get("USERPROFILE"):
        return "Local Development - Azure CLI credentials"
    return "Inactive - No identity detected"


def _describe(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}"


class HealthReporter:
    """Reports whether the agent connection, identity and agent access are healthy."""

    def __init__(self, settings: Settings, connection: AgentConnection):
        self.settings = settings
        self.connection = connection

    async def check(self) -> tuple[bool, dict]:
        """
        Run the diagnostics.

        Returns:
            (healthy, body) where body is the JSON-ready health document. Never raises.
        """
        now = datetime.now(timezone.utc).isoformat()
        connection_status, access_status, error = await self._probe_agent()
        healthy = error is None

        body = {
            "status": "Healthy" if healthy else "Unhealthy",
            "timestamp": now,
            "version": self.settings.version,
            "environment": self.settings.environment,
            "aiFoundryEndpoint": self.settings.endpoint,
            "agentName": self.settings.agent_name,
            "agentId": self.settings.agent_id,
            "connectionStatus": connection_status,
            "details": {
                "managedIdentity": self._identity_status(),
                "aiFoundryAccess": access_status,
                "lastHealthCheck": now,
            },
        }
        if error is not None:
            body["error"] = "Health check failed"
            body["details"]["exception"] = type(error).__name__
            body["details"]["message"] = str(error)
            logger.warning(f"Health check: AI Foundry unhealthy: {_describe(error)}")
        else:
            logger.info("Health check completed successfully")
        return healthy, body

    async def _probe_agent(self) -> tuple[str, str, Exception | None]:
        """Return (connectionStatus, aiFoundryAccess, error)."""
        try:
            client = await self.connection.get_client()
        except Exception as e:
            return f"Disconnected - {_describe(e)}", f"Error - {_describe(e)}", e

        if client is None:
            error = self.connection.last_error or RuntimeError("Client initialization failed")
            if isinstance(error, ClientAuthenticationError):
                access = "Unauthorized - Authentication failed"
            else:
                access = "Unauthorized - Cannot initialize client"
            return "Disconnected - Client initialization failed", access, error

        try:
            agent = await client.get_agent(self.settings.agent_id)
        except ClientAuthenticationError as e:
            return f"Disconnected - {_describe(e)}", "Unauthorized - Authentication failed", e
        except Exception as e:
            return f"Disconnected - {_describe(e)}", f"Error - {_describe(e)}", e

        logger.info(f"Health check: AI Foundry connection successful. Agent: {agent.name}")
        return (
            f"Connected - Agent '{agent.name}' accessible",
            "Authorized - Agent access confirmed",
            None,
        )

    def _identity_status(self) -> str:
        try:
            return classify_identity()
        except Exception as e:
            logger.warning(f"Error checking managed identity status: {e}")
            return f"Error - {e}"
